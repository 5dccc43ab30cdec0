import json

import pytest

from ipprovisioner.eip import EIP, StateStore
from ipprovisioner.errors import StateStoreError


def test_eip_string_form():
    eip = EIP("eipalloc-abc", "3.4.5.6")
    assert str(eip) == "eipalloc-abc:3.4.5.6"
    assert EIP.parse(str(eip)) == eip


@pytest.mark.parametrize("value", ["", "eipalloc-abc", ":3.4.5.6", "eipalloc-abc:"])
def test_eip_parse_rejects_malformed(value):
    with pytest.raises(ValueError):
        EIP.parse(value)


def test_eip_from_address():
    address = {"AllocationId": "eipalloc-abc", "PublicIp": "3.4.5.6", "Domain": "vpc"}
    assert EIP.from_address(address) == EIP("eipalloc-abc", "3.4.5.6")


def test_load_missing_file(tmp_path):
    assert StateStore(tmp_path / "current-eip.json").load() is None


def test_save_creates_parent_and_loads_back(tmp_path):
    path = tmp_path / "data" / "nested" / "current-eip.json"
    store = StateStore(path)
    store.save(EIP("eipalloc-abc", "3.4.5.6"))

    assert json.loads(path.read_text()) == {
        "allocation_id": "eipalloc-abc",
        "public_ip": "3.4.5.6",
    }
    assert store.load() == EIP("eipalloc-abc", "3.4.5.6")
    assert [p.name for p in path.parent.iterdir()] == ["current-eip.json"]


def test_save_overwrites(tmp_path):
    store = StateStore(tmp_path / "current-eip.json")
    store.save(EIP("eipalloc-abc", "3.4.5.6"))
    store.save(EIP("eipalloc-def", "7.8.9.10"))
    assert store.load() == EIP("eipalloc-def", "7.8.9.10")


def test_load_invalid_json(tmp_path):
    path = tmp_path / "current-eip.json"
    path.write_text("{not json")
    with pytest.raises(StateStoreError):
        StateStore(path).load()


def test_load_missing_keys(tmp_path):
    path = tmp_path / "current-eip.json"
    path.write_text(json.dumps({"allocation_id": "eipalloc-abc"}))
    with pytest.raises(StateStoreError):
        StateStore(path).load()


def test_save_failure_raises(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    with pytest.raises(StateStoreError):
        StateStore(blocker / "current-eip.json").save(EIP("eipalloc-abc", "3.4.5.6"))


@pytest.mark.parametrize(
    "record",
    [
        {"allocation_id": "", "public_ip": None},
        {"allocation_id": "eipalloc-abc", "public_ip": ""},
        {"allocation_id": 123, "public_ip": "3.4.5.6"},
        ["eipalloc-abc", "3.4.5.6"],
    ],
)
def test_load_rejects_invalid_fields(tmp_path, record):
    path = tmp_path / "current-eip.json"
    path.write_text(json.dumps(record))
    with pytest.raises(StateStoreError):
        StateStore(path).load()
