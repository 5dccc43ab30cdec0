import contextlib
import json
import logging
import os
import pathlib
import tempfile
from typing import NamedTuple, Optional

from .errors import StateStoreError

logger = logging.getLogger(__name__)


class EIP(NamedTuple):
    allocation_id: str
    public_ip: str

    def __str__(self):
        return f"{self.allocation_id}:{self.public_ip}"

    @classmethod
    def parse(cls, value: str) -> "EIP":
        allocation_id, sep, public_ip = value.partition(":")
        if not sep or not allocation_id or not public_ip:
            raise ValueError(f"Malformed EIP {value!r}")
        return cls(allocation_id, public_ip)

    @classmethod
    def from_address(cls, address) -> "EIP":
        return cls(address["AllocationId"], address["PublicIp"])


class StateStore:
    def __init__(self, path):
        self.path = pathlib.Path(path)

    def load(self) -> Optional[EIP]:
        try:
            with self.path.open("r") as f:
                data = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as ex:
            raise StateStoreError(f"Failed to read {self.path}: {ex}") from ex
        try:
            eip = EIP(data["allocation_id"], data["public_ip"])
        except (KeyError, TypeError) as ex:
            raise StateStoreError(f"Malformed EIP record in {self.path}: {ex!r}") from ex
        if not all(isinstance(field, str) and field for field in eip):
            raise StateStoreError(f"Malformed EIP record in {self.path}: {data!r}")
        return eip

    def save(self, eip: EIP) -> None:
        payload = json.dumps(eip._asdict(), indent=2, sort_keys=True)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", dir=str(self.path.parent)
            )
            try:
                with os.fdopen(fd, "w") as f:
                    f.write(payload)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(temp_name, self.path)
            except BaseException:
                with contextlib.suppress(OSError):
                    os.unlink(temp_name)
                raise
        except OSError as ex:
            raise StateStoreError(f"Failed to write {self.path}: {ex}") from ex
        logger.info("saved EIP file=%s eip=%s", self.path, eip)
