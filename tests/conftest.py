import boto3
import pytest
from moto import mock_aws

from ipprovisioner.provisioner import Config

REGION = "us-east-1"


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch):
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", REGION)


@pytest.fixture
def ec2():
    with mock_aws():
        yield boto3.client("ec2", region_name=REGION)


def launch_instance(ec2, tags=None):
    kwargs = {}
    if tags:
        kwargs["TagSpecifications"] = [
            {
                "ResourceType": "instance",
                "Tags": [{"Key": key, "Value": value} for key, value in tags.items()],
            }
        ]
    response = ec2.run_instances(
        ImageId="ami-12c6146b",
        InstanceType="t3.micro",
        MinCount=1,
        MaxCount=1,
        **kwargs,
    )
    return response["Instances"][0]["InstanceId"]


@pytest.fixture
def instance_id(ec2):
    return launch_instance(ec2, {"autoscaling:groupName": "asg-123"})


@pytest.fixture
def config(tmp_path):
    return Config(
        region=REGION,
        initial_wait_random_seconds=0,
        id_tag_key="Id",
        id_tag_value="cluster-1",
        current_eip_file=tmp_path / "data" / "current-eip.json",
        tag_poll_interval_seconds=0,
        tag_poll_timeout_seconds=5,
    )
