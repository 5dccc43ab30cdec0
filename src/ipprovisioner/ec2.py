import contextlib
import logging
from typing import Dict, List

from botocore.exceptions import BotoCoreError, ClientError

from .eip import EIP
from .errors import CloudCallError

logger = logging.getLogger(__name__)


@contextlib.contextmanager
def api_call(description: str):
    try:
        yield
    except (BotoCoreError, ClientError) as ex:
        raise CloudCallError(f"Failed to {description}: {ex}") from ex


def get_instance(ec2, instance_id: str) -> dict:
    with api_call(f"describe instance {instance_id}"):
        response = ec2.describe_instances(InstanceIds=[instance_id])
    for reservation in response["Reservations"]:
        for instance in reservation["Instances"]:
            return instance
    raise CloudCallError(f"Instance {instance_id!r} not found")


def get_instance_tags(ec2, instance_id: str) -> List[Dict[str, str]]:
    return get_instance(ec2, instance_id).get("Tags", [])


def get_network_border_group(ec2, zone_name: str, default: str) -> str:
    with api_call(f"describe availability zone {zone_name}"):
        zones = ec2.describe_availability_zones(AllAvailabilityZones=True)["AvailabilityZones"]
    for zone in zones:
        if zone["ZoneName"] == zone_name:
            return zone.get("NetworkBorderGroup") or default
    return default


def list_associated_eips(ec2, instance_id: str) -> List[EIP]:
    with api_call(f"list EIPs for instance {instance_id}"):
        response = ec2.describe_addresses(
            Filters=[
                {
                    "Name": "instance-id",
                    "Values": [instance_id],
                }
            ],
        )
    return [EIP.from_address(address) for address in response["Addresses"]]


def allocate_eip(ec2, *, network_border_group: str, tags: Dict[str, str]) -> EIP:
    with api_call("allocate EIP"):
        response = ec2.allocate_address(
            Domain="vpc",
            NetworkBorderGroup=network_border_group,
            TagSpecifications=[
                {
                    "ResourceType": "elastic-ip",
                    "Tags": [{"Key": key, "Value": value} for key, value in tags.items()],
                },
            ],
        )
    eip = EIP.from_address(response)
    logger.info(
        "allocated EIP eip=%s network_border_group=%s", eip, network_border_group
    )
    return eip


def associate_eip(ec2, allocation_id: str, instance_id: str) -> str:
    with api_call(f"associate EIP {allocation_id} to {instance_id}"):
        response = ec2.associate_address(
            AllocationId=allocation_id,
            InstanceId=instance_id,
            AllowReassociation=True,
        )
    return response["AssociationId"]


def create_tags(ec2, resource_ids: List[str], tags: Dict[str, str]) -> None:
    with api_call(f"create tags on {','.join(resource_ids)}"):
        ec2.create_tags(
            Resources=resource_ids,
            Tags=[{"Key": key, "Value": value} for key, value in tags.items()],
        )
