import logging

from . import ec2 as ec2_api
from .discovery import ASG_NAME_TAG_KEY
from .eip import EIP, StateStore

logger = logging.getLogger(__name__)


def allocation_tags(config, group_name: str):
    return {
        config.id_tag_key: config.id_tag_value,
        config.kind_tag_key: config.kind_tag_value,
        ASG_NAME_TAG_KEY: group_name,
    }


def allocate_for_instance(ec2, config, instance: dict, group_name: str) -> EIP:
    zone_name = instance["Placement"]["AvailabilityZone"]
    network_border_group = ec2_api.get_network_border_group(ec2, zone_name, config.region)
    return ec2_api.allocate_eip(
        ec2,
        network_border_group=network_border_group,
        tags=allocation_tags(config, group_name),
    )


def reconcile(ec2, config, instance_id: str, group_name: str, *, store: StateStore) -> EIP:
    # a single instance can hold several EIPs, see secondary private IPs
    associated = ec2_api.list_associated_eips(ec2, instance_id)
    if associated:
        logger.warning(
            "EIP already associated to this instance, may get charged extra instance_id=%s eips=%d",
            instance_id,
            len(associated),
        )

    logger.info("checking local EIP file file=%s", store.path)
    eip = store.load()
    if eip is not None:
        logger.info("found local EIP file=%s eip=%s", store.path, eip)
    else:
        logger.info("no local EIP file found, allocating file=%s", store.path)
        eip = allocate_for_instance(
            ec2, config, ec2_api.get_instance(ec2, instance_id), group_name
        )
    store.save(eip)

    if eip in associated:
        logger.info("EIP already associated, skipping association eip=%s", eip)
    else:
        logger.info("associating EIP eip=%s instance_id=%s", eip, instance_id)
        association_id = ec2_api.associate_eip(ec2, eip.allocation_id, instance_id)
        logger.info("associated EIP eip=%s association_id=%s", eip, association_id)

    publish(ec2, config, instance_id, eip)
    return eip


def publish(ec2, config, instance_id: str, eip: EIP) -> None:
    logger.info(
        "publishing EIP tag instance_id=%s key=%s value=%s",
        instance_id,
        config.publish_tag_key,
        eip,
    )
    ec2_api.create_tags(ec2, [instance_id], {config.publish_tag_key: str(eip)})
