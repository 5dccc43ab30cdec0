import argparse
import contextlib
import logging
import os
import pathlib
import sys
from typing import NamedTuple, Optional

import boto3
from botocore.config import Config as BotocoreConfig

from . import discovery, metadata, reconciler
from .eip import StateStore
from .errors import ProvisionerError

logger = logging.getLogger(__name__)

ENV_PREFIX = "AWS_IP_PROVISIONER"
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class Config(NamedTuple):
    region: str = ""
    profile: Optional[str] = None
    initial_wait_random_seconds: int = 60
    id_tag_key: str = "Id"
    id_tag_value: str = ""
    kind_tag_key: str = "Kind"
    kind_tag_value: str = "aws-ip-provisioner"
    publish_tag_key: str = "AWS_IP_PROVISIONER_EIP"
    current_eip_file: pathlib.Path = pathlib.Path("/data/current-eip.json")
    tag_poll_interval_seconds: float = 10
    tag_poll_timeout_seconds: float = 600
    api_timeout_seconds: float = 30
    metadata_endpoint: str = metadata.DEFAULT_ENDPOINT
    log_level: str = "INFO"


def env_default(name, default=None, *, prefix=ENV_PREFIX, environment=os.environ):
    return {"default": environment.get(f"{prefix}_{name}", default)}


def get_args(argv=None, *, environment=os.environ):
    defaults = Config()
    parser = argparse.ArgumentParser(
        prog="aws-ip-provisioner",
        description="Provision an Elastic IP and attach it to the local EC2 instance",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    def add(flag, name, default, **kwargs):
        parser.add_argument(flag, **env_default(name, default, environment=environment), **kwargs)

    add(
        "--region",
        "REGION",
        defaults.region,
        help="AWS region, looked up from instance metadata when empty",
    )
    add(
        "--profile",
        "PROFILE",
        defaults.profile,
        help="Use a specific profile from your AWS configuration file",
    )
    add(
        "--initial-wait-random-seconds",
        "INITIAL_WAIT_RANDOM_SECONDS",
        defaults.initial_wait_random_seconds,
        type=int,
        help="Maximum number of seconds to wait before the first API call, chosen at random",
    )
    add("--id-tag-key", "ID_TAG_KEY", defaults.id_tag_key, help="Key for the EIP 'Id' tag")
    add("--id-tag-value", "ID_TAG_VALUE", defaults.id_tag_value, help="Value for the EIP 'Id' tag")
    add("--kind-tag-key", "KIND_TAG_KEY", defaults.kind_tag_key, help="Key for the EIP 'Kind' tag")
    add(
        "--kind-tag-value",
        "KIND_TAG_VALUE",
        defaults.kind_tag_value,
        help="Value for the EIP 'Kind' tag",
    )
    add(
        "--local-instance-publish-tag-key",
        "LOCAL_INSTANCE_PUBLISH_TAG_KEY",
        defaults.publish_tag_key,
        help="Tag key written to the local instance with the EIP as value",
    )
    add(
        "--current-eip-file",
        "CURRENT_EIP_FILE",
        defaults.current_eip_file,
        type=pathlib.Path,
        help="File holding the current EIP, kept across instance stop/start",
    )
    add(
        "--tag-poll-interval-seconds",
        "TAG_POLL_INTERVAL_SECONDS",
        defaults.tag_poll_interval_seconds,
        type=float,
        help="Seconds between instance tag lookups",
    )
    add(
        "--tag-poll-timeout-seconds",
        "TAG_POLL_TIMEOUT_SECONDS",
        defaults.tag_poll_timeout_seconds,
        type=float,
        help="Seconds to wait for the autoscaling group tag",
    )
    add(
        "--api-timeout-seconds",
        "API_TIMEOUT_SECONDS",
        defaults.api_timeout_seconds,
        type=float,
        help="Connect and read timeout for each AWS API and metadata call",
    )
    add(
        "--metadata-endpoint",
        "METADATA_ENDPOINT",
        defaults.metadata_endpoint,
        help="Instance metadata service endpoint",
    )
    add(
        "--log-level",
        "LOG_LEVEL",
        defaults.log_level,
        type=str.upper,
        choices=LOG_LEVELS,
        help="Logging level",
    )
    return parser.parse_args(argv)


def config_from_args(args) -> Config:
    return Config(
        region=args.region or "",
        profile=args.profile or None,
        initial_wait_random_seconds=args.initial_wait_random_seconds,
        id_tag_key=args.id_tag_key,
        id_tag_value=args.id_tag_value,
        kind_tag_key=args.kind_tag_key,
        kind_tag_value=args.kind_tag_value,
        publish_tag_key=args.local_instance_publish_tag_key,
        current_eip_file=pathlib.Path(args.current_eip_file),
        tag_poll_interval_seconds=args.tag_poll_interval_seconds,
        tag_poll_timeout_seconds=args.tag_poll_timeout_seconds,
        api_timeout_seconds=args.api_timeout_seconds,
        metadata_endpoint=args.metadata_endpoint,
        log_level=args.log_level,
    )


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    # botocore is noisy at DEBUG and says nothing useful at INFO
    logging.getLogger("botocore").setLevel(logging.WARNING)


def create_session(region: Optional[str], profile: Optional[str]) -> boto3.Session:
    session_kwargs = {}
    if region:
        session_kwargs["region_name"] = region
    if profile is not None:
        session_kwargs["profile_name"] = profile
    return boto3.Session(**session_kwargs)


def create_ec2_client(session: boto3.Session, timeout: float):
    return session.client(
        "ec2",
        config=BotocoreConfig(
            connect_timeout=timeout,
            read_timeout=timeout,
            retries={"total_max_attempts": 1},
        ),
    )


@contextlib.contextmanager
def report_error():
    try:
        yield
    except ProvisionerError as ex:
        logger.error("aws-ip-provisioner failed: %s: %s", type(ex).__qualname__, ex)
        sys.exit(1)


def run(config: Config, *, ec2=None) -> None:
    discovery.initial_wait(config.initial_wait_random_seconds)

    instance_id = metadata.fetch_instance_id(
        endpoint=config.metadata_endpoint, timeout=config.api_timeout_seconds
    )
    if not config.region:
        config = config._replace(
            region=metadata.fetch_region(
                endpoint=config.metadata_endpoint, timeout=config.api_timeout_seconds
            )
        )
    logger.info("starting aws-ip-provisioner instance_id=%s region=%s", instance_id, config.region)

    if ec2 is None:
        ec2 = create_ec2_client(
            create_session(config.region, config.profile), config.api_timeout_seconds
        )

    group_name = discovery.wait_for_tag(
        ec2,
        instance_id,
        discovery.ASG_NAME_TAG_KEY,
        interval=config.tag_poll_interval_seconds,
        timeout=config.tag_poll_timeout_seconds,
    )

    eip = reconciler.reconcile(
        ec2, config, instance_id, group_name, store=StateStore(config.current_eip_file)
    )
    logger.info("successfully associated EIP eip=%s instance_id=%s", eip, instance_id)


def main(argv=None):
    args = get_args(argv)
    setup_logging(args.log_level)
    config = config_from_args(args)
    with report_error():
        run(config)


if __name__ == "__main__":
    main()
