import logging
import random
import time
from typing import Dict, Iterable, Optional

from . import ec2 as ec2_api
from .errors import TagDiscoveryTimeout

logger = logging.getLogger(__name__)

ASG_NAME_TAG_KEY = "autoscaling:groupName"


def initial_wait(max_seconds: int, *, sleep=time.sleep, randrange=random.randrange) -> int:
    if max_seconds <= 0:
        return 0
    seconds = randrange(max_seconds)
    logger.info("initial wait seconds=%d max_seconds=%d", seconds, max_seconds)
    sleep(seconds)
    return seconds


def find_tag(tags: Iterable[Dict[str, str]], tag_key: str) -> Optional[str]:
    # e.g. "aws:autoscaling:groupName" matches "autoscaling:groupName"
    for tag in tags:
        key, value = tag["Key"], tag["Value"]
        logger.debug("found instance tag key=%s value=%s", key, value)
        if key == tag_key or key.endswith(tag_key):
            return value
    return None


def wait_for_tag(
    ec2,
    instance_id: str,
    tag_key: str = ASG_NAME_TAG_KEY,
    *,
    interval: float = 10,
    timeout: float = 600,
    clock=time.monotonic,
    sleep=time.sleep,
) -> str:
    # each attempt waits first, never past the deadline; describe errors are not retried
    logger.info(
        "waiting for instance tag instance_id=%s tag_key=%s timeout=%s",
        instance_id,
        tag_key,
        timeout,
    )
    deadline = clock() + timeout
    while True:
        remaining = deadline - clock()
        if remaining <= 0:
            break
        sleep(min(interval, remaining))
        if clock() >= deadline:
            break
        value = find_tag(ec2_api.get_instance_tags(ec2, instance_id), tag_key)
        # an empty group name is not usable, keep polling
        if value:
            logger.info("found instance tag key=%s value=%s", tag_key, value)
            return value
    raise TagDiscoveryTimeout(
        f"Tag {tag_key!r} did not appear on {instance_id} within {timeout} seconds"
    )
