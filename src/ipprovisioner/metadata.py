import http.client
import logging
import urllib.request

from .errors import MetadataError

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "http://169.254.169.254"
TOKEN_TTL_SECONDS = 21600


def make_http_request(method, url, *, data=None, headers=None, timeout=None):
    return urllib.request.urlopen(
        urllib.request.Request(
            method=method,
            url=url,
            data=data,
            headers=headers or {},
        ),
        timeout=timeout,
    )


def fetch_token(*, endpoint: str = DEFAULT_ENDPOINT, timeout: float = 30) -> str:
    with make_http_request(
        "PUT",
        f"{endpoint}/latest/api/token",
        headers={"X-aws-ec2-metadata-token-ttl-seconds": str(TOKEN_TTL_SECONDS)},
        timeout=timeout,
    ) as response:
        return response.read().decode("utf-8")


def fetch_metadata(path: str, *, endpoint: str = DEFAULT_ENDPOINT, timeout: float = 30) -> str:
    try:
        token = fetch_token(endpoint=endpoint, timeout=timeout)
        with make_http_request(
            "GET",
            f"{endpoint}/latest/meta-data/{path}",
            headers={"X-aws-ec2-metadata-token": token},
            timeout=timeout,
        ) as response:
            value = response.read().decode("utf-8").strip()
    except (http.client.HTTPException, OSError) as ex:
        raise MetadataError(f"Failed to fetch metadata {path!r}: {ex}") from ex
    if not value:
        raise MetadataError(f"Empty metadata value for {path!r}")
    logger.debug("fetched metadata path=%s value=%s", path, value)
    return value


def fetch_instance_id(*, endpoint: str = DEFAULT_ENDPOINT, timeout: float = 30) -> str:
    return fetch_metadata("instance-id", endpoint=endpoint, timeout=timeout)


def fetch_region(*, endpoint: str = DEFAULT_ENDPOINT, timeout: float = 30) -> str:
    return fetch_metadata("placement/region", endpoint=endpoint, timeout=timeout)
