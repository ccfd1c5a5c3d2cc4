"""
Region lookup against the GCE/Cloud Run metadata server.

The lookup never raises: every failure is folded into an ``Unknown`` result
carrying the reason, so the page can always render something.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

import requests
import structlog

logger = structlog.get_logger()

DEFAULT_METADATA_HOST = "metadata.google.internal"
REGION_PATH = "/computeMetadata/v1/instance/region"
DEFAULT_TIMEOUT_MS = 500


class UnknownReason(Enum):
    SERVER_ERROR = "metadata server error"
    UNAVAILABLE = "metadata server unavailable"
    TIMEOUT = "metadata timeout"


@dataclass(frozen=True)
class Resolved:
    region: str

    def __str__(self) -> str:
        return self.region


@dataclass(frozen=True)
class Unknown:
    reason: UnknownReason

    def __str__(self) -> str:
        return f"unknown ({self.reason.value})"


RegionLookupResult = Union[Resolved, Unknown]


class RegionResolver:
    def __init__(
        self,
        host: str = DEFAULT_METADATA_HOST,
        path: str = REGION_PATH,
        port: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ):
        netloc = f"{host}:{port}" if port else host
        self.url = f"http://{netloc}{path}"
        self._session = session

    def resolve(self, timeout_ms: int = DEFAULT_TIMEOUT_MS) -> RegionLookupResult:
        """Ask the metadata server for the region, bounded by ``timeout_ms``.

        A 200 response yields the last ``/`` segment of the body. Anything else
        maps onto an ``Unknown`` reason. There is no retry.
        """
        timeout = timeout_ms / 1000.0
        session = self._session or requests.Session()
        try:
            with session.get(
                self.url,
                headers={"Metadata-Flavor": "Google"},
                timeout=timeout,
                allow_redirects=False,
            ) as response:
                body = response.text
                if response.status_code != 200:
                    logger.error(
                        "metadata_server_error",
                        status=response.status_code,
                        body=body,
                    )
                    return Unknown(UnknownReason.SERVER_ERROR)
                return Resolved(body.strip().split("/")[-1])
        # ConnectTimeout is also a ConnectionError, so Timeout goes first.
        except requests.exceptions.Timeout:
            logger.error("metadata_request_timed_out", timeout_ms=timeout_ms)
            return Unknown(UnknownReason.TIMEOUT)
        except requests.exceptions.RequestException as e:
            logger.error("metadata_request_failed", error=str(e))
            return Unknown(UnknownReason.UNAVAILABLE)
        finally:
            if self._session is None:
                session.close()
