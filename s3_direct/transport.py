from __future__ import annotations
"""HTTP transport used by the object-store service."""
from dataclasses import dataclass, field
import logging
from typing import Mapping, Optional, Protocol

from botocore.awsrequest import AWSRequest
from botocore.exceptions import BotoCoreError
from botocore.httpsession import URLLib3Session

from .errors import NetworkError

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60


@dataclass
class HttpResponse:
    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = field(default=b"", repr=False)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


class Transport(Protocol):
    def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes] = None,
    ) -> HttpResponse:
        ...


class BotocoreTransport:
    """Sends already-signed requests through botocore's urllib3 session.

    Only botocore's HTTP layer is used here; signing happens in
    :mod:`s3_direct.signing`. Transport failures surface as
    :class:`~s3_direct.errors.NetworkError`.
    """

    def __init__(self, *, timeout: float = DEFAULT_TIMEOUT, verify: bool = True, session=None):
        self._session = session or URLLib3Session(verify=verify, timeout=timeout)

    def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes] = None,
    ) -> HttpResponse:
        request = AWSRequest(method=method, url=url, headers=dict(headers), data=body)
        try:
            response = self._session.send(request.prepare())
        except BotoCoreError as exc:
            LOGGER.warning("%s %s failed: %s", method, url, exc)
            raise NetworkError(str(exc)) from exc
        LOGGER.debug("%s %s -> %s", method, url, response.status_code)
        return HttpResponse(
            status_code=response.status_code,
            headers={str(name): str(value) for name, value in response.headers.items()},
            body=response.content or b"",
        )

    def close(self) -> None:
        self._session.close()
