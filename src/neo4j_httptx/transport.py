"""
HTTP transport capability

The protocol layer only depends on HttpTransport.send() and RequestFactory.
HttpxTransport is the bundled implementation backed by httpx; it raises
HttpFailure for non-2xx responses so error bodies reach the translator.
Network-level errors (httpx.TransportError) propagate unchanged.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol, Tuple, runtime_checkable

import httpx
import structlog

logger = structlog.get_logger()


@dataclass(frozen=True)
class HttpRequest:
    """Transport-agnostic request descriptor."""

    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[str] = None


@dataclass(frozen=True)
class HttpResponse:
    """Raw response: status, headers and undecoded body text."""

    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ""

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None


class HttpFailure(Exception):
    """The server answered with a non-2xx status."""

    def __init__(self, request: HttpRequest, response: HttpResponse):
        super().__init__(f"HTTP {response.status} for {request.method} {request.url}")
        self.request = request
        self.response = response


@runtime_checkable
class HttpTransport(Protocol):
    def send(self, request: HttpRequest) -> HttpResponse:
        """
        Execute a request.

        Raises:
            HttpFailure: If the server returns a non-2xx status
        """
        ...


class RequestFactory:
    """Builds request descriptors; default headers are merged under explicit ones."""

    def __init__(self, default_headers: Optional[Dict[str, str]] = None):
        self.default_headers = dict(default_headers or {})

    def create_request(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        body: Optional[str] = None,
    ) -> HttpRequest:
        merged = dict(self.default_headers)
        merged.update(headers or {})
        return HttpRequest(method=method.upper(), url=url, headers=merged, body=body)


class HttpxTransport:
    """
    HttpTransport backed by httpx.Client.

    Args:
        client: Existing httpx.Client to use (the caller keeps ownership)
        auth: Optional basic auth (username, password)
        timeout: Request timeout in seconds, ignored when client is given
    """

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        auth: Optional[Tuple[str, str]] = None,
        timeout: float = 30.0,
    ):
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)
        self._auth = httpx.BasicAuth(*auth) if auth else None

    def send(self, request: HttpRequest) -> HttpResponse:
        logger.debug("HTTP request", method=request.method, url=request.url,
                     has_body=request.body is not None)

        kwargs = {"headers": request.headers}
        if request.body is not None:
            kwargs["content"] = request.body.encode("utf-8")
        if self._auth is not None:
            kwargs["auth"] = self._auth

        raw = self._client.request(request.method, request.url, **kwargs)
        response = HttpResponse(
            status=raw.status_code,
            headers=dict(raw.headers),
            body=raw.text,
        )

        logger.debug("HTTP response", method=request.method, url=request.url,
                     status=response.status)

        if not raw.is_success:
            raise HttpFailure(request, response)
        return response

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


__all__ = [
    "HttpRequest",
    "HttpResponse",
    "HttpFailure",
    "HttpTransport",
    "RequestFactory",
    "HttpxTransport",
]
