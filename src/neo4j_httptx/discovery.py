"""
Transaction endpoint discovery

Resolves the transaction URL template for a server root and logical database.

The root document either advertises the template directly:

    {"neo4j_version": "5.12.0", "transaction": "http://host:7474/db/{databaseName}/tx", ...}

or (legacy servers) points at the real metadata document:

    {"data": "http://host:7474/db/data/", ...}

in which case the document is fetched and extraction retried exactly once.
"""

import json
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple
from urllib.parse import urljoin

import structlog

from .errors import DiscoveryError, ProtocolError
from .transport import HttpFailure, HttpTransport, RequestFactory

logger = structlog.get_logger()

DATABASE_PLACEHOLDER = "{databaseName}"

_DISCOVERY_HEADERS = {"Accept": "application/json;charset=UTF-8"}


@dataclass(frozen=True)
class Endpoint:
    """
    A resolved transaction endpoint.

    transaction_template never contains the database placeholder.
    """

    base_uri: str
    transaction_template: str

    def __post_init__(self):
        if DATABASE_PLACEHOLDER in self.transaction_template:
            raise ValueError(f"Unresolved database placeholder in {self.transaction_template}")


def _fetch_metadata(
    transport: HttpTransport, request_factory: RequestFactory, url: str, root_uri: str
) -> Dict[str, Any]:
    request = request_factory.create_request("GET", url, headers=_DISCOVERY_HEADERS)
    try:
        response = transport.send(request)
    except HttpFailure as e:
        raise ProtocolError(f"Endpoint discovery failed: {e}", cause=e) from e
    except Exception as e:
        # Network-level failure from the transport
        raise ProtocolError(f"Endpoint discovery failed for {url}: {e}", cause=e) from e

    try:
        document = json.loads(response.body)
    except ValueError as e:
        raise DiscoveryError(f"metadata at {url} is not valid JSON", root_uri=root_uri) from e

    if not isinstance(document, dict):
        raise DiscoveryError(f"metadata at {url} is not a JSON object", root_uri=root_uri)
    return document


def _extract_template(document: Dict[str, Any]) -> Optional[str]:
    if document.get("neo4j_version") is None:
        return None
    template = document.get("transaction")
    return template if isinstance(template, str) and template else None


def discover_endpoint(
    transport: HttpTransport,
    request_factory: RequestFactory,
    root_uri: str,
    database: str,
) -> Endpoint:
    """
    Discover the transaction endpoint for a server root.

    Args:
        transport: HTTP transport used for the metadata requests
        request_factory: Builds the GET requests
        root_uri: Server root, e.g. http://localhost:7474
        database: Logical database name substituted into the template

    Returns:
        Endpoint with the resolved transaction template

    Raises:
        ProtocolError: If the metadata request fails (no server code)
        DiscoveryError: If the metadata has no template after one redirect
    """
    document = _fetch_metadata(transport, request_factory, root_uri, root_uri)
    template = _extract_template(document)

    if template is None:
        redirect = document.get("data")
        if not isinstance(redirect, str) or not redirect:
            raise DiscoveryError(
                f"{root_uri} advertises neither a transaction template nor a data document",
                root_uri=root_uri,
            )
        redirect_url = urljoin(root_uri.rstrip("/") + "/", redirect)
        logger.debug("Following discovery redirect", root_uri=root_uri, data=redirect_url)

        document = _fetch_metadata(transport, request_factory, redirect_url, root_uri)
        template = _extract_template(document)
        if template is None:
            raise DiscoveryError(
                f"no transaction template at {redirect_url}", root_uri=root_uri
            )

    resolved = template.replace(DATABASE_PLACEHOLDER, database).rstrip("/")
    logger.info("Transaction endpoint discovered",
                root_uri=root_uri, database=database, template=resolved)
    return Endpoint(base_uri=root_uri, transaction_template=resolved)


class EndpointCache:
    """
    Resolved endpoints keyed by (root URI, database), without expiry.

    Population is synchronized per key, so concurrent first use against the
    same server issues a single discovery and shares its result. Failed
    discoveries are not cached.
    """

    def __init__(self):
        self._entries: Dict[Tuple[str, str], Endpoint] = {}
        self._locks: Dict[Tuple[str, str], threading.Lock] = {}
        self._guard = threading.Lock()

    def get(self, root_uri: str, database: str) -> Optional[Endpoint]:
        return self._entries.get((root_uri, database))

    def get_or_discover(
        self,
        root_uri: str,
        database: str,
        discover: Callable[[str, str], Endpoint],
    ) -> Endpoint:
        key = (root_uri, database)
        endpoint = self._entries.get(key)
        if endpoint is not None:
            return endpoint

        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())

        with lock:
            endpoint = self._entries.get(key)
            if endpoint is None:
                endpoint = discover(root_uri, database)
                self._entries[key] = endpoint
            else:
                logger.debug("Endpoint resolved by concurrent discovery", root_uri=root_uri)
        return endpoint

    def clear(self) -> None:
        with self._guard:
            self._entries.clear()
            self._locks.clear()

    def __contains__(self, key: Tuple[str, str]) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["Endpoint", "EndpointCache", "discover_endpoint", "DATABASE_PLACEHOLDER"]
