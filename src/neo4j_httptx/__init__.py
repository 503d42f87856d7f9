"""
Neo4j Transactional HTTP Client

Client for Neo4j's transactional HTTP endpoint: endpoint discovery,
statement batching, explicit multi-request transactions and translation of
server error payloads into typed exceptions.
"""

from .config import ClientConfig
from .discovery import Endpoint, EndpointCache, discover_endpoint
from .driver import Driver
from .errors import (
    DiscoveryError,
    MisuseError,
    Neo4jHttpError,
    ProtocolError,
    TranslationError,
)
from .outcome import Err, Ok
from .pipeline import Pipeline
from .request_builder import Phase, RequestBuilder
from .results import Record, ResultCollection, ResultSet
from .session import Session
from .statements import Statement, StatementBatch, format_parameters
from .transaction import Transaction, TransactionPhase
from .transport import (
    HttpFailure,
    HttpRequest,
    HttpResponse,
    HttpTransport,
    HttpxTransport,
    RequestFactory,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "ClientConfig",
    "Driver",
    "Session",
    "Transaction",
    "TransactionPhase",
    "Pipeline",
    "Statement",
    "StatementBatch",
    "format_parameters",
    "Phase",
    "RequestBuilder",
    "Endpoint",
    "EndpointCache",
    "discover_endpoint",
    "Record",
    "ResultSet",
    "ResultCollection",
    "Ok",
    "Err",
    "HttpRequest",
    "HttpResponse",
    "HttpFailure",
    "HttpTransport",
    "HttpxTransport",
    "RequestFactory",
    "Neo4jHttpError",
    "ProtocolError",
    "DiscoveryError",
    "MisuseError",
    "TranslationError",
]
