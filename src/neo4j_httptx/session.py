"""
Sessions against one server root

A session resolves the transaction endpoint (through a shared EndpointCache),
runs one-shot statements in a single open-and-commit round trip, and hands
out explicit transactions. It holds at most one non-terminal transaction.
"""

from typing import Any, Mapping, Optional

import structlog

from .config import ClientConfig
from .discovery import Endpoint, EndpointCache, discover_endpoint
from .errors import MisuseError
from .outcome import Err, Ok, Outcome
from .pipeline import Pipeline
from .request_builder import Phase, RequestBuilder
from .results import ResultCollection, translate_failure, translate_response
from .statements import StatementBatch
from .transaction import Transaction
from .transport import HttpFailure, HttpRequest, HttpTransport, RequestFactory

logger = structlog.get_logger()


class Session:
    """
    A logical session against one Neo4j server.

    Args:
        root_uri: Server root, e.g. http://localhost:7474
        transport: HTTP transport used for every request
        config: Client configuration (database name, credentials)
        endpoint_cache: Cache shared between sessions; a private one is
            created when omitted
        request_factory: Request construction capability

    Examples:
        >>> session = Session("http://localhost:7474", HttpxTransport())
        >>> session.run("CREATE (n:Person {name: $name})", {"name": "Alice"})
        >>> with session.begin_transaction() as tx:
        ...     tx.run("MATCH (n:Person) RETURN count(n) AS people")
        ...     tx.commit()
    """

    def __init__(
        self,
        root_uri: str,
        transport: HttpTransport,
        config: Optional[ClientConfig] = None,
        endpoint_cache: Optional[EndpointCache] = None,
        request_factory: Optional[RequestFactory] = None,
    ):
        self.root_uri = root_uri.rstrip("/")
        self.config = config or ClientConfig()
        self._transport = transport
        self._endpoint_cache = endpoint_cache if endpoint_cache is not None else EndpointCache()
        self._request_factory = request_factory or RequestFactory()
        self._request_builder: Optional[RequestBuilder] = None
        self._transaction: Optional[Transaction] = None
        self._closed = False

    def _discover(self, root_uri: str, database: str) -> Endpoint:
        return discover_endpoint(self._transport, self._request_factory, root_uri, database)

    @property
    def endpoint(self) -> Endpoint:
        """The resolved endpoint; discovered on first access."""
        return self.request_builder.endpoint

    @property
    def request_builder(self) -> RequestBuilder:
        if self._request_builder is None:
            endpoint = self._endpoint_cache.get_or_discover(
                self.root_uri, self.config.database, self._discover
            )
            self._request_builder = RequestBuilder(endpoint, self._request_factory)
        return self._request_builder

    @property
    def current_transaction(self) -> Optional[Transaction]:
        return self._transaction

    def send(self, request: HttpRequest) -> Outcome:
        """
        Send a request through the transport.

        Returns:
            Ok(HttpResponse), or Err with a ProtocolError when a failed
            response carries a server error, or Err with the original
            transport exception otherwise
        """
        try:
            return Ok(self._transport.send(request))
        except HttpFailure as e:
            return translate_failure(e)
        except Exception as e:
            logger.debug("Transport error", method=request.method, url=request.url, error=str(e))
            return Err(e)

    def _check_open(self) -> None:
        if self._closed:
            raise MisuseError("session is closed")

    def run(
        self,
        text: str,
        parameters: Optional[Mapping[str, Any]] = None,
        tag: Optional[str] = None,
    ) -> ResultCollection:
        """
        Run a single statement in its own auto-committed transaction.

        Returns:
            ResultCollection with one result set

        Raises:
            ProtocolError: If the server rejects the statement
        """
        batch = StatementBatch()
        batch.append(text, parameters, tag)
        return self.flush(batch)

    def flush(self, batch: StatementBatch) -> ResultCollection:
        """
        Send a batch in one open-and-commit round trip.

        Raises:
            ProtocolError: If the server reports an error (hard or soft)
            TranslationError: If the response does not match the batch
        """
        self._check_open()
        statements = batch.snapshot()
        request = self.request_builder.build(Phase.OPEN_AND_COMMIT, batch=statements)
        logger.debug("Flushing statements", uri=request.url, statements=len(statements))

        outcome = self.send(request)
        if outcome.is_ok:
            outcome = translate_response(outcome.value, statements)
        return outcome.unwrap()

    def create_pipeline(
        self,
        text: Optional[str] = None,
        parameters: Optional[Mapping[str, Any]] = None,
        tag: Optional[str] = None,
    ) -> Pipeline:
        """Create a pipeline, optionally seeded with a first statement."""
        pipeline = Pipeline(self)
        if text is not None:
            pipeline.push(text, parameters, tag)
        return pipeline

    def transaction(self) -> Transaction:
        """
        Create an unstarted transaction bound to this session.

        Raises:
            MisuseError: If the session already holds a transaction
        """
        self._check_open()
        if self._transaction is not None:
            raise MisuseError("a transaction is already bound to this session")
        self._transaction = Transaction(self)
        return self._transaction

    def begin_transaction(self) -> Transaction:
        """
        Create and open a transaction.

        Raises:
            MisuseError: If the session already holds a transaction (no request is sent)
            ProtocolError: If the server refuses to open the transaction
        """
        return self.transaction().begin()

    def _release(self, transaction: Transaction) -> None:
        if self._transaction is transaction:
            self._transaction = None

    def close(self) -> None:
        """Close the session, rolling back a transaction that is still open."""
        if self._closed:
            return
        transaction = self._transaction
        if transaction is not None and transaction.is_open:
            try:
                transaction.rollback()
            except Exception as e:
                logger.warning("Rollback on session close failed",
                               transaction_id=transaction.id, error=str(e))
        self._transaction = None
        self._closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


__all__ = ["Session"]
