"""
Explicit transactions over the transactional HTTP endpoint

Lifecycle:

    NOT_STARTED --begin--> OPEN --commit----> COMMITTED
         |                   |--rollback--> ROLLED_BACK
         |                   '--failure---> FAILED
         '------failure----------------------> FAILED

Phases only move forward. Every operation checks the transition table
before any request is built; an illegal call raises MisuseError and sends
nothing. Reaching a terminal phase releases the transaction from its session.
"""

from enum import Enum
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Optional, Tuple
from urllib.parse import urlsplit

import structlog

from .errors import MisuseError, TranslationError
from .request_builder import Phase
from .results import ResultCollection, ResultSet, decode_body, translate_response
from .statements import Statement
from .transport import HttpResponse

if TYPE_CHECKING:
    from .session import Session

logger = structlog.get_logger()


class TransactionPhase(Enum):
    NOT_STARTED = "not_started"
    OPEN = "open"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    FAILED = "failed"


TERMINAL_PHASES = frozenset(
    {TransactionPhase.COMMITTED, TransactionPhase.ROLLED_BACK, TransactionPhase.FAILED}
)

_TRANSITIONS = {
    TransactionPhase.NOT_STARTED: frozenset({TransactionPhase.OPEN, TransactionPhase.FAILED}),
    TransactionPhase.OPEN: TERMINAL_PHASES,
}

# Phase each operation must be called from
_ALLOWED_FROM = {
    "begin": TransactionPhase.NOT_STARTED,
    "push": TransactionPhase.OPEN,
    "commit": TransactionPhase.OPEN,
    "rollback": TransactionPhase.OPEN,
}


def parse_transaction_id(response: HttpResponse) -> int:
    """
    Extract the server-issued transaction id from an open response.

    The Location header (".../tx/42") is preferred; the body's commit URL
    (".../tx/42/commit") is the fallback.

    Raises:
        TranslationError: If neither carries a numeric id
    """
    candidates = []
    location = response.header("Location")
    if location:
        candidates.append(location)

    commit_url = decode_body(response.body).get("commit")
    if isinstance(commit_url, str):
        path = urlsplit(commit_url).path.rstrip("/")
        if path.endswith("/commit"):
            candidates.append(path[: -len("/commit")])

    for candidate in candidates:
        segment = urlsplit(candidate).path.rstrip("/").rsplit("/", 1)[-1]
        if segment.isdigit():
            return int(segment)

    raise TranslationError("open response carries no transaction id")


class Transaction:
    """
    A server-side transaction spanning several round trips.

    Not safe for concurrent use; callers serialize access.

    Used as a context manager, a transaction still open when the block exits
    is rolled back, even on a clean exit. Call commit() inside the block to
    keep its writes.

    Examples:
        >>> tx = session.begin_transaction()
        >>> tx.push([Statement("CREATE (p:Person {name: $name})", {"name": "Alice"})])
        >>> tx.commit()
        >>>
        >>> with session.begin_transaction() as tx:
        ...     tx.run("MATCH (p:Person) RETURN p.name AS name")
        ...     tx.commit()
    """

    def __init__(self, session: "Session"):
        """Internal constructor - use session.transaction() or session.begin_transaction()"""
        self._session = session
        self._id: Optional[int] = None
        self._phase = TransactionPhase.NOT_STARTED

    @property
    def id(self) -> Optional[int]:
        return self._id

    @property
    def phase(self) -> TransactionPhase:
        return self._phase

    @property
    def is_open(self) -> bool:
        return self._phase is TransactionPhase.OPEN

    @property
    def is_terminal(self) -> bool:
        return self._phase in TERMINAL_PHASES

    def _check(self, operation: str) -> None:
        required = _ALLOWED_FROM[operation]
        if self._phase is not required:
            raise MisuseError(
                f"cannot {operation} a transaction in phase {self._phase.name} "
                f"(requires {required.name})"
            )

    def _advance(self, phase: TransactionPhase) -> None:
        if phase not in _TRANSITIONS.get(self._phase, frozenset()):
            raise MisuseError(f"illegal transition {self._phase.name} -> {phase.name}")

        logger.debug("Transaction phase change", transaction_id=self._id,
                     previous=self._phase.name, phase=phase.name)
        self._phase = phase
        if phase in TERMINAL_PHASES:
            self._session._release(self)

    def _round_trip(
        self, phase: Phase, statements: Optional[Tuple[Statement, ...]] = None
    ) -> Tuple[HttpResponse, ResultCollection]:
        try:
            # Endpoint discovery may run here on first use
            request = self._session.request_builder.build(
                phase, batch=statements, transaction_id=self._id
            )
        except Exception as e:
            logger.warning("Transaction request could not be built", transaction_id=self._id,
                           phase=phase.name, error=str(e))
            self._advance(TransactionPhase.FAILED)
            raise

        outcome = self._session.send(request)
        response = None
        if outcome.is_ok:
            response = outcome.value
            outcome = translate_response(response, statements or ())

        if not outcome.is_ok:
            logger.warning("Transaction failed", transaction_id=self._id,
                           phase=phase.name, error=str(outcome.error))
            self._advance(TransactionPhase.FAILED)
            outcome.unwrap()
        return response, outcome.value

    def begin(self) -> "Transaction":
        """
        Open the transaction and record the server-issued id.

        Raises:
            MisuseError: If the transaction was already started
            ProtocolError: If the server rejects the open request
        """
        self._check("begin")
        response, _ = self._round_trip(Phase.OPEN)

        try:
            transaction_id = parse_transaction_id(response)
        except TranslationError:
            self._advance(TransactionPhase.FAILED)
            raise

        self._id = transaction_id
        self._advance(TransactionPhase.OPEN)
        logger.info("Transaction opened", transaction_id=transaction_id)
        return self

    def push(self, statements: Iterable[Statement]) -> ResultCollection:
        """
        Send a batch of statements inside the open transaction.

        Args:
            statements: A StatementBatch or any iterable of Statement

        Returns:
            ResultCollection in submission order

        Raises:
            MisuseError: If the transaction is not open
            ProtocolError: If any statement fails; the transaction is FAILED
                afterwards since the server has aborted it
        """
        self._check("push")
        batch = tuple(statements)
        logger.debug("Pushing statements", transaction_id=self._id, statements=len(batch))
        _, results = self._round_trip(Phase.PUSH_TO_OPEN, batch)
        return results

    def run(
        self, text: str, parameters: Optional[Mapping[str, Any]] = None, tag: Optional[str] = None
    ) -> ResultSet:
        """Push a single statement and return its result set."""
        results = self.push([Statement(text=text, parameters=parameters or {}, tag=tag)])
        return results[0]

    def commit(self) -> None:
        """
        Commit the transaction.

        Raises:
            MisuseError: If the transaction is not open
            ProtocolError: If the commit fails; the transaction is FAILED afterwards
        """
        self._check("commit")
        self._round_trip(Phase.COMMIT)
        self._advance(TransactionPhase.COMMITTED)
        logger.info("Transaction committed", transaction_id=self._id)

    def rollback(self) -> None:
        """
        Roll back the transaction.

        The phase becomes ROLLED_BACK whatever the server answers; a failure
        to send the request is still raised afterwards.

        Raises:
            MisuseError: If the transaction is not open
        """
        self._check("rollback")
        request = self._session.request_builder.build(Phase.ROLLBACK, transaction_id=self._id)
        outcome = self._session.send(request)
        self._advance(TransactionPhase.ROLLED_BACK)

        if not outcome.is_ok:
            logger.warning("Rollback request failed", transaction_id=self._id,
                           error=str(outcome.error))
            outcome.unwrap()
        logger.info("Transaction rolled back", transaction_id=self._id)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Roll back a transaction that is still open when the block exits."""
        if self._phase is TransactionPhase.NOT_STARTED:
            self._session._release(self)
        elif self._phase is TransactionPhase.OPEN:
            if exc_type is None:
                self.rollback()
            else:
                try:
                    self.rollback()
                except Exception as e:
                    logger.warning("Rollback after error failed", transaction_id=self._id,
                                   error=str(e))
        return False

    def __repr__(self) -> str:
        return f"Transaction(id={self._id}, phase={self._phase.name})"


__all__ = ["Transaction", "TransactionPhase", "TERMINAL_PHASES", "parse_transaction_id"]
