"""
Result model and response translation

The translator turns a raw response into either a ResultCollection or a
structured error, covering three cases:

1. Non-2xx response (HttpFailure) whose body carries a server error:
   ProtocolError with the server code and the failure as cause. Without a
   recognizable error body the original failure is returned unchanged.
2. 2xx response whose body has a non-empty "errors" array (soft failure):
   ProtocolError without cause. The server may already have applied the
   statements that ran before the failing one.
3. Success: results[i] is mapped to the i-th submitted statement by position.
"""

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

import structlog

from .errors import ProtocolError, TranslationError
from .outcome import Err, Ok, Outcome
from .statements import Statement
from .transport import HttpFailure, HttpResponse

logger = structlog.get_logger()


class Record(Mapping):
    """A single row, keyed by column name."""

    def __init__(self, columns: Tuple[str, ...], values: List[Any]):
        if len(columns) != len(values):
            raise TranslationError(
                f"row has {len(values)} values for {len(columns)} columns"
            )
        self._columns = columns
        self._values = tuple(values)

    def __getitem__(self, key: str) -> Any:
        try:
            return self._values[self._columns.index(key)]
        except ValueError:
            raise KeyError(key) from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._columns)

    def __len__(self) -> int:
        return len(self._columns)

    def value(self, index: int) -> Any:
        """Value by column position."""
        return self._values[index]

    def __repr__(self) -> str:
        return f"Record({dict(self)!r})"


@dataclass(frozen=True)
class ResultSet:
    """
    Result of one statement.

    Attributes:
        statement: The submitted statement this result belongs to
        columns: Column names in server order
        records: Rows keyed by column name
        graphs: Per-row graph payloads ({"nodes": [...], "relationships": [...]})
        stats: Update counters reported by the server (includeStats)
    """

    statement: Statement
    columns: Tuple[str, ...] = ()
    records: Tuple[Record, ...] = ()
    graphs: Tuple[Dict[str, Any], ...] = ()
    stats: Dict[str, Any] = field(default_factory=dict)

    @property
    def tag(self) -> Optional[str]:
        return self.statement.tag

    @property
    def contains_updates(self) -> bool:
        return bool(self.stats.get("contains_updates", False))

    def first(self) -> Optional[Record]:
        return self.records[0] if self.records else None

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[Record]:
        return iter(self.records)


class ResultCollection(Sequence):
    """Result sets in statement submission order. Immutable."""

    def __init__(self, results: Tuple[ResultSet, ...] = ()):
        self._results = tuple(results)

    def __getitem__(self, index):
        return self._results[index]

    def __len__(self) -> int:
        return len(self._results)

    def first(self) -> Optional[ResultSet]:
        return self._results[0] if self._results else None

    def get_by_tag(self, tag: str) -> Optional[ResultSet]:
        """First result whose statement carries the given tag."""
        for result in self._results:
            if result.statement.tag == tag:
                return result
        return None

    def __repr__(self) -> str:
        return f"ResultCollection({len(self._results)} results)"


def decode_body(body: str) -> Dict[str, Any]:
    """
    Decode a JSON response body. An empty body decodes to {}.

    Raises:
        TranslationError: If the body is not a JSON object
    """
    if not body or not body.strip():
        return {}
    try:
        data = json.loads(body)
    except ValueError as e:
        raise TranslationError(f"response body is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise TranslationError("response body is not a JSON object")
    return data


def _server_error(
    errors: List[Any], cause: Optional[BaseException] = None, soft: bool = False
) -> ProtocolError:
    first = errors[0] if isinstance(errors[0], dict) else {}
    code = first.get("code")
    message = first.get("message", "")
    if not code:
        return ProtocolError(f'Neo4j Exception with message "{message}"', cause=cause, soft=soft)
    return ProtocolError.from_server_error(code, message, cause=cause, soft=soft)


def translate_failure(failure: HttpFailure) -> Err:
    """
    Translate a non-2xx transport failure.

    Returns:
        Err(ProtocolError) when the body carries a server error, otherwise
        Err(failure) so the original failure is raised unchanged
    """
    try:
        body = json.loads(failure.response.body)
    except ValueError:
        return Err(failure)
    if not isinstance(body, dict):
        return Err(failure)

    errors = body.get("errors")
    if isinstance(errors, list) and errors and isinstance(errors[0], dict) and errors[0].get("code"):
        error = _server_error(errors, cause=failure)
    elif body.get("code"):
        error = ProtocolError.from_server_error(
            body["code"], body.get("message", ""), cause=failure
        )
    else:
        return Err(failure)

    logger.debug("Server error on failed HTTP response",
                 status=failure.response.status, server_code=error.server_code)
    return Err(error)


def _build_result_set(statement: Statement, raw: Any) -> ResultSet:
    if not isinstance(raw, dict):
        raise TranslationError("result entry is not a JSON object")

    columns = tuple(raw.get("columns") or ())
    records = []
    graphs = []
    for row in raw.get("data") or ():
        if not isinstance(row, dict):
            raise TranslationError("data entry is not a JSON object")
        values = row.get("rest", row.get("row"))
        if values is None:
            raise TranslationError("data entry has neither rest nor row content")
        records.append(Record(columns, values))
        if "graph" in row:
            graphs.append(row["graph"])

    return ResultSet(
        statement=statement,
        columns=columns,
        records=tuple(records),
        graphs=tuple(graphs),
        stats=dict(raw.get("stats") or {}),
    )


def translate_response(
    response: HttpResponse, statements: Sequence
) -> Outcome:
    """
    Translate a 2xx response for the submitted statements.

    Args:
        response: Raw transport response
        statements: Statements in submission order

    Returns:
        Ok(ResultCollection), Err(ProtocolError) for a soft failure, or
        Err(TranslationError) for a malformed body or result count mismatch
    """
    try:
        data = decode_body(response.body)
    except TranslationError as e:
        return Err(e)

    errors = data.get("errors")
    if isinstance(errors, list) and errors:
        error = _server_error(errors, soft=True)
        logger.debug("Soft failure in response body", server_code=error.server_code,
                     error_count=len(errors))
        return Err(error)

    results = data.get("results") or []
    if len(results) < len(statements):
        return Err(TranslationError(
            f"expected {len(statements)} results, server returned {len(results)}"
        ))

    try:
        result_sets = tuple(
            _build_result_set(statement, raw) for statement, raw in zip(statements, results)
        )
    except TranslationError as e:
        return Err(e)
    return Ok(ResultCollection(result_sets))


__all__ = [
    "Record",
    "ResultSet",
    "ResultCollection",
    "decode_body",
    "translate_failure",
    "translate_response",
]
