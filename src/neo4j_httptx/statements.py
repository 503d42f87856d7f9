"""
Statements and statement batches

A batch is an ordered, append-only list of Cypher statements that is sent in
a single request. Parameters are stored as given; format_parameters() is
applied by the request builder right before serialization.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple


@dataclass(frozen=True)
class Statement:
    """A single Cypher statement with its parameters and optional tag."""

    text: str
    parameters: Mapping[str, Any] = field(default_factory=dict)
    tag: Optional[str] = None


def _format_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        # Empty mappings become a fresh dict so they encode as {} and not []
        return {str(k): _format_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_format_value(v) for v in value]
    return value


def format_parameters(parameters: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Normalize statement parameters for JSON encoding.

    Every mapping, at any depth, is emitted as a plain dict, so an empty
    mapping always serializes as an object ({}) rather than a list. Lists and
    tuples become lists with their items normalized. Scalars pass through.

    Args:
        parameters: Statement parameters (None is treated as empty)

    Returns:
        A new dict safe to pass to json.dumps()
    """
    if not parameters:
        return {}
    return _format_value(parameters)


class StatementBatch:
    """
    Ordered collection of statements accumulated before a send.

    Statements with identical text are independent entries.
    """

    def __init__(self):
        self._statements = []

    def append(
        self,
        text: str,
        parameters: Optional[Mapping[str, Any]] = None,
        tag: Optional[str] = None,
    ) -> Statement:
        statement = Statement(text=text, parameters=parameters or {}, tag=tag)
        self._statements.append(statement)
        return statement

    def add(self, statement: Statement) -> Statement:
        self._statements.append(statement)
        return statement

    def snapshot(self) -> Tuple[Statement, ...]:
        return tuple(self._statements)

    def clear(self) -> None:
        self._statements = []

    def __len__(self) -> int:
        return len(self._statements)

    def __iter__(self) -> Iterator[Statement]:
        return iter(tuple(self._statements))

    def __bool__(self) -> bool:
        return bool(self._statements)

    def __repr__(self) -> str:
        return f"StatementBatch({len(self._statements)} statements)"


__all__ = ["Statement", "StatementBatch", "format_parameters"]
