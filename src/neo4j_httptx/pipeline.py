"""
Pipelines: several statements in one open-and-commit round trip
"""

from typing import TYPE_CHECKING, Any, Mapping, Optional, Tuple

from .errors import MisuseError
from .results import ResultCollection
from .statements import Statement, StatementBatch

if TYPE_CHECKING:
    from .session import Session


class Pipeline:
    """
    Accumulates statements and sends them together.

    A pipeline is consumed by its first successful run().
    """

    def __init__(self, session: "Session"):
        self._session = session
        self._batch = StatementBatch()
        self._consumed = False

    def push(
        self,
        text: str,
        parameters: Optional[Mapping[str, Any]] = None,
        tag: Optional[str] = None,
    ) -> Statement:
        if self._consumed:
            raise MisuseError("pipeline has already been run")
        return self._batch.append(text, parameters, tag)

    def statements(self) -> Tuple[Statement, ...]:
        return self._batch.snapshot()

    def run(self) -> ResultCollection:
        if self._consumed:
            raise MisuseError("pipeline has already been run")
        results = self._session.flush(self._batch)
        self._consumed = True
        return results

    def __len__(self) -> int:
        return len(self._batch)


__all__ = ["Pipeline"]
