"""
Request builder for the transactional HTTP endpoint

Maps a protocol phase plus a statement batch to a request descriptor:

    OPEN_AND_COMMIT  POST   {template}/commit        statements
    OPEN             POST   {template}               (no body)
    PUSH_TO_OPEN     POST   {template}/{id}          statements, X-Stream
    COMMIT           POST   {template}/{id}/commit   (no body)
    ROLLBACK         DELETE {template}/{id}          (no body)
"""

import json
from enum import Enum
from typing import Any, Dict, Iterable, Optional

from .discovery import Endpoint
from .errors import MisuseError
from .statements import Statement, format_parameters
from .transport import HttpRequest, RequestFactory

RESULT_DATA_CONTENTS = ["REST", "GRAPH"]

JSON_ACCEPT = "application/json;charset=UTF-8"
JSON_CONTENT_TYPE = "application/json;charset=UTF-8"


class Phase(Enum):
    """Wire-level protocol phases"""

    OPEN_AND_COMMIT = "open_and_commit"
    OPEN = "open"
    PUSH_TO_OPEN = "push_to_open"
    COMMIT = "commit"
    ROLLBACK = "rollback"


_NEEDS_TRANSACTION_ID = {Phase.PUSH_TO_OPEN, Phase.COMMIT, Phase.ROLLBACK}
_CARRIES_STATEMENTS = {Phase.OPEN_AND_COMMIT, Phase.PUSH_TO_OPEN}


def statement_payload(statement: Statement) -> Dict[str, Any]:
    """Wire representation of a single statement."""
    return {
        "statement": statement.text,
        "parameters": format_parameters(statement.parameters),
        "resultDataContents": list(RESULT_DATA_CONTENTS),
        "includeStats": True,
    }


def encode_statements(statements: Iterable[Statement]) -> str:
    return json.dumps({"statements": [statement_payload(s) for s in statements]})


class RequestBuilder:
    """Builds requests against one resolved endpoint."""

    def __init__(self, endpoint: Endpoint, request_factory: Optional[RequestFactory] = None):
        self.endpoint = endpoint
        self.request_factory = request_factory or RequestFactory()

    def build(
        self,
        phase: Phase,
        batch: Optional[Iterable[Statement]] = None,
        transaction_id: Optional[int] = None,
    ) -> HttpRequest:
        """
        Build the request for a phase.

        Args:
            phase: Protocol phase
            batch: Statements to send (required for OPEN_AND_COMMIT and PUSH_TO_OPEN)
            transaction_id: Server-issued id (required for PUSH_TO_OPEN, COMMIT, ROLLBACK)

        Returns:
            HttpRequest descriptor

        Raises:
            MisuseError: If a required id or batch is missing
        """
        if phase in _NEEDS_TRANSACTION_ID and transaction_id is None:
            raise MisuseError(f"{phase.name} requires a transaction id")
        if phase in _CARRIES_STATEMENTS and batch is None:
            raise MisuseError(f"{phase.name} requires a statement batch")

        template = self.endpoint.transaction_template
        headers = {"Accept": JSON_ACCEPT}
        body = None

        if phase is Phase.OPEN_AND_COMMIT:
            method, url = "POST", f"{template}/commit"
        elif phase is Phase.OPEN:
            method, url = "POST", template
        elif phase is Phase.PUSH_TO_OPEN:
            method, url = "POST", f"{template}/{transaction_id}"
            headers["X-Stream"] = "true"
        elif phase is Phase.COMMIT:
            method, url = "POST", f"{template}/{transaction_id}/commit"
        else:
            method, url = "DELETE", f"{template}/{transaction_id}"

        if phase in _CARRIES_STATEMENTS:
            body = encode_statements(batch)
            headers["Content-Type"] = JSON_CONTENT_TYPE

        return self.request_factory.create_request(method, url, headers=headers, body=body)


__all__ = ["Phase", "RequestBuilder", "statement_payload", "encode_statements"]
