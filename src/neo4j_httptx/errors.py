"""
Error model for the Neo4j transactional HTTP client

Every error raised by this package derives from Neo4jHttpError, except raw
transport failures, which propagate unchanged when the server did not send a
structured error body.

Taxonomy:
- ProtocolError: the server reported a statement or transaction failure
- DiscoveryError: endpoint metadata could not be resolved
- MisuseError: an operation was called in the wrong transaction phase
- TranslationError: a response did not have the expected shape
"""

from typing import Optional


class Neo4jHttpError(Exception):
    """Base exception for all client errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ProtocolError(Neo4jHttpError):
    """
    The server explicitly reported a failure.

    Attributes:
        server_code: Neo4j status code (e.g. Neo.ClientError.Statement.SyntaxError),
            present only when the server returned a structured error body
        cause: The underlying transport failure, if the error arrived on a
            non-2xx response
        soft: True when the HTTP request succeeded but the body reported
            statement errors (the server may have applied earlier statements)
    """

    def __init__(
        self,
        message: str,
        server_code: Optional[str] = None,
        cause: Optional[BaseException] = None,
        soft: bool = False,
    ):
        super().__init__(message)
        self.server_code = server_code
        self.cause = cause
        self.soft = soft
        if cause is not None:
            self.__cause__ = cause

    @classmethod
    def from_server_error(
        cls,
        code: str,
        message: str,
        cause: Optional[BaseException] = None,
        soft: bool = False,
    ) -> "ProtocolError":
        """Build a ProtocolError from an entry of the server's errors array."""
        text = f'Neo4j Exception with code "{code}" and message "{message}"'
        return cls(text, server_code=code, cause=cause, soft=soft)

    def _code_part(self, index: int) -> Optional[str]:
        # Neo.<Classification>.<Category>.<Title>
        if not self.server_code:
            return None
        parts = self.server_code.split(".")
        if len(parts) != 4:
            return None
        return parts[index]

    @property
    def classification(self) -> Optional[str]:
        return self._code_part(1)

    @property
    def category(self) -> Optional[str]:
        return self._code_part(2)

    @property
    def title(self) -> Optional[str]:
        return self._code_part(3)


class DiscoveryError(Neo4jHttpError):
    """Endpoint metadata could not be resolved after one redirect."""

    def __init__(self, message: str, root_uri: Optional[str] = None):
        super().__init__(f"Discovery error: {message}")
        self.root_uri = root_uri


class MisuseError(Neo4jHttpError):
    """An operation is illegal for the current state (a caller bug, not a server condition)."""

    def __init__(self, message: str):
        super().__init__(f"Invalid operation: {message}")


class TranslationError(Neo4jHttpError):
    """The server response did not match the expected shape."""

    def __init__(self, message: str):
        super().__init__(f"Translation error: {message}")


__all__ = [
    "Neo4jHttpError",
    "ProtocolError",
    "DiscoveryError",
    "MisuseError",
    "TranslationError",
]
