"""Exception hierarchy for ftsearch.

Declaration errors are raised while a schema is being described, validation
errors before a command is sent. Errors reported by the server itself are not
wrapped: redis-py exceptions reach the caller unchanged.
"""

from __future__ import annotations

from typing import Any


class SearchClientError(Exception):
    """Base class for every error raised by ftsearch itself."""


class SchemaDeclarationError(SearchClientError, ValueError):
    """A field or schema was declared with an unknown or invalid option."""


class SearchValidationError(SearchClientError, ValueError):
    """Input rejected before any command reached the server."""


class InvalidSchemaError(SearchValidationError):
    """Something other than a Schema was passed where one is required."""


class InvalidQueryError(SearchValidationError):
    """Search input could not be turned into a Query."""


class FieldValueError(SearchValidationError):
    """A document value does not match the type declared for its field."""

    def __init__(self, field: str, value: Any, expected: str) -> None:
        self.field = field
        self.value = value
        self.expected = expected
        super().__init__(f"Invalid value for {expected} field '{field}': {value!r}")
