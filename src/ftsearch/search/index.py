"""Index handle: a named server-side index bound to a schema.

The handle owns the mapping between document ids and storage keys. When a
key prefix is bound every written key is ``prefix:id`` and every document
identifier in a search reply has ``prefix:`` stripped again, so callers only
ever see their own ids.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from enum import Enum
import logging
from typing import Any, Optional, Union

import orjson

from ftsearch.channel import CommandChannel
from ftsearch.commands import SearchCommands
from ftsearch.errors import FieldValueError, InvalidQueryError, InvalidSchemaError, SearchValidationError
from ftsearch.search.query import Query, ReplyLayout
from ftsearch.search.results import SearchResult, document_id_positions, parse_search_reply
from ftsearch.search.schema import NumericField, Schema, SchemaField


logger = logging.getLogger(__name__)

QueryInput = Optional[Union[Query, str, Callable[[Query], Any]]]


class StorageType(str, Enum):
    """Backing representation of indexed documents."""

    HASH = "HASH"
    JSON = "JSON"

    @classmethod
    def parse(cls, value: StorageType | str) -> StorageType:
        try:
            return cls(str(getattr(value, "value", value)).upper())
        except ValueError as exc:
            supported = ", ".join(s.value for s in cls)
            raise SearchValidationError(f"Invalid storage type {value!r}. Supported types are: {supported}") from exc


def _is_numeric(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class Index:
    """Handle for one search index.

    Example:
        index = Index.create(redis_client, "products", schema, prefix="product")
        index.add("p1", title="Galaxy", price=799)
        index.search(Query("@title:Galaxy").with_scores())
    """

    def __init__(
        self,
        commands: SearchCommands,
        name: str,
        schema: Schema,
        storage_type: StorageType | str = StorageType.HASH,
        *,
        prefix: str | None = None,
        stopwords: Iterable[str] | None = None,
    ) -> None:
        self._commands = commands
        self.name = name
        self._schema = schema
        self.storage_type = StorageType.parse(storage_type)
        self.prefix = prefix or None
        self.stopwords = list(stopwords) if stopwords is not None else None

    @classmethod
    def create(
        cls,
        client: SearchCommands | CommandChannel,
        name: str,
        schema: Schema,
        storage_type: StorageType | str = StorageType.HASH,
        *,
        prefix: str | None = None,
        stopwords: Iterable[str] | None = None,
    ) -> Index:
        """Create the index on the server and return a bound handle."""
        if not isinstance(schema, Schema):
            raise InvalidSchemaError(f"Invalid schema: expected a Schema, got {type(schema).__name__}")

        commands = client if isinstance(client, SearchCommands) else SearchCommands(client)
        storage = StorageType.parse(storage_type)
        words = list(stopwords) if stopwords is not None else None
        commands.ft_create(name, schema, storage, prefix=prefix, stopwords=words)
        logger.info("Created index %s on %s with %d fields (prefix=%s)", name, storage.value, len(schema), prefix)
        return cls(commands, name, schema, storage, prefix=prefix, stopwords=words)

    @property
    def schema(self) -> Schema:
        return self._schema

    @property
    def key_prefix(self) -> str | None:
        return f"{self.prefix}:" if self.prefix else None

    # -- keys -----------------------------------------------------------

    def key_for(self, doc_id: Any) -> str:
        """Storage key for a document id."""
        if self.prefix:
            return f"{self.prefix}:{doc_id}"
        return str(doc_id)

    def strip_prefix(self, key: Any) -> Any:
        """Inverse of ``key_for``; values without the prefix are returned unchanged."""
        marker = self.key_prefix
        if not marker:
            return key
        if isinstance(key, str) and key.startswith(marker):
            return key[len(marker) :]
        if isinstance(key, bytes) and key.startswith(marker.encode()):
            return key[len(marker) :]
        return key

    # -- documents ------------------------------------------------------

    def validate_document(self, fields: Mapping[str, Any]) -> None:
        """Reject values that do not match their declared field type."""
        for field_name, value in fields.items():
            declared = self._schema.field(field_name)
            if isinstance(declared, NumericField) and not _is_numeric(value):
                raise FieldValueError(field_name, value, "numeric")

    def add(self, doc_id: Any, fields: Mapping[str, Any] | None = None, **values: Any) -> Any:
        """Write a document; numeric fields are checked before anything is sent."""
        document = {**(fields or {}), **values}
        if not document:
            raise SearchValidationError(f"Document '{doc_id}' has no fields")
        self.validate_document(document)

        key = self.key_for(doc_id)
        if self.storage_type is StorageType.JSON:
            payload = orjson.dumps(document).decode("utf-8")
            return self._commands.call("JSON.SET", key, "$", payload, index=self.name)

        args: list[Any] = []
        for field_name, value in document.items():
            args += [field_name, value]
        return self._commands.call("HSET", key, *args, index=self.name)

    # -- search ---------------------------------------------------------

    def _coerce_query(self, query: QueryInput, declare: Callable[[Query], Any] | None) -> Query:
        if declare is not None:
            return Query.build(declare, base=query if isinstance(query, str) else None)
        if isinstance(query, Query):
            return query
        if isinstance(query, str):
            return Query(query)
        if query is None:
            return Query()
        if callable(query):
            return Query.build(query)
        raise InvalidQueryError(f"Invalid query: expected a Query, string or callable, got {type(query).__name__}")

    def _strip_reply(self, reply: list[Any], layout: ReplyLayout) -> list[Any]:
        stripped = list(reply)
        for position in document_id_positions(stripped, layout):
            stripped[position] = self.strip_prefix(stripped[position])
        return stripped

    def _execute(self, query: Query) -> Any:
        logger.debug("Searching %s: %s", self.name, query.query_string())
        reply = self._commands.ft_search(self.name, query)
        if self.prefix and isinstance(reply, Sequence) and not isinstance(reply, (str, bytes)):
            reply = self._strip_reply(list(reply), query.reply_layout())
        return reply

    def search(self, query: QueryInput = None, *, declare: Callable[[Query], Any] | None = None) -> Any:
        """Run a search and return the raw reply with document ids un-prefixed.

        ``query`` may be a Query, a raw query string, or a callable that
        declares predicates on a fresh Query. ``declare`` is the keyword form
        of the latter.
        """
        return self._execute(self._coerce_query(query, declare))

    def search_documents(
        self, query: QueryInput = None, *, declare: Callable[[Query], Any] | None = None
    ) -> SearchResult:
        """Run a search and parse the reply into documents."""
        built = self._coerce_query(query, declare)
        return parse_search_reply(self._execute(built), built.reply_layout())

    # -- pass-through operations ----------------------------------------

    def info(self) -> dict[str, Any]:
        return self._commands.ft_info(self.name)

    def drop(self, *, delete_documents: bool = False) -> Any:
        reply = self._commands.ft_dropindex(self.name, delete_documents=delete_documents)
        logger.info("Dropped index %s (delete_documents=%s)", self.name, delete_documents)
        return reply

    def aggregate(self, query: Query | str, *args: Any) -> Any:
        return self._commands.ft_aggregate(self.name, query, *args)

    def explain(self, query: Query | str) -> Any:
        return self._commands.ft_explain(self.name, query)

    def alter(self, *args: Any) -> Any:
        return self._commands.ft_alter(self.name, *args)

    def add_field(self, field: SchemaField) -> Any:
        """Add a field to the live index and to this handle's schema."""
        if field.name in self._schema:
            raise SearchValidationError(f"Field '{field.name}' already exists in index {self.name}")
        reply = self._commands.ft_alter(self.name, "SCHEMA", "ADD", *field.to_args())
        self._schema = Schema(fields=(*self._schema.fields, field))
        return reply

    def spellcheck(self, query: Query | str, *args: Any) -> Any:
        return self._commands.ft_spellcheck(self.name, query, *args)

    def synupdate(self, group_id: str, *terms: str) -> Any:
        return self._commands.ft_synupdate(self.name, group_id, *terms)

    def syndump(self) -> Any:
        return self._commands.ft_syndump(self.name)

    def tagvals(self, field_name: str) -> Any:
        return self._commands.ft_tagvals(self.name, field_name)

    def profile(self, *args: Any) -> Any:
        return self._commands.ft_profile(self.name, *args)

    def __repr__(self) -> str:
        return f"Index(name={self.name!r}, storage_type={self.storage_type.value}, prefix={self.prefix!r})"
