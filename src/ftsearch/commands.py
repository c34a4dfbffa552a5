"""Thin wrappers over the ``FT.*`` command family.

Each method builds the argument array for one server command and returns the
raw reply. Search requests are always serialized by ``Query.to_args`` so the
clause ordering lives in exactly one place.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from ftsearch.channel import CommandChannel, CommandExecutor
from ftsearch.errors import InvalidQueryError, InvalidSchemaError
from ftsearch.search.query import Query
from ftsearch.search.results import pairs_to_dict
from ftsearch.search.schema import Schema


if TYPE_CHECKING:
    from ftsearch.search.index import Index, StorageType


def _query_string(query: Query | str) -> str:
    if isinstance(query, Query):
        return query.query_string()
    if isinstance(query, str):
        return query
    raise InvalidQueryError(f"Invalid query: expected a Query or string, got {type(query).__name__}")


class SearchCommands(CommandExecutor):
    """Search-module commands bound to one command channel."""

    def __init__(
        self,
        channel: CommandChannel,
        *,
        default_storage_type: StorageType | str = "HASH",
        default_dialect: int | None = None,
    ) -> None:
        super().__init__(channel)
        self.default_storage_type = default_storage_type
        self.default_dialect = default_dialect

    # -- index lifecycle ------------------------------------------------

    def ft_create(
        self,
        index_name: str,
        schema: Schema,
        storage_type: StorageType | str = "HASH",
        *,
        prefix: str | None = None,
        stopwords: Iterable[str] | None = None,
    ) -> Any:
        """``FT.CREATE name ON type [PREFIX 1 prefix:] [STOPWORDS n ...] SCHEMA ...``"""
        if not isinstance(schema, Schema):
            raise InvalidSchemaError(f"schema must be a Schema object, got {type(schema).__name__}")

        storage = getattr(storage_type, "value", storage_type)
        args: list[Any] = [index_name, "ON", str(storage).upper()]
        if prefix:
            args += ["PREFIX", 1, f"{prefix}:"]
        if stopwords is not None:
            words = list(stopwords)
            args += ["STOPWORDS", len(words), *words]
        args += schema.to_args()
        return self.call("FT.CREATE", *args, index=index_name)

    def create_index(
        self,
        name: str,
        schema: Schema,
        storage_type: StorageType | str | None = None,
        *,
        prefix: str | None = None,
        stopwords: Iterable[str] | None = None,
    ) -> Index:
        """Create an index on the server and return a handle bound to it."""
        from ftsearch.search.index import Index

        return Index.create(
            self,
            name,
            schema,
            storage_type or self.default_storage_type,
            prefix=prefix,
            stopwords=stopwords,
        )

    def ft_info(self, index_name: str) -> dict[str, Any]:
        return pairs_to_dict(self.call("FT.INFO", index_name, index=index_name))

    def ft_dropindex(self, index_name: str, *, delete_documents: bool = False) -> Any:
        args: list[Any] = ["FT.DROPINDEX", index_name]
        if delete_documents:
            args.append("DD")
        return self.call(*args, index=index_name)

    def ft_alter(self, index_name: str, *args: Any) -> Any:
        return self.call("FT.ALTER", index_name, *args, index=index_name)

    def ft_list(self) -> Any:
        return self.call("FT._LIST")

    # -- querying -------------------------------------------------------

    def ft_search(self, index_name: str, query: Query | str) -> Any:
        if isinstance(query, str):
            query = Query(query)
        if not isinstance(query, Query):
            raise InvalidQueryError(f"Invalid query: expected a Query or string, got {type(query).__name__}")
        return self.call("FT.SEARCH", index_name, *query.to_args(self.default_dialect), index=index_name)

    def ft_aggregate(self, index_name: str, query: Query | str, *args: Any) -> Any:
        return self.call("FT.AGGREGATE", index_name, _query_string(query), *args, index=index_name)

    def ft_explain(self, index_name: str, query: Query | str) -> Any:
        return self.call("FT.EXPLAIN", index_name, _query_string(query), index=index_name)

    def ft_profile(self, index_name: str, *args: Any) -> Any:
        return self.call("FT.PROFILE", index_name, *args, index=index_name)

    def ft_cursor_read(self, index_name: str, cursor_id: int, *, count: int | None = None) -> Any:
        args: list[Any] = ["FT.CURSOR", "READ", index_name, cursor_id]
        if count is not None:
            args += ["COUNT", count]
        return self.call(*args, index=index_name)

    def ft_cursor_del(self, index_name: str, cursor_id: int) -> Any:
        return self.call("FT.CURSOR", "DEL", index_name, cursor_id, index=index_name)

    def ft_spellcheck(self, index_name: str, query: Query | str, *args: Any) -> Any:
        return self.call("FT.SPELLCHECK", index_name, _query_string(query), *args, index=index_name)

    # -- synonyms, tags and aliases ---------------------------------------

    def ft_synupdate(self, index_name: str, group_id: str, *terms: str) -> Any:
        return self.call("FT.SYNUPDATE", index_name, group_id, *terms, index=index_name)

    def ft_syndump(self, index_name: str) -> Any:
        return self.call("FT.SYNDUMP", index_name, index=index_name)

    def ft_tagvals(self, index_name: str, field_name: str) -> Any:
        return self.call("FT.TAGVALS", index_name, field_name, index=index_name)

    def ft_aliasadd(self, alias_name: str, index_name: str) -> Any:
        return self.call("FT.ALIASADD", alias_name, index_name, index=index_name)

    def ft_aliasupdate(self, alias_name: str, index_name: str) -> Any:
        return self.call("FT.ALIASUPDATE", alias_name, index_name, index=index_name)

    def ft_aliasdel(self, alias_name: str) -> Any:
        return self.call("FT.ALIASDEL", alias_name)

    # -- suggestions ----------------------------------------------------

    def ft_sugadd(self, key: str, string: str, score: float, *, incr: bool = False, payload: str | None = None) -> Any:
        args: list[Any] = ["FT.SUGADD", key, string, score]
        if incr:
            args.append("INCR")
        if payload is not None:
            args += ["PAYLOAD", payload]
        return self.call(*args)

    def ft_sugget(
        self,
        key: str,
        prefix: str,
        *,
        fuzzy: bool = False,
        with_scores: bool = False,
        with_payloads: bool = False,
        max_results: int | None = None,
    ) -> Any:
        args: list[Any] = ["FT.SUGGET", key, prefix]
        if fuzzy:
            args.append("FUZZY")
        if with_scores:
            args.append("WITHSCORES")
        if with_payloads:
            args.append("WITHPAYLOADS")
        if max_results is not None:
            args += ["MAX", max_results]
        return self.call(*args)

    def ft_sugdel(self, key: str, string: str) -> Any:
        return self.call("FT.SUGDEL", key, string)

    def ft_suglen(self, key: str) -> Any:
        return self.call("FT.SUGLEN", key)
