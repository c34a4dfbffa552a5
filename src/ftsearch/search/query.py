"""Query builder for ``FT.SEARCH``.

A Query owns a predicate tree plus a flat set of search options and renders
both into one ordered argument list. Predicates can be attached in two ways:

Functional, by passing pre-built expressions::

    Query().where(or_(text("title").match("Hello*"), tag("category").eq("farewell")))

Scoped, through nested ``and_()`` / ``or_()`` blocks whose field helpers
attach to the innermost open group::

    query = Query()
    with query.or_():
        with query.and_():
            query.text("title").match("Hello*")
            query.tag("category").eq("tech")
        query.tag("category").eq("farewell")

A Query is built and serialized by one caller; it is not meant to be shared
between threads while groups are open.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass, field
from typing import Any

from ftsearch.errors import InvalidQueryError
from ftsearch.search.predicates import (
    Expression,
    GroupKind,
    NumericAccessor,
    PredicateCollection,
    TagAccessor,
    TextAccessor,
)


SORT_ORDERS = ("ASC", "DESC")


@dataclass
class _OpenGroup:
    """Group that is still receiving predicates on the construction stack."""

    kind: GroupKind
    children: list[Expression] = field(default_factory=list)

    def freeze(self) -> PredicateCollection:
        return PredicateCollection(self.kind, tuple(self.children))


@dataclass(frozen=True)
class SummarizeOptions:
    fields: tuple[str, ...] = ()
    frags: int = 3
    length: int = 20
    separator: str = "..."

    def to_args(self) -> list[Any]:
        args: list[Any] = ["SUMMARIZE"]
        if self.fields:
            args += ["FIELDS", len(self.fields), *self.fields]
        args += ["FRAGS", self.frags, "LEN", self.length, "SEPARATOR", self.separator]
        return args


@dataclass(frozen=True)
class HighlightOptions:
    fields: tuple[str, ...] = ()
    tags: tuple[str, str] = ("<b>", "</b>")

    def to_args(self) -> list[Any]:
        args: list[Any] = ["HIGHLIGHT"]
        if self.fields:
            args += ["FIELDS", len(self.fields), *self.fields]
        args += ["TAGS", self.tags[0], self.tags[1]]
        return args


@dataclass(frozen=True)
class KnnClause:
    k: int
    field: str
    param: str

    def render(self) -> str:
        return f"=>[KNN {self.k} @{self.field} ${self.param}]"


@dataclass(frozen=True)
class ReplyLayout:
    """Flags that decide the stride of a search reply."""

    with_scores: bool = False
    with_payloads: bool = False
    no_content: bool = False

    @property
    def stride(self) -> int:
        return 1 + int(self.with_scores) + int(self.with_payloads) + int(not self.no_content)


def _field_names(fields: Sequence[Any] | str | None) -> tuple[str, ...]:
    if fields is None:
        return ()
    if isinstance(fields, str):
        return (fields,)
    return tuple(str(f) for f in fields)


class Query:
    """Mutable search request: predicate tree, base literal and options."""

    def __init__(self, base: str | None = None) -> None:
        self._base = base
        self._stack: list[_OpenGroup] = [_OpenGroup(GroupKind.AND)]
        self._filters: list[tuple[str, Any, Any]] = []
        self._paging: tuple[int, int] | None = None
        self._sort: tuple[str, str] | None = None
        self._return_fields: tuple[str, ...] = ()
        self._summarize: SummarizeOptions | None = None
        self._highlight: HighlightOptions | None = None
        self._language: str | None = None
        self._slop: int | None = None
        self._verbatim = False
        self._no_stopwords = False
        self._with_scores = False
        self._with_payloads = False
        self._no_content = False
        self._in_order = False
        self._params: dict[str, Any] = {}
        self._dialect: int | None = None
        self._knn: KnnClause | None = None

    @classmethod
    def build(cls, declare: Callable[[Query], Any], base: str | None = None) -> Query:
        """Create a query and run ``declare`` against it."""
        query = cls(base)
        declare(query)
        return query

    # -- predicate tree -------------------------------------------------

    @property
    def base(self) -> str | None:
        return self._base

    @property
    def depth(self) -> int:
        """Number of groups on the construction stack (1 when none is open)."""
        return len(self._stack)

    @property
    def current_group(self) -> _OpenGroup:
        return self._stack[-1]

    @property
    def root(self) -> PredicateCollection:
        return self._stack[0].freeze()

    def add_predicate(self, predicate: Expression) -> Query:
        """Attach a predicate or group to the innermost open group; empty groups are skipped."""
        if isinstance(predicate, PredicateCollection) and not predicate:
            return self
        self._stack[-1].children.append(predicate)
        return self

    def where(self, *expressions: Expression) -> Query:
        for expression in expressions:
            self.add_predicate(expression)
        return self

    @contextmanager
    def _group(self, kind: GroupKind) -> Iterator[Query]:
        group = _OpenGroup(kind)
        self._stack.append(group)
        try:
            yield self
        finally:
            self._stack.pop()
        # Only reached when the block completed; a failed block leaves no trace.
        if group.children:
            self.add_predicate(group.freeze())

    def and_(self) -> AbstractContextManager[Query]:
        """Open a nested AND group for the duration of a ``with`` block."""
        return self._group(GroupKind.AND)

    def or_(self) -> AbstractContextManager[Query]:
        """Open a nested OR group for the duration of a ``with`` block."""
        return self._group(GroupKind.OR)

    def tag(self, field_name: str) -> TagAccessor:
        return TagAccessor(field_name, self)

    def text(self, field_name: str) -> TextAccessor:
        return TextAccessor(field_name, self)

    def numeric(self, field_name: str) -> NumericAccessor:
        return NumericAccessor(field_name, self)

    # -- options --------------------------------------------------------

    def filter(self, field_name: str, minimum: Any, maximum: Any = None) -> Query:
        """Add a numeric FILTER; ``maximum`` defaults to ``minimum``."""
        if maximum is None:
            maximum = minimum
        self._filters.append((str(field_name), minimum, maximum))
        return self

    def paging(self, offset: int, limit: int) -> Query:
        if offset < 0 or limit < 0:
            raise InvalidQueryError(f"Paging offset and limit must be non-negative, got {offset}, {limit}")
        self._paging = (offset, limit)
        return self

    def sort_by(self, field_name: str, order: str = "asc") -> Query:
        direction = str(order).upper()
        if direction not in SORT_ORDERS:
            raise InvalidQueryError(f"Sort order must be one of {', '.join(SORT_ORDERS)}, got {order!r}")
        self._sort = (str(field_name), direction)
        return self

    def return_fields(self, *fields: str) -> Query:
        self._return_fields = _field_names(fields)
        return self

    def summarize(
        self,
        fields: Sequence[str] | str | None = None,
        separator: str = "...",
        length: int = 20,
        frags: int = 3,
    ) -> Query:
        self._summarize = SummarizeOptions(_field_names(fields), frags, length, separator)
        return self

    def highlight(self, fields: Sequence[str] | str | None = None, tags: Sequence[str] = ("<b>", "</b>")) -> Query:
        if len(tags) != 2:
            raise InvalidQueryError(f"Highlight tags must be an (open, close) pair, got {tags!r}")
        self._highlight = HighlightOptions(_field_names(fields), (tags[0], tags[1]))
        return self

    def language(self, language: str) -> Query:
        self._language = str(language)
        return self

    def slop(self, value: int) -> Query:
        self._slop = value
        return self

    def verbatim(self) -> Query:
        self._verbatim = True
        return self

    def no_stopwords(self) -> Query:
        self._no_stopwords = True
        return self

    def with_scores(self) -> Query:
        self._with_scores = True
        return self

    def with_payloads(self) -> Query:
        self._with_payloads = True
        return self

    def no_content(self) -> Query:
        self._no_content = True
        return self

    def in_order(self) -> Query:
        self._in_order = True
        return self

    def params(self, **values: Any) -> Query:
        """Bind query parameters referenced as ``$name`` in the query string."""
        self._params.update(values)
        return self

    def dialect(self, version: int) -> Query:
        self._dialect = version
        return self

    def knn(self, k: int, field_name: str, vector: bytes, param: str = "query_vector") -> Query:
        """Append a KNN vector clause and bind ``vector`` as ``$param``."""
        if k <= 0:
            raise InvalidQueryError(f"KNN requires a positive k, got {k}")
        self._knn = KnnClause(k, str(field_name), param)
        self._params[param] = vector
        return self

    # -- serialization --------------------------------------------------

    def reply_layout(self) -> ReplyLayout:
        return ReplyLayout(self._with_scores, self._with_payloads, self._no_content)

    def query_string(self) -> str:
        """The literal base (or ``*``) when no predicates were added, else the rendered tree."""
        root = self.root
        query = root.render() if root else (self._base or "*")
        if self._knn is not None:
            query += self._knn.render()
        return query

    def to_args(self, default_dialect: int | None = None) -> list[Any]:
        """Serialize to the ``FT.SEARCH`` arguments that follow the index name.

        ``default_dialect`` applies when no dialect was set explicitly; a KNN
        clause without either falls back to dialect 2.
        """
        args: list[Any] = [self.query_string()]

        if self._no_content:
            args.append("NOCONTENT")
        if self._verbatim:
            args.append("VERBATIM")
        if self._no_stopwords:
            args.append("NOSTOPWORDS")
        if self._with_scores:
            args.append("WITHSCORES")
        if self._with_payloads:
            args.append("WITHPAYLOADS")

        for field_name, minimum, maximum in self._filters:
            args += ["FILTER", field_name, minimum, maximum]

        if self._return_fields:
            args += ["RETURN", len(self._return_fields), *self._return_fields]
        if self._summarize is not None:
            args += self._summarize.to_args()
        if self._highlight is not None:
            args += self._highlight.to_args()

        if self._slop is not None:
            args += ["SLOP", self._slop]
        if self._language is not None:
            args += ["LANGUAGE", self._language]
        if self._in_order:
            args.append("INORDER")
        if self._sort is not None:
            args += ["SORTBY", *self._sort]
        if self._paging is not None:
            args += ["LIMIT", *self._paging]

        if self._params:
            args += ["PARAMS", len(self._params) * 2]
            for name, value in self._params.items():
                args += [name, value]
        dialect = self._dialect if self._dialect is not None else default_dialect
        if dialect is None and self._knn is not None:
            dialect = 2
        if dialect is not None:
            args += ["DIALECT", dialect]
        return args

    def __repr__(self) -> str:
        return f"Query({self.query_string()!r})"
