"""Predicate tree for structured search queries.

Leaf predicates render to a single parenthesised fragment of the query
language; ``PredicateCollection`` combines them (and nested collections)
under AND / OR. Rendering is structural, each group adds exactly one pair
of parentheses around its children:

    and_(tag("category").eq("tech"), text("title").match("Hello*")).render()
    # "((@category:{tech}) (@title:Hello*))"
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol, Union


class GroupKind(str, Enum):
    """Boolean operator of a predicate collection."""

    AND = "and"
    OR = "or"

    @property
    def joiner(self) -> str:
        return " | " if self is GroupKind.OR else " "


@dataclass(frozen=True)
class Predicate(ABC):
    """A single condition on one field."""

    field: str

    @abstractmethod
    def render(self) -> str:
        """Return the query-language fragment for this predicate."""

    def __str__(self) -> str:
        return self.render()


@dataclass(frozen=True)
class TagEqualityPredicate(Predicate):
    value: str

    def render(self) -> str:
        return f"(@{self.field}:{{{self.value}}})"


@dataclass(frozen=True)
class TextMatchPredicate(Predicate):
    pattern: str

    def render(self) -> str:
        return f"(@{self.field}:{self.pattern})"


@dataclass(frozen=True)
class RangePredicate(Predicate):
    """Numeric range; bounds are inclusive unless prefixed with ``(``."""

    minimum: Any
    maximum: Any

    def render(self) -> str:
        return f"(@{self.field}:[{self.minimum} {self.maximum}])"


@dataclass(frozen=True)
class PredicateCollection:
    """Immutable AND / OR group of predicates and nested groups."""

    kind: GroupKind
    predicates: tuple[Expression, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", GroupKind(self.kind))
        # Empty nested groups are dropped; a group never renders "()".
        children = tuple(p for p in self.predicates if not (isinstance(p, PredicateCollection) and not p))
        object.__setattr__(self, "predicates", children)

    def __bool__(self) -> bool:
        return bool(self.predicates)

    def __len__(self) -> int:
        return len(self.predicates)

    def render(self) -> str:
        return "(" + self.kind.joiner.join(p.render() for p in self.predicates) + ")"

    def __str__(self) -> str:
        return self.render()


Expression = Union[Predicate, PredicateCollection]


def and_(*expressions: Expression) -> PredicateCollection:
    """Group expressions so that all of them must match."""
    return PredicateCollection(GroupKind.AND, expressions)


def or_(*expressions: Expression) -> PredicateCollection:
    """Group expressions so that any of them may match."""
    return PredicateCollection(GroupKind.OR, expressions)


class PredicateSink(Protocol):
    """Receiver that collects predicates as they are created."""

    def add_predicate(self, predicate: Expression) -> Any: ...  # pragma: no cover - Protocol only


class _FieldAccessor:
    """Field-typed predicate factory.

    Unbound accessors just return the predicate. Accessors created by a query
    builder also attach it to the builder's current group.
    """

    def __init__(self, field: str, sink: PredicateSink | None = None) -> None:
        self.field = str(field)
        self._sink = sink

    def _emit(self, predicate: Predicate) -> Predicate:
        if self._sink is not None:
            self._sink.add_predicate(predicate)
        return predicate


class TagAccessor(_FieldAccessor):
    def eq(self, value: Any) -> Predicate:
        return self._emit(TagEqualityPredicate(self.field, str(value)))


class TextAccessor(_FieldAccessor):
    def match(self, pattern: str) -> Predicate:
        return self._emit(TextMatchPredicate(self.field, pattern))


class NumericAccessor(_FieldAccessor):
    """Range helpers; ``gt``/``lt`` are exclusive, ``ge``/``le`` inclusive."""

    def gt(self, value: Any) -> Predicate:
        return self._emit(RangePredicate(self.field, f"({value}", "+inf"))

    def ge(self, value: Any) -> Predicate:
        return self._emit(RangePredicate(self.field, value, "+inf"))

    def lt(self, value: Any) -> Predicate:
        return self._emit(RangePredicate(self.field, "-inf", f"({value}"))

    def le(self, value: Any) -> Predicate:
        return self._emit(RangePredicate(self.field, "-inf", value))

    def between(self, minimum: Any, maximum: Any) -> Predicate:
        return self._emit(RangePredicate(self.field, minimum, maximum))

    def eq(self, value: Any) -> Predicate:
        return self._emit(RangePredicate(self.field, value, value))


def tag(field: str) -> TagAccessor:
    return TagAccessor(field)


def text(field: str) -> TextAccessor:
    return TextAccessor(field)


def numeric(field: str) -> NumericAccessor:
    return NumericAccessor(field)
