"""
Schema definition for search indexes.

Describes the typed attributes of an index and renders them into the
``SCHEMA`` clause of ``FT.CREATE``. Supported field kinds:
- TextField: Full-text fields with optional weight and phonetic matching
- TagField: Exact-match tag fields (categories, ids, flags)
- NumericField: Numeric fields for range filters and sorting
- GeoField: Longitude/latitude fields
- VectorField: Embedding fields searchable with KNN queries

Every field kind lists its options explicitly, so an unknown option is a
declaration error raised while the schema is being built, never at search time.

Example:
    schema = (
        SchemaDefinition()
        .text_field("title", weight=5.0)
        .tag_field("category")
        .numeric_field("price", sortable=True)
        .build()
    )
    schema.to_args()  # ["SCHEMA", "title", "TEXT", "WEIGHT", "5.0", ...]
"""

from __future__ import annotations

from abc import ABC
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, ClassVar

from ftsearch.errors import SchemaDeclarationError


PHONETIC_MATCHERS = ("dm:en", "dm:fr", "dm:pt", "dm:es")


class FieldType(str, Enum):
    """Types of fields supported in the schema."""

    TEXT = "text"
    TAG = "tag"
    NUMERIC = "numeric"
    GEO = "geo"
    VECTOR = "vector"


class VectorAlgorithm(str, Enum):
    """Indexing algorithms for vector fields."""

    FLAT = "FLAT"
    HNSW = "HNSW"


REQUIRED_VECTOR_ATTRIBUTES = ("TYPE", "DIM", "DISTANCE_METRIC")
OPTIONAL_VECTOR_ATTRIBUTES: dict[VectorAlgorithm, frozenset[str]] = {
    VectorAlgorithm.FLAT: frozenset({"INITIAL_CAP", "BLOCK_SIZE"}),
    VectorAlgorithm.HNSW: frozenset({"INITIAL_CAP", "M", "EF_CONSTRUCTION", "EF_RUNTIME", "EPSILON"}),
}
VECTOR_TYPES = frozenset({"FLOAT32", "FLOAT64", "FLOAT16", "BFLOAT16"})
DISTANCE_METRICS = frozenset({"L2", "IP", "COSINE"})


def option(default: Any = None) -> Any:
    """Declare a dataclass attribute that is rendered as a wire option."""
    return field(default=default, metadata={"option": True})


def option_flag(name: str) -> str:
    """Wire flag for an option name: ``no_index`` -> ``NOINDEX``."""
    return name.replace("_", "").upper()


@dataclass(frozen=True)
class SchemaField(ABC):
    """Base class for all schema fields."""

    field_type: ClassVar[FieldType]

    name: str
    alias: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str):
            object.__setattr__(self, "name", str(self.name))
        if not self.name:
            raise SchemaDeclarationError("Field name must not be empty")

    @classmethod
    def option_names(cls) -> frozenset[str]:
        """Names accepted as keyword options when declaring this field."""
        return frozenset(f.name for f in fields(cls) if f.name != "name")

    @classmethod
    def declare(cls, name: str, **options: Any) -> SchemaField:
        """Build a field from keyword options, accepting ``as`` for ``alias``.

        Unknown options raise SchemaDeclarationError. Calling the class
        directly with an unknown keyword raises a plain TypeError instead.
        """
        if "as" in options:
            options["alias"] = options.pop("as")
        invalid = sorted(set(options) - cls.option_names())
        if invalid:
            raise SchemaDeclarationError(f"Invalid options for {cls.field_type.value} field: {', '.join(invalid)}")
        return cls(name=name, **options)

    def options(self) -> list[tuple[str, Any]]:
        """Wire options in declaration order."""
        return [(f.name, getattr(self, f.name)) for f in fields(self) if f.metadata.get("option")]

    def to_args(self) -> list[str]:
        """Render the field clause: ``name [AS alias] KIND [FLAG [value]]...``."""
        args = [self.name]
        if self.alias:
            args += ["AS", self.alias]
        args.append(self.field_type.value.upper())
        for key, value in self.options():
            if value is None or value is False:
                continue
            if value is True:
                args.append(option_flag(key))
            else:
                args += [option_flag(key), str(value)]
        return args


@dataclass(frozen=True)
class TextField(SchemaField):
    """
    Full-text field.

    Args:
        name: Field name (e.g., "title", "body")
        alias: Attribute name used in queries instead of ``name``
        weight: Relevance weight of matches in this field
        sortable: Keep a sortable copy of the value
        no_index: Store the value without indexing it
        phonetic: Phonetic matcher, one of ``PHONETIC_MATCHERS``
    """

    field_type: ClassVar[FieldType] = FieldType.TEXT

    weight: float | None = option()
    sortable: bool = option(False)
    no_index: bool = option(False)
    phonetic: str | None = None

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.phonetic is not None and self.phonetic not in PHONETIC_MATCHERS:
            raise SchemaDeclarationError(
                f"Invalid phonetic matcher {self.phonetic!r}. Supported matchers are: {', '.join(PHONETIC_MATCHERS)}"
            )

    def to_args(self) -> list[str]:
        args = super().to_args()
        if self.phonetic:
            args += ["PHONETIC", self.phonetic]
        return args


@dataclass(frozen=True)
class TagField(SchemaField):
    """Exact-match tag field; ``separator`` splits multi-valued tags."""

    field_type: ClassVar[FieldType] = FieldType.TAG

    separator: str | None = option()
    case_sensitive: bool = option(False)
    sortable: bool = option(False)
    no_index: bool = option(False)


@dataclass(frozen=True)
class NumericField(SchemaField):
    """Numeric field for range filters and sorting."""

    field_type: ClassVar[FieldType] = FieldType.NUMERIC

    sortable: bool = option(False)
    no_index: bool = option(False)


@dataclass(frozen=True)
class GeoField(SchemaField):
    field_type: ClassVar[FieldType] = FieldType.GEO

    sortable: bool = option(False)
    no_index: bool = option(False)


@dataclass(frozen=True)
class VectorField(SchemaField):
    """
    Vector field searchable with KNN queries.

    Attributes are kept as an ordered tuple of ``(KEY, value)`` pairs with
    upper-cased keys. ``TYPE``, ``DIM`` and ``DISTANCE_METRIC`` are required;
    any other key must be valid for the chosen algorithm.

    Example:
        VectorField("embedding", algorithm="hnsw", attributes={"type": "float32", "dim": 384, "distance_metric": "cosine"})
    """

    field_type: ClassVar[FieldType] = FieldType.VECTOR

    algorithm: VectorAlgorithm | None = None
    attributes: tuple[tuple[str, str], ...] = ()

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.algorithm is None:
            raise SchemaDeclarationError(f"Vector field '{self.name}' requires an algorithm")
        try:
            algorithm = VectorAlgorithm(str(getattr(self.algorithm, "value", self.algorithm)).upper())
        except ValueError as exc:
            supported = ", ".join(a.value for a in VectorAlgorithm)
            raise SchemaDeclarationError(
                f"Invalid vector algorithm {self.algorithm!r}. Supported algorithms are: {supported}"
            ) from exc
        object.__setattr__(self, "algorithm", algorithm)

        items = self.attributes.items() if isinstance(self.attributes, Mapping) else self.attributes
        attributes = tuple((str(key).upper(), self._normalize(str(key).upper(), value)) for key, value in items)
        object.__setattr__(self, "attributes", attributes)
        self._validate_attributes()

    @staticmethod
    def _normalize(key: str, value: Any) -> str:
        text = str(getattr(value, "value", value))
        if key in ("TYPE", "DISTANCE_METRIC"):
            return text.upper()
        return text

    def _validate_attributes(self) -> None:
        keys = [key for key, _ in self.attributes]
        duplicates = sorted({key for key in keys if keys.count(key) > 1})
        if duplicates:
            raise SchemaDeclarationError(f"Duplicate vector attributes for '{self.name}': {', '.join(duplicates)}")

        missing = [key for key in REQUIRED_VECTOR_ATTRIBUTES if key not in keys]
        if missing:
            raise SchemaDeclarationError(f"Vector field '{self.name}' is missing attributes: {', '.join(missing)}")

        allowed = set(REQUIRED_VECTOR_ATTRIBUTES) | OPTIONAL_VECTOR_ATTRIBUTES[self.algorithm]
        unknown = [key for key in keys if key not in allowed]
        if unknown:
            raise SchemaDeclarationError(
                f"Invalid attributes for {self.algorithm.value} vector field '{self.name}': {', '.join(unknown)}"
            )

        values = dict(self.attributes)
        if values["TYPE"] not in VECTOR_TYPES:
            raise SchemaDeclarationError(f"Invalid vector type {values['TYPE']!r} for field '{self.name}'")
        if values["DISTANCE_METRIC"] not in DISTANCE_METRICS:
            raise SchemaDeclarationError(
                f"Invalid distance metric {values['DISTANCE_METRIC']!r} for field '{self.name}'"
            )
        if not values["DIM"].isdigit() or int(values["DIM"]) <= 0:
            raise SchemaDeclarationError(f"Vector dimension must be a positive integer, got {values['DIM']!r}")

    def to_args(self) -> list[str | int]:
        self._validate_attributes()
        args: list[str | int] = [self.name]
        if self.alias:
            args += ["AS", self.alias]
        args += ["VECTOR", self.algorithm.value, len(self.attributes) * 2]
        for key, value in self.attributes:
            args += [key, value]
        return args


@dataclass(frozen=True)
class Schema:
    """
    Ordered, immutable collection of fields for one index.

    Field names are unique. Build one directly from field objects or through
    ``SchemaDefinition`` / ``Schema.build``.
    """

    fields: tuple[SchemaField, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", tuple(self.fields))
        field_map: dict[str, SchemaField] = {}
        for item in self.fields:
            if not isinstance(item, SchemaField):
                raise SchemaDeclarationError(f"Schema fields must be SchemaField instances, got {item!r}")
            if item.name in field_map:
                raise SchemaDeclarationError(f"Duplicate field '{item.name}' in schema")
            field_map[item.name] = item
        object.__setattr__(self, "_field_map", field_map)

    @classmethod
    def build(cls, declare: Callable[[SchemaDefinition], Any]) -> Schema:
        """Run ``declare`` against a fresh definition and return the schema."""
        definition = SchemaDefinition()
        declare(definition)
        return definition.build()

    def field(self, name: str) -> SchemaField | None:
        """Get field by name, or None if the schema has no such field."""
        return self._field_map.get(str(name))

    def __getitem__(self, name: str) -> SchemaField:
        return self._field_map[name]

    def __contains__(self, name: object) -> bool:
        return name in self._field_map

    def __iter__(self) -> Iterator[SchemaField]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    @property
    def numeric_fields(self) -> list[NumericField]:
        return [f for f in self.fields if isinstance(f, NumericField)]

    def to_args(self) -> list[str | int]:
        """Render the full ``SCHEMA`` clause in declaration order."""
        args: list[str | int] = ["SCHEMA"]
        for item in self.fields:
            args += item.to_args()
        return args


class SchemaDefinition:
    """Mutable accumulator used while declaring a schema.

    Each ``*_field`` method checks its keyword options against the options the
    field kind declares and raises SchemaDeclarationError on anything else.
    ``as`` is accepted as a synonym of ``alias``.
    """

    def __init__(self) -> None:
        self._fields: list[SchemaField] = []

    @property
    def fields(self) -> tuple[SchemaField, ...]:
        return tuple(self._fields)

    def text_field(self, name: str, **options: Any) -> SchemaDefinition:
        return self._declare(TextField, name, options)

    def tag_field(self, name: str, **options: Any) -> SchemaDefinition:
        return self._declare(TagField, name, options)

    def numeric_field(self, name: str, **options: Any) -> SchemaDefinition:
        return self._declare(NumericField, name, options)

    def geo_field(self, name: str, **options: Any) -> SchemaDefinition:
        return self._declare(GeoField, name, options)

    def vector_field(self, name: str, algorithm: VectorAlgorithm | str, **attributes: Any) -> SchemaDefinition:
        """Declare a vector field; keyword arguments become vector attributes."""
        as_name = attributes.pop("as", None)
        alias = attributes.pop("alias", None)
        self._fields.append(
            VectorField(name=name, alias=as_name or alias, algorithm=algorithm, attributes=attributes)
        )
        return self

    def _declare(self, field_cls: type[SchemaField], name: str, options: dict[str, Any]) -> SchemaDefinition:
        self._fields.append(field_cls.declare(name, **options))
        return self

    def build(self) -> Schema:
        return Schema(fields=tuple(self._fields))
