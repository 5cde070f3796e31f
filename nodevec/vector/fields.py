"""Declarative field model for pgvector tables.

A table is described by an ordered list of field declarations. Compiling the
list resolves every declaration to a physical column, checks the list for
duplicates and missing dimensions, and gives the schema, persistence and
retrieval code a single source for column names and types.

Column naming:
    id                      -> id
    chunk                   -> chunk
    vector "Combined"       -> vector_combined
    metadata "source-url"   -> meta_source_url
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from nodevec.db.errors import ConfigError, QueryError

ID_COLUMN = "id"
CHUNK_COLUMN = "chunk"
VECTOR_PREFIX = "vector_"
METADATA_PREFIX = "meta_"

# PostgreSQL truncates identifiers longer than this
MAX_IDENTIFIER_LENGTH = 63

_NON_ALNUM = re.compile(r"[^a-z0-9]")


class EmbeddedField(str, Enum):
    """Well-known embedding spaces a node can carry."""

    COMBINED = "combined"
    CHUNK = "chunk"

    @staticmethod
    def metadata(name: str) -> str:
        """Name of an embedding computed from a single metadata value."""
        return f"metadata_{name}"


class IdentityField(BaseModel):
    """Primary key column holding the node identifier."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["id"] = "id"


class ContentField(BaseModel):
    """Column holding the raw chunk text."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["chunk"] = "chunk"


class VectorField(BaseModel):
    """One embedding column.

    ``dimension`` falls back to the store-level vector size when omitted.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["vector"] = "vector"
    name: str = Field(..., description="Logical embedding name, e.g. 'combined'")
    dimension: int | None = Field(default=None, description="Fixed vector length")


class MetadataField(BaseModel):
    """One JSONB column holding a single metadata key."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["metadata"] = "metadata"
    key: str = Field(..., description="Metadata key as set on nodes")


FieldConfig = Annotated[
    IdentityField | ContentField | VectorField | MetadataField,
    Field(discriminator="kind"),
]


def default_fields() -> list[FieldConfig]:
    """Fields every table has when nothing else is declared."""
    return [IdentityField(), ContentField()]


def normalize_field_name(name: str) -> str:
    """Turn a logical field name into a column-safe fragment.

    Lower-cases the name and replaces every character outside ``[a-z0-9]``
    with an underscore.
    """
    if not name:
        raise ConfigError("Field name must not be empty")
    return _NON_ALNUM.sub("_", name.lower())


@dataclass(frozen=True)
class VectorColumn:
    name: str
    column: str
    dimension: int


@dataclass(frozen=True)
class MetadataColumn:
    key: str
    column: str


@dataclass(frozen=True)
class Column:
    """A resolved physical column."""

    name: str
    sql_type: str
    field: IdentityField | ContentField | VectorField | MetadataField


@dataclass(frozen=True)
class FieldModel:
    """Validated, resolved view of a field list.

    Build with :meth:`compile`; instances are immutable.
    """

    columns: tuple[Column, ...]
    vector_columns: tuple[VectorColumn, ...]
    metadata_columns: tuple[MetadataColumn, ...]

    @classmethod
    def compile(
        cls,
        fields: list[FieldConfig] | tuple[FieldConfig, ...] | None = None,
        vector_size: int | None = None,
    ) -> "FieldModel":
        """Validate declarations and resolve their columns.

        Args:
            fields: Ordered field declarations. Empty means id + chunk.
            vector_size: Default dimension for vector fields without one.

        Raises:
            ConfigError: On duplicate identity/content fields, colliding
                column names, or a vector field without a usable dimension.
        """
        declared = list(fields) if fields else default_fields()

        identities = sum(isinstance(f, IdentityField) for f in declared)
        contents = sum(isinstance(f, ContentField) for f in declared)
        if identities != 1:
            raise ConfigError(f"Expected exactly one identity field, got {identities}")
        if contents != 1:
            raise ConfigError(f"Expected exactly one content field, got {contents}")

        columns: list[Column] = []
        vectors: list[VectorColumn] = []
        metadata: list[MetadataColumn] = []
        seen: set[str] = set()

        for field in declared:
            if isinstance(field, IdentityField):
                column = Column(ID_COLUMN, "UUID NOT NULL", field)
            elif isinstance(field, ContentField):
                column = Column(CHUNK_COLUMN, "TEXT NOT NULL", field)
            elif isinstance(field, VectorField):
                dimension = field.dimension if field.dimension is not None else vector_size
                if dimension is None:
                    raise ConfigError(
                        f"Vector field '{field.name}' has no dimension and no default vector size is set"
                    )
                if dimension <= 0:
                    raise ConfigError(
                        f"Vector field '{field.name}' has invalid dimension {dimension}"
                    )
                column = Column(
                    VECTOR_PREFIX + normalize_field_name(field.name),
                    f"VECTOR({dimension})",
                    field,
                )
                vectors.append(VectorColumn(field.name, column.name, dimension))
            else:
                column = Column(METADATA_PREFIX + normalize_field_name(field.key), "JSONB", field)
                metadata.append(MetadataColumn(field.key, column.name))

            if column.name in seen:
                raise ConfigError(f"Duplicate column name '{column.name}' in field configuration")
            if len(column.name) > MAX_IDENTIFIER_LENGTH:
                raise ConfigError(
                    f"Column name '{column.name}' exceeds {MAX_IDENTIFIER_LENGTH} characters"
                )
            seen.add(column.name)
            columns.append(column)

        return cls(tuple(columns), tuple(vectors), tuple(metadata))

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def vector_column(self, name: str | None = None) -> VectorColumn:
        """Resolve a vector name to its column.

        ``None`` picks the first declared vector field.

        Raises:
            QueryError: If no matching vector field is configured.
        """
        if not self.vector_columns:
            raise QueryError("No vector field configured")
        if name is None:
            return self.vector_columns[0]
        for vector in self.vector_columns:
            if vector.name == name:
                return vector
        raise QueryError(f"Unknown vector field '{name}'")

    def metadata_column(self, key: str) -> MetadataColumn:
        """Resolve a metadata key to its column.

        Keys are compared by their normalized column name, so ``Source-URL``
        and ``source_url`` both find a field declared as ``source-url``.

        Raises:
            QueryError: If no metadata field is configured for the key.
        """
        column = METADATA_PREFIX + normalize_field_name(key) if key else None
        for meta in self.metadata_columns:
            if meta.column == column:
                return meta
        raise QueryError(f"Unknown metadata field '{key}'")
