"""pgvector storage and similarity retrieval for nodes."""

from nodevec.vector.config import VectorStoreConfig
from nodevec.vector.fields import (
    ContentField,
    EmbeddedField,
    FieldConfig,
    FieldModel,
    IdentityField,
    MetadataField,
    VectorField,
    normalize_field_name,
)
from nodevec.vector.interface import Persist, Retrieve
from nodevec.vector.pgvector import PgVector

__all__ = [
    "ContentField",
    "EmbeddedField",
    "FieldConfig",
    "FieldModel",
    "IdentityField",
    "MetadataField",
    "Persist",
    "PgVector",
    "Retrieve",
    "VectorField",
    "VectorStoreConfig",
    "normalize_field_name",
]
