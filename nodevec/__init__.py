"""Nodevec: pgvector-backed storage and similarity retrieval for document nodes.

Nodes carry a chunk of text, any number of named embeddings and free-form
metadata. Nodevec derives a table schema from a declarative field list,
upserts nodes in batches and serves cosine similarity queries with an
optional metadata equality filter.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
