"""Schema trees, table dependency ordering, and migration replay.

Usage:
    >>> from revisium_sync.schema import TableSchema, resolve_table_order
"""

from revisium_sync.schema.dependencies import format_dependency_info, resolve_table_order
from revisium_sync.schema.migrations import (
    apply_migrations,
    fetch_migrations,
    load_migrations_file,
    save_migrations,
    sync_schema,
)
from revisium_sync.schema.models import (
    DependencyResolution,
    Migration,
    SchemaSyncResult,
    TableSchema,
)
from revisium_sync.schema.tree import (
    ArrayNode,
    ObjectNode,
    PrimitiveNode,
    RefNode,
    SchemaNode,
    StringNode,
    parse_schema,
)

__all__ = [
    "TableSchema",
    "Migration",
    "DependencyResolution",
    "SchemaSyncResult",
    "SchemaNode",
    "ObjectNode",
    "ArrayNode",
    "StringNode",
    "PrimitiveNode",
    "RefNode",
    "parse_schema",
    "resolve_table_order",
    "format_dependency_info",
    "apply_migrations",
    "fetch_migrations",
    "load_migrations_file",
    "save_migrations",
    "sync_schema",
]
