"""Schema-domain models.

This module contains:
- TableSchema: a table id with its schema tree and derived foreign keys
- Migration: one entry of a project's migration history
- DependencyResolution: output of the table dependency resolver
- SchemaSyncResult: outcome of replaying migrations against a draft
"""

from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from revisium_sync.schema.tree import SchemaNode, parse_schema


# ============================================================================
# Tables
# ============================================================================


@dataclass(frozen=True)
class TableSchema:
    """A table id with its (possibly unknown) schema tree.

    Example:
        >>> schema = TableSchema("quests", {
        ...     "type": "object",
        ...     "properties": {
        ...         "reward": {"type": "string", "foreignKey": "abilities"},
        ...         "parent": {"type": "string", "foreignKey": "quests"},
        ...     },
        ... })
        >>> schema.foreign_keys
        ('abilities',)
    """

    table_id: str
    tree: dict[str, Any] | None = None
    root: SchemaNode = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "root", parse_schema(self.tree))

    @property
    def foreign_keys(self) -> tuple[str, ...]:
        """Referenced tables in discovery order, without self-references."""
        return tuple(t for t in self.root.foreign_keys() if t != self.table_id)


class DependencyResolution(BaseModel):
    """Processing order for a set of tables.

    Attributes:
        order: Table ids, parents before children.
        warnings: One entry per cycle, plus a closing hint when cycles exist.
        cycles: Each cyclic group of tables, in original order.
        edges: ``child -> [parents]`` restricted to the resolved scope.
    """

    order: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    cycles: list[list[str]] = Field(default_factory=list)
    edges: dict[str, list[str]] = Field(default_factory=dict)


# ============================================================================
# Migrations
# ============================================================================


ChangeType = Literal["init", "update", "remove", "rename"]


class Migration(BaseModel):
    """One migration as stored by the backend.

    Unknown fields (schema patches, hashes, timestamps) are preserved so the
    migration can be replayed verbatim.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    change_type: ChangeType = Field(alias="changeType")
    table_id: str = Field(alias="tableId")
    next_table_id: str | None = Field(default=None, alias="nextTableId")

    def payload(self) -> dict[str, Any]:
        """The migration as the backend expects it."""
        return self.model_dump(by_alias=True, exclude_none=True)

    def describe(self) -> str:
        if self.change_type == "rename":
            return f"{self.table_id} -> {self.next_table_id}"
        return self.table_id


class SchemaSyncResult(BaseModel):
    """Outcome of applying (or previewing) a list of migrations.

    Example:
        >>> result = SchemaSyncResult(applied=2, tables_created=["abilities", "quests"])
        >>> result.changes
        2
    """

    success: bool = True
    dry_run: bool = False
    total: int = 0
    applied: int = 0
    skipped: int = 0
    tables_created: list[str] = Field(default_factory=list)
    tables_updated: list[str] = Field(default_factory=list)
    tables_removed: list[str] = Field(default_factory=list)
    tables_renamed: list[str] = Field(default_factory=list)
    error: str | None = None

    @property
    def changes(self) -> int:
        """Migrations that changed (or would change) the target."""
        return self.applied

    def record(self, migration: Migration) -> None:
        """File ``migration`` under the table list matching its change type."""
        if migration.change_type == "init":
            self.tables_created.append(migration.table_id)
        elif migration.change_type == "update":
            self.tables_updated.append(migration.table_id)
        elif migration.change_type == "remove":
            self.tables_removed.append(migration.table_id)
        else:
            self.tables_renamed.append(migration.describe())
