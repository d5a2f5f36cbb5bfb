"""Typed schema tree for table JSON schemas.

Table schemas arrive as plain JSON objects.  ``parse_schema()`` turns them
into a small tagged variant so foreign-key extraction is a method call on
each node instead of key sniffing at every level.

Usage:
    from revisium_sync.schema.tree import parse_schema

    node = parse_schema({
        "type": "object",
        "properties": {"ability": {"type": "string", "foreignKey": "abilities"}},
    })
    node.foreign_keys()   # ['abilities']
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class PrimitiveNode:
    """Number, boolean, or any shape without children.

    A ``foreignKey`` marker is honored here too, whatever the leaf type.
    """

    type: str | None = None
    foreign_key: str | None = None

    def foreign_keys(self) -> list[str]:
        return [self.foreign_key] if self.foreign_key else []


@dataclass(frozen=True)
class StringNode:
    """String field, optionally referencing rows of another table."""

    foreign_key: str | None = None

    def foreign_keys(self) -> list[str]:
        return [self.foreign_key] if self.foreign_key else []


@dataclass(frozen=True)
class RefNode:
    """``$ref`` to a shared schema (files, timestamps); never a foreign key."""

    ref: str

    def foreign_keys(self) -> list[str]:
        return []


@dataclass(frozen=True)
class ArrayNode:
    items: "SchemaNode"

    def foreign_keys(self) -> list[str]:
        return self.items.foreign_keys()


@dataclass(frozen=True)
class ObjectNode:
    properties: dict[str, "SchemaNode"] = field(default_factory=dict)

    def foreign_keys(self) -> list[str]:
        found: list[str] = []
        for child in self.properties.values():
            for table_id in child.foreign_keys():
                if table_id not in found:
                    found.append(table_id)
        return found


SchemaNode = ObjectNode | ArrayNode | StringNode | PrimitiveNode | RefNode


def parse_schema(tree: dict[str, Any] | None) -> SchemaNode:
    """Convert a JSON schema object into a ``SchemaNode``.

    Args:
        tree: Decoded JSON schema, or ``None`` when no schema is known.

    Returns:
        The root node.  Unknown or missing shapes become an empty
        ``PrimitiveNode``.
    """
    if not isinstance(tree, dict):
        return PrimitiveNode()

    if "$ref" in tree:
        return RefNode(ref=str(tree["$ref"]))

    node_type = tree.get("type")

    if node_type == "object" or "properties" in tree:
        properties = tree.get("properties") or {}
        return ObjectNode(
            properties={name: parse_schema(child) for name, child in properties.items()}
        )

    if node_type == "array" or "items" in tree:
        return ArrayNode(items=parse_schema(tree.get("items")))

    foreign_key = tree.get("foreignKey")
    if not isinstance(foreign_key, str):
        foreign_key = None

    if node_type == "string":
        return StringNode(foreign_key=foreign_key)

    return PrimitiveNode(
        type=node_type if isinstance(node_type, str) else None,
        foreign_key=foreign_key,
    )
