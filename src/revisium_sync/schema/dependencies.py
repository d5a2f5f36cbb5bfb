"""Table ordering by foreign-key dependencies.

Rows of a referenced (parent) table must exist before rows that point at
them are written, so data is processed parents-first.  Cycles are not an
error: tables in a cycle keep their original relative order and a warning
is emitted for each cycle.

Usage:
    from revisium_sync.schema.dependencies import resolve_table_order
    from revisium_sync.schema.models import TableSchema

    resolution = resolve_table_order(
        {"quests": TableSchema("quests", quests_tree), "abilities": TableSchema("abilities", abilities_tree)},
        scope=["quests", "abilities"],
    )
    resolution.order   # ['abilities', 'quests']
"""

import heapq
import logging
from collections.abc import Mapping, Sequence

from revisium_sync.schema.models import DependencyResolution, TableSchema

logger = logging.getLogger(__name__)

CYCLE_HINT = "Consider breaking circular dependencies or uploading data in multiple passes."


# ------------------------------------------------------------------
# Graph construction
# ------------------------------------------------------------------


def _build_edges(
    schemas: Mapping[str, TableSchema | None],
    tables: list[str],
) -> dict[str, list[str]]:
    """Map each table to the in-scope tables it references.

    Tables without a schema have no outgoing edges.  References to tables
    outside ``tables`` are dropped.
    """
    in_scope = set(tables)
    edges: dict[str, list[str]] = {}
    for table in tables:
        schema = schemas.get(table)
        if schema is None:
            edges[table] = []
            continue
        edges[table] = [
            parent
            for parent in schema.foreign_keys
            if parent in in_scope and parent != table
        ]
    return edges


def _strongly_connected(edges: dict[str, list[str]], tables: list[str]) -> list[list[str]]:
    """Tarjan's algorithm; returns every component (singletons included)."""
    index_of: dict[str, int] = {}
    low: dict[str, int] = {}
    on_stack: set[str] = set()
    stack: list[str] = []
    components: list[list[str]] = []
    counter = 0

    def visit(table: str) -> None:
        nonlocal counter
        index_of[table] = low[table] = counter
        counter += 1
        stack.append(table)
        on_stack.add(table)

        for parent in edges.get(table, []):
            if parent not in index_of:
                visit(parent)
                low[table] = min(low[table], low[parent])
            elif parent in on_stack:
                low[table] = min(low[table], index_of[parent])

        if low[table] == index_of[table]:
            component: list[str] = []
            while True:
                member = stack.pop()
                on_stack.discard(member)
                component.append(member)
                if member == table:
                    break
            components.append(component)

    for table in tables:
        if table not in index_of:
            visit(table)

    return components


# ------------------------------------------------------------------
# Resolution
# ------------------------------------------------------------------


def resolve_table_order(
    schemas: Mapping[str, TableSchema | None],
    scope: Sequence[str] | None = None,
) -> DependencyResolution:
    """Order tables so referenced tables come before referencing ones.

    Uses Kahn's algorithm with a deterministic tie-break: whenever several
    tables are ready, the one earliest in ``scope`` goes first.  Tables in
    a cycle are placed together, in their original order, once everything
    the cycle depends on is placed; the rest of the graph is still ordered
    topologically.

    Args:
        schemas: Table id to schema (``None`` for an unknown schema).
        scope: Tables to order, in original order (default: ``schemas``
            key order).  The result contains exactly these tables.

    Returns:
        DependencyResolution with order, warnings, cycles, and edges.

    Example:
        >>> a = TableSchema("a", {"type": "object", "properties": {"b": {"type": "string", "foreignKey": "b"}}})
        >>> b = TableSchema("b", {"type": "object", "properties": {"a": {"type": "string", "foreignKey": "a"}}})
        >>> resolution = resolve_table_order({"a": a, "b": b})
        >>> resolution.order, resolution.cycles
        (['a', 'b'], [['a', 'b']])
    """
    tables = list(dict.fromkeys(scope if scope is not None else schemas.keys()))
    position = {table: i for i, table in enumerate(tables)}
    edges = _build_edges(schemas, tables)

    # Each component is placed as a unit, its members in original order
    members = [
        sorted(component, key=position.__getitem__)
        for component in _strongly_connected(edges, tables)
    ]
    component_of = {table: number for number, group in enumerate(members) for table in group}
    cycles = sorted(
        (group for group in members if len(group) > 1),
        key=lambda group: position[group[0]],
    )

    in_degree = [0] * len(members)
    dependents: list[set[int]] = [set() for _ in members]
    for child, parents in edges.items():
        for parent in parents:
            child_group, parent_group = component_of[child], component_of[parent]
            if child_group == parent_group or child_group in dependents[parent_group]:
                continue
            dependents[parent_group].add(child_group)
            in_degree[child_group] += 1

    ready = [(position[group[0]], n) for n, group in enumerate(members) if in_degree[n] == 0]
    heapq.heapify(ready)

    order: list[str] = []
    while ready:
        _, number = heapq.heappop(ready)
        order.extend(members[number])
        for child_group in dependents[number]:
            in_degree[child_group] -= 1
            if in_degree[child_group] == 0:
                heapq.heappush(ready, (position[members[child_group][0]], child_group))

    warnings = [
        f"Circular dependency detected: {' -> '.join(cycle + [cycle[0]])}. "
        f"Upload order may cause foreign key constraint errors."
        for cycle in cycles
    ]
    if cycles:
        warnings.append(CYCLE_HINT)

    for warning in warnings:
        logger.warning(warning)

    return DependencyResolution(order=order, warnings=warnings, cycles=cycles, edges=edges)


def format_dependency_info(
    resolution: DependencyResolution,
    original_order: Sequence[str],
) -> str:
    """Render a short human-readable summary of a resolution.

    Example:
        >>> resolution = DependencyResolution(order=["abilities", "quests"])
        >>> print(format_dependency_info(resolution, ["quests", "abilities"]))
        Table dependency analysis:
          Upload order: abilities -> quests
          Original order: quests -> abilities
          Tables reordered based on foreign key dependencies
    """
    lines = ["Table dependency analysis:"]

    if resolution.order:
        lines.append(f"  Upload order: {' -> '.join(resolution.order)}")
        if list(original_order) != resolution.order:
            lines.append(f"  Original order: {' -> '.join(original_order)}")
            lines.append("  Tables reordered based on foreign key dependencies")
        else:
            lines.append("  No reordering needed, tables already in correct order")

    if resolution.cycles:
        lines.append(f"  Found {len(resolution.cycles)} circular dependencies")

    return "\n".join(lines)
