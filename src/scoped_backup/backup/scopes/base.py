"""Declarative scope strategy.

Each scope is a ``ScopeHandler`` subclass that declares its tables, link
tables, sequences, reference checks and risk warnings.  The base class
turns those declarations into the four operations the engine needs:

- ``export``: read every table and link table concurrently
- ``plan``: per-table current/incoming counts
- ``check_dependencies``: referential issues against archive and database
- ``replace``: delete, insert, relink and resequence on a bound client

Usage:
    class OpsLogsScope(ScopeHandler):
        scope = BackupScope.OPS_LOGS
        label = "Operational logs"
        description = "..."
        tables = (TableDef(name="AuditLog", data_key="auditLogs"),)
        sequences = (SequenceTarget(table="AuditLog", column="id"),)
"""

import asyncio
import logging
import math
from collections.abc import Iterable
from typing import Any, ClassVar, Literal

from pydantic import BaseModel, Field

from scoped_backup.adapters.base import DatabaseClient
from scoped_backup.backup.models import BackupScope, Issue, ScopeDefinition, TablePlan
from scoped_backup.backup.normalize import normalize_rows

logger = logging.getLogger(__name__)

BackupData = dict[str, list[dict[str, Any]]]
ValueKind = Literal["number", "string"]


# ============================================================================
# Declarations
# ============================================================================


class TableDef(BaseModel):
    """A physical table owned by a scope."""

    name: str                                       # physical table name
    data_key: str                                   # key under archive data
    order_by: str = "id"                            # export ordering
    sort_by: list[str] = Field(default_factory=list)  # insert pre-sort (parents first)


class LinkDef(BaseModel):
    """A many-to-many link table exported as flattened ``(parent, child)`` rows."""

    name: str            # logical name used in table plans
    data_key: str
    table: str           # physical link table
    parent_table: str    # owning table (plan placement)
    parent_field: str    # archive field holding the parent id
    child_field: str     # archive field holding the child key
    parent_column: str   # physical column for the parent id
    child_column: str    # physical column for the child key


class SequenceTarget(BaseModel):
    """Auto-increment column repaired after a replace."""

    table: str
    column: str


class ArchiveReference(BaseModel):
    """Values in ``sources`` must exist as ``target_field`` of ``target_key`` rows."""

    code: str
    message: str
    sources: list[tuple[str, str]]  # (data_key, field)
    target_key: str
    target_field: str
    kind: ValueKind = "number"


class DatabaseReference(BaseModel):
    """Values in ``sources`` must exist in ``table.column`` of the target database."""

    code: str
    message: str
    sources: list[tuple[str, str]]
    table: str
    column: str
    kind: ValueKind = "number"


class RiskWarning(BaseModel):
    """Existing rows the replace would discard.

    Counts rows of ``tables`` matching ``filters``, or with any of
    ``not_null`` set when given.  A positive total raises the warning.
    """

    code: str
    message: str
    tables: list[str]
    filters: dict[str, Any] | None = None
    not_null: list[str] = Field(default_factory=list)


# ============================================================================
# Row Helpers
# ============================================================================


def read_number(row: dict[str, Any], field: str) -> int | None:
    """Integer id from a row; digit strings are accepted."""
    value = row.get(field)
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return round(value)
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return None


def read_string(row: dict[str, Any], field: str) -> str | None:
    """Non-empty, trimmed string from a row."""
    value = row.get(field)
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def get_rows(data: BackupData, key: str) -> list[dict[str, Any]]:
    """Rows under ``key``, or an empty list when absent."""
    value = data.get(key)
    return value if isinstance(value, list) else []


def collect_values(
    data: BackupData, sources: Iterable[tuple[str, str]], kind: ValueKind
) -> list[Any]:
    """Distinct non-null values of the given fields, in first-seen order."""
    reader = read_number if kind == "number" else read_string
    seen: dict[Any, None] = {}
    for data_key, field in sources:
        for row in get_rows(data, data_key):
            value = reader(row, field)
            if value is not None:
                seen.setdefault(value, None)
    return list(seen)


def _sort_key(fields: list[str]):
    def key(row: dict[str, Any]) -> tuple:
        return tuple((row.get(f) is not None, row.get(f)) for f in fields)

    return key


def _batched(rows: list[dict[str, Any]], size: int) -> Iterable[list[dict[str, Any]]]:
    for start in range(0, len(rows), size):
        yield rows[start:start + size]


# ============================================================================
# Scope Handler
# ============================================================================


class ScopeHandler:
    """Export/plan/check/replace strategy for one scope."""

    scope: ClassVar[BackupScope]
    label: ClassVar[str]
    description: ClassVar[str]
    depends_on: ClassVar[tuple[BackupScope, ...]] = ()

    tables: ClassVar[tuple[TableDef, ...]] = ()           # insert order, parents first
    links: ClassVar[tuple[LinkDef, ...]] = ()
    sequences: ClassVar[tuple[SequenceTarget, ...]] = ()
    references: ClassVar[tuple[ArchiveReference | DatabaseReference, ...]] = ()
    warnings: ClassVar[tuple[RiskWarning, ...]] = ()

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    @property
    def data_keys(self) -> list[str]:
        return [t.data_key for t in self.tables] + [link.data_key for link in self.links]

    def definition(self) -> ScopeDefinition:
        return ScopeDefinition(
            scope=self.scope,
            label=self.label,
            description=self.description,
            depends_on=list(self.depends_on),
            data_keys=self.data_keys,
        )

    def _plan_entries(self) -> list[tuple[str, str, str]]:
        """``(plan name, physical table, data key)`` in plan order.

        Each link table follows its parent table.
        """
        entries: list[tuple[str, str, str]] = []
        for table in self.tables:
            entries.append((table.name, table.name, table.data_key))
            for link in self.links:
                if link.parent_table == table.name:
                    entries.append((link.name, link.table, link.data_key))
        return entries

    def table_names(self) -> list[str]:
        """Plan names of every table this scope touches."""
        return [name for name, _, _ in self._plan_entries()]

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    async def export(self, adapter: DatabaseClient) -> BackupData:
        """Read every table and link table of the scope concurrently."""
        table_reads = [
            adapter.select(t.name, order_by=t.order_by) for t in self.tables
        ]
        link_reads = [
            adapter.select(
                link.table,
                f"{link.parent_column}, {link.child_column}",
                order_by=f"{link.parent_column}, {link.child_column}",
            )
            for link in self.links
        ]
        results = await asyncio.gather(*table_reads, *link_reads)

        data: BackupData = {}
        for table, rows in zip(self.tables, results[:len(self.tables)]):
            data[table.data_key] = normalize_rows(rows)
        for link, rows in zip(self.links, results[len(self.tables):]):
            data[link.data_key] = normalize_rows(
                [
                    {
                        link.parent_field: row[link.parent_column],
                        link.child_field: row[link.child_column],
                    }
                    for row in rows
                ]
            )
        return data

    # ------------------------------------------------------------------
    # Plan
    # ------------------------------------------------------------------

    async def plan(self, adapter: DatabaseClient, data: BackupData) -> list[TablePlan]:
        """Current vs. incoming counts for every table; toDelete is all current rows."""
        entries = self._plan_entries()
        counts = await asyncio.gather(*(adapter.count(table) for _, table, _ in entries))

        plans: list[TablePlan] = []
        for (name, _, data_key), current in zip(entries, counts):
            incoming = len(get_rows(data, data_key))
            plans.append(
                TablePlan(
                    table=name,
                    current=current,
                    incoming=incoming,
                    to_delete=current,
                    to_insert=incoming,
                )
            )
        return plans

    # ------------------------------------------------------------------
    # Dependency Analysis
    # ------------------------------------------------------------------

    async def check_dependencies(
        self, adapter: DatabaseClient, data: BackupData
    ) -> list[Issue]:
        """Collect every referential error and risk warning in one pass."""
        reference_results = await asyncio.gather(
            *(self._check_reference(adapter, ref, data) for ref in self.references)
        )
        warning_results = await asyncio.gather(
            *(self._check_warning(adapter, warning) for warning in self.warnings)
        )
        return [
            issue
            for issue in (*reference_results, *warning_results)
            if issue is not None
        ]

    async def _check_reference(
        self,
        adapter: DatabaseClient,
        ref: ArchiveReference | DatabaseReference,
        data: BackupData,
    ) -> Issue | None:
        values = collect_values(data, ref.sources, ref.kind)
        if not values:
            return None

        if isinstance(ref, ArchiveReference):
            known = set(collect_values(data, [(ref.target_key, ref.target_field)], ref.kind))
            missing = [v for v in values if v not in known]
        else:
            existing = await adapter.count(ref.table, {ref.column: values})
            missing = values if existing != len(values) else []

        if not missing:
            return None
        logger.debug("%s: %d unresolved value(s)", ref.code, len(missing))
        return Issue(level="error", code=ref.code, message=ref.message)

    async def _check_warning(
        self, adapter: DatabaseClient, warning: RiskWarning
    ) -> Issue | None:
        if warning.not_null:
            counts = await asyncio.gather(
                *(adapter.count_not_null(t, warning.not_null) for t in warning.tables)
            )
        else:
            counts = await asyncio.gather(
                *(adapter.count(t, warning.filters) for t in warning.tables)
            )
        if sum(counts) > 0:
            return Issue(level="warning", code=warning.code, message=warning.message)
        return None

    # ------------------------------------------------------------------
    # Replace
    # ------------------------------------------------------------------

    async def replace(
        self, tx: DatabaseClient, data: BackupData, batch_size: int
    ) -> list[TablePlan]:
        """Full replace on a transaction-bound client.

        Statements run one at a time; ``tx`` owns a single connection.

        Returns:
            Table stats in plan order.
        """
        deleted: dict[str, int] = {}
        inserted: dict[str, int] = {}

        # Children before parents: link tables, then tables in reverse
        for link in self.links:
            deleted[link.name] = await tx.delete_all(link.table)
        for table in reversed(self.tables):
            deleted[table.name] = await tx.delete_all(table.name)

        for table in self.tables:
            rows = get_rows(data, table.data_key)
            if table.sort_by:
                rows = sorted(rows, key=_sort_key(table.sort_by))
            count = 0
            for batch in _batched(rows, batch_size):
                count += await tx.insert_many(table.name, batch)
            inserted[table.name] = count
            logger.debug("Inserted %d row(s) into %s", count, table.name)

        for link in self.links:
            inserted[link.name] = await self._relink(tx, link, data)

        for target in self.sequences:
            await tx.reset_sequence(target.table, target.column)

        stats: list[TablePlan] = []
        for name, _, data_key in self._plan_entries():
            stats.append(
                TablePlan(
                    table=name,
                    current=deleted[name],
                    incoming=len(get_rows(data, data_key)),
                    to_delete=deleted[name],
                    to_insert=inserted[name],
                )
            )
        return stats

    async def _relink(self, tx: DatabaseClient, link: LinkDef, data: BackupData) -> int:
        """Group link rows by parent and set each parent's full child list."""
        grouped: dict[Any, list[Any]] = {}
        for row in get_rows(data, link.data_key):
            parent = row.get(link.parent_field)
            child = row.get(link.child_field)
            if parent is None or child is None:
                continue
            grouped.setdefault(parent, []).append(child)

        written = 0
        for parent, children in grouped.items():
            written += await tx.replace_links(
                link.table, link.parent_column, parent, link.child_column, children
            )
        return written
