"""Shared fixtures: an in-memory ``DatabaseClient`` and sample datasets."""

import copy
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

import pytest


# ------------------------------------------------------------------
# In-memory database client
# ------------------------------------------------------------------


def _matches(row: dict, filters: dict[str, Any] | None) -> bool:
    for column, expected in (filters or {}).items():
        value = row.get(column)
        if expected is None:
            if value is not None:
                return False
        elif isinstance(expected, (list, tuple, set, frozenset)):
            if value not in expected:
                return False
        elif value != expected:
            return False
    return True


def _order_key(fields: list[str]):
    def key(row: dict) -> tuple:
        return tuple((row.get(f) is not None, row.get(f)) for f in fields)

    return key


class FakeDatabaseClient:
    """Dict-backed ``DatabaseClient`` with serial sequences and rollback.

    ``serial_columns`` maps a table to its auto-increment column.  Rows
    inserted with an explicit id do not advance the sequence, as in
    PostgreSQL; ``reset_sequence`` moves it to ``MAX + 1``.
    """

    def __init__(
        self,
        tables: dict[str, list[dict]] | None = None,
        serial_columns: dict[str, str] | None = None,
    ) -> None:
        self.tables: dict[str, list[dict]] = copy.deepcopy(tables or {})
        self.serial_columns = dict(serial_columns or {})
        self.next_values: dict[str, int] = {}
        for table, column in self.serial_columns.items():
            ids = [r[column] for r in self.tables.get(table, []) if r.get(column) is not None]
            self.next_values[table] = max(ids, default=0) + 1
        self.locks: list[str] = []
        self.writes = 0
        self.transactions = 0
        self.fail_on_insert: set[str] = set()
        self.closed = False

    def rows(self, table: str) -> list[dict]:
        return self.tables.setdefault(table, [])

    def counts(self) -> dict[str, int]:
        """Row count per table, omitting empty tables."""
        return {table: len(rows) for table, rows in self.tables.items() if rows}

    async def select(
        self,
        table: str,
        columns: str = "*",
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
    ) -> list[dict]:
        rows = [r for r in self.tables.get(table, []) if _matches(r, filters)]
        if order_by:
            rows = sorted(rows, key=_order_key([f.strip() for f in order_by.split(",")]))
        if columns.strip() != "*":
            names = [c.strip() for c in columns.split(",")]
            rows = [{name: r.get(name) for name in names} for r in rows]
        return copy.deepcopy(rows)

    async def count(self, table: str, filters: dict[str, Any] | None = None) -> int:
        return sum(1 for r in self.tables.get(table, []) if _matches(r, filters))

    async def count_not_null(self, table: str, columns: list[str]) -> int:
        return sum(
            1 for r in self.tables.get(table, []) if any(r.get(c) is not None for c in columns)
        )

    async def insert_generated(self, table: str, data: dict) -> dict:
        """Insert one row the way the application would, drawing the serial id."""
        row = dict(data)
        column = self.serial_columns.get(table)
        if column and row.get(column) is None:
            row[column] = self.next_values.get(table, 1)
            self.next_values[table] = row[column] + 1
        self.rows(table).append(row)
        self.writes += 1
        return dict(row)

    async def insert_many(self, table: str, rows: list[dict]) -> int:
        if table in self.fail_on_insert:
            raise RuntimeError(f"insert into {table} failed")
        self.rows(table).extend(copy.deepcopy(rows))
        self.writes += 1
        return len(rows)

    async def delete_all(self, table: str) -> int:
        deleted = len(self.rows(table))
        self.tables[table] = []
        self.writes += 1
        return deleted

    async def replace_links(
        self,
        table: str,
        parent_column: str,
        parent_value: Any,
        child_column: str,
        child_values: list[Any],
    ) -> int:
        kept = [r for r in self.rows(table) if r.get(parent_column) != parent_value]
        children = list(dict.fromkeys(child_values))
        kept.extend({parent_column: parent_value, child_column: c} for c in children)
        self.tables[table] = kept
        self.writes += 1
        return len(children)

    async def reset_sequence(self, table: str, column: str) -> None:
        if self.serial_columns.get(table) != column:
            return
        ids = [r[column] for r in self.rows(table) if r.get(column) is not None]
        self.next_values[table] = max(ids, default=0) + 1

    async def advisory_lock(self, key: str) -> None:
        self.locks.append(key)

    @asynccontextmanager
    async def transaction(self):
        snapshot = (copy.deepcopy(self.tables), dict(self.next_values))
        self.transactions += 1
        try:
            yield self
        except BaseException:
            self.tables, self.next_values = snapshot
            raise

    async def close(self) -> None:
        self.closed = True


# ------------------------------------------------------------------
# Sample data
# ------------------------------------------------------------------


CREATED = datetime(2025, 3, 1, 8, 30, tzinfo=timezone.utc)

CORE_SERIALS = {"User": "uid", "CustomDictionary": "id", "MailSubscription": "id"}


def core_tables() -> dict[str, list[dict]]:
    """A small, referentially complete core dataset."""
    return {
        "User": [
            {"uid": 1, "username": "admin", "email": "admin@example.com", "createdAt": CREATED},
            {"uid": 500, "username": "editor", "email": "editor@example.com", "createdAt": CREATED},
        ],
        "Config": [{"key": "site.title", "value": {"default": "Example"}}],
        "Page": [{"id": "page-about", "title": "About", "slug": "about"}],
        "Conversation": [{"id": "conv-1", "createdAt": CREATED}],
        "ConversationParticipant": [
            {"conversationId": "conv-1", "userUid": 1},
            {"conversationId": "conv-1", "userUid": 500},
        ],
        "Message": [
            {
                "id": "msg-1",
                "conversationId": "conv-1",
                "senderUid": 1,
                "replyToMessageId": None,
                "content": "hello",
                "createdAt": CREATED,
            },
            {
                "id": "msg-2",
                "conversationId": "conv-1",
                "senderUid": 500,
                "replyToMessageId": "msg-1",
                "content": "hi",
                "createdAt": datetime(2025, 3, 1, 8, 31, tzinfo=timezone.utc),
            },
        ],
    }


def content_tables() -> dict[str, list[dict]]:
    """Content rows (with the core rows they reference)."""
    tables = core_tables()
    tables.update(
        {
            "Tag": [{"slug": "python", "name": "Python"}, {"slug": "sql", "name": "SQL"}],
            "Category": [
                {"id": 2, "name": "Databases", "parentId": 1, "depth": 1},
                {"id": 1, "name": "Tech", "parentId": None, "depth": 0},
            ],
            "Post": [
                {"id": 10, "slug": "hello", "title": "Hello", "userUid": 1},
                {"id": 11, "slug": "second", "title": "Second", "userUid": 500},
            ],
            "Project": [{"id": 3, "slug": "tool", "name": "Tool", "userUid": 1}],
            "Comment": [
                {
                    "id": "cm-1",
                    "postId": 10,
                    "userUid": 1,
                    "parentId": None,
                    "depth": 0,
                    "deletedAt": None,
                    "createdAt": CREATED,
                },
                {
                    "id": "cm-2",
                    "postId": 10,
                    "userUid": 500,
                    "parentId": "cm-1",
                    "depth": 1,
                    "deletedAt": None,
                    "createdAt": CREATED,
                },
            ],
            "CommentLike": [{"id": "like-1", "commentId": "cm-1", "userUid": 500, "createdAt": CREATED}],
            "_PostToTag": [{"A": 10, "B": "python"}, {"A": 10, "B": "sql"}, {"A": 11, "B": "sql"}],
            "_CategoryToPost": [{"A": 2, "B": 10}],
            "_ProjectToTag": [{"A": 3, "B": "python"}],
            "_CategoryToProject": [{"A": 1, "B": 3}],
        }
    )
    return tables


ASSETS_SERIALS = {"VirtualFolder": "id", "Media": "id", "Photo": "id"}


def assets_tables() -> dict[str, list[dict]]:
    """Asset rows on top of the content dataset they reference."""
    tables = content_tables()
    tables.update(
        {
            "StorageProvider": [
                {
                    "id": "sp-1",
                    "name": "local",
                    "type": "LOCAL",
                    "isDefault": True,
                    "isActive": True,
                    "createdAt": CREATED,
                }
            ],
            # Child folder has the lower id so the depth pre-sort matters
            "VirtualFolder": [
                {"id": 1, "name": "2025", "parentId": 2, "depth": 1, "userUid": 1},
                {"id": 2, "name": "uploads", "parentId": None, "depth": 0, "userUid": 1},
            ],
            "Media": [
                {
                    "id": 7,
                    "userUid": 1,
                    "storageProviderId": "sp-1",
                    "folderId": 1,
                    "url": "https://files.example.com/a.png",
                }
            ],
            "Photo": [{"id": 4, "mediaId": 7, "sortOrder": 0}],
            "MediaReference": [
                {"id": "ref-post", "mediaId": 7, "postId": 10, "createdAt": CREATED},
                {"id": "ref-page", "mediaId": 7, "pageId": "page-about", "createdAt": CREATED},
                {"id": "ref-tag", "mediaId": 7, "tagSlug": "python", "createdAt": CREATED},
                {"id": "ref-category", "mediaId": 7, "categoryId": 1, "createdAt": CREATED},
                {"id": "ref-project", "mediaId": 7, "projectId": 3, "createdAt": CREATED},
            ],
        }
    )
    return tables


def analytics_tables() -> dict[str, list[dict]]:
    """Analytics rows on top of the content dataset."""
    tables = content_tables()
    tables.update(
        {
            "ViewCountCache": [{"path": "/posts/hello", "postSlug": "hello", "views": 12}],
            "PageViewArchive": [{"id": "pva-1", "path": "/about", "date": CREATED, "views": 40}],
            "PageView": [{"id": "pv-1", "path": "/posts/hello", "timestamp": CREATED}],
            "SearchLog": [
                {"id": 1, "query": "sql", "createdAt": CREATED},
                {"id": 5, "query": "python", "createdAt": CREATED},
            ],
        }
    )
    return tables


@pytest.fixture
def core_db() -> FakeDatabaseClient:
    return FakeDatabaseClient(core_tables(), serial_columns=CORE_SERIALS)


@pytest.fixture
def content_db() -> FakeDatabaseClient:
    return FakeDatabaseClient(
        content_tables(),
        serial_columns={
            **CORE_SERIALS,
            "Category": "id",
            "Post": "id",
            "Project": "id",
            "FriendLink": "id",
        },
    )


@pytest.fixture
def assets_db() -> FakeDatabaseClient:
    return FakeDatabaseClient(assets_tables(), serial_columns={**CORE_SERIALS, **ASSETS_SERIALS})


@pytest.fixture
def analytics_db() -> FakeDatabaseClient:
    return FakeDatabaseClient(
        analytics_tables(), serial_columns={**CORE_SERIALS, "SearchLog": "id"}
    )


# ------------------------------------------------------------------
# Name resolution
# ------------------------------------------------------------------


HOSTS = {
    "cdn.example.com": ["93.184.216.34"],
    "mirror.example.com": ["2606:2800:220:1:248:1893:25c8:1946"],
    "internal.example.com": ["10.0.0.5"],
    "mixed.example.com": ["93.184.216.34", "127.0.0.1"],
}


async def fake_resolver(host: str, port: int) -> list[str]:
    """Resolver for ``assert_public_http_url`` backed by ``HOSTS``."""
    if host not in HOSTS:
        raise OSError(f"unknown host {host}")
    return HOSTS[host]
