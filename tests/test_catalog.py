"""Tests for the scope catalog and scope declarations."""

import pytest

from scoped_backup.backup.catalog import (
    dependency_order,
    get_backup_scopes,
    get_scope_definition,
    get_scope_handler,
    get_scope_table_names,
    resolve_scope,
)
from scoped_backup.backup.errors import UnknownScopeError
from scoped_backup.backup.models import BackupScope

from conftest import FakeDatabaseClient, content_tables


class TestCatalog:
    """Registry lookups."""

    def test_every_scope_is_registered(self) -> None:
        scopes = [item.scope for item in get_backup_scopes()]
        assert scopes == list(BackupScope)

    def test_resolve_scope_accepts_names(self) -> None:
        assert resolve_scope("content") == BackupScope.CONTENT
        assert resolve_scope(BackupScope.ASSETS) is BackupScope.ASSETS

    def test_unknown_scope(self) -> None:
        """UnknownScopeError is also a KeyError."""
        with pytest.raises(UnknownScopeError) as exc_info:
            get_scope_handler("MEDIA")
        assert isinstance(exc_info.value, KeyError)
        assert "MEDIA" in str(exc_info.value)

    def test_definitions_serialize_camel_case(self) -> None:
        dumped = get_scope_definition("ASSETS").model_dump(by_alias=True, mode="json")
        assert dumped["dependsOn"] == ["CORE_BASE", "CONTENT"]
        assert "mediaReferences" in dumped["dataKeys"]

    def test_dependencies_come_first(self) -> None:
        """Every declared dependency is itself a registered scope."""
        deps = {item.scope: tuple(item.depends_on) for item in get_backup_scopes()}
        order = dependency_order(deps)
        for scope, scope_deps in deps.items():
            for dep in scope_deps:
                assert order.index(dep) < order.index(scope)

    def test_dependency_cycle_rejected(self) -> None:
        with pytest.raises(ValueError, match="cycle"):
            dependency_order(
                {
                    BackupScope.CONTENT: (BackupScope.ASSETS,),
                    BackupScope.ASSETS: (BackupScope.CONTENT,),
                }
            )

    def test_undefined_dependency_rejected(self) -> None:
        with pytest.raises(ValueError, match="not defined"):
            dependency_order({BackupScope.CONTENT: (BackupScope.CORE_BASE,)})


class TestScopeTables:
    """Table inventories and plan ordering."""

    def test_content_link_tables_follow_their_parents(self) -> None:
        names = get_scope_table_names("CONTENT")
        assert names.index("PostTagLink") == names.index("Post") + 1
        assert names.index("PostCategoryLink") == names.index("Post") + 2
        assert names.index("ProjectTagLink") == names.index("Project") + 1

    def test_core_tables(self) -> None:
        names = get_scope_table_names(BackupScope.CORE_BASE)
        assert names[0] == "User"
        assert names[-1] == "Message"
        assert "ConversationParticipant" in names

    def test_data_keys_are_unique_across_a_scope(self) -> None:
        for item in get_backup_scopes():
            assert len(item.data_keys) == len(set(item.data_keys))


class TestScopeExport:
    """Handlers read tables and flatten link tables."""

    async def test_content_export_flattens_links(self) -> None:
        db = FakeDatabaseClient(content_tables())
        data = await get_scope_handler("CONTENT").export(db)

        assert set(data) == set(get_scope_definition("CONTENT").data_keys)
        assert {"postId": 10, "categoryId": 2} in data["postCategoryLinks"]
        assert {"postId": 10, "tagSlug": "python"} in data["postTagLinks"]
        assert {"projectId": 3, "categoryId": 1} in data["projectCategoryLinks"]
        assert [t["slug"] for t in data["tags"]] == ["python", "sql"]

    async def test_export_normalizes_rows(self) -> None:
        db = FakeDatabaseClient(content_tables())
        data = await get_scope_handler("CORE_BASE").export(db)
        assert data["users"][0]["createdAt"] == "2025-03-01T08:30:00.000Z"
        assert list(data["users"][0]) == sorted(data["users"][0])
