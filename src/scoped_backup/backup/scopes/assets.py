"""Storage providers, virtual folders, media, gallery photos and media references."""

from scoped_backup.backup.models import BackupScope
from scoped_backup.backup.scopes.base import (
    ArchiveReference,
    DatabaseReference,
    ScopeHandler,
    SequenceTarget,
    TableDef,
)


def _media_reference_check(
    code: str, noun: str, field: str, table: str, column: str, kind: str = "number"
) -> DatabaseReference:
    return DatabaseReference(
        code=code,
        message=f"Media references point at {noun} that do not exist in the target",
        sources=[("mediaReferences", field)],
        table=table,
        column=column,
        kind=kind,
    )


class AssetsScope(ScopeHandler):
    scope = BackupScope.ASSETS
    label = "Assets"
    description = (
        "Storage providers, virtual folders, media, gallery photos and media references"
    )
    depends_on = (BackupScope.CORE_BASE, BackupScope.CONTENT)

    tables = (
        TableDef(name="StorageProvider", data_key="storageProviders", order_by="createdAt"),
        TableDef(name="VirtualFolder", data_key="virtualFolders", sort_by=["depth"]),
        TableDef(name="Media", data_key="media"),
        TableDef(name="Photo", data_key="photos"),
        TableDef(name="MediaReference", data_key="mediaReferences", order_by="createdAt"),
    )

    sequences = (
        SequenceTarget(table="VirtualFolder", column="id"),
        SequenceTarget(table="Media", column="id"),
        SequenceTarget(table="Photo", column="id"),
    )

    references = (
        DatabaseReference(
            code="MISSING_CORE_BASE_USERS",
            message=(
                "Media references users that do not exist in the target; "
                "restore the core scope first"
            ),
            sources=[("media", "userUid")],
            table="User",
            column="uid",
        ),
        ArchiveReference(
            code="MISSING_STORAGE_PROVIDER",
            message="Media references storage providers missing from the archive",
            sources=[("media", "storageProviderId")],
            target_key="storageProviders",
            target_field="id",
            kind="string",
        ),
        ArchiveReference(
            code="MISSING_FOLDERS",
            message="Media references virtual folders missing from the archive",
            sources=[("media", "folderId")],
            target_key="virtualFolders",
            target_field="id",
        ),
        ArchiveReference(
            code="MISSING_MEDIA_FOR_PHOTO",
            message="Gallery photos reference media missing from the archive",
            sources=[("photos", "mediaId")],
            target_key="media",
            target_field="id",
        ),
        ArchiveReference(
            code="MISSING_MEDIA_FOR_REFERENCE",
            message="Media references point at media missing from the archive",
            sources=[("mediaReferences", "mediaId")],
            target_key="media",
            target_field="id",
        ),
        _media_reference_check(
            "MISSING_POSTS_FOR_MEDIA_REFERENCE", "posts", "postId", "Post", "id"
        ),
        _media_reference_check(
            "MISSING_PAGES_FOR_MEDIA_REFERENCE", "pages", "pageId", "Page", "id", "string"
        ),
        _media_reference_check(
            "MISSING_TAGS_FOR_MEDIA_REFERENCE", "tags", "tagSlug", "Tag", "slug", "string"
        ),
        _media_reference_check(
            "MISSING_CATEGORIES_FOR_MEDIA_REFERENCE",
            "categories",
            "categoryId",
            "Category",
            "id",
        ),
        _media_reference_check(
            "MISSING_PROJECTS_FOR_MEDIA_REFERENCE", "projects", "projectId", "Project", "id"
        ),
    )
