"""Posts, taxonomy, comments, projects and friend links."""

from scoped_backup.backup.models import BackupScope
from scoped_backup.backup.scopes.base import (
    ArchiveReference,
    DatabaseReference,
    LinkDef,
    RiskWarning,
    ScopeHandler,
    SequenceTarget,
    TableDef,
)


class ContentScope(ScopeHandler):
    scope = BackupScope.CONTENT
    label = "Content"
    description = "Posts, tags, categories, comments, projects and friend links"
    depends_on = (BackupScope.CORE_BASE,)

    tables = (
        TableDef(name="Tag", data_key="tags", order_by="slug"),
        TableDef(name="Category", data_key="categories", sort_by=["depth"]),
        TableDef(name="Post", data_key="posts"),
        TableDef(name="Project", data_key="projects"),
        TableDef(name="FriendLink", data_key="friendLinks"),
        TableDef(
            name="Comment",
            data_key="comments",
            order_by="depth, createdAt",
            sort_by=["depth", "createdAt"],
        ),
        TableDef(name="CommentLike", data_key="commentLikes", order_by="createdAt"),
    )

    # Implicit many-to-many tables: "A"/"B" follow the alphabetical model order
    links = (
        LinkDef(
            name="PostTagLink",
            data_key="postTagLinks",
            table="_PostToTag",
            parent_table="Post",
            parent_field="postId",
            child_field="tagSlug",
            parent_column="A",
            child_column="B",
        ),
        LinkDef(
            name="PostCategoryLink",
            data_key="postCategoryLinks",
            table="_CategoryToPost",
            parent_table="Post",
            parent_field="postId",
            child_field="categoryId",
            parent_column="B",
            child_column="A",
        ),
        LinkDef(
            name="ProjectTagLink",
            data_key="projectTagLinks",
            table="_ProjectToTag",
            parent_table="Project",
            parent_field="projectId",
            child_field="tagSlug",
            parent_column="A",
            child_column="B",
        ),
        LinkDef(
            name="ProjectCategoryLink",
            data_key="projectCategoryLinks",
            table="_CategoryToProject",
            parent_table="Project",
            parent_field="projectId",
            child_field="categoryId",
            parent_column="B",
            child_column="A",
        ),
    )

    sequences = (
        SequenceTarget(table="Category", column="id"),
        SequenceTarget(table="Post", column="id"),
        SequenceTarget(table="Project", column="id"),
        SequenceTarget(table="FriendLink", column="id"),
    )

    references = (
        DatabaseReference(
            code="MISSING_CORE_BASE_USERS",
            message=(
                "Content references users that do not exist in the target; "
                "restore the core scope first"
            ),
            sources=[
                ("posts", "userUid"),
                ("projects", "userUid"),
                ("friendLinks", "ownerId"),
                ("friendLinks", "auditorId"),
                ("comments", "userUid"),
                ("commentLikes", "userUid"),
            ],
            table="User",
            column="uid",
        ),
        DatabaseReference(
            code="MISSING_CORE_BASE_PAGES",
            message=(
                "Comments reference pages that do not exist in the target; "
                "restore the core scope pages first"
            ),
            sources=[("comments", "pageId")],
            table="Page",
            column="id",
            kind="string",
        ),
        ArchiveReference(
            code="MISSING_COMMENT_POSTS",
            message="Comments reference posts missing from the archive",
            sources=[("comments", "postId")],
            target_key="posts",
            target_field="id",
        ),
        ArchiveReference(
            code="MISSING_COMMENT_PARENTS",
            message="Comments reference a parentId missing from the archive",
            sources=[("comments", "parentId")],
            target_key="comments",
            target_field="id",
            kind="string",
        ),
        ArchiveReference(
            code="MISSING_LIKE_COMMENTS",
            message="Comment likes reference comments missing from the archive",
            sources=[("commentLikes", "commentId")],
            target_key="comments",
            target_field="id",
            kind="string",
        ),
    )

    warnings = (
        RiskWarning(
            code="CONTENT_CASCADE_WARNING",
            message=(
                "The target has comments; replacing content discards existing "
                "comments and likes"
            ),
            tables=["Comment"],
            filters={"deletedAt": None},
        ),
        RiskWarning(
            code="CONTENT_ASSETS_CASCADE_WARNING",
            message=(
                "Replacing content cascades to media references bound to posts, "
                "projects, tags or categories"
            ),
            tables=["MediaReference"],
            not_null=["postId", "projectId", "tagSlug", "categoryId"],
        ),
        RiskWarning(
            code="CONTENT_ANALYTICS_CASCADE_WARNING",
            message=(
                "Replacing content cascades to view-count caches bound to post slugs"
            ),
            tables=["ViewCountCache"],
            not_null=["postSlug"],
        ),
    )
