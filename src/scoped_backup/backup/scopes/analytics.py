"""View counters, page views and search logs."""

from scoped_backup.backup.models import BackupScope
from scoped_backup.backup.scopes.base import (
    DatabaseReference,
    ScopeHandler,
    SequenceTarget,
    TableDef,
)


class AnalyticsScope(ScopeHandler):
    scope = BackupScope.ANALYTICS
    label = "Analytics"
    description = "View-count caches, page views and their archives, search logs"
    depends_on = (BackupScope.CONTENT,)

    tables = (
        TableDef(name="ViewCountCache", data_key="viewCountCaches", order_by="path"),
        TableDef(name="PageViewArchive", data_key="pageViewArchives", order_by="date"),
        TableDef(name="PageView", data_key="pageViews", order_by="timestamp"),
        TableDef(name="SearchLog", data_key="searchLogs"),
    )

    sequences = (SequenceTarget(table="SearchLog", column="id"),)

    references = (
        DatabaseReference(
            code="MISSING_POST_SLUGS",
            message=(
                "View-count caches reference post slugs that do not exist in the "
                "target; restore the content scope first"
            ),
            sources=[("viewCountCaches", "postSlug")],
            table="Post",
            column="slug",
            kind="string",
        ),
    )
