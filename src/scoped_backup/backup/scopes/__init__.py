"""Per-scope export/plan/check/replace strategies."""

from scoped_backup.backup.scopes.analytics import AnalyticsScope
from scoped_backup.backup.scopes.assets import AssetsScope
from scoped_backup.backup.scopes.base import (
    ArchiveReference,
    DatabaseReference,
    LinkDef,
    RiskWarning,
    ScopeHandler,
    SequenceTarget,
    TableDef,
)
from scoped_backup.backup.scopes.content import ContentScope
from scoped_backup.backup.scopes.core import CoreBaseScope
from scoped_backup.backup.scopes.ops_logs import OpsLogsScope

__all__ = [
    "AnalyticsScope",
    "ArchiveReference",
    "AssetsScope",
    "ContentScope",
    "CoreBaseScope",
    "DatabaseReference",
    "LinkDef",
    "OpsLogsScope",
    "RiskWarning",
    "ScopeHandler",
    "SequenceTarget",
    "TableDef",
]
