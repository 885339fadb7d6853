"""Audit, health-check, cron and cloud-trigger history."""

from scoped_backup.backup.models import BackupScope
from scoped_backup.backup.scopes.base import ScopeHandler, SequenceTarget, TableDef


class OpsLogsScope(ScopeHandler):
    scope = BackupScope.OPS_LOGS
    label = "Operations logs"
    description = "Audit logs, health checks, scheduled task and cloud trigger history"

    tables = (
        TableDef(name="AuditLog", data_key="auditLogs"),
        TableDef(name="HealthCheck", data_key="healthChecks"),
        TableDef(name="CronHistory", data_key="cronHistories"),
        TableDef(name="CloudTriggerHistory", data_key="cloudTriggerHistories"),
    )

    sequences = (
        SequenceTarget(table="AuditLog", column="id"),
        SequenceTarget(table="HealthCheck", column="id"),
        SequenceTarget(table="CronHistory", column="id"),
        SequenceTarget(table="CloudTriggerHistory", column="id"),
    )
