"""Core identities, site configuration, pages, notices and messaging."""

from scoped_backup.backup.models import BackupScope
from scoped_backup.backup.scopes.base import (
    ArchiveReference,
    RiskWarning,
    ScopeHandler,
    SequenceTarget,
    TableDef,
)


class CoreBaseScope(ScopeHandler):
    scope = BackupScope.CORE_BASE
    label = "Core"
    description = (
        "Users, authentication sessions, site configuration, pages and menus, "
        "notices and private messages"
    )

    tables = (
        TableDef(name="User", data_key="users", order_by="uid"),
        TableDef(name="Config", data_key="configs", order_by="key"),
        TableDef(name="CustomDictionary", data_key="customDictionary"),
        TableDef(name="Page", data_key="pages"),
        TableDef(name="Menu", data_key="menus"),
        TableDef(name="Account", data_key="accounts"),
        TableDef(name="RefreshToken", data_key="refreshTokens", order_by="createdAt"),
        TableDef(name="PasswordReset", data_key="passwordResets", order_by="createdAt"),
        TableDef(name="Passkey", data_key="passkeys"),
        TableDef(name="Notice", data_key="notices", order_by="createdAt"),
        TableDef(name="MailSubscription", data_key="mailSubscriptions"),
        TableDef(name="PushSubscription", data_key="pushSubscriptions", order_by="createdAt"),
        TableDef(name="Conversation", data_key="conversations", order_by="createdAt"),
        TableDef(
            name="ConversationParticipant",
            data_key="conversationParticipants",
            order_by="conversationId, userUid",
        ),
        # Replies point at earlier messages
        TableDef(
            name="Message",
            data_key="messages",
            order_by="createdAt",
            sort_by=["createdAt"],
        ),
    )

    sequences = (
        SequenceTarget(table="User", column="uid"),
        SequenceTarget(table="CustomDictionary", column="id"),
        SequenceTarget(table="MailSubscription", column="id"),
    )

    # Users are replaced wholesale, so every reference must resolve inside the archive
    references = (
        ArchiveReference(
            code="MISSING_CONVERSATIONS_FOR_PARTICIPANTS",
            message="Conversation participants reference conversations missing from the archive",
            sources=[("conversationParticipants", "conversationId")],
            target_key="conversations",
            target_field="id",
            kind="string",
        ),
        ArchiveReference(
            code="MISSING_USERS_FOR_PARTICIPANTS",
            message="Conversation participants reference users missing from the archive",
            sources=[("conversationParticipants", "userUid")],
            target_key="users",
            target_field="uid",
        ),
        ArchiveReference(
            code="MISSING_CONVERSATIONS_FOR_MESSAGES",
            message="Messages reference conversations missing from the archive",
            sources=[("messages", "conversationId")],
            target_key="conversations",
            target_field="id",
            kind="string",
        ),
        ArchiveReference(
            code="MISSING_USERS_FOR_MESSAGES",
            message="Messages reference sender users missing from the archive",
            sources=[("messages", "senderUid")],
            target_key="users",
            target_field="uid",
        ),
        ArchiveReference(
            code="MISSING_MESSAGE_REPLY_TARGETS",
            message="Message replies reference a replyToMessageId missing from the archive",
            sources=[("messages", "replyToMessageId")],
            target_key="messages",
            target_field="id",
            kind="string",
        ),
    )

    warnings = (
        RiskWarning(
            code="CORE_BASE_RESTORE_RISK",
            message=(
                "The target already holds content or media. Replacing core data may "
                "break their references; restore into an empty instance, or restore "
                "every scope in dependency order"
            ),
            tables=["Post", "Project", "Comment", "Media", "MediaReference"],
        ),
    )
