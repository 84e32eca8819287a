"""
Slack integration schema.

Manages:
- slack_integrations: workspace connections
- slack_channel_mappings: internal channel to Slack channel links
- slack_message_sync: per-message sync ledger
- slack_user_mappings: internal user to Slack user links
"""

from ..model import (
    CheckSpec,
    IndexSpec,
    TableSpec,
    UniqueSpec,
    column,
    ref,
    timestamps,
    user_ref,
    uuid_pk,
)
from ..model.columns import BOOLEAN, EMPTY_OBJECT, JSONB, NOW, TEXT, TEXT_ARRAY, TIMESTAMPTZ
from .base import SchemaModule


def _integration_ref():
    return ref("integration_id", "slack_integrations.id", nullable=False, ondelete="CASCADE")


def _flag(name):
    return column(name, BOOLEAN, nullable=False, default=True)


SLACK_INTEGRATIONS = TableSpec(
    "slack_integrations",
    [
        uuid_pk(),
        column("workspace_id", TEXT, nullable=False),
        column("workspace_name", TEXT, nullable=False),
        column("team_id", TEXT, nullable=False),
        column("bot_token", TEXT, nullable=False),
        column("bot_user_id", TEXT),
        column("bot_scopes", TEXT_ARRAY),
        column("access_token", TEXT),
        column("refresh_token", TEXT),
        column("token_expires_at", TIMESTAMPTZ),
        column("webhook_url", TEXT),
        column("signing_secret", TEXT),
        _flag("is_active"),
        _flag("sync_enabled"),
        column("sync_direction", TEXT, nullable=False, default="bidirectional"),
        user_ref("created_by", nullable=False, ondelete="CASCADE"),
        *timestamps(nullable=False),
        column("last_sync_at", TIMESTAMPTZ),
        column("settings", JSONB, default=EMPTY_OBJECT),
    ],
    checks=[
        CheckSpec(
            "slack_integrations_sync_direction_check",
            "sync_direction IN ('bidirectional', 'to_slack', 'from_slack', 'disabled')",
        ),
    ],
    indexes=[
        IndexSpec("idx_slack_integrations_workspace_id", ("workspace_id",)),
        IndexSpec("idx_slack_integrations_team_id", ("team_id",)),
        IndexSpec("idx_slack_integrations_is_active", ("is_active",)),
        IndexSpec("idx_slack_integrations_created_by", ("created_by",)),
    ],
)

SLACK_CHANNEL_MAPPINGS = TableSpec(
    "slack_channel_mappings",
    [
        uuid_pk(),
        _integration_ref(),
        ref("internal_channel_id", "message_channels.id", nullable=False, ondelete="CASCADE"),
        column("slack_channel_id", TEXT, nullable=False),
        column("slack_channel_name", TEXT, nullable=False),
        _flag("is_active"),
        _flag("sync_enabled"),
        *timestamps(nullable=False),
    ],
    unique=[
        UniqueSpec(("integration_id", "internal_channel_id")),
        UniqueSpec(("integration_id", "slack_channel_id")),
    ],
    indexes=[
        IndexSpec("idx_slack_channel_mappings_integration_id", ("integration_id",)),
        IndexSpec("idx_slack_channel_mappings_internal_channel_id", ("internal_channel_id",)),
        IndexSpec("idx_slack_channel_mappings_slack_channel_id", ("slack_channel_id",)),
        IndexSpec("idx_slack_channel_mappings_is_active", ("is_active",)),
    ],
)

SLACK_MESSAGE_SYNC = TableSpec(
    "slack_message_sync",
    [
        uuid_pk(),
        _integration_ref(),
        ref("internal_message_id", "messages.id", nullable=False, ondelete="CASCADE"),
        column("slack_message_ts", TEXT, nullable=False),
        column("slack_channel_id", TEXT, nullable=False),
        column("sync_direction", TEXT, nullable=False),
        column("synced_at", TIMESTAMPTZ, nullable=False, default=NOW),
    ],
    unique=[
        UniqueSpec(("integration_id", "internal_message_id")),
        UniqueSpec(("integration_id", "slack_message_ts", "slack_channel_id")),
    ],
    checks=[
        CheckSpec(
            "slack_message_sync_sync_direction_check",
            "sync_direction IN ('to_slack', 'from_slack')",
        ),
    ],
    indexes=[
        IndexSpec("idx_slack_message_sync_integration_id", ("integration_id",)),
        IndexSpec("idx_slack_message_sync_internal_message_id", ("internal_message_id",)),
        IndexSpec("idx_slack_message_sync_slack_message_ts", ("slack_message_ts",)),
        IndexSpec("idx_slack_message_sync_synced_at", ("synced_at DESC",)),
    ],
)

SLACK_USER_MAPPINGS = TableSpec(
    "slack_user_mappings",
    [
        uuid_pk(),
        _integration_ref(),
        user_ref("internal_user_id", nullable=False, ondelete="CASCADE"),
        column("slack_user_id", TEXT, nullable=False),
        column("slack_user_name", TEXT),
        column("slack_user_email", TEXT),
        _flag("is_active"),
        *timestamps(nullable=False),
    ],
    unique=[
        UniqueSpec(("integration_id", "internal_user_id")),
        UniqueSpec(("integration_id", "slack_user_id")),
    ],
    indexes=[
        IndexSpec("idx_slack_user_mappings_integration_id", ("integration_id",)),
        IndexSpec("idx_slack_user_mappings_internal_user_id", ("internal_user_id",)),
        IndexSpec("idx_slack_user_mappings_slack_user_id", ("slack_user_id",)),
    ],
)


class SlackModule(SchemaModule):
    name = "slack"
    depends_on = ("messaging",)
    tables = (
        SLACK_INTEGRATIONS,
        SLACK_CHANNEL_MAPPINGS,
        SLACK_MESSAGE_SYNC,
        SLACK_USER_MAPPINGS,
    )
