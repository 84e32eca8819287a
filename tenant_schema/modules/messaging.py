"""
Messaging schema.

Manages:
- message_channels, channel_members
- message_threads, thread_participants
- messages and their reactions, mentions, attachments and read receipts
- message_drafts, message_pins
- update_thread_message_stats(), increment_thread_unread_count(): keep
  thread counters current as messages arrive

The first messaging release stored threads as free-standing conversations
(``thread_type``, ``participants``). Those tables are rebuilt into the
channel-based shape.
"""

import sqlalchemy as sa

from ..model import (
    CheckSpec,
    FunctionSpec,
    IndexSpec,
    RebuildRule,
    TableSpec,
    TriggerBinding,
    UniqueSpec,
    agency_column,
    column,
    created_at,
    ref,
    timestamps,
    user_ref,
    uuid_pk,
)
from ..model.columns import (
    BIGINT,
    BOOLEAN,
    EMPTY_LIST,
    EMPTY_OBJECT,
    INTEGER,
    JSONB,
    NOW,
    TEXT,
    TIMESTAMPTZ,
    UUID,
)
from .base import SchemaModule

DEFAULT_NOTIFICATION_PREFERENCES = sa.text("""'{"mentions": true, "all": true}'::jsonb""")


def _joined_at():
    return column("joined_at", TIMESTAMPTZ, nullable=False, default=NOW)


def _message_ref():
    return ref("message_id", "messages.id", nullable=False, ondelete="CASCADE")


def _member(name="user_id"):
    return user_ref(name, nullable=False, ondelete="CASCADE")


MESSAGE_CHANNELS = TableSpec(
    "message_channels",
    [
        uuid_pk(),
        column("name", TEXT, nullable=False),
        column("description", TEXT),
        column("channel_type", TEXT, nullable=False, default="public"),
        agency_column(nullable=False),
        _member("created_by"),
        column("is_archived", BOOLEAN, nullable=False, default=False),
        column("is_pinned", BOOLEAN, nullable=False, default=False),
        column("settings", JSONB, default=EMPTY_OBJECT),
        *timestamps(nullable=False),
        column("archived_at", TIMESTAMPTZ),
    ],
    checks=[
        CheckSpec(
            "message_channels_channel_type_check",
            "channel_type IN ('public', 'private', 'direct')",
        ),
    ],
    indexes=[
        IndexSpec("idx_message_channels_agency_id", ("agency_id",)),
        IndexSpec("idx_message_channels_channel_type", ("channel_type",)),
        IndexSpec("idx_message_channels_is_archived", ("is_archived",)),
        IndexSpec("idx_message_channels_created_by", ("created_by",)),
        IndexSpec("idx_message_channels_name", ("name",)),
    ],
)

MESSAGE_THREADS = TableSpec(
    "message_threads",
    [
        uuid_pk(),
        ref("channel_id", "message_channels.id", nullable=False, ondelete="CASCADE"),
        column("title", TEXT),
        column("parent_message_id", UUID),
        agency_column(nullable=False),
        _member("created_by"),
        column("last_message_at", TIMESTAMPTZ),
        column("message_count", INTEGER, nullable=False, default=0),
        column("is_pinned", BOOLEAN, nullable=False, default=False),
        column("is_archived", BOOLEAN, nullable=False, default=False),
        *timestamps(nullable=False),
    ],
    indexes=[
        IndexSpec("idx_message_threads_channel_id", ("channel_id",)),
        IndexSpec("idx_message_threads_agency_id", ("agency_id",)),
        IndexSpec("idx_message_threads_created_by", ("created_by",)),
        IndexSpec("idx_message_threads_last_message_at", ("last_message_at DESC",)),
        IndexSpec("idx_message_threads_parent_message_id", ("parent_message_id",)),
        IndexSpec("idx_message_threads_is_archived", ("is_archived",)),
    ],
    rebuild=RebuildRule("2", legacy_columns=("thread_type", "participants")),
)

MESSAGES = TableSpec(
    "messages",
    [
        uuid_pk(),
        ref("thread_id", "message_threads.id", nullable=False, ondelete="CASCADE"),
        _member("sender_id"),
        column("content", TEXT, nullable=False),
        column("message_type", TEXT, nullable=False, default="text"),
        ref("parent_message_id", "messages.id", ondelete="SET NULL"),
        column("is_edited", BOOLEAN, nullable=False, default=False),
        column("edited_at", TIMESTAMPTZ),
        column("is_deleted", BOOLEAN, nullable=False, default=False),
        column("deleted_at", TIMESTAMPTZ),
        user_ref("deleted_by", ondelete="SET NULL"),
        column("metadata", JSONB, default=EMPTY_OBJECT),
        agency_column(nullable=False),
        *timestamps(nullable=False),
    ],
    checks=[
        CheckSpec(
            "messages_message_type_check",
            "message_type IN ('text', 'file', 'system', 'reply')",
        ),
    ],
    indexes=[
        IndexSpec("idx_messages_thread_id", ("thread_id",)),
        IndexSpec("idx_messages_sender_id", ("sender_id",)),
        IndexSpec("idx_messages_agency_id", ("agency_id",)),
        IndexSpec("idx_messages_created_at", ("created_at DESC",)),
        IndexSpec("idx_messages_parent_message_id", ("parent_message_id",)),
        IndexSpec("idx_messages_is_deleted", ("is_deleted",)),
        IndexSpec("idx_messages_message_type", ("message_type",)),
        IndexSpec(
            "idx_messages_content_search",
            ("to_tsvector('english', content)",),
            using="gin",
        ),
    ],
    triggers=[
        TriggerBinding(
            "trigger_update_thread_message_stats",
            "update_thread_message_stats",
            timing="AFTER",
            events=("INSERT", "DELETE"),
        ),
        TriggerBinding(
            "trigger_increment_thread_unread_count",
            "increment_thread_unread_count",
            timing="AFTER",
            events=("INSERT",),
        ),
    ],
)

THREAD_PARTICIPANTS = TableSpec(
    "thread_participants",
    [
        uuid_pk(),
        ref("thread_id", "message_threads.id", nullable=False, ondelete="CASCADE"),
        _member(),
        column("last_read_at", TIMESTAMPTZ),
        ref("last_read_message_id", "messages.id", ondelete="SET NULL"),
        column("unread_count", INTEGER, nullable=False, default=0),
        column("is_muted", BOOLEAN, nullable=False, default=False),
        _joined_at(),
        column("left_at", TIMESTAMPTZ),
    ],
    unique=[UniqueSpec(("thread_id", "user_id"))],
    indexes=[
        IndexSpec("idx_thread_participants_thread_id", ("thread_id",)),
        IndexSpec("idx_thread_participants_user_id", ("user_id",)),
        IndexSpec("idx_thread_participants_unread_count", ("unread_count",)),
    ],
)

CHANNEL_MEMBERS = TableSpec(
    "channel_members",
    [
        uuid_pk(),
        ref("channel_id", "message_channels.id", nullable=False, ondelete="CASCADE"),
        _member(),
        column("role", TEXT, nullable=False, default="member"),
        column("is_muted", BOOLEAN, nullable=False, default=False),
        column("notification_preferences", JSONB, default=DEFAULT_NOTIFICATION_PREFERENCES),
        _joined_at(),
        column("left_at", TIMESTAMPTZ),
    ],
    unique=[UniqueSpec(("channel_id", "user_id"))],
    checks=[CheckSpec("channel_members_role_check", "role IN ('owner', 'admin', 'member')")],
    indexes=[
        IndexSpec("idx_channel_members_channel_id", ("channel_id",)),
        IndexSpec("idx_channel_members_user_id", ("user_id",)),
        IndexSpec("idx_channel_members_role", ("role",)),
    ],
)

MESSAGE_REACTIONS = TableSpec(
    "message_reactions",
    [
        uuid_pk(),
        _message_ref(),
        _member(),
        column("emoji", TEXT, nullable=False),
        created_at(nullable=False),
    ],
    unique=[UniqueSpec(("message_id", "user_id", "emoji"))],
    indexes=[
        IndexSpec("idx_message_reactions_message_id", ("message_id",)),
        IndexSpec("idx_message_reactions_user_id", ("user_id",)),
        IndexSpec("idx_message_reactions_emoji", ("emoji",)),
    ],
)

MESSAGE_MENTIONS = TableSpec(
    "message_mentions",
    [
        uuid_pk(),
        _message_ref(),
        _member("mentioned_user_id"),
        column("mention_type", TEXT, nullable=False, default="user"),
        created_at(nullable=False),
    ],
    checks=[
        CheckSpec(
            "message_mentions_mention_type_check",
            "mention_type IN ('user', 'channel', 'here', 'everyone')",
        ),
    ],
    indexes=[
        IndexSpec("idx_message_mentions_message_id", ("message_id",)),
        IndexSpec("idx_message_mentions_mentioned_user_id", ("mentioned_user_id",)),
        IndexSpec("idx_message_mentions_mention_type", ("mention_type",)),
    ],
)

MESSAGE_ATTACHMENTS = TableSpec(
    "message_attachments",
    [
        uuid_pk(),
        _message_ref(),
        column("file_name", TEXT, nullable=False),
        column("file_path", TEXT, nullable=False),
        column("file_size", BIGINT, nullable=False),
        column("mime_type", TEXT, nullable=False),
        column("file_type", TEXT),
        column("thumbnail_path", TEXT),
        _member("uploaded_by"),
        created_at(nullable=False),
    ],
    indexes=[
        IndexSpec("idx_message_attachments_message_id", ("message_id",)),
        IndexSpec("idx_message_attachments_uploaded_by", ("uploaded_by",)),
        IndexSpec("idx_message_attachments_file_type", ("file_type",)),
    ],
)

MESSAGE_READS = TableSpec(
    "message_reads",
    [
        uuid_pk(),
        _message_ref(),
        _member(),
        column("read_at", TIMESTAMPTZ, nullable=False, default=NOW),
    ],
    unique=[UniqueSpec(("message_id", "user_id"))],
    indexes=[
        IndexSpec("idx_message_reads_message_id", ("message_id",)),
        IndexSpec("idx_message_reads_user_id", ("user_id",)),
        IndexSpec("idx_message_reads_read_at", ("read_at",)),
    ],
)

MESSAGE_DRAFTS = TableSpec(
    "message_drafts",
    [
        uuid_pk(),
        ref("thread_id", "message_threads.id", ondelete="CASCADE"),
        _member(),
        column("content", TEXT, nullable=False),
        column("attachments", JSONB, default=EMPTY_LIST),
        *timestamps(nullable=False),
    ],
    unique=[UniqueSpec(("thread_id", "user_id"))],
    indexes=[
        IndexSpec("idx_message_drafts_thread_id", ("thread_id",)),
        IndexSpec("idx_message_drafts_user_id", ("user_id",)),
    ],
)

MESSAGE_PINS = TableSpec(
    "message_pins",
    [
        uuid_pk(),
        _message_ref(),
        ref("channel_id", "message_channels.id", nullable=False, ondelete="CASCADE"),
        _member("pinned_by"),
        column("pinned_at", TIMESTAMPTZ, nullable=False, default=NOW),
    ],
    unique=[UniqueSpec(("message_id", "channel_id"))],
    indexes=[
        IndexSpec("idx_message_pins_message_id", ("message_id",)),
        IndexSpec("idx_message_pins_channel_id", ("channel_id",)),
        IndexSpec("idx_message_pins_pinned_at", ("pinned_at DESC",)),
    ],
)

UPDATE_THREAD_MESSAGE_STATS = FunctionSpec(
    "update_thread_message_stats",
    """
CREATE OR REPLACE FUNCTION {schema}.update_thread_message_stats()
RETURNS TRIGGER AS $$
BEGIN
  IF TG_OP = 'INSERT' THEN
    UPDATE {schema}.message_threads
    SET
      last_message_at = NEW.created_at,
      message_count = message_count + 1,
      updated_at = NOW()
    WHERE id = NEW.thread_id;
  ELSIF TG_OP = 'DELETE' THEN
    UPDATE {schema}.message_threads
    SET
      message_count = GREATEST(0, message_count - 1),
      updated_at = NOW()
    WHERE id = OLD.thread_id;
  END IF;
  RETURN COALESCE(NEW, OLD);
END;
$$ LANGUAGE plpgsql;
""",
)

INCREMENT_THREAD_UNREAD_COUNT = FunctionSpec(
    "increment_thread_unread_count",
    """
CREATE OR REPLACE FUNCTION {schema}.increment_thread_unread_count()
RETURNS TRIGGER AS $$
BEGIN
  IF TG_OP = 'INSERT' THEN
    UPDATE {schema}.thread_participants
    SET unread_count = unread_count + 1
    WHERE thread_id = NEW.thread_id
      AND user_id != NEW.sender_id
      AND (last_read_at IS NULL OR last_read_at < NEW.created_at);
  END IF;
  RETURN NEW;
END;
$$ LANGUAGE plpgsql;
""",
)


class MessagingModule(SchemaModule):
    name = "messaging"
    depends_on = ("auth",)
    functions = (UPDATE_THREAD_MESSAGE_STATS, INCREMENT_THREAD_UNREAD_COUNT)
    tables = (
        MESSAGE_CHANNELS,
        MESSAGE_THREADS,
        MESSAGES,
        THREAD_PARTICIPANTS,
        CHANNEL_MEMBERS,
        MESSAGE_REACTIONS,
        MESSAGE_MENTIONS,
        MESSAGE_ATTACHMENTS,
        MESSAGE_READS,
        MESSAGE_DRAFTS,
        MESSAGE_PINS,
    )
