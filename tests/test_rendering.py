"""
Tests for the SQL the PostgreSQL backend emits.

DDL that goes through alembic is rendered in offline mode; raw statements are
captured by a connection double. No database is needed.
"""

import io
from types import SimpleNamespace

import pytest
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy.exc import DBAPIError

from tenant_schema.catalog.postgres import PostgresBackend
from tenant_schema.core.errors import StatementFailed
from tenant_schema.model import (
    CheckSpec,
    ForeignKeySpec,
    IndexSpec,
    TableSpec,
    ViewSpec,
    WindowOrdinal,
    column,
    ref,
    uuid_pk,
)
from tenant_schema.model.columns import INTEGER, TEXT, varchar
from tenant_schema.model.tables import touch_trigger


class FakeResult:
    def __init__(self, value=None, rowcount=0, rows=()):
        self.value = value
        self.rowcount = rowcount
        self.rows = list(rows)

    def __iter__(self):
        return iter(self.rows)

    def scalar(self):
        return self.value

    def all(self):
        return []


class RecordingConnection:
    """Captures statements instead of executing them."""

    def __init__(self, scalar=None, rowcount=0, in_transaction=False, rows=()):
        self.executed = []
        self.rows = rows
        self.raw = []
        self.scalar = scalar
        self.rowcount = rowcount
        self.transaction_open = in_transaction
        self.options = {}
        self.default_isolation_level = "READ COMMITTED"
        self.commits = 0

    def execute(self, statement, params=None):
        self.executed.append((str(statement), params))
        return FakeResult(self.scalar, self.rowcount, self.rows)

    def exec_driver_sql(self, sql, execution_options=None):
        self.raw.append(sql)

    def in_transaction(self):
        return self.transaction_open

    def get_execution_options(self):
        return dict(self.options)

    def execution_options(self, **options):
        self.options.update(options)
        return self

    def commit(self):
        self.commits += 1
        self.transaction_open = False


@pytest.fixture
def offline():
    """A backend whose alembic operations write SQL into a buffer."""
    buffer = io.StringIO()
    context = MigrationContext.configure(
        dialect_name="postgresql",
        opts={"as_sql": True, "output_buffer": buffer},
    )
    backend = PostgresBackend(None, operations=Operations(context))
    backend.sql = buffer.getvalue
    return backend


class TestOfflineDDL:
    """Table and column DDL rendered by alembic."""

    def test_create_table(self, offline):
        spec = TableSpec(
            "widgets",
            [
                uuid_pk(),
                column("name", TEXT, nullable=False),
                column("status", varchar(20), default="draft"),
                column("size", INTEGER, default=0),
                ref("owner_id", "users.id", ondelete="CASCADE"),
            ],
            checks=[CheckSpec("widgets_size_check", "size > 0")],
        )
        offline.create_table(spec)
        sql = offline.sql()

        assert "CREATE TABLE public.widgets" in sql
        assert "DEFAULT uuid_generate_v4()" in sql
        assert "name TEXT NOT NULL" in sql
        assert "DEFAULT 'draft'" in sql
        assert "PRIMARY KEY (id)" in sql
        assert "REFERENCES public.users (id) ON DELETE CASCADE" in sql
        assert "CONSTRAINT widgets_size_check CHECK (size > 0)" in sql
        assert "CONSTRAINT widgets_owner_id_fkey FOREIGN KEY(owner_id)" in sql

    def test_add_column(self, offline):
        offline.add_column("widgets", column("notes", TEXT))
        assert "ALTER TABLE public.widgets ADD COLUMN notes TEXT" in offline.sql()

    def test_added_reference_gets_a_named_foreign_key(self, offline):
        offline.add_column("messages", ref("thread_id", "message_threads.id", ondelete="CASCADE"))
        sql = offline.sql()

        assert "ALTER TABLE public.messages ADD COLUMN thread_id UUID" in sql
        assert "ADD CONSTRAINT messages_thread_id_fkey FOREIGN KEY(thread_id)" in sql
        assert "REFERENCES public.message_threads (id) ON DELETE CASCADE" in sql

    def test_set_not_null(self, offline):
        offline.set_not_null("widgets", "name")
        assert "ALTER TABLE public.widgets ALTER COLUMN name SET NOT NULL" in offline.sql()

    def test_set_default(self, offline):
        offline.set_default("widgets", column("status", TEXT, default="draft"))
        assert "ALTER COLUMN status SET DEFAULT 'draft'" in offline.sql()

    def test_rename_column(self, offline):
        offline.rename_column("company_events", "all_day", "is_all_day")
        assert "RENAME all_day TO is_all_day" in offline.sql()

    def test_partial_index(self, offline):
        index = IndexSpec("idx_projects_code", ("project_code",), where="project_code IS NOT NULL")
        offline.create_index("projects", index, index.columns)
        sql = offline.sql()

        assert "CREATE INDEX idx_projects_code ON public.projects (project_code)" in sql
        assert "WHERE project_code IS NOT NULL" in sql

    def test_expression_index(self, offline):
        index = IndexSpec("idx_users_email_lower", ("lower(email)",), unique=True)
        offline.create_index("users", index, index.columns)
        sql = offline.sql()

        assert "CREATE UNIQUE INDEX idx_users_email_lower ON public.users" in sql
        assert "lower(email)" in sql

    def test_check_constraint(self, offline):
        offline.add_check("projects", CheckSpec("projects_progress_check", "progress >= 0"))
        sql = offline.sql()

        assert "ALTER TABLE public.projects ADD CONSTRAINT projects_progress_check" in sql
        assert "CHECK (progress >= 0)" in sql

    def test_foreign_key(self, offline):
        fk = ForeignKeySpec("serial_numbers_purchase_order_id_fkey", ("purchase_order_id",), "purchase_orders")
        offline.create_foreign_key("serial_numbers", fk)
        sql = offline.sql()

        assert "ADD CONSTRAINT serial_numbers_purchase_order_id_fkey" in sql
        assert "REFERENCES public.purchase_orders (id)" in sql
        assert "NOT VALID" not in sql

    def test_restored_foreign_key_skips_existing_rows(self, offline):
        fk = ForeignKeySpec("messages_thread_id_fkey", ("thread_id",), "message_threads", ondelete="CASCADE")
        offline.create_foreign_key("messages", fk, validate=False)
        sql = offline.sql()

        assert "ADD CONSTRAINT messages_thread_id_fkey" in sql
        assert "ON DELETE CASCADE NOT VALID" in sql


class TestRawStatements:
    """Statements SQLAlchemy cannot model are issued verbatim."""

    def test_trigger_is_dropped_then_created(self):
        connection = RecordingConnection()
        PostgresBackend(connection).bind_trigger("users", touch_trigger("users"))

        assert connection.raw == [
            "DROP TRIGGER IF EXISTS update_users_updated_at ON public.users",
            "CREATE TRIGGER update_users_updated_at BEFORE UPDATE ON public.users "
            "FOR EACH ROW EXECUTE FUNCTION public.update_updated_at_column()",
        ]

    def test_enum_value_is_escaped(self):
        connection = RecordingConnection()
        PostgresBackend(connection).add_enum_value("app_role", "o'neil")

        assert connection.raw == ["ALTER TYPE public.app_role ADD VALUE IF NOT EXISTS 'o''neil'"]

    def test_view_uses_tenant_schema(self):
        connection = RecordingConnection()
        PostgresBackend(connection, schema="tenant_a").create_view(
            ViewSpec("active_users", "SELECT id FROM {schema}.users")
        )

        assert connection.raw == [
            "CREATE OR REPLACE VIEW tenant_a.active_users AS\nSELECT id FROM tenant_a.users"
        ]

    def test_count_pending_uses_rule_predicate(self):
        connection = RecordingConnection(scalar=4)
        pending = PostgresBackend(connection).count_pending(
            "journal_entry_lines", "line_number", WindowOrdinal("journal_entry_id")
        )

        assert pending == 4
        sql, _ = connection.executed[0]
        assert "FROM public.journal_entry_lines" in sql
        assert "(line_number IS NULL OR line_number = 0)" in sql

    def test_reserved_words_are_quoted(self):
        connection = RecordingConnection(scalar=0)
        PostgresBackend(connection).count_nulls("user", "order")

        sql, _ = connection.executed[0]
        assert 'public."user"' in sql
        assert '"order" IS NULL' in sql

    def test_enum_values_missing_type(self):
        assert PostgresBackend(RecordingConnection()).enum_values("app_role") is None

    def test_inbound_foreign_keys(self):
        connection = RecordingConnection(
            rows=[
                SimpleNamespace(
                    name="messages_thread_id_fkey",
                    source_table="messages",
                    columns=["thread_id"],
                    ref_columns=["id"],
                    on_delete="c",
                ),
                SimpleNamespace(
                    name="message_drafts_thread_id_fkey",
                    source_table="message_drafts",
                    columns=["thread_id"],
                    ref_columns=["id"],
                    on_delete="a",
                ),
            ]
        )
        held = PostgresBackend(connection, schema="tenant_a").inbound_foreign_keys("message_threads")

        assert [(h.table, h.foreign_key.ondelete) for h in held] == [
            ("messages", "CASCADE"),
            ("message_drafts", None),
        ]
        assert held[0].foreign_key == ForeignKeySpec(
            "messages_thread_id_fkey", ("thread_id",), "message_threads", ("id",), "CASCADE"
        )
        _, params = connection.executed[0]
        assert params == {"schema": "tenant_a", "table": "message_threads"}


class OrigError(Exception):
    def __init__(self, sqlstate):
        super().__init__(sqlstate)
        self.sqlstate = sqlstate


class TestErrorsAndSessions:
    def test_duplicate_sqlstates(self):
        backend = PostgresBackend(None)

        duplicate = DBAPIError("CREATE TABLE users", None, OrigError("42P07"))
        assert backend.duplicate_kind(duplicate) == "duplicate_table"
        denied = DBAPIError("CREATE TABLE users", None, OrigError("42501"))
        assert backend.duplicate_kind(denied) is None
        assert backend.duplicate_kind(RuntimeError("boom")) is None

    def test_autocommit_restores_isolation(self):
        connection = RecordingConnection()
        backend = PostgresBackend(connection)

        with backend.autocommit():
            assert connection.options["isolation_level"] == "AUTOCOMMIT"
        assert connection.options["isolation_level"] == "READ COMMITTED"

    def test_autocommit_refuses_open_transaction(self):
        backend = PostgresBackend(RecordingConnection(in_transaction=True))

        with pytest.raises(StatementFailed) as excinfo:
            with backend.autocommit():
                pass
        assert excinfo.value.code == "connection_busy"
