"""
Clients and financial management schema.

Manages:
- clients: customer records
- invoices: invoices with payment tracking
- quotation_templates, quotations, quotation_line_items
- chart_of_accounts, journal_entries, journal_entry_lines: double-entry ledger
- job_categories, jobs, job_cost_items: job costing

quotation_templates is created before quotations and chart_of_accounts
before journal_entry_lines because of their foreign keys.
"""

from typing import List

from ..engine.invariants import ColumnPresenceCheck, InvariantCheck
from ..model import (
    ColumnMigrationRule,
    IndexSpec,
    TableSpec,
    WindowOrdinal,
    agency_column,
    column,
    created_by_column,
    ref,
    timestamps,
    uuid_pk,
)
from ..model.columns import BOOLEAN, DATE, INTEGER, JSONB, MONEY, RATE, TEXT, TIMESTAMPTZ, numeric
from .base import SchemaModule

QUANTITY = numeric(10, 2)

CLIENTS = TableSpec(
    "clients",
    [
        uuid_pk(),
        column("client_number", TEXT),
        column("name", TEXT, nullable=False),
        column("company_name", TEXT),
        column("industry", TEXT),
        column("email", TEXT),
        column("phone", TEXT),
        column("address", TEXT),
        column("city", TEXT),
        column("state", TEXT),
        column("postal_code", TEXT),
        column("country", TEXT),
        column("website", TEXT),
        column("contact_person", TEXT),
        column("contact_position", TEXT),
        column("contact_email", TEXT),
        column("contact_phone", TEXT),
        column("status", TEXT, default="active"),
        column("billing_address", TEXT),
        column("billing_city", TEXT),
        column("billing_state", TEXT),
        column("billing_postal_code", TEXT),
        column("billing_country", TEXT),
        column("tax_id", TEXT),
        column("payment_terms", TEXT),
        column("notes", TEXT),
        agency_column(),
        column("is_active", BOOLEAN, default=True),
        created_by_column(),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_clients_email", ("email",)),
        IndexSpec("idx_clients_status", ("status",)),
        IndexSpec("idx_clients_agency_id", ("agency_id",)),
        IndexSpec("idx_clients_is_active", ("is_active",)),
    ],
    critical=True,
)

INVOICES = TableSpec(
    "invoices",
    [
        uuid_pk(),
        column("invoice_number", TEXT, unique=True),
        ref("client_id", "clients.id"),
        column("title", TEXT, nullable=False),
        column("description", TEXT),
        column("status", TEXT, default="draft"),
        column("issue_date", DATE, nullable=False),
        column("due_date", DATE),
        column("subtotal", MONEY, default=0),
        column("tax_rate", RATE, default=0),
        column("discount", MONEY, default=0),
        column("total_amount", MONEY, default=0),
        column("notes", TEXT),
        agency_column(),
        created_by_column(),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_invoices_client_id", ("client_id",)),
        IndexSpec("idx_invoices_status", ("status",)),
        IndexSpec("idx_invoices_issue_date", ("issue_date",)),
        IndexSpec("idx_invoices_agency_id", ("agency_id",)),
        IndexSpec("idx_invoices_created_at", ("created_at",)),
    ],
    critical=True,
)

QUOTATION_TEMPLATES = TableSpec(
    "quotation_templates",
    [
        uuid_pk(),
        column("name", TEXT, nullable=False),
        column("description", TEXT),
        column("template_data", JSONB),
        column("is_default", BOOLEAN, default=False),
        column("is_active", BOOLEAN, default=True),
        column("last_used", TIMESTAMPTZ),
        agency_column(),
        created_by_column(),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_quotation_templates_agency_id", ("agency_id",)),
        IndexSpec("idx_quotation_templates_is_active", ("is_active",)),
    ],
)

QUOTATIONS = TableSpec(
    "quotations",
    [
        uuid_pk(),
        column("quotation_number", TEXT, unique=True),
        column("quote_number", TEXT),
        ref("client_id", "clients.id"),
        ref("template_id", "quotation_templates.id"),
        column("title", TEXT, nullable=False),
        column("description", TEXT),
        column("status", TEXT, default="draft"),
        column("issue_date", DATE),
        column("expiry_date", DATE),
        column("valid_until", DATE),
        column("subtotal", MONEY, default=0),
        column("tax_rate", RATE, default=0),
        column("tax_amount", MONEY, default=0),
        column("discount", MONEY, default=0),
        column("total_amount", MONEY, default=0),
        column("notes", TEXT),
        column("terms_and_conditions", TEXT),
        column("terms_conditions", TEXT),
        agency_column(),
        created_by_column(),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_quotations_client_id", ("client_id",)),
        IndexSpec("idx_quotations_status", ("status",)),
        IndexSpec("idx_quotations_agency_id", ("agency_id",)),
    ],
    critical=True,
)

QUOTATION_LINE_ITEMS = TableSpec(
    "quotation_line_items",
    [
        uuid_pk(),
        ref("quotation_id", "quotations.id", nullable=False, ondelete="CASCADE"),
        column("item_name", TEXT, nullable=False),
        column("description", TEXT),
        column("quantity", QUANTITY, default=1),
        column("unit_price", MONEY, default=0),
        column("tax_rate", RATE, default=0),
        column("discount", MONEY, default=0),
        column("discount_percentage", RATE, default=0),
        column("line_total", MONEY, default=0),
        column("sort_order", INTEGER, default=0),
        *timestamps(),
    ],
    indexes=[IndexSpec("idx_quotation_line_items_quotation_id", ("quotation_id",))],
)

CHART_OF_ACCOUNTS = TableSpec(
    "chart_of_accounts",
    [
        uuid_pk(),
        column("account_code", TEXT, nullable=False, unique=True),
        column("account_name", TEXT, nullable=False),
        column("account_type", TEXT, nullable=False),
        ref("parent_account_id", "chart_of_accounts.id"),
        column("is_active", BOOLEAN, default=True),
        column("description", TEXT),
        created_by_column(),
        agency_column(),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_chart_of_accounts_account_code", ("account_code",)),
        IndexSpec("idx_chart_of_accounts_account_type", ("account_type",)),
        IndexSpec("idx_chart_of_accounts_parent_account_id", ("parent_account_id",)),
        IndexSpec("idx_chart_of_accounts_agency_id", ("agency_id",)),
    ],
)

JOURNAL_ENTRIES = TableSpec(
    "journal_entries",
    [
        uuid_pk(),
        column("entry_number", TEXT, unique=True),
        column("entry_date", DATE, nullable=False),
        column("description", TEXT),
        column("reference", TEXT),
        column("status", TEXT, default="draft"),
        agency_column(),
        # Pre-calculated totals
        column("total_debit", MONEY, default=0),
        column("total_credit", MONEY, default=0),
        created_by_column(),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_journal_entries_entry_date", ("entry_date",)),
        IndexSpec("idx_journal_entries_agency_id", ("agency_id",)),
        IndexSpec("idx_journal_entries_status", ("status",)),
    ],
)

JOURNAL_ENTRY_LINES = TableSpec(
    "journal_entry_lines",
    [
        uuid_pk(),
        ref("journal_entry_id", "journal_entries.id", nullable=False, ondelete="CASCADE"),
        ref("account_id", "chart_of_accounts.id"),
        column("description", TEXT),
        column("debit_amount", MONEY, default=0),
        column("credit_amount", MONEY, default=0),
        column("line_number", INTEGER, default=1),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_journal_entry_lines_journal_entry_id", ("journal_entry_id",)),
        IndexSpec(
            "idx_journal_entry_lines_journal_entry_id_line_number",
            ("journal_entry_id", "line_number"),
        ),
    ],
    migrations=[ColumnMigrationRule("line_number", WindowOrdinal("journal_entry_id"))],
)

JOB_CATEGORIES = TableSpec(
    "job_categories",
    [
        uuid_pk(),
        column("name", TEXT, nullable=False, unique=True),
        column("description", TEXT),
        column("is_active", BOOLEAN, default=True),
        *timestamps(),
    ],
)

JOBS = TableSpec(
    "jobs",
    [
        uuid_pk(),
        column("job_number", TEXT, unique=True),
        ref("client_id", "clients.id"),
        ref("category_id", "job_categories.id"),
        column("name", TEXT, nullable=False),
        column("description", TEXT),
        column("status", TEXT, default="planning"),
        column("start_date", DATE),
        column("end_date", DATE),
        column("estimated_cost", MONEY, default=0),
        column("actual_cost", MONEY, default=0),
        column("budget", MONEY, default=0),
        agency_column(),
        created_by_column(),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_jobs_client_id", ("client_id",)),
        IndexSpec("idx_jobs_status", ("status",)),
        IndexSpec("idx_jobs_agency_id", ("agency_id",)),
    ],
)

JOB_COST_ITEMS = TableSpec(
    "job_cost_items",
    [
        uuid_pk(),
        ref("job_id", "jobs.id", nullable=False, ondelete="CASCADE"),
        column("item_name", TEXT, nullable=False),
        column("category", TEXT),
        column("quantity", QUANTITY, default=1),
        column("unit_cost", MONEY, default=0),
        column("total_cost", MONEY, default=0),
        column("description", TEXT),
        *timestamps(),
    ],
    indexes=[IndexSpec("idx_job_cost_items_job_id", ("job_id",))],
)


class ClientsFinancialModule(SchemaModule):
    name = "clients_financial"
    depends_on = ("auth",)
    tables = (
        CLIENTS,
        INVOICES,
        QUOTATION_TEMPLATES,
        QUOTATIONS,
        QUOTATION_LINE_ITEMS,
        CHART_OF_ACCOUNTS,
        JOURNAL_ENTRIES,
        JOURNAL_ENTRY_LINES,
        JOB_CATEGORIES,
        JOBS,
        JOB_COST_ITEMS,
    )

    def invariants(self) -> List[InvariantCheck]:
        # Ledger columns introduced after the first release
        return [
            ColumnPresenceCheck(JOURNAL_ENTRIES, ("total_debit", "total_credit")),
            ColumnPresenceCheck(JOURNAL_ENTRY_LINES, ("line_number",)),
        ]
