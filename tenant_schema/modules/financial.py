"""
Financial management extensions.

Manages:
- currencies: currency list with exchange rates, seeded on first run
- bank_accounts, bank_transactions, bank_reconciliations
- budgets, budget_items
"""

from ..engine.context import ReconcileContext
from ..model import (
    IndexSpec,
    TableSpec,
    agency_column,
    column,
    created_at,
    created_by_column,
    ref,
    timestamps,
    user_ref,
    uuid_pk,
)
from ..model.columns import BOOLEAN, DATE, MONEY, TEXT, TIMESTAMPTZ, UUID, numeric, varchar
from .base import SchemaModule

CURRENCIES = TableSpec(
    "currencies",
    [
        uuid_pk(),
        column("code", varchar(3), nullable=False, unique=True),
        column("name", varchar(100), nullable=False),
        column("symbol", varchar(10)),
        column("exchange_rate", numeric(10, 4), default=1),
        column("is_base", BOOLEAN, default=False),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_currencies_code", ("code",)),
        IndexSpec("idx_currencies_is_base", ("is_base",)),
    ],
)

# Rates are against the base currency (INR)
DEFAULT_CURRENCIES = [
    ("INR", "Indian Rupee", "₹", 1, True),
    ("USD", "US Dollar", "$", 0.012, False),
    ("EUR", "Euro", "€", 0.011, False),
    ("GBP", "British Pound", "£", 0.0095, False),
    ("JPY", "Japanese Yen", "¥", 1.8, False),
    ("AUD", "Australian Dollar", "A$", 0.018, False),
    ("CAD", "Canadian Dollar", "C$", 0.016, False),
    ("CHF", "Swiss Franc", "CHF", 0.011, False),
    ("CNY", "Chinese Yuan", "¥", 0.087, False),
    ("AED", "UAE Dirham", "د.إ", 0.044, False),
    ("SAR", "Saudi Riyal", "﷼", 0.045, False),
]

BANK_ACCOUNTS = TableSpec(
    "bank_accounts",
    [
        uuid_pk(),
        agency_column(nullable=False),
        column("account_name", varchar(255), nullable=False),
        column("account_number", varchar(100)),
        column("bank_name", varchar(255), nullable=False),
        column("branch_name", varchar(255)),
        column("ifsc_code", varchar(20)),
        column("swift_code", varchar(20)),
        column("account_type", varchar(50)),
        column("currency", varchar(10), default="INR"),
        column("opening_balance", MONEY, default=0),
        column("current_balance", MONEY, default=0),
        column("is_active", BOOLEAN, default=True),
        column("is_primary", BOOLEAN, default=False),
        column("notes", TEXT),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_bank_accounts_agency_id", ("agency_id",)),
        IndexSpec("idx_bank_accounts_is_active", ("is_active",)),
    ],
)

BANK_TRANSACTIONS = TableSpec(
    "bank_transactions",
    [
        uuid_pk(),
        agency_column(nullable=False),
        ref("bank_account_id", "bank_accounts.id", nullable=False, ondelete="CASCADE"),
        column("transaction_date", DATE, nullable=False),
        # debit or credit
        column("transaction_type", varchar(50), nullable=False),
        column("amount", MONEY, nullable=False),
        column("balance_after", MONEY),
        column("description", TEXT),
        column("reference_number", varchar(100)),
        column("cheque_number", varchar(100)),
        column("category", varchar(100)),
        column("reconciled", BOOLEAN, default=False),
        column("reconciliation_id", UUID),
        created_at(),
    ],
    indexes=[
        IndexSpec("idx_bank_transactions_agency_id", ("agency_id",)),
        IndexSpec("idx_bank_transactions_bank_account_id", ("bank_account_id",)),
        IndexSpec("idx_bank_transactions_date", ("transaction_date",)),
        IndexSpec("idx_bank_transactions_reconciled", ("reconciled",)),
    ],
)

BANK_RECONCILIATIONS = TableSpec(
    "bank_reconciliations",
    [
        uuid_pk(),
        agency_column(nullable=False),
        ref("bank_account_id", "bank_accounts.id", nullable=False, ondelete="CASCADE"),
        column("reconciliation_date", DATE, nullable=False),
        column("statement_balance", MONEY, nullable=False),
        column("book_balance", MONEY, nullable=False),
        column("difference", MONEY, computed="statement_balance - book_balance"),
        column("status", varchar(50), default="pending"),
        column("notes", TEXT),
        user_ref("reconciled_by"),
        column("reconciled_at", TIMESTAMPTZ),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_bank_reconciliations_agency_id", ("agency_id",)),
        IndexSpec("idx_bank_reconciliations_bank_account_id", ("bank_account_id",)),
        IndexSpec("idx_bank_reconciliations_date", ("reconciliation_date",)),
    ],
)

BUDGETS = TableSpec(
    "budgets",
    [
        uuid_pk(),
        agency_column(nullable=False),
        column("budget_name", varchar(255), nullable=False),
        column("budget_type", varchar(50)),
        column("fiscal_year", varchar(10)),
        column("period_start", DATE, nullable=False),
        column("period_end", DATE, nullable=False),
        column("department_id", UUID),
        column("project_id", UUID),
        column("total_budget", MONEY, nullable=False),
        column("spent_amount", MONEY, default=0),
        column("remaining_amount", MONEY, computed="total_budget - spent_amount"),
        column("status", varchar(50), default="draft"),
        user_ref("approved_by"),
        column("approved_at", TIMESTAMPTZ),
        column("notes", TEXT),
        created_by_column(),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_budgets_agency_id", ("agency_id",)),
        IndexSpec("idx_budgets_fiscal_year", ("fiscal_year",)),
        IndexSpec("idx_budgets_department_id", ("department_id",)),
        IndexSpec("idx_budgets_project_id", ("project_id",)),
        IndexSpec("idx_budgets_status", ("status",)),
    ],
)

BUDGET_ITEMS = TableSpec(
    "budget_items",
    [
        uuid_pk(),
        ref("budget_id", "budgets.id", nullable=False, ondelete="CASCADE"),
        ref("account_id", "chart_of_accounts.id"),
        column("category", varchar(100)),
        column("description", TEXT),
        column("budgeted_amount", MONEY, nullable=False),
        column("spent_amount", MONEY, default=0),
        column("remaining_amount", MONEY, computed="budgeted_amount - spent_amount"),
        column("notes", TEXT),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_budget_items_budget_id", ("budget_id",)),
        IndexSpec("idx_budget_items_account_id", ("account_id",)),
    ],
)


class FinancialModule(SchemaModule):
    name = "financial"
    depends_on = ("clients_financial",)
    tables = (
        CURRENCIES,
        BANK_ACCOUNTS,
        BANK_TRANSACTIONS,
        BANK_RECONCILIATIONS,
        BUDGETS,
        BUDGET_ITEMS,
    )

    def ensure(self, ctx: ReconcileContext) -> None:
        super().ensure(ctx)
        rows = [
            {"code": code, "name": name, "symbol": symbol, "exchange_rate": rate, "is_base": base}
            for code, name, symbol, rate, base in DEFAULT_CURRENCIES
        ]
        seeded = ctx.backend.seed_rows(CURRENCIES.name, rows)
        if seeded:
            ctx.record("row_seeded", CURRENCIES.name)
            ctx.observer.info("rows_seeded", table=CURRENCIES.name, count=seeded)
