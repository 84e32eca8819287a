"""
GST compliance schema.

Manages:
- gst_settings: registration and filing configuration
- gst_returns: return filing records
- gst_transactions: taxable transactions
- calculate_gst_liability(): output tax for a period

The first GST tables shipped without tenant scoping. Those shapes cannot be
migrated in place, so a table missing any of its versioned columns is
dropped and recreated.
"""

from ..model import (
    CheckSpec,
    FunctionSpec,
    IndexSpec,
    RebuildRule,
    TableSpec,
    agency_column,
    column,
    timestamps,
    uuid_pk,
)
from ..model.columns import BOOLEAN, DATE, GEN_RANDOM_UUID, MONEY, RATE, TEXT, numeric
from .base import SchemaModule

GST_SETTINGS = TableSpec(
    "gst_settings",
    [
        uuid_pk(GEN_RANDOM_UUID),
        agency_column(nullable=False),
        column("gstin", TEXT, nullable=False),
        column("legal_name", TEXT, nullable=False),
        column("trade_name", TEXT),
        column("business_type", TEXT, nullable=False),
        column("filing_frequency", TEXT, nullable=False),
        column("composition_scheme", BOOLEAN, default=False),
        column("is_active", BOOLEAN, default=True),
        *timestamps(nullable=False),
    ],
    checks=[
        CheckSpec(
            "gst_settings_business_type_check",
            "business_type IN ('regular', 'composition', 'casual', 'non_resident')",
        ),
        CheckSpec(
            "gst_settings_filing_frequency_check",
            "filing_frequency IN ('monthly', 'quarterly', 'annual')",
        ),
    ],
    indexes=[
        IndexSpec("idx_gst_settings_agency_id", ("agency_id",)),
        IndexSpec("idx_gst_settings_gstin", ("gstin",)),
        IndexSpec("idx_gst_settings_is_active", ("is_active",)),
    ],
    rebuild=RebuildRule("2", required_columns=("agency_id", "gstin")),
    critical=True,
)

GST_RETURNS = TableSpec(
    "gst_returns",
    [
        uuid_pk(GEN_RANDOM_UUID),
        agency_column(nullable=False),
        column("return_type", TEXT, nullable=False),
        column("filing_period", DATE, nullable=False),
        column("due_date", DATE, nullable=False),
        column("status", TEXT, nullable=False, default="pending"),
        column("total_taxable_value", MONEY, default=0),
        column("total_tax_amount", MONEY, default=0),
        column("cgst_amount", MONEY, default=0),
        column("sgst_amount", MONEY, default=0),
        column("igst_amount", MONEY, default=0),
        column("cess_amount", MONEY, default=0),
        column("filed_date", DATE),
        column("acknowledgment_number", TEXT),
        *timestamps(nullable=False),
    ],
    checks=[
        CheckSpec(
            "gst_returns_return_type_check",
            "return_type IN ('GSTR1', 'GSTR3B', 'GSTR9', 'GSTR4')",
        ),
        CheckSpec(
            "gst_returns_status_check",
            "status IN ('pending', 'filed', 'late', 'cancelled')",
        ),
    ],
    indexes=[
        IndexSpec("idx_gst_returns_agency_id", ("agency_id",)),
        IndexSpec(
            "idx_gst_returns_filing_period",
            ("filing_period",),
            alternatives=(("return_period",),),
        ),
        IndexSpec("idx_gst_returns_status", ("status",)),
        IndexSpec("idx_gst_returns_return_type", ("return_type",)),
    ],
    rebuild=RebuildRule("2", required_columns=("agency_id", "return_type")),
    critical=True,
)

GST_TRANSACTIONS = TableSpec(
    "gst_transactions",
    [
        uuid_pk(GEN_RANDOM_UUID),
        agency_column(nullable=False),
        column("transaction_type", TEXT, nullable=False),
        column("invoice_number", TEXT, nullable=False),
        column("invoice_date", DATE, nullable=False),
        column("customer_gstin", TEXT),
        column("customer_name", TEXT, nullable=False),
        column("place_of_supply", TEXT),
        column("hsn_sac_code", TEXT),
        column("description", TEXT),
        column("quantity", numeric(10, 2)),
        column("unit_price", MONEY, nullable=False, default=0),
        column("taxable_value", MONEY, nullable=False, default=0),
        column("cgst_rate", RATE, default=0),
        column("sgst_rate", RATE, default=0),
        column("igst_rate", RATE, default=0),
        column("cess_rate", RATE, default=0),
        column("cgst_amount", MONEY, default=0),
        column("sgst_amount", MONEY, default=0),
        column("igst_amount", MONEY, default=0),
        column("cess_amount", MONEY, default=0),
        column("total_amount", MONEY, nullable=False, default=0),
        *timestamps(nullable=False),
    ],
    checks=[
        CheckSpec(
            "gst_transactions_transaction_type_check",
            "transaction_type IN ('sale', 'purchase', 'credit_note', 'debit_note')",
        ),
    ],
    indexes=[
        IndexSpec("idx_gst_transactions_agency_id", ("agency_id",)),
        IndexSpec(
            "idx_gst_transactions_invoice_date",
            ("invoice_date",),
            alternatives=(("transaction_date",),),
        ),
        IndexSpec("idx_gst_transactions_transaction_type", ("transaction_type",)),
        IndexSpec("idx_gst_transactions_invoice_number", ("invoice_number",)),
        IndexSpec("idx_gst_transactions_created_at", ("created_at",)),
    ],
    rebuild=RebuildRule("2", required_columns=("agency_id", "invoice_number")),
    critical=True,
)

CALCULATE_GST_LIABILITY = FunctionSpec(
    "calculate_gst_liability",
    """
CREATE OR REPLACE FUNCTION {schema}.calculate_gst_liability(
  p_agency_id UUID,
  p_start_date DATE,
  p_end_date DATE
)
RETURNS TABLE (
  total_taxable_value NUMERIC,
  total_cgst NUMERIC,
  total_sgst NUMERIC,
  total_igst NUMERIC,
  total_cess NUMERIC,
  total_tax NUMERIC
) AS $$
BEGIN
  RETURN QUERY
  SELECT
    COALESCE(SUM(gt.taxable_value), 0)::NUMERIC,
    COALESCE(SUM(gt.cgst_amount), 0)::NUMERIC,
    COALESCE(SUM(gt.sgst_amount), 0)::NUMERIC,
    COALESCE(SUM(gt.igst_amount), 0)::NUMERIC,
    COALESCE(SUM(gt.cess_amount), 0)::NUMERIC,
    COALESCE(
      SUM(gt.cgst_amount) + SUM(gt.sgst_amount) + SUM(gt.igst_amount) + SUM(gt.cess_amount),
      0
    )::NUMERIC
  FROM {schema}.gst_transactions gt
  WHERE gt.agency_id = p_agency_id
    AND gt.invoice_date >= p_start_date
    AND gt.invoice_date <= p_end_date
    AND gt.transaction_type IN ('sale', 'debit_note');
END;
$$ LANGUAGE plpgsql STABLE;
""",
)


class GstModule(SchemaModule):
    name = "gst"
    depends_on = ("clients_financial",)
    tables = (GST_SETTINGS, GST_RETURNS, GST_TRANSACTIONS)
    functions = (CALCULATE_GST_LIABILITY,)
