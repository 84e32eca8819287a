"""
Procurement and supply chain schema.

Manages:
- purchase_requisitions, purchase_requisition_items
- purchase_orders, purchase_order_items
- goods_receipts, grn_items
- rfq_rfp, rfq_items, rfq_responses, rfq_response_items
- vendor_contacts, vendor_contracts, vendor_performance, vendor_invoices

Suppliers, products and warehouses come from the inventory module. The
inventory foreign keys onto purchase_orders are bound here once the table
exists, so a fresh tenant gets them in a single run.
"""

from ..model import (
    IndexSpec,
    TableSpec,
    UniqueSpec,
    agency_column,
    column,
    created_at,
    created_by_column,
    ref,
    timestamps,
    user_ref,
    uuid_pk,
)
from ..model.columns import (
    BOOLEAN,
    CURRENT_DATE,
    DATE,
    INTEGER,
    MONEY,
    NOW,
    RATE,
    TEXT,
    TEXT_ARRAY,
    TIMESTAMPTZ,
    UUID,
    numeric,
    varchar,
)
from .base import SchemaModule
from .inventory import PURCHASE_ORDER_LINKS

QUANTITY = numeric(10, 2)
RATING = numeric(3, 2)


def _supplier_ref(ondelete=None):
    return ref("supplier_id", "suppliers.id", nullable=False, ondelete=ondelete)


def _product_ref():
    return ref("product_id", "products.id")


def _number(name):
    return column(name, varchar(100), nullable=False, unique=True)


PURCHASE_REQUISITIONS = TableSpec(
    "purchase_requisitions",
    [
        uuid_pk(),
        agency_column(nullable=False),
        _number("requisition_number"),
        user_ref("requested_by", nullable=False),
        column("department_id", UUID),
        column("status", varchar(50), default="draft"),
        column("priority", varchar(20), default="normal"),
        column("required_date", DATE),
        column("total_amount", MONEY, default=0),
        column("notes", TEXT),
        user_ref("approved_by"),
        column("approved_at", TIMESTAMPTZ),
        column("rejected_reason", TEXT),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_purchase_requisitions_agency_id", ("agency_id",)),
        IndexSpec("idx_purchase_requisitions_requisition_number", ("requisition_number",)),
        IndexSpec("idx_purchase_requisitions_requested_by", ("requested_by",)),
        IndexSpec("idx_purchase_requisitions_status", ("status",)),
    ],
)

PURCHASE_REQUISITION_ITEMS = TableSpec(
    "purchase_requisition_items",
    [
        uuid_pk(),
        ref("requisition_id", "purchase_requisitions.id", nullable=False, ondelete="CASCADE"),
        _product_ref(),
        column("description", TEXT, nullable=False),
        column("quantity", QUANTITY, nullable=False),
        column("unit_price", MONEY),
        column("total_price", MONEY, computed="quantity * COALESCE(unit_price, 0)"),
        column("unit_of_measure", varchar(50), default="pcs"),
        column("notes", TEXT),
        created_at(),
    ],
    indexes=[
        IndexSpec("idx_purchase_requisition_items_requisition_id", ("requisition_id",)),
        IndexSpec("idx_purchase_requisition_items_product_id", ("product_id",)),
    ],
)

PURCHASE_ORDERS = TableSpec(
    "purchase_orders",
    [
        uuid_pk(),
        agency_column(nullable=False),
        _number("po_number"),
        ref("requisition_id", "purchase_requisitions.id"),
        _supplier_ref(),
        column("status", varchar(50), default="draft"),
        column("order_date", DATE, nullable=False, default=CURRENT_DATE),
        column("expected_delivery_date", DATE),
        column("delivery_address", TEXT),
        column("payment_terms", varchar(255)),
        column("currency", varchar(10), default="INR"),
        column("exchange_rate", numeric(10, 4), default=1),
        column("subtotal", MONEY, default=0),
        column("tax_amount", MONEY, default=0),
        column("shipping_cost", MONEY, default=0),
        column("discount_amount", MONEY, default=0),
        column("total_amount", MONEY, default=0),
        column("notes", TEXT),
        column("terms_conditions", TEXT),
        created_by_column(),
        user_ref("approved_by"),
        column("approved_at", TIMESTAMPTZ),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_purchase_orders_agency_id", ("agency_id",)),
        IndexSpec("idx_purchase_orders_po_number", ("po_number",)),
        IndexSpec("idx_purchase_orders_supplier_id", ("supplier_id",)),
        IndexSpec("idx_purchase_orders_status", ("status",)),
        IndexSpec("idx_purchase_orders_requisition_id", ("requisition_id",)),
    ],
    critical=True,
)

PURCHASE_ORDER_ITEMS = TableSpec(
    "purchase_order_items",
    [
        uuid_pk(),
        ref("po_id", "purchase_orders.id", nullable=False, ondelete="CASCADE"),
        ref("requisition_item_id", "purchase_requisition_items.id"),
        _product_ref(),
        column("description", TEXT, nullable=False),
        column("quantity", QUANTITY, nullable=False),
        column("unit_price", MONEY, nullable=False),
        column("total_price", MONEY, computed="quantity * unit_price"),
        column("unit_of_measure", varchar(50), default="pcs"),
        column("received_quantity", QUANTITY, default=0),
        column("notes", TEXT),
        created_at(),
    ],
    indexes=[
        IndexSpec("idx_purchase_order_items_po_id", ("po_id",)),
        IndexSpec("idx_purchase_order_items_product_id", ("product_id",)),
    ],
)

GOODS_RECEIPTS = TableSpec(
    "goods_receipts",
    [
        uuid_pk(),
        agency_column(nullable=False),
        _number("grn_number"),
        ref("po_id", "purchase_orders.id", nullable=False),
        ref("warehouse_id", "warehouses.id", nullable=False),
        column("received_date", DATE, nullable=False, default=CURRENT_DATE),
        user_ref("received_by"),
        column("status", varchar(50), default="pending"),
        column("inspection_notes", TEXT),
        column("quality_status", varchar(50)),
        user_ref("inspected_by"),
        column("inspected_at", TIMESTAMPTZ),
        user_ref("approved_by"),
        column("approved_at", TIMESTAMPTZ),
        column("notes", TEXT),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_goods_receipts_agency_id", ("agency_id",)),
        IndexSpec("idx_goods_receipts_grn_number", ("grn_number",)),
        IndexSpec("idx_goods_receipts_po_id", ("po_id",)),
        IndexSpec("idx_goods_receipts_warehouse_id", ("warehouse_id",)),
        IndexSpec("idx_goods_receipts_status", ("status",)),
    ],
)

GRN_ITEMS = TableSpec(
    "grn_items",
    [
        uuid_pk(),
        ref("grn_id", "goods_receipts.id", nullable=False, ondelete="CASCADE"),
        ref("po_item_id", "purchase_order_items.id", nullable=False),
        _product_ref(),
        column("ordered_quantity", QUANTITY, nullable=False),
        column("received_quantity", QUANTITY, nullable=False),
        column("accepted_quantity", QUANTITY, default=0),
        column("rejected_quantity", QUANTITY, default=0),
        column("unit_price", MONEY),
        column("batch_number", varchar(100)),
        column("expiry_date", DATE),
        column("serial_numbers", TEXT_ARRAY),
        column("quality_status", varchar(50)),
        column("notes", TEXT),
        created_at(),
    ],
    indexes=[
        IndexSpec("idx_grn_items_grn_id", ("grn_id",)),
        IndexSpec("idx_grn_items_po_item_id", ("po_item_id",)),
        IndexSpec("idx_grn_items_product_id", ("product_id",)),
    ],
)

RFQ_RFP = TableSpec(
    "rfq_rfp",
    [
        uuid_pk(),
        agency_column(nullable=False),
        _number("rfq_number"),
        column("title", varchar(255), nullable=False),
        column("description", TEXT),
        column("type", varchar(20), default="RFQ"),
        column("status", varchar(50), default="draft"),
        column("published_date", DATE),
        column("closing_date", DATE),
        column("currency", varchar(10), default="INR"),
        column("terms_conditions", TEXT),
        created_by_column(),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_rfq_rfp_agency_id", ("agency_id",)),
        IndexSpec("idx_rfq_rfp_rfq_number", ("rfq_number",)),
        IndexSpec("idx_rfq_rfp_status", ("status",)),
    ],
)

RFQ_ITEMS = TableSpec(
    "rfq_items",
    [
        uuid_pk(),
        ref("rfq_id", "rfq_rfp.id", nullable=False, ondelete="CASCADE"),
        _product_ref(),
        column("description", TEXT, nullable=False),
        column("quantity", QUANTITY, nullable=False),
        column("unit_of_measure", varchar(50), default="pcs"),
        column("specifications", TEXT),
        created_at(),
    ],
    indexes=[
        IndexSpec("idx_rfq_items_rfq_id", ("rfq_id",)),
        IndexSpec("idx_rfq_items_product_id", ("product_id",)),
    ],
)

RFQ_RESPONSES = TableSpec(
    "rfq_responses",
    [
        uuid_pk(),
        ref("rfq_id", "rfq_rfp.id", nullable=False, ondelete="CASCADE"),
        _supplier_ref(),
        column("status", varchar(50), default="submitted"),
        column("total_amount", MONEY, default=0),
        column("validity_days", INTEGER),
        column("delivery_terms", TEXT),
        column("payment_terms", TEXT),
        column("notes", TEXT),
        column("submitted_at", TIMESTAMPTZ, default=NOW),
        user_ref("reviewed_by"),
        column("reviewed_at", TIMESTAMPTZ),
        *timestamps(),
    ],
    unique=[UniqueSpec(("rfq_id", "supplier_id"))],
    indexes=[
        IndexSpec("idx_rfq_responses_rfq_id", ("rfq_id",)),
        IndexSpec("idx_rfq_responses_supplier_id", ("supplier_id",)),
        IndexSpec("idx_rfq_responses_status", ("status",)),
    ],
)

RFQ_RESPONSE_ITEMS = TableSpec(
    "rfq_response_items",
    [
        uuid_pk(),
        ref("response_id", "rfq_responses.id", nullable=False, ondelete="CASCADE"),
        ref("rfq_item_id", "rfq_items.id", nullable=False),
        column("unit_price", MONEY, nullable=False),
        column("quantity", QUANTITY, nullable=False, default=1),
        column("total_price", MONEY, computed="quantity * unit_price"),
        column("delivery_days", INTEGER),
        column("notes", TEXT),
        created_at(),
    ],
    indexes=[
        IndexSpec("idx_rfq_response_items_response_id", ("response_id",)),
        IndexSpec("idx_rfq_response_items_rfq_item_id", ("rfq_item_id",)),
    ],
)

VENDOR_CONTACTS = TableSpec(
    "vendor_contacts",
    [
        uuid_pk(),
        agency_column(nullable=False),
        _supplier_ref("CASCADE"),
        column("name", varchar(255), nullable=False),
        column("designation", varchar(255)),
        column("email", varchar(255)),
        column("phone", varchar(50)),
        column("alternate_phone", varchar(50)),
        column("is_primary", BOOLEAN, default=False),
        column("notes", TEXT),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_vendor_contacts_agency_id", ("agency_id",)),
        IndexSpec("idx_vendor_contacts_supplier_id", ("supplier_id",)),
        IndexSpec("idx_vendor_contacts_is_primary", ("is_primary",)),
    ],
)

VENDOR_CONTRACTS = TableSpec(
    "vendor_contracts",
    [
        uuid_pk(),
        agency_column(nullable=False),
        _supplier_ref("CASCADE"),
        _number("contract_number"),
        column("title", varchar(255), nullable=False),
        column("contract_type", varchar(50)),
        column("start_date", DATE, nullable=False),
        column("end_date", DATE),
        column("value", MONEY),
        column("currency", varchar(10), default="INR"),
        column("terms_conditions", TEXT),
        column("renewal_terms", TEXT),
        column("status", varchar(50), default="active"),
        user_ref("signed_by"),
        column("signed_date", DATE),
        column("document_url", TEXT),
        column("notes", TEXT),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_vendor_contracts_agency_id", ("agency_id",)),
        IndexSpec("idx_vendor_contracts_supplier_id", ("supplier_id",)),
        IndexSpec("idx_vendor_contracts_contract_number", ("contract_number",)),
        IndexSpec("idx_vendor_contracts_status", ("status",)),
        IndexSpec("idx_vendor_contracts_end_date", ("end_date",)),
    ],
)

VENDOR_PERFORMANCE = TableSpec(
    "vendor_performance",
    [
        uuid_pk(),
        agency_column(nullable=False),
        _supplier_ref("CASCADE"),
        column("period_start", DATE, nullable=False),
        column("period_end", DATE, nullable=False),
        column("total_orders", INTEGER, default=0),
        column("total_order_value", MONEY, default=0),
        # percentage
        column("on_time_delivery_rate", RATE, default=0),
        # 0-5 ratings
        column("quality_rating", RATING, default=0),
        column("cost_rating", RATING, default=0),
        column("communication_rating", RATING, default=0),
        column("overall_rating", RATING, default=0),
        column("late_deliveries", INTEGER, default=0),
        column("rejected_items", INTEGER, default=0),
        column("notes", TEXT),
        user_ref("evaluated_by"),
        column("evaluated_at", TIMESTAMPTZ, default=NOW),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_vendor_performance_agency_id", ("agency_id",)),
        IndexSpec("idx_vendor_performance_supplier_id", ("supplier_id",)),
        IndexSpec("idx_vendor_performance_period", ("period_start", "period_end")),
    ],
)

VENDOR_INVOICES = TableSpec(
    "vendor_invoices",
    [
        uuid_pk(),
        agency_column(nullable=False),
        _supplier_ref("CASCADE"),
        _number("invoice_number"),
        ref("po_id", "purchase_orders.id"),
        column("invoice_date", DATE, nullable=False),
        column("due_date", DATE),
        column("subtotal", MONEY, default=0),
        column("tax_amount", MONEY, default=0),
        column("total_amount", MONEY, default=0),
        column("currency", varchar(10), default="INR"),
        column("status", varchar(50), default="pending"),
        column("payment_status", varchar(50), default="unpaid"),
        column("paid_amount", MONEY, default=0),
        column("paid_date", DATE),
        column("payment_method", varchar(50)),
        column("notes", TEXT),
        column("document_url", TEXT),
        created_by_column(),
        user_ref("approved_by"),
        column("approved_at", TIMESTAMPTZ),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_vendor_invoices_agency_id", ("agency_id",)),
        IndexSpec("idx_vendor_invoices_supplier_id", ("supplier_id",)),
        IndexSpec("idx_vendor_invoices_invoice_number", ("invoice_number",)),
        IndexSpec("idx_vendor_invoices_po_id", ("po_id",)),
        IndexSpec("idx_vendor_invoices_status", ("status",)),
        IndexSpec("idx_vendor_invoices_payment_status", ("payment_status",)),
    ],
)


class ProcurementModule(SchemaModule):
    name = "procurement"
    depends_on = ("inventory",)
    tables = (
        PURCHASE_REQUISITIONS,
        PURCHASE_REQUISITION_ITEMS,
        PURCHASE_ORDERS,
        PURCHASE_ORDER_ITEMS,
        GOODS_RECEIPTS,
        GRN_ITEMS,
        RFQ_RFP,
        RFQ_ITEMS,
        RFQ_RESPONSES,
        RFQ_RESPONSE_ITEMS,
        VENDOR_CONTACTS,
        VENDOR_CONTRACTS,
        VENDOR_PERFORMANCE,
        VENDOR_INVOICES,
    )
    deferred_foreign_keys = PURCHASE_ORDER_LINKS
