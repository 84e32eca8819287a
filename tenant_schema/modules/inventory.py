"""
Inventory management schema.

Manages:
- warehouses, product_categories, products, product_variants
- inventory: stock levels per product, variant and warehouse
- inventory_transactions: stock movement history
- suppliers
- bom, bom_items: bills of materials
- serial_numbers, batches: serial and batch tracking

serial_numbers and batches point at purchase orders, which belong to the
procurement module that runs later. Those foreign keys are deferred and
bound once purchase_orders exists.
"""

from ..model import (
    DeferredForeignKey,
    ForeignKeySpec,
    IndexSpec,
    TableSpec,
    UniqueSpec,
    agency_column,
    column,
    created_at,
    created_by_column,
    ref,
    timestamps,
    uuid_pk,
)
from ..model.columns import (
    BOOLEAN,
    DATE,
    INTEGER,
    JSONB,
    MONEY,
    TEXT,
    TEXT_ARRAY,
    TIMESTAMPTZ,
    UUID,
    numeric,
    varchar,
)
from .base import SchemaModule

QUANTITY = numeric(10, 2)


def _variant_ref():
    return ref("variant_id", "product_variants.id", ondelete="CASCADE")


def _product_ref():
    return ref("product_id", "products.id", nullable=False, ondelete="CASCADE")


WAREHOUSES = TableSpec(
    "warehouses",
    [
        uuid_pk(),
        agency_column(nullable=False),
        column("code", varchar(50), nullable=False),
        column("name", varchar(255), nullable=False),
        column("address", TEXT),
        column("city", varchar(100)),
        column("state", varchar(100)),
        column("postal_code", varchar(20)),
        column("country", varchar(100), default="India"),
        column("contact_person", varchar(255)),
        column("phone", varchar(50)),
        column("email", varchar(255)),
        column("is_active", BOOLEAN, default=True),
        column("is_primary", BOOLEAN, default=False),
        *timestamps(),
    ],
    unique=[UniqueSpec(("agency_id", "code"))],
    indexes=[
        IndexSpec("idx_warehouses_agency_id", ("agency_id",)),
        IndexSpec("idx_warehouses_code", ("code",)),
        IndexSpec("idx_warehouses_is_active", ("is_active",)),
    ],
    audited=True,
)

PRODUCT_CATEGORIES = TableSpec(
    "product_categories",
    [
        uuid_pk(),
        agency_column(nullable=False),
        ref("parent_id", "product_categories.id"),
        column("name", varchar(255), nullable=False),
        column("description", TEXT),
        column("is_active", BOOLEAN, default=True),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_product_categories_agency_id", ("agency_id",)),
        IndexSpec("idx_product_categories_parent_id", ("parent_id",)),
    ],
)

PRODUCTS = TableSpec(
    "products",
    [
        uuid_pk(),
        agency_column(nullable=False),
        column("sku", varchar(100), nullable=False),
        column("name", varchar(255), nullable=False),
        column("description", TEXT),
        column("category_id", UUID),
        column("brand", varchar(100)),
        column("unit_of_measure", varchar(50), default="pcs"),
        column("barcode", varchar(100)),
        column("qr_code", TEXT),
        column("weight", QUANTITY),
        column("dimensions", varchar(100)),
        column("image_url", TEXT),
        column("is_active", BOOLEAN, default=True),
        column("is_trackable", BOOLEAN, default=False),
        # serial, batch or none
        column("track_by", varchar(20)),
        *timestamps(),
    ],
    unique=[UniqueSpec(("agency_id", "sku"))],
    indexes=[
        IndexSpec("idx_products_agency_id", ("agency_id",)),
        IndexSpec("idx_products_sku", ("sku",)),
        IndexSpec("idx_products_category_id", ("category_id",)),
        IndexSpec("idx_products_barcode", ("barcode",)),
        IndexSpec("idx_products_is_active", ("is_active",)),
    ],
    audited=True,
)

PRODUCT_VARIANTS = TableSpec(
    "product_variants",
    [
        uuid_pk(),
        _product_ref(),
        agency_column(nullable=False),
        column("variant_sku", varchar(100)),
        column("variant_name", varchar(255)),
        column("attributes", JSONB),
        column("price", MONEY),
        column("cost", MONEY),
        column("image_url", TEXT),
        column("is_active", BOOLEAN, default=True),
        *timestamps(),
    ],
    unique=[UniqueSpec(("product_id", "variant_sku"))],
    indexes=[
        IndexSpec("idx_product_variants_product_id", ("product_id",)),
        IndexSpec("idx_product_variants_agency_id", ("agency_id",)),
        IndexSpec("idx_product_variants_variant_sku", ("variant_sku",)),
    ],
)

INVENTORY = TableSpec(
    "inventory",
    [
        uuid_pk(),
        agency_column(nullable=False),
        _product_ref(),
        _variant_ref(),
        ref("warehouse_id", "warehouses.id", nullable=False, ondelete="CASCADE"),
        column("quantity", QUANTITY, default=0),
        column("reserved_quantity", QUANTITY, default=0),
        column("available_quantity", QUANTITY, computed="quantity - reserved_quantity"),
        column("reorder_point", QUANTITY, default=0),
        column("reorder_quantity", QUANTITY, default=0),
        column("max_stock", QUANTITY),
        column("min_stock", QUANTITY),
        column("valuation_method", varchar(50), default="weighted_average"),
        column("average_cost", MONEY, default=0),
        column("last_cost", MONEY, default=0),
        column("last_movement_date", TIMESTAMPTZ),
        *timestamps(),
    ],
    unique=[UniqueSpec(("product_id", "variant_id", "warehouse_id"))],
    indexes=[
        IndexSpec("idx_inventory_agency_id", ("agency_id",)),
        IndexSpec("idx_inventory_product_id", ("product_id",)),
        IndexSpec("idx_inventory_variant_id", ("variant_id",)),
        IndexSpec("idx_inventory_warehouse_id", ("warehouse_id",)),
        IndexSpec("idx_inventory_available_quantity", ("available_quantity",)),
    ],
)

INVENTORY_TRANSACTIONS = TableSpec(
    "inventory_transactions",
    [
        uuid_pk(),
        agency_column(nullable=False),
        ref("inventory_id", "inventory.id", nullable=False, ondelete="CASCADE"),
        column("transaction_type", varchar(50), nullable=False),
        column("quantity", QUANTITY, nullable=False),
        column("unit_cost", MONEY),
        column("total_cost", MONEY, computed="quantity * unit_cost"),
        column("reference_type", varchar(50)),
        column("reference_id", UUID),
        ref("from_warehouse_id", "warehouses.id"),
        ref("to_warehouse_id", "warehouses.id"),
        column("serial_numbers", TEXT_ARRAY),
        column("batch_number", varchar(100)),
        column("expiry_date", DATE),
        column("notes", TEXT),
        created_by_column(),
        created_at(),
    ],
    indexes=[
        IndexSpec("idx_inventory_transactions_agency_id", ("agency_id",)),
        IndexSpec("idx_inventory_transactions_inventory_id", ("inventory_id",)),
        IndexSpec("idx_inventory_transactions_type", ("transaction_type",)),
        IndexSpec("idx_inventory_transactions_reference", ("reference_type", "reference_id")),
        IndexSpec("idx_inventory_transactions_created_at", ("created_at",)),
    ],
)

SUPPLIERS = TableSpec(
    "suppliers",
    [
        uuid_pk(),
        agency_column(nullable=False),
        column("code", varchar(50)),
        column("name", varchar(255), nullable=False),
        column("company_name", varchar(255)),
        column("contact_person", varchar(255)),
        column("email", varchar(255)),
        column("phone", varchar(50)),
        column("alternate_phone", varchar(50)),
        column("address", TEXT),
        column("city", varchar(100)),
        column("state", varchar(100)),
        column("postal_code", varchar(20)),
        column("country", varchar(100), default="India"),
        column("tax_id", varchar(100)),
        column("payment_terms", varchar(255)),
        column("credit_limit", MONEY),
        column("rating", numeric(3, 2), default=0),
        column("is_active", BOOLEAN, default=True),
        column("is_preferred", BOOLEAN, default=False),
        column("notes", TEXT),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_suppliers_agency_id", ("agency_id",)),
        IndexSpec("idx_suppliers_code", ("code",)),
        IndexSpec("idx_suppliers_is_active", ("is_active",)),
    ],
)

BOM = TableSpec(
    "bom",
    [
        uuid_pk(),
        agency_column(nullable=False),
        _product_ref(),
        column("name", varchar(255), nullable=False),
        column("version", varchar(50)),
        column("is_active", BOOLEAN, default=True),
        column("notes", TEXT),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_bom_agency_id", ("agency_id",)),
        IndexSpec("idx_bom_product_id", ("product_id",)),
        IndexSpec("idx_bom_is_active", ("is_active",)),
    ],
)

BOM_ITEMS = TableSpec(
    "bom_items",
    [
        uuid_pk(),
        ref("bom_id", "bom.id", nullable=False, ondelete="CASCADE"),
        ref("component_product_id", "products.id", nullable=False),
        column("quantity", QUANTITY, nullable=False),
        column("unit_of_measure", varchar(50), default="pcs"),
        column("sequence", INTEGER, default=0),
        column("notes", TEXT),
        created_at(),
    ],
    indexes=[
        IndexSpec("idx_bom_items_bom_id", ("bom_id",)),
        IndexSpec("idx_bom_items_component_product_id", ("component_product_id",)),
    ],
)

SERIAL_NUMBERS = TableSpec(
    "serial_numbers",
    [
        uuid_pk(),
        agency_column(nullable=False),
        _product_ref(),
        _variant_ref(),
        column("serial_number", varchar(255), nullable=False, unique=True),
        ref("warehouse_id", "warehouses.id"),
        ref("inventory_id", "inventory.id"),
        column("status", varchar(50), default="available"),
        column("purchase_order_id", UUID),
        column("sale_id", UUID),
        column("notes", TEXT),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_serial_numbers_agency_id", ("agency_id",)),
        IndexSpec("idx_serial_numbers_product_id", ("product_id",)),
        IndexSpec("idx_serial_numbers_serial_number", ("serial_number",)),
        IndexSpec("idx_serial_numbers_status", ("status",)),
        IndexSpec("idx_serial_numbers_warehouse_id", ("warehouse_id",)),
    ],
)

BATCHES = TableSpec(
    "batches",
    [
        uuid_pk(),
        agency_column(nullable=False),
        _product_ref(),
        _variant_ref(),
        column("batch_number", varchar(255), nullable=False),
        ref("warehouse_id", "warehouses.id"),
        ref("inventory_id", "inventory.id"),
        column("quantity", QUANTITY, default=0),
        column("manufacture_date", DATE),
        column("expiry_date", DATE),
        column("purchase_order_id", UUID),
        column("cost_per_unit", MONEY),
        column("status", varchar(50), default="active"),
        column("notes", TEXT),
        *timestamps(),
    ],
    unique=[UniqueSpec(("agency_id", "product_id", "batch_number"))],
    indexes=[
        IndexSpec("idx_batches_agency_id", ("agency_id",)),
        IndexSpec("idx_batches_product_id", ("product_id",)),
        IndexSpec("idx_batches_batch_number", ("batch_number",)),
        IndexSpec("idx_batches_expiry_date", ("expiry_date",)),
        IndexSpec("idx_batches_status", ("status",)),
    ],
)

PURCHASE_ORDER_LINKS = (
    DeferredForeignKey(
        "serial_numbers",
        ForeignKeySpec("serial_numbers_purchase_order_id_fkey", ("purchase_order_id",), "purchase_orders"),
    ),
    DeferredForeignKey(
        "batches",
        ForeignKeySpec("batches_purchase_order_id_fkey", ("purchase_order_id",), "purchase_orders"),
    ),
)


class InventoryModule(SchemaModule):
    name = "inventory"
    depends_on = ("auth",)
    tables = (
        WAREHOUSES,
        PRODUCT_CATEGORIES,
        PRODUCTS,
        PRODUCT_VARIANTS,
        INVENTORY,
        INVENTORY_TRANSACTIONS,
        SUPPLIERS,
        BOM,
        BOM_ITEMS,
        SERIAL_NUMBERS,
        BATCHES,
    )
    deferred_foreign_keys = PURCHASE_ORDER_LINKS
