"""
Fixed asset management schema.

Manages:
- asset_categories, asset_locations
- assets: asset register (audited)
- asset_depreciation, asset_maintenance, asset_disposals
"""

from ..model import (
    IndexSpec,
    TableSpec,
    UniqueSpec,
    agency_column,
    column,
    created_by_column,
    ref,
    timestamps,
    user_ref,
    uuid_pk,
)
from ..model.columns import BOOLEAN, DATE, INTEGER, MONEY, RATE, TEXT, TIMESTAMPTZ, UUID, numeric, varchar
from .base import SchemaModule


def _asset_ref():
    return ref("asset_id", "assets.id", nullable=False, ondelete="CASCADE")


def _posting_columns():
    # journal_entry_id is set once the entry is posted to the ledger
    return [
        column("journal_entry_id", UUID),
        column("posted_at", TIMESTAMPTZ),
        user_ref("posted_by"),
    ]


ASSET_CATEGORIES = TableSpec(
    "asset_categories",
    [
        uuid_pk(),
        agency_column(nullable=False),
        ref("parent_id", "asset_categories.id"),
        column("code", varchar(50), nullable=False),
        column("name", varchar(255), nullable=False),
        column("description", TEXT),
        column("depreciation_method", varchar(50), default="straight_line"),
        column("default_useful_life_years", INTEGER),
        column("default_depreciation_rate", RATE),
        column("is_active", BOOLEAN, default=True),
        *timestamps(),
    ],
    unique=[UniqueSpec(("agency_id", "code"))],
    indexes=[
        IndexSpec("idx_asset_categories_agency_id", ("agency_id",)),
        IndexSpec("idx_asset_categories_code", ("code",)),
        IndexSpec("idx_asset_categories_parent_id", ("parent_id",)),
        IndexSpec("idx_asset_categories_is_active", ("is_active",)),
    ],
)

ASSET_LOCATIONS = TableSpec(
    "asset_locations",
    [
        uuid_pk(),
        agency_column(nullable=False),
        column("code", varchar(50), nullable=False),
        column("name", varchar(255), nullable=False),
        column("address", TEXT),
        column("building", varchar(255)),
        column("floor", varchar(50)),
        column("room", varchar(100)),
        column("contact_person", varchar(255)),
        column("phone", varchar(50)),
        column("email", varchar(255)),
        column("is_active", BOOLEAN, default=True),
        *timestamps(),
    ],
    unique=[UniqueSpec(("agency_id", "code"))],
    indexes=[
        IndexSpec("idx_asset_locations_agency_id", ("agency_id",)),
        IndexSpec("idx_asset_locations_code", ("code",)),
        IndexSpec("idx_asset_locations_is_active", ("is_active",)),
    ],
)

ASSETS = TableSpec(
    "assets",
    [
        uuid_pk(),
        agency_column(nullable=False),
        column("asset_number", varchar(100), nullable=False, unique=True),
        column("name", varchar(255), nullable=False),
        column("description", TEXT),
        ref("category_id", "asset_categories.id"),
        ref("location_id", "asset_locations.id"),
        column("department_id", UUID),
        user_ref("assigned_to"),
        column("purchase_date", DATE),
        column("purchase_cost", MONEY, nullable=False, default=0),
        column("current_value", MONEY, default=0),
        column("residual_value", MONEY, default=0),
        column("useful_life_years", INTEGER),
        column("depreciation_method", varchar(50), default="straight_line"),
        column("depreciation_rate", RATE),
        column("status", varchar(50), default="active"),
        column("condition_status", varchar(50), default="good"),
        column("serial_number", varchar(255)),
        column("model_number", varchar(255)),
        column("manufacturer", varchar(255)),
        ref("supplier_id", "suppliers.id"),
        column("warranty_start_date", DATE),
        column("warranty_end_date", DATE),
        column("insurance_policy_number", varchar(255)),
        column("insurance_value", MONEY),
        column("insurance_expiry_date", DATE),
        column("notes", TEXT),
        column("image_url", TEXT),
        column("document_url", TEXT),
        created_by_column(),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_assets_agency_id", ("agency_id",)),
        IndexSpec("idx_assets_asset_number", ("asset_number",)),
        IndexSpec("idx_assets_category_id", ("category_id",)),
        IndexSpec("idx_assets_location_id", ("location_id",)),
        IndexSpec("idx_assets_assigned_to", ("assigned_to",)),
        IndexSpec("idx_assets_status", ("status",)),
        IndexSpec("idx_assets_department_id", ("department_id",)),
    ],
    audited=True,
)

ASSET_DEPRECIATION = TableSpec(
    "asset_depreciation",
    [
        uuid_pk(),
        agency_column(nullable=False),
        _asset_ref(),
        column("depreciation_date", DATE, nullable=False),
        column("period_start", DATE, nullable=False),
        column("period_end", DATE, nullable=False),
        column("depreciation_amount", MONEY, nullable=False),
        column("accumulated_depreciation", MONEY, nullable=False),
        column("book_value", MONEY, nullable=False),
        column("depreciation_method", varchar(50), nullable=False),
        column("is_posted", BOOLEAN, default=False),
        *_posting_columns(),
        column("notes", TEXT),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_asset_depreciation_agency_id", ("agency_id",)),
        IndexSpec("idx_asset_depreciation_asset_id", ("asset_id",)),
        IndexSpec("idx_asset_depreciation_depreciation_date", ("depreciation_date",)),
        IndexSpec("idx_asset_depreciation_is_posted", ("is_posted",)),
        IndexSpec("idx_asset_depreciation_period", ("period_start", "period_end")),
    ],
)

ASSET_MAINTENANCE = TableSpec(
    "asset_maintenance",
    [
        uuid_pk(),
        agency_column(nullable=False),
        _asset_ref(),
        # scheduled, preventive, corrective or emergency
        column("maintenance_type", varchar(50), nullable=False),
        column("title", varchar(255), nullable=False),
        column("description", TEXT),
        column("scheduled_date", DATE),
        column("completed_date", DATE),
        column("due_date", DATE),
        column("status", varchar(50), default="scheduled"),
        column("priority", varchar(20), default="normal"),
        column("cost", MONEY, default=0),
        ref("vendor_id", "suppliers.id"),
        column("technician", varchar(255)),
        column("technician_contact", varchar(255)),
        column("parts_used", TEXT),
        column("labor_hours", numeric(10, 2)),
        column("notes", TEXT),
        column("next_maintenance_date", DATE),
        user_ref("performed_by"),
        created_by_column(),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_asset_maintenance_agency_id", ("agency_id",)),
        IndexSpec("idx_asset_maintenance_asset_id", ("asset_id",)),
        IndexSpec("idx_asset_maintenance_status", ("status",)),
        IndexSpec("idx_asset_maintenance_scheduled_date", ("scheduled_date",)),
        IndexSpec("idx_asset_maintenance_due_date", ("due_date",)),
        IndexSpec("idx_asset_maintenance_type", ("maintenance_type",)),
    ],
)

ASSET_DISPOSALS = TableSpec(
    "asset_disposals",
    [
        uuid_pk(),
        agency_column(nullable=False),
        _asset_ref(),
        column("disposal_number", varchar(100), nullable=False, unique=True),
        column("disposal_date", DATE, nullable=False),
        column("disposal_type", varchar(50), nullable=False),
        column("disposal_reason", TEXT),
        column("disposal_value", MONEY, default=0),
        column("buyer_name", varchar(255)),
        column("buyer_contact", varchar(255)),
        column("disposal_method", varchar(50)),
        column("approval_status", varchar(50), default="pending"),
        user_ref("approved_by"),
        column("approved_at", TIMESTAMPTZ),
        column("disposal_cost", MONEY, default=0),
        # disposal_value less disposal_cost, maintained by the application
        column("net_proceeds", MONEY, default=0),
        *_posting_columns(),
        column("notes", TEXT),
        column("document_url", TEXT),
        created_by_column(),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_asset_disposals_agency_id", ("agency_id",)),
        IndexSpec("idx_asset_disposals_asset_id", ("asset_id",)),
        IndexSpec("idx_asset_disposals_disposal_number", ("disposal_number",)),
        IndexSpec("idx_asset_disposals_disposal_date", ("disposal_date",)),
        IndexSpec("idx_asset_disposals_approval_status", ("approval_status",)),
    ],
)


class AssetsModule(SchemaModule):
    name = "assets"
    depends_on = ("inventory", "departments")
    tables = (
        ASSET_CATEGORIES,
        ASSET_LOCATIONS,
        ASSETS,
        ASSET_DEPRECIATION,
        ASSET_MAINTENANCE,
        ASSET_DISPOSALS,
    )
