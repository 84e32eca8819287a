"""
Agency settings.

The agencies registry itself lives in the control database; each tenant
database only carries its own ``agency_settings`` row.
"""

from ..engine.context import ReconcileContext
from ..model import TableSpec, column, timestamps, uuid_pk
from ..model.columns import BOOLEAN, TEXT
from .base import SchemaModule

# Branding and profile fields added over several releases, all free text
_PROFILE_FIELDS = (
    "domain",
    "default_currency",
    "primary_color",
    "secondary_color",
    "working_hours_start",
    "working_hours_end",
    "working_days",
    "company_tagline",
    "industry",
    "business_type",
    "legal_name",
    "phone",
    "email",
    "website",
    "currency",
    "timezone",
    "address_street",
    "address_city",
    "address_state",
    "address_zip",
    "address_country",
    "employee_count",
    "founded_year",
    "description",
)

AGENCY_SETTINGS = TableSpec(
    "agency_settings",
    [
        uuid_pk(),
        column("agency_name", TEXT),
        column("logo_url", TEXT),
        column("setup_complete", BOOLEAN, default=False),
        *timestamps(),
        *(column(name, TEXT) for name in _PROFILE_FIELDS),
        column("enable_gst", BOOLEAN, default=False),
    ],
)

DEFAULT_SETTINGS = {"agency_name": "My Agency", "setup_complete": False}


class AgenciesModule(SchemaModule):
    name = "agencies"
    tables = (AGENCY_SETTINGS,)

    def ensure(self, ctx: ReconcileContext) -> None:
        super().ensure(ctx)
        if ctx.backend.seed_row(AGENCY_SETTINGS.name, dict(DEFAULT_SETTINGS)):
            ctx.record("row_seeded", AGENCY_SETTINGS.name)
            ctx.observer.info("row_seeded", table=AGENCY_SETTINGS.name)
