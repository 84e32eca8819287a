"""Bookkeeping for the reconciler itself."""

from ..model import TableSpec, column
from ..model.columns import NOW, TEXT, TIMESTAMP, varchar
from .base import SchemaModule

# Key/value pairs; ``schema_version`` is written after a verified run.
SCHEMA_INFO = TableSpec(
    "schema_info",
    [
        column("key", varchar(50), nullable=False, primary_key=True),
        column("value", TEXT),
        column("updated_at", TIMESTAMP, default=NOW),
    ],
    touch_updated_at=False,
)


class SystemModule(SchemaModule):
    name = "system"
    tables = (SCHEMA_INFO,)
