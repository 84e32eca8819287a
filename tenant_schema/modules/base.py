"""
Base schema module.

A module owns a slice of the data model. Subclasses declare their tables
and other objects as class attributes; ``ensure`` reconciles them in order
and is safe to call any number of times.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple

from ..core.errors import MissingDependency
from ..engine.binder import IndexTriggerBinder
from ..engine.context import ReconcileContext
from ..engine.invariants import InvariantCheck
from ..engine.tables import TableReconciler
from ..model.routines import FunctionSpec, ViewSpec
from ..model.tables import DeferredForeignKey, TableSpec


class SchemaModule:
    """
    Declarative schema module.

    Attributes:
        name: Unique module name
        depends_on: Modules that must run first
        tables: Tables owned by this module, in creation order
        functions: Procedures owned by this module (CREATE OR REPLACE)
        deferred_foreign_keys: Foreign keys to optional tables, retried each run
        views: Views created once their tables exist
    """

    name: str = ""
    depends_on: Tuple[str, ...] = ()
    tables: Sequence[TableSpec] = ()
    functions: Sequence[FunctionSpec] = ()
    deferred_foreign_keys: Sequence[DeferredForeignKey] = ()
    views: Sequence[ViewSpec] = ()

    def invariants(self) -> List[InvariantCheck]:
        """Cross-cutting checks re-run by the backward-compatibility pass."""
        return []

    def table(self, name: str) -> TableSpec:
        for table in self.tables:
            if table.name == name:
                return table
        raise KeyError(f"{self.name}: no table {name}")

    def ensure(self, ctx: ReconcileContext) -> None:
        for function in self.functions:
            self.ensure_function(ctx, function)

        reconciler = TableReconciler(ctx)
        for table in self.tables:
            reconciler.ensure(table)

        binder = IndexTriggerBinder(ctx)
        for deferred in self.deferred_foreign_keys:
            binder.ensure_deferred_foreign_key(deferred)

        for view in self.views:
            self.ensure_view(ctx, view)

        for check in self.invariants():
            check.enforce(ctx)

    def ensure_function(self, ctx: ReconcileContext, function: FunctionSpec) -> None:
        ctx.create(
            lambda: ctx.backend.create_function(function),
            lambda: ctx.backend.function_exists(function.name),
            function.name,
        )
        ctx.observer.debug("function_replaced", function=function.name)

    def ensure_view(self, ctx: ReconcileContext, view: ViewSpec) -> None:
        missing = [t for t in view.requires if not ctx.backend.table_exists(t)]
        if missing:
            raise MissingDependency(
                f"view {view.name} needs tables {', '.join(missing)}",
                module=self.name,
                obj=missing[0],
                owner=ctx.owner_of(missing[0]),
            )
        existed = ctx.backend.view_exists(view.name)
        ctx.create(
            lambda: ctx.backend.create_view(view),
            lambda: ctx.backend.view_exists(view.name),
            view.name,
        )
        if not existed:
            ctx.record("view_created", view.name)
            ctx.observer.info("view_created", view=view.name)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
