"""
Backward-compatibility pass.

Runs once after every module and re-enforces the cross-cutting invariants
declared across the registry. Modules enforce their own checks too; the
pass re-states them for databases touched by older releases of a module.
"""

from __future__ import annotations

from typing import Any, List

from .context import ReconcileContext
from .invariants import InvariantCheck, RenameCompletedCheck, TenantDiscriminatorCheck, Violation

PHASE = "backward_compatibility"


class BackwardCompatibilityPass:
    def __init__(self, registry: Any):
        self.registry = registry

    def checks(self) -> List[InvariantCheck]:
        """Every invariant in the registry, each identity once."""
        candidates: List[InvariantCheck] = [TenantDiscriminatorCheck(self.registry.tables())]
        for module in self.registry:
            candidates.extend(module.invariants())
        for table in self.registry.tables():
            candidates.extend(RenameCompletedCheck(table.name, r) for r in table.renames)

        seen = set()
        checks = []
        for check in candidates:
            if check.key in seen:
                continue
            seen.add(check.key)
            checks.append(check)
        return checks

    def run(self, ctx: ReconcileContext) -> List[Violation]:
        ctx.enter_module(PHASE)
        checks = self.checks()
        violations: List[Violation] = []
        for check in checks:
            violations.extend(check.enforce(ctx))
        ctx.observer.info("compat_pass_finished", checks=len(checks), repaired=len(violations))
        ctx.enter_module(None)
        return violations
