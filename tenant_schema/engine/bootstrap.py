"""
Capability bootstrapper.

Installs the extensions, enum types and shared procedures that every
domain module relies on. Any failure here is fatal for the run.
"""

from __future__ import annotations

from typing import List

from ..core.errors import CapabilityMissing, SchemaError
from ..model.routines import Capabilities, EnumSpec, FunctionSpec
from .context import ReconcileContext


class CapabilityBootstrapper:
    def __init__(self, ctx: ReconcileContext):
        self.ctx = ctx

    @property
    def backend(self):
        return self.ctx.backend

    def run(self, capabilities: Capabilities) -> None:
        for name in capabilities.extensions:
            self.ensure_extension(name)
        for enum in capabilities.enums:
            self.ensure_enum(enum)
        for function in capabilities.functions:
            self.ensure_function(function)
        self.ctx.observer.info(
            "capabilities_ready",
            extensions=len(capabilities.extensions),
            enums=len(capabilities.enums),
            functions=len(capabilities.functions),
        )

    def ensure_extension(self, name: str) -> None:
        if self.backend.extension_exists(name):
            return
        try:
            created = self.ctx.create(
                lambda: self.backend.create_extension(name),
                lambda: self.backend.extension_exists(name),
                name,
            )
        except SchemaError:
            raise
        except Exception as exc:
            raise CapabilityMissing(
                f"extension {name} could not be installed: {exc}", obj=name
            ) from exc
        if created:
            self.ctx.record("extension_created", name)
            self.ctx.observer.info("extension_created", extension=name)

    def ensure_enum(self, enum: EnumSpec) -> None:
        """Create the type, then append values it is missing one at a time."""
        values = self.backend.enum_values(enum.name)
        if values is None:
            try:
                created = self.ctx.create(
                    lambda: self.backend.create_enum(enum),
                    lambda: self.backend.enum_values(enum.name) is not None,
                    enum.name,
                )
            except SchemaError:
                raise
            except Exception as exc:
                raise CapabilityMissing(
                    f"enum {enum.name} could not be created: {exc}", obj=enum.name
                ) from exc
            if created:
                self.ctx.record("enum_created", enum.name)
                self.ctx.observer.info("enum_created", enum=enum.name, values=len(enum.values))
            values = self.backend.enum_values(enum.name) or []

        failures: List[str] = []
        for value in enum.missing_values(values):
            try:
                self.backend.add_enum_value(enum.name, value)
            except Exception as exc:
                failures.append(f"{value} ({exc})")
                self.ctx.observer.error("enum_value_failed", enum=enum.name, value=value, error=str(exc))
                continue
            self.ctx.record("enum_value_added", f"{enum.name}.{value}")
            self.ctx.observer.info("enum_value_added", enum=enum.name, value=value)

        if failures:
            raise CapabilityMissing(
                f"enum {enum.name} is missing values: {', '.join(failures)}", obj=enum.name
            )

    def ensure_function(self, function: FunctionSpec) -> None:
        try:
            self.ctx.create(
                lambda: self.backend.create_function(function),
                lambda: self.backend.function_exists(function.name),
                function.name,
            )
        except SchemaError:
            raise
        except Exception as exc:
            raise CapabilityMissing(
                f"procedure {function.name}() could not be created: {exc}", obj=function.name
            ) from exc
        self.ctx.observer.debug("function_replaced", function=function.name)
