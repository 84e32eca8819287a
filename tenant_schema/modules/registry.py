"""Module registry: the fixed set of schema modules and shared capabilities."""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional

from ..model.routines import Capabilities
from ..model.tables import TableSpec
from .base import SchemaModule


class ModuleRegistry:
    """Ordered collection of schema modules.

    Registration order only breaks ties between modules with no dependency
    relation; the run order comes from ``depends_on``.
    """

    def __init__(
        self,
        modules: Iterable[SchemaModule] = (),
        capabilities: Optional[Capabilities] = None,
    ):
        if capabilities is None:
            from .shared import CAPABILITIES

            capabilities = CAPABILITIES
        self.capabilities = capabilities
        self._modules: List[SchemaModule] = []
        for module in modules:
            self.register(module)

    def register(self, module: SchemaModule) -> None:
        if any(m.name == module.name for m in self._modules):
            raise ValueError(f"module {module.name} is already registered")
        self._modules.append(module)

    def get(self, name: str) -> SchemaModule:
        for module in self._modules:
            if module.name == name:
                return module
        raise KeyError(name)

    def replace(self, module: SchemaModule) -> None:
        """Swap in a module with the same name (tests use this to stub one out)."""
        for i, existing in enumerate(self._modules):
            if existing.name == module.name:
                self._modules[i] = module
                return
        raise KeyError(module.name)

    def tables(self) -> List[TableSpec]:
        return [t for m in self._modules for t in m.tables]

    def owners(self) -> Dict[str, str]:
        return {t.name: m.name for m in self._modules for t in m.tables}

    def critical_tables(self) -> List[str]:
        return [t.name for t in self.tables() if t.critical]

    def __iter__(self) -> Iterator[SchemaModule]:
        return iter(list(self._modules))

    def __len__(self) -> int:
        return len(self._modules)

    def __contains__(self, name: object) -> bool:
        return any(m.name == name for m in self._modules)


def default_modules() -> List[SchemaModule]:
    from .agencies import AgenciesModule
    from .assets import AssetsModule
    from .auth import AuthModule
    from .clients_financial import ClientsFinancialModule
    from .crm import CrmEnhancementsModule, CrmModule
    from .departments import DepartmentsModule
    from .financial import FinancialModule
    from .gst import GstModule
    from .hr import HrModule
    from .integration_hub import IntegrationHubModule
    from .inventory import InventoryModule
    from .messaging import MessagingModule
    from .misc import MiscModule
    from .procurement import ProcurementModule
    from .projects import ProjectEnhancementsModule, ProjectsTasksModule
    from .reimbursement import ReimbursementModule
    from .reporting import ReportingModule
    from .slack import SlackModule
    from .system import SystemModule
    from .views import ViewsModule
    from .workflow import WorkflowModule

    return [
        AuthModule(),
        AgenciesModule(),
        DepartmentsModule(),
        HrModule(),
        ClientsFinancialModule(),
        ProjectsTasksModule(),
        CrmModule(),
        CrmEnhancementsModule(),
        GstModule(),
        ReimbursementModule(),
        InventoryModule(),
        ProcurementModule(),
        FinancialModule(),
        ReportingModule(),
        ProjectEnhancementsModule(),
        MiscModule(),
        MessagingModule(),
        SlackModule(),
        AssetsModule(),
        WorkflowModule(),
        IntegrationHubModule(),
        ViewsModule(),
        SystemModule(),
    ]


def default_registry() -> ModuleRegistry:
    """A fresh registry holding every built-in module."""
    return ModuleRegistry(default_modules())
