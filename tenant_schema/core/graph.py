"""
Module dependency graph.

Ordering is derived from each module's ``depends_on`` declaration, never
from registration order alone. Registration order only breaks ties, so the
same registry always yields the same sequence.
"""

from __future__ import annotations

from typing import Dict, List, Sequence, Set

from .errors import DependencyGraphError


def _index(modules: Sequence) -> Dict[str, object]:
    by_name: Dict[str, object] = {}
    for module in modules:
        if module.name in by_name:
            raise DependencyGraphError(f"module {module.name} is registered twice", module=module.name)
        by_name[module.name] = module
    for module in modules:
        for dep in module.depends_on:
            if dep not in by_name:
                raise DependencyGraphError(
                    f"module {module.name} depends on unknown module {dep}",
                    module=module.name,
                    obj=dep,
                )
    return by_name


def resolve_order(modules: Sequence) -> List:
    """Topologically sort modules (Kahn), stable with respect to input order."""
    by_name = _index(modules)
    position = {m.name: i for i, m in enumerate(modules)}
    remaining = {m.name: set(m.depends_on) for m in modules}
    ordered: List = []

    while remaining:
        ready = sorted((n for n, deps in remaining.items() if not deps), key=position.get)
        if not ready:
            cycle = sorted(remaining, key=position.get)
            raise DependencyGraphError(
                f"dependency cycle among modules: {', '.join(cycle)}",
                module=cycle[0],
            )
        name = ready[0]
        ordered.append(by_name[name])
        del remaining[name]
        for deps in remaining.values():
            deps.discard(name)
    return ordered


def ancestors(modules: Sequence) -> Dict[str, Set[str]]:
    """Map each module to every module it transitively depends on."""
    result: Dict[str, Set[str]] = {}
    for module in resolve_order(modules):
        closure: Set[str] = set()
        for dep in module.depends_on:
            closure.add(dep)
            closure |= result[dep]
        result[module.name] = closure
    return result


def table_owners(modules: Sequence) -> Dict[str, str]:
    owners: Dict[str, str] = {}
    for module in modules:
        for table in module.tables:
            if table.name in owners:
                raise DependencyGraphError(
                    f"table {table.name} is owned by both {owners[table.name]} and {module.name}",
                    module=module.name,
                    obj=table.name,
                )
            owners[table.name] = module.name
    return owners


def validate_graph(modules: Sequence) -> List:
    """Check the registry before anything executes; returns the run order.

    Raises DependencyGraphError on unknown or cyclic dependencies, on tables
    owned twice, and on any required foreign key or view dependency pointing
    at a table that is unowned or owned by a module not guaranteed to run
    earlier.
    """
    order = resolve_order(modules)
    owners = table_owners(modules)
    upstream = ancestors(modules)

    for module in order:
        allowed = upstream[module.name]
        seen_here: Set[str] = set()
        for table in module.tables:
            for target in table.referenced_tables():
                _check_reference(module, table.name, target, owners, allowed, seen_here)
            seen_here.add(table.name)
        local_tables = {t.name for t in module.tables}
        for view in module.views:
            for target in view.requires:
                _check_reference(
                    module, f"view {view.name}", target, owners, allowed, local_tables
                )
    return order


def _check_reference(module, source: str, target: str, owners, allowed, local) -> None:
    owner = owners.get(target)
    if owner is None:
        raise DependencyGraphError(
            f"{source} depends on {target}, which no module owns",
            module=module.name,
            obj=target,
        )
    if owner == module.name:
        if target not in local:
            raise DependencyGraphError(
                f"{source} references {target}, declared later in the same module",
                module=module.name,
                obj=target,
            )
        return
    if owner not in allowed:
        raise DependencyGraphError(
            f"{source} references {target} owned by {owner}, "
            f"which {module.name} does not depend on",
            module=module.name,
            obj=target,
        )
