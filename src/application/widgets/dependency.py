"""Dependency widget - module list with resolved dependencies.

Dependency ids that do not match a module are dropped. Self-loops and cycles
are legal; reachability is computed iteratively with a visited set.
"""

from typing import Any

from src.application.widgets.base import WidgetRenderer
from src.domain.entities.analysis import Module
from src.domain.entities.dashboard import StoreSnapshot
from src.domain.entities.widgets import WidgetKind


def current_modules(snapshot: StoreSnapshot) -> tuple[Module, ...] | None:
    """Modules from the result record, falling back to project metrics."""
    if snapshot.result is not None and snapshot.result.dependency_graph:
        return snapshot.result.dependency_graph
    if snapshot.metrics is not None and snapshot.metrics.dependency_graph:
        return snapshot.metrics.dependency_graph
    return None


def resolve_dependencies(module: Module, by_id: dict[str, Module]) -> list[Module]:
    """Known dependencies of a module, in order, without duplicates."""
    seen: set[str] = set()
    resolved: list[Module] = []
    for dep_id in module.dependencies:
        if dep_id in by_id and dep_id not in seen:
            seen.add(dep_id)
            resolved.append(by_id[dep_id])
    return resolved


def reachable_ids(start: Module, by_id: dict[str, Module]) -> set[str]:
    """Ids reachable from ``start`` through resolved dependencies (may include start)."""
    reached: set[str] = set()
    stack = [d for d in start.dependencies if d in by_id]
    while stack:
        current = stack.pop()
        if current in reached:
            continue
        reached.add(current)
        stack.extend(d for d in by_id[current].dependencies if d in by_id and d not in reached)
    return reached


class DependencyWidget(WidgetRenderer):
    kind = WidgetKind.DEPENDENCY

    def _entry(self, module: Module, by_id: dict[str, Module], settings: dict[str, bool]) -> dict:
        show_types = settings.get("show_types", False)
        deps = []
        for dep in resolve_dependencies(module, by_id):
            item: dict[str, Any] = {"id": dep.id, "name": dep.name}
            if show_types:
                item["kind"] = dep.kind.value
            deps.append(item)
        entry: dict[str, Any] = {
            "id": module.id,
            "name": module.name,
            "dependencies": deps,
        }
        if show_types:
            entry["kind"] = module.kind.value
        if settings.get("show_details"):
            reached = reachable_ids(module, by_id)
            entry["details"] = module.details
            entry["reach"] = len(reached - {module.id})
            entry["in_cycle"] = module.id in reached
        return entry

    def build(self, snapshot: StoreSnapshot, settings: dict[str, bool]) -> dict[str, Any] | None:
        modules = current_modules(snapshot)
        if modules is None:
            return None
        by_id = {m.id: m for m in modules}
        groups: dict[str, list[dict]] = {}
        for module in modules:
            key = module.kind.value if settings.get("group_by_kind") else "all"
            groups.setdefault(key, []).append(self._entry(module, by_id, settings))
        dangling = sum(1 for m in modules for d in m.dependencies if d not in by_id)
        return {
            "grouped": bool(settings.get("group_by_kind")),
            "groups": [{"name": name, "modules": entries} for name, entries in groups.items()],
            "module_count": len(modules),
            "unresolved_count": dangling,
        }
