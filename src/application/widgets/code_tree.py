"""Code tree widget - file/folder tree with expand state and selection.

Expand/collapse state lives in the renderer instance (reset when the
dashboard is remounted). The selected node lives in the shared store.
"""

from typing import Any

from src.application.widgets.base import WidgetRenderer
from src.domain.entities.analysis import NodeKind, TreeNode
from src.domain.entities.dashboard import StoreSnapshot
from src.domain.entities.widgets import WidgetKind
from src.domain.errors import UnknownNodeError
from src.domain.services.heuristic_scorer import split_lines


def current_tree(snapshot: StoreSnapshot) -> TreeNode | None:
    """Tree from the result record, falling back to project metrics."""
    if snapshot.result is not None and snapshot.result.code_tree is not None:
        return snapshot.result.code_tree
    if snapshot.metrics is not None:
        return snapshot.metrics.code_tree
    return None


class CodeTreeWidget(WidgetRenderer):
    kind = WidgetKind.CODE_TREE
    placeholder_rows = 5

    def __init__(self, store) -> None:
        super().__init__(store)
        self._expanded: dict[str, bool] = {}

    def is_expanded(self, node_id: str, settings: dict[str, bool] | None = None) -> bool:
        settings = settings if settings is not None else self.settings
        return self._expanded.get(node_id, settings.get("expanded_by_default", False))

    def _find(self, node_id: str) -> TreeNode:
        tree = current_tree(self._store.snapshot())
        node = tree.find(node_id) if tree is not None else None
        if node is None:
            raise UnknownNodeError(f"Node not found: {node_id!r}")
        return node

    def toggle(self, node_id: str) -> bool:
        """Flip a folder's expanded state; returns the new state (files stay False)."""
        node = self._find(node_id)
        if node.kind is not NodeKind.FOLDER:
            return False
        expanded = not self.is_expanded(node_id)
        self._expanded[node_id] = expanded
        return expanded

    def select(self, node_id: str) -> TreeNode:
        node = self._find(node_id)
        self._store.select_node(node.id)
        return node

    def clear_selection(self) -> None:
        self._store.select_node(None)

    def _row(self, node: TreeNode, level: int, settings: dict[str, bool], selected_id: str | None) -> dict:
        row: dict[str, Any] = {
            "id": node.id,
            "name": node.name,
            "kind": node.kind.value,
            "level": level,
            "selected": node.id == selected_id,
        }
        if node.kind is NodeKind.FOLDER:
            row["expanded"] = self.is_expanded(node.id, settings)
            row["child_count"] = len(node.children)
        else:
            if settings.get("show_file_sizes") and node.size:
                row["size_kb"] = round(node.size / 1024, 1)
            if settings.get("show_line_numbers") and node.content is not None:
                row["line_count"] = len(split_lines(node.content))
        return row

    def build(self, snapshot: StoreSnapshot, settings: dict[str, bool]) -> dict[str, Any] | None:
        root = current_tree(snapshot)
        if root is None:
            return None
        selected = snapshot.selected_node
        selected_id = selected.id if selected else None
        rows: list[dict] = []
        stack: list[tuple[TreeNode, int]] = [(root, 0)]
        while stack:
            node, level = stack.pop()
            rows.append(self._row(node, level, settings, selected_id))
            if node.kind is NodeKind.FOLDER and self.is_expanded(node.id, settings):
                stack.extend((child, level + 1) for child in reversed(node.children))
        return {
            "title": f"Code Tree - {selected.name}" if selected else "Code Tree",
            "root_id": root.id,
            "selected": {"id": selected.id, "name": selected.name} if selected else None,
            "rows": rows,
        }
