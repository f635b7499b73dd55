"""Analysis result data model.

ResultRecord is the normalized, immutable output of one analysis run. It is
replaced wholesale on each new analysis and shared read-only by every widget.
Field aliases are camelCase so the JSON shape matches the UI shell and the
hosted backend rows; Python attributes stay snake_case.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class _Frozen(BaseModel):
    """Base for immutable, camelCase-serialized records."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class Severity(str, Enum):
    """Security finding severity."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class NodeKind(str, Enum):
    """Code tree node kind."""

    FILE = "file"
    FOLDER = "folder"


class ModuleKind(str, Enum):
    """Dependency graph module kind."""

    COMPONENT = "component"
    MODULE = "module"
    PACKAGE = "package"


class AnalysisOptions(_Frozen):
    """Which analysis sections to compute."""

    complexity: bool = True
    security: bool = True
    style: bool = True
    documentation: bool = True


class ComplexityMetrics(_Frozen):
    """Complexity block of a result record."""

    cyclomatic_complexity: int = Field(0, ge=0)
    maintainability_index: int = Field(100, ge=0, le=100)
    cognitive_complexity: int = Field(0, ge=0)
    lines_of_code: int = Field(0, ge=0)


class Finding(_Frozen):
    """A single flagged line.

    ``severity`` is only set for security findings.
    """

    line: int = Field(..., ge=1)
    message: str
    severity: Severity | None = None
    suggestion: str | None = None


class TreeNode(_Frozen):
    """Node of the code tree. Folders carry children, files carry content/size."""

    id: str
    name: str
    kind: NodeKind = Field(NodeKind.FILE, alias="type")
    children: tuple["TreeNode", ...] = ()
    content: str | None = None
    size: int | None = Field(None, ge=0)

    @model_validator(mode="after")
    def _check_kind_fields(self) -> "TreeNode":
        if self.kind is NodeKind.FILE and self.children:
            raise ValueError(f"file node {self.id!r} cannot have children")
        if self.kind is NodeKind.FOLDER and (self.content is not None or self.size is not None):
            raise ValueError(f"folder node {self.id!r} cannot carry content or size")
        return self

    def iter_nodes(self):
        """Yield this node and all descendants, depth-first, in order."""
        stack: list[TreeNode] = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def find(self, node_id: str) -> "TreeNode | None":
        """Find a node by id in this subtree."""
        for node in self.iter_nodes():
            if node.id == node_id:
                return node
        return None


TreeNode.model_rebuild()


class Module(_Frozen):
    """Dependency graph entry. ``dependencies`` are ids of other modules."""

    id: str
    name: str
    kind: ModuleKind = Field(ModuleKind.MODULE, alias="type")
    dependencies: tuple[str, ...] = ()
    details: str | None = None


class PerformanceMetrics(_Frozen):
    """Performance figures shown by the performance widget (placeholder estimates)."""

    time_complexity: str = "O(n)"
    space_complexity: str = "O(1)"
    memory_usage: float = Field(0.0, ge=0)  # KB
    memory_total: float = Field(1000.0, gt=0)
    cpu_usage: float = Field(0.0, ge=0)  # percent
    response_time: float = Field(0.0, ge=0)  # ms
    requests_per_second: float = Field(0.0, ge=0)
    execution_time: float = Field(0.0, ge=0)  # ms


def _check_unique_tree_ids(root: TreeNode) -> None:
    seen: set[str] = set()
    for node in root.iter_nodes():
        if node.id in seen:
            raise ValueError(f"duplicate code tree node id: {node.id!r}")
        seen.add(node.id)


def _check_unique_module_ids(modules: tuple[Module, ...]) -> None:
    seen: set[str] = set()
    for module in modules:
        if module.id in seen:
            raise ValueError(f"duplicate module id: {module.id!r}")
        seen.add(module.id)


class ProjectMetrics(_Frozen):
    """Per-project metrics row: structure plus performance figures."""

    code_tree: TreeNode | None = None
    dependency_graph: tuple[Module, ...] = ()
    performance: PerformanceMetrics = Field(
        default_factory=PerformanceMetrics, alias="performanceMetrics"
    )

    @model_validator(mode="after")
    def _check_ids(self) -> "ProjectMetrics":
        if self.code_tree is not None:
            _check_unique_tree_ids(self.code_tree)
        _check_unique_module_ids(self.dependency_graph)
        return self


class ResultRecord(_Frozen):
    """Normalized, atomic output of one analysis invocation."""

    complexity: ComplexityMetrics = Field(default_factory=ComplexityMetrics)
    security: tuple[Finding, ...] = ()
    style: tuple[Finding, ...] = ()
    documentation: tuple[Finding, ...] = ()
    code_tree: TreeNode | None = None
    dependency_graph: tuple[Module, ...] = ()

    @model_validator(mode="after")
    def _check_consistency(self) -> "ResultRecord":
        loc = self.complexity.lines_of_code
        if loc:
            for section in (self.security, self.style, self.documentation):
                for finding in section:
                    if finding.line > loc:
                        raise ValueError(
                            f"finding line {finding.line} exceeds linesOfCode {loc}"
                        )
        if self.code_tree is not None:
            _check_unique_tree_ids(self.code_tree)
        _check_unique_module_ids(self.dependency_graph)
        return self

    @property
    def finding_count(self) -> int:
        return len(self.security) + len(self.style) + len(self.documentation)
