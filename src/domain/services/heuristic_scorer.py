"""Heuristic scorer - maps source text to a ResultRecord.

Stand-in for a real static analyzer: every check is a plain substring test on
single lines. Deterministic and total: any string and any options produce a
record, nothing raises.
"""

from src.domain.entities.analysis import (
    AnalysisOptions,
    ComplexityMetrics,
    Finding,
    Module,
    ModuleKind,
    NodeKind,
    PerformanceMetrics,
    ProjectMetrics,
    ResultRecord,
    Severity,
    TreeNode,
)

# Substrings that count a line as a branch point (naive, matches "ifrit" too)
BRANCH_KEYWORDS: tuple[str, ...] = ("if", "for", "while")

MAX_LINE_LENGTH = 79

# (substring, severity, message, suggestion)
SECURITY_CHECKS: list[tuple[str, Severity, str, str]] = [
    (
        "eval(",
        Severity.HIGH,
        "Use of eval() can be dangerous",
        "Use ast.literal_eval() or an explicit parser instead",
    ),
    (
        "exec(",
        Severity.HIGH,
        "Use of exec() can be dangerous",
        "Restructure the code to avoid dynamic execution",
    ),
]

DOCSTRING_MARKER = '"""'

# (line substring, message, suggestion)
DEFINITION_CHECKS: list[tuple[str, str, str]] = [
    ("def ", "Missing function docstring", "Add a docstring explaining the function purpose"),
    ("class ", "Missing class docstring", "Add a docstring describing the class"),
]


def split_lines(text: str) -> list[str]:
    """Split text on newlines; a terminating newline does not start a new line.

    The empty string is one (empty) line.
    """
    lines = text.split("\n")
    if len(lines) > 1 and lines[-1] == "":
        lines.pop()
    return lines


def score_complexity(lines: list[str], enabled: bool = True) -> ComplexityMetrics:
    """Branch count and derived scores. ``lines_of_code`` is always reported."""
    cyclomatic = 0
    if enabled:
        cyclomatic = sum(
            1 for line in lines if any(keyword in line for keyword in BRANCH_KEYWORDS)
        )
    return ComplexityMetrics(
        cyclomatic_complexity=cyclomatic,
        maintainability_index=max(0, 100 - 5 * cyclomatic),
        cognitive_complexity=(3 * cyclomatic) // 2,
        lines_of_code=len(lines),
    )


def check_security(lines: list[str]) -> list[Finding]:
    findings: list[Finding] = []
    for number, line in enumerate(lines, 1):
        for needle, severity, message, suggestion in SECURITY_CHECKS:
            if needle in line:
                findings.append(Finding(
                    line=number,
                    message=message,
                    severity=severity,
                    suggestion=suggestion,
                ))
    return findings


def _is_bad_name(token: str) -> bool:
    return "_" in token and any(ch.isupper() for ch in token)


def check_style(lines: list[str]) -> list[Finding]:
    """Long lines, then mixed underscore/uppercase tokens, line by line."""
    findings: list[Finding] = []
    for number, line in enumerate(lines, 1):
        if len(line) > MAX_LINE_LENGTH:
            findings.append(Finding(
                line=number,
                message=f"Line too long ({len(line)} > {MAX_LINE_LENGTH} characters)",
                suggestion=f"Wrap the line to at most {MAX_LINE_LENGTH} characters",
            ))
        for token in line.split():
            if _is_bad_name(token):
                findings.append(Finding(
                    line=number,
                    message=f"Naming convention: '{token}' mixes underscores and uppercase letters",
                    suggestion="Use snake_case for functions and variables, CapWords for classes",
                ))
    return findings


def check_documentation(lines: list[str]) -> list[Finding]:
    findings: list[Finding] = []
    if DOCSTRING_MARKER not in lines[0]:
        findings.append(Finding(
            line=1,
            message="Missing module docstring",
            suggestion="Add a docstring at the top of the module",
        ))
    for index, line in enumerate(lines):
        following = lines[index + 1] if index + 1 < len(lines) else ""
        for needle, message, suggestion in DEFINITION_CHECKS:
            if needle in line and DOCSTRING_MARKER not in following:
                findings.append(Finding(line=index + 1, message=message, suggestion=suggestion))
    return findings


def byte_size(text: str) -> int:
    """UTF-8 size of text; lone surrogates count as their encoded 3 bytes."""
    return len(text.encode("utf-8", "surrogatepass"))


def placeholder_code_tree(text: str, file_name: str = "main.py") -> TreeNode:
    """Single-file project tree holding the analyzed text."""
    return TreeNode(
        id="root",
        name="Project Root",
        kind=NodeKind.FOLDER,
        children=(
            TreeNode(
                id="src",
                name="src",
                kind=NodeKind.FOLDER,
                children=(
                    TreeNode(
                        id="main",
                        name=file_name,
                        kind=NodeKind.FILE,
                        content=text,
                        size=byte_size(text),
                    ),
                ),
            ),
        ),
    )


def placeholder_dependency_graph(file_name: str = "main.py") -> tuple[Module, ...]:
    return (
        Module(id="main", name=file_name, kind=ModuleKind.MODULE, dependencies=("utils",)),
        Module(id="utils", name="utils.py", kind=ModuleKind.MODULE),
    )


def score(
    text: str,
    options: AnalysisOptions | None = None,
    file_name: str = "main.py",
) -> ResultRecord:
    """Score text into a ResultRecord.

    Args:
        text: Source text, any string (empty is one empty line).
        options: Sections to compute; disabled sections come back empty.
        file_name: Name of the single file in the placeholder tree.

    Returns:
        Immutable ResultRecord. Same input always gives equal output.
    """
    options = options or AnalysisOptions()
    lines = split_lines(text)
    return ResultRecord(
        complexity=score_complexity(lines, enabled=options.complexity),
        security=tuple(check_security(lines)) if options.security else (),
        style=tuple(check_style(lines)) if options.style else (),
        documentation=tuple(check_documentation(lines)) if options.documentation else (),
        code_tree=placeholder_code_tree(text, file_name),
        dependency_graph=placeholder_dependency_graph(file_name),
    )


def estimate_performance(text: str, record: ResultRecord) -> PerformanceMetrics:
    """Deterministic performance placeholder derived from size and branch count."""
    loops = record.complexity.cyclomatic_complexity
    size_kb = byte_size(text) / 1024
    return PerformanceMetrics(
        time_complexity="O(n)" if loops else "O(1)",
        space_complexity="O(1)",
        memory_usage=round(size_kb, 2),
        cpu_usage=float(min(100, 5 * loops)),
        response_time=float(record.complexity.lines_of_code),
        execution_time=round(record.complexity.lines_of_code * 0.1, 2),
    )


def build_metrics(text: str, record: ResultRecord) -> ProjectMetrics:
    """Project metrics row that accompanies a result record."""
    return ProjectMetrics(
        code_tree=record.code_tree,
        dependency_graph=record.dependency_graph,
        performance=estimate_performance(text, record),
    )
