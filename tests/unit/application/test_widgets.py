"""Tests for the dashboard widget renderers."""

import pytest

from src.application.dashboard.store import ResultStore
from src.application.widgets import (
    CodeTreeWidget,
    ComplexityWidget,
    DependencyWidget,
    PerformanceWidget,
    WidgetStatus,
    build_widgets,
)
from src.domain.entities.analysis import (
    ComplexityMetrics,
    Module,
    ModuleKind,
    PerformanceMetrics,
    ProjectMetrics,
    ResultRecord,
)
from src.domain.entities.widgets import WidgetKind
from src.domain.errors import UnknownNodeError, UnknownSettingError
from src.domain.services.heuristic_scorer import build_metrics, score


@pytest.fixture
def store() -> ResultStore:
    return ResultStore()


def _analyze(store: ResultStore, text: str) -> ResultRecord:
    record = score(text)
    store.apply_analysis(record, build_metrics(text, record), store.reserve_revision())
    return record


class TestStates:
    """Loading / empty / ready."""

    def test_all_empty_before_analysis(self, store: ResultStore):
        for widget in build_widgets(store).values():
            view = widget.render()
            assert view.status is WidgetStatus.EMPTY
            assert view.data is None

    def test_loading_shows_placeholders(self, store: ResultStore):
        _analyze(store, "x")
        store.set_loading(WidgetKind.CODE_TREE, True)
        view = CodeTreeWidget(store).render()
        assert view.status is WidgetStatus.LOADING
        assert view.placeholders == 5
        assert ComplexityWidget(store).render().status is WidgetStatus.READY

    def test_ready_after_analysis(self, store: ResultStore):
        _analyze(store, "x")
        for kind, widget in build_widgets(store).items():
            view = widget.render()
            assert view.status is WidgetStatus.READY, kind
            assert view.settings == store.settings_for(kind)

    def test_widget_only_changes_own_settings(self, store: ResultStore):
        with pytest.raises(UnknownSettingError):
            ComplexityWidget(store).update_setting("show_types", False)


class TestComplexityWidget:
    """Score bars."""

    def test_metrics(self, store: ResultStore):
        _analyze(store, "if a: pass\nif b: pass")
        data = ComplexityWidget(store).render().data
        by_key = {m["key"]: m for m in data["metrics"]}
        assert by_key["cyclomatic_complexity"]["value"] == 2
        assert by_key["maintainability_index"]["value"] == 90
        assert by_key["maintainability_index"]["progress"] == 90.0
        assert by_key["lines_of_code"]["threshold"] == {"min": 0, "max": 1000}
        assert data["findings"]["documentation"] == 1

    def test_progress_clamped(self, store: ResultStore):
        _analyze(store, "\n".join(["if x: pass"] * 40))
        by_key = {m["key"]: m for m in ComplexityWidget(store).render().data["metrics"]}
        assert by_key["cyclomatic_complexity"]["progress"] == 100.0
        assert by_key["cyclomatic_complexity"]["percent"] > 100

    def test_trend_against_previous(self, store: ResultStore):
        _analyze(store, "if a: pass")
        _analyze(store, "if a: pass\nif b: pass\nif c: pass")
        by_key = {m["key"]: m for m in ComplexityWidget(store).render().data["metrics"]}
        assert by_key["cyclomatic_complexity"]["change"] == 2

    def test_settings_hide_fields(self, store: ResultStore):
        _analyze(store, "x")
        widget = ComplexityWidget(store)
        widget.update_setting("show_percentages", False)
        widget.update_setting("show_trends", False)
        metric = widget.render().data["metrics"][0]
        assert "percent" not in metric
        assert "change" not in metric
        assert "threshold" in metric


class TestDependencyWidget:
    """Module list and reachability."""

    @pytest.fixture
    def graph_store(self, store: ResultStore) -> ResultStore:
        modules = (
            Module(id="main", name="main.py", dependencies=("utils", "ghost", "utils")),
            Module(id="utils", name="utils.py", dependencies=("main",)),
            Module(id="self", name="self.py", kind=ModuleKind.PACKAGE, dependencies=("self",)),
            Module(id="leaf", name="leaf.py", kind=ModuleKind.COMPONENT, details="no deps"),
        )
        record = ResultRecord(complexity=ComplexityMetrics(lines_of_code=1), dependency_graph=modules)
        store.apply_result(record, 1)
        return store

    def _entries(self, store: ResultStore) -> dict[str, dict]:
        data = DependencyWidget(store).render().data
        return {e["id"]: e for group in data["groups"] for e in group["modules"]}

    def test_dangling_dependencies_dropped(self, graph_store: ResultStore):
        entries = self._entries(graph_store)
        assert [d["id"] for d in entries["main"]["dependencies"]] == ["utils"]
        data = DependencyWidget(graph_store).render().data
        assert data["unresolved_count"] == 1
        assert data["module_count"] == 4

    def test_cycles_and_self_loops(self, graph_store: ResultStore):
        entries = self._entries(graph_store)
        assert entries["main"]["in_cycle"] and entries["utils"]["in_cycle"]
        assert entries["self"]["in_cycle"]
        assert entries["self"]["reach"] == 0
        assert entries["main"]["reach"] == 1
        assert not entries["leaf"]["in_cycle"]
        assert entries["leaf"]["details"] == "no deps"

    def test_group_by_kind(self, graph_store: ResultStore):
        widget = DependencyWidget(graph_store)
        widget.update_setting("group_by_kind", True)
        data = widget.render().data
        assert data["grouped"]
        assert {g["name"] for g in data["groups"]} == {"module", "package", "component"}

    def test_hide_types_and_details(self, graph_store: ResultStore):
        widget = DependencyWidget(graph_store)
        widget.update_setting("show_types", False)
        widget.update_setting("show_details", False)
        entry = self._entries(graph_store)["main"]
        assert "kind" not in entry
        assert "reach" not in entry
        assert "kind" not in entry["dependencies"][0]

    def test_falls_back_to_metrics_graph(self, store: ResultStore):
        metrics = ProjectMetrics(dependency_graph=(Module(id="m", name="m.py"),))
        store.apply_metrics(metrics, 1)
        data = DependencyWidget(store).render().data
        assert data["module_count"] == 1


class TestCodeTreeWidget:
    """Expand state and selection."""

    def test_collapsed_by_default(self, store: ResultStore):
        _analyze(store, "x")
        rows = CodeTreeWidget(store).render().data["rows"]
        assert [r["id"] for r in rows] == ["root"]
        assert rows[0]["expanded"] is False
        assert rows[0]["child_count"] == 1

    def test_toggle_expands_levels(self, store: ResultStore):
        _analyze(store, "a\nb\nc")
        widget = CodeTreeWidget(store)
        assert widget.toggle("root") is True
        assert widget.toggle("src") is True
        rows = widget.render().data["rows"]
        assert [(r["id"], r["level"]) for r in rows] == [("root", 0), ("src", 1), ("main", 2)]
        assert rows[2]["line_count"] == 3
        assert widget.toggle("root") is False
        assert len(widget.render().data["rows"]) == 1

    def test_toggle_file_is_noop(self, store: ResultStore):
        _analyze(store, "x")
        assert CodeTreeWidget(store).toggle("main") is False

    def test_unknown_node(self, store: ResultStore):
        _analyze(store, "x")
        with pytest.raises(UnknownNodeError):
            CodeTreeWidget(store).toggle("nope")

    def test_no_tree_means_unknown_node(self, store: ResultStore):
        with pytest.raises(UnknownNodeError):
            CodeTreeWidget(store).select("root")

    def test_expanded_by_default_setting(self, store: ResultStore):
        _analyze(store, "x" * 2048)
        widget = CodeTreeWidget(store)
        widget.update_setting("expanded_by_default", True)
        rows = widget.render().data["rows"]
        assert [r["id"] for r in rows] == ["root", "src", "main"]
        assert rows[2]["size_kb"] == 2.0

    def test_file_size_hidden(self, store: ResultStore):
        _analyze(store, "x" * 2048)
        widget = CodeTreeWidget(store)
        widget.update_setting("expanded_by_default", True)
        widget.update_setting("show_file_sizes", False)
        widget.update_setting("show_line_numbers", False)
        row = widget.render().data["rows"][2]
        assert "size_kb" not in row
        assert "line_count" not in row

    def test_select_updates_store_and_title(self, store: ResultStore):
        _analyze(store, "x")
        widget = CodeTreeWidget(store)
        widget.select("src")
        widget.select("main")
        assert store.snapshot().selected_node.id == "main"
        data = widget.render().data
        assert data["title"] == "Code Tree - main.py"
        assert data["selected"] == {"id": "main", "name": "main.py"}
        widget.clear_selection()
        assert widget.render().data["title"] == "Code Tree"

    def test_expand_state_is_per_instance(self, store: ResultStore):
        _analyze(store, "x")
        first = CodeTreeWidget(store)
        first.toggle("root")
        assert not CodeTreeWidget(store).is_expanded("root")


class TestPerformanceWidget:
    """Resource rows and alerts."""

    def _metrics_store(self, store: ResultStore, **perf) -> ResultStore:
        store.apply_metrics(ProjectMetrics(performance=PerformanceMetrics(**perf)), 4)
        return store

    def test_empty_without_metrics(self, store: ResultStore):
        store.apply_result(score("x"), 1)
        assert PerformanceWidget(store).render().status is WidgetStatus.EMPTY

    def test_rows_and_revision(self, store: ResultStore):
        self._metrics_store(store, cpu_usage=40.0, time_complexity="O(n^2)")
        data = PerformanceWidget(store).render().data
        cpu = data["metrics"][0]
        assert cpu["key"] == "cpu"
        assert cpu["progress"] == 40.0
        assert not cpu["over_threshold"]
        assert data["time_complexity"] == "O(n^2)"
        assert data["revision"] == 4
        assert data["alerts"] == []

    def test_alert_above_eighty_percent(self, store: ResultStore):
        self._metrics_store(store, cpu_usage=90.0, memory_usage=500.0)
        data = PerformanceWidget(store).render().data
        assert data["metrics"][0]["over_threshold"]
        assert not data["metrics"][1]["over_threshold"]
        assert len(data["alerts"]) == 1

    def test_settings_hide_alerts_and_revision(self, store: ResultStore):
        self._metrics_store(store, cpu_usage=90.0)
        widget = PerformanceWidget(store)
        widget.update_setting("show_alerts", False)
        widget.update_setting("show_real_time", False)
        widget.update_setting("show_thresholds", False)
        data = widget.render().data
        assert "alerts" not in data
        assert "revision" not in data
        assert "threshold" not in data["metrics"][0]
        assert data["metrics"][0]["over_threshold"]
