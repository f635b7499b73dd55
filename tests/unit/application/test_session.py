"""Tests for the dashboard session (submit, persistence, realtime reconciliation)."""

import asyncio
import time

import pytest

from src.application.dashboard import session as session_module
from src.application.dashboard.session import DashboardSession
from src.application.dashboard.store import ResultStore
from src.application.widgets import CodeTreeWidget
from src.domain.entities.analysis import AnalysisOptions
from src.domain.entities.dashboard import ChangeEvent, ChangeStream, NotificationLevel
from src.domain.entities.widgets import WidgetKind
from src.domain.services.heuristic_scorer import build_metrics, score
from src.infrastructure.persistence.memory_gateway import InMemoryGateway

PROJECT = "project-1"


def _file_content(session: DashboardSession) -> str | None:
    record = session.store.result
    return record.code_tree.find("main").content if record else None


async def _settle() -> None:
    """Let queued feed events reach the store."""
    for _ in range(5):
        await asyncio.sleep(0.01)


@pytest.fixture
def gateway() -> InMemoryGateway:
    return InMemoryGateway()


@pytest.fixture
async def session(gateway: InMemoryGateway):
    s = DashboardSession(ResultStore(), gateway, PROJECT)
    yield s
    await s.close()


class TestSubmit:
    """Local analysis and background save."""

    @pytest.mark.asyncio
    async def test_submit_applies_and_saves(self, session: DashboardSession, gateway: InMemoryGateway):
        outcome = await session.submit("def f():\n    pass\n")
        assert outcome.applied
        assert session.store.result == outcome.result
        await session.flush()
        saved = await gateway.fetch_latest_result(PROJECT)
        assert saved.revision == outcome.revision
        assert saved.record == outcome.result

    @pytest.mark.asyncio
    async def test_success_notification(self, session: DashboardSession):
        await session.submit("x = 1")
        titles = [(n.level, n.title) for n in session.store.notifications()]
        assert (NotificationLevel.SUCCESS, "Analysis Complete") in titles

    @pytest.mark.asyncio
    async def test_options_passed_to_scorer(self, session: DashboardSession):
        outcome = await session.submit("eval(x)", AnalysisOptions(security=False))
        assert outcome.result.security == ()

    @pytest.mark.asyncio
    async def test_later_submit_wins_when_earlier_finishes_last(
        self, session: DashboardSession, monkeypatch
    ):
        real_score = session_module.score

        def slow_first(text, options, file_name):
            if text == "first":
                time.sleep(0.2)
            return real_score(text, options, file_name)

        monkeypatch.setattr(session_module, "score", slow_first)

        first_task = asyncio.create_task(session.submit("first"))
        await asyncio.sleep(0)
        second = await session.submit("second")
        first = await first_task

        assert second.applied
        assert not first.applied
        assert first.revision < second.revision
        assert _file_content(session) == "second"

    @pytest.mark.asyncio
    async def test_save_failure_keeps_local_record(
        self, session: DashboardSession, gateway: InMemoryGateway
    ):
        gateway.fail_operations.add("save_result")
        outcome = await session.submit("x = 1")
        await session.flush()
        assert session.store.result == outcome.result
        errors = [n for n in session.store.notifications() if n.level is NotificationLevel.ERROR]
        assert [n.title for n in errors] == ["Analysis not saved"]


class TestMount:
    """Initial load and remount."""

    @pytest.mark.asyncio
    async def test_mount_loads_saved_analysis(self, gateway: InMemoryGateway):
        record = score("if a: pass")
        await gateway.save_result(PROJECT, record, build_metrics("if a: pass", record), 7)

        session = DashboardSession(ResultStore(), gateway, PROJECT)
        outcome = await session.mount()
        try:
            assert outcome.has_result and outcome.has_metrics
            assert outcome.result_revision == 7
            assert session.store.result == record
            assert session.mounted
        finally:
            await session.close()

    @pytest.mark.asyncio
    async def test_loading_cleared_with_fetched_data(self, gateway: InMemoryGateway):
        record = score("x")
        await gateway.save_result(PROJECT, record, build_metrics("x", record), 1)
        store = ResultStore()
        seen = []
        store.subscribe(seen.append)

        session = DashboardSession(store, gateway, PROJECT)
        await session.mount()
        await session.close()

        assert any(all(s.loading.values()) for s in seen)
        for snap in seen:
            if snap.result is not None:
                assert not any(snap.loading.values())

    @pytest.mark.asyncio
    async def test_mount_with_empty_backend(self, session: DashboardSession):
        outcome = await session.mount()
        assert not outcome.has_result
        assert outcome.fetch_error is None
        assert not any(session.store.snapshot().loading.values())

    @pytest.mark.asyncio
    async def test_fetch_failure_warns(self, session: DashboardSession, gateway: InMemoryGateway):
        gateway.fail_operations.add("fetch_latest_result")
        outcome = await session.mount()
        assert outcome.fetch_error
        assert not any(session.store.snapshot().loading.values())
        warnings = [n for n in session.store.notifications() if n.level is NotificationLevel.WARNING]
        assert [n.title for n in warnings] == ["Could not load saved analysis"]

    @pytest.mark.asyncio
    async def test_remount_resets_expand_state(self, session: DashboardSession):
        await session.submit("x")
        await session.mount()
        tree = session.widget(WidgetKind.CODE_TREE)
        assert isinstance(tree, CodeTreeWidget)
        tree.toggle("root")
        assert tree.is_expanded("root")

        await session.mount()
        fresh = session.widget(WidgetKind.CODE_TREE)
        assert not fresh.is_expanded("root")

    @pytest.mark.asyncio
    async def test_remount_replaces_feed(self, session: DashboardSession, gateway: InMemoryGateway):
        await session.mount()
        await session.mount()
        assert gateway.subscriber_count(PROJECT) == 1
        await session.close()
        assert gateway.subscriber_count(PROJECT) == 0
        assert not session.mounted


class TestRealtime:
    """Change feed reconciliation."""

    @pytest.mark.asyncio
    async def test_own_echo_does_not_revert(self, session: DashboardSession):
        await session.mount()
        await session.submit("first")
        await session.submit("second")
        await session.flush()
        await _settle()
        assert _file_content(session) == "second"

    @pytest.mark.asyncio
    async def test_stale_echo_discarded(self, session: DashboardSession, gateway: InMemoryGateway):
        await session.mount()
        newer = await session.submit("newer")
        await session.flush()
        stale = score("stale")
        gateway.publish(ChangeEvent(
            stream=ChangeStream.RESULT, project_id=PROJECT, revision=newer.revision - 1, record=stale,
        ))
        await _settle()
        assert session.store.result == newer.result

    @pytest.mark.asyncio
    async def test_newer_remote_change_applied(self, session: DashboardSession, gateway: InMemoryGateway):
        await session.mount()
        await session.submit("local")
        await session.flush()
        remote = score("remote")
        gateway.publish(ChangeEvent(
            stream=ChangeStream.RESULT, project_id=PROJECT, revision=100, record=remote,
        ))
        await _settle()
        assert session.store.result == remote
        assert session.store.reserve_revision() > 100

    @pytest.mark.asyncio
    async def test_metrics_stream(self, session: DashboardSession, gateway: InMemoryGateway):
        await session.mount()
        record = score("for x in y: pass")
        metrics = build_metrics("for x in y: pass", record)
        gateway.publish(ChangeEvent(
            stream=ChangeStream.METRICS, project_id=PROJECT, revision=3, metrics=metrics,
        ))
        await _settle()
        snap = session.store.snapshot()
        assert snap.metrics == metrics
        assert snap.result is None

    def test_other_project_ignored(self, gateway: InMemoryGateway):
        session = DashboardSession(ResultStore(), gateway, PROJECT)
        event = ChangeEvent(
            stream=ChangeStream.RESULT, project_id="other", revision=5, record=score("x"),
        )
        assert not session.apply_change(event)
        assert session.store.result is None
