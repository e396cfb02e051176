import logging
from unittest.mock import MagicMock

import pytest

from placecrawl.domain.decode_result import DecodeError, DecodeErrorKind
from placecrawl.domain.search_config import SearchConfig
from placecrawl.domain.session_state import SearchResult, SessionOutcome
from placecrawl.exceptions import PageDecodeError, SessionTimeoutError
from placecrawl.services.crawl_stats import CrawlStats
from placecrawl.services.search_registry import InMemorySearchRegistry
from placecrawl.services.search_runner import SearchRunner

CONFIG = SearchConfig(config_path="cafes.yaml", search_string="cafes")
DONE = SearchResult(
    outcome=SessionOutcome.END_OF_RESULTS, total_found=12, total_enqueued=10, total_pushed=0, page_index=2,
)


def _track_started(registry):
    started = []
    start = registry.start

    def spy(*args, **kwargs):
        handle = start(*args, **kwargs)
        started.append(handle.search_id)
        return handle

    registry.start = spy
    return started


def _page_error():
    return PageDecodeError("cafes", DecodeError(DecodeErrorKind.NOT_JSON, "html"), snapshot_ref="SEARCH-RESPONSE-ERROR-1")


class _Controllers:
    """Hands out controllers that play back `outcomes` one per attempt."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.transports = []

    def __call__(self, *, transport):
        self.transports.append(transport)
        outcome = self.outcomes.pop(0)
        controller = MagicMock()
        if isinstance(outcome, Exception):
            controller.run.side_effect = outcome
        else:
            controller.run.return_value = outcome
        return controller


def _runner(outcomes, registry=None, max_retries=3, stats=None):
    controllers = _Controllers(outcomes)
    transports = []

    def transport_factory(config):
        transport = MagicMock(name=f"transport-{len(transports)}")
        transports.append(transport)
        return transport

    runner = SearchRunner(
        controller_factory=controllers,
        transport_factory=transport_factory,
        registry=registry,
        max_retries=max_retries,
        stats=stats,
    )
    return runner, controllers, transports


def test_retries_retryable_errors_with_fresh_transport():
    registry = InMemorySearchRegistry()
    started = _track_started(registry)
    runner, controllers, transports = _runner([_page_error(), SessionTimeoutError("cafes", "slow"), DONE], registry)

    result = runner.run(CONFIG)

    assert result is DONE
    assert len(transports) == 3
    assert controllers.transports == transports
    for transport in transports:
        transport.close.assert_called_once()

    [rec] = [registry.get(sid) for sid in started]
    assert rec["status"] == "finished"
    assert rec["outcome"] == "end_of_results"
    assert rec["attempts"] == 3
    assert rec["total_enqueued"] == 10
    assert rec["config_path"] == "cafes.yaml"


def test_gives_up_after_max_retries_and_marks_failed():
    registry = InMemorySearchRegistry()
    started = _track_started(registry)
    runner, _, transports = _runner([_page_error(), _page_error(), _page_error()], registry, max_retries=2)

    with pytest.raises(PageDecodeError):
        runner.run(CONFIG)

    assert len(transports) == 3
    [rec] = [registry.get(sid) for sid in started]
    assert rec["status"] == "failed"
    assert "not_json: html" in rec["error"]


def test_other_errors_are_not_retried():
    runner, _, transports = _runner([KeyError("boom"), DONE])
    with pytest.raises(KeyError):
        runner.run(CONFIG)
    assert len(transports) == 1
    transports[0].close.assert_called_once()


def test_registry_stop_event_is_passed_to_controller():
    registry = InMemorySearchRegistry()
    captured = {}

    def controller_factory(*, transport):
        controller = MagicMock()

        def run(config, stop_event=None, on_progress=None):
            captured["stop_event"] = stop_event
            state = MagicMock(page_index=3, total_found=7, total_enqueued=7, total_pushed=0)
            on_progress(state)
            captured["active"] = registry.list_active()
            return DONE

        controller.run.side_effect = run
        return controller

    runner = SearchRunner(controller_factory=controller_factory, transport_factory=lambda config: MagicMock(), registry=registry)
    runner.run(CONFIG)

    [active] = captured["active"]
    assert active["page_index"] == 3
    assert active["total_found"] == 7
    assert registry.get_stop_event(active["id"]) is None
    assert captured["stop_event"] is not None
    assert not captured["stop_event"].is_set()


def test_negative_retries_rejected():
    with pytest.raises(ValueError):
        SearchRunner(controller_factory=MagicMock(), transport_factory=MagicMock(), max_retries=-1)


def test_logs_stats_summary_when_search_ends(caplog):
    stats = CrawlStats()
    stats.termination(SessionOutcome.END_OF_RESULTS)
    runner, _, _ = _runner([DONE], stats=stats)
    with caplog.at_level(logging.INFO):
        runner.run(CONFIG)
    assert "[STATS]: terminations {'end_of_results': 1}" in caplog.text


def test_logs_stats_summary_when_search_fails(caplog):
    stats = CrawlStats()
    stats.failure("not_json")
    runner, _, _ = _runner([_page_error()], stats=stats, max_retries=0)
    with pytest.raises(PageDecodeError):
        runner.run(CONFIG)
    warnings = [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING]
    assert "[STATS]: failures {'not_json': 1}" in warnings
