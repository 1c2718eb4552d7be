"""
tests/test_orchestrator.py

Pytest unit tests for ScrapeOrchestrator.

Coverage
--------
- Queue draining under a concurrency limit
- Progress percentage math and zero-denominator handling
- Operation metadata lifecycle and one-shot terminal transitions
- Error accounting for fetch, validation and persistence failures
- Duplicates dropped without counting as errors
- Statistics retain "ever enqueued" queue lengths
- Reset semantics and checkpoint emission
- Discovery accounting and fail-fast propagation
- Checkpoint sink failures kept out of discovery control flow
"""

from __future__ import annotations

import pytest

from catalog_scraper.scraping.checkpoints import CallbackCheckpointSink
from catalog_scraper.scraping.errors import CatalogStorageError, DiscoveryError
from catalog_scraper.scraping.orchestrator import ScrapeOrchestrator
from catalog_scraper.scraping.types import Checkpoint, OperationType
from tests.conftest import (
    BASE_URL,
    FakeResponse,
    RecordingStorage,
    ScriptedSession,
    detail_page_html,
    list_item_html,
    list_page_html,
    make_fetcher,
    make_settings,
)


def brand_url(slug: str) -> str:
    return f"{BASE_URL}/tobaccos/{slug}"


def product_url(brand: str, slug: str) -> str:
    return f"{BASE_URL}/tobaccos/{brand}/{slug}"


def detail(name: str) -> FakeResponse:
    return FakeResponse(text=detail_page_html(name, description=f"{name} description"))


def two_page_brand_session() -> ScriptedSession:
    brands_url = f"{BASE_URL}/tobaccos/brands"
    first = list_page_html(
        [list_item_html("/tobaccos/a", "A"), list_item_html("/tobaccos/b", "B")],
        target="/tobaccos/brands",
        offset=0,
        total=3,
    )
    second = list_page_html(
        [list_item_html("/tobaccos/c", "C")],
        target="/tobaccos/brands",
        offset=2,
        total=3,
    )
    return ScriptedSession(
        routes={
            brands_url: FakeResponse(text=first),
            f"{brands_url}?offset=2": FakeResponse(text=second),
        }
    )


def make_orchestrator(
    session: ScriptedSession,
    storage: RecordingStorage,
    *,
    checkpoints: list[Checkpoint] | None = None,
    **overrides: object,
) -> ScrapeOrchestrator:
    settings = make_settings(**overrides)
    sink = CallbackCheckpointSink(checkpoints.append) if checkpoints is not None else None
    return ScrapeOrchestrator(
        settings=settings,
        storage=storage,
        fetcher=make_fetcher(settings, session),
        checkpoint_sink=sink,
    )


# ---------------------------------------------------------------------------
# Queue draining
# ---------------------------------------------------------------------------


class TestQueueDraining:
    def test_four_brands_with_limit_two(self, storage: RecordingStorage) -> None:
        slugs = ["darkside", "musthave", "tangiers", "element"]
        session = ScriptedSession(routes={brand_url(slug): detail(slug.title()) for slug in slugs})
        orchestrator = make_orchestrator(session, storage, max_concurrent_brands=2)
        for slug in slugs:
            orchestrator.queue_brand(slug)

        assert orchestrator.process_brand_queue() == 4
        assert sorted(storage.brands) == sorted(slugs)

    @pytest.mark.parametrize("limit", [1, 3, 10])
    def test_result_independent_of_limit(self, storage: RecordingStorage, limit: int) -> None:
        slugs = ["a", "b", "c", "d"]
        session = ScriptedSession(routes={brand_url(slug): detail(slug.upper()) for slug in slugs})
        orchestrator = make_orchestrator(session, storage, max_concurrent_brands=limit)
        for slug in slugs:
            orchestrator.queue_brand(slug)

        assert orchestrator.process_brand_queue() == 4

    def test_products_persist_under_their_brand(self, storage: RecordingStorage) -> None:
        session = ScriptedSession(
            routes={
                brand_url("darkside"): detail("Darkside"),
                product_url("darkside", "cola"): detail("Cola"),
                product_url("darkside", "needls"): detail("Needls"),
            }
        )
        orchestrator = make_orchestrator(session, storage)
        orchestrator.queue_brand("darkside")
        orchestrator.process_brand_queue()
        orchestrator.queue_product("cola", "darkside")
        orchestrator.queue_product("needls", "darkside")

        assert orchestrator.process_product_queue() == 2
        assert set(storage.products) == {("darkside", "cola"), ("darkside", "needls")}
        assert orchestrator.get_statistics().products_processed == 2

    def test_statistics_keep_enqueued_length(self, storage: RecordingStorage) -> None:
        slugs = ["a", "b", "c", "d"]
        session = ScriptedSession(routes={brand_url(slug): detail(slug.upper()) for slug in slugs})
        orchestrator = make_orchestrator(session, storage)
        for slug in slugs:
            orchestrator.queue_brand(slug)

        orchestrator.process_brand_queue()
        stats = orchestrator.get_statistics()

        assert stats.queued_brands == 4
        assert stats.pending_brands == 0
        assert stats.tracked_brands == 4
        assert orchestrator.process_brand_queue() == 0
        assert orchestrator.get_statistics().brands_processed == 4

    def test_stored_counts_never_move_backwards(self, storage: RecordingStorage) -> None:
        slugs = [f"brand-{number}" for number in range(12)]
        session = ScriptedSession(routes={brand_url(slug): detail(slug.title()) for slug in slugs})
        orchestrator = make_orchestrator(session, storage, max_concurrent_brands=4)
        operation_id = orchestrator.initialize_operation()
        for slug in slugs:
            orchestrator.queue_brand(slug)

        orchestrator.process_brand_queue()

        written = [patch["brands_processed"] for _, patch in storage.metadata_updates]
        assert written == sorted(written)
        assert written[-1] == 12
        assert storage.operations[operation_id]["brands_processed"] == 12


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


class TestProgress:
    def test_percentage(self, storage: RecordingStorage) -> None:
        orchestrator = make_orchestrator(ScriptedSession(), storage)
        orchestrator.state.increment("brands_discovered", 10)
        orchestrator.state.increment("brands_processed", 5)
        orchestrator.state.increment("products_discovered", 20)
        orchestrator.state.increment("products_processed", 10)

        progress = orchestrator.get_progress()

        assert progress.percentage == 50
        assert progress.total_discovered == 30
        assert progress.total_processed == 15

    def test_zero_denominator(self, storage: RecordingStorage) -> None:
        orchestrator = make_orchestrator(ScriptedSession(), storage)
        assert orchestrator.get_progress().percentage == 0

    def test_percentage_is_rounded(self, storage: RecordingStorage) -> None:
        orchestrator = make_orchestrator(ScriptedSession(), storage)
        orchestrator.state.increment("brands_discovered", 3)
        orchestrator.state.increment("brands_processed", 1)

        assert orchestrator.get_progress().percentage == 33.33

    def test_log_progress_returns_snapshot(self, storage: RecordingStorage, caplog: pytest.LogCaptureFixture) -> None:
        orchestrator = make_orchestrator(ScriptedSession(), storage)
        with caplog.at_level("INFO"):
            progress = orchestrator.log_progress()

        assert progress.percentage == 0
        assert "scrape_progress" in caplog.text


# ---------------------------------------------------------------------------
# Operation metadata lifecycle
# ---------------------------------------------------------------------------


class TestOperationLifecycle:
    def test_transitions_without_initialize_are_noops(self, storage: RecordingStorage) -> None:
        orchestrator = make_orchestrator(ScriptedSession(), storage)

        orchestrator.complete_operation()
        orchestrator.fail_operation("boom")

        assert storage.operations == {}

    def test_initialize_and_complete(self, storage: RecordingStorage) -> None:
        orchestrator = make_orchestrator(
            ScriptedSession(routes={brand_url("a"): detail("A")}),
            storage,
        )
        operation_id = orchestrator.initialize_operation(OperationType.INCREMENTAL_UPDATE)
        orchestrator.extract_brand_data("a")

        orchestrator.complete_operation()

        row = storage.operations[operation_id]
        assert row["operation_type"] == "incremental_update"
        assert row["status"] == "completed"
        assert row["brands_processed"] == 1
        assert row["products_processed"] == 0
        assert storage.metadata_updates == [(operation_id, {"brands_processed": 1, "products_processed": 0})]

    def test_terminal_transition_is_one_shot(self, storage: RecordingStorage) -> None:
        orchestrator = make_orchestrator(ScriptedSession(), storage)
        operation_id = orchestrator.initialize_operation()

        orchestrator.fail_operation("network down")
        orchestrator.complete_operation()

        assert storage.operations[operation_id]["status"] == "failed"
        assert storage.operations[operation_id]["reason"] == "network down"

    def test_unknown_operation_type_rejected(self, storage: RecordingStorage) -> None:
        orchestrator = make_orchestrator(ScriptedSession(), storage)
        with pytest.raises(ValueError):
            orchestrator.initialize_operation("partial")

    def test_storage_error_on_complete_is_reraised(self, storage: RecordingStorage) -> None:
        orchestrator = make_orchestrator(ScriptedSession(), storage)
        orchestrator.initialize_operation()
        storage.fail_terminal_transitions = True

        with pytest.raises(CatalogStorageError):
            orchestrator.complete_operation()

        storage.fail_terminal_transitions = False
        orchestrator.fail_operation("complete failed")
        assert storage.operations[orchestrator.operation_id]["status"] == "failed"


# ---------------------------------------------------------------------------
# Extraction error accounting
# ---------------------------------------------------------------------------


class TestErrorAccounting:
    def test_fetch_failure_counts_error(self, storage: RecordingStorage) -> None:
        orchestrator = make_orchestrator(
            ScriptedSession(routes={brand_url("gone"): FakeResponse(status_code=404)}),
            storage,
        )
        operation_id = orchestrator.initialize_operation()

        assert orchestrator.extract_brand_data("gone") is None
        assert orchestrator.get_statistics().errors_encountered == 1
        assert storage.error_increments == [operation_id]

    def test_validation_failure_counts_error(self, storage: RecordingStorage) -> None:
        orchestrator = make_orchestrator(
            ScriptedSession(routes={brand_url("long"): detail("N" * 600)}),
            storage,
        )
        orchestrator.initialize_operation()

        assert orchestrator.extract_brand_data("long") is None
        assert orchestrator.get_statistics().errors_encountered == 1
        assert storage.brands == {}
        assert len(storage.error_increments) == 1

    def test_parse_failure_counts_error(self, storage: RecordingStorage) -> None:
        orchestrator = make_orchestrator(
            ScriptedSession(routes={brand_url("odd"): FakeResponse(text="<html></html>")}),
            storage,
        )

        assert orchestrator.extract_brand_data("odd") is None
        assert orchestrator.get_statistics().errors_encountered == 1

    def test_persistence_failure_counts_error(self, storage: RecordingStorage) -> None:
        storage.failing_brands.add("broken")
        orchestrator = make_orchestrator(
            ScriptedSession(routes={brand_url("broken"): detail("Broken")}),
            storage,
        )
        orchestrator.initialize_operation()

        assert orchestrator.extract_brand_data("broken") is None
        assert orchestrator.get_statistics().errors_encountered == 1
        assert len(storage.error_increments) == 1

    def test_duplicate_is_not_an_error(self, storage: RecordingStorage) -> None:
        orchestrator = make_orchestrator(
            ScriptedSession(routes={brand_url("darkside"): detail("Darkside")}),
            storage,
        )
        orchestrator.initialize_operation()
        orchestrator.queue_brand("darkside")
        orchestrator.queue_brand("darkside")

        assert orchestrator.process_brand_queue() == 1
        stats = orchestrator.get_statistics()
        assert stats.brands_processed == 1
        assert stats.errors_encountered == 0
        assert storage.error_increments == []

    def test_errors_without_operation_skip_metadata(self, storage: RecordingStorage) -> None:
        orchestrator = make_orchestrator(
            ScriptedSession(routes={brand_url("gone"): FakeResponse(status_code=410)}),
            storage,
        )

        orchestrator.extract_brand_data("gone")

        assert orchestrator.get_statistics().errors_encountered == 1
        assert storage.error_increments == []

    def test_metadata_failures_do_not_propagate(self, storage: RecordingStorage) -> None:
        storage.fail_metadata_updates = True
        storage.fail_error_increments = True
        orchestrator = make_orchestrator(
            ScriptedSession(
                routes={brand_url("ok"): detail("Ok"), brand_url("gone"): FakeResponse(status_code=404)}
            ),
            storage,
        )
        orchestrator.initialize_operation()

        assert orchestrator.extract_brand_data("ok") is not None
        assert orchestrator.extract_brand_data("gone") is None
        stats = orchestrator.get_statistics()
        assert stats.brands_processed == 1
        assert stats.errors_encountered == 1

    def test_product_for_unknown_brand_fails_at_persist(self, storage: RecordingStorage) -> None:
        orchestrator = make_orchestrator(
            ScriptedSession(routes={product_url("ghost", "cola"): detail("Cola")}),
            storage,
        )

        assert orchestrator.extract_product_data("cola", "ghost") is None
        assert orchestrator.get_statistics().errors_encountered == 1


# ---------------------------------------------------------------------------
# Discovery through the orchestrator
# ---------------------------------------------------------------------------


class TestDiscovery:
    def test_discover_brands_counts_and_checkpoints(self, storage: RecordingStorage) -> None:
        checkpoints: list[Checkpoint] = []
        orchestrator = make_orchestrator(two_page_brand_session(), storage, checkpoints=checkpoints)

        result = orchestrator.discover_brands()

        assert result.identifiers == ["a", "b", "c"]
        assert orchestrator.get_statistics().brands_discovered == 3
        assert orchestrator.get_progress().iteration == 2
        assert [checkpoint.iteration_index for checkpoint in checkpoints] == [1]
        assert checkpoints[0].counters.brands_discovered == 2
        assert checkpoints[0].scope == "brand"

    def test_discover_products_counts(self, storage: RecordingStorage) -> None:
        body = list_page_html(
            [
                list_item_html("/tobaccos/darkside/cola", "Cola"),
                list_item_html("/tobaccos/darkside/needls", "Needls"),
            ]
        )
        session = ScriptedSession(routes={brand_url("darkside"): FakeResponse(text=body)})
        orchestrator = make_orchestrator(session, storage)

        result = orchestrator.discover_products("darkside")

        assert result.identifiers == ["cola", "needls"]
        assert orchestrator.get_statistics().products_discovered == 2
        assert orchestrator.state.product_discovery_iterations() == {"darkside": 1}

    def test_discovery_failure_is_counted_and_raised(self, storage: RecordingStorage) -> None:
        session = ScriptedSession([FakeResponse(status_code=403)])
        orchestrator = make_orchestrator(session, storage)
        operation_id = orchestrator.initialize_operation()

        with pytest.raises(DiscoveryError):
            orchestrator.discover_brands()

        assert orchestrator.get_statistics().errors_encountered == 1
        assert storage.error_increments == [operation_id]

    def test_discovery_does_not_mark_items_as_extracted(self, storage: RecordingStorage) -> None:
        brands_list = list_page_html([list_item_html("/tobaccos/a", "A")])
        session = ScriptedSession(
            routes={
                f"{BASE_URL}/tobaccos/brands": FakeResponse(text=brands_list),
                brand_url("a"): detail("A"),
            }
        )
        orchestrator = make_orchestrator(session, storage)

        orchestrator.discover_brands()

        assert orchestrator.extract_brand_data("a") is not None


# ---------------------------------------------------------------------------
# Reset and checkpoints
# ---------------------------------------------------------------------------


class TestResetAndCheckpoint:
    def test_reset_clears_counters_and_index_but_not_queues(self, storage: RecordingStorage) -> None:
        session = ScriptedSession(routes={brand_url("a"): detail("A")})
        orchestrator = make_orchestrator(session, storage)
        operation_id = orchestrator.initialize_operation()
        orchestrator.queue_brand("a")
        orchestrator.process_brand_queue()
        orchestrator.queue_brand("b")

        orchestrator.reset()

        stats = orchestrator.get_statistics()
        assert stats.brands_processed == 0
        assert stats.tracked_brands == 0
        assert stats.queued_brands == 2
        assert stats.pending_brands == 1
        assert orchestrator.operation_id == operation_id
        assert orchestrator.extract_brand_data("a") is not None

    def test_save_checkpoint_emits_snapshot(self, storage: RecordingStorage) -> None:
        checkpoints: list[Checkpoint] = []
        orchestrator = make_orchestrator(ScriptedSession(), storage, checkpoints=checkpoints)
        orchestrator.state.increment("products_processed", 3)

        checkpoint = orchestrator.save_checkpoint(scope="manual")

        assert checkpoints == [checkpoint]
        assert checkpoint.counters.products_processed == 3
        assert checkpoint.scope == "manual"
        assert checkpoint.timestamp.tzinfo is not None

    def test_failing_sink_does_not_interrupt_discovery(
        self,
        storage: RecordingStorage,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        def broken_sink(_checkpoint: Checkpoint) -> None:
            raise RuntimeError("sink down")

        settings = make_settings()
        orchestrator = ScrapeOrchestrator(
            settings=settings,
            storage=storage,
            fetcher=make_fetcher(settings, two_page_brand_session()),
            checkpoint_sink=CallbackCheckpointSink(broken_sink),
        )
        orchestrator.initialize_operation()

        with caplog.at_level("WARNING"):
            result = orchestrator.discover_brands()
            checkpoint = orchestrator.save_checkpoint(scope="manual")

        assert result.identifiers == ["a", "b", "c"]
        assert orchestrator.get_statistics().errors_encountered == 0
        assert storage.error_increments == []
        assert checkpoint.scope == "manual"
        assert "checkpoint_emit_failed" in caplog.text
