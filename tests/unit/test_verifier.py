"""Unit tests for the verify-and-repair pass."""

from __future__ import annotations

import io
from datetime import date

import pytest

from sparkvoice.civic import CivicCalendar
from sparkvoice.pipeline.narrator import ItemNarrator
from sparkvoice.pipeline.verification import AudioVerifier, backoff_delays
from sparkvoice.telemetry.logger import RunLogger
from sparkvoice.tts.voices import narration_voice

TODAY = date(2026, 3, 10)
TOMORROW = date(2026, 3, 11)


def _verifier(repository, store, synthesizer, clock, sleeper, run_logger=None):  # type: ignore[no-untyped-def]
    """Build a verifier with a 2s backoff base."""

    narrator = ItemNarrator(store=store, synthesizer=synthesizer, voice=narration_voice())
    return AudioVerifier(
        repository=repository,
        narrator=narrator,
        calendar=CivicCalendar("Europe/London", clock=clock),
        run_logger=run_logger,
        backoff_base_seconds=2.0,
        sleeper=sleeper,
    )


def test_backoff_delays_double_and_omit_final_wait() -> None:
    """Waits should grow geometrically with no wait after the last attempt."""

    assert backoff_delays(3, 2.0) == [2.0, 4.0]
    assert backoff_delays(1, 2.0) == []
    delays = backoff_delays(6, 0.5)
    assert all(later > earlier for earlier, later in zip(delays, delays[1:]))


def test_verification_checks_only_today_and_tomorrow(  # type: ignore[no-untyped-def]
    repository_factory, spark_factory, store, synthesizer, clock, sleeper
) -> None:
    """Verification should query exactly the civic `[today, today + 1]` window."""

    repository = repository_factory(
        [
            spark_factory(1, TODAY),
            spark_factory(2, TOMORROW),
            spark_factory(3, date(2026, 3, 12)),
        ]
    )
    store.objects["spark-1.mp3"] = b"ok"
    store.objects["spark-2.mp3"] = b"ok"
    verifier = _verifier(repository, store, synthesizer, clock, sleeper)

    report = verifier.verify_and_repair()

    assert repository.range_queries == [(TODAY, TOMORROW)]
    assert (report.checked, report.ready, report.missing) == (2, 2, 0)
    assert synthesizer.calls == []


def test_missing_item_is_repaired_on_first_attempt(  # type: ignore[no-untyped-def]
    repository_factory, spark_factory, store, synthesizer, clock, sleeper
) -> None:
    """A missing item should be synthesized and counted as repaired."""

    repository = repository_factory([spark_factory(1, TODAY)])
    verifier = _verifier(repository, store, synthesizer, clock, sleeper)

    report = verifier.verify_and_repair()

    assert (report.missing, report.repaired) == (1, 1)
    assert report.failed_repairs == []
    assert "spark-1.mp3" in store.objects
    assert sleeper.calls == []
    assert not report.needs_attention


def test_repair_retries_with_backoff_until_success(  # type: ignore[no-untyped-def]
    repository_factory, spark_factory, store, synthesizer, clock, sleeper
) -> None:
    """Failed attempts should wait `base * 2**(k-1)` before the next try."""

    repository = repository_factory([spark_factory(1, TODAY)])
    synthesizer.script = [False, False, True]
    verifier = _verifier(repository, store, synthesizer, clock, sleeper)

    report = verifier.verify_and_repair(max_retries=3)

    assert report.repaired == 1
    assert sleeper.calls == [2.0, 4.0]
    assert [attempt.attempt for attempt in report.attempts] == [1, 2, 3]
    assert [attempt.ok for attempt in report.attempts] == [False, False, True]


def test_persistent_failure_is_reported_after_exhausting_retries(  # type: ignore[no-untyped-def]
    repository_factory, spark_factory, store, synthesizer, clock, sleeper
) -> None:
    """Exhausted retries should yield a failed repair and a critical log line."""

    sink = io.StringIO()
    repository = repository_factory([spark_factory(7, TOMORROW, title="Faith Over Fear")])
    synthesizer.default_ok = False
    verifier = _verifier(
        repository, store, synthesizer, clock, sleeper, run_logger=RunLogger(sink=sink)
    )

    report = verifier.verify_and_repair(max_retries=3)

    assert len(synthesizer.calls) == 3
    assert sleeper.calls == [2.0, 4.0]
    assert report.repaired == 0
    assert report.needs_attention
    failure = report.failed_repairs[0]
    assert failure.item_key == "spark-7"
    assert failure.title == "Faith Over Fear"
    assert failure.scheduled_date == TOMORROW
    assert "HTTP 500" in failure.error
    output = sink.getvalue()
    assert "level=CRITICAL stage=verify event=repair_exhausted" in output
    assert "item=spark-7" in output


def test_items_without_teaching_are_skipped_not_missing(  # type: ignore[no-untyped-def]
    repository_factory, spark_factory, store, synthesizer, clock, sleeper
) -> None:
    """Items that cannot be narrated should not be reported as missing."""

    repository = repository_factory([spark_factory(1, TODAY, teaching="")])
    verifier = _verifier(repository, store, synthesizer, clock, sleeper)

    report = verifier.verify_and_repair()

    assert (report.checked, report.missing, report.skipped) == (0, 0, 1)
    assert synthesizer.calls == []


def test_stored_artifact_for_item_without_teaching_is_still_skipped(  # type: ignore[no-untyped-def]
    repository_factory, spark_factory, store, synthesizer, clock, sleeper
) -> None:
    store.objects["spark-1.mp3"] = b"x"
    repository = repository_factory([spark_factory(1, TODAY, teaching=None)])
    verifier = _verifier(repository, store, synthesizer, clock, sleeper)

    report = verifier.verify_and_repair()

    assert (report.checked, report.ready, report.skipped) == (0, 0, 1)
    assert synthesizer.calls == []
    assert store.objects["spark-1.mp3"] == b"x"


def test_existence_check_errors_are_treated_as_missing(  # type: ignore[no-untyped-def]
    repository_factory, spark_factory, store, synthesizer, clock, sleeper
) -> None:
    """An unreachable existence check should route the item into repair."""

    repository = repository_factory([spark_factory(1, TODAY)])
    store.exists_errors.add("spark-1.mp3")
    verifier = _verifier(repository, store, synthesizer, clock, sleeper)

    report = verifier.verify_and_repair()

    assert (report.missing, report.repaired) == (1, 1)


def test_unconfigured_pipeline_returns_neutral_report(  # type: ignore[no-untyped-def]
    repository_factory, spark_factory, store, synthesizer, clock, sleeper
) -> None:
    """Missing credentials should produce an all-zero report with one error."""

    repository = repository_factory([spark_factory(1, TODAY)])
    synthesizer.configured = False
    verifier = _verifier(repository, store, synthesizer, clock, sleeper)

    report = verifier.verify_and_repair()

    assert (report.checked, report.ready, report.missing, report.repaired) == (0, 0, 0, 0)
    assert report.errors == [
        "Configuration error: speech synthesis (OPENAI_API_KEY) not configured."
    ]
    assert repository.range_queries == []


def test_verify_rejects_non_positive_retries(  # type: ignore[no-untyped-def]
    repository_factory, store, synthesizer, clock, sleeper
) -> None:
    """At least one attempt is required."""

    verifier = _verifier(repository_factory([]), store, synthesizer, clock, sleeper)

    with pytest.raises(ValueError, match="max_retries"):
        verifier.verify_and_repair(max_retries=0)
