"""Tests for ResultReporter and the build summary format."""

from datetime import timedelta

from yeahbuild.build.reporter import BANNER, ResultReporter, platform_label
from yeahbuild.build.results import ResultSet
from yeahbuild.core.result import BuildOutcome, format_duration


def test_summary_lines(build_log):
    results = ResultSet()
    results.append(BuildOutcome(
        project="api", success=True, duration=timedelta(seconds=1.25)
    ))
    results.append(BuildOutcome(
        project="web", success=False, error="'npm install' exited with status 1"
    ))

    ResultReporter(build_log).summarize(results)

    assert [line.text for line in build_log.lines] == [
        "",
        BANNER,
        "✓ api - succeeded (1.25s)",
        "✗ web - failed: 'npm install' exited with status 1",
        "",
        "1 succeeded, 1 failed",
        f"Platform: {platform_label()}",
    ]


def test_empty_summary(build_log):
    ResultReporter(build_log).summarize([])

    assert "0 succeeded, 0 failed" in build_log.text()


def test_failures_logged_as_errors(build_log):
    ResultReporter(build_log).summarize(
        [BuildOutcome(project="x", success=False, error="boom")]
    )

    failed = [line for line in build_log.lines if line.text.startswith("✗")]
    assert failed[0].level == "error"


def test_platform_label():
    system, _, machine = platform_label().partition("/")

    assert system
    assert machine
    assert platform_label() == platform_label().lower()


def test_format_duration():
    assert format_duration(timedelta(seconds=0.5)) == "0.50s"
    assert format_duration(timedelta(seconds=59.994)) == "59.99s"
    assert format_duration(timedelta(seconds=83.4)) == "1m23.4s"
    assert format_duration(timedelta(minutes=10, seconds=5)) == "10m05.0s"


def test_result_set_snapshot_order():
    results = ResultSet()
    results.append(BuildOutcome(project="a", success=True))
    results.append(BuildOutcome(project="b", success=False))

    assert [o.project for o in results.snapshot()] == ["a", "b"]
    assert len(results) == 2

    results.clear()
    assert list(results) == []
