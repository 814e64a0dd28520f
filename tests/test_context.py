import logging
import threading

import numpy as np
import pytest

from artct import ConfigurationError, ReconContext, art, disc_projections
from artct.logging_utils import format_duration


def test_track_counts_active_calls():
    ctx = ReconContext(num_threads=2)
    assert ctx.active == 0
    with ctx.track("art", "cpu") as outer:
        assert outer == 0
        assert ctx.active == 1
        with ctx.track("art", "cpu") as inner:
            assert inner == 1
            assert ctx.active == 2
        assert ctx.active == 1
    assert ctx.active == 0
    assert ctx.last_elapsed is not None


def test_track_releases_on_error():
    ctx = ReconContext(num_threads=1)
    with pytest.raises(RuntimeError):
        with ctx.track("art", "cpu"):
            raise RuntimeError("boom")
    assert ctx.active == 0


def test_last_call_reports_environment(caplog):
    ctx = ReconContext(num_threads=3)
    with caplog.at_level(logging.INFO, logger="artct"):
        with ctx.track("art", "reference", nitr=2):
            with ctx.track("art", "reference", nitr=1):
                pass
    text = caplog.text
    assert "Threads remaining: 1" in text
    assert "Reporting environment" in text
    assert "nitr = 2" in text
    assert "occupancy 1/3" in text
    assert text.count("Reporting environment") == 1


def test_environment_report_lists_runtime():
    report = ReconContext(num_threads=4).environment_report("cpu")
    assert "backend" in report and "cpu" in report
    assert "numba" in report
    assert "num_threads" in report


def test_shared_context_across_threads():
    ctx = ReconContext(num_threads=2)
    theta = np.linspace(0, np.pi, 8, endpoint=False)
    data = disc_projections(theta, 8, radius=2.0)
    results = []

    def run():
        results.append(art(data, theta, num_iter=1, context=ctx))

    workers = [threading.Thread(target=run) for _ in range(3)]
    for t in workers:
        t.start()
    for t in workers:
        t.join()
    assert ctx.active == 0
    assert len(results) == 3
    for r in results[1:]:
        np.testing.assert_array_equal(r, results[0])


def test_workers_for():
    ctx = ReconContext(num_threads=4)
    assert ctx.workers_for(1) == 1
    assert ctx.workers_for(3) == 3
    assert ctx.workers_for(10) == 4
    assert ctx.workers_for(0) == 1


def test_invalid_thread_count():
    with pytest.raises(ConfigurationError):
        ReconContext(num_threads=0)


@pytest.mark.parametrize(
    "seconds, expected",
    [
        (None, "-"),
        (float("nan"), "-"),
        (5e-4, "500µs"),
        (0.05, "50ms"),
        (0.5, "0.50s"),
        (12.5, "12.50s"),
        (75.0, "1m15.0s"),
        (3725.0, "1h02m05.0s"),
    ],
)
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected
