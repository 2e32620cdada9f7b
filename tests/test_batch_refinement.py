"""
Tests for parallel batch refinement
"""

import time
from concurrent.futures import Future

import pytest

from core.batch_refinement import BatchRefiner, RefinementJob
from garment.models import HollowRegionRequest, MaskPolygon
from utils.errors import ConfigError

from conftest import rectangle


def garment_job(offset, job_id=None):
    garment = MaskPolygon("garment", rectangle(50 + offset, 50, 300 + offset, 400))
    return RefinementJob([garment], hollow_regions=[HollowRegionRequest("neckline")], job_id=job_id)


def test_results_are_returned_in_job_order():
    jobs = [garment_job(offset, f"job-{offset}") for offset in (0, 40, 80, 120)]

    batch = BatchRefiner(max_workers=3).refine_all(jobs)

    assert batch.completed == 4
    assert batch.failed == 0
    for job, result in zip(jobs, batch.results):
        assert result.polygons[0].points == job.polygons[0].points


def test_jobs_do_not_share_inputs():
    shared = MaskPolygon("garment", rectangle(50, 50, 300, 400))
    jobs = [RefinementJob([shared]), RefinementJob([shared])]

    batch = BatchRefiner(max_workers=2).refine_all(jobs)

    assert batch.results[0].polygons[0] is not batch.results[1].polygons[0]
    assert batch.results[0].polygons[0] is not shared
    assert shared.points == rectangle(50, 50, 300, 400)


def test_force_continue_collects_errors():
    jobs = [garment_job(0), RefinementJob([MaskPolygon("garment", [])]), garment_job(40)]

    batch = BatchRefiner(max_workers=2, force_continue=True).refine_all(jobs)

    assert batch.completed == 2
    assert batch.results[1] is None
    assert isinstance(batch.errors[1], ConfigError)


def test_first_error_is_raised_without_force_continue():
    jobs = [garment_job(0), RefinementJob([MaskPolygon("garment", [])])]

    with pytest.raises(ConfigError):
        BatchRefiner(max_workers=1).refine_all(jobs)


def test_empty_batch():
    batch = BatchRefiner().refine_all([])
    assert batch.results == []
    assert batch.completed == 0


def slow_refiner(monkeypatch, delay=0.3):
    refiner = BatchRefiner(max_workers=1)
    original = refiner.orchestrator.refine

    def slow(*args, **kwargs):
        time.sleep(delay)
        return original(*args, **kwargs)

    monkeypatch.setattr(refiner.orchestrator, "refine", slow)
    return refiner


def test_timeout_cancels_pending_jobs_and_lets_running_job_finish(monkeypatch):
    refiner = slow_refiner(monkeypatch)

    batch = refiner.refine_all([garment_job(0), garment_job(40)], timeout=0.05)

    assert batch.results[0] is not None
    assert batch.results[1] is None
    assert batch.cancelled == [1]
    assert batch.failed == 0


def test_job_started_after_timeout_is_reported_cancelled(monkeypatch):
    refiner = slow_refiner(monkeypatch)
    # The worker picks the second job up before it can be cancelled
    monkeypatch.setattr(Future, "cancel", lambda self: False)

    batch = refiner.refine_all([garment_job(0), garment_job(40)], timeout=0.05)

    assert batch.completed == 1
    assert batch.results[1] is None
    assert batch.cancelled == [1]
