"""
# batch_refinement.py - v1.1760900000
# Updated: Wednesday, October 14, 2026
# Changes in this version:
# - Adapted the parallel chunk runner to independent refinement jobs
# - Every job works on its own deep copy of the inputs
# - force_continue keeps the remaining jobs running after a failure
# - Jobs skipped after a timeout or failure are reported in BatchResult.cancelled

Module for refining several garment masks in parallel.
"""

import copy
import multiprocessing
import time
import traceback
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from threading import Event, Lock
from typing import Any, Dict, List, Optional

from core.mask_refinement import MaskRefinementOrchestrator, RefinementResult

# Default number of parallel workers
DEFAULT_MAX_WORKERS = min(multiprocessing.cpu_count(), 4)

# Global lock for thread-safe printing
print_lock = Lock()


def thread_safe_print(*args, **kwargs):
    """
    Thread-safe version of print
    """
    with print_lock:
        print(*args, **kwargs)


@dataclass
class RefinementJob:
    """Keyword arguments of one MaskRefinementOrchestrator.refine call"""

    polygons: List[Any]
    source: Any = None
    style_hints: Any = None
    hollow_regions: Optional[List[Any]] = None
    preserve_zones: Optional[List[Any]] = None
    job_id: Optional[str] = None

    def private_copy(self) -> "RefinementJob":
        return copy.deepcopy(self)


@dataclass
class BatchResult:
    results: List[Optional[RefinementResult]]
    errors: Dict[int, BaseException] = field(default_factory=dict)
    cancelled: List[int] = field(default_factory=list)
    elapsed: float = 0.0

    @property
    def completed(self) -> int:
        return sum(1 for r in self.results if r is not None)

    @property
    def failed(self) -> int:
        return len(self.errors)


class BatchRefiner:
    """
    Helper class for running refinement jobs in parallel
    """

    def __init__(self, orchestrator: Optional[MaskRefinementOrchestrator] = None, max_workers=None,
                 force_continue=False, verbose=False):
        """
        Initialize the batch refiner

        Args:
            orchestrator: Shared orchestrator; it is stateless, so one instance serves all workers
            max_workers: Maximum number of parallel workers (defaults to CPU count, at most 4)
            force_continue: Continue with the remaining jobs even if some fail
            verbose: Whether to print progress
        """
        self.orchestrator = orchestrator or MaskRefinementOrchestrator()
        self.max_workers = max_workers or DEFAULT_MAX_WORKERS
        self.force_continue = force_continue
        self.verbose = verbose
        self.stop_event = Event()

    def _run_job(self, job: RefinementJob, job_idx: int, total_jobs: int) -> Optional[RefinementResult]:
        if self.stop_event.is_set():
            return None
        if self.verbose:
            thread_safe_print(f"Starting job {job_idx + 1}/{total_jobs}"
                              f"{' (' + job.job_id + ')' if job.job_id else ''}")
        private = job.private_copy()
        result = self.orchestrator.refine(
            private.polygons,
            source=private.source,
            style_hints=private.style_hints,
            hollow_regions=private.hollow_regions,
            preserve_zones=private.preserve_zones,
        )
        if self.verbose:
            thread_safe_print(f"Finished job {job_idx + 1}/{total_jobs} in {result.processing_time:.2f}s")
        return result

    def refine_all(self, jobs: List[RefinementJob], timeout: Optional[float] = None) -> BatchResult:
        """
        Refine every job

        Args:
            jobs: Refinement jobs
            timeout: Overall timeout in seconds. Jobs that have not started by then
                are cancelled; jobs already running are allowed to finish.

        Returns:
            BatchResult with results in job order (None for failed or cancelled jobs)

        Raises:
            Exception: The first job error when force_continue is False
        """
        total_jobs = len(jobs)
        batch = BatchResult(results=[None] * total_jobs)
        self.stop_event.clear()

        if self.verbose:
            thread_safe_print(f"Starting parallel refinement of {total_jobs} masks with {self.max_workers} workers")
        start_time = time.time()

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [executor.submit(self._run_job, job, idx, total_jobs) for idx, job in enumerate(jobs)]

            if timeout is not None:
                _, not_done = wait(futures, timeout=timeout)
                if not_done:
                    thread_safe_print(f"WARNING: Timeout occurred, canceling {len(not_done)} remaining jobs")
                    self.stop_event.set()
                    for future in not_done:
                        future.cancel()

            first_error = None
            for idx, future in enumerate(futures):
                if future.cancelled():
                    batch.cancelled.append(idx)
                    continue
                try:
                    result = future.result()
                except Exception as e:
                    thread_safe_print(f"Error in job {idx + 1}: {str(e)}")
                    if self.verbose:
                        traceback.print_exc()
                    batch.errors[idx] = e
                    if not self.force_continue and first_error is None:
                        first_error = e
                        self.stop_event.set()
                    continue
                # Jobs that saw stop_event before starting did no work
                if result is None:
                    batch.cancelled.append(idx)
                else:
                    batch.results[idx] = result

        batch.elapsed = time.time() - start_time
        if self.verbose:
            thread_safe_print(f"Parallel refinement completed in {batch.elapsed:.2f} seconds")
            thread_safe_print(f"Jobs: {total_jobs}, Completed: {batch.completed}, Failed: {batch.failed}")

        if first_error is not None:
            raise first_error
        return batch
