import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Set

from prover_mock.errors import IllegalTransition, ProverFailure, ResourceExhaustion
from prover_mock.models import JobRecord, JobState, Receipt, SessionJob, SnarkJob
from prover_mock.services.artifact_store import ArtifactStore
from prover_mock.services.prover import Prover
from prover_mock.services.registry import JobRegistry

logger = logging.getLogger(__name__)


@dataclass
class WorkResult:
    """Bytes to store as the job's result, plus execution log lines."""
    payload: bytes
    logs: List[str] = field(default_factory=list)


# Runs in a worker thread: (job snapshot) -> WorkResult, raising ProverFailure on failure
WorkFn = Callable[[JobRecord], WorkResult]


def prove_session(store: ArtifactStore, prover: Prover, job: SessionJob) -> WorkResult:
    image = store.get(job.image_digest)
    input_data = store.get(job.input_digest)
    receipt = prover.prove(image, input_data)
    return WorkResult(
        payload=receipt.to_bytes(),
        logs=[
            f"image_id: {receipt.image_id}",
            f"segments: {receipt.segments}",
            f"journal_bytes: {len(input_data)}",
            f"claim_digest: {receipt.claim_digest}",
        ],
    )


def compress_receipt(store: ArtifactStore, prover: Prover, job: SnarkJob) -> WorkResult:
    data = store.get(job.receipt_digest)
    try:
        receipt = Receipt.from_bytes(data)
    except ValueError as e:
        raise ProverFailure(f"Stored artifact {job.receipt_digest} is not a receipt: {e}") from e
    snark_receipt = prover.compress(receipt)
    return WorkResult(
        payload=snark_receipt.to_bytes(),
        logs=[
            f"image_id: {snark_receipt.image_id}",
            f"claim_digest: {snark_receipt.claim_digest}",
        ],
    )


class ExecutionEngine:
    """Drains one registry's queue and runs the work in a thread pool.

    ``concurrency`` worker tasks each run one job at a time, so at most that
    many jobs of this kind compute simultaneously.
    """

    def __init__(
        self,
        name: str,
        registry: JobRegistry,
        store: ArtifactStore,
        work: WorkFn,
        concurrency: int = 1,
        queue_size: int = 100,
    ):
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self.name = name
        self.registry = registry
        self.store = store
        self.work = work
        self.concurrency = concurrency
        self.queue_size = queue_size
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self.workers: List[asyncio.Task] = []
        self.running: Set[str] = set()
        self.dead_workers: List[int] = []
        self._executor: Optional[ThreadPoolExecutor] = None
        registry.bind(self.enqueue)

    async def start(self):
        logger.info("Starting %s engine with %s workers", self.name, self.concurrency)
        self._executor = ThreadPoolExecutor(
            max_workers=self.concurrency,
            thread_name_prefix=f"{self.name}-prover",
        )
        self.dead_workers.clear()
        for i in range(self.concurrency):
            task = asyncio.create_task(self._worker_loop(i), name=f"{self.name}-worker-{i}")
            self.workers.append(task)

    async def stop(self):
        logger.info("Stopping %s engine", self.name)
        for task in self.workers:
            task.cancel()
        await asyncio.gather(*self.workers, return_exceptions=True)
        self.workers.clear()
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

    @property
    def healthy(self) -> bool:
        """True while every worker is alive. A dead worker means a state machine bug."""
        return bool(self.workers) and not self.dead_workers and all(not task.done() for task in self.workers)

    def enqueue(self, job_id: str) -> None:
        try:
            self.queue.put_nowait(job_id)
        except asyncio.QueueFull:
            raise ResourceExhaustion(f"The {self.name} queue is full ({self.queue_size} jobs)")

    def get_queue_status(self) -> Dict[str, Any]:
        return {
            "concurrency": self.concurrency,
            "queue_size": self.queue_size,
            "queued_jobs": self.queue.qsize(),
            "running_jobs": len(self.running),
            "running_job_ids": sorted(self.running),
            "live_workers": sum(1 for task in self.workers if not task.done()),
            "dead_workers": len(self.dead_workers),
        }

    async def _worker_loop(self, worker_idx: int):
        while True:
            job_id = await self.queue.get()
            try:
                await self._run(job_id, worker_idx)
            except IllegalTransition:
                logger.critical("%s worker %s hit an illegal transition on %s", self.name, worker_idx, job_id)
                self.dead_workers.append(worker_idx)
                raise
            finally:
                self.queue.task_done()

    async def _run(self, job_id: str, worker_idx: int):
        job = self.registry.transition(job_id, JobState.RUNNING, reason=f"{self.name}_worker_{worker_idx}")
        self.running.add(job_id)
        logger.info("Job %s started on %s worker %s", job_id, self.name, worker_idx)
        try:
            loop = asyncio.get_running_loop()
            try:
                result = await loop.run_in_executor(self._executor, self.work, job)
                # Insert the artifact before the job is allowed to become visible as succeeded
                digest = self.store.put(result.payload)
            except ProverFailure as e:
                self._fail(job_id, str(e), reason="prover_failure")
                return
            except ResourceExhaustion as e:
                self._fail(job_id, e.message, reason="resource_exhausted")
                return
            except Exception as e:
                logger.exception("Job %s failed: %s", job_id, e)
                self._fail(job_id, f"Internal error: {e}", reason="exception")
                return

            for line in result.logs:
                self.registry.append_log(job_id, line)
            self.registry.transition(job_id, JobState.SUCCEEDED, reason="proof_done", result_digest=digest)
            logger.info("Job %s succeeded, result %s", job_id, digest)
        finally:
            self.running.discard(job_id)

    def _fail(self, job_id: str, message: str, reason: str):
        self.registry.append_log(job_id, f"error: {message}")
        self.registry.transition(job_id, JobState.FAILED, reason=reason, error_msg=message)
        logger.warning("Job %s failed: %s", job_id, message)
