import logging
import threading
import uuid
from collections import Counter
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from prover_mock.errors import IllegalTransition, NotFound, NotReady, ResourceExhaustion, UnknownArtifact
from prover_mock.models import JobRecord, JobState, SessionJob, SnarkJob
from prover_mock.services.artifact_store import ArtifactStore

logger = logging.getLogger(__name__)


class JobStateMachine:
    """Validates and applies job state transitions with audit history."""

    VALID_TRANSITIONS = {
        JobState.QUEUED: {JobState.RUNNING},
        JobState.RUNNING: {JobState.SUCCEEDED, JobState.FAILED},
        JobState.SUCCEEDED: set(),
        JobState.FAILED: set(),
    }

    @staticmethod
    def transition(job: JobRecord, new_state: JobState, reason: Optional[str] = None):
        current = JobState(job.state)
        if new_state not in JobStateMachine.VALID_TRANSITIONS.get(current, set()):
            raise IllegalTransition(f"Invalid transition for {job.job_id}: {current.value} -> {new_state.value}")

        now = datetime.now()
        job.history.append({
            "from": current.value,
            "to": new_state.value,
            "timestamp": now.isoformat(),
            "reason": reason or ""
        })

        job.state = new_state
        if new_state == JobState.RUNNING:
            job.started_at = now
        if new_state.is_terminal:
            job.completed_at = now
            if job.started_at:
                job.duration_ms = int((now - job.started_at).total_seconds() * 1000)
        job.updated_at = now


class JobRegistry:
    """Owns the records of one job kind.

    Readers only ever receive deep copies; ``transition`` and ``append_log``
    are the mutation points and are reserved for the execution engine.
    """

    kind = "job"

    def __init__(self, store: ArtifactStore):
        self.store = store
        self._jobs: Dict[str, JobRecord] = {}
        self._lock = threading.Lock()
        self._dispatch: Optional[Callable[[str], None]] = None

    def bind(self, dispatch: Callable[[str], None]) -> None:
        """Attach the callable that hands new job ids to an engine queue."""
        self._dispatch = dispatch

    def _new_id(self) -> str:
        # Caller holds the lock. Ids are never removed, so the check covers the process lifetime.
        while True:
            job_id = str(uuid.uuid4())
            if job_id not in self._jobs:
                return job_id

    def _register(self, build: Callable[[str, datetime], JobRecord]) -> str:
        now = datetime.now()
        with self._lock:
            job = build(self._new_id(), now)
            self._jobs[job.job_id] = job
        if self._dispatch is not None:
            try:
                self._dispatch(job.job_id)
            except ResourceExhaustion:
                with self._lock:
                    del self._jobs[job.job_id]
                raise
        logger.info("Registered %s %s", self.kind, job.job_id)
        return job.job_id

    def _require(self, job_id: str) -> JobRecord:
        # Caller holds the lock
        job = self._jobs.get(job_id)
        if job is None:
            raise NotFound(f"{self.kind.capitalize()} not found: {job_id}")
        return job

    def get(self, job_id: str) -> JobRecord:
        with self._lock:
            return self._require(job_id).model_copy(deep=True)

    def status(self, job_id: str) -> Tuple[JobState, Optional[str]]:
        with self._lock:
            job = self._require(job_id)
            return JobState(job.state), job.error_msg

    def result(self, job_id: str) -> str:
        with self._lock:
            job = self._require(job_id)
            if job.state != JobState.SUCCEEDED:
                raise NotReady(f"{self.kind.capitalize()} {job_id} is {JobState(job.state).value}")
            return job.result_digest

    def list(self) -> List[JobRecord]:
        with self._lock:
            return [job.model_copy(deep=True) for job in self._jobs.values()]

    def counts(self) -> Dict[str, int]:
        with self._lock:
            counter = Counter(JobState(job.state).value for job in self._jobs.values())
        return {state.value: counter.get(state.value, 0) for state in JobState}

    def append_log(self, job_id: str, line: str) -> None:
        with self._lock:
            job = self._require(job_id)
            if JobState(job.state).is_terminal:
                raise IllegalTransition(f"Cannot append logs to terminal {self.kind} {job_id}")
            job.logs.append(line)

    def transition(
        self,
        job_id: str,
        new_state: JobState,
        reason: Optional[str] = None,
        result_digest: Optional[str] = None,
        error_msg: Optional[str] = None,
    ) -> JobRecord:
        if new_state == JobState.SUCCEEDED:
            if result_digest is None or not self.store.contains(result_digest):
                raise IllegalTransition(f"{job_id} cannot succeed before its result is stored")

        with self._lock:
            job = self._require(job_id)
            JobStateMachine.transition(job, new_state, reason=reason)
            if new_state == JobState.SUCCEEDED:
                job.result_digest = result_digest
            elif new_state == JobState.FAILED:
                job.error_msg = error_msg
            return job.model_copy(deep=True)


class SessionRegistry(JobRegistry):
    kind = "session"

    def create(self, image_digest: str, input_digest: str) -> str:
        for label, digest in (("image", image_digest), ("input", input_digest)):
            if not self.store.contains(digest):
                raise UnknownArtifact(f"Unknown {label} digest: {digest}")

        return self._register(lambda job_id, now: SessionJob(
            job_id=job_id,
            image_digest=image_digest,
            input_digest=input_digest,
            created_at=now,
            updated_at=now,
        ))


class SnarkRegistry(JobRegistry):
    kind = "snark"

    def create(self, receipt_digest: str, session_id: Optional[str] = None) -> str:
        if not self.store.contains(receipt_digest):
            raise UnknownArtifact(f"Unknown receipt digest: {receipt_digest}")

        return self._register(lambda job_id, now: SnarkJob(
            job_id=job_id,
            receipt_digest=receipt_digest,
            session_id=session_id,
            created_at=now,
            updated_at=now,
        ))
