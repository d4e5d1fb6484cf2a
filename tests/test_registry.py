"""
Tests for the job registries and the job state machine.
"""

import pytest

from prover_mock.errors import IllegalTransition, NotFound, NotReady, ResourceExhaustion, UnknownArtifact
from prover_mock.models import JobState
from prover_mock.services.artifact_store import ArtifactStore
from prover_mock.services.registry import SessionRegistry, SnarkRegistry


@pytest.fixture
def store():
    return ArtifactStore()


@pytest.fixture
def registry(store):
    return SessionRegistry(store)


@pytest.fixture
def digests(store):
    return store.put(b"\x7fELF image"), store.put(b"input")


class TestJobRegistry:

    def test_create_registers_queued_job(self, registry, digests):
        job_id = registry.create(*digests)
        job = registry.get(job_id)
        assert job.state == JobState.QUEUED
        assert job.image_digest == digests[0]
        assert job.input_digest == digests[1]
        assert registry.status(job_id) == (JobState.QUEUED, None)

    def test_create_with_unknown_digest_registers_nothing(self, registry, digests):
        with pytest.raises(UnknownArtifact):
            registry.create(digests[0], "ab" * 32)
        with pytest.raises(UnknownArtifact):
            registry.create("ab" * 32, digests[1])
        assert registry.list() == []

    def test_ids_are_unique(self, registry, digests):
        ids = {registry.create(*digests) for _ in range(200)}
        assert len(ids) == 200

    def test_fabricated_id(self, registry):
        with pytest.raises(NotFound):
            registry.status("not-a-job")
        with pytest.raises(NotFound):
            registry.result("not-a-job")
        with pytest.raises(NotFound):
            registry.get("not-a-job")

    def test_result_before_success(self, registry, digests):
        job_id = registry.create(*digests)
        with pytest.raises(NotReady):
            registry.result(job_id)
        registry.transition(job_id, JobState.RUNNING)
        with pytest.raises(NotReady):
            registry.result(job_id)
        registry.transition(job_id, JobState.FAILED, error_msg="boom")
        with pytest.raises(NotReady):
            registry.result(job_id)
        assert registry.status(job_id) == (JobState.FAILED, "boom")

    def test_success_requires_stored_result(self, registry, store, digests):
        job_id = registry.create(*digests)
        registry.transition(job_id, JobState.RUNNING)
        with pytest.raises(IllegalTransition):
            registry.transition(job_id, JobState.SUCCEEDED, result_digest="cd" * 32)
        assert registry.status(job_id)[0] == JobState.RUNNING

        receipt_digest = store.put(b"receipt")
        job = registry.transition(job_id, JobState.SUCCEEDED, result_digest=receipt_digest)
        assert job.state == JobState.SUCCEEDED
        assert registry.result(job_id) == receipt_digest

    def test_state_machine_order(self, registry, digests):
        job_id = registry.create(*digests)
        with pytest.raises(IllegalTransition):
            registry.transition(job_id, JobState.FAILED, error_msg="skipped running")
        with pytest.raises(IllegalTransition):
            registry.transition(job_id, JobState.QUEUED)

        registry.transition(job_id, JobState.RUNNING, reason="worker_0")
        with pytest.raises(IllegalTransition):
            registry.transition(job_id, JobState.RUNNING)

        registry.transition(job_id, JobState.FAILED, error_msg="boom")
        job = registry.get(job_id)
        assert [(h["from"], h["to"]) for h in job.history] == [("queued", "running"), ("running", "failed")]
        assert job.started_at is not None
        assert job.completed_at is not None
        assert job.duration_ms is not None

    def test_terminal_jobs_are_frozen(self, registry, digests):
        job_id = registry.create(*digests)
        registry.transition(job_id, JobState.RUNNING)
        registry.transition(job_id, JobState.FAILED, error_msg="boom")

        for state in JobState:
            with pytest.raises(IllegalTransition):
                registry.transition(job_id, state, error_msg="again")
        with pytest.raises(IllegalTransition):
            registry.append_log(job_id, "late line")
        assert registry.status(job_id) == (JobState.FAILED, "boom")

    def test_readers_get_copies(self, registry, digests):
        job_id = registry.create(*digests)
        snapshot = registry.get(job_id)
        snapshot.state = JobState.SUCCEEDED
        snapshot.logs.append("tampered")
        job = registry.get(job_id)
        assert job.state == JobState.QUEUED
        assert job.logs == []

    def test_dispatch_receives_new_ids(self, registry, digests):
        dispatched = []
        registry.bind(dispatched.append)
        job_id = registry.create(*digests)
        assert dispatched == [job_id]

    def test_rejected_dispatch_withdraws_job(self, registry, digests):
        def full_queue(job_id):
            raise ResourceExhaustion("queue is full")

        registry.bind(full_queue)
        with pytest.raises(ResourceExhaustion):
            registry.create(*digests)
        assert registry.list() == []

    def test_counts(self, registry, digests):
        first = registry.create(*digests)
        registry.create(*digests)
        registry.transition(first, JobState.RUNNING)
        assert registry.counts() == {"queued": 1, "running": 1, "succeeded": 0, "failed": 0}


class TestSnarkRegistry:

    def test_separate_namespace(self, store, digests):
        sessions = SessionRegistry(store)
        snarks = SnarkRegistry(store)
        session_id = sessions.create(*digests)
        receipt_digest = store.put(b"receipt")
        snark_id = snarks.create(receipt_digest, session_id=session_id)

        assert snarks.get(snark_id).receipt_digest == receipt_digest
        assert snarks.get(snark_id).session_id == session_id
        with pytest.raises(NotFound):
            sessions.status(snark_id)
        with pytest.raises(NotFound):
            snarks.status(session_id)

    def test_unknown_receipt(self, store):
        snarks = SnarkRegistry(store)
        with pytest.raises(UnknownArtifact):
            snarks.create("ef" * 32)
        assert snarks.list() == []
