"""
Shared fixtures for the prover mock tests.
"""

import asyncio
import threading

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport

from prover_mock.config import Settings
from prover_mock.errors import ProverFailure
from prover_mock.main import create_app
from prover_mock.services.prover import LocalProver
from prover_mock.services.state import ServerState

ELF_IMAGE = b"\x7fELF\x01\x01\x01\x00" + b"guest-program" * 16
OTHER_ELF_IMAGE = b"\x7fELF\x02\x01\x01\x00" + b"another-guest" * 16
NOT_AN_ELF = b"#!/bin/sh\necho not a guest\n"


class GatedProver(LocalProver):
    """LocalProver that blocks every call until ``gate`` is set."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.gate = threading.Event()
        self._lock = threading.Lock()
        self.calls = 0
        self.active = 0
        self.max_active = 0

    def _enter(self):
        with self._lock:
            self.calls += 1
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        if not self.gate.wait(timeout=10):
            with self._lock:
                self.active -= 1
            raise ProverFailure("gate was never opened")

    def _leave(self):
        with self._lock:
            self.active -= 1

    def prove(self, image, input_data):
        self._enter()
        try:
            return super().prove(image, input_data)
        finally:
            self._leave()

    def compress(self, receipt):
        self._enter()
        try:
            return super().compress(receipt)
        finally:
            self._leave()


async def wait_for_state(registry, job_id, predicate, timeout=5.0):
    """Poll a registry until ``predicate(state)`` holds, returning the state."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        state, _ = registry.status(job_id)
        if predicate(state):
            return state
        assert loop.time() < deadline, f"{job_id} stuck in {state}"
        await asyncio.sleep(0.01)


async def wait_terminal(registry, job_id, timeout=5.0):
    return await wait_for_state(registry, job_id, lambda s: s.is_terminal, timeout)


@pytest.fixture
def settings():
    return Settings(
        proof_concurrency=2,
        snark_concurrency=1,
        queue_size=16,
        segment_size_bytes=8,
        max_segments=64,
        max_artifact_size_mb=1,
        max_store_size_mb=8,
    )


@pytest.fixture
def local_prover(settings):
    return LocalProver.from_settings(settings)


@pytest.fixture
def gated_prover(settings):
    prover = GatedProver(segment_size=settings.segment_size_bytes, max_segments=settings.max_segments)
    yield prover
    prover.gate.set()


@pytest_asyncio.fixture
async def server_state(settings):
    state = ServerState(settings)
    await state.start()
    yield state
    await state.stop()


@pytest_asyncio.fixture
async def gated_state(settings, gated_prover):
    state = ServerState(settings, prover=gated_prover)
    await state.start()
    yield state
    gated_prover.gate.set()
    await state.stop()


@pytest_asyncio.fixture
async def app(settings):
    app = create_app(settings)
    await app.state.server.start()
    yield app
    await app.state.server.stop()


@pytest_asyncio.fixture
async def gated_app(settings, gated_prover):
    app = create_app(settings, prover=gated_prover)
    await app.state.server.start()
    yield app
    gated_prover.gate.set()
    await app.state.server.stop()


@pytest_asyncio.fixture
async def server_client(app):
    transport = ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def gated_client(gated_app):
    transport = ASGITransport(app=gated_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
