import logging
from functools import partial
from typing import Any, Dict, Optional

from prover_mock.config import Settings
from prover_mock.services.artifact_store import ArtifactStore
from prover_mock.services.engine import ExecutionEngine, compress_receipt, prove_session
from prover_mock.services.prover import LocalProver, Prover
from prover_mock.services.registry import SessionRegistry, SnarkRegistry

logger = logging.getLogger(__name__)


class ServerState:
    """Everything a running server shares between requests and workers.

    One instance is created per application and handed to the routes through
    a dependency; nothing in the package keeps server state in globals.
    """

    def __init__(self, settings: Settings, prover: Optional[Prover] = None):
        self.settings = settings
        self.prover: Prover = prover if prover is not None else LocalProver.from_settings(settings)
        self.store = ArtifactStore(
            max_artifact_bytes=settings.max_artifact_bytes,
            max_total_bytes=settings.max_store_bytes,
        )
        self.sessions = SessionRegistry(self.store)
        self.snarks = SnarkRegistry(self.store)
        self.proof_engine = ExecutionEngine(
            "proof",
            self.sessions,
            self.store,
            partial(prove_session, self.store, self.prover),
            concurrency=settings.proof_concurrency,
            queue_size=settings.queue_size,
        )
        self.snark_engine = ExecutionEngine(
            "snark",
            self.snarks,
            self.store,
            partial(compress_receipt, self.store, self.prover),
            concurrency=settings.snark_concurrency,
            queue_size=settings.queue_size,
        )
        self.started = False

    async def start(self):
        if self.started:
            return
        await self.proof_engine.start()
        await self.snark_engine.start()
        self.started = True
        logger.info("Server state started (prover=%s, dev_mode=%s)", type(self.prover).__name__, self.settings.dev_mode)

    async def stop(self):
        if not self.started:
            return
        await self.proof_engine.stop()
        await self.snark_engine.stop()
        self.started = False

    def describe(self) -> Dict[str, Any]:
        return {
            "dev_mode": self.settings.dev_mode,
            "store": self.store.usage(),
            "sessions": {**self.sessions.counts(), **self.proof_engine.get_queue_status()},
            "snarks": {**self.snarks.counts(), **self.snark_engine.get_queue_status()},
        }
