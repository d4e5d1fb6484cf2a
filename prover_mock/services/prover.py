"""
Proof computation capability consumed by the execution engines.

The engines only depend on the ``Prover`` protocol. ``LocalProver`` is the
implementation the server ships with: it treats the uploaded image as the
guest program, commits the input as the journal and seals the execution with
a SHA-256 hash chain over fixed-size segments, so every receipt is
deterministic and independently verifiable.
"""

import hashlib
import logging
from typing import List, Optional, Protocol

from prover_mock.config import Settings
from prover_mock.errors import ProverFailure
from prover_mock.models import Receipt, SnarkProof, SnarkReceipt

logger = logging.getLogger(__name__)

ELF_MAGIC = b"\x7fELF"


class Prover(Protocol):
    """Blocking proof capability; engines call it from worker threads."""

    def prove(self, image: bytes, input_data: bytes) -> Receipt:
        """Run the image over the input and return a receipt, or raise ProverFailure."""

    def compress(self, receipt: Receipt) -> SnarkReceipt:
        """Wrap a receipt into a SNARK receipt, or raise ProverFailure."""


def _sha256(*parts: bytes) -> bytes:
    h = hashlib.sha256()
    for part in parts:
        h.update(part)
    return h.digest()


class LocalProver:
    """Deterministic in-process prover."""

    def __init__(self, segment_size: int = 4096, max_segments: int = 1024, dev_mode: bool = False):
        if segment_size <= 0:
            raise ValueError("segment_size must be > 0")
        self.segment_size = segment_size
        self.max_segments = max_segments
        self.dev_mode = dev_mode

    @classmethod
    def from_settings(cls, settings: Settings) -> "LocalProver":
        return cls(
            segment_size=settings.segment_size_bytes,
            max_segments=settings.max_segments,
            dev_mode=settings.dev_mode,
        )

    def _segments(self, journal: bytes) -> List[bytes]:
        if not journal:
            return [b""]
        return [journal[i:i + self.segment_size] for i in range(0, len(journal), self.segment_size)]

    def _seal(self, image_id: bytes, journal: bytes) -> List[str]:
        head = _sha256(b"seal", image_id)
        seal = []
        for segment in self._segments(journal):
            head = _sha256(head, _sha256(segment))
            seal.append(head.hex())
        return seal

    @staticmethod
    def _claim_digest(image_id: bytes, journal: bytes, seal: List[str]) -> str:
        post_state = bytes.fromhex(seal[-1]) if seal else b""
        return _sha256(b"claim", image_id, _sha256(journal), post_state).hex()

    def prove(self, image: bytes, input_data: bytes) -> Receipt:
        if not image.startswith(ELF_MAGIC):
            raise ProverFailure("Malformed ELF: image does not start with the ELF magic number")

        image_id = _sha256(image)
        # The guest commits its input verbatim
        journal = bytes(input_data)
        segments = len(self._segments(journal))
        if segments > self.max_segments:
            raise ProverFailure(
                f"Session limit exceeded: {segments} segments required, limit is {self.max_segments}"
            )

        seal = [] if self.dev_mode else self._seal(image_id, journal)
        logger.debug("Proved image %s over %d segments", image_id.hex(), segments)
        return Receipt(
            image_id=image_id.hex(),
            journal=journal.hex(),
            seal=seal,
            segments=segments,
            claim_digest=self._claim_digest(image_id, journal, seal),
            dev_mode=self.dev_mode,
        )

    def verify(self, receipt: Receipt, image_id: Optional[str] = None) -> None:
        """Raise ProverFailure unless ``receipt`` is a valid receipt (for ``image_id``)."""
        if image_id is not None and receipt.image_id != image_id:
            raise ProverFailure(f"Receipt verification failed: image id mismatch ({receipt.image_id})")
        if receipt.dev_mode and not self.dev_mode:
            raise ProverFailure("Receipt verification failed: dev-mode receipt outside dev mode")

        image = bytes.fromhex(receipt.image_id)
        journal = receipt.journal_bytes
        expected_seal = [] if receipt.dev_mode else self._seal(image, journal)
        if receipt.seal != expected_seal:
            raise ProverFailure("Receipt verification failed: seal does not match the journal")
        if receipt.claim_digest != self._claim_digest(image, journal, expected_seal):
            raise ProverFailure("Receipt verification failed: claim digest mismatch")

    def compress(self, receipt: Receipt) -> SnarkReceipt:
        self.verify(receipt)

        claim = bytes.fromhex(receipt.claim_digest)
        if receipt.dev_mode:
            elements = ["00" * 32] * 8
        else:
            elements = [_sha256(b"groth16", claim, bytes([i])).hex() for i in range(8)]

        image_id = receipt.image_id
        snark = SnarkProof(
            a=elements[0:2],
            b=[elements[2:4], elements[4:6]],
            c=elements[6:8],
            public=[image_id[:32], image_id[32:], _sha256(receipt.journal_bytes).hex()],
        )
        return SnarkReceipt(
            snark=snark,
            image_id=image_id,
            journal=receipt.journal,
            claim_digest=receipt.claim_digest,
        )
