import hashlib
import logging
import threading
from datetime import datetime
from typing import Dict, Optional

from prover_mock.errors import NotFound, ResourceExhaustion
from prover_mock.models import ArtifactInfo

logger = logging.getLogger(__name__)


def compute_digest(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


class ArtifactStore:
    """In-memory content-addressed blob store shared by every job.

    Blobs are keyed by the SHA-256 of their bytes and are never mutated or
    removed once inserted.
    """

    def __init__(self, max_artifact_bytes: Optional[int] = None, max_total_bytes: Optional[int] = None):
        self.max_artifact_bytes = max_artifact_bytes
        self.max_total_bytes = max_total_bytes
        self._blobs: Dict[str, bytes] = {}
        self._info: Dict[str, ArtifactInfo] = {}
        self._total_bytes = 0
        self._lock = threading.Lock()

    def put(self, data: bytes) -> str:
        """Store ``data`` if it is new and return its digest."""
        digest, _ = self.put_new(data)
        return digest

    def put_new(self, data: bytes):
        """Like put(), but also reports whether the blob was inserted by this call."""
        data = bytes(data)
        size = len(data)
        if self.max_artifact_bytes is not None and size > self.max_artifact_bytes:
            raise ResourceExhaustion(
                f"Artifact of {size} bytes exceeds the {self.max_artifact_bytes} byte limit",
                status_code=413,
            )
        digest = compute_digest(data)

        with self._lock:
            if digest in self._blobs:
                return digest, False
            if self.max_total_bytes is not None and self._total_bytes + size > self.max_total_bytes:
                raise ResourceExhaustion("Artifact store capacity exhausted", status_code=507)
            self._blobs[digest] = data
            self._info[digest] = ArtifactInfo(digest=digest, size_bytes=size, created_at=datetime.now())
            self._total_bytes += size

        logger.debug("Stored artifact %s (%d bytes)", digest, size)
        return digest, True

    def get(self, digest: str) -> bytes:
        with self._lock:
            data = self._blobs.get(digest)
        if data is None:
            raise NotFound(f"Artifact not found: {digest}")
        return data

    def contains(self, digest: str) -> bool:
        with self._lock:
            return digest in self._blobs

    def stat(self, digest: str) -> ArtifactInfo:
        with self._lock:
            info = self._info.get(digest)
        if info is None:
            raise NotFound(f"Artifact not found: {digest}")
        return info.model_copy()

    def usage(self) -> Dict[str, Optional[int]]:
        with self._lock:
            return {
                "artifacts": len(self._blobs),
                "total_bytes": self._total_bytes,
                "max_total_bytes": self.max_total_bytes,
            }
