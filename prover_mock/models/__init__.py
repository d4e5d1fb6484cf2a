from prover_mock.models.job import JobState, JobRecord, SessionJob, SnarkJob, SessionStatus, SnarkStatus
from prover_mock.models.artifact import ArtifactInfo, UploadResponse
from prover_mock.models.receipt import Receipt, SnarkProof, SnarkReceipt

__all__ = [
    "JobState",
    "JobRecord",
    "SessionJob",
    "SnarkJob",
    "SessionStatus",
    "SnarkStatus",
    "ArtifactInfo",
    "UploadResponse",
    "Receipt",
    "SnarkProof",
    "SnarkReceipt",
]
