"""
Receipt documents produced by the prover and stored as artifacts.

Both receipt kinds are serialized as UTF-8 JSON so that the stored bytes, and
therefore their digests, are stable for identical proofs.
"""

from typing import List

from pydantic import BaseModel, Field


class Receipt(BaseModel):
    """Output of a successful proof computation."""

    image_id: str
    journal: str  # hex encoded guest output
    seal: List[str] = Field(default_factory=list)
    segments: int
    claim_digest: str
    dev_mode: bool = False

    @property
    def journal_bytes(self) -> bytes:
        return bytes.fromhex(self.journal)

    def to_bytes(self) -> bytes:
        return self.model_dump_json().encode("utf-8")

    @classmethod
    def from_bytes(cls, data: bytes) -> "Receipt":
        return cls.model_validate_json(data)


class SnarkProof(BaseModel):
    """Groth16-shaped proof, every element a hex string."""

    a: List[str]
    b: List[List[str]]
    c: List[str]
    public: List[str]


class SnarkReceipt(BaseModel):
    snark: SnarkProof
    image_id: str
    journal: str
    claim_digest: str

    def to_bytes(self) -> bytes:
        return self.model_dump_json().encode("utf-8")

    @classmethod
    def from_bytes(cls, data: bytes) -> "SnarkReceipt":
        return cls.model_validate_json(data)
