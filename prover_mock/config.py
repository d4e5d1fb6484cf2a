import json
import os
from typing import List


class Settings:
    """Application settings"""
    def __init__(self, **overrides):
        self.app_name: str = os.getenv("APP_NAME", "Prover Mock Server")
        self.app_version: str = os.getenv("APP_VERSION", "0.1.0")
        self.debug: bool = os.getenv("DEBUG", "false").lower() == "true"
        self.host: str = os.getenv("HOST", "0.0.0.0")
        self.port: int = int(os.getenv("PORT", "8081"))

        # API settings
        self.api_v1_prefix: str = os.getenv("API_V1_PREFIX", "/v1")

        # Logging settings
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO")

        cors_origins_str = os.getenv("CORS_ORIGINS", '["http://localhost:3000", "http://localhost:8080"]')
        try:
            self.cors_origins: List[str] = json.loads(cors_origins_str) if cors_origins_str.startswith('[') else ["*"]
        except (json.JSONDecodeError, ValueError):
            self.cors_origins = ["*"]

        # Execution settings
        self.proof_concurrency: int = int(os.getenv("PROOF_CONCURRENCY", "2"))
        snark_env = os.getenv("SNARK_CONCURRENCY")
        self.snark_concurrency: int = int(snark_env) if snark_env else self.proof_concurrency
        self.queue_size: int = int(os.getenv("QUEUE_SIZE", "100"))

        # Artifact store limits
        self.max_artifact_size_mb: int = int(os.getenv("MAX_ARTIFACT_SIZE_MB", "64"))
        self.max_store_size_mb: int = int(os.getenv("MAX_STORE_SIZE_MB", "1024"))

        # Local prover settings
        self.segment_size_bytes: int = int(os.getenv("SEGMENT_SIZE_BYTES", "4096"))
        self.max_segments: int = int(os.getenv("MAX_SEGMENTS", "1024"))
        self.dev_mode: bool = os.getenv("RISC0_DEV_MODE", "false").lower() in ("1", "true")

        for key, value in overrides.items():
            if not hasattr(self, key):
                raise TypeError(f"Unknown setting: {key}")
            setattr(self, key, value)

        # The SNARK cap follows the proof cap unless set on its own
        if not snark_env and "snark_concurrency" not in overrides:
            self.snark_concurrency = self.proof_concurrency

    @property
    def max_artifact_bytes(self) -> int:
        return self.max_artifact_size_mb * 1024 * 1024

    @property
    def max_store_bytes(self) -> int:
        return self.max_store_size_mb * 1024 * 1024
