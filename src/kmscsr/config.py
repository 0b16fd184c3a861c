import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

load_dotenv()

DEFAULT_KEY_CACHE_TTL_SEC = 60 * 60
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class CsrConfig(BaseModel):
    key_cache_ttl_sec: int = Field(default=DEFAULT_KEY_CACHE_TTL_SEC, gt=0)
    kms_endpoint: Optional[str] = None  # e.g. europe-west1-kms.googleapis.com
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        v = v.strip().upper()
        if v not in LOG_LEVELS:
            raise ValueError(f"invalid log level: {v}")
        return v


def load_config() -> CsrConfig:
    """Build config from the environment (and .env, loaded at import)."""
    return CsrConfig(
        key_cache_ttl_sec=int(os.getenv("KMS_CSR_KEY_CACHE_TTL_SEC", str(DEFAULT_KEY_CACHE_TTL_SEC))),
        kms_endpoint=os.getenv("KMS_CSR_KMS_ENDPOINT") or None,
        log_level=os.getenv("KMS_CSR_LOG_LEVEL", "INFO"),
    )
