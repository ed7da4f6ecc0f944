"""Runtime settings for imagerelay."""

import logging
import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_GEMINI_MODEL = "gemini-3-pro-image-preview"


class EngineSettings(BaseModel):
    """Settings for the environment-supplied provider and circuit breaking."""

    gemini_api_key: str = Field("", repr=False, description="Credential of the environment-supplied provider")
    ai_model_url: str = Field(DEFAULT_GEMINI_URL, description="Endpoint of the environment-supplied provider")
    ai_model_name: str = Field(DEFAULT_GEMINI_MODEL, description="Model of the environment-supplied provider")

    attempt_timeout_seconds: float = Field(30.0, gt=0, description="Bound on a single provider attempt")
    failure_threshold: int = Field(3, ge=1, description="Consecutive failures that trip the breaker")
    cooldown_seconds: float = Field(60.0, ge=0, description="Temporary disable window after tripping")
    forgiveness_seconds: float = Field(1800.0, ge=0, description="Idle time after which errors are forgiven")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "EngineSettings":
        """
        Load settings from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)
            **overrides: Explicit values that win over the environment

        Returns:
            EngineSettings instance
        """
        env = os.environ if environ is None else environ

        values: dict = {
            "gemini_api_key": (env.get("GEMINI_API_KEY") or "").strip(),
            "ai_model_url": (env.get("AI_MODEL_URL") or "").strip() or DEFAULT_GEMINI_URL,
            "ai_model_name": (env.get("AI_MODEL_NAME") or "").strip() or DEFAULT_GEMINI_MODEL,
        }

        raw_timeout = (env.get("IMAGERELAY_ATTEMPT_TIMEOUT") or "").strip()
        if raw_timeout:
            try:
                values["attempt_timeout_seconds"] = float(raw_timeout)
            except ValueError:
                logger.warning(f"⚠️ [Settings] Ignoring invalid IMAGERELAY_ATTEMPT_TIMEOUT={raw_timeout!r}")

        values.update(overrides)
        return cls(**values)
