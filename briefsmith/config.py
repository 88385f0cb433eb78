# briefsmith/config.py
import os
import logging
from typing import Dict, Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# -----------------------------------------------------------------------------
# Env & defaults
# -----------------------------------------------------------------------------
load_dotenv()

ThinkingLevel = Literal["high", "medium", "low", "minimal"]

DEFAULT_MODEL = os.getenv("MODEL_NAME", "gpt-5")
FAST_MODEL = os.getenv("FAST_MODEL_NAME", "gpt-5-mini")
DEFAULT_LANGUAGE = os.getenv("OUTPUT_LANGUAGE", "English")

RETRY_ATTEMPTS = int(os.getenv("RETRY_ATTEMPTS", "3"))
RETRY_DELAY_SECONDS = float(os.getenv("RETRY_DELAY_SECONDS", "2.0"))

# ~4 chars per token; competitor payloads are the only inputs that get near these
TOKEN_WARN_AT = int(os.getenv("TOKEN_WARN_AT", "120000"))
TOKEN_HARD_LIMIT = int(os.getenv("TOKEN_HARD_LIMIT", "150000"))

BRIEF_STORE_DIR = os.getenv("BRIEF_STORE_DIR", "storage/briefs")


def configure_logging(level: Optional[str] = None) -> None:
    """Basic console logging for scripts; library code only uses module loggers."""
    logging.basicConfig(
        level=(level or os.getenv("LOG_LEVEL", "INFO")).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _env_thinking_level() -> Optional[str]:
    level = (os.getenv("THINKING_LEVEL") or "").strip().lower()
    return level if level in ("high", "medium", "low", "minimal") else None


class ModelSettings(BaseModel):
    """Per-session model choice. Passed explicitly through every call."""
    model: str = DEFAULT_MODEL
    # condensing and other cheap calls
    fast_model: str = FAST_MODEL
    # None = use the recommended level for each stage
    thinking_level: Optional[ThinkingLevel] = Field(default_factory=_env_thinking_level)


class LengthConstraints(BaseModel):
    global_target: Optional[int] = None
    section_targets: Dict[str, int] = Field(default_factory=dict)
    strict_mode: bool = False


def dataforseo_credentials() -> tuple[str, str]:
    login = os.getenv("DATAFORSEO_LOGIN", "").strip()
    password = os.getenv("DATAFORSEO_PASSWORD", "").strip()
    if not login or not password:
        raise RuntimeError("DATAFORSEO_LOGIN / DATAFORSEO_PASSWORD are not set in your environment (.env).")
    return login, password
