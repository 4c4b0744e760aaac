# smart_calc_config.py
"""
Settings for the smart calculator REPL.

Values come from (lowest to highest precedence) the field defaults, a .env file,
SMART_CALC_* environment variables and explicit overrides such as command-line
arguments.
"""

import logging
import os
from typing import Any, Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "SMART_CALC_"
DEFAULT_HISTORY_FILE = "~/.smart_calc_history"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class CalculatorSettings(BaseModel):
    """Validated REPL settings."""
    history_file: Optional[str] = Field(
        default=DEFAULT_HISTORY_FILE,
        validate_default=True,
        description="File for persistent input history; empty or None disables it",
    )
    log_level: str = Field(default="WARNING", description="Standard logging level name")
    prompt: str = Field(default="> ", description="Input prompt")

    @field_validator('history_file')
    @classmethod
    def expand_history_file(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return os.path.expanduser(v.strip())

    @field_validator('log_level')
    @classmethod
    def log_level_must_be_known(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level '{v}', expected one of {', '.join(_LOG_LEVELS)}")
        return level


def load_settings(env_file: Optional[str] = None, **overrides: Any) -> CalculatorSettings:
    """
    Loads settings from the environment and applies overrides.

    Args:
        env_file: Path of a .env file; searched for upwards from the working directory when None
        **overrides: Field values that win over the environment; None values are ignored

    Raises:
        pydantic.ValidationError: If a value fails validation
    """
    load_dotenv(env_file or find_dotenv(usecwd=True))
    values = {}
    for name in CalculatorSettings.model_fields:
        env_value = os.environ.get(ENV_PREFIX + name.upper())
        if env_value is not None:
            values[name] = env_value
    values.update({k: v for k, v in overrides.items() if v is not None})
    return CalculatorSettings(**values)


def configure_logging(level: str = "WARNING") -> None:
    logging.basicConfig(level=getattr(logging, level), format=LOG_FORMAT)
