"""Configuration — Pydantic model for tidalrelay settings."""

from __future__ import annotations

import json
import os
from importlib import resources
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator


def default_boot_script() -> str:
    """Path of the BootTidal.hs shipped with the package."""
    return str(resources.files("tidalrelay") / "data" / "BootTidal.hs")


class TidalConfig(BaseModel):
    """Top-level tidalrelay configuration."""

    interpreter: str = Field(
        default="ghci",
        description="Interpreter executable, launched with no arguments",
    )
    boot_script: str = Field(
        default_factory=default_boot_script,
        description="Script replayed line by line into every new session",
    )
    poll_interval: float = Field(
        default=0.2, gt=0, description="Seconds between output poll cycles"
    )
    prompt_tokens: list[str] = Field(
        default_factory=lambda: ["Prelude>"],
        description="Prompt text removed from output before it is shown",
    )
    tab_replacement: str = Field(
        default="  ", description="What tabs in sent fragments become"
    )

    @field_validator("interpreter", "boot_script")
    @classmethod
    def _expand_user(cls, value: str) -> str:
        return os.path.expanduser(value)

    @classmethod
    def load(cls, config_path: str | None = None) -> TidalConfig:
        """Load config from file, env vars, or defaults.

        Priority: env vars > config file > defaults.

        Env vars:
            TIDALRELAY_INTERPRETER  - Interpreter executable path
            TIDALRELAY_BOOT_SCRIPT  - Bootstrap script path
        """
        load_dotenv()

        config_data: dict[str, Any] = {}

        if config_path and os.path.exists(config_path):
            with open(config_path) as f:
                config_data = json.load(f)

        env_interpreter = os.environ.get("TIDALRELAY_INTERPRETER")
        if env_interpreter:
            config_data["interpreter"] = env_interpreter

        env_boot_script = os.environ.get("TIDALRELAY_BOOT_SCRIPT")
        if env_boot_script:
            config_data["boot_script"] = env_boot_script

        return cls.model_validate(config_data)
