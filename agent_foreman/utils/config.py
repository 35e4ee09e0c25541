"""
Configuration management for Agent Foreman.
"""

import json
import os
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field
from pathlib import Path

from .logging import get_logger

logger = get_logger(__name__)


class OrchestratorConfig(BaseModel):
    """Timers, thresholds and retention limits of the orchestrator."""
    poll_interval_seconds: float = Field(default=5.0, gt=0, le=3600)
    maintenance_interval_seconds: float = Field(default=30.0, gt=0, le=3600)
    running_stall_seconds: int = Field(default=20 * 60, ge=1)
    queued_stall_seconds: int = Field(default=60 * 60, ge=1)
    verification_pending_seconds: int = Field(default=30 * 60, ge=1)
    verification_reminder_cooldown_seconds: int = Field(default=30 * 60, ge=1)
    heartbeat_interval_seconds: int = Field(default=60, ge=1)
    run_archive_ttl_seconds: int = Field(default=60 * 60, ge=0)
    max_run_history: int = Field(default=500, ge=1, le=100000)
    default_max_retries: int = Field(default=2, ge=0, le=10)


class SystemConfig(BaseModel):
    """Main system configuration."""
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    json_logging: bool = Field(default=False)
    work_dir: str = Field(default=".")

    orchestrator: OrchestratorConfig = Field(default_factory=OrchestratorConfig)


_ORCHESTRATOR_ENV = {
    "FOREMAN_POLL_INTERVAL": ("poll_interval_seconds", float),
    "FOREMAN_MAINTENANCE_INTERVAL": ("maintenance_interval_seconds", float),
    "FOREMAN_RUNNING_STALL_SECONDS": ("running_stall_seconds", int),
    "FOREMAN_QUEUED_STALL_SECONDS": ("queued_stall_seconds", int),
    "FOREMAN_VERIFICATION_PENDING_SECONDS": ("verification_pending_seconds", int),
    "FOREMAN_MAX_RETRIES": ("default_max_retries", int),
    "FOREMAN_MAX_RUN_HISTORY": ("max_run_history", int),
}


def load_config_from_env() -> SystemConfig:
    """
    Load configuration from environment variables.

    Returns:
        SystemConfig: Configuration object with values from environment
    """
    config_data: Dict[str, Any] = {}

    if os.getenv("DEBUG"):
        config_data["debug"] = os.getenv("DEBUG").lower() == "true"

    if os.getenv("LOG_LEVEL"):
        config_data["log_level"] = os.getenv("LOG_LEVEL")

    if os.getenv("JSON_LOGGING"):
        config_data["json_logging"] = os.getenv("JSON_LOGGING").lower() == "true"

    if os.getenv("FOREMAN_WORK_DIR"):
        config_data["work_dir"] = os.getenv("FOREMAN_WORK_DIR")

    orchestrator_config: Dict[str, Any] = {}
    for env_name, (field_name, cast) in _ORCHESTRATOR_ENV.items():
        raw = os.getenv(env_name)
        if raw:
            orchestrator_config[field_name] = cast(raw)

    if orchestrator_config:
        config_data["orchestrator"] = orchestrator_config

    return SystemConfig(**config_data)


def load_config_from_file(config_path: Optional[Path] = None) -> SystemConfig:
    """
    Load configuration from a JSON file.

    Args:
        config_path: Path to configuration file

    Returns:
        SystemConfig: Configuration object
    """
    if config_path is None:
        config_path = Path("foreman.json")

    if not config_path.exists():
        return SystemConfig()

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = json.load(f)
        return SystemConfig(**config_data)
    except Exception as e:
        logger.warning("Could not load config file, using defaults", path=str(config_path), error=str(e))
        return SystemConfig()


def load_config(config_path: Optional[Path] = None) -> SystemConfig:
    """
    Load configuration from file, then merge environment variables over it.

    Args:
        config_path: Optional path to a JSON configuration file

    Returns:
        SystemConfig: Merged configuration
    """
    config = load_config_from_file(config_path)
    env_overrides = load_config_from_env().model_dump(exclude_unset=True)
    if not env_overrides:
        return config

    config_dict = config.model_dump()
    nested = env_overrides.pop("orchestrator", None)
    config_dict.update(env_overrides)
    if nested:
        config_dict["orchestrator"].update(nested)
    return SystemConfig(**config_dict)
