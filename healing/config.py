"""
Environment-driven configuration for the Self-Healing Engine.
"""
import os
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from healing.errors import InvalidConfigError
from healing.types import EngineConfig

# env var -> EngineConfig field
ENV_FIELDS = {
    "HEALING_MAX_RETRIES": "max_retries",
    "HEALING_BASE_BACKOFF_MS": "base_backoff_ms",
    "HEALING_MAX_BACKOFF_MS": "max_backoff_ms",
    "HEALING_BACKOFF_MULTIPLIER": "backoff_multiplier",
    "HEALING_RESOURCE_FAILOVER": "resource_failover_enabled",
    "HEALING_UNIT_RESTART": "unit_restart_enabled",
    "HEALING_CHALLENGE_HANDLING": "challenge_handling",
    "HEALING_BACKOFF_STRATEGY": "backoff_strategy_kind",
    "HEALING_HISTORY_CAPACITY": "history_capacity",
}


def build_config(base: Optional[EngineConfig] = None, **overrides: Any) -> EngineConfig:
    """Merge overrides onto base (or defaults) and validate."""
    data: Dict[str, Any] = base.model_dump() if base else {}
    data.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return EngineConfig(**data)
    except ValidationError as e:
        raise InvalidConfigError(str(e)) from e


def load_config(env_file: Optional[str] = None, **overrides: Any) -> EngineConfig:
    """
    Build EngineConfig from HEALING_* environment variables (and an optional .env),
    with keyword overrides taking precedence.
    """
    load_dotenv(env_file)

    data: Dict[str, Any] = {}
    for env_name, field in ENV_FIELDS.items():
        raw = os.getenv(env_name)
        if raw is not None and raw.strip() != "":
            data[field] = raw.strip()
    data.update(overrides)
    return build_config(**data)
