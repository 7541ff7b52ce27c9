"""
Data Contracts for the Self-Healing Engine.
Failure reports in, recovery decisions and outcomes out.
"""
from __future__ import annotations

import time
from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

# --- Constants (reference sizing) ---

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_BACKOFF_MS = 1000
DEFAULT_MAX_BACKOFF_MS = 30000
DEFAULT_BACKOFF_MULTIPLIER = 2.0
JITTER_RATIO = 0.1
MAX_HISTORY_SIZE = 1000
RESOURCE_SWITCH_DELAY_MS = 500
UNIT_RESTART_DELAY_MS = 2000
CHALLENGE_PAUSE_MS = 60000
METRICS_WINDOW_S = 3600.0

# --- Enums ---

class FailureCategory(str, Enum):
    """Classification of a failure reported by the task runner."""
    NETWORK = "network"
    PROXY = "proxy"
    CHALLENGE = "challenge"
    TIMEOUT = "timeout"
    RATE_LIMIT = "rate-limit"
    CRASH = "crash"
    UNKNOWN = "unknown"

    @classmethod
    def coerce(cls, value: Any) -> "FailureCategory":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            v = value.strip().lower().replace("_", "-")
            v = _CATEGORY_ALIASES.get(v, v)
            try:
                return cls(v)
            except ValueError:
                return cls.UNKNOWN
        return cls.UNKNOWN

_CATEGORY_ALIASES = {
    "captcha": "challenge",
    "ratelimit": "rate-limit",
    "rate-limited": "rate-limit",
    "resource": "proxy",
}

class ActionKind(str, Enum):
    """Remedy chosen for a failure."""
    RETRY = "retry"
    SWITCH_RESOURCE = "switch-resource"
    RESTART_UNIT = "restart-unit"
    BACKOFF = "backoff"
    SKIP = "skip"
    ABORT = "abort" # Give up on this key

class ChallengeHandling(str, Enum):
    SKIP = "skip"
    PAUSE = "pause"
    ABORT = "abort"

class BackoffStrategyKind(str, Enum):
    IMMEDIATE = "immediate"
    LINEAR = "linear"
    EXPONENTIAL = "exponential"
    FIBONACCI = "fibonacci"

# --- Input / Decision Models ---

class FailureReport(BaseModel):
    """
    A classified failure from a long-running task.

    API STABILITY: STABLE (v1.x)
    """
    category: FailureCategory = FailureCategory.UNKNOWN
    message: str = ""
    task_id: Optional[str] = None
    resource_id: Optional[str] = None # e.g. proxy identifier
    origin: Optional[str] = None # URL where the failure occurred
    occurred_at: float = Field(default_factory=time.time)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    @field_validator('category', mode='before')
    @classmethod
    def normalize_category(cls, v: Any) -> FailureCategory:
        # Decision-time never throws: unrecognized categories fall back to UNKNOWN
        return FailureCategory.coerce(v)

    @property
    def key(self) -> "FailureKey":
        return FailureKey.of(self.category, self.task_id, self.resource_id)

    @classmethod
    def from_exception(cls, exc: BaseException, **fields: Any) -> "FailureReport":
        """Build a report whose category is inferred from the exception."""
        from healing.errors import classify_failure

        fields.setdefault("category", classify_failure(exc))
        fields.setdefault("message", str(exc) or type(exc).__name__)
        resource_id = getattr(exc, "resource_id", None)
        if resource_id is not None:
            fields.setdefault("resource_id", resource_id)
        return cls(**fields)

class FailureKey(BaseModel):
    """
    Composite identity of a recurring failure.
    Hashable tuple of fields; no string concatenation, so ids may contain ':'.
    """
    category: FailureCategory
    task_id: str = "global"
    resource_id: str = "none"

    model_config = ConfigDict(frozen=True)

    @classmethod
    def of(cls, category: Any, task_id: Optional[str] = None, resource_id: Optional[str] = None) -> "FailureKey":
        return cls(
            category=FailureCategory.coerce(category),
            task_id=task_id if task_id is not None else "global",
            resource_id=resource_id if resource_id is not None else "none",
        )

    def __str__(self) -> str:
        return f"{self.category.value}:{self.task_id}:{self.resource_id}"

class RecoveryAction(BaseModel):
    """Decision output of the engine."""
    kind: ActionKind
    reason: str
    delay_ms: Optional[int] = None
    max_attempts: Optional[int] = None
    new_resource_id: Optional[str] = None

    model_config = ConfigDict(frozen=True)

class RecoveryOutcome(BaseModel):
    """Result of executing a recovery action."""
    succeeded: bool
    action: RecoveryAction
    attempt_number: int
    duration_ms: int
    error_message: Optional[str] = None
    category: FailureCategory = FailureCategory.UNKNOWN
    completed_at: float = Field(default_factory=time.time)

    model_config = ConfigDict(frozen=True)

# --- Configuration ---

class EngineConfig(BaseModel):
    """
    Engine configuration. Treated as a value: updates produce a new instance.
    """
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0)
    base_backoff_ms: int = Field(default=DEFAULT_BASE_BACKOFF_MS, ge=0)
    max_backoff_ms: int = Field(default=DEFAULT_MAX_BACKOFF_MS, ge=0)
    backoff_multiplier: float = Field(default=DEFAULT_BACKOFF_MULTIPLIER, gt=0)
    resource_failover_enabled: bool = True
    unit_restart_enabled: bool = True
    challenge_handling: ChallengeHandling = ChallengeHandling.SKIP
    backoff_strategy_kind: BackoffStrategyKind = BackoffStrategyKind.EXPONENTIAL

    # Fixed delays and sizing
    history_capacity: int = Field(default=MAX_HISTORY_SIZE, ge=1)
    jitter_ratio: float = Field(default=JITTER_RATIO, ge=0, le=1)
    resource_switch_delay_ms: int = Field(default=RESOURCE_SWITCH_DELAY_MS, ge=0)
    unit_restart_delay_ms: int = Field(default=UNIT_RESTART_DELAY_MS, ge=0)
    challenge_pause_ms: int = Field(default=CHALLENGE_PAUSE_MS, ge=0)
    metrics_window_s: float = Field(default=METRICS_WINDOW_S, gt=0)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator('backoff_strategy_kind', mode='before')
    @classmethod
    def normalize_strategy_kind(cls, v: Any) -> BackoffStrategyKind:
        if isinstance(v, str):
            try:
                return BackoffStrategyKind(v.lower())
            except ValueError:
                return BackoffStrategyKind.EXPONENTIAL
        return v

    @field_validator('challenge_handling', mode='before')
    @classmethod
    def normalize_challenge_handling(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.lower()
        return v

# --- Observability Models ---

class AggregateStats(BaseModel):
    total_recoveries: int = 0
    successful_recoveries: int = 0
    failed_recoveries: int = 0
    success_rate: float = 0.0
    avg_duration_ms: float = 0.0
    by_action_kind: Dict[str, int] = Field(default_factory=dict)
    by_category: Dict[str, int] = Field(default_factory=dict)
    recovery_rate_by_category: Dict[str, float] = Field(default_factory=dict)

class RollingMetrics(BaseModel):
    timestamp: float = Field(default_factory=time.time)
    active_failure_counts: Dict[str, int] = Field(default_factory=dict)
    recent_recovery_attempts: int = 0
    recent_success_rate: float = 100.0
    avg_backoff_delay_ms: float = 0.0
