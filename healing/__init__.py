"""healing — self-healing error-recovery engine for long-running tasks."""
from .types import (  # noqa: F401
    FailureCategory, ActionKind, ChallengeHandling, BackoffStrategyKind,
    FailureReport, FailureKey, RecoveryAction, RecoveryOutcome, EngineConfig,
    AggregateStats, RollingMetrics,
)
from .errors import (  # noqa: F401
    HealingError, NetworkFailure, ResourceFailure, ChallengeDetected, TaskTimeout,
    RateLimited, UnitCrashed, InvalidConfigError, classify_failure,
)
from .backoff import BackoffStrategy, create_backoff_strategy  # noqa: F401
from .config import load_config  # noqa: F401
from .engine import SelfHealingEngine  # noqa: F401
