"""
SelfHealingEngine: decides what remedial action to take for a classified
failure, how long to wait and how many times to keep trying, then executes
the action and records the outcome.

The engine performs no I/O of its own. Task runners supply opaque task and
resource identifiers and a `perform` callable that carries out the side effect.

Usage:
    engine = SelfHealingEngine(max_retries=5, resource_failover_enabled=True)
    action = engine.analyze_error(FailureReport(category="network", message="ECONNREFUSED"))
    outcome = await engine.execute_recovery(report, action, switch_proxy)
"""
import asyncio
import inspect
import threading
import time
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Union

from healing.backoff import apply_jitter
from healing.config import build_config, load_config
from healing.events import (
    HealingEventBus, EventHandler,
    EVENT_RECOVERY_STARTED, EVENT_RECOVERY_SUCCESS, EVENT_RECOVERY_FAILED,
    EVENT_ACTION_EXECUTED, EVENT_BACKOFF_APPLIED, EVENT_METRICS_UPDATED,
)
from healing.logger import configure_logger, get_logger
from healing.reliability import PolicySet
from healing.telemetry import RecoveryHistory, compute_metrics, compute_stats, recovery_span
from healing.tracker import FailureTracker
from healing.types import (
    ActionKind, AggregateStats, EngineConfig, FailureKey, FailureReport, RecoveryAction,
    RecoveryOutcome, RollingMetrics,
)

logger = get_logger(__name__)

PerformFn = Callable[[RecoveryAction], Union[bool, Awaitable[bool]]]
ReportLike = Union[FailureReport, Mapping[str, Any]]


class SelfHealingEngine:
    """
    One engine per logical task runner. All state is owned by the instance.

    API STABILITY: STABLE (v1.x)
    """

    def __init__(self, config: Optional[EngineConfig] = None, **overrides: Any):
        config = build_config(config, **overrides)
        self._policies = PolicySet.build(config)
        self._config_lock = threading.Lock()
        self.tracker = FailureTracker()
        self.history = RecoveryHistory(config.history_capacity)
        self.events = HealingEventBus()
        logger.debug("Initialized SelfHealingEngine", strategy=self._policies.strategy.name,
                     max_retries=config.max_retries)

    @classmethod
    def from_env(cls, env_file: Optional[str] = None, **overrides: Any) -> "SelfHealingEngine":
        configure_logger()
        return cls(load_config(env_file, **overrides))

    # --- Decision ---

    def analyze_error(self, report: ReportLike) -> RecoveryAction:
        """
        Bump the failure count for the report's key and decide the recovery action.
        Never suspends; the only side effect is the counter mutation.
        """
        report = _as_report(report)
        policies = self._policies # single snapshot of (config, strategy, policies)
        config = policies.config
        key = report.key

        count = self.tracker.increment(key, report.occurred_at)
        log = logger.bind(failure_key=str(key), attempt=count)

        # Max retries check precedes and overrides category dispatch
        if count > config.max_retries:
            log.warning("Max retries exceeded, aborting", max_retries=config.max_retries)
            return RecoveryAction(
                kind=ActionKind.ABORT,
                reason=f"Max retries ({config.max_retries}) exceeded for {report.category.value} error",
            )

        decision = policies.decide(report, count)
        action = decision.action
        if decision.jitter and action.delay_ms:
            action = action.model_copy(update={
                "delay_ms": apply_jitter(action.delay_ms, config.jitter_ratio, config.max_backoff_ms)
            })

        log.debug("Recovery action decided", action=action.kind.value, delay_ms=action.delay_ms)
        return action

    def calculate_backoff(self, attempt: int) -> int:
        """Jittered delay (ms) of the active strategy for a 1-based attempt."""
        policies = self._policies
        config = policies.config
        return apply_jitter(policies.strategy.delay(attempt), config.jitter_ratio, config.max_backoff_ms)

    # --- Execution ---

    async def execute_recovery(self, report: ReportLike, action: RecoveryAction, perform: PerformFn) -> RecoveryOutcome:
        """
        Apply the action's delay, invoke `perform(action)` and record the outcome.
        Never raises: exceptions from `perform` become a failed outcome.
        """
        report = _as_report(report)
        key = report.key
        attempts = self.tracker.count(key) or 1
        start = time.monotonic()
        log = logger.bind(failure_key=str(key), action=action.kind.value, attempt=attempts)

        self.events.emit(EVENT_RECOVERY_STARTED, {"report": report, "action": action, "attempts": attempts})

        error_message: Optional[str] = None
        succeeded = False
        span_attrs = {
            "healing.category": report.category.value,
            "healing.action": action.kind.value,
            "healing.attempt": attempts,
        }
        with recovery_span("healing.recovery", span_attrs):
            try:
                if action.delay_ms and action.delay_ms > 0:
                    self.events.emit(EVENT_BACKOFF_APPLIED, {
                        "delay_ms": action.delay_ms,
                        "strategy": self._policies.strategy.name,
                    })
                    await asyncio.sleep(action.delay_ms / 1000)

                result = perform(action)
                if inspect.isawaitable(result):
                    result = await result
                succeeded = bool(result)
                self.events.emit(EVENT_ACTION_EXECUTED, {"action": action, "success": succeeded})
            except Exception as e:
                succeeded = False
                error_message = str(e) or type(e).__name__
                log.warning("Recovery action raised", error=error_message)

        outcome = RecoveryOutcome(
            succeeded=succeeded,
            action=action,
            attempt_number=attempts,
            duration_ms=int((time.monotonic() - start) * 1000),
            error_message=error_message,
            category=report.category,
        )

        if succeeded:
            self.tracker.clear(key)
            self.events.emit(EVENT_RECOVERY_SUCCESS, outcome)
            log.debug("Recovery succeeded", duration_ms=outcome.duration_ms)
        else:
            self.events.emit(EVENT_RECOVERY_FAILED, outcome)
            log.warning("Recovery failed", duration_ms=outcome.duration_ms, error=error_message)

        self.history.append(outcome)
        return outcome

    # --- Error Count Management ---

    def clear_error_count(self, report: ReportLike):
        self.tracker.clear(_as_report(report).key)

    def clear_all_error_counts(self):
        self.tracker.clear_all()

    def get_error_count(self, report: Optional[ReportLike] = None, **fields: Any) -> int:
        """Count for the key of a full or partial report (category defaults to unknown)."""
        if isinstance(report, FailureReport):
            key = report.key
        else:
            data = dict(report or {})
            data.update(fields)
            key = FailureKey.of(data.get("category"), data.get("task_id"), data.get("resource_id"))
        return self.tracker.count(key)

    # --- Statistics & Metrics ---

    def get_stats(self) -> AggregateStats:
        return compute_stats(self.history.snapshot())

    def get_metrics(self) -> RollingMetrics:
        metrics = compute_metrics(
            self.history.snapshot(),
            self.tracker.snapshot(),
            window_s=self._policies.config.metrics_window_s,
        )
        self.events.emit(EVENT_METRICS_UPDATED, metrics)
        return metrics

    # --- History ---

    def get_history(self) -> List[RecoveryOutcome]:
        return self.history.snapshot()

    def clear_history(self):
        self.history.clear()

    # --- Configuration ---

    def update_config(self, partial: Optional[Mapping[str, Any]] = None, **fields: Any):
        """
        Merge a partial config. Rebuilds the strategy and every category policy
        as one immutable set; raises InvalidConfigError and keeps the old config
        when the result does not validate.
        """
        changes = dict(partial or {})
        changes.update(fields)
        with self._config_lock:
            new_config = build_config(self._policies.config, **changes)
            self._policies = PolicySet.build(new_config)
            self.history.resize(new_config.history_capacity)
        logger.debug("Configuration updated", changes=sorted(changes), strategy=self._policies.strategy.name)

    def get_config(self) -> EngineConfig:
        return self._policies.config

    def get_active_strategy_name(self) -> str:
        return self._policies.strategy.name

    # --- Event Handling ---

    def on(self, event: str, handler: EventHandler):
        self.events.on(event, handler)

    def off(self, event: str, handler: EventHandler):
        self.events.off(event, handler)

    def remove_all_listeners(self):
        self.events.clear()


def _as_report(report: ReportLike) -> FailureReport:
    if isinstance(report, FailureReport):
        return report
    return FailureReport.model_validate(dict(report))
