"""
Per-category Action Policies for the Self-Healing Engine.
Implements the failure decision table via Pluggable Strategies.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from healing.backoff import BackoffStrategy, create_backoff_strategy
from healing.types import (
    ActionKind, ChallengeHandling, EngineConfig, FailureCategory, FailureReport, RecoveryAction,
)


@dataclass(frozen=True)
class PolicyDecision:
    """A RecoveryAction plus whether the engine may jitter its delay."""
    action: RecoveryAction
    jitter: bool = True


class ActionPolicy(ABC):
    """
    Decision logic for one failure category.

    API STABILITY: STABLE (v1.x)
    """
    @abstractmethod
    def decide(self, report: FailureReport, count: int, config: EngineConfig) -> PolicyDecision:
        pass


class NetworkPolicy(ActionPolicy):
    def __init__(self, strategy: BackoffStrategy):
        self.strategy = strategy

    def decide(self, report: FailureReport, count: int, config: EngineConfig) -> PolicyDecision:
        return PolicyDecision(RecoveryAction(
            kind=ActionKind.RETRY,
            reason=f"Network error: {report.message}",
            delay_ms=self.strategy.delay(count),
            max_attempts=config.max_retries,
        ))


class ResourcePolicy(ActionPolicy):
    """Proxy failures: fail over to another resource, or retry in place."""
    def __init__(self, strategy: BackoffStrategy):
        self.strategy = strategy

    def decide(self, report: FailureReport, count: int, config: EngineConfig) -> PolicyDecision:
        if config.resource_failover_enabled:
            return PolicyDecision(RecoveryAction(
                kind=ActionKind.SWITCH_RESOURCE,
                reason=f"Proxy failed: {report.message}",
                delay_ms=config.resource_switch_delay_ms,
            ), jitter=False)
        return PolicyDecision(RecoveryAction(
            kind=ActionKind.RETRY,
            reason=f"Proxy error (failover disabled): {report.message}",
            delay_ms=self.strategy.delay(count),
        ), jitter=False)


class ChallengePolicy(ActionPolicy):
    """Branches purely on configured challenge handling; attempt count is irrelevant."""
    def decide(self, report: FailureReport, count: int, config: EngineConfig) -> PolicyDecision:
        mode = config.challenge_handling
        if mode == ChallengeHandling.PAUSE:
            return PolicyDecision(RecoveryAction(
                kind=ActionKind.BACKOFF,
                reason="Challenge detected, pausing",
                delay_ms=config.challenge_pause_ms,
            ), jitter=False)
        if mode == ChallengeHandling.ABORT:
            return PolicyDecision(RecoveryAction(kind=ActionKind.ABORT, reason="Challenge detected, aborting"), jitter=False)
        return PolicyDecision(RecoveryAction(kind=ActionKind.SKIP, reason="Challenge detected, skipping task"), jitter=False)


class TimeoutPolicy(ActionPolicy):
    def __init__(self, strategy: BackoffStrategy):
        self.strategy = strategy

    def decide(self, report: FailureReport, count: int, config: EngineConfig) -> PolicyDecision:
        if count >= 2 and config.unit_restart_enabled:
            return PolicyDecision(RecoveryAction(
                kind=ActionKind.RESTART_UNIT,
                reason="Multiple timeouts, restarting unit",
                delay_ms=config.unit_restart_delay_ms // 2,
            ), jitter=False)
        return PolicyDecision(RecoveryAction(
            kind=ActionKind.RETRY,
            reason=f"Timeout error: {report.message}",
            delay_ms=self.strategy.delay(count),
        ))


class RateLimitPolicy(ActionPolicy):
    def __init__(self, strategy: BackoffStrategy, max_backoff_ms: int):
        self.strategy = strategy
        self.max_backoff_ms = max_backoff_ms

    def decide(self, report: FailureReport, count: int, config: EngineConfig) -> PolicyDecision:
        # Double the backoff for rate limits
        delay = min(self.strategy.delay(count) * 2, self.max_backoff_ms)
        return PolicyDecision(RecoveryAction(
            kind=ActionKind.BACKOFF,
            reason="Rate limited, applying extended backoff",
            delay_ms=delay,
        ))


class CrashPolicy(ActionPolicy):
    def decide(self, report: FailureReport, count: int, config: EngineConfig) -> PolicyDecision:
        if config.unit_restart_enabled:
            return PolicyDecision(RecoveryAction(
                kind=ActionKind.RESTART_UNIT,
                reason=f"Unit crashed: {report.message}",
                delay_ms=config.unit_restart_delay_ms,
            ), jitter=False)
        return PolicyDecision(RecoveryAction(kind=ActionKind.ABORT, reason="Unit crashed and restart disabled"), jitter=False)


class UnknownPolicy(ActionPolicy):
    """Default fallback: standard backoff retry, same as network."""
    def __init__(self, strategy: BackoffStrategy):
        self.strategy = strategy

    def decide(self, report: FailureReport, count: int, config: EngineConfig) -> PolicyDecision:
        return PolicyDecision(RecoveryAction(
            kind=ActionKind.RETRY,
            reason=f"Unknown error: {report.message}",
            delay_ms=self.strategy.delay(count),
            max_attempts=config.max_retries,
        ))


@dataclass(frozen=True)
class PolicySet:
    """
    Immutable bundle of config, backoff strategy and per-category policies.
    Configuration changes replace the whole set; nothing is mutated in place.
    """
    config: EngineConfig
    strategy: BackoffStrategy
    policies: Mapping[FailureCategory, ActionPolicy]

    @classmethod
    def build(cls, config: EngineConfig) -> "PolicySet":
        strategy = create_backoff_strategy(config)
        policies = {
            FailureCategory.NETWORK: NetworkPolicy(strategy),
            FailureCategory.PROXY: ResourcePolicy(strategy),
            FailureCategory.CHALLENGE: ChallengePolicy(),
            FailureCategory.TIMEOUT: TimeoutPolicy(strategy),
            FailureCategory.RATE_LIMIT: RateLimitPolicy(strategy, config.max_backoff_ms),
            FailureCategory.CRASH: CrashPolicy(),
            FailureCategory.UNKNOWN: UnknownPolicy(strategy),
        }
        return cls(config=config, strategy=strategy, policies=MappingProxyType(policies))

    def decide(self, report: FailureReport, count: int) -> PolicyDecision:
        policy = self.policies.get(report.category) or self.policies[FailureCategory.UNKNOWN]
        return policy.decide(report, count, self.config)
