"""
Failure taxonomy for the Self-Healing Engine.

Task runners raise (or wrap their own exceptions into) these errors so that
failures arrive at the engine already carrying a FailureCategory.
"""
import asyncio
from typing import Optional

from healing.types import FailureCategory


class HealingError(Exception):
    """Base error carrying a normalized FailureCategory."""
    category = FailureCategory.UNKNOWN
    recoverable = True
    suggested_action: Optional[str] = None

    def __init__(self, message: str = "", *, resource_id: Optional[str] = None,
                 suggested_action: Optional[str] = None):
        self.resource_id = resource_id
        if suggested_action is not None:
            self.suggested_action = suggested_action
        super().__init__(message or self.category.value)

    def user_message(self) -> str:
        if self.suggested_action:
            return f"{self}. {self.suggested_action}"
        return str(self)


class NetworkFailure(HealingError):
    category = FailureCategory.NETWORK


class ResourceFailure(HealingError):
    """Failure of an assigned resource (proxy) rather than of the target."""
    category = FailureCategory.PROXY
    suggested_action = "Try using a different proxy or check your proxy configuration"


class ChallengeDetected(HealingError):
    category = FailureCategory.CHALLENGE
    recoverable = False


class TaskTimeout(HealingError):
    category = FailureCategory.TIMEOUT


class RateLimited(HealingError):
    category = FailureCategory.RATE_LIMIT


class UnitCrashed(HealingError):
    category = FailureCategory.CRASH


class InvalidConfigError(ValueError):
    """Raised when a configuration update does not validate."""
    pass


# Message heuristics, checked in order
_MESSAGE_HINTS = (
    (FailureCategory.CHALLENGE, ("captcha", "challenge", "are you a robot", "verify you are human")),
    (FailureCategory.RATE_LIMIT, ("429", "rate limit", "rate-limit", "too many requests")),
    (FailureCategory.PROXY, ("proxy",)),
    (FailureCategory.CRASH, ("crash", "target closed", "renderer")),
    (FailureCategory.TIMEOUT, ("timeout", "timed out")),
    (FailureCategory.NETWORK, ("connection", "network", "dns", "econnrefused", "econnreset")),
)


def classify_failure(error: BaseException) -> FailureCategory:
    """
    Map an arbitrary exception to a FailureCategory. Never raises.
    """
    if isinstance(error, HealingError):
        return error.category
    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return FailureCategory.TIMEOUT
    if isinstance(error, OSError): # ConnectionError, socket.gaierror
        return FailureCategory.NETWORK

    msg = str(error).lower()
    for category, hints in _MESSAGE_HINTS:
        if any(h in msg for h in hints):
            return category
    return FailureCategory.UNKNOWN
