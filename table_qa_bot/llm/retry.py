"""
Retry bookkeeping for a model that reports its own warm-up time.

A hosted model that is still loading answers 503 with a JSON body such as
``{"error": "...", "estimated_time": 20.0}``. ``WarmupRetry`` decides, one
response at a time, whether to wait and try again or to stop.
"""

import json
import math
from enum import Enum
from typing import Optional

SUCCESS_STATUS = 200
WARMING_UP_STATUS = 503


class RetryState(str, Enum):
    ATTEMPTING = "attempting"
    WAITING = "waiting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def parse_estimated_time(body: str) -> Optional[float]:
    """
    Extract ``estimated_time`` from a 503 body.

    Returns None when the body is not a JSON object or the value is not a
    finite number. Negative estimates mean no wait.
    """
    try:
        result = json.loads(body)
    except ValueError:
        return None
    if not isinstance(result, dict):
        return None

    value = result.get("estimated_time")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        value = float(value)
    except OverflowError:
        return None
    if not math.isfinite(value):
        return None
    return max(value, 0.0)


class WarmupRetry:
    """
    State machine for one inference call.

    ATTEMPTING --200--> SUCCEEDED
    ATTEMPTING --503 + estimated_time, budget left--> WAITING --resume()--> ATTEMPTING
    ATTEMPTING --503 + estimated_time, budget spent--> FAILED (exhausted)
    ATTEMPTING --anything else--> FAILED
    """

    def __init__(self, max_attempts: int = 10) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.state = RetryState.ATTEMPTING
        self.attempts = 0
        self.wait_seconds: Optional[float] = None
        self.last_status: Optional[int] = None
        self.last_body: Optional[str] = None
        self.exhausted = False

    @property
    def done(self) -> bool:
        return self.state in (RetryState.SUCCEEDED, RetryState.FAILED)

    def record_response(self, status_code: int, body: str) -> RetryState:
        """Apply the outcome of one HTTP attempt and return the new state."""
        if self.state is not RetryState.ATTEMPTING:
            raise RuntimeError(f"Cannot record a response while {self.state.value}")

        self.attempts += 1
        self.last_status = status_code
        self.last_body = body
        self.wait_seconds = None

        if status_code == SUCCESS_STATUS:
            self.state = RetryState.SUCCEEDED
            return self.state

        if status_code == WARMING_UP_STATUS:
            estimated_time = parse_estimated_time(body)
            if estimated_time is not None:
                if self.attempts >= self.max_attempts:
                    self.exhausted = True
                    self.state = RetryState.FAILED
                else:
                    self.wait_seconds = estimated_time
                    self.state = RetryState.WAITING
                return self.state

        self.state = RetryState.FAILED
        return self.state

    def resume(self) -> RetryState:
        """Leave WAITING once the caller has slept for ``wait_seconds``."""
        if self.state is not RetryState.WAITING:
            raise RuntimeError(f"Cannot resume while {self.state.value}")
        self.state = RetryState.ATTEMPTING
        return self.state
