"""Bounded retry with exponential backoff for backend calls."""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar

from .errors import RetryCancelledError, TerminalError, TransientBackendError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Message fragments that mark a request as one the backend will never accept
TERMINAL_MARKERS = ("api key", "invalid", "unauthorized", "forbidden")


class ErrorKind(str, Enum):
    """How the retry controller treats a failure."""
    TERMINAL = "terminal"
    RETRYABLE = "retryable"


@dataclass
class RetryAttemptState:
    """Bookkeeping for one invoke_with_retry call; never shared."""
    attempt_index: int = 0
    last_error: Optional[BaseException] = None
    next_delay_ms: int = 0


def classify_error(error: BaseException) -> ErrorKind:
    """Terminal for credential or malformed-request failures, retryable otherwise.

    Typed errors keep their type's classification; only untyped errors are
    judged by their message.
    """
    if isinstance(error, TerminalError):
        return ErrorKind.TERMINAL
    if isinstance(error, TransientBackendError):
        return ErrorKind.RETRYABLE
    message = str(error).lower()
    if any(marker in message for marker in TERMINAL_MARKERS):
        return ErrorKind.TERMINAL
    return ErrorKind.RETRYABLE


def backoff_delay_ms(attempt_index: int, base_delay_ms: int) -> int:
    """Delay to wait before ``attempt_index`` (0 for the first attempt)."""
    if attempt_index <= 0:
        return 0
    return base_delay_ms * (2 ** (attempt_index - 1))


async def _wait(delay_ms: int, cancel_event: Optional[asyncio.Event],
                sleep: Callable[[float], Awaitable[None]]) -> bool:
    """Suspend for ``delay_ms``; returns True if cancelled while waiting."""
    if cancel_event is None:
        await sleep(delay_ms / 1000)
        return False
    sleeper = asyncio.ensure_future(sleep(delay_ms / 1000))
    watcher = asyncio.ensure_future(cancel_event.wait())
    try:
        done, _ = await asyncio.wait({sleeper, watcher}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (sleeper, watcher):
            if not task.done():
                task.cancel()
    if sleeper in done:
        sleeper.result()
    return cancel_event.is_set()


async def invoke_with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay_ms: int = 1000,
    *,
    cancel_event: Optional[asyncio.Event] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run ``operation`` until it succeeds, fails terminally or runs out of attempts.

    Before attempt k (k >= 1) the controller waits ``base_delay_ms * 2**(k-1)``.
    Terminal failures propagate from the attempt that produced them; after the
    last retryable failure the final attempt's error propagates. Setting
    ``cancel_event`` stops the sequence before the next attempt.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    state = RetryAttemptState()
    while True:
        if cancel_event is not None and cancel_event.is_set():
            raise RetryCancelledError(
                f"Retry cancelled before attempt {state.attempt_index + 1}") from state.last_error

        try:
            return await operation()
        except Exception as e:
            state.last_error = e
            if classify_error(e) is ErrorKind.TERMINAL:
                logger.error(
                    f"Attempt {state.attempt_index + 1}/{max_attempts} failed with terminal error: {e}")
                raise

            if state.attempt_index + 1 >= max_attempts:
                logger.warning(
                    f"Attempt {state.attempt_index + 1}/{max_attempts} failed, no retries left: {e}")
                raise

            state.next_delay_ms = backoff_delay_ms(state.attempt_index + 1, base_delay_ms)
            logger.warning(
                f"Attempt {state.attempt_index + 1}/{max_attempts} failed, retrying in {state.next_delay_ms}ms: {e}")

        if await _wait(state.next_delay_ms, cancel_event, sleep):
            raise RetryCancelledError(
                f"Retry cancelled after attempt {state.attempt_index + 1}") from state.last_error
        state.attempt_index += 1
