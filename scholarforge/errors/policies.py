"""RetryPolicy configurations shared by the external clients.

Both the model gateway and the literature client retry the same way:
exponential backoff with jitter, a server-supplied delay when one is
given, and a bounded number of attempts. The policy object describes that
behavior and ``retry_async`` executes an operation under it.
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Awaitable, Callable, Type, TypeVar

import httpx

from scholarforge.errors.exceptions import TransientAPIError

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# RetryPolicy Configuration
# =============================================================================


@dataclass
class RetryPolicy:
    """Configuration for retry behavior on errors.
    
    Attributes:
        max_attempts: Maximum number of attempts (including the initial one)
        initial_interval: Initial delay between retries in seconds
        backoff_factor: Multiplier for exponential backoff
        max_interval: Maximum delay between retries in seconds
        jitter: Whether to add random jitter to delays
        jitter_max: Upper bound of the additive jitter in seconds
        retry_on: Tuple of exception types to retry on
        should_retry: Optional custom function to determine if should retry
    """
    
    max_attempts: int = 3
    initial_interval: float = 0.5
    backoff_factor: float = 2.0
    max_interval: float = 30.0
    jitter: bool = True
    jitter_max: float = 0.25
    retry_on: tuple[Type[Exception], ...] = field(
        default_factory=lambda: (TransientAPIError,)
    )
    should_retry: Callable[[Exception, int], bool] | None = None
    
    def get_delay(self, attempt: int, error: Exception | None = None) -> float:
        """Calculate delay before next retry.
        
        A ``retry_after`` carried by the error wins over the computed
        backoff; both are capped at ``max_interval``.
        
        Args:
            attempt: The current attempt number (0-indexed)
            error: The exception that triggered the retry
            
        Returns:
            Delay in seconds before next retry
        """
        retry_after = getattr(error, "retry_after", None)
        if retry_after is not None:
            return min(max(0.0, float(retry_after)), self.max_interval)
        
        delay = self.initial_interval * (self.backoff_factor ** attempt)
        if self.jitter:
            delay += random.random() * self.jitter_max
        
        return min(delay, self.max_interval)
    
    def should_attempt_retry(self, error: Exception, attempt: int) -> bool:
        """Determine if a retry should be attempted.
        
        Args:
            error: The exception that occurred
            attempt: The current attempt number (0-indexed)
            
        Returns:
            True if retry should be attempted
        """
        if attempt >= self.max_attempts - 1:
            return False
        
        if not isinstance(error, self.retry_on):
            return False
        
        if self.should_retry is not None:
            return self.should_retry(error, attempt)
        
        return True


async def retry_async(
    operation: Callable[[int], Awaitable[T]],
    policy: RetryPolicy,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    description: str = "operation",
) -> T:
    """Run ``operation(attempt)`` until it succeeds or the policy gives up.
    
    The last error is re-raised unchanged once the policy declines to retry,
    so callers decide how a terminal failure is reported.
    
    Args:
        operation: Async callable receiving the 0-indexed attempt number
        policy: Retry policy to apply
        sleep: Awaitable sleep used between attempts
        description: Label used in log messages
        
    Returns:
        The operation's result
    """
    attempt = 0
    while True:
        try:
            return await operation(attempt)
        except Exception as error:
            if not policy.should_attempt_retry(error, attempt):
                raise
            delay = policy.get_delay(attempt, error)
            logger.info(
                f"{description} failed on attempt {attempt + 1}/{policy.max_attempts} "
                f"({error.__class__.__name__}); retrying in {delay:.2f}s"
            )
            await sleep(delay)
            attempt += 1


def parse_retry_after(value: str | None) -> float | None:
    """Parse a ``Retry-After`` header given in seconds or as an HTTP date.
    
    Examples:
        >>> parse_retry_after("3")
        3.0
        >>> parse_retry_after(None) is None
        True
    """
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


# =============================================================================
# Pre-configured Policies
# =============================================================================


def create_llm_retry_policy(max_retries: int = 4) -> RetryPolicy:
    """Create the retry policy for chat-completion calls.
    
    Retries 429/5xx answers and transport failures (including per-attempt
    timeouts).
    
    Args:
        max_retries: Retries after the initial attempt
        
    Returns:
        Configured RetryPolicy
    """
    return RetryPolicy(
        max_attempts=max_retries + 1,
        initial_interval=0.5,
        backoff_factor=2.0,
        max_interval=30.0,
        jitter=True,
        jitter_max=0.25,
        retry_on=(
            TransientAPIError,
            httpx.TransportError,
        ),
    )


def create_literature_retry_policy(max_retries: int = 5) -> RetryPolicy:
    """Create the retry policy for Semantic Scholar calls.
    
    Only upstream 429/5xx answers are retried; the server's
    ``Retry-After`` is honored when present.
    
    Args:
        max_retries: Retries after the initial attempt
        
    Returns:
        Configured RetryPolicy
    """
    return RetryPolicy(
        max_attempts=max_retries + 1,
        initial_interval=0.5,
        backoff_factor=2.0,
        max_interval=30.0,
        jitter=True,
        jitter_max=0.25,
        retry_on=(TransientAPIError,),
    )
