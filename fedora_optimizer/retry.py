import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 5.0
    max_delay: float = 60.0

    def delay_for(self, attempt: int) -> float:
        """Delay after the given (1-based) failed attempt."""
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)


def retry_operation(
    operation: Callable[[], Any],
    policy: RetryPolicy = RetryPolicy(),
    sleep: Callable[[float], None] = time.sleep,
    operation_name: str = "Operation",
    logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Retry an operation with exponential backoff.

    Args:
        operation: Callable returning a truthy value on success
        policy: Attempt count and delay bounds
        sleep: Function used to wait between attempts
        operation_name: Name of the operation for logging
        logger: Logger for progress messages

    Returns:
        True if an attempt succeeded, False once every attempt has failed.
    """
    logger = logger or logging.getLogger("fedora_optimizer")
    for attempt in range(1, policy.max_attempts + 1):
        if operation():
            if attempt > 1:
                logger.info(f"{operation_name} succeeded on attempt {attempt}")
            return True
        if attempt < policy.max_attempts:
            delay = policy.delay_for(attempt)
            logger.warning(
                f"{operation_name} failed (attempt {attempt}/{policy.max_attempts}). "
                f"Retrying in {delay:.1f}s..."
            )
            sleep(delay)
    logger.error(f"{operation_name} failed after {policy.max_attempts} attempts")
    return False
