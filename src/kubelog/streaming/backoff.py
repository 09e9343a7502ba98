"""
Reconnect backoff policy.

Deterministic exponential delays with a hard retry ceiling. No jitter: each
client holds at most one connection to one endpoint.
"""

from dataclasses import dataclass

from ..utils.config import StreamConfig


@dataclass(frozen=True)
class BackoffPolicy:
    """Exponential backoff: base_delay * 2 ** (attempt - 1), at most max_retries times."""
    max_retries: int = 3
    base_delay: float = 1.0  # seconds

    @classmethod
    def from_config(cls, config: StreamConfig) -> "BackoffPolicy":
        return cls(max_retries=config.max_retries, base_delay=config.base_retry_delay)

    def should_retry(self, retry_count: int) -> bool:
        """Whether another automatic reconnect is allowed after retry_count retries."""
        return retry_count < self.max_retries

    def delay(self, attempt: int) -> float:
        """
        Delay in seconds before reconnect number ``attempt`` (1-based).

        Raises:
            ValueError: If attempt is less than 1
        """
        if attempt < 1:
            raise ValueError(f"attempt must be >= 1, got {attempt}")
        return self.base_delay * (2 ** (attempt - 1))

    def delay_ms(self, attempt: int) -> int:
        return int(round(self.delay(attempt) * 1000))


__all__ = ['BackoffPolicy']
