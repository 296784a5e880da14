"""
Retry timing utilities.

The transport's reconnection loop owns the retry itself (it has to stop on
disconnect and report state between attempts), so this module only provides
the delay schedule.
"""


class RetryUtils:
    """Shared retry utility functions."""

    @staticmethod
    def calculate_backoff_delay(
        attempt: int,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        backoff_factor: float = 2.0,
    ) -> float:
        """
        Calculate delay for exponential backoff.

        Args:
            attempt (int): Current attempt number (0-based)
            base_delay (float): Initial delay
            max_delay (float): Maximum delay
            backoff_factor (float): Factor to multiply delay by

        Returns:
            float: Delay in seconds
        """
        delay = base_delay * (backoff_factor ** attempt)
        return min(delay, max_delay)
