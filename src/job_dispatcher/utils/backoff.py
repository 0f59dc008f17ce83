"""
Module: backoff.py
Description: Fibonacci backoff used for every wait decision in the dispatcher.

The same function drives the pause after a failed receive, the pause
between deletion attempts, and the visibility timeout set when a job
is handed back to the queue for another try.
"""

from typing import Optional


def fibonacci_backoff_delay(attempt: int, max_delay: Optional[int] = None) -> int:
    """
    Return the wait in seconds for the given attempt count.

    The sequence is 0 for attempt < 1, then 1, 1, 2, 3, 5, 8, ...
    computed iteratively.

    Args:
        attempt: Number of failures seen so far
        max_delay: Optional cap; 0 disables waiting entirely

    Returns:
        Delay in seconds, never above max_delay when one is given

    Example:
        >>> [fibonacci_backoff_delay(n) for n in range(7)]
        [0, 1, 1, 2, 3, 5, 8]
        >>> fibonacci_backoff_delay(10, max_delay=6)
        6
    """
    if max_delay == 0 or attempt < 1:
        return 0
    if attempt <= 2:
        return 1

    previous, current = 1, 1
    for _ in range(3, attempt + 1):
        previous, current = current, previous + current
        if max_delay is not None and current > max_delay:
            return max_delay
    return current
