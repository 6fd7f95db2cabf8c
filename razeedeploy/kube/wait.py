import asyncio
import enum
import logging
from typing import Awaitable, Callable

logger = logging.getLogger("razeedeploy.kube")

Check = Callable[[], Awaitable[bool]]
Sleep = Callable[[float], Awaitable[None]]


class PollResult(enum.Enum):
    CONFIRMED = "confirmed"
    EXHAUSTED = "exhausted"


async def poll(
    check: Check,
    attempts: int,
    initial_delay: float,
    sleep: Sleep = asyncio.sleep,
    what: str = "condition",
) -> PollResult:
    """Run ``check`` at most ``attempts`` times, doubling the delay between runs."""
    delay = initial_delay
    while True:
        if await check():
            return PollResult.CONFIRMED
        attempts -= 1
        if attempts <= 0:
            return PollResult.EXHAUSTED
        logger.warning(
            "%s not confirmed.. re-checking in: %s sec, attempts remaining: %s",
            what, round(delay, 3), attempts,
        )
        await sleep(delay)
        delay *= 2


def removal_backoff(timeout_minutes: float, attempts: int) -> float:
    """Initial delay (seconds) so the doubling waits add up to about the timeout."""
    attempts = max(int(attempts), 1)
    return timeout_minutes * 60 / 2 ** (attempts - 1)
