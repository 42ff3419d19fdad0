"""Wait for newly installed resource types to become resolvable."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from tenacity import AsyncRetrying, RetryCallState, RetryError, retry_if_result
from tenacity import stop_after_attempt, wait_exponential

from .exceptions import NotFoundError
from .resolver import Resolved, ResourceTypeHandle, ResourceTypeResolver, Unresolved

logger = logging.getLogger(__name__)


async def wait_for_type(
    resolver: ResourceTypeResolver,
    api_version: str,
    kind: str,
    max_attempts: int = 6,
    initial_backoff_ms: int = 50,
    sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
) -> ResourceTypeHandle:
    """
    Poll the resolver until a type is registered.

    Backoff starts at `initial_backoff_ms` and doubles after every miss, without
    jitter. `max_attempts` resolutions are made in total, so the defaults sleep
    50+100+200+400+800 ms before giving up.

    Args:
        resolver: Resource type resolver
        api_version: apiVersion of the type
        kind: Kind of the type
        max_attempts: Total resolution attempts
        initial_backoff_ms: First sleep in milliseconds
        sleep: Awaitable sleep function (defaults to asyncio.sleep)

    Returns:
        Handle for the resolved type

    Raises:
        NotFoundError: If the type is still unresolved after the last attempt
    """

    def log_miss(retry_state: RetryCallState) -> None:
        remaining = max_attempts - retry_state.attempt_number
        logger.warning(f"Did not find {api_version} {kind}.. attempts remaining: {remaining}")

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=initial_backoff_ms / 1000),
        retry=retry_if_result(lambda result: isinstance(result, Unresolved)),
        before_sleep=log_miss,
        sleep=sleep or asyncio.sleep,
    )

    try:
        async for attempt in retrying:
            with attempt:
                resolution = await asyncio.to_thread(resolver.resolve, api_version, kind, "get")
            if not attempt.retry_state.outcome.failed:
                attempt.retry_state.set_result(resolution)
    except RetryError as e:
        logger.error(f"Failed to find {api_version} {kind}")
        raise NotFoundError(api_version, kind, max_attempts) from e

    if isinstance(resolution, Resolved):
        logger.info(f"Found {api_version} {kind}")
        return resolution.handle

    # Only reachable if the retry loop is reconfigured to stop on a miss.
    raise NotFoundError(api_version, kind, max_attempts)
