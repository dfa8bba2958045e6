"""
Resilient ledger RPC client.

Runs one logical query against the endpoint pool with a per-call timeout,
exponential backoff on retryable failures and failover across endpoints.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

import structlog

from withdrawal_monitor.rpc.config import RetryPolicy
from withdrawal_monitor.rpc.endpoints import Endpoint, EndpointPool
from withdrawal_monitor.rpc.errors import (
    EndpointsExhaustedError,
    ErrorKind,
    TransportError,
    classify_error,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")

Operation = Callable[[Endpoint], Awaitable[T]]


class ResilientClient:
    """
    Executes ledger operations with retry and endpoint failover.

    Each endpoint gets ``max_attempts_per_endpoint`` attempts. Retryable
    failures back off exponentially (capped at ``max_delay``); a
    non-retryable failure abandons the current endpoint at once. Any success
    while a fallback is active moves the pool back to the primary.

    Timeouts use ``asyncio.wait_for``, which cancels the in-flight call, so a
    timed-out request does not keep running in the background as long as the
    transport honours cancellation.
    """

    def __init__(
        self,
        pool: EndpointPool,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.pool = pool
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

        logger.info(
            "rpc.client_initialized",
            endpoints=len(pool),
            max_attempts_per_endpoint=self.policy.max_attempts_per_endpoint,
            per_call_timeout=self.policy.per_call_timeout,
        )

    async def execute(self, operation: Operation[T], description: str = "rpc call") -> T:
        """
        Run ``operation`` against the active endpoint, failing over as needed.

        Args:
            operation: Coroutine function performing one query on an endpoint
            description: Name for logging and the final error message

        Returns:
            The operation's result

        Raises:
            EndpointsExhaustedError: If every endpoint failed
        """
        policy = self.policy
        total = len(self.pool)
        attempts_made = 0
        last_error: Optional[BaseException] = None
        delay = policy.base_delay

        for round_index in range(total):
            endpoint = self.pool.current()

            for attempt in range(policy.max_attempts_per_endpoint):
                attempts_made += 1
                try:
                    result = await self._call_with_timeout(operation, endpoint, description)
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    last_error = e
                    kind = classify_error(e)

                    logger.warning(
                        "rpc.attempt_failed",
                        operation=description,
                        endpoint=endpoint.url,
                        provider=f"{endpoint.position + 1}/{total}",
                        attempt=f"{attempt + 1}/{policy.max_attempts_per_endpoint}",
                        kind=kind.value,
                        error=str(e),
                    )

                    if not kind.retryable:
                        logger.info(
                            "rpc.non_retryable",
                            operation=description,
                            endpoint=endpoint.url,
                            kind=kind.value,
                        )
                        break

                    if attempt < policy.max_attempts_per_endpoint - 1:
                        await self._sleep(delay)
                        delay = policy.next_delay(delay)
                    continue

                if self.pool.reset():
                    logger.info(
                        "rpc.primary_restored",
                        operation=description,
                        recovered_on=endpoint.url,
                    )
                return result

            if round_index < total - 1:
                self.pool.rotate()
                delay = policy.base_delay

        logger.error(
            "rpc.exhausted",
            operation=description,
            endpoints=total,
            attempts=attempts_made,
            error=str(last_error) if last_error else None,
        )
        raise EndpointsExhaustedError(description, total, attempts_made, last_error)

    async def _call_with_timeout(
        self, operation: Operation[T], endpoint: Endpoint, description: str
    ) -> T:
        timeout = self.policy.per_call_timeout
        try:
            return await asyncio.wait_for(operation(endpoint), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise TransportError(
                ErrorKind.TIMEOUT,
                f"{description} timeout after {timeout:g}s",
                endpoint.url,
            ) from e
