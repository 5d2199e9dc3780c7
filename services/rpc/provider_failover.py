"""Retry RPC calls across a fixed, ordered list of upstream endpoints."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, List, Sequence

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt, wait_incrementing

from services.rpc.call_throttler import CallThrottler
from services.rpc.errors import ChainError

logger = logging.getLogger(__name__)

RebindListener = Callable[[str], None]


def _is_rate_limit(exc: BaseException) -> bool:
	return isinstance(exc, ChainError) and exc.is_rate_limit


class ProviderFailoverExecutor:
	"""Run calls through the throttler and rotate endpoints on rate limits.

	Rotation is process-wide: every listener registered with
	`add_rebind_listener` is rebound to the new endpoint, so all later calls
	from any caller use it.
	"""

	def __init__(
		self,
		endpoints: Sequence[str],
		throttler: CallThrottler,
		*,
		backoff_seconds: float = 1.0,
	) -> None:
		if not endpoints:
			raise ValueError("At least one RPC endpoint is required.")
		self.endpoints: List[str] = list(endpoints)
		self.throttler = throttler
		self.backoff_seconds = backoff_seconds
		self.index = 0
		self._listeners: List[RebindListener] = []

	@property
	def current_endpoint(self) -> str:
		return self.endpoints[self.index]

	def add_rebind_listener(self, listener: RebindListener) -> None:
		"""Register a callback that rebuilds handles bound to the endpoint."""
		self._listeners.append(listener)

	def rotate(self) -> str:
		"""Switch to the next endpoint (circularly) and rebind all handles."""
		self.index = (self.index + 1) % len(self.endpoints)
		endpoint = self.current_endpoint
		logger.warning("Switched RPC endpoint to #%d %s", self.index, endpoint)
		for listener in self._listeners:
			listener(endpoint)
		return endpoint

	async def execute(self, task: Callable[[], Awaitable[Any]], max_attempts: int = 2) -> Any:
		"""Run `task`, failing over on rate-limit errors.

		Args:
			task: Zero-argument coroutine factory; called once per attempt.
			max_attempts: Total attempts including the first one.

		Raises:
			The last error unchanged once attempts are exhausted, or any
			non-rate-limit error immediately.
		"""
		if max_attempts < 1:
			raise ValueError("max_attempts must be at least 1")

		def before_retry(state: RetryCallState) -> None:
			logger.warning("RPC rate limit hit, attempt %d/%d", state.attempt_number, max_attempts)
			self.rotate()

		retrying = AsyncRetrying(
			stop=stop_after_attempt(max_attempts),
			retry=retry_if_exception(_is_rate_limit),
			wait=wait_incrementing(start=self.backoff_seconds, increment=self.backoff_seconds),
			before_sleep=before_retry,
			reraise=True,
		)

		async def attempt() -> Any:
			return await self.throttler.submit(task)

		return await retrying(attempt)
