"""Bound the number of outbound RPC calls in flight."""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Set, Tuple

Task = Callable[[], Awaitable[Any]]


class CallThrottler:
	"""Run submitted coroutines with at most `max_concurrent` executing.

	Tasks start in submission order; they may finish in any order. A submitted
	task always runs eventually, there is no priority and no cancellation of
	queued work.
	"""

	def __init__(self, max_concurrent: int = 3) -> None:
		if max_concurrent < 1:
			raise ValueError("max_concurrent must be at least 1")
		self.max_concurrent = max_concurrent
		self._queue: Deque[Tuple[Task, asyncio.Future]] = deque()
		self._running = 0
		self._workers: Set[asyncio.Task] = set()

	@property
	def running(self) -> int:
		return self._running

	@property
	def pending(self) -> int:
		return len(self._queue)

	def submit(self, task: Task) -> asyncio.Future:
		"""Queue `task` and return a future resolving to its result or error."""
		future = asyncio.get_running_loop().create_future()
		self._queue.append((task, future))
		self._dispatch()
		return future

	def _dispatch(self) -> None:
		while self._running < self.max_concurrent and self._queue:
			task, future = self._queue.popleft()
			self._running += 1
			worker = asyncio.ensure_future(self._run(task, future))
			self._workers.add(worker)
			worker.add_done_callback(self._workers.discard)

	async def _run(self, task: Task, future: asyncio.Future) -> None:
		try:
			result = await task()
		except asyncio.CancelledError:
			future.cancel()
			raise
		except Exception as exc:
			if not future.done():
				future.set_exception(exc)
		else:
			if not future.done():
				future.set_result(result)
		finally:
			self._running -= 1
			self._dispatch()
