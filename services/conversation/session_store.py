"""In-memory store for per-chat workflow sessions."""

from __future__ import annotations

import asyncio
import time
from typing import Callable, Dict, Optional

from models.session_models import Session

DEFAULT_TTL_SECONDS = 60 * 60


class SessionStore:
	"""Hold at most one workflow session per chat.

	Every chat also owns an `asyncio.Lock`; handlers hold it while they read
	and mutate that chat's session so interleaved deliveries (a double-tapped
	confirm, for instance) are processed one after the other.
	"""

	def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.time) -> None:
		self.ttl_seconds = ttl_seconds
		self._clock = clock
		self._sessions: Dict[int, Session] = {}
		self._locks: Dict[int, asyncio.Lock] = {}
		self._lock_used: Dict[int, float] = {}

	def __len__(self) -> int:
		return len(self._sessions)

	def start(self, chat_id: int, session: Session) -> Session:
		"""Install a new session, replacing whatever the chat had before."""
		session.touched_at = self._clock()
		self._sessions[chat_id] = session
		return session

	def get(self, chat_id: int) -> Session:
		"""Return a session or raise KeyError if missing."""
		session = self._sessions.get(chat_id)
		if session is None:
			raise KeyError(f"No session for chat {chat_id}")
		return session

	def find(self, chat_id: int) -> Optional[Session]:
		return self._sessions.get(chat_id)

	def touch(self, chat_id: int) -> Session:
		"""Refresh the inactivity timer of a session."""
		session = self.get(chat_id)
		session.touched_at = self._clock()
		return session

	def delete(self, chat_id: int) -> bool:
		"""Remove a chat's session. Returns True if one existed."""
		return self._sessions.pop(chat_id, None) is not None

	def lock(self, chat_id: int) -> asyncio.Lock:
		"""Return the lock serializing event handling for `chat_id`."""
		lock = self._locks.get(chat_id)
		if lock is None:
			lock = self._locks[chat_id] = asyncio.Lock()
		self._lock_used[chat_id] = self._clock()
		return lock

	def sweep(self) -> int:
		"""Delete sessions untouched for longer than the TTL and return the count."""
		cutoff = self._clock() - self.ttl_seconds
		expired = [chat_id for chat_id, session in self._sessions.items() if session.touched_at < cutoff]
		for chat_id in expired:
			del self._sessions[chat_id]
		idle = [
			chat_id
			for chat_id, lock in self._locks.items()
			if chat_id not in self._sessions
			and self._lock_used.get(chat_id, 0) < cutoff
			and not _in_use(lock)
		]
		for chat_id in idle:
			del self._locks[chat_id]
			del self._lock_used[chat_id]
		return len(expired)


def _in_use(lock: asyncio.Lock) -> bool:
	# A released lock keeps its woken waiter queued until that waiter resumes.
	return lock.locked() or bool(getattr(lock, "_waiters", None))
