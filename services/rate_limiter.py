"""Sliding-window rate limiting keyed by client address."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, List


class CounterStore(ABC):
	"""Storage interface for per-key request timestamps."""

	@abstractmethod
	def recent(self, key: str, since: float) -> List[float]:
		"""Return the timestamps for `key` newer than `since`, dropping older ones."""
		raise NotImplementedError

	@abstractmethod
	def add(self, key: str, timestamp: float) -> None:
		raise NotImplementedError

	@abstractmethod
	def prune(self, since: float) -> None:
		"""Forget keys whose timestamps are all older than `since`."""
		raise NotImplementedError


class InMemoryCounterStore(CounterStore):
	"""Process-local store; state is lost on restart."""

	def __init__(self) -> None:
		self._hits: Dict[str, List[float]] = {}

	def recent(self, key: str, since: float) -> List[float]:
		window = [ts for ts in self._hits.get(key, ()) if ts > since]
		if window:
			self._hits[key] = window
		else:
			self._hits.pop(key, None)
		return list(window)

	def add(self, key: str, timestamp: float) -> None:
		self._hits.setdefault(key, []).append(timestamp)

	def prune(self, since: float) -> None:
		stale = [key for key, hits in self._hits.items() if not hits or hits[-1] <= since]
		for key in stale:
			del self._hits[key]

	def __len__(self) -> int:
		return len(self._hits)


class SlidingWindowRateLimiter:
	"""Allow at most `max_requests` per key within the trailing `window_seconds`.

	Rejected requests are not counted, so a client regains access as soon as
	its oldest accepted request leaves the window.
	"""

	def __init__(
		self,
		store: CounterStore | None = None,
		*,
		max_requests: int = 100,
		window_seconds: float = 15 * 60,
		clock: Callable[[], float] = time.time,
		prune_every: int = 1000,
	) -> None:
		self.store = store if store is not None else InMemoryCounterStore()
		self.max_requests = max_requests
		self.window_seconds = window_seconds
		self._clock = clock
		self._prune_every = prune_every
		self._calls = 0

	def hit(self, key: str) -> bool:
		"""Record a request for `key`; return False when it exceeds the limit."""
		now = self._clock()
		window_start = now - self.window_seconds
		self._calls += 1
		if self._prune_every and self._calls % self._prune_every == 0:
			self.store.prune(window_start)

		if len(self.store.recent(key, window_start)) >= self.max_requests:
			return False
		self.store.add(key, now)
		return True
