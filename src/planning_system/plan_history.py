"""Append-only record of planning attempts within a mission."""

from __future__ import annotations

import threading

from planning_system.models import PlanAttempt


class PlanHistory:
	"""Ordered, append-only store of PlanAttempts.

	Attempt numbers start at ``first_attempt_number`` and must arrive one by
	one with no gaps; entries are frozen dataclasses, so nothing is changed
	after append. A controller passes the previous mission's next number so
	attempt-numbered archives are never reused within a process.
	"""

	def __init__(self, first_attempt_number: int = 1) -> None:
		if first_attempt_number < 1:
			raise ValueError(f"first_attempt_number must be >= 1, got {first_attempt_number}")
		self._lock = threading.Lock()
		self._first = first_attempt_number
		self._attempts: list[PlanAttempt] = []

	@property
	def first_attempt_number(self) -> int:
		return self._first

	def next_attempt_number(self) -> int:
		with self._lock:
			return self._first + len(self._attempts)

	def append(self, attempt: PlanAttempt) -> None:
		"""Record an attempt. Raises ValueError on an out-of-order number."""
		with self._lock:
			expected = self._first + len(self._attempts)
			if attempt.attempt_number != expected:
				raise ValueError(
					f"Attempt number {attempt.attempt_number} out of order (expected {expected})"
				)
			self._attempts.append(attempt)

	@property
	def attempts(self) -> tuple[PlanAttempt, ...]:
		"""Snapshot of all attempts in insertion order."""
		with self._lock:
			return tuple(self._attempts)

	def __len__(self) -> int:
		with self._lock:
			return len(self._attempts)
