"""Control signals shared between command handlers and the mission loop."""

from __future__ import annotations

import threading


class ControlSignals:
	"""Cancel / pause / replan flags plus an optional resume action id.

	Thread-safe: every read and write goes through one lock, so handlers can
	set flags from any thread while the mission loop polls them at its
	checkpoints.
	"""

	def __init__(self) -> None:
		self._lock = threading.Lock()
		self._cancel = False
		self._pause = False
		self._replan = False
		self._target_action_id: int | None = None

	def reset(self, target_action_id: int | None = None) -> None:
		"""Clear every flag at mission start, optionally keeping a resume hint."""
		with self._lock:
			self._cancel = False
			self._pause = False
			self._replan = False
			self._target_action_id = target_action_id

	@property
	def cancel_requested(self) -> bool:
		with self._lock:
			return self._cancel

	@property
	def pause_requested(self) -> bool:
		with self._lock:
			return self._pause

	@property
	def replan_requested(self) -> bool:
		with self._lock:
			return self._replan

	@property
	def target_action_id(self) -> int | None:
		with self._lock:
			return self._target_action_id

	def request_cancel(self) -> None:
		with self._lock:
			self._cancel = True

	def set_paused(self, paused: bool) -> None:
		with self._lock:
			self._pause = paused

	def request_replan(self) -> None:
		with self._lock:
			self._replan = True

	def consume_replan(self) -> bool:
		"""Return and clear the replan flag."""
		with self._lock:
			requested = self._replan
			self._replan = False
			return requested

	def set_target_action(self, action_id: int | None) -> None:
		with self._lock:
			self._target_action_id = action_id

	def take_target_action(self) -> int | None:
		"""Return and clear the stashed resume action id."""
		with self._lock:
			action_id = self._target_action_id
			self._target_action_id = None
			return action_id
