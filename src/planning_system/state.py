"""Mission state machine -- guarded transitions and state publication."""

from __future__ import annotations

import logging
import threading
from typing import Callable

from planning_system.models import MissionState

logger = logging.getLogger(__name__)

StateListener = Callable[[MissionState], None]


class MissionBusyError(RuntimeError):
	"""A mission was requested while another one is active."""


class InvalidTransitionError(RuntimeError):
	"""A transition not present in the transition table was attempted."""


VALID_TRANSITIONS: dict[MissionState, frozenset[MissionState]] = {
	MissionState.READY: frozenset({MissionState.PLANNING}),
	MissionState.PLANNING: frozenset({
		MissionState.PLANNING,  # republished at the top of every attempt
		MissionState.DISPATCHING,
		MissionState.READY,
	}),
	MissionState.DISPATCHING: frozenset({
		MissionState.PLANNING,  # replan after a failed dispatch
		MissionState.PAUSED,
		MissionState.READY,
	}),
	MissionState.PAUSED: frozenset({MissionState.DISPATCHING}),
}


class MissionStateMachine:
	"""Owns the current MissionState and publishes every transition.

	All transitions run under ``lock`` (reentrant), so command handlers can
	hold it across a check-then-act sequence. Listeners are called with the
	lock held, which keeps publication order identical to transition order;
	they must not block.
	"""

	def __init__(self) -> None:
		self.lock = threading.RLock()
		self._state = MissionState.READY
		self._listeners: list[StateListener] = []

	@property
	def state(self) -> MissionState:
		with self.lock:
			return self._state

	def subscribe(self, listener: StateListener) -> None:
		with self.lock:
			self._listeners.append(listener)

	def can_transition(self, to_state: MissionState) -> bool:
		with self.lock:
			return to_state in VALID_TRANSITIONS[self._state]

	def begin_mission(self) -> None:
		"""Atomically move READY -> PLANNING, or raise MissionBusyError."""
		with self.lock:
			if self._state is not MissionState.READY:
				raise MissionBusyError(f"Planning system is not ready (state: {self._state.value})")
			self._set(MissionState.PLANNING)

	def transition(self, to_state: MissionState) -> None:
		with self.lock:
			if to_state not in VALID_TRANSITIONS[self._state]:
				raise InvalidTransitionError(
					f"Invalid transition {self._state.value} -> {to_state.value}"
				)
			self._set(to_state)

	def transition_if(self, from_state: MissionState, to_state: MissionState) -> bool:
		"""Transition only if currently in ``from_state``. Returns whether it did."""
		with self.lock:
			if self._state is not from_state:
				return False
			self.transition(to_state)
			return True

	def _set(self, to_state: MissionState) -> None:
		previous = self._state
		self._state = to_state
		logger.debug("State %s -> %s", previous.value, to_state.value)
		for listener in list(self._listeners):
			try:
				listener(to_state)
			except Exception as exc:
				logger.warning("State listener failed on %s: %s", to_state.value, exc)
