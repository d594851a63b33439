"""Tests for the mission state machine."""

from __future__ import annotations

import pytest

from planning_system.models import MissionState
from planning_system.state import (
	VALID_TRANSITIONS,
	InvalidTransitionError,
	MissionBusyError,
	MissionStateMachine,
)


@pytest.fixture()
def machine() -> MissionStateMachine:
	return MissionStateMachine()


@pytest.fixture()
def published(machine: MissionStateMachine) -> list[str]:
	seen: list[str] = []
	machine.subscribe(lambda state: seen.append(state.value))
	return seen


class TestTransitionTable:
	def test_every_state_has_entry(self) -> None:
		assert set(VALID_TRANSITIONS) == set(MissionState)

	def test_paused_only_returns_to_dispatching(self) -> None:
		assert VALID_TRANSITIONS[MissionState.PAUSED] == frozenset({MissionState.DISPATCHING})

	def test_paused_only_reachable_from_dispatching(self) -> None:
		sources = {s for s, targets in VALID_TRANSITIONS.items() if MissionState.PAUSED in targets}
		assert sources == {MissionState.DISPATCHING}


class TestMissionStateMachine:
	def test_starts_ready(self, machine: MissionStateMachine) -> None:
		assert machine.state is MissionState.READY

	def test_begin_mission_publishes_planning(self, machine: MissionStateMachine, published: list[str]) -> None:
		machine.begin_mission()
		assert machine.state is MissionState.PLANNING
		assert published == ["Planning"]

	def test_begin_twice_is_busy(self, machine: MissionStateMachine, published: list[str]) -> None:
		machine.begin_mission()
		with pytest.raises(MissionBusyError):
			machine.begin_mission()
		assert machine.state is MissionState.PLANNING
		assert published == ["Planning"]

	def test_full_cycle(self, machine: MissionStateMachine, published: list[str]) -> None:
		machine.begin_mission()
		machine.transition(MissionState.DISPATCHING)
		machine.transition(MissionState.PAUSED)
		machine.transition(MissionState.DISPATCHING)
		machine.transition(MissionState.READY)
		assert published == ["Planning", "Dispatching", "Paused", "Dispatching", "Ready"]

	def test_invalid_transition_leaves_state(self, machine: MissionStateMachine, published: list[str]) -> None:
		machine.begin_mission()
		with pytest.raises(InvalidTransitionError):
			machine.transition(MissionState.PAUSED)
		assert machine.state is MissionState.PLANNING
		assert published == ["Planning"]

	def test_planning_republish(self, machine: MissionStateMachine, published: list[str]) -> None:
		machine.begin_mission()
		machine.transition(MissionState.PLANNING)
		assert published == ["Planning", "Planning"]

	def test_transition_if(self, machine: MissionStateMachine) -> None:
		machine.begin_mission()
		assert machine.transition_if(MissionState.DISPATCHING, MissionState.READY) is False
		assert machine.state is MissionState.PLANNING
		assert machine.transition_if(MissionState.PLANNING, MissionState.DISPATCHING) is True
		assert machine.state is MissionState.DISPATCHING

	def test_failing_listener_does_not_block_transition(self, machine: MissionStateMachine) -> None:
		seen: list[MissionState] = []

		def broken(state: MissionState) -> None:
			raise RuntimeError("listener down")

		machine.subscribe(broken)
		machine.subscribe(seen.append)
		machine.begin_mission()
		assert machine.state is MissionState.PLANNING
		assert seen == [MissionState.PLANNING]

	def test_can_transition(self, machine: MissionStateMachine) -> None:
		assert machine.can_transition(MissionState.PLANNING) is True
		assert machine.can_transition(MissionState.DISPATCHING) is False
