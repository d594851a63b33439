"""Tests for dispatch orchestration checkpoints."""

from __future__ import annotations

import asyncio
from typing import Callable

import pytest

from planning_system.dispatch import DispatchOrchestrator
from planning_system.models import DispatchAction, PlanAttempt
from planning_system.signals import ControlSignals


class ScriptedDispatcher:
	"""Dispatches instantly; ``on_action`` hooks run before each result is returned."""

	def __init__(self, results: list[bool] | None = None, delay: float = 0.0) -> None:
		self.results = list(results or [])
		self.delay = delay
		self.dispatched: list[int] = []
		self.resets = 0
		self.on_action: Callable[[DispatchAction], None] | None = None

	def reset(self) -> None:
		self.resets += 1

	async def dispatch_action(self, action: DispatchAction, mission_start_time: float, dispatch_start_time: float) -> bool:
		if self.delay:
			await asyncio.sleep(self.delay)
		self.dispatched.append(action.action_id)
		if self.on_action is not None:
			self.on_action(action)
		return self.results.pop(0) if self.results else True


def _plan(count: int, first_id: int = 0) -> PlanAttempt:
	return PlanAttempt(
		attempt_number=1,
		solved=True,
		actions=tuple(DispatchAction(first_id + i, f"step{i}") for i in range(count)),
	)


@pytest.fixture()
def signals() -> ControlSignals:
	return ControlSignals()


class TestDispatchOrchestrator:
	@pytest.mark.asyncio
	async def test_all_actions_succeed(self, signals: ControlSignals) -> None:
		dispatcher = ScriptedDispatcher()
		orch = DispatchOrchestrator(dispatcher, signals, poll_interval=0.01)
		assert await orch.dispatch(_plan(3), 0.0, 0.0) is True
		assert dispatcher.dispatched == [0, 1, 2]
		assert orch.current_action_id == 3

	@pytest.mark.asyncio
	async def test_empty_plan_succeeds(self, signals: ControlSignals) -> None:
		orch = DispatchOrchestrator(ScriptedDispatcher(), signals)
		assert await orch.dispatch(_plan(0), 0.0, 0.0) is True

	@pytest.mark.asyncio
	async def test_failed_action_stops(self, signals: ControlSignals) -> None:
		dispatcher = ScriptedDispatcher(results=[True, False, True])
		orch = DispatchOrchestrator(dispatcher, signals)
		assert await orch.dispatch(_plan(3), 0.0, 0.0) is False
		assert dispatcher.dispatched == [0, 1]
		assert orch.current_action_id == 2

	@pytest.mark.asyncio
	async def test_cancel_checked_between_actions(self, signals: ControlSignals) -> None:
		dispatcher = ScriptedDispatcher()
		dispatcher.on_action = lambda action: signals.request_cancel()
		orch = DispatchOrchestrator(dispatcher, signals)
		assert await orch.dispatch(_plan(3), 0.0, 0.0) is False
		# the running action finishes; nothing after it starts
		assert dispatcher.dispatched == [0]

	@pytest.mark.asyncio
	async def test_replan_consumed(self, signals: ControlSignals) -> None:
		dispatcher = ScriptedDispatcher()
		dispatcher.on_action = lambda action: signals.request_replan() if action.action_id == 1 else None
		orch = DispatchOrchestrator(dispatcher, signals)
		assert await orch.dispatch(_plan(4), 0.0, 0.0) is False
		assert dispatcher.dispatched == [0, 1]
		assert signals.replan_requested is False

	@pytest.mark.asyncio
	async def test_pause_holds_position(self, signals: ControlSignals) -> None:
		dispatcher = ScriptedDispatcher()
		dispatcher.on_action = lambda action: signals.set_paused(True) if action.action_id == 0 else None
		orch = DispatchOrchestrator(dispatcher, signals, poll_interval=0.01)

		task = asyncio.create_task(orch.dispatch(_plan(3), 0.0, 0.0))
		await asyncio.sleep(0.1)
		assert dispatcher.dispatched == [0]
		assert not task.done()

		signals.set_paused(False)
		assert await asyncio.wait_for(task, 1.0) is True
		assert dispatcher.dispatched == [0, 1, 2]

	@pytest.mark.asyncio
	async def test_cancel_releases_pause(self, signals: ControlSignals) -> None:
		dispatcher = ScriptedDispatcher()
		signals.set_paused(True)
		orch = DispatchOrchestrator(dispatcher, signals, poll_interval=0.01)

		task = asyncio.create_task(orch.dispatch(_plan(2), 0.0, 0.0))
		await asyncio.sleep(0.05)
		signals.request_cancel()
		assert await asyncio.wait_for(task, 1.0) is False
		assert dispatcher.dispatched == []

	@pytest.mark.asyncio
	async def test_reset(self, signals: ControlSignals) -> None:
		dispatcher = ScriptedDispatcher()
		orch = DispatchOrchestrator(dispatcher, signals)
		await orch.dispatch(_plan(2, first_id=4), 0.0, 0.0)
		assert orch.current_action_id == 6
		orch.reset()
		assert orch.current_action_id == 0
		assert dispatcher.resets == 1

	@pytest.mark.asyncio
	async def test_times_forwarded(self, signals: ControlSignals) -> None:
		seen: list[tuple[float, float]] = []

		class TimingDispatcher(ScriptedDispatcher):
			async def dispatch_action(self, action, mission_start_time, dispatch_start_time):  # type: ignore[override]
				seen.append((mission_start_time, dispatch_start_time))
				return True

		orch = DispatchOrchestrator(TimingDispatcher(), signals)
		await orch.dispatch(_plan(2), 100.0, 105.0)
		assert seen == [(100.0, 105.0), (100.0, 105.0)]
