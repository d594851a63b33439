"""Dispatch orchestration -- feed a plan to the dispatcher, stop at checkpoints."""

from __future__ import annotations

import asyncio
import logging

from planning_system.collaborators import ActionDispatcher
from planning_system.constants import DEFAULT_PAUSE_POLL_INTERVAL
from planning_system.models import PlanAttempt
from planning_system.signals import ControlSignals

logger = logging.getLogger(__name__)


class DispatchOrchestrator:
	"""Dispatches a plan action by action.

	Control signals are polled only between actions: an action that is
	already running is never interrupted, so the reaction latency to pause,
	cancel or replan is bounded by one action's duration.
	"""

	def __init__(
		self,
		dispatcher: ActionDispatcher,
		signals: ControlSignals,
		poll_interval: float = DEFAULT_PAUSE_POLL_INTERVAL,
	) -> None:
		self.dispatcher = dispatcher
		self.signals = signals
		self.poll_interval = poll_interval
		self.current_action_id = 0  # first id not yet handed to the dispatcher

	def reset(self) -> None:
		self.dispatcher.reset()
		self.current_action_id = 0

	async def dispatch(
		self,
		plan: PlanAttempt,
		mission_start_time: float,
		dispatch_start_time: float,
	) -> bool:
		"""Run every action of ``plan``. True only if all of them succeed.

		False means the plan has to be replaced: an action failed, a replan
		was requested, or the mission was cancelled (the caller tells these
		apart through the cancel flag).
		"""
		logger.info("Dispatching plan from attempt %d (%d action(s))", plan.attempt_number, len(plan.actions))
		for action in plan.actions:
			if not await self._checkpoint():
				return False

			self.current_action_id = max(self.current_action_id, action.action_id + 1)
			logger.info("Dispatching action [%d, %s]", action.action_id, action.name)
			succeeded = await self.dispatcher.dispatch_action(
				action, mission_start_time, dispatch_start_time,
			)
			if not succeeded:
				logger.warning("Action [%d, %s] failed; plan invalidated", action.action_id, action.name)
				return False

		logger.info("Plan from attempt %d completed", plan.attempt_number)
		return True

	async def hold_while_paused(self) -> None:
		"""Wait, without consuming anything, until pause is lifted or cancel arrives."""
		if self.signals.pause_requested:
			logger.info("Dispatch paused")
			while self.signals.pause_requested and not self.signals.cancel_requested:
				await asyncio.sleep(self.poll_interval)
			logger.info("Dispatch resumed")

	async def _checkpoint(self) -> bool:
		await self.hold_while_paused()
		if self.signals.cancel_requested:
			logger.info("Dispatch cancelled")
			return False
		if self.signals.consume_replan():
			logger.info("Replan requested; stopping dispatch")
			return False
		return True
