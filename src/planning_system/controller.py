"""Mission controller -- outer loop and command handling for the planning system."""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path

from planning_system.collaborators import (
	ActionDispatcher,
	KnowledgeBase,
	PlanArchive,
	PlanParser,
	ProblemGenerator,
)
from planning_system.config import PlanningConfig
from planning_system.constants import (
	COMMAND_CANCEL,
	COMMAND_PAUSE,
	COMMAND_PLAN,
	COMMAND_RESUME,
	EVENT_ATTEMPT_RECORDED,
	EVENT_FILTER_PUBLISHED,
	EVENT_MISSION_FINISHED,
	EVENT_MISSION_STARTED,
	EVENT_STATE_CHANGED,
	STOP_CANCELLED,
	STOP_ERROR,
	STOP_MAX_ATTEMPTS,
	STOP_SOLVED,
)
from planning_system.dispatch import DispatchOrchestrator
from planning_system.event_stream import EventStream
from planning_system.kb_client import KnowledgeBaseClient, KnowledgeBaseError
from planning_system.knowledge_filter import KnowledgeFilterPublisher
from planning_system.models import (
	MissionContext,
	MissionResult,
	MissionState,
	PlanAttempt,
	_now_iso,
)
from planning_system.plan_history import PlanHistory
from planning_system.plan_parser import PopfPlanParser
from planning_system.planner import PlannerInvocation
from planning_system.signals import ControlSignals
from planning_system.state import MissionBusyError, MissionStateMachine, StateListener

logger = logging.getLogger(__name__)


class MissionController:
	"""Outer loop: generate problem -> plan -> dispatch, until solved or cancelled.

	``run_mission`` is a coroutine driven by one task. The ``request_*``
	handlers are plain methods that may be called from any thread while a
	mission is in flight; they only flip control signals and state, and the
	loop reacts at its next checkpoint (top of an attempt, or between two
	dispatched actions). A running solver or action is never interrupted.
	"""

	def __init__(
		self,
		config: PlanningConfig,
		planner: PlannerInvocation,
		dispatcher: ActionDispatcher,
		problem_generator: ProblemGenerator | None = None,
		knowledge_base: KnowledgeBase | None = None,
		events: EventStream | None = None,
	) -> None:
		self.config = config
		self.planner = planner
		self.problem_generator = problem_generator
		self.state_machine = MissionStateMachine()
		self.signals = ControlSignals()
		self.history = PlanHistory()
		self.orchestrator = DispatchOrchestrator(
			dispatcher, self.signals, config.planning.pause_poll_interval,
		)
		self.last_result: MissionResult | None = None
		self._filter_publisher = KnowledgeFilterPublisher(knowledge_base) if knowledge_base else None
		self._plan_archives: list[PlanArchive] = []
		self._events = events
		self._mission_id = ""
		self._owned_client: KnowledgeBaseClient | None = None
		self.state_machine.subscribe(self._on_state_change)

	@classmethod
	def from_config(
		cls,
		config: PlanningConfig,
		dispatcher: ActionDispatcher,
		parser: PlanParser | None = None,
	) -> MissionController:
		"""Build a controller wired to the configured knowledge base and event stream."""
		planner = PlannerInvocation(
			parser or PopfPlanParser(config.planning.solved_marker),
			solved_marker=config.planning.solved_marker,
			timeout=config.planning.solver_timeout,
		)
		client: KnowledgeBaseClient | None = None
		if config.knowledge_base.url:
			client = KnowledgeBaseClient(config.knowledge_base.url, config.knowledge_base.timeout)
		events: EventStream | None = None
		if config.events.enabled:
			events = EventStream(Path(config.events.path))
			events.open()
		controller = cls(
			config,
			planner,
			dispatcher,
			problem_generator=client,
			knowledge_base=client,
			events=events,
		)
		controller._owned_client = client
		return controller

	async def close(self) -> None:
		if self._owned_client is not None:
			await self._owned_client.close()
			self._owned_client = None
		if self._events is not None:
			self._events.close()

	# -- Observation --

	@property
	def state(self) -> MissionState:
		return self.state_machine.state

	def subscribe(self, listener: StateListener) -> None:
		"""Register a callback for every published state."""
		self.state_machine.subscribe(listener)

	def add_plan_archive(self, archive: PlanArchive) -> None:
		self._plan_archives.append(archive)

	# -- Mission loop --

	async def run_mission(self, context: MissionContext, resume_from: int | None = None) -> bool:
		"""Run one mission from READY back to READY. Returns whether it was solved.

		Raises MissionBusyError, without touching the state, if a mission is
		already active, and PlannerTemplateError/ValueError for a bad context.
		"""
		context.validate()
		result = MissionResult()
		with self.state_machine.lock:
			# The PLANNING event published by begin_mission carries the new id
			previous_id = self._mission_id
			self._mission_id = result.mission_id
			try:
				self.state_machine.begin_mission()
			except MissionBusyError:
				self._mission_id = previous_id
				raise

		self.signals.reset(target_action_id=resume_from)
		# Attempt numbers carry over so plan_<n> archives are never overwritten
		self.history = PlanHistory(first_attempt_number=self.history.next_attempt_number())
		start = time.monotonic()
		mission_start_time = time.time()
		self._emit(EVENT_MISSION_STARTED, details={
			"domain_path": context.domain_path,
			"problem_path": context.problem_path,
			"data_path": context.data_path,
		})
		logger.info("Mission %s started (domain %s, problem %s)", result.mission_id, context.domain_path, context.problem_path)

		solved = False
		try:
			self.orchestrator.reset()
			solved = await self._mission_loop(context, result, mission_start_time)
		except asyncio.CancelledError:
			logger.info("Mission %s task cancelled", result.mission_id)
			result.stopped_reason = STOP_CANCELLED
			raise
		except Exception as exc:
			logger.error("Mission %s failed: %s", result.mission_id, exc, exc_info=True)
			result.stopped_reason = STOP_ERROR
		finally:
			self._return_to_ready()
			result.solved = solved
			result.total_attempts = len(self.history)
			result.finished_at = _now_iso()
			result.wall_time_seconds = time.monotonic() - start
			self.last_result = result
			self._emit(EVENT_MISSION_FINISHED, details={
				"solved": solved,
				"stopped_reason": result.stopped_reason,
				"total_attempts": result.total_attempts,
			})
			logger.info(
				"Planning system finished mission %s (solved=%s, reason=%s, attempts=%d)",
				result.mission_id, solved, result.stopped_reason, result.total_attempts,
			)

		return solved

	async def _mission_loop(
		self,
		context: MissionContext,
		result: MissionResult,
		mission_start_time: float,
	) -> bool:
		max_attempts = self.config.planning.max_attempts
		planning_published = True  # begin_mission already announced PLANNING

		while not self.signals.cancel_requested:
			if max_attempts is not None and len(self.history) >= max_attempts:
				logger.warning("Giving up after %d planning attempt(s)", len(self.history))
				result.stopped_reason = STOP_MAX_ATTEMPTS
				return False

			if not planning_published:
				self.state_machine.transition(MissionState.PLANNING)
			planning_published = False

			await self._generate_problem(context)

			resume_from = self.signals.take_target_action()
			if resume_from is None:
				resume_from = self.orchestrator.current_action_id
			attempt = await self.planner.invoke(context, self.history, resume_from)
			self._emit(EVENT_ATTEMPT_RECORDED, attempt=attempt.attempt_number, details={
				"solved": attempt.solved,
				"actions": len(attempt.actions),
				"artifact_path": attempt.artifact_path,
			})
			if not attempt.solved:
				continue

			await self._publish_plan(attempt)

			self.state_machine.transition(MissionState.DISPATCHING)
			dispatch_start_time = time.time()
			solved = await self.orchestrator.dispatch(attempt, mission_start_time, dispatch_start_time)
			if solved:
				result.stopped_reason = STOP_SOLVED
				return True
			if self.signals.cancel_requested:
				break

			logger.info("Plan from attempt %d did not complete; replanning", attempt.attempt_number)
			await self._leave_dispatch(MissionState.PLANNING)
			planning_published = True

		result.stopped_reason = STOP_CANCELLED
		return False

	async def _generate_problem(self, context: MissionContext) -> None:
		if self.problem_generator is None:
			return
		try:
			generated = await self.problem_generator.generate_problem(context.problem_path)
		except Exception as exc:
			logger.error("Problem generation raised: %s", exc)
			generated = False
		if not generated:
			logger.error("The problem was not generated; planning with existing %s", context.problem_path)

	async def _publish_plan(self, attempt: PlanAttempt) -> None:
		if self._filter_publisher is not None:
			try:
				published = await self._filter_publisher.publish(attempt)
				self._emit(EVENT_FILTER_PUBLISHED, attempt=attempt.attempt_number, details={
					"items": len(published),
				})
			except KnowledgeBaseError as exc:
				logger.warning("Failed to publish knowledge filter: %s", exc)
		for archive in self._plan_archives:
			try:
				archive.publish_plan(attempt)
			except Exception as exc:
				logger.warning("Plan archive failed for attempt %d: %s", attempt.attempt_number, exc)

	async def _leave_dispatch(self, to_state: MissionState) -> None:
		"""Leave DISPATCHING, first waiting out a pause that arrived mid-action."""
		while True:
			await self.orchestrator.hold_while_paused()
			if self.state_machine.transition_if(MissionState.DISPATCHING, to_state):
				return
			await asyncio.sleep(self.orchestrator.poll_interval)

	def _return_to_ready(self) -> None:
		with self.state_machine.lock:
			current = self.state_machine.state
			if current is MissionState.READY:
				return
			if current is MissionState.PAUSED:
				self.signals.set_paused(False)
				self.state_machine.transition(MissionState.DISPATCHING)
			self.state_machine.transition(MissionState.READY)

	# -- Command handlers --

	async def request_start(
		self,
		context: MissionContext | None = None,
		action_id_hint: int | None = None,
	) -> bool | None:
		"""Start a mission if READY; otherwise only stash the action id hint.

		Returns the mission outcome, or None when the request was ignored.
		"""
		if self.state is not MissionState.READY:
			self._stash_hint(action_id_hint)
			return None
		logger.info("Processing planning request")
		try:
			return await self.run_mission(
				context or self.config.mission.to_context(),
				resume_from=action_id_hint,
			)
		except MissionBusyError:
			self._stash_hint(action_id_hint)
			return None

	def _stash_hint(self, action_id_hint: int | None) -> None:
		if action_id_hint is None:
			logger.info("Start request ignored; planning system is %s", self.state.value)
			return
		logger.info("Mission active; next plan will resume from action %d", action_id_hint)
		self.signals.set_target_action(action_id_hint)

	def request_pause(self) -> bool:
		with self.state_machine.lock:
			if not self.state_machine.can_transition(MissionState.PAUSED) or self.signals.pause_requested:
				logger.info("Pause ignored in state %s", self.state_machine.state.value)
				return False
			logger.info("Pausing dispatch")
			self.signals.set_paused(True)
			self.state_machine.transition(MissionState.PAUSED)
			return True

	def request_resume(self) -> bool:
		with self.state_machine.lock:
			if self.state_machine.state is not MissionState.PAUSED:
				logger.info("Resume ignored in state %s", self.state_machine.state.value)
				return False
			logger.info("Resuming dispatch")
			self.signals.set_paused(False)
			self.state_machine.transition(MissionState.DISPATCHING)
			return True

	def request_cancel(self) -> bool:
		with self.state_machine.lock:
			current = self.state_machine.state
			if current is MissionState.READY:
				logger.info("Cancel ignored; no active mission")
				return False
			logger.info("Cancelling")
			self.signals.request_cancel()
			if current is MissionState.PAUSED:
				# A paused loop never reaches a checkpoint, so unpause it
				self.signals.set_paused(False)
				self.state_machine.transition(MissionState.DISPATCHING)
			return True

	def on_replan_notification(self) -> None:
		logger.info("Notification received; plan invalidated; replanning")
		self.signals.request_replan()

	async def handle_command(self, command: str) -> bool | None:
		"""Textual command surface: ``plan [action-id]``, ``pause``, ``resume``, ``cancel``.

		``pause`` toggles: it resumes a paused mission.
		"""
		logger.info("Command received: %s", command)
		verb, _, argument = command.strip().partition(" ")
		if verb == COMMAND_PLAN:
			hint: int | None = None
			if argument.strip():
				try:
					hint = int(argument.strip())
				except ValueError:
					logger.warning("Ignoring non-numeric action id %r", argument)
			return await self.request_start(action_id_hint=hint)
		if verb == COMMAND_PAUSE:
			if self.state is MissionState.PAUSED:
				return self.request_resume()
			return self.request_pause()
		if verb == COMMAND_RESUME:
			return self.request_resume()
		if verb == COMMAND_CANCEL:
			return self.request_cancel()
		logger.warning("Unknown command: %s", command)
		return None

	# -- Publication --

	def _on_state_change(self, state: MissionState) -> None:
		logger.info("Planning system state: %s", state.value)
		self._emit(EVENT_STATE_CHANGED, state=state.value)

	def _emit(self, event_type: str, *, state: str = "", attempt: int = 0, details: dict | None = None) -> None:
		if self._events is None:
			return
		self._events.emit(
			event_type,
			mission_id=self._mission_id,
			state=state,
			attempt=attempt,
			details=details,
		)
