"""Interfaces of the services the mission loop talks to."""

from __future__ import annotations

from typing import Protocol, Sequence

from planning_system.models import DispatchAction, KnowledgeItem, PlanAttempt


class ProblemGenerator(Protocol):
	async def generate_problem(self, problem_path: str) -> bool:
		"""Regenerate the problem file from the knowledge base. False on failure."""
		...


class PlanParser(Protocol):
	def parse_plan(
		self,
		artifact_path: str,
		domain_path: str,
		resume_from_action_id: int,
	) -> list[DispatchAction]:
		...


class ActionDispatcher(Protocol):
	def reset(self) -> None:
		...

	async def dispatch_action(
		self,
		action: DispatchAction,
		mission_start_time: float,
		dispatch_start_time: float,
	) -> bool:
		"""Execute one action to completion. False if it failed irrecoverably."""
		...


class KnowledgeBase(Protocol):
	async def clear_filter(self) -> None:
		...

	async def add_filter(self, items: Sequence[KnowledgeItem]) -> None:
		...


class PlanArchive(Protocol):
	def publish_plan(self, attempt: PlanAttempt) -> None:
		...
