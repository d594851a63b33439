"""Data models for the mission control loop."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from planning_system.constants import DOMAIN_PLACEHOLDER, PROBLEM_PLACEHOLDER


def _now_iso() -> str:
	return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
	return uuid4().hex[:12]


class PlannerTemplateError(ValueError):
	"""Planner command template is missing a DOMAIN or PROBLEM placeholder."""


class MissionState(Enum):
	"""System state; the value is the label published on every transition."""

	READY = "Ready"
	PLANNING = "Planning"
	DISPATCHING = "Dispatching"
	PAUSED = "Paused"


@dataclass(frozen=True)
class MissionContext:
	"""Paths and planner command resolved at mission start."""

	domain_path: str
	problem_path: str
	data_path: str
	planner_command: str

	def validate(self) -> None:
		"""Raise if a path is empty or the command lacks a placeholder."""
		for name in ("domain_path", "problem_path", "data_path"):
			if not getattr(self, name):
				raise ValueError(f"MissionContext.{name} must not be empty")
		missing = [
			p for p in (DOMAIN_PLACEHOLDER, PROBLEM_PLACEHOLDER)
			if p not in self.planner_command
		]
		if missing:
			raise PlannerTemplateError(
				f"Planner command {self.planner_command!r} is missing placeholder(s): {', '.join(missing)}"
			)


@dataclass(frozen=True)
class DispatchAction:
	"""A single dispatch-ready action parsed from a plan."""

	action_id: int
	name: str
	parameters: tuple[str, ...] = ()
	dispatch_time: float = 0.0
	duration: float = 0.0


@dataclass(frozen=True, order=True)
class KnowledgeItem:
	"""A knowledge-base item the current plan depends on."""

	item_type: str  # operator/instance
	name: str

	def to_dict(self) -> dict[str, str]:
		return {"item_type": self.item_type, "name": self.name}


@dataclass(frozen=True)
class PlanAttempt:
	"""Output of one planning cycle. Immutable once recorded."""

	attempt_number: int
	solved: bool
	actions: tuple[DispatchAction, ...] = ()
	artifact_path: str = ""
	created_at: str = field(default_factory=_now_iso)


@dataclass(frozen=True)
class KnowledgeFilter:
	"""The set of knowledge items a plan depends on, in first-seen order."""

	items: tuple[KnowledgeItem, ...] = ()

	def __len__(self) -> int:
		return len(self.items)

	def as_set(self) -> frozenset[KnowledgeItem]:
		return frozenset(self.items)


@dataclass
class MissionResult:
	"""Summary of a finished mission."""

	mission_id: str = field(default_factory=_new_id)
	solved: bool = False
	stopped_reason: str = ""  # solved/cancelled/max_attempts/error
	total_attempts: int = 0
	started_at: str = field(default_factory=_now_iso)
	finished_at: str | None = None
	wall_time_seconds: float = 0.0
