"""Configuration for the planning system, loaded from planning-system.toml."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from planning_system.constants import (
	DEFAULT_KB_TIMEOUT,
	DEFAULT_MISSION,
	DEFAULT_PAUSE_POLL_INTERVAL,
	SOLVED_MARKER,
)
from planning_system.models import MissionContext


@dataclass
class MissionDefaults:
	"""Mission context used when a start request carries no parameters."""

	domain_path: str = DEFAULT_MISSION["domain_path"]
	problem_path: str = DEFAULT_MISSION["problem_path"]
	data_path: str = DEFAULT_MISSION["data_path"]
	planner_command: str = DEFAULT_MISSION["planner_command"]

	def to_context(self) -> MissionContext:
		return MissionContext(
			domain_path=self.domain_path,
			problem_path=self.problem_path,
			data_path=self.data_path,
			planner_command=self.planner_command,
		)


@dataclass
class PlanningOptions:
	"""Retry and polling behaviour of the mission loop."""

	max_attempts: int | None = None  # None = retry until solved or cancelled
	solved_marker: str = SOLVED_MARKER
	solver_timeout: float | None = None
	pause_poll_interval: float = DEFAULT_PAUSE_POLL_INTERVAL


@dataclass
class KnowledgeBaseConfig:
	"""HTTP knowledge-base service settings."""

	url: str = ""
	timeout: float = DEFAULT_KB_TIMEOUT


@dataclass
class EventsConfig:
	"""JSONL event stream settings."""

	enabled: bool = False
	path: str = "events.jsonl"


@dataclass
class PlanningConfig:
	"""Top-level planning system configuration."""

	mission: MissionDefaults = field(default_factory=MissionDefaults)
	planning: PlanningOptions = field(default_factory=PlanningOptions)
	knowledge_base: KnowledgeBaseConfig = field(default_factory=KnowledgeBaseConfig)
	events: EventsConfig = field(default_factory=EventsConfig)


def _build_mission(data: dict[str, Any]) -> MissionDefaults:
	defaults = MissionDefaults()
	return MissionDefaults(
		domain_path=str(data.get("domain_path", defaults.domain_path)),
		problem_path=str(data.get("problem_path", defaults.problem_path)),
		data_path=str(data.get("data_path", defaults.data_path)),
		planner_command=str(data.get("planner_command", defaults.planner_command)),
	)


def _build_planning(data: dict[str, Any]) -> PlanningOptions:
	opts = PlanningOptions()
	if "max_attempts" in data:
		# 0 in the file means unbounded, same as leaving it out
		value = int(data["max_attempts"])
		opts.max_attempts = value if value > 0 else None
	if "solved_marker" in data:
		opts.solved_marker = str(data["solved_marker"])
	if "solver_timeout" in data:
		value = float(data["solver_timeout"])
		opts.solver_timeout = value if value > 0 else None
	if "pause_poll_interval" in data:
		opts.pause_poll_interval = float(data["pause_poll_interval"])
	return opts


def _build_knowledge_base(data: dict[str, Any]) -> KnowledgeBaseConfig:
	cfg = KnowledgeBaseConfig()
	if "url" in data:
		cfg.url = str(data["url"]).rstrip("/")
	if "timeout" in data:
		cfg.timeout = float(data["timeout"])
	return cfg


def _build_events(data: dict[str, Any]) -> EventsConfig:
	cfg = EventsConfig()
	if "enabled" in data:
		cfg.enabled = bool(data["enabled"])
	if "path" in data:
		cfg.path = str(data["path"])
	return cfg


def load_config(path: str | Path) -> PlanningConfig:
	"""Load a TOML config file into a PlanningConfig.

	Missing sections and keys fall back to the defaults. Raises
	FileNotFoundError if the file does not exist.
	"""
	p = Path(path)
	if not p.exists():
		raise FileNotFoundError(f"Config file not found: {p}")

	with open(p, "rb") as f:
		data = tomllib.load(f)

	return PlanningConfig(
		mission=_build_mission(data.get("mission", {})),
		planning=_build_planning(data.get("planning", {})),
		knowledge_base=_build_knowledge_base(data.get("knowledge_base", {})),
		events=_build_events(data.get("events", {})),
	)


def validate_config(config: PlanningConfig) -> list[str]:
	"""Return a list of human-readable problems; empty means valid."""
	issues: list[str] = []
	try:
		config.mission.to_context().validate()
	except ValueError as exc:
		issues.append(str(exc))
	if config.planning.max_attempts is not None and config.planning.max_attempts < 1:
		issues.append("planning.max_attempts must be positive or unset")
	if config.planning.pause_poll_interval <= 0:
		issues.append("planning.pause_poll_interval must be positive")
	if not config.planning.solved_marker:
		issues.append("planning.solved_marker must not be empty")
	if config.knowledge_base.url and not config.knowledge_base.url.startswith(("http://", "https://")):
		issues.append(f"knowledge_base.url is not an http(s) URL: {config.knowledge_base.url}")
	if config.knowledge_base.timeout <= 0:
		issues.append("knowledge_base.timeout must be positive")
	return issues
