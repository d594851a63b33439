"""Default plan parser for POPF-style temporal plan output."""

from __future__ import annotations

import logging
import re

from planning_system.constants import SOLVED_MARKER
from planning_system.models import DispatchAction

logger = logging.getLogger(__name__)

# e.g. "0.000: (goto_waypoint kenny wp0 wp1)  [10.000]"
_ACTION_RE = re.compile(
	r"^\s*(?P<time>\d+(?:\.\d+)?)\s*:\s*\((?P<body>[^)]*)\)\s*(?:\[(?P<duration>\d+(?:\.\d+)?)\])?"
)


class PopfPlanParser:
	"""Turns the action lines of a solver artifact into DispatchActions.

	Only the lines after the last success marker are read, so an anytime
	planner's improving plans collapse to the final one. Action ids are
	numbered from ``resume_from_action_id``.
	"""

	def __init__(self, marker: str = SOLVED_MARKER) -> None:
		self.marker = marker

	def parse_plan(
		self,
		artifact_path: str,
		domain_path: str,
		resume_from_action_id: int,
	) -> list[DispatchAction]:
		with open(artifact_path, encoding="utf-8", errors="replace") as f:
			lines = f.read().splitlines()

		start = 0
		for i, line in enumerate(lines):
			if self.marker in line:
				start = i + 1

		actions: list[DispatchAction] = []
		next_id = resume_from_action_id
		for line in lines[start:]:
			m = _ACTION_RE.match(line)
			if not m:
				continue
			tokens = m.group("body").split()
			if not tokens:
				raise ValueError(f"Empty action in plan line: {line!r}")
			actions.append(DispatchAction(
				action_id=next_id,
				name=tokens[0].lower(),
				parameters=tuple(t.lower() for t in tokens[1:]),
				dispatch_time=float(m.group("time")),
				duration=float(m.group("duration") or 0.0),
			))
			next_id += 1

		logger.debug("Parsed %d action(s) from %s (domain %s)", len(actions), artifact_path, domain_path)
		return actions
