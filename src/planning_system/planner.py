"""Planner invocation -- run the external solver and validate its output."""

from __future__ import annotations

import asyncio
import logging
import shlex
import shutil
from pathlib import Path

from planning_system.collaborators import PlanParser
from planning_system.constants import (
	ARCHIVE_PREFIX,
	DOMAIN_PLACEHOLDER,
	PLAN_ARTIFACT_NAME,
	PROBLEM_PLACEHOLDER,
	SOLVED_MARKER,
)
from planning_system.models import MissionContext, PlanAttempt, PlannerTemplateError
from planning_system.plan_history import PlanHistory

logger = logging.getLogger(__name__)


def build_planner_command(template: str, domain_path: str, problem_path: str) -> str:
	"""Substitute the first DOMAIN and PROBLEM placeholders in ``template``.

	Both placeholders are located in the template before substitution, so a
	path that itself contains the text "PROBLEM" is never rewritten.
	"""
	domain_at = template.find(DOMAIN_PLACEHOLDER)
	problem_at = template.find(PROBLEM_PLACEHOLDER)
	missing = [
		name for name, index in ((DOMAIN_PLACEHOLDER, domain_at), (PROBLEM_PLACEHOLDER, problem_at))
		if index < 0
	]
	if missing:
		raise PlannerTemplateError(
			f"Planner command {template!r} is missing placeholder(s): {', '.join(missing)}"
		)

	pieces = sorted([
		(domain_at, DOMAIN_PLACEHOLDER, shlex.quote(domain_path)),
		(problem_at, PROBLEM_PLACEHOLDER, shlex.quote(problem_path)),
	])
	parts: list[str] = []
	cursor = 0
	for index, placeholder, value in pieces:
		parts.append(template[cursor:index])
		parts.append(value)
		cursor = index + len(placeholder)
	parts.append(template[cursor:])
	return "".join(parts)


def plan_is_solved(artifact: Path, marker: str = SOLVED_MARKER) -> bool:
	"""Scan a solver artifact for the success marker line."""
	try:
		with open(artifact, encoding="utf-8", errors="replace") as f:
			return any(marker in line for line in f)
	except FileNotFoundError:
		return False


class PlannerInvocation:
	"""Runs the solver for one attempt and records the outcome in a PlanHistory.

	The solver's stdout is written to ``<data_path>/plan.pddl``. A solved plan
	is archived as ``<data_path>/plan_<attempt>`` and handed to the parser.
	"""

	def __init__(
		self,
		parser: PlanParser,
		solved_marker: str = SOLVED_MARKER,
		timeout: float | None = None,
	) -> None:
		self.parser = parser
		self.solved_marker = solved_marker
		self.timeout = timeout

	async def invoke(
		self,
		context: MissionContext,
		history: PlanHistory,
		resume_from_action_id: int = 0,
	) -> PlanAttempt:
		attempt_number = history.next_attempt_number()
		data_dir = Path(context.data_path)
		data_dir.mkdir(parents=True, exist_ok=True)
		artifact = data_dir / PLAN_ARTIFACT_NAME

		command = build_planner_command(
			context.planner_command, context.domain_path, context.problem_path,
		)
		logger.info("Running planner (attempt %d): %s > %s", attempt_number, command, artifact)
		returncode = await self._run_solver(command, artifact)
		logger.info("Planning complete (attempt %d, exit code %s)", attempt_number, returncode)

		if not plan_is_solved(artifact, self.solved_marker):
			logger.info("Plan was unsolvable on attempt %d; will retry", attempt_number)
			attempt = PlanAttempt(
				attempt_number=attempt_number,
				solved=False,
				artifact_path=str(artifact),
			)
			history.append(attempt)
			return attempt

		archived = data_dir / f"{ARCHIVE_PREFIX}{attempt_number}"
		shutil.copyfile(artifact, archived)

		try:
			actions = self.parser.parse_plan(
				str(archived), context.domain_path, resume_from_action_id,
			)
		except (OSError, ValueError) as exc:
			logger.error("Failed to parse plan from %s: %s", archived, exc, exc_info=True)
			attempt = PlanAttempt(
				attempt_number=attempt_number,
				solved=False,
				artifact_path=str(archived),
			)
			history.append(attempt)
			return attempt

		attempt = PlanAttempt(
			attempt_number=attempt_number,
			solved=True,
			actions=tuple(actions),
			artifact_path=str(archived),
		)
		history.append(attempt)
		logger.info("Attempt %d produced a plan with %d action(s)", attempt_number, len(actions))
		return attempt

	async def _run_solver(self, command: str, artifact: Path) -> int | None:
		"""Run the solver shell command with stdout redirected to ``artifact``.

		The process is always reaped and the artifact handle closed, whether
		the solver exits, times out, or the calling task is cancelled.
		"""
		with open(artifact, "w", encoding="utf-8") as out:
			try:
				proc = await asyncio.create_subprocess_shell(command, stdout=out)
			except OSError as exc:
				logger.error("Failed to launch planner: %s", exc)
				return None

			try:
				if self.timeout is None:
					await proc.wait()
				else:
					await asyncio.wait_for(proc.wait(), timeout=self.timeout)
			except asyncio.TimeoutError:
				logger.warning("Planner timed out after %ss; killing it", self.timeout)
				await _kill(proc)
			except asyncio.CancelledError:
				await _kill(proc)
				raise
			return proc.returncode


async def _kill(proc: asyncio.subprocess.Process) -> None:
	try:
		proc.kill()
	except ProcessLookupError:
		pass
	await proc.wait()
