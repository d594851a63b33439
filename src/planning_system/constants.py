"""Planner markers, artifact names, event types and default settings."""

from __future__ import annotations

# -- Planner command template --

DOMAIN_PLACEHOLDER = "DOMAIN"
PROBLEM_PLACEHOLDER = "PROBLEM"

# POPF writes this line once a solution has been found
SOLVED_MARKER = "; Time"

PLAN_ARTIFACT_NAME = "plan.pddl"
ARCHIVE_PREFIX = "plan_"

# -- Mission events --

EVENT_MISSION_STARTED = "mission_started"
EVENT_MISSION_FINISHED = "mission_finished"
EVENT_STATE_CHANGED = "state_changed"
EVENT_ATTEMPT_RECORDED = "attempt_recorded"
EVENT_FILTER_PUBLISHED = "filter_published"

# -- Stop reasons --

STOP_SOLVED = "solved"
STOP_CANCELLED = "cancelled"
STOP_MAX_ATTEMPTS = "max_attempts"
STOP_ERROR = "error"

# -- Textual commands --

COMMAND_PLAN = "plan"
COMMAND_PAUSE = "pause"
COMMAND_RESUME = "resume"
COMMAND_CANCEL = "cancel"

# -- Knowledge filter functions --

FILTER_CLEAR = "clear"
FILTER_ADD = "add"

# Defaults mirror the planning node's parameter server defaults
DEFAULT_MISSION: dict[str, str] = {
	"domain_path": "common/domain.pddl",
	"problem_path": "common/problem.pddl",
	"data_path": "common/",
	"planner_command": "timeout 10 common/bin/popf -n DOMAIN PROBLEM",
}

DEFAULT_PAUSE_POLL_INTERVAL = 0.1
DEFAULT_KB_TIMEOUT = 10.0
