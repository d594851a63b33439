"""Mission control loop: generate problem, plan, dispatch, replan."""

from planning_system.config import PlanningConfig, load_config, validate_config
from planning_system.controller import MissionController
from planning_system.dispatch import DispatchOrchestrator
from planning_system.kb_client import KnowledgeBaseClient, KnowledgeBaseError
from planning_system.knowledge_filter import KnowledgeFilterPublisher, derive_filter
from planning_system.models import (
	DispatchAction,
	KnowledgeFilter,
	KnowledgeItem,
	MissionContext,
	MissionResult,
	MissionState,
	PlanAttempt,
	PlannerTemplateError,
)
from planning_system.plan_history import PlanHistory
from planning_system.plan_parser import PopfPlanParser
from planning_system.planner import PlannerInvocation, build_planner_command
from planning_system.signals import ControlSignals
from planning_system.state import InvalidTransitionError, MissionBusyError, MissionStateMachine

__all__ = [
	"ControlSignals",
	"DispatchAction",
	"DispatchOrchestrator",
	"InvalidTransitionError",
	"KnowledgeBaseClient",
	"KnowledgeBaseError",
	"KnowledgeFilter",
	"KnowledgeFilterPublisher",
	"KnowledgeItem",
	"MissionBusyError",
	"MissionContext",
	"MissionController",
	"MissionResult",
	"MissionState",
	"MissionStateMachine",
	"PlanAttempt",
	"PlanHistory",
	"PlannerInvocation",
	"PlannerTemplateError",
	"PopfPlanParser",
	"PlanningConfig",
	"build_planner_command",
	"derive_filter",
	"load_config",
	"validate_config",
]
