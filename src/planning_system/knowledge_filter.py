"""Knowledge filter publisher -- tell the knowledge base what the plan depends on."""

from __future__ import annotations

import logging

from planning_system.collaborators import KnowledgeBase
from planning_system.models import KnowledgeFilter, KnowledgeItem, PlanAttempt

logger = logging.getLogger(__name__)


def derive_filter(attempt: PlanAttempt) -> KnowledgeFilter:
	"""Collect the operators and instances referenced by the attempt's actions."""
	seen: set[KnowledgeItem] = set()
	items: list[KnowledgeItem] = []
	for action in attempt.actions:
		candidates = [KnowledgeItem("operator", action.name)]
		candidates.extend(KnowledgeItem("instance", p) for p in action.parameters)
		for item in candidates:
			if item not in seen:
				seen.add(item)
				items.append(item)
	return KnowledgeFilter(items=tuple(items))


class KnowledgeFilterPublisher:
	"""Replaces the knowledge base's filter with the current plan's items.

	Every publish is a clear followed by an add, so the knowledge base never
	holds the union of two plans' filters. The last published filter is kept
	only to skip re-sending an identical set.
	"""

	def __init__(self, knowledge_base: KnowledgeBase) -> None:
		self._kb = knowledge_base
		self._last: KnowledgeFilter | None = None

	@property
	def last_published(self) -> KnowledgeFilter | None:
		return self._last

	async def publish(self, attempt: PlanAttempt) -> KnowledgeFilter:
		new_filter = derive_filter(attempt)
		if self._last is not None and self._last.as_set() == new_filter.as_set():
			logger.debug("Knowledge filter unchanged for attempt %d", attempt.attempt_number)
			return new_filter

		logger.info("Clean and update knowledge filter (%d item(s))", len(new_filter))
		await self._kb.clear_filter()
		# Forget the old filter once cleared so a failed add is re-sent next time
		self._last = None
		await self._kb.add_filter(list(new_filter.items))
		self._last = new_filter
		return new_filter
