"""Tests for knowledge filter derivation and replace-style publication."""

from __future__ import annotations

from typing import Sequence

import pytest

from planning_system.knowledge_filter import KnowledgeFilterPublisher, derive_filter
from planning_system.models import DispatchAction, KnowledgeItem, PlanAttempt


class RecordingKnowledgeBase:
	def __init__(self, fail_add: bool = False) -> None:
		self.calls: list[tuple[str, list[KnowledgeItem]]] = []
		self.current: set[KnowledgeItem] = set()
		self.max_size_seen = 0
		self.fail_add = fail_add

	async def clear_filter(self) -> None:
		self.calls.append(("clear", []))
		self.current = set()

	async def add_filter(self, items: Sequence[KnowledgeItem]) -> None:
		if self.fail_add:
			raise RuntimeError("kb down")
		self.calls.append(("add", list(items)))
		self.current |= set(items)
		self.max_size_seen = max(self.max_size_seen, len(self.current))


def _attempt(number: int, *actions: tuple[str, tuple[str, ...]]) -> PlanAttempt:
	return PlanAttempt(
		attempt_number=number,
		solved=True,
		actions=tuple(DispatchAction(i, name, params) for i, (name, params) in enumerate(actions)),
	)


class TestDeriveFilter:
	def test_operators_and_instances(self) -> None:
		f = derive_filter(_attempt(1, ("goto", ("kenny", "wp1")), ("dock", ("kenny",))))
		assert f.items == (
			KnowledgeItem("operator", "goto"),
			KnowledgeItem("instance", "kenny"),
			KnowledgeItem("instance", "wp1"),
			KnowledgeItem("operator", "dock"),
		)

	def test_empty_plan(self) -> None:
		assert derive_filter(_attempt(1)).items == ()


class TestKnowledgeFilterPublisher:
	@pytest.mark.asyncio
	async def test_clear_then_add(self) -> None:
		kb = RecordingKnowledgeBase()
		publisher = KnowledgeFilterPublisher(kb)
		await publisher.publish(_attempt(1, ("goto", ("wp1",))))
		assert [c[0] for c in kb.calls] == ["clear", "add"]
		assert kb.calls[1][1] == [KnowledgeItem("operator", "goto"), KnowledgeItem("instance", "wp1")]

	@pytest.mark.asyncio
	async def test_replaces_previous_filter(self) -> None:
		kb = RecordingKnowledgeBase()
		publisher = KnowledgeFilterPublisher(kb)
		await publisher.publish(_attempt(1, ("goto", ("wp1",))))
		second = await publisher.publish(_attempt(2, ("dock", ("wp2",))))

		assert [c[0] for c in kb.calls] == ["clear", "add", "clear", "add"]
		assert kb.current == second.as_set()
		assert KnowledgeItem("instance", "wp1") not in kb.current
		assert kb.max_size_seen == 2
		assert publisher.last_published == second

	@pytest.mark.asyncio
	async def test_identical_filter_not_resent(self) -> None:
		kb = RecordingKnowledgeBase()
		publisher = KnowledgeFilterPublisher(kb)
		await publisher.publish(_attempt(1, ("goto", ("wp1",))))
		await publisher.publish(_attempt(2, ("goto", ("wp1",))))
		assert len(kb.calls) == 2

	@pytest.mark.asyncio
	async def test_failed_add_is_retried(self) -> None:
		kb = RecordingKnowledgeBase(fail_add=True)
		publisher = KnowledgeFilterPublisher(kb)
		with pytest.raises(RuntimeError):
			await publisher.publish(_attempt(1, ("goto", ("wp1",))))
		assert publisher.last_published is None

		kb.fail_add = False
		await publisher.publish(_attempt(2, ("goto", ("wp1",))))
		assert [c[0] for c in kb.calls] == ["clear", "clear", "add"]
