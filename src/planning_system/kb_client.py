"""HTTP client for the knowledge-base service.

Covers the two knowledge-base duties the mission loop needs: regenerating
the problem file and replacing the planning filter. Uses a lazily created
async httpx client.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

import httpx

from planning_system.constants import DEFAULT_KB_TIMEOUT, FILTER_ADD, FILTER_CLEAR
from planning_system.models import KnowledgeItem

logger = logging.getLogger(__name__)


class KnowledgeBaseError(RuntimeError):
	"""The knowledge-base service could not be reached or rejected a request."""


class KnowledgeBaseClient:
	"""Talks to the knowledge base over HTTP.

	Implements both the ProblemGenerator and KnowledgeBase interfaces.
	"""

	def __init__(
		self,
		base_url: str,
		timeout: float = DEFAULT_KB_TIMEOUT,
		transport: httpx.AsyncBaseTransport | None = None,
	) -> None:
		self._base_url = base_url.rstrip("/")
		self._timeout = timeout
		self._transport = transport
		self._client: httpx.AsyncClient | None = None

	async def _ensure_client(self) -> httpx.AsyncClient:
		if self._client is None:
			self._client = httpx.AsyncClient(
				base_url=self._base_url,
				timeout=self._timeout,
				transport=self._transport,
			)
		return self._client

	async def _post(self, path: str, payload: dict[str, Any]) -> httpx.Response:
		client = await self._ensure_client()
		try:
			response = await client.post(path, json=payload)
			response.raise_for_status()
		except httpx.HTTPError as exc:
			raise KnowledgeBaseError(f"POST {path} failed: {exc}") from exc
		return response

	async def generate_problem(self, problem_path: str) -> bool:
		"""Ask the knowledge base to write a fresh problem file.

		Returns False (after logging) if the service fails, since a stale
		problem file is still worth planning against.
		"""
		try:
			response = await self._post("/problem", {"problem_path": problem_path})
		except KnowledgeBaseError as exc:
			logger.error("The problem was not generated: %s", exc)
			return False
		try:
			body = response.json()
		except ValueError:
			return True
		return bool(body.get("success", True)) if isinstance(body, dict) else True

	async def clear_filter(self) -> None:
		await self._post("/filter", {"function": FILTER_CLEAR})

	async def add_filter(self, items: Sequence[KnowledgeItem]) -> None:
		await self._post("/filter", {
			"function": FILTER_ADD,
			"knowledge_items": [item.to_dict() for item in items],
		})

	async def close(self) -> None:
		if self._client is not None:
			await self._client.aclose()
			self._client = None
