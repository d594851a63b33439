"""JSONL event stream for post-mission analysis of transitions and attempts."""

from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Any


class EventStream:
	"""Append-only JSONL writer for mission events.

	Writes are serialized by a lock because state changes can be published
	from command handler threads.
	"""

	def __init__(self, path: Path) -> None:
		self._path = path
		self._file: IO[str] | None = None
		self._lock = threading.Lock()

	def open(self) -> None:
		self._path.parent.mkdir(parents=True, exist_ok=True)
		with self._lock:
			self._file = self._path.open("a", encoding="utf-8")

	def close(self) -> None:
		with self._lock:
			if self._file is not None:
				self._file.close()
				self._file = None

	def emit(
		self,
		event_type: str,
		*,
		mission_id: str = "",
		state: str = "",
		attempt: int = 0,
		details: dict[str, Any] | None = None,
	) -> None:
		record: dict[str, Any] = {
			"timestamp": datetime.now(timezone.utc).isoformat(),
			"event_type": event_type,
			"mission_id": mission_id,
			"state": state,
			"attempt": attempt,
			"details": details or {},
		}
		with self._lock:
			if self._file is None:
				return
			self._file.write(json.dumps(record, separators=(",", ":")) + "\n")
			self._file.flush()
