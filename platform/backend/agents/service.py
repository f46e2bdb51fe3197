"""Agent store: keeps the agent list in a local JSON file."""

from __future__ import annotations

import json
import logging
import tempfile
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from agents.schemas import (
    AgentConfig,
    AgentCreate,
    AgentResponse,
    ModelName,
    ModelSettings,
)
from exceptions import AgentNotFoundError

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_agent_id() -> str:
    return f"agent-{uuid.uuid4().hex[:12]}"


def relative_time(timestamp: str | None, now: datetime | None = None) -> str | None:
    """Render an ISO timestamp as "Just now", "5 minutes ago", etc."""
    if not timestamp:
        return None
    try:
        then = datetime.fromisoformat(timestamp)
    except ValueError:
        return None
    if then.tzinfo is None:
        then = then.replace(tzinfo=timezone.utc)
    now = now or _utc_now()

    seconds = int((now - then).total_seconds())
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24

    if seconds < 60:
        return "Just now"
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes > 1 else ''} ago"
    if hours < 24:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    if days < 7:
        return f"{days} day{'s' if days > 1 else ''} ago"
    return then.date().isoformat()


def to_response(agent: AgentConfig) -> AgentResponse:
    return AgentResponse(
        **agent.model_dump(),
        last_used_label=relative_time(agent.last_used),
    )


class AgentStore:
    """CRUD over a JSON file holding the list of agent configurations.

    Writes go to a temp file in the same directory and are then renamed over
    the store so a crash never leaves a half-written file behind. Every
    read-modify-write holds ``_lock`` so request threads and runs cannot
    overwrite each other's changes.
    """

    def __init__(self, path: Path, default_model: ModelName = "gpt-4o"):
        self.path = Path(path)
        self.default_model = default_model
        self._lock = threading.RLock()

    def _load(self) -> list[dict[str, Any]]:
        if self.path.exists():
            with open(self.path, encoding="utf-8") as f:
                return json.load(f)
        return []

    def _save(self, records: list[dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_fd, tmp_path = tempfile.mkstemp(
            dir=self.path.parent, suffix=".tmp", prefix="agents_"
        )
        try:
            with open(tmp_fd, "w", encoding="utf-8") as f:
                json.dump(records, f, indent=2, ensure_ascii=False)
                f.write("\n")
            Path(tmp_path).replace(self.path)
        except Exception:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def _upsert(self, agent: AgentConfig) -> None:
        with self._lock:
            records = self._load()
            record = agent.model_dump(by_alias=True)
            for i, existing in enumerate(records):
                if existing.get("id") == agent.id:
                    records[i] = record
                    break
            else:
                records.append(record)
            self._save(records)

    def _fields(self, request: AgentCreate) -> dict[str, Any]:
        data = request.model_dump()
        data["model"] = request.model or self.default_model
        return data

    def list_agents(self) -> list[AgentConfig]:
        return [AgentConfig.model_validate(r) for r in self._load()]

    def get_agent(self, agent_id: str) -> AgentConfig:
        for record in self._load():
            if record.get("id") == agent_id:
                return AgentConfig.model_validate(record)
        raise AgentNotFoundError(agent_id)

    def create_agent(self, request: AgentCreate) -> AgentConfig:
        now = _utc_now().isoformat()
        data = self._fields(request)
        if request.model_settings.is_empty():
            data["model_settings"] = ModelSettings.defaults().model_dump()
        agent = AgentConfig(
            **data,
            id=_new_agent_id(),
            created_at=now,
            updated_at=now,
            last_used=now,
        )
        self._upsert(agent)
        logger.info("Created agent '%s' (%s)", agent.name, agent.id)
        return agent

    def update_agent(self, agent_id: str, request: AgentCreate) -> AgentConfig:
        with self._lock:
            current = self.get_agent(agent_id)
            agent = AgentConfig(
                **self._fields(request),
                id=agent_id,
                created_at=current.created_at,
                updated_at=_utc_now().isoformat(),
                last_used=current.last_used,
            )
            self._upsert(agent)
        logger.info("Updated agent '%s' (%s)", agent.name, agent_id)
        return agent

    def delete_agent(self, agent_id: str) -> None:
        with self._lock:
            records = self._load()
            remaining = [r for r in records if r.get("id") != agent_id]
            if len(remaining) == len(records):
                raise AgentNotFoundError(agent_id)
            self._save(remaining)
        logger.info("Deleted agent %s", agent_id)

    def touch_last_used(self, agent: AgentConfig) -> str:
        """Stamp the stored agent's last-used time; other fields are left alone."""
        now = _utc_now().isoformat()
        with self._lock:
            records = self._load()
            for record in records:
                if record.get("id") == agent.id:
                    record["last_used"] = now
                    self._save(records)
                    return now
        raise AgentNotFoundError(agent.id or "")
