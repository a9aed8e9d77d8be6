"""Static registry of monitored targets, loaded once at startup."""

import json
from pathlib import Path

import structlog

from lanmon.core.exceptions import LanMonitorError
from lanmon.schemas.agents import AgentTarget
from lanmon.schemas.services import Target

logger = structlog.get_logger()

DEFAULT_TARGETS: tuple[Target, ...] = (
    Target(
        id="conduit",
        name="Conduit (Matrix)",
        host="192.168.27.30:6167",
        type="http",
        url="http://192.168.27.30:6167/_matrix/client/versions",
    ),
    Target(
        id="ollama",
        name="Ollama",
        host="192.168.27.30:11434",
        type="ollama",
        url="http://192.168.27.30:11434/api/tags",
    ),
    Target(id="mac-aithree", name="Mac mini (aithree)", host="192.168.27.155", type="ping"),
    Target(id="mac-eugene", name="Mac mini (eugene)", host="192.168.27.149", type="ping"),
)

DEFAULT_AGENTS: tuple[AgentTarget, ...] = (
    AgentTarget(name="siegbert", ip="192.168.27.155"),
    AgentTarget(name="eugene", ip="192.168.27.149"),
    AgentTarget(name="bubblebass", ip="192.168.27.64"),
    AgentTarget(name="byte", ip="192.168.27.79"),
)


def _read_json_list(path: str) -> list[dict]:
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise LanMonitorError(code="invalid_registry", message=f"Cannot read registry {path}: {e}")
    if not isinstance(data, list):
        raise LanMonitorError(code="invalid_registry", message=f"Registry {path} must be a JSON list.")
    return data


def load_targets(path: str | None = None) -> list[Target]:
    """Return the target registry, from ``path`` if given, else the built-in list."""
    if not path:
        return list(DEFAULT_TARGETS)

    targets = [Target(**item) for item in _read_json_list(path)]
    seen: set[str] = set()
    for target in targets:
        if target.id in seen:
            raise LanMonitorError(
                code="invalid_registry", message=f"Duplicate target id '{target.id}' in {path}."
            )
        seen.add(target.id)
    logger.info("targets_loaded", path=path, count=len(targets))
    return targets


def load_agents(path: str | None = None) -> list[AgentTarget]:
    if not path:
        return list(DEFAULT_AGENTS)
    return [AgentTarget(**item) for item in _read_json_list(path)]


def find_target(targets: list[Target], target_id: str) -> Target | None:
    return next((t for t in targets if t.id == target_id), None)
