"""GitLab runner, manager and user records.

Records are built from API payloads via ``from_api`` and are immutable once
assembled. The aggregator produces new instances (``dataclasses.replace``)
rather than mutating them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .exceptions import DeserializeError


def _require(data: dict[str, Any], key: str, kind: type | tuple[type, ...], what: str) -> Any:
    if key not in data or data[key] is None:
        raise DeserializeError(f"{what} payload missing required field '{key}'")
    value = data[key]
    # bool is an int subclass; ids must be real integers
    if kind is int and isinstance(value, bool):
        raise DeserializeError(f"{what} field '{key}' has unexpected type bool")
    if not isinstance(value, kind):
        raise DeserializeError(
            f"{what} field '{key}' has unexpected type {type(value).__name__}"
        )
    return value


def _optional_str(data: dict[str, Any], key: str, what: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise DeserializeError(
            f"{what} field '{key}' has unexpected type {type(value).__name__}"
        )
    return value


def _ensure_object(data: Any, what: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise DeserializeError(f"Expected a JSON object for {what}, got {type(data).__name__}")
    return data


@dataclass(frozen=True)
class RunnerManager:
    """A host process reporting as the execution backend of a runner."""

    id: int
    system_id: str
    created_at: str
    status: str
    contacted_at: str | None = None
    ip_address: str | None = None
    version: str | None = None
    revision: str | None = None
    platform: str | None = None
    architecture: str | None = None

    @classmethod
    def from_api(cls, data: Any) -> RunnerManager:
        data = _ensure_object(data, "runner manager")
        what = "Runner manager"
        return cls(
            id=_require(data, "id", int, what),
            system_id=_require(data, "system_id", str, what),
            created_at=_optional_str(data, "created_at", what) or "",
            status=_require(data, "status", str, what),
            contacted_at=_optional_str(data, "contacted_at", what),
            ip_address=_optional_str(data, "ip_address", what),
            version=_optional_str(data, "version", what),
            revision=_optional_str(data, "revision", what),
            platform=_optional_str(data, "platform", what),
            architecture=_optional_str(data, "architecture", what),
        )


@dataclass(frozen=True)
class Runner:
    """A registered CI build agent.

    ``managers`` keeps API return order; the first entry is treated as the
    current manager everywhere.
    """

    id: int
    status: str
    runner_type: str = ""
    active: bool = True
    paused: bool = False
    description: str | None = None
    created_at: str | None = None
    ip_address: str | None = None
    is_shared: bool = False
    version: str | None = None
    revision: str | None = None
    tag_list: tuple[str, ...] = ()
    managers: tuple[RunnerManager, ...] = ()

    @property
    def current_manager(self) -> RunnerManager | None:
        return self.managers[0] if self.managers else None

    @classmethod
    def from_api(cls, data: Any) -> Runner:
        """Build a Runner from a ``runners/all`` or ``runners/:id`` payload.

        List payloads omit ``tag_list`` and ``version`` on most GitLab
        versions; those default to empty/None.
        """
        data = _ensure_object(data, "runner")
        what = "Runner"
        tags = data.get("tag_list") or []
        if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
            raise DeserializeError("Runner field 'tag_list' must be a list of strings")
        managers = data.get("managers") or []
        if not isinstance(managers, list):
            raise DeserializeError("Runner field 'managers' must be a list")
        return cls(
            id=_require(data, "id", int, what),
            status=_require(data, "status", str, what),
            runner_type=_optional_str(data, "runner_type", what) or "",
            active=bool(data.get("active", True)),
            paused=bool(data.get("paused", False)),
            description=_optional_str(data, "description", what),
            created_at=_optional_str(data, "created_at", what),
            ip_address=_optional_str(data, "ip_address", what),
            is_shared=bool(data.get("is_shared", False)),
            version=_optional_str(data, "version", what),
            revision=_optional_str(data, "revision", what),
            tag_list=tuple(tags),
            managers=tuple(RunnerManager.from_api(m) for m in managers),
        )


@dataclass
class RunnerFilters:
    """Query options for an aggregation pass.

    ``status``, ``runner_type`` and ``paused`` are sent to GitLab as query
    parameters. ``tag_list`` (any-of) and ``version_prefix`` are applied
    locally after every page has been enriched.
    """

    tag_list: list[str] | None = None
    status: str | None = None
    version_prefix: str | None = None
    runner_type: str | None = None
    paused: bool | None = None

    def query_params(self) -> dict[str, str]:
        """Return the server-side query parameters for ``runners/all``."""
        params: dict[str, str] = {}
        if self.status:
            params["status"] = self.status
        if self.runner_type:
            params["type"] = self.runner_type
        if self.paused is not None:
            params["paused"] = "true" if self.paused else "false"
        return params

    def matches_locally(self, runner: Runner) -> bool:
        """Return True if runner passes the client-side tag/version filters."""
        if self.tag_list:
            wanted = set(self.tag_list)
            if wanted.isdisjoint(runner.tag_list):
                return False
        if self.version_prefix:
            if runner.version is None or not runner.version.startswith(self.version_prefix):
                return False
        return True


@dataclass(frozen=True)
class User:
    """The GitLab account behind the configured token."""

    id: int
    username: str
    name: str
    state: str
    bot: bool = False
    locked: bool = False
    avatar_url: str | None = None
    last_sign_in_at: str | None = None

    @classmethod
    def from_api(cls, data: Any) -> User:
        data = _ensure_object(data, "user")
        what = "User"
        return cls(
            id=_require(data, "id", int, what),
            username=_require(data, "username", str, what),
            name=_optional_str(data, "name", what) or "",
            state=_optional_str(data, "state", what) or "unknown",
            bot=bool(data.get("bot", False)),
            locked=bool(data.get("locked", False)),
            avatar_url=_optional_str(data, "avatar_url", what),
            last_sign_in_at=_optional_str(data, "last_sign_in_at", what),
        )
