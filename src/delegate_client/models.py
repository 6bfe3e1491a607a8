"""Wire payloads exchanged with the dispatch manager."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class RegisterRequest:
    """Delegate identity sent on register and heartbeat."""

    account_id: str
    delegate_name: str = ""
    token: str = ""
    delegate_id: str = ""
    delegate_type: str = "DOCKER"
    ng: bool = True
    polling: bool = True
    host_name: str = ""
    connected: bool = True
    keep_alive_packet: bool = False
    ip: str = ""
    tags: list[str] = field(default_factory=list)
    heartbeat_as_object: bool = True
    version: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "accountId": self.account_id,
            "delegateName": self.delegate_name,
            "delegateRandomToken": self.token,
            "delegateId": self.delegate_id,
            "delegateType": self.delegate_type,
            "ng": self.ng,
            "pollingModeEnabled": self.polling,
            "hostName": self.host_name,
            "connected": self.connected,
            "keepAlivePacket": self.keep_alive_packet,
            "ip": self.ip,
            "tags": list(self.tags),
            "heartbeatAsObject": self.heartbeat_as_object,
            "version": self.version,
        }


@dataclass(slots=True)
class RegisterResponse:
    """Identifier assigned by the manager."""

    id: str

    @classmethod
    def from_dict(cls, payload: Any) -> RegisterResponse:
        if not isinstance(payload, dict):
            raise TypeError("register response must be an object")
        value = payload.get("id")
        if value is None:
            # Older managers wrap the identifier in a resource envelope.
            resource = payload.get("resource")
            if isinstance(resource, dict):
                value = resource.get("delegateId")
        if not isinstance(value, str) or not value:
            raise ValueError("register response is missing a delegate id")
        return cls(id=value)


@dataclass(slots=True)
class TaskEvent:
    """One pending task announced to this delegate."""

    account_id: str
    task_id: str
    sync: bool = False
    task_type: str = ""

    @classmethod
    def from_dict(cls, payload: Any) -> TaskEvent:
        if not isinstance(payload, dict):
            raise TypeError("task event must be an object")
        task_id = payload.get("delegateTaskId")
        if not isinstance(task_id, str) or not task_id:
            raise ValueError("task event is missing delegateTaskId")
        return cls(
            account_id=str(payload.get("accountId", "")),
            task_id=task_id,
            sync=bool(payload.get("sync", False)),
            task_type=str(payload.get("taskType") or ""),
        )


@dataclass(slots=True)
class TaskEventsResponse:
    """Pending task events for one delegate."""

    events: list[TaskEvent] = field(default_factory=list)

    @classmethod
    def from_dict(cls, payload: Any) -> TaskEventsResponse:
        if not isinstance(payload, dict):
            raise TypeError("task events response must be an object")
        raw_events = payload.get("delegateTaskEvents") or []
        if not isinstance(raw_events, list):
            raise TypeError("delegateTaskEvents must be an array")
        return cls(events=[TaskEvent.from_dict(item) for item in raw_events])

    @property
    def task_ids(self) -> list[str]:
        return [event.task_id for event in self.events]


@dataclass(slots=True)
class Task:
    """Task acquired by this delegate; ``data`` is left as raw JSON for the executor."""

    id: str
    type: str = ""
    data: Any = None
    is_async: bool = False
    timeout: int = 0
    logging: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, payload: Any) -> Task:
        if not isinstance(payload, dict):
            raise TypeError("task must be an object")
        task_id = payload.get("id")
        if not isinstance(task_id, str) or not task_id:
            raise ValueError("task is missing id")
        logging_config = payload.get("logStreamingAbstractions") or {}
        if not isinstance(logging_config, dict):
            raise TypeError("logStreamingAbstractions must be an object")
        return cls(
            id=task_id,
            type=str(payload.get("type") or ""),
            data=payload.get("data"),
            is_async=bool(payload.get("async", False)),
            timeout=int(payload.get("timeout") or 0),
            logging={str(key): str(value) for key, value in logging_config.items()},
        )


@dataclass(slots=True)
class TaskResponse:
    """Terminal outcome of a task, reported back to the manager."""

    id: str
    data: Any = None
    type: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "data": self.data, "type": self.type}

    @classmethod
    def from_dict(cls, payload: Any) -> TaskResponse:
        if not isinstance(payload, dict):
            raise TypeError("task response must be an object")
        return cls(
            id=str(payload.get("id", "")),
            data=payload.get("data"),
            type=str(payload.get("type") or ""),
        )
