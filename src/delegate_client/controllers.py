"""Controllers for one-shot manager CLI commands."""

from __future__ import annotations

import json
import socket
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from delegate_client import __version__
from delegate_client.client import DelegateClient
from delegate_client.config import Settings
from delegate_client.models import RegisterRequest, TaskResponse


@dataclass(slots=True)
class RegisterCommand:
    """CLI input for register and heartbeat."""

    name: str | None = None
    delegate_id: str = ""
    host_name: str | None = None
    ip: str = ""
    tags: tuple[str, ...] = ()


@dataclass(slots=True)
class TaskEventsCommand:
    """CLI input for task polling."""

    delegate_id: str


@dataclass(slots=True)
class AcquireCommand:
    """CLI input for task acquisition."""

    delegate_id: str
    task_id: str


@dataclass(slots=True)
class SendStatusCommand:
    """CLI input for task status reporting."""

    delegate_id: str
    task_id: str
    data: str
    response_type: str = ""


class DelegateCliController:
    """Runs single manager calls and renders their results as lines."""

    def __init__(self, settings_loader: Callable[[], Settings] = Settings.from_env) -> None:
        self._settings_loader = settings_loader

    def register(self, command: RegisterCommand) -> list[str]:
        with self._client() as (client, settings):
            response = client.register(_register_request(settings, command))
        return [f"Registered: delegate_id={response.id}"]

    def heartbeat(self, command: RegisterCommand) -> list[str]:
        with self._client() as (client, settings):
            client.heartbeat(_register_request(settings, command))
        return ["Heartbeat sent."]

    def task_events(self, command: TaskEventsCommand) -> list[str]:
        with self._client() as (client, _):
            events = client.get_task_events(command.delegate_id)
        if not events.events:
            return ["No pending tasks."]
        return [
            f"task_id={event.task_id} type={event.task_type or '-'} sync={event.sync}"
            for event in events.events
        ]

    def acquire(self, command: AcquireCommand) -> list[str]:
        with self._client() as (client, _):
            task = client.acquire(command.delegate_id, command.task_id)
        if task is None:
            return [f"Task {command.task_id}: nothing to acquire."]
        return [
            f"Acquired: task_id={task.id} type={task.type or '-'} async={task.is_async}",
            json.dumps(task.data, ensure_ascii=False, sort_keys=True),
        ]

    def send_status(self, command: SendStatusCommand) -> list[str]:
        try:
            data: Any = json.loads(command.data)
        except json.JSONDecodeError as error:
            raise ValueError(f"--data must be valid JSON: {error}") from error
        with self._client() as (client, _):
            client.send_status(
                command.delegate_id,
                command.task_id,
                TaskResponse(id=command.task_id, data=data, type=command.response_type),
            )
        return [f"Status sent for task {command.task_id}."]

    @contextmanager
    def _client(self) -> Iterator[tuple[DelegateClient, Settings]]:
        settings = self._settings_loader()
        settings.validate()
        with DelegateClient.from_settings(settings) as client:
            yield client, settings


def _register_request(settings: Settings, command: RegisterCommand) -> RegisterRequest:
    tags = command.tags or settings.identity.tags
    return RegisterRequest(
        account_id=settings.manager.account_id,
        delegate_name=command.name or settings.identity.name or socket.gethostname(),
        token=settings.manager.token,
        delegate_id=command.delegate_id,
        delegate_type=settings.identity.delegate_type,
        host_name=command.host_name or socket.gethostname(),
        ip=command.ip,
        tags=list(tags),
        version=__version__,
    )
