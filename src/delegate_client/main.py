"""CLI entrypoint for delegate-client."""

from __future__ import annotations

import logging
from collections.abc import Callable

import rich_click as click

from delegate_client import __version__
from delegate_client.controllers import (
    AcquireCommand,
    DelegateCliController,
    RegisterCommand,
    SendStatusCommand,
    TaskEventsCommand,
)
from delegate_client.http.errors import DelegateClientError

click.rich_click.USE_MARKDOWN = True
CONTROLLER = DelegateCliController()


@click.group()
@click.version_option(version=__version__, prog_name="delegate-client")
@click.option("--verbose", is_flag=True, default=False, help="Log request and retry details.")
def delegate_client(verbose: bool) -> None:
    """Delegate manager client.

    Connection settings come from `DELEGATE_MANAGER_ENDPOINT`,
    `DELEGATE_ACCOUNT_ID` and `DELEGATE_TOKEN`.
    """

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _identity_options(func: Callable[..., None]) -> Callable[..., None]:
    func = click.option(
        "--tag",
        "tags",
        multiple=True,
        help="Delegate selector tag. Can be repeated.",
    )(func)
    func = click.option("--ip", default="", help="Delegate IP address.")(func)
    func = click.option("--host", "host_name", default=None, help="Host name (default: local).")(
        func,
    )
    func = click.option("--delegate-id", default="", help="Previously assigned delegate id.")(func)
    return click.option("--name", default=None, help="Delegate name (default: DELEGATE_NAME).")(
        func,
    )


@delegate_client.command("register")
@_identity_options
def register(
    name: str | None,
    delegate_id: str,
    host_name: str | None,
    ip: str,
    tags: tuple[str, ...],
) -> None:
    """Register this delegate with the manager (retried within the register ceiling)."""

    _emit_lines(
        lambda: CONTROLLER.register(
            RegisterCommand(
                name=name,
                delegate_id=delegate_id,
                host_name=host_name,
                ip=ip,
                tags=tags,
            ),
        ),
    )


@delegate_client.command("heartbeat")
@_identity_options
def heartbeat(
    name: str | None,
    delegate_id: str,
    host_name: str | None,
    ip: str,
    tags: tuple[str, ...],
) -> None:
    """Send one heartbeat (single attempt)."""

    _emit_lines(
        lambda: CONTROLLER.heartbeat(
            RegisterCommand(
                name=name,
                delegate_id=delegate_id,
                host_name=host_name,
                ip=ip,
                tags=tags,
            ),
        ),
    )


@delegate_client.command("task-events")
@click.argument("delegate_id")
def task_events(delegate_id: str) -> None:
    """List tasks waiting for DELEGATE_ID."""

    _emit_lines(lambda: CONTROLLER.task_events(TaskEventsCommand(delegate_id=delegate_id)))


@delegate_client.command("acquire")
@click.argument("delegate_id")
@click.argument("task_id")
def acquire(delegate_id: str, task_id: str) -> None:
    """Claim TASK_ID for DELEGATE_ID."""

    _emit_lines(
        lambda: CONTROLLER.acquire(AcquireCommand(delegate_id=delegate_id, task_id=task_id)),
    )


@delegate_client.command("send-status")
@click.argument("delegate_id")
@click.argument("task_id")
@click.option("--data", required=True, help="Task result as a JSON document.")
@click.option("--type", "response_type", default="", help="Response type marker.")
def send_status(delegate_id: str, task_id: str, data: str, response_type: str) -> None:
    """Report the outcome of TASK_ID (retried within the status ceiling)."""

    _emit_lines(
        lambda: CONTROLLER.send_status(
            SendStatusCommand(
                delegate_id=delegate_id,
                task_id=task_id,
                data=data,
                response_type=response_type,
            ),
        ),
    )


def _emit_lines(run: Callable[[], list[str]]) -> None:
    try:
        lines = run()
    except (DelegateClientError, ValueError) as error:
        raise click.ClickException(str(error)) from error
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    delegate_client()
