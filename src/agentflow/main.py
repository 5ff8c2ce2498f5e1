"""CLI entrypoint for agentflow."""

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import rich_click as click

from agentflow import __version__
from agentflow.errors import TaskNotFoundError
from agentflow.orchestrator.controllers import (
    OrchestratorCliController,
    TaskCreateCommand,
    TaskInspectCommand,
    TaskListCommand,
    TaskRunCommand,
)

click.rich_click.USE_MARKDOWN = True
ORCHESTRATOR_CONTROLLER = OrchestratorCliController()


@click.group()
@click.version_option(version=__version__, prog_name="agentflow")
def agentflow() -> None:
    """Multi-agent content generation CLI."""


@agentflow.group()
def task() -> None:
    """Task planning, execution and inspection commands."""


@task.command("create")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option("--topic", required=True, help="Campaign topic or brief.")
@click.option(
    "--content",
    "content_types",
    multiple=True,
    required=True,
    help="Content type to produce: text, image or video. Can be repeated or comma-separated.",
)
@click.option("--tone", default=None, help="Optional tone for generated copy.")
def task_create(
    db_path: Path | None,
    topic: str,
    content_types: tuple[str, ...],
    tone: str | None,
) -> None:
    """Plan a task for the brief and persist it as pending."""

    with _cli_errors():
        lines = ORCHESTRATOR_CONTROLLER.create_task(
            TaskCreateCommand(
                db_path=db_path,
                topic=topic,
                content_types=content_types,
                tone=tone,
            ),
        )
    _emit_lines(lines)


@task.command("run")
@click.argument("task_id")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option(
    "--mode",
    type=click.Choice(["real", "mock"], case_sensitive=False),
    default=None,
    help="Override provider invocation mode for this execution.",
)
@click.option(
    "--locale",
    type=click.Choice(["en", "ru"], case_sensitive=False),
    default=None,
    help="Locale passed to agents.",
)
def task_run(db_path: Path | None, task_id: str, mode: str | None, locale: str | None) -> None:
    """Execute every node of a task's plan."""

    with _cli_errors():
        result = ORCHESTRATOR_CONTROLLER.run_task(
            TaskRunCommand(
                db_path=db_path,
                task_id=task_id,
                mode=mode.lower() if mode else None,
                locale=locale.lower() if locale else None,
            ),
        )
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException(f"Task {task_id} failed.")


@task.command("show")
@click.argument("task_id")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
def task_show(db_path: Path | None, task_id: str) -> None:
    """Show task status and every run."""

    with _cli_errors():
        lines = ORCHESTRATOR_CONTROLLER.inspect_task(
            TaskInspectCommand(db_path=db_path, task_id=task_id),
        )
    _emit_lines(lines)


@task.command("logs")
@click.argument("task_id")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
def task_logs(db_path: Path | None, task_id: str) -> None:
    """Show run log history of a task."""

    with _cli_errors():
        lines = ORCHESTRATOR_CONTROLLER.task_logs(
            TaskInspectCommand(db_path=db_path, task_id=task_id),
        )
    _emit_lines(lines)


@task.command("artifacts")
@click.argument("task_id")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
def task_artifacts(db_path: Path | None, task_id: str) -> None:
    """List artifacts stored by a task's runs."""

    with _cli_errors():
        lines = ORCHESTRATOR_CONTROLLER.task_artifacts(
            TaskInspectCommand(db_path=db_path, task_id=task_id),
        )
    _emit_lines(lines)


@task.command("list")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option(
    "--status",
    type=click.Choice(["pending", "running", "completed", "failed"], case_sensitive=False),
    default=None,
    help="Optional status filter.",
)
@click.option(
    "--limit",
    type=click.IntRange(min=1, max=500),
    default=50,
    show_default=True,
    help="Maximum number of tasks to list.",
)
def task_list(db_path: Path | None, status: str | None, limit: int) -> None:
    """List recent tasks."""

    with _cli_errors():
        lines = ORCHESTRATOR_CONTROLLER.list_tasks(
            TaskListCommand(
                db_path=db_path,
                status=status.lower() if status else None,
                limit=limit,
            ),
        )
    _emit_lines(lines)


@agentflow.group()
def providers() -> None:
    """Provider pool commands."""


@providers.command("list")
def providers_list() -> None:
    """Show configured providers in invocation order and the resulting mode."""

    with _cli_errors():
        lines = ORCHESTRATOR_CONTROLLER.list_providers()
    _emit_lines(lines)


@agentflow.group()
def agents() -> None:
    """Agent registry commands."""


@agents.command("list")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
def agents_list(db_path: Path | None) -> None:
    """Show registered agent manifests."""

    with _cli_errors():
        lines = ORCHESTRATOR_CONTROLLER.list_agents(db_path)
    _emit_lines(lines)


@contextmanager
def _cli_errors() -> Iterator[None]:
    try:
        yield
    except (TaskNotFoundError, ValueError) as error:
        raise click.ClickException(str(error)) from error


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    agentflow()
