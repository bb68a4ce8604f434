"""Signal Notes CLI - capture notes, refresh priorities, work the action list."""

import logging
import os
import signal
import sys
from datetime import datetime
from typing import Annotated, Any, NoReturn

import httpx
import typer

# Default API base URL
DEFAULT_API_URL = "http://localhost:8000"

logging.basicConfig(
    level=getattr(logging, os.getenv("SIGNOTE_LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s - %(levelname)s - %(message)s",
    datefmt="%H:%M:%S",
)

PRIORITY_COLORS: dict[str, str] = {
    "P0": typer.colors.RED,
    "P1": typer.colors.YELLOW,
    "P2": typer.colors.WHITE,
}

app = typer.Typer(
    name="signote",
    help="Meeting notes in, ranked action items out.",
    add_completion=False,
)


def get_api_url() -> str:
    """Get the API base URL from environment or default."""
    return os.environ.get("SIGNOTE_API_URL", DEFAULT_API_URL)


def fail(message: str) -> NoReturn:
    """Print an error and exit with status 1."""
    typer.echo(typer.style("✗ ", fg=typer.colors.RED, bold=True) + message, err=True)
    sys.exit(1)


def succeed(message: str) -> None:
    typer.echo(typer.style("✓ ", fg=typer.colors.GREEN, bold=True) + message)


def error_detail(response: httpx.Response) -> str:
    """Pull the error detail out of an API response."""
    try:
        return str(response.json().get("detail", response.text))
    except ValueError:
        return response.text


def call_api(
    method: str,
    path: str,
    *,
    timeout: float = 30.0,
    **kwargs: Any,
) -> httpx.Response:
    """Send a request to the API, exiting on connection problems."""
    api_url = get_api_url()
    try:
        with httpx.Client(timeout=timeout) as client:
            return client.request(method, f"{api_url}{path}", **kwargs)
    except httpx.ConnectError:
        fail(f"Cannot connect to API at {api_url}. Is the server running?")
    except httpx.TimeoutException:
        fail("Request timed out. Please try again.")


def format_due(due_date: str | None) -> str:
    """Format an ISO due date as YYYY-MM-DD."""
    if not due_date:
        return "no due date"
    try:
        return "due " + datetime.fromisoformat(due_date.replace("Z", "+00:00")).strftime(
            "%Y-%m-%d"
        )
    except ValueError:
        return "due " + due_date[:10]


def format_action(action: dict[str, Any]) -> str:
    """Format one action as a two-line listing."""
    priority = action.get("priority", "P1")
    badges = []
    if action.get("is_ceo_related"):
        badges.append("CEO")
    if action.get("is_standing"):
        badges.append("standing")
    if action.get("status") == "suggested":
        badges.append("suggested")

    header = (
        typer.style(f"[{priority}]", fg=PRIORITY_COLORS.get(priority, typer.colors.WHITE), bold=True)
        + f" {action.get('sort_score', 0.0):.1f} • {format_due(action.get('due_date'))}"
    )
    if badges:
        header += " • " + ", ".join(badges)

    return f"{header}\n   {action.get('activity', '')}\n   id: {action.get('id', '?')}"


@app.command()
def note(
    title: Annotated[str, typer.Argument(help="Note title")],
    content: Annotated[str, typer.Argument(help="Note content")],
    subtitle: Annotated[
        str | None,
        typer.Option("-s", "--subtitle", help="Optional subtitle"),
    ] = None,
    extract: Annotated[
        bool,
        typer.Option("--extract/--no-extract", help="Run extraction after saving"),
    ] = True,
) -> None:
    """Capture a meeting note and extract action items from it.

    Examples:
        signote note "Weekly sync" "Eric asked for an NVIDIA update"
        signote note "1:1" "..." --no-extract
    """
    payload: dict[str, Any] = {"title": title, "content": content}
    if subtitle:
        payload["subtitle"] = subtitle

    response = call_api("POST", "/api/notes", json=payload)
    if response.status_code != 201:
        fail(f"Failed to save note: {error_detail(response)}")

    note_id = response.json().get("id", "unknown")
    succeed(f"Saved note {note_id}")

    if not extract:
        sys.exit(0)

    response = call_api("POST", f"/api/notes/{note_id}/extract", timeout=120.0)
    if response.status_code != 200:
        fail(f"Extraction failed: {error_detail(response)}")

    data = response.json()
    message = (
        f"Extracted {data.get('actions_created', 0)} actions, "
        f"{data.get('topics_seen', 0)} topics"
    )
    if data.get("ceo_mentioned"):
        message += " (CEO mentioned)"
    succeed(message)
    sys.exit(0)


@app.command()
def refresh() -> None:
    """Recompute topic frequencies, standing actions, goals and scores."""
    response = call_api("POST", "/api/refresh", timeout=300.0)

    if response.status_code == 409:
        fail("A refresh is already running.")

    data = response.json() if response.status_code in (200, 500) else {}
    if response.status_code != 200 or not data.get("success"):
        failed_step = data.get("failed_step") or "unknown step"
        fail(f"Refresh failed at {failed_step}: {data.get('error') or error_detail(response)}")

    succeed("Refreshed")
    for step in data.get("steps", []):
        details = ", ".join(f"{k}={v}" for k, v in step.get("detail", {}).items())
        typer.echo(f"   {step.get('name')}: {details}")
    sys.exit(0)


@app.command()
def actions(
    limit: Annotated[
        int,
        typer.Option("--limit", "-l", help="Maximum number of actions to show"),
    ] = 20,
) -> None:
    """List open actions, highest priority score first."""
    response = call_api("GET", "/api/actions")
    if response.status_code != 200:
        fail(f"Request failed: {error_detail(response)}")

    results = response.json()
    if not results:
        typer.echo(typer.style("No open actions", fg=typer.colors.YELLOW))
        sys.exit(0)

    typer.echo(f"\n{typer.style('Actions:', bold=True)}\n")
    for action in results[:limit]:
        typer.echo(format_action(action))
        typer.echo()
    sys.exit(0)


@app.command()
def accept(action_id: Annotated[str, typer.Argument(help="Action ID")]) -> None:
    """Accept a suggested action."""
    response = call_api("POST", f"/api/actions/{action_id}/accept")
    if response.status_code != 200:
        fail(f"Failed to accept action: {error_detail(response)}")
    succeed(f"Accepted: {response.json().get('activity', action_id)}")
    sys.exit(0)


@app.command()
def done(action_id: Annotated[str, typer.Argument(help="Action ID")]) -> None:
    """Mark an action done. Standing actions are completed for this cycle."""
    response = call_api("GET", f"/api/actions/{action_id}")
    if response.status_code != 200:
        fail(f"Action not found: {error_detail(response)}")

    if response.json().get("is_standing"):
        response = call_api("POST", f"/api/actions/{action_id}/complete-standing")
    else:
        response = call_api("PATCH", f"/api/actions/{action_id}", json={"status": "done"})

    if response.status_code != 200:
        fail(f"Failed to complete action: {error_detail(response)}")
    succeed("Done")
    sys.exit(0)


@app.command("complete-standing")
def complete_standing(action_id: Annotated[str, typer.Argument(help="Action ID")]) -> None:
    """Record a completion of a standing action."""
    response = call_api("POST", f"/api/actions/{action_id}/complete-standing")
    if response.status_code != 200:
        fail(f"Failed to complete standing action: {error_detail(response)}")

    if not response.json().get("completed"):
        fail("Not a standing action (or not found)")
    succeed("Standing action completed for this cycle")
    sys.exit(0)


@app.command()
def goals() -> None:
    """List macro goals with their top actions."""
    response = call_api("GET", "/api/macro-goals")
    if response.status_code != 200:
        fail(f"Request failed: {error_detail(response)}")

    results = response.json()
    if not results:
        typer.echo(typer.style("No macro goals yet. Try `signote refresh`.", fg=typer.colors.YELLOW))
        sys.exit(0)

    for goal in results:
        marker = " (edited)" if goal.get("edited_by_user") else ""
        typer.echo(typer.style(f"\n◆ {goal.get('goal', '')}{marker}", bold=True))
        if goal.get("topic_keys"):
            typer.echo(f"   topics: {', '.join(goal['topic_keys'])}")
        for action in goal.get("actions", []):
            typer.echo(f"   - [{action.get('priority')}] {action.get('activity')}")
    sys.exit(0)


@app.command()
def serve(
    port: Annotated[int, typer.Option("--port", help="Port for the API server")] = 8000,
    reload: Annotated[bool, typer.Option("--reload", help="Reload on code changes")] = False,
) -> None:
    """Start the Signal Notes API server."""
    import subprocess

    typer.echo(typer.style("🚀 ", bold=True) + f"Starting API server on http://localhost:{port}")

    command = [
        sys.executable, "-m", "uvicorn",
        "signote.api.main:app",
        "--host", "0.0.0.0",
        "--port", str(port),
    ]
    if reload:
        command.append("--reload")

    proc = subprocess.Popen(command)

    def signal_handler(signum: int, frame: object) -> None:
        typer.echo("\n" + typer.style("Stopping server...", fg=typer.colors.YELLOW))
        proc.terminate()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    sys.exit(proc.wait())


if __name__ == "__main__":
    app()
