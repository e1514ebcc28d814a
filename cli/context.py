"""Persistent state management for the mind-map CLI.

Tracks the "active graph" file and its title.
Stored in `~/.mindmap_cli/context.json`.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from functools import wraps
from pathlib import Path
from typing import Callable

import typer
from mindmap.config import settings


@dataclass
class CliContext:
    active_graph_path: str | None = None
    active_graph_title: str | None = None

    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=2)

    @classmethod
    def from_json(cls, data: str) -> CliContext:
        try:
            raw = json.loads(data)
            return cls(**raw)
        except (json.JSONDecodeError, TypeError):
            return cls()


def _get_context_path() -> Path:
    """Return the path to the context JSON file."""
    return settings.cli_config_dir / "context.json"


def load_context() -> CliContext:
    """Load the CLI context from disk. Returns defaults if missing/corrupt."""
    path = _get_context_path()
    if not path.exists():
        return CliContext()

    try:
        return CliContext.from_json(path.read_text(encoding="utf-8"))
    except OSError:
        return CliContext()


def save_context(ctx: CliContext) -> None:
    """Save the CLI context to disk."""
    settings.cli_config_dir.mkdir(parents=True, exist_ok=True)
    _get_context_path().write_text(ctx.to_json(), encoding="utf-8")


def active_graph_path() -> Path:
    """Return the active graph file.  Only valid inside ``@require_context``."""
    return Path(load_context().active_graph_path or "")


def require_context(func: Callable) -> Callable:
    """Decorator for CLI commands that operate on the active graph file.

    Aborts execution if no graph is selected or the file has disappeared.
    Commands call :func:`load_context` / :func:`active_graph_path` for data.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        ctx = load_context()
        if not ctx.active_graph_path:
            typer.echo("❌ No active graph selected.")
            typer.echo("Run 'graph use <file.yaml>' first.")
            raise typer.Exit(code=1)
        if not Path(ctx.active_graph_path).exists():
            typer.echo(f"❌ Active graph file not found: {ctx.active_graph_path}")
            raise typer.Exit(code=1)
        return func(*args, **kwargs)

    return wrapper
