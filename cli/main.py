"""Mind-map CLI: entry-point for graph files and similarity analysis.

Usage:
    python cli/main.py --help

Sub-command groups:
    graph    → select, view and grow a YAML graph file
    analyze  → similarity hierarchy, edges and clusters
    serve    → run the HTTP API
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from mindmap.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import typer

from cli.commands.analyze import analyze_app
from cli.commands.graph import graph_app

app = typer.Typer(
    name="mindmap",
    help="Embedding-driven mind-map CLI.",
    no_args_is_help=True,
)

app.add_typer(graph_app, name="graph")
app.add_typer(analyze_app, name="analyze")


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address."),
    port: int = typer.Option(8000, help="Bind port."),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes."),
) -> None:
    """Run the mind-map HTTP API with uvicorn."""
    import uvicorn

    typer.echo(f"[serve] http://{host}:{port}")
    uvicorn.run("mindmap.api.app:app", host=host, port=port, reload=reload)


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
