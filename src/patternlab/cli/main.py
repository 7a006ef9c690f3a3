"""Pattern Lab CLI - browse patterns and run their code from the terminal."""

from __future__ import annotations

import asyncio
import logging
import subprocess
import sys
from pathlib import Path
from typing import Any

import click
import httpx
from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from patternlab import __version__
from patternlab.data import load_patterns
from patternlab.export import generate_markdown
from patternlab.models import Pattern
from patternlab.sandbox import CodeExecutor, ExecutionSession, Notice, SandboxConfig
from patternlab.storage import MemStorage
from patternlab.utils.config import get_settings

console = Console()


def run_async(coro: Any) -> Any:
    """Run an async coroutine synchronously."""
    return asyncio.run(coro)


def _load_store() -> MemStorage:
    settings = get_settings()
    return MemStorage(load_patterns(settings.patterns_file or None))


def _require_pattern(slug: str) -> Pattern:
    pattern = run_async(_load_store().get_pattern_by_slug(slug))
    if pattern is None:
        console.print(f"[red]Pattern '{slug}' not found[/red]")
        sys.exit(1)
    return pattern


def _pattern_table(patterns: list[Pattern], title: str) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="dim", justify="right")
    table.add_column("Slug", style="cyan")
    table.add_column("Name")
    table.add_column("Category")
    table.add_column("Difficulty")
    for pattern in patterns:
        table.add_row(
            str(pattern.id),
            pattern.slug,
            pattern.name,
            pattern.category.value,
            pattern.difficulty.value,
        )
    return table


@click.group()
@click.version_option(version=__version__, prog_name="patternlab")
def cli() -> None:
    """Pattern Lab - design patterns with a runnable Python sandbox.

    \b
    Catalog:
        list                 List patterns (optionally by category)
        show <slug>          Show a pattern with its example code
        search <query>       Search names, descriptions and content
        export <slug>        Export a pattern as Markdown

    \b
    Sandbox:
        run <slug>           Run a pattern's code template
        run --file code.py   Run a local file in the sandbox

    \b
    Server:
        serve                Start the HTTP API
    """
    pass


@cli.command("list")
@click.option("--category", "-c", help="Only list patterns in this category")
def list_patterns(category: str | None) -> None:
    """List patterns in the catalog."""
    store = _load_store()
    if category:
        patterns = run_async(store.get_patterns_by_category(category))
    else:
        patterns = run_async(store.get_all_patterns())

    if not patterns:
        console.print("[yellow]No patterns found[/yellow]")
        return

    console.print(_pattern_table(patterns, "Design Patterns"))


@cli.command()
@click.argument("slug")
@click.option("--template", is_flag=True, help="Show the code template instead of the example")
def show(slug: str, template: bool) -> None:
    """Show a pattern and its code."""
    pattern = _require_pattern(slug)

    console.print(Panel(
        f"{pattern.description}\n\n"
        f"[dim]{pattern.category.value} · {pattern.type} · {pattern.difficulty.value}[/dim]",
        title=pattern.name,
        border_style="blue",
    ))

    code = pattern.code_template if template else pattern.code_example
    title = "Code Template" if template else "Implementation Example"
    console.print(Panel(
        Syntax(code.rstrip(), "python", line_numbers=True),
        title=title,
    ))


@cli.command()
@click.argument("query")
def search(query: str) -> None:
    """Search patterns by name, description and content."""
    patterns = run_async(_load_store().search_patterns(query))

    if not patterns:
        console.print(f"[yellow]No patterns match '{query}'[/yellow]")
        return

    console.print(_pattern_table(patterns, f"Results for '{query}'"))


@cli.command()
@click.argument("slug")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write to a file instead of stdout")
def export(slug: str, output: str | None) -> None:
    """Export a pattern as Markdown."""
    markdown = generate_markdown(_require_pattern(slug))

    if output:
        Path(output).write_text(markdown + "\n", encoding="utf-8")
        console.print(f"[green]✓ Exported {slug} to {output}[/green]")
    else:
        console.print(Markdown(markdown))


def _print_notice(notice: Notice) -> None:
    console.print(f"[red]{notice.title}:[/red] {escape(notice.description)}")


def _run_locally(source: str, delay: float) -> bool:
    """Run source through a local session. Returns True on success."""
    settings = get_settings()
    executor = CodeExecutor(SandboxConfig(allowed_imports=settings.sandbox_allowed_imports))
    session = ExecutionSession(
        source,
        executor=executor,
        delay=delay,
        on_notify=_print_notice,
    )

    with console.status("Running..."):
        result = run_async(session.run())

    border = "green" if result.success else "red"
    console.print(Panel(Text(session.output), title="Output", border_style=border))
    if result.traceback:
        console.print(Text(result.traceback.rstrip(), style="dim"))
    console.print(f"[dim]Executed in {result.execution_time_ms}ms[/dim]")
    return result.success


def _run_via_api(source: str, api: str) -> bool:
    """Run source through a Pattern Lab API. Returns True on success."""
    try:
        with httpx.Client(timeout=30.0) as client:
            response = client.post(f"{api}/api/execute", json={"source": source})
            response.raise_for_status()
            data = response.json()
    except httpx.ConnectError:
        console.print("[red]Could not connect to Pattern Lab API. Is it running?[/red]")
        console.print(f"[dim]Tried: {api}[/dim]")
        sys.exit(1)
    except httpx.HTTPError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    success = bool(data.get("success"))
    if not success:
        console.print(f"[red]Execution Error:[/red] {escape(str(data.get('errorMessage')))}")

    border = "green" if success else "red"
    console.print(Panel(Text(data.get("output", "")), title="Output", border_style=border))
    return success


@cli.command("run")
@click.argument("slug", required=False)
@click.option("--file", "-f", "file_path", type=click.Path(exists=True, dir_okay=False),
              help="Run a local Python file instead of a pattern")
@click.option("--example", is_flag=True, help="Run the pattern's example instead of its template")
@click.option("--api", default=None, help="Pattern Lab API URL (runs locally if not specified)")
@click.option("--delay", default=0.0, show_default=True, help="Seconds to wait before executing")
@click.option("--quiet", "-q", is_flag=True, help="Suppress log output")
def run(
    slug: str | None,
    file_path: str | None,
    example: bool,
    api: str | None,
    delay: float,
    quiet: bool,
) -> None:
    """Run pattern code in the sandbox.

    \b
    Examples:
        patternlab run singleton
        patternlab run observer-pattern --example
        patternlab run --file my_solution.py
        patternlab run singleton --api http://localhost:8000
    """
    if not quiet:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )

    if file_path:
        source = Path(file_path).read_text(encoding="utf-8")
    elif slug:
        pattern = _require_pattern(slug)
        source = pattern.code_example if example else pattern.code_template
    else:
        raise click.UsageError("Provide a pattern slug or --file")

    if api:
        success = _run_via_api(source, api.rstrip("/"))
    else:
        success = _run_locally(source, delay)

    if not success:
        sys.exit(1)


@cli.command()
@click.option("--host", default=None, help="Bind address (default from settings)")
@click.option("--port", "-p", type=int, default=None, help="Port (default from settings)")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Start the Pattern Lab API in the foreground."""
    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port

    args = [
        sys.executable, "-m", "uvicorn", "patternlab.api.main:app",
        "--host", host, "--port", str(port),
        "--log-level", settings.log_level.lower(),
    ]
    if reload:
        args.append("--reload")

    console.print(f"[blue]Starting Pattern Lab API on http://{host}:{port}[/blue]")
    console.print("[dim]Press Ctrl+C to stop.[/dim]")
    try:
        subprocess.run(args)
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopping...[/yellow]")


def main() -> None:
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
