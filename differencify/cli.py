"""CLI entry point for the visual regression runner."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from differencify.errors import DifferencifyError
from differencify.models.config import SuiteConfig
from differencify.models.test_spec import RunMode
from differencify.runner import BrowserRunner

console = Console()


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def parse_overrides(pairs: tuple[str, ...]) -> dict:
    """Turn ``KEY=VALUE`` pairs into an options dict; values are read as JSON when they parse."""
    overrides = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected KEY=VALUE, got '{pair}'", param_hint="--set")
        try:
            overrides[key] = json.loads(raw)
        except json.JSONDecodeError:
            overrides[key] = raw
    return overrides


async def run_suite(runner: BrowserRunner, suite: SuiteConfig) -> list[tuple[str, str, str]]:
    """Run every spec in order; returns (name, status, detail) rows."""
    rows = []
    for spec in suite.tests:
        try:
            await runner.run(spec)
            rows.append((spec.name, "pass", spec.type.value))
        except DifferencifyError as e:
            rows.append((spec.name, "fail", f"{type(e).__name__}: {e}"))
    return rows


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Visual regression testing with declarative browser steps"""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj.setdefault("runner_factory", BrowserRunner)


@cli.command()
@click.option("--config", "-c", default="differencify.json", help="Config file path")
@click.option("--update", "mode", flag_value=RunMode.UPDATE.value, help="Write new baselines")
@click.option("--test", "mode", flag_value=RunMode.TEST.value, help="Compare against baselines")
@click.option("--set", "overrides", multiple=True, metavar="KEY=VALUE",
              help="Override a runner option, e.g. --set timeout_ms=5000")
@click.pass_context
def run(ctx: click.Context, config: str, mode: str | None, overrides: tuple[str, ...]) -> None:
    """Run every test in the config file."""
    try:
        suite = SuiteConfig.load(config)
    except FileNotFoundError:
        console.print(f"[red]Config file not found: {config}[/red]")
        console.print("Run 'differencify init' to create a default config.")
        sys.exit(1)
    except ValidationError as e:
        console.print(f"[red]Invalid config {config}:[/red]\n{e}")
        sys.exit(1)

    try:
        options = suite.options.merged(parse_overrides(overrides))
    except ValidationError as e:
        console.print(f"[red]Invalid --set override:[/red]\n{e}")
        sys.exit(1)

    if mode:
        for spec in suite.tests:
            spec.type = RunMode(mode)

    runner = ctx.obj["runner_factory"](options)
    rows = asyncio.run(run_suite(runner, suite))

    table = Table(title="Results Summary")
    table.add_column("Test", style="bold")
    table.add_column("Result")
    table.add_column("Detail")
    for name, status, detail in rows:
        colour = "green" if status == "pass" else "red"
        table.add_row(name, f"[{colour}]{status}[/{colour}]", detail)
    console.print(table)

    if any(status == "fail" for _, status, _ in rows):
        sys.exit(1)


@cli.command()
@click.option("--config", "-c", default="differencify.json", help="Config file path")
def init(config: str) -> None:
    """Create a default configuration file."""
    config_path = Path(config)
    if config_path.exists():
        if not click.confirm(f"{config_path} already exists. Overwrite?"):
            return

    SuiteConfig().save(config_path)
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nRecord baselines, then compare against them:")
    console.print("  [blue]differencify run --update[/blue]")
    console.print("  [blue]differencify run[/blue]")


if __name__ == "__main__":
    cli()
