"""CLI entry point for SnapDrive."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from snapdrive.device.command_executor import CommandExecutor
from snapdrive.device.simctl_client import SimctlClient
from snapdrive.errors import SnapDriveError
from snapdrive.imaging.comparator import compare as compare_images
from snapdrive.models.config import SnapDriveConfig
from snapdrive.models.results import CompareOptions
from snapdrive.orchestrator import Orchestrator
from snapdrive.scenario.loader import SCENARIO_FILE, cases_root, list_test_cases

console = Console()

DEFAULT_CONFIG = "snapdrive.json"

EXAMPLE_SCENARIO = {
    "name": "Example",
    "description": "Launch the app and check the first screen",
    "steps": [
        {"action": "launch_app", "bundleId": "com.example.app"},
        {"action": "wait", "seconds": 2},
        {"action": "checkpoint", "name": "home"},
        {"action": "smart_checkpoint", "name": "home_full"},
    ],
}


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load_config(path: str) -> SnapDriveConfig:
    try:
        cfg = SnapDriveConfig.load(path)
    except FileNotFoundError:
        console.print(f"[red]Config file not found: {path}[/red]")
        console.print("Run 'snapdrive init' to create a default config.")
        sys.exit(1)

    # --verbose wins over the configured level
    root = logging.getLogger()
    if root.level != logging.DEBUG:
        root.setLevel(getattr(logging, cfg.log_level.upper(), logging.INFO))
    return cfg


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Visual regression snapshots for iOS simulator UI tests"""
    setup_logging(verbose)


@cli.command()
@click.option("--test-case", "-t", "test_cases", multiple=True, help="Test case id (repeatable)")
@click.option("--update-baselines", "-u", is_flag=True, help="Record checkpoints as new baselines")
@click.option("--device", "-d", default=None, help="Simulator UDID")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def run(test_cases: tuple[str, ...], update_baselines: bool, device: str | None, config: str) -> None:
    """Run scenarios and compare checkpoints against baselines."""
    cfg = _load_config(config)
    orchestrator = Orchestrator(cfg, device_udid=device)
    try:
        result = orchestrator.run(list(test_cases) or None, update_baselines=update_baselines)
    except SnapDriveError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    table = Table(title=f"Run {result.run_id}")
    table.add_column("Test case", style="bold")
    table.add_column("Result")
    table.add_column("Checkpoints")
    table.add_column("Duration")
    for r in result.results:
        status = "[green]PASS[/green]" if r.success else "[red]FAIL[/red]"
        failed = [c.name for c in r.checkpoints if not c.match]
        cps = f"{len(r.checkpoints) - len(failed)}/{len(r.checkpoints)}"
        if failed and not update_baselines:
            cps += f" [red]({', '.join(failed)})[/red]"
        table.add_row(r.test_case_id, status, cps, f"{r.duration_ms / 1000:.1f}s")
    console.print(table)
    console.print(f"Passed: [green]{result.passed}[/green]  Failed: [red]{result.failed}[/red]")
    console.print(f"  JSON report: [blue]{result.report_path}[/blue]")

    if result.failed:
        sys.exit(1)


@cli.command("list")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def list_cmd(config: str) -> None:
    """List available test cases."""
    cfg = _load_config(config)
    cases = list_test_cases(cfg.snapdrive_dir)
    if not cases:
        console.print("[yellow]No test cases found[/yellow]")
        return

    table = Table(title="Test cases")
    table.add_column("ID", style="bold")
    table.add_column("Name")
    table.add_column("Steps")
    table.add_column("Baselines")
    for tc in cases:
        baselines = Path(tc.baselines_dir)
        count = len(list(baselines.glob("*.png"))) if baselines.is_dir() else 0
        table.add_row(tc.id, tc.scenario.name, str(len(tc.scenario.steps)), str(count))
    console.print(table)


@cli.command()
@click.argument("actual", type=click.Path(exists=True, dir_okay=False))
@click.argument("baseline", type=click.Path(dir_okay=False))
@click.option("--tolerance", default=0.0, type=click.FloatRange(0.0, 1.0), help="Allowed differing-pixel ratio")
@click.option("--diff", "diff_path", default=None, type=click.Path(dir_okay=False), help="Write diff image here")
def compare(actual: str, baseline: str, tolerance: float, diff_path: str | None) -> None:
    """Compare two screenshots pixel by pixel."""
    options = CompareOptions(
        tolerance=tolerance, generate_diff=diff_path is not None,
        diff_path=Path(diff_path) if diff_path else None,
    )
    try:
        result = compare_images(actual, baseline, options)
    except SnapDriveError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(2)

    status = "[green]MATCH[/green]" if result.match else "[red]DIFFERENT[/red]"
    console.print(f"{status}  {result.difference_ratio:.4%} different "
                  f"({result.different_pixels}/{result.total_pixels} pixels)")
    if result.diff_image_path:
        console.print(f"  Diff: [blue]{result.diff_image_path}[/blue]")
    if not result.match:
        sys.exit(1)


@cli.command()
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
@click.option("--booted", is_flag=True, help="Only show the booted simulator")
def devices(config: str, booted: bool) -> None:
    """List available simulators."""
    cfg = _load_config(config) if Path(config).exists() else SnapDriveConfig()
    client = SimctlClient(CommandExecutor(), timeout_ms=cfg.command_timeout_ms)
    try:
        if booted:
            device = asyncio.run(client.get_booted_device())
            sims = [device] if device else []
        else:
            sims = asyncio.run(client.list_devices())
    except SnapDriveError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    if booted and not sims:
        console.print("[yellow]No booted simulator[/yellow]")
        sys.exit(1)

    table = Table(title="Simulators")
    table.add_column("Name", style="bold")
    table.add_column("UDID")
    table.add_column("Runtime")
    table.add_column("State")
    for s in sims:
        state = f"[green]{s.state}[/green]" if s.state == "Booted" else s.state
        table.add_row(s.name, s.udid, s.runtime, state)
    console.print(table)


@cli.command()
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def init(config: str) -> None:
    """Create a default configuration file and an example test case."""
    config_path = Path(config)
    if config_path.exists():
        if not click.confirm(f"{config_path} already exists. Overwrite?"):
            return

    cfg = SnapDriveConfig()
    cfg.save(config_path)
    console.print(f"[green]Created {config_path}[/green]")

    example = cases_root(cfg.snapdrive_dir) / "example" / SCENARIO_FILE
    if not example.exists():
        example.parent.mkdir(parents=True, exist_ok=True)
        with open(example, "w") as f:
            yaml.safe_dump(EXAMPLE_SCENARIO, f, sort_keys=False)
        console.print(f"[green]Created {example}[/green]")

    console.print("\nRecord baselines, then compare against them:")
    console.print("  [blue]snapdrive run --update-baselines[/blue]")
    console.print("  [blue]snapdrive run[/blue]")


if __name__ == "__main__":
    cli()
