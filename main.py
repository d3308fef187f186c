#!/usr/bin/env python3
"""
Workflow Monitor CLI

Watches a long-running workflow by taking screenshots at a fixed interval,
has a vision model annotate them in one continuous conversation, and writes
an HTML/Markdown report.
"""

from functools import partial
import re
from pathlib import Path
from typing import Annotated, Optional

import typer
from dotenv import load_dotenv
from rich.console import Console

from config import get_config, update_config
from utils.logger import MonitorLogger
from utils.tracking import CostTracker, Timer
from utils.llm import LLMClient

ANNOTATION_NUMBER = re.compile(r"screenshot-(\d+)-")

load_dotenv()

app = typer.Typer(
    name="workflow-monitor",
    help="Capture, annotate and report on a running workflow",
    rich_markup_mode="rich",
)

console = Console()


def _print_run_summary(
    logger: MonitorLogger,
    cost_tracker: CostTracker,
    timer: Timer,
    status: str,
    style: str,
    report_dir: Path | None,
) -> None:
    """Print cost table and the final summary panel."""
    if cost_tracker.phase_stats:
        logger.table(
            "Cost by Phase",
            ["Phase", "Model", "Calls", "Input", "Output", "Cost"],
            cost_tracker.get_phase_summary(),
        )
        logger.print()

    summary_data = {
        "Status": status,
        "Duration": timer.elapsed_str,
        **cost_tracker.get_summary(),
        "Log File": str(logger.log_file),
    }
    if report_dir is not None:
        summary_data["Report"] = str(report_dir / "index.html")
    logger.summary("Monitor Complete", summary_data, style=style)


@app.command()
def monitor(
    num_screenshots: Annotated[
        Optional[int],
        typer.Option("-n", "--num-screenshots", help="Number of screenshots to take (default 10)"),
    ] = None,
    interval_ms: Annotated[
        Optional[int],
        typer.Option("--interval-ms", help="Milliseconds between screenshots (default 60000)"),
    ] = None,
    prompt: Annotated[
        Optional[str],
        typer.Option("-p", "--prompt", help="Prompt used to start the observed workflow"),
    ] = None,
    model: Annotated[
        Optional[str],
        typer.Option("-m", "--model", help="Vision model used for analysis"),
    ] = None,
    snapshots_dir: Annotated[
        Optional[Path],
        typer.Option("--screenshots-dir", help="Where screenshots are written"),
    ] = None,
    output: Annotated[
        Optional[Path],
        typer.Option("-o", "--output", help="Report output directory"),
    ] = None,
    type_prompt: Annotated[
        bool,
        typer.Option(
            "--type-prompt/--manual",
            help="Type the prompt into the focused field, or wait for you to start the workflow",
        ),
    ] = False,
) -> None:
    """Start a workflow, screenshot it periodically, analyze and report."""
    from capture.driver import KeyboardDriver, ManualDriver
    from capture.scheduler import CaptureExhausted
    from capture.screen import ScreenCapture
    from pipeline.runner import MonitorRunner

    try:
        cfg = update_config(
            snapshot_count=num_screenshots,
            interval_ms=interval_ms,
            prompt=prompt,
            model=model,
            snapshots_dir=snapshots_dir,
            report_dir=output,
        )
    except ValueError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(2)

    logger = MonitorLogger("monitor", logs_dir=cfg.logs_dir)
    cost_tracker = CostTracker()
    llm_client = LLMClient(cost_tracker, logger)
    timer = Timer("Monitor")

    try:
        timer.start()

        logger.header("Workflow Monitor")
        logger.info(
            f"Configuration: Taking {cfg.snapshot_count} screenshots "
            f"with {cfg.interval_ms}ms interval"
        )
        logger.info(f"Model: [cyan]{cfg.model}[/cyan]")
        logger.info(f"Screenshots: [cyan]{cfg.snapshots_dir}[/cyan]")
        logger.info(f"Report: [cyan]{cfg.report_dir}[/cyan]")

        if type_prompt:
            driver = KeyboardDriver(logger=logger)
        else:
            driver = ManualDriver(logger=logger)

        runner = MonitorRunner(
            config=cfg,
            capture=ScreenCapture(),
            chat=partial(llm_client.chat, cfg.model, max_tokens=cfg.max_tokens, phase="analysis"),
            driver=driver,
            logger=logger,
        )

        try:
            result = runner.run()
        except CaptureExhausted as e:
            timer.stop()
            _print_run_summary(
                logger, cost_tracker, timer,
                status=f"[red]Failed: {e.message}[/red]",
                style="red",
                report_dir=None,
            )
            raise typer.Exit(1)

        timer.stop()

        logger.header("Monitor Summary")
        if result.analysis.degraded:
            status = "[yellow]Completed (analysis degraded)[/yellow]"
        elif not result.report_written:
            status = "[yellow]Completed (report not written)[/yellow]"
        else:
            status = "[green]Completed[/green]"
        _print_run_summary(
            logger, cost_tracker, timer,
            status=status,
            style="green" if result.report_written else "yellow",
            report_dir=cfg.report_dir if result.report_written else None,
        )

    finally:
        logger.close()


@app.command()
def analyze(
    paths_file: Annotated[
        Path,
        typer.Argument(help="screenshot_paths.json written by a previous monitor run"),
    ],
    model: Annotated[
        Optional[str],
        typer.Option("-m", "--model", help="Vision model used for analysis"),
    ] = None,
    output: Annotated[
        Optional[Path],
        typer.Option("-o", "--output", help="Report output directory"),
    ] = None,
) -> None:
    """Analyze previously captured screenshots and (re)write the report."""
    from pipeline.runner import MonitorRunner

    if not paths_file.exists():
        console.print(f"[red]✗[/red] Screenshot list not found: {paths_file}")
        raise typer.Exit(1)

    try:
        cfg = update_config(model=model, report_dir=output or paths_file.parent)
    except ValueError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(2)

    logger = MonitorLogger("analyze", logs_dir=cfg.logs_dir)
    cost_tracker = CostTracker()
    llm_client = LLMClient(cost_tracker, logger)
    timer = Timer("Analysis")

    try:
        timer.start()
        logger.header("Screenshot Analysis")
        logger.info(f"Model: [cyan]{cfg.model}[/cyan]")

        def no_capture(path: Path) -> None:
            raise RuntimeError("Capture is not available when re-analyzing")

        runner = MonitorRunner(
            config=cfg,
            capture=no_capture,
            chat=partial(llm_client.chat, cfg.model, max_tokens=cfg.max_tokens, phase="analysis"),
            logger=logger,
        )

        try:
            result = runner.analyze_existing(paths_file)
        except (ValueError, FileNotFoundError) as e:
            logger.error(str(e))
            raise typer.Exit(1)

        timer.stop()
        logger.header("Analysis Summary")
        _print_run_summary(
            logger, cost_tracker, timer,
            status="[yellow]Degraded[/yellow]" if result.analysis.degraded else "[green]Completed[/green]",
            style="green" if result.report_written else "yellow",
            report_dir=cfg.report_dir if result.report_written else None,
        )
    finally:
        logger.close()


@app.command()
def show(
    report_dir: Annotated[
        Path,
        typer.Argument(help="Report directory (contains workflow_summary.md)"),
    ] = Path("./analysis"),
) -> None:
    """Show the summary and screenshot list of a report."""
    from rich.markdown import Markdown
    from rich.panel import Panel
    from report.assembler import SUMMARY_FILENAME

    summary_path = report_dir / SUMMARY_FILENAME
    if not summary_path.exists():
        console.print(f"[red]✗[/red] No report found in {report_dir}")
        raise typer.Exit(1)

    console.print(f"\n[bold blue]# Report: {report_dir}[/bold blue]\n")
    console.print(Panel(Markdown(summary_path.read_text(encoding="utf-8")), title="Workflow Summary", border_style="dim"))

    numbered = []
    for path in report_dir.glob("screenshot-*-annotation.md"):
        match = ANNOTATION_NUMBER.match(path.name)
        if match:
            numbered.append((int(match.group(1)), path))
    annotations = [path for _, path in sorted(numbered)]
    if annotations:
        console.print(f"\n[bold]## Screenshots ({len(annotations)})[/bold]")
        for path in annotations:
            console.print(f"  [cyan]📄 {path.name}[/cyan]")

    console.print(f"\n[dim]Open {report_dir / 'index.html'} for the full report.[/dim]")


def main() -> None:
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
