"""
Process entry point for the Miniflux AI filter.

Uses Typer only to bootstrap the job: configuration comes from the
environment (a .env file is loaded first) and an optional YAML file.
Without ``--once`` the process runs the cron schedule indefinitely.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from dotenv import load_dotenv
from rich.console import Console

from .config import AppConfig, load_config, validate_config
from .llm.providers.factory import create_provider
from .logging_utils import setup_llm_logger, setup_logging
from .miniflux import MinifluxClient
from .prompts import load_custom_prompts
from .scheduler import FilterJob, run_forever

app = typer.Typer(add_completion=False)
console = Console()


@app.command()
def run(
    config: Path | None = typer.Option(None, "--config", "-c", exists=True, readable=True),
    once: bool = typer.Option(False, "--once", help="Run a single tick and exit."),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level."),
    prompts_dir: Path | None = typer.Option(
        None, "--prompts-dir", help="Directory containing custom-prompt-<category>.md files."
    ),
):
    """Mark irrelevant Miniflux entries as read on a cron schedule.

    Args:
        config: Optional path to YAML config file
        once: Run one tick instead of starting the schedule
        log_level: Logging level override (DEBUG, INFO, WARNING, ERROR)
        prompts_dir: Custom prompt directory override
    """
    load_dotenv()

    try:
        cfg = load_config(str(config) if config else None)
        if log_level:
            cfg.logging.level = log_level
        if prompts_dir is not None:
            cfg.prompts.directory = str(prompts_dir)
        validate_config(cfg)
        logger = setup_logging(cfg.logging)
        job = build_job(cfg)
    except (ValueError, OSError) as exc:
        console.print(f"[red]Startup failed:[/red] {exc}")
        raise typer.Exit(1)

    if once:
        ok = asyncio.run(_run_once(job))
        raise typer.Exit(0 if ok else 1)

    try:
        asyncio.run(run_forever(job, cfg.schedule))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")


def build_job(cfg: AppConfig) -> FilterJob:
    """Load prompts and build the long-lived clients for the job."""
    prompts = load_custom_prompts(cfg.prompts.directory, cfg.prompts.prefix, cfg.prompts.suffix)
    provider = create_provider(cfg.provider, setup_llm_logger(cfg.logging))
    client = MinifluxClient(cfg.miniflux)
    return FilterJob(cfg, client, provider, prompts)


async def _run_once(job: FilterJob) -> bool:
    try:
        result = await job.tick()
    finally:
        await job.aclose()
    return result is not None


if __name__ == "__main__":
    app()
