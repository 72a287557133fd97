"""Command line interface for Corpus Miner."""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError
from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from . import __version__
from .config import Config, ConfigManager
from .errors import FatalPipelineError
from .filtering.pattern_list import LANGUAGE_POLICIES, PatternList
from .models import Project
from .pipeline.downloader import Downloader
from .utils.exception_logger import ExceptionLogger

console = Console()
logger = logging.getLogger(__name__)


def _configure_logging(verbosity: int) -> None:
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s",
    )


def _load_config(ctx: click.Context) -> Config:
    config_manager: ConfigManager = ctx.obj["config_manager"]
    try:
        return config_manager.get_config()
    except ValueError as e:
        raise click.ClickException(str(e))


@click.group()
@click.option("--config", "-c", type=click.Path(exists=False), help="Config file path")
@click.option(
    "--verbose", "-v", count=True, help="Verbose output (-v info, -vv debug)"
)
@click.version_option(version=__version__, prog_name="corpus-miner")
@click.pass_context
def cli(ctx, config: Optional[str], verbose: int):
    """Mine the full history of git repositories into a deduplicated store.

    \b
    GETTING STARTED:
      1. corpus-miner init ./corpus          # write .corpus-miner/config.json
      2. corpus-miner mine projects.csv      # clone, crawl and store

    \b
    SEED FILE FORMAT (one project per line):
      https://github.com/owner/repo.git
      https://github.com/owner/other.git,1042    # explicit project id

    \b
    OUTPUT LAYOUT:
      temp/      clones in progress (emptied at the end of a run)
      projects/  one JSON crawl record per project
      data/      unique file contents, sharded by content id
      stats/     session statistics
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    _configure_logging(verbose)

    if config:
        ctx.obj["config_manager"] = ConfigManager(Path(config))
    else:
        ctx.obj["config_manager"] = ConfigManager.create_with_backtrack()


@cli.command()
@click.argument("output_path", type=click.Path(file_okay=False))
@click.option("--threads", "-t", type=int, default=None, help="Worker threads")
@click.option(
    "--language",
    "-l",
    type=click.Choice(sorted(LANGUAGE_POLICIES), case_sensitive=False),
    default=None,
    help="File classification policy",
)
@click.option("--force", is_flag=True, help="Overwrite an existing config file")
@click.pass_context
def init(
    ctx, output_path: str, threads: Optional[int], language: Optional[str], force: bool
):
    """Write a default configuration for OUTPUT_PATH."""
    config_manager: ConfigManager = ctx.obj["config_manager"]

    if config_manager.config_path.exists() and not force:
        raise click.ClickException(
            f"Config already exists at {config_manager.config_path} (use --force)"
        )

    values = {"output_path": Path(output_path).resolve()}
    if threads is not None:
        values["threads"] = threads
    if language is not None:
        values["language"] = language
    try:
        config = Config(**values)
    except ValidationError as e:
        raise click.BadParameter(str(e))
    config_manager.save(config)

    console.print(
        f"✅ Configuration written to {config_manager.config_path}", style="green"
    )


@cli.command()
@click.argument("seed_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", type=click.Path(file_okay=False), help="Output root")
@click.option("--threads", "-t", type=int, default=None, help="Worker threads")
@click.option(
    "--language",
    "-l",
    type=click.Choice(sorted(LANGUAGE_POLICIES), case_sensitive=False),
    default=None,
    help="File classification policy",
)
@click.pass_context
def mine(
    ctx,
    seed_file: str,
    output: Optional[str],
    threads: Optional[int],
    language: Optional[str],
):
    """Clone and crawl every project listed in SEED_FILE."""
    config = _load_config(ctx)
    updates = {}
    if output is not None:
        updates["output_path"] = Path(output)
    if threads is not None:
        updates["threads"] = threads
    if language is not None:
        updates["language"] = language
    if updates:
        try:
            config = Config(**{**config.model_dump(), **updates})
        except ValidationError as e:
            raise click.BadParameter(str(e))

    exception_logger = ExceptionLogger.initialize(config.logs_path)
    exception_logger.install_thread_exception_hook()

    with Progress(
        TextColumn("[bold blue]Mining"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        TextColumn("{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        task_id = progress.add_task("", total=0)

        def on_project_finished(project: Project) -> None:
            progress.update(task_id, advance=1, description=str(project))

        downloader = Downloader(config, on_project_finished=on_project_finished)
        downloader.initialize()
        try:
            downloader.start()
            reader = downloader.feed_projects_from(Path(seed_file))
            progress.update(task_id, total=downloader.stats.projects_scheduled)
            downloader.wait()
        except FatalPipelineError as e:
            console.print(f"❌ Mining stopped: {e}", style="red")
            _print_summary(downloader)
            sys.exit(1)
        except BaseException:
            downloader.abort()
            raise
        finally:
            downloader.shutdown()

    if reader.errors:
        console.print(
            f"⚠️  Skipped {len(reader.errors)} malformed seed lines", style="yellow"
        )
    _print_summary(downloader)


@cli.command()
def languages():
    """List the built-in file classification policies."""
    table = Table(title="Language policies")
    table.add_column("Language", style="cyan")
    table.add_column("Accepted", style="green")
    table.add_column("Denied", style="red")

    for name in PatternList.supported_languages():
        policy = LANGUAGE_POLICIES[name]
        table.add_row(name, " ".join(policy["accept"]), " ".join(policy["deny"]))

    console.print(table)


def _print_summary(downloader: Downloader) -> None:
    table = Table(title="Mining summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    for name, value in downloader.stats.as_dict().items():
        table.add_row(name.replace("_", " "), str(value))

    store = downloader.content_store
    if store is not None:
        table.add_row("new contents written", str(store.blobs_written))
        table.add_row("content dedup hits", str(store.duplicate_hits))
        table.add_row("total contents", str(len(store)))

    console.print(table)


def main():
    """Console script entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
