"""CLI entry point for the M4B builder."""

import os
import sys
from pathlib import Path

import click
from loguru import logger

from .config import PipelineConfig
from .errors import PipelineError, UsageError
from .models import MetadataRequest
from .runner import PipelineRunner

log = logger.bind(stage="cli")


def _find_config_file() -> Path | None:
    """Look for .env next to the package or in cwd."""
    pkg_dir = Path(__file__).resolve().parent
    for candidate in [
        pkg_dir.parent.parent / ".env",  # dev: src/../.env
        Path.cwd() / ".env",
    ]:
        if candidate.is_file():
            return candidate
    return None


def _load_env_file(env_file: Path) -> None:
    """Load a shell-style .env file into os.environ (without overriding)."""
    for line in env_file.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, _, value = line.partition("=")
        key = key.strip()
        value = value.strip()
        # Strip quotes
        if (value.startswith('"') and value.endswith('"')) or (
            value.startswith("'") and value.endswith("'")
        ):
            value = value[1:-1]
        # Skip bash variable expansions like ${VAR:-default}
        if "${" in value:
            continue
        # Don't override existing env vars (CLI > env > file)
        if key not in os.environ:
            os.environ[key] = value


def _show_help(ctx: click.Context, param: click.Parameter, value: bool) -> None:
    """Print help and exit 1 -- help is not a successful run."""
    if not value or ctx.resilient_parsing:
        return
    click.echo(ctx.get_help())
    ctx.exit(1)


def _prepare_destination(destination: Path) -> None:
    """Ensure destination is a directory, creating it after confirmation."""
    if destination.exists() and not destination.is_dir():
        raise click.UsageError(f"Destination is not a directory: {destination}")
    if not destination.exists():
        click.confirm(
            f"Destination {destination} does not exist. Create it?", abort=True
        )
        destination.mkdir(parents=True)
        log.info(f"Created destination {destination}")


class _Command(click.Command):
    """Click command whose failures all exit with status 1."""

    def main(self, *args, **kwargs):
        try:
            return super().main(*args, **kwargs)
        except SystemExit as e:
            if e.code not in (0, None):
                raise SystemExit(1) from None
            raise


@click.command(
    cls=_Command,
    context_settings={
        "help_option_names": [],
        "allow_interspersed_args": False,
    },
)
@click.argument("paths", nargs=-1, metavar="SOURCE... DESTINATION")
@click.option("-a", "album", default=None, help="Album tag.")
@click.option(
    "-i",
    "infer",
    is_flag=True,
    help="Infer title, writer, album, and year from each archive name.",
)
@click.option(
    "-p",
    "picture",
    default=None,
    help="Cover art (local .jpg/.png or URL). A default image is used if omitted.",
)
@click.option("-t", "title", default=None, help="Title tag.")
@click.option("-w", "writer", default=None, help="Writer (artist) tag.")
@click.option("-y", "year", default=None, help="Year tag (four digits).")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.option(
    "--verify", is_flag=True, help="Read tags back from each output with ffprobe."
)
@click.option(
    "--keep-going",
    is_flag=True,
    help="Continue with the remaining sources after a failed one.",
)
@click.option(
    "-c",
    "--config",
    "config_file",
    type=click.Path(exists=True),
    default=None,
    help="Path to .env file.",
)
@click.option(
    "-h",
    "--help",
    is_flag=True,
    expose_value=False,
    is_eager=True,
    callback=_show_help,
    help="Show this message and exit.",
)
def main(
    paths: tuple[str, ...],
    album: str | None,
    infer: bool,
    picture: str | None,
    title: str | None,
    writer: str | None,
    year: str | None,
    verbose: bool,
    verify: bool,
    keep_going: bool,
    config_file: str | None,
) -> None:
    """Convert audiobook archives or a directory of MP3s into tagged M4B files.

    Each SOURCE is a .zip/.tar archive (local path or http/https/ftp URL) or
    a local directory of MP3 tracks. Output files are written to DESTINATION.
    With more than one SOURCE, metadata is always inferred.
    """
    if len(paths) < 2:
        raise click.UsageError("Need at least one SOURCE and a DESTINATION.")
    locations = list(paths[:-1])
    destination = Path(paths[-1])

    # Load .env into environment before PipelineConfig reads env vars
    env_file = Path(config_file) if config_file else _find_config_file()
    if env_file and env_file.is_file():
        _load_env_file(env_file)

    # Pass CLI flags as kwargs to avoid env pollution
    config_kwargs: dict[str, bool | str] = {}
    if verbose:
        config_kwargs["verbose"] = True
        config_kwargs["log_level"] = "DEBUG"
    if verify:
        config_kwargs["verify_tags"] = True
    if keep_going:
        config_kwargs["keep_going"] = True

    config = PipelineConfig(**config_kwargs)  # type: ignore[arg-type]
    config.setup_logging()
    if env_file:
        log.debug(f"Loaded env from {env_file}")

    request = MetadataRequest(
        writer=writer,
        title=title,
        album=album,
        year=year,
        infer=infer,
    )

    runner = PipelineRunner(config=config)
    try:
        sources, mode = runner.plan(locations, request)
        _prepare_destination(destination)
        log.info(
            f"Starting run: sources={len(sources)} destination={destination} "
            f"mode={mode}"
        )
        result = runner.execute(sources, mode, destination, request, picture=picture)
    except UsageError as e:
        raise click.UsageError(str(e))
    except PipelineError as e:
        log.error(f"Run aborted: {e}")
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if result.failed:
        click.echo(f"\n{result.completed} succeeded, {result.failed} failed:")
        for err in result.errors:
            click.echo(f"  {err}")
        sys.exit(1)

    click.echo(f"\nDone: {result.completed} file(s) written to {destination}")
