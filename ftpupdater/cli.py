"""CLI interface for ftpupdater."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Callable, Optional

import click

from .comparator import SyncAction
from .config import Settings, config
from .exceptions import ConfigError, LocalPathError
from .output import ActivityIndicator, ActivityLog, OutputFormatter
from .scheduler import Scheduler
from .state import RemoteStateTracker, SyncStateManager
from .utils import combine_path

logger = logging.getLogger(__name__)

PACKAGE_LOGGER = "ftpupdater"


def settings_options(func: Callable) -> Callable:
    """Add the options that override stored settings for one invocation."""
    options = [
        click.option("--url", "server_url", help="FTP server URL (ftp://host[:port]/path)"),
        click.option("--remote-path", "-r", help="Remote base path on the server"),
        click.option(
            "--local-path",
            "-l",
            type=click.Path(file_okay=False),
            help="Local directory to mirror",
        ),
        click.option(
            "--recursive/--no-recursive",
            default=None,
            help="Mirror subdirectories of the local path",
        ),
        click.option("--exclude", "-x", help="Regex of relative paths to skip"),
        click.option("--username", "-u", help="FTP username"),
        click.option("--password", "-p", envvar="FTPUPDATER_PASSWORD", help="FTP password"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _load_settings(ctx: Any, **overrides: Any) -> Settings:
    """Load stored settings, apply overrides and validate.

    Exits with status 1 when the result is unusable.
    """
    out: OutputFormatter = ctx.obj["out"]
    try:
        settings = config.load_settings().with_overrides(**overrides)
        settings.validate()
    except ConfigError as e:
        out.error(str(e))
        ctx.exit(1)
    return settings


def _state_manager() -> SyncStateManager:
    return SyncStateManager(config.config_dir / "sync_state")


def _remote_url(settings: Settings) -> str:
    return combine_path(settings.server_url, settings.remote_path)


def _load_tracker(
    settings: Settings, keep_state: bool, discard: bool = False
) -> RemoteStateTracker:
    """Remote state for this run.

    Args:
        settings: Validated settings
        keep_state: Load persisted state instead of starting fresh
        discard: Delete persisted state first (full resync)
    """
    if not keep_state:
        return RemoteStateTracker()
    manager = _state_manager()
    if discard:
        if manager.clear(settings.local_root, _remote_url(settings)):
            logger.info("Discarded saved remote state")
        return RemoteStateTracker()
    return manager.load(settings.local_root, _remote_url(settings))


def _save_tracker(
    settings: Settings, tracker: RemoteStateTracker, keep_state: bool
) -> None:
    if keep_state:
        _state_manager().save(settings.local_root, _remote_url(settings), tracker)


@contextmanager
def activity_log(out: OutputFormatter, verbose: bool) -> Iterator[ActivityLog]:
    """Echo ftpupdater's INFO events to the console for the duration.

    In verbose mode the root handler installed by ``main`` already prints
    everything, so events are only collected.
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    handler = ActivityLog(output=None if verbose else out)
    previous_level = package_logger.level
    previous_propagate = package_logger.propagate

    package_logger.addHandler(handler)
    if not verbose:
        package_logger.setLevel(logging.INFO)
        package_logger.propagate = False
    try:
        yield handler
    finally:
        package_logger.removeHandler(handler)
        package_logger.setLevel(previous_level)
        package_logger.propagate = previous_propagate


def _print_stats(out: OutputFormatter, stats: dict) -> None:
    if out.json_output:
        out.output_json(stats)
        return
    out.print_summary(
        "Pass Complete",
        [
            ("Uploaded", stats["uploads"]),
            ("Upload failures", stats["upload_failures"]),
            ("Directories created", stats["directories_created"]),
            ("Deleted remotely", stats["deletes_remote"]),
            ("Unchanged", stats["skips"]),
        ],
    )


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="ftpupdater")
@click.pass_context
def main(ctx: Any, quiet: bool, json: bool, verbose: bool) -> None:
    """ftpupdater - Keep a local directory mirrored onto an FTP server."""
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["verbose"] = verbose

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger(PACKAGE_LOGGER).setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.option("--url", "server_url", prompt="FTP server URL", help="ftp://host[:port]/path")
@click.option("--remote-path", prompt="Remote base path", default="", help="Remote base path")
@click.option(
    "--local-path",
    prompt="Local directory",
    type=click.Path(exists=True, file_okay=False),
    help="Local directory to mirror",
)
@click.option(
    "--recursive/--no-recursive",
    prompt="Mirror subdirectories",
    default=True,
    help="Mirror subdirectories of the local path",
)
@click.option("--exclude", prompt="Exclude pattern (regex)", default="", help="Regex")
@click.option("--username", prompt="Username", default="anonymous", help="FTP username")
@click.option(
    "--password",
    prompt="Password",
    hide_input=True,
    default="",
    help="FTP password",
)
@click.pass_context
def init(
    ctx: Any,
    server_url: str,
    remote_path: str,
    local_path: str,
    recursive: bool,
    exclude: str,
    username: str,
    password: str,
) -> None:
    """Store connection and mirroring settings.

    Settings are written to ~/.config/ftpupdater/config.json.
    """
    out: OutputFormatter = ctx.obj["out"]

    settings = Settings(
        server_url=server_url,
        remote_path=remote_path,
        local_path=local_path,
        recursive=recursive,
        exclude=exclude,
        username=username,
        password=password,
    )
    try:
        settings.validate()
        path = config.save_settings(settings)
    except ConfigError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    out.success("✓ Configuration saved successfully")
    out.info(f"Config file: {path}")


@main.command()
@settings_options
@click.pass_context
def status(ctx: Any, **overrides: Any) -> None:
    """Show the effective settings."""
    out: OutputFormatter = ctx.obj["out"]
    try:
        settings = config.load_settings().with_overrides(**overrides)
    except ConfigError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    items = [
        ("Config file", config.get_config_path()),
        ("Server URL", settings.server_url or "(not set)"),
        ("Remote path", settings.remote_path or "/"),
        ("Local path", settings.local_path or "(not set)"),
        ("Recursive", "yes" if settings.recursive else "no"),
        ("Exclude", settings.exclude or "(none)"),
        ("Username", settings.username or "(not set)"),
        ("Password", "********" if settings.password else "(not set)"),
        ("Interval", f"{settings.interval}s"),
    ]
    if out.json_output:
        out.output_json({label: str(value) for label, value in items})
    else:
        out.print_summary("ftpupdater settings", items)


def _display_plan(out: OutputFormatter, decisions: list) -> None:
    uploads = [d for d in decisions if d.action == SyncAction.UPLOAD]
    deletes = [d for d in decisions if d.action == SyncAction.DELETE_REMOTE]

    if out.json_output:
        out.output_json(
            [
                {"action": d.action.value, "path": d.relative_path, "reason": d.reason}
                for d in uploads + deletes
            ]
        )
        return

    out.info("Sync plan:")
    for decision in uploads:
        out.print(f"  ↑ {decision.relative_path} ({decision.reason})", markup=False)
    for decision in deletes:
        out.print(f"  ✗ {decision.relative_path} ({decision.reason})", markup=False)
    if not uploads and not deletes:
        out.info("No changes needed - everything is in sync!")
    out.warning("Dry run mode - nothing was uploaded or deleted.")


@main.command()
@settings_options
@click.option(
    "--dry-run", is_flag=True, help="Show what would be synced without syncing"
)
@click.option("--full", is_flag=True, help="Forget remote state and re-upload everything")
@click.option(
    "--keep-state",
    is_flag=True,
    help="Load and save remote state between runs",
)
@click.pass_context
def sync(
    ctx: Any, dry_run: bool, full: bool, keep_state: bool, **overrides: Any
) -> None:
    """Run a single reconciliation pass.

    Without --keep-state the first pass of every run treats the files
    currently present as already uploaded; use --full to upload everything.

    Examples:
        ftpupdater sync --full                    # Upload every file
        ftpupdater sync --keep-state              # Only changes since last run
        ftpupdater sync -l ./site -x '\\.bak$'     # Override settings
        ftpupdater sync --keep-state --dry-run    # Preview
    """
    out: OutputFormatter = ctx.obj["out"]
    settings = _load_settings(ctx, **overrides)
    tracker = _load_tracker(settings, keep_state, discard=full and not dry_run)
    scheduler = Scheduler.from_settings(settings, tracker)

    try:
        if dry_run:
            if full:
                tracker.reset()
            _display_plan(out, scheduler.engine.plan(scheduler.scan()))
            return

        with activity_log(out, ctx.obj["verbose"]):
            stats = scheduler.full_resync() if full else scheduler.sync()
    except LocalPathError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    _save_tracker(settings, tracker, keep_state)
    if stats is not None:
        _print_stats(out, stats)


@main.command()
@settings_options
@click.option(
    "--keep-state",
    is_flag=True,
    help="Store the calibrated remote times for later runs",
)
@click.pass_context
def calibrate(ctx: Any, keep_state: bool, **overrides: Any) -> None:
    """Measure the server clock offset with a probe file.

    The probe is uploaded next to the first local file, found in the remote
    listing and deleted again. Remote modification times are then translated
    into the local clock.
    """
    out: OutputFormatter = ctx.obj["out"]
    settings = _load_settings(ctx, **overrides)
    tracker = _load_tracker(settings, keep_state)
    scheduler = Scheduler.from_settings(settings, tracker)

    try:
        with activity_log(out, ctx.obj["verbose"]):
            result = scheduler.calibrate()
    except LocalPathError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    if result is None:
        out.warning("Nothing to calibrate: the local directory has no files.")
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json(
            {
                "probe": result.probe_path,
                "offset_seconds": (
                    result.offset.total_seconds() if result.offset is not None else None
                ),
                "updated": result.updated,
            }
        )
    elif result.succeeded:
        out.success(f"✓ Clock offset: {result.offset}")
        out.info(f"Remote times updated: {result.updated}")
    else:
        out.warning("Probe file was not found in the remote listing.")

    _save_tracker(settings, tracker, keep_state)
    if not result.succeeded:
        ctx.exit(1)


@main.command()
@settings_options
@click.option(
    "--interval",
    "-i",
    type=float,
    default=None,
    help="Seconds between passes (default: stored setting)",
)
@click.option(
    "--calibrate/--no-calibrate",
    "calibrate_first",
    default=False,
    help="Calibrate the server clock before the first pass",
)
@click.option("--full", is_flag=True, help="Re-upload everything on the first pass")
@click.option(
    "--keep-state",
    is_flag=True,
    help="Load remote state at start and save it after every pass",
)
@click.pass_context
def watch(
    ctx: Any,
    interval: Optional[float],
    calibrate_first: bool,
    full: bool,
    keep_state: bool,
    **overrides: Any,
) -> None:
    """Mirror continuously until interrupted with Ctrl+C."""
    out: OutputFormatter = ctx.obj["out"]
    settings = _load_settings(ctx, interval=interval, **overrides)
    tracker = _load_tracker(settings, keep_state, discard=full)
    indicator = ActivityIndicator(out)

    def on_activity() -> None:
        indicator.update(True)

    def on_pass_complete(stats: dict) -> None:
        indicator.update(scheduler.engine.transport.is_active)
        _save_tracker(settings, tracker, keep_state)

    scheduler = Scheduler.from_settings(
        settings,
        tracker,
        on_activity=on_activity,
        on_pass_complete=on_pass_complete,
    )

    if not out.quiet:
        out.info(f"Local path: {settings.local_root}")
        out.info(f"Remote: {_remote_url(settings)}")
        out.info(f"Interval: {settings.interval}s")
        out.info("")

    with activity_log(out, ctx.obj["verbose"]), indicator:
        try:
            if calibrate_first:
                scheduler.calibrate()
            if full:
                scheduler.full_resync()
            scheduler.run_forever()
        except LocalPathError as e:
            out.error(str(e))
            ctx.exit(1)
        except KeyboardInterrupt:
            out.warning("\nStopped")
            _save_tracker(settings, tracker, keep_state)
            ctx.exit(130)


if __name__ == "__main__":
    main()
