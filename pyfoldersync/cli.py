"""CLI interface for pyfoldersync."""

import logging
from typing import Any, Optional

import click

from .cli_progress import run_sync_with_progress
from .config import CONFIG_ENV_VAR, SyncPairConfig, SyncPairRepository
from .exceptions import SyncConfigError
from .handles import resolve_tree_handle
from .output import OutputFormatter
from .sync import SyncEngine, SyncMode, SyncResult, TransferExecutor

logger = logging.getLogger(__name__)


def _make_engine(preserve_times: bool = True) -> SyncEngine:
    return SyncEngine(executor=TransferExecutor(preserve_times=preserve_times))


def _run_pass(
    engine: SyncEngine,
    source_ref: str,
    dest_ref: str,
    mode: SyncMode,
    dry_run: bool,
    show_progress: bool,
    use_trash: bool,
) -> SyncResult:
    """Resolve both references and synchronize them."""
    source = resolve_tree_handle(source_ref, use_trash=use_trash)
    dest = resolve_tree_handle(dest_ref, use_trash=use_trash)
    if show_progress:
        return run_sync_with_progress(engine, source, dest, mode, dry_run)
    return engine.synchronize(source, dest, mode, dry_run=dry_run)


def _report(out: OutputFormatter, result: SyncResult, dry_run: bool) -> None:
    if out.json_output:
        out.output_json(result.to_dict())
        return

    if result.success:
        prefix = "(dry run) " if dry_run else ""
        out.success(prefix + result.status_line())
        if dry_run:
            out.print_summary(
                "Would change",
                [
                    ("Copies", str(result.files_copied)),
                    ("Updates", str(result.files_updated)),
                ],
            )
    else:
        out.error(result.status_line())
        for message in result.errors[1:]:
            out.warning(f"  {message}")


def _load_repository(ctx: Any) -> tuple[SyncPairRepository, list[SyncPairConfig]]:
    out: OutputFormatter = ctx.obj["out"]
    repository: SyncPairRepository = ctx.obj["repository"]
    try:
        return repository, repository.load()
    except SyncConfigError as e:
        out.error(str(e))
        ctx.exit(1)
        raise  # Unreachable, but helps type checker


@click.group()
@click.option(
    "--config",
    "config_path",
    envvar=CONFIG_ENV_VAR,
    type=click.Path(dir_okay=False),
    help="Sync pair file (default: ~/.config/pyfoldersync/sync_pairs.json)",
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="pyfoldersync")
@click.pass_context
def main(
    ctx: Any,
    config_path: Optional[str],
    quiet: bool,
    json: bool,
    verbose: bool,
) -> None:
    """PyFolderSync - Keep pairs of folders in sync."""
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["repository"] = SyncPairRepository(config_path)

    # Configure logging based on verbose flag
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pyfoldersync").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.argument("source", type=str)
@click.argument("dest", type=str)
@click.option(
    "--one-way",
    is_flag=True,
    help="Only mirror SOURCE into DEST (never modify SOURCE)",
)
@click.option(
    "--dry-run", is_flag=True, help="Show what would be done without changing files"
)
@click.option("--no-progress", is_flag=True, help="Disable progress display")
@click.option(
    "--trash", is_flag=True, help="Move replaced files to the trash instead of deleting"
)
@click.option(
    "--no-preserve-times",
    is_flag=True,
    help="Do not copy modification times to copied files",
)
@click.pass_context
def sync(
    ctx: Any,
    source: str,
    dest: str,
    one_way: bool,
    dry_run: bool,
    no_progress: bool,
    trash: bool,
    no_preserve_times: bool,
) -> None:
    """Synchronize two folders.

    SOURCE and DEST are directory paths or file:// URIs.

    Examples:
        pyfoldersync sync ~/Photos /mnt/usb/Photos
        pyfoldersync sync ~/Docs /backup/Docs --one-way
        pyfoldersync sync ~/Docs /backup/Docs --dry-run
    """
    out: OutputFormatter = ctx.obj["out"]
    mode = SyncMode.ONE_WAY if one_way else SyncMode.TWO_WAY

    if not out.quiet:
        out.info(f"Sync mode: {mode.value}")
        out.info(f"Source: {source}")
        out.info(f"Destination: {dest}")
        if dry_run:
            out.info("Dry run: No changes will be made")
        out.print("")

    engine = _make_engine(preserve_times=not no_preserve_times)
    show_progress = not (no_progress or out.quiet or out.json_output)

    try:
        result = _run_pass(
            engine, source, dest, mode, dry_run, show_progress, use_trash=trash
        )
    except KeyboardInterrupt:
        out.warning("\nSync cancelled by user")
        ctx.exit(130)
        return

    _report(out, result, dry_run)
    if not result.success:
        ctx.exit(1)


@main.command()
@click.argument("pair_id", type=int, required=False)
@click.option("--all", "run_all", is_flag=True, help="Synchronize every stored pair")
@click.option(
    "--dry-run", is_flag=True, help="Show what would be done without changing files"
)
@click.option("--no-progress", is_flag=True, help="Disable progress display")
@click.option(
    "--trash", is_flag=True, help="Move replaced files to the trash instead of deleting"
)
@click.pass_context
def run(
    ctx: Any,
    pair_id: Optional[int],
    run_all: bool,
    dry_run: bool,
    no_progress: bool,
    trash: bool,
) -> None:
    """Synchronize stored sync pairs.

    Pass a PAIR_ID to synchronize one pair, or --all to synchronize every
    pair one after another.
    """
    out: OutputFormatter = ctx.obj["out"]
    _, pairs = _load_repository(ctx)

    if pair_id is None and not run_all:
        out.error("Specify a PAIR_ID or --all")
        ctx.exit(2)
        return

    engine = _make_engine()
    show_progress = not (no_progress or out.quiet or out.json_output)

    if not run_all:
        pair = next((p for p in pairs if p.id == pair_id), None)
        if pair is None:
            out.error(f"No sync pair with id {pair_id}")
            ctx.exit(1)
            return
        if not pair.source or not pair.dest:
            out.error("Both folders must be selected")
            ctx.exit(1)
            return

        out.info(f"Syncing pair {pair.id}: {pair.display_name}")
        result = _run_pass(
            engine,
            pair.source,
            pair.dest,
            pair.sync_mode,
            dry_run,
            show_progress,
            use_trash=trash,
        )
        _report(out, result, dry_run)
        if not result.success:
            ctx.exit(1)
        return

    total_copied = 0
    total_updated = 0
    total_scanned = 0
    failed_pairs: list[int] = []
    results: list[dict[str, Any]] = []

    for pair in pairs:
        if not pair.source or not pair.dest:
            logger.debug("Skipping incomplete sync pair %d", pair.id)
            continue
        out.info(f"Syncing pair {pair.id}: {pair.display_name}")
        result = _run_pass(
            engine,
            pair.source,
            pair.dest,
            pair.sync_mode,
            dry_run,
            show_progress,
            use_trash=trash,
        )
        total_copied += result.files_copied
        total_updated += result.files_updated
        total_scanned += result.files_scanned
        results.append({"id": pair.id, **result.to_dict()})
        if not result.success:
            failed_pairs.append(pair.id)
            out.warning(f"Pair {pair.id}: {result.status_line()}")

    if out.json_output:
        out.output_json(results)
    elif failed_pairs:
        out.error(
            f"{len(failed_pairs)} pair(s) failed: "
            + ", ".join(str(pair_id) for pair_id in failed_pairs)
        )
    else:
        out.success(
            f"✓ All synced: {total_copied} copied, {total_updated} updated "
            f"({total_scanned} scanned)"
        )

    if failed_pairs:
        ctx.exit(1)


@main.group()
def pairs() -> None:
    """Manage stored sync pairs."""


@pairs.command("list")
@click.pass_context
def list_pairs(ctx: Any) -> None:
    """List stored sync pairs."""
    out: OutputFormatter = ctx.obj["out"]
    _, stored = _load_repository(ctx)

    if not stored:
        if out.json_output:
            out.output_json([])
        else:
            out.info("No sync pairs configured")
        return

    table_data = [
        {
            "id": pair.id,
            "source": pair.source_label or pair.source,
            "dest": pair.dest_label or pair.dest,
            "mode": pair.sync_mode.value,
        }
        for pair in stored
    ]
    out.output_table(
        table_data,
        ["id", "source", "dest", "mode"],
        {"id": "ID", "source": "Source", "dest": "Destination", "mode": "Mode"},
    )


@pairs.command("add")
@click.argument("source", type=str, required=False)
@click.argument("dest", type=str, required=False)
@click.option("--source-label", help="Display name for the source folder")
@click.option("--dest-label", help="Display name for the destination folder")
@click.option("--one-way", is_flag=True, help="Only mirror source into destination")
@click.pass_context
def add_pair(
    ctx: Any,
    source: Optional[str],
    dest: Optional[str],
    source_label: Optional[str],
    dest_label: Optional[str],
    one_way: bool,
) -> None:
    """Add a sync pair. Folders can also be chosen later with set-source/set-dest."""
    out: OutputFormatter = ctx.obj["out"]
    repository, _ = _load_repository(ctx)

    for reference in (source, dest):
        if reference and resolve_tree_handle(reference) is None:
            out.warning(f"Folder not accessible: {reference}")

    pair = repository.add(
        source=source,
        dest=dest,
        source_label=source_label or _label_for(source),
        dest_label=dest_label or _label_for(dest),
        sync_mode=SyncMode.ONE_WAY if one_way else SyncMode.TWO_WAY,
    )

    if out.json_output:
        out.output_json(pair.to_dict())
    else:
        out.success(f"Added sync pair {pair.id}: {pair.display_name}")


def _label_for(reference: Optional[str]) -> Optional[str]:
    handle = resolve_tree_handle(reference)
    return handle.name if handle is not None else None


def _set_folder(ctx: Any, pair_id: int, side: str, path: str) -> None:
    out: OutputFormatter = ctx.obj["out"]
    repository, _ = _load_repository(ctx)

    if resolve_tree_handle(path) is None:
        out.error(f"Folder not accessible: {path}")
        ctx.exit(1)
        return

    try:
        pair = repository.update(
            pair_id, **{side: path, f"{side}_label": _label_for(path)}
        )
    except KeyError:
        out.error(f"No sync pair with id {pair_id}")
        ctx.exit(1)
        return
    out.success(f"Updated sync pair {pair.id}: {pair.display_name}")


@pairs.command("set-source")
@click.argument("pair_id", type=int)
@click.argument("path", type=str)
@click.pass_context
def set_source(ctx: Any, pair_id: int, path: str) -> None:
    """Choose the source folder of a sync pair."""
    _set_folder(ctx, pair_id, "source", path)


@pairs.command("set-dest")
@click.argument("pair_id", type=int)
@click.argument("path", type=str)
@click.pass_context
def set_dest(ctx: Any, pair_id: int, path: str) -> None:
    """Choose the destination folder of a sync pair."""
    _set_folder(ctx, pair_id, "dest", path)


@pairs.command("remove")
@click.argument("pair_id", type=int)
@click.pass_context
def remove_pair(ctx: Any, pair_id: int) -> None:
    """Remove a sync pair."""
    out: OutputFormatter = ctx.obj["out"]
    repository, _ = _load_repository(ctx)

    if not repository.remove(pair_id):
        out.error(f"No sync pair with id {pair_id}")
        ctx.exit(1)
        return
    out.success(f"Removed sync pair {pair_id}")


if __name__ == "__main__":
    main()
