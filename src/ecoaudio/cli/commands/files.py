"""Audio file housekeeping commands."""

import click


@click.group()
def files() -> None:
    """Audio file housekeeping."""
    pass


@files.command("rename")
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@click.option("--timezone", "-z", default=None, help="Recorder clock offset, e.g. '+1000' or '-0700'")
@click.option("--recursive", "-r", is_flag=True, help="Include subdirectories")
@click.option("--dry-run", "-n", is_flag=True, help="Only print the new names")
@click.option("--workers", "-w", default=None, type=int, help="Worker threads (default: CPU count)")
def files_rename(directory: str, timezone: str, recursive: bool, dry_run: bool, workers: int) -> None:
    """Rename undated recordings to <name>_YYYYMMDD-HHMMSSZ.<ext>."""
    from ecoaudio.cli.progress import console, print_success
    from ecoaudio.cli.service_helpers import handle_result, services

    service_result = services.files.rename(directory, timezone, recursive, dry_run, workers)
    results = handle_result(service_result)
    for r in results:
        if r.renamed:
            console.print(f"{r.original_path} -> {r.new_path}")
    print_success(service_result.message)
