"""Acoustic indices for soundscape ecology analysis."""

from typing import Any, Dict, Optional

import click

SUMMARY_COLUMNS = ["aci", "adi", "aei", "bio", "ndsi", "spectral_entropy", "temporal_entropy", "snr", "activity"]


def _index_options(window_size: Optional[int]) -> Dict[str, Any]:
    """Window size and ``[indices]`` settings passed to the indices service."""
    from ecoaudio.cli.service_helpers import config_value

    return {
        "window_size": config_value("indices", "window_size", window_size),
        "activity_threshold": config_value("indices", "activity_threshold_db"),
        "low_freq_bound": config_value("indices", "low_freq_bound"),
        "mid_freq_bound": config_value("indices", "mid_freq_bound"),
        "bio_band": (config_value("indices", "bio_min_freq"), config_value("indices", "bio_max_freq")),
    }


@click.group()
def indices() -> None:
    """Acoustic indices for soundscape ecology analysis."""
    pass


@indices.command("compute")
@click.argument("file", type=click.Path(exists=True))
@click.option("--output", "-o", type=click.Path(), help="Output JSON file for results")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format",
)
@click.option("--window-size", default=None, type=int, help="FFT window size [config: indices.window_size]")
def indices_compute(file: str, output: str, output_format: str, window_size: Optional[int]) -> None:
    """Compute summary indices for a single audio file."""
    import json

    from ecoaudio.cli.progress import console, print_summary
    from ecoaudio.cli.service_helpers import handle_result, services

    result = handle_result(services.indices.calculate(file, **_index_options(window_size)))
    summary = result.summary.to_dict()

    if output:
        with open(output, "w") as f:
            json.dump(result.to_dict(), f, indent=2)
        console.print(f"Results saved to {output}")
    elif output_format == "json":
        click.echo(json.dumps({"filepath": file, **summary}, indent=2))
    else:
        print_summary(file, summary)


@indices.command("temporal")
@click.argument("file", type=click.Path(exists=True))
@click.option(
    "--segment-duration", default=None, type=float, help="Segment duration in seconds [config: indices.segment_duration]"
)
@click.option("--hop", default=None, type=float, help="Seconds between segment starts")
@click.option("--output", "-o", type=click.Path(), help="Output CSV file for the summary indices")
@click.option("--spectral-dir", type=click.Path(), help="Directory for spectral index matrices")
@click.option("--window-size", default=None, type=int, help="FFT window size [config: indices.window_size]")
def indices_temporal(
    file: str,
    segment_duration: Optional[float],
    hop: Optional[float],
    output: str,
    spectral_dir: str,
    window_size: Optional[int],
) -> None:
    """Compute indices over consecutive segments of a recording."""
    from ecoaudio.cli.progress import console, print_table
    from ecoaudio.cli.service_helpers import config_value, handle_result, services

    segment_duration = config_value("indices", "segment_duration", segment_duration)
    result = handle_result(
        services.indices.calculate_temporal(
            file,
            window_duration=segment_duration,
            hop_duration=hop,
            output_csv=output,
            spectral_dir=spectral_dir,
            **_index_options(window_size),
        )
    )

    if output:
        console.print(f"Temporal indices saved to {output}")
    for path in result.spectral_paths:
        console.print(f"Spectral indices saved to {path}")
    if not output and result.num_windows:
        columns = ["start_time"] + SUMMARY_COLUMNS
        rows = result.windows[columns].head(10).values.tolist()
        print_table(f"{file} ({segment_duration:g}s segments)", columns, rows)
        if result.num_windows > 10:
            console.print(f"  ... and {result.num_windows - 10} more segments")
    console.print(f"Total segments: {result.num_windows}")


@indices.command("batch")
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@click.option("--output", "-o", required=True, type=click.Path(), help="Output CSV file")
@click.option("--recursive/--no-recursive", default=None, help="Search subdirectories [config: batch.recursive]")
@click.option("--workers", "-w", default=None, type=int, help="Worker threads [config: batch.workers]")
@click.option("--window-size", default=None, type=int, help="FFT window size [config: indices.window_size]")
def indices_batch(
    directory: str, output: str, recursive: Optional[bool], workers: Optional[int], window_size: Optional[int]
) -> None:
    """Compute summary indices for every audio file in a directory."""
    from ecoaudio.cli.progress import ProgressBar, print_success
    from ecoaudio.cli.service_helpers import config_value, handle_result, services

    service = services.indices
    with ProgressBar(description="Computing indices") as bar:
        service.set_progress_callback(lambda p: bar.update(completed=p.completed, total=p.total))
        result = service.calculate_batch(
            directory,
            output_csv=output,
            recursive=config_value("batch", "recursive", recursive),
            max_workers=config_value("batch", "workers", workers),
            **_index_options(window_size),
        )
    batch = handle_result(result)
    print_success(f"{result.message}; results saved to {batch.output_path}")
    if batch.failed:
        raise SystemExit(1)
