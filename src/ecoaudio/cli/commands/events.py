"""Acoustic event detection commands."""

from typing import Optional

import click


@click.group()
def events() -> None:
    """Acoustic event detection."""
    pass


def _print_events(title: str, found: list) -> None:
    from ecoaudio.cli.progress import print_table

    rows = [[e.start, e.end, e.min_hz, e.max_hz, e.score] for e in found]
    print_table(title, ["start", "end", "min_hz", "max_hz", "score"], rows)


@events.command("felt")
@click.argument("template", type=click.Path(exists=True, dir_okay=False))
@click.argument("file", type=click.Path(exists=True))
@click.option("--min-hz", required=True, type=int, help="Lower band bound (Hz)")
@click.option("--max-hz", required=True, type=int, help="Upper band bound (Hz)")
@click.option("--threshold", default=None, type=float, help="Score threshold (dB) [config: events.threshold]")
@click.option(
    "--smooth-window", default=None, type=float, help="Score smoothing window (seconds) [config: events.smooth_window]"
)
@click.option("--min-duration", default=None, type=float, help="Shortest event (seconds) [config: events.min_duration]")
@click.option("--max-duration", default=None, type=float, help="Longest event (seconds) [config: events.max_duration]")
@click.option(
    "--dynamic-range",
    default=None,
    type=float,
    help="Fixed dynamic range (dB); 0 for standard [config: events.dynamic_range]",
)
@click.option("--segmentation", is_flag=True, help="Only score frames above the background")
@click.option("--name", "call_name", default="", help="Name given to each event")
@click.option("--output", "-o", type=click.Path(), help="Tab-separated events file")
def events_felt(
    template: str,
    file: str,
    min_hz: int,
    max_hz: int,
    threshold: Optional[float],
    smooth_window: Optional[float],
    min_duration: Optional[float],
    max_duration: Optional[float],
    dynamic_range: Optional[float],
    segmentation: bool,
    call_name: str,
    output: str,
) -> None:
    """Find events like TEMPLATE (a '+', '-', '0' text file) in FILE."""
    from ecoaudio.cli.progress import console
    from ecoaudio.cli.service_helpers import config_value, handle_result, services

    result = handle_result(
        services.events.find_events_like_this(
            template,
            file,
            min_hz,
            max_hz,
            config_value("events", "threshold", threshold),
            output_path=output,
            smooth_window=config_value("events", "smooth_window", smooth_window),
            min_duration=config_value("events", "min_duration", min_duration),
            max_duration=config_value("events", "max_duration", max_duration),
            dynamic_range=config_value("events", "dynamic_range", dynamic_range),
            do_segmentation=segmentation,
            call_name=call_name,
        )
    )
    _print_events(f"Events like {template}", result.events)
    if output:
        console.print(f"Events saved to {output}")


@events.command("harmonics")
@click.argument("file", type=click.Path(exists=True))
@click.option("--min-hz", required=True, type=int, help="Lower band bound (Hz)")
@click.option("--max-hz", required=True, type=int, help="Upper band bound (Hz)")
@click.option("--decibel-threshold", default=6.0, type=float, help="Minimum frame maximum (dB)")
@click.option("--dct-threshold", default=0.15, type=float, help="Minimum harmonic intensity")
@click.option("--min-duration", default=0.1, type=float, help="Shortest event (seconds)")
@click.option("--max-duration", default=1.0, type=float, help="Longest event (seconds)")
@click.option("--min-formant-gap", default=100, type=int, help="Smallest harmonic spacing (Hz)")
@click.option("--max-formant-gap", default=1000, type=int, help="Largest harmonic spacing (Hz)")
@click.option("--output", "-o", type=click.Path(), help="Tab-separated events file")
def events_harmonics(
    file: str,
    min_hz: int,
    max_hz: int,
    decibel_threshold: float,
    dct_threshold: float,
    min_duration: float,
    max_duration: float,
    min_formant_gap: int,
    max_formant_gap: int,
    output: str,
) -> None:
    """Find stacks of harmonics in a frequency band."""
    from ecoaudio.cli.progress import console
    from ecoaudio.cli.service_helpers import config_value, exit_with_error, handle_result, services
    from ecoaudio.core.harmonics import HarmonicParameters

    try:
        params = HarmonicParameters(
            min_hz=min_hz,
            max_hz=max_hz,
            decibel_threshold=decibel_threshold,
            dct_threshold=dct_threshold,
            min_duration=min_duration,
            max_duration=max_duration,
            min_formant_gap=min_formant_gap,
            max_formant_gap=max_formant_gap,
        )
    except ValueError as e:
        exit_with_error(str(e))

    result = handle_result(
        services.events.detect_harmonics(
            file, params, window_size=config_value("spectrogram", "window_size"), output_path=output
        )
    )
    _print_events("Harmonic events", result.events)
    if output:
        console.print(f"Events saved to {output}")
