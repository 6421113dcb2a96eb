"""Signal-to-noise ratio commands."""

from typing import Optional

import click

NOISE_REDUCTION_CHOICES = [
    "none",
    "standard",
    "modal",
    "binary",
    "fixed_dynamic_range",
    "mean",
    "median",
    "lowest_percentile",
    "briggs_percentile",
    "short_recording",
    "flatten_and_trim",
]


@click.group()
def snr() -> None:
    """Signal-to-noise ratio and background noise."""
    pass


@snr.command("recording")
@click.argument("file", type=click.Path(exists=True))
@click.option("--window-size", default=None, type=int, help="FFT window size [config: spectrogram.window_size]")
@click.option(
    "--noise-reduction",
    type=click.Choice(NOISE_REDUCTION_CHOICES),
    default=None,
    help="Spectrogram noise reduction [config: noise_reduction.type]",
)
@click.option("--parameter", default=None, type=float, help="Noise reduction parameter [config: noise_reduction.parameter]")
@click.option("--output", "-o", type=click.Path(), help="CSV file for the noise-reduced spectrogram")
def snr_recording(
    file: str, window_size: Optional[int], noise_reduction: Optional[str], parameter: Optional[float], output: str
) -> None:
    """Frame-level SNR of a recording."""
    from ecoaudio.cli.progress import print_summary
    from ecoaudio.cli.service_helpers import exit_with_error, handle_result, services
    from ecoaudio.core.config import get_config
    from ecoaudio.core.spectrogram import SonogramConfig

    try:
        config = SonogramConfig.from_config(
            get_config(),
            window_size=window_size,
            noise_reduction_type=noise_reduction,
            noise_reduction_parameter=parameter,
        )
    except ValueError as e:
        exit_with_error(str(e))

    result = handle_result(services.noise.recording_snr(file, config, output_csv=output))
    print_summary(f"SNR: {file}", result.to_dict())


@snr.command("band")
@click.argument("file", type=click.Path(exists=True))
@click.option("--start", required=True, type=float, help="Call start (seconds)")
@click.option("--duration", required=True, type=float, help="Call duration (seconds)")
@click.option("--min-hz", required=True, type=float, help="Lower band bound (Hz)")
@click.option("--max-hz", required=True, type=float, help="Upper band bound (Hz)")
@click.option("--threshold", default=3.0, type=float, help="Decibel threshold for active frames")
def snr_band(file: str, start: float, duration: float, min_hz: float, max_hz: float, threshold: float) -> None:
    """SNR of a call within a time and frequency box."""
    from ecoaudio.cli.progress import print_summary
    from ecoaudio.cli.service_helpers import handle_result, services

    stats = handle_result(services.noise.band_snr(file, start, duration, min_hz, max_hz, threshold))
    print_summary(f"Band SNR: {min_hz:g}-{max_hz:g} Hz", stats.to_dict())
