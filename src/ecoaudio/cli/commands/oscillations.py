"""Oscillation rate commands."""

from typing import Optional

import click


@click.group()
def oscillations() -> None:
    """Oscillation rate analysis."""
    pass


@oscillations.command("compute")
@click.argument("file", type=click.Path(exists=True))
@click.option(
    "--sensitivity",
    default=None,
    type=float,
    help="Minimum fraction of power at the peak [config: oscillations.sensitivity_threshold]",
)
@click.option(
    "--sample-length", default=None, type=int, help="Frames per autocorrelation sample [config: oscillations.sample_length]"
)
@click.option(
    "--algorithm",
    type=click.Choice(["Autocorr-SVD-FFT", "Autocorr-FFT", "Autocorr-WPD"], case_sensitive=False),
    default=None,
    help="Oscillation algorithm [config: oscillations.algorithm]",
)
@click.option("--output", "-o", type=click.Path(), help="CSV file for the oscillation matrix")
def oscillations_compute(
    file: str, sensitivity: Optional[float], sample_length: Optional[int], algorithm: Optional[str], output: str
) -> None:
    """Frequency-by-oscillation-rate matrix of a recording."""
    import numpy as np

    from ecoaudio.cli.progress import console, print_summary
    from ecoaudio.cli.service_helpers import config_value, handle_result, services

    result = handle_result(
        services.oscillations.compute(
            file,
            config_value("oscillations", "sensitivity_threshold", sensitivity),
            config_value("oscillations", "sample_length", sample_length),
            config_value("oscillations", "algorithm", algorithm),
            output_csv=output,
        )
    )
    index = result.spectral_index
    peak_bin = int(np.argmax(index)) if index.size else 0
    print_summary(
        f"Oscillations: {file}",
        {
            "algorithm": result.algorithm.value,
            "oscillation bin width (Hz)": result.oscillation_bin_width,
            "frequency bins": int(index.size),
            "peak bin": peak_bin,
            "peak index": float(index[peak_bin]) if index.size else 0.0,
        },
    )
    if output:
        console.print(f"Matrix saved to {output}")
