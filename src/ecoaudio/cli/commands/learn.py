"""Unsupervised feature learning commands."""

import click


@click.group()
def learn() -> None:
    """Unsupervised feature learning."""
    pass


@learn.command("centroids")
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@click.option("--output-dir", "-o", type=click.Path(), help="Directory for centroid CSV files")
@click.option("--clusters", "-k", default=None, type=int, help="Number of clusters")
@click.option("--bands", default=None, type=int, help="Number of frequency sub-bands")
@click.option("--patch-height", default=None, type=int, help="Patch height in frames")
@click.option("--patches", default=None, type=int, help="Random patches per band per recording")
@click.option("--seed", default=None, type=int, help="Random seed")
def learn_centroids(
    directory: str, output_dir: str, clusters: int, bands: int, patch_height: int, patches: int, seed: int
) -> None:
    """Learn spectrogram patch centroids from a folder of recordings."""
    from ecoaudio.cli.progress import console, print_table
    from ecoaudio.cli.service_helpers import exit_with_error, handle_result, services
    from ecoaudio.core.config import get_config
    from ecoaudio.core.feature_learning import FeatureLearningSettings

    data = dict(get_config().feature_learning)
    overrides = {
        "n_clusters": clusters,
        "n_freq_bands": bands,
        "patch_height": patch_height,
        "n_random_patches": patches,
        "seed": seed,
    }
    data.update({k: v for k, v in overrides.items() if v is not None})
    try:
        settings = FeatureLearningSettings.from_dict(data)
    except ValueError as e:
        exit_with_error(str(e))

    service_result = services.learning.learn_centroids(directory, settings, output_dir)
    result = handle_result(service_result)

    rows = [
        [i, band.centroids.shape[0], band.centroids.shape[1], max(band.sizes.values(), default=0)]
        for i, band in enumerate(result.bands)
    ]
    print_table(
        f"Centroids from {result.file_count} recordings",
        ["band", "clusters", "patch size", "largest cluster"],
        rows,
    )
    for path in service_result.metadata.get("files", []):
        console.print(f"Centroids saved to {path}")
