"""
ecoaudio CLI - bioacoustic analysis from the command line
"""

from typing import Optional

import click

from ecoaudio import __version__

from .commands import config, events, files, indices, learn, oscillations, snr


@click.group()
@click.version_option(version=__version__, prog_name="ecoaudio")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to TOML configuration file",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(config_path: Optional[str], verbose: bool) -> None:
    """ecoaudio - Bioacoustic analysis toolkit

    Settings not given as options come from the configuration:
    - --config option pointing to a TOML file
    - ./ecoaudio.toml in current directory
    - ~/.config/ecoaudio/config.toml

    Use 'ecoaudio COMMAND --help' for more information on a command.
    """
    from ecoaudio.core.config import load_config_cascade, set_config
    from ecoaudio.core.logger import configure_from_config, set_level

    config_obj = load_config_cascade(config_path)
    set_config(config_obj)

    try:
        configure_from_config(config_obj.get("logging", "level"), config_obj.get("logging", "format"))
    except ValueError as e:
        raise click.UsageError(f"Invalid [logging] configuration: {e}")
    if verbose:
        set_level("DEBUG")


cli.add_command(config)
cli.add_command(events)
cli.add_command(files)
cli.add_command(indices)
cli.add_command(learn)
cli.add_command(oscillations)
cli.add_command(snr)


if __name__ == "__main__":
    cli()
