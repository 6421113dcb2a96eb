"""Configuration management commands."""

import click


@click.group()
def config() -> None:
    """Configuration commands."""
    pass


@config.command("show")
@click.option("--config", "config_path", type=click.Path(exists=True), help="Explicit config file")
def config_show(config_path: str) -> None:
    """Show the merged configuration."""
    from ecoaudio.cli.progress import console
    from ecoaudio.cli.service_helpers import handle_result, services

    config_obj = handle_result(services.config.get_config(config_path))

    console.print("\n[bold]Current Configuration[/bold]")
    if config_obj._source and config_obj._source != "defaults":
        console.print(f"[dim]Source: {config_obj._source}[/dim]\n")
    else:
        console.print("[dim]Source: defaults (no config file found)[/dim]\n")

    for section_name, section in config_obj.to_dict().items():
        if section:
            console.print(f"[bold blue]\\[{section_name}][/bold blue]")
            for key, value in section.items():
                console.print(f"  {key} = {value}")
            console.print()


@config.command("init")
@click.option("--output", "-o", default="ecoaudio.toml", help="Output file path")
@click.option("--force", "-f", is_flag=True, help="Overwrite existing file")
def config_init(output: str, force: bool) -> None:
    """Create a default configuration file."""
    from ecoaudio.cli.progress import print_error, print_success
    from ecoaudio.cli.service_helpers import services

    result = services.config.create_default_config(output, force=force)

    if not result.success:
        print_error(result.error)
        if "already exists" in result.error:
            click.echo("Use --force to overwrite.")
        raise SystemExit(1)
    print_success(result.message)


@config.command("path")
def config_path() -> None:
    """Show configuration search locations."""
    from ecoaudio.cli.progress import console
    from ecoaudio.cli.service_helpers import handle_result, services

    result = services.config.get_config_locations()
    locations = handle_result(result)
    existing = set(result.metadata.get("existing", []))

    console.print("\n[bold]Config search locations[/bold] (highest priority first)\n")
    for i, location in enumerate(locations, 1):
        marker = "[green]✓[/green]" if location in existing else "[dim]-[/dim]"
        console.print(f"  {i}. {marker} {location}")

    active = handle_result(services.config.find_config_file())
    console.print(f"\nActive: {active or 'defaults'}")
