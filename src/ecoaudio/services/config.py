# services/config.py
"""
Service for configuration management operations.
"""

from pathlib import Path
from typing import List, Optional

from ecoaudio.core.config import (
    Config,
    create_default_config_file,
    find_config_file,
    get_config_locations,
    load_config_cascade,
)

from .base import BaseService, ServiceResult


class ConfigService(BaseService):
    """
    ServiceResult-wrapped access to the TOML configuration.
    """

    def get_config(self, config_path: Optional[str] = None) -> ServiceResult[Config]:
        """Load the merged configuration, including an explicit file if given."""
        if config_path:
            error = self._validate_input_path(config_path)
            if error:
                return ServiceResult.fail(error)
        try:
            config = load_config_cascade(config_path)
            return ServiceResult.ok(
                data=config,
                message=f"Loaded config from {config._source or 'defaults'}",
                source=config._source,
            )
        except Exception as e:
            return ServiceResult.fail(f"Failed to get config: {e}")

    def find_config_file(self, config_path: Optional[str] = None) -> ServiceResult[Optional[str]]:
        try:
            result = find_config_file(config_path)
        except Exception as e:
            return ServiceResult.fail(f"Failed to find config file: {e}")
        if result:
            return ServiceResult.ok(data=str(result), message=f"Found config file: {result}")
        return ServiceResult.ok(data=None, message="No config file found")

    def get_config_locations(self) -> ServiceResult[List[str]]:
        """Search locations, highest priority first, flagging which exist."""
        locations = get_config_locations()
        return ServiceResult.ok(
            data=[str(p) for p in locations],
            existing=[str(p) for p in locations if p.exists()],
        )

    def create_default_config(self, filepath: Optional[str] = None, force: bool = False) -> ServiceResult[str]:
        """Write the default configuration as TOML."""
        target = Path(filepath or "ecoaudio.toml")
        error = self._validate_output_path(str(target), allow_overwrite=force)
        if error:
            return ServiceResult.fail(error)
        try:
            path = create_default_config_file(str(target))
            return ServiceResult.ok(data=path, message=f"Created config file: {path}")
        except Exception as e:
            return ServiceResult.fail(f"Failed to create config file: {e}")
