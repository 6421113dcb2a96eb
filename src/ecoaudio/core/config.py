"""
Configuration Management
========================

TOML configuration for ecoaudio analyses.

Configuration files are searched in the following order (highest to lowest priority):
1. Path given explicitly (``ecoaudio --config FILE ...``)
2. ./ecoaudio.toml (current directory)
3. ~/.config/ecoaudio/config.toml (user config)
4. /etc/ecoaudio/config.toml (system config)
5. Built-in defaults

Example configuration file (ecoaudio.toml):

    [spectrogram]
    window_size = 512
    window_overlap = 0.5
    window_function = "hamming"
    do_mel_scale = false

    [noise_reduction]
    type = "standard"
    parameter = 2.0

    [indices]
    segment_duration = 60.0
    activity_threshold_db = 3.0
    low_freq_bound = 1000
    mid_freq_bound = 8000

    [events]
    threshold = 6.0
    smooth_window = 0.1
    min_duration = 0.1

    [oscillations]
    sample_length = 128
    sensitivity_threshold = 0.3

    [feature_learning]
    patch_height = 1
    n_random_patches = 80
    n_clusters = 16
    n_freq_bands = 4

    [batch]
    workers = 4

    [logging]
    level = "WARNING"
"""

import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

logger = logging.getLogger(__name__)


DEFAULT_CONFIG: Dict[str, Any] = {
    "spectrogram": {
        "window_size": 512,
        "window_overlap": 0.5,
        "window_function": "hamming",
        "do_mel_scale": False,
        "filterbank_count": 64,
        "cc_count": 12,
        "include_delta": True,
        "include_double_delta": True,
    },
    "noise_reduction": {
        "type": "standard",
        "parameter": 2.0,
    },
    "indices": {
        "segment_duration": 60.0,
        "window_size": 512,
        "activity_threshold_db": 3.0,
        "low_freq_bound": 1000,
        "mid_freq_bound": 8000,
        "bio_min_freq": 2000.0,
        "bio_max_freq": 8000.0,
    },
    "events": {
        "threshold": 6.0,
        "smooth_window": 0.0,
        "min_duration": 0.0,
        "max_duration": 10.0,
        "dynamic_range": 0.0,
    },
    "feature_learning": {
        "window_size": 1024,
        "window_overlap": 0.1028,
        "n_freq_bands": 1,
        "patch_height": 1,
        "n_random_patches": 80,
        "n_clusters": 16,
        "seed": 100,
    },
    "oscillations": {
        "sample_length": 128,
        "sensitivity_threshold": 0.3,
        "algorithm": "autocorr-svd-fft",
    },
    "batch": {
        "recursive": True,
        "workers": 1,
    },
    "logging": {
        "level": "WARNING",
        "format": "%(levelname)s - %(name)s - %(message)s",
    },
}

CONFIG_LOCATIONS = [
    Path("ecoaudio.toml"),
    Path("~/.config/ecoaudio/config.toml").expanduser(),
    Path("/etc/ecoaudio/config.toml"),
]

_SECTIONS = (
    "spectrogram",
    "noise_reduction",
    "indices",
    "events",
    "feature_learning",
    "oscillations",
    "batch",
    "logging",
)


@dataclass
class Config:
    """
    Configuration container for ecoaudio settings.

    Attributes:
        spectrogram: Framing, window and cepstral settings
        noise_reduction: Noise reduction type and its parameter
        indices: Acoustic index settings
        events: Template matching and event segmentation settings
        feature_learning: Patch sampling and clustering settings
        oscillations: Oscillation detection settings
        batch: Batch processing settings
        logging: Logging settings
        _source: Path to the config file that was loaded
    """

    spectrogram: Dict[str, Any] = field(default_factory=dict)
    noise_reduction: Dict[str, Any] = field(default_factory=dict)
    indices: Dict[str, Any] = field(default_factory=dict)
    events: Dict[str, Any] = field(default_factory=dict)
    feature_learning: Dict[str, Any] = field(default_factory=dict)
    oscillations: Dict[str, Any] = field(default_factory=dict)
    batch: Dict[str, Any] = field(default_factory=dict)
    logging: Dict[str, Any] = field(default_factory=dict)
    _source: Optional[str] = None

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """Get a configuration value."""
        section_dict = getattr(self, section, None)
        if not isinstance(section_dict, dict):
            return default
        return section_dict.get(key, default)

    def set(self, section: str, key: str, value: Any) -> None:
        """Set a configuration value. Unknown sections raise ``KeyError``."""
        if section not in _SECTIONS:
            raise KeyError(f"Unknown configuration section: {section}")
        getattr(self, section)[key] = value

    def to_dict(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in _SECTIONS}

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source: Optional[str] = None) -> "Config":
        kwargs = {name: data.get(name, {}) for name in _SECTIONS}
        return cls(_source=source, **kwargs)


def load_toml(filepath: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a TOML configuration file.

    Args:
        filepath: Path to the TOML file

    Returns:
        Dictionary with configuration values

    Raises:
        FileNotFoundError: If file doesn't exist
        tomllib.TOMLDecodeError: If the file is not valid TOML
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {filepath}")

    with open(path, "rb") as f:
        return tomllib.load(f)


def _format_value(value: Any) -> str:
    if isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_format_value(v) for v in value) + "]"
    raise TypeError(f"Cannot write {type(value).__name__} to TOML")


def _table_lines(name: str, values: Dict[str, Any]) -> List[str]:
    lines = [f"[{name}]"]
    nested = []
    for key, value in values.items():
        if value is None:
            continue
        if isinstance(value, dict):
            nested.append((f"{name}.{key}", value))
        else:
            lines.append(f"{key} = {_format_value(value)}")
    lines.append("")
    for sub_name, sub_values in nested:
        lines.extend(_table_lines(sub_name, sub_values))
    return lines


def save_toml(config: Dict[str, Any], filepath: Union[str, Path]) -> str:
    """
    Save configuration to a TOML file.

    ``None`` values are omitted since TOML has no null.

    Args:
        config: Configuration dictionary of sections
        filepath: Path to save the file

    Returns:
        Path to the saved file
    """
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)

    lines: List[str] = []
    for section, values in config.items():
        if isinstance(values, dict) and values:
            lines.extend(_table_lines(section, values))

    path.write_text("\n".join(lines), encoding="utf-8")
    return str(path)


def find_config_file(config_path: Optional[str] = None) -> Optional[Path]:
    """
    Find the configuration file to use.

    Args:
        config_path: Explicit path to config file (highest priority)

    Returns:
        Path to config file, or None if not found
    """
    if config_path:
        path = Path(config_path)
        if path.exists():
            return path
        logger.warning(f"Specified config file not found: {config_path}")
        return None

    for location in CONFIG_LOCATIONS:
        if location.exists():
            return location

    return None


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from the first file found, merged over the defaults.

    Args:
        config_path: Optional explicit path to config file

    Returns:
        Config object with merged settings
    """
    config_data = _deep_copy_dict(DEFAULT_CONFIG)
    config_file = find_config_file(config_path)

    if config_file:
        try:
            file_config = _migrate_deprecated_keys(load_toml(config_file))
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.warning(f"Error loading config file {config_file}: {e}")
        else:
            config_data = _merge_dicts(config_data, file_config)
            logger.info(f"Loaded configuration from {config_file}")
            return Config.from_dict(config_data, source=str(config_file))

    return Config.from_dict(config_data)


def get_default_config() -> Config:
    """Get the default configuration."""
    return Config.from_dict(_deep_copy_dict(DEFAULT_CONFIG))


def create_default_config_file(filepath: Optional[str] = None) -> str:
    """
    Create a default configuration file.

    Args:
        filepath: Path to create the file (default: ./ecoaudio.toml)

    Returns:
        Path to the created file
    """
    return save_toml(DEFAULT_CONFIG, filepath or "ecoaudio.toml")


def _deep_copy_dict(d: Dict[str, Any]) -> Dict[str, Any]:
    result = {}
    for key, value in d.items():
        if isinstance(value, dict):
            result[key] = _deep_copy_dict(value)
        elif isinstance(value, list):
            result[key] = value.copy()
        else:
            result[key] = value
    return result


def _merge_dicts(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge two dictionaries, with override taking precedence."""
    result = _deep_copy_dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_dicts(result[key], value)
        else:
            result[key] = value
    return result


# (section, old_key) -> new_key
_DEPRECATED_KEYS = {
    ("noise_reduction", "noise_reduction_type"): "type",
    ("noise_reduction", "dynamic_range"): "parameter",
    ("spectrogram", "frame_size"): "window_size",
    ("spectrogram", "frame_overlap"): "window_overlap",
    ("indices", "bg_noise_threshold_db"): "activity_threshold_db",
    ("events", "event_threshold"): "threshold",
    ("feature_learning", "num_random_patches"): "n_random_patches",
    ("feature_learning", "num_clusters"): "n_clusters",
    ("feature_learning", "num_freq_bands"): "n_freq_bands",
}


def _migrate_deprecated_keys(config_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Rename deprecated config keys, warning once per key.

    When both the old and the new key are present the new key wins.

    Args:
        config_data: Configuration dictionary to migrate

    Returns:
        Migrated configuration dictionary
    """
    import warnings

    for (section, old_key), new_key in _DEPRECATED_KEYS.items():
        section_data = config_data.get(section)
        if not isinstance(section_data, dict) or old_key not in section_data:
            continue
        if new_key not in section_data:
            section_data[new_key] = section_data[old_key]
            warnings.warn(
                f"Config key '[{section}].{old_key}' is deprecated. "
                f"Please update to '[{section}].{new_key}'.",
                DeprecationWarning,
                stacklevel=4,
            )
        else:
            warnings.warn(
                f"Config key '[{section}].{old_key}' is deprecated and "
                f"'[{section}].{new_key}' is also present. "
                f"Using '[{section}].{new_key}'.",
                DeprecationWarning,
                stacklevel=4,
            )
        del section_data[old_key]

    return config_data


_global_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance, loading it on first use."""
    global _global_config
    if _global_config is None:
        _global_config = load_config_cascade()
    return _global_config


def set_config(config: Config) -> None:
    global _global_config
    _global_config = config


def reset_config() -> None:
    """Forget the global configuration so that it is reloaded on next access."""
    global _global_config
    _global_config = None


def get_config_locations() -> List[Path]:
    """Configuration search locations, highest priority first."""
    return CONFIG_LOCATIONS.copy()


def _merge_file(config_data: Dict[str, Any], path: Path) -> Optional[Dict[str, Any]]:
    try:
        file_config = _migrate_deprecated_keys(load_toml(path))
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning(f"Error loading {path}: {e}")
        return None
    logger.debug(f"Merged configuration from {path}")
    return _merge_dicts(config_data, file_config)


def load_config_cascade(explicit_path: Optional[str] = None) -> Config:
    """
    Load configuration with full cascade support.

    Merges configs in priority order:
    defaults -> system -> user -> current dir -> explicit

    Args:
        explicit_path: Explicit config file path (highest priority)

    Returns:
        Config object with merged settings from all sources
    """
    config_data = _deep_copy_dict(DEFAULT_CONFIG)
    source = "defaults"

    for location in reversed(get_config_locations()):
        if location.exists():
            merged = _merge_file(config_data, location)
            if merged is not None:
                config_data = merged
                source = str(location)

    if explicit_path:
        path = Path(explicit_path)
        if path.exists():
            merged = _merge_file(config_data, path)
            if merged is not None:
                config_data = merged
                source = str(path)
        else:
            logger.warning(f"Specified config file not found: {explicit_path}")

    return Config.from_dict(config_data, source=source)
