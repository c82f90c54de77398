import logging
import os
import sys
from dataclasses import dataclass, fields
from typing import Optional

from galho.core.errors import ConfigError

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

DEFAULT_CONFIG_FILE = "galho.toml"


@dataclass
class Settings:
    loader: str = "simulated"

    # HTTP loader
    base_url: str = "http://localhost:8000"
    timeout: float = 10.0

    # Simulated loader
    min_delay: float = 0.3
    max_delay: float = 1.1
    max_depth: int = 2

    log_file: str = "debug.log"
    log_level: str = "DEBUG"


def load_settings(path: Optional[str] = None) -> Settings:
    """
    Reads the [galho] table of a TOML file.

    An explicit path must exist; the default galho.toml is optional.
    """
    config_file = path or DEFAULT_CONFIG_FILE
    if not os.path.exists(config_file):
        if path:
            raise ConfigError(f"Config file not found: {path}")
        return Settings()

    logging.debug(f"Reading settings from {config_file}...")
    try:
        with open(config_file, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Cannot read {config_file}: {e}")

    return settings_from_dict(data.get("galho", {}))


def settings_from_dict(values: dict) -> Settings:
    settings = Settings()
    known = {f.name: f for f in fields(Settings)}

    for key, value in values.items():
        if key not in known:
            logging.warning(f"Ignoring unknown setting: {key}")
            continue

        expected = type(getattr(settings, key))
        if expected is float and isinstance(value, int) and not isinstance(value, bool):
            value = float(value)
        if not isinstance(value, expected) or isinstance(value, bool) != (expected is bool):
            raise ConfigError(f"Setting '{key}' must be {expected.__name__}, got {value!r}")

        setattr(settings, key, value)

    if settings.min_delay < 0 or settings.max_delay < settings.min_delay:
        raise ConfigError("Expected 0 <= min_delay <= max_delay")

    return settings


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        filename=settings.log_file,
        level=getattr(logging, settings.log_level.upper(), logging.DEBUG),
        filemode="w",
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
