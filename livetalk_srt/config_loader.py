"""Handles loading configuration from YAML files."""

import yaml
import os
import logging
from typing import Optional
from .exceptions import ConfigurationError
from .models import DEFAULT_CHARS_PER_SECOND, DEFAULT_MIN_DISPLAY_SECONDS

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    'offset_seconds': 0,
    'min_display_seconds': DEFAULT_MIN_DISPLAY_SECONDS,
    'chars_per_second': DEFAULT_CHARS_PER_SECOND,
    'timestamp_formats': None,
    'output_encoding': 'utf-8',
    'log_dir': 'logs',
    'log_file': None, # Each entry point has its own default
}

class ConfigLoader:
    """Loads configuration settings from a YAML file."""

    def load_config(self, config_path: Optional[str] = None) -> dict:
        """
        Loads configuration from the specified YAML file path.

        Keys missing from the file fall back to DEFAULT_CONFIG. With no path,
        the defaults are returned as is.

        Args:
            config_path: The path to the YAML configuration file, or None.

        Returns:
            A dictionary containing the loaded configuration settings.

        Raises:
            FileNotFoundError: If the configuration file does not exist.
            ConfigurationError: If the file cannot be parsed as YAML,
                              holds invalid values or cannot be read.
        """
        config = dict(DEFAULT_CONFIG)
        if config_path is None:
            logger.info("No configuration file given; using defaults.")
            return config

        logger.info(f"Attempting to load configuration from: {config_path}")
        if not os.path.exists(config_path):
            logger.error(f"Configuration file not found at path: {config_path}")
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        if not os.path.isfile(config_path):
             logger.error(f"Configuration path is not a file: {config_path}")
             raise ConfigurationError(f"Configuration path is not a file: {config_path}")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"Error parsing YAML configuration file {config_path}: {e}", exc_info=True)
            raise ConfigurationError(f"Invalid YAML format in {config_path}: {e}") from e
        except IOError as e:
            logger.error(f"Error reading configuration file {config_path}: {e}", exc_info=True)
            raise ConfigurationError(f"Could not read configuration file {config_path}: {e}") from e

        if loaded is None:
            # An empty file is a valid, empty configuration
            loaded = {}
        if not isinstance(loaded, dict):
            logger.error(f"Configuration file {config_path} did not load as a dictionary (root object).")
            raise ConfigurationError(f"Invalid YAML structure in {config_path}. Root must be a mapping (dictionary).")

        config.update(loaded)
        self.validate(config)
        logger.info(f"Configuration loaded successfully from {config_path}")
        return config

    @staticmethod
    def validate(config: dict) -> None:
        """
        Checks the value types and ranges of the known keys.

        Raises:
            ConfigurationError: On the first invalid value.
        """
        for key in ('offset_seconds', 'min_display_seconds', 'chars_per_second'):
            value = config.get(key)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"'{key}' must be an integer, got {value!r}")
        if config['chars_per_second'] <= 0:
            raise ConfigurationError(f"'chars_per_second' must be positive, got {config['chars_per_second']}")
        if config['min_display_seconds'] < 0:
            raise ConfigurationError(f"'min_display_seconds' cannot be negative, got {config['min_display_seconds']}")

        formats = config.get('timestamp_formats')
        if formats is not None:
            if not isinstance(formats, list) or not all(isinstance(fmt, str) for fmt in formats):
                raise ConfigurationError("'timestamp_formats' must be a list of strptime format strings")

        encoding = config.get('output_encoding')
        if not isinstance(encoding, str) or not encoding:
            raise ConfigurationError(f"'output_encoding' must be a non-empty string, got {encoding!r}")
