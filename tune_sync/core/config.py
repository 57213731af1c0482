"""
Configuration management for tune-sync.

This module handles loading, validating, and providing access to the
application configuration stored in config.yaml.

The configuration file contains:
    - Path to the iTunes / Music library XML export
    - Flat output directory for converted files and playlists
    - Optional log directory
    - Conversion settings (bitrate, force, worker count, ffmpeg binary)

Configuration File Location:
    The config.yaml file is read from the current working directory
    unless an explicit path is given.

Environment Overrides:
    A .env file is loaded with python-dotenv. The variables
    TUNESYNC_LIBRARY_XML and TUNESYNC_OUTPUT_DIR take precedence over
    the values in config.yaml.

Example config.yaml:
    library:
      xml_path: "~/Music/iTunes/iTunes Music Library.xml"

    output:
      directory: "~/Music/TuneSync"
      log_directory: null  # Optional, defaults to {directory}/logs

    conversion:
      bitrate: 256
      force: false
      workers: 4
      ffmpeg: null  # Optional: explicit path to the ffmpeg binary
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from tune_sync.core.exceptions import ConfigError


# Default configuration file name (always in current working directory)
CONFIG_FILENAME = "config.yaml"

# Environment variables overriding file values
ENV_LIBRARY_XML = "TUNESYNC_LIBRARY_XML"
ENV_OUTPUT_DIR = "TUNESYNC_OUTPUT_DIR"

DEFAULT_BITRATE_KBPS = 256
DEFAULT_WORKERS = 4


@dataclass(frozen=True)
class LibraryConfig:
    """
    Library source configuration.

    Attributes:
        xml_path: Absolute path to the library XML export
                  (File > Library > Export Library... in iTunes / Music).
    """
    xml_path: Path


@dataclass(frozen=True)
class OutputConfig:
    """
    Output directory configuration.

    Attributes:
        directory: Absolute path of the flat directory that receives the
                   converted <persistent id>.m4a files and the .m3u playlists.
        log_directory: Absolute path for log files.
                       Defaults to {directory}/logs if not specified.
    """
    directory: Path
    log_directory: Path


@dataclass(frozen=True)
class EncoderConfig:
    """
    Conversion behavior configuration.

    Attributes:
        bitrate: Target AAC bitrate in kbps. Default: 256.
        force: Re-convert every track even when its output already exists.
        workers: Number of parallel conversions. Each one runs an ffmpeg
                 process, so keep this small. Default: 4.
        ffmpeg: Optional explicit path to the ffmpeg binary.
    """
    bitrate: int
    force: bool
    workers: int
    ffmpeg: str | None


@dataclass(frozen=True)
class Config:
    """
    Complete application configuration.

    Created by load_config() and treated as immutable.

    Example:
        config = load_config()
        print(f"Reading library: {config.library.xml_path}")
        print(f"Writing to: {config.output.directory}")
        print(f"Using {config.conversion.workers} workers")
    """
    library: LibraryConfig
    output: OutputConfig
    conversion: EncoderConfig


def load_config(config_path: Path | None = None) -> Config:
    """
    Load and validate configuration from config.yaml.

    Args:
        config_path: Optional explicit path to config file.
                     If None, looks for config.yaml in current working directory.

    Returns:
        Config: A frozen dataclass containing all configuration values.

    Raises:
        ConfigError: If the config file is not found, has invalid YAML syntax,
                     is missing required fields, or contains invalid values.

    Behavior:
        1. Load .env into the process environment
        2. Locate config file (explicit path or CWD/config.yaml)
        3. Read and parse YAML content
        4. Apply environment overrides
        5. Validate each section and expand paths
        6. Create and return frozen Config object
    """
    load_dotenv()

    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILENAME

    if not config_path.exists():
        raise ConfigError(
            f"Configuration file not found: {config_path}",
            details={"file_path": str(config_path)}
        )

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except OSError as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    try:
        raw_config = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )

    _apply_environment_overrides(raw_config)
    _validate_config(raw_config)

    return Config(
        library=_parse_library_config(raw_config["library"]),
        output=_parse_output_config(raw_config["output"]),
        conversion=_parse_encoder_config(raw_config.get("conversion"))
    )


def _apply_environment_overrides(raw_config: dict[str, Any]) -> None:
    """
    Overlay TUNESYNC_* environment variables onto the raw configuration.

    Sections are created when missing so that a config file may omit
    values that are always provided through the environment.
    """
    env_mappings = {
        ENV_LIBRARY_XML: ("library", "xml_path"),
        ENV_OUTPUT_DIR: ("output", "directory"),
    }

    for env_var, (section, key) in env_mappings.items():
        value = os.getenv(env_var)
        if value:
            target = raw_config.get(section)
            if not isinstance(target, dict):
                target = {}
                raw_config[section] = target
            target[key] = value


def _validate_config(raw_config: dict[str, Any]) -> None:
    """
    Validate the raw configuration dictionary structure.

    Raises:
        ConfigError: If a required section is missing or is not a mapping.
    """
    required_sections = ["library", "output"]

    for section in required_sections:
        if section not in raw_config:
            raise ConfigError(
                f"Missing required section: '{section}'",
                details={"missing_section": section}
            )

        if not isinstance(raw_config[section], dict):
            raise ConfigError(
                f"Section '{section}' must be a dictionary",
                details={"section": section}
            )


def _expand_path(value: Any, field_name: str) -> Path:
    """Validate a non-empty string path and return it expanded and absolute."""
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(
            f"'{field_name}' must be a non-empty string",
            details={"field": field_name}
        )
    return Path(value.strip()).expanduser().resolve()


def _parse_library_config(library_section: dict[str, Any]) -> LibraryConfig:
    """
    Parse the library configuration section.

    The XML file is not opened here; a missing file is reported when the
    library is loaded so that `tunesync --help` works without one.
    """
    return LibraryConfig(
        xml_path=_expand_path(library_section.get("xml_path", ""), "library.xml_path")
    )


def _parse_output_config(output_section: dict[str, Any]) -> OutputConfig:
    """
    Parse and validate the output configuration section.

    Expands ~ to home directory and converts to absolute Path.
    Does NOT create the directory (that happens at sync time).
    """
    directory = _expand_path(output_section.get("directory", ""), "output.directory")

    log_dir_raw = output_section.get("log_directory")
    if log_dir_raw is not None:
        log_directory = _expand_path(log_dir_raw, "output.log_directory")
    else:
        log_directory = directory / "logs"

    return OutputConfig(directory=directory, log_directory=log_directory)


def _parse_encoder_config(conversion_section: dict[str, Any] | None) -> EncoderConfig:
    """
    Parse and validate the conversion configuration section.

    Applies defaults if section is missing or fields are not specified.

    Raises:
        ConfigError: If bitrate or workers is not a positive integer,
                     force is not a boolean, or ffmpeg is not a string.
    """
    bitrate = DEFAULT_BITRATE_KBPS
    force = False
    workers = DEFAULT_WORKERS
    ffmpeg = None

    if conversion_section is not None:
        if not isinstance(conversion_section, dict):
            raise ConfigError(
                "Section 'conversion' must be a dictionary",
                details={"section": "conversion"}
            )

        for field_name in ("bitrate", "workers"):
            raw_value = conversion_section.get(field_name)
            if raw_value is None:
                continue
            # bool is a subclass of int, reject it explicitly
            if isinstance(raw_value, bool) or not isinstance(raw_value, int) or raw_value < 1:
                raise ConfigError(
                    f"'conversion.{field_name}' must be a positive integer",
                    details={"field": f"conversion.{field_name}", "value": raw_value}
                )
            if field_name == "bitrate":
                bitrate = raw_value
            else:
                workers = raw_value

        raw_force = conversion_section.get("force")
        if raw_force is not None:
            if not isinstance(raw_force, bool):
                raise ConfigError(
                    "'conversion.force' must be true or false",
                    details={"field": "conversion.force", "value": raw_force}
                )
            force = raw_force

        raw_ffmpeg = conversion_section.get("ffmpeg")
        if raw_ffmpeg is not None:
            if not isinstance(raw_ffmpeg, str) or not raw_ffmpeg.strip():
                raise ConfigError(
                    "'conversion.ffmpeg' must be a string path or null",
                    details={"field": "conversion.ffmpeg"}
                )
            ffmpeg = str(Path(raw_ffmpeg.strip()).expanduser())

    return EncoderConfig(
        bitrate=bitrate,
        force=force,
        workers=workers,
        ffmpeg=ffmpeg
    )
