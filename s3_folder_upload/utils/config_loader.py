"""
Settings file loader and validator.

Loads an optional YAML settings file so a deploy job can keep its bucket,
directory and endpoint in version control. Credentials are deliberately not
accepted here; they come from flags or the environment.

Example settings file (deploy/assets.yaml):
    ```yaml
    version: "1.0"
    bucket: my-static-assets
    dir: ./dist
    region: eu-west-1
    metrics_file: /var/lib/node_exporter/s3_sync.prom
    ```

Usage:
    >>> from s3_folder_upload.utils.config_loader import load_config, validate_config
    >>> settings = load_config("deploy/assets.yaml")
    >>> errors = validate_config(settings)
    >>> if not errors:
    ...     print(f"Syncing {settings['dir']} to {settings['bucket']}")
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from s3_folder_upload.utils.logging import get_logger

logger = get_logger(__name__)


SUPPORTED_VERSIONS = ["1.0"]

# Settings file key -> SyncConfig field
SETTING_FIELDS = {
    "bucket": "bucket",
    "dir": "upload_dir",
    "region": "region",
    "endpoint_url": "endpoint_url",
    "metrics_file": "metrics_file",
}

CREDENTIAL_KEYS = ["aws_key", "aws_secret", "aws_access_key_id", "aws_secret_access_key"]


@dataclass
class ConfigError:
    """Validation error in a settings file."""

    field: str
    message: str
    value: Optional[Any] = None

    def __str__(self) -> str:
        if self.value is not None:
            return f"{self.field}: {self.message} (got: {self.value})"
        return f"{self.field}: {self.message}"


def load_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load settings from a YAML file.

    Args:
        config_path: Path to YAML settings file

    Returns:
        Dictionary containing parsed settings

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the path is not a file, or the file is empty or not a mapping
        yaml.YAMLError: If YAML is malformed
    """
    path = Path(config_path)
    logger.info(f"Loading settings from: {path}")

    if not path.exists():
        raise FileNotFoundError(f"Settings file not found: {path}")

    if not path.is_file():
        raise ValueError(f"Settings path is not a file: {path}")

    try:
        with open(path, "r") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse YAML: {e}")
        raise

    if config is None:
        raise ValueError("Settings file is empty")

    if not isinstance(config, dict):
        raise ValueError(
            f"Settings file must contain a mapping, got {type(config).__name__}"
        )

    logger.info(f"✓ Settings loaded: {sorted(config)}")
    return dict(config)


def validate_config(config: Dict[str, Any]) -> List[ConfigError]:
    """
    Validate settings against the expected schema.

    Args:
        config: Settings dictionary to validate

    Returns:
        List of validation errors (empty if valid)

    Example:
        >>> errors = validate_config({"version": "1.0", "bucket": "assets"})
        >>> if errors:
        ...     for error in errors:
        ...         print(f"❌ {error}")
    """
    errors: List[ConfigError] = []

    if "version" not in config:
        errors.append(ConfigError("version", "Missing required field"))
    elif str(config["version"]) not in SUPPORTED_VERSIONS:
        errors.append(
            ConfigError(
                "version",
                f"Unsupported version (supported: {SUPPORTED_VERSIONS})",
                config["version"],
            )
        )

    for key, value in config.items():
        if key == "version":
            continue
        if key in CREDENTIAL_KEYS:
            errors.append(
                ConfigError(
                    key,
                    "Credentials are not read from settings files; "
                    "use --aws_key/--aws_secret or the environment",
                )
            )
        elif key not in SETTING_FIELDS:
            errors.append(
                ConfigError(key, f"Unknown setting (valid: {sorted(SETTING_FIELDS)})")
            )
        elif not isinstance(value, str):
            errors.append(ConfigError(key, "Must be a string", type(value).__name__))

    if errors:
        logger.warning(f"Settings validation failed with {len(errors)} errors")
    else:
        logger.info("✓ Settings validation passed")

    return errors


def config_overrides(config: Dict[str, Any]) -> Dict[str, str]:
    """
    Map validated settings onto SyncConfig field names.

    Args:
        config: Settings dictionary that passed validate_config

    Returns:
        Keyword arguments for SyncConfig.merged
    """
    return {
        SETTING_FIELDS[key]: value
        for key, value in config.items()
        if key in SETTING_FIELDS
    }
