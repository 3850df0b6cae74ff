"""
Environment configuration loader for s3-folder-upload.

Loads sync settings from a .env file or environment variables and merges
them with overrides from the settings file and the command line. The
resulting SyncConfig is built once at startup and handed to the uploader.
"""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import List, Optional, Union

from dotenv import load_dotenv

from s3_folder_upload.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_REGION = "us-east-1"

# Environment variable names
ENV_BUCKET = "BUCKET"
ENV_AWS_KEY = "AWS_ACCESS_KEY_ID"
ENV_AWS_SECRET = "AWS_SECRET_ACCESS_KEY"
ENV_REGION = "AWS_REGION"
ENV_ENDPOINT_URL = "S3_ENDPOINT_URL"
ENV_METRICS_FILE = "METRICS_FILE"


def load_env(dotenv_path: Optional[Union[str, Path]] = None) -> bool:
    """
    Load variables from a .env file into the process environment.

    Existing environment variables win over values in the file. A missing
    file is not an error: production hosts usually export the variables
    directly.

    Args:
        dotenv_path: Explicit .env path (.env in the working directory if None;
            parent directories are not searched)

    Returns:
        True if a .env file was found and loaded
    """
    path = Path(dotenv_path) if dotenv_path else Path.cwd() / ".env"
    if not path.is_file():
        logger.info("No .env file found; using process environment")
        return False

    load_dotenv(path, override=False)
    logger.info(f"Loaded environment from {path}")
    return True


def _getenv(name: str) -> Optional[str]:
    """Read an environment variable, treating an empty value as unset."""
    value = os.getenv(name)
    return value if value else None


@dataclass(frozen=True)
class SyncConfig:
    """
    Settings for a single sync run.

    Attributes:
        bucket: Destination bucket name
        upload_dir: Local directory whose contents are synced
        aws_key: Access key ID
        aws_secret: Secret access key (excluded from repr)
        region: Bucket region
        endpoint_url: Custom endpoint for S3-compatible stores
        metrics_file: Where to write Prometheus textfile metrics after the run
    """

    bucket: Optional[str] = None
    upload_dir: Optional[str] = None
    aws_key: Optional[str] = None
    aws_secret: Optional[str] = field(default=None, repr=False)
    region: str = DEFAULT_REGION
    endpoint_url: Optional[str] = None
    metrics_file: Optional[str] = None

    @classmethod
    def from_env(cls) -> "SyncConfig":
        """
        Load configuration from environment variables.

        The upload directory has no environment default and must come
        from the command line or the settings file.

        Returns:
            SyncConfig with values read from os.environ
        """
        return cls(
            bucket=_getenv(ENV_BUCKET),
            aws_key=_getenv(ENV_AWS_KEY),
            aws_secret=_getenv(ENV_AWS_SECRET),
            region=_getenv(ENV_REGION) or DEFAULT_REGION,
            endpoint_url=_getenv(ENV_ENDPOINT_URL),
            metrics_file=_getenv(ENV_METRICS_FILE),
        )

    def merged(self, **overrides: Optional[str]) -> "SyncConfig":
        """
        Return a copy with the given overrides applied.

        None and empty-string overrides are ignored, so unset CLI flags
        fall through to the current values.

        Raises:
            TypeError: If an override names an unknown field
        """
        changes = {key: value for key, value in overrides.items() if value}
        return replace(self, **changes)

    def missing_fields(self) -> List[str]:
        """
        List required settings that are unset.

        Returns:
            Names of missing settings, in CLI flag order (empty if complete)
        """
        required = [
            ("bucket", self.bucket),
            ("dir", self.upload_dir),
            ("aws_key", self.aws_key),
            ("aws_secret", self.aws_secret),
        ]
        return [name for name, value in required if not value]
