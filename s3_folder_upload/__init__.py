"""
s3-folder-upload

Deploys static assets by mirroring a local directory into an S3 bucket:
every local file is uploaded with an access-control setting and content
type, and remote objects without a local counterpart are removed.

This package provides:
- uploader: The S3 folder uploader
- cli: Command-line entry point
- utils: Logging, configuration, and metrics helpers
"""

__version__ = "0.1.0"

# Package-level imports
from s3_folder_upload.utils.logging import setup_logging

# Initialize default logging configuration
setup_logging()
