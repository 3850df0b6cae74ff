"""
Utility modules for s3-folder-upload.

- logging: Structured logging with entry/exit decorators
- config: Environment and .env configuration
- config_loader: YAML settings file loading and validation
- metrics: Prometheus textfile metrics for sync runs
"""

from s3_folder_upload.utils.logging import get_logger, log_function_call

__all__ = ["get_logger", "log_function_call"]
