"""
Prometheus metrics for sync runs.

A sync is a one-shot process, so metrics are collected in a per-run
registry and written to a textfile for the node_exporter textfile
collector instead of being served over HTTP.

Metrics Provided:
    - s3_sync_uploads_total: Counter for uploaded objects
    - s3_sync_upload_bytes_total: Counter for uploaded bytes
    - s3_sync_deletes_total: Counter for deleted remote objects
    - s3_sync_api_errors_total: Counter for S3 API errors
    - s3_sync_api_duration_seconds: Histogram for S3 API latency
    - s3_sync_local_files: Gauge for files found under the upload root
    - s3_sync_last_success_timestamp_seconds: Gauge set when a run completes

Usage:
    from s3_folder_upload.utils.metrics import SyncMetrics

    metrics = SyncMetrics()
    with metrics.track_api_call("upload"):
        client.upload_file(...)
    metrics.record_upload(bytes_uploaded=1024)
    metrics.write_textfile("/var/lib/node_exporter/s3_sync.prom")
"""

import os
from contextlib import nullcontext
from pathlib import Path
from typing import Optional, Union

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    write_to_textfile,
)

from s3_folder_upload.utils.logging import get_logger

logger = get_logger(__name__)


class SyncMetrics:
    """
    Prometheus collectors for one sync run.

    Each instance owns its registry, so building several uploaders in one
    process (tests, scripted deploys) never hits duplicate registration.

    Example:
        >>> metrics = SyncMetrics()
        >>> metrics.record_delete()
        >>> metrics.registry.get_sample_value("s3_sync_deletes_total")
        1.0
    """

    def __init__(
        self, enabled: bool = True, registry: Optional[CollectorRegistry] = None
    ) -> None:
        """
        Initialize metrics collectors.

        Args:
            enabled: Whether metrics collection is enabled
            registry: Registry to register collectors in (a fresh one if None)
        """
        self.enabled = enabled
        self.registry = registry if registry is not None else CollectorRegistry()

        if not self.enabled:
            logger.debug("Metrics collection disabled")
            return

        self.uploads = Counter(
            name="s3_sync_uploads_total",
            documentation="Total number of objects uploaded",
            registry=self.registry,
        )

        self.upload_bytes = Counter(
            name="s3_sync_upload_bytes_total",
            documentation="Total bytes uploaded",
            registry=self.registry,
        )

        self.deletes = Counter(
            name="s3_sync_deletes_total",
            documentation="Total number of remote objects deleted",
            registry=self.registry,
        )

        self.api_errors = Counter(
            name="s3_sync_api_errors_total",
            documentation="Total S3 API errors",
            labelnames=["operation", "error_type"],  # operation: upload/list/delete
            registry=self.registry,
        )

        self.api_duration = Histogram(
            name="s3_sync_api_duration_seconds",
            documentation="S3 API call latency",
            labelnames=["operation"],
            buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
            registry=self.registry,
        )

        self.local_files = Gauge(
            name="s3_sync_local_files",
            documentation="Number of files found under the upload root",
            registry=self.registry,
        )

        self.last_success = Gauge(
            name="s3_sync_last_success_timestamp_seconds",
            documentation="Unix time of the last completed sync run",
            registry=self.registry,
        )

    def track_api_call(self, operation: str):
        """
        Context manager timing one S3 API call.

        Args:
            operation: S3 operation (upload, list, delete)
        """
        if not self.enabled:
            return nullcontext()

        return self.api_duration.labels(operation=operation).time()

    def set_local_files(self, count: int) -> None:
        if not self.enabled:
            return

        self.local_files.set(count)

    def record_upload(self, bytes_uploaded: int) -> None:
        """
        Record a successful upload.

        Args:
            bytes_uploaded: Size of the uploaded file in bytes
        """
        if not self.enabled:
            return

        self.uploads.inc()
        self.upload_bytes.inc(bytes_uploaded)

    def record_delete(self) -> None:
        """Record a deleted remote object."""
        if not self.enabled:
            return

        self.deletes.inc()

    def record_api_error(self, operation: str, error_type: str) -> None:
        """
        Record an S3 API error.

        Args:
            operation: S3 operation (upload, list, delete)
            error_type: Exception class name
        """
        if not self.enabled:
            return

        self.api_errors.labels(operation=operation, error_type=error_type).inc()

    def mark_success(self) -> None:
        if not self.enabled:
            return

        self.last_success.set_to_current_time()

    def write_textfile(self, path: Union[str, Path]) -> None:
        """
        Write the registry in Prometheus text format.

        prometheus_client writes to a temporary file and renames it, so a
        scraping node_exporter never sees a partial file.

        Args:
            path: Destination .prom file
        """
        if not self.enabled:
            logger.debug(f"Metrics disabled; not writing {path}")
            return

        write_to_textfile(str(path), self.registry)
        logger.info(f"Metrics written to {path}")


def metrics_enabled() -> bool:
    """Read METRICS_ENABLED from the environment (default: true)."""
    return os.getenv("METRICS_ENABLED", "true").lower() == "true"
