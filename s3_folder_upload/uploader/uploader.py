"""
S3 folder uploader implementation.

Mirrors a local directory into an S3 bucket: every file under the upload
root is uploaded under its relative path with an access-control setting and
a guessed content type, then remote objects without a local counterpart are
deleted. Uses boto3 for all S3 calls.

Example usage:
    >>> from s3_folder_upload.uploader import S3FolderUploader
    >>> uploader = S3FolderUploader(
    ...     "./dist",
    ...     "my-static-assets",
    ...     aws_key="AKIA...",
    ...     aws_secret="...",
    ... )
    >>> uploader.upload()
    ['index.html', 'css/site.css']
    >>> uploader.cleanup()
    ['old/banner.png']
"""

import mimetypes
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, FrozenSet, Iterator, List, Optional, Union

import boto3
from boto3.exceptions import S3UploadFailedError
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from s3_folder_upload.utils.config import DEFAULT_REGION, SyncConfig
from s3_folder_upload.utils.logging import get_logger, log_function_call
from s3_folder_upload.utils.metrics import SyncMetrics

# Module logger
logger = get_logger(__name__)

# Canned ACL applied to every uploaded object
DEFAULT_ACL = "authenticated-read"

# Compressed files mimetypes reports only as an encoding
COMPRESSION_CONTENT_TYPES = {
    "gzip": "application/gzip",
    "bzip2": "application/x-bzip2",
    "xz": "application/x-xz",
    "compress": "application/x-compress",
    "br": "application/x-brotli",
}

# Errors that abort a run; anything else is a programming error
S3_ERRORS = (ClientError, BotoCoreError, S3UploadFailedError, OSError)

_BUCKET_NAME_RE = re.compile(r"^[a-z0-9][a-z0-9.-]{1,61}[a-z0-9]$")
_IP_ADDRESS_RE = re.compile(r"^\d{1,3}(\.\d{1,3}){3}$")

ProgressCallback = Callable[[int, int], None]
DeleteCallback = Callable[[str], None]


@dataclass(frozen=True)
class LocalFile:
    """
    Filesystem entry found under the upload root.

    Attributes:
        path: Path to the entry (as enumerated, rooted at the upload root)
        key: Path relative to the upload root, '/'-separated
        is_directory: Directories are enumerated but never uploaded
    """

    path: Path
    key: str
    is_directory: bool = False


@dataclass(frozen=True)
class RemoteObject:
    """Object listed in the destination bucket."""

    key: str
    size: int = 0

    def matches(self, local_keys: FrozenSet[str]) -> bool:
        """Whether a local file maps to exactly this key."""
        return self.key in local_keys


@dataclass
class UploadOptions:
    """
    Per-object options sent with each upload.

    Attributes:
        acl: Canned ACL for the object
        content_type: MIME type (left to the service default if None)
    """

    acl: str = DEFAULT_ACL
    content_type: Optional[str] = None

    def to_extra_args(self) -> Dict[str, str]:
        extra_args = {"ACL": self.acl}
        if self.content_type:
            extra_args["ContentType"] = self.content_type
        return extra_args


def validate_bucket_name(bucket_name: str) -> bool:
    """
    Validate a bucket name against S3 naming rules.

    Checks length, allowed characters and a few reserved forms. Does NOT
    verify that the bucket exists.

    Args:
        bucket_name: Bucket name to validate

    Returns:
        True if the name is a valid S3 bucket name, False otherwise

    Example:
        >>> validate_bucket_name("my-bucket")
        True
        >>> validate_bucket_name("My_Bucket")
        False
    """
    if not bucket_name:
        logger.warning("Bucket name cannot be empty")
        return False

    if not _BUCKET_NAME_RE.match(bucket_name):
        logger.warning(
            f"Bucket name must be 3-63 lowercase letters, digits, dots or "
            f"hyphens: {bucket_name}"
        )
        return False

    if ".." in bucket_name or ".-" in bucket_name or "-." in bucket_name:
        logger.warning(f"Invalid character sequence in bucket name: {bucket_name}")
        return False

    if _IP_ADDRESS_RE.match(bucket_name):
        logger.warning(f"Bucket name cannot be an IP address: {bucket_name}")
        return False

    if bucket_name.startswith("xn--") or bucket_name.endswith("-s3alias"):
        logger.warning(f"Bucket name uses a reserved prefix or suffix: {bucket_name}")
        return False

    return True


def content_type_for(path: Union[str, Path]) -> Optional[str]:
    """
    Guess the content type from a file name.

    Args:
        path: File path; only the name is inspected

    Returns:
        MIME type string, or None if the extension is unknown

    Example:
        >>> content_type_for("index.html")
        'text/html'
        >>> content_type_for("LICENSE") is None
        True
    """
    content_type, encoding = mimetypes.guess_type(Path(path).name, strict=False)

    # 'bundle.js.gz' is served as a gzip file, not as javascript
    if encoding:
        return COMPRESSION_CONTENT_TYPES.get(encoding, content_type)

    return content_type


def relative_key(path: Union[str, Path], root: Union[str, Path]) -> str:
    """
    Compute the object key for a file under the upload root.

    Args:
        path: File path, rooted at the upload root
        root: Upload root directory

    Returns:
        Path relative to root with '/' separators

    Raises:
        ValueError: If path is not under root
    """
    return Path(path).relative_to(Path(root)).as_posix()


def enumerate_local_files(root: Union[str, Path]) -> List[LocalFile]:
    """
    Recursively list every entry under the upload root, dot-files included.

    Symlinked directories are reported but not descended into. Entries are
    returned in sorted path order.

    Args:
        root: Upload root directory

    Returns:
        LocalFile for every file and directory under root (empty if root
        does not exist)
    """
    root_path = Path(root)
    if not root_path.is_dir():
        logger.warning(f"Upload root is not a directory, nothing to upload: {root}")
        return []

    return [
        LocalFile(
            path=entry,
            key=relative_key(entry, root_path),
            is_directory=entry.is_dir(),
        )
        for entry in sorted(root_path.rglob("*"))
    ]


def build_s3_client(
    aws_key: Optional[str],
    aws_secret: Optional[str],
    region: str = DEFAULT_REGION,
    endpoint_url: Optional[str] = None,
):
    """
    Create a boto3 S3 client.

    Unset credentials fall through to boto3's default provider chain.
    """
    return boto3.client(
        "s3",
        region_name=region,
        endpoint_url=endpoint_url,
        aws_access_key_id=aws_key,
        aws_secret_access_key=aws_secret,
        config=Config(signature_version="s3v4"),
    )


class S3FolderUploader:
    """
    Uploads a local folder to an S3 bucket and removes stale objects.

    The local tree is enumerated once, at construction, and the same file
    set drives both upload() and cleanup().

    Example:
        >>> uploader = S3FolderUploader("some_route/test_folder", "your_bucket_name")
        >>> uploader.upload()
        >>> uploader.cleanup()
    """

    def __init__(
        self,
        folder_path: Union[str, Path],
        bucket: str,
        aws_key: Optional[str] = None,
        aws_secret: Optional[str] = None,
        region: str = DEFAULT_REGION,
        endpoint_url: Optional[str] = None,
        client=None,
        metrics: Optional[SyncMetrics] = None,
    ) -> None:
        """
        Initialize the uploader.

        Args:
            folder_path: Folder to upload; a missing folder yields no files
            bucket: Destination bucket name
            aws_key: Access key ID
            aws_secret: Secret access key
            region: Bucket region
            endpoint_url: Custom endpoint for S3-compatible stores
            client: Pre-built S3 client (skips client construction)
            metrics: Metrics collector (a disabled one if None)
        """
        self.folder_path = Path(folder_path)
        self.bucket = bucket
        self.client = client or build_s3_client(
            aws_key, aws_secret, region=region, endpoint_url=endpoint_url
        )
        self.metrics = metrics or SyncMetrics(enabled=False)

        self.files = enumerate_local_files(self.folder_path)
        self.local_keys: FrozenSet[str] = frozenset(
            local_file.key for local_file in self.files if not local_file.is_directory
        )
        self.metrics.set_local_files(len(self.local_keys))

        logger.info(
            f"Found {len(self.local_keys)} files under {self.folder_path} "
            f"for bucket {self.bucket}"
        )

    @classmethod
    def from_config(
        cls, config: SyncConfig, client=None, metrics: Optional[SyncMetrics] = None
    ) -> "S3FolderUploader":
        """
        Build an uploader from a SyncConfig.

        Raises:
            ValueError: If the config is missing required settings
        """
        missing = config.missing_fields()
        if missing:
            raise ValueError(f"Missing required settings: {', '.join(missing)}")

        return cls(
            config.upload_dir,
            config.bucket,
            aws_key=config.aws_key,
            aws_secret=config.aws_secret,
            region=config.region,
            endpoint_url=config.endpoint_url,
            client=client,
            metrics=metrics,
        )

    @log_function_call
    def upload(self, progress: Optional[ProgressCallback] = None) -> List[str]:
        """
        Upload every local file under its relative key.

        Args:
            progress: Called with (index, total) before each entry; total
                counts directories too

        Returns:
            Uploaded keys in upload order

        Raises:
            ClientError, BotoCoreError, S3UploadFailedError, OSError:
                On the first failed upload; remaining files are not attempted
        """
        total = len(self.files)
        uploaded: List[str] = []

        for index, local_file in enumerate(self.files, start=1):
            if progress:
                progress(index, total)

            if local_file.is_directory:
                continue

            options = UploadOptions(content_type=content_type_for(local_file.path))
            self._upload_file(local_file, options)
            uploaded.append(local_file.key)

        logger.info(f"Upload complete: {len(uploaded)} files to {self.bucket}")
        return uploaded

    def _upload_file(self, local_file: LocalFile, options: UploadOptions) -> None:
        logger.debug(
            f"Uploading {local_file.path} -> s3://{self.bucket}/{local_file.key} "
            f"({options.to_extra_args()})"
        )

        try:
            with self.metrics.track_api_call("upload"):
                self.client.upload_file(
                    Filename=str(local_file.path),
                    Bucket=self.bucket,
                    Key=local_file.key,
                    ExtraArgs=options.to_extra_args(),
                )
            file_size = local_file.path.stat().st_size
        except S3_ERRORS as e:
            self.metrics.record_api_error("upload", type(e).__name__)
            logger.error(f"Upload failed for {local_file.key}: {e}")
            raise

        self.metrics.record_upload(bytes_uploaded=file_size)

    def list_remote_objects(self) -> Iterator[RemoteObject]:
        """
        Iterate over every object in the bucket.

        Raises:
            ClientError, BotoCoreError: If listing fails
        """
        paginator = self.client.get_paginator("list_objects_v2")

        try:
            for page in paginator.paginate(Bucket=self.bucket):
                for obj in page.get("Contents", []):
                    yield RemoteObject(key=obj["Key"], size=obj.get("Size", 0))
        except S3_ERRORS as e:
            self.metrics.record_api_error("list", type(e).__name__)
            logger.error(f"Listing bucket {self.bucket} failed: {e}")
            raise

    @log_function_call
    def cleanup(self, on_delete: Optional[DeleteCallback] = None) -> List[str]:
        """
        Delete remote objects that no local file maps to.

        An object is kept only if its key equals the relative key of a file
        enumerated under the upload root.

        Args:
            on_delete: Called with each key just before it is deleted

        Returns:
            Deleted keys in listing order

        Raises:
            ClientError, BotoCoreError: On the first failed list or delete;
                earlier deletions are not rolled back
        """
        with self.metrics.track_api_call("list"):
            remote_objects = list(self.list_remote_objects())

        deleted: List[str] = []
        for remote_object in remote_objects:
            if remote_object.matches(self.local_keys):
                continue

            logger.info(
                f"Deleting {remote_object.key} ({remote_object.size} bytes)",
                extra={"bucket": self.bucket, "size_bytes": remote_object.size},
            )
            if on_delete:
                on_delete(remote_object.key)

            self._delete_object(remote_object.key)
            deleted.append(remote_object.key)

        logger.info(
            f"Cleanup complete: {len(deleted)} of {len(remote_objects)} "
            f"objects removed from {self.bucket}"
        )
        return deleted

    def _delete_object(self, key: str) -> None:
        try:
            with self.metrics.track_api_call("delete"):
                self.client.delete_object(Bucket=self.bucket, Key=key)
        except S3_ERRORS as e:
            self.metrics.record_api_error("delete", type(e).__name__)
            logger.error(f"Delete failed for {key}: {e}")
            raise

        self.metrics.record_delete()
