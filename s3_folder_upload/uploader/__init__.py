"""
S3 folder uploader module.

Uploads a local directory tree to an S3 bucket with a canned ACL and guessed
content types, then deletes remote objects that no longer have a local
counterpart.
"""

from .uploader import (
    DEFAULT_ACL,
    LocalFile,
    RemoteObject,
    S3FolderUploader,
    UploadOptions,
    content_type_for,
    enumerate_local_files,
    relative_key,
    validate_bucket_name,
)

__all__ = [
    "DEFAULT_ACL",
    "LocalFile",
    "RemoteObject",
    "S3FolderUploader",
    "UploadOptions",
    "content_type_for",
    "enumerate_local_files",
    "relative_key",
    "validate_bucket_name",
]
