"""Integration tests for end-to-end sync runs.

These tests drive the uploader against an in-memory S3 double and verify
the bucket state after upload + cleanup:
- Bucket keys equal the local file set after a run
- Repeated runs converge to the same state
- Empty and missing upload roots clear the bucket
- Differently spelled upload roots map to the same keys
"""

from pathlib import Path
from typing import Dict, Iterator, Optional

import pytest
from botocore.exceptions import ClientError

from s3_folder_upload.uploader import S3FolderUploader
from s3_folder_upload.utils.metrics import SyncMetrics


class FakeS3Client:
    """In-memory stand-in for the handful of S3 client calls the uploader makes."""

    def __init__(self, keys=(), page_size: int = 2, fail_on_key: Optional[str] = None):
        self.objects: Dict[str, dict] = {key: {"Body": b"stale"} for key in keys}
        self.page_size = page_size
        self.fail_on_key = fail_on_key

    def upload_file(self, Filename: str, Bucket: str, Key: str, ExtraArgs=None) -> None:
        if Key == self.fail_on_key:
            raise ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject")
        self.objects[Key] = {"Body": Path(Filename).read_bytes(), **(ExtraArgs or {})}

    def delete_object(self, Bucket: str, Key: str) -> dict:
        self.objects.pop(Key, None)
        return {}

    def get_paginator(self, operation_name: str) -> "FakeS3Client":
        assert operation_name == "list_objects_v2"
        return self

    def paginate(self, Bucket: str) -> Iterator[dict]:
        keys = sorted(self.objects)
        if not keys:
            yield {"KeyCount": 0}
            return
        for start in range(0, len(keys), self.page_size):
            page = keys[start : start + self.page_size]
            yield {
                "Contents": [
                    {"Key": key, "Size": len(self.objects[key]["Body"])} for key in page
                ]
            }


def run_sync(root, client: FakeS3Client, metrics: Optional[SyncMetrics] = None):
    uploader = S3FolderUploader(root, "assets", client=client, metrics=metrics)
    uploaded = uploader.upload()
    deleted = uploader.cleanup()
    return uploaded, deleted


@pytest.fixture
def site_dir(tmp_path: Path) -> Path:
    """Static site with nested folders, a dot-file and an extensionless file."""
    root = tmp_path / "dist"
    (root / "css").mkdir(parents=True)
    (root / "js" / "vendor").mkdir(parents=True)
    (root / "empty").mkdir()
    (root / "index.html").write_text("<html></html>")
    (root / "css" / "site.css").write_text("body {}")
    (root / "js" / "app.js").write_text("console.log('hi')")
    (root / "js" / "vendor" / "lib.min.js").write_text("/* lib */")
    (root / ".htaccess").write_text("Options -Indexes")
    (root / "CNAME").write_text("assets.example.com")
    return root


EXPECTED_KEYS = {
    ".htaccess",
    "CNAME",
    "css/site.css",
    "index.html",
    "js/app.js",
    "js/vendor/lib.min.js",
}


class TestSyncInvariant:
    """Bucket keys equal local file keys after a run."""

    def test_bucket_matches_local_tree(self, site_dir: Path):
        """Test the bucket holds exactly the local files after a run."""
        client = FakeS3Client(keys=["old/b.txt", "index.html", "js/legacy.js", "css/"])

        uploaded, deleted = run_sync(site_dir, client)

        assert set(client.objects) == EXPECTED_KEYS
        assert set(uploaded) == EXPECTED_KEYS
        assert sorted(deleted) == ["css/", "js/legacy.js", "old/b.txt"]

    def test_existing_object_is_overwritten(self, site_dir: Path):
        """Test an existing object is replaced with the local content."""
        client = FakeS3Client(keys=["index.html"])

        run_sync(site_dir, client)

        assert client.objects["index.html"]["Body"] == b"<html></html>"

    def test_objects_carry_acl_and_content_type(self, site_dir: Path):
        """Test uploaded objects carry the ACL and guessed type."""
        client = FakeS3Client()

        run_sync(site_dir, client)

        assert all(obj["ACL"] == "authenticated-read" for obj in client.objects.values())
        assert client.objects["index.html"]["ContentType"] == "text/html"
        assert client.objects["css/site.css"]["ContentType"] == "text/css"
        assert "ContentType" not in client.objects["CNAME"]

    def test_cleanup_example(self, tmp_path: Path):
        """Test a stale key is removed while the current one stays."""
        root = tmp_path / "site"
        root.mkdir()
        (root / "a.txt").write_text("a")
        client = FakeS3Client(keys=["a.txt", "old/b.txt"])

        _, deleted = run_sync(root, client)

        assert deleted == ["old/b.txt"]
        assert set(client.objects) == {"a.txt"}


class TestIdempotence:
    """Running twice without local changes yields the same bucket."""

    def test_second_run_deletes_nothing(self, site_dir: Path):
        """Test a second run changes nothing."""
        client = FakeS3Client(keys=["old/b.txt"])

        run_sync(site_dir, client)
        first_state = {key: dict(obj) for key, obj in client.objects.items()}

        uploaded, deleted = run_sync(site_dir, client)

        assert deleted == []
        assert set(uploaded) == EXPECTED_KEYS
        assert client.objects == first_state


class TestEmptyRoots:
    """Empty or missing upload roots clear the bucket."""

    def test_empty_directory_deletes_everything(self, tmp_path: Path):
        """Test an empty root clears the bucket."""
        root = tmp_path / "empty"
        root.mkdir()
        client = FakeS3Client(keys=["a.txt", "b/c.txt", "d.txt"])

        uploaded, deleted = run_sync(root, client)

        assert uploaded == []
        assert sorted(deleted) == ["a.txt", "b/c.txt", "d.txt"]
        assert client.objects == {}

    def test_missing_directory_deletes_everything(self, tmp_path: Path):
        """Test a missing root clears the bucket."""
        client = FakeS3Client(keys=["a.txt"])

        uploaded, deleted = run_sync(tmp_path / "does-not-exist", client)

        assert uploaded == []
        assert deleted == ["a.txt"]
        assert client.objects == {}


class TestRootSpelling:
    """Relative, dotted and trailing-slash roots produce the same keys."""

    @pytest.mark.parametrize("root", ["dist", "./dist", "dist/", "./dist/"])
    def test_relative_roots_keep_current_objects(self, site_dir: Path, monkeypatch, root: str):
        """Test differently spelled roots keep current objects."""
        monkeypatch.chdir(site_dir.parent)
        client = FakeS3Client(keys=sorted(EXPECTED_KEYS))

        uploaded, deleted = run_sync(root, client)

        assert deleted == []
        assert set(uploaded) == EXPECTED_KEYS
        assert set(client.objects) == EXPECTED_KEYS

    def test_remote_keys_are_not_normalized(self, site_dir: Path):
        """Test non-canonical remote keys are deleted."""
        client = FakeS3Client(keys=["./index.html", "css//site.css"])

        _, deleted = run_sync(site_dir, client)

        assert sorted(deleted) == ["./index.html", "css//site.css"]
        assert set(client.objects) == EXPECTED_KEYS


class TestFailures:
    """A failed upload stops the run before cleanup."""

    def test_upload_failure_leaves_stale_objects(self, site_dir: Path):
        """Test a failed upload leaves earlier uploads and stale objects."""
        client = FakeS3Client(keys=["old/b.txt"], fail_on_key="css/site.css")
        uploader = S3FolderUploader(site_dir, "assets", client=client)

        with pytest.raises(ClientError):
            uploader.upload()

        # .htaccess and CNAME sort before css/site.css
        assert set(client.objects) == {"old/b.txt", ".htaccess", "CNAME"}


class TestMetrics:
    """Metrics reflect a complete run."""

    def test_counts_uploads_and_deletes(self, site_dir: Path):
        """Test metrics count a full run."""
        client = FakeS3Client(keys=["old/b.txt", "old/c.txt"])
        metrics = SyncMetrics()

        run_sync(site_dir, client, metrics=metrics)

        assert metrics.registry.get_sample_value("s3_sync_uploads_total") == len(EXPECTED_KEYS)
        assert metrics.registry.get_sample_value("s3_sync_deletes_total") == 2.0
        assert metrics.registry.get_sample_value("s3_sync_local_files") == len(EXPECTED_KEYS)
