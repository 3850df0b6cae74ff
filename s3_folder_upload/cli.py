"""
Command-line entry point for s3-folder-upload.

Resolves settings from the environment (optionally primed from .env), an
optional YAML settings file and command-line flags, then uploads the folder
and removes stale objects from the bucket.

Usage:
    s3-folder-upload --dir ./dist --bucket my-static-assets
    s3-folder-upload -d ./dist -b my-static-assets -k KEY -s SECRET
    s3-folder-upload --config deploy/assets.yaml --metrics-file sync.prom
"""

import argparse
import logging
import sys
from typing import List, Optional

import yaml

from s3_folder_upload.uploader import S3FolderUploader, validate_bucket_name
from s3_folder_upload.utils.config import SyncConfig, load_env
from s3_folder_upload.utils.config_loader import (
    config_overrides,
    load_config,
    validate_config,
)
from s3_folder_upload.utils.logging import get_logger, set_correlation_id, setup_logging
from s3_folder_upload.utils.metrics import SyncMetrics, metrics_enabled

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130


def build_parser(defaults: SyncConfig) -> argparse.ArgumentParser:
    """
    Build the argument parser.

    Flags default to None so that only values given on the command line
    override the environment and the settings file. Credential defaults
    are named, never printed.
    """
    parser = argparse.ArgumentParser(
        prog="s3-folder-upload",
        description="Sync a local directory to an S3 bucket",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Deploy ./dist using credentials from the environment or .env
  %(prog)s --dir ./dist --bucket my-static-assets

  # Pass credentials explicitly
  %(prog)s -d ./dist -b my-static-assets -k KEY -s SECRET

  # Keep bucket and directory in a settings file
  %(prog)s --config deploy/assets.yaml
        """,
    )

    parser.add_argument(
        "-b",
        "--bucket",
        help=f'S3 bucket to deploy to (required, default: "{defaults.bucket or ""}" from $BUCKET)',
    )

    parser.add_argument(
        "-d",
        "--dir",
        metavar="DIRECTORY",
        help="Directory to upload (required)",
    )

    parser.add_argument(
        "-k",
        "--aws_key",
        metavar="KEY",
        help="AWS upload key (required, default: $AWS_ACCESS_KEY_ID)",
    )

    parser.add_argument(
        "-s",
        "--aws_secret",
        metavar="SECRET",
        help="AWS upload secret (required, default: $AWS_SECRET_ACCESS_KEY)",
    )

    parser.add_argument(
        "-r",
        "--region",
        help=f"Bucket region (default: {defaults.region})",
    )

    parser.add_argument(
        "-e",
        "--endpoint-url",
        dest="endpoint_url",
        metavar="URL",
        help="Endpoint for S3-compatible storage (default: $S3_ENDPOINT_URL)",
    )

    parser.add_argument(
        "-c",
        "--config",
        metavar="FILE",
        help="YAML settings file (bucket, dir, region, endpoint_url, metrics_file)",
    )

    parser.add_argument(
        "--metrics-file",
        dest="metrics_file",
        metavar="PATH",
        help="Write Prometheus textfile metrics here after the run (default: $METRICS_FILE)",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )

    return parser


def resolve_config(args: argparse.Namespace, env_config: SyncConfig) -> SyncConfig:
    """
    Merge settings: environment < settings file < command line.

    Raises:
        FileNotFoundError, ValueError, yaml.YAMLError: If the settings file
            cannot be read or fails validation
    """
    config = env_config

    if args.config:
        settings = load_config(args.config)
        errors = validate_config(settings)
        if errors:
            raise ValueError(
                "Invalid settings file:\n" + "\n".join(f"  - {error}" for error in errors)
            )
        config = config.merged(**config_overrides(settings))

    return config.merged(
        bucket=args.bucket,
        upload_dir=args.dir,
        aws_key=args.aws_key,
        aws_secret=args.aws_secret,
        region=args.region,
        endpoint_url=args.endpoint_url,
        metrics_file=args.metrics_file,
    )


def print_progress(index: int, total: int) -> None:
    print(f"\rUploading... [{index}/{total}]", end="", flush=True)


def print_deletion(key: str) -> None:
    print(f"Deleting {key}")


def write_metrics(metrics: SyncMetrics, path: str) -> None:
    try:
        metrics.write_textfile(path)
    except OSError as e:
        logger.warning(f"Could not write metrics to {path}: {e}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the sync CLI."""
    load_env()
    env_config = SyncConfig.from_env()

    parser = build_parser(env_config)
    args = parser.parse_args(argv)

    if args.verbose:
        setup_logging(level="DEBUG")
    else:
        logging.getLogger("s3_folder_upload").setLevel(logging.WARNING)

    try:
        config = resolve_config(args, env_config)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        print(f"❌ Configuration error: {e}", file=sys.stderr)
        return EXIT_USAGE

    missing = config.missing_fields()
    if missing:
        print(f"❌ Missing required settings: {', '.join(missing)}", file=sys.stderr)
        parser.print_help()
        return EXIT_USAGE

    if not validate_bucket_name(config.bucket):
        print(f"⚠️  '{config.bucket}' is not a valid AWS bucket name; continuing anyway")

    set_correlation_id(f"sync-{config.bucket}")
    metrics = SyncMetrics(enabled=metrics_enabled())

    print(f"📤 Syncing {config.upload_dir} to s3://{config.bucket} ({config.region})")

    try:
        uploader = S3FolderUploader.from_config(config, metrics=metrics)

        uploaded = uploader.upload(progress=print_progress)
        print("\rUpload complete!".ljust(80))

        deleted = uploader.cleanup(on_delete=print_deletion)
        metrics.mark_success()

    except KeyboardInterrupt:
        print("\n⚠️  Sync cancelled by user")
        return EXIT_INTERRUPTED

    except Exception as e:
        # upload() and cleanup() log their own tracebacks
        logger.error(f"Sync failed: {e}")
        print(f"\n❌ Sync failed: {e}", file=sys.stderr)
        return EXIT_FAILURE

    finally:
        if config.metrics_file:
            write_metrics(metrics, config.metrics_file)

    print(f"✅ {len(uploaded)} uploaded, {len(deleted)} deleted")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
