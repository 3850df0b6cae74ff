#!/usr/bin/env python3
"""
Sync a local directory to an S3 bucket.

Wrapper around s3_folder_upload.cli for running from a checkout without
installing the package.

Usage:
    python scripts/sync.py --dir ./dist --bucket my-static-assets
    python scripts/sync.py -d ./dist -b my-static-assets -k KEY -s SECRET
    python scripts/sync.py --help
"""

import sys
from pathlib import Path

# Add project root to path for imports (before other imports)
_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from s3_folder_upload.cli import main  # noqa: E402


if __name__ == "__main__":
    sys.exit(main())
