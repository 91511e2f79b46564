#!/usr/bin/env python3
"""
Create the folder tree for a new application under MAIN_PATH.

Applications are created out of band; the build server only checks that
the folder exists. This lays out sources/, cache/ and builds/ and can copy
a first source archive into place.

Run from project root:
  python scripts/create_app.py demo
  python scripts/create_app.py demo --source ./abc123.tgz

Requires: MAIN_PATH (and the other server variables) in the environment or .env.
"""

import argparse
import shutil
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from slipway.core.settings import load_settings
from slipway.core.workspace import WorkspaceManager
from slipway.domain.models import SOURCE_ARCHIVE_EXT, SOURCES_DIR

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("app_name")
    parser.add_argument("--source", type=Path, help=f"revision archive (*{SOURCE_ARCHIVE_EXT})")
    args = parser.parse_args()

    settings = load_settings()
    app_dir = WorkspaceManager(settings.main_path).ensure_app(args.app_name)
    print(f"Application ready: {app_dir}")

    if args.source:
        target = app_dir / SOURCES_DIR / args.source.name
        shutil.copyfile(args.source, target)
        print(f"Revision {args.source.name.removesuffix(SOURCE_ARCHIVE_EXT)} added: {target}")
