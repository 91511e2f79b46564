# Copyright 2026 Pramod Kumar Voola
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

# -----------------------------------------------------------------------------
# THE WORKSPACE - BUILD DIRECTORIES & LOG FILES
# -----------------------------------------------------------------------------
# Responsibility: Allocate a uniquely named on-disk directory for each Build,
# its logs/ folder and the empty slug file containers bind-mount.
#
# Everything here is synchronous and finishes before the pipeline starts.
# A half-created workspace is not rolled back; the error propagates to the
# request that asked for it.
# -----------------------------------------------------------------------------

import re
import uuid
from collections.abc import Callable
from pathlib import Path

from rich.console import Console

from slipway.domain.models import (
    BUILDS_DIR,
    CACHE_DIR,
    LOGS_DIR,
    SOURCE_ARCHIVE_EXT,
    SOURCES_DIR,
    Build,
)

console = Console()

# Application names and revisions become path segments.
SAFE_SEGMENT = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


class WorkspaceError(Exception):
    """Base class for workspace lookup failures."""

    pass


class AppNotFound(WorkspaceError):
    """Raised when the application directory does not exist."""

    pass


class InvalidRevision(WorkspaceError):
    """Raised when no revision was given or its source archive is missing."""

    pass


class BuildNotFound(WorkspaceError):
    """Raised when a build directory or its log does not exist."""

    pass


def _is_safe_segment(value: str) -> bool:
    return bool(SAFE_SEGMENT.match(value)) and ".." not in value


class WorkspaceManager:
    """
    Owns the on-disk tree under MAIN_PATH.

    One folder per application; builds are created here, everything else
    (sources, the app folder itself) is created out of band.
    """

    def __init__(
        self, main_path: Path, id_factory: Callable[[], str] | None = None
    ) -> None:
        """
        Args:
            main_path: Directory holding one folder per application.
            id_factory: Build id generator, random UUID4 strings by default.
        """
        self._main_path = Path(main_path)
        self._new_id = id_factory or (lambda: str(uuid.uuid4()))

    @property
    def main_path(self) -> Path:
        return self._main_path

    def app_dir(self, app_name: str) -> Path:
        """
        Resolve an application's directory.

        Raises:
            AppNotFound: If the name is not a plain path segment or the folder is missing.
        """
        if not _is_safe_segment(app_name):
            raise AppNotFound(f"App not found: {app_name!r}")
        path = self._main_path / app_name
        if not path.is_dir():
            raise AppNotFound(f"App not found: {app_name}")
        return path

    def source_archive(self, app_name: str, revision: str | None) -> Path:
        """
        Resolve the source archive for a revision.

        Raises:
            AppNotFound: If the application does not exist.
            InvalidRevision: If the revision is empty, unsafe or its archive is missing.
        """
        app_dir = self.app_dir(app_name)
        if not revision or not _is_safe_segment(revision):
            raise InvalidRevision(f"Invalid revision: {revision!r}")
        archive = app_dir / SOURCES_DIR / f"{revision}{SOURCE_ARCHIVE_EXT}"
        if not archive.is_file():
            raise InvalidRevision(f"Invalid revision: {revision} (no {archive.name})")
        return archive

    def allocate(self, app_name: str, revision: str | None) -> Build:
        """
        Create the workspace for a new Build.

        Draws build ids until one does not collide with an existing build
        directory, then creates the directory, logs/ and an empty slug file.

        Args:
            app_name: Application name.
            revision: Revision whose source archive will be compiled.

        Returns:
            The Build in state CREATED.

        Raises:
            AppNotFound: Application directory missing.
            InvalidRevision: Revision missing or archive absent.
            OSError: If the directories cannot be created.
        """
        app_dir = self.app_dir(app_name)
        self.source_archive(app_name, revision)

        builds_dir = app_dir / BUILDS_DIR
        builds_dir.mkdir(exist_ok=True)

        while True:
            build_id = self._new_id()
            build_dir = builds_dir / build_id
            try:
                # mkdir without exist_ok is the collision check; it is atomic
                # across concurrent allocations.
                build_dir.mkdir()
                break
            except FileExistsError:
                console.print(f"[yellow][WORKSPACE] Build id collision {build_id}, redrawing[/yellow]")

        build = Build(
            id=build_id,
            app_name=app_name,
            revision=revision,
            app_dir=app_dir,
            build_dir=build_dir,
        )
        build.logs_dir.mkdir()
        build.log_file.touch()
        build.error_log_file.touch()
        build.artifact_path.touch()

        console.print(f"[cyan][WORKSPACE] Allocated {app_name}/{build_id}[/cyan]")
        return build

    def build_dir(self, app_name: str, build_id: str) -> Path:
        """
        Locate an existing build directory.

        Raises:
            BuildNotFound: If the app, build or its build log is missing.
        """
        try:
            app_dir = self.app_dir(app_name)
        except AppNotFound as e:
            raise BuildNotFound(str(e)) from e
        path = app_dir / BUILDS_DIR / build_id
        if not (path / LOGS_DIR).is_dir():
            raise BuildNotFound(f"Build not found: {app_name}/{build_id}")
        return path

    def mark_complete(self, build: Build) -> None:
        """Write the completion marker holding the compile status code."""
        status = "" if build.status_code is None else str(build.status_code)
        build.marker_file.write_text(f"{status}\n")
        console.print(f"[dim][WORKSPACE] Completion marker written for {build.short_id}[/dim]")

    def ensure_app(self, app_name: str) -> Path:
        """Create the folder tree for a new application (out-of-band setup)."""
        if not _is_safe_segment(app_name):
            raise AppNotFound(f"Invalid app name: {app_name!r}")
        app_dir = self._main_path / app_name
        for sub in (SOURCES_DIR, CACHE_DIR, BUILDS_DIR):
            (app_dir / sub).mkdir(parents=True, exist_ok=True)
        return app_dir
