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
# DOMAIN MODELS - BUILDS & RELEASES
# -----------------------------------------------------------------------------
# Pydantic models shared by the pipeline (Workspace -> Foundry -> Deployer ->
# Swap) and the HTTP layer.
#
# On-disk layout of one application:
#
#   <MAIN_PATH>/<app>/sources/<revision>.tgz    immutable source archives
#   <MAIN_PATH>/<app>/cache/                    shared build cache
#   <MAIN_PATH>/<app>/builds/<build_id>/        one directory per build
#       slug.tgz                                the artifact
#       logs/build.log                          stdout + pipeline step lines
#       logs/error.log                          stderr
#       logs/build.tmp                          completion marker
# -----------------------------------------------------------------------------

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field

SOURCES_DIR = "sources"
CACHE_DIR = "cache"
BUILDS_DIR = "builds"
LOGS_DIR = "logs"

SOURCE_ARCHIVE_EXT = ".tgz"
ARTIFACT_NAME = "slug.tgz"
BUILD_LOG_NAME = "build.log"
ERROR_LOG_NAME = "error.log"
COMPLETION_MARKER_NAME = "build.tmp"


class BuildState(str, Enum):
    """
    Lifecycle of a Build.

    CREATED -> COMPILING -> COMPILED -> DEPLOYING -> RELEASED, or FAILED at
    any stage. Only the completion marker is visible outside the process.
    """

    CREATED = "created"
    COMPILING = "compiling"
    COMPILED = "compiled"
    DEPLOYING = "deploying"
    RELEASED = "released"
    FAILED = "failed"


class RetirementOutcome(BaseModel):
    """Result of stopping one previous release container."""

    container_id: str
    stopped: bool
    error: str | None = None


class Build(BaseModel):
    """
    One attempt to compile a revision into a slug and release it.

    Paths are derived from the application and build directories so the
    layout above lives in exactly one place.
    """

    id: str
    app_name: str
    revision: str
    app_dir: Path
    build_dir: Path
    state: BuildState = BuildState.CREATED
    status_code: int | None = None
    release_container_id: str | None = None
    retired: list[RetirementOutcome] = Field(default_factory=list)

    @property
    def short_id(self) -> str:
        return self.id[:8]

    @property
    def source_archive(self) -> Path:
        return self.app_dir / SOURCES_DIR / f"{self.revision}{SOURCE_ARCHIVE_EXT}"

    @property
    def cache_dir(self) -> Path:
        return self.app_dir / CACHE_DIR

    @property
    def artifact_path(self) -> Path:
        return self.build_dir / ARTIFACT_NAME

    @property
    def logs_dir(self) -> Path:
        return self.build_dir / LOGS_DIR

    @property
    def log_file(self) -> Path:
        return self.logs_dir / BUILD_LOG_NAME

    @property
    def error_log_file(self) -> Path:
        return self.logs_dir / ERROR_LOG_NAME

    @property
    def marker_file(self) -> Path:
        return self.logs_dir / COMPLETION_MARKER_NAME

    @property
    def is_complete(self) -> bool:
        """True once the completion marker has been written."""
        return self.marker_file.exists()


class BuildRequest(BaseModel):
    """Body of POST /apps/{app_name}/builds."""

    revision: str | None = Field(
        default=None, description="Opaque revision id; sources/<revision>.tgz must exist"
    )


class BuildResponse(BaseModel):
    """Returned immediately, before any container work starts."""

    output_stream_url: str
