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
# THE FOUNDRY - COMPILE CONTAINER
# -----------------------------------------------------------------------------
# Responsibility: Compile one revision into a slug inside a throwaway
# container.
#
# Mounts:
# - sources/<revision>.tgz -> /tmp/sources/source.tgz (read-only)
# - builds/<id>/slug.tgz   -> /tmp/slugs/slug.tgz     (read-write, the artifact)
# - cache/                 -> /tmp/cache              (read-write, shared per app)
#
# stdout goes to logs/build.log and stderr to logs/error.log. Both files stay
# open until the container has exited, or captured output is truncated.
#
# The cache is shared by every build of an application with no locking;
# concurrent builds of one app may race on it.
# -----------------------------------------------------------------------------

from rich.console import Console

from slipway.core.settings import DEFAULT_BUILD_IMAGE
from slipway.domain.models import Build, BuildState
from slipway.infra.docker_client import DockerProvider

console = Console()

SOURCE_MOUNT = "/tmp/sources/source.tgz"
SLUG_MOUNT = "/tmp/slugs/slug.tgz"
CACHE_MOUNT = "/tmp/cache"

COMPILE_COMMAND = ["/bin/bash", "-c", f"tar -xzf {SOURCE_MOUNT} && /build"]


class Foundry:
    """
    The Build Executor.

    Runs the compile image to completion and reports its exit code.
    Engine failures propagate as ContainerRuntimeError.
    """

    def __init__(self, provider: DockerProvider, image: str = DEFAULT_BUILD_IMAGE) -> None:
        self._provider = provider
        self._image = image

    @property
    def image(self) -> str:
        return self._image

    def volumes(self, build: Build) -> dict[str, dict[str, str]]:
        """Bind mounts for the compile container."""
        return {
            str(build.source_archive): {"bind": SOURCE_MOUNT, "mode": "ro"},
            str(build.artifact_path): {"bind": SLUG_MOUNT, "mode": "rw"},
            str(build.cache_dir): {"bind": CACHE_MOUNT, "mode": "rw"},
        }

    def compile(self, build: Build) -> int:
        """
        Compile a Build's revision into its slug.

        Args:
            build: An allocated Build (slug file and logs already exist).

        Returns:
            The compile container's exit code, also stored on the Build.

        Raises:
            ContainerRuntimeError: If the engine fails to run the container.
        """
        build.cache_dir.mkdir(exist_ok=True)
        build.state = BuildState.COMPILING
        console.print(
            f"[cyan][FOUNDRY] Compiling {build.app_name}@{build.revision} "
            f"(build {build.short_id}, image {self._image})[/cyan]"
        )

        with open(build.log_file, "ab") as stdout, open(build.error_log_file, "ab") as stderr:
            status_code = self._provider.run_to_completion(
                self._image,
                COMPILE_COMMAND,
                self.volumes(build),
                stdout=stdout,
                stderr=stderr,
            )

        build.status_code = status_code
        build.state = BuildState.COMPILED

        if status_code == 0:
            console.print(f"[green][FOUNDRY] Compile PASSED ({build.short_id})[/green]")
        else:
            console.print(
                f"[red][FOUNDRY] Compile FAILED (build {build.short_id}, exit: {status_code})[/red]"
            )
        return status_code
