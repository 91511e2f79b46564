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
# THE FLEET MANAGER - BUILD & RELEASE PIPELINE
# -----------------------------------------------------------------------------
# Orchestrates one build from workspace to release.
#
# Functions:
# - dispatch_build: Allocate the workspace and spawn the pipeline task
# - _run_build: Main orchestration (compile -> deploy -> swap -> marker)
# - _phase_compile: Build container via the Foundry
# - _phase_deploy: Release container via the Deployer
# - _phase_swap: Retire previous releases
#
# Within a build the phases are strictly ordered. Builds never wait for each
# other, even for the same application: two builds of one app may allocate,
# compile (sharing its cache) and swap at the same time.
#
# Failure handling:
# - Compile exit != 0: release skipped, marker written
# - PortBindingFailure: swap skipped, old releases keep running, marker written
# - ContainerRuntimeError / anything else: logged, pipeline aborted, no marker
# -----------------------------------------------------------------------------

import asyncio
import traceback

from rich.console import Console

from slipway.core.deployer import Deployer, PortBindingFailure
from slipway.core.foundry import Foundry
from slipway.core.settings import Settings
from slipway.core.swap import ReleaseSwap
from slipway.core.workspace import WorkspaceManager
from slipway.domain.models import Build, BuildState
from slipway.infra.docker_client import ContainerRuntimeError, DockerProvider

console = Console()


class FleetManager:
    """
    The pipeline orchestrator.

    Pipeline: Workspace -> Foundry -> Deployer -> ReleaseSwap -> marker
    Engine calls are blocking and run in worker threads, so the event loop
    keeps serving log streams while builds run.
    """

    def __init__(
        self,
        settings: Settings,
        provider: DockerProvider,
        workspace: WorkspaceManager | None = None,
    ) -> None:
        self._settings = settings
        self._workspace = workspace or WorkspaceManager(settings.main_path)
        self._foundry = Foundry(provider, image=settings.build_image)
        self._deployer = Deployer(provider, settings)
        self._swap = ReleaseSwap(provider)
        self._builds: dict[str, Build] = {}
        self._tasks: set[asyncio.Task] = set()

        console.print("[green][FLEET] Fleet Manager online[/green]")

    @property
    def workspace(self) -> WorkspaceManager:
        return self._workspace

    def get_build(self, build_id: str) -> Build | None:
        """Builds started by this process, for observability only."""
        return self._builds.get(build_id)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every in-flight pipeline to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    async def dispatch_build(self, app_name: str, revision: str | None) -> Build:
        """
        Start a build.

        Allocates the workspace synchronously, then spawns the pipeline and
        returns before any container is created.

        Raises:
            AppNotFound: Application directory missing.
            InvalidRevision: Revision missing or archive absent.
        """
        build = self._workspace.allocate(app_name, revision)
        self._builds[build.id] = build

        console.print(f"[cyan][FLEET] Build started for {app_name}:[/cyan]")
        console.print(f"[cyan]\tRevision: {revision}[/cyan]")
        console.print(f"[cyan]\tBuild: {build.id}[/cyan]")

        task = asyncio.create_task(self._run_build(build), name=f"build-{build.short_id}")
        # Keep a reference until done so the task is not garbage collected.
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        return build

    # =========================================================================
    # PIPELINE
    # =========================================================================

    async def _run_build(self, build: Build) -> None:
        """
        Execute the pipeline for one build. Never raises.

        Flow: Compile -> Deploy -> Swap -> Marker
        """
        try:
            status_code = await self._phase_compile(build)
            if status_code != 0:
                self._skip_release(build, status_code)
                self._workspace.mark_complete(build)
                return

            container_id = await self._phase_deploy(build)
            if container_id is None:
                self._workspace.mark_complete(build)
                return

            await self._phase_swap(build, container_id)
            build.state = BuildState.RELEASED
            self._workspace.mark_complete(build)
            console.print(f"[green][FLEET] DONE {build.app_name} ({build.short_id})[/green]")

        except ContainerRuntimeError as e:
            build.state = BuildState.FAILED
            console.print(f"[red][FLEET] Build {build.short_id} aborted: {e}[/red]")

        except Exception as e:
            build.state = BuildState.FAILED
            console.print(f"[red][FLEET] Build {build.short_id} critical error: {e}[/red]")
            console.print(f"[dim]{traceback.format_exc()}[/dim]")

    # =========================================================================
    # PHASE 1: COMPILE
    # =========================================================================

    async def _phase_compile(self, build: Build) -> int:
        """Run the compile container to completion."""
        console.print(f"[cyan][FLEET] {build.short_id}\tCreating container...[/cyan]")
        status_code = await asyncio.to_thread(self._foundry.compile, build)
        console.print(f"[cyan][FLEET] {build.short_id}\tContainer finished ({status_code})[/cyan]")
        return status_code

    def _skip_release(self, build: Build, status_code: int) -> None:
        """
        Stop after a failed compile.

        Earlier versions of this server deployed whatever artifact a failed
        compile left behind; releases now require exit code 0.
        """
        build.state = BuildState.FAILED
        with open(build.log_file, "a") as log:
            log.write(f"-----> Build failed (exit {status_code}), release skipped\n")
        console.print(
            f"[yellow][FLEET] {build.short_id} compile exited {status_code}: "
            "release skipped (deploy requires a successful compile)[/yellow]"
        )

    # =========================================================================
    # PHASE 2: DEPLOY
    # =========================================================================

    async def _phase_deploy(self, build: Build) -> str | None:
        """Start the release container; None if it failed to bind its port."""
        try:
            container = await asyncio.to_thread(self._deployer.deploy, build)
            return container.id
        except PortBindingFailure as e:
            build.state = BuildState.FAILED
            console.print(
                f"[red][FLEET] {build.short_id} {e}; keeping previous releases running[/red]"
            )
            return None

    # =========================================================================
    # PHASE 3: SWAP
    # =========================================================================

    async def _phase_swap(self, build: Build, container_id: str) -> None:
        """Retire releases older than the one just started."""
        build.retired = await self._swap.retire_old(build.app_name, container_id)
        failed = [outcome for outcome in build.retired if not outcome.stopped]
        if failed:
            console.print(
                f"[yellow][FLEET] {build.short_id} {len(failed)} old release(s) "
                "still running after swap[/yellow]"
            )
