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
# THE DEPLOYER - RELEASE CONTAINER
# -----------------------------------------------------------------------------
# Responsibility: Run a compiled slug in a new long-lived container that the
# reverse proxy (Traefik) discovers through its labels.
#
# The container joins the proxy network, exposes the release port without
# publishing it, and is removed by the engine when it exits. A release only
# counts once the inspected container shows the port bound; otherwise the
# swap is skipped and the old release keeps serving.
# -----------------------------------------------------------------------------

from docker.models.containers import Container
from rich.console import Console

from slipway.core.foundry import SLUG_MOUNT
from slipway.core.settings import Settings
from slipway.domain.models import Build, BuildState
from slipway.infra.docker_client import DockerProvider

console = Console()

APP_LABEL = "traefik.backend"

RELEASE_COMMAND = ["/bin/bash", "-c", f"tar -xzf {SLUG_MOUNT} && /start web"]


class PortBindingFailure(Exception):
    """Raised when the release container did not bind the expected port."""

    def __init__(self, message: str, container_id: str, port: str) -> None:
        super().__init__(message)
        self.container_id = container_id
        self.port = port


def routing_labels(app_name: str, settings: Settings) -> dict[str, str]:
    """Traefik labels routing <app>.<domain> to the release container."""
    return {
        APP_LABEL: app_name,
        "traefik.docker.network": settings.proxy_network,
        "traefik.frontend.rule": f"Host:{app_name}.{settings.release_domain}",
        "traefik.enable": "true",
    }


def _append_log(build: Build, line: str) -> None:
    with open(build.log_file, "a") as log:
        log.write(line + "\n")


class Deployer:
    """
    The Release Executor.

    Creates, starts and inspects the release container. Does not retry.
    """

    def __init__(self, provider: DockerProvider, settings: Settings) -> None:
        self._provider = provider
        self._settings = settings

    @property
    def port_key(self) -> str:
        return f"{self._settings.release_port}/tcp"

    def deploy(self, build: Build) -> Container:
        """
        Launch a Build's slug as the new release.

        Args:
            build: A compiled Build.

        Returns:
            The started release container.

        Raises:
            PortBindingFailure: The release port is absent after inspection.
            ContainerRuntimeError: Any engine call failed.
        """
        settings = self._settings
        build.state = BuildState.DEPLOYING
        _append_log(build, "-----> Launching...")

        console.print(f"[cyan][DEPLOYER] Creating release container for {build.app_name}...[/cyan]")
        container = self._provider.create_container(
            settings.release_image,
            command=RELEASE_COMMAND,
            volumes={str(build.artifact_path): {"bind": SLUG_MOUNT, "mode": "ro"}},
            environment=[f"PORT={settings.release_port}"],
            ports={self.port_key: None},
            labels=routing_labels(build.app_name, settings),
            network_mode=settings.proxy_network,
        )
        build.release_container_id = container.id

        console.print(f"[cyan][DEPLOYER] Starting container {container.short_id}...[/cyan]")
        self._provider.start(container)

        attrs = self._provider.inspect(container)
        ports = (attrs.get("NetworkSettings") or {}).get("Ports") or {}
        if self.port_key not in ports:
            console.print(
                f"[red][DEPLOYER] ERROR: {container.short_id} did not bind {self.port_key}[/red]"
            )
            _append_log(build, f"-----> Release failed: port {self.port_key} not bound")
            raise PortBindingFailure(
                f"Release container {container.short_id} did not bind {self.port_key}",
                container_id=container.id,
                port=self.port_key,
            )

        _append_log(build, f"       Released {build.short_id}")
        _append_log(build, f"       {settings.app_url(build.app_name)} deployed")
        console.print(f"[green][DEPLOYER] LIVE: {settings.app_url(build.app_name)}[/green]")
        return container
