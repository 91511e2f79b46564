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
# DOCKER PROVIDER
# -----------------------------------------------------------------------------
# Responsibility: A thin wrapper around the Docker SDK exposing exactly the
# capabilities the pipeline needs:
#
# - run_to_completion: create + attach + start + wait + remove, output piped to files
# - create_container / start / inspect
# - list_by_label
# - stop
#
# Every engine failure surfaces as ContainerRuntimeError so callers handle
# one exception type. Calls are blocking; the pipeline runs them in worker
# threads.
# -----------------------------------------------------------------------------

import stat
from pathlib import Path
from typing import IO

import docker
from docker import DockerClient
from docker.errors import DockerException
from docker.models.containers import Container
from rich.console import Console
from rich.panel import Panel

console = Console()


class DockerProviderError(Exception):
    """Raised when the Docker control socket is unusable at startup."""

    pass


class ContainerRuntimeError(Exception):
    """Raised when any call to the container engine fails."""

    pass


def verify_socket(socket_path: Path) -> None:
    """
    Check that the Docker control endpoint exists and is a socket.

    Raises:
        DockerProviderError: If the path is missing or not a socket.
    """
    try:
        mode = socket_path.stat().st_mode
    except OSError as e:
        raise DockerProviderError(f"Docker socket not found at {socket_path}: {e}") from e

    if not stat.S_ISSOCK(mode):
        raise DockerProviderError(
            f"{socket_path} is not a socket. Are you sure docker is running?"
        )


class DockerProvider:
    """
    Capability surface over the local Docker engine.

    Why this design:
    - One instance per process, passed to each component at construction
    - Fails fast at startup if the engine socket is missing
    - Hides SDK exception types behind ContainerRuntimeError
    """

    def __init__(self, socket_path: Path, client: DockerClient | None = None) -> None:
        """
        Connect to the Docker engine.

        Args:
            socket_path: Path of the engine's unix control socket.
            client: Pre-built client (skips the socket check and connection).
        """
        self._socket_path = socket_path
        self._client = client

        if self._client is None:
            self._connect()

    def _connect(self) -> None:
        """
        Verify the socket and open a client on it.

        Raises:
            DockerProviderError: If the socket is missing or the engine does not answer.
        """
        try:
            verify_socket(self._socket_path)
            self._client = docker.DockerClient(base_url=f"unix://{self._socket_path}")
            self._client.ping()
            console.print(f"[green][DOCKER] Connected via {self._socket_path}[/green]")
        except (DockerProviderError, DockerException) as e:
            console.print(
                Panel(
                    "[bold red]CRITICAL: Docker Engine Unavailable[/bold red]\n\n"
                    f"{e}\n\n"
                    "1. Start the Docker daemon\n"
                    "2. Check DOCKER_SOCKET points at its control socket\n"
                    "3. Restart the build server",
                    title="SYSTEM HALT",
                    border_style="red",
                )
            )
            if isinstance(e, DockerProviderError):
                raise
            raise DockerProviderError(f"Docker Engine is not available: {e}") from e

    @property
    def client(self) -> DockerClient:
        if self._client is None:
            raise DockerProviderError("Docker client not initialized")
        return self._client

    def is_connected(self) -> bool:
        """
        Check if Docker is currently reachable.

        Returns:
            True if Docker is connected and responsive.
        """
        if self._client is None:
            return False
        try:
            self._client.ping()
            return True
        except DockerException:
            return False

    # =========================================================================
    # CAPABILITIES
    # =========================================================================

    def run_to_completion(
        self,
        image: str,
        command: list[str],
        volumes: dict[str, dict[str, str]],
        stdout: IO[bytes],
        stderr: IO[bytes],
    ) -> int:
        """
        Run a container until it exits, piping its output into open files.

        The container is attached before it starts so no output is lost. It
        is removed here, after its exit code has been read, rather than by
        the engine: an engine-side auto-remove can delete it before a wait
        request arrives, losing the exit code.

        Args:
            image: Image to run.
            command: Command and arguments.
            volumes: Bind mounts in Docker SDK form ({host: {"bind", "mode"}}).
            stdout: Open binary file receiving the container's stdout.
            stderr: Open binary file receiving the container's stderr.

        Returns:
            The container's exit code.

        Raises:
            ContainerRuntimeError: If any engine call fails.
        """
        try:
            container = self.client.containers.create(
                image,
                command=command,
                volumes=volumes,
                auto_remove=False,
                tty=False,
            )
        except DockerException as e:
            raise ContainerRuntimeError(f"Container create failed ({image}): {e}") from e

        try:
            output = container.attach(stdout=True, stderr=True, stream=True, demux=True)
            container.start()

            for out_chunk, err_chunk in output:
                if out_chunk:
                    stdout.write(out_chunk)
                    stdout.flush()
                if err_chunk:
                    stderr.write(err_chunk)
                    stderr.flush()

            result = container.wait()
        except DockerException as e:
            raise ContainerRuntimeError(f"Container run failed ({image}): {e}") from e
        finally:
            self._remove(container)

        return int(result.get("StatusCode", -1))

    def _remove(self, container: Container) -> None:
        try:
            container.remove(force=True)
        except DockerException as e:
            console.print(f"[yellow][DOCKER] Could not remove {container.short_id}: {e}[/yellow]")

    def create_container(
        self,
        image: str,
        command: list[str],
        volumes: dict[str, dict[str, str]],
        environment: list[str],
        ports: dict[str, None],
        labels: dict[str, str],
        network_mode: str,
    ) -> Container:
        """
        Create (but do not start) a long-lived container.

        Args:
            ports: Ports to expose, e.g. {"5000/tcp": None}; none are published.

        Raises:
            ContainerRuntimeError: If the engine rejects the container.
        """
        try:
            # The high-level `ports=` also publishes to a host port; the
            # release port must only be exposed to the proxy network.
            api = self.client.api
            host_config = api.create_host_config(
                binds=volumes,
                auto_remove=True,
                network_mode=network_mode,
            )
            created = api.create_container(
                image,
                command=command,
                environment=environment,
                ports=[tuple(port.split("/")) for port in ports],
                labels=labels,
                host_config=host_config,
            )
            return self.client.containers.get(created["Id"])
        except DockerException as e:
            raise ContainerRuntimeError(f"Container create failed ({image}): {e}") from e

    def start(self, container: Container) -> None:
        try:
            container.start()
        except DockerException as e:
            raise ContainerRuntimeError(f"Container start failed ({container.short_id}): {e}") from e

    def inspect(self, container: Container) -> dict:
        """Refresh and return the container's inspect document."""
        try:
            container.reload()
            return container.attrs
        except DockerException as e:
            raise ContainerRuntimeError(
                f"Container inspect failed ({container.short_id}): {e}"
            ) from e

    def list_by_label(self, key: str, value: str) -> list[Container]:
        """List running containers whose label `key` equals `value`."""
        try:
            return self.client.containers.list(filters={"label": [f"{key}={value}"]})
        except DockerException as e:
            raise ContainerRuntimeError(f"Container list failed ({key}={value}): {e}") from e

    def stop(self, container_id: str) -> None:
        try:
            self.client.containers.get(container_id).stop()
        except DockerException as e:
            raise ContainerRuntimeError(f"Container stop failed ({container_id[:12]}): {e}") from e
