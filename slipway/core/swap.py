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
# RELEASE SWAP - RETIRE PREVIOUS RELEASES
# -----------------------------------------------------------------------------
# Responsibility: After a new release container is confirmed listening, stop
# the release containers of the same application that were created before it.
#
# Discovery is an explicit query: label traefik.backend=<app>, minus the new
# container, ordered by creation time. There is no health gate beyond the
# port check and no coordination with the proxy, so for a moment both
# releases may receive traffic (or neither, while Traefik catches up).
#
# Stops are best effort: each failure is recorded and the rest continue.
# -----------------------------------------------------------------------------

import asyncio
import re
from datetime import datetime

from docker.models.containers import Container
from rich.console import Console

from slipway.core.deployer import APP_LABEL
from slipway.domain.models import RetirementOutcome
from slipway.infra.docker_client import ContainerRuntimeError, DockerProvider

console = Console()

# Engine timestamps are RFC 3339 with up to nanosecond precision and trailing
# zeros trimmed, so they do not sort as strings.
CREATED_PATTERN = re.compile(
    r"^(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})?$"
)


def created_at(container: Container) -> tuple[datetime, int] | None:
    """Sortable (second, nanosecond) creation time, or None if unparseable."""
    match = CREATED_PATTERN.match(str(container.attrs.get("Created", "")))
    if not match:
        return None
    base, fraction, zone = match.groups()
    offset = "+00:00" if zone in (None, "Z") else zone
    nanos = int((fraction or "0").ljust(9, "0")[:9])
    return datetime.fromisoformat(base + offset), nanos


class ReleaseSwap:
    """Retires the releases a newer container replaces."""

    def __init__(self, provider: DockerProvider) -> None:
        self._provider = provider

    def find_previous(self, app_name: str, new_container_id: str) -> list[Container]:
        """
        Release containers of `app_name` created before `new_container_id`.

        Returns an empty list if the new container is not among the running
        releases: nothing is retired in favour of a container we cannot see.

        Raises:
            ContainerRuntimeError: If listing fails.
        """
        containers = self._provider.list_by_label(APP_LABEL, app_name)

        new = next((c for c in containers if c.id == new_container_id), None)
        new_created = created_at(new) if new is not None else None
        if new_created is None:
            console.print(
                f"[yellow][SWAP] New release {new_container_id[:12]} not listed, "
                "leaving old releases running[/yellow]"
            )
            return []

        previous = []
        for container in containers:
            if container.id == new_container_id:
                continue
            stamp = created_at(container)
            if stamp is None:
                console.print(
                    f"[yellow][SWAP] Skipping {container.short_id}: unknown creation time[/yellow]"
                )
                continue
            if stamp < new_created:
                previous.append((stamp, container))

        previous.sort(key=lambda item: item[0])
        return [container for _, container in previous]

    def _stop(self, container: Container) -> RetirementOutcome:
        try:
            self._provider.stop(container.id)
            console.print(f"[green][SWAP] Retired {container.short_id}[/green]")
            return RetirementOutcome(container_id=container.id, stopped=True)
        except ContainerRuntimeError as e:
            console.print(f"[yellow][SWAP] Could not stop {container.short_id}: {e}[/yellow]")
            return RetirementOutcome(container_id=container.id, stopped=False, error=str(e))

    async def retire_old(self, app_name: str, new_container_id: str) -> list[RetirementOutcome]:
        """
        Stop every earlier release of an application.

        Args:
            app_name: Application whose releases are swapped.
            new_container_id: The release just confirmed listening.

        Returns:
            One outcome per container a stop was issued to, oldest first.

        Raises:
            ContainerRuntimeError: If listing the releases fails.
        """
        previous = await asyncio.to_thread(self.find_previous, app_name, new_container_id)
        if not previous:
            console.print(f"[dim][SWAP] No previous releases of {app_name}[/dim]")
            return []

        console.print(f"[cyan][SWAP] Retiring {len(previous)} release(s) of {app_name}[/cyan]")
        return list(
            await asyncio.gather(
                *(asyncio.to_thread(self._stop, container) for container in previous)
            )
        )
