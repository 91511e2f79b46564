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
# LOG TAILER - LIVE BUILD LOGS
# -----------------------------------------------------------------------------
# Responsibility: Serve logs/build.log of one build to an HTTP caller.
#
# - Finished build (completion marker present): the whole file at once.
# - Build in flight: follow the file and forward bytes as they are appended.
#   A 1 second tick ends the stream once no bytes arrived for 10 seconds or
#   the completion marker appears, whichever is first.
#
# If the caller goes away the generator is closed (or cancelled) and the tick
# task and file handle are released immediately.
# -----------------------------------------------------------------------------

import asyncio
import re
import time
from collections.abc import AsyncIterator
from pathlib import Path

from rich.console import Console

from slipway.core.workspace import BuildNotFound, WorkspaceManager
from slipway.domain.models import BUILD_LOG_NAME, COMPLETION_MARKER_NAME, LOGS_DIR

console = Console()

TICK_SECONDS = 1.0
IDLE_TIMEOUT_SECONDS = 10.0
POLL_SECONDS = 0.1
CHUNK_SIZE = 64 * 1024

BUILD_ID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def is_valid_build_id(value: str) -> bool:
    """True if `value` is a well-formed UUID version 4."""
    return bool(BUILD_ID_PATTERN.match(value))


class LogStream:
    """
    Follows one build log until it idles out or the build completes.

    Single use: iterate `follow()` once.
    """

    def __init__(
        self,
        log_file: Path,
        marker_file: Path,
        tick_seconds: float = TICK_SECONDS,
        idle_seconds: float = IDLE_TIMEOUT_SECONDS,
        poll_seconds: float = POLL_SECONDS,
    ) -> None:
        self.log_file = log_file
        self.marker_file = marker_file
        self._tick_seconds = tick_seconds
        self._idle_seconds = idle_seconds
        self._poll_seconds = poll_seconds
        self._last_receive = time.monotonic()
        self._stop = asyncio.Event()
        self._timer: asyncio.Task | None = None
        self.stop_reason: str | None = None

    @property
    def is_complete(self) -> bool:
        return self.marker_file.exists()

    @property
    def timer_active(self) -> bool:
        return self._timer is not None and not self._timer.done()

    async def _tick(self) -> None:
        """Background timer checking the two exit conditions."""
        while not self._stop.is_set():
            await asyncio.sleep(self._tick_seconds)
            if self.is_complete:
                self.stop_reason = "complete"
                self._stop.set()
            elif time.monotonic() - self._last_receive >= self._idle_seconds:
                self.stop_reason = "idle"
                self._stop.set()

    async def follow(self) -> AsyncIterator[bytes]:
        """Yield the log from its first byte, then each appended chunk."""
        handle = open(self.log_file, "rb")
        self._last_receive = time.monotonic()
        self._timer = asyncio.create_task(self._tick())
        try:
            while True:
                chunk = handle.read(CHUNK_SIZE)
                if chunk:
                    self._last_receive = time.monotonic()
                    yield chunk
                    continue
                # Stop only once drained, so lines written just before the
                # completion marker still reach the caller.
                if self._stop.is_set():
                    break
                try:
                    await asyncio.wait_for(self._stop.wait(), timeout=self._poll_seconds)
                except asyncio.TimeoutError:
                    pass
        finally:
            self._timer.cancel()
            handle.close()
            console.print(
                f"[dim][TAILER] Stream closed for {self.log_file.parent.parent.name[:8]} "
                f"({self.stop_reason or 'caller left'})[/dim]"
            )


class LogTailer:
    """Resolves build logs and hands out LogStreams."""

    def __init__(
        self,
        workspace: WorkspaceManager,
        tick_seconds: float = TICK_SECONDS,
        idle_seconds: float = IDLE_TIMEOUT_SECONDS,
        poll_seconds: float = POLL_SECONDS,
    ) -> None:
        self._workspace = workspace
        self._tick_seconds = tick_seconds
        self._idle_seconds = idle_seconds
        self._poll_seconds = poll_seconds

    def stream_log(self, app_name: str, build_id: str) -> LogStream:
        """
        Open the log of a build.

        The id is checked before the filesystem is touched; every failure is
        the same BuildNotFound so callers cannot tell them apart.

        Raises:
            BuildNotFound: Malformed id, unknown app, or no build log.
        """
        if not is_valid_build_id(build_id):
            raise BuildNotFound(f"Malformed build id: {build_id!r}")

        build_dir = self._workspace.build_dir(app_name, build_id)
        log_file = build_dir / LOGS_DIR / BUILD_LOG_NAME
        if not log_file.is_file():
            raise BuildNotFound(f"No build log for {app_name}/{build_id}")

        return LogStream(
            log_file,
            build_dir / LOGS_DIR / COMPLETION_MARKER_NAME,
            tick_seconds=self._tick_seconds,
            idle_seconds=self._idle_seconds,
            poll_seconds=self._poll_seconds,
        )
