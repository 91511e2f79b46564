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
# SETTINGS - PROCESS CONFIGURATION
# -----------------------------------------------------------------------------
# Responsibility: Read the server configuration from the environment (and an
# optional .env file) once at startup, and hand it to every component as an
# explicit value.
#
# Required: MAIN_PATH, DOMAIN, PORT, TOKEN. A missing one halts startup.
# -----------------------------------------------------------------------------

import os
from pathlib import Path
from urllib.parse import urlparse

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError
from rich.console import Console

console = Console()

REQUIRED_VARIABLES = ("DOMAIN", "MAIN_PATH", "PORT", "TOKEN")

DEFAULT_DOCKER_SOCKET = "/var/run/docker.sock"
DEFAULT_BUILD_IMAGE = "imjching/slugc"
DEFAULT_RELEASE_IMAGE = "imjching/slugr"
DEFAULT_PROXY_NETWORK = "web"
DEFAULT_RELEASE_PORT = 5000


class ConfigurationError(Exception):
    """Raised when the environment cannot produce a valid Settings."""

    def __init__(self, message: str, missing: list[str] | None = None) -> None:
        super().__init__(message)
        self.missing = missing or []


class Settings(BaseModel):
    """
    Server configuration.

    Fields:
    - main_path: Directory holding one folder per application
    - domain: Externally visible URL prefix of this server (used in log URLs)
    - port: HTTP listen port
    - token: Shared secret required to trigger builds
    - app_domain: Suffix for release hostnames (<app>.<app_domain>)
    """

    main_path: Path
    domain: str = Field(..., min_length=1)
    port: int = Field(..., gt=0, lt=65536)
    token: str = Field(..., min_length=1)
    docker_socket: Path = Path(DEFAULT_DOCKER_SOCKET)
    app_domain: str | None = None
    build_image: str = DEFAULT_BUILD_IMAGE
    release_image: str = DEFAULT_RELEASE_IMAGE
    proxy_network: str = DEFAULT_PROXY_NETWORK
    release_port: int = Field(DEFAULT_RELEASE_PORT, gt=0, lt=65536)

    @property
    def release_domain(self) -> str:
        """Domain release hostnames hang off; defaults to the host of DOMAIN."""
        if self.app_domain:
            return self.app_domain
        parsed = urlparse(self.domain if "//" in self.domain else f"//{self.domain}")
        return parsed.hostname or self.domain

    def app_url(self, app_name: str) -> str:
        return f"http://{app_name}.{self.release_domain}/"

    def log_stream_url(self, app_name: str, build_id: str) -> str:
        return f"{self.domain.rstrip('/')}/apps/{app_name}/builds/{build_id}/logs"


def load_settings(env_file: Path | None = None) -> Settings:
    """
    Build Settings from the environment.

    Args:
        env_file: Optional .env file loaded first (existing variables win).

    Returns:
        Validated Settings.

    Raises:
        ConfigurationError: If a required variable is missing or invalid.
    """
    if env_file is not None:
        load_dotenv(env_file)
    else:
        load_dotenv()

    missing = [name for name in REQUIRED_VARIABLES if name not in os.environ]
    if missing:
        console.print(f"[red][CONFIG] Missing environment variables: {', '.join(missing)}[/red]")
        raise ConfigurationError(
            f"Missing environment variable: {', '.join(missing)}", missing=missing
        )

    values = {
        "main_path": os.environ["MAIN_PATH"],
        "domain": os.environ["DOMAIN"],
        "port": os.environ["PORT"],
        "token": os.environ["TOKEN"],
        "docker_socket": os.getenv("DOCKER_SOCKET", DEFAULT_DOCKER_SOCKET),
        "app_domain": os.getenv("APP_DOMAIN") or None,
        "build_image": os.getenv("BUILD_IMAGE", DEFAULT_BUILD_IMAGE),
        "release_image": os.getenv("RELEASE_IMAGE", DEFAULT_RELEASE_IMAGE),
        "proxy_network": os.getenv("PROXY_NETWORK", DEFAULT_PROXY_NETWORK),
        "release_port": os.getenv("RELEASE_PORT", str(DEFAULT_RELEASE_PORT)),
    }

    try:
        settings = Settings(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    console.print(f"[cyan][CONFIG] Applications under {settings.main_path}[/cyan]")
    return settings
