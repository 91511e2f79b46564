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
# SLIPWAY - FASTAPI INTERFACE
# -----------------------------------------------------------------------------
# Endpoints:
# - POST /apps/{app_name}/builds?token=...          : Trigger a build (private)
# - GET  /apps/{app_name}/builds/{build_id}/logs    : Stream build logs (public)
# - GET  /health                                    : Health check
#
# Anything else is a plain-text "404 Not Found". A bad token gets the same
# answer, so the build endpoint is invisible without the secret.
# -----------------------------------------------------------------------------

from contextlib import asynccontextmanager
from http import HTTPStatus
from typing import Annotated

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse, StreamingResponse
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from starlette.datastructures import MutableHeaders
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from slipway import __version__
from slipway.core.auth import AuthFailure, verify_token
from slipway.core.fleet import FleetManager
from slipway.core.settings import Settings, load_settings
from slipway.core.tailer import LogTailer
from slipway.core.workspace import AppNotFound, BuildNotFound, InvalidRevision, WorkspaceManager
from slipway.domain.models import BuildRequest, BuildResponse
from slipway.infra.docker_client import DockerProvider

console = Console()

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "Referrer-Policy": "no-referrer",
}


class SecurityHeadersMiddleware:
    """Adds SECURITY_HEADERS to every HTTP response (helmet's defaults)."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                for name, value in SECURITY_HEADERS.items():
                    if name not in headers:
                        headers.append(name, value)
            await send(message)

        await self.app(scope, receive, send_with_headers)


# =============================================================================
# DEPENDENCY INJECTION
# =============================================================================


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_fleet(request: Request) -> FleetManager:
    return request.app.state.fleet


def get_tailer(request: Request) -> LogTailer:
    return request.app.state.tailer


def get_provider(request: Request) -> DockerProvider:
    return request.app.state.provider


# =============================================================================
# ENDPOINTS
# =============================================================================

router = APIRouter()


@router.get("/health")
async def health_check(
    provider: Annotated[DockerProvider, Depends(get_provider)],
    fleet: Annotated[FleetManager, Depends(get_fleet)],
):
    """Health check for load balancers."""
    return {
        "status": "online",
        "service": "slipway",
        "version": __version__,
        "docker": provider.is_connected(),
        "pending_builds": fleet.pending,
    }


@router.post("/apps/{app_name}/builds", response_model=BuildResponse)
async def create_build(
    app_name: str,
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
    fleet: Annotated[FleetManager, Depends(get_fleet)],
    token: Annotated[str | None, Query()] = None,
):
    """
    Start a build of the revision named in the JSON body.

    The token is checked before the body is read, so without it every
    request gets the not-found answer. Responds with the log stream URL as
    soon as the workspace exists; the compile and release run afterwards in
    the background.
    """
    verify_token(settings.token, token)

    # An unreadable body names no revision: the app check still runs first.
    raw = await request.body()
    revision = None
    if raw.strip():
        try:
            revision = BuildRequest.model_validate_json(raw).revision
        except ValidationError as e:
            console.print(
                f"[yellow][API] Unreadable build request: {e.error_count()} error(s)[/yellow]"
            )

    build = await fleet.dispatch_build(app_name, revision)

    return BuildResponse(output_stream_url=settings.log_stream_url(app_name, build.id))


@router.get("/apps/{app_name}/builds/{build_id}/logs")
async def stream_build_logs(
    app_name: str,
    build_id: str,
    tailer: Annotated[LogTailer, Depends(get_tailer)],
):
    """Build log as text: whole file once complete, otherwise streamed live."""
    stream = tailer.stream_log(app_name, build_id)

    if stream.is_complete:
        return FileResponse(stream.log_file, media_type="text/plain; charset=utf-8")

    return StreamingResponse(stream.follow(), media_type="text/plain; charset=utf-8")


# =============================================================================
# ERROR HANDLERS
# =============================================================================


def _status_text(code: int) -> str:
    return f"{code} {HTTPStatus(code).phrase}"


async def not_found_handler(request: Request, exc: Exception) -> PlainTextResponse:
    return PlainTextResponse(_status_text(404), status_code=404)


async def app_not_found_handler(request: Request, exc: AppNotFound) -> JSONResponse:
    console.print(f"[yellow][API] {exc}[/yellow]")
    return JSONResponse({"error": "App not found"}, status_code=500)


async def invalid_revision_handler(request: Request, exc: InvalidRevision) -> JSONResponse:
    console.print(f"[yellow][API] {exc}[/yellow]")
    return JSONResponse({"error": "Invalid revision"}, status_code=500)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> PlainTextResponse:
    # A wrong method would confirm the route exists.
    code = 404 if exc.status_code == 405 else exc.status_code
    return PlainTextResponse(_status_text(code), status_code=code)


async def unhandled_error_handler(request: Request, exc: Exception) -> PlainTextResponse:
    console.print(f"[red][API] {request.method} {request.url.path} failed: {exc!r}[/red]")
    return PlainTextResponse(_status_text(500), status_code=500)


# =============================================================================
# APPLICATION FACTORY
# =============================================================================


def create_app(
    settings: Settings,
    provider: DockerProvider,
    workspace: WorkspaceManager | None = None,
    tailer: LogTailer | None = None,
) -> FastAPI:
    """
    Build the HTTP application around explicit components.

    Args:
        settings: Server configuration.
        provider: Connected Docker provider.
        workspace: Workspace manager (defaults to one on settings.main_path).
        tailer: Log tailer (defaults to the standard 1s tick / 10s idle).
    """
    workspace = workspace or WorkspaceManager(settings.main_path)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        console.print(f"[green]-----> Build Server listening on port {settings.port}[/green]")
        yield
        if app.state.fleet.pending:
            console.print(
                f"[yellow]Waiting for {app.state.fleet.pending} build(s) to finish...[/yellow]"
            )
            await app.state.fleet.drain()
        console.print("[yellow]SLIPWAY SHUTTING DOWN[/yellow]")

    app = FastAPI(
        title="Slipway",
        description="Minimal PaaS build server",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.provider = provider
    app.state.fleet = FleetManager(settings, provider, workspace=workspace)
    app.state.tailer = tailer or LogTailer(workspace)

    app.add_middleware(SecurityHeadersMiddleware)
    app.include_router(router)
    app.add_exception_handler(AuthFailure, not_found_handler)
    app.add_exception_handler(BuildNotFound, not_found_handler)
    app.add_exception_handler(AppNotFound, app_not_found_handler)
    app.add_exception_handler(InvalidRevision, invalid_revision_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
    return app


# =============================================================================
# BANNER
# =============================================================================


def print_banner(settings: Settings) -> None:
    """Print the startup banner."""
    console.print(
        Panel(
            f"[bold cyan]SLIPWAY v{__version__}[/bold cyan]\n"
            f"  Apps:    {settings.main_path}\n"
            f"  Domain:  {settings.domain}\n"
            f"  Release: *.{settings.release_domain} via {settings.proxy_network}\n"
            f"  Docker:  {settings.docker_socket}",
            border_style="cyan",
        )
    )


# =============================================================================
# MAIN
# =============================================================================


def main() -> None:
    """Load configuration, verify Docker and serve."""
    import uvicorn

    settings = load_settings()
    provider = DockerProvider(settings.docker_socket)
    print_banner(settings)
    uvicorn.run(create_app(settings, provider), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
