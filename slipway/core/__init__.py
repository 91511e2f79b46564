# -----------------------------------------------------------------------------
# CORE LAYER
# -----------------------------------------------------------------------------
# The build-and-release pipeline:
# - WorkspaceManager: Build directories, log files, completion marker
# - Foundry: Compile container (Build Executor)
# - Deployer: Release container (Release Executor)
# - ReleaseSwap: Retires previous releases
# - LogTailer: Live build log streams
# - FleetManager: Pipeline orchestrator
# -----------------------------------------------------------------------------

from .auth import AuthFailure, verify_token
from .deployer import Deployer, PortBindingFailure
from .fleet import FleetManager
from .foundry import Foundry
from .settings import ConfigurationError, Settings, load_settings
from .swap import ReleaseSwap
from .tailer import LogStream, LogTailer, is_valid_build_id
from .workspace import AppNotFound, BuildNotFound, InvalidRevision, WorkspaceError, WorkspaceManager

__all__ = [
    "AuthFailure", "verify_token",
    "Deployer", "PortBindingFailure",
    "FleetManager",
    "Foundry",
    "ConfigurationError", "Settings", "load_settings",
    "ReleaseSwap",
    "LogStream", "LogTailer", "is_valid_build_id",
    "AppNotFound", "BuildNotFound", "InvalidRevision", "WorkspaceError", "WorkspaceManager",
]
