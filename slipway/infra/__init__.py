# -----------------------------------------------------------------------------
# INFRASTRUCTURE LAYER
# -----------------------------------------------------------------------------
# Contains low-level infrastructure wrappers:
# - DockerProvider: Docker SDK wrapper with a startup socket check
# -----------------------------------------------------------------------------

from .docker_client import ContainerRuntimeError, DockerProvider, DockerProviderError

__all__ = ["ContainerRuntimeError", "DockerProvider", "DockerProviderError"]
