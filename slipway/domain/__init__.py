# -----------------------------------------------------------------------------
# DOMAIN LAYER
# -----------------------------------------------------------------------------
# Pydantic models for Builds, their on-disk layout, and the HTTP contract.
# -----------------------------------------------------------------------------

from .models import Build, BuildRequest, BuildResponse, BuildState, RetirementOutcome

__all__ = ["Build", "BuildRequest", "BuildResponse", "BuildState", "RetirementOutcome"]
