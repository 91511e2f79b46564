# -----------------------------------------------------------------------------
# SLIPWAY - MINIMAL PAAS BUILD SERVER
# -----------------------------------------------------------------------------
# Revision -> compile container -> slug -> release container behind Traefik,
# with live build logs.
# -----------------------------------------------------------------------------

__version__ = "1.0.0"
