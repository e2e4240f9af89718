"""Health and root endpoints.

The version string is read from ``gate_repo.__version__``, resolved from the
installed package metadata.
"""

from fastapi import APIRouter

from gate_repo import __version__

router = APIRouter()


@router.get("/")
async def root():
    """Root endpoint showing API identity and current version."""
    return {"message": "Gate Repo API", "version": __version__}


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok"}
