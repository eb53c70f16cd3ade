"""
API Version 1 Router.

Aggregates all v1 endpoint routers.
"""

from fastapi import APIRouter

from notevault.backend.api.v1.endpoints import notes, token

router = APIRouter()

# Note lifecycle endpoints
router.include_router(notes.router, prefix="/notes", tags=["notes"])

# Capability token endpoints
router.include_router(token.router, prefix="/token", tags=["token"])
