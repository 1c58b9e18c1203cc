"""
API v1 Router

Staff endpoints are agency-scoped under /agencies/{agencySlug}. Portal and
invitation endpoints are authenticated by the token in their path.
"""

from fastapi import APIRouter
from . import activity, content_requests, models, portal, team
from .invitations import router_public as invitations_public_router
from .invitations import router_scoped as invitations_scoped_router

router = APIRouter()

# Token-authenticated routes (no staff session)
router.include_router(portal.router, prefix="/portal", tags=["Portal"])
router.include_router(invitations_public_router, prefix="/invitations", tags=["Invitations"])

# Agency-scoped staff routes
router.include_router(
    content_requests.router,
    prefix="/agencies/{agencySlug}/content-requests",
    tags=["Content Requests"],
)
router.include_router(models.router, prefix="/agencies/{agencySlug}/models", tags=["Models"])
router.include_router(team.router, prefix="/agencies/{agencySlug}/team", tags=["Team"])
router.include_router(
    invitations_scoped_router,
    prefix="/agencies/{agencySlug}/model-invitations",
    tags=["Invitations"],
)
router.include_router(activity.router, prefix="/agencies/{agencySlug}/activity", tags=["Activity"])


@router.get("/", tags=["API"])
async def api_root():
    """API root, returns version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/portal/{token}",
            "/invitations/team/{token}",
            "/invitations/model/{token}",
            "/agencies/{agencySlug}/content-requests",
            "/agencies/{agencySlug}/models",
            "/agencies/{agencySlug}/team",
            "/agencies/{agencySlug}/model-invitations",
            "/agencies/{agencySlug}/activity",
        ],
    }
