"""
Flag API routes.

GET /api/flags/{user_id}/{org_id} - Server-side evaluation for one selection
GET /api/client-sdk-key           - Client-safe key for the Presenter's embedded client
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from finflags.server.config import Settings
from finflags.server.dependencies import get_app_settings, get_store
from finflags.server.evaluation import ContextStore
from finflags.server.schemas import ClientSdkKeyResponse, ErrorResponse, FlagsResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/flags/{user_id}/{org_id}",
    response_model=FlagsResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_flags(user_id: str, org_id: str, store: ContextStore = Depends(get_store)):
    """
    Evaluate the known flags for a user/organization pair.

    Unknown ids raise NotFoundError (mapped to 404 by the app).
    The response context never includes the user's email.
    """
    result = await store.evaluate(user_id, org_id)
    return result.to_dict()


@router.get(
    "/client-sdk-key",
    response_model=ClientSdkKeyResponse,
    responses={503: {"model": ErrorResponse}},
)
async def get_client_sdk_key(settings: Settings = Depends(get_app_settings)):
    """Expose the client-side ID (publishable, not the server secret)."""
    client_sdk_key = (settings.LAUNCHDARKLY_CLIENT_SDK_KEY or "").strip()
    if not client_sdk_key:
        logger.warning("Client SDK key requested but not configured")
        return JSONResponse(
            status_code=503,
            content={"error": "Client SDK key not configured"},
        )
    return {"clientSdkKey": client_sdk_key}
