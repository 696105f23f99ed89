"""
Catalog API routes.

GET /api/demo-data - Identities (without email) and tenants for the selector
"""

from fastapi import APIRouter, Depends

from finflags.server.dependencies import get_store
from finflags.server.evaluation import ContextStore
from finflags.server.schemas import DemoDataResponse

router = APIRouter()


@router.get("/demo-data", response_model=DemoDataResponse)
async def get_demo_data(store: ContextStore = Depends(get_store)):
    return store.list_catalog()
