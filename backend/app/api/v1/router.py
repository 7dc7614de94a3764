"""API v1 router combining all endpoint routers."""

from fastapi import APIRouter

from app.api.v1 import clauses

api_router = APIRouter()

api_router.include_router(clauses.router, prefix="/bills", tags=["clauses"])
