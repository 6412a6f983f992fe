"""API v1 router aggregation."""

from fastapi import APIRouter

from board.api.v1.opportunities import router as opportunities_router

router = APIRouter(prefix="/api/v1")

router.include_router(opportunities_router)
