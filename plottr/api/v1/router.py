"""API v1 router module."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from plottr.api.v1.geocode import router as geocode_router

router = APIRouter(default_response_class=JSONResponse)
router.include_router(geocode_router)
