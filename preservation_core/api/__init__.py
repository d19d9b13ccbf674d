from fastapi import APIRouter
from .routes import preservation

api_router = APIRouter()

api_router.include_router(preservation.router, prefix="/preservation-core", tags=["preservation-core"])
