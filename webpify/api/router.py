"""API router aggregator."""

from fastapi import APIRouter

from webpify.api.routes import conversions

api_router = APIRouter()
api_router.include_router(conversions.router)
