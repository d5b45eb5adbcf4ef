"""
API v1 router aggregation
Combines all v1 route handlers into a single router
Reference: https://fastapi.tiangolo.com/tutorial/bigger-applications/
"""
from fastapi import APIRouter

from marketplace.api.v1.routes import artisan, health, product, profile, review
from marketplace.core.config import settings


# All v1 routes will be prefixed with /api/v1
api_router = APIRouter(prefix=settings.API_V1_PREFIX)

api_router.include_router(profile.router)
api_router.include_router(artisan.router)
api_router.include_router(review.router)
api_router.include_router(product.router)
api_router.include_router(health.router)
