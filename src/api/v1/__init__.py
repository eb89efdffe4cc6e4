"""
API v1 Router Module - Online Photo Editor

All v1 endpoints are prefixed with /api/v1/

Primary endpoint: POST /api/v1/images/process
- Applies up to five crop/resize/convert actions to a stored image
- Persists the result under a generated name and returns its URL

Supporting endpoints:
- /api/v1/images - Upload originals, look up stored images
- /api/v1/metrics - Prometheus metrics
"""

from fastapi import APIRouter

from src.api.v1.images import router as images_router
from src.api.v1.metrics import router as metrics_router

# Main v1 router
api_v1_router = APIRouter(prefix="/api/v1")

api_v1_router.include_router(images_router, prefix="/images", tags=["images"])
api_v1_router.include_router(metrics_router, tags=["metrics"])
