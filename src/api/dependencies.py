"""
FastAPI Dependencies

Provides dependency injection for:
- Image repository (per-request with session)
- Pipeline runner (singleton, stateless)
- Image processing service (per-request)
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import get_session
from src.core.storage import IStorage, get_storage
from src.modules.images.repositories import ImageRepository
from src.modules.images.services import ImageProcessingService
from src.pipeline.runner import PipelineRunner

# The dispatcher registry holds no request state, one runner serves every request
_runner = PipelineRunner()


def get_pipeline_runner() -> PipelineRunner:
    return _runner


def get_image_repository(session: AsyncSession = Depends(get_session)) -> ImageRepository:
    return ImageRepository(session)


def get_image_service(
    repository: ImageRepository = Depends(get_image_repository),
    storage: IStorage = Depends(get_storage),
    runner: PipelineRunner = Depends(get_pipeline_runner)
) -> ImageProcessingService:
    return ImageProcessingService(repository, storage, runner)
