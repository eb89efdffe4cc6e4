"""
Image Registry Repository

Locates stored images by name.
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import NotFoundError
from src.modules.images.models import ImageRecord


class ImageRepository:
    """Repository for image registry rows."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def save(self, record: ImageRecord) -> ImageRecord:
        """Insert or update a registry row."""
        self.session.add(record)
        await self.session.commit()
        await self.session.refresh(record)
        return record

    async def find_by_name(self, name: str) -> Optional[ImageRecord]:
        """Get a registry row by image name."""
        result = await self.session.execute(
            select(ImageRecord).where(ImageRecord.name == name)
        )
        return result.scalar_one_or_none()

    async def get_by_name(self, name: str) -> ImageRecord:
        """
        Get a registry row by image name.

        Raises:
            NotFoundError: If no image is registered under ``name``
        """
        record = await self.find_by_name(name)
        if record is None:
            raise NotFoundError("failed to find image", details={"image_name": name})
        return record

    async def get_derived(self, source_name: str, limit: int = 100) -> List[ImageRecord]:
        """Get images produced from ``source_name``, newest first."""
        result = await self.session.execute(
            select(ImageRecord)
            .where(ImageRecord.source_name == source_name)
            .order_by(ImageRecord.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
