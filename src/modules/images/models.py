"""
ImageRecord Model

Registry of stored images, keyed by the public image name.
"""

from enum import Enum
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field
from typing import Optional, Dict, Any
from datetime import datetime, timezone


class ImageOrigin(str, Enum):
    """How an image entered storage."""
    UPLOAD = "upload"
    PROCESSED = "processed"


class ImageRecord(SQLModel, table=True):
    """
    One stored image.

    Stores:
    - Public name and storage key
    - Extension and dimensions at write time
    - Which image a processed result was derived from
    """
    __tablename__ = "images"

    id: Optional[int] = Field(default=None, primary_key=True)

    name: str = Field(index=True, unique=True, max_length=100)
    storage_key: str
    extension: str = Field(max_length=10)

    width: int = Field(default=0)
    height: int = Field(default=0)

    origin: str = Field(default=ImageOrigin.UPLOAD.value)
    source_name: Optional[str] = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_type=DateTime(timezone=True),
        nullable=False
    )

    def to_response_dict(self) -> Dict[str, Any]:
        """Convert to API response format."""
        return {
            "name": self.name,
            "extension": self.extension,
            "width": self.width,
            "height": self.height,
            "origin": self.origin,
            "source_name": self.source_name,
            "created_at": self.created_at.isoformat() if self.created_at else None
        }
