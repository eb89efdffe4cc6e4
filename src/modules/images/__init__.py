"""
Images Module

Registry of stored images and the service that processes them.
"""

from src.modules.images.models import ImageRecord, ImageOrigin

__all__ = ["ImageRecord", "ImageOrigin"]
