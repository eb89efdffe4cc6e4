"""
Storage Abstraction Layer - The Bridge Pattern

Provides a clean interface for loading and persisting images with
LocalStorage as the active implementation.
"""

import io
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from PIL import Image, UnidentifiedImageError

from src.core.config import settings
from src.core.exceptions import ImageLoadError, NotFoundError, PersistError
from src.core.logging import get_logger

logger = get_logger(__name__)

# Pillow formats that cannot hold an alpha channel or a palette
_RGB_ONLY_FORMATS = {"JPEG"}
_QUALITY_FORMATS = {"JPEG", "WEBP"}


def format_for_extension(extension: str) -> str:
    """
    Resolve the Pillow format name used to encode ``extension``.

    Raises:
        PersistError: If Pillow has no writer for the extension
    """
    image_format = Image.registered_extensions().get(extension.lower())
    if image_format is None or image_format not in Image.SAVE:
        raise PersistError(
            f"unsupported output encoding {extension}",
            details={"extension": extension}
        )
    return image_format


def encode_image(image: Image.Image, extension: str, quality: int = 90) -> bytes:
    """
    Encode ``image`` in the format implied by ``extension``.

    Pixel modes the target format cannot store are converted first, e.g.
    RGBA to RGB for JPEG.

    Raises:
        PersistError: If the format is unknown or the encoder rejects the image
    """
    image_format = format_for_extension(extension)

    if image_format in _RGB_ONLY_FORMATS and image.mode not in ("RGB", "L", "CMYK"):
        image = image.convert("RGB")

    save_kwargs = {}
    if image_format in _QUALITY_FORMATS:
        save_kwargs["quality"] = quality

    buffer = io.BytesIO()
    try:
        image.save(buffer, format=image_format, **save_kwargs)
    except (OSError, ValueError, KeyError) as e:
        raise PersistError(
            f"failed to encode image as {image_format}: {e}",
            details={"extension": extension}
        ) from e
    return buffer.getvalue()


def decode_image(data: bytes) -> Image.Image:
    """
    Decode raw bytes into a fully loaded image.

    Raises:
        ImageLoadError: If the bytes are not a readable image
    """
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise ImageLoadError(details={"reason": str(e)}) from e
    return image


class IStorage(ABC):
    """Interface for storage operations - The Bridge"""

    @abstractmethod
    async def save_bytes(self, file_data: bytes, name: str, folder: str = "uploads") -> str:
        """
        Write raw bytes under ``name`` and return the storage key.

        Args:
            file_data: Raw bytes of the file
            name: Unique file name, extension included
            folder: Subfolder/container prefix

        Returns:
            Storage key that can be used with get_url()
        """
        pass

    @abstractmethod
    async def save_image(self, image: Image.Image, name: str, folder: str = "processed") -> str:
        """
        Encode ``image`` using the extension of ``name`` and persist it.

        Returns:
            Storage key that can be used with get_url()

        Raises:
            PersistError: If the image cannot be encoded or written
        """
        pass

    @abstractmethod
    async def load_image(self, storage_key: str) -> Image.Image:
        """
        Load and decode a stored image.

        Raises:
            NotFoundError: If nothing is stored under the key
            ImageLoadError: If the stored bytes are not an image
        """
        pass

    @abstractmethod
    async def get_url(self, storage_key: str) -> str:
        """Get a public URL for accessing the file."""
        pass

    @abstractmethod
    async def delete(self, storage_key: str) -> bool:
        """Delete a file, returning False when it did not exist."""
        pass


class LocalStorage(IStorage):
    """Local filesystem storage implementation."""

    def __init__(
        self,
        base_path: str = "./data/storage",
        url_prefix: str = "/static/storage",
        jpeg_quality: int = 90
    ):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.url_prefix = url_prefix.rstrip("/")
        self.jpeg_quality = jpeg_quality

    def _write(self, file_data: bytes, name: str, folder: str) -> str:
        folder_path = self.base_path / folder
        folder_path.mkdir(parents=True, exist_ok=True)

        with open(folder_path / name, "wb") as f:
            f.write(file_data)

        return f"{folder}/{name}"

    async def save_bytes(self, file_data: bytes, name: str, folder: str = "uploads") -> str:
        return self._write(file_data, name, folder)

    async def save_image(self, image: Image.Image, name: str, folder: str = "processed") -> str:
        file_data = encode_image(image, Path(name).suffix, quality=self.jpeg_quality)
        try:
            storage_key = self._write(file_data, name, folder)
        except OSError as e:
            raise PersistError(details={"reason": str(e)}) from e

        logger.info("image_written", storage_key=storage_key, size_bytes=len(file_data))
        return storage_key

    async def load_image(self, storage_key: str) -> Image.Image:
        file_path = self.base_path / storage_key
        if not file_path.is_file():
            raise NotFoundError(f"File not found: {storage_key}")

        return decode_image(file_path.read_bytes())

    async def get_url(self, storage_key: str) -> str:
        """For local storage, return a relative path that can be served."""
        if not (self.base_path / storage_key).exists():
            raise NotFoundError(f"File not found: {storage_key}")

        return f"{self.url_prefix}/{storage_key}"

    async def delete(self, storage_key: str) -> bool:
        file_path = self.base_path / storage_key
        if file_path.exists():
            file_path.unlink()
            return True
        return False


class StorageFactory:
    """Factory for creating storage instances."""

    _instance: Optional[IStorage] = None

    @classmethod
    def get_storage(cls) -> IStorage:
        """Get the storage implementation for the current settings."""
        if cls._instance is None:
            cls._instance = LocalStorage(
                base_path=settings.LOCAL_STORAGE_PATH,
                url_prefix=settings.STORAGE_URL_PREFIX,
                jpeg_quality=settings.JPEG_QUALITY
            )

        return cls._instance

    @classmethod
    def reset(cls):
        """Reset the singleton instance (useful for testing)."""
        cls._instance = None


# Convenience function for dependency injection
def get_storage() -> IStorage:
    """Get the storage instance - ready for FastAPI Depends()."""
    return StorageFactory.get_storage()
