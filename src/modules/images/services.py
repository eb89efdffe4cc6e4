"""
Image Processing Service

Brackets the in-memory action pipeline with the registry and storage:
locate → load → run → name → persist → register.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool

from src.core.config import settings
from src.core.exceptions import ImageLoadError, UploadError
from src.core.logging import get_logger
from src.core.metrics import record_image_saved
from src.core.naming import generate_name, normalize_extension
from src.core.storage import IStorage, decode_image
from src.modules.images.models import ImageOrigin, ImageRecord
from src.modules.images.repositories import ImageRepository
from src.pipeline.runner import PipelineRunner
from src.pipeline.schemas import ProcessRequest
from src.pipeline.state import PipelineResult, PipelineState
from src.pipeline.transforms import extension_for_format

logger = get_logger(__name__)


@dataclass(frozen=True)
class StoredImage:
    """A persisted image and where to fetch it."""
    record: ImageRecord
    url: str
    result: Optional[PipelineResult] = None

    @property
    def name(self) -> str:
        return self.record.name


class ImageProcessingService:
    """Process and upload images against a registry and a storage backend."""

    def __init__(
        self,
        repository: ImageRepository,
        storage: IStorage,
        runner: Optional[PipelineRunner] = None,
        output_prefix: Optional[str] = None,
        upload_prefix: Optional[str] = None,
        max_upload_bytes: Optional[int] = None
    ):
        self.repository = repository
        self.storage = storage
        self.runner = runner or PipelineRunner()
        self.output_prefix = output_prefix or settings.OUTPUT_PREFIX
        self.upload_prefix = upload_prefix or settings.UPLOAD_PREFIX
        self.max_upload_bytes = max_upload_bytes or settings.MAX_UPLOAD_SIZE_BYTES

    async def _register(self, record: ImageRecord) -> ImageRecord:
        try:
            return await self.repository.save(record)
        except SQLAlchemyError:
            # Unregistered files are unreachable, remove before surfacing
            await self.storage.delete(record.storage_key)
            raise

    async def process(self, request: ProcessRequest) -> StoredImage:
        """
        Run a validated request end to end.

        Nothing is written unless every action succeeds.

        Raises:
            NotFoundError: Source image is not registered or its file is missing
            ImageLoadError: Source file is not a readable image
            PhotoEditorError: First error raised by the pipeline
            NameGenerationError: No randomness available for the output name
            PersistError: Final image cannot be encoded as its extension
        """
        source = await self.repository.get_by_name(request.image_name)
        image = await self.storage.load_image(source.storage_key)

        logger.info(
            "source_image_loaded",
            image_name=source.name,
            extension=source.extension,
            size=list(image.size)
        )

        state = PipelineState(image=image, extension=source.extension)
        result = await run_in_threadpool(self.runner.run, request.actions, state)

        final = result.state
        name = generate_name(self.output_prefix, final.extension)
        storage_key = await self.storage.save_image(final.image, name)

        width, height = final.size
        record = await self._register(ImageRecord(
            name=name,
            storage_key=storage_key,
            extension=final.extension,
            width=width,
            height=height,
            origin=ImageOrigin.PROCESSED.value,
            source_name=source.name
        ))

        url = await self.storage.get_url(storage_key)
        record_image_saved(final.extension, ImageOrigin.PROCESSED.value)
        logger.info("image_saved", image_name=name, image_url=url, source_name=source.name)

        return StoredImage(record=record, url=url, result=result)

    async def upload(self, file_data: bytes, filename: Optional[str] = None) -> StoredImage:
        """
        Store an uploaded original under a generated name.

        Raises:
            UploadError: Empty, oversized or undecodable upload
        """
        if not file_data:
            raise UploadError("uploaded file is empty", code=400)
        if len(file_data) > self.max_upload_bytes:
            raise UploadError(
                f"uploaded file exceeds {self.max_upload_bytes} bytes",
                code=413,
                details={"size_bytes": len(file_data)}
            )

        try:
            image = decode_image(file_data)
        except ImageLoadError as e:
            raise UploadError("uploaded file is not a supported image", details=e.details) from e

        if image.format:
            extension = extension_for_format(image.format)
        else:
            extension = normalize_extension(Path(filename or "").suffix)

        name = generate_name(self.upload_prefix, extension)
        storage_key = await self.storage.save_bytes(file_data, name, folder="uploads")

        width, height = image.size
        record = await self._register(ImageRecord(
            name=name,
            storage_key=storage_key,
            extension=extension,
            width=width,
            height=height,
            origin=ImageOrigin.UPLOAD.value
        ))

        url = await self.storage.get_url(storage_key)
        record_image_saved(extension, ImageOrigin.UPLOAD.value)
        logger.info(
            "image_uploaded",
            image_name=name,
            original_filename=filename,
            size_bytes=len(file_data)
        )

        return StoredImage(record=record, url=url)
