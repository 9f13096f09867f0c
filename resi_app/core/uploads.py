import asyncio
import logging
import os
import uuid
from concurrent.futures import ThreadPoolExecutor
from io import BytesIO
from pathlib import Path
from typing import List, Mapping, Optional, Sequence

from fastapi import Request
from PIL import Image, UnidentifiedImageError
from starlette.datastructures import UploadFile

from .errors import ValidationError
from .settings import settings

logger = logging.getLogger(__name__)

IMAGE_TYPES = {"image/jpeg", "image/jpg", "image/png"}
IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png"}
PDF_TYPE = "application/pdf"
MAX_DIMENSIONS = (800, 800)
# 48 megapixels; larger sources are refused before decoding
MAX_SOURCE_PIXELS = 48_000_000
JPEG_QUALITY = 80

# Pillow work and disk writes stay off the event loop
_io_pool = ThreadPoolExecutor(max_workers=4, thread_name_prefix="uploads")


async def _offload(func, *args):
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(_io_pool, func, *args)


def _extension(file: UploadFile) -> str:
    return os.path.splitext(file.filename or "")[1].lower()


def _is_image(file: UploadFile) -> bool:
    return file.content_type in IMAGE_TYPES and _extension(file) in IMAGE_EXTENSIONS


def _is_pdf(file: UploadFile) -> bool:
    return file.content_type == PDF_TYPE and _extension(file) == ".pdf"


def _resize_to_jpeg(content: bytes) -> bytes:
    with Image.open(BytesIO(content)) as img:
        width, height = img.size
        if width * height > MAX_SOURCE_PIXELS:
            raise Image.DecompressionBombError(
                f"{width}x{height} exceeds {MAX_SOURCE_PIXELS} pixels"
            )
        img = img.convert("RGB")
        # thumbnail() only ever shrinks, never enlarges
        img.thumbnail(MAX_DIMENSIONS)
        output = BytesIO()
        img.save(output, format="JPEG", quality=JPEG_QUALITY)
        return output.getvalue()


def _write(path: Path, content: bytes):
    path.write_bytes(content)


class AttachmentProcessor:
    """Validates multipart uploads and stores them under ``upload_dir``."""

    def __init__(self, upload_dir: str | None = None, max_size: int | None = None):
        self.upload_dir = Path(upload_dir or settings.UPLOAD_DIR)
        self.max_size = max_size or settings.MAX_UPLOAD_SIZE

    def _reject(self, field: str, message: str):
        raise ValidationError.single(field, message)

    async def save(
        self,
        files: Sequence[UploadFile],
        field: str,
        max_count: int = 5,
        allow_pdf: bool = False,
        captions: Optional[Mapping[str, str]] = None,
    ) -> List[dict]:
        files = [f for f in files if f is not None and f.filename]
        if not files:
            return []
        if len(files) > max_count:
            self._reject(field, f"Maksimal {max_count} file dapat diupload.")

        payloads = []
        for file in files:
            content = await file.read()
            if len(content) > self.max_size:
                self._reject(
                    field,
                    f"Ukuran file {file.filename} melebihi batas "
                    f"{self.max_size // (1024 * 1024)}MB.",
                )
            if _is_image(file):
                payloads.append(("image", file.filename, content))
            elif allow_pdf and _is_pdf(file):
                payloads.append(("pdf", file.filename, content))
            else:
                allowed = "JPEG, JPG, PNG, PDF" if allow_pdf else "JPEG, JPG, PNG"
                self._reject(
                    field, f"Format file {file.filename} tidak didukung. Gunakan {allowed}."
                )

        prepared = []
        for kind, filename, content in payloads:
            if kind == "image":
                try:
                    content = await _offload(_resize_to_jpeg, content)
                except Image.DecompressionBombError as e:
                    logger.warning("Rejected oversized image upload: %s", e)
                    self._reject(field, f"Resolusi gambar {filename} terlalu besar.")
                except (UnidentifiedImageError, OSError) as e:
                    logger.warning("Rejected unreadable image upload: %s", e)
                    self._reject(field, "File gambar tidak valid.")
                prepared.append((kind, filename, f"{uuid.uuid4().hex}.jpg", content))
            else:
                prepared.append((kind, filename, f"{uuid.uuid4().hex}.pdf", content))

        self.upload_dir.mkdir(parents=True, exist_ok=True)
        stored = []
        captions = captions or {}
        for kind, filename, name, content in prepared:
            await _offload(_write, self.upload_dir / name, content)
            stored.append(
                {
                    "url": f"/uploads/{name}",
                    "caption": str(captions.get(filename) or ""),
                    "type": kind,
                }
            )
            logger.info("Stored upload %s for field %s", name, field)

        return stored


def get_attachments(request: Request) -> AttachmentProcessor:
    return request.app.state.attachments
