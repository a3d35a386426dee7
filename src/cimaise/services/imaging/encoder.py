"""Image encoder for variant derivatives (Pillow).

Resizes a source photograph to a target width and writes it as JPEG, WebP or
AVIF. Output goes to a temporary sibling file that atomically replaces the
target, so readers never see a half-written derivative.
"""

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

import structlog
from PIL import Image, ImageFilter, ImageOps, UnidentifiedImageError

from cimaise.models.image_variant import ImageFormat
from cimaise.services.exceptions import (
    DerivativeWriteError,
    SourceImageError,
    UnsupportedFormatError,
)

logger = structlog.get_logger(__name__)

# mkstemp creates 0600 files; derivatives are served by the web server
MEDIA_FILE_MODE = 0o644


@dataclass(frozen=True)
class RenderedImage:
    """File produced by an encoder."""

    path: Path
    width: int
    height: int


class ImageEncoder(Protocol):
    """Encoder collaborator used by the variant generator."""

    def render(
        self, source: Path, destination: Path, width: int, fmt: ImageFormat, quality: int
    ) -> RenderedImage: ...

    def render_blur(
        self, source: Path, destination: Path, width: int, radius: float, quality: int
    ) -> RenderedImage: ...


class PillowEncoder:
    """ImageEncoder backed by Pillow.

    Sources are EXIF-transposed before resizing and never upscaled.
    """

    def supports(self, fmt: ImageFormat) -> bool:
        Image.init()
        return fmt.pillow_format in Image.SAVE

    def render(
        self, source: Path, destination: Path, width: int, fmt: ImageFormat, quality: int
    ) -> RenderedImage:
        """Resize ``source`` to ``width`` pixels wide and encode it as ``fmt``.

        Raises:
            UnsupportedFormatError: Pillow cannot write the format
            SourceImageError: Source missing, unreadable or corrupt
            DerivativeWriteError: Output could not be written
        """
        if not self.supports(fmt):
            raise UnsupportedFormatError(f"Pillow cannot write {fmt.value}")

        with self._open(source) as img:
            resized = self._resize(img, width)
            return self._save(resized, destination, fmt, self._save_options(fmt, quality))

    def render_blur(
        self, source: Path, destination: Path, width: int, radius: float, quality: int
    ) -> RenderedImage:
        """Write a heavily blurred, low-fidelity JPEG placeholder."""
        with self._open(source) as img:
            small = self._resize(img, width)
            blurred = small.filter(ImageFilter.GaussianBlur(radius=radius))
            options = {"quality": quality, "optimize": True}
            return self._save(blurred, destination, ImageFormat.JPG, options)

    def _open(self, source: Path) -> Image.Image:
        if not source.is_file():
            raise SourceImageError(f"Source file not found: {source}")
        try:
            img = Image.open(source)
            img.load()
        except (UnidentifiedImageError, OSError) as e:
            raise SourceImageError(f"Cannot read source {source}: {e}") from e
        return img

    @staticmethod
    def _resize(img: Image.Image, width: int) -> Image.Image:
        img = ImageOps.exif_transpose(img)
        if img.width > width:
            height = max(1, round(img.height * width / img.width))
            img = img.resize((width, height), resample=Image.Resampling.LANCZOS)
        return img

    @staticmethod
    def _save_options(fmt: ImageFormat, quality: int) -> dict[str, Any]:
        if fmt is ImageFormat.JPG:
            return {"quality": quality, "optimize": True, "progressive": True}
        if fmt is ImageFormat.WEBP:
            return {"quality": quality, "method": 6}
        return {"quality": quality}

    @staticmethod
    def _save(
        img: Image.Image, destination: Path, fmt: ImageFormat, options: dict[str, Any]
    ) -> RenderedImage:
        if fmt is ImageFormat.JPG and img.mode not in ("RGB", "L"):
            img = img.convert("RGB")
        elif img.mode not in ("RGB", "RGBA", "L"):
            img = img.convert("RGBA" if "A" in img.getbands() else "RGB")

        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            # Unique per call: concurrent renders of one destination never share it
            fd, tmp_name = tempfile.mkstemp(
                dir=destination.parent, prefix=f".{destination.name}.", suffix=".tmp"
            )
        except OSError as e:
            raise DerivativeWriteError(f"Cannot write {destination}: {e}") from e
        os.close(fd)
        tmp_path = Path(tmp_name)

        try:
            img.save(tmp_path, format=fmt.pillow_format, **options)
            os.chmod(tmp_path, MEDIA_FILE_MODE)
            os.replace(tmp_path, destination)
        except KeyError as e:
            raise UnsupportedFormatError(f"Pillow cannot write {fmt.value}") from e
        except OSError as e:
            raise DerivativeWriteError(f"Cannot write {destination}: {e}") from e
        finally:
            tmp_path.unlink(missing_ok=True)

        logger.debug(
            "encoder.wrote",
            destination=str(destination),
            format=fmt.value,
            width=img.width,
            height=img.height,
        )
        return RenderedImage(path=destination, width=img.width, height=img.height)
