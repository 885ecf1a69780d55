"""Tesseract OCR wrapper for Spanish receipts and invoices."""

import asyncio
import logging
from pathlib import Path

import cv2
import numpy as np

try:
    import pytesseract
except ImportError:
    print("Required packages not installed. Run: pip install pytesseract (and install the tesseract binary)")
    raise

from .exceptions import OCRError

logger = logging.getLogger(__name__)

# Phone screenshots of bank apps are often small; tesseract reads better above this width
MIN_WIDTH = 1000


class OCRProcessor:
    """Turn an image file into raw text with Tesseract."""

    def __init__(self, lang: str = "spa+eng", psm: int = 6):
        """
        Initialize OCR processor.

        Args:
            lang: Tesseract language packs to use
            psm: Tesseract page segmentation mode
        """
        self.lang = lang
        self.psm = psm

    async def recognize(self, image_path: Path) -> str:
        """
        Extract text from an image without blocking the event loop.

        Raises:
            OCRError: if the image cannot be decoded or Tesseract fails
        """
        return await asyncio.to_thread(self.extract_text_from_image, Path(image_path))

    def extract_text_from_image(self, image_path: Path) -> str:
        logger.info(f"Processing {image_path.name} with Tesseract ({self.lang})...")

        img_array = self._load_image(image_path)
        try:
            text = pytesseract.image_to_string(
                img_array, lang=self.lang, config=f"--psm {self.psm}"
            )
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError, RuntimeError) as e:
            logger.error(f"OCR failed for {image_path}: {e}")
            raise OCRError(f"OCR failed for {image_path.name}: {e}") from e

        logger.info(f"OCR completed for {image_path.name}: {len(text)} characters")
        return text or ''

    def _load_image(self, image_path: Path) -> np.ndarray:
        """Decode the image and normalise it to an upscaled grayscale array."""
        # imdecode handles non-ASCII paths that imread chokes on
        try:
            data = np.fromfile(str(image_path), dtype=np.uint8)
        except OSError as e:
            raise OCRError(f"Cannot read image {image_path.name}: {e}") from e
        img_array = cv2.imdecode(data, cv2.IMREAD_UNCHANGED)
        if img_array is None:
            raise OCRError(f"Cannot decode image {image_path.name}")

        if img_array.ndim == 3 and img_array.shape[2] == 4:  # BGRA
            img_array = cv2.cvtColor(img_array, cv2.COLOR_BGRA2GRAY)
        elif img_array.ndim == 3:
            img_array = cv2.cvtColor(img_array, cv2.COLOR_BGR2GRAY)

        height, width = img_array.shape[:2]
        if width < MIN_WIDTH:
            scale = MIN_WIDTH / width
            img_array = cv2.resize(img_array, None, fx=scale, fy=scale, interpolation=cv2.INTER_CUBIC)

        return img_array
