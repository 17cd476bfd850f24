import io
import logging
import mimetypes

import cv2
import fitz  # PyMuPDF
import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from errors import InvalidInput, UnsupportedInput

logger = logging.getLogger(__name__)

PDF_MIME = "application/pdf"
# 3.0 x 72 DPI ~ 216 DPI
DEFAULT_PDF_SCALE = 3.0


def mime_type_for(filename):
    """Guess the declared type of an uploaded file from its name."""
    mime, _ = mimetypes.guess_type(str(filename))
    return mime or "application/octet-stream"


class RasterSource:
    """Turns an uploaded PDF or image into a BGR page raster on white."""

    def __init__(self, pdf_scale=DEFAULT_PDF_SCALE):
        self.pdf_scale = pdf_scale

    def load(self, data, mime_type):
        mime_type = (mime_type or "").lower()
        if mime_type == PDF_MIME:
            return self.pdf_to_image(data)
        if mime_type.startswith("image/"):
            return self.image_to_array(data)
        raise UnsupportedInput(
            f"Unsupported file type {mime_type or 'unknown'!r}. Please upload PDF, PNG, or JPG."
        )

    def _open_pdf(self, data):
        try:
            return fitz.open(stream=data, filetype="pdf")
        except Exception as exc:
            raise InvalidInput(f"Could not read PDF: {exc}") from exc

    def page_count(self, data):
        doc = self._open_pdf(data)
        try:
            return doc.page_count
        finally:
            doc.close()

    def pdf_to_image(self, data):
        """Render page 1 only; later pages are never inspected."""
        doc = self._open_pdf(data)
        try:
            if doc.page_count == 0:
                raise InvalidInput("PDF has no pages")
            logger.info("PDF loaded, %d page(s); rendering page 1 at %.1fx",
                        doc.page_count, self.pdf_scale)
            page = doc[0]
            mat = fitz.Matrix(self.pdf_scale, self.pdf_scale)
            # alpha=False renders onto an opaque white background
            pix = page.get_pixmap(matrix=mat, alpha=False)
            img = np.frombuffer(pix.samples, dtype=np.uint8).reshape(pix.height, pix.width, pix.n)
        finally:
            doc.close()
        if pix.n == 1:
            return cv2.cvtColor(img, cv2.COLOR_GRAY2BGR)
        return cv2.cvtColor(img, cv2.COLOR_RGB2BGR)

    def image_to_array(self, data):
        try:
            pil = Image.open(io.BytesIO(data))
            pil.load()
        except (UnidentifiedImageError, OSError) as exc:
            raise InvalidInput(f"Could not decode image: {exc}") from exc

        pil = ImageOps.exif_transpose(pil)
        if pil.mode in ("RGBA", "LA") or (pil.mode == "P" and "transparency" in pil.info):
            rgba = pil.convert("RGBA")
            background = Image.new("RGBA", rgba.size, (255, 255, 255, 255))
            pil = Image.alpha_composite(background, rgba)
        rgb = np.asarray(pil.convert("RGB"))
        logger.info("Image loaded, %dx%d", rgb.shape[1], rgb.shape[0])
        return cv2.cvtColor(rgb, cv2.COLOR_RGB2BGR)
