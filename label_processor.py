import logging
from dataclasses import dataclass
from typing import NamedTuple, Optional

import numpy as np

from errors import EngineNotReady, InvalidInput, NoLabelDetected
from raster_source import RasterSource
from schemas import CropInfo, ProcessingResponse, ProcessingSettings
from vision_engine import OpenCVEngine

logger = logging.getLogger(__name__)

BLUR_KERNEL = (5, 5)
DILATE_KERNEL = (25, 25)

# Plausible label proportions (w / h), inclusive
MIN_ASPECT = 0.2
MAX_ASPECT = 4.0

# Whole-page fallback only for roughly label-shaped pages, exclusive
FALLBACK_MIN_RATIO = 0.4
FALLBACK_MAX_RATIO = 2.5

ROTATE_DIRECTIONS = {"left": 270, "right": 90}


class Rect(NamedTuple):
    x: int
    y: int
    w: int
    h: int

    @property
    def area(self):
        return self.w * self.h

    @property
    def aspect(self):
        return self.w / self.h if self.h > 0 else 0.0


class Candidate(NamedTuple):
    rect: Rect
    area: int


@dataclass
class LabelResult:
    image: np.ndarray
    rect: Rect
    rotated: bool
    used_fallback: bool
    candidate_count: int
    preview: Optional[np.ndarray] = None

    def crop_info(self):
        x, y, w, h = self.rect
        return CropInfo(x=x, y=y, width=w, height=h,
                        rotated=self.rotated, used_fallback=self.used_fallback)


def _check_image(img):
    if not isinstance(img, np.ndarray):
        raise InvalidInput(f"Expected an image array, got {type(img).__name__}")
    if img.ndim not in (2, 3) or (img.ndim == 3 and img.shape[2] not in (1, 3, 4)):
        raise InvalidInput(f"Unsupported image shape {img.shape}")
    if img.size == 0 or img.shape[0] == 0 or img.shape[1] == 0:
        raise InvalidInput("Image has zero area")
    if img.dtype != np.uint8:
        raise InvalidInput(f"Expected 8-bit pixels, got {img.dtype}")
    if img.ndim == 3 and img.shape[2] == 1:
        return img[:, :, 0]
    return img


def filter_candidates(candidates, page_width, page_height,
                      min_area_ratio=0.01, max_area_ratio=0.99):
    """Keep candidates whose area and proportions could belong to a label.

    Order is preserved. Bounds are inclusive: a candidate sitting exactly on
    an area or aspect limit survives.
    """
    total_area = page_width * page_height
    min_area = total_area * min_area_ratio
    max_area = total_area * max_area_ratio
    kept = []
    for cand in candidates:
        if cand.area < min_area or cand.area > max_area:
            logger.debug("Rejected %s: area %d outside [%.0f, %.0f]", cand.rect, cand.area, min_area, max_area)
            continue
        ratio = cand.rect.aspect
        if ratio < MIN_ASPECT or ratio > MAX_ASPECT:
            logger.debug("Rejected %s: aspect %.3f", cand.rect, ratio)
            continue
        kept.append(cand)
    return kept


class LabelProcessor:
    def __init__(self, settings=None, engine=None, source=None):
        self.settings = settings or ProcessingSettings()
        self.engine = engine or OpenCVEngine()
        if not self.engine.is_ready():
            raise EngineNotReady(f"{type(self.engine).__name__} is not ready")
        self.source = source or RasterSource(pdf_scale=self.settings.pdf_scale)

    def preprocess(self, img):
        """Binary mask with dark, dense regions merged into solid blobs."""
        img = _check_image(img)
        gray = self.engine.to_gray(img)
        blurred = self.engine.blur(gray, BLUR_KERNEL)
        thresh = self.engine.otsu_inverse(blurred)
        return self.engine.dilate(thresh, DILATE_KERNEL)

    def extract_candidates(self, mask):
        candidates = []
        for x, y, w, h in self.engine.find_regions(mask):
            rect = Rect(int(x), int(y), int(w), int(h))
            candidates.append(Candidate(rect, rect.area))
        logger.info("Found %d potential contours", len(candidates))
        return candidates

    def select_best(self, page_width, page_height, candidates):
        """Pick the largest plausible candidate.

        Returns (candidate, used_fallback). When nothing survives filtering
        and the page itself looks like a label, the whole page is used.
        """
        kept = filter_candidates(candidates, page_width, page_height,
                                 self.settings.min_area_ratio, self.settings.max_area_ratio)
        best = None
        for cand in kept:
            if best is None or cand.area > best.area:
                best = cand
        if best is not None:
            return best, False

        logger.info("No specific label contour found, checking for fallback")
        page_ratio = page_width / page_height
        if FALLBACK_MIN_RATIO < page_ratio < FALLBACK_MAX_RATIO:
            logger.info("Fallback triggered: using full image as label")
            full = Rect(0, 0, page_width, page_height)
            return Candidate(full, full.area), True
        raise NoLabelDetected()

    def normalize_orientation(self, crop):
        """Rotate landscape crops 90 degrees clockwise. Returns (crop, rotated)."""
        h, w = crop.shape[:2]
        if w > h:
            logger.info("Landscape crop %dx%d, rotating 90 degrees", w, h)
            return self.engine.rotate(crop, 90), True
        return crop, False

    def resample(self, crop):
        size = (self.settings.target_width, self.settings.target_height)
        return self.engine.resize(crop, size)

    def process_image(self, img, with_preview=False):
        img = _check_image(img)
        H, W = img.shape[:2]

        mask = self.preprocess(img)
        candidates = self.extract_candidates(mask)
        del mask

        best, used_fallback = self.select_best(W, H, candidates)
        x, y, w, h = best.rect
        logger.info("Target locked, cropping %dx%d at (%d, %d)", w, h, x, y)

        crop = img[y:y + h, x:x + w]
        upright, rotated = self.normalize_orientation(crop)
        output = self.resample(upright)

        preview = None
        if with_preview:
            prefix = "Fallback" if used_fallback else "Detected"
            preview = self.engine.draw_detection(img, best.rect, f"{prefix}: {w}x{h}px")

        return LabelResult(image=output, rect=best.rect, rotated=rotated,
                           used_fallback=used_fallback,
                           candidate_count=len(candidates), preview=preview)

    def process_document(self, data, mime_type, with_preview=False):
        """Load a PDF or image through the raster source and run the pipeline."""
        page = self.source.load(data, mime_type)
        return self.process_image(page, with_preview=with_preview)

    def build_response(self, result):
        preview = result.preview if result.preview is not None else result.image
        return ProcessingResponse(
            label_image=encode_png(result.image, self.engine),
            preview_image=encode_png(preview, self.engine),
            crop_info=result.crop_info(),
        )


def detect_and_normalize_label(img, settings=None, engine=None):
    return LabelProcessor(settings=settings, engine=engine).process_image(img)


def rotate_label(img, direction, engine=None):
    """Rotate a finished label 90 degrees 'left' or 'right'. Detection is not re-run."""
    img = _check_image(img)
    angle = ROTATE_DIRECTIONS.get(direction)
    if angle is None:
        raise InvalidInput(f"Rotation direction must be 'left' or 'right', got {direction!r}")
    return (engine or OpenCVEngine()).rotate(img, angle)


def encode_png(img, engine=None):
    img = _check_image(img)
    data = (engine or OpenCVEngine()).encode_png(img)
    if data is None:
        raise InvalidInput("Could not encode image as PNG")
    return data
