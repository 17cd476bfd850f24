"""Run state for one interactive label session.

A session holds at most one document's results. Status moves
``ready -> processing -> success | error`` and only ``reset()`` (or a new
``submit()``, which resets first) brings it back to ``ready``. A manual
``rotate()`` passes through ``processing`` and then restores the prior status.

Runs are synchronous, so a new ``submit()`` can only start after the
previous one has finished; its ``reset()`` is what discards the old result.
"""
import logging
from datetime import datetime

from errors import InvalidInput, LabelCropError
from label_processor import LabelProcessor, rotate_label

logger = logging.getLogger(__name__)

READY = "ready"
PROCESSING = "processing"
SUCCESS = "success"
ERROR = "error"


class LabelSession:
    def __init__(self, processor=None):
        self.processor = processor or LabelProcessor()
        self.logs = []
        self._clear()
        self.status = READY
        self.log("System ready. Upload a shipping label.")

    def _clear(self):
        self.name = None
        self.page = None
        self.result = None
        self.output = None
        self.error = None

    def log(self, message):
        logger.info(message)
        self.logs.append(f"[{datetime.now().strftime('%H:%M:%S')}] {message}")

    def reset(self):
        self._clear()
        self.logs = []
        self.status = READY
        self.log("Ready for new file.")

    def submit(self, data, mime_type, name="upload"):
        self.reset()
        self.name = name
        self.status = PROCESSING
        self.log(f"Processing file: {name}")

        try:
            page = self.processor.source.load(data, mime_type)
            self.log(f"Loaded page {page.shape[1]}x{page.shape[0]}. Starting analysis...")
            result = self.processor.process_image(page, with_preview=True)
        except LabelCropError as exc:
            self.status = ERROR
            self.error = exc
            self.log(f"Error: {exc}")
            return None

        self.page = page
        self.result = result
        self.output = result.image
        self.status = SUCCESS
        if result.used_fallback:
            self.log("Fallback used: whole page treated as the label.")
        if result.rotated:
            self.log("Landscape crop rotated 90 degrees.")
        self.log("Processing complete!")
        return result

    def rotate(self, direction):
        if self.output is None:
            raise InvalidInput("Nothing to rotate; process a label first")
        previous = self.status
        self.status = PROCESSING
        try:
            self.output = rotate_label(self.output, direction, self.processor.engine)
        finally:
            self.status = previous
        self.log(f"Rotated {direction}.")
        return self.output
