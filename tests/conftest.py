import cv2
import numpy as np
import pytest


def make_page(width, height, rects=(), channels=3):
    """White page with solid black blocks at each (x, y, w, h)."""
    page = np.full((height, width, channels), 255, dtype=np.uint8)
    for x, y, w, h in rects:
        page[y:y + h, x:x + w] = 0
    return page


def png_bytes(img):
    ok, buf = cv2.imencode(".png", img)
    assert ok
    return buf.tobytes()


@pytest.fixture
def label_png():
    return png_bytes(make_page(600, 900, [(50, 50, 300, 450)]))


@pytest.fixture
def banner_png():
    # Too wide for the whole-page fallback, with only a speck on it
    return png_bytes(make_page(1500, 250, [(20, 20, 3, 3)]))
