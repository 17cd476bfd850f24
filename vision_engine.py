import cv2

from errors import InvalidInput


class OpenCVEngine:
    """Thin wrapper over the OpenCV calls the label pipeline needs.

    Passed into LabelProcessor explicitly so tests can swap in a double
    and nothing reaches for a module-level cv2 handle.
    """

    REQUIRED = (
        "cvtColor", "GaussianBlur", "threshold", "getStructuringElement",
        "dilate", "findContours", "boundingRect", "rotate", "resize", "imencode",
    )

    def is_ready(self):
        return all(hasattr(cv2, name) for name in self.REQUIRED)

    def to_gray(self, img):
        if img.ndim == 2:
            return img.copy()
        if img.shape[2] == 4:
            return cv2.cvtColor(img, cv2.COLOR_BGRA2GRAY)
        return cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)

    def blur(self, gray, ksize):
        return cv2.GaussianBlur(gray, ksize, 0)

    def otsu_inverse(self, gray):
        return cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY_INV + cv2.THRESH_OTSU)[1]

    def dilate(self, mask, ksize):
        kernel = cv2.getStructuringElement(cv2.MORPH_RECT, ksize)
        return cv2.dilate(mask, kernel)

    def find_regions(self, mask):
        """Bounding rects of every contour in the mask, nested ones included."""
        contours, _ = cv2.findContours(mask, cv2.RETR_LIST, cv2.CHAIN_APPROX_SIMPLE)
        return [cv2.boundingRect(c) for c in contours]

    def rotate(self, img, angle):
        """Rotate image by 90, 180 or 270 degrees clockwise."""
        if angle == 90:
            return cv2.rotate(img, cv2.ROTATE_90_CLOCKWISE)
        elif angle == 180:
            return cv2.rotate(img, cv2.ROTATE_180)
        elif angle == 270:
            return cv2.rotate(img, cv2.ROTATE_90_COUNTERCLOCKWISE)
        raise InvalidInput(f"Rotation angle must be 90, 180 or 270, got {angle!r}")

    def resize(self, img, size):
        return cv2.resize(img, size, interpolation=cv2.INTER_LANCZOS4)

    def encode_png(self, img):
        is_success, buffer = cv2.imencode(".png", img)
        if not is_success:
            return None
        return buffer.tobytes()

    def draw_detection(self, img, rect, label):
        """Copy of `img` with `rect` outlined and a caption above it."""
        x, y, w, h = rect
        preview = img.copy()
        if preview.ndim == 2:
            preview = cv2.cvtColor(preview, cv2.COLOR_GRAY2BGR)
        elif preview.shape[2] == 4:
            preview = cv2.cvtColor(preview, cv2.COLOR_BGRA2BGR)
        cv2.rectangle(preview, (x, y), (x + w, y + h), (0, 255, 0), max(5, int(min(w, h) * 0.005)))

        font = cv2.FONT_HERSHEY_SIMPLEX
        font_scale = max(0.5, min(w, h) / 1000)
        thickness = max(1, int(font_scale * 2))
        text_size = cv2.getTextSize(label, font, font_scale, thickness)[0]
        text_x = x + (w - text_size[0]) // 2
        text_y = max(y - 10, text_size[1] + 10)

        cv2.rectangle(preview, (text_x - 5, text_y - text_size[1] - 5),
                      (text_x + text_size[0] + 5, text_y + 5), (0, 255, 0), -1)
        cv2.putText(preview, label, (text_x, text_y), font, font_scale, (0, 0, 0), thickness)
        return preview
