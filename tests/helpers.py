"""
Ảnh tổng hợp và bộ nhận dạng giả dùng chung cho các test
"""

import io
import threading

import cv2
import numpy as np
from PIL import Image

from plate_redaction.models import Region

DEFAULT_PLATE = Region(800, 1140, 400, 120)


def make_plate_image(width=2000, height=1500, plate=DEFAULT_PLATE, text="ABC1D23", background=40):
    """
    Ảnh nền tối đồng nhất với một biển số trắng chữ đen
    """
    image = np.full((height, width, 3), background, dtype=np.uint8)
    image[plate.y:plate.y2, plate.x:plate.x2] = 255

    font = cv2.FONT_HERSHEY_SIMPLEX
    (base_w, base_h), _ = cv2.getTextSize(text, font, 1.0, 2)
    scale = min(plate.width * 0.85 / base_w, plate.height * 0.6 / base_h)
    thickness = max(1, int(scale * 2))
    (tw, th), _ = cv2.getTextSize(text, font, scale, thickness)
    org = (plate.x + (plate.width - tw) // 2, plate.y + (plate.height + th) // 2)
    cv2.putText(image, text, org, font, scale, (0, 0, 0), thickness, cv2.LINE_AA)
    return image


def to_png_bytes(image):
    buffer = io.BytesIO()
    Image.fromarray(image).save(buffer, format='PNG')
    return buffer.getvalue()


def decode_jpeg(data):
    with Image.open(io.BytesIO(data)) as img:
        return np.array(img.convert('RGB'))


class StubRecognizer:
    """
    Trả lời lần lượt theo `responses`, hết thì trả `default`
    Phần tử là Exception sẽ được raise
    """

    def __init__(self, responses=None, default=None):
        self.responses = list(responses or [])
        self.default = default
        self.calls = 0
        self._lock = threading.Lock()

    def recognize(self, image):
        with self._lock:
            self.calls += 1
            response = self.responses.pop(0) if self.responses else self.default
        if isinstance(response, Exception):
            raise response
        return response


class StaticGenerator:
    """Bộ sinh ứng viên trả về danh sách cố định và đếm số lần gọi"""

    def __init__(self, candidates=()):
        self.candidates = list(candidates)
        self.calls = 0
        self._lock = threading.Lock()

    def __call__(self, image):
        with self._lock:
            self.calls += 1
        return list(self.candidates)
