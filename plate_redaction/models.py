"""
Các kiểu dữ liệu cơ bản: vùng ảnh, ứng viên biển số, kết quả nhận diện
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Dict, Any, Protocol

import numpy as np


class PlateFormat(str, Enum):
    """Định dạng biển số Brazil"""
    MERCOSUL = "MERCOSUL"   # ABC1D23
    LEGACY = "LEGACY"       # ABC1234
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class Region:
    """
    Hình chữ nhật trong tọa độ pixel của ảnh (x, y là góc trên bên trái)
    """

    x: int
    y: int
    width: int
    height: int

    @property
    def x2(self) -> int:
        return self.x + self.width

    @property
    def y2(self) -> int:
        return self.y + self.height

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2.0

    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def intersection_area(self, other: "Region") -> int:
        w = min(self.x2, other.x2) - max(self.x, other.x)
        h = min(self.y2, other.y2) - max(self.y, other.y)
        if w <= 0 or h <= 0:
            return 0
        return w * h

    def clamp(self, img_w: int, img_h: int) -> "Region":
        """
        Cắt vùng cho nằm gọn trong ảnh kích thước img_w x img_h
        Vùng nằm ngoài hoàn toàn sẽ có diện tích 0
        """
        x1 = max(0, min(self.x, img_w))
        y1 = max(0, min(self.y, img_h))
        x2 = max(0, min(self.x2, img_w))
        y2 = max(0, min(self.y2, img_h))
        return Region(x1, y1, max(0, x2 - x1), max(0, y2 - y1))

    def expand(self, ratio: float, minimum: int = 0) -> "Region":
        """
        Nới rộng vùng theo tỷ lệ trên mỗi trục (mỗi phía), tối thiểu `minimum` pixel
        """
        pad_x = max(minimum, int(round(self.width * ratio)))
        pad_y = max(minimum, int(round(self.height * ratio)))
        return Region(self.x - pad_x, self.y - pad_y,
                      self.width + 2 * pad_x, self.height + 2 * pad_y)

    def scale(self, sx: float, sy: float) -> "Region":
        return Region(int(self.x * sx), int(self.y * sy),
                      int(self.width * sx), int(self.height * sy))

    def to_dict(self) -> Dict[str, int]:
        return {'x': self.x, 'y': self.y, 'width': self.width, 'height': self.height}


@dataclass(frozen=True)
class RegionScores:
    """Các điểm thành phần (đều trong [0, 1]) của một vùng"""

    edge: float
    color: float
    position: float
    text: float
    composite: float


@dataclass(frozen=True)
class Candidate:
    """Một giả thuyết vị trí biển số đã được chấm điểm"""

    region: Region
    score: float
    source: str = ""


@dataclass(frozen=True)
class DetectionResult:
    found: bool
    plate_text: Optional[str] = None
    format: Optional[PlateFormat] = None
    region: Optional[Region] = None

    @classmethod
    def not_found(cls) -> "DetectionResult":
        return cls(found=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'found': self.found,
            'plate_text': self.plate_text,
            'format': self.format.value if self.format else None,
            'region': self.region.to_dict() if self.region else None,
        }


class Recognizer(Protocol):
    """
    Bộ nhận dạng ký tự (OCR) có thể thay thế
    Bất kỳ đối tượng nào có recognize(image) -> Optional[str]
    """

    def recognize(self, image: np.ndarray) -> Optional[str]:
        ...
