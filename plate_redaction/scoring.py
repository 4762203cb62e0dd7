"""
Module chấm điểm một vùng ảnh theo các đặc trưng của biển số:
mật độ cạnh, độ sáng, vị trí trong ảnh và mật độ nét chữ
"""

import numpy as np

from .config import (
    BRIGHTNESS_FLOOR,
    COLOR_BAND,
    COLOR_PENALTY_FLOOR,
    EDGE_DELTA,
    POSITION_BEST_BAND,
    POSITION_GOOD_BAND,
    POSITION_SCORES,
    SCORE_WEIGHTS,
    TEXT_MAX_TRANSITIONS,
    TEXT_SCORE_WIDTH,
)
from .models import Region, RegionScores
from .preprocessing import integral_image, preprocess_for_ocr, to_grayscale, window_sum


def color_score_from_fraction(fraction: float) -> float:
    """
    Biển số sáng nhưng không trắng hoàn toàn: chỉ thưởng khi tỷ lệ pixel sáng
    nằm trong dải COLOR_BAND, ngoài dải thì phạt về mức sàn
    """
    low, high = COLOR_BAND
    if low <= fraction <= high:
        center = (low + high) / 2.0
        return 1.0 - abs(fraction - center) / (high - low)
    return COLOR_PENALTY_FLOOR


def position_score(region: Region, image_height: int) -> float:
    """Biển số thường nằm ở phần dưới-giữa của ảnh xe"""
    best, good, low = POSITION_SCORES
    cy = region.center_y / float(image_height)
    if POSITION_BEST_BAND[0] <= cy <= POSITION_BEST_BAND[1]:
        return best
    if POSITION_GOOD_BAND[0] <= cy <= POSITION_GOOD_BAND[1]:
        return good
    return low


def text_score(roi: np.ndarray) -> float:
    """
    Ước lượng mật độ nét chữ mà không cần chạy OCR:
    đếm số lần chuyển sáng/tối trên các dòng quét ở 1/3 giữa của vùng
    """
    if roi.size == 0:
        return 0.0
    binary = preprocess_for_ocr(roi, target_width=TEXT_SCORE_WIDTH)
    h = binary.shape[0]
    rows = binary[h // 3:max(h // 3 + 1, 2 * h // 3)]
    transitions = np.count_nonzero(np.diff(rows.astype(np.int16), axis=1), axis=1)
    return float(min(1.0, transitions.mean() / TEXT_MAX_TRANSITIONS))


def composite_score(edge: float, color: float, position: float, text: float) -> float:
    return (SCORE_WEIGHTS['edge'] * edge + SCORE_WEIGHTS['color'] * color
            + SCORE_WEIGHTS['position'] * position + SCORE_WEIGHTS['text'] * text)


class RegionScorer:
    """
    Chấm điểm nhiều vùng trên cùng một ảnh

    Các bảng tổng tích lũy (độ sáng, pixel sáng, cạnh ngang) được tính một lần
    khi khởi tạo nên điểm edge/color của mỗi vùng chỉ tốn O(1).
    """

    def __init__(self, image: np.ndarray):
        self.image = image
        self.height, self.width = image.shape[:2]
        self.gray = to_grayscale(image)

        bright = self.gray > BRIGHTNESS_FLOOR
        # Cột x của edge_mask ứng với cặp pixel (x, x+1)
        edge_mask = np.abs(np.diff(self.gray.astype(np.int16), axis=1)) > EDGE_DELTA

        self._bright_table = integral_image(bright)
        self._edge_table = integral_image(edge_mask)

    def _clamp(self, region: Region) -> Region:
        return region.clamp(self.width, self.height)

    def edge_score(self, region: Region) -> float:
        region = self._clamp(region)
        pairs = region.height * (region.width - 1)
        if pairs <= 0:
            return 0.0
        pair_region = Region(region.x, region.y, region.width - 1, region.height)
        return float(window_sum(self._edge_table, pair_region)) / pairs

    def bright_fraction(self, region: Region) -> float:
        region = self._clamp(region)
        if region.is_empty():
            return 0.0
        return float(window_sum(self._bright_table, region)) / region.area

    def color_score(self, region: Region) -> float:
        return color_score_from_fraction(self.bright_fraction(region))

    def position_score(self, region: Region) -> float:
        return position_score(region, self.height)

    def text_score(self, region: Region) -> float:
        region = self._clamp(region)
        if region.is_empty():
            return 0.0
        return text_score(self.image[region.y:region.y2, region.x:region.x2])

    def score(self, region: Region) -> RegionScores:
        edge = self.edge_score(region)
        color = self.color_score(region)
        position = self.position_score(region)
        text = self.text_score(region)
        return RegionScores(
            edge=edge,
            color=color,
            position=position,
            text=text,
            composite=composite_score(edge, color, position, text),
        )


def score_region(image: np.ndarray, region: Region) -> RegionScores:
    """Chấm điểm một vùng đơn lẻ (tiện dụng cho kiểm thử)"""
    return RegionScorer(image).score(region)
