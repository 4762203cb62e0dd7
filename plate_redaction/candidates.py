"""
Module sinh các vùng ứng viên biển số

Ba chiến lược độc lập (dựa trên cạnh, dựa trên màu, quét có hệ thống) cùng đổ
vào một tập chung. Sau đó mọi vùng được chấm điểm tổng hợp, loại trùng và
giữ lại MAX_CANDIDATES vùng tốt nhất để giới hạn số lần gọi OCR.
"""

import logging
from typing import Callable, List, Sequence, Tuple

import cv2
import numpy as np

from .config import (
    ADAPTIVE_THRESH_WINDOW,
    COLOR_MIN_SCORE,
    COLOR_SCAN_BAND,
    COLOR_STRIDE_MIN,
    COLOR_WINDOW_HEIGHTS,
    COLOR_WINDOW_WIDTHS,
    DEDUP_OVERLAP,
    EDGE_BLUR_RADIUS,
    EDGE_CLOSE_KERNEL,
    EDGE_MIN_GRADIENT,
    MAX_CANDIDATES,
    MAX_CANDIDATES_PER_STRATEGY,
    PLATE_MAX_AREA,
    PLATE_MAX_ASPECT,
    PLATE_MIN_AREA,
    PLATE_MIN_ASPECT,
    PLATE_MIN_HEIGHT,
    PLATE_MIN_WIDTH,
    SCAN_BANDS,
    SCAN_MAX_WINDOW_WIDTH,
    SCAN_MIN_EDGE,
    SCAN_TOP_PER_BAND,
    SCAN_WIDTH_FRACTIONS,
)
from .models import Candidate, Region
from .preprocessing import adaptive_threshold, box_blur
from .scoring import RegionScorer

logger = logging.getLogger(__name__)

ScoredRegion = Tuple[Region, float]
Strategy = Callable[[np.ndarray, RegionScorer], List[ScoredRegion]]


def is_valid_plate_region(region: Region) -> bool:
    """
    Kiểm tra kích thước vùng có khớp với một biển số không

    Điều kiện (bao gồm biên):
    - Diện tích trong [PLATE_MIN_AREA, PLATE_MAX_AREA]
    - Tỷ lệ rộng/cao trong [PLATE_MIN_ASPECT, PLATE_MAX_ASPECT]
    - Rộng >= PLATE_MIN_WIDTH, cao >= PLATE_MIN_HEIGHT
    """
    w, h = region.width, region.height
    if w <= 0 or h <= 0:
        return False
    return (PLATE_MIN_AREA <= w * h <= PLATE_MAX_AREA
            and PLATE_MIN_ASPECT * h <= w <= PLATE_MAX_ASPECT * h
            and w >= PLATE_MIN_WIDTH
            and h >= PLATE_MIN_HEIGHT)


def _top(results: List[ScoredRegion], limit: int) -> List[ScoredRegion]:
    results.sort(key=lambda item: item[1], reverse=True)
    return results[:limit]


# --- CHIẾN LƯỢC 1: DỰA TRÊN CẠNH ---

def edge_candidates(image: np.ndarray, scorer: RegionScorer) -> List[ScoredRegion]:
    """
    Grayscale -> blur (r=2) -> gradient ngang -> adaptive threshold
    -> đóng hình thái học -> thành phần liên thông -> lọc kích thước
    """
    blurred = box_blur(scorer.gray, EDGE_BLUR_RADIUS).astype(np.int16)
    gradient = np.zeros_like(blurred)
    gradient[:, 1:] = np.abs(np.diff(blurred, axis=1))
    gradient = gradient.astype(np.uint8)

    binary = adaptive_threshold(gradient, ADAPTIVE_THRESH_WINDOW)
    binary[gradient < EDGE_MIN_GRADIENT] = 0

    # Nối các nét chữ gần nhau thành một khối
    kernel = cv2.getStructuringElement(cv2.MORPH_RECT, EDGE_CLOSE_KERNEL)
    closed = cv2.morphologyEx(binary, cv2.MORPH_CLOSE, kernel)

    count, _, stats, _ = cv2.connectedComponentsWithStats(closed, connectivity=8)
    results = []
    for label in range(1, count):
        x, y, w, h = (int(v) for v in stats[label, :4])
        region = Region(x, y, w, h)
        if is_valid_plate_region(region):
            results.append((region, scorer.edge_score(region)))

    return _top(results, MAX_CANDIDATES_PER_STRATEGY)


# --- CHIẾN LƯỢC 2: DỰA TRÊN MÀU ---

def color_candidates(image: np.ndarray, scorer: RegionScorer) -> List[ScoredRegion]:
    """
    Trượt các cửa sổ kích thước cố định trên nửa dưới ảnh
    Giữ các cửa sổ có điểm màu > COLOR_MIN_SCORE
    """
    h, w = image.shape[:2]
    stride = max(COLOR_STRIDE_MIN, w // 40)
    y_start = int(h * COLOR_SCAN_BAND[0])
    y_end = int(h * COLOR_SCAN_BAND[1])

    results = []
    for win_w in COLOR_WINDOW_WIDTHS:
        for win_h in COLOR_WINDOW_HEIGHTS:
            if not is_valid_plate_region(Region(0, 0, win_w, win_h)) or win_w > w:
                continue
            for y in range(y_start, y_end - win_h + 1, stride):
                for x in range(0, w - win_w + 1, stride):
                    region = Region(x, y, win_w, win_h)
                    score = scorer.color_score(region)
                    if score > COLOR_MIN_SCORE:
                        results.append((region, score))

    return _top(results, MAX_CANDIDATES_PER_STRATEGY)


# --- CHIẾN LƯỢC 3: QUÉT CÓ HỆ THỐNG ---

def scan_candidates(image: np.ndarray, scorer: RegionScorer) -> List[ScoredRegion]:
    """
    Quét 3 dải ngang chồng lấn (35%, 40%, 50% phía dưới ảnh) tìm các vùng con
    có độ tương phản cao

    Chiều rộng cửa sổ = W/8, W/6, W/5 nhưng không vượt SCAN_MAX_WINDOW_WIDTH,
    nên ảnh lớn (ví dụ 4032x3024) vẫn có cửa sổ hợp lệ để quét
    """
    h, w = image.shape[:2]
    widths = sorted({min(int(w * f), SCAN_MAX_WINDOW_WIDTH) for f in SCAN_WIDTH_FRACTIONS})
    results = []

    for band_fraction in SCAN_BANDS:
        band_top = int(h * (1.0 - band_fraction))
        band = []
        for win_w in widths:
            win_h = max(1, win_w // 3)
            if not is_valid_plate_region(Region(0, 0, win_w, win_h)):
                continue
            step_x = max(1, win_w // 4)
            step_y = max(1, win_h // 2)
            for y in range(band_top, h - win_h + 1, step_y):
                for x in range(0, w - win_w + 1, step_x):
                    region = Region(x, y, win_w, win_h)
                    edge = scorer.edge_score(region)
                    if edge >= SCAN_MIN_EDGE:
                        band.append((region, edge))
        results.extend(_top(band, SCAN_TOP_PER_BAND))

    return _top(results, MAX_CANDIDATES_PER_STRATEGY)


STRATEGIES: Sequence[Strategy] = (edge_candidates, color_candidates, scan_candidates)


# --- LOẠI TRÙNG VÀ XẾP HẠNG ---

def overlap_ratio(a: Region, b: Region) -> float:
    """Diện tích giao chia cho diện tích của vùng nhỏ hơn"""
    smaller = min(a.area, b.area)
    if smaller <= 0:
        return 0.0
    return a.intersection_area(b) / float(smaller)


def deduplicate(candidates: Sequence[Candidate], threshold: float = DEDUP_OVERLAP) -> List[Candidate]:
    """
    Loại trùng tham lam: ứng viên bị bỏ nếu chồng lấn > threshold với một ứng
    viên đã giữ trước đó (ứng viên đứng trước luôn thắng)
    """
    kept: List[Candidate] = []
    for candidate in candidates:
        if all(overlap_ratio(candidate.region, k.region) <= threshold for k in kept):
            kept.append(candidate)
    return kept


def generate_candidates(image: np.ndarray, strategies: Sequence[Strategy] = STRATEGIES,
                        limit: int = MAX_CANDIDATES) -> List[Candidate]:
    """
    Sinh danh sách ứng viên đã chấm điểm, loại trùng và xếp hạng

    Thứ tự xử lý: chấm điểm mọi vùng -> sắp xếp giảm dần theo điểm tổng hợp
    (ổn định, cùng điểm thì giữ thứ tự chiến lược) -> loại trùng tham lam
    -> cắt còn `limit`. Vì sắp xếp trước khi loại trùng nên khi hai vùng chồng
    lấn, vùng điểm cao hơn được giữ lại.

    Args:
        image: Ảnh RGB
        strategies: Danh sách hàm chiến lược (image, scorer) -> [(region, tag)]
        limit: Số ứng viên tối đa trả về

    Returns:
        List Candidate theo điểm tổng hợp giảm dần
    """
    scorer = RegionScorer(image)
    pool: List[Candidate] = []

    for strategy in strategies:
        source = strategy.__name__.replace('_candidates', '')
        found = strategy(image, scorer)
        logger.debug("Chiến lược '%s': %d vùng", source, len(found))
        for region, _ in found:
            pool.append(Candidate(region, scorer.score(region).composite, source))

    # sort ổn định: cùng điểm thì giữ thứ tự chiến lược
    pool.sort(key=lambda c: c.score, reverse=True)
    ranked = deduplicate(pool)[:limit]
    logger.debug("Tổng %d vùng, còn %d ứng viên sau khi loại trùng", len(pool), len(ranked))
    return ranked
