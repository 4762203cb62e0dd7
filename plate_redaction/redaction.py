"""
Module che biển số (làm mờ Gaussian + pixelate) và nén ảnh đầu ra
"""

import logging
from typing import Optional, Tuple

import cv2
import numpy as np

from .config import (
    BBOX_THICKNESS,
    BLUR_RADIUS_MIN,
    BORDER_COLOR,
    JPEG_QUALITY,
    LABEL_COLOR,
    LABEL_MIN_SIZE,
    MAX_OUTPUT_HEIGHT,
    MAX_OUTPUT_WIDTH,
    PIXEL_BLOCK_MIN,
    REDACTION_ESTIMATE_CENTER_Y,
    REDACTION_ESTIMATE_WIDTH_RATIO,
    REDACTION_EXPAND_MIN,
    REDACTION_EXPAND_RATIO,
    REDACTION_LABEL,
    REDACTION_MAX_HEIGHT_RATIO,
    REDACTION_MAX_WIDTH_RATIO,
    SHADOW_COLOR,
)
from .exceptions import RedactionError
from .models import Region
from .preprocessing import encode_jpeg, fit_within, gaussian_blur_region, pixelate

logger = logging.getLogger(__name__)


def estimate_region(img_w: int, img_h: int) -> Region:
    """
    Ước lượng vị trí biển số khi không có vùng hợp lệ:
    nằm giữa theo chiều ngang, rộng khoảng 1/4 - 1/3 ảnh, cao = rộng / 3,
    tâm ở 75% chiều cao ảnh (kẹp trong biên)
    """
    est_w = int(round(img_w * REDACTION_ESTIMATE_WIDTH_RATIO))
    est_w = max(1, max(img_w // 4, min(est_w, img_w // 3)))
    est_h = max(1, min(est_w // 3, img_h))

    x = (img_w - est_w) // 2
    y = int(img_h * REDACTION_ESTIMATE_CENTER_Y - est_h / 2.0)
    y = max(0, min(y, img_h - est_h))
    return Region(x, y, est_w, est_h)


def is_region_usable(region: Optional[Region], img_w: int, img_h: int) -> bool:
    """
    Vùng dùng được khi nằm trong ảnh và không quá lớn
    (<= 80% chiều rộng, <= 40% chiều cao)
    """
    if region is None or region.is_empty():
        return False
    if region.x < 0 or region.y < 0 or region.x2 > img_w or region.y2 > img_h:
        return False
    return (region.width <= img_w * REDACTION_MAX_WIDTH_RATIO
            and region.height <= img_h * REDACTION_MAX_HEIGHT_RATIO)


class Redactor:
    """
    Che vùng biển số: làm mờ Gaussian, pixelate rồi vẽ khung + nhãn
    Pixel nằm ngoài vùng cuối cùng không bao giờ bị thay đổi
    """

    def __init__(self, label: str = REDACTION_LABEL, quality: int = JPEG_QUALITY,
                 max_width: int = MAX_OUTPUT_WIDTH, max_height: int = MAX_OUTPUT_HEIGHT):
        self.label = label
        self.quality = quality
        self.max_width = max_width
        self.max_height = max_height

    def resolve_region(self, image: np.ndarray, region: Optional[Region]) -> Region:
        """
        Xác định vùng cần che:
        - Vùng không hợp lệ -> ước lượng theo heuristic
        - Vùng hợp lệ -> nới rộng ~15% mỗi trục (tối thiểu vài pixel) rồi kẹp trong ảnh
        """
        img_h, img_w = image.shape[:2]
        if not is_region_usable(region, img_w, img_h):
            estimated = estimate_region(img_w, img_h)
            logger.info("⚠ Vùng %s không dùng được, dùng vùng ước lượng %s", region, estimated)
            return estimated
        return region.expand(REDACTION_EXPAND_RATIO, REDACTION_EXPAND_MIN).clamp(img_w, img_h)

    def redact(self, image: np.ndarray, region: Optional[Region] = None) -> Tuple[np.ndarray, Region]:
        """
        Che biển số trong ảnh

        Args:
            image: Ảnh RGB (numpy array), không bị sửa
            region: Vùng biển số phát hiện được (có thể None)

        Returns:
            (ảnh đã che, vùng thực sự bị che)
        """
        target = self.resolve_region(image, region)
        if target.is_empty():
            raise RedactionError(f"Không xác định được vùng cần che trong ảnh {image.shape[1]}x{image.shape[0]}")

        short_side = min(target.width, target.height)
        blur_radius = max(BLUR_RADIUS_MIN, short_side // 4)
        block_size = max(PIXEL_BLOCK_MIN, short_side // 6)

        result = gaussian_blur_region(image, target, blur_radius)
        result = pixelate(result, target, block_size)
        result = self._draw_marker(result, target)
        return result, target

    def _draw_marker(self, image: np.ndarray, region: Region) -> np.ndarray:
        """
        Vẽ khung và nhãn để thấy rõ vùng đã bị che có chủ đích
        Mọi nét vẽ bị giới hạn trong vùng
        """
        # cv2 cần mảng liên tục: vẽ trên bản sao rồi chép lại
        patch = np.ascontiguousarray(image[region.y:region.y2, region.x:region.x2])
        rh, rw = patch.shape[:2]

        def color(rgb):
            return rgb if patch.ndim == 3 else int(sum(rgb) / 3)

        # Độ dày nét vẽ động theo kích thước ảnh (chuẩn hóa theo chiều rộng 640px)
        scale_factor = max(1.0, image.shape[1] / 640.0)
        thickness = max(1, min(int(BBOX_THICKNESS * scale_factor), min(rw, rh) // 4))
        cv2.rectangle(patch, (0, 0), (rw - 1, rh - 1), color(BORDER_COLOR), thickness)

        min_w, min_h = LABEL_MIN_SIZE
        if rw > min_w and rh > min_h and self.label:
            font = cv2.FONT_HERSHEY_SIMPLEX
            (base_w, base_h), _ = cv2.getTextSize(self.label, font, 1.0, 2)
            font_scale = min(rw * 0.6 / base_w, rh * 0.4 / base_h)
            text_thickness = max(1, int(round(font_scale * 2)))
            (tw, th), _ = cv2.getTextSize(self.label, font, font_scale, text_thickness)

            org_x = max(0, (rw - tw) // 2)
            org_y = min(rh - 1, (rh + th) // 2)
            shadow = max(1, text_thickness // 2 + 1)
            cv2.putText(patch, self.label, (org_x + shadow, org_y + shadow), font, font_scale,
                        color(SHADOW_COLOR), text_thickness, cv2.LINE_AA)
            cv2.putText(patch, self.label, (org_x, org_y), font, font_scale,
                        color(LABEL_COLOR), text_thickness, cv2.LINE_AA)

        result = image.copy()
        result[region.y:region.y2, region.x:region.x2] = patch
        return result

    def redact_and_compress(self, image: np.ndarray, region: Optional[Region]) -> Tuple[bytes, Region]:
        """
        Che biển số, thu nhỏ ảnh cho vừa khung hiển thị và nén JPEG

        Returns:
            (bytes JPEG, vùng đã che theo tọa độ ảnh gốc)
        """
        redacted, target = self.redact(image, region)
        return self.compress(redacted), target

    def compress(self, image: np.ndarray) -> bytes:
        """Thu nhỏ (nếu cần) và nén JPEG"""
        resized, _, _ = fit_within(image, self.max_width, self.max_height)
        return encode_jpeg(resized, self.quality)
