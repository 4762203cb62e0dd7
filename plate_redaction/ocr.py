"""
Module OCR cho nhận diện ký tự biển số xe
Bộ nhận dạng là một "capability" có thể thay thế: recognize(image) -> text
Mặc định sử dụng EasyOCR
"""

import logging
from typing import Any, List, Optional

import easyocr
import numpy as np

from .config import OCR_ALLOWLIST, OCR_GPU, OCR_LANGUAGES

logger = logging.getLogger(__name__)


class EasyOCRRecognizer:
    """
    Bộ nhận dạng ký tự dùng EasyOCR
    """

    def __init__(self, languages: List[str] = OCR_LANGUAGES, gpu: bool = OCR_GPU,
                 allowlist: str = OCR_ALLOWLIST):
        """
        Khởi tạo EasyOCR reader

        Args:
            languages: Danh sách ngôn ngữ hỗ trợ
            gpu: Sử dụng GPU hay không
            allowlist: Các ký tự được phép nhận dạng
        """
        self.reader = easyocr.Reader(languages, gpu=gpu)
        self.allowlist = allowlist
        logger.info("✓ Đã khởi tạo EasyOCR (GPU: %s)", gpu)

    @staticmethod
    def _sort_top_to_bottom(ocr_output: List[Any]) -> List[Any]:
        """
        Sắp xếp kết quả OCR từ trên xuống dưới, trái qua phải
        bbox format: [[x1,y1], [x2,y2], [x3,y3], [x4,y4]]
        """
        def get_sort_key(item):
            bbox = item[0]
            y_center = (bbox[0][1] + bbox[2][1]) / 2
            x_center = (bbox[0][0] + bbox[2][0]) / 2
            return (y_center, x_center)

        return sorted(ocr_output, key=get_sort_key)

    def recognize(self, image: np.ndarray) -> Optional[str]:
        """
        Đọc text từ ảnh biển số đã tiền xử lý

        Returns:
            Text ghép từ các dòng, hoặc None nếu không đọc được gì
        """
        ocr_output = self.reader.readtext(image, detail=1, allowlist=self.allowlist)
        if not ocr_output:
            return None
        lines = [item[1] for item in self._sort_top_to_bottom(ocr_output)]
        return "".join(lines)
