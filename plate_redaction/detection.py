"""
Module phát hiện biển số xe bằng các heuristic có thể giải thích
(không dùng model đã huấn luyện)
"""

import logging
from typing import Callable, List, Optional

import cv2
import numpy as np

from .candidates import generate_candidates
from .exceptions import DecodeError, DetectionError
from .models import Candidate, DetectionResult, PlateFormat, Recognizer
from .preprocessing import crop, decode_image, preprocess_for_ocr
from .utils import normalize_plate

logger = logging.getLogger(__name__)

ACCEPTED_FORMATS = (PlateFormat.MERCOSUL, PlateFormat.LEGACY)


class PlateDetector:
    """
    Phát hiện biển số: sinh ứng viên -> OCR từng ứng viên theo thứ hạng
    -> ứng viên đầu tiên được chấp nhận sẽ thắng (dừng sớm)
    """

    def __init__(self, recognizer: Recognizer,
                 generator: Callable[[np.ndarray], List[Candidate]] = generate_candidates,
                 accept_unknown: bool = False):
        """
        Args:
            recognizer: Bộ nhận dạng ký tự, recognize(image) -> Optional[str]
            generator: Hàm sinh ứng viên đã xếp hạng
            accept_unknown: Chấp nhận cả text 7 ký tự không khớp định dạng nào
        """
        self.recognizer = recognizer
        self.generator = generator
        self.accepted_formats = ACCEPTED_FORMATS + ((PlateFormat.UNKNOWN,) if accept_unknown else ())

    def detect(self, image_bytes: bytes) -> DetectionResult:
        """
        Phát hiện biển số từ bytes ảnh

        Ảnh hỏng hoặc nhỏ hơn kích thước tối thiểu -> không tìm thấy,
        bộ nhận dạng không được gọi.
        """
        try:
            image = decode_image(image_bytes)
        except DecodeError as e:
            logger.warning("⚠ Bỏ qua nhận diện: %s", e)
            return DetectionResult.not_found()
        return self.detect_image(image)

    def detect_image(self, image: np.ndarray) -> DetectionResult:
        """
        Phát hiện biển số trong ảnh đã giải mã

        Args:
            image: Ảnh RGB (numpy array)

        Returns:
            DetectionResult
        """
        try:
            candidates = self._candidates(image)
        except DetectionError as e:
            logger.warning("⚠ %s", e)
            return DetectionResult.not_found()

        for rank, candidate in enumerate(candidates):
            text = self._read_candidate(image, candidate)
            if not text:
                continue

            plate_text, plate_format = normalize_plate(text)
            logger.debug("Ứng viên #%d (%s, %.2f): '%s' -> '%s' [%s]",
                         rank + 1, candidate.source, candidate.score, text, plate_text, plate_format)

            if plate_format in self.accepted_formats:
                logger.info("✓ Tìm thấy biển số %s (%s) ở ứng viên #%d",
                            plate_text, plate_format.value, rank + 1)
                return DetectionResult(True, plate_text, plate_format, candidate.region)

        logger.info("Không tìm thấy biển số trong %d ứng viên", len(candidates))
        return DetectionResult.not_found()

    def _candidates(self, image: np.ndarray) -> List[Candidate]:
        try:
            return self.generator(image)
        except (cv2.error, ValueError, IndexError, ArithmeticError, MemoryError) as e:
            raise DetectionError(f"Lỗi khi sinh ứng viên: {e}") from e

    def _read_candidate(self, image: np.ndarray, candidate: Candidate) -> Optional[str]:
        """
        Cắt vùng -> tiền xử lý -> OCR
        Mọi lỗi của bộ nhận dạng được coi là "không có text"
        """
        try:
            roi = crop(image, candidate.region)
            processed = preprocess_for_ocr(roi)
        except ValueError as e:
            logger.debug("Bỏ qua ứng viên %s: %s", candidate.region, e)
            return None

        try:
            return self.recognizer.recognize(processed)
        except Exception:
            logger.warning("⚠ Lỗi OCR ở vùng %s", candidate.region, exc_info=True)
            return None
