"""
Module nhận diện và che biển số xe Brazil (Mercosul / biển cũ)
Bao gồm: Preprocessing, sinh ứng viên, Detection, Redaction, điều phối job bất đồng bộ

Bộ OCR mặc định (EasyOCR) nằm ở plate_redaction.ocr và chỉ được import khi cần.
"""

from .candidates import generate_candidates, is_valid_plate_region
from .detection import PlateDetector
from .exceptions import (
    DecodeError,
    DetectionError,
    JobNotFound,
    PlateRedactionError,
    RedactionError,
)
from .jobs import Job, JobCoordinator, JobOutcome, JobRegistry, JobStatus
from .logger import HistoryLogger
from .models import Candidate, DetectionResult, PlateFormat, Recognizer, Region
from .preprocessing import decode_image, encode_jpeg, preprocess_for_ocr
from .redaction import Redactor
from .utils import (
    classify,
    clean,
    correct,
    dict_char_to_num,
    dict_num_to_char,
    format_plate,
    normalize_plate,
)

__all__ = [
    'PlateDetector',
    'Redactor',
    'JobCoordinator',
    'JobRegistry',
    'Job',
    'JobOutcome',
    'JobStatus',
    'HistoryLogger',
    'Region',
    'Candidate',
    'DetectionResult',
    'PlateFormat',
    'Recognizer',
    'generate_candidates',
    'is_valid_plate_region',
    'decode_image',
    'encode_jpeg',
    'preprocess_for_ocr',
    'clean',
    'correct',
    'classify',
    'normalize_plate',
    'format_plate',
    'dict_char_to_num',
    'dict_num_to_char',
    'PlateRedactionError',
    'DecodeError',
    'DetectionError',
    'RedactionError',
    'JobNotFound',
]
