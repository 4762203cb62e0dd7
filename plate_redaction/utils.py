"""
Module các hàm hỗ trợ cho nhận diện biển số xe Brazil
Bao gồm: làm sạch text OCR, sửa lỗi ký tự theo vị trí, phân loại định dạng
"""

import re
from typing import Optional, Tuple

from .models import PlateFormat

# --- ĐỊNH DẠNG BIỂN SỐ BRAZIL (7 ký tự) ---
# Mercosul: LLL D L DD (ví dụ: ABC1D23)
# Cũ (legacy): LLL DDDD (ví dụ: ABC1234)
MERCOSUL_PATTERN = re.compile(r'^[A-Z]{3}[0-9][A-Z][0-9]{2}$')
LEGACY_PATTERN = re.compile(r'^[A-Z]{3}[0-9]{4}$')
PLATE_LENGTH = 7

# --- MAPPING ---
# Mapping: Số -> Chữ (dùng cho vị trí 0-2, luôn là CHỮ)
dict_num_to_char = {
    '0': 'O',
    '1': 'I',
    '3': 'B',
    '4': 'A',
    '5': 'S',
    '6': 'G',
    '7': 'T',
    '8': 'B',
    '9': 'P'
}

# Mapping: Chữ -> Số (dùng cho vị trí 3, 5, 6, luôn là SỐ)
dict_char_to_num = {
    'O': '0',
    'I': '1',
    'Z': '2',
    'B': '8',
    'S': '5',
    'G': '6',
    'T': '7',
    'P': '9'
}

LETTER_POSITIONS = (0, 1, 2)
DIGIT_POSITIONS = (3, 5, 6)
# Vị trí 4 là chữ với Mercosul, số với biển cũ: giữ nguyên để phân biệt định dạng


def clean(raw_text: Optional[str]) -> str:
    """
    Làm sạch text thô từ OCR: viết hoa và bỏ mọi ký tự ngoài [A-Z0-9]
    """
    if not raw_text:
        return ""
    return re.sub(r'[^A-Z0-9]', '', raw_text.upper())


def correct(text: str) -> str:
    """
    Sửa lỗi ký tự dựa trên vị trí trong biển số 7 ký tự

    CẤU TRÚC:
    - Vị trí 0-2: CHỮ (số bị nhận nhầm được đổi sang chữ)
    - Vị trí 3: SỐ
    - Vị trí 4: giữ nguyên (chữ với Mercosul, số với biển cũ)
    - Vị trí 5-6: SỐ

    Text dài hơn 7 ký tự bị cắt còn 7, text ngắn hơn được giữ nguyên.

    Args:
        text: Text đã được làm sạch

    Returns:
        Text đã được sửa lỗi
    """
    if len(text) < PLATE_LENGTH:
        return text

    chars = list(text[:PLATE_LENGTH])

    # === VỊ TRÍ 0-2: Luôn là CHỮ ===
    for i in LETTER_POSITIONS:
        if chars[i] in dict_num_to_char:
            chars[i] = dict_num_to_char[chars[i]]

    # === VỊ TRÍ 3, 5, 6: Luôn là SỐ ===
    for i in DIGIT_POSITIONS:
        if chars[i] in dict_char_to_num:
            chars[i] = dict_char_to_num[chars[i]]

    return "".join(chars)


def classify(text: str) -> Optional[PlateFormat]:
    """
    Phân loại định dạng biển số

    Returns:
        None nếu text không đủ đúng 7 ký tự (bị loại),
        MERCOSUL / LEGACY nếu khớp mẫu, ngược lại UNKNOWN
    """
    if text is None or len(text) != PLATE_LENGTH:
        return None
    if MERCOSUL_PATTERN.match(text):
        return PlateFormat.MERCOSUL
    if LEGACY_PATTERN.match(text):
        return PlateFormat.LEGACY
    return PlateFormat.UNKNOWN


def normalize_plate(raw_text: Optional[str]) -> Tuple[str, Optional[PlateFormat]]:
    """
    Làm sạch -> sửa lỗi -> phân loại

    Returns:
        (text đã sửa, định dạng hoặc None nếu bị loại)
    """
    text = correct(clean(raw_text))
    return text, classify(text)


def format_plate(text: str, plate_format: Optional[PlateFormat]) -> str:
    """
    Format biển số để hiển thị
    - LEGACY: ABC-1234
    - MERCOSUL: ABC1D23 (không có gạch nối)
    """
    if plate_format == PlateFormat.LEGACY and len(text) == PLATE_LENGTH:
        return f"{text[:3]}-{text[3:]}"
    return text
