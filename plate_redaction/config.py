"""
Module chứa các cấu hình và hằng số cho toàn bộ dự án
Một số giá trị có thể ghi đè qua biến môi trường PLATE_REDACTION_*
"""
import os


def _env_int(name, default):
    value = os.environ.get(f"PLATE_REDACTION_{name}")
    return int(value) if value not in (None, "") else default


def _env_float(name, default):
    value = os.environ.get(f"PLATE_REDACTION_{name}")
    return float(value) if value not in (None, "") else default


def _env_bool(name, default):
    value = os.environ.get(f"PLATE_REDACTION_{name}")
    if value in (None, ""):
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# --- PATHS ---
# Thư mục lưu lịch sử (ảnh gốc + ảnh đã xử lý)
HISTORY_DIR = os.environ.get("PLATE_REDACTION_HISTORY_DIR", "History")
HISTORY_CSV_FILE = "history.csv"
SAVE_ENABLED = _env_bool("SAVE_ENABLED", False)

# --- OCR SETTINGS ---
OCR_LANGUAGES = ['en']
OCR_GPU = _env_bool("OCR_GPU", False)
OCR_ALLOWLIST = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"

# --- INPUT VALIDATION ---
MIN_IMAGE_WIDTH = 120
MIN_IMAGE_HEIGHT = 40

# --- PREPROCESSING SETTINGS ---
# Chiều rộng chuẩn của vùng biển số trước khi đưa vào OCR
OCR_TARGET_WIDTH = 400
OCR_BLUR_RADIUS = 1

# Adaptive Threshold
ADAPTIVE_THRESH_WINDOW = 15
ADAPTIVE_THRESH_OFFSET = 10

# --- REGION SCORING ---
EDGE_DELTA = 50
BRIGHTNESS_FLOOR = 180
COLOR_BAND = (0.4, 0.8)
COLOR_PENALTY_FLOOR = 0.1
POSITION_BEST_BAND = (0.7, 0.9)
POSITION_GOOD_BAND = (0.5, 0.95)
POSITION_SCORES = (1.0, 0.6, 0.2)
TEXT_SCORE_WIDTH = 100
TEXT_MAX_TRANSITIONS = 10
SCORE_WEIGHTS = {'edge': 0.3, 'color': 0.3, 'position': 0.2, 'text': 0.2}

# --- PLATE REGION VALIDATION ---
PLATE_MIN_AREA = 3000
PLATE_MAX_AREA = 50000
PLATE_MIN_ASPECT = 2.0
PLATE_MAX_ASPECT = 5.0
PLATE_MIN_WIDTH = 120
PLATE_MIN_HEIGHT = 30

# --- CANDIDATE GENERATION ---
EDGE_BLUR_RADIUS = 2
EDGE_MIN_GRADIENT = 20
EDGE_CLOSE_KERNEL = (25, 7)
COLOR_WINDOW_WIDTHS = (120, 160, 200, 260, 320)
COLOR_WINDOW_HEIGHTS = (30, 45, 60, 80)
COLOR_SCAN_BAND = (0.5, 0.95)
COLOR_STRIDE_MIN = 20
COLOR_MIN_SCORE = 0.3
SCAN_BANDS = (0.35, 0.40, 0.50)
SCAN_WIDTH_FRACTIONS = (1 / 8, 1 / 6, 1 / 5)
# Ảnh lớn: cửa sổ bị giới hạn bởi biển số hợp lệ lớn nhất (tỷ lệ 3:1)
SCAN_MAX_WINDOW_WIDTH = int((PLATE_MAX_AREA * 3) ** 0.5)
SCAN_MIN_EDGE = 0.02
SCAN_TOP_PER_BAND = 3
MAX_CANDIDATES_PER_STRATEGY = 40
DEDUP_OVERLAP = 0.5
MAX_CANDIDATES = 8

# --- REDACTION SETTINGS ---
REDACTION_MAX_WIDTH_RATIO = 0.8
REDACTION_MAX_HEIGHT_RATIO = 0.4
REDACTION_EXPAND_RATIO = 0.15
REDACTION_EXPAND_MIN = 6
REDACTION_ESTIMATE_WIDTH_RATIO = 0.28
REDACTION_ESTIMATE_CENTER_Y = 0.75
BLUR_RADIUS_MIN = 4
PIXEL_BLOCK_MIN = 8
REDACTION_LABEL = "REDACTED"
LABEL_MIN_SIZE = (90, 25)

# --- VISUALIZATION SETTINGS ---
BORDER_COLOR = (255, 64, 64)     # Đỏ (RGB)
LABEL_COLOR = (255, 255, 255)    # Trắng
SHADOW_COLOR = (0, 0, 0)         # Đen
BBOX_THICKNESS = 3

# --- OUTPUT ---
JPEG_QUALITY = _env_int("JPEG_QUALITY", 85)
MAX_OUTPUT_WIDTH = _env_int("MAX_OUTPUT_WIDTH", 1920)
MAX_OUTPUT_HEIGHT = _env_int("MAX_OUTPUT_HEIGHT", 1080)

# --- JOB SETTINGS ---
JOB_TIMEOUT_SECONDS = _env_float("JOB_TIMEOUT_SECONDS", 30.0)
JOB_MAX_WORKERS = _env_int("JOB_MAX_WORKERS", 4)
JOB_RETENTION_SECONDS = _env_float("JOB_RETENTION_SECONDS", 3600.0)
