"""
Module tiền xử lý ảnh cho nhận diện và che biển số xe
Bao gồm: Grayscale, Box/Gaussian blur, Adaptive threshold, Pixelate, Resize,
giải mã / nén ảnh và chuẩn bị vùng biển số cho OCR

Ảnh là numpy array (H, W, 3) uint8 theo thứ tự kênh RGB, ảnh xám là (H, W).
Mọi hàm đều trả về ảnh mới, không sửa ảnh đầu vào.
"""

import io
from typing import Tuple

import cv2
import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from .config import (
    ADAPTIVE_THRESH_OFFSET,
    ADAPTIVE_THRESH_WINDOW,
    JPEG_QUALITY,
    MIN_IMAGE_HEIGHT,
    MIN_IMAGE_WIDTH,
    OCR_BLUR_RADIUS,
    OCR_TARGET_WIDTH,
)
from .exceptions import DecodeError, RedactionError
from .models import Region


def _as_uint8(values: np.ndarray) -> np.ndarray:
    return np.clip(np.rint(values), 0, 255).astype(np.uint8)


def _require_region(image: np.ndarray, region: Region) -> Region:
    """Cắt vùng theo biên ảnh, báo lỗi nếu vùng rỗng"""
    h, w = image.shape[:2]
    clamped = region.clamp(w, h)
    if clamped.is_empty():
        raise ValueError(f"Vùng rỗng hoặc nằm ngoài ảnh: {region}")
    return clamped


# --- BẢNG TỔNG TÍCH LŨY (Summed-area table) ---

def integral_image(arr: np.ndarray) -> np.ndarray:
    """
    Tạo bảng tổng tích lũy có thêm 1 hàng và 1 cột 0 ở đầu

    Args:
        arr: Mảng 2D (hoặc 3D theo kênh màu)

    Returns:
        Bảng kích thước (H+1, W+1[, C]) kiểu float64
    """
    arr = np.asarray(arr, dtype=np.float64)
    table = np.zeros((arr.shape[0] + 1, arr.shape[1] + 1) + arr.shape[2:], dtype=np.float64)
    table[1:, 1:] = arr.cumsum(axis=0).cumsum(axis=1)
    return table


def window_sum(table: np.ndarray, region: Region):
    """
    Tổng giá trị trong vùng (O(1)) dựa trên bảng tổng tích lũy
    Vùng phải nằm trong biên của bảng
    """
    x1, y1, x2, y2 = region.x, region.y, region.x2, region.y2
    return table[y2, x2] - table[y1, x2] - table[y2, x1] + table[y1, x1]


def _box_mean(arr: np.ndarray, radius: int) -> np.ndarray:
    """
    Trung bình cửa sổ (2r+1)^2 theo kiểu float
    Các điểm lân cận nằm ngoài ảnh bị loại khỏi phép trung bình
    """
    h, w = arr.shape[:2]
    table = integral_image(arr)
    ys = np.arange(h)
    xs = np.arange(w)
    y1 = np.clip(ys - radius, 0, h)[:, None]
    y2 = np.clip(ys + radius + 1, 0, h)[:, None]
    x1 = np.clip(xs - radius, 0, w)[None, :]
    x2 = np.clip(xs + radius + 1, 0, w)[None, :]

    sums = table[y2, x2] - table[y1, x2] - table[y2, x1] + table[y1, x1]
    counts = (y2 - y1) * (x2 - x1)
    if arr.ndim == 3:
        counts = counts[..., None]
    return sums / counts


# --- CÁC PHÉP BIẾN ĐỔI ẢNH ---

def to_grayscale(image: np.ndarray, keep_channels: bool = False) -> np.ndarray:
    """
    Chuyển ảnh RGB sang ảnh xám theo độ sáng 0.299R + 0.587G + 0.114B

    Args:
        image: Ảnh RGB (H, W, 3) hoặc ảnh xám (H, W)
        keep_channels: True để trả về ảnh 3 kênh có giá trị bằng nhau

    Returns:
        Ảnh xám uint8
    """
    if image.ndim == 2:
        gray = image.copy()
    else:
        rgb = image[..., :3].astype(np.float64)
        gray = _as_uint8(rgb[..., 0] * 0.299 + rgb[..., 1] * 0.587 + rgb[..., 2] * 0.114)

    if keep_channels:
        return np.repeat(gray[..., None], 3, axis=2)
    return gray


def box_blur(image: np.ndarray, radius: int) -> np.ndarray:
    """
    Làm mờ trung bình không trọng số trên cửa sổ (2r+1)^2
    Ở mép ảnh chỉ lấy trung bình các điểm nằm trong ảnh (không lặp, không phản chiếu)
    """
    if radius <= 0:
        return image.copy()
    mean = _box_mean(image, radius)
    if np.issubdtype(image.dtype, np.integer):
        return _as_uint8(mean)
    return mean.astype(image.dtype)


def gaussian_kernel(radius: int) -> np.ndarray:
    """
    Kernel Gaussian 1 chiều kích thước 2r+1, sigma = r/3, tổng bằng 1
    """
    if radius <= 0:
        return np.ones(1, dtype=np.float64)
    sigma = radius / 3.0
    xs = np.arange(-radius, radius + 1, dtype=np.float64)
    kernel = np.exp(-(xs ** 2) / (2.0 * sigma ** 2))
    return kernel / kernel.sum()


def _convolve_axis(block: np.ndarray, kernel: np.ndarray, axis: int) -> np.ndarray:
    radius = len(kernel) // 2
    pad = [(0, 0)] * block.ndim
    pad[axis] = (radius, radius)
    # Lấy mẫu bị kẹp trong biên của vùng (lặp lại pixel ở mép)
    padded = np.pad(block, pad, mode='edge')
    size = block.shape[axis]
    out = np.zeros_like(block, dtype=np.float64)
    for k, weight in enumerate(kernel):
        out += weight * np.take(padded, np.arange(k, k + size), axis=axis)
    return out


def gaussian_blur_region(image: np.ndarray, region: Region, radius: int) -> np.ndarray:
    """
    Làm mờ Gaussian tách được (ngang rồi dọc) chỉ bên trong vùng

    Việc lấy mẫu bị giới hạn trong vùng nên màu bên ngoài không bị kéo vào.

    Args:
        image: Ảnh đầu vào
        region: Vùng cần làm mờ
        radius: Bán kính kernel

    Returns:
        Ảnh mới, chỉ các pixel trong vùng bị thay đổi
    """
    region = _require_region(image, region)
    result = image.copy()
    if radius <= 0:
        return result

    kernel = gaussian_kernel(radius)
    block = image[region.y:region.y2, region.x:region.x2].astype(np.float64)
    block = _convolve_axis(block, kernel, axis=1)
    block = _convolve_axis(block, kernel, axis=0)
    result[region.y:region.y2, region.x:region.x2] = _as_uint8(block)
    return result


def adaptive_threshold(image: np.ndarray, window: int = ADAPTIVE_THRESH_WINDOW,
                       offset: float = 0) -> np.ndarray:
    """
    Nhị phân hóa theo trung bình cục bộ thay vì một ngưỡng toàn cục
    Pixel > (trung bình cửa sổ - offset) -> 255, ngược lại -> 0

    Args:
        image: Ảnh xám hoặc RGB
        window: Kích thước cửa sổ (pixel)
        offset: Hằng số trừ khỏi trung bình cục bộ

    Returns:
        Ảnh nhị phân uint8 (0 / 255)
    """
    gray = to_grayscale(image) if image.ndim == 3 else image
    mean = _box_mean(gray.astype(np.float64), max(1, window // 2))
    return np.where(gray > mean - offset, 255, 0).astype(np.uint8)


def pixelate(image: np.ndarray, region: Region, block_size: int) -> np.ndarray:
    """
    Chia vùng thành các khối không chồng lấn, thay mỗi khối bằng màu trung bình
    Các khối ở hàng/cột cuối bị cắt theo biên của vùng
    """
    if block_size < 1:
        raise ValueError(f"block_size phải >= 1: {block_size}")
    region = _require_region(image, region)
    result = image.copy()

    for by in range(region.y, region.y2, block_size):
        for bx in range(region.x, region.x2, block_size):
            block = result[by:min(by + block_size, region.y2), bx:min(bx + block_size, region.x2)]
            if block.ndim == 3:
                block[...] = _as_uint8(block.reshape(-1, block.shape[2]).mean(axis=0))
            else:
                block[...] = _as_uint8(block.mean())
    return result


def resize(image: np.ndarray, target_w: int, target_h: int,
           interpolation: int = cv2.INTER_LINEAR) -> np.ndarray:
    """
    Thay đổi kích thước ảnh (mặc định Bilinear)
    Tỷ lệ khung hình do bên gọi tự tính
    """
    if target_w < 1 or target_h < 1:
        raise ValueError(f"Kích thước đích không hợp lệ: {target_w}x{target_h}")
    return cv2.resize(image, (int(target_w), int(target_h)), interpolation=interpolation)


def invert(image: np.ndarray) -> np.ndarray:
    return 255 - image


def crop(image: np.ndarray, region: Region) -> np.ndarray:
    """
    Lấy vùng con (bản sao), tọa độ bị kẹp trong biên ảnh
    """
    region = _require_region(image, region)
    return image[region.y:region.y2, region.x:region.x2].copy()


def fit_within(image: np.ndarray, max_w: int, max_h: int) -> Tuple[np.ndarray, float, float]:
    """
    Thu nhỏ ảnh cho vừa khung max_w x max_h (giữ tỷ lệ, không phóng to)

    Returns:
        (ảnh, hệ số scale x, hệ số scale y)
    """
    h, w = image.shape[:2]
    scale = min(max_w / float(w), max_h / float(h), 1.0)
    if scale >= 1.0:
        return image, 1.0, 1.0

    new_w = max(1, int(w * scale))
    new_h = max(1, int(h * scale))
    resized = resize(image, new_w, new_h, interpolation=cv2.INTER_AREA)
    return resized, new_w / float(w), new_h / float(h)


# --- GIẢI MÃ / NÉN ẢNH ---

def decode_image(data: bytes) -> np.ndarray:
    """
    Giải mã bytes ảnh (JPEG/PNG/BMP...) thành numpy array RGB

    Raises:
        DecodeError: dữ liệu rỗng, hỏng, hoặc ảnh nhỏ hơn kích thước tối thiểu
    """
    if not data:
        raise DecodeError("Dữ liệu ảnh rỗng")

    try:
        with Image.open(io.BytesIO(data)) as pil_image:
            pil_image = ImageOps.exif_transpose(pil_image)
            image = np.array(pil_image.convert('RGB'))
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        raise DecodeError(f"Không thể giải mã ảnh: {e}") from e

    h, w = image.shape[:2]
    if w < MIN_IMAGE_WIDTH or h < MIN_IMAGE_HEIGHT:
        raise DecodeError(
            f"Ảnh quá nhỏ: {w}x{h} (tối thiểu {MIN_IMAGE_WIDTH}x{MIN_IMAGE_HEIGHT})"
        )
    return image


def encode_jpeg(image: np.ndarray, quality: int = JPEG_QUALITY) -> bytes:
    """
    Nén ảnh thành JPEG với chất lượng cố định

    Raises:
        RedactionError: nếu không nén được
    """
    try:
        buffer = io.BytesIO()
        Image.fromarray(np.ascontiguousarray(image)).save(buffer, format='JPEG', quality=int(quality))
        return buffer.getvalue()
    except (OSError, ValueError, TypeError) as e:
        raise RedactionError(f"Không thể nén ảnh JPEG: {e}") from e


# --- TIỀN XỬ LÝ CHO OCR ---

def normalize_polarity(binary: np.ndarray) -> np.ndarray:
    """
    Đảm bảo chữ tối trên nền sáng: nếu đa số pixel là đen thì đảo màu
    """
    if np.count_nonzero(binary == 0) > binary.size / 2:
        return invert(binary)
    return binary


def preprocess_for_ocr(roi: np.ndarray, target_width: int = OCR_TARGET_WIDTH) -> np.ndarray:
    """
    Tiền xử lý ảnh ROI (Region of Interest) của biển số trước khi OCR

    Các bước: resize về chiều rộng cố định -> grayscale -> làm mờ nhẹ
    -> adaptive threshold -> chuẩn hóa cực tính (chữ đen, nền trắng)

    Args:
        roi: Ảnh vùng biển số (numpy array)
        target_width: Chiều rộng sau khi resize

    Returns:
        Ảnh nhị phân uint8
    """
    h, w = roi.shape[:2]
    if w == 0 or h == 0:
        raise ValueError("ROI rỗng")

    target_h = max(1, int(round(h * target_width / float(w))))
    resized = resize(roi, target_width, target_h)
    gray = to_grayscale(resized)
    blurred = box_blur(gray, OCR_BLUR_RADIUS)
    binary = adaptive_threshold(blurred, ADAPTIVE_THRESH_WINDOW, ADAPTIVE_THRESH_OFFSET)
    return normalize_polarity(binary)
