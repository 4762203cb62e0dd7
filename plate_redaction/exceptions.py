"""
Các lỗi dùng chung cho pipeline nhận diện và che biển số
"""


class PlateRedactionError(Exception):
    """Lỗi gốc của package."""
    pass


class DecodeError(PlateRedactionError):
    """Ảnh không đọc được, hỏng, hoặc nhỏ hơn kích thước tối thiểu."""
    pass


class DetectionError(PlateRedactionError):
    """Lỗi trong quá trình tìm biển số (không gây dừng pipeline)."""
    pass


class RedactionError(PlateRedactionError):
    """Lỗi khi che vùng biển số hoặc nén ảnh đầu ra."""
    pass


class JobNotFound(PlateRedactionError, KeyError):
    """Không tìm thấy job với id đã cho."""

    def __init__(self, job_id):
        super().__init__(job_id)
        self.job_id = job_id

    def __str__(self):
        return f"Job không tồn tại: {self.job_id}"
