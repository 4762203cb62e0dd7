"""
Module quản lý việc lưu lịch sử xử lý: ảnh gốc, ảnh đã che và file CSV
Mọi thao tác đều "best-effort": lỗi được ghi log và không ảnh hưởng tới job
"""

import csv
import logging
import os
import shutil
import threading
import time
from datetime import datetime

from .config import HISTORY_CSV_FILE, HISTORY_DIR, SAVE_ENABLED

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = ('.jpg', '.jpeg')


class HistoryLogger:
    """
    Class quản lý việc lưu trữ lịch sử xử lý, bao gồm ảnh và file CSV
    """

    def __init__(self, base_dir=HISTORY_DIR, enabled=SAVE_ENABLED):
        """
        Khởi tạo logger

        Args:
            base_dir: Thư mục gốc để lưu lịch sử
            enabled: Tắt thì mọi lệnh lưu đều trả về None
        """
        self.base_dir = base_dir
        self.enabled = enabled
        self.csv_file = os.path.join(self.base_dir, HISTORY_CSV_FILE)
        self._csv_lock = threading.Lock()
        logger.info("Lưu lịch sử: enabled=%s, path=%s", enabled, base_dir)

    def _ensure_dir(self):
        # Đảm bảo thư mục gốc tồn tại
        os.makedirs(self.base_dir, exist_ok=True)

    @staticmethod
    def _timestamp():
        return datetime.now().strftime("%Y%m%d_%H%M%S")

    def _write(self, filename, data):
        self._ensure_dir()
        path = os.path.abspath(os.path.join(self.base_dir, filename))
        with open(path, 'wb') as f:
            f.write(data)
        return path

    def save_original(self, job_id, image_bytes):
        """
        Lưu ảnh gốc: original_<timestamp>_<id8>.jpg

        Returns:
            Đường dẫn file, hoặc None nếu bị tắt / lỗi
        """
        if not self.enabled or not image_bytes:
            return None
        try:
            filename = f"original_{self._timestamp()}_{job_id[:8]}.jpg"
            path = self._write(filename, image_bytes)
            logger.debug("Đã lưu ảnh gốc: %s", path)
            return path
        except OSError as e:
            logger.warning("⚠ Lỗi khi lưu ảnh gốc của job %s: %s", job_id, e)
            return None

    def save_processed(self, job_id, image_bytes, plate_text=None):
        """
        Lưu ảnh đã che: processed_<timestamp>_<biển số|no_plate>_<id8>.jpg
        và ghi thêm một dòng vào file CSV

        Returns:
            Đường dẫn file, hoặc None nếu bị tắt / lỗi
        """
        if not self.enabled or not image_bytes:
            return None
        try:
            # Clean text cho tên file
            plate_info = "".join(c for c in plate_text if c.isalnum()) if plate_text else "no_plate"
            filename = f"processed_{self._timestamp()}_{plate_info}_{job_id[:8]}.jpg"
            path = self._write(filename, image_bytes)
            self._append_csv(job_id, plate_text, path)
            logger.debug("Đã lưu ảnh đã xử lý: %s", path)
            return path
        except OSError as e:
            logger.warning("⚠ Lỗi khi lưu ảnh đã xử lý của job %s: %s", job_id, e)
            return None

    def _append_csv(self, job_id, plate_text, path):
        with self._csv_lock:
            file_exists = os.path.isfile(self.csv_file)
            with open(self.csv_file, mode='a', newline='', encoding='utf-8-sig') as f:
                writer = csv.writer(f)
                if not file_exists:
                    writer.writerow(['Thời gian', 'Job ID', 'Biển số xe', 'Đường dẫn ảnh đã xử lý'])
                writer.writerow([
                    datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
                    job_id,
                    plate_text or "No Plate",
                    path,
                ])

    def clean_old_images(self, days_old):
        """
        Xóa các ảnh JPEG cũ hơn `days_old` ngày

        Returns:
            Số file đã xóa
        """
        if not self.enabled or days_old <= 0 or not os.path.isdir(self.base_dir):
            return 0

        cutoff = time.time() - days_old * 24 * 60 * 60
        removed = 0
        for name in os.listdir(self.base_dir):
            path = os.path.join(self.base_dir, name)
            if not name.lower().endswith(IMAGE_EXTENSIONS) or not os.path.isfile(path):
                continue
            try:
                if os.path.getmtime(path) < cutoff:
                    os.unlink(path)
                    removed += 1
                    logger.debug("Đã xóa file cũ: %s", name)
            except OSError as e:
                logger.warning("⚠ Không thể xóa %s: %s", path, e)
        return removed

    def clear(self):
        """
        Xóa toàn bộ dữ liệu trong thư mục lịch sử

        Returns:
            (số thư mục con, số file) đã xóa
        """
        if not os.path.isdir(self.base_dir):
            return 0, 0

        deleted_files = 0
        deleted_dirs = 0
        for item in os.listdir(self.base_dir):
            item_path = os.path.join(self.base_dir, item)
            try:
                if os.path.isfile(item_path) or os.path.islink(item_path):
                    os.unlink(item_path)  # Xóa file hoặc symbolic link
                    deleted_files += 1
                elif os.path.isdir(item_path):
                    shutil.rmtree(item_path)  # Xóa thư mục và nội dung bên trong
                    deleted_dirs += 1
            except OSError as e:
                logger.warning("⚠ Không thể xóa %s: %s", item_path, e)
        return deleted_dirs, deleted_files
