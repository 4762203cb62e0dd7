import argparse
import logging

from plate_redaction.config import HISTORY_DIR
from plate_redaction.logger import HistoryLogger


def clear_history(base_dir=HISTORY_DIR):
    """
    Xóa toàn bộ dữ liệu trong thư mục History
    """
    history = HistoryLogger(base_dir=base_dir, enabled=True)
    print(f"Đang xóa dữ liệu trong thư mục '{base_dir}'...")

    deleted_dirs, deleted_files = history.clear()

    print("--------------------------------------------------")
    print("✅ Đã xóa hoàn tất!")
    print(f"   - {deleted_dirs} thư mục con")
    print(f"   - {deleted_files} files (bao gồm cả CSV)")
    print("--------------------------------------------------")
    return deleted_dirs, deleted_files


def clean_old_images(days_old, base_dir=HISTORY_DIR):
    """
    Chỉ xóa các ảnh cũ hơn `days_old` ngày
    """
    removed = HistoryLogger(base_dir=base_dir, enabled=True).clean_old_images(days_old)
    print(f"✅ Đã xóa {removed} ảnh cũ hơn {days_old} ngày trong '{base_dir}'")
    return removed


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING)

    parser = argparse.ArgumentParser(description="Dọn dẹp thư mục lịch sử xử lý ảnh")
    parser.add_argument("--dir", default=HISTORY_DIR, help="Thư mục lịch sử")
    parser.add_argument("--days", type=int, default=0,
                        help="Chỉ xóa ảnh cũ hơn N ngày (mặc định: xóa toàn bộ)")
    args = parser.parse_args()

    if args.days > 0:
        clean_old_images(args.days, args.dir)
    else:
        confirm = input(f"⚠️  CẢNH BÁO: Bạn có chắc chắn muốn xóa TOÀN BỘ dữ liệu trong '{args.dir}' không? (y/n): ")
        if confirm.lower() == 'y':
            clear_history(args.dir)
        else:
            print("Đã hủy thao tác.")
