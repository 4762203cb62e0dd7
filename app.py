# app.py
import logging
import time

import streamlit as st

from plate_redaction import HistoryLogger, JobCoordinator, JobStatus, PlateDetector, format_plate
from plate_redaction.config import SAVE_ENABLED
from plate_redaction.exceptions import JobNotFound, PlateRedactionError
from plate_redaction.ocr import EasyOCRRecognizer

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

# --- Cấu hình trang ---
st.set_page_config(page_title="Che biển số xe Brazil", layout="wide")

# --- CSS tùy chỉnh để chữ to rõ ---
st.markdown("""
<style>
    .big-font {
        font-size:50px !important;
        font-weight: bold;
        color: #FF4B4B;
    }
    .label-font {
        font-size:20px !important;
        font-weight: bold;
    }
</style>
""", unsafe_allow_html=True)


# --- Khởi tạo bộ điều phối (Cache để không load lại EasyOCR mỗi lần upload) ---
@st.cache_resource
def load_coordinator():
    detector = PlateDetector(EasyOCRRecognizer())
    return JobCoordinator(detector, artifact_store=HistoryLogger(enabled=SAVE_ENABLED))


coordinator = load_coordinator()

# --- Giao diện chính ---
st.title("🔒 Hệ Thống Che Biển Số Xe (Brazil)")
st.write("Hỗ trợ biển Mercosul (ABC1D23) và biển cũ (ABC-1234).")

uploaded_file = st.file_uploader("Tải ảnh xe lên tại đây...", type=['jpg', 'png', 'jpeg'])

if uploaded_file is not None:
    # Chia cột: Bên trái ảnh gốc, Bên phải kết quả
    col1, col2 = st.columns([1, 1])

    with col1:
        st.image(uploaded_file, caption='Ảnh gốc', use_container_width=True)

    with col2:
        status_text = st.empty()
        status_text.markdown('<p class="label-font">Đang xử lý...</p>', unsafe_allow_html=True)

        # Streamlit chạy lại toàn bộ script sau mỗi tương tác: chỉ submit khi có file mới
        file_key = (uploaded_file.name, uploaded_file.size)
        if st.session_state.get('file_key') != file_key:
            try:
                st.session_state['job_id'] = coordinator.submit(uploaded_file.getvalue())
            except PlateRedactionError as e:
                status_text.empty()
                st.error(str(e))
                st.stop()
            st.session_state['file_key'] = file_key
        job_id = st.session_state['job_id']

        # Poll trạng thái job
        try:
            job = coordinator.status(job_id)
            while job.status == JobStatus.PROCESSING:
                time.sleep(0.2)
                job = coordinator.status(job_id)
        except JobNotFound:
            status_text.empty()
            st.info(f"Kết quả của job {job_id[:8]} đã bị xóa. Tải ảnh khác để xử lý tiếp.")
            st.stop()

        status_text.empty()

        # --- HIỂN THỊ KẾT QUẢ ---
        if job.status == JobStatus.ERROR:
            st.error(f"Xử lý thất bại: {job.outcome.error_message}")
        else:
            outcome = job.outcome
            st.image(outcome.redacted_image, caption='Ảnh đã che biển số', use_container_width=True)

            st.markdown("---")
            st.markdown('<p class="label-font">KẾT QUẢ BIỂN SỐ:</p>', unsafe_allow_html=True)

            detection = outcome.detection
            if detection is not None:
                st.markdown(f'<p class="big-font">{format_plate(detection.plate_text, detection.format)}</p>',
                            unsafe_allow_html=True)
                st.caption(f"Định dạng: {detection.format.value} | Vị trí: {detection.region.to_dict()}")
            else:
                st.warning("Không tìm thấy biển số, ảnh chỉ được nén.")
            st.caption(f"Thời gian xử lý: {outcome.processing_ms} ms")

            st.download_button("Tải ảnh đã che", outcome.redacted_image,
                               file_name=f"processed_{job_id[:8]}.jpg", mime="image/jpeg")

        if st.button("Xóa kết quả"):
            coordinator.clear(job_id)
            st.info(f"Đã xóa job {job_id[:8]} (còn {coordinator.cache_size()} job trong bộ nhớ)")
