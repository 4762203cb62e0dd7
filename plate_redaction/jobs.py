"""
Module điều phối job bất đồng bộ: nhận ảnh, chạy pipeline trên thread pool,
lưu trạng thái để bên gọi truy vấn theo id

Vòng đời một job: PROCESSING -> COMPLETED | ERROR (trạng thái cuối không đổi nữa)
"""

import base64
import logging
import threading
import time
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Dict, Optional

import numpy as np

from .config import JOB_MAX_WORKERS, JOB_RETENTION_SECONDS, JOB_TIMEOUT_SECONDS
from .detection import PlateDetector
from .exceptions import DecodeError, JobNotFound, RedactionError
from .logger import HistoryLogger
from .models import DetectionResult
from .preprocessing import decode_image
from .redaction import Redactor

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    ERROR = "ERROR"


@dataclass(frozen=True)
class JobOutcome:
    """
    Kết quả của một job
    - Thành công: ảnh JPEG đã che, thông tin biển số (nếu có), thời gian xử lý
    - Thất bại: thông báo lỗi
    """

    redacted_image: Optional[bytes] = None
    detection: Optional[DetectionResult] = None
    processing_ms: Optional[int] = None
    error_message: Optional[str] = None

    @property
    def redacted_image_base64(self) -> Optional[str]:
        if self.redacted_image is None:
            return None
        return base64.b64encode(self.redacted_image).decode('ascii')

    @classmethod
    def failure(cls, message: str) -> "JobOutcome":
        return cls(error_message=message)


@dataclass(frozen=True)
class Job:
    id: str
    status: JobStatus
    created_at: float
    outcome: Optional[JobOutcome] = None

    @property
    def is_terminal(self) -> bool:
        return self.status != JobStatus.PROCESSING

    def to_dict(self) -> Dict[str, Any]:
        """
        Dữ liệu trả về cho tầng transport (bỏ các trường None)
        """
        data: Dict[str, Any] = {'process_id': self.id, 'status': self.status.value}
        outcome = self.outcome
        if outcome is None:
            return data

        detection = outcome.detection
        if detection is not None and detection.found:
            data['license_plate'] = detection.plate_text
            data['plate_format'] = detection.format.value if detection.format else None
            data['coordinates'] = detection.region.to_dict() if detection.region else None
        data['processed_image_base64'] = outcome.redacted_image_base64
        data['message'] = outcome.error_message
        data['processing_time_ms'] = outcome.processing_ms
        return {key: value for key, value in data.items() if value is not None}


class JobRegistry:
    """
    Kho job dùng chung giữa các thread

    Job là bản ghi bất biến, mỗi lần cập nhật thay cả bản ghi dưới lock nên
    bên đọc chỉ thấy trạng thái cũ hoặc trạng thái cuối đã ghi đầy đủ.
    """

    def __init__(self):
        self._jobs: Dict[str, Job] = {}
        self._lock = threading.Lock()

    def create(self, job: Job) -> None:
        with self._lock:
            if job.id in self._jobs:
                raise ValueError(f"Job id đã tồn tại: {job.id}")
            self._jobs[job.id] = job

    def get(self, job_id: str) -> Optional[Job]:
        with self._lock:
            return self._jobs.get(job_id)

    def complete(self, job_id: str, status: JobStatus, outcome: JobOutcome) -> bool:
        """
        Chuyển job sang trạng thái cuối (chỉ một lần)

        Returns:
            False nếu job đã bị xóa trước đó

        Raises:
            ValueError: trạng thái không phải trạng thái cuối, hoặc job đã kết thúc
        """
        if status == JobStatus.PROCESSING:
            raise ValueError("Trạng thái cuối phải là COMPLETED hoặc ERROR")
        with self._lock:
            current = self._jobs.get(job_id)
            if current is None:
                return False
            if current.is_terminal:
                raise ValueError(f"Job {job_id} đã kết thúc với trạng thái {current.status.value}")
            self._jobs[job_id] = replace(current, status=status, outcome=outcome)
            return True

    def remove(self, job_id: str) -> Optional[Job]:
        with self._lock:
            return self._jobs.pop(job_id, None)

    def size(self) -> int:
        with self._lock:
            return len(self._jobs)

    def purge_expired(self, max_age: float, now: float) -> int:
        """Xóa các job đã kết thúc và cũ hơn max_age giây"""
        with self._lock:
            expired = [job_id for job_id, job in self._jobs.items()
                       if job.is_terminal and now - job.created_at > max_age]
            for job_id in expired:
                del self._jobs[job_id]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._jobs.clear()


class JobCoordinator:
    """
    Điều phối job: submit / status / clear / cache_size

    Mỗi job chạy pipeline trên một worker của ThreadPoolExecutor:
    giải mã -> phát hiện biển số -> che + nén (hoặc chỉ nén) -> lưu kết quả
    """

    def __init__(self, detector: PlateDetector, redactor: Optional[Redactor] = None,
                 registry: Optional[JobRegistry] = None, max_workers: int = JOB_MAX_WORKERS,
                 timeout_seconds: float = JOB_TIMEOUT_SECONDS,
                 artifact_store: Optional[HistoryLogger] = None,
                 clock: Callable[[], float] = time.monotonic):
        """
        Args:
            detector: Bộ phát hiện biển số
            redactor: Bộ che biển số (mặc định Redactor())
            registry: Kho job (mặc định tạo mới)
            max_workers: Số worker của thread pool
            timeout_seconds: Ngân sách thời gian (mềm) trước khi chạy nhận diện
            artifact_store: Nơi lưu ảnh gốc / ảnh đã xử lý (tùy chọn)
            clock: Hàm lấy thời gian hiện tại (giây)
        """
        self.detector = detector
        self.redactor = redactor or Redactor()
        self.registry = registry if registry is not None else JobRegistry()
        self.timeout_seconds = timeout_seconds
        self.artifact_store = artifact_store
        self.clock = clock
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="plate-job")
        self._futures: Dict[str, Future] = {}
        self._futures_lock = threading.Lock()

    # --- API cho tầng transport ---

    def submit(self, image_bytes: bytes) -> str:
        """
        Tạo job mới (PROCESSING), đưa pipeline vào thread pool và trả về id ngay

        Raises:
            DecodeError: dữ liệu rỗng (job không được tạo)
        """
        if not image_bytes:
            raise DecodeError("Dữ liệu ảnh rỗng")

        job_id = uuid.uuid4().hex
        self.registry.create(Job(job_id, JobStatus.PROCESSING, self.clock()))
        try:
            future = self._executor.submit(self._run_pipeline, job_id, image_bytes)
        except RuntimeError:
            # Executor đã shutdown: không để lại job PROCESSING mồ côi
            self.registry.remove(job_id)
            raise

        with self._futures_lock:
            self._futures[job_id] = future
        future.add_done_callback(lambda _f, jid=job_id: self._forget_future(jid))
        logger.info("Job %s: bắt đầu xử lý (%d bytes)", job_id, len(image_bytes))
        return job_id

    def status(self, job_id: str) -> Job:
        job = self.registry.get(job_id)
        if job is None:
            raise JobNotFound(job_id)
        return job

    def clear(self, job_id: str) -> None:
        if self.registry.remove(job_id) is not None:
            logger.info("Job %s: đã xóa kết quả", job_id)

    def cache_size(self) -> int:
        return self.registry.size()

    def wait(self, job_id: str, timeout: Optional[float] = None) -> Job:
        """
        Chờ pipeline của job chạy xong rồi trả về trạng thái

        Raises:
            JobNotFound: id không tồn tại
            concurrent.futures.TimeoutError: quá thời gian chờ
        """
        with self._futures_lock:
            future = self._futures.get(job_id)
        if future is not None:
            future.result(timeout=timeout)
        return self.status(job_id)

    def purge_expired(self, max_age: float = JOB_RETENTION_SECONDS) -> int:
        removed = self.registry.purge_expired(max_age, self.clock())
        if removed:
            logger.info("Đã dọn %d job hết hạn", removed)
        return removed

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown(wait=True)
        return False

    # --- PIPELINE ---

    def _forget_future(self, job_id: str) -> None:
        with self._futures_lock:
            self._futures.pop(job_id, None)

    def _run_pipeline(self, job_id: str, image_bytes: bytes) -> None:
        started = time.perf_counter()
        try:
            outcome = self._process(job_id, image_bytes, started)
            status = JobStatus.COMPLETED
        except (DecodeError, RedactionError) as e:
            logger.warning("✗ Job %s thất bại: %s", job_id, e)
            outcome, status = JobOutcome.failure(str(e)), JobStatus.ERROR
        except Exception as e:
            logger.exception("✗ Job %s: lỗi không mong đợi", job_id)
            outcome, status = JobOutcome.failure(f"Lỗi nội bộ: {e}"), JobStatus.ERROR

        self._finish(job_id, status, outcome)

    def _process(self, job_id: str, image_bytes: bytes, started: float) -> JobOutcome:
        self._save_artifact(self.artifact_store and self.artifact_store.save_original, job_id, image_bytes)

        image = decode_image(image_bytes)
        detection = self._detect(job_id, image)

        if detection.found:
            output, _ = self.redactor.redact_and_compress(image, detection.region)
        else:
            output = self.redactor.compress(image)

        processing_ms = int((time.perf_counter() - started) * 1000)
        self._save_artifact(self.artifact_store and self.artifact_store.save_processed,
                            job_id, output, detection.plate_text)
        return JobOutcome(
            redacted_image=output,
            detection=detection if detection.found else None,
            processing_ms=processing_ms,
        )

    def _detect(self, job_id: str, image: np.ndarray) -> DetectionResult:
        """
        Chạy nhận diện, trừ khi job đã vượt ngân sách thời gian
        Lỗi nhận diện không làm hỏng job: coi như không tìm thấy biển số
        """
        job = self.registry.get(job_id)
        if job is not None:
            elapsed = self.clock() - job.created_at
            if elapsed > self.timeout_seconds:
                logger.warning("⚠ Job %s: đã quá %.1fs (%.1fs), bỏ qua nhận diện",
                               job_id, self.timeout_seconds, elapsed)
                return DetectionResult.not_found()

        try:
            return self.detector.detect_image(image)
        except Exception:
            logger.warning("⚠ Job %s: lỗi nhận diện, chỉ nén ảnh", job_id, exc_info=True)
            return DetectionResult.not_found()

    @staticmethod
    def _save_artifact(save, job_id, *args):
        if not save:
            return None
        try:
            return save(job_id, *args)
        except Exception:
            logger.warning("⚠ Job %s: không lưu được ảnh", job_id, exc_info=True)
            return None

    def _finish(self, job_id: str, status: JobStatus, outcome: JobOutcome) -> None:
        try:
            stored = self.registry.complete(job_id, status, outcome)
        except ValueError as e:
            logger.error("✗ %s", e)
            return

        if not stored:
            logger.info("Job %s đã bị xóa trước khi xử lý xong, bỏ kết quả", job_id)
        elif status == JobStatus.COMPLETED:
            plate = outcome.detection.plate_text if outcome.detection else None
            logger.info("✓ Job %s hoàn tất: %s (%s ms)", job_id, plate or "không có biển số",
                        outcome.processing_ms)
