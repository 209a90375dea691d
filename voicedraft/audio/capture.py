"""Microphone capture with a dedicated worker thread and a shared sample buffer."""

import time
import queue
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from threading import Thread
from typing import List, Optional

import numpy as np

from .devices import InputDevice, InputStream, PyAudioInputDevice
from .encoder import quantize
from ..exceptions import DeviceError, StateError, ThreadTimeoutError, UnsupportedFormatError
from ..models.audio import AudioStats, InputFormat, RecordingResult, SampleFormat

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = (SampleFormat.FLOAT32, SampleFormat.INT16)

# Held by whichever AudioCapture owns the process-wide recording session.
_active_session_lock = threading.Lock()


@dataclass
class RecordingSession:
    """State of one active recording."""
    input_format: InputFormat
    stop_queue: "queue.Queue[None]" = field(default_factory=lambda: queue.Queue(maxsize=1))
    buffer: List[np.ndarray] = field(default_factory=list)
    lock: threading.Lock = field(default_factory=threading.Lock)
    worker: Optional[Thread] = None
    started_at: datetime = field(default_factory=datetime.now)
    total_callbacks: int = 0

    @property
    def sample_rate(self) -> int:
        return self.input_format.sample_rate

    @property
    def channels(self) -> int:
        return self.input_format.channels


class AudioCapture:
    """Idle/Recording state machine around the default input device."""

    READY_TIMEOUT_SECONDS = 5.0
    STOP_GRACE_SECONDS = 0.1
    WORKER_JOIN_SECONDS = 2.0

    def __init__(self, device: Optional[InputDevice] = None):
        """Initialize audio capture.

        Args:
            device: Input device capability; defaults to the PyAudio host device
        """
        self.device = device or PyAudioInputDevice()
        self._session: Optional[RecordingSession] = None
        self._state_lock = threading.Lock()

    @property
    def is_recording(self) -> bool:
        return self._session is not None

    def start(self) -> None:
        """Start recording from the default input device.

        Raises:
            StateError: If this or another controller is already recording
            UnsupportedFormatError: If the device format is neither f32 nor i16
            ThreadTimeoutError: If the worker is not ready within 5 seconds
            DeviceError: If the device stream cannot be started
        """
        with self._state_lock:
            if self._session is not None:
                raise StateError("Already recording")
            if not _active_session_lock.acquire(blocking=False):
                raise StateError("Another recording session is already active")
            try:
                self._session = self._start_session()
            except BaseException:
                _active_session_lock.release()
                raise

        logger.info(f"Recording started: {self._session.sample_rate}Hz, "
                    f"{self._session.channels}ch")

    def _start_session(self) -> RecordingSession:
        input_format = self.device.default_input_format()
        if input_format.sample_format not in SUPPORTED_FORMATS:
            raise UnsupportedFormatError(
                f"Unsupported sample format: {input_format.sample_format.value}")

        session = RecordingSession(input_format=input_format)
        ready_queue: "queue.Queue[Optional[str]]" = queue.Queue(maxsize=1)

        session.worker = Thread(target=self._record_until_stopped,
                                args=(session, ready_queue), daemon=True)
        session.worker.name = "AudioCaptureThread"
        session.worker.start()

        try:
            error = ready_queue.get(timeout=self.READY_TIMEOUT_SECONDS)
        except queue.Empty:
            # Lets the worker exit if the device ever comes up.
            session.stop_queue.put_nowait(None)
            raise ThreadTimeoutError("Recording thread timed out")

        if error is not None:
            raise DeviceError(error)
        return session

    def _record_until_stopped(self, session: RecordingSession,
                              ready_queue: "queue.Queue[Optional[str]]") -> None:
        """Internal method: worker thread owning the device stream."""
        stream: Optional[InputStream] = None
        try:
            stream = self.device.open_stream(
                session.input_format, lambda data: self._on_frames(session, data))
            stream.start()
        except Exception as e:
            logger.error(f"Failed to start input stream: {e}")
            if stream is not None:
                stream.close()
            ready_queue.put(f"Failed to start stream: {e}")
            return

        ready_queue.put(None)
        try:
            session.stop_queue.get()
        finally:
            stream.stop()
            stream.close()
            logger.debug("Input stream closed")

    def _on_frames(self, session: RecordingSession, data: bytes) -> None:
        if session.input_format.sample_format == SampleFormat.FLOAT32:
            samples = np.frombuffer(data, dtype='<f4').copy()
        else:
            samples = np.frombuffer(data, dtype='<i2').astype(np.float32) / 32768.0

        with session.lock:
            session.buffer.append(samples)
            session.total_callbacks += 1

    def stop(self) -> RecordingResult:
        """Stop recording and return the captured audio as 16-bit PCM.

        Raises:
            StateError: If no recording is in progress
        """
        with self._state_lock:
            session = self._session
            if session is None:
                raise StateError("Not recording")
            self._session = None

            try:
                session.stop_queue.put_nowait(None)
                # Hardware teardown grace period
                time.sleep(self.STOP_GRACE_SECONDS)

                with session.lock:
                    chunks = session.buffer
                    session.buffer = []
            finally:
                _active_session_lock.release()

        if session.worker is not None:
            session.worker.join(timeout=self.WORKER_JOIN_SECONDS)
            if session.worker.is_alive():
                logger.warning("Recording thread did not stop cleanly")

        samples = np.concatenate(chunks) if chunks else np.zeros(0, dtype=np.float32)
        audio_data = quantize(samples).tobytes()

        sample_rate = session.sample_rate
        channels = session.channels
        duration_ms = 0
        if sample_rate > 0 and channels > 0:
            duration_ms = (len(samples) * 1000) // (sample_rate * channels)

        logger.info(f"Recording stopped. {len(samples)} samples, {duration_ms}ms, "
                    f"{session.total_callbacks} callbacks")
        return RecordingResult(
            audio_data=audio_data,
            sample_rate=sample_rate,
            channels=channels,
            duration_ms=duration_ms,
        )

    def get_recording_stats(self) -> AudioStats:
        """Get current recording statistics."""
        session = self._session
        if session is None:
            return AudioStats(
                is_recording=False,
                duration_seconds=0.0,
                buffered_samples=0,
                sample_rate=0,
                channels=0,
                total_callbacks=0,
            )

        with session.lock:
            buffered = sum(len(chunk) for chunk in session.buffer)
            callbacks = session.total_callbacks
        return AudioStats(
            is_recording=True,
            duration_seconds=(datetime.now() - session.started_at).total_seconds(),
            buffered_samples=buffered,
            sample_rate=session.sample_rate,
            channels=session.channels,
            total_callbacks=callbacks,
        )

    def __del__(self):
        """Ensure the device and the session claim are released on deletion."""
        if getattr(self, "_session", None) is not None:
            self.stop()
