"""Input device capability used by AudioCapture.

The capture controller only needs two things from the platform: the
default input format and a stream that delivers raw frames to a
callback. Tests substitute their own implementation; production uses
PyAudio.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

import pyaudio

from ..exceptions import DeviceError
from ..models.audio import InputFormat, SampleFormat

logger = logging.getLogger(__name__)

FrameCallback = Callable[[bytes], None]


class InputStream(ABC):
    """A running (or startable) hardware input stream."""

    @abstractmethod
    def start(self) -> None:
        pass

    @abstractmethod
    def stop(self) -> None:
        pass

    @abstractmethod
    def close(self) -> None:
        pass


class InputDevice(ABC):
    """Default microphone of the host."""

    @abstractmethod
    def default_input_format(self) -> InputFormat:
        """Return the format the device delivers by default.

        Raises:
            DeviceError: If no input device is available
        """
        pass

    @abstractmethod
    def open_stream(self, input_format: InputFormat, on_frames: FrameCallback) -> InputStream:
        """Open (but do not start) a stream delivering raw frames to on_frames."""
        pass


_PYAUDIO_FORMATS = {
    pyaudio.paFloat32: SampleFormat.FLOAT32,
    pyaudio.paInt16: SampleFormat.INT16,
    pyaudio.paInt24: SampleFormat.INT24,
    pyaudio.paInt32: SampleFormat.INT32,
    pyaudio.paUInt8: SampleFormat.UINT8,
}


class _PyAudioStream(InputStream):

    def __init__(self, pyaudio_instance: pyaudio.PyAudio, stream):
        self.pyaudio_instance = pyaudio_instance
        self.stream = stream

    def start(self) -> None:
        self.stream.start_stream()

    def stop(self) -> None:
        self.stream.stop_stream()

    def close(self) -> None:
        try:
            self.stream.close()
        finally:
            self.pyaudio_instance.terminate()


class PyAudioInputDevice(InputDevice):
    """Default host input device opened through PyAudio."""

    def __init__(self, format: int = pyaudio.paFloat32, channels: int = 1,
                 frames_per_buffer: int = 1024):
        """Initialize device wrapper.

        Args:
            format: PyAudio sample format requested from the device
            channels: Preferred channel count (capped by the device)
            frames_per_buffer: Frames delivered per hardware callback
        """
        self.format = format
        self.channels = channels
        self.frames_per_buffer = frames_per_buffer

    def default_input_format(self) -> InputFormat:
        pyaudio_instance = pyaudio.PyAudio()
        try:
            info = pyaudio_instance.get_default_input_device_info()
        except (IOError, OSError) as e:
            raise DeviceError(f"No input device available: {e}") from e
        finally:
            pyaudio_instance.terminate()

        max_channels = int(info.get('maxInputChannels', 0))
        if max_channels <= 0:
            raise DeviceError(f"Default device '{info.get('name')}' has no input channels")

        sample_format = _PYAUDIO_FORMATS.get(self.format)
        if sample_format is None:
            raise DeviceError(f"Unknown PyAudio format constant: {self.format}")

        input_format = InputFormat(
            sample_rate=int(info['defaultSampleRate']),
            channels=min(self.channels, max_channels),
            sample_format=sample_format,
        )
        logger.info(f"Default input device '{info.get('name')}': "
                    f"{input_format.sample_rate}Hz, {input_format.channels}ch, "
                    f"{input_format.sample_format.value}")
        return input_format

    def open_stream(self, input_format: InputFormat, on_frames: FrameCallback) -> InputStream:
        def _callback(in_data: Optional[bytes], frame_count, time_info, status):
            if status:
                logger.debug(f"Input stream status flags: {status}")
            if in_data:
                on_frames(in_data)
            return (None, pyaudio.paContinue)

        pyaudio_instance = pyaudio.PyAudio()
        try:
            stream = pyaudio_instance.open(
                format=self.format,
                channels=input_format.channels,
                rate=input_format.sample_rate,
                input=True,
                frames_per_buffer=self.frames_per_buffer,
                stream_callback=_callback,
                start=False,
            )
        except (IOError, OSError) as e:
            pyaudio_instance.terminate()
            raise DeviceError(f"Failed to build stream: {e}") from e

        logger.info(f"Audio stream opened: {input_format.sample_rate}Hz, "
                    f"{self.frames_per_buffer} samples/chunk")
        return _PyAudioStream(pyaudio_instance, stream)
