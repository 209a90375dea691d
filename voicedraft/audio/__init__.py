"""Audio capture and encoding module."""

from .capture import AudioCapture
from .devices import InputDevice, InputStream, PyAudioInputDevice
from . import encoder

__all__ = [
    'AudioCapture',
    'InputDevice',
    'InputStream',
    'PyAudioInputDevice',
    'encoder',
]
