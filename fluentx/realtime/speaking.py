"""
Local speaking detection.

FrequencyAnalyser reproduces the byte spectrum of a Web Audio AnalyserNode
(Blackman window, smoothed magnitude, dB scaled into 0..255). The detector
flags speech when the mean bin value exceeds a fixed threshold.
"""

import asyncio
import logging
from typing import Callable, Optional

import av
import numpy as np
from aiortc.mediastreams import MediaStreamError, MediaStreamTrack

logger = logging.getLogger(__name__)


def blackman_window(size: int) -> np.ndarray:
    """Blackman window with alpha 0.16, periodic form (denominator N)."""
    alpha = 0.16
    a0 = (1 - alpha) / 2
    a1 = 0.5
    a2 = alpha / 2
    n = np.arange(size)
    return a0 - a1 * np.cos(2 * np.pi * n / size) + a2 * np.cos(4 * np.pi * n / size)


class FrequencyAnalyser:
    def __init__(
        self,
        fft_size: int = 512,
        smoothing: float = 0.8,
        min_db: float = -100.0,
        max_db: float = -30.0,
    ):
        if fft_size < 32 or fft_size & (fft_size - 1):
            raise ValueError("fft_size must be a power of two >= 32")
        self.fft_size = fft_size
        self.smoothing = smoothing
        self.min_db = min_db
        self.max_db = max_db
        self._window = blackman_window(fft_size)
        self._buffer = np.zeros(fft_size, dtype=np.float32)
        self._smoothed = np.zeros(fft_size // 2, dtype=np.float64)

    @property
    def frequency_bin_count(self) -> int:
        return self.fft_size // 2

    def reset(self) -> None:
        self._buffer[:] = 0
        self._smoothed[:] = 0

    def push(self, samples: np.ndarray) -> None:
        """Append mono samples to the rolling time-domain buffer."""
        samples = np.asarray(samples, dtype=np.float32).ravel()
        if samples.size >= self.fft_size:
            self._buffer[:] = samples[-self.fft_size:]
        elif samples.size:
            self._buffer = np.roll(self._buffer, -samples.size)
            self._buffer[-samples.size:] = samples

    def byte_frequency_data(self, samples: Optional[np.ndarray] = None) -> np.ndarray:
        if samples is not None:
            self.push(samples)
        spectrum = np.fft.rfft(self._buffer * self._window)[: self.frequency_bin_count]
        magnitude = np.abs(spectrum) / self.fft_size
        self._smoothed = self.smoothing * self._smoothed + (1 - self.smoothing) * magnitude
        with np.errstate(divide="ignore"):
            db = 20 * np.log10(self._smoothed)
        scaled = (db - self.min_db) * (255.0 / (self.max_db - self.min_db))
        return np.clip(np.nan_to_num(scaled, neginf=0.0), 0, 255).astype(np.uint8)


def frame_to_mono(frame: av.AudioFrame) -> np.ndarray:
    """Decode a PCM frame to float32 mono samples in [-1, 1]."""
    data = frame.to_ndarray()
    if np.issubdtype(data.dtype, np.integer):
        data = data.astype(np.float32) / float(np.iinfo(data.dtype).max + 1)
    else:
        data = data.astype(np.float32)
    channels = len(frame.layout.channels)
    if frame.format.is_planar:
        return data.mean(axis=0)
    return data.reshape(-1, channels).mean(axis=1)


class SpeakingDetector:
    """
    Turns a local audio track into a speaking on/off flag.

    No hysteresis: the flag follows the threshold on every frame.
    """

    def __init__(
        self,
        threshold: float = 40.0,
        fft_size: int = 512,
        on_change: Optional[Callable[[bool], None]] = None,
    ):
        self.threshold = threshold
        self.analyser = FrequencyAnalyser(fft_size=fft_size)
        self.on_change = on_change
        self.speaking = False
        self.level = 0.0
        self._stopped = asyncio.Event()

    def process(self, samples: np.ndarray) -> bool:
        data = self.analyser.byte_frequency_data(samples)
        self.level = float(data.mean())
        speaking = self.level > self.threshold
        if speaking != self.speaking:
            self.speaking = speaking
            if self.on_change is not None:
                self.on_change(speaking)
        return speaking

    async def run(self, track: MediaStreamTrack) -> None:
        """Analyse frames from `track` until it ends or stop() is called."""
        self._stopped.clear()
        while not self._stopped.is_set():
            try:
                frame = await track.recv()
            except MediaStreamError:
                break
            self.process(frame_to_mono(frame))
        logger.debug("Speaking detection finished")
        self._reset()

    def stop(self) -> None:
        self._stopped.set()

    def _reset(self) -> None:
        self.analyser.reset()
        self.level = 0.0
        if self.speaking:
            self.speaking = False
            if self.on_change is not None:
                self.on_change(False)
