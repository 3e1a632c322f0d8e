"""
Daily Doodles Backend — Audio Encoding
========================================

What:  Turns raw microphone frames into the chunks the Live API accepts.
How:   32-bit float samples in [-1.0, 1.0] → 16-bit signed little-endian PCM
       → base64 text, tagged `audio/pcm;rate=16000`.
Who:   VoiceCapture encodes every frame with encode_audio_chunk() before
       pushing it into the transcription session.
"""

import base64
import math
import sys
from array import array
from typing import Iterable

from pydantic import BaseModel

PCM_SAMPLE_RATE = 16000
PCM_MIME_TYPE = f"audio/pcm;rate={PCM_SAMPLE_RATE}"

_INT16_MIN = -32768
_INT16_MAX = 32767


class AudioChunk(BaseModel):
    """One realtime input chunk: base64 PCM plus its MIME type."""
    data: str
    mime_type: str = PCM_MIME_TYPE

    def pcm_bytes(self) -> bytes:
        return base64.b64decode(self.data)


def float_to_pcm16(samples: Iterable[float]) -> bytes:
    """
    Convert float samples to 16-bit signed PCM, little-endian.

    Samples are scaled by 32768 and clamped to the int16 range, so a full
    scale +1.0 becomes 32767 instead of wrapping round to -32768. NaN is
    written as silence and infinities clamp to full scale.
    """
    pcm = array("h")
    for sample in samples:
        if math.isnan(sample):
            value = 0
        elif math.isinf(sample):
            value = _INT16_MAX if sample > 0 else _INT16_MIN
        else:
            value = int(sample * 32768)
        if value > _INT16_MAX:
            value = _INT16_MAX
        elif value < _INT16_MIN:
            value = _INT16_MIN
        pcm.append(value)

    if sys.byteorder == "big":
        pcm.byteswap()
    return pcm.tobytes()


def decode_float32_frame(payload: bytes) -> array:
    """Read a little-endian float32 frame as sent by the browser."""
    if len(payload) % 4:
        raise ValueError(f"Float32 frame length must be a multiple of 4, got {len(payload)}")
    frame = array("f")
    frame.frombytes(payload)
    if sys.byteorder == "big":
        frame.byteswap()
    return frame


def encode_audio_chunk(samples: Iterable[float]) -> AudioChunk:
    """Encode one frame of float samples as a base64 PCM chunk."""
    return AudioChunk(data=base64.b64encode(float_to_pcm16(samples)).decode("ascii"))
