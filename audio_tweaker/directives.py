from __future__ import annotations

from typing import List

PITCH_BASE_RATE = 44100


def fmt(value: float) -> str:
    """Render a number for a filter argument: integral values lose the ``.0``."""
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return repr(number)


def rate_shift_directives(ratio: float) -> List[str]:
    """Resample-by-rate trick: shifts pitch and speed together by ``ratio``."""
    return [f"asetrate={PITCH_BASE_RATE}*{fmt(ratio)}", f"aresample={PITCH_BASE_RATE}"]


def pan_directive(position: float) -> str:
    """Stereo pan as a per-channel mix matrix.

    Negative positions fold the right channel into the left output, positive
    positions fold the left channel into the right output.
    """
    left_keep = 1 - abs(min(0.0, position))
    left_from_right = max(0.0, -position)
    right_keep = 1 - abs(max(0.0, position))
    right_from_left = max(0.0, position)
    return (
        f"pan=stereo|c0={fmt(left_keep)}*c0+{fmt(left_from_right)}*c1"
        f"|c1={fmt(right_keep)}*c1+{fmt(right_from_left)}*c0"
    )
