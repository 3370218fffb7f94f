from __future__ import annotations

import random
from typing import List, Optional, Tuple

from audio_tweaker.models import (
    AdvancedOperation,
    OperationSet,
    PitchOperation,
    SpectralOperation,
    TempoOperation,
    VariationOperation,
    VolumeOperation,
)

LCG_MULTIPLIER = 1664525
LCG_INCREMENT = 1013904223
LCG_MODULUS = 0x100000000
MAX_RANDOM_SEED = 1_000_000
TEMPO_SPREAD = 0.2


class SeededRandom:
    """Linear congruential generator; the whole stream is fixed by the seed."""

    def __init__(self, seed: int) -> None:
        self.seed = int(seed)
        self.state = self.seed % LCG_MODULUS

    def next(self) -> float:
        self.state = (self.state * LCG_MULTIPLIER + LCG_INCREMENT) % LCG_MODULUS
        return self.state / LCG_MODULUS

    def spread(self, amount: float) -> float:
        return (self.next() - 0.5) * 2 * amount


def resolve_seed(seed: Optional[int]) -> int:
    if seed is not None:
        return int(seed)
    return random.randrange(MAX_RANDOM_SEED)


def random_variation(params: VariationOperation, rng: SeededRandom) -> Tuple[AdvancedOperation, Optional[float]]:
    """Draw one variation; returns the advanced block and an optional gain in dB.

    Draw order per variation is pitch, bass, treble, tempo, volume.
    """
    pitch = None
    spectral = None
    tempo = None
    gain = None
    if params.pitch_range:
        pitch = PitchOperation(semitones=rng.spread(params.pitch_range))
    if params.spectral_range:
        bass = rng.spread(params.spectral_range)
        treble = rng.spread(params.spectral_range)
        spectral = SpectralOperation(bass_boost=bass, treble_boost=treble)
    if params.timing_range:
        tempo = TempoOperation(factor=1 + (rng.next() - 0.5) * TEMPO_SPREAD, preserve_pitch=True)
    if params.volume_range:
        gain = rng.spread(params.volume_range)
    return AdvancedOperation(pitch=pitch, spectral=spectral, tempo=tempo), gain


def _merge(base: Optional[OperationSet], advanced: AdvancedOperation, gain: Optional[float]) -> OperationSet:
    base = base or OperationSet()
    drawn = advanced.model_dump(exclude_none=True)
    base_advanced = base.advanced.model_dump(exclude_none=True) if base.advanced else {}
    merged = {**base_advanced, **drawn}
    merged_advanced = AdvancedOperation.model_validate(merged) if merged else None

    volume = base.volume
    if gain is not None:
        volume_fields = volume.model_dump(exclude_none=True) if volume else {}
        volume_fields["adjust_db"] = gain
        volume = VolumeOperation.model_validate(volume_fields)
    return base.model_copy(update={"advanced": merged_advanced, "volume": volume})


def generate_variations(
    params: VariationOperation,
    base: Optional[OperationSet] = None,
) -> Tuple[int, List[OperationSet]]:
    """Return the seed used and ``params.count`` perturbed operation sets."""
    seed = resolve_seed(params.seed)
    rng = SeededRandom(seed)
    variations: List[OperationSet] = []
    for _ in range(params.count):
        advanced, gain = random_variation(params, rng)
        variations.append(_merge(base, advanced, gain))
    return seed, variations
