from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Sequence

from audio_tweaker.directives import fmt, pan_directive, rate_shift_directives
from audio_tweaker.models import (
    AdvancedOperation,
    HarmonicsOperation,
    LayerSpec,
    LayeringOperation,
    OperationSet,
)

log = logging.getLogger("audio_tweaker.layering")

DROPOUT_TRANSITION_S = 2


def layer_chain(layer: LayerSpec) -> List[str]:
    """Per-layer directives, in order: delay, pitch, volume, pan."""
    steps: List[str] = []
    if layer.delay_ms:
        delay = fmt(layer.delay_ms)
        steps.append(f"adelay={delay}|{delay}")
    if layer.pitch_semitones:
        steps.extend(rate_shift_directives(math.pow(2, layer.pitch_semitones / 12)))
    if layer.volume is not None:
        steps.append(f"volume={fmt(layer.volume)}")
    if layer.pan is not None:
        steps.append(pan_directive(layer.pan))
    return steps


def build_layering_graph(
    input_count: int,
    layers: Sequence[LayerSpec],
    output_label: str = "final",
) -> str:
    """Build a ``-filter_complex`` graph mixing one processed stream per layer.

    Layer ``i`` reads input ``i``. Layers without a matching input are dropped.
    """
    if input_count < 1:
        raise ValueError("no_inputs: Layering needs at least one input.")
    usable = list(layers)[:input_count]
    if len(usable) < len(layers):
        log.warning(
            "Ignoring %d layer(s) beyond the %d available input(s)",
            len(layers) - len(usable),
            input_count,
        )
    if not usable:
        raise ValueError("no_layers: Layering needs at least one layer.")

    segments: List[str] = []
    for index, layer in enumerate(usable):
        chain = layer_chain(layer) or ["anull"]
        segments.append(f"[{index}:a]{','.join(chain)}[processed{index}]")

    mix_inputs = "".join(f"[processed{index}]" for index in range(len(usable)))
    segments.append(
        f"{mix_inputs}amix=inputs={len(usable)}:duration=longest"
        f":dropout_transition={DROPOUT_TRANSITION_S}[{output_label}]"
    )
    return ";".join(segments)


# ---------------------------------------------------------------------------
# Harmonic intervals
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class HarmonicInterval:
    name: str
    semitones: int
    mix: float

    def operations(self) -> OperationSet:
        """Original at ``1 - mix`` layered against the shifted copy at ``mix``."""
        layering = LayeringOperation(
            layers=[
                LayerSpec(blend="mix", volume=1 - self.mix),
                LayerSpec(blend="add", volume=self.mix, pitch_semitones=self.semitones),
            ]
        )
        return OperationSet(advanced=AdvancedOperation(layering=layering))


def harmonic_intervals(harmonics: HarmonicsOperation) -> List[HarmonicInterval]:
    candidates = [
        ("octave_up", 12, harmonics.octave_up),
        ("octave_down", -12, harmonics.octave_down),
        ("fifth_up", 7, harmonics.fifth_up),
        ("third_up", 4, harmonics.third_up),
    ]
    return [
        HarmonicInterval(name=name, semitones=semitones, mix=float(mix))
        for name, semitones, mix in candidates
        if mix is not None and mix > 0
    ]
