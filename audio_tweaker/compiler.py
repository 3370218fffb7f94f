from __future__ import annotations

"""
Operation compiler
==================

Turns a validated ``OperationSet`` into a ``CommandPlan``: the ordered list
of ffmpeg audio filter directives plus the command-level settings (sample
rate, channels, codec, bitrate, seek, duration).

Two strategies share one interface:

    BaseCompiler      volume -> format -> effects
    AdvancedCompiler  base filters, then pitch -> tempo -> spectral ->
                      dynamics -> spatial -> modulation, and a multi-input
                      graph when the set carries ``advanced.layering``

Compilation is pure. Values are trusted: range checks happen at the
pydantic boundary, and a field that is absent never produces a directive.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional

from audio_tweaker.directives import fmt, pan_directive, rate_shift_directives
from audio_tweaker.layering import build_layering_graph
from audio_tweaker.models import (
    AdvancedOperation,
    DynamicsOperation,
    ModulationOperation,
    OperationSet,
    PitchOperation,
    SpatialOperation,
    SpectralOperation,
    TempoOperation,
)

log = logging.getLogger("audio_tweaker.compiler")

DEFAULT_TARGET_LUFS = -23.0
LOUDNORM_LRA = 7
LOUDNORM_TRUE_PEAK = -2
LOOP_BUFFER_SAMPLES = "2e+09"
FADE_OUT_LENGTH_S = 1

CODEC_MAP = {
    "pcm": "pcm_s16le",
    "mp3": "libmp3lame",
    "aac": "aac",
    "vorbis": "libvorbis",
    "flac": "flac",
}

MIXDOWN_LABEL = "mixed"
FINAL_LABEL = "final"


@dataclass(frozen=True)
class CommandPlan:
    filters: List[str] = field(default_factory=list)
    sample_rate: Optional[int] = None
    channels: Optional[int] = None
    codec: Optional[str] = None
    bitrate: Optional[str] = None
    seek: Optional[float] = None
    duration: Optional[float] = None
    graph: Optional[str] = None
    graph_output: Optional[str] = None

    @property
    def filter_chain(self) -> str:
        return ",".join(self.filters)


# ---------------------------------------------------------------------------
# Directive builders
# ---------------------------------------------------------------------------
def pitch_ratio(semitones: float, cents: Optional[float] = None) -> float:
    total_cents = semitones * 100 + (cents or 0)
    return math.pow(2, total_cents / 1200)


def build_pitch_directives(pitch: PitchOperation) -> List[str]:
    ratio = pitch_ratio(pitch.semitones, pitch.cents)
    directives = rate_shift_directives(ratio)
    if pitch.preserve_formants:
        directives.append(f"atempo={fmt(1 / ratio)}")
    return directives


def build_tempo_directives(tempo: TempoOperation) -> List[str]:
    if tempo.preserve_pitch:
        return [f"atempo={fmt(tempo.factor)}"]
    return rate_shift_directives(tempo.factor)


def build_spectral_directive(spectral: SpectralOperation) -> Optional[str]:
    bands: List[str] = []
    if spectral.bass_boost is not None:
        bands.append(f"bass=g={fmt(spectral.bass_boost)}")
    if spectral.treble_boost is not None:
        bands.append(f"treble=g={fmt(spectral.treble_boost)}")
    if spectral.mid_cut is not None:
        bands.append(f"equalizer=f=1000:width=500:g={fmt(-abs(spectral.mid_cut))}")
    if spectral.warmth is not None:
        bands.append(f"equalizer=f=200:width=100:g={fmt(spectral.warmth * 3)}")
    if spectral.brightness is not None:
        bands.append(f"equalizer=f=8000:width=2000:g={fmt(spectral.brightness * 4)}")
    if not bands:
        return None
    return ",".join(bands)


def build_dynamics_directives(dynamics: DynamicsOperation) -> List[str]:
    directives: List[str] = []
    comp = dynamics.compressor
    if comp is not None:
        directive = (
            f"acompressor=threshold={fmt(comp.threshold)}dB:ratio={fmt(comp.ratio)}"
            f":attack={fmt(comp.attack)}:release={fmt(comp.release)}"
        )
        if comp.knee:
            directive += f":knee={fmt(comp.knee)}"
        directives.append(directive)

    gate = dynamics.gate
    if gate is not None:
        directive = f"agate=threshold={fmt(gate.threshold)}dB:ratio={fmt(gate.ratio)}"
        if gate.attack:
            directive += f":attack={fmt(gate.attack)}"
        if gate.release:
            directive += f":release={fmt(gate.release)}"
        directives.append(directive)

    limiter = dynamics.limiter
    if limiter is not None:
        directive = f"alimiter=limit={fmt(limiter.threshold)}dB"
        if limiter.release:
            directive += f":release={fmt(limiter.release)}"
        directives.append(directive)
    return directives


def build_spatial_directives(spatial: SpatialOperation) -> List[str]:
    directives: List[str] = []
    if spatial.stereo_width is not None:
        directives.append(f"extrastereo=m={fmt(spatial.stereo_width)}")

    if spatial.pan_position is not None:
        directives.append(pan_directive(spatial.pan_position))

    if spatial.delay_time_ms is not None:
        delay = fmt(spatial.delay_time_ms)
        feedback = 0.3 if spatial.delay_feedback is None else spatial.delay_feedback
        directives.append(f"adelay={delay}|{delay}")
        # aecho rejects a zero delay, so a 0 ms tap gets no feedback stage
        if feedback > 0 and spatial.delay_time_ms > 0:
            directives.append(f"aecho=1:1:{delay}:{fmt(feedback)}")

    # a zero send is a dry signal
    if spatial.reverb_send:
        send = spatial.reverb_send
        directives.append(f"aecho=0.8:0.9:{math.floor(send * 1000)}:{fmt(send)}")
    return directives


def build_modulation_directives(modulation: ModulationOperation) -> List[str]:
    directives: List[str] = []
    if modulation.tremolo is not None:
        trem = modulation.tremolo
        directives.append(f"tremolo=f={fmt(trem.rate)}:d={fmt(trem.depth)}")
    if modulation.vibrato is not None:
        vib = modulation.vibrato
        directives.append(f"vibrato=f={fmt(vib.rate)}:d={fmt(vib.depth)}")
    if modulation.chorus is not None:
        chorus = modulation.chorus
        directives.append(
            f"chorus=0.7:0.9:{fmt(chorus.delay_ms)}:0.25:{fmt(chorus.rate)}:{fmt(chorus.depth)}"
        )
    return directives


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------
class BaseCompiler:
    """Compiles ``volume``, ``format`` and ``effects``; ignores ``advanced``."""

    supports_advanced = False

    def compile(self, operations: OperationSet, input_count: int = 1) -> CommandPlan:
        if operations.advanced is not None:
            log.warning("Advanced operations ignored by %s", type(self).__name__)
        settings = self._settings(operations)
        return CommandPlan(filters=self._base_filters(operations), **settings)

    def _base_filters(self, operations: OperationSet) -> List[str]:
        filters: List[str] = []
        volume = operations.volume
        if volume is not None:
            if volume.adjust_db is not None:
                filters.append(f"volume={fmt(volume.adjust_db)}dB")
            if volume.normalize:
                target = DEFAULT_TARGET_LUFS if volume.target_lufs is None else volume.target_lufs
                filters.append(f"loudnorm=I={fmt(target)}:LRA={LOUDNORM_LRA}:tp={LOUDNORM_TRUE_PEAK}")

        effects = operations.effects
        if effects is not None:
            if effects.fade_in_sec is not None:
                filters.append(f"afade=t=in:ss=0:d={fmt(effects.fade_in_sec)}")
            if effects.fade_out_sec is not None:
                # the caller supplies the fade-out start; the fade itself lasts one second
                filters.append(f"afade=t=out:st={fmt(effects.fade_out_sec)}:d={FADE_OUT_LENGTH_S}")
            loop = effects.loop
            if loop is not None and loop.enabled and loop.count > 1:
                filters.append(f"aloop=loop={loop.count - 1}:size={LOOP_BUFFER_SAMPLES}")
        return filters

    def _settings(self, operations: OperationSet) -> dict:
        settings: dict = {}
        fmt_op = operations.format
        if fmt_op is not None:
            if fmt_op.sample_rate:
                settings["sample_rate"] = int(fmt_op.sample_rate)
            if fmt_op.channels:
                settings["channels"] = int(fmt_op.channels)
            if fmt_op.codec:
                settings["codec"] = CODEC_MAP.get(fmt_op.codec, fmt_op.codec)
            if fmt_op.bitrate_kbps:
                settings["bitrate"] = f"{fmt_op.bitrate_kbps}k"

        effects = operations.effects
        if effects is not None and effects.trim is not None:
            trim = effects.trim
            settings["seek"] = trim.start_sec
            if trim.end_sec > trim.start_sec:
                settings["duration"] = trim.end_sec - trim.start_sec
        return settings


class AdvancedCompiler(BaseCompiler):
    """Base compilation plus every ``advanced`` component, in fixed order."""

    supports_advanced = True

    def compile(self, operations: OperationSet, input_count: int = 1) -> CommandPlan:
        settings = self._settings(operations)
        filters = self._base_filters(operations)
        advanced = operations.advanced
        if advanced is not None:
            filters.extend(self.advanced_filters(advanced))

        layering = advanced.layering if advanced is not None else None
        if layering is None:
            return CommandPlan(filters=filters, **settings)

        graph = build_layering_graph(input_count, layering.layers, output_label=MIXDOWN_LABEL)
        if filters:
            graph += f";[{MIXDOWN_LABEL}]{','.join(filters)}[{FINAL_LABEL}]"
            output = FINAL_LABEL
        else:
            output = MIXDOWN_LABEL
        return CommandPlan(filters=filters, graph=graph, graph_output=output, **settings)

    def advanced_filters(self, advanced: AdvancedOperation) -> List[str]:
        filters: List[str] = []
        if advanced.pitch is not None:
            filters.extend(build_pitch_directives(advanced.pitch))
        if advanced.tempo is not None:
            filters.extend(build_tempo_directives(advanced.tempo))
        if advanced.spectral is not None:
            spectral = build_spectral_directive(advanced.spectral)
            if spectral:
                filters.append(spectral)
        if advanced.dynamics is not None:
            filters.extend(build_dynamics_directives(advanced.dynamics))
        if advanced.spatial is not None:
            filters.extend(build_spatial_directives(advanced.spatial))
        if advanced.modulation is not None:
            filters.extend(build_modulation_directives(advanced.modulation))
        return filters


def get_compiler(enable_advanced: bool = True) -> BaseCompiler:
    return AdvancedCompiler() if enable_advanced else BaseCompiler()
