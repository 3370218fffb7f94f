from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import Field

from audio_tweaker.models import (
    AdvancedOperation,
    ChorusSettings,
    CompressorSettings,
    DynamicsOperation,
    EffectsOperation,
    FormatOperation,
    GateSettings,
    HarmonicsOperation,
    LayeringOperation,
    LayerSpec,
    LimiterSettings,
    ModulationOperation,
    OperationSet,
    OutputFormat,
    PitchOperation,
    PresetCategory,
    SpatialOperation,
    SpectralOperation,
    StrictBaseModel,
    TremoloSettings,
    VariationOperation,
    VolumeOperation,
)


class PresetDefinition(StrictBaseModel):
    name: str = Field(..., description="Preset identifier.")
    description: str = Field(..., description="What the preset is for.")
    category: PresetCategory = Field(..., description="Listing category.")
    output_format: OutputFormat = Field(..., description="Suggested output container.")
    operations: OperationSet = Field(..., description="Operations applied by the preset.")


def _normalized(target_lufs: Optional[float] = None) -> VolumeOperation:
    return VolumeOperation(normalize=True, target_lufs=target_lufs)


_PRESET_LIST: List[PresetDefinition] = [
    PresetDefinition(
        name="game-audio-mobile",
        description="Optimized for mobile game audio - compressed and efficient",
        category="game",
        output_format="m4a",
        operations=OperationSet(
            format=FormatOperation(sample_rate=22050, bitrate_kbps=128, channels=2, codec="aac"),
            volume=_normalized(-16),
        ),
    ),
    PresetDefinition(
        name="game-audio-desktop",
        description="High-quality audio for desktop games",
        category="game",
        output_format="ogg",
        operations=OperationSet(
            format=FormatOperation(sample_rate=44100, bitrate_kbps=192, channels=2, codec="vorbis"),
            volume=_normalized(-18),
        ),
    ),
    PresetDefinition(
        name="game-audio-console",
        description="Premium quality for console gaming platforms",
        category="game",
        output_format="wav",
        operations=OperationSet(
            format=FormatOperation(sample_rate=48000, channels=2, codec="pcm"),
            volume=_normalized(-20),
        ),
    ),
    PresetDefinition(
        name="elevenLabs-optimize",
        description="Optimizes ElevenLabs AI voice output for game integration",
        category="voice",
        output_format="mp3",
        operations=OperationSet(
            format=FormatOperation(sample_rate=22050, bitrate_kbps=160, channels=1, codec="mp3"),
            volume=_normalized(-20),
            effects=EffectsOperation(fade_in_sec=0.05, fade_out_sec=0.1),
        ),
    ),
    PresetDefinition(
        name="voice-processing",
        description="General voice and dialogue processing",
        category="voice",
        output_format="mp3",
        operations=OperationSet(
            format=FormatOperation(sample_rate=22050, bitrate_kbps=128, channels=1, codec="mp3"),
            volume=_normalized(-23),
            effects=EffectsOperation(fade_in_sec=0.02, fade_out_sec=0.05),
        ),
    ),
    PresetDefinition(
        name="music-mastering",
        description="High-quality music mastering preset",
        category="music",
        output_format="flac",
        operations=OperationSet(
            format=FormatOperation(sample_rate=44100, channels=2, codec="flac"),
            volume=_normalized(-14),
        ),
    ),
    PresetDefinition(
        name="sfx-optimization",
        description="Optimized for sound effects and ambient audio",
        category="effects",
        output_format="ogg",
        operations=OperationSet(
            format=FormatOperation(sample_rate=44100, bitrate_kbps=160, channels=1, codec="vorbis"),
            volume=_normalized(-18),
        ),
    ),
    PresetDefinition(
        name="deep-mechanical",
        description="Deep, mechanical sound with harmonic richness",
        category="advanced",
        output_format="wav",
        operations=OperationSet(
            advanced=AdvancedOperation(
                pitch=PitchOperation(semitones=-3, preserve_formants=True),
                harmonics=HarmonicsOperation(octave_down=0.3, fifth_up=0.2),
                spectral=SpectralOperation(bass_boost=4, mid_cut=-2, warmth=0.4),
                dynamics=DynamicsOperation(
                    compressor=CompressorSettings(threshold=-18, ratio=3, attack=5, release=100),
                ),
            ),
            volume=_normalized(-18),
        ),
    ),
    PresetDefinition(
        name="bright-crystalline",
        description="Bright, crystalline sound with sparkle",
        category="advanced",
        output_format="wav",
        operations=OperationSet(
            advanced=AdvancedOperation(
                pitch=PitchOperation(semitones=2),
                harmonics=HarmonicsOperation(octave_up=0.25, third_up=0.15),
                spectral=SpectralOperation(treble_boost=5, brightness=0.6, warmth=0.2),
                modulation=ModulationOperation(chorus=ChorusSettings(rate=0.5, depth=0.3, delay_ms=15)),
            ),
            volume=_normalized(-16),
        ),
    ),
    PresetDefinition(
        name="variation-pack",
        description="Generate 5 variations with controlled randomness",
        category="advanced",
        output_format="wav",
        operations=OperationSet(
            advanced=AdvancedOperation(
                variations=VariationOperation(
                    count=5, pitch_range=2, volume_range=3, spectral_range=2, seed=42
                ),
            ),
            volume=_normalized(),
        ),
    ),
    PresetDefinition(
        name="layered-impact",
        description="Self-layered sound for maximum impact",
        category="advanced",
        output_format="wav",
        operations=OperationSet(
            advanced=AdvancedOperation(
                layering=LayeringOperation(
                    layers=[
                        LayerSpec(blend="mix", volume=0.8),
                        LayerSpec(blend="add", volume=0.4, pitch_semitones=12, delay_ms=50),
                        LayerSpec(blend="add", volume=0.3, pitch_semitones=-12, delay_ms=25),
                    ]
                ),
                dynamics=DynamicsOperation(
                    compressor=CompressorSettings(threshold=-12, ratio=4, attack=1, release=50),
                    limiter=LimiterSettings(threshold=-6, release=30),
                ),
            ),
            volume=_normalized(-14),
        ),
    ),
    PresetDefinition(
        name="space-ambient",
        description="Spacious, ambient processing with modulation",
        category="advanced",
        output_format="wav",
        operations=OperationSet(
            advanced=AdvancedOperation(
                spatial=SpatialOperation(
                    stereo_width=1.5, reverb_send=0.4, delay_time_ms=150, delay_feedback=0.25
                ),
                modulation=ModulationOperation(
                    tremolo=TremoloSettings(rate=0.3, depth=0.2),
                    chorus=ChorusSettings(rate=0.2, depth=0.4, delay_ms=25),
                ),
                spectral=SpectralOperation(warmth=0.5, brightness=0.3),
            ),
            volume=_normalized(-20),
        ),
    ),
    PresetDefinition(
        name="punchy-game-sfx",
        description="Tight, punchy sound optimized for game audio",
        category="advanced",
        output_format="wav",
        operations=OperationSet(
            advanced=AdvancedOperation(
                dynamics=DynamicsOperation(
                    gate=GateSettings(threshold=-40, ratio=10, attack=1, release=10),
                    compressor=CompressorSettings(threshold=-20, ratio=6, attack=0.5, release=25, knee=4),
                    limiter=LimiterSettings(threshold=-3, release=5),
                ),
                spectral=SpectralOperation(bass_boost=2, treble_boost=3),
            ),
            effects=EffectsOperation(fade_in_sec=0.001, fade_out_sec=0.02),
            volume=_normalized(-16),
        ),
    ),
]

PRESETS: Dict[str, PresetDefinition] = {preset.name: preset for preset in _PRESET_LIST}


def preset_exists(name: str) -> bool:
    return name in PRESETS


def get_preset(name: str) -> PresetDefinition:
    if not preset_exists(name):
        available = ", ".join(PRESETS)
        raise ValueError(f"unknown_preset: '{name}' is not a preset. Available: {available}")
    return PRESETS[name]


def list_presets(category: Optional[str] = None) -> List[PresetDefinition]:
    """All presets in table order, optionally restricted to one category."""
    if category is None:
        return list(_PRESET_LIST)
    return [preset for preset in _PRESET_LIST if preset.category == category]
