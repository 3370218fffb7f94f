from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

SampleRate = Literal[8000, 16000, 22050, 44100, 48000, 96000, 192000]
ChannelCount = Literal[1, 2, 6, 8]
Codec = Literal["pcm", "mp3", "aac", "vorbis", "flac"]
OutputFormat = Literal["wav", "mp3", "ogg", "flac", "aac", "m4a"]
BlendMode = Literal["mix", "multiply", "add", "subtract"]
PresetCategory = Literal["game", "voice", "music", "effects", "advanced"]

MAX_LAYERS = 8


# ---------------------------------------------------------------------------
# Pydantic bases
# ---------------------------------------------------------------------------
class StrictBaseModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class OperationModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


# ---------------------------------------------------------------------------
# Base operations
# ---------------------------------------------------------------------------
class VolumeOperation(OperationModel):
    adjust_db: Optional[float] = Field(None, ge=-60.0, le=20.0, description="Gain in dB.")
    normalize: Optional[bool] = Field(None, description="Run single-pass loudness normalization.")
    target_lufs: Optional[float] = Field(None, description="Normalization target (default -23 LUFS).")


class FormatOperation(OperationModel):
    sample_rate: Optional[SampleRate] = Field(None, description="Output sample rate in Hz.")
    bitrate_kbps: Optional[int] = Field(None, ge=64, le=320, description="Output bitrate in kbps.")
    channels: Optional[ChannelCount] = Field(None, description="Output channel count.")
    codec: Optional[Codec] = Field(None, description="Output codec.")


class TrimOperation(OperationModel):
    start_sec: float = Field(..., ge=0.0, description="Seek offset in seconds.")
    end_sec: float = Field(..., ge=0.0, description="End time in seconds.")


class LoopOperation(OperationModel):
    enabled: bool = Field(..., description="Enable looping.")
    count: int = Field(..., ge=1, description="Total number of plays.")


class EffectsOperation(OperationModel):
    fade_in_sec: Optional[float] = Field(None, ge=0.0, description="Fade-in length in seconds.")
    fade_out_sec: Optional[float] = Field(None, ge=0.0, description="Fade-out start offset in seconds.")
    trim: Optional[TrimOperation] = None
    loop: Optional[LoopOperation] = None


# ---------------------------------------------------------------------------
# Advanced operations
# ---------------------------------------------------------------------------
class PitchOperation(OperationModel):
    semitones: float = Field(..., ge=-12.0, le=12.0)
    cents: Optional[float] = Field(None, ge=-100.0, le=100.0)
    preserve_formants: Optional[bool] = None


class TempoOperation(OperationModel):
    factor: float = Field(..., ge=0.5, le=2.0)
    preserve_pitch: Optional[bool] = None


class HarmonicsOperation(OperationModel):
    octave_up: Optional[float] = Field(None, ge=0.0, le=1.0)
    octave_down: Optional[float] = Field(None, ge=0.0, le=1.0)
    fifth_up: Optional[float] = Field(None, ge=0.0, le=1.0)
    third_up: Optional[float] = Field(None, ge=0.0, le=1.0)


class SpectralOperation(OperationModel):
    bass_boost: Optional[float] = Field(None, ge=-12.0, le=12.0, description="Low shelf gain in dB.")
    treble_boost: Optional[float] = Field(None, ge=-12.0, le=12.0, description="High shelf gain in dB.")
    mid_cut: Optional[float] = Field(None, ge=-12.0, le=12.0, description="Cut at 1 kHz in dB.")
    warmth: Optional[float] = Field(None, ge=0.0, le=1.0)
    brightness: Optional[float] = Field(None, ge=0.0, le=1.0)


class CompressorSettings(OperationModel):
    threshold: float = Field(..., ge=-60.0, le=0.0, description="Threshold in dB.")
    ratio: float = Field(..., ge=1.0, le=20.0)
    attack: float = Field(..., ge=0.01, le=2000.0, description="Attack in ms.")
    release: float = Field(..., ge=0.01, le=9000.0, description="Release in ms.")
    knee: Optional[float] = Field(None, ge=0.0, le=40.0)


class GateSettings(OperationModel):
    threshold: float = Field(..., ge=-80.0, le=0.0)
    ratio: float = Field(..., ge=1.0, le=20.0)
    attack: Optional[float] = Field(None, ge=0.0, le=9000.0)
    release: Optional[float] = Field(None, ge=0.0, le=9000.0)


class LimiterSettings(OperationModel):
    threshold: float = Field(..., ge=-30.0, le=0.0)
    release: Optional[float] = Field(None, ge=0.0, le=8000.0)


class DynamicsOperation(OperationModel):
    compressor: Optional[CompressorSettings] = None
    gate: Optional[GateSettings] = None
    limiter: Optional[LimiterSettings] = None


class SpatialOperation(OperationModel):
    stereo_width: Optional[float] = Field(None, ge=0.0, le=2.0)
    pan_position: Optional[float] = Field(None, ge=-1.0, le=1.0)
    reverb_send: Optional[float] = Field(None, ge=0.0, le=1.0)
    delay_time_ms: Optional[float] = Field(None, ge=0.0, le=5000.0)
    delay_feedback: Optional[float] = Field(None, ge=0.0, le=0.95)


class TremoloSettings(OperationModel):
    rate: float = Field(..., ge=0.1, le=20.0, description="Rate in Hz.")
    depth: float = Field(..., ge=0.0, le=1.0)
    waveform: Optional[Literal["sine", "triangle", "square"]] = None


class VibratoSettings(OperationModel):
    rate: float = Field(..., ge=0.1, le=20.0, description="Rate in Hz.")
    depth: float = Field(..., ge=0.0, le=1.0)
    waveform: Optional[Literal["sine", "triangle"]] = None


class ChorusSettings(OperationModel):
    rate: float = Field(..., ge=0.1, le=5.0, description="Rate in Hz.")
    depth: float = Field(..., ge=0.0, le=1.0)
    delay_ms: float = Field(..., ge=5.0, le=40.0)


class ModulationOperation(OperationModel):
    tremolo: Optional[TremoloSettings] = None
    vibrato: Optional[VibratoSettings] = None
    chorus: Optional[ChorusSettings] = None


class VariationOperation(OperationModel):
    count: int = Field(..., ge=1, le=20)
    pitch_range: Optional[float] = Field(None, ge=0.0, le=12.0, description="+/- semitones.")
    volume_range: Optional[float] = Field(None, ge=0.0, le=10.0, description="+/- dB.")
    spectral_range: Optional[float] = Field(None, ge=0.0, le=6.0, description="+/- dB on bass and treble.")
    timing_range: Optional[float] = Field(None, ge=0.0, description="Enables +/-10% tempo variation.")
    seed: Optional[int] = Field(None, description="Seed for reproducible variation sets.")


class LayerSpec(OperationModel):
    blend: BlendMode = "mix"
    delay_ms: Optional[float] = Field(None, ge=0.0, le=5000.0)
    pitch_semitones: Optional[float] = Field(None, ge=-12.0, le=12.0)
    volume: Optional[float] = Field(None, ge=0.0, le=2.0)
    pan: Optional[float] = Field(None, ge=-1.0, le=1.0)


class LayeringOperation(OperationModel):
    layers: List[LayerSpec] = Field(..., min_length=1, max_length=MAX_LAYERS)


class AdvancedOperation(OperationModel):
    pitch: Optional[PitchOperation] = None
    tempo: Optional[TempoOperation] = None
    harmonics: Optional[HarmonicsOperation] = None
    spectral: Optional[SpectralOperation] = None
    dynamics: Optional[DynamicsOperation] = None
    spatial: Optional[SpatialOperation] = None
    modulation: Optional[ModulationOperation] = None
    variations: Optional[VariationOperation] = None
    layering: Optional[LayeringOperation] = None


class OperationSet(OperationModel):
    volume: Optional[VolumeOperation] = None
    format: Optional[FormatOperation] = None
    effects: Optional[EffectsOperation] = None
    advanced: Optional[AdvancedOperation] = None


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------
class ProcessingResult(StrictBaseModel):
    success: bool = Field(..., description="True when the output file was written.")
    input_path: str = Field(..., description="Input file (comma-joined for layered jobs).")
    output_path: str = Field(..., description="Output file.")
    processing_time_ms: int = Field(..., ge=0, description="Wall-clock job time in ms.")
    operations: OperationSet = Field(..., description="Operations applied, echoed verbatim.")
    error: Optional[str] = Field(None, description="Failure cause, if any.")


class BatchResult(StrictBaseModel):
    total_files: int
    successful_files: int
    failed_files: int
    results: List[ProcessingResult]
    total_processing_time_ms: int

    @model_validator(mode="after")
    def _check_partition(self) -> "BatchResult":
        if self.successful_files + self.failed_files != self.total_files:
            raise ValueError("file_count_mismatch")
        return self


class QueueStatus(StrictBaseModel):
    pending: int = Field(..., ge=0, description="Jobs waiting for a worker slot.")
    active: int = Field(..., ge=0, description="Jobs currently executing.")
    paused: bool = Field(..., description="True while new jobs are held back.")
    concurrency: int = Field(..., ge=1, description="Maximum simultaneous jobs.")
