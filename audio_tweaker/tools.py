from __future__ import annotations

"""
Tool dispatch layer
===================

One coroutine per tool. Each accepts its request model (or the equivalent
dict), drives the ``AudioProcessor`` and returns either the tool's result
model or a ``ToolErrorOut``; no exception crosses this boundary.

Error codes
-----------

    invalid_arguments       request failed pydantic validation
    <prefix>                ValueError("<prefix>: detail") from the core,
                            e.g. no_files_found, unknown_preset, no_harmonics
    invalid_request         any other ValueError
    tool_execution_failed   anything unexpected (logged with traceback)
"""

import functools
import logging
import re
from typing import Any, Awaitable, Callable, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, Field, ValidationError

from audio_tweaker.models import (
    MAX_LAYERS,
    AdvancedOperation,
    DynamicsOperation,
    HarmonicsOperation,
    LayeringOperation,
    LayerSpec,
    ModulationOperation,
    OperationSet,
    OutputFormat,
    PitchOperation,
    PresetCategory,
    ProcessingResult,
    QueueStatus,
    SpatialOperation,
    SpectralOperation,
    StrictBaseModel,
    TempoOperation,
    VariationOperation,
)
from audio_tweaker.paths import DEFAULT_SUFFIX
from audio_tweaker.presets import PresetDefinition, get_preset, list_presets
from audio_tweaker.processor import AudioProcessor

log = logging.getLogger("audio_tweaker.tools")

M = TypeVar("M", bound=BaseModel)

_CODE_RE = re.compile(r"^([a-z][a-z0-9_]*):\s*(.*)$", re.DOTALL)


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------
class ProcessFileIn(StrictBaseModel):
    input_path: str = Field(..., description="Path to the input audio file.")
    output_path: str = Field(..., description="Path for the processed file.")
    operations: OperationSet = Field(default_factory=OperationSet, description="Operations to apply.")
    overwrite: bool = Field(False, description="Replace an existing output file.")


class BatchProcessIn(StrictBaseModel):
    input_directory: str = Field(..., description="Directory to scan for input files.")
    output_directory: str = Field(..., description="Directory for processed files.")
    operations: OperationSet = Field(default_factory=OperationSet, description="Operations applied to every file.")
    file_pattern: Optional[str] = Field(None, description="Glob pattern, e.g. '*.{wav,mp3}'.")
    overwrite: bool = Field(False, description="Replace existing output files.")
    suffix: str = Field(DEFAULT_SUFFIX, description="Appended to each output file stem.")
    output_format: Optional[OutputFormat] = Field(None, description="Output extension; defaults to the input's.")


class ApplyPresetIn(StrictBaseModel):
    input_path: str = Field(..., description="Path to the input audio file.")
    output_path: str = Field(..., description="Path for the processed file.")
    preset_name: str = Field(..., description="Preset name, see list_presets.")
    overwrite: bool = Field(False, description="Replace an existing output file.")


class GenerateVariationsIn(StrictBaseModel):
    input_path: str = Field(..., description="Path to the input audio file.")
    output_directory: str = Field(..., description="Directory for the variation files.")
    count: int = Field(5, ge=1, le=20, description="Number of variations.")
    pitch_range: float = Field(2.0, ge=0.0, le=12.0, description="+/- semitones.")
    volume_range: float = Field(3.0, ge=0.0, le=10.0, description="+/- dB.")
    spectral_range: float = Field(2.0, ge=0.0, le=6.0, description="+/- dB on bass and treble.")
    timing_range: Optional[float] = Field(None, ge=0.0, description="Enables +/-10% tempo variation.")
    seed: Optional[int] = Field(None, description="Seed for a reproducible set.")
    base_operations: Optional[OperationSet] = Field(None, description="Operations applied under each variation.")
    overwrite: bool = Field(False, description="Replace existing output files.")

    def variation_params(self) -> VariationOperation:
        return VariationOperation(
            count=self.count,
            pitch_range=self.pitch_range,
            volume_range=self.volume_range,
            spectral_range=self.spectral_range,
            timing_range=self.timing_range,
            seed=self.seed,
        )


class CreateHarmonicsIn(StrictBaseModel):
    input_path: str = Field(..., description="Path to the input audio file.")
    output_directory: str = Field(..., description="Directory for the harmonic files.")
    octave_up: Optional[float] = Field(None, ge=0.0, le=1.0, description="Mix level for +12 semitones.")
    octave_down: Optional[float] = Field(None, ge=0.0, le=1.0, description="Mix level for -12 semitones.")
    fifth_up: Optional[float] = Field(None, ge=0.0, le=1.0, description="Mix level for +7 semitones.")
    third_up: Optional[float] = Field(None, ge=0.0, le=1.0, description="Mix level for +4 semitones.")
    overwrite: bool = Field(False, description="Replace existing output files.")

    def harmonics(self) -> HarmonicsOperation:
        return HarmonicsOperation(
            octave_up=self.octave_up,
            octave_down=self.octave_down,
            fifth_up=self.fifth_up,
            third_up=self.third_up,
        )


class AdvancedProcessIn(StrictBaseModel):
    input_path: str = Field(..., description="Path to the input audio file.")
    output_path: str = Field(..., description="Path for the processed file.")
    pitch: Optional[PitchOperation] = None
    tempo: Optional[TempoOperation] = None
    spectral: Optional[SpectralOperation] = None
    dynamics: Optional[DynamicsOperation] = None
    spatial: Optional[SpatialOperation] = None
    modulation: Optional[ModulationOperation] = None
    overwrite: bool = Field(False, description="Replace an existing output file.")

    def operations(self) -> OperationSet:
        advanced = AdvancedOperation(
            pitch=self.pitch,
            tempo=self.tempo,
            spectral=self.spectral,
            dynamics=self.dynamics,
            spatial=self.spatial,
            modulation=self.modulation,
        )
        return OperationSet(advanced=advanced)


class LayerSoundsIn(StrictBaseModel):
    input_paths: List[str] = Field(..., min_length=1, max_length=MAX_LAYERS, description="Files to layer.")
    output_path: str = Field(..., description="Path for the mixed file.")
    layers: List[LayerSpec] = Field(..., min_length=1, max_length=MAX_LAYERS, description="One spec per input.")
    overwrite: bool = Field(False, description="Replace an existing output file.")


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------
class ToolErrorOut(StrictBaseModel):
    code: str = Field(..., description="Stable error code.")
    message: str = Field(..., description="Human-readable error message.")
    tool_name: str = Field(..., description="Tool that failed.")


class PresetResultOut(StrictBaseModel):
    result: ProcessingResult
    preset_used: str = Field(..., description="Name of the applied preset.")
    preset_description: str = Field(..., description="Description of the applied preset.")


class PresetsOut(StrictBaseModel):
    count: int = Field(..., ge=0)
    presets: List[PresetDefinition]


class VariationsOut(StrictBaseModel):
    seed: int = Field(..., description="Seed that reproduces this set.")
    results: List[ProcessingResult]


class HarmonicsOut(StrictBaseModel):
    results: List[ProcessingResult]


class QueueControlOut(StrictBaseModel):
    action: str = Field(..., description="pause, resume or clear.")
    discarded: int = Field(0, ge=0, description="Pending jobs dropped by clear.")
    status: QueueStatus


# ---------------------------------------------------------------------------
# Error boundary
# ---------------------------------------------------------------------------
def make_error(tool_name: str, exc: Exception) -> ToolErrorOut:
    if isinstance(exc, ValidationError):
        return ToolErrorOut(code="invalid_arguments", message=str(exc), tool_name=tool_name)
    if isinstance(exc, ValueError):
        match = _CODE_RE.match(str(exc))
        if match:
            return ToolErrorOut(code=match.group(1), message=match.group(2) or match.group(1), tool_name=tool_name)
        return ToolErrorOut(code="invalid_request", message=str(exc), tool_name=tool_name)
    return ToolErrorOut(code="tool_execution_failed", message=str(exc) or type(exc).__name__, tool_name=tool_name)


def guarded(tool_name: str) -> Callable[[Callable[..., Awaitable[Any]]], Callable[..., Awaitable[Any]]]:
    def decorator(fn: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        @functools.wraps(fn)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await fn(*args, **kwargs)
            except ValueError as exc:
                log.warning("%s rejected: %s", tool_name, exc)
                return make_error(tool_name, exc)
            except Exception as exc:
                log.exception("%s failed", tool_name)
                return make_error(tool_name, exc)

        return wrapper

    return decorator


def _coerce(model: Type[M], req: Union[M, dict, None]) -> M:
    if isinstance(req, model):
        return req
    return model.model_validate(req or {})


class ToolDispatcher:
    def __init__(self, processor: AudioProcessor):
        self.processor = processor

    @guarded("process_audio_file")
    async def process_audio_file(self, req: Union[ProcessFileIn, dict]) -> Union[ProcessingResult, ToolErrorOut]:
        req = _coerce(ProcessFileIn, req)
        return await self.processor.process_file(req.input_path, req.output_path, req.operations, req.overwrite)

    @guarded("batch_process_audio")
    async def batch_process_audio(self, req: Union[BatchProcessIn, dict]):
        req = _coerce(BatchProcessIn, req)
        return await self.processor.batch_process(
            req.input_directory,
            req.output_directory,
            req.operations,
            file_pattern=req.file_pattern,
            overwrite=req.overwrite,
            suffix=req.suffix,
            output_format=req.output_format,
        )

    @guarded("apply_preset")
    async def apply_preset(self, req: Union[ApplyPresetIn, dict]):
        req = _coerce(ApplyPresetIn, req)
        preset = get_preset(req.preset_name)
        result = await self.processor.process_file(req.input_path, req.output_path, preset.operations, req.overwrite)
        return PresetResultOut(result=result, preset_used=preset.name, preset_description=preset.description)

    @guarded("list_presets")
    async def list_presets(self, category: Optional[PresetCategory] = None):
        presets = list_presets(category)
        return PresetsOut(count=len(presets), presets=presets)

    @guarded("get_queue_status")
    async def get_queue_status(self):
        return self.processor.queue_status()

    @guarded("pause_queue")
    async def pause_queue(self):
        self.processor.pause()
        return QueueControlOut(action="pause", status=self.processor.queue_status())

    @guarded("resume_queue")
    async def resume_queue(self):
        self.processor.resume()
        return QueueControlOut(action="resume", status=self.processor.queue_status())

    @guarded("clear_queue")
    async def clear_queue(self):
        discarded = self.processor.clear()
        return QueueControlOut(action="clear", discarded=discarded, status=self.processor.queue_status())

    @guarded("generate_variations")
    async def generate_variations(self, req: Union[GenerateVariationsIn, dict]):
        req = _coerce(GenerateVariationsIn, req)
        seed, results = await self.processor.generate_variations(
            req.input_path,
            req.output_directory,
            req.variation_params(),
            base_operations=req.base_operations,
            overwrite=req.overwrite,
        )
        return VariationsOut(seed=seed, results=results)

    @guarded("create_harmonics")
    async def create_harmonics(self, req: Union[CreateHarmonicsIn, dict]):
        req = _coerce(CreateHarmonicsIn, req)
        results = await self.processor.create_harmonics(
            req.input_path, req.output_directory, req.harmonics(), overwrite=req.overwrite
        )
        return HarmonicsOut(results=results)

    @guarded("advanced_process")
    async def advanced_process(self, req: Union[AdvancedProcessIn, dict]):
        req = _coerce(AdvancedProcessIn, req)
        if not self.processor.compiler.supports_advanced:
            raise ValueError("unsupported_operation: advanced_process requires the advanced processor.")
        return await self.processor.process_file(req.input_path, req.output_path, req.operations(), req.overwrite)

    @guarded("layer_sounds")
    async def layer_sounds(self, req: Union[LayerSoundsIn, dict]):
        req = _coerce(LayerSoundsIn, req)
        return await self.processor.layer_sounds(
            req.input_paths, req.output_path, LayeringOperation(layers=req.layers), overwrite=req.overwrite
        )
