from __future__ import annotations

"""
Audio Tweaker - FastMCP Server
==============================

MCP server exposing ffmpeg-backed audio processing as LLM-callable tools.
Operation sets are compiled to ffmpeg filter chains (or multi-input filter
graphs for layering) and executed as asynchronous subprocesses. Batches,
variation sets and harmonic sets share one bounded-concurrency queue.

Architecture
------------

    LLM client -> FastMCP (stdio / streamable-HTTP)
                     -> resources/  config://server-info
                                    audio-tweaker://presets
                     -> tools/
                          -> process_audio_file   (one file, direct)
                          -> batch_process_audio  (directory, queued)
                          -> apply_preset         (one file, direct)
                          -> list_presets         (instant)
                          -> get_queue_status     (instant)
                          -> pause_queue / resume_queue / clear_queue
                          -> generate_variations  (seeded set, queued)
                          -> create_harmonics     (one file per interval, queued)
                          -> advanced_process     (one file, direct)
                          -> layer_sounds         (up to 8 inputs, direct)

Every tool returns its result model or a ToolErrorOut envelope.
"""

import json
import logging
from typing import Annotated, Optional, Union

from fastmcp import FastMCP
from pydantic import Field
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware

from audio_tweaker.compiler import get_compiler
from audio_tweaker.config import Settings, configure_logging
from audio_tweaker.engine import FFmpegEngine, find_ffmpeg
from audio_tweaker.models import MAX_LAYERS, BatchResult, PresetCategory, ProcessingResult, QueueStatus
from audio_tweaker.paths import SUPPORTED_EXTENSIONS
from audio_tweaker.presets import list_presets as all_presets
from audio_tweaker.processor import AudioProcessor
from audio_tweaker.tools import (
    AdvancedProcessIn,
    ApplyPresetIn,
    BatchProcessIn,
    CreateHarmonicsIn,
    GenerateVariationsIn,
    HarmonicsOut,
    LayerSoundsIn,
    PresetResultOut,
    PresetsOut,
    ProcessFileIn,
    QueueControlOut,
    ToolDispatcher,
    ToolErrorOut,
    VariationsOut,
)

SETTINGS = Settings.from_env(".env")
configure_logging(SETTINGS.log_level)

log = logging.getLogger("audio_tweaker.server")

SERVER_NAME = "Audio Tweaker"
SERVER_VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# FastMCP server instance
# ---------------------------------------------------------------------------
mcp = FastMCP(SERVER_NAME)

_http_middleware = [
    Middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=[
            "mcp-protocol-version",
            "mcp-session-id",
            "Authorization",
            "Content-Type",
        ],
        expose_headers=["mcp-session-id"],
    )
]

# ---------------------------------------------------------------------------
# Processing core
# ---------------------------------------------------------------------------
processor = AudioProcessor(
    compiler=get_compiler(SETTINGS.enable_advanced),
    engine=FFmpegEngine(SETTINGS.ffmpeg_path, SETTINGS.engine_timeout_s),
    concurrency=SETTINGS.concurrency,
)
dispatcher = ToolDispatcher(processor)


def create_http_app():
    return mcp.http_app(
        path="/mcp",
        middleware=_http_middleware,
        json_response=True,
        stateless_http=True,
        transport="streamable-http",
    )


# ===========================================================================
# RESOURCES
# ===========================================================================
@mcp.resource(
    uri="config://server-info",
    name="ServerInfo",
    description="Server configuration and limits.",
    mime_type="application/json",
    annotations={"readOnlyHint": True, "idempotentHint": True},
    tags={"config"},
)
def get_server_info() -> str:
    """Provides server metadata and limits as JSON."""
    ffmpeg = find_ffmpeg(SETTINGS.ffmpeg_path)
    payload = {
        "name": SERVER_NAME,
        "version": SERVER_VERSION,
        "advanced_enabled": processor.compiler.supports_advanced,
        "concurrency": processor.queue.concurrency,
        "engine_timeout_s": SETTINGS.engine_timeout_s,
        "ffmpeg_path": str(ffmpeg) if ffmpeg else None,
        "max_layers": MAX_LAYERS,
        "max_variations": 20,
        "supported_input_extensions": sorted(SUPPORTED_EXTENSIONS),
    }
    return json.dumps(payload, indent=2)


@mcp.resource(
    uri="audio-tweaker://presets",
    name="PresetTable",
    description="Every preset with its full operation set.",
    mime_type="application/json",
    annotations={"readOnlyHint": True, "idempotentHint": True},
)
def get_presets_resource() -> str:
    payload = [preset.model_dump(exclude_none=True) for preset in all_presets()]
    return json.dumps(payload, indent=2)


# ===========================================================================
# TOOLS
# ===========================================================================
@mcp.tool()
async def process_audio_file(req: ProcessFileIn) -> Union[ProcessingResult, ToolErrorOut]:
    """Process one audio file with volume, format, effects and advanced operations."""
    return await dispatcher.process_audio_file(req)


@mcp.tool()
async def batch_process_audio(req: BatchProcessIn) -> Union[BatchResult, ToolErrorOut]:
    """Apply one operation set to every matching file in a directory."""
    return await dispatcher.batch_process_audio(req)


@mcp.tool()
async def apply_preset(req: ApplyPresetIn) -> Union[PresetResultOut, ToolErrorOut]:
    """Apply a named preset to one audio file."""
    return await dispatcher.apply_preset(req)


@mcp.tool()
async def list_presets(
    category: Annotated[Optional[PresetCategory], Field(description="Filter presets by category.")] = None,
) -> Union[PresetsOut, ToolErrorOut]:
    """List available presets with their operation sets."""
    return await dispatcher.list_presets(category)


@mcp.tool()
async def get_queue_status() -> Union[QueueStatus, ToolErrorOut]:
    """Pending and active job counts, and whether the queue is paused."""
    return await dispatcher.get_queue_status()


@mcp.tool()
async def pause_queue() -> Union[QueueControlOut, ToolErrorOut]:
    """Stop starting queued jobs; running jobs finish."""
    return await dispatcher.pause_queue()


@mcp.tool()
async def resume_queue() -> Union[QueueControlOut, ToolErrorOut]:
    """Release queued jobs in their original order."""
    return await dispatcher.resume_queue()


@mcp.tool()
async def clear_queue() -> Union[QueueControlOut, ToolErrorOut]:
    """Discard queued jobs that have not started."""
    return await dispatcher.clear_queue()


@mcp.tool()
async def generate_variations(req: GenerateVariationsIn) -> Union[VariationsOut, ToolErrorOut]:
    """Render a reproducible set of pitch/spectral/volume variations of one file."""
    return await dispatcher.generate_variations(req)


@mcp.tool()
async def create_harmonics(req: CreateHarmonicsIn) -> Union[HarmonicsOut, ToolErrorOut]:
    """Layer pitch-shifted copies against the original, one output per interval."""
    return await dispatcher.create_harmonics(req)


@mcp.tool()
async def advanced_process(req: AdvancedProcessIn) -> Union[ProcessingResult, ToolErrorOut]:
    """Pitch, tempo, spectral, dynamics, spatial and modulation processing."""
    return await dispatcher.advanced_process(req)


@mcp.tool()
async def layer_sounds(req: LayerSoundsIn) -> Union[ProcessingResult, ToolErrorOut]:
    """Mix up to eight files with per-layer delay, pitch, volume and pan."""
    return await dispatcher.layer_sounds(req)


# ASGI entrypoint for `uvicorn server:app`
app = create_http_app()


# ===========================================================================
# Entrypoint
# ===========================================================================
def main() -> None:
    if SETTINGS.transport == "http":
        log.info("Starting %s on %s:%s/mcp", SERVER_NAME, SETTINGS.host, SETTINGS.port)
        mcp.run(
            transport="streamable-http",
            stateless_http=True,
            host=SETTINGS.host,
            port=SETTINGS.port,
            path="/mcp",
        )
        return
    log.info("Starting %s on stdio", SERVER_NAME)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
