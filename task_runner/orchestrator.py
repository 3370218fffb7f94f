from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import List, Optional

from audio_tweaker.compiler import get_compiler
from audio_tweaker.config import Settings, configure_logging
from audio_tweaker.engine import FFmpegEngine, check_engine
from audio_tweaker.models import OperationSet
from audio_tweaker.paths import DEFAULT_SUFFIX
from audio_tweaker.presets import get_preset, list_presets
from audio_tweaker.processor import AudioProcessor


def load_operations(operations: Optional[str], preset: Optional[str]) -> OperationSet:
    """Operations from ``--preset``, or ``--operations`` (inline JSON or ``@file.json``)."""
    if preset:
        return get_preset(preset).operations
    if not operations:
        return OperationSet()
    if operations.startswith("@"):
        with open(operations[1:], "r", encoding="utf-8") as f:
            return OperationSet.model_validate_json(f.read())
    return OperationSet.model_validate_json(operations)


def build_processor(settings: Settings, concurrency: Optional[int] = None) -> AudioProcessor:
    return AudioProcessor(
        compiler=get_compiler(settings.enable_advanced),
        engine=FFmpegEngine(settings.ffmpeg_path, settings.engine_timeout_s),
        concurrency=concurrency or settings.concurrency,
    )


def _add_operation_args(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--preset", help="Preset name (see the presets command).")
    group.add_argument("--operations", help="OperationSet as JSON, or @path to a JSON file.")
    parser.add_argument("--overwrite", action="store_true", help="Replace existing outputs.")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Process audio files with ffmpeg filter chains outside the MCP server."
    )
    sub = parser.add_subparsers(dest="command", required=True)

    process = sub.add_parser("process", help="Process one file.")
    process.add_argument("input", help="Input audio file.")
    process.add_argument("output", help="Output audio file.")
    _add_operation_args(process)

    batch = sub.add_parser("batch", help="Process every matching file in a directory.")
    batch.add_argument("input_dir", help="Directory to scan.")
    batch.add_argument("output_dir", help="Directory for processed files.")
    batch.add_argument("--pattern", default=None, help="Glob pattern, e.g. '*.{wav,mp3}'.")
    batch.add_argument("--suffix", default=DEFAULT_SUFFIX, help="Appended to each output stem.")
    batch.add_argument("--format", dest="output_format", default=None, help="Output extension.")
    batch.add_argument("--concurrency", type=int, default=None, help="Maximum simultaneous ffmpeg jobs.")
    _add_operation_args(batch)

    presets = sub.add_parser("presets", help="List presets as JSON.")
    presets.add_argument("--category", default=None, help="Only this category.")

    sub.add_parser("check", help="Report ffmpeg availability.")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    settings = Settings.from_env(".env")
    configure_logging(settings.log_level)

    if args.command == "presets":
        payload = [preset.model_dump(exclude_none=True) for preset in list_presets(args.category)]
        print(json.dumps(payload, indent=2))
        return 0

    if args.command == "check":
        status = check_engine(settings.ffmpeg_path)
        print(json.dumps({"available": status.available, "path": status.path, "version": status.version}, indent=2))
        return 0 if status.available else 1

    try:
        operations = load_operations(args.operations, args.preset)
    except (ValueError, OSError) as exc:
        # ValidationError is a ValueError
        print(f"Invalid operations: {exc}", file=sys.stderr)
        return 2

    if args.command == "process":
        processor = build_processor(settings)
        result = asyncio.run(processor.process_file(args.input, args.output, operations, args.overwrite))
        print(json.dumps(result.model_dump(exclude_none=True), indent=2))
        return 0 if result.success else 1

    if args.concurrency is not None and args.concurrency < 1:
        print("--concurrency must be at least 1", file=sys.stderr)
        return 2
    processor = build_processor(settings, args.concurrency)
    try:
        batch = asyncio.run(
            processor.batch_process(
                args.input_dir,
                args.output_dir,
                operations,
                file_pattern=args.pattern,
                overwrite=args.overwrite,
                suffix=args.suffix,
                output_format=args.output_format,
            )
        )
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 2
    print(json.dumps(batch.model_dump(exclude_none=True), indent=2))
    return 0 if batch.failed_files == 0 else 1


if __name__ == "__main__":
    raise SystemExit(main())
