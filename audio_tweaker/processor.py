from __future__ import annotations

"""
AudioProcessor
==============

The one processor type. Its capabilities come from the injected compiler:
with a ``BaseCompiler`` only ``volume``/``format``/``effects`` are honoured and
the layering, variation and harmonic entry points refuse to run.

Single-file, preset and layering jobs run directly. Batches, variation sets
and harmonic sets fan out through the bounded ``ProcessingQueue``; their
results always come back in submission order.
"""

import asyncio
import logging
import os
import time
from typing import List, Optional, Sequence, Tuple

from audio_tweaker.compiler import BaseCompiler, get_compiler
from audio_tweaker.engine import FFmpegEngine
from audio_tweaker.layering import harmonic_intervals
from audio_tweaker.models import (
    MAX_LAYERS,
    AdvancedOperation,
    BatchResult,
    HarmonicsOperation,
    LayeringOperation,
    OperationSet,
    ProcessingResult,
    QueueStatus,
    VariationOperation,
)
from audio_tweaker.paths import (
    DEFAULT_SUFFIX,
    derive_output_path,
    discover_files,
    validate_input_file,
)
from audio_tweaker.queue import JobDiscardedError, ProcessingQueue
from audio_tweaker.runner import Job, JobRunner
from audio_tweaker.variations import generate_variations

log = logging.getLogger("audio_tweaker.processor")


class AudioProcessor:
    def __init__(
        self,
        compiler: Optional[BaseCompiler] = None,
        engine: Optional[FFmpegEngine] = None,
        concurrency: int = 2,
    ):
        self.compiler = compiler or get_compiler(True)
        self.engine = engine or FFmpegEngine()
        self.runner = JobRunner(self.compiler, self.engine)
        self.queue = ProcessingQueue(concurrency)

    # ------------------------------------------------------------------
    # Queue controls
    # ------------------------------------------------------------------
    def queue_status(self) -> QueueStatus:
        return self.queue.status()

    def pause(self) -> None:
        self.queue.pause()

    def resume(self) -> None:
        self.queue.resume()

    def clear(self) -> int:
        return self.queue.clear()

    # ------------------------------------------------------------------
    # Single jobs
    # ------------------------------------------------------------------
    async def process_file(
        self,
        input_path: str,
        output_path: str,
        operations: OperationSet,
        overwrite: bool = False,
    ) -> ProcessingResult:
        return await self.runner.run(Job.single(input_path, output_path, operations, overwrite))

    async def layer_sounds(
        self,
        input_paths: Sequence[str],
        output_path: str,
        layering: LayeringOperation,
        overwrite: bool = False,
    ) -> ProcessingResult:
        """Mix up to eight inputs; layer ``i`` shapes input ``i``."""
        self._require_advanced("layering")
        if not input_paths:
            raise ValueError("no_inputs: layer_sounds needs at least one input file.")
        if len(input_paths) > MAX_LAYERS:
            raise ValueError(f"too_many_inputs: layer_sounds accepts at most {MAX_LAYERS} input files.")
        operations = OperationSet(advanced=AdvancedOperation(layering=layering))
        job = Job(
            input_paths=tuple(input_paths),
            output_path=output_path,
            operations=operations,
            overwrite=overwrite,
        )
        return await self.runner.run(job)

    # ------------------------------------------------------------------
    # Fan-out through the queue
    # ------------------------------------------------------------------
    async def _run_queued(self, jobs: Sequence[Job]) -> List[ProcessingResult]:
        futures = [self.queue.submit(lambda job=job: self.runner.run(job)) for job in jobs]
        outcomes = await asyncio.gather(*futures, return_exceptions=True)
        results: List[ProcessingResult] = []
        for job, outcome in zip(jobs, outcomes):
            if isinstance(outcome, ProcessingResult):
                results.append(outcome)
                continue
            if isinstance(outcome, JobDiscardedError):
                error = str(outcome)
            else:
                log.error("Queued job %s ended abnormally: %r", job.output_path, outcome)
                error = f"Unexpected error: {outcome}"
            results.append(
                ProcessingResult(
                    success=False,
                    input_path=job.input_path,
                    output_path=job.output_path,
                    processing_time_ms=0,
                    operations=job.operations,
                    error=error,
                )
            )
        return results

    async def batch_process(
        self,
        input_directory: Optional[str],
        output_directory: Optional[str],
        operations: OperationSet,
        file_pattern: Optional[str] = None,
        overwrite: bool = False,
        input_file: Optional[str] = None,
        output_file: Optional[str] = None,
        suffix: str = DEFAULT_SUFFIX,
        output_format: Optional[str] = None,
    ) -> BatchResult:
        """Apply ``operations`` to every discovered file.

        Source is ``input_file`` or ``input_directory`` + ``file_pattern``.
        Destination is ``output_file`` (shared by every input, last writer
        wins) or ``output_directory`` + ``<stem><suffix><ext>``. An empty
        discovery raises ``no_files_found``.
        """
        started = time.perf_counter()
        if input_file:
            files = [input_file]
        elif input_directory:
            files = discover_files(input_directory, file_pattern)
        else:
            raise ValueError("invalid_arguments: Provide input_directory or input_file.")
        if not files:
            raise ValueError(f"no_files_found: No files match '{file_pattern or 'default pattern'}' in {input_directory}")
        if not output_file and not output_directory:
            raise ValueError("invalid_arguments: Provide output_directory or output_file.")

        jobs = []
        for path in files:
            destination = output_file or derive_output_path(path, output_directory, suffix, output_format)
            jobs.append(Job.single(path, destination, operations, overwrite))

        log.info("Batch started: %d file(s), concurrency %d", len(jobs), self.queue.concurrency)
        results = await self._run_queued(jobs)
        successful = sum(1 for result in results if result.success)
        batch = BatchResult(
            total_files=len(results),
            successful_files=successful,
            failed_files=len(results) - successful,
            results=results,
            total_processing_time_ms=int(round((time.perf_counter() - started) * 1000)),
        )
        log.info("Batch finished: %d ok, %d failed", batch.successful_files, batch.failed_files)
        return batch

    async def generate_variations(
        self,
        input_path: str,
        output_directory: str,
        variations: VariationOperation,
        base_operations: Optional[OperationSet] = None,
        overwrite: bool = False,
    ) -> Tuple[int, List[ProcessingResult]]:
        """Render ``variations.count`` perturbed copies; returns ``(seed, results)``."""
        self._require_advanced("variations")
        validate_input_file(input_path)
        seed, operation_sets = generate_variations(variations, base_operations)
        stem, ext = os.path.splitext(os.path.basename(input_path))
        jobs = [
            Job.single(
                input_path,
                os.path.join(output_directory, f"{stem}_var{index}{ext}"),
                operations,
                overwrite,
            )
            for index, operations in enumerate(operation_sets, start=1)
        ]
        log.info("Generating %d variation(s) with seed %d", len(jobs), seed)
        return seed, await self._run_queued(jobs)

    async def create_harmonics(
        self,
        input_path: str,
        output_directory: str,
        harmonics: HarmonicsOperation,
        overwrite: bool = False,
    ) -> List[ProcessingResult]:
        """One output per interval whose mix is above zero."""
        self._require_advanced("harmonics")
        validate_input_file(input_path)
        intervals = harmonic_intervals(harmonics)
        if not intervals:
            raise ValueError("no_harmonics: Set at least one interval mix level above 0.")
        stem, ext = os.path.splitext(os.path.basename(input_path))
        jobs = [
            Job.single(
                input_path,
                os.path.join(output_directory, f"{stem}_{interval.name}{ext}"),
                interval.operations(),
                overwrite,
            )
            for interval in intervals
        ]
        return await self._run_queued(jobs)

    def _require_advanced(self, feature: str) -> None:
        if not self.compiler.supports_advanced:
            raise ValueError(f"unsupported_operation: {feature} requires the advanced processor.")
