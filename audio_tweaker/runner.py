from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from audio_tweaker.compiler import BaseCompiler, CommandPlan
from audio_tweaker.engine import EngineError, FFmpegEngine
from audio_tweaker.models import OperationSet, ProcessingResult
from audio_tweaker.paths import check_existing_output, ensure_output_directory, validate_input_file

log = logging.getLogger("audio_tweaker.runner")


@dataclass(frozen=True)
class Job:
    input_paths: Tuple[str, ...]
    output_path: str
    operations: OperationSet
    overwrite: bool = False

    @classmethod
    def single(cls, input_path: str, output_path: str, operations: OperationSet, overwrite: bool = False) -> "Job":
        return cls(input_paths=(input_path,), output_path=output_path, operations=operations, overwrite=overwrite)

    @property
    def input_path(self) -> str:
        return ", ".join(self.input_paths)


class JobRunner:
    """Drives one Job to a terminal ``ProcessingResult``.

    validate input -> prepare output -> compile -> execute. Every failure on
    the way is reported in the result; ``run`` never raises.
    """

    def __init__(self, compiler: BaseCompiler, engine: FFmpegEngine):
        self.compiler = compiler
        self.engine = engine

    def _engine_inputs(self, inputs: Sequence[str], operations: OperationSet) -> List[str]:
        """A single input carrying a layering block is repeated once per layer."""
        advanced = operations.advanced
        if (
            self.compiler.supports_advanced
            and len(inputs) == 1
            and advanced is not None
            and advanced.layering is not None
        ):
            return list(inputs) * len(advanced.layering.layers)
        return list(inputs)

    async def run(self, job: Job) -> ProcessingResult:
        started = time.perf_counter()
        log.info("Job started: %s -> %s", job.input_path, job.output_path)
        output_path = job.output_path
        try:
            inputs = [validate_input_file(path) for path in job.input_paths]
            output_path = ensure_output_directory(job.output_path)
            check_existing_output(output_path, job.overwrite)
            engine_inputs = self._engine_inputs(inputs, job.operations)
            plan: CommandPlan = self.compiler.compile(job.operations, input_count=len(engine_inputs))
            await self.engine.execute(plan, engine_inputs, output_path)
        except (ValueError, OSError, EngineError) as exc:
            return self._result(job, output_path, started, error=str(exc))
        except Exception as exc:
            log.exception("Unexpected failure in job %s", job.output_path)
            return self._result(job, output_path, started, error=f"Unexpected error: {exc}")
        return self._result(job, output_path, started)

    def _result(self, job: Job, output_path: str, started: float, error: Optional[str] = None) -> ProcessingResult:
        elapsed_ms = int(round((time.perf_counter() - started) * 1000))
        if error is None:
            log.info("Job finished in %d ms: %s", elapsed_ms, output_path)
        else:
            log.warning("Job failed after %d ms: %s (%s)", elapsed_ms, output_path, error)
        return ProcessingResult(
            success=error is None,
            input_path=job.input_path,
            output_path=output_path,
            processing_time_ms=elapsed_ms,
            operations=job.operations,
            error=error,
        )
