from __future__ import annotations

import asyncio
import os
from typing import List, Optional, Sequence, Tuple

import pytest

from audio_tweaker.compiler import AdvancedCompiler, BaseCompiler, CommandPlan
from audio_tweaker.engine import EngineError
from audio_tweaker.processor import AudioProcessor


class FakeEngine:
    """Stands in for FFmpegEngine: records every plan and writes a placeholder output."""

    def __init__(self, fail_on: Optional[Sequence[str]] = None, delay_s: float = 0.0):
        self.fail_on = set(fail_on or [])
        self.delay_s = delay_s
        self.calls: List[Tuple[CommandPlan, List[str], str]] = []
        self.running = 0
        self.max_running = 0

    async def execute(self, plan: CommandPlan, input_paths: Sequence[str], output_path: str) -> None:
        self.calls.append((plan, list(input_paths), output_path))
        self.running += 1
        self.max_running = max(self.max_running, self.running)
        try:
            await asyncio.sleep(self.delay_s)
            if os.path.basename(output_path) in self.fail_on:
                raise EngineError("ffmpeg processing failed (rc=1): Invalid data found when processing input", returncode=1)
            with open(output_path, "wb") as f:
                f.write(b"processed")
        finally:
            self.running -= 1


def make_audio_file(directory, name: str) -> str:
    path = os.path.join(str(directory), name)
    with open(path, "wb") as f:
        f.write(b"RIFF\x00\x00\x00\x00WAVE")
    return path


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture
def processor(fake_engine):
    return AudioProcessor(compiler=AdvancedCompiler(), engine=fake_engine, concurrency=2)


@pytest.fixture
def base_processor(fake_engine):
    return AudioProcessor(compiler=BaseCompiler(), engine=fake_engine, concurrency=2)


@pytest.fixture
def input_wav(tmp_path):
    return make_audio_file(tmp_path, "input.wav")
