from __future__ import annotations

import asyncio
import logging
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from audio_tweaker.compiler import CommandPlan
from audio_tweaker.directives import fmt

log = logging.getLogger("audio_tweaker.engine")

STDERR_TAIL_CHARS = 600


class EngineError(RuntimeError):
    def __init__(self, message: str, returncode: Optional[int] = None, command: Optional[str] = None):
        super().__init__(message)
        self.returncode = returncode
        self.command = command


@dataclass(frozen=True)
class EngineStatus:
    available: bool
    path: Optional[str]
    version: Optional[str] = None


def find_ffmpeg(explicit: Optional[str] = None) -> Optional[Path]:
    if explicit:
        candidate = Path(explicit)
        if candidate.exists():
            return candidate
        resolved = shutil.which(explicit)
        return Path(resolved) if resolved else None

    from_path = shutil.which("ffmpeg")
    if from_path:
        return Path(from_path)

    direct_candidates = [
        Path("/usr/local/bin/ffmpeg"),
        Path("/opt/homebrew/bin/ffmpeg"),
        Path.home() / "AppData" / "Local" / "Microsoft" / "WinGet" / "Links" / "ffmpeg.exe",
    ]
    for candidate in direct_candidates:
        if candidate.exists():
            return candidate

    pkg_root = Path.home() / "AppData" / "Local" / "Microsoft" / "WinGet" / "Packages"
    if pkg_root.exists():
        for candidate in pkg_root.glob("Gyan.FFmpeg.*/*/bin/ffmpeg.exe"):
            if candidate.exists():
                return candidate
    return None


class FFmpegEngine:
    """Runs one ``CommandPlan`` per call through the ffmpeg CLI."""

    def __init__(self, ffmpeg_path: Optional[str] = None, timeout_s: Optional[float] = None):
        self._explicit_path = ffmpeg_path
        self.timeout_s = timeout_s
        self._binary: Optional[str] = None

    @property
    def binary(self) -> str:
        if self._binary is None:
            found = find_ffmpeg(self._explicit_path)
            if found is None:
                raise EngineError("ffmpeg_not_found: ffmpeg binary not found on PATH.")
            self._binary = str(found)
        return self._binary

    def build_command(self, plan: CommandPlan, input_paths: Sequence[str], output_path: str) -> List[str]:
        cmd = [self.binary, "-hide_banner", "-loglevel", "error", "-y"]
        for path in input_paths:
            if plan.seek is not None:
                cmd.extend(["-ss", fmt(plan.seek)])
            cmd.extend(["-i", str(path)])
        if plan.duration is not None:
            cmd.extend(["-t", fmt(plan.duration)])

        if plan.graph:
            cmd.extend(["-filter_complex", plan.graph, "-map", f"[{plan.graph_output}]"])
        elif plan.filters:
            cmd.extend(["-af", plan.filter_chain])

        if plan.sample_rate:
            cmd.extend(["-ar", str(plan.sample_rate)])
        if plan.channels:
            cmd.extend(["-ac", str(plan.channels)])
        if plan.codec:
            cmd.extend(["-c:a", plan.codec])
        if plan.bitrate:
            cmd.extend(["-b:a", plan.bitrate])
        cmd.append(str(output_path))
        return cmd

    async def execute(self, plan: CommandPlan, input_paths: Sequence[str], output_path: str) -> None:
        cmd = self.build_command(plan, input_paths, output_path)
        command_line = shlex.join(cmd)
        log.debug("ffmpeg started: %s", command_line)

        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            _stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout_s)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            log.error("ffmpeg timed out after %ss: %s", self.timeout_s, output_path)
            raise EngineError(
                f"ffmpeg timed out after {self.timeout_s}s",
                command=command_line,
            ) from None

        if process.returncode != 0:
            detail = stderr.decode("utf-8", errors="replace").strip()[-STDERR_TAIL_CHARS:]
            log.error("ffmpeg failed (rc=%s): %s", process.returncode, detail)
            raise EngineError(
                f"ffmpeg processing failed (rc={process.returncode}): {detail or 'no output'}",
                returncode=process.returncode,
                command=command_line,
            )
        log.info("ffmpeg processing completed: %s", output_path)


def check_engine(ffmpeg_path: Optional[str] = None) -> EngineStatus:
    found = find_ffmpeg(ffmpeg_path)
    if found is None:
        log.warning("ffmpeg not found on system PATH")
        return EngineStatus(available=False, path=None)
    try:
        completed = subprocess.run(
            [str(found), "-version"],
            capture_output=True,
            text=True,
            timeout=10,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        log.warning("ffmpeg found at %s but version check failed: %s", found, exc)
        return EngineStatus(available=True, path=str(found))
    banner = completed.stdout.splitlines()[0] if completed.stdout else None
    return EngineStatus(available=True, path=str(found), version=banner)
