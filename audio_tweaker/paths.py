from __future__ import annotations

import glob
import logging
import os
import re
from typing import List, Optional

log = logging.getLogger("audio_tweaker.paths")

SUPPORTED_EXTENSIONS = {".mp3", ".wav", ".ogg", ".flac", ".m4a", ".aac", ".aif", ".aiff"}
DEFAULT_PATTERN = "*.{" + ",".join(sorted(ext.lstrip(".") for ext in SUPPORTED_EXTENSIONS)) + "}"
DEFAULT_SUFFIX = "_processed"

_BRACE_RE = re.compile(r"\{([^{}]*)\}")


def _normalize_path(path: str) -> str:
    return os.path.abspath(os.path.expanduser(path))


def expand_braces(pattern: str) -> List[str]:
    """Expand ``*.{mp3,wav}`` into ``["*.mp3", "*.wav"]``; nested groups expand left to right."""
    match = _BRACE_RE.search(pattern)
    if match is None:
        return [pattern]
    head, tail = pattern[: match.start()], pattern[match.end() :]
    expanded: List[str] = []
    for option in match.group(1).split(","):
        expanded.extend(expand_braces(head + option + tail))
    return expanded


def validate_input_file(path: str) -> str:
    """Return the absolute input path or raise ``ValueError`` describing the problem."""
    resolved = _normalize_path(path)
    if not os.path.exists(resolved):
        raise ValueError(f"Input file not found: {path}")
    if not os.path.isfile(resolved):
        raise ValueError(f"Input path is not a regular file: {path}")
    if not os.access(resolved, os.R_OK):
        raise ValueError(f"Input file is not readable: {path}")
    ext = os.path.splitext(resolved)[1].lower()
    if ext not in SUPPORTED_EXTENSIONS:
        supported = ", ".join(sorted(SUPPORTED_EXTENSIONS))
        raise ValueError(f"Unsupported input format '{ext or '(none)'}'. Supported: {supported}")
    return resolved


def ensure_output_directory(output_path: str) -> str:
    resolved = _normalize_path(output_path)
    directory = os.path.dirname(resolved)
    if not os.path.isdir(directory):
        log.debug("Creating output directory %s", directory)
        os.makedirs(directory, exist_ok=True)
    if not os.access(directory, os.W_OK):
        raise ValueError(f"Output directory is not writable: {directory}")
    return resolved


def check_existing_output(output_path: str, overwrite: bool) -> None:
    if not os.path.exists(output_path):
        return
    if not overwrite:
        raise ValueError(f"Output file already exists: {output_path} (set overwrite=true to replace it)")
    log.warning("Overwriting existing output %s", output_path)


def discover_files(directory: str, pattern: Optional[str] = None) -> List[str]:
    """Resolve ``directory`` + glob ``pattern`` to a sorted, de-duplicated file list.

    Without a pattern, every file with a supported extension is returned.
    """
    root = _normalize_path(directory)
    if not os.path.isdir(root):
        raise ValueError(f"no_files_found: Input directory not found: {directory}")

    found = set()
    for expanded in expand_braces(pattern or DEFAULT_PATTERN):
        for match in glob.glob(os.path.join(glob.escape(root), expanded), recursive="**" in expanded):
            if os.path.isfile(match):
                found.add(os.path.abspath(match))

    files = sorted(found)
    if pattern is None:
        files = [path for path in files if os.path.splitext(path)[1].lower() in SUPPORTED_EXTENSIONS]
    log.info("Discovered %d file(s) in %s", len(files), root)
    return files


def derive_output_path(
    input_path: str,
    output_directory: str,
    suffix: str = DEFAULT_SUFFIX,
    output_format: Optional[str] = None,
) -> str:
    """``<output_directory>/<stem><suffix><ext>``; ``ext`` is ``output_format`` or the input's own."""
    stem, ext = os.path.splitext(os.path.basename(input_path))
    if output_format:
        ext = "." + output_format.lstrip(".")
    return os.path.join(output_directory, f"{stem}{suffix}{ext}")
