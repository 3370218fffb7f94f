"""ffmpeg-backed audio processing: operation compiler, job runner and batch queue."""

__version__ = "1.0.0"
