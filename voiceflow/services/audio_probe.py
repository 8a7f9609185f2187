"""Local audio inspection via ffprobe."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from fastapi.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)


def _probe_duration_sync(path: str) -> float | None:
    try:
        process = subprocess.run(
            [
                "ffprobe",
                "-v", "error",
                "-show_entries", "format=duration",
                "-of", "default=noprint_wrappers=1:nokey=1",
                path,
            ],
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            check=True,
        )
    except (OSError, subprocess.CalledProcessError) as exc:
        logger.warning("ffprobe could not read %s: %s", path, exc)
        return None

    raw = process.stdout.decode("utf-8", errors="replace").strip()
    try:
        return float(raw)
    except ValueError:
        logger.warning("ffprobe returned a non-numeric duration for %s: %r", path, raw)
        return None


async def probe_duration_seconds(path: str | Path) -> float | None:
    """Return the audio length in seconds, or ``None`` when it cannot be read."""

    return await run_in_threadpool(_probe_duration_sync, str(path))


__all__ = ["probe_duration_seconds"]
