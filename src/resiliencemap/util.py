"""Build helpers: logging, output directories, audit hashes, value formatting."""

from __future__ import annotations

import hashlib
import json
import logging
import math
import subprocess
from functools import partial
from pathlib import Path
from typing import Any, Iterable


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
MISSING = "N/A"

# Third-party loggers that flood DEBUG output with per-request detail.
_QUIET_LOGGERS = ("urllib3", "pyproj")
_HASH_CHUNK = 1 << 20


def setup_logging(log_file: Path | None = None, *, verbose: bool = False) -> logging.Logger:
    """Send dashboard logs to stderr and, when `log_file` is set, a build log.

    Any handlers from a previous call are closed first, so repeated CLI runs in
    one process do not duplicate output.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    formatter = logging.Formatter(LOG_FORMAT)
    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        build_log = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        build_log.setFormatter(formatter)
        root.addHandler(build_log)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return logging.getLogger("resiliencemap")


def ensure_directories(paths: Iterable[Path]) -> list[Path]:
    """Create missing build directories; returns the ones that were new."""
    created: list[Path] = []
    for path in dict.fromkeys(paths):
        if path.is_dir():
            continue
        path.mkdir(parents=True, exist_ok=True)
        created.append(path)
    return created


def write_json(path: Path, payload: Any, *, indent: int | None = 2) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=indent, ensure_ascii=False)
        fh.write("\n")


def sha256_file(path: Path) -> str:
    """Hex digest of the config file, recorded in the build manifest."""
    digest = hashlib.sha256()
    with path.open("rb") as fh:
        for chunk in iter(partial(fh.read, _HASH_CHUNK), b""):
            digest.update(chunk)
    return digest.hexdigest()


def detect_git_commit(repo_dir: Path) -> str | None:
    """Commit of the checkout holding the config, or None outside git."""
    try:
        proc = subprocess.run(
            ["git", "-C", str(repo_dir), "rev-parse", "--verify", "--quiet", "HEAD"],
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError:
        return None
    if proc.returncode != 0:
        return None
    return proc.stdout.strip() or None


def as_number(value: Any) -> float | None:
    """Numeric value or None for null, NaN, booleans and non-numbers."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if math.isnan(value):
        return None
    return float(value)


def format_fixed(value: Any, decimals: int) -> str:
    number = as_number(value)
    if number is None:
        return MISSING
    return f"{number:.{decimals}f}"


def format_count(value: Any) -> str:
    """Whole-number display; fractional counts are rounded."""
    number = as_number(value)
    if number is None or not math.isfinite(number):
        return MISSING
    return f"{number:.0f}"
