from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

import joblib

from nreporting.config import _project_root
from nreporting.regression import LineFit, RegressionLine

logger = logging.getLogger(__name__)

# Relative to the project root; stored as-is in the line record.
CURRENT_LINE_PATH = Path("models") / "current" / "line.pkl"
_CURRENT_RECORD = Path("metadata") / "current.json"
_FIT_LOG = Path("metadata") / "fit_log.jsonl"


def _utc_iso_now() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def current_line_path(root: Path | None = None) -> Path:
    return _project_root(root) / CURRENT_LINE_PATH


def save_line(line: RegressionLine, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    joblib.dump(line, path)
    return path


def load_line(path: Path) -> RegressionLine:
    obj = joblib.load(Path(path))
    if not isinstance(obj, RegressionLine):
        raise TypeError(f"{path} does not contain a RegressionLine (got {type(obj).__name__})")
    return obj


def line_record(result: LineFit, provenance: Mapping[str, Any]) -> dict[str, Any]:
    """
    The record describing a promoted line: its coefficients and fit quality,
    where its artifact lives and whatever provenance the caller tracked
    (run id, who fitted it, data and code versions).
    """
    line = result.line
    record: dict[str, Any] = dict(provenance)
    record.update(
        a=line.a,
        b=line.b,
        line=str(line),
        r2=result.r2,
        n_points=result.n_points,
        line_path=CURRENT_LINE_PATH.as_posix(),
        promoted_at_utc=_utc_iso_now(),
    )
    return record


def promote(result: LineFit, provenance: Mapping[str, Any], root: Path | None = None) -> dict[str, Any]:
    """
    Make `result` the current line.

    The record replaces `metadata/current.json` atomically and is appended to
    `metadata/fit_log.jsonl`. The line artifact itself is written by the caller
    to `current_line_path()`. Non-finite coefficients raise ValueError.
    """
    root_dir = _project_root(root)
    record = line_record(result, provenance)

    # allow_nan=False keeps NaN/Infinity out of the JSON record.
    payload = json.dumps(record, sort_keys=True, indent=2, ensure_ascii=False, allow_nan=False) + "\n"
    target = root_dir / _CURRENT_RECORD
    target.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(prefix="current.", suffix=".json.tmp", dir=str(target.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, target)
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)

    entry = dict(record, logged_at_utc=_utc_iso_now())
    with (root_dir / _FIT_LOG).open("a", encoding="utf-8", newline="\n") as f:
        f.write(json.dumps(entry, sort_keys=True, ensure_ascii=False) + "\n")

    logger.info("Promoted %s (r2=%.4f)", record["line"], result.r2)
    return record


def read_current(root: Path | None = None) -> dict[str, Any]:
    """Read the current line record. Returns {} if missing or invalid."""
    path = _project_root(root) / _CURRENT_RECORD
    if not path.exists():
        return {}

    try:
        raw = path.read_text(encoding="utf-8").strip()
        data = json.loads(raw) if raw else {}
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def load_current_line(root: Path | None = None) -> RegressionLine | None:
    """Load the artifact the current record points at, or None when nothing is promoted."""
    root_dir = _project_root(root)
    line_path_raw = str(read_current(root_dir).get("line_path") or "").strip()
    if not line_path_raw:
        return None

    line_path = Path(line_path_raw)
    if not line_path.is_absolute():
        line_path = root_dir / line_path
    return load_line(line_path)
