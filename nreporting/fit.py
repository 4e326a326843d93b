from __future__ import annotations

import csv
import logging
import math
import subprocess
from pathlib import Path
from typing import Any

import mlflow
import yaml

from nreporting.config import load_settings
from nreporting.registry import current_line_path, promote, save_line
from nreporting.regression import fit_line

logger = logging.getLogger(__name__)


def _get_git_commit_sha(root_dir: Path) -> str:
    """Return `git rev-parse HEAD`, or empty string if unavailable."""
    try:
        out = subprocess.check_output(
            ["git", "rev-parse", "HEAD"],
            cwd=str(root_dir),
            stderr=subprocess.DEVNULL,
            text=True,
        )
    except (OSError, subprocess.CalledProcessError):
        return ""
    return out.strip()


def _get_data_dvc_md5(data_path: Path) -> str:
    """
    Parse the `.dvc` pointer next to the data file and return `outs[0].md5`.
    Returns empty string if the pointer does not exist or is invalid.
    """
    dvc_path = data_path.with_name(data_path.name + ".dvc")
    if not dvc_path.exists():
        return ""

    try:
        doc = yaml.safe_load(dvc_path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Could not read DVC pointer %s: %s", dvc_path, e)
        return ""

    if not isinstance(doc, dict):
        return ""
    outs = doc.get("outs")
    if not isinstance(outs, list) or not outs or not isinstance(outs[0], dict):
        return ""

    md5 = outs[0].get("md5")
    return str(md5) if md5 else ""


def _ensure_points_materialized(root_dir: Path, data_path: Path) -> Path:
    """
    Ensure the points CSV exists, running `dvc pull` when only its `.dvc`
    pointer is present.
    """
    if data_path.exists():
        return data_path

    dvc_path = data_path.with_name(data_path.name + ".dvc")
    if not dvc_path.exists():
        raise FileNotFoundError(
            f"Points file not found and no DVC pointer present: {data_path} (and {dvc_path})"
        )

    logger.info("Pulling %s with dvc", data_path)
    proc = subprocess.run(
        ["dvc", "pull", str(data_path)],
        cwd=str(root_dir),
        text=True,
        capture_output=True,
    )
    if proc.returncode != 0:
        out = (proc.stdout or "") + ("\n" + proc.stderr if proc.stderr else "")
        raise RuntimeError(
            f"Failed to materialize points with `dvc pull {data_path}`.\n"
            f"Exit code: {proc.returncode}\n"
            f"Output:\n{out.strip()}"
        )

    if not data_path.exists():
        raise RuntimeError(f"dvc pull reported success but {data_path} is still missing.")
    return data_path


def read_points_csv(csv_path: Path, delimiter: str = ",") -> list[tuple[float, float]]:
    """
    Read `(x, y)` pairs from a CSV with `x` and `y` header columns.

    Rows with an empty `y` cell are skipped; non-numeric or non-finite cells
    raise ValueError.
    """
    csv_path = Path(csv_path)
    if not csv_path.exists():
        raise FileNotFoundError(f"Points file not found: {csv_path}")

    points: list[tuple[float, float]] = []
    with csv_path.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f, delimiter=delimiter)
        if reader.fieldnames is None:
            raise ValueError("CSV has no header row")

        columns = {name.strip(): name for name in reader.fieldnames}
        if "x" not in columns or "y" not in columns:
            raise ValueError("CSV must have both an 'x' and a 'y' column")

        for i, row in enumerate(reader, start=1):
            raw_x = (row.get(columns["x"]) or "").strip()
            raw_y = (row.get(columns["y"]) or "").strip()
            if not raw_y:
                continue
            try:
                x, y = float(raw_x), float(raw_y)
            except ValueError as e:
                raise ValueError(f"Invalid point on data row {i}: ({raw_x!r}, {raw_y!r})") from e
            # float() also accepts nan/inf
            if not (math.isfinite(x) and math.isfinite(y)):
                raise ValueError(f"Invalid point on data row {i}: ({raw_x!r}, {raw_y!r})")
            points.append((x, y))

    if not points:
        raise ValueError("CSV contained 0 valid points")
    return points


def fit_and_promote(fitter: str, root: Path | None = None) -> dict[str, Any]:
    """
    Fit a line to the configured points file and promote it as the current line.

    Records traceability: who fitted it, the data DVC md5, the git commit and
    the MLflow run id holding the line artifact.
    """
    fitter_clean = (fitter or "").strip()
    if not fitter_clean:
        raise ValueError("fitter must be a non-empty string")

    settings = load_settings(root)
    root_dir = settings.root

    data_path = _ensure_points_materialized(root_dir, settings.data_file)
    result = fit_line(read_points_csv(data_path))
    line = result.line

    data_dvc_md5 = _get_data_dvc_md5(data_path)
    git_commit = _get_git_commit_sha(root_dir)

    mlflow.set_tracking_uri(settings.tracking_uri)
    mlflow.set_experiment(settings.experiment)

    line_path = current_line_path(root_dir)

    with mlflow.start_run() as run:
        run_id = run.info.run_id

        mlflow.log_param("fitter", fitter_clean)
        mlflow.log_param("data_dvc_md5", data_dvc_md5)
        mlflow.log_param("git_commit", git_commit)

        mlflow.log_metric("a", line.a)
        mlflow.log_metric("b", line.b)
        mlflow.log_metric("r2", result.r2)
        mlflow.log_metric("n_points", result.n_points)

        save_line(line, line_path)
        mlflow.log_artifact(str(line_path), artifact_path="line")

    logger.info("Fitted %s (%d points) in run %s", line, result.n_points, run_id)

    provenance = {
        "run_id": run_id,
        "fitter": fitter_clean,
        "data_dvc_md5": data_dvc_md5,
        "git_commit": git_commit,
    }
    return promote(result, provenance, root_dir)
