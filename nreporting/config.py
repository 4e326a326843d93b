from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import yaml

DEFAULT_DATA_FILE = "data/points.csv"
DEFAULT_EXPERIMENT = "nreporting-regression-line"


def _project_root(root: Path | None = None) -> Path:
    if root is not None:
        return Path(root)
    env_root = os.getenv("NREPORTING_ROOT")
    if env_root:
        return Path(env_root.strip())
    # .../nreporting/config.py -> repository root
    return Path(__file__).resolve().parents[1]


@dataclass(frozen=True)
class Settings:
    root: Path
    data_file: Path
    experiment: str
    tracking_uri: str


def load_settings(root: Path | None = None) -> Settings:
    """
    Build settings from `<root>/config.yaml` (optional) and the environment.

    Environment variables win over the file: NREPORTING_DATA_FILE,
    NREPORTING_EXPERIMENT and MLFLOW_TRACKING_URI. A config file that is not
    a YAML mapping raises ValueError.
    """
    root_dir = _project_root(root)
    config_path = root_dir / "config.yaml"

    doc: dict = {}
    if config_path.exists():
        try:
            loaded = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ValueError(f"{config_path} is not valid YAML: {e}") from e
        if loaded is not None and not isinstance(loaded, dict):
            raise ValueError(f"{config_path} must contain a mapping")
        doc = loaded or {}

    data_file = os.getenv("NREPORTING_DATA_FILE") or str(doc.get("data_file") or DEFAULT_DATA_FILE)
    experiment = os.getenv("NREPORTING_EXPERIMENT") or str(doc.get("experiment") or DEFAULT_EXPERIMENT)
    tracking_uri = (
        os.getenv("MLFLOW_TRACKING_URI")
        or str(doc.get("tracking_uri") or "")
        or f"file:{(root_dir / 'mlruns').as_posix()}"
    )

    data_path = Path(data_file)
    if not data_path.is_absolute():
        data_path = root_dir / data_path

    return Settings(
        root=root_dir,
        data_file=data_path,
        experiment=experiment.strip(),
        tracking_uri=tracking_uri.strip(),
    )
