from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

POINTS_CSV = "x,y\n0,1\n1,3\n2,5\n3,\n4,9\n"


@pytest.fixture
def project_root(tmp_path: Path, monkeypatch) -> Path:
    """A project root with a points file, used through NREPORTING_ROOT."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (data_dir / "points.csv").write_text(POINTS_CSV, encoding="utf-8")

    monkeypatch.setenv("NREPORTING_ROOT", str(tmp_path))
    for name in ("NREPORTING_DATA_FILE", "NREPORTING_EXPERIMENT", "MLFLOW_TRACKING_URI"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


@pytest.fixture
def mock_mlflow(monkeypatch) -> MagicMock:
    mock = MagicMock()
    mock.start_run.return_value.__enter__.return_value.info.run_id = "run-123"
    monkeypatch.setattr("nreporting.fit.mlflow", mock)
    return mock
