from __future__ import annotations

import logging
import threading
from typing import Any

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from nreporting.config import load_settings
from nreporting.fit import fit_and_promote
from nreporting.registry import load_current_line, read_current
from nreporting.regression import RegressionLine

logger = logging.getLogger(__name__)

_NO_LINE = "No line has been promoted yet. Call POST /fit first to fit and promote one."

_state_lock = threading.Lock()
_line: RegressionLine | None = None
_current_meta: dict[str, Any] = {}
_line_load_error: str = ""


def _load_line() -> None:
    """
    Load the current line record and artifact into module-global state.
    Never raises; records errors into `_line_load_error`.
    """
    global _line, _current_meta, _line_load_error

    meta: dict[str, Any] = {}
    line: RegressionLine | None = None
    err = ""

    try:
        root_dir = load_settings().root
        meta = read_current(root_dir)
        line = load_current_line(root_dir)
        if line is None:
            err = _NO_LINE
    except (OSError, TypeError, ValueError, EOFError) as e:
        logger.error("Failed to load current line: %s", e)
        err = f"Failed to load current line: {e}"

    with _state_lock:
        _current_meta = meta
        _line = line
        _line_load_error = err


app = FastAPI(title="Regression line service (MLflow + FastAPI)")


@app.on_event("startup")
def _startup() -> None:
    _load_line()


class FitRequest(BaseModel):
    fitter: str = Field(..., min_length=1, max_length=200)


class PredictRequest(BaseModel):
    x: float


def _current_line() -> tuple[RegressionLine, dict[str, Any]]:
    with _state_lock:
        line = _line
        meta = dict(_current_meta)
        err = _line_load_error

    if line is None:
        raise HTTPException(status_code=503, detail=err or _NO_LINE)
    return line, meta


@app.get("/health")
def health() -> dict[str, Any]:
    with _state_lock:
        meta = dict(_current_meta)

    return {"ok": True, "current": meta}


@app.get("/line")
def current_line() -> dict[str, Any]:
    line, _ = _current_line()
    return {"a": line.a, "b": line.b, "text": str(line)}


@app.post("/fit")
def fit(req: FitRequest) -> dict[str, Any]:
    try:
        current = fit_and_promote(fitter=req.fitter)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except Exception as e:
        logger.exception("Fit failed")
        raise HTTPException(status_code=500, detail=f"Fit failed: {e}") from e

    _load_line()
    _current_line()

    return {"ok": True, "current": current}


@app.post("/predict")
def predict(req: PredictRequest) -> dict[str, Any]:
    line, meta = _current_line()
    return {"y": line.predict_one(req.x), "line": str(line), "current": meta}
