from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from treasury_mtm.config.models import EngineSettings, ValuationRequest
from treasury_mtm.market_data.validation import (
    MarketDataValidationError,
    validate_curve_series,
    validate_spot_series,
)


def _read_structured(path: str | Path) -> Any:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file does not exist: {path}")

    text = path.read_text(encoding="utf-8")

    try:
        if path.suffix.lower() in {".yaml", ".yml"}:
            return yaml.safe_load(text)
        if path.suffix.lower() == ".json":
            return json.loads(text)
    except Exception as e:
        raise ValueError(f"Failed to parse {path.name}: {e}") from e

    raise ValueError("Input path must be YAML or JSON.")


def load_settings(path: str | Path) -> EngineSettings:
    """
    Load EngineSettings from YAML or JSON.

    Automatically validates using Pydantic v2.
    """
    raw = _read_structured(path) or {}
    try:
        return EngineSettings.model_validate(raw)
    except ValidationError as e:
        raise ValueError(f"Invalid EngineSettings: {e}") from e


def load_request(path: str | Path) -> ValuationRequest:
    """
    Load a ValuationRequest from YAML or JSON.

    Schema validation (positive rates, unique curve maturities, dates) is
    done by Pydantic; series-level checks (one observation per date) by
    `market_data.validation`. Both surface as ValueError.
    """
    raw = _read_structured(path) or {}
    try:
        request = ValuationRequest.model_validate(raw)
    except ValidationError as e:
        raise ValueError(f"Invalid ValuationRequest: {e}") from e

    try:
        validate_spot_series(request.spot_rates)
        validate_curve_series(request.forward_curves)
    except MarketDataValidationError as e:
        raise ValueError(f"Invalid market data: {e}") from e

    return request
