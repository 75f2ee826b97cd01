from __future__ import annotations

import io
import json
from collections.abc import Sequence
from typing import Any

import pandas as pd

from ..domain.models import DimensionScore

SCORE_COLUMNS = [
    "DimensionID",
    "Domain",
    "Polarity",
    "Mean",
    "SD",
    "Mean-SD",
    "Mean+SD",
    "Risk",
    "Semaphore",
    "Action",
    "SampleSize",
]


def _to_iso(val):
    if hasattr(val, "isoformat"):
        try:
            return val.isoformat()
        except Exception:
            return str(val)
    return val


def score_table_frame(scores: Sequence[DimensionScore]) -> pd.DataFrame:
    """One row per dimension, means and deviations rounded to two decimals."""
    rows = [
        {
            "DimensionID": s.dimension_id,
            "Domain": s.domain,
            "Polarity": s.polarity,
            "Mean": round(s.mean, 2),
            "SD": round(s.standard_deviation, 2),
            "Mean-SD": round(s.mean_minus_sd, 2),
            "Mean+SD": round(s.mean_plus_sd, 2),
            "Risk": s.risk_category,
            "Semaphore": s.semaphore,
            "Action": s.recommended_action,
            "SampleSize": s.sample_size,
        }
        for s in scores
    ]
    return pd.DataFrame(rows, columns=SCORE_COLUMNS)


def make_json_export_payload(
    batch_id: int, scores_df: pd.DataFrame, readiness: dict[str, Any] | None = None
) -> str:
    payload = {
        "batch_id": batch_id,
        "readiness": readiness or {},
        "scores": scores_df.map(_to_iso).to_dict(orient="records"),
    }
    return json.dumps(payload, indent=2, ensure_ascii=False)


def make_xlsx_export_bytes(scores_df: pd.DataFrame | None) -> bytes:
    """Create a single-sheet Excel export of the score table."""

    if scores_df is None:
        scores_df = pd.DataFrame(columns=SCORE_COLUMNS)

    scores_df = scores_df.copy()
    # Guarantee column ordering and presence for consumers opening the sheet in Excel
    for column in SCORE_COLUMNS:
        if column not in scores_df.columns:
            scores_df[column] = pd.NA
    scores_df = scores_df[SCORE_COLUMNS]

    bio = io.BytesIO()
    with pd.ExcelWriter(bio, engine="xlsxwriter") as writer:
        scores_df.to_excel(writer, index=False, sheet_name="Scores")
        worksheet = writer.sheets["Scores"]
        worksheet.set_column(1, 1, 40)
        worksheet.set_column(9, 9, 36)
    return bio.getvalue()
