import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Optional

import pandas as pd
import requests
from pydantic import BaseModel

from . import settings
from . import utils
from .schemas import sheet_columns

logger = logging.getLogger(__name__)


def rows_to_frame(rows: list[BaseModel], model: type[BaseModel]) -> pd.DataFrame:
    """Sheet-shaped frame (header aliases as columns) from validated rows."""
    return pd.DataFrame(
        [row.model_dump(mode="json", by_alias=True) for row in rows],
        columns=sheet_columns(model),
    )


def save_outputs(
    rows: list[BaseModel],
    model: type[BaseModel],
    day: Optional[date] = None,
    output_dir: Optional[Path] = None,
    filename_base: Optional[str] = None,
) -> Path:
    """Archives rows to a dated CSV, and to JSON when enabled in settings."""
    output_dir = output_dir or settings.OUTPUT_DIR
    output_dir.mkdir(parents=True, exist_ok=True)
    date_suffix = utils.get_date_suffix_for_filename(day)
    base = filename_base or settings.REPORT_FILENAME_BASE

    csv_path = output_dir / f"{base}_{date_suffix}.csv"
    rows_to_frame(rows, model).to_csv(csv_path, index=False)
    logger.info(f"✅ Report archived to: {csv_path}")

    if settings.SAVE_JSON_OUTPUT:
        json_path = output_dir / f"{base}_{date_suffix}.json"
        with open(json_path, "w", encoding="utf-8") as f:
            json_data = [row.model_dump(mode="json", by_alias=True) for row in rows]
            json.dump(json_data, f, indent=2, ensure_ascii=False)
        logger.info(f"✅ JSON output saved to: {json_path}")
    else:
        logger.info("INFO: Skipping JSON file save as per configuration.")

    return csv_path


def post_to_webhook(
    validated_data: list[BaseModel],
    metadata: dict[str, Any],
    report_type: str,
    webhook_url: Optional[str] = None,
) -> bool:
    """
    Posts the rows and a metadata summary to the webhook. Failures are logged
    and reported through the return value; they never abort a cycle.
    """
    url = webhook_url or settings.WEBHOOK_URL
    if not url:
        logger.warning("⚠️ WEBHOOK_URL not set. Skipping webhook post.")
        return False

    logger.info(f"🚀 Posting {report_type} data to webhook.")
    payload = {
        "reportType": report_type,
        "reportData": [
            item.model_dump(mode="json", by_alias=True) for item in validated_data
        ],
        "metadata": metadata,
    }

    try:
        response = requests.post(url, json=payload, timeout=15)
        response.raise_for_status()
        logger.info("✅ Data successfully posted to webhook.")
        return True
    except requests.exceptions.RequestException as e:
        logger.error(f"❌ Error posting to webhook: {e}")
        return False
