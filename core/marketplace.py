import math
from datetime import datetime, timezone
from typing import Dict, Any, Optional

from core.report import quality_label
from utils.consts import (
    MARKETPLACE_MIN_SCORE, MARKETPLACE_MIN_BASE_PRICE, MARKETPLACE_PRICE_PER_BAND,
    MARKETPLACE_ROWS_PER_BAND, MARKETPLACE_MAX_QUALITY_BONUS
)


def is_marketplace_eligible(score: int) -> bool:
    return score >= MARKETPLACE_MIN_SCORE


def suggested_price(dataset_size: int, quality_score: int) -> int:
    """Base price per started 1000-row band, plus up to 20 for quality."""
    base = max(
        MARKETPLACE_MIN_BASE_PRICE,
        math.ceil(dataset_size / MARKETPLACE_ROWS_PER_BAND) * MARKETPLACE_PRICE_PER_BAND
    )
    bonus = math.floor(quality_score / 100 * MARKETPLACE_MAX_QUALITY_BONUS + 0.5)
    return base + bonus


def build_listing(
    file_name: str,
    quality_score: int,
    dataset_size: int,
    timestamp: Optional[datetime] = None
) -> Dict[str, Any]:
    if not is_marketplace_eligible(quality_score):
        raise ValueError(
            f"Quality score {quality_score} is below the marketplace minimum of {MARKETPLACE_MIN_SCORE}"
        )

    return {
        "fileName": file_name,
        "qualityScore": quality_score,
        "datasetSize": dataset_size,
        "suggestedPrice": suggested_price(dataset_size, quality_score),
        "qualityLabel": quality_label(quality_score),
        "priceLocked": True,
        "timestamp": (timestamp or datetime.now(timezone.utc)).isoformat()
    }
