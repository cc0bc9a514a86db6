import hashlib
import json
from typing import Dict, Any, List

from preprocessing.cells import is_missing
from report_components.base_component import ReportComponent
from utils.consts import LOW_DUPLICATES_RATIO, MEDIUM_DUPLICATES_RATIO


class ExactDuplicateDetectionComponent(ReportComponent):
    """
    Detects exact duplicate rows and rows that hold nothing but missing values.
    """

    def analyze(self):
        rows = self.context.dataset.rows
        total_rows = len(rows)

        groups: Dict[str, Dict[str, Any]] = {}
        for row in rows:
            row_hash = self._hash_row(row)
            group = groups.setdefault(row_hash, {"row_hash": row_hash, "count": 0, "example": row})
            group["count"] += 1

        duplicate_rows = total_rows - len(groups)
        empty_rows = sum(1 for row in rows if all(is_missing(cell) for cell in row.values()))
        ratio = duplicate_rows / total_rows if total_rows else 0.0

        self.result = {
            "summary": {
                "total_rows": total_rows,
                "duplicate_rows": duplicate_rows,
                "duplicate_ratio": round(ratio, 5),
                "unique_rows": len(groups),
                "empty_rows": empty_rows
            },
            "groups": self._duplicate_groups(groups.values()),
            "risk_level": self._risk_level(ratio) if duplicate_rows else "none"
        }

    @staticmethod
    def _hash_row(row) -> str:
        # Keys are sorted so the same values in a different key order still collide.
        canonical = [[key, row[key].kind.value, row[key].canonical()] for key in sorted(row)]
        joined = json.dumps(canonical, ensure_ascii=False)
        return hashlib.md5(joined.encode("utf-8")).hexdigest()

    @staticmethod
    def _duplicate_groups(groups) -> List[Dict[str, Any]]:
        duplicated = [
            {
                "row_hash": group["row_hash"],
                "count": group["count"],
                "example": {key: cell.to_json() for key, cell in group["example"].items()}
            }
            for group in groups if group["count"] > 1
        ]
        return sorted(duplicated, key=lambda x: x["count"], reverse=True)

    @staticmethod
    def _risk_level(ratio: float) -> str:
        if ratio < LOW_DUPLICATES_RATIO:
            return "low"
        if ratio < MEDIUM_DUPLICATES_RATIO:
            return "medium"
        return "high"

    def summarize(self) -> dict:
        result = self._require_result()

        return {
            "duplicate_rows": result["summary"]["duplicate_rows"],
            "duplicate_ratio": result["summary"]["duplicate_ratio"],
            "duplicate_groups": len(result["groups"]),
            "empty_rows": result["summary"]["empty_rows"],
            "risk_level": result["risk_level"]
        }
