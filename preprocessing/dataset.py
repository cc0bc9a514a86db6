import json
import logging
import os
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, List, Literal, Mapping, Optional, Tuple

import pandas as pd
import polars as pl

from preprocessing.cells import Cell
from utils.consts import POLARS_SIZE_THRESHOLD_MB

logger = logging.getLogger(__name__)

Engine = Literal["pandas", "polars"]
Row = Mapping[str, Cell]

_NULL_CELL = Cell.of(None)


class DatasetParseError(ValueError):
    """Raised when a file cannot be turned into a tabular dataset."""


class Dataset:
    """
    Immutable, ordered rows of cells.

    Columns are taken from the keys of the first row. Later rows may carry
    more or fewer keys; a key absent from a row reads as a null cell.
    """

    def __init__(
        self,
        records: Iterable[Mapping[str, Any]],
        name: str = "dataset",
        path: Optional[str] = None,
        engine: Optional[Engine] = None
    ):
        rows = []
        for index, record in enumerate(records):
            if not isinstance(record, Mapping):
                raise DatasetParseError(
                    f"Row {index} is a {type(record).__name__}, expected an object of column values"
                )
            rows.append(MappingProxyType({str(key): Cell.of(value) for key, value in record.items()}))

        self._rows: Tuple[Row, ...] = tuple(rows)
        self._columns: Tuple[str, ...] = tuple(self._rows[0].keys()) if self._rows else ()
        self.name = name
        self.path = Path(path) if path else None
        self.file_size_mb = os.path.getsize(path) / (1024 * 1024) if path else 0.0
        self._engine = engine

    @property
    def rows(self) -> Tuple[Row, ...]:
        return self._rows

    @property
    def columns(self) -> List[str]:
        return list(self._columns)

    @property
    def engine(self) -> Optional[Engine]:
        return self._engine

    @property
    def is_empty(self) -> bool:
        return not self._rows or not self._columns

    def __len__(self) -> int:
        return len(self._rows)

    def column(self, name: str) -> List[Cell]:
        return [row.get(name, _NULL_CELL) for row in self._rows]

    def head(self, n: int) -> List[dict]:
        return [{key: cell.to_json() for key, cell in row.items()} for row in self._rows[:n]]

    def get_info(self) -> dict:
        return {
            "name": self.name,
            "path": str(self.path) if self.path else None,
            "file_size_mb": round(self.file_size_mb, 2),
            "engine": self._engine,
            "rows": len(self._rows),
            "columns": len(self._columns)
        }

    @staticmethod
    def recommended_engine(path: str) -> Engine:
        size_mb = os.path.getsize(path) / (1024 * 1024)
        return "polars" if size_mb > POLARS_SIZE_THRESHOLD_MB else "pandas"

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]], name: str = "dataset") -> "Dataset":
        return cls(records, name=name)

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame, name: str = "dataframe") -> "Dataset":
        return cls(df.to_dict(orient="records"), name=name, engine="pandas")

    @classmethod
    def from_file(cls, path: str, engine: Optional[Engine] = None) -> "Dataset":
        ext = Path(path).suffix.lower()
        if ext == ".csv":
            return cls.from_csv(path, engine=engine)
        if ext == ".json":
            return cls.from_json(path)
        raise DatasetParseError(f"Unsupported file format: {ext}")

    @classmethod
    def from_csv(cls, path: str, engine: Optional[Engine] = None) -> "Dataset":
        engine = engine or cls.recommended_engine(path)
        name = Path(path).name

        if engine == "polars":
            records = cls._read_csv_polars(path)
        else:
            records = cls._read_csv_pandas(path)

        logger.debug("Read %d rows from %s with %s", len(records), path, engine)
        return cls(records, name=name, path=path, engine=engine)

    @classmethod
    def from_json(cls, path: str) -> "Dataset":
        try:
            with open(path, encoding="utf-8") as fh:
                payload = json.load(fh)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DatasetParseError(f"Invalid JSON in {path}: {e}") from e

        if isinstance(payload, dict):
            payload = [payload]
        if not isinstance(payload, list):
            raise DatasetParseError(f"Expected a JSON array of objects in {path}")

        return cls(payload, name=Path(path).name, path=path, engine="pandas")

    @staticmethod
    def _read_csv_pandas(path: str) -> List[dict]:
        try:
            # Every cell stays text; classification decides what "NA" or "" means.
            df = pd.read_csv(path, dtype=str, keep_default_na=False, skip_blank_lines=True)
        except pd.errors.EmptyDataError:
            return []
        except (pd.errors.ParserError, UnicodeDecodeError) as e:
            raise DatasetParseError(f"Invalid CSV in {path}: {e}") from e
        return df.to_dict(orient="records")

    @staticmethod
    def _read_csv_polars(path: str) -> List[dict]:
        try:
            df = pl.read_csv(path, infer_schema_length=0)
        except pl.exceptions.NoDataError:
            return []
        except pl.exceptions.PolarsError as e:
            raise DatasetParseError(f"Invalid CSV in {path}: {e}") from e
        return df.to_dicts()
