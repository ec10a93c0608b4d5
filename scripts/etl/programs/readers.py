from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any, Dict, List

CSV_SUFFIXES = (".csv", ".tsv", ".txt")


def read_json(path: Path) -> List[Any]:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict) and isinstance(data.get("programs"), list):
        return data["programs"]
    if isinstance(data, list):
        return data
    raise ValueError(f"{path}: expected a list of records or an object with a 'programs' list")


def read_delimited(path: Path) -> List[Dict[str, Any]]:
    with open(path, "r", encoding="utf-8-sig", newline="") as f:
        sample = f.read(4096)
        f.seek(0)
        try:
            dialect = csv.Sniffer().sniff(sample, delimiters="\t,;")
        except csv.Error:
            dialect = csv.excel_tab if "\t" in sample else csv.excel
        reader = csv.DictReader(f, dialect=dialect)
        rows: List[Dict[str, Any]] = []
        for row in reader:
            record = {(k or "").strip(): v for k, v in row.items() if k}
            if any((v or "").strip() for v in record.values() if isinstance(v, str)):
                rows.append(record)
        return rows


def read_records(path: Path) -> List[Any]:
    """Load raw program records from a JSON or CSV/TSV file."""
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".json":
        return read_json(path)
    if suffix in CSV_SUFFIXES:
        return read_delimited(path)
    raise ValueError(f"Unsupported input format: {path.name}")
