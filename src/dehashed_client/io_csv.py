"""CSV serialization helpers."""

from __future__ import annotations

import csv
from pathlib import Path

from .models import SearchEntry

CSV_FIELDS = [
    "query",
    "id",
    "email",
    "username",
    "password",
    "hashed_password",
    "ip_address",
    "name",
    "vin",
    "address",
    "phone",
    "database_name",
]


def entry_to_row(query: str, entry: SearchEntry) -> dict[str, str]:
    """Flatten one entry into a CSV row, empty cells for missing values."""
    row = {"query": query, "id": str(entry.id)}
    for name in CSV_FIELDS[2:]:
        value = getattr(entry, name)
        row[name] = "" if value is None else str(value)
    return row


def write_rows(path: str, rows: list[dict[str, str]]) -> None:
    """Write search rows to CSV with stable schema."""
    output_path = Path(path)
    with output_path.open("w", newline="", encoding="utf-8") as file_obj:
        writer = csv.DictWriter(file_obj, fieldnames=CSV_FIELDS)
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
