"""Flat CSV rendering of ledger entries."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable

CSV_HEADER = "Date,Type,Amount,Description,Author,Organization"


@dataclass(frozen=True)
class ExportRow:
    date: datetime
    kind: str
    amount: Decimal
    description: str
    author: str
    tenant_slug: str


def quote_field(value: str | None) -> str:
    """Wrap in double quotes, doubling any embedded quote."""
    return '"' + (value or "").replace('"', '""') + '"'


def unquote_field(field: str) -> str:
    """Inverse of quote_field."""
    if len(field) >= 2 and field.startswith('"') and field.endswith('"'):
        field = field[1:-1]
    return field.replace('""', '"')


def render_row(row: ExportRow) -> str:
    return ",".join(
        [
            row.date.date().isoformat(),
            row.kind,
            f"{row.amount:.2f}",
            quote_field(row.description),
            quote_field(row.author),
            row.tenant_slug,
        ]
    )


def render_csv(rows: Iterable[ExportRow]) -> str:
    return "\n".join([CSV_HEADER, *(render_row(row) for row in rows)])
