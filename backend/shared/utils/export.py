"""
CSV / JSON export of flat rows for history and log downloads.
"""

import csv
import io
import json
from collections.abc import Iterable, Sequence
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from fastapi.responses import Response

MEDIA_TYPES = {
    "csv": "text/csv; charset=utf-8",
    "json": "application/json",
}


def _cell(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return value


def rows_to_csv(rows: Iterable[dict[str, Any]], columns: Sequence[str]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(columns), extrasaction="ignore")
    writer.writeheader()
    for row in rows:
        writer.writerow({col: _cell(row.get(col)) for col in columns})
    return buffer.getvalue()


def rows_to_json(rows: Iterable[dict[str, Any]]) -> str:
    return json.dumps(list(rows), ensure_ascii=False, default=str, indent=2)


def export_response(
    rows: list[dict[str, Any]],
    columns: Sequence[str],
    export_format: str,
    filename: str,
) -> Response:
    """Build a downloadable response. Unknown formats raise ValueError."""
    if export_format == "csv":
        # BOM so spreadsheet apps detect UTF-8
        body = "\ufeff" + rows_to_csv(rows, columns)
    elif export_format == "json":
        body = rows_to_json(rows)
    else:
        raise ValueError(f"Unsupported export format: {export_format}")

    return Response(
        content=body,
        media_type=MEDIA_TYPES[export_format],
        headers={"Content-Disposition": f'attachment; filename="{filename}.{export_format}"'},
    )
