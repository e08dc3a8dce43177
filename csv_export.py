"""
CSV building for report exports.

``to_csv`` is the pure part; ``export_csv`` writes the result to disk, which
is what a "download" amounts to outside a browser.
"""

import csv
import io
import logging
from pathlib import Path
from typing import Mapping, Optional, Sequence, Union

logger = logging.getLogger(__name__)

CellValue = Union[str, int, float, None]


def to_csv(rows: Sequence[Mapping[str, CellValue]]) -> str:
    """
    Render rows as CSV text.

    The header is the first row's keys in insertion order and every row is
    read by header lookup, so a missing key gives an empty cell. Every cell
    is quoted, quotes are doubled, and None renders as an empty string.
    Lines are separated by a bare newline with no trailing newline. No rows
    means no output.
    """
    if not rows:
        return ""

    headers = list(rows[0].keys())
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow([_cell(row.get(header)) for header in headers])
    return buffer.getvalue()[:-1]


def _cell(value: CellValue) -> CellValue:
    # integral floats render without a trailing ".0"
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def export_csv(
    filename: str,
    rows: Sequence[Mapping[str, CellValue]],
    directory: Optional[Union[str, Path]] = None,
) -> Optional[Path]:
    """Write ``rows`` to ``directory/filename``. Returns None and writes nothing for no rows."""
    if not rows:
        logger.info(f"Nothing to export for {filename}")
        return None

    path = Path(directory or ".") / filename
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(to_csv(rows), encoding="utf-8")
    logger.info(f"Exported {len(rows)} rows to {path}")
    return path
