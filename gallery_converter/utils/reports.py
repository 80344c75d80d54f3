"""
Generation of conversion summary CSV files.

The :func:`generate_conversion_csv` helper writes one row per processed
document so that editors can follow up on documents that were left unchanged
or rejected, using the edit link recorded for each of them.
"""

from __future__ import annotations

import csv
import os
from typing import Any, Dict, Iterable


def generate_conversion_csv(
    rows: Iterable[Dict[str, Any]], *, out_path: str = "reports/conversion/conversion_summary.csv"
) -> str:
    """Generate a CSV summarizing a batch conversion run.

    Parameters
    ----------
    rows:
        Iterable of dictionaries with ``document_id``, ``rewritten`` and
        ``message`` keys.  ``edit_url`` is written when available.
    out_path:
        Location of the CSV file to be written.  The parent directory is
        created automatically.

    Returns
    -------
    str
        The path of the generated CSV file.
    """
    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
    with open(out_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["DocumentID", "Rewritten", "Message", "EditURL"])
        for row in rows:
            writer.writerow([
                row.get("document_id"),
                "yes" if row.get("rewritten") else "no",
                row.get("message") or "",
                row.get("edit_url") or "",
            ])
    return out_path
