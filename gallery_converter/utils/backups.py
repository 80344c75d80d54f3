"""
Backup copies of the gallery markup replaced during conversion.

Before a gallery is created for a document, the original shortcode or block
markup is appended to ``reports/conversion/backups.jsonl`` under a unique key
so that a conversion can be reverted by hand.
"""

from __future__ import annotations

import os
import random
from datetime import datetime
from typing import Callable, Optional

from .errors import _REPORT_DIR, _write_jsonl

BACKUP_KEY_PREFIX = "wp_gallery_block_bkp_"


def make_backup_key(now: Optional[datetime] = None, rand: Callable[[int, int], int] = random.randint) -> str:
    """Build a key such as ``wp_gallery_block_bkp_4821_20240131_101500``."""
    now = now or datetime.now()
    return f"{BACKUP_KEY_PREFIX}{rand(1000, 9999)}_{now.strftime('%Y%m%d_%H%M%S')}"


def write_backup(document_id: int, key: str, content: str, *, report_dir: str = _REPORT_DIR) -> str:
    """Append one backup entry and return the path of the backup file."""
    path = os.path.join(report_dir, "backups.jsonl")
    _write_jsonl(path, {"document_id": document_id, "key": key, "content": content})
    return path
