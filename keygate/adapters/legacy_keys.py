"""Reader for key files written by the original bot deployment.

The legacy file maps each token to ``{key, createdAt, expiresAt, hwid,
lastReset}``. Legacy keys had no usage quota and no owner.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from keygate.core.key_models import KeyRecord


def legacy_entry_to_record(token: str, entry: dict[str, Any]) -> KeyRecord:
    """Convert one legacy entry to a ``KeyRecord``."""
    return KeyRecord(
        token=entry.get("key") or token,
        created_at=entry["createdAt"],
        expires_at=entry["expiresAt"],
        usage_remaining=None,
        bound_identity=entry.get("hwid") or None,
        last_reset_at=entry.get("lastReset") or None,
    )


def read_legacy_keys(path: Path) -> list[KeyRecord]:
    """Parse a legacy ``keys.json`` file.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the file is not a JSON object of key entries.
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("Legacy key file must contain a JSON object")
    records = []
    for token, entry in data.items():
        try:
            records.append(legacy_entry_to_record(token, entry))
        except KeyError as exc:
            raise ValueError(f"Legacy entry {token} is missing field {exc}") from exc
    return records


__all__ = ["legacy_entry_to_record", "read_legacy_keys"]
