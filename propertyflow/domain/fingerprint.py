# propertyflow/domain/fingerprint.py
from __future__ import annotations

import hashlib
import json
from typing import Any


def fingerprint(*parts: Any) -> str:
    """
    Stable, deterministic SHA-256 over JSON-serializable parts.
    Used for document ids and audit-chain hashing.
    """
    blob = json.dumps(parts, sort_keys=True, default=str, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(blob).hexdigest()


def document_hash(content: bytes | str) -> str:
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha256(content).hexdigest()
