from __future__ import annotations

import json


def parse_json_records(data: bytes, *, key: str) -> list[dict]:
    doc = json.loads(data)
    if isinstance(doc, list):
        records = doc
    elif isinstance(doc, dict) and isinstance(doc.get(key), list):
        records = doc[key]
    else:
        raise ValueError(f"expected a list under {key!r}")
    return [r for r in records if isinstance(r, dict)]
