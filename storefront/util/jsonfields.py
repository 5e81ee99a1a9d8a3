from __future__ import annotations

import json
from typing import Any, Iterable, List


def ordered_unique(values: Iterable[Any] | None) -> List[str]:
    """Keep first occurrences, in order. Blank entries are dropped."""
    out: List[str] = []
    seen: set[str] = set()
    for v in values or []:
        s = str(v).strip()
        if not s or s in seen:
            continue
        seen.add(s)
        out.append(s)
    return out


def dump_list(values: Iterable[Any] | None) -> str:
    return json.dumps(list(values or []), ensure_ascii=False)


def load_list(raw: Any) -> List[str]:
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return []
    if not isinstance(data, list):
        return []
    return [str(x) for x in data]
