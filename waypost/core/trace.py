"""
Machine-parseable tracing for format detection and writing.

Trace files are JSON Lines (one JSON object per line). Anything with an
`emit(event: dict)` method can be passed where a trace is accepted; the trial
reader, resolver and chunked writer emit `read.*`, `resolve.*` and `write.*`
events to it.
"""

from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional


def _json_default(o: Any) -> Any:
    if isinstance(o, datetime):
        return o.isoformat()
    if isinstance(o, Enum):
        return o.value
    if is_dataclass(o) and not isinstance(o, type):
        return asdict(o)
    # codecs and paths serialize as their display name
    return str(o)


class TraceWriter:
    def __init__(self, path: str | Path):
        self._path = Path(path)
        self._fh = self._path.open("w", encoding="utf-8")

    @property
    def path(self) -> Path:
        return self._path

    def emit(self, event: Dict[str, Any]) -> None:
        if "ts" not in event:
            event = dict(event)
            event["ts"] = datetime.now(timezone.utc).isoformat()
        self._fh.write(json.dumps(event, ensure_ascii=False, default=_json_default) + "\n")
        self._fh.flush()

    def close(self) -> None:
        if not self._fh.closed:
            self._fh.close()

    def __enter__(self) -> "TraceWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class TraceReader:
    def __init__(self, path: str | Path):
        self._path = Path(path)

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        with self._path.open("r", encoding="utf-8") as fh:
            for line in fh:
                line = line.strip()
                if not line:
                    continue
                yield json.loads(line)

    def events(self, name: Optional[str] = None) -> List[Dict[str, Any]]:
        return [e for e in self if name is None or e.get("event") == name]
