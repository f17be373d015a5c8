"""Flatten nested results into ``path : value`` lines."""

from __future__ import annotations

import dataclasses
from typing import Any, Optional

_INDENT = 2


def as_context(data: Any, prompt: Optional[str] = None) -> str:
    """Render ``data`` as sorted, indented ``path : value`` lines.

    Dataclasses are expanded like dicts and ``None`` members are skipped.
    A ``prompt`` is emitted as a header above a ``------`` rule.
    """
    lines: list[str] = []
    _walk(data, [], 0, lines)
    prefix = f"\n{prompt}\n------\n" if prompt else ""
    return prefix + "\n".join(lines)


def _walk(value: Any, path: list[str], level: int, out: list[str]) -> None:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        value = dataclasses.asdict(value)

    if isinstance(value, dict):
        for key in sorted(value, key=str):
            child = value[key]
            if child is None:
                continue
            _walk(child, [*path, str(key)], level + 1, out)
        return
    if isinstance(value, (list, tuple)):
        for index, item in enumerate(value):
            _walk(item, [*path, f"[{index}]"], level, out)
        return

    rendered = "null" if value is None else str(value)
    out.append(f"{' ' * (level * _INDENT)}{'.'.join(path)} : {rendered}")
