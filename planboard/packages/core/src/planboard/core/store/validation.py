"""Store 层共用的输入清洗"""

from collections.abc import Iterable
from typing import Any

from ..exceptions import ValidationError


def require_text(value: Any, label: str) -> str:
    """去除首尾空白后必须非空

    Raises:
        ValidationError: 缺失、非字符串或全为空白
    """
    stripped = value.strip() if isinstance(value, str) else ""
    if not stripped:
        raise ValidationError(f"{label} is required")
    return stripped


def optional_text(value: str | None) -> str | None:
    """去除首尾空白；空白串视为 None"""
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def clean_id_list(values: Iterable[Any] | None) -> list[int]:
    """过滤为正整数并去重（保持首次出现顺序）

    bool、非整数值的浮点数、无法转换的字符串均被丢弃。
    """
    if values is None:
        return []
    seen: dict[int, None] = {}
    for value in values:
        if isinstance(value, bool):
            continue
        if isinstance(value, float):
            if not value.is_integer():
                continue
            value = int(value)
        elif isinstance(value, str):
            try:
                value = int(value.strip())
            except ValueError:
                continue
        if isinstance(value, int) and value > 0:
            seen.setdefault(value, None)
    return list(seen)
