"""Coercion boundary for heterogeneous registry fields.

Registry rows are user-entered or imported, so one logical field can arrive
as a decoded list, a JSON string, a bare scalar or ``None``. Each field type
has exactly one function here that turns it into its canonical shape.
Scorers never inspect raw shapes themselves.

Gaps (``None``, empty strings, empty lists) coerce to "nothing". A value
whose shape cannot be read at all raises :class:`MalformedFieldError`. That
is the only error the scoring pipeline produces on bad data.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any

import structlog

from matchiq.core.errors import MalformedFieldError

logger = structlog.get_logger()


@dataclass(frozen=True)
class IndustryRef:
    id: int | None
    name: str
    canonical: bool | None = None  # explicit tag from the payload, if it carried one


@dataclass(frozen=True)
class MoneyRange:
    """Raw bounds as entered. ``None`` means the bound was not given."""

    low: float | None
    high: float | None


# ── JSON decoding ─────────────────────────────────────────────────────────────


def decode_json(field: str, value: Any) -> Any:
    """Decode JSON-encoded strings; pass decoded values through.

    A string that opens like a JSON container but does not parse is corrupt
    data, not free text.
    """
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text[0] in "[{":
            try:
                return json.loads(text)
            except json.JSONDecodeError as exc:
                raise MalformedFieldError(field, value, f"invalid JSON ({exc.msg})") from exc
        return text
    if isinstance(value, (list, tuple, dict, int, float)):
        return value
    raise MalformedFieldError(field, value, f"unsupported type {type(value).__name__}")


def as_list(field: str, value: Any) -> list[Any]:
    decoded = decode_json(field, value)
    if decoded is None:
        return []
    if isinstance(decoded, (list, tuple)):
        return list(decoded)
    return [decoded]


def _as_int_id(value: Any) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _as_id_string(value: Any) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


# ── Field coercions ───────────────────────────────────────────────────────────


def coerce_industries(field: str, value: Any) -> list[IndustryRef]:
    """Industry listings: ``{id, name}`` objects or plain names.

    Entries without a name are dropped.
    """
    refs: list[IndustryRef] = []
    for item in as_list(field, value):
        if isinstance(item, dict):
            tag = item.get("canonical")
            refs.append(IndustryRef(
                id=_as_int_id(item.get("id")),
                name=str(item.get("name") or "").strip(),
                canonical=tag if isinstance(tag, bool) else None,
            ))
        elif isinstance(item, str):
            refs.append(IndustryRef(id=None, name=item.strip()))
        elif isinstance(item, (list, tuple)):
            raise MalformedFieldError(field, value, "nested list inside industry listing")
    return [ref for ref in refs if ref.name]


def coerce_country_ids(field: str, value: Any) -> list[str]:
    """Country preferences: raw ids, ``{id}`` or ``{country_id}`` objects.

    Returns unique string ids in first-seen order.
    """
    ids: list[str] = []
    for item in as_list(field, value):
        if isinstance(item, dict):
            raw = item.get("id")
            if raw is None:
                raw = item.get("country_id")
            country_id = _as_id_string(raw)
        elif isinstance(item, (list, tuple)):
            raise MalformedFieldError(field, value, "nested list inside country listing")
        else:
            country_id = _as_id_string(item)
        if country_id and country_id not in ids:
            ids.append(country_id)
    return ids


def coerce_country_id(field: str, value: Any) -> str | None:
    """A single country reference (e.g. HQ country)."""
    decoded = decode_json(field, value)
    if isinstance(decoded, dict):
        raw = decoded.get("id")
        return _as_id_string(raw if raw is not None else decoded.get("country_id"))
    if isinstance(decoded, (list, tuple)):
        return _as_id_string(decoded[0]) if decoded else None
    return _as_id_string(decoded)


def _as_amount(field: str, value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        amount = float(value)
    elif isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            return None
        try:
            amount = float(text)
        except ValueError:
            # Free text such as "TBD" is a gap, not a broken record
            logger.debug("amount_not_numeric", field=field, value=value)
            return None
    else:
        raise MalformedFieldError(field, value, f"unsupported amount type {type(value).__name__}")
    if math.isnan(amount):
        return None
    return amount


def coerce_range(field: str, value: Any) -> MoneyRange | None:
    """Money ranges: ``{min, max}`` or positional ``[min, max]``; a scalar is a lower bound.

    Returns ``None`` when neither bound is present.
    """
    decoded = decode_json(field, value)
    if decoded is None:
        return None
    if isinstance(decoded, dict):
        low, high = decoded.get("min"), decoded.get("max")
    elif isinstance(decoded, (list, tuple)):
        low = decoded[0] if len(decoded) > 0 else None
        high = decoded[1] if len(decoded) > 1 else None
    else:
        low, high = decoded, None

    result = MoneyRange(low=_as_amount(field, low), high=_as_amount(field, high))
    if result.low is None and result.high is None:
        return None
    return result


def coerce_multi_value(field: str, value: Any) -> list[str]:
    """Free-text multi-select fields (conditions, M&A reasons)."""
    values: list[str] = []
    for item in as_list(field, value):
        if isinstance(item, (dict, list, tuple)):
            raise MalformedFieldError(field, value, "expected a list of strings")
        if item is None or isinstance(item, bool):
            continue
        text = str(item).strip()
        if text:
            values.append(text)
    return values


def coerce_currency(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip().upper()
    return default
