from __future__ import annotations

from typing import Any, Dict, Optional

from loguru import logger


def append_event(audit: Dict[str, Any], name: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Append event to the in-request audit trail"""
    events = list(audit.get("events", []))
    events.append({"name": name, "payload": payload or {}})
    return {**audit, "events": events}


def best_effort_append(store: Any, record: Dict[str, Any]) -> bool:
    """
    Write one record to the persistent audit store.

    Audit writes never abort the caller: any failure is logged and reported
    through the return value only.
    """
    if store is None:
        return False
    try:
        store.append(record)
        return True
    except Exception as e:
        logger.warning(f"[AUDIT] append failed ({record.get('kind')}): {e}")
        return False
