from __future__ import annotations

import os
from typing import Any

import httpx


def notify(text: str, *, extra: dict[str, Any] | None = None) -> bool:
    """Best-effort notification.

    Posts ``{"text": ..., "extra": ...}`` to NOTIFY_WEBHOOK_URL. Returns False
    (and never raises) when no webhook is configured or the POST fails.
    """

    webhook = os.getenv("NOTIFY_WEBHOOK_URL")
    if not webhook:
        return False

    payload: dict[str, Any] = {"text": text}
    if extra:
        payload["extra"] = extra
    try:
        resp = httpx.post(webhook, json=payload, timeout=10.0)
        resp.raise_for_status()
    except httpx.HTTPError as exc:
        print(f"[Sync] Warning: notification failed: {type(exc).__name__}: {exc}")
        return False
    return True
