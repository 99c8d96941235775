# app/api/routes/razorpay_webhooks.py
#
# Razorpay delivers subscription lifecycle events here. The response is "ok"
# (200) whatever happens to the sheet write, so Razorpay does not keep
# redelivering; only a payload we cannot read answers 500.
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse

from app.core.clients import get_row_store
from app.core.config import Settings, get_settings
from app.services.row_store import RowStore

router = APIRouter()

EVENT_CHARGED = "subscription.charged"
EVENT_CANCELLED = "subscription.cancelled"


# -----------------------------
# Small logging helper
# -----------------------------
def _log(*args):
    ts = datetime.now(timezone.utc).isoformat()
    print(f"[razorpay_webhook] {ts}", *args)


def _subscription_entity(event: dict[str, Any]) -> dict[str, Any]:
    """
    payload.subscription.entity; a missing level raises KeyError/TypeError
    and the whole delivery is answered with 500.
    """
    return event["payload"]["subscription"]["entity"]


def _today() -> str:
    return datetime.now(timezone.utc).date().isoformat()  # YYYY-MM-DD


async def _on_charged(entity: dict[str, Any], store: RowStore) -> None:
    notes = entity["notes"]
    name = notes["name"]
    email = notes["email"]
    subscription_id = entity["id"]
    _log("subscription payment successful:", {"name": name, "email": email, "subscription_id": subscription_id})

    # Razorpay sends subscription.charged on every billing cycle; only the
    # first one creates the row.
    try:
        existing = await run_in_threadpool(store.get_subscriber, subscription_id)
        if existing is not None:
            _log("row already exists; skipping append", subscription_id, "row", existing.row_number)
            return
        await run_in_threadpool(store.append_row, name, email, subscription_id)
    except Exception as e:
        _log("failed to add to Google Sheets:", type(e).__name__, str(e))


async def _on_cancelled(entity: dict[str, Any], store: RowStore, mode: str) -> None:
    subscription_id = entity["id"]
    _log("subscription cancelled:", subscription_id, "mode:", mode)

    try:
        if mode == "clear":
            await run_in_threadpool(store.clear_row, subscription_id)
        else:
            await run_in_threadpool(store.update_cancellation, subscription_id, _today())
    except Exception as e:
        _log("failed to update Google Sheets for cancellation:", type(e).__name__, str(e))


@router.post("/razorpay-webhook")
async def razorpay_webhook(
    request: Request,
    store: RowStore = Depends(get_row_store),
    settings: Settings = Depends(get_settings),
):
    try:
        event = await request.json()
        event_type = event.get("event")
        _log("webhook received:", event_type)

        if event_type == EVENT_CHARGED:
            entity = _subscription_entity(event)
            _log("subscription entity:", json.dumps(entity, indent=2, default=str))
            await _on_charged(entity, store)

        elif event_type == EVENT_CANCELLED:
            await _on_cancelled(_subscription_entity(event), store, settings.cancellation_mode)

        return PlainTextResponse("ok", status_code=200)

    except Exception as e:
        _log("webhook error:", type(e).__name__, str(e))
        return PlainTextResponse("error", status_code=500)
