# app/api/routes/subscriptions.py
#
# Creates the Razorpay subscription only. The sheet row is written later by
# the subscription.charged webhook, from the notes attached here.
from __future__ import annotations

from datetime import datetime, timezone

import razorpay
from fastapi import APIRouter, Depends, HTTPException, status

from app.core.clients import get_razorpay_client
from app.core.config import Settings, get_settings
from app.schemas.subscriptions import CreateSubscriptionRequest, CreateSubscriptionResponse

router = APIRouter()

TOTAL_BILLING_CYCLES = 12  # 12 months


def _log(*args):
    ts = datetime.now(timezone.utc).isoformat()
    print(f"[subscriptions] {ts}", *args)


@router.post("/create-subscription", response_model=CreateSubscriptionResponse)
def create_subscription(
    payload: CreateSubscriptionRequest,
    client: razorpay.Client | None = Depends(get_razorpay_client),
    settings: Settings = Depends(get_settings),
):
    name = payload.name.strip()
    email = payload.email.strip()
    _log("creating subscription for:", {"name": name, "email": email})

    if client is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Razorpay is not configured",
        )
    if not settings.razorpay_plan_id:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="RAZORPAY_PLAN_ID is not set",
        )

    try:
        subscription = client.subscription.create(
            data={
                "plan_id": settings.razorpay_plan_id,
                "customer_notify": 1,
                "total_count": TOTAL_BILLING_CYCLES,
                "notes": {"name": name, "email": email},
            }
        )
    except Exception as e:
        _log("error creating subscription:", type(e).__name__, str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e),
        )

    subscription_id = str(subscription["id"])
    _log("subscription created:", subscription_id)

    return {"subscription_id": subscription_id}
