from fastapi import APIRouter, Depends

from app.core.config import Settings, get_settings
from app.schemas.subscriptions import RazorpayKeyResponse

router = APIRouter()


@router.get("/get-razorpay-key", response_model=RazorpayKeyResponse)
def get_razorpay_key(settings: Settings = Depends(get_settings)):
    # key_id is the public half; the secret never leaves the server.
    return {"key_id": settings.razorpay_key_id or None}
