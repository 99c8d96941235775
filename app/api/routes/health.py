from fastapi import APIRouter, Depends

from app.core.config import Settings, get_settings

router = APIRouter()

@router.get("/health")
def health(settings: Settings = Depends(get_settings)):
    return {
        "ok": True,
        "razorpay_configured": settings.razorpay_configured,
        "sheet_configured": settings.sheet_configured,
    }
