from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from app.core.clients import get_row_store
from app.core.config import Settings, get_settings
from app.services.row_store import RowStore

router = APIRouter()


def _log(*args):
    ts = datetime.now(timezone.utc).isoformat()
    print(f"[cleanup] {ts}", *args)


@router.post("/api/cleanup-subscriptions")
def cleanup_subscriptions(
    store: RowStore = Depends(get_row_store),
    settings: Settings = Depends(get_settings),
):
    # No auth; the scheduler calls this directly.
    try:
        _log("cleanup process started, retention days:", settings.retention_days)
        purged = store.purge_expired(retention_days=settings.retention_days)
        _log("cleanup process finished, cleared:", len(purged))
        return PlainTextResponse("Cleanup finished", status_code=200)
    except Exception as e:
        _log("error during cleanup:", type(e).__name__, str(e))
        return PlainTextResponse("Error during cleanup", status_code=500)
