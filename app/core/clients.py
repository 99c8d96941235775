# app/core/clients.py
#
# Remote client handles exposed as FastAPI dependencies (tests swap them
# through app.dependency_overrides).
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

import httplib2
import razorpay
from fastapi import Depends
from google.oauth2.service_account import Credentials
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build

from app.core.config import Settings, get_settings
from app.services.row_store import RowStore

SHEETS_SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

_razorpay: razorpay.Client | None = None
_sheets_credentials_cache: Credentials | None = None


def _log(*args):
    ts = datetime.now(timezone.utc).isoformat()
    print(f"[clients] {ts}", *args)


def _load_service_account_info(raw: str) -> dict[str, Any]:
    try:
        info = json.loads(raw)
    except ValueError as e:
        raise RuntimeError(f"GOOGLE_CREDENTIALS is not valid JSON: {e}") from e

    if not isinstance(info, dict) or info.get("type") != "service_account":
        raise RuntimeError("GOOGLE_CREDENTIALS must be a service account key (type=service_account)")
    return info


def _sheets_credentials(settings: Settings) -> Credentials:
    global _sheets_credentials_cache

    if _sheets_credentials_cache is not None:
        return _sheets_credentials_cache

    if not settings.google_credentials:
        raise RuntimeError("GOOGLE_CREDENTIALS is missing")

    _sheets_credentials_cache = Credentials.from_service_account_info(
        _load_service_account_info(settings.google_credentials),
        scopes=SHEETS_SCOPES,
    )
    return _sheets_credentials_cache


def build_sheets_service(settings: Settings):
    """
    A fresh service per caller. httplib2.Http is not thread-safe and row
    store calls run in the thread pool, so only the credentials are shared.
    """
    if not settings.google_sheet_id:
        raise RuntimeError("GOOGLE_SHEET_ID is missing")

    authed_http = AuthorizedHttp(_sheets_credentials(settings), http=httplib2.Http())
    return build("sheets", "v4", http=authed_http, cache_discovery=False)


def build_razorpay_client(settings: Settings) -> razorpay.Client:
    global _razorpay

    if _razorpay is not None:
        return _razorpay

    if not settings.razorpay_key_id:
        raise RuntimeError("RAZORPAY_KEY_ID is missing")
    if not settings.razorpay_key_secret:
        raise RuntimeError("RAZORPAY_KEY_SECRET is missing")

    _razorpay = razorpay.Client(auth=(settings.razorpay_key_id, settings.razorpay_key_secret))
    return _razorpay


def get_razorpay_client(settings: Settings = Depends(get_settings)) -> razorpay.Client | None:
    """
    None when the gateway keys are not configured; the route decides how to fail.
    """
    try:
        return build_razorpay_client(settings)
    except RuntimeError as e:
        _log("razorpay client unavailable:", str(e))
        return None


def get_row_store(settings: Settings = Depends(get_settings)) -> RowStore:
    """
    Always returns a RowStore. If the sheet is not configured the store has no
    service and every operation raises SheetsError, so webhook callers can
    log-and-continue like any other sheet failure.
    """
    try:
        service = build_sheets_service(settings)
    except RuntimeError as e:
        _log("sheets service unavailable:", str(e))
        service = None

    return RowStore(
        service,
        spreadsheet_id=settings.google_sheet_id,
        sheet_name=settings.google_sheet_name,
    )
