# app/services/row_store.py
#
# Google Sheet used as a subscriber table:
#   A = name, B = email, C = subscription_id, D = cancellation_date (YYYY-MM-DD)
#
# Rows are never deleted, only cleared (A:C), so 1-based row numbers found by a
# column scan stay valid for the write that follows.
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any

from googleapiclient.errors import HttpError

DEFAULT_RETENTION_DAYS = 30

# Values are written RAW so column D holds the ISO text we wrote. Cells a
# person typed as real dates come back as serial numbers on the unformatted
# read used by the purge; anything else (locale text, headers) is skipped.
_SERIAL_EPOCH = date(1899, 12, 30)


class SheetsError(Exception):
    pass


@dataclass(frozen=True)
class SubscriberRow:
    row_number: int
    name: str
    email: str
    subscription_id: str
    cancellation_date: str | None = None

    @property
    def active(self) -> bool:
        return not self.cancellation_date


def _log(*args):
    ts = datetime.now(timezone.utc).isoformat()
    print(f"[row_store] {ts}", *args)


def _cell(row: list[Any] | None, idx: int) -> str:
    if not row or len(row) <= idx or row[idx] is None:
        return ""
    return str(row[idx]).strip()


def parse_sheet_date(value: Any) -> date | None:
    """
    ISO text ("2025-01-31", "2025-01-31T10:00:00Z") or a Sheets date serial.
    Locale text such as "05/10/2025" is ambiguous and returns None.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return _SERIAL_EPOCH + timedelta(days=int(value))

    v = str(value).strip()
    if not v:
        return None
    try:
        return date.fromisoformat(v.split("T")[0])
    except ValueError:
        return None


def _upstream_message(e: Exception) -> str:
    if isinstance(e, HttpError):
        return e.reason or str(e)
    return f"{type(e).__name__}: {str(e)}"


class RowStore:
    def __init__(self, service: Any, spreadsheet_id: str, sheet_name: str):
        self.service = service
        self.spreadsheet_id = spreadsheet_id
        self.sheet_name = sheet_name

    # -----------------------------
    # Low level values API
    # -----------------------------
    def _values(self):
        if self.service is None or not self.spreadsheet_id:
            raise SheetsError("Google Sheets client is not configured")
        return self.service.spreadsheets().values()

    def _range(self, a1: str) -> str:
        return f"{self.sheet_name}!{a1}"

    def _get(self, a1: str, **render) -> list[list[Any]]:
        res = self._values().get(spreadsheetId=self.spreadsheet_id, range=self._range(a1), **render).execute()
        return res.get("values") or []

    def _find_row_number(self, subscription_id: str) -> int | None:
        """
        1-based row number of the first exact match in column C.
        """
        rows = self._get("C:C")
        if not rows:
            _log("no data found in column C")
            return None

        for idx, row in enumerate(rows):
            if _cell(row, 0) == subscription_id:
                return idx + 1
        return None

    def _row_still_holds(self, row_number: int, subscription_id: str) -> bool:
        rows = self._get(f"C{row_number}")
        return _cell(rows[0] if rows else None, 0) == subscription_id

    def _locate(self, subscription_id: str) -> int | None:
        """
        Find the row, then re-read its id cell right before the caller writes.
        If a concurrent clear/append moved the id, scan once more; a second
        miss means the row keeps moving under us.
        """
        for _attempt in range(2):
            row_number = self._find_row_number(subscription_id)
            if row_number is None:
                return None
            if self._row_still_holds(row_number, subscription_id):
                return row_number
            _log("row changed during lookup; rescanning", subscription_id, "row", row_number)

        raise SheetsError(f"Row for subscription {subscription_id} changed during update")

    # -----------------------------
    # Operations
    # -----------------------------
    def append_row(self, name: str, email: str, subscription_id: str) -> dict[str, Any]:
        try:
            res = self._values().append(
                spreadsheetId=self.spreadsheet_id,
                range=self._range("A:C"),
                valueInputOption="RAW",
                body={"values": [[name, email, subscription_id]]},
            ).execute()
        except Exception as e:
            _log("error adding to Google Sheets:", _upstream_message(e))
            raise SheetsError(f"Could not add data to Google Sheet: {_upstream_message(e)}") from e

        _log("added to Google Sheets:", (res.get("updates") or {}).get("updatedRange"))
        return res

    def update_cancellation(self, subscription_id: str, cancellation_date: str) -> bool:
        try:
            row_number = self._locate(subscription_id)
            if row_number is None:
                _log(f"subscription {subscription_id} not found for update")
                return False

            self._values().update(
                spreadsheetId=self.spreadsheet_id,
                range=self._range(f"D{row_number}"),
                valueInputOption="RAW",
                body={"values": [[cancellation_date]]},
            ).execute()
        except Exception as e:
            _log("error updating Google Sheets:", _upstream_message(e))
            raise SheetsError(f"Could not update data in Google Sheet: {_upstream_message(e)}") from e

        _log(f"row {row_number} for subscription {subscription_id} marked cancelled on {cancellation_date}")
        return True

    def clear_row(self, subscription_id: str) -> bool:
        try:
            row_number = self._locate(subscription_id)
            if row_number is None:
                _log(f"subscription {subscription_id} not found in the sheet")
                return False

            # D (cancellation_date) is kept
            self._values().clear(
                spreadsheetId=self.spreadsheet_id,
                range=self._range(f"A{row_number}:C{row_number}"),
                body={},
            ).execute()
        except Exception as e:
            _log("error removing from Google Sheets:", _upstream_message(e))
            raise SheetsError(f"Could not remove data from Google Sheet: {_upstream_message(e)}") from e

        _log(f"row {row_number} for subscription {subscription_id} cleared")
        return True

    def get_subscriber(self, subscription_id: str) -> SubscriberRow | None:
        try:
            rows = self._get("A:D")
        except Exception as e:
            _log("error reading Google Sheets:", _upstream_message(e))
            raise SheetsError(f"Could not read data from Google Sheet: {_upstream_message(e)}") from e

        for idx, row in enumerate(rows):
            if _cell(row, 2) == subscription_id:
                return SubscriberRow(
                    row_number=idx + 1,
                    name=_cell(row, 0),
                    email=_cell(row, 1),
                    subscription_id=subscription_id,
                    cancellation_date=_cell(row, 3) or None,
                )
        return None

    def purge_expired(
        self,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        today: date | None = None,
    ) -> list[str]:
        """
        Clear every row whose cancellation date is at least `retention_days`
        old. Rows are cleared one by one; the first failure aborts the pass.
        """
        today = today or datetime.now(timezone.utc).date()
        cutoff = today - timedelta(days=int(retention_days))

        try:
            rows = self._get(
                "C:D",
                valueRenderOption="UNFORMATTED_VALUE",
                dateTimeRenderOption="SERIAL_NUMBER",
            )
            if not rows:
                _log("no data found in the sheet for cleanup")
                return []

            expired: list[str] = []
            for row in rows:
                sub_id = _cell(row, 0)
                cancelled_on = parse_sheet_date(row[1] if len(row) > 1 else None)
                if not sub_id or cancelled_on is None:
                    continue
                if cancelled_on <= cutoff:
                    expired.append(sub_id)

            if not expired:
                _log("no expired subscriptions found")
                return []

            _log(f"found {len(expired)} expired subscriptions to remove (cutoff {cutoff.isoformat()})")
            for sub_id in expired:
                self.clear_row(sub_id)
        except Exception as e:
            _log("error during expired cancellation removal:", _upstream_message(e))
            raise SheetsError(
                f"Could not remove expired cancellations from Google Sheet: {_upstream_message(e)}"
            ) from e

        _log("expired subscriptions removed:", expired)
        return expired
