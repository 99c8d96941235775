import re
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from app.core.clients import get_razorpay_client, get_row_store  # noqa: E402
from app.core.config import Settings, get_settings  # noqa: E402
from app.main import app  # noqa: E402
from app.services.row_store import RowStore  # noqa: E402

SHEET_ID = "sheet-test-id"
SHEET_NAME = "Subscribers"
COLUMNS = "ABCD"

_A1 = re.compile(r"^([A-Z])(\d*)(?::([A-Z])(\d*))?$")


def _parse_a1(a1: str):
    sheet, _, cells = a1.partition("!")
    assert sheet == SHEET_NAME, f"unexpected sheet in range {a1!r}"
    m = _A1.match(cells)
    assert m, f"unsupported range {a1!r}"
    c0, r0, c1, r1 = m.groups()
    c1 = c1 or c0
    r1 = r1 if m.group(3) else r0
    return (
        COLUMNS.index(c0),
        COLUMNS.index(c1),
        int(r0) if r0 else None,
        int(r1) if r1 else None,
    )


class _Call:
    def __init__(self, fn):
        self._fn = fn

    def execute(self):
        return self._fn()


class FakeSheetValues:
    """
    In-memory stand-in for service.spreadsheets().values(), enough of the
    Sheets v4 behaviour for the row store: trailing empty cells and rows are
    trimmed from reads, cleared rows in the middle come back as [].
    """

    def __init__(self):
        self.grid: list[list[str]] = []
        self.calls: list[tuple[str, str]] = []
        self.options: list[tuple[str, dict]] = []
        self.fail_on: set[str] = set()

    def seed(self, *rows):
        for row in rows:
            self.grid.append((list(row) + [""] * len(COLUMNS))[: len(COLUMNS)])

    def _check(self, method: str, spreadsheetId: str, range: str):
        assert spreadsheetId == SHEET_ID
        self.calls.append((method, range))
        if method in self.fail_on:
            raise RuntimeError(f"{method} failed: quota exceeded")

    def _ensure_rows(self, n: int):
        while len(self.grid) < n:
            self.grid.append([""] * len(COLUMNS))

    def get(self, spreadsheetId, range, **render):
        def run():
            self._check("get", spreadsheetId, range)
            self.options.append(("get", render))
            c0, c1, r0, r1 = _parse_a1(range)
            start = (r0 or 1) - 1
            end = r1 if r1 else len(self.grid)
            out = []
            for row in self.grid[start:end]:
                cells = row[c0 : c1 + 1]
                while cells and cells[-1] == "":
                    cells = cells[:-1]
                out.append(cells)
            while out and not out[-1]:
                out.pop()
            return {"range": range, "values": out} if out else {"range": range}

        return _Call(run)

    def append(self, spreadsheetId, range, valueInputOption, body):
        def run():
            self._check("append", spreadsheetId, range)
            self.options.append(("append", {"valueInputOption": valueInputOption}))
            while self.grid and not any(self.grid[-1]):
                self.grid.pop()
            for values in body["values"]:
                self.seed(values)
            n = len(self.grid)
            return {"updates": {"updatedRange": f"{SHEET_NAME}!A{n}:C{n}", "updatedRows": 1}}

        return _Call(run)

    def update(self, spreadsheetId, range, valueInputOption, body):
        def run():
            self._check("update", spreadsheetId, range)
            self.options.append(("update", {"valueInputOption": valueInputOption}))
            c0, _, r0, _ = _parse_a1(range)
            for offset, values in enumerate(body["values"]):
                self._ensure_rows(r0 + offset)
                for i, v in enumerate(values):
                    self.grid[r0 - 1 + offset][c0 + i] = str(v)
            return {"updatedRange": range}

        return _Call(run)

    def clear(self, spreadsheetId, range, body=None):
        def run():
            self._check("clear", spreadsheetId, range)
            c0, c1, r0, r1 = _parse_a1(range)
            for r in _row_indexes(r0, r1, len(self.grid)):
                for c in _col_indexes(c0, c1):
                    self.grid[r][c] = ""
            return {"clearedRange": range}

        return _Call(run)


def _row_indexes(r0, r1, total):
    start = (r0 or 1) - 1
    end = min(r1 or total, total)
    return range(start, end)


def _col_indexes(c0, c1):
    return range(c0, c1 + 1)


class FakeSheetsService:
    def __init__(self):
        self.values_api = FakeSheetValues()

    def spreadsheets(self):
        return self

    def values(self):
        return self.values_api


class FakeRazorpaySubscriptions:
    def __init__(self):
        self.created: list[dict] = []
        self.error: Exception | None = None

    def create(self, data=None, **kwargs):
        if self.error is not None:
            raise self.error
        self.created.append(data)
        return {"id": f"sub_test_{len(self.created)}", "status": "created", **data}


class FakeRazorpayClient:
    def __init__(self):
        self.subscription = FakeRazorpaySubscriptions()


@pytest.fixture(scope="module")
def anyio_backend():
    # Limit tests to asyncio backend so local runs do not require the Trio extra.
    return "asyncio"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        razorpay_key_id="rzp_test_key",
        razorpay_key_secret="rzp_test_secret",
        razorpay_plan_id="plan_test_monthly",
        google_sheet_id=SHEET_ID,
        google_sheet_name=SHEET_NAME,
        google_credentials='{"type": "service_account"}',
    )


@pytest.fixture
def sheets() -> FakeSheetValues:
    return FakeSheetsService().values_api


@pytest.fixture
def row_store(sheets) -> RowStore:
    service = FakeSheetsService()
    service.values_api = sheets
    return RowStore(service, spreadsheet_id=SHEET_ID, sheet_name=SHEET_NAME)


@pytest.fixture
def razorpay_client() -> FakeRazorpayClient:
    return FakeRazorpayClient()


@pytest.fixture
def override_settings(settings):
    """
    Tests that need a different Settings (e.g. CANCELLATION_MODE=clear) call
    the returned function; overrides are reset after each test.
    """

    def _apply(**changes):
        from dataclasses import replace

        updated = replace(settings, **changes)
        app.dependency_overrides[get_settings] = lambda: updated
        return updated

    return _apply


@pytest.fixture
async def async_client(anyio_backend, settings, row_store, razorpay_client) -> AsyncClient:
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_row_store] = lambda: row_store
    app.dependency_overrides[get_razorpay_client] = lambda: razorpay_client

    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield client
    finally:
        app.dependency_overrides.clear()
