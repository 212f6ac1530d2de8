from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass

import pandas as pd
import requests

from ..errors import (
    AccessDenied,
    FetchCancelled,
    InvalidSheetUrl,
    NotFound,
    NotPublic,
    RemoteFetchFailed,
    RemoteTimeout,
    UnknownTab,
)
from ..models.config_models import DEFAULT_EXPORT_BASE_URL
from ..models.grid import RawGrid
from ..models.sheet_tab import TabInfo
from .reader import count_data_rows, grid_from_frame, read_source, read_workbook

"""Remote shared-spreadsheet resolver.

Supported URL shapes:
- https://docs.google.com/spreadsheets/d/<ID>/edit#gid=123
- https://docs.google.com/spreadsheets/d/<ID>/edit?gid=123
- https://docs.google.com/spreadsheets/d/<ID>

With an explicit tab (gid) the tab's CSV export is fetched directly. Without
one the full XLSX export is fetched once, its tabs are enumerated and the
parsed workbook is cached by document id so that selecting a tab afterwards
does not download anything.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "SheetRef",
    "WorkbookCache",
    "RemoteSheetResolver",
    "parse_sheet_url",
]

_DOCUMENT_RE = re.compile(r"/spreadsheets/d/([a-zA-Z0-9_-]+)")
_TAB_RE = re.compile(r"[#?&]gid=(\d+)")
_AUTH_MARKERS = ("accounts.google.com", "ServiceLogin")
CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class SheetRef:
    document_id: str
    tab_id: str | None = None  # gid embedded in the URL, if any


def parse_sheet_url(url: str) -> SheetRef:
    """Extract the document id and optional tab id from a share URL."""
    match = _DOCUMENT_RE.search(url or "")
    if match is None:
        raise InvalidSheetUrl(f"not a shared spreadsheet URL: {url!r}")
    tab = _TAB_RE.search(url)
    return SheetRef(document_id=match.group(1), tab_id=tab.group(1) if tab else None)


def _is_auth_page(url: str | None) -> bool:
    return bool(url) and any(marker in url for marker in _AUTH_MARKERS)


def _looks_like_html(body: bytes) -> bool:
    head = body[:512].lstrip().lower()
    return head.startswith(b"<!doctype") or head.startswith(b"<html")


class WorkbookCache:
    """Single-entry cache of a parsed workbook, keyed by document id.

    Storing a workbook for another document replaces the current entry.
    """

    def __init__(self) -> None:
        self._document_id: str | None = None
        self._sheets: dict[str, pd.DataFrame] | None = None

    @property
    def document_id(self) -> str | None:
        return self._document_id

    def get(self, document_id: str) -> dict[str, pd.DataFrame] | None:
        if self._document_id == document_id:
            return self._sheets
        return None

    def put(self, document_id: str, sheets: dict[str, pd.DataFrame]) -> None:
        self._document_id = document_id
        self._sheets = sheets

    def discard(self) -> None:
        if self._document_id is not None:
            logger.debug(f"workbook cache discarded document={self._document_id}")
        self._document_id = None
        self._sheets = None

    def __contains__(self, document_id: object) -> bool:
        return self._document_id is not None and self._document_id == document_id


class RemoteSheetResolver:
    """Fetch shared spreadsheets and turn them into RawGrids or a tab list.

    ``timeout`` is forwarded to requests as is; None imposes no timeout.
    ``cancel`` tokens are checked before the request and between body chunks.
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        *,
        export_base_url: str = DEFAULT_EXPORT_BASE_URL,
        timeout: float | None = None,
        cache: WorkbookCache | None = None,
    ) -> None:
        self.session = session or requests.Session()
        self.export_base_url = export_base_url.rstrip("/")
        self.timeout = timeout
        self.cache = cache if cache is not None else WorkbookCache()

    def _xlsx_url(self, document_id: str) -> str:
        return f"{self.export_base_url}/{document_id}/export?format=xlsx"

    def _csv_url(self, document_id: str, tab_id: str) -> str:
        return f"{self.export_base_url}/{document_id}/export?format=csv&gid={tab_id}"

    def _fetch(self, url: str, *, cancel: threading.Event | None = None) -> bytes:
        if cancel is not None and cancel.is_set():
            raise FetchCancelled("fetch cancelled before start", url=url)
        logger.info(f"fetching {url}")
        try:
            resp = self.session.get(url, timeout=self.timeout, stream=True, allow_redirects=True)
        except requests.Timeout as e:
            raise RemoteTimeout(f"timed out fetching spreadsheet: {e}", url=url) from e
        except requests.RequestException as e:
            raise RemoteFetchFailed(f"could not fetch spreadsheet: {e}", url=url) from e

        try:
            if resp.status_code == 404:
                raise NotFound("spreadsheet not found", url=url, status_code=404)
            if not 200 <= resp.status_code < 300:
                raise AccessDenied(
                    f"access denied (HTTP {resp.status_code})", url=url, status_code=resp.status_code
                )
            if _is_auth_page(resp.url):
                raise AccessDenied(
                    "redirected to an authentication page", url=url, status_code=resp.status_code
                )
            chunks: list[bytes] = []
            for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                if cancel is not None and cancel.is_set():
                    raise FetchCancelled("fetch cancelled", url=url)
                if chunk:
                    chunks.append(chunk)
        except requests.Timeout as e:
            raise RemoteTimeout(f"timed out reading spreadsheet: {e}", url=url) from e
        except requests.RequestException as e:
            raise RemoteFetchFailed(f"could not read spreadsheet: {e}", url=url) from e
        finally:
            resp.close()

        body = b"".join(chunks)
        if _looks_like_html(body):
            raise NotPublic("the spreadsheet must be shared publicly", url=url, status_code=resp.status_code)
        logger.debug(f"fetched {len(body)} bytes from {url}")
        return body

    def _workbook(self, document_id: str, *, cancel: threading.Event | None = None) -> dict[str, pd.DataFrame]:
        cached = self.cache.get(document_id)
        if cached is not None:
            logger.debug(f"workbook cache hit document={document_id}")
            return cached
        # Another document's workbook is never kept alongside this one
        self.cache.discard()
        body = self._fetch(self._xlsx_url(document_id), cancel=cancel)
        sheets = read_workbook(body, "xlsx")
        if cancel is not None and cancel.is_set():
            raise FetchCancelled("fetch cancelled", url=self._xlsx_url(document_id))
        self.cache.put(document_id, sheets)
        return sheets

    def list_tabs(self, document_id: str, *, cancel: threading.Event | None = None) -> list[TabInfo]:
        """Enumerate the tabs of a document (fetching the workbook at most once)."""
        sheets = self._workbook(document_id, cancel=cancel)
        return [
            TabInfo(tab_id=str(i), name=name, non_empty_row_count=count_data_rows(df))
            for i, (name, df) in enumerate(sheets.items())
        ]

    def select_tab(self, document_id: str, tab_id: str, *, cancel: threading.Event | None = None) -> RawGrid:
        """Read one enumerated tab, from the cached workbook when available."""
        sheets = self._workbook(document_id, cancel=cancel)
        names = list(sheets)
        try:
            index = int(tab_id)
        except (TypeError, ValueError):
            index = -1
        if not 0 <= index < len(names):
            raise UnknownTab(f"no tab {tab_id!r} in document {document_id} ({len(names)} tabs)")
        name = names[index]
        return grid_from_frame(sheets[name], f"Google Sheet - {name}")

    def resolve(self, url: str, *, cancel: threading.Event | None = None) -> RawGrid | list[TabInfo]:
        """Resolve a share URL to a grid, or to a tab list when a choice is needed.

        Returns a RawGrid when the URL names a tab or the document has a single
        tab; returns the list of TabInfo when several tabs exist.
        """
        ref = parse_sheet_url(url)
        if ref.tab_id is not None:
            body = self._fetch(self._csv_url(ref.document_id, ref.tab_id), cancel=cancel)
            return read_source(body, fmt="csv", label="Google Sheet")

        tabs = self.list_tabs(ref.document_id, cancel=cancel)
        if not tabs:
            raise AccessDenied("no readable tab in spreadsheet; check that it is shared publicly", url=url)
        if len(tabs) == 1:
            return self.select_tab(ref.document_id, tabs[0].tab_id)
        logger.info(f"document={ref.document_id} has {len(tabs)} tabs, selection required")
        return tabs
