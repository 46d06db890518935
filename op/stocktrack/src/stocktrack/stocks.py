# stocks.py
import math
import sqlite3
from typing import Any, Dict, List, Sequence

from .db import Database
from .errors import DuplicateStock

_COLUMNS = ("symbol", "name", "exchange_short_name", "exchange", "type")


class StockStore:
    def __init__(self, db: Database) -> None:
        self._db = db

    def list_all(self) -> List[Dict[str, Any]]:
        conn = self._db.connect()
        rows = conn.execute(
            "SELECT symbol, name, exchange_short_name, exchange, type FROM stocks ORDER BY symbol;"
        ).fetchall()
        return [dict(r) for r in rows]

    def add(self, asset: Dict[str, Any]) -> Dict[str, Any]:
        values = {c: asset.get(c) for c in _COLUMNS}
        try:
            with self._db.transaction() as conn:
                conn.execute(
                    "INSERT INTO stocks(symbol, name, exchange_short_name, exchange, type) VALUES(?,?,?,?,?);",
                    tuple(values[c] for c in _COLUMNS),
                )
        except sqlite3.IntegrityError as e:
            raise DuplicateStock() from e
        return values


def filter_assets(query: str, assets: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Case-insensitive substring match on symbol or name.

    Pure function of its arguments; the API runs it on a worker thread.
    """
    q = (query or "").strip().lower()
    if not q:
        return list(assets)
    return [
        a for a in assets
        if q in (a.get("symbol") or "").lower() or q in (a.get("name") or "").lower()
    ]


def rank_results(query: str, results: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    # exact symbol, then symbol prefix, then alphabetical
    q = (query or "").strip().upper()

    def key(a: Dict[str, Any]):
        symbol = (a.get("symbol") or "").upper()
        return (symbol != q, not symbol.startswith(q), symbol)

    return sorted(results, key=key)


def total_pages(count: int, per_page: int) -> int:
    return math.ceil(count / per_page) if per_page > 0 else 0


def paginate(items: Sequence[Any], page: int, per_page: int) -> Dict[str, Any]:
    pages = total_pages(len(items), per_page)
    page = min(max(page, 1), max(pages, 1))
    start = (page - 1) * per_page
    return {
        "results": list(items[start:start + per_page]),
        "page": page,
        "totalPages": pages,
        "totalResults": len(items),
    }


def page_window(current: int, total: int) -> List[int]:
    """Page numbers to show around ``current``, at most five of them."""
    if total <= 1:
        return []
    start = max(1, current - 2)
    end = min(total, current + 2)
    if current <= 3:
        end = min(total, 5)
    if current > total - 3:
        start = max(1, total - 4)
    return list(range(start, end + 1))
