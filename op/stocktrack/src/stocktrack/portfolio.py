# portfolio.py
import time
import uuid
from collections import OrderedDict
from typing import Any, Dict, List

from .db import Database
from .formatting import format_currency, format_percentage


def _row_to_holding(row) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "symbol": row["symbol"],
        "shares": row["shares"],
        "costPerShare": row["cost_per_share"],
        "costInEUR": row["cost_in_eur"],
        "tradingCurrency": row["trading_currency"],
        "purchaseDate": row["purchase_date"],
        "notes": row["notes"],
        "displayCostPerShare": format_currency(row["cost_per_share"], row["trading_currency"]),
    }


class PortfolioStore:
    """Per-user stock holdings.

    Prices are not looked up here; totals are computed from cost basis only.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    def add_holding(self, user_id: str, *, symbol: str, shares: float, cost_per_share: float,
                    cost_in_eur: float, trading_currency: str, purchase_date: str,
                    notes: str = "") -> Dict[str, Any]:
        holding_id = uuid.uuid4().hex
        with self._db.transaction() as conn:
            conn.execute("""
                INSERT INTO holdings(id, user_id, symbol, shares, cost_per_share, cost_in_eur,
                                     trading_currency, purchase_date, notes, created_at)
                VALUES(?,?,?,?,?,?,?,?,?,?)
            """, (holding_id, user_id, symbol.upper(), shares, cost_per_share, cost_in_eur,
                  trading_currency, purchase_date, notes, int(time.time())))
            row = conn.execute("SELECT * FROM holdings WHERE id=?;", (holding_id,)).fetchone()
        return _row_to_holding(row)

    def holdings(self, user_id: str, symbol: str | None = None) -> List[Dict[str, Any]]:
        conn = self._db.connect()
        if symbol is None:
            rows = conn.execute(
                "SELECT * FROM holdings WHERE user_id=? ORDER BY created_at, rowid;", (user_id,)
            ).fetchall()
        else:
            rows = conn.execute(
                "SELECT * FROM holdings WHERE user_id=? AND symbol=? ORDER BY created_at, rowid;",
                (user_id, symbol.upper()),
            ).fetchall()
        return [_row_to_holding(r) for r in rows]

    def aggregate(self, user_id: str) -> List[Dict[str, Any]]:
        grouped: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
        for h in self.holdings(user_id):
            g = grouped.setdefault(h["symbol"], {"symbol": h["symbol"], "totalShares": 0.0, "totalCost": 0.0})
            g["totalShares"] += h["shares"]
            g["totalCost"] += h["shares"] * h["costPerShare"]
        overall = sum(g["totalCost"] for g in grouped.values())
        for g in grouped.values():
            g["avgCostPerShare"] = g["totalCost"] / g["totalShares"] if g["totalShares"] else 0.0
            g["weight"] = g["totalCost"] / overall * 100 if overall else 0.0
            g["displayWeight"] = format_percentage(g["weight"])
        return list(grouped.values())

    def symbol_summary(self, user_id: str, symbol: str) -> Dict[str, Any]:
        holdings = self.holdings(user_id, symbol)
        return {
            "symbol": symbol.upper(),
            "holdings": holdings,
            "totalShares": sum(h["shares"] for h in holdings),
            "totalInvestment": sum(h["shares"] * h["costPerShare"] for h in holdings),
        }

    def remove_holding(self, user_id: str, symbol: str, holding_id: str) -> bool:
        with self._db.transaction() as conn:
            cur = conn.execute(
                "DELETE FROM holdings WHERE id=? AND user_id=? AND symbol=?;",
                (holding_id, user_id, symbol.upper()),
            )
        return cur.rowcount > 0
