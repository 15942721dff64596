"""Trade log repository — append-only SQLite record of decisions and prices."""

import json
from datetime import datetime
from typing import Optional

from ethbot.repos.db import get_connection
from ethbot.strategy.models import PriceSample


class TradeLogRepo:
    """Data access layer for the trade log and the price history.

    Args:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    # ── Write ────────────────────────────────────────────────────────────

    def append_record(
        self,
        tag: str,
        timestamp: datetime,
        amount: float,
        price: float,
        **extra,
    ) -> int:
        """Append one decision row (e.g. ``"MA-BUY"``) and return its ``id``."""
        conn = get_connection(self._db_path)
        try:
            cur = conn.execute(
                """
                INSERT INTO trade_log (tag, recorded_at, amount, price, extra)
                VALUES (?, ?, ?, ?, ?)
                """,
                (tag, timestamp.isoformat(), amount, price, json.dumps(extra)),
            )
            conn.commit()
            return cur.lastrowid
        finally:
            conn.close()

    def record_price(self, timestamp: datetime, price: float) -> int:
        """Append one observed price to the price history."""
        conn = get_connection(self._db_path)
        try:
            cur = conn.execute(
                "INSERT INTO price_history (recorded_at, price) VALUES (?, ?)",
                (timestamp.isoformat(), price),
            )
            conn.commit()
            return cur.lastrowid
        finally:
            conn.close()

    # ── Read ─────────────────────────────────────────────────────────────

    def last_recorded_row(self, tag: str) -> int:
        """Return the highest row id recorded under *tag*, or 0 if none."""
        conn = get_connection(self._db_path)
        try:
            row = conn.execute(
                "SELECT MAX(id) FROM trade_log WHERE tag = ?", (tag,),
            ).fetchone()
            return row[0] or 0
        finally:
            conn.close()

    def historical_prices(self, limit: int) -> list[float]:
        """Return the last *limit* recorded prices, oldest first."""
        conn = get_connection(self._db_path)
        try:
            rows = conn.execute(
                "SELECT price FROM price_history ORDER BY id DESC LIMIT ?",
                (limit,),
            ).fetchall()
            return [row["price"] for row in reversed(rows)]
        finally:
            conn.close()

    def historical_samples(
        self,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> list[PriceSample]:
        """Return recorded price samples, oldest first.

        Args:
            since: Keep only samples recorded at or after this instant.
            limit: Keep only the newest *limit* samples.
        """
        conn = get_connection(self._db_path)
        try:
            if limit is None:
                rows = conn.execute(
                    "SELECT recorded_at, price FROM price_history ORDER BY id DESC",
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT recorded_at, price FROM price_history "
                    "ORDER BY id DESC LIMIT ?",
                    (limit,),
                ).fetchall()
        finally:
            conn.close()
        samples: list[PriceSample] = []
        for row in reversed(rows):
            ts = datetime.fromisoformat(row["recorded_at"])
            if since is None or ts >= since:
                samples.append(PriceSample(price=row["price"], timestamp=ts))
        return samples

    def get_records(self, limit: int = 20, tag: Optional[str] = None) -> dict:
        """Return recent trade-log rows, newest first.

        Returns:
            ``{"records": [...], "total": int}``
        """
        conn = get_connection(self._db_path)
        try:
            where_clause = ""
            params: list = []
            if tag:
                where_clause = "WHERE tag = ?"
                params.append(tag)

            rows = conn.execute(
                f"SELECT * FROM trade_log {where_clause} ORDER BY id DESC LIMIT ?",
                (*params, limit),
            ).fetchall()
            total = conn.execute(
                f"SELECT COUNT(*) FROM trade_log {where_clause}", params,
            ).fetchone()[0]

            records = []
            for row in rows:
                record = dict(row)
                record["extra"] = json.loads(record["extra"])
                records.append(record)
            return {"records": records, "total": total}
        finally:
            conn.close()
