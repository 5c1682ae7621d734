"""Order placement, matching and queries over a SQLite store."""

from __future__ import annotations

import dataclasses
import sqlite3
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Union

from .models import Order, OrderBook, OrderBookLevel, Trade

_ORDER_COLUMNS = (
    "id, symbol, side, type, price, initial_quantity, "
    "remaining_quantity, status, created_at, updated_at"
)
_TRADE_COLUMNS = "id, buy_order_id, sell_order_id, symbol, price, quantity, executed_at"
_ACTIVE = "status IN ('open', 'partially_filled')"
_BOOK_DEPTH = 10
_TRADE_HISTORY = 100

_SCHEMA = """
CREATE TABLE IF NOT EXISTS orders (
    id TEXT PRIMARY KEY,
    symbol TEXT NOT NULL,
    side TEXT NOT NULL CHECK (side IN ('buy', 'sell')),
    type TEXT NOT NULL CHECK (type IN ('limit', 'market')),
    price REAL,
    initial_quantity INTEGER NOT NULL,
    remaining_quantity INTEGER NOT NULL,
    status TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS orders_book_idx ON orders (symbol, side, status, price);
CREATE TABLE IF NOT EXISTS trades (
    id TEXT PRIMARY KEY,
    buy_order_id TEXT NOT NULL REFERENCES orders (id),
    sell_order_id TEXT NOT NULL REFERENCES orders (id),
    symbol TEXT NOT NULL,
    price REAL NOT NULL,
    quantity INTEGER NOT NULL,
    executed_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS trades_symbol_idx ON trades (symbol, executed_at);
"""

OrderId = Union[str, uuid.UUID]


class OrderError(Exception):
    """A request that cannot be served as given."""


class OrderNotFound(OrderError):
    """No order has the requested id."""


class OrderNotCancelable(OrderError):
    """The order is already filled or canceled."""


@dataclass(frozen=True)
class OrderRequest:
    """A client's request to place an order."""

    symbol: str
    side: str
    type: str
    quantity: int
    price: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "OrderRequest":
        """Build a request from decoded JSON, checking required fields."""
        if not isinstance(data, Mapping):
            raise OrderError("request body must be a JSON object")
        text = {}
        for key in ("symbol", "side", "type"):
            value = data.get(key)
            if value is not None and not isinstance(value, str):
                raise OrderError(f"{key} must be a string")
            if not value:
                raise OrderError(f"{key} is required")
            text[key] = value
        quantity = data.get("quantity")
        if quantity is not None and (isinstance(quantity, bool) or not isinstance(quantity, int)):
            raise OrderError("quantity must be an integer")
        if not quantity:
            raise OrderError("quantity is required")
        if quantity < 1:
            raise OrderError("quantity must be at least 1")
        price = data.get("price")
        if price is not None:
            if isinstance(price, bool) or not isinstance(price, (int, float)):
                raise OrderError("price must be a number")
            price = float(price)
        return cls(quantity=quantity, price=price, **text)


def validate_order_request(req: OrderRequest) -> OrderRequest:
    """Check the request's values and return it with the symbol upper-cased."""
    if req.side not in ("buy", "sell"):
        raise OrderError("side must be 'buy' or 'sell'")
    if req.type not in ("limit", "market"):
        raise OrderError("type must be 'limit' or 'market'")
    if req.type == "limit" and (req.price is None or req.price <= 0):
        raise OrderError("limit orders must have a positive price")
    if not 1 <= len(req.symbol.encode("utf-8")) <= 10:
        raise OrderError("symbol must be between 1 and 10 characters")
    return dataclasses.replace(req, symbol=req.symbol.upper())


def init_schema(conn: sqlite3.Connection) -> None:
    """Create the tables if they do not exist yet."""
    conn.executescript(_SCHEMA)
    conn.commit()


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_id(order_id: OrderId) -> uuid.UUID:
    if isinstance(order_id, uuid.UUID):
        return order_id
    try:
        return uuid.UUID(str(order_id))
    except ValueError:
        raise OrderError("Invalid order ID format") from None


def _order_from_row(row: tuple) -> Order:
    return Order(
        id=uuid.UUID(row[0]),
        symbol=row[1],
        side=row[2],
        type=row[3],
        price=row[4],
        initial_quantity=row[5],
        remaining_quantity=row[6],
        status=row[7],
        created_at=datetime.fromisoformat(row[8]),
        updated_at=datetime.fromisoformat(row[9]),
    )


def _trade_from_row(row: tuple) -> Trade:
    return Trade(
        id=uuid.UUID(row[0]),
        buy_order_id=uuid.UUID(row[1]),
        sell_order_id=uuid.UUID(row[2]),
        symbol=row[3],
        price=row[4],
        quantity=row[5],
        executed_at=datetime.fromisoformat(row[6]),
    )


def _insert_order(conn: sqlite3.Connection, req: OrderRequest) -> Order:
    stamp = _now()
    order = Order(
        id=uuid.uuid4(),
        symbol=req.symbol.upper(),
        side=req.side,
        type=req.type,
        price=req.price,
        initial_quantity=req.quantity,
        remaining_quantity=req.quantity,
        status="open",
        created_at=stamp,
        updated_at=stamp,
    )
    conn.execute(
        f"INSERT INTO orders ({_ORDER_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
        (
            str(order.id), order.symbol, order.side, order.type, order.price,
            order.initial_quantity, order.remaining_quantity, order.status,
            stamp.isoformat(), stamp.isoformat(),
        ),
    )
    return order


def _find_matches(conn: sqlite3.Connection, order: Order) -> list[Order]:
    if order.side == "buy":
        opposite, comparison, direction = "sell", "<=", "ASC"
    else:
        opposite, comparison, direction = "buy", ">=", "DESC"
    sql = f"SELECT {_ORDER_COLUMNS} FROM orders WHERE symbol = ? AND side = ? AND {_ACTIVE}"
    params: list[Any] = [order.symbol, opposite]
    if order.type != "market":
        sql += f" AND price {comparison} ?"
        params.append(order.price)
    # Unpriced orders sort last when ascending and first when descending.
    sql += f" ORDER BY (price IS NULL) {direction}, price {direction}, created_at ASC, rowid ASC"
    return [_order_from_row(row) for row in conn.execute(sql, params)]


def _trade_price(order: Order, resting: Order) -> float:
    if order.type == "market":
        price = resting.price
    elif resting.type == "market":
        price = order.price
    else:
        price = resting.price
    if price is None:
        raise RuntimeError("cannot execute a trade against an order without a price")
    return price


def _create_trade(
    conn: sqlite3.Connection, order: Order, resting: Order, price: float, quantity: int
) -> Trade:
    buy, sell = (order, resting) if order.side == "buy" else (resting, order)
    trade = Trade(
        id=uuid.uuid4(),
        buy_order_id=buy.id,
        sell_order_id=sell.id,
        symbol=order.symbol,
        price=price,
        quantity=quantity,
        executed_at=_now(),
    )
    conn.execute(
        f"INSERT INTO trades ({_TRADE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
        (
            str(trade.id), str(trade.buy_order_id), str(trade.sell_order_id),
            trade.symbol, trade.price, trade.quantity, trade.executed_at.isoformat(),
        ),
    )
    return trade


def _update_order_quantity(conn: sqlite3.Connection, order: Order) -> None:
    if order.remaining_quantity == 0:
        status = "filled"
    elif order.remaining_quantity < order.initial_quantity:
        status = "partially_filled"
    else:
        status = "open"
    conn.execute(
        "UPDATE orders SET remaining_quantity = ?, status = ?, updated_at = ? WHERE id = ?",
        (order.remaining_quantity, status, _now().isoformat(), str(order.id)),
    )
    order.status = status


def _match_order(conn: sqlite3.Connection, order: Order) -> list[Trade]:
    trades: list[Trade] = []
    while order.remaining_quantity > 0:
        candidates = _find_matches(conn, order)
        if not candidates:
            if order.type == "market":
                # The unfilled remainder of a market order is dropped.
                order.remaining_quantity = 0
                order.status = "filled"
            break
        for resting in candidates:
            if order.remaining_quantity == 0:
                break
            quantity = min(order.remaining_quantity, resting.remaining_quantity)
            price = _trade_price(order, resting)
            trades.append(_create_trade(conn, order, resting, price, quantity))
            order.remaining_quantity -= quantity
            resting.remaining_quantity -= quantity
            _update_order_quantity(conn, order)
            _update_order_quantity(conn, resting)
    return trades


def place_order(conn: sqlite3.Connection, req: OrderRequest) -> tuple[Order, list[Trade]]:
    """Validate, store and match an order in one transaction."""
    req = validate_order_request(req)
    with conn:
        order = _insert_order(conn, req)
        trades = _match_order(conn, order)
    return order, trades


def _fetch_order(conn: sqlite3.Connection, order_id: uuid.UUID) -> Order:
    row = conn.execute(
        f"SELECT {_ORDER_COLUMNS} FROM orders WHERE id = ?", (str(order_id),)
    ).fetchone()
    if row is None:
        raise OrderNotFound("Order not found")
    return _order_from_row(row)


def get_order(conn: sqlite3.Connection, order_id: OrderId) -> Order:
    """Return the stored order with the given id."""
    return _fetch_order(conn, _parse_id(order_id))


def cancel_order(conn: sqlite3.Connection, order_id: OrderId) -> Order:
    """Cancel an open or partially filled order and return it."""
    parsed = _parse_id(order_id)
    order = _fetch_order(conn, parsed)
    if order.status in ("filled", "canceled"):
        raise OrderNotCancelable("Cannot cancel filled or already canceled order")
    stamp = _now()
    with conn:
        conn.execute(
            "UPDATE orders SET status = 'canceled', updated_at = ? WHERE id = ?",
            (stamp.isoformat(), str(parsed)),
        )
    order.status = "canceled"
    order.updated_at = stamp
    return order


def _require_symbol(symbol: str) -> str:
    symbol = (symbol or "").upper()
    if not symbol:
        raise OrderError("Symbol parameter is required")
    return symbol


def _levels(conn: sqlite3.Connection, symbol: str, side: str, direction: str) -> list[OrderBookLevel]:
    rows = conn.execute(
        f"SELECT price, SUM(remaining_quantity), COUNT(*) FROM orders "
        f"WHERE symbol = ? AND side = ? AND {_ACTIVE} GROUP BY price "
        f"ORDER BY (price IS NULL) {direction}, price {direction} LIMIT ?",
        (symbol, side, _BOOK_DEPTH),
    )
    return [
        OrderBookLevel(price=price, total_quantity=total, order_count=count)
        for price, total, count in rows
        if price is not None
    ]


def get_order_book(conn: sqlite3.Connection, symbol: str) -> OrderBook:
    """Return up to ten price levels on each side of the book."""
    symbol = _require_symbol(symbol)
    return OrderBook(
        symbol=symbol,
        bids=_levels(conn, symbol, "buy", "DESC"),
        asks=_levels(conn, symbol, "sell", "ASC"),
    )


def get_trades(conn: sqlite3.Connection, symbol: str) -> list[Trade]:
    """Return the latest hundred trades for a symbol, newest first."""
    symbol = _require_symbol(symbol)
    rows = conn.execute(
        f"SELECT {_TRADE_COLUMNS} FROM trades WHERE symbol = ? "
        f"ORDER BY executed_at DESC, rowid DESC LIMIT ?",
        (symbol, _TRADE_HISTORY),
    )
    return [_trade_from_row(row) for row in rows]