"""Data records for orders, trades and order book snapshots."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional


@dataclass
class Order:
    """An order as stored in the book."""

    id: uuid.UUID
    symbol: str
    side: str
    type: str
    price: Optional[float]
    initial_quantity: int
    remaining_quantity: int
    status: str
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready mapping of the order."""
        return {
            "id": str(self.id),
            "symbol": self.symbol,
            "side": self.side,
            "type": self.type,
            "price": self.price,
            "initial_quantity": self.initial_quantity,
            "remaining_quantity": self.remaining_quantity,
            "status": self.status,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass
class Trade:
    """An execution between a buy order and a sell order."""

    id: uuid.UUID
    buy_order_id: uuid.UUID
    sell_order_id: uuid.UUID
    symbol: str
    price: float
    quantity: int
    executed_at: datetime

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready mapping of the trade."""
        return {
            "id": str(self.id),
            "buy_order_id": str(self.buy_order_id),
            "sell_order_id": str(self.sell_order_id),
            "symbol": self.symbol,
            "price": self.price,
            "quantity": self.quantity,
            "executed_at": self.executed_at.isoformat(),
        }


@dataclass
class OrderBookLevel:
    """Aggregated resting quantity at one price."""

    price: float
    total_quantity: int
    order_count: int

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready mapping of the level."""
        return {
            "price": self.price,
            "total_quantity": self.total_quantity,
            "order_count": self.order_count,
        }


@dataclass
class OrderBook:
    """Top-of-book snapshot for one symbol."""

    symbol: str
    bids: list[OrderBookLevel] = field(default_factory=list)
    asks: list[OrderBookLevel] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready mapping of the book."""
        return {
            "symbol": self.symbol,
            "bids": [level.to_dict() for level in self.bids],
            "asks": [level.to_dict() for level in self.asks],
        }