import uuid
from datetime import datetime, timezone

from ordermatch.models import Order, OrderBook, OrderBookLevel, Trade

STAMP = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def make_order(price=10.5):
    return Order(
        id=uuid.UUID(int=1),
        symbol="ABC",
        side="buy",
        type="limit",
        price=price,
        initial_quantity=5,
        remaining_quantity=3,
        status="partially_filled",
        created_at=STAMP,
        updated_at=STAMP,
    )


def test_order_to_dict_fields():
    data = make_order().to_dict()
    assert data["id"] == str(uuid.UUID(int=1))
    assert data["symbol"] == "ABC"
    assert data["side"] == "buy"
    assert data["type"] == "limit"
    assert data["price"] == 10.5
    assert data["initial_quantity"] == 5
    assert data["remaining_quantity"] == 3
    assert data["status"] == "partially_filled"


def test_order_to_dict_timestamps_round_trip():
    data = make_order().to_dict()
    assert datetime.fromisoformat(data["created_at"]) == STAMP
    assert datetime.fromisoformat(data["updated_at"]) == STAMP


def test_order_to_dict_keeps_missing_price():
    data = make_order(price=None).to_dict()
    assert "price" in data
    assert data["price"] is None


def test_trade_to_dict():
    trade = Trade(
        id=uuid.UUID(int=7),
        buy_order_id=uuid.UUID(int=8),
        sell_order_id=uuid.UUID(int=9),
        symbol="XYZ",
        price=99.0,
        quantity=4,
        executed_at=STAMP,
    )
    data = trade.to_dict()
    assert uuid.UUID(data["id"]) == trade.id
    assert uuid.UUID(data["buy_order_id"]) == trade.buy_order_id
    assert uuid.UUID(data["sell_order_id"]) == trade.sell_order_id
    assert data["symbol"] == "XYZ"
    assert data["price"] == 99.0
    assert data["quantity"] == 4
    assert datetime.fromisoformat(data["executed_at"]) == STAMP


def test_order_book_level_to_dict():
    level = OrderBookLevel(price=1.25, total_quantity=10, order_count=2)
    assert level.to_dict() == {"price": 1.25, "total_quantity": 10, "order_count": 2}


def test_order_book_to_dict_nests_levels():
    book = OrderBook(
        symbol="ABC",
        bids=[OrderBookLevel(price=2.0, total_quantity=3, order_count=1)],
        asks=[OrderBookLevel(price=3.0, total_quantity=4, order_count=2)],
    )
    data = book.to_dict()
    assert data["symbol"] == "ABC"
    assert data["bids"] == [{"price": 2.0, "total_quantity": 3, "order_count": 1}]
    assert data["asks"] == [{"price": 3.0, "total_quantity": 4, "order_count": 2}]


def test_empty_order_book_has_empty_lists():
    data = OrderBook(symbol="ABC").to_dict()
    assert data["bids"] == []
    assert data["asks"] == []