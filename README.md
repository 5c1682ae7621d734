# ordermatch

An order matching engine for a single exchange. Orders are stored in a
SQLite database file, matched by price-time priority, and served through
a small JSON HTTP API built with Flask.

## Running the server

Start the server with:

    ordermatch

Options:

| Option   | Default                       | Meaning                  |
|----------|-------------------------------|--------------------------|
| `--db`   | `<DB_NAME>.db`                | SQLite database file     |
| `--port` | `SERVER_PORT`                 | TCP port to listen on    |

The tables are created in the database file if they do not exist yet.
Stop the server with Ctrl-C or SIGTERM; it stops serving and releases its
socket before exiting.

Settings come from environment variables, read by
`ordermatch.config.get_config()` into a frozen `Config`. Unless `APP_ENV`
is set to `production`, a `.env` file in the working directory is loaded
first. An empty variable counts as unset.

| Variable      | `Config` field | Default                 |
|---------------|----------------|-------------------------|
| `DB_HOST`     | `db_host`      | `localhost`             |
| `DB_PORT`     | `db_port`      | `5432`                  |
| `DB_USER`     | `db_user`      | `postgres`              |
| `DB_PASSWORD` | `db_password`  | `password`              |
| `DB_NAME`     | `db_name`      | `order_matching_system` |
| `SERVER_PORT` | `server_port`  | `8080`                  |

The server itself uses only `db_name` (for the default database file
name, so `order_matching_system.db`) and `server_port`.

## What it does not do

Storage is a local SQLite file only. The `db_host`, `db_port`, `db_user`
and `db_password` settings are read into `Config` but nothing in the
package connects to a database server with them.

## HTTP API

| Method   | Path                        | Purpose                          |
|----------|-----------------------------|----------------------------------|
| `GET`    | `/ping`                     | Health check, returns `{"message": "pong"}` |
| `POST`   | `/orders`                   | Place an order and match it      |
| `GET`    | `/orders/<id>`              | Look up an order                 |
| `DELETE` | `/orders/<id>`              | Cancel an open order             |
| `GET`    | `/orderbook?symbol=<sym>`   | Top 10 price levels on each side |
| `GET`    | `/trades?symbol=<sym>`      | The 100 most recent trades, newest first |

Errors are answered as `{"error": "<message>"}`.

### Placing an order

```json
{"symbol": "ACME", "side": "buy", "type": "limit", "price": 101.5, "quantity": 10}
```

- `symbol`, `side`, `type` and `quantity` are required.
- `side` is `buy` or `sell`. `type` is `limit` or `market`.
- Limit orders need a positive `price`. Market orders may omit it.
- `quantity` is an integer of at least 1.
- `symbol` is 1 to 10 bytes in UTF-8 and is stored upper-cased.

An invalid request answers 400. On success the response (status 201)
holds the order and, if any were made, the trades it produced:

```json
{"order": {"id": "...", "status": "partially_filled", "remaining_quantity": 4, ...},
 "trades": [{"id": "...", "buy_order_id": "...", "sell_order_id": "...",
             "symbol": "ACME", "price": 101.0, "quantity": 6, "executed_at": "..."}]}
```

Timestamps are ISO 8601 in UTC.

### Matching rules

- A buy matches the cheapest sells first; a sell matches the highest bids
  first. At equal prices the older order goes first.
- A limit order only matches resting orders at or better than its price.
  Whatever is left rests in the book as `open` or `partially_filled`.
- Two limit orders trade at the resting order's price. A market order
  trades at the resting order's price; a limit order against a resting
  market order trades at the limit price.
- When a market order finds nothing more to match, the returned order
  shows `remaining_quantity` 0 and status `filled`; the rest is dropped.
  The stored record keeps the quantities and status it had after its last
  trade.

### Queries

- `/orders/<id>`: unknown ids answer 404, malformed ids 400.
- `DELETE /orders/<id>`: returns
  `{"message": "Order canceled successfully", "order": {...}}`. Orders that
  are `filled` or `canceled` cannot be canceled again (400).
- `/orderbook` and `/trades` need `symbol` (400 without it); it is
  matched upper-cased. The book lists `bids` highest price first and
  `asks` lowest price first, each level with `price`, `total_quantity`
  and `order_count`. `/trades` answers `{"trades": null}` when there are
  none.

## Using it from Python

The engine in `ordermatch.engine` works on any `sqlite3.Connection`:

```python
import sqlite3

from ordermatch.engine import (
    OrderRequest, init_schema, place_order, get_order_book, get_trades,
)

conn = sqlite3.connect(":memory:")
init_schema(conn)

place_order(conn, OrderRequest.from_dict(
    {"symbol": "acme", "side": "sell", "type": "limit", "price": 100.0, "quantity": 5}))
order, trades = place_order(conn, OrderRequest.from_dict(
    {"symbol": "ACME", "side": "buy", "type": "market", "quantity": 3}))

print(order.status, [t.quantity for t in trades])
print(get_order_book(conn, "ACME").to_dict())
print([t.to_dict() for t in get_trades(conn, "ACME")])
```

Also available: `validate_order_request(req)`, `get_order(conn, order_id)`
and `cancel_order(conn, order_id)`. Results are the dataclasses `Order`,
`Trade`, `OrderBook` and `OrderBookLevel` from `ordermatch.models`, each
with a `to_dict()` giving the JSON form.

Invalid requests, ids or symbols raise `OrderError`; looking up or
canceling a missing order raises `OrderNotFound`; canceling a finished
order raises `OrderNotCancelable`. Both are subclasses of `OrderError`.

The Flask application is built by `ordermatch.app.create_app(db_path)`,
which suits tests with Flask's test client. `ordermatch.app.WebServer(addr,
db_path)` serves it in a background thread: `start()` binds an address
such as `":8080"` or `"127.0.0.1:0"`, `port` gives the bound port, and
`shutdown()` stops it.