"""HTTP interface for the order matching service."""

from __future__ import annotations

import argparse
import logging
import signal
import sqlite3
import threading
from socketserver import ThreadingMixIn
from typing import Any, Optional
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

from flask import Flask, g, jsonify, request

from .config import get_config
from .engine import (
    OrderError,
    OrderNotCancelable,
    OrderNotFound,
    OrderRequest,
    cancel_order,
    get_order,
    get_order_book,
    get_trades,
    init_schema,
    place_order,
)

log = logging.getLogger(__name__)


def _error(message: str, status: int) -> tuple[Any, int]:
    return jsonify({"error": message}), status


def _connection() -> sqlite3.Connection:
    conn = g.get("db")
    if conn is None:
        from flask import current_app

        conn = sqlite3.connect(current_app.config["DATABASE"])
        g.db = conn
    return conn


def create_app(db_path: str) -> Flask:
    """Build the Flask application backed by the SQLite file at db_path."""
    with sqlite3.connect(db_path) as conn:
        init_schema(conn)
    conn.close()

    app = Flask(__name__)
    app.config["DATABASE"] = db_path

    @app.teardown_appcontext
    def _close_db(_exc: Optional[BaseException]) -> None:
        conn = g.pop("db", None)
        if conn is not None:
            conn.close()

    @app.get("/ping")
    def ping():
        return jsonify({"message": "pong"}), 200

    @app.post("/orders")
    def create_order():
        try:
            req = OrderRequest.from_dict(request.get_json(silent=True))
            order, trades = place_order(_connection(), req)
        except OrderError as exc:
            return _error(str(exc), 400)
        except (sqlite3.Error, RuntimeError) as exc:
            return _error(f"Failed to match order: {exc}", 500)
        body: dict[str, Any] = {"order": order.to_dict()}
        if trades:
            body["trades"] = [trade.to_dict() for trade in trades]
        return jsonify(body), 201

    @app.get("/orders/<order_id>")
    def order_status(order_id: str):
        try:
            order = get_order(_connection(), order_id)
        except OrderNotFound as exc:
            return _error(str(exc), 404)
        except OrderError as exc:
            return _error(str(exc), 400)
        except sqlite3.Error as exc:
            return _error(f"Database error: {exc}", 500)
        return jsonify(order.to_dict()), 200

    @app.delete("/orders/<order_id>")
    def cancel(order_id: str):
        try:
            order = cancel_order(_connection(), order_id)
        except OrderNotFound as exc:
            return _error(str(exc), 404)
        except (OrderNotCancelable, OrderError) as exc:
            return _error(str(exc), 400)
        except sqlite3.Error:
            return _error("Failed to cancel order", 500)
        return jsonify({"message": "Order canceled successfully", "order": order.to_dict()}), 200

    @app.get("/orderbook")
    def orderbook():
        try:
            book = get_order_book(_connection(), request.args.get("symbol", ""))
        except OrderError as exc:
            return _error(str(exc), 400)
        except sqlite3.Error as exc:
            return _error(f"Failed to fetch order book: {exc}", 500)
        return jsonify(book.to_dict()), 200

    @app.get("/trades")
    def trades():
        try:
            found = get_trades(_connection(), request.args.get("symbol", ""))
        except OrderError as exc:
            return _error(str(exc), 400)
        except sqlite3.Error as exc:
            return _error(f"Failed to fetch trades: {exc}", 500)
        return jsonify({"trades": [t.to_dict() for t in found] or None}), 200

    return app


class _ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    daemon_threads = True


class _QuietHandler(WSGIRequestHandler):
    def log_message(self, format: str, *args: Any) -> None:  # noqa: A002
        log.info("%s - %s", self.address_string(), format % args)


def _split_addr(addr: str) -> tuple[str, int]:
    host, _, port = addr.rpartition(":")
    try:
        return host, int(port)
    except ValueError:
        raise ValueError(f"invalid listen address: {addr!r}") from None


class WebServer:
    """Serves the application in a background thread."""

    def __init__(self, addr: str, db_path: str) -> None:
        self.addr = addr
        self.db_path = db_path
        self._server: Optional[WSGIServer] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> Optional[int]:
        """The bound port once started, otherwise None."""
        return self._server.server_port if self._server is not None else None

    def start(self) -> None:
        """Bind the listen address and start serving requests."""
        host, port = _split_addr(self.addr)
        app = create_app(self.db_path)
        self._server = make_server(
            host, port, app, server_class=_ThreadingWSGIServer, handler_class=_QuietHandler
        )
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()

    def shutdown(self) -> None:
        """Stop serving and release the socket."""
        if self._server is None:
            return
        self._server.shutdown()
        self._server.server_close()
        if self._thread is not None:
            self._thread.join()
        self._server = None
        self._thread = None


def main(argv: Optional[list[str]] = None) -> int:
    """Run the service until interrupted."""
    logging.basicConfig(level=logging.INFO)
    log.info("Starting the application...")
    config = get_config()

    parser = argparse.ArgumentParser(prog="ordermatch")
    parser.add_argument("--db", default=f"{config.db_name}.db", help="SQLite database file")
    parser.add_argument("--port", default=config.server_port, help="port to listen on")
    args = parser.parse_args(argv)

    server = WebServer(f":{args.port}", args.db)
    try:
        server.start()
    except (sqlite3.Error, OSError, ValueError) as exc:
        log.error("Failed to start: %s", exc)
        return 1
    log.info("Database connection established successfully.")
    print("Application is running...")

    stop = threading.Event()

    def _handle(_signum: int, _frame: Any) -> None:
        stop.set()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)
    stop.wait()

    log.info("Shutting down the application gracefully...")
    server.shutdown()
    log.info("Application has been shut down.")
    return 0