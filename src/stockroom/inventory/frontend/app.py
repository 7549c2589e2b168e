from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional

from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from ...config import Settings, load_settings
from ...domain.currency import CANONICAL_CURRENCY
from ...domain.models import Product
from ...errors import (
    CurrencyError,
    InvalidInvoiceItemError,
    InvalidQuantityError,
    InvoiceValidationError,
    ProductNotFoundError,
    ReconciliationAborted,
    StoreError,
)
from ...logging import get_logger
from ...paths import find_project_root
from ..alerts import format_low_stock_alert, low_stock_products
from ..csv_io import export_csv
from ..db import InventoryDatabase
from ..parser import invoice_to_payload, parse_invoice_payload
from ..rates import ExchangeRateClient
from ..review import preview_invoice, summarize_invoice
from ..service import InventoryService, parse_positive_int


LOG = get_logger("inventory-frontend")


def _parse_int(value: Optional[str], *, default: int, minimum: int, maximum: int) -> int:
    try:
        parsed = int(value) if value is not None else default
    except (TypeError, ValueError):
        parsed = default
    if parsed < minimum:
        return minimum
    if parsed > maximum:
        return maximum
    return parsed


def _parse_rate(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=400, detail="Invalid exchange_rate") from exc


def _product_json(p: Product) -> Dict[str, Any]:
    out = asdict(p)
    out["is_low_stock"] = p.is_low_stock
    return out


async def _json_body(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Request body must be JSON") from exc
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")
    return body


async def _http_error(_: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse({"detail": exc.detail}, status_code=exc.status_code)


async def _store_error(_: Request, exc: StoreError) -> JSONResponse:
    LOG.error(f"Store failure while handling request: {exc}")
    return JSONResponse({"detail": "Inventory store unavailable"}, status_code=503)


def create_app(
    root_dir: Optional[str] = None,
    *,
    db: Optional[InventoryDatabase] = None,
    rate_client: Optional[ExchangeRateClient] = None,
    settings: Optional[Settings] = None,
    allow_origins: Optional[List[str]] = None,
) -> Starlette:
    """Create a Starlette app exposing the inventory JSON API."""

    project_root = find_project_root(root_dir)
    cfg = settings or load_settings(project_root)
    if db is None:
        db = InventoryDatabase(root_dir=project_root, db_path=cfg.db_path, timeout=cfg.db_timeout)
    rates = rate_client or ExchangeRateClient(cfg.rate_url, timeout=cfg.rate_timeout)
    service = InventoryService(db)

    async def health(_: Request) -> JSONResponse:
        return JSONResponse({"status": "ok", "db_path": db.db_path})

    async def products(request: Request) -> JSONResponse:
        search = request.query_params.get("search") or None
        items = service.search_products(search)
        return JSONResponse({"items": [_product_json(p) for p in items]})

    async def product_update(request: Request) -> JSONResponse:
        product_id = int(request.path_params["product_id"])
        body = await _json_body(request)
        try:
            updated = service.update_product_details(
                product_id,
                min_stock=body.get("min_stock"),
                price=body.get("price"),
                quantity=body.get("quantity"),
                currency=body.get("currency") or CANONICAL_CURRENCY,
                exchange_rate=_parse_rate(body.get("exchange_rate")),
            )
        except ProductNotFoundError as exc:
            raise HTTPException(status_code=404, detail="Product not found") from exc
        except (InvalidQuantityError, CurrencyError, TypeError) as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return JSONResponse(_product_json(updated))

    async def stock_out(request: Request) -> JSONResponse:
        product_id = int(request.path_params["product_id"])
        body = await _json_body(request)
        amount = parse_positive_int(body.get("amount"))
        if amount is None:
            raise HTTPException(status_code=400, detail="amount must be a positive integer")
        removed = service.stock_out(product_id, amount)
        product = db.get_product(product_id)
        if product is None:
            raise HTTPException(status_code=404, detail="Product not found")
        return JSONResponse({"removed": removed, "product": _product_json(product)})

    async def suppliers(request: Request) -> JSONResponse:
        search = request.query_params.get("search") or None
        return JSONResponse({"items": [asdict(s) for s in service.search_suppliers(search)]})

    async def activity(request: Request) -> JSONResponse:
        limit = _parse_int(request.query_params.get("limit"), default=50, minimum=1, maximum=500)
        return JSONResponse({"items": [asdict(a) for a in service.list_activity(limit)]})

    async def stats(_: Request) -> JSONResponse:
        return JSONResponse(asdict(service.get_stats()))

    async def low_stock(_: Request) -> JSONResponse:
        catalog = service.list_products()
        alert = format_low_stock_alert(catalog)
        return JSONResponse(
            {
                "items": [_product_json(p) for p in low_stock_products(catalog)],
                "subject": alert[0] if alert else None,
                "body": alert[1] if alert else None,
            }
        )

    async def invoice_preview(request: Request) -> JSONResponse:
        body = await _json_body(request)
        rate = _parse_rate(body.get("exchange_rate"))
        try:
            invoice = parse_invoice_payload(body, default_currency=cfg.invoice_currency)
        except InvoiceValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        invoice = service.resolve_invoice(invoice)
        lines = preview_invoice(invoice, service.list_products())
        summary = summarize_invoice(invoice, rate)
        return JSONResponse(
            {
                "invoice": invoice_to_payload(invoice),
                "lines": [dict(asdict(line), is_new=line.is_new) for line in lines],
                "summary": asdict(summary),
            }
        )

    async def invoice_confirm(request: Request) -> JSONResponse:
        body = await _json_body(request)
        rate = _parse_rate(body.get("exchange_rate"))
        try:
            invoice = parse_invoice_payload(body, default_currency=cfg.invoice_currency)
            catalog = service.confirm_invoice(invoice, rate)
        except (InvoiceValidationError, InvalidInvoiceItemError, CurrencyError) as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except ReconciliationAborted as exc:
            LOG.error(f"Invoice confirmation aborted: {exc}; applied items: {exc.applied}")
            return JSONResponse(
                {"detail": str(exc), "applied": exc.applied, "failed_index": exc.failed_index},
                status_code=500,
            )
        return JSONResponse({"items": [_product_json(p) for p in catalog]})

    async def import_csv(request: Request) -> JSONResponse:
        raw = await request.body()
        try:
            text = raw.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise HTTPException(status_code=400, detail="CSV must be UTF-8 text") from exc
        result = service.import_csv_text(text)
        return JSONResponse(asdict(result))

    async def export(_: Request) -> Response:
        content = export_csv(db.list_products(), db.list_suppliers())
        return Response(
            content,
            media_type="text/csv",
            headers={"Content-Disposition": 'attachment; filename="inventory.csv"'},
        )

    async def exchange_rates(_: Request) -> JSONResponse:
        snapshot = rates.get_rates()
        if snapshot is None:
            raise HTTPException(status_code=503, detail="Exchange rate source unavailable")
        return JSONResponse(asdict(snapshot))

    routes = [
        Route("/api/health", health, methods=["GET"]),
        Route("/api/products", products, methods=["GET"]),
        Route("/api/products/{product_id:int}", product_update, methods=["PATCH"]),
        Route("/api/products/{product_id:int}/stock-out", stock_out, methods=["POST"]),
        Route("/api/suppliers", suppliers, methods=["GET"]),
        Route("/api/activity", activity, methods=["GET"]),
        Route("/api/stats", stats, methods=["GET"]),
        Route("/api/alerts/low-stock", low_stock, methods=["GET"]),
        Route("/api/invoices/preview", invoice_preview, methods=["POST"]),
        Route("/api/invoices/confirm", invoice_confirm, methods=["POST"]),
        Route("/api/import/csv", import_csv, methods=["POST"]),
        Route("/api/export/csv", export, methods=["GET"]),
        Route("/api/rates", exchange_rates, methods=["GET"]),
    ]

    app = Starlette(
        debug=False,
        routes=routes,
        exception_handlers={HTTPException: _http_error, StoreError: _store_error},
    )

    origins = allow_origins or ["http://localhost:5173", "http://127.0.0.1:5173"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if "*" in origins else origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    return app


__all__ = ["create_app"]
