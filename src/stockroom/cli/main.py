from __future__ import annotations

import argparse
import json
import os
import sys
from dataclasses import asdict
from typing import Optional, Sequence

from ..config import Settings, load_settings
from ..domain.currency import CANONICAL_CURRENCY, is_valid_rate
from ..errors import CurrencyError, InvalidInvoiceItemError, InvoiceValidationError, ReconciliationAborted, StoreError
from ..inventory.alerts import format_low_stock_alert
from ..inventory.csv_io import export_csv
from ..inventory.db import InventoryDatabase
from ..inventory.parser import parse_invoice_json
from ..inventory.rates import ExchangeRateClient
from ..inventory.review import preview_invoice, summarize_invoice
from ..inventory.service import InventoryService, parse_positive_int
from ..logging import get_logger
from ..paths import expand_abs

LOG = get_logger("cli-main")


def _open_db(ns: argparse.Namespace, settings: Settings) -> InventoryDatabase:
    db_path = ns.db or settings.db_path
    return InventoryDatabase(root_dir=os.getcwd(), db_path=db_path, timeout=settings.db_timeout)


def _resolve_rate(ns: argparse.Namespace, settings: Settings) -> Optional[float]:
    if ns.rate is not None:
        return ns.rate
    if not ns.fetch_rate:
        return None
    snapshot = ExchangeRateClient(settings.rate_url, timeout=settings.rate_timeout).get_rates()
    if snapshot is None or snapshot.official is None:
        LOG.error("Could not fetch the official exchange rate; pass --rate instead.")
        return None
    LOG.info(f"Using official exchange rate {snapshot.official}")
    return snapshot.official


def _handle_init(ns: argparse.Namespace, settings: Settings) -> int:
    db = _open_db(ns, settings)
    LOG.info(f"Inventory DB ready at: {db.db_path}")
    print(db.db_path)
    return 0


def _handle_ingest(ns: argparse.Namespace, settings: Settings) -> int:
    path = expand_abs(ns.invoice)
    if not os.path.isfile(path):
        LOG.error(f"Invoice file not found: {path}")
        return 2
    with open(path, "r", encoding="utf-8") as fh:
        text = fh.read()
    try:
        invoice = parse_invoice_json(text, default_currency=settings.invoice_currency)
    except InvoiceValidationError as exc:
        LOG.error(f"Invalid invoice payload: {exc}")
        return 2
    if not invoice.items:
        LOG.warning("Invoice has no items; nothing to do.")
        return 0

    db = _open_db(ns, settings)
    service = InventoryService(db)
    invoice = service.resolve_invoice(invoice)
    rate = _resolve_rate(ns, settings)

    summary = summarize_invoice(invoice, rate)
    for line in preview_invoice(invoice, service.list_products()):
        target = "NEW" if line.is_new else line.matched_name
        low = " (low)" if line.will_be_low else ""
        extra = f" [{line.breakdown}]" if line.breakdown else ""
        print(f"{line.product_name} -> {target}: {line.current_stock} + {line.quantity} = {line.new_stock}{low}{extra}")
    print(f"Total: {summary.total:.2f} {summary.currency}")
    if summary.canonical_total is not None:
        print(f"Total: {summary.canonical_total:.2f} {CANONICAL_CURRENCY}")

    if invoice.currency != CANONICAL_CURRENCY and not is_valid_rate(rate):
        LOG.error(f"Invoice is in {invoice.currency}; an exchange rate is required (--rate or --fetch-rate).")
        return 2
    if not ns.yes:
        LOG.info("Dry run; pass --yes to apply the invoice.")
        return 0

    try:
        service.confirm_invoice(invoice, rate)
    except (InvalidInvoiceItemError, CurrencyError) as exc:
        LOG.error(f"Invoice rejected: {exc}")
        return 2
    except ReconciliationAborted as exc:
        LOG.error(f"{exc}; applied items: {exc.applied}. Do not re-run the whole invoice.")
        return 1
    LOG.info(f"Applied {len(invoice.items)} invoice item(s)")
    return 0


def _handle_stock_out(ns: argparse.Namespace, settings: Settings) -> int:
    amount = parse_positive_int(ns.amount)
    if amount is None:
        LOG.error(f"Amount must be a positive integer, got {ns.amount!r}")
        return 2
    service = InventoryService(_open_db(ns, settings))
    removed = service.stock_out(ns.product_id, amount)
    print(removed)
    return 0


def _handle_import_csv(ns: argparse.Namespace, settings: Settings) -> int:
    path = expand_abs(ns.file)
    if not os.path.isfile(path):
        LOG.error(f"CSV file not found: {path}")
        return 2
    with open(path, "r", encoding="utf-8-sig") as fh:
        text = fh.read()
    result = InventoryService(_open_db(ns, settings)).import_csv_text(text)
    print(json.dumps(asdict(result)))
    return 0


def _handle_export_csv(ns: argparse.Namespace, settings: Settings) -> int:
    db = _open_db(ns, settings)
    content = export_csv(db.list_products(), db.list_suppliers())
    if ns.output:
        out = expand_abs(ns.output)
        os.makedirs(os.path.dirname(out) or ".", exist_ok=True)
        with open(out, "w", encoding="utf-8", newline="") as fh:
            fh.write(content)
        LOG.info(f"Wrote: {out}")
    else:
        sys.stdout.write(content)
    return 0


def _handle_stats(ns: argparse.Namespace, settings: Settings) -> int:
    stats = InventoryService(_open_db(ns, settings)).get_stats()
    print(json.dumps(asdict(stats)))
    return 0


def _handle_alerts(ns: argparse.Namespace, settings: Settings) -> int:
    db = _open_db(ns, settings)
    alert = format_low_stock_alert(db.list_products())
    if alert is None:
        LOG.info("No products at or below minimum stock.")
        return 0
    subject, body = alert
    print(subject)
    print()
    print(body)
    return 0


def _handle_serve(ns: argparse.Namespace, settings: Settings) -> int:
    from ..inventory.frontend import create_app
    import uvicorn

    app = create_app(
        root_dir=os.getcwd(),
        db=_open_db(ns, settings),
        settings=settings,
        allow_origins=ns.allow_origins,
    )
    uvicorn.run(app, host=ns.host, port=ns.port, log_level=ns.log_level)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stockroom",
        description="Stock ledger and invoice reconciliation for a small retail shop.",
    )
    parser.add_argument("--db", help="Path to the inventory SQLite file (defaults to env/.env or var/inventory/)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    init = subparsers.add_parser("init", help="Create/ensure the inventory DB schema exists")
    init.set_defaults(handler=_handle_init)

    ingest = subparsers.add_parser(
        "ingest",
        help="Review and apply an extracted invoice (JSON payload).",
        description="Resolve aliases, print a stock preview and, with --yes, merge the invoice into the catalog.",
    )
    ingest.add_argument("--invoice", required=True, help="Path to the extraction JSON output")
    rate_group = ingest.add_mutually_exclusive_group()
    rate_group.add_argument("--rate", type=float, help="Exchange rate (Bs per USD) for Bs invoices")
    rate_group.add_argument("--fetch-rate", action="store_true", help="Fetch the official rate from the rate source")
    ingest.add_argument("--yes", action="store_true", help="Apply the invoice instead of only previewing it")
    ingest.set_defaults(handler=_handle_ingest)

    out = subparsers.add_parser("stock-out", help="Withdraw units of one product")
    out.add_argument("product_id", type=int)
    out.add_argument("amount")
    out.set_defaults(handler=_handle_stock_out)

    imp = subparsers.add_parser("import-csv", help="Merge a name,quantity,price,minStock,category CSV")
    imp.add_argument("file")
    imp.set_defaults(handler=_handle_import_csv)

    exp = subparsers.add_parser("export-csv", help="Write the catalog as CSV")
    exp.add_argument("--output", help="Output file (stdout when omitted)")
    exp.set_defaults(handler=_handle_export_csv)

    stats = subparsers.add_parser("stats", help="Print item count, stock value and low-stock count")
    stats.set_defaults(handler=_handle_stats)

    alerts = subparsers.add_parser("alerts", help="Print the low-stock alert text")
    alerts.set_defaults(handler=_handle_alerts)

    serve = subparsers.add_parser("serve", help="Run the inventory JSON API.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8001)
    serve.add_argument("--log-level", default="info")
    serve.add_argument(
        "--allow-origin",
        action="append",
        dest="allow_origins",
        help="Allowed CORS origin (can be provided multiple times, use '*' for any).",
    )
    serve.set_defaults(handler=_handle_serve)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    provided = list(argv) if argv is not None else sys.argv[1:]
    LOG.info(f"CLI invoked with arguments: {provided}")

    args = build_parser().parse_args(provided)
    settings = load_settings(os.getcwd())
    try:
        code = args.handler(args, settings)
    except StoreError as exc:
        LOG.error(f"Inventory store failure: {exc}")
        code = 1
    LOG.info(f"Subcommand '{args.command}' finished with exit code {code}.")
    return code


if __name__ == "__main__":
    sys.exit(main())
