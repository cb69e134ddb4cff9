# digital_goods_uploader/cli.py

from __future__ import annotations

import argparse
import getpass
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from digital_goods_uploader.config.settings import (
    EXPORT_DIR,
    STATE_STORE_FILE,
    STORE_ADMIN_PASSWORD,
    TEMP_DIR,
)
from digital_goods_uploader.core.exceptions import StoreApiError
from digital_goods_uploader.core.image_crop import CropRegion, prepare_cover_image
from digital_goods_uploader.core.catalog_exporter import export_orders, export_products
from digital_goods_uploader.core.state_store import StateStore
from digital_goods_uploader.pipeline.processor import process_draft_folder
from digital_goods_uploader.platforms.store_api import StoreApiClient
from digital_goods_uploader.run_once import run_once

logger = logging.getLogger(__name__)

RESOURCES = {
    "products": "products",
    "categories": "categories",
    "tags": "tags",
    "developers": "developers",
    "orders": "orders",
    "faqs": "faqs",
    "users": "users",
    "staff": "staff",
    "partners": "partners",
    "partnership-requests": "partnership_requests",
    "credit-packages": "credit_packages",
    "downloads": "downloads",
}


def make_client(state: StateStore) -> StoreApiClient:
    return StoreApiClient(admin_session=state.get_session())


def cmd_login(args, state: StateStore) -> int:
    password = args.password or STORE_ADMIN_PASSWORD or getpass.getpass("Admin password: ")
    client = StoreApiClient()
    session = client.login(password)
    state.save_session(session)
    print(f"✅ Logged in, session valid until {session.expires_at:%Y-%m-%d %H:%M} UTC")
    return 0


def cmd_logout(args, state: StateStore) -> int:
    state.clear_session()
    print("✅ Session cleared")
    return 0


def cmd_upload(args, state: StateStore) -> int:
    report = process_draft_folder(make_client(state), state, Path(args.folder), crop=not args.no_crop)
    return 0 if report is not None and report.succeeded else 1


def cmd_run(args, state: StateStore) -> int:
    reports = run_once(Path(args.inbox), make_client(state), state, crop=not args.no_crop)
    failed = [r for r in reports if r is None or not r.succeeded]
    print(f"\n📋 {len(reports) - len(failed)} succeeded, {len(failed)} need attention")
    return 1 if failed else 0


def cmd_crop(args, state: StateStore) -> int:
    region = None
    if args.width and args.height:
        region = CropRegion(args.x, args.y, args.width, args.height)
    output_dir = Path(args.output_dir) if args.output_dir else TEMP_DIR
    result = prepare_cover_image(Path(args.image), region=region, output_dir=output_dir)
    print(result)
    return 0


def cmd_export(args, state: StateStore) -> int:
    client = make_client(state)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    kind = "orders" if args.orders else "products"
    output = Path(args.output) if args.output else EXPORT_DIR / f"{kind}_{timestamp}.csv"

    if args.orders:
        rows = client.orders.list()
    else:
        rows = client.products.list(category=args.category)
    if not rows:
        print(f"⚠️ No {kind} to export")
        return 0

    if args.orders:
        export_orders(rows, output)
    else:
        export_products(rows, output)
    print(f"✅ Exported {len(rows)} {kind} to {output}")
    return 0


def cmd_list(args, state: StateStore) -> int:
    resource = getattr(make_client(state), RESOURCES[args.resource])
    params = {"status": args.status} if args.status else {}
    print(json.dumps(resource.list(**params), ensure_ascii=False, indent=2))
    return 0


def cmd_delete(args, state: StateStore) -> int:
    resource = getattr(make_client(state), RESOURCES[args.resource])
    resource.delete(args.id)
    print(f"✅ Deleted {args.resource} {args.id}")
    return 0


def cmd_status(args, state: StateStore) -> int:
    unfinished = state.list_unfinished_drafts()
    if not unfinished:
        print("✅ Nothing unfinished.")
        return 0
    for key, rec in unfinished.items():
        product = f" product {rec['product_id']}" if rec.get("product_id") else ""
        print(f"🗂 {rec.get('name', key)} [{rec.get('status')}]{product}")
        for failure in rec.get("failures", []):
            print(f"   {failure.get('label')} → {failure.get('error_message')}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="digital-goods-uploader",
        description="Admin client for the digital goods storefront",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("login", help="get an admin session token")
    p.add_argument("--password")
    p.set_defaults(func=cmd_login)

    p = sub.add_parser("logout", help="forget the stored session")
    p.set_defaults(func=cmd_logout)

    p = sub.add_parser("upload", help="create a product from a draft folder")
    p.add_argument("folder")
    p.add_argument("--no-crop", action="store_true", help="upload cover images as they are")
    p.set_defaults(func=cmd_upload)

    p = sub.add_parser("run", help="submit every new draft folder in an inbox")
    p.add_argument("inbox")
    p.add_argument("--no-crop", action="store_true")
    p.set_defaults(func=cmd_run)

    p = sub.add_parser("crop", help="crop an image to 16:10")
    p.add_argument("image")
    p.add_argument("--x", type=float, default=0.0)
    p.add_argument("--y", type=float, default=0.0)
    p.add_argument("--width", type=float)
    p.add_argument("--height", type=float)
    p.add_argument("--output-dir")
    p.set_defaults(func=cmd_crop)

    p = sub.add_parser("export", help="export products (or orders) to .csv / .xlsx")
    p.add_argument("--orders", action="store_true")
    p.add_argument("--category")
    p.add_argument("--output")
    p.set_defaults(func=cmd_export)

    p = sub.add_parser("list", help="print a resource as JSON")
    p.add_argument("resource", choices=sorted(RESOURCES))
    p.add_argument("--status", help="partnership request status filter")
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("delete", help="delete a resource item")
    p.add_argument("resource", choices=sorted(RESOURCES))
    p.add_argument("id", type=int)
    p.set_defaults(func=cmd_delete)

    p = sub.add_parser("status", help="show drafts that still need attention")
    p.set_defaults(func=cmd_status)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    state = StateStore(STATE_STORE_FILE)
    try:
        return args.func(args, state)
    except StoreApiError as e:
        print(f"❌ {e.message}")
        return 1
    except FileNotFoundError as e:
        print(f"❌ {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
