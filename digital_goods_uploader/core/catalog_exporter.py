# core/catalog_exporter.py

from __future__ import annotations

import csv
from pathlib import Path
from typing import List, Dict, Any, Tuple

MAX_IMAGE_COLUMNS = 9

# (field, header, column width)
PRODUCT_COLUMNS: List[Tuple[str, str, int]] = [
    ("id", "ID", 8),
    ("name", "Title", 40),
    ("price", "Price (USD)", 12),
    ("robux_price", "Price (Robux)", 14),
    ("category", "Category", 20),
    ("visibility", "Visibility", 12),
    ("tags", "Tags", 40),
    ("developer", "Developer", 20),
    ("sales", "Sales", 10),
    ("revenue", "Revenue", 12),
] + [(f"image_{i}", f"Image {i}", 30) for i in range(1, MAX_IMAGE_COLUMNS + 1)] + [
    ("file_count", "Files", 8),
]

ORDER_COLUMNS: List[Tuple[str, str, int]] = [
    ("id", "ID", 8),
    ("order_number", "Order #", 16),
    ("user_email", "Customer", 30),
    ("total", "Total", 12),
    ("status", "Status", 14),
    ("created_at", "Created", 22),
]


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def product_to_row(product: Dict[str, Any]) -> Dict[str, Any]:
    """
    Flatten one product from GET /products into an export row.

    Older products only carry `image_url`; newer ones have `image_urls`.
    """
    image_urls = product.get("image_urls") or ([product["image_url"]] if product.get("image_url") else [])
    tags = product.get("tags") or []
    if isinstance(tags, str):
        tags = [t.strip() for t in tags.split(",") if t.strip()]

    row = {
        "id": _text(product.get("id")),
        "name": _text(product.get("name")),
        "price": _text(product.get("price")),
        "robux_price": _text(product.get("robux_price")),
        "category": _text(product.get("category_name") or product.get("category_id")),
        "visibility": _text(product.get("visibility") or "visible"),
        "tags": ", ".join(tags),
        "developer": _text(product.get("developer_name") or product.get("developer_id")),
        "sales": _text(product.get("sales")),
        "revenue": _text(product.get("revenue")),
        "file_count": str(len(product.get("file_urls") or [])),
    }
    for i in range(MAX_IMAGE_COLUMNS):
        row[f"image_{i + 1}"] = image_urls[i] if i < len(image_urls) else ""
    return row


def order_to_row(order: Dict[str, Any]) -> Dict[str, Any]:
    return {field: _text(order.get(field)) for field, _, _ in ORDER_COLUMNS}


def export_rows_to_csv(
    rows: List[Dict[str, Any]],
    columns: List[Tuple[str, str, int]],
    output_path: Path,
) -> Path:
    if not rows:
        raise ValueError("Nothing to export")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    # utf-8-sig so Excel picks up the encoding
    with output_path.open("w", newline="", encoding="utf-8-sig") as f:
        writer = csv.DictWriter(f, fieldnames=[c[0] for c in columns], extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
    return output_path


def export_rows_to_excel(
    rows: List[Dict[str, Any]],
    columns: List[Tuple[str, str, int]],
    output_path: Path,
    sheet_title: str,
) -> Path:
    """
    Write rows to an .xlsx sheet with a bold wrapped header and frozen first row.
    """
    import openpyxl
    from openpyxl.styles import Font, Alignment
    from openpyxl.utils import get_column_letter

    if not rows:
        raise ValueError("Nothing to export")

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = sheet_title

    header_font = Font(bold=True, size=12)
    header_alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)

    for col_idx, (field_name, header, width) in enumerate(columns, start=1):
        cell = ws.cell(row=1, column=col_idx)
        cell.value = header
        cell.font = header_font
        cell.alignment = header_alignment
        ws.column_dimensions[get_column_letter(col_idx)].width = width

    for row_idx, row_data in enumerate(rows, start=2):
        for col_idx, (field_name, _, _) in enumerate(columns, start=1):
            ws.cell(row=row_idx, column=col_idx).value = row_data.get(field_name, "")

    ws.freeze_panes = "A2"

    output_path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(output_path)
    return output_path


def export_products(products: List[Dict[str, Any]], output_path: Path) -> Path:
    """CSV or Excel depending on the file suffix."""
    rows = [product_to_row(p) for p in products]
    if output_path.suffix.lower() == ".xlsx":
        return export_rows_to_excel(rows, PRODUCT_COLUMNS, output_path, "Products")
    return export_rows_to_csv(rows, PRODUCT_COLUMNS, output_path)


def export_orders(orders: List[Dict[str, Any]], output_path: Path) -> Path:
    rows = [order_to_row(o) for o in orders]
    if output_path.suffix.lower() == ".xlsx":
        return export_rows_to_excel(rows, ORDER_COLUMNS, output_path, "Orders")
    return export_rows_to_csv(rows, ORDER_COLUMNS, output_path)
