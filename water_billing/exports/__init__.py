"""Downloadable exports: CSV files and printable invoice pages."""

from water_billing.exports.csv_export import (
    generate_activity_csv,
    generate_invoice_csv,
)
from water_billing.exports.invoice_html import (
    render_balance_card,
    render_invoice_page,
    render_invoice_section,
    render_invoices_page,
)

__all__ = [
    "generate_activity_csv",
    "generate_invoice_csv",
    "render_balance_card",
    "render_invoice_page",
    "render_invoice_section",
    "render_invoices_page",
]
