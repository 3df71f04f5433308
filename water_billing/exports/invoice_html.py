"""
Printable invoice pages.

Self-contained HTML (inline styles, no external assets) so a page can
be opened straight from a download and printed. Every interpolated value
is escaped.
"""

from html import escape

from water_billing.billing.balance import balance_status, calculate_property_balance
from water_billing.billing.periods import format_billing_period, format_currency, format_gallons
from water_billing.models.document import AppData, Invoice
from water_billing.models.views import BalanceStatus


CREDIT_COLORS = ("#f0fdf4", "#22c55e")
DUE_COLORS = ("#fef2f2", "#dc2626")

PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <title>{title}</title>
    <style>
      body {{ font-family: system-ui, -apple-system, sans-serif; margin: 0; }}
      table {{ width: 100%; border-collapse: collapse; margin: 20px 0; }}
      th, td {{ padding: 12px; }}
      .num {{ text-align: right; }}
      .invoice {{ page-break-after: always; padding: 40px; }}
      @media print {{
        body {{ margin: 0; }}
        div {{ page-break-inside: avoid; }}
      }}
    </style>
  </head>
  <body>
{body}
  </body>
</html>
"""


def _line_item(description: str, quantity: str, amount: float) -> str:
    return (
        '<tr style="border-bottom: 1px solid #ddd;">'
        f"<td>{escape(description)}</td>"
        f'<td class="num">{escape(quantity)}</td>'
        f'<td class="num">{escape(format_currency(amount))}</td>'
        "</tr>"
    )


def render_invoice_section(data: AppData, invoice: Invoice, utility_name: str) -> str:
    """The body of one invoice, without the surrounding page."""
    prop = data.property_by_id(invoice.property_id)
    name = prop.name if prop else "Unknown"
    address = "<br>".join(escape(line) for line in (prop.address if prop else "").splitlines())

    rows = [_line_item("Monthly Service Fee", "1", invoice.fixed_charge)]
    for tier, gallons, charge in (
        (1, invoice.tier1_gallons, invoice.tier1_charge),
        (2, invoice.tier2_gallons, invoice.tier2_charge),
        (3, invoice.tier3_gallons, invoice.tier3_charge),
    ):
        if gallons > 0:
            rows.append(_line_item(f"Tier {tier} Water Usage", f"{format_gallons(gallons)} gal", charge))

    # The box shows today's account balance, not the invoice's amount due
    balance = 0.0
    if prop is not None:
        balance = calculate_property_balance(prop, data.readings, data.payments, data.settings)
    status = balance_status(balance)
    rows_html = "".join(rows)
    background, color = CREDIT_COLORS if status == BalanceStatus.CREDIT else DUE_COLORS
    label = "Credit" if status == BalanceStatus.CREDIT else "Amount Due"

    return f"""    <div class="invoice">
      <div style="text-align: center; margin-bottom: 40px;">
        <h1 style="margin: 0; font-size: 24px;">{escape(utility_name)}</h1>
        <p style="color: #666; margin: 5px 0;">Water Service Invoice</p>
      </div>
      <div style="display: flex; justify-content: space-between; margin-bottom: 30px;">
        <div>
          <h3 style="margin: 0 0 5px 0; font-size: 14px; color: #666;">Invoice for</h3>
          <p style="margin: 0; font-weight: 600;">{escape(name)} Household</p>
          <p style="margin: 0; font-size: 14px;">{address}</p>
        </div>
        <div style="text-align: right;">
          <h3 style="margin: 0 0 5px 0; font-size: 14px; color: #666;">Invoice Details</h3>
          <p style="margin: 0;">Period: {escape(format_billing_period(invoice.billing_period))}</p>
          <p style="margin: 0;">Generated: {escape(invoice.generated_date.isoformat())}</p>
        </div>
      </div>
      <h3 style="margin: 0 0 10px 0;">Usage Summary</h3>
      <p style="font-size: 28px; font-weight: bold; color: #3366AA; margin: 0;">{escape(format_gallons(invoice.total_gallons))} gallons</p>
      <table>
        <thead>
          <tr style="border-bottom: 2px solid #ddd;"><th style="text-align: left;">Description</th><th class="num">Quantity</th><th class="num">Amount</th></tr>
        </thead>
        <tbody>
          {rows_html}
          <tr style="font-weight: 600;"><td>Current Charges</td><td></td><td class="num">{escape(format_currency(invoice.total_amount))}</td></tr>
        </tbody>
      </table>
      <div style="padding: 20px; background: {background}; border-radius: 8px; text-align: center;">
        <p style="margin: 0 0 5px 0; font-size: 14px; color: #666;">Current Account Balance</p>
        <p style="margin: 0; font-size: 28px; font-weight: bold; color: {color};">{escape(format_currency(abs(balance)))}</p>
        <p style="margin: 5px 0 0 0; font-size: 14px; color: {color};">{label}</p>
      </div>
    </div>"""


def render_balance_card(name: str, balance: float) -> str:
    """Dashboard card for one property's balance (styled by the app's CSS)."""
    is_credit = balance_status(balance) == BalanceStatus.CREDIT
    # Unindented, or Markdown would render it as a code block
    return (
        f'<div class="{"credit-box" if is_credit else "due-box"}">'
        f"<div>{escape(name)}</div>"
        f'<div class="big-number">{escape(format_currency(abs(balance)))}</div>'
        f"<div>{'Credit' if is_credit else 'Amount Due'}</div>"
        "</div>"
    )


def render_invoice_page(data: AppData, invoice: Invoice, utility_name: str) -> str:
    """A printable page for a single invoice."""
    title = f"Invoice - {data.property_name(invoice.property_id)}"
    return PAGE_TEMPLATE.format(
        title=escape(title),
        body=render_invoice_section(data, invoice, utility_name),
    )


def render_invoices_page(
    data: AppData,
    invoices: list[Invoice],
    billing_period: str,
    utility_name: str,
) -> str:
    """All invoices of a period on one page, one invoice per printed sheet."""
    title = f"All Invoices - {format_billing_period(billing_period)}"
    return PAGE_TEMPLATE.format(
        title=escape(title),
        body="\n".join(render_invoice_section(data, inv, utility_name) for inv in invoices),
    )
