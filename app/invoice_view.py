"""Read-only HTML rendering of an invoice for the preview page."""
from __future__ import annotations

import html
from typing import Any, Iterable, List, Optional, Sequence

from app.pdf.formatting import format_long_date, format_money, format_rate
from app.schemas.invoice import InvoiceData, InvoiceStatus

_STATUS_CLASSES = {
    InvoiceStatus.PAID: "status-paid",
    InvoiceStatus.SENT: "status-sent",
    InvoiceStatus.OVERDUE: "status-overdue",
}


def _text(value: Any) -> str:
    if value is None:
        return ""
    return html.escape(str(value))


def _build_table(headers: Sequence[str], rows: Iterable[Sequence[Any]], numeric_from: int) -> str:
    header = "".join(
        f'<th class="{"num" if index >= numeric_from else ""}">{_text(column)}</th>'
        for index, column in enumerate(headers)
    )
    body_rows: List[str] = []
    for row in rows:
        cells = [
            f'<td class="{"num" if index >= numeric_from else ""}">{_text(value)}</td>'
            for index, value in enumerate(row)
        ]
        body_rows.append("<tr>" + "".join(cells) + "</tr>")
    if not body_rows:
        body_rows.append(f'<tr><td colspan="{len(headers)}">No items.</td></tr>')
    return (
        "<table><thead><tr>"
        + header
        + "</tr></thead><tbody>"
        + "".join(body_rows)
        + "</tbody></table>"
    )


def _address_block(title: str, lines: Iterable[Optional[str]]) -> str:
    body = "".join(f"<div>{_text(line)}</div>" for line in lines if line)
    return f"<section class=\"party\"><h3>{_text(title)}</h3>{body}</section>"


def render_invoice_html(
    invoice: InvoiceData,
    *,
    currency_symbol: str = "$",
    pdf_src: Optional[str] = None,
) -> str:
    def money(amount: Any) -> str:
        return format_money(amount, currency_symbol)

    company = invoice.company_info
    client = invoice.client_info
    totals = invoice.totals
    status_class = _STATUS_CLASSES.get(invoice.status, "status-draft")

    items_table = _build_table(
        ["Description", "Quantity", "Rate", "Amount"],
        (
            [item.description, item.quantity, money(item.rate), money(item.amount)]
            for item in invoice.items
        ),
        numeric_from=1,
    )
    parties = _address_block(
        "From",
        [
            company.name,
            company.address,
            ", ".join(part for part in (company.city, company.zip_code) if part),
            company.country,
            company.email,
            company.phone,
            company.website,
        ],
    ) + _address_block(
        "Bill To",
        [
            client.name,
            client.email,
            client.address,
            ", ".join(part for part in (client.city, client.zip_code) if part),
            client.country,
            client.phone,
        ],
    )

    extras = ""
    if invoice.notes and invoice.notes.strip():
        extras += f"<section><h3>Notes</h3><p>{_text(invoice.notes)}</p></section>"
    if invoice.terms and invoice.terms.strip():
        extras += f"<section><h3>Terms and Conditions</h3><p>{_text(invoice.terms)}</p></section>"

    embed = ""
    if pdf_src:
        embed = f'<iframe title="Invoice PDF" src="{_text(pdf_src)}"></iframe>'

    return f"""
    <html>
        <head>
            <title>Invoice {_text(invoice.invoice_number)}</title>
            <style>
                body {{ font-family: Arial, sans-serif; margin: 2rem; }}
                header {{ background-color: #2980b9; color: #fff; padding: 1rem 2rem; }}
                .parties {{ display: flex; gap: 4rem; margin: 2rem 0; }}
                table {{ border-collapse: collapse; width: 100%; }}
                th, td {{ border: 1px solid #ccc; padding: 0.5rem; text-align: left; }}
                th {{ background-color: #f0f0f0; }}
                .num {{ text-align: right; }}
                .totals {{ margin-left: auto; width: 20rem; margin-top: 1rem; }}
                .totals .grand {{ background-color: #2980b9; color: #fff; font-weight: bold; }}
                .status-paid {{ color: #2e7d32; }}
                .status-sent {{ color: #ff9800; }}
                .status-overdue {{ color: #d32f2f; }}
                .status-draft {{ color: #616161; }}
                iframe {{ width: 100%; height: 60rem; border: 1px solid #ccc; margin-top: 2rem; }}
            </style>
        </head>
        <body>
            <header>
                <h1>INVOICE</h1>
                <div>Invoice #: {_text(invoice.invoice_number)}</div>
            </header>
            <div class="parties">{parties}</div>
            <dl>
                <dt>Invoice Date</dt><dd>{_text(format_long_date(invoice.issue_date))}</dd>
                <dt>Due Date</dt><dd>{_text(format_long_date(invoice.due_date))}</dd>
                <dt>Status</dt><dd class="{status_class}">{_text(invoice.status.value.upper())}</dd>
            </dl>
            {items_table}
            <table class="totals">
                <tr><td>Subtotal</td><td class="num">{_text(money(totals.subtotal))}</td></tr>
                <tr><td>Tax ({_text(format_rate(invoice.tax_rate))}%)</td><td class="num">{_text(money(totals.tax))}</td></tr>
                <tr class="grand"><td>Total</td><td class="num">{_text(money(totals.total))}</td></tr>
            </table>
            {extras}
            {embed}
        </body>
    </html>
    """
