"""Subject and HTML bodies for outbound notification emails."""

from __future__ import annotations

from decimal import Decimal
from html import escape

_LAYOUT = """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
  <h1 style="font-size: 22px; color: #6366f1;">{title}</h1>
  {body}
  <p style="color: #94a3b8; font-size: 14px;">Portal de Proveedores</p>
</body>
</html>"""

_ROW = (
    '<tr><td style="padding: 8px 0; color: #64748b;">{label}</td>'
    '<td style="padding: 8px 0; text-align: right; font-weight: 600;">{value}</td></tr>'
)


def format_units(value) -> str:
    """Spanish thousands grouping: 12500 -> '12.500'; decimals use a comma."""
    number = Decimal(str(value))
    if number == number.to_integral_value():
        return f"{int(number):,}".replace(",", ".")
    whole, _, fraction = f"{number:,.3f}".rstrip("0").partition(".")
    whole = whole.replace(",", ".")
    return f"{whole},{fraction}" if fraction else whole


def format_euros(value) -> str:
    """Spanish currency format: 1234.5 -> '1.234,50 €'."""
    text = f"{Decimal(str(value)):,.2f}"
    return text.replace(",", "_").replace(".", ",").replace("_", ".") + " €"


def _table(rows: list[tuple[str, str]]) -> str:
    body = "".join(_ROW.format(label=escape(label), value=escape(value)) for label, value in rows)
    return f'<table style="width: 100%; border-collapse: collapse;">{body}</table>'


def _page(title: str, intro: str, rows: list[tuple[str, str]], outro: str = "") -> str:
    parts = [f"<p>{escape(intro)}</p>", _table(rows)]
    if outro:
        parts.append(f"<p>{escape(outro)}</p>")
    return _LAYOUT.format(title=escape(title), body="\n  ".join(parts))


def order_generated(payload: dict) -> tuple[str, str]:
    offer_number = payload.get("offer_number") or payload["order_number"]
    subject = f"Nuevo pedido generado - Oferta {offer_number}"
    html = _page(
        "¡Nuevo pedido generado!",
        "Se ha generado un nuevo pedido a partir de tu aplicación. "
        f"Oferta {offer_number}: {payload.get('offer_description') or ''}".strip(),
        [
            ("Pedido", payload["order_number"]),
            ("Unidades", format_units(payload["units"])),
            ("Plazo", payload["term"]),
            ("Precio", format_euros(payload["price_euros"])),
        ],
        "Por favor, accede al portal para verificar y confirmar el pedido.",
    )
    return subject, html


def offer_applied(payload: dict, supplier_name: str) -> tuple[str, str]:
    subject = f"Oferta {payload['offer_number']} aplicada por {supplier_name}"
    rows = [
        (
            line["material_code"],
            f"{format_units(line['confirmed_units'])} uds. a {format_euros(line['confirmed_price'])}"
            + (f" ({line['confirmed_term']})" if line.get("confirmed_term") else ""),
        )
        for line in payload.get("lines", [])
    ]
    html = _page(
        f"Oferta {payload['offer_number']} aplicada",
        f"{supplier_name} ha enviado su propuesta para «{payload.get('description') or ''}».",
        rows,
    )
    return subject, html


def offer_reviewed(payload: dict) -> tuple[str, str]:
    accepted = payload["to_status"] == "ACCEPTED"
    outcome = "aceptada" if accepted else "rechazada"
    subject = f"Oferta {payload['offer_number']} {outcome}"
    rows = [("Oferta", payload["offer_number"]), ("Estado", outcome)]
    if payload.get("reason"):
        rows.append(("Motivo", payload["reason"]))
    html = _page(subject, f"Tu propuesta para la oferta {payload['offer_number']} ha sido {outcome}.", rows)
    return subject, html


def order_confirmed(payload: dict, supplier_name: str) -> tuple[str, str]:
    subject = f"Pedido {payload['order_number']} confirmado por {supplier_name}"
    html = _page(
        f"Pedido {payload['order_number']} confirmado",
        f"{supplier_name} ha verificado el pedido.",
        [
            ("Unidades", format_units(payload["units"])),
            ("Plazo", payload["term"]),
            ("Precio", format_euros(payload["price_euros"])),
        ],
    )
    return subject, html
