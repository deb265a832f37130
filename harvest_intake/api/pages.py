"""
Operator-facing HTML pages.

Scanners open the registration URL in a phone browser, so every outcome is a
full-screen page readable at arm's length.
"""

from __future__ import annotations

from html import escape
from urllib.parse import parse_qsl, urlencode

EXAMPLE_URL = "/api/registrar?id=1&variedad=Freedom&bloque=6&tallos=20&tamano=Largo"


def _page(body: str, style: str) -> str:
    return f'<!DOCTYPE html><html><head><meta charset="utf-8"></head><body style="{style}">{body}</body></html>'


def index_page() -> str:
    return _page(
        "<h2>Sistema de Registro de Flores</h2>"
        "<p>Ejemplo:</p>"
        f"<code>{escape(EXAMPLE_URL)}</code>",
        "font-family:sans-serif;margin:40px;",
    )


def success_page(variedad: str, bloque: str, tallos: int) -> str:
    return _page(
        '<h1 style="font-size:100px;color:#22c55e;">✅ REGISTRO GUARDADO</h1>'
        '<p style="font-size:32px;">'
        f"Variedad: <b>{escape(variedad)}</b> | Bloque: <b>{escape(bloque)}</b> | "
        f"Tallos: <b>{tallos}</b></p>",
        "font-family:sans-serif;text-align:center;margin-top:160px;",
    )


def unauthorized_page() -> str:
    return _page(
        '<h1 style="color:#dc2626;font-size:60px;">🚫 IP no autorizada</h1>',
        "text-align:center;margin-top:60px;font-family:sans-serif;",
    )


def missing_params_page(field: str) -> str:
    return _page(
        '<h1 style="color:#dc2626;font-size:60px;">⚠️ Faltan parámetros</h1>'
        f'<p style="font-size:30px;">Falta: <b>{escape(field)}</b></p>',
        "text-align:center;margin-top:60px;font-family:sans-serif;",
    )


def force_retry_url(path: str, query: str) -> str:
    """Same URL with force=true, replacing any force value already present."""
    params = [(k, v) for k, v in parse_qsl(query, keep_blank_values=True) if k != "force"]
    params.append(("force", "true"))
    return f"{path}?{urlencode(params)}"


def duplicate_page(retry_url: str) -> str:
    return _page(
        '<h1 style="font-size:72px;color:#f41606;">⚠️ CÓDIGO YA REGISTRADO</h1>'
        f'<a href="{escape(retry_url, quote=True)}" '
        'style="display:inline-block;padding:20px 80px;font-size:55px;background:#22c55e;'
        'color:white;border-radius:31px;text-decoration:none;">'
        "Registrar de todas formas</a>",
        "text-align:center;margin-top:120px;background:#b9deff;font-family:sans-serif;",
    )


def error_page(detail: str) -> str:
    return _page(
        '<h1 style="font-size:72px;color:#dc2626;">❌ ERROR EN EL REGISTRO</h1>'
        f'<p style="font-size:30px;">{escape(detail)}</p>',
        "text-align:center;margin-top:160px;background:#111827;color:white;font-family:sans-serif;",
    )
