"""Placeholder substitution and the HTML envelope for automation emails."""

from __future__ import annotations

import html
import json
import math
import re
from typing import Any, Mapping, Optional

from app.config import CONFIG

_TOKEN_RE = re.compile(r"\{\{([^{}]+)\}\}")


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, default=str)
    return str(value)


def render_template(template: Optional[str], context: Mapping[str, Any], *, escape: bool = False) -> str:
    """Replace every ``{{key}}`` that has a non-null value in ``context``.

    Unknown keys and keys whose value is ``None`` are left verbatim. The
    substitution is a single pass, so values that themselves look like
    placeholders are not expanded again. With ``escape`` set, substituted
    values are HTML-escaped while the template text itself is kept as is.
    """

    if not template:
        return ""

    def _replace(match: "re.Match[str]") -> str:
        key = match.group(1)
        value = context.get(key)
        if value is None:
            return match.group(0)
        text = _stringify(value)
        return html.escape(text) if escape else text

    return _TOKEN_RE.sub(_replace, template)


def _body_to_html(body: str) -> str:
    parts = []
    for line in body.split("\n"):
        stripped = line.strip()
        parts.append(f"<p>{stripped}</p>" if stripped else "<br>")
    return "".join(parts)


def _reroute_notice(intended_recipient: str) -> str:
    return (
        '<div style="background: #fef3c7; border: 1px solid #f59e0b; padding: 10px; '
        'border-radius: 4px; margin-bottom: 20px;">'
        f"<strong>PROTOTYPE DEMO:</strong> This email was intended for {html.escape(intended_recipient)}. "
        "In production, emails will be sent directly to the client's email address."
        "</div>"
    )


def render_email_html(
    subject: str,
    body: str,
    *,
    intended_recipient: Optional[str] = None,
    brand_name: Optional[str] = None,
) -> str:
    """Wrap a rendered body in the standard header/content/footer envelope.

    ``body`` is inserted as HTML; callers escape any untrusted text in it.
    The plain-text ``subject`` is escaped here.
    """

    brand = html.escape(brand_name or CONFIG.brand_name)
    title = html.escape(subject)
    notice = _reroute_notice(intended_recipient) if intended_recipient else ""
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title}</title>
  <style>
    body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; margin: 0; padding: 20px; }}
    .container {{ max-width: 600px; margin: 0 auto; background: #fff; }}
    .header {{ background: #2563eb; color: white; padding: 20px; text-align: center; }}
    .content {{ padding: 30px; }}
    .footer {{ text-align: center; color: #6b7280; margin-top: 30px; padding-top: 20px; border-top: 1px solid #e5e7eb; }}
  </style>
</head>
<body>
  <div class="container">
    <div class="header">
      <h1>{title}</h1>
      <p>From {brand}</p>
    </div>
    <div class="content">{notice}{_body_to_html(body)}</div>
    <div class="footer">
      <p>This email was sent automatically from {brand} CRM</p>
    </div>
  </div>
</body>
</html>
"""


__all__ = ["render_template", "render_email_html"]
