"""HTTP result formatter."""

from __future__ import annotations

from gpmeasure.config import HTTP_HEADER_ALLOWLIST
from gpmeasure.formatters.base import ResultFormatter, fmt_ms, fmt_num
from gpmeasure.models import HttpResult, HttpTimings, TlsCertificate


class HttpFormatter(ResultFormatter):
    """Status line, timing breakdown, curated headers and TLS details."""

    @property
    def type(self) -> str:
        return "http"

    @property
    def result_types(self) -> tuple[type, ...]:
        return (HttpResult,)

    def format_result(self, result: HttpResult) -> list[str]:
        status = fmt_num(result.status_code, "Unknown")
        lines = [f"  Status: {status} {result.status_code_name or ''}".rstrip()]

        if result.timings is not None:
            lines.extend(_timing_lines(result.timings))
        if result.resolved_address:
            lines.append(f"  Resolved Address: {result.resolved_address}")
        if result.headers:
            lines.extend(_header_lines(result.headers))
        if result.tls is not None:
            lines.extend(_tls_lines(result.tls))
        if result.truncated:
            lines.append("  Response body was truncated")
        return lines


def _timing_lines(timings: HttpTimings) -> list[str]:
    lines = [
        "  Timing breakdown:",
        f"    Total:    {fmt_ms(timings.total)}",
        f"    DNS:      {fmt_ms(timings.dns)}",
        f"    TCP:      {fmt_ms(timings.tcp)}",
    ]
    if timings.tls is not None:
        lines.append(f"    TLS:      {fmt_ms(timings.tls)}")
    if timings.first_byte is not None:
        lines.append(f"    TTFB:     {fmt_ms(timings.first_byte)}")
    if timings.download is not None:
        lines.append(f"    Download: {fmt_ms(timings.download)}")
    return lines


def _header_lines(headers: dict[str, str]) -> list[str]:
    by_lower = {name.lower(): name for name in headers}
    lines = ["  Important Headers:"]
    shown = 0
    for wanted in HTTP_HEADER_ALLOWLIST:
        name = by_lower.get(wanted)
        if name is not None:
            lines.append(f"    {name}: {headers[name]}")
            shown += 1
    remaining = len(headers) - shown
    if remaining > 0:
        lines.append(f"    + {remaining} more headers")
    return lines


def _tls_lines(tls: TlsCertificate) -> list[str]:
    lines = [
        "  TLS Information:",
        f"    Protocol:      {tls.protocol or 'Unknown'}",
        f"    Cipher:        {tls.cipher_name or 'Unknown'}",
        f"    Key Type:      {tls.key_type or 'Unknown'}",
        f"    Key Size:      {fmt_num(tls.key_bits, 'Unknown')} bits",
        f"    Valid From:    {tls.created_at or 'Unknown'}",
        f"    Valid Until:   {tls.expires_at or 'Unknown'}",
        f"    Trusted:       {'Yes' if tls.authorized else 'No'}",
    ]
    if tls.error:
        lines.append(f"    Error:         {tls.error}")
    if tls.subject:
        lines.append(f"    Subject CN:    {tls.subject.get('CN', 'Unknown')}")
        if tls.subject.get("alt"):
            lines.append(f"    Alt Names:     {tls.subject['alt']}")
    if tls.issuer:
        issuer = ", ".join(tls.issuer[k] for k in ("O", "CN", "C") if tls.issuer.get(k))
        lines.append(f"    Issuer:        {issuer or 'Unknown'}")
    return lines
