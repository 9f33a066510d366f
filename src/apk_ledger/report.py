"""
Human-readable renderings of an analysis result.

``render`` produces a self-contained HTML document; ``print_result`` draws
the same information on a terminal with rich. Neither holds any state.
"""

from __future__ import annotations

from datetime import datetime
from email.utils import parsedate_to_datetime
from html import escape
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from apk_ledger.models import AnalysisResult, FileOrigin

_STYLE = """
    body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 800px; margin: 0 auto; padding: 20px; }
    h1, h2, h3 { color: #2c3e50; }
    .section { margin-bottom: 30px; border: 1px solid #eee; padding: 20px; border-radius: 5px; }
    .danger { color: #f56c6c; }
    .success { color: #67c23a; }
    table { width: 100%; border-collapse: collapse; margin-bottom: 15px; }
    table, th, td { border: 1px solid #eee; }
    th, td { padding: 10px; text-align: left; }
    th { background-color: #f7f7f7; }
    .app-header { display: flex; align-items: center; gap: 20px; }
    .app-icon { width: 64px; height: 64px; border-radius: 8px; }
    .hash-value { font-family: monospace; background: #f7f7f7; padding: 5px; border-radius: 4px; }
"""

UNKNOWN = "Unknown"


def format_file_size(size: int) -> str:
    return f"{size / 1024 / 1024:.2f} MB"


def _format_date(value: str) -> str:
    try:
        return parsedate_to_datetime(value).strftime("%Y-%m-%d %H:%M:%S")
    except (TypeError, ValueError):
        return value


def _row(label: str, value: Optional[str], mono: bool = False) -> str:
    shown = escape(value) if value else UNKNOWN
    if mono:
        shown = f'<span class="hash-value">{shown}</span>'
    return f"<tr><th>{escape(label)}</th><td>{shown}</td></tr>"


def render(
    result: AnalysisResult,
    file_origin: Optional[FileOrigin] = None,
    generated_at: Optional[datetime] = None,
) -> str:
    """Render ``result`` as a standalone HTML report."""
    generated_at = generated_at or datetime.now()
    parts = [
        "<!DOCTYPE html>",
        "<html>",
        "<head>",
        '  <meta charset="UTF-8">',
        f"  <title>APK Analysis Report - {escape(result.package_name)}</title>",
        f"  <style>{_STYLE}</style>",
        "</head>",
        "<body>",
        "  <h1>APK Analysis Report</h1>",
        '  <div class="section app-header">',
    ]
    if result.icon_base64:
        parts.append(
            f'    <img src="data:image/png;base64,{escape(result.icon_base64)}" alt="App Icon" class="app-icon">'
        )
    else:
        parts.append('    <div class="app-icon" style="background: #eee;"></div>')
    parts += [
        "    <div>",
        f'      <h2 style="margin: 0;">{escape(result.package_name)}</h2>',
        f"      <p>Version: {escape(result.version_name)} ({escape(result.version_code)})</p>",
        f"      <p>SDK: Android {escape(result.min_sdk)} - {escape(result.target_sdk)}</p>",
        "    </div>",
        "  </div>",
    ]

    fi = result.file_info
    parts += [
        '  <div class="section">',
        "    <h2>File</h2>",
        "    <table>",
        _row("File name", file_origin.file_name if file_origin else None),
        _row("File size", format_file_size(fi.file_size if fi else 0)),
        _row("File type", fi.file_type if fi else None),
        _row("MD5", fi.md5 if fi else None, mono=True),
        _row("SHA-1", fi.sha1 if fi else None, mono=True),
        _row("SHA-256", fi.sha256 if fi else None, mono=True),
        "    </table>",
        "  </div>",
    ]

    sig = result.signature_info
    if sig:
        status = '<span class="danger">expired</span>' if result.is_certificate_expired else (
            '<span class="success">valid</span>'
        )
        parts += [
            '  <div class="section">',
            f"    <h2>Certificate ({status})</h2>",
            "    <table>",
            _row("Issuer", sig.issuer),
            _row("Subject", sig.subject),
            _row("Valid from", _format_date(sig.valid_from)),
            _row("Valid to", _format_date(sig.valid_to)),
            _row("SHA-1 fingerprint", sig.fingerprint_sha1, mono=True),
            _row("SHA-256 fingerprint", sig.fingerprint_sha256, mono=True),
            "    </table>",
            "  </div>",
        ]

    if result.permissions:
        stats = result.permission_stats
        dangerous = result.dangerous_permissions
        normal = [p for p in result.permissions if not p.is_dangerous]
        parts += [
            '  <div class="section">',
            "    <h2>Permissions</h2>",
            f"    <p>Total: {stats.total} permissions ({stats.dangerous} dangerous)</p>",
        ]
        if dangerous:
            parts.append("    <h3>Dangerous permissions</h3>")
            parts.append('    <ul class="danger">' + "".join(f"<li>{escape(p.name)}</li>" for p in dangerous) + "</ul>")
        if normal:
            parts.append("    <h3>Normal permissions</h3>")
            parts.append("    <ul>" + "".join(f"<li>{escape(p.name)}</li>" for p in normal) + "</ul>")
        parts.append("  </div>")

    parts += [
        '  <div class="section">',
        f'    <p style="color: #999;">Generated: {generated_at.strftime("%Y-%m-%d %H:%M:%S")}</p>',
        "  </div>",
        "</body>",
        "</html>",
    ]
    return "\n".join(parts) + "\n"


def print_result(
    result: AnalysisResult,
    file_origin: Optional[FileOrigin] = None,
    console: Optional[Console] = None,
) -> None:
    console = console or Console()
    stats = result.permission_stats

    if result.is_certificate_expired or stats.dangerous > 5:
        border = "red"
    elif stats.dangerous:
        border = "yellow"
    else:
        border = "green"

    header_text = Text()
    header_text.append(f"Package: {result.package_name}\n", style="bold")
    header_text.append(f"Version: {result.formatted_version_info}\n")
    header_text.append(f"{result.formatted_sdk_info}\n")
    if file_origin:
        header_text.append(f"File: {file_origin.file_name} ({format_file_size(file_origin.file_size)})\n")
    header_text.append("Permissions: ", style="bold")
    header_text.append(f"{stats.total} total, ")
    header_text.append(f"{stats.dangerous} dangerous", style="bold red" if stats.dangerous else "green")

    console.print(Panel(header_text, title="APK Analysis", border_style=border))

    if result.signature_info:
        sig = result.signature_info
        cert_text = Text()
        if result.is_certificate_expired:
            cert_text.append("✖ Certificate expired\n", style="bold red")
        else:
            cert_text.append("✔ Certificate valid\n", style="bold green")
        cert_text.append(f"Subject: {sig.subject}\n")
        cert_text.append(f"Issuer: {sig.issuer}\n")
        cert_text.append(f"Valid: {sig.valid_from} → {sig.valid_to}")
        if sig.fingerprint_sha256:
            cert_text.append(f"\nSHA-256: {sig.fingerprint_sha256}")
        console.print(Panel(cert_text, title="Certificate", border_style="blue"))

    if result.dangerous_permissions:
        table = Table(title="Dangerous Permissions", show_header=True, header_style="bold magenta")
        table.add_column("Permission", style="red")
        for perm in result.dangerous_permissions:
            table.add_row(perm.name)
        console.print(table)

    if result.file_info:
        fi = result.file_info
        hash_text = Text()
        hash_text.append(f"MD5:     {fi.md5}\n")
        hash_text.append(f"SHA-1:   {fi.sha1}\n")
        hash_text.append(f"SHA-256: {fi.sha256}")
        console.print(Panel(hash_text, title="File Hashes", border_style="cyan"))
