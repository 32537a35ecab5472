from __future__ import annotations

from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.panel import Panel

from connectors.runtime.events import RuntimeEvent

from .errors import InternalFault, is_cancellation

console = Console()
err_console = Console(stderr=True)


def println(message: str) -> None:
    """Informational line on stderr (interrupt / kill notices)."""
    err_console.print(message, highlight=False)


def render_error_panel(e: BaseException) -> Panel:
    if is_cancellation(e):
        return Panel(f"[yellow]Cancelled[/yellow]\n{e}", style="yellow")

    if isinstance(e, InternalFault):
        return Panel(
            f"[red]Internal error[/red]\n{e}\n\n[dim]{e.stack[-2000:]}[/dim]",
            style="red",
        )

    resp = getattr(e, "response", None)
    if resp is not None:
        status = getattr(resp, "status_code", "unknown")
        try:
            body_preview = (resp.text or "")[:800]
        except Exception:
            body_preview = ""

        if status in (401, 403):
            return Panel(
                f"[red]Auth Error {status}[/red]\nCheck the connection credentials.\n\n[dim]{body_preview}[/dim]",
                style="red",
            )
        if status == 429:
            ra = (getattr(resp, "headers", {}) or {}).get("Retry-After")
            hint = f"Rate limited. Retry-After: {ra}s" if ra else "Rate limited. Back off and retry."
            return Panel(f"[red]Rate Limit (429)[/red]\n{hint}\n\n[dim]{body_preview}[/dim]", style="red")
        return Panel(f"[red]API Error {status}[/red]\n{e}\n\n[dim]{body_preview}[/dim]", style="red")

    return Panel(f"[red]fatal[/red]\n{e}", style="red")


def print_fatal(e: BaseException) -> None:
    err_console.print(render_error_panel(e))


def fmt_seconds(s: float) -> str:
    s = max(0.0, float(s))
    mm = int(s // 60)
    ss = int(s % 60)
    return f"{mm}:{ss:02d}"


def truncate(s: Any, n: int = 96) -> str:
    s2 = str(s)
    return s2 if len(s2) <= n else (s2[: n - 1] + "…")


def format_event_line(ev: RuntimeEvent, *, include_level: bool = False) -> str:
    """One status line per runtime event: stream, message, then known fields."""
    stream = ev.stream or "default"
    level = (ev.level or "info").lower().strip()

    f: Dict[str, Any] = ev.fields or {}
    parts: List[str] = []

    if include_level and level != "info":
        parts.append(f"[{level}]")

    parts.append(f"[{stream}] {ev.message}")

    def one(k: str) -> Optional[str]:
        if k == "count":
            return f"count={ev.count}" if isinstance(ev.count, int) else None
        v = f.get(k)
        if v is None:
            return None
        if k in ("path", "url"):
            return f"{k}={truncate(v, 160)}"
        if k == "error":
            return f"error={truncate(v, 180)}"
        return f"{k}={truncate(v, 120) if isinstance(v, str) else v}"

    for k in ("op", "path", "url", "elapsed_ms", "count", "error_type", "error"):
        got = one(k)
        if got:
            parts.append(got)

    return "  ".join(parts)
