# gigpack/ui_format.py
# Display formatting for gig pack pages (no Streamlit imports).
from datetime import date, datetime
from typing import Optional, Union

Number = Union[int, float]

STATUS_BADGES = {
    "draft": "📝 Draft",
    "confirmed": "✅ Confirmed",
    "tentative": "❔ Tentative",
    "completed": "🏁 Completed",
    "cancelled": "🚫 Cancelled",
}

INVITE_BADGES = {
    "pending": "⏳ Not invited",
    "invited": "✉️ Invited",
    "accepted": "✅ Accepted",
    "declined": "❌ Declined",
    "tentative": "❔ Tentative",
    "needs_sub": "🔁 Needs sub",
    "replaced": "↪️ Replaced",
}


def format_currency(val: Optional[Number]) -> str:
    """Return $-formatted currency for numeric values; blank for None/NaN."""
    try:
        if val is None:
            return ""
        v = float(val)
        if v != v:  # NaN
            return ""
        return f"${v:,.2f}"
    except (TypeError, ValueError):
        return ""


def format_time_12h(value: Optional[str]) -> str:
    """'19:30' or '19:30:00' → '7:30 PM'; anything unparseable is returned as given."""
    if not value:
        return ""
    s = str(value).strip()
    for fmt in ("%H:%M:%S", "%H:%M"):
        try:
            t = datetime.strptime(s, fmt)
            return t.strftime("%I:%M %p").lstrip("0")
        except ValueError:
            continue
    return s


def format_gig_date(value, fmt: str = "%a %b %d, %Y") -> str:
    """ISO date/timestamp → 'Sat Mar 14, 2026'; blank for empty input."""
    if not value:
        return ""
    if isinstance(value, datetime):
        d = value.date()
    elif isinstance(value, date):
        d = value
    else:
        try:
            d = date.fromisoformat(str(value)[:10])
        except ValueError:
            return str(value)
    return d.strftime(fmt)


def status_badge(status: Optional[str]) -> str:
    return STATUS_BADGES.get(status or "draft", status or "")


def invite_badge(status: Optional[str]) -> str:
    return INVITE_BADGES.get(status or "pending", status or "")
