# tools/send_lineup_invites.py
# Email each lineup member the shared gig pack link plus an .ics file.
# Every attempt (sent, dry-run, skipped, failed) lands in email_audit.
#
#   python -m tools.send_lineup_invites <gig_id> [--role-id ID ...] [--dry-run]

from __future__ import annotations

import html
import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional

from gigpack.config import configure_logging, flag, public_base_url
from gigpack.db import admin_client
from gigpack.email_utils import gmail_send
from gigpack.gigs import get_gig_pack
from gigpack.ics_utils import build_gig_ics
from gigpack.models import utc_now_iso
from gigpack.ui_format import format_gig_date, format_time_12h

logger = logging.getLogger(__name__)

KIND = "lineup_invite"


def _is_dry_run() -> bool:
    return flag("INVITE_EMAIL_DRY_RUN", "0")


def share_url(token: str) -> str:
    return f"{public_base_url()}/Shared_Pack?token={token}"


def _insert_email_audit(sb, *, token: str, gig_id: str, recipient_email: str, status: str, detail: dict) -> None:
    sb.table("email_audit").insert({
        "token": token,
        "gig_id": gig_id,
        "recipient_email": recipient_email,
        "kind": KIND,
        "status": status,
        "ts": utc_now_iso(),
        "detail": detail,
    }).execute()


def compose_invite_html(pack: Dict[str, Any], member: Dict[str, Any], url: str) -> str:
    def e(s: Any) -> str:
        return html.escape(str(s or ""))

    when = format_gig_date(pack.get("date"))
    times = []
    if pack.get("call_time"):
        times.append(f"Call {format_time_12h(pack['call_time'])}")
    if pack.get("on_stage_time"):
        times.append(f"On stage {format_time_12h(pack['on_stage_time'])}")

    venue = " · ".join([v for v in [pack.get("venue_name"), pack.get("venue_address")] if v])
    others = [
        f"{e(m.get('name') or 'TBD')} ({e(m.get('role'))})" if m.get("role") else e(m.get("name"))
        for m in pack.get("lineup") or []
        if m.get("gigRoleId") != member.get("gigRoleId") and (m.get("name") or m.get("role"))
    ]

    parts = [
        f"<p>Hi {e(member.get('name') or 'there')},</p>",
        f"<p>You're on the lineup for <b>{e(pack.get('title') or 'a gig')}</b>"
        + (f" as <b>{e(member.get('role'))}</b>" if member.get("role") else "")
        + ".</p>",
        f"<p><b>When:</b> {e(when)}" + (f"<br/>{e(', '.join(times))}" if times else "") + "</p>",
    ]
    if venue:
        parts.append(f"<p><b>Where:</b> {e(venue)}</p>")
    if others:
        parts.append("<p><b>Also playing:</b><br/>" + "<br/>".join(others) + "</p>")
    if member.get("notes"):
        parts.append(f"<p><b>Notes for you:</b> {e(member['notes'])}</p>")
    parts.append(f'<p>Everything else is in the gig pack: <a href="{e(url)}">{e(url)}</a></p>')
    parts.append("<p>A calendar file is attached.</p>")
    return "\n".join(parts)


def send_lineup_invites(
    gig_id: str,
    only_role_ids: Optional[Iterable[str]] = None,
    cc: Optional[List[str]] = None,
    sb=None,
) -> List[Dict[str, Any]]:
    """
    Send the invite email to every lineup member with an email address
    (or only the given gig_roles ids). Returns one result dict per member.
    """
    sb = sb or admin_client()
    gig_id = str(gig_id)
    pack = get_gig_pack(sb, gig_id)
    if not pack:
        raise ValueError(f"Gig {gig_id} not found.")

    url = share_url(pack["public_slug"])
    try:
        ics_name, ics_bytes = build_gig_ics(pack, url=url)
        attachments = [(ics_name, ics_bytes, "text/calendar; method=PUBLISH; charset=UTF-8")]
    except ValueError as err:
        logger.warning("INVITE_ICS_SKIPPED gig=%s %s", gig_id, err)
        attachments = None

    wanted = {str(x) for x in only_role_ids} if only_role_ids is not None else None
    dry_run = _is_dry_run()
    subject = f"Gig: {pack.get('title') or 'Gig'} ({format_gig_date(pack.get('date'))})"

    results = []
    for member in pack.get("lineup") or []:
        if wanted is not None and str(member.get("gigRoleId")) not in wanted:
            continue
        token = uuid.uuid4().hex
        to_email = (member.get("email") or "").strip()
        detail = {"gig_role_id": member.get("gigRoleId"), "role": member.get("role"), "subject": subject}

        if not to_email:
            _insert_email_audit(sb, token=token, gig_id=gig_id, recipient_email="",
                                status="skipped-no-email", detail=detail)
            results.append({"gigRoleId": member.get("gigRoleId"), "status": "skipped-no-email"})
            continue

        body = compose_invite_html(pack, member, url)
        try:
            if not dry_run:
                gmail_send(subject, to_email, body, cc=cc, attachments=attachments)
        except Exception as err:
            logger.error("INVITE_SEND_ERR gig=%s to=%s %s", gig_id, to_email, err)
            _insert_email_audit(sb, token=token, gig_id=gig_id, recipient_email=to_email,
                                status="failed", detail={**detail, "error": str(err)})
            results.append({"gigRoleId": member.get("gigRoleId"), "to": to_email, "status": "failed"})
            continue

        status = "dry-run" if dry_run else "sent"
        _insert_email_audit(sb, token=token, gig_id=gig_id, recipient_email=to_email,
                            status=status, detail={**detail, "has_ics": bool(attachments)})
        results.append({"gigRoleId": member.get("gigRoleId"), "to": to_email, "status": status})
        logger.info("INVITE_%s gig=%s to=%s", status.upper().replace("-", "_"), gig_id, to_email)
    return results


if __name__ == "__main__":
    import argparse
    import os

    configure_logging()
    p = argparse.ArgumentParser(description="Email the lineup the gig pack link and an .ics file")
    p.add_argument("gig_id", help="Gig ID (UUID)")
    p.add_argument("--role-id", action="append", dest="role_ids", help="Only this gig_roles id (repeatable)")
    p.add_argument("--cc", action="append", default=None, help="Cc address (repeatable)")
    p.add_argument("--dry-run", action="store_true", help="Audit only, send nothing")
    args = p.parse_args()

    if args.dry_run:
        os.environ["INVITE_EMAIL_DRY_RUN"] = "1"
    for r in send_lineup_invites(args.gig_id, only_role_ids=args.role_ids, cc=args.cc):
        print(r)
