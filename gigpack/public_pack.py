# gigpack/public_pack.py
# Read-only gig pack behind a share token (no login). Uses the admin client,
# so the fields a musician must not see are stripped here.

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from gigpack.db import first_row
from gigpack.gigs import get_gig_pack

logger = logging.getLogger(__name__)

PRIVATE_FIELDS = ("internal_notes", "owner_id", "payment_notes", "deleted_at")
PRIVATE_MEMBER_FIELDS = ("agreedFee", "gigRoleId", "userId", "contactId")


def _parse_ts(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        s = str(value).strip().replace("Z", "+00:00")
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            logger.warning("SHARE_EXPIRES_AT_UNPARSEABLE %r", value)
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def is_share_expired(share: Dict[str, Any], now: Optional[datetime] = None) -> bool:
    expires = _parse_ts(share.get("expires_at"))
    if expires is None:
        return False
    return expires < (now or datetime.now(timezone.utc))


def get_public_gig_pack(sb_admin, token: str, now: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
    """Public view model for an active, unexpired share token; None otherwise."""
    if not token:
        return None
    share = first_row(
        sb_admin.table("gig_shares")
        .select("*")
        .eq("token", token)
        .eq("is_active", True)
        .limit(1)
        .execute()
    )
    if not share:
        return None
    if is_share_expired(share, now):
        logger.info("SHARE_EXPIRED token=%s", token)
        return None

    pack = get_gig_pack(sb_admin, share["gig_id"])
    if not pack or pack.get("deleted_at"):
        return None

    for key in PRIVATE_FIELDS:
        pack.pop(key, None)
    pack["contacts"] = None
    for member in pack.get("lineup") or []:
        for key in PRIVATE_MEMBER_FIELDS:
            member.pop(key, None)
    pack["public_slug"] = token
    return pack
