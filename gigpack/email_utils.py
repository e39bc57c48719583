# gigpack/email_utils.py
# Gmail API send with refresh-token credentials and retry backoff.
# Credentials come from GMAIL_TOKEN_JSON (raw JSON or a path) or from
# GMAIL_CLIENT_ID / GMAIL_CLIENT_SECRET / GMAIL_REFRESH_TOKEN (+ GMAIL_SCOPES).

from __future__ import annotations

import base64
import json
import logging
import random
import time
from email import encoders
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import List, Optional, Sequence, Tuple, Union

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from gigpack.config import get_setting

logger = logging.getLogger(__name__)

_SERVICE = None

_THROTTLE_SECONDS = 0.35
_JITTER_MAX = 0.25
_MAX_RETRIES = 5
_RETRY_STATUSES = (429, 500, 502, 503, 504)

_TOKEN_URI = "https://oauth2.googleapis.com/token"

# (filename, data) or (filename, data, "text/calendar; method=PUBLISH")
Attachment = Union[Tuple[str, bytes], Tuple[str, bytes, str]]


def _split_scopes(raw: Optional[str]) -> List[str]:
    if not raw:
        return ["https://www.googleapis.com/auth/gmail.send"]
    return [p for p in str(raw).replace(",", " ").split() if p]


def _gmail_service():
    global _SERVICE
    if _SERVICE is not None:
        return _SERVICE

    token_json = get_setting("GMAIL_TOKEN_JSON")
    if token_json:
        if str(token_json).strip().startswith("{"):
            user_info = json.loads(token_json)
        else:
            with open(token_json, "r", encoding="utf-8") as f:
                user_info = json.load(f)
        creds = Credentials.from_authorized_user_info(user_info)
    else:
        client_id = get_setting("GMAIL_CLIENT_ID")
        client_secret = get_setting("GMAIL_CLIENT_SECRET")
        refresh_token = get_setting("GMAIL_REFRESH_TOKEN")
        if not (client_id and client_secret and refresh_token):
            raise RuntimeError(
                "Missing Gmail credentials. Provide GMAIL_TOKEN_JSON or "
                "GMAIL_CLIENT_ID, GMAIL_CLIENT_SECRET and GMAIL_REFRESH_TOKEN."
            )
        creds = Credentials(
            token=None,
            refresh_token=refresh_token,
            token_uri=_TOKEN_URI,
            client_id=client_id,
            client_secret=client_secret,
            scopes=_split_scopes(get_setting("GMAIL_SCOPES")),
        )

    if not creds.valid and creds.refresh_token:
        creds.refresh(Request())
    _SERVICE = build("gmail", "v1", credentials=creds, cache_discovery=False)
    return _SERVICE


def _as_list(x: Union[str, Sequence[str], None]) -> List[str]:
    if x is None:
        return []
    if isinstance(x, str):
        return [x]
    return [s for s in x if s]


def _plain_from_html(html: str) -> str:
    return (
        html.replace("<br>", "\n")
        .replace("<br/>", "\n")
        .replace("<br />", "\n")
        .replace("</p>", "\n\n")
        .replace("<p>", "")
        .replace("&nbsp;", " ")
    )


def _attach(msg: MIMEMultipart, att: Attachment) -> None:
    filename, data = att[0], att[1]
    content_type = att[2] if len(att) > 2 else "application/octet-stream"
    main, _, rest = content_type.partition("/")
    sub, _, params = rest.partition(";")
    part = MIMEBase(main, sub.strip())
    for p in params.split(";"):
        if "=" in p:
            k, v = p.split("=", 1)
            part.set_param(k.strip(), v.strip())
    part.set_payload(data)
    encoders.encode_base64(part)
    part.add_header("Content-Disposition", f'attachment; filename="{filename}"')
    msg.attach(part)


def build_message(
    subject: str,
    to: Union[str, Sequence[str]],
    html: str,
    cc: Union[str, Sequence[str], None] = None,
    bcc: Union[str, Sequence[str], None] = None,
    attachments: Optional[Sequence[Attachment]] = None,
    from_name: Optional[str] = None,
    from_email: Optional[str] = None,
    reply_to: Optional[str] = None,
) -> MIMEMultipart:
    from_name = from_name or get_setting("GIGPACK_FROM_NAME") or "Gig Pack"
    from_email = from_email or get_setting("GIGPACK_FROM_EMAIL") or "no-reply@example.com"

    msg = MIMEMultipart()
    msg["Subject"] = subject
    msg["From"] = f"{from_name} <{from_email}>"
    msg["To"] = ", ".join(_as_list(to))
    if cc:
        msg["Cc"] = ", ".join(_as_list(cc))
    if bcc:
        msg["Bcc"] = ", ".join(_as_list(bcc))
    if reply_to:
        msg["Reply-To"] = reply_to

    msg.attach(MIMEText(_plain_from_html(html), "plain"))
    msg.attach(MIMEText(html, "html"))
    for att in attachments or []:
        _attach(msg, att)
    return msg


def gmail_send(subject: str, to: Union[str, Sequence[str]], html: str, **kwargs) -> dict:
    """
    Send through the Gmail API; retries 429/5xx and network errors with
    exponential backoff. Returns the users.messages.send response.
    """
    time.sleep(_THROTTLE_SECONDS + random.random() * _JITTER_MAX)

    msg = build_message(subject, to, html, **kwargs)
    body = {"raw": base64.urlsafe_b64encode(msg.as_bytes()).decode("utf-8")}
    service = _gmail_service()

    backoff = 1.0
    last_err: Optional[Exception] = None
    for attempt in range(_MAX_RETRIES + 1):
        try:
            return service.users().messages().send(userId="me", body=body).execute()
        except HttpError as e:
            last_err = e
            status = getattr(getattr(e, "resp", None), "status", None)
            if status not in _RETRY_STATUSES:
                raise
        except Exception as e:
            last_err = e
        logger.warning("GMAIL_SEND_RETRY attempt=%d to=%s error=%s", attempt + 1, to, last_err)
        time.sleep(backoff + random.random() * _JITTER_MAX)
        backoff *= 2.0

    raise last_err  # type: ignore[misc]
