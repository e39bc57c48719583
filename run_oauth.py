# run_oauth.py
# One-off: mint the Google refresh token used by calendar sync ([google_oauth])
# and lineup emails (GMAIL_REFRESH_TOKEN). Client id/secret come from settings,
# never from this file.
#
#   GMAIL_CLIENT_ID=... GMAIL_CLIENT_SECRET=... python run_oauth.py

from typing import Dict

from google_auth_oauthlib.flow import InstalledAppFlow

from gigpack.config import get_section, get_setting

SCOPES = [
    "https://www.googleapis.com/auth/gmail.send",
    "https://www.googleapis.com/auth/calendar.events",
]


def client_config() -> Dict[str, dict]:
    """Installed-app client config from [google_oauth], else GMAIL_CLIENT_ID/SECRET."""
    oauth = get_section("google_oauth")
    client_id = oauth.get("client_id") or get_setting("GMAIL_CLIENT_ID")
    client_secret = oauth.get("client_secret") or get_setting("GMAIL_CLIENT_SECRET")
    if not (client_id and client_secret):
        raise SystemExit("Set GMAIL_CLIENT_ID and GMAIL_CLIENT_SECRET (or the [google_oauth] secret) first.")
    return {
        "installed": {
            "client_id": client_id,
            "client_secret": client_secret,
            "auth_uri": "https://accounts.google.com/o/oauth2/auth",
            "token_uri": "https://oauth2.googleapis.com/token",
        }
    }


if __name__ == "__main__":
    flow = InstalledAppFlow.from_client_config(client_config(), SCOPES)
    # loopback listener; no redirect URI needed for Desktop clients
    creds = flow.run_local_server(port=0)
    token = creds.refresh_token or "NO_REFRESH_TOKEN_ISSUED"
    print("\nPaste into .streamlit/secrets.toml:\n")
    print(f'GMAIL_REFRESH_TOKEN = "{token}"\n')
    print("[google_oauth]")
    print(f'client_id = "{flow.client_config["client_id"]}"')
    print('client_secret = "..."')
    print(f'refresh_token = "{token}"')
