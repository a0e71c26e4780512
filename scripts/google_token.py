#!/usr/bin/env python3
"""
Obtain a Google OAuth refresh token for the sheet copy integration.

Prints an authorization URL, reads the code pasted back from the consent
screen and exchanges it for tokens to put in the environment.
"""

import argparse
import os
import sys
from pathlib import Path
from urllib.parse import urlencode

import requests

# Add the parent directory to sys.path to import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.core.config import GOOGLE_HTTP_TIMEOUT_SEC, GOOGLE_TOKEN_URL

AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
DRIVE_SCOPE = "https://www.googleapis.com/auth/drive"


def build_auth_url(client_id: str, redirect_uri: str, scope: str = DRIVE_SCOPE) -> str:
    params = {
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "response_type": "code",
        "scope": scope,
        "access_type": "offline",
        "prompt": "consent",  # Force consent screen to ensure refresh token
    }
    return f"{AUTH_URL}?{urlencode(params)}"


def exchange_code(client_id: str, client_secret: str, redirect_uri: str, code: str) -> dict:
    r = requests.post(GOOGLE_TOKEN_URL, data={
        "client_id": client_id,
        "client_secret": client_secret,
        "redirect_uri": redirect_uri,
        "code": code,
        "grant_type": "authorization_code",
    }, timeout=GOOGLE_HTTP_TIMEOUT_SEC)
    r.raise_for_status()
    return r.json()


def main():
    parser = argparse.ArgumentParser(description="Generate a Google OAuth refresh token")
    parser.add_argument(
        "--redirect-uri",
        default=os.getenv("GOOGLE_REDIRECT_URI", "http://localhost:3000/oauth2callback"),
        help="Redirect URI registered for the OAuth client"
    )
    parser.add_argument("--scope", default=DRIVE_SCOPE, help="OAuth scope to request")
    args = parser.parse_args()

    client_id = os.getenv("GOOGLE_CLIENT_ID")
    client_secret = os.getenv("GOOGLE_CLIENT_SECRET")
    if not client_id or not client_secret:
        print("Missing required environment variables:")
        print(f"GOOGLE_CLIENT_ID: {'set' if client_id else 'missing'}")
        print(f"GOOGLE_CLIENT_SECRET: {'set' if client_secret else 'missing'}")
        return 1

    print("Authorize this app by visiting this URL:")
    print(build_auth_url(client_id, args.redirect_uri, args.scope))
    print()

    code = input("Enter the authorization code from the URL: ").strip()
    try:
        tokens = exchange_code(client_id, client_secret, args.redirect_uri, code)
    except requests.RequestException as e:
        print(f"Error exchanging code for tokens: {e}")
        return 1

    print("\nAdd these to your environment:")
    if tokens.get("refresh_token"):
        print(f"GOOGLE_REFRESH_TOKEN={tokens['refresh_token']}")
    else:
        print("No refresh token received. You may need to re-authenticate.")
    print(f"GOOGLE_ACCESS_TOKEN={tokens.get('access_token')}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
