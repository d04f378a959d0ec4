#!/usr/bin/env python3
"""
authorize.py – get the calendar token before starting the server

Usage
─────
# reuse token.json if present, otherwise walk through consent
python backend/authorize.py

# throw the stored token away and consent again
python backend/authorize.py --force

# explicit file locations
python backend/authorize.py --credentials secrets/credentials.json --token secrets/token.json
"""
import argparse
import logging
import sys

from auth_utils import FatalStartupError, acquire_token
from config import CREDENTIALS_FILE, LOG_LEVEL, TOKEN_FILE
from token_store import CredentialsError, load_client_credentials


def main(argv=None):
    argv = argv if argv is not None else sys.argv[1:]
    p = argparse.ArgumentParser(description="Authorize access to the booking calendar.")
    p.add_argument("--credentials", default=CREDENTIALS_FILE, help="Client secret JSON from Google Cloud Console")
    p.add_argument("--token", default=TOKEN_FILE, help="Where the user token is stored")
    p.add_argument("--force", action="store_true", help="Ignore any stored token and authorize again")
    args = p.parse_args(argv)

    logging.basicConfig(level=getattr(logging, LOG_LEVEL.upper(), logging.INFO))

    try:
        credentials = load_client_credentials(args.credentials)
        token = acquire_token(credentials, args.token, force=args.force)
    except (CredentialsError, FatalStartupError) as e:
        print(f"❌ Authorization failed: {e}", file=sys.stderr)
        return 1

    expiry = token.expiry.isoformat() if token.expiry else "never"
    print(f"✅ Token ready at {args.token} (expires: {expiry})")
    if not token.refresh_token:
        print("⚠️  No refresh token was issued; you will need to authorize again once it expires.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
