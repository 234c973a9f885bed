# services/google_identity.py
import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from jose import jwt, JWTError

from config import GOOGLE_CLIENT_ID, GOOGLE_CERTS_URL, HTTP_TIMEOUT_SECONDS
from utils.errors import InvalidGoogleCredential

logger = logging.getLogger(__name__)

GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


@dataclass
class GoogleIdentity:
    subject: str
    email: str
    name: Optional[str] = None
    picture: Optional[str] = None


def _fetch_signing_key(kid: str) -> dict:
    try:
        resp = httpx.get(GOOGLE_CERTS_URL, timeout=HTTP_TIMEOUT_SECONDS)
        resp.raise_for_status()
        keys = resp.json().get("keys", [])
    except (httpx.HTTPError, ValueError) as exc:
        logger.error(f"Could not fetch Google signing keys: {exc}")
        raise InvalidGoogleCredential()

    for key in keys:
        if key.get("kid") == kid:
            return key
    logger.warning(f"No Google signing key matches kid={kid}")
    raise InvalidGoogleCredential()


def verify_google_credential(credential: str) -> GoogleIdentity:
    """
    Verify a Google ID token (RS256) against Google's published keys,
    with our OAuth client id as the required audience.
    """
    if not GOOGLE_CLIENT_ID:
        logger.error("GOOGLE_CLIENT_ID is not configured; rejecting Google login")
        raise InvalidGoogleCredential()

    try:
        header = jwt.get_unverified_header(credential)
    except JWTError as exc:
        logger.warning(f"Malformed Google credential: {exc}")
        raise InvalidGoogleCredential()

    key = _fetch_signing_key(header.get("kid"))

    try:
        claims = jwt.decode(
            credential,
            key,
            algorithms=["RS256"],
            audience=GOOGLE_CLIENT_ID,
            options={"verify_at_hash": False},
        )
    except JWTError as exc:
        logger.warning(f"Google credential rejected: {exc}")
        raise InvalidGoogleCredential()

    if claims.get("iss") not in GOOGLE_ISSUERS:
        logger.warning(f"Google credential has unexpected issuer: {claims.get('iss')}")
        raise InvalidGoogleCredential()

    email = claims.get("email")
    if not claims.get("sub") or not email or claims.get("email_verified") is False:
        logger.warning("Google credential is missing a verified email")
        raise InvalidGoogleCredential()

    return GoogleIdentity(
        subject=claims["sub"],
        email=email,
        name=claims.get("name"),
        picture=claims.get("picture"),
    )
