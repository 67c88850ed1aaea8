"""
Social login profile lookup.

The client completes the provider's OAuth flow and hands us the access
token; we fetch the user's profile from the provider to learn who they
are.  Each provider's response is normalised into ``SocialProfile``.
"""
import logging
from dataclasses import dataclass

import httpx

from haven.config import settings
from haven.errors import NotFound, Unauthorized

logger = logging.getLogger(__name__)


@dataclass
class SocialProfile:
    provider: str
    social_id: str
    email: str
    first_name: str
    last_name: str
    avatar_url: str | None = None


def _google_profile(data: dict) -> SocialProfile:
    return SocialProfile(
        provider="google",
        social_id=str(data["sub"]),
        email=data["email"],
        first_name=data.get("given_name") or "",
        last_name=data.get("family_name") or "",
        avatar_url=data.get("picture"),
    )


def _facebook_profile(data: dict) -> SocialProfile:
    picture = (data.get("picture") or {}).get("data") or {}
    return SocialProfile(
        provider="facebook",
        social_id=str(data["id"]),
        email=data["email"],
        first_name=data.get("first_name") or "",
        last_name=data.get("last_name") or "",
        avatar_url=picture.get("url"),
    )


PROVIDERS = {
    "google": (lambda: settings.GOOGLE_USERINFO_URL, {}, _google_profile),
    "facebook": (
        lambda: settings.FACEBOOK_USERINFO_URL,
        {"fields": "id,email,first_name,last_name,picture"},
        _facebook_profile,
    ),
}


async def fetch_profile(provider: str, access_token: str) -> SocialProfile:
    """
    Return the provider profile for *access_token*.

    Raises ``NotFound`` for unsupported providers and ``Unauthorized``
    when the provider rejects the token or returns no email.
    """
    if provider not in PROVIDERS:
        raise NotFound(f"unsupported social provider '{provider}'")
    url_for, params, parse = PROVIDERS[provider]

    try:
        async with httpx.AsyncClient(timeout=settings.SOCIAL_TIMEOUT) as client:
            resp = await client.get(
                url_for(),
                params=params,
                headers={"Authorization": f"Bearer {access_token}"},
            )
            resp.raise_for_status()
            data = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("%s profile lookup failed: %s", provider, exc)
        raise Unauthorized("social authentication failed") from exc

    try:
        return parse(data)
    except KeyError as exc:
        logger.warning("%s profile missing field %s", provider, exc)
        raise Unauthorized("social authentication failed") from exc
