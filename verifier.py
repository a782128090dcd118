"""Identity-wallet challenges.

The verifier is picked once at startup. Without identity-wallet settings the
service runs with no verifier and the challenge endpoint reports it as
unavailable.
"""
import abc
import json
import logging
from typing import Optional
from urllib.parse import quote

from pydantic import BaseModel

import config
from errors import InvalidRequest

logger = logging.getLogger(__name__)

UNIVERSAL_LINK_BASE = "https://redirect.self.xyz"


class Challenge(BaseModel):
    app_name: str
    scope: str
    endpoint: str
    user_id: str
    user_id_type: str = "hex"
    disclosures: dict
    universal_link: str


class IdentityVerifier(abc.ABC):
    @abc.abstractmethod
    def build_challenge(self, user_id: str) -> Challenge:
        """Disclosure request the user's identity wallet answers."""


class SelfIdentityVerifier(IdentityVerifier):
    """Disclosure requests for the Self identity wallet."""

    def __init__(self, app_name: str, scope: str, endpoint: str, min_age: int = 18):
        self.app_name = app_name
        self.scope = scope
        self.endpoint = endpoint
        self.min_age = min_age

    def build_challenge(self, user_id: str) -> Challenge:
        if not user_id or not user_id.strip():
            raise InvalidRequest("user_id is required")
        user_id = user_id.strip().lower()
        if not user_id.startswith("0x"):
            user_id = "0x" + user_id
        try:
            int(user_id, 16)
        except ValueError:
            raise InvalidRequest(f"user_id must be hex: {user_id!r}")

        disclosures = {"minimumAge": self.min_age, "ofac": True}
        request = {
            "appName": self.app_name,
            "scope": self.scope,
            "endpoint": self.endpoint,
            "userId": user_id,
            "userIdType": "hex",
            "disclosures": disclosures,
        }
        link = f"{UNIVERSAL_LINK_BASE}?selfApp={quote(json.dumps(request, separators=(',', ':')))}"
        return Challenge(
            app_name=self.app_name,
            scope=self.scope,
            endpoint=self.endpoint,
            user_id=user_id,
            disclosures=disclosures,
            universal_link=link,
        )


def load_verifier() -> Optional[IdentityVerifier]:
    if not (config.SELF_SCOPE and config.SELF_ENDPOINT):
        logger.info("Identity wallet not configured; challenges disabled")
        return None
    return SelfIdentityVerifier(
        config.SELF_APP_NAME, config.SELF_SCOPE, config.SELF_ENDPOINT, config.SELF_MIN_AGE
    )
