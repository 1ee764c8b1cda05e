"""
Client HTTP pour le registre d'adhérents eBas (oracle de vérification).

Requête : POST <url>/confirm_membership.json avec un corps JSON
    {"request": {"action": "confirm_membership", "association_number": ..., "api_key": ...,
                 "year_id": <année UTC courante>, "email": ...}}

Réponse interprétée en trois états :
- MEMBER / NOT_MEMBER selon `response.member_found`
- ERROR si `response.request_result.error` est renseigné, si le champ manque,
  ou en cas d'erreur réseau / HTTP / JSON

Les erreurs sont journalisées mais jamais propagées : l'appelant traite ERROR comme NOT_MEMBER.
"""
from __future__ import annotations

import enum
import logging
from datetime import datetime, timezone
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

ENDPOINT = "confirm_membership.json"


class MembershipStatus(enum.Enum):
    MEMBER = "member"
    NOT_MEMBER = "not_member"
    ERROR = "error"


def build_request(email: str, *, association_id: str, api_key: str, year: Optional[int] = None) -> dict:
    return {
        "request": {
            "action": "confirm_membership",
            "association_number": association_id,
            "api_key": api_key,
            "year_id": year if year is not None else datetime.now(timezone.utc).year,
            "email": email,
        }
    }


def parse_response(payload) -> MembershipStatus:
    response = payload.get("response") if isinstance(payload, dict) else None
    if not isinstance(response, dict):
        return MembershipStatus.ERROR
    result = response.get("request_result")
    if isinstance(result, dict) and result.get("error") is not None:
        logger.warning("eBas a renvoyé une erreur: %s", result.get("error"))
        return MembershipStatus.ERROR
    found = response.get("member_found")
    if isinstance(found, bool):
        return MembershipStatus.MEMBER if found else MembershipStatus.NOT_MEMBER
    return MembershipStatus.ERROR


class EbasClient:
    def __init__(
        self,
        url: str,
        *,
        api_key: str,
        association_id: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url.rstrip("/") + "/" + ENDPOINT
        self.api_key = api_key
        self.association_id = association_id
        self.timeout = httpx.Timeout(timeout)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def verify_membership(self, email: str) -> MembershipStatus:
        body = build_request(email, association_id=self.association_id, api_key=self.api_key)
        try:
            response = await self._get_client().post(self.url, json=body)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError):
            logger.exception("Echec requête eBas")
            return MembershipStatus.ERROR
        return parse_response(payload)

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            logger.info("Client HTTP eBas fermé")


__all__ = ["EbasClient", "MembershipStatus", "build_request", "parse_response"]
