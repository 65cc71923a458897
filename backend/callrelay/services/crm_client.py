"""GoHighLevel REST v1 client used on behalf of each tenant.

Every call is authenticated with the tenant credential passed in by the
caller; the client itself holds no tenant state.
"""
import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class CRMError(Exception):
    """Non-success response from the CRM API."""

    def __init__(self, operation: str, status_code: int, body: str) -> None:
        self.operation = operation
        self.status_code = status_code
        self.body = body
        super().__init__(f"CRM {operation} failed. Status: {status_code}. Response: {body}")


class CRMClient:
    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        api_version: str = "2021-07-28",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_version = api_version
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self, credential: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {credential}"}

    async def find_contact_by_phone(self, credential: str, phone: str) -> Optional[str]:
        response = await self._client.get(
            "/contacts/lookup",
            params={"phone": phone},
            headers=self._headers(credential),
        )
        # The lookup endpoint answers 404 when nothing matches.
        if response.status_code == 404:
            return None
        if not response.is_success:
            raise CRMError("contact lookup", response.status_code, response.text)
        contacts = response.json().get("contacts") or []
        if not contacts:
            return None
        return str(contacts[0]["id"])

    async def create_note(self, credential: str, contact_id: str, body: str) -> None:
        headers = self._headers(credential)
        headers["Version"] = self.api_version
        response = await self._client.post(
            f"/contacts/{contact_id}/notes",
            json={"body": body},
            headers=headers,
        )
        if not response.is_success:
            logger.error(
                "Note creation failed for contact %s (status %s).",
                contact_id,
                response.status_code,
            )
            raise CRMError("note creation", response.status_code, response.text)

    async def get_contact(self, credential: str, contact_id: str) -> Dict[str, Any]:
        response = await self._client.get(
            f"/contacts/{contact_id}", headers=self._headers(credential)
        )
        if not response.is_success:
            raise CRMError("contact detail", response.status_code, response.text)
        payload = response.json()
        return payload.get("contact") or payload

    async def contact_has_tag(self, credential: str, contact_id: str, tag: str) -> bool:
        contact = await self.get_contact(credential, contact_id)
        tags = contact.get("tags")
        if not isinstance(tags, list):
            return False
        expected = tag.strip().lower()
        return any(str(value).strip().lower() == expected for value in tags)
