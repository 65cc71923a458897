import json
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)


def normalize_phone(value: Optional[str]) -> Optional[str]:
    """Canonical phone form: digits only, prefixed with ``+``."""
    if not value:
        return None
    digits = "".join(char for char in str(value) if char.isdigit())
    if not digits:
        return None
    return f"+{digits}"


@dataclass(frozen=True)
class Tenant:
    id: str
    name: str
    open_phone_number: str
    credential: str


class TenantDirectory:
    def __init__(self, tenants: Iterable[Tenant]) -> None:
        by_number: dict[str, Tenant] = {}
        by_id: dict[str, Tenant] = {}
        by_credential: dict[str, Tenant] = {}
        for tenant in tenants:
            number = normalize_phone(tenant.open_phone_number)
            if number in by_number:
                logger.warning(
                    "[config] Number %s already routed to tenant %s; ignoring it for %s.",
                    number,
                    by_number[number].id,
                    tenant.id,
                )
            elif number:
                by_number[number] = tenant
            by_id.setdefault(tenant.id, tenant)
            by_credential.setdefault(tenant.credential, tenant)
        self._by_number: Mapping[str, Tenant] = MappingProxyType(by_number)
        self._by_id: Mapping[str, Tenant] = MappingProxyType(by_id)
        self._by_credential: Mapping[str, Tenant] = MappingProxyType(by_credential)
        self._tenants: Tuple[Tenant, ...] = tuple(by_id.values())

    def __len__(self) -> int:
        return len(self._tenants)

    def resolve_by_number(self, number: Optional[str]) -> Optional[Tenant]:
        key = normalize_phone(number)
        if key is None:
            return None
        return self._by_number.get(key)

    def resolve_by_id(self, tenant_id: Optional[str]) -> Optional[Tenant]:
        if not tenant_id:
            return None
        return self._by_id.get(tenant_id)

    def resolve_by_credential(self, credential: Optional[str]) -> Optional[Tenant]:
        if not credential:
            return None
        return self._by_credential.get(credential)

    def all(self) -> Tuple[Tenant, ...]:
        return self._tenants


def _tenant_from_entry(entry: object) -> Optional[Tenant]:
    if not isinstance(entry, dict):
        return None
    values = {
        "id": entry.get("id"),
        "name": entry.get("name"),
        "open_phone_number": entry.get("openPhoneNumber"),
        "credential": entry.get("credential"),
    }
    if not all(isinstance(value, str) and value.strip() for value in values.values()):
        return None
    return Tenant(**{key: value.strip() for key, value in values.items()})


def parse_tenant_config(raw: Optional[str]) -> list[Tenant]:
    """Parse tenant configuration.

    Accepts either a JSON array of ``{id, name, openPhoneNumber, credential}``
    objects or the legacy ``{"<number>": "<credential>"}`` map. Raises
    ``ValueError`` when the document cannot be used at all.
    """
    if raw is None or not raw.strip():
        raise ValueError("tenant configuration is empty")
    try:
        document = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"tenant configuration is not valid JSON: {exc}") from exc

    tenants: list[Tenant] = []
    if isinstance(document, dict):
        for number, credential in document.items():
            normalized = normalize_phone(number)
            if not normalized or not isinstance(credential, str) or not credential:
                logger.warning("[config] Skipping invalid number map entry %r.", number)
                continue
            tenants.append(
                Tenant(
                    id=normalized.lstrip("+"),
                    name=number,
                    open_phone_number=normalized,
                    credential=credential,
                )
            )
    elif isinstance(document, list):
        for position, entry in enumerate(document):
            tenant = _tenant_from_entry(entry)
            if tenant is None:
                logger.warning("[config] Skipping malformed tenant entry #%s.", position)
                continue
            tenants.append(tenant)
    else:
        raise ValueError("tenant configuration must be a JSON array or object")

    if not tenants:
        raise ValueError("tenant configuration contains no usable tenants")
    return tenants


def load_tenant_directory(raw: Optional[str]) -> TenantDirectory:
    try:
        tenants = parse_tenant_config(raw)
    except ValueError as exc:
        logger.error(
            "[config] Tenant directory unavailable (%s). Every webhook will be unrouted.",
            exc,
        )
        return TenantDirectory([])
    directory = TenantDirectory(tenants)
    logger.info("Tenant directory loaded with %s tenant(s).", len(directory))
    return directory
