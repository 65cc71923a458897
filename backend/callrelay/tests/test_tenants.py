import json
import logging

from callrelay.services.tenants import (
    Tenant,
    TenantDirectory,
    load_tenant_directory,
    normalize_phone,
)


def test_normalize_phone_strips_formatting():
    assert normalize_phone("(555) 123-0000") == "+5551230000"
    assert normalize_phone("+1 555 123 0000") == "+15551230000"
    assert normalize_phone("") is None
    assert normalize_phone("abc") is None


def test_resolves_by_number_id_and_credential(directory):
    acme = directory.resolve_by_number("+1 (555) 123-0000")
    assert acme.id == "acme"
    assert directory.resolve_by_id("globex").name == "Globex"
    assert directory.resolve_by_credential("acme-key").id == "acme"
    assert directory.resolve_by_number("+19999999999") is None
    assert directory.resolve_by_id("missing") is None


def test_all_is_deduplicated_by_id():
    first = Tenant("acme", "Acme", "+15551230000", "key-1")
    duplicate = Tenant("acme", "Acme again", "+15551239999", "key-2")
    directory = TenantDirectory([first, duplicate])
    assert directory.all() == (first,)


def test_first_tenant_wins_for_duplicate_number(caplog):
    first = Tenant("a", "A", "+15550000001", "key-a")
    second = Tenant("b", "B", "+15550000001", "key-b")
    with caplog.at_level(logging.WARNING):
        directory = TenantDirectory([first, second])
    assert directory.resolve_by_number("+15550000001") is first
    assert "[config]" in caplog.text


def test_loads_tenant_array():
    raw = json.dumps(
        [
            {"id": "acme", "name": "Acme", "openPhoneNumber": "+15551230000", "credential": "k"},
            {"id": "broken", "name": "Broken"},
        ]
    )
    directory = load_tenant_directory(raw)
    assert [tenant.id for tenant in directory.all()] == ["acme"]


def test_loads_legacy_number_map():
    directory = load_tenant_directory(json.dumps({"+1 555 123 0000": "legacy-key"}))
    tenant = directory.resolve_by_number("+15551230000")
    assert tenant.credential == "legacy-key"
    assert tenant.id == "15551230000"


def test_empty_or_malformed_config_degrades_to_unrouted(caplog):
    for raw in ("", "[]", "{}", "not json", "42"):
        caplog.clear()
        with caplog.at_level(logging.ERROR):
            directory = load_tenant_directory(raw)
        assert len(directory) == 0
        assert directory.resolve_by_number("+15551230000") is None
        assert "[config] Tenant directory unavailable" in caplog.text
