from apidrift.domain.models import ObservedEndpoint
from apidrift.inventory.endpoints import EndpointKey, build_contract_inventory, build_observed_inventory


def test_contract_inventory_keys_are_canonical():
    inv = build_contract_inventory(
        [
            {"path": "/Users/{id}/", "method": "get", "expected_response_fields": ["id"]},
            {"path": "users", "method": "POST", "required_fields": ["name"]},
        ]
    )
    assert set(inv) == {EndpointKey("GET", "/users/{id}"), EndpointKey("POST", "/users")}
    assert inv[EndpointKey("GET", "/users/{id}")].path == "/users/{id}"
    assert inv[EndpointKey("POST", "/users")].required_fields == ("name",)


def test_duplicates_collapse_last_write_wins():
    inv = build_contract_inventory(
        [
            {"path": "/users", "method": "GET", "expected_response_fields": ["old"]},
            {"path": "/users/", "method": "get", "expected_response_fields": ["new"]},
        ]
    )
    assert len(inv) == 1
    assert inv[EndpointKey.of("GET", "/users")].expected_response_fields == ("new",)


def test_unsupported_methods_are_dropped():
    inv = build_observed_inventory(
        [
            {"method": "HEAD", "path": "/users"},
            {"method": "OPTIONS", "path": "/users"},
            {"method": "GET", "path": "/users"},
        ]
    )
    assert list(inv) == [EndpointKey("GET", "/users")]


def test_observed_inventory_accepts_source_location_aliases():
    inv = build_observed_inventory(
        [
            {"method": "get", "path": "/a", "sourceLocation": "app.js:3"},
            {"method": "get", "path": "/b", "file": "other.js"},
            ObservedEndpoint(method="GET", path="/C/:id", source_location="c.py:9"),
        ]
    )
    assert inv[EndpointKey("GET", "/a")].source_location == "app.js:3"
    assert inv[EndpointKey("GET", "/b")].source_location == "other.js"
    assert inv[EndpointKey("GET", "/c/{id}")].source_location == "c.py:9"


def test_endpoint_key_str():
    assert str(EndpointKey.of("delete", "/Users/:id")) == "DELETE /users/{id}"
