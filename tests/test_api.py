import pytest
from fastapi.testclient import TestClient

from policy_admin.api.dependencies import get_config, get_db, key_is_accepted
from policy_admin.api.main import app
from policy_admin.database.postgres import PostgresDB
from policy_admin.utils.config_loader import AppConfig, SecurityConfig

API_KEY = "test-key"


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setenv("API_KEYS", API_KEY)
    store = PostgresDB()
    app.dependency_overrides[get_db] = lambda: store
    app.dependency_overrides[get_config] = lambda: AppConfig()
    with TestClient(app, headers={"X-API-KEY": API_KEY}) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def policy_body():
    return {
        "policyType": "motor",
        "title": "Motor Private",
        "policyStartDate": "2025-01-01T00:00:00Z",
        "policyEndDate": "2026-01-01T00:00:00Z",
        "policyStatus": "active",
        "policyAmount": 1500,
        "policyTerm": 12,
        "schemaDefinition": {
            "registration": {"type": "string", "label": "Registration", "required": True, "minLength": 3},
            "value": {"type": "number", "label": "Value", "min": 0, "step": 1000},
        },
        "dynamicFields": {"registration": "UAX123", "value": 5000},
    }


@pytest.fixture
def application_body():
    return {
        "title": "Travel Sure",
        "description": "Travel insurance",
        "rules": ["18+"],
        "expiryDate": "2026-06-30T00:00:00Z",
        "createdBy": "admin",
        "schemaDefinition": {"destination": {"type": "string", "label": "Destination", "required": True}},
        "dynamicFields": {"destination": "Kenya"},
    }


def test_health_is_open(client):
    r = client.get("/health", headers={"X-API-KEY": ""})
    assert r.status_code == 200
    assert r.json()["status"] == "healthy"
    assert "database" in r.json()


def test_missing_api_key_is_rejected(client):
    r = client.get("/api/v1/policies", headers={"X-API-KEY": "wrong"})
    assert r.status_code == 401


def test_public_paths_and_key_env_come_from_config(client, monkeypatch):
    monkeypatch.setenv("PARTNER_KEYS", "partner-1, partner-2")
    config = AppConfig(security=SecurityConfig(api_keys_env="PARTNER_KEYS", public_paths=["/api/v1/policies"]))
    app.dependency_overrides[get_config] = lambda: config

    assert client.get("/api/v1/policies", headers={"X-API-KEY": ""}).status_code == 200
    assert client.get("/api/v1/applications", headers={"X-API-KEY": API_KEY}).status_code == 401
    assert client.get("/api/v1/applications", headers={"X-API-KEY": "partner-2"}).status_code == 200


def test_no_configured_keys_rejects_everything(client, monkeypatch):
    monkeypatch.delenv("API_KEYS")
    assert client.get("/api/v1/policies").status_code == 401
    assert client.get("/health").status_code == 200


def test_key_is_accepted():
    assert key_is_accepted(" k1 ", ["k0", "k1"]) is True
    assert key_is_accepted("", ["k1"]) is False
    assert key_is_accepted(None, ["k1"]) is False
    assert key_is_accepted("k1", []) is False
    assert key_is_accepted("cl\u00e9", ["k1"]) is False


def test_huge_integer_field_is_a_validation_error(client, policy_body):
    policy_body["dynamicFields"] = {"registration": "UAX123", "value": 10 ** 400}
    r = client.post("/api/v1/policies", json=policy_body)
    assert r.status_code == 400
    assert r.json()["detail"]["field_errors"] == {"value": "value must be a number"}


def test_create_and_get_policy(client, policy_body):
    r = client.post("/api/v1/policies", json=policy_body)
    assert r.status_code == 201
    created = r.json()
    assert created["policyNumber"].startswith("POL-")
    assert created["dynamicFields"] == {"registration": "UAX123", "value": 5000}

    r = client.get(f"/api/v1/policies/{created['id']}")
    assert r.status_code == 200
    assert r.json()["schemaDefinition"] == policy_body["schemaDefinition"]


def test_create_policy_validation_error_shape(client, policy_body):
    policy_body["dynamicFields"] = {"registration": "AB", "value": 5500}
    r = client.post("/api/v1/policies", json=policy_body)
    assert r.status_code == 400
    detail = r.json()["detail"]
    assert detail["error"] == "validation_error"
    assert sorted(v["path"] for v in detail["violations"]) == ["registration", "value"]
    assert set(detail["field_errors"]) == {"registration", "value"}
    assert "(minLength)" in detail["message"] and "(step)" in detail["message"]


def test_create_policy_schema_error_shape(client, policy_body):
    policy_body["schemaDefinition"] = {"registration": {"type": "string", "label": "Reg", "min": 1}}
    r = client.post("/api/v1/policies", json=policy_body)
    assert r.status_code == 400
    detail = r.json()["detail"]
    assert detail["error"] == "schema_error"
    assert detail["errors"] == ["registration: 'min' is not allowed for type 'string'"]


def test_create_policy_missing_scalar_is_422(client, policy_body):
    policy_body.pop("title")
    r = client.post("/api/v1/policies", json=policy_body)
    assert r.status_code == 422


def test_duplicate_policy_number_is_409(client, policy_body):
    policy_body["policyNumber"] = "POL-0001"
    assert client.post("/api/v1/policies", json=policy_body).status_code == 201
    assert client.post("/api/v1/policies", json=policy_body).status_code == 409


def test_unknown_policy_is_404(client):
    assert client.get("/api/v1/policies/nope").status_code == 404
    assert client.delete("/api/v1/policies/nope").status_code == 404


def test_update_policy_and_delete(client, policy_body):
    policy_id = client.post("/api/v1/policies", json=policy_body).json()["id"]
    r = client.put(f"/api/v1/policies/{policy_id}", json={"policyStatus": "lapsed", "dynamicFields": {"value": 7000}})
    assert r.status_code == 200
    assert r.json()["policyStatus"] == "lapsed"
    assert r.json()["dynamicFields"] == {"registration": "UAX123", "value": 7000}

    assert client.delete(f"/api/v1/policies/{policy_id}").status_code == 200
    assert client.get(f"/api/v1/policies/{policy_id}").status_code == 404


def test_schema_and_fields_routes(client, policy_body):
    policy_id = client.post("/api/v1/policies", json=policy_body).json()["id"]

    r = client.put(f"/api/v1/policies/{policy_id}/schema", json={})
    assert r.status_code == 400
    assert r.json()["detail"] == "Schema definition is required"

    new_schema = {"colour": {"type": "string", "label": "Colour", "required": True}}
    r = client.put(f"/api/v1/policies/{policy_id}/schema", json={"schemaDefinition": new_schema})
    assert r.status_code == 200
    assert r.json()["schemaDefinition"] == new_schema

    r = client.put(f"/api/v1/policies/{policy_id}/fields", json={})
    assert r.status_code == 400
    assert r.json()["detail"] == "Dynamic fields are required"

    r = client.put(f"/api/v1/policies/{policy_id}/fields", json={"dynamicFields": {}})
    assert r.status_code == 400
    assert r.json()["detail"]["violations"] == [{"path": "colour", "message": "colour is required"}]

    r = client.put(f"/api/v1/policies/{policy_id}/fields", json={"dynamicFields": {"colour": "red"}})
    assert r.status_code == 200
    assert r.json()["dynamicFields"] == {"colour": "red"}


def test_list_policies_with_filters(client, policy_body):
    client.post("/api/v1/policies", json=policy_body)
    client.post("/api/v1/policies", json=dict(policy_body, title="Home", policyType="home", dynamicFields={"registration": "HOME01"}))

    r = client.get("/api/v1/policies", params={"policyType": "motor"})
    assert r.status_code == 200
    assert r.json()["total"] == 1

    r = client.get("/api/v1/policies", params={"dynamic.registration": "HOME01"})
    assert r.json()["total"] == 1
    assert r.json()["policies"][0]["title"] == "Home"

    r = client.get("/api/v1/policies", params={"page": 1, "limit": 1})
    body = r.json()
    assert (body["total"], body["page"], body["limit"], len(body["policies"])) == (2, 1, 1, 1)

    assert client.get("/api/v1/policies", params={"startDate": "garbage"}).status_code == 400


def test_applications_surface(client, application_body):
    r = client.post("/api/v1/applications", json=application_body)
    assert r.status_code == 201
    app_id = r.json()["id"]
    assert r.json()["isActive"] is True

    assert client.post("/api/v1/applications", json=application_body).status_code == 409

    r = client.put(f"/api/v1/applications/{app_id}/fields", json={"dynamicFields": {"destination": 7}})
    assert r.status_code == 400
    assert r.json()["detail"]["field_errors"] == {"destination": "destination must be a string"}

    r = client.get("/api/v1/applications", params={"isActive": "true", "createdBy": "admin"})
    assert r.json()["total"] == 1

    r = client.put(f"/api/v1/applications/{app_id}", json={"isActive": False})
    assert r.json()["isActive"] is False

    assert client.delete(f"/api/v1/applications/{app_id}").status_code == 200
    assert client.get(f"/api/v1/applications/{app_id}").status_code == 404
