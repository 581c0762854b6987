"""Pytest fixtures for the dynamic-schema engine, controllers and API."""

from datetime import datetime, timezone

import pytest

from policy_admin.database.postgres import PostgresDB
from policy_admin.utils.config_loader import AppConfig, ValidationConfig


@pytest.fixture
def db():
    """In-memory PostgresDB stub for tests."""
    return PostgresDB()


@pytest.fixture
def config():
    return AppConfig()


@pytest.fixture
def strict_config():
    """Config that re-validates stored dynamic fields when a schema is replaced."""
    return AppConfig(validation=ValidationConfig(revalidate_on_schema_change=True))


@pytest.fixture
def vehicle_schema():
    return {
        "registration": {"type": "string", "label": "Registration", "required": True, "minLength": 3, "maxLength": 10},
        "value": {"type": "number", "label": "Vehicle value", "required": True, "min": 0, "step": 1000},
        "hasTracker": {"type": "boolean", "label": "Tracker fitted"},
        "trackerBrand": {
            "type": "string",
            "label": "Tracker brand",
            "required": True,
            "dependsOn": {"field": "hasTracker", "value": True},
        },
        "usage": {"type": "string", "label": "Usage", "enum": ["private", "commercial"], "default": "private"},
    }


@pytest.fixture
def policy_data(vehicle_schema):
    return {
        "policy_type": "motor",
        "title": "Motor Private",
        "description": "Comprehensive cover",
        "policy_start_date": datetime(2025, 1, 1, tzinfo=timezone.utc),
        "policy_end_date": datetime(2026, 1, 1, tzinfo=timezone.utc),
        "policy_status": "active",
        "policy_amount": 1500.0,
        "policy_term": 12,
        "schema_definition": vehicle_schema,
        "dynamic_fields": {"registration": "UAX123", "value": 25000},
    }


@pytest.fixture
def application_data():
    return {
        "title": "Travel Sure",
        "description": "Travel insurance application",
        "rules": ["applicant must be 18+"],
        "is_active": True,
        "expiry_date": datetime(2026, 6, 30, tzinfo=timezone.utc),
        "created_by": "admin",
        "schema_definition": {
            "destination": {"type": "string", "label": "Destination", "required": True},
            "travellers": {
                "type": "array",
                "label": "Travellers",
                "minItems": 1,
                "items": {
                    "type": "object",
                    "label": "Traveller",
                    "properties": {
                        "name": {"type": "string", "label": "Name", "required": True},
                        "dob": {"type": "date", "label": "Date of birth", "required": True},
                    },
                },
            },
        },
        "dynamic_fields": {
            "destination": "Kenya",
            "travellers": [{"name": "Jane", "dob": "1990-05-01"}],
        },
    }
