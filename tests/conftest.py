import pytest


@pytest.fixture
def http_document():
    """An HTTP endpoint type with mode-specific and conditional fields."""
    return {
        "typeCode": "http",
        "typeName": "HTTP",
        "category": "network",
        "supportMode": ["IN", "OUT"],
        "schemaVersion": "1.0.0",
        "supportRetry": False,
        "schemaFields": [
            {
                "field": "host",
                "label": "Host",
                "component": "Input",
                "mode": ["IN"],
                "sortOrder": 1,
                "rules": [{"required": True, "message": "Host is required"}],
            },
            {
                "field": "port",
                "label": "Port",
                "component": "InputNumber",
                "mode": ["IN", "OUT"],
                "sortOrder": 2,
                "properties": {"min": 1, "max": 65535, "defaultValue": 8080},
            },
            {
                "field": "authType",
                "label": "Auth type",
                "component": "Select",
                "mode": ["IN", "OUT"],
                "sortOrder": 3,
                "properties": {
                    "options": [
                        {"label": "None", "value": "none"},
                        {"label": "Basic", "value": "basic"},
                    ],
                    "defaultValue": "none",
                },
            },
            {
                "field": "username",
                "label": "Username",
                "component": "Input",
                "mode": ["IN", "OUT"],
                "sortOrder": 4,
                "showCondition": 'formValues.authType === "basic"',
            },
        ],
    }
