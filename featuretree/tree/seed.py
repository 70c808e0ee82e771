"""Sample forest used to populate an empty workspace."""

from __future__ import annotations

from typing import Any, Dict, List

from featuretree.tree.models import Forest, forest_from_list

SAMPLE_FEATURES: List[Dict[str, Any]] = [
    {
        "id": "test-1",
        "name": "User Authentication",
        "description": "Implement user login, registration, and session management",
        "frequency": 8,
        "damage": 7,
        "required": True,
        "children": [
            {
                "id": "test-1-1",
                "name": "Login Page",
                "description": "Create login form with email and password",
                "frequency": 9,
                "damage": 5,
                "required": True,
                "status": "pass",
            },
            {
                "id": "test-1-2",
                "name": "Registration Flow",
                "description": "User signup with email verification",
                "frequency": 6,
                "damage": 4,
                "status": "failed",
            },
            {
                "id": "test-1-3",
                "name": "Password Reset",
                "description": "Forgot password functionality",
                "frequency": 3,
                "damage": 2,
            },
        ],
    },
    {
        "id": "test-2",
        "name": "Dashboard",
        "description": "Main user dashboard with analytics and widgets",
        "frequency": 7,
        "damage": 6,
        "children": [
            {
                "id": "test-2-1",
                "name": "Analytics Widget",
                "description": "Display user activity metrics",
                "frequency": 5,
                "damage": 3,
            },
            {
                "id": "test-2-2",
                "name": "Recent Activity Feed",
                "description": "Show recent user actions",
                "frequency": 8,
                "damage": 4,
            },
        ],
    },
    {
        "id": "test-3",
        "name": "Payment Integration",
        "description": "Stripe payment gateway integration",
        "frequency": 9,
        "damage": 10,
        "required": True,
        "children": [
            {
                "id": "test-3-1",
                "name": "Payment Form",
                "description": "Credit card input and validation",
                "frequency": 7,
                "damage": 8,
                "required": True,
            },
            {
                "id": "test-3-2",
                "name": "Subscription Management",
                "description": "Handle recurring payments",
                "frequency": 4,
                "damage": 6,
            },
        ],
    },
    {
        "id": "test-4",
        "name": "API Documentation",
        "description": "Comprehensive API documentation with examples",
        "frequency": 2,
        "damage": 1,
    },
]


def sample_forest() -> Forest:
    return forest_from_list(SAMPLE_FEATURES)
