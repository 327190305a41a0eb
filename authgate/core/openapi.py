"""OpenAPI metadata and customization utilities.

Enriches the generated OpenAPI schema with:
- Tags metadata
- A bearer-token security scheme (``Authorization`` header) applied to the
  session check only; registration and health stay open

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

PROTECTED_PATHS = ("/login",)


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add tags and token security."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        components = schema.setdefault("components", {})
        security_schemes = components.setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "SessionToken",
            {
                "type": "apiKey",
                "in": "header",
                "name": "Authorization",
                "description": "Session token returned by /sign-up (raw or 'Bearer <token>').",
            },
        )

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        desired_tags = [
            {
                "name": "Accounts",
                "description": "Account registration.",
            },
            {
                "name": "Session",
                "description": "Session token checks.",
            },
            {
                "name": "Health",
                "description": "Liveness checks.",
            },
        ]
        for tag in desired_tags:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for path, methods in schema.get("paths", {}).items():
            security = [{"SessionToken": []}] if path in PROTECTED_PATHS else []
            for method_obj in methods.values():
                if isinstance(method_obj, dict):
                    method_obj["security"] = security

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
