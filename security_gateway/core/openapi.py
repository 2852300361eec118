"""OpenAPI metadata customization.

Adds tag descriptions and documents the gateway's discriminated request body,
which the route reads as raw bytes and therefore cannot declare itself.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

from security_gateway.schemas.gateway import (
    RateLimitCheckRequest,
    SecurityLogRequest,
    ValidateInputRequest,
)

GATEWAY_PATH = "/v1/security-utils"

_TAGS = [
    {
        "name": "Security",
        "description": "Rate limit checks, security event logging and input sanitization.",
    },
    {
        "name": "Health",
        "description": "Liveness and datastore readiness.",
    },
]


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add tags and the request body schema."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in _TAGS:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        operation = schema.get("paths", {}).get(GATEWAY_PATH, {}).get("post")
        if isinstance(operation, dict):
            components = schema.setdefault("components", {}).setdefault("schemas", {})
            variants = []
            for model in (RateLimitCheckRequest, SecurityLogRequest, ValidateInputRequest):
                model_schema = model.model_json_schema(
                    by_alias=True, ref_template="#/components/schemas/{model}"
                )
                # Nested enums (Severity) become shared components
                components.update(model_schema.pop("$defs", {}))
                components[model.__name__] = model_schema
                variants.append({"$ref": f"#/components/schemas/{model.__name__}"})
            operation.setdefault(
                "requestBody",
                {
                    "required": True,
                    "content": {"application/json": {"schema": {"oneOf": variants}}},
                },
            )

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
