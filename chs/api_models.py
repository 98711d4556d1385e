from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator


class Service(BaseModel):
    subdomain: str = Field(..., description="Routing name, unique across all hosts")
    port: int = Field(..., ge=1, le=65535, description="Port the service is reachable on at host_ip")


class ServicesRequest(BaseModel):
    host_ip: str = Field(..., description="Address the gateway should proxy to")
    services: list[Service]

    @field_validator("host_ip")
    @classmethod
    def _no_path_separators(cls, v: str) -> str:
        # host_ip becomes part of a handler file name.
        if "/" in v or "\\" in v:
            raise ValueError("host_ip must not contain path separators")
        return v


class ServiceOut(BaseModel):
    subdomain: str
    host_ip: str
    port: int
    created_at: str
    updated_at: str


class MessageResponse(BaseModel):
    message: str


class BodyValidationError(ValueError):
    """A POST /services body was rejected; ``str(exc)`` is the client-facing message."""


def parse_services_request(body: Any) -> ServicesRequest:
    """Validate a decoded JSON body and return it as a ServicesRequest.

    Checks run in a fixed order and the first failure wins. Presence is
    checked before types.
    """
    if not body:
        raise BodyValidationError("Request body required")

    if not isinstance(body, dict) or "host_ip" not in body:
        raise BodyValidationError("host_ip required")

    services = body.get("services")
    if not isinstance(services, list):
        raise BodyValidationError("Services required and must be an array")

    for item in services:
        if not isinstance(item, dict):
            raise BodyValidationError("Services must be an array of objects")
        if "subdomain" not in item:
            raise BodyValidationError("Each service must contain a subdomain")
        if "port" not in item:
            raise BodyValidationError("Each service must contain a port")

    try:
        return ServicesRequest.model_validate(body)
    except ValidationError as e:
        err = e.errors()[0]
        path = ".".join(str(p) for p in err["loc"])
        raise BodyValidationError(f"Invalid value for {path}: {err['msg']}") from e
