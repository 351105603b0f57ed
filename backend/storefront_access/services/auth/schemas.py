"""Marshmallow schemas validating authentication input."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from marshmallow import EXCLUDE, Schema, ValidationError, fields, post_load, pre_load, validate

from storefront_access.models.role import Role
from storefront_access.services._shared.errors import BadRequestError
from storefront_access.services.auth.dto import LoginIn, RegisterIn

MIN_PASSWORD_LENGTH = 10


class RegisterSchema(Schema):
    """Registration payload."""

    class Meta:
        unknown = EXCLUDE

    name = fields.String(required=True, validate=validate.Length(min=1, max=120))
    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=validate.Length(min=MIN_PASSWORD_LENGTH, max=256))
    role = fields.Enum(Role, by_value=True, load_default=None, allow_none=True)

    @pre_load
    def strip_text(self, data: Any, **_: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        cleaned = dict(data)
        for key in ("name", "email"):
            if isinstance(cleaned.get(key), str):
                cleaned[key] = cleaned[key].strip()
        return cleaned

    @post_load
    def make_dto(self, data: dict[str, Any], **_: Any) -> RegisterIn:
        return RegisterIn(
            name=data["name"],
            email=data["email"].lower(),
            password=data["password"],
            role=data.get("role"),
        )


class LoginSchema(Schema):
    """Login payload. Only presence is checked; credentials decide the rest."""

    class Meta:
        unknown = EXCLUDE

    email = fields.String(required=True, validate=validate.Length(min=1, max=254))
    password = fields.String(required=True, validate=validate.Length(min=1, max=256))

    @post_load
    def make_dto(self, data: dict[str, Any], **_: Any) -> LoginIn:
        return LoginIn(email=data["email"], password=data["password"])


def _load(schema: Schema, payload: Mapping[str, Any], message: str) -> Any:
    try:
        return schema.load(dict(payload))
    except ValidationError as exc:
        raise BadRequestError(message, errors=exc.normalized_messages()) from exc


def parse_register(payload: Mapping[str, Any]) -> RegisterIn:
    """:raises BadRequestError: With per-field messages."""
    return _load(RegisterSchema(), payload, "Invalid registration payload")


def parse_login(payload: Mapping[str, Any]) -> LoginIn:
    return _load(LoginSchema(), payload, "Invalid login payload")


def validate_register(dto: RegisterIn) -> RegisterIn:
    """Re-validate an already-built DTO and return its normalized copy."""
    payload = {
        "name": dto.name,
        "email": dto.email,
        "password": dto.password,
        "role": dto.role.value if isinstance(dto.role, Role) else dto.role,
    }
    return parse_register(payload)
