"""Input validators for project details and configuration.

Each validator is a pure function returning a list of structured errors
(``{"field": ..., "message": ...}``); an empty list means the input is valid.
Callers run every validator before touching the database.
"""
import re
from typing import Any, Dict, List

from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from authwave.schemas.project import (
    EmailTemplate,
    EmailTemplateName,
    LoginMethod,
    LoginMethodsConfig,
    SecurityConfig,
)

_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9 _.\-]*$")
PROJECT_NAME_MAX_LENGTH = 50
APP_NAME_MAX_LENGTH = 100

CONFIG_SECTIONS = ("login_methods", "security", "email_templates")

_email_adapter = TypeAdapter(EmailStr)


def _pydantic_errors(field: str, exc: PydanticValidationError) -> List[Dict[str, Any]]:
    errors = []
    for err in exc.errors():
        location = ".".join(str(part) for part in (field, *err["loc"]) if part != "")
        errors.append({"field": location, "message": err["msg"]})
    return errors


def _validate_name(field: str, value: Any, max_length: int) -> List[Dict[str, Any]]:
    if not isinstance(value, str) or not value.strip():
        return [{"field": field, "message": "must be a non-empty string"}]
    value = value.strip()
    if len(value) > max_length:
        return [{"field": field, "message": f"must be at most {max_length} characters"}]
    if not _NAME_PATTERN.match(value):
        return [{
            "field": field,
            "message": "must start with a letter or digit and contain only letters, digits, spaces, '_', '-' or '.'",
        }]
    return []


def validate_project_name(value: Any) -> List[Dict[str, Any]]:
    return _validate_name("name", value, PROJECT_NAME_MAX_LENGTH)


def validate_app_name(value: Any) -> List[Dict[str, Any]]:
    return _validate_name("app_name", value, APP_NAME_MAX_LENGTH)


def validate_email(value: Any, field: str = "email") -> List[Dict[str, Any]]:
    if not isinstance(value, str) or not value.strip():
        return [{"field": field, "message": "must be a non-empty string"}]
    try:
        _email_adapter.validate_python(value.strip())
    except PydanticValidationError:
        return [{"field": field, "message": "must be a valid email address"}]
    return []


def validate_login_methods(value: Any) -> List[Dict[str, Any]]:
    """Login methods: a mapping of known method names to booleans"""
    if not isinstance(value, dict) or not value:
        return [{"field": "login_methods", "message": "must be a non-empty object"}]
    known = {method.value for method in LoginMethod}
    errors = [
        {"field": f"login_methods.{key}", "message": "unknown login method"}
        for key in value
        if key not in known
    ]
    if errors:
        return errors
    try:
        LoginMethodsConfig.model_validate(value)
    except PydanticValidationError as exc:
        return _pydantic_errors("login_methods", exc)
    return []


def validate_security(value: Any) -> List[Dict[str, Any]]:
    """Security limits: both caps present and positive integers"""
    if not isinstance(value, dict) or not value:
        return [{"field": "security", "message": "must be a non-empty object"}]
    try:
        SecurityConfig.model_validate(value)
    except PydanticValidationError as exc:
        return _pydantic_errors("security", exc)
    return []


def validate_email_templates(value: Any) -> List[Dict[str, Any]]:
    """Email templates: known template names mapped to ``{subject, body}`` overrides"""
    if not isinstance(value, dict) or not value:
        return [{"field": "email_templates", "message": "must be a non-empty object"}]
    known = {name.value for name in EmailTemplateName}
    errors: List[Dict[str, Any]] = []
    for key, template in value.items():
        if key not in known:
            errors.append({"field": f"email_templates.{key}", "message": "unknown email template"})
            continue
        try:
            EmailTemplate.model_validate(template)
        except PydanticValidationError as exc:
            errors.extend(_pydantic_errors(f"email_templates.{key}", exc))
    return errors


_SECTION_VALIDATORS = {
    "login_methods": validate_login_methods,
    "security": validate_security,
    "email_templates": validate_email_templates,
}


def validate_config_section(section: str, value: Any) -> List[Dict[str, Any]]:
    validator = _SECTION_VALIDATORS.get(section)
    if validator is None:
        return [{"field": "section", "message": f"unknown config section '{section}'"}]
    return validator(value)


def validate_project_config(config: Any) -> List[Dict[str, Any]]:
    """Validate a full config object; sections left out (or null) are allowed"""
    if config is None:
        return []
    if not isinstance(config, dict):
        return [{"field": "config", "message": "must be an object"}]
    errors: List[Dict[str, Any]] = [
        {"field": f"config.{key}", "message": "unknown config section"}
        for key in config
        if key not in CONFIG_SECTIONS
    ]
    for section in CONFIG_SECTIONS:
        value = config.get(section)
        if value is None or (section == "email_templates" and value == {}):
            continue
        errors.extend(validate_config_section(section, value))
    return errors


def validate_project_details(name: Any, app_name: Any, app_email: Any) -> List[Dict[str, Any]]:
    return (
        validate_project_name(name)
        + validate_app_name(app_name)
        + validate_email(app_email, field="app_email")
    )
