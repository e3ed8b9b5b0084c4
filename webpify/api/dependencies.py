"""Shared API dependencies."""

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import APIKeyHeader

from webpify.core.config import Settings, get_settings
from webpify.services.container import Components, get_components

api_token_header = APIKeyHeader(name=get_settings().auth_token_header, auto_error=False)


def verify_api_key(
    token: str | None = Security(api_token_header),
    settings: Settings = Depends(get_settings),
) -> str:
    """Validate static API token if configured."""

    expected = settings.api_token
    if not expected:
        return ""

    if token in {expected, f"Bearer {expected}"}:
        return token or ""

    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API token")


def get_auth_dependency(token: str = Depends(verify_api_key)) -> str:
    """Expose dependency alias for routers."""

    return token


def get_conversion_components() -> Components:
    """Component graph used by the conversion routes; overridden in tests."""

    return get_components()
