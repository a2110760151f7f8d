"""Shared request dependencies for the Web API."""

from fastapi import Header, HTTPException, Request, status

from tilawa.config.app_config import AppConfig, verify_passphrase
from tilawa.core.store import RecitationStore

PASSPHRASE_HEADER = "X-Management-Passphrase"


def get_store(request: Request) -> RecitationStore:
    """Store attached to the application at startup."""
    return request.app.state.store


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def require_passphrase(
    request: Request,
    x_management_passphrase: str | None = Header(default=None),
) -> None:
    """Reject management requests without the shared passphrase."""
    if not verify_passphrase(x_management_passphrase, get_config(request)):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing or invalid {PASSPHRASE_HEADER} header",
        )
