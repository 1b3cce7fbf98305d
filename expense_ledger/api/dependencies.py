"""
Request dependencies: component lookup, correlation ids and the
authentication gate.
"""

from typing import Optional
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from expense_ledger.audit import create_correlation_id
from expense_ledger.orchestrator import AppComponents


bearer_scheme = HTTPBearer(auto_error=False)


def get_components(request: Request) -> AppComponents:
    return request.app.state.components


def get_correlation_id(request: Request) -> UUID:
    correlation_id = getattr(request.state, "correlation_id", None)
    if correlation_id is None:
        correlation_id = create_correlation_id()
        request.state.correlation_id = correlation_id
    return correlation_id


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    components: AppComponents = Depends(get_components),
) -> str:
    """
    Authentication gate for protected routes.

    Runs before the handler; a missing, tampered or expired token raises
    UnauthorizedError and the handler never executes.
    """
    token = credentials.credentials if credentials else None
    return components.tokens.verify(token)
