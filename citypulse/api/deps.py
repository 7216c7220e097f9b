from __future__ import annotations

import uuid
from typing import Optional

from fastapi import Depends, HTTPException, Request, Response, status

from citypulse.services.container import Services
from citypulse.services.sessions import ClientSession


def get_services(request: Request) -> Services:
    return request.app.state.services


async def get_existing_session(
    request: Request,
    services: Services = Depends(get_services),
) -> Optional[ClientSession]:
    session = await services.registry.get(request.cookies.get(services.settings.session_cookie))
    if session is not None:
        # accounts can be disabled or removed between requests
        await session.auth.refresh()
    return session


async def get_session(
    request: Request,
    response: Response,
    existing: Optional[ClientSession] = Depends(get_existing_session),
    services: Services = Depends(get_services),
) -> ClientSession:
    if existing is not None:
        return existing

    client_ip = request.client.host if request.client else None
    session = await services.registry.create(uuid.uuid4().hex, client_ip)
    response.set_cookie(services.settings.session_cookie, session.id, httponly=True, samesite="lax")
    return session


def require_official(session: Optional[ClientSession] = Depends(get_existing_session)) -> ClientSession:
    # no session is opened here: the 403 would drop its cookie
    if session is None or not session.gate.is_privileged:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Please log in to access the officials dashboard",
        )
    return session
