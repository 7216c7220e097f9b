from fastapi import APIRouter, Depends

from citypulse.api.deps import get_services, get_session
from citypulse.mapper.state_mapper import to_gate_out
from citypulse.schemas.auth import GateOut, SignInRequest, SignUpRequest, TabRequest, ViewRequest
from citypulse.services.container import Services
from citypulse.services.sessions import ClientSession

router = APIRouter(tags=["Auth"])


@router.get("/auth/state", response_model=GateOut)
async def auth_state(session: ClientSession = Depends(get_session)):
    return to_gate_out(session.gate)


@router.post("/auth/modal", response_model=GateOut)
async def open_auth_modal(session: ClientSession = Depends(get_session)):
    session.gate.open_auth()
    return to_gate_out(session.gate)


@router.delete("/auth/modal", response_model=GateOut)
async def close_auth_modal(session: ClientSession = Depends(get_session)):
    session.gate.close_auth()
    return to_gate_out(session.gate)


@router.put("/auth/tab", response_model=GateOut)
async def select_auth_tab(body: TabRequest, session: ClientSession = Depends(get_session)):
    session.gate.select_tab(body.tab)
    return to_gate_out(session.gate)


# =========================
# Sign in (officials only)
# =========================
@router.post("/auth/sign-in", response_model=GateOut)
async def sign_in(
    body: SignInRequest,
    session: ClientSession = Depends(get_session),
    services: Services = Depends(get_services),
):
    gate = session.gate
    ok = await gate.sign_in(body.email, body.password)

    await services.audit.record(
        "user.sign_in" if ok else "user.sign_in_failed",
        body.email,
        {"type": "user", "id": gate.identity.uid if ok else None},
        f"User logged in ({body.email})" if ok else f"Login rejected ({body.email})",
        reason=gate.login_error.kind.value if gate.login_error else None,
    )
    return to_gate_out(gate)


# =========================
# Sign up
# =========================
@router.post("/auth/sign-up", response_model=GateOut)
async def sign_up(
    body: SignUpRequest,
    session: ClientSession = Depends(get_session),
    services: Services = Depends(get_services),
):
    gate = session.gate
    ok = await gate.sign_up(body.email, body.password, body.confirm_password)
    if ok:
        await services.audit.record(
            "user.sign_up",
            body.email,
            {"type": "user", "email": body.email},
            f"New user registered ({body.email})",
        )
    return to_gate_out(gate)


@router.post("/auth/sign-out", response_model=GateOut)
async def sign_out(
    session: ClientSession = Depends(get_session),
    services: Services = Depends(get_services),
):
    gate = session.gate
    email = gate.identity.email if gate.identity else None
    await gate.sign_out()
    if email:
        await services.audit.record(
            "user.sign_out", email, {"type": "user"}, f"User logged out ({email})"
        )
    return to_gate_out(gate)


@router.put("/view", response_model=GateOut)
async def select_view(body: ViewRequest, session: ClientSession = Depends(get_session)):
    session.gate.show(body.view)
    return to_gate_out(session.gate)
