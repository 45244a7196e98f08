# Kiosk session routes: request, poll, mobile confirmation, QR rendering
# and ending a session.

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from trash2cash.container import StationContainer
from trash2cash.core.errors import AlreadyResolved, Expired, InvalidInput
from trash2cash.core.security import create_access_token
from trash2cash.routes.schemas import (
    ConnectSessionReq,
    RequestSessionReq,
    SessionTokenReq,
    get_container,
    ok,
)
from trash2cash.services.sessions import SessionStatus

router = APIRouter(prefix="/api", tags=["sessions"])


def _iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


@router.post("/request-session")
def request_session(req: RequestSessionReq, request: Request, c: StationContainer = Depends(get_container)):
    # Kiosk asks for a fresh token to show as a QR code; the burst limit
    # follows the caller's address, not the kiosk id it claims
    client_host = request.client.host if request.client else None
    s = c.sessions.request_session(req.kiosk_id, client_key=client_host)
    return ok("Session created", {
        "sessionToken": s.token,
        "qrCode": s.qr_payload,
        "expiresAt": _iso(s.expires_at),
        "status": s.status.value,
        "pollIntervalMs": c.settings.POLL_INTERVAL_MS,
    })


@router.post("/check-session")
def check_session(req: SessionTokenReq, c: StationContainer = Depends(get_container)):
    # Kiosk polls until a user connects or the token expires
    status, user = c.sessions.check_status(req.session_token)
    data = {"status": status.value}
    if user is None:
        message = "Session expired" if status == SessionStatus.EXPIRED else "Waiting for user"
        return ok(message, data)

    user_id = user["userId"]
    data.update(user)
    data["authToken"] = create_access_token(user_id)
    data["balance"] = c.ledger.balance_of(user_id) if c.ledger.has_account(user_id) else 0.0
    return ok("User connected", data)


@router.post("/connect-session")
def connect_session(req: ConnectSessionReq, c: StationContainer = Depends(get_container)):
    # Mobile app confirms the scanned QR code for the signed-in user
    if req.session_token:
        token = req.session_token
    elif req.qr_payload:
        token = c.qr_service.token_from_payload(req.qr_payload)
    else:
        raise InvalidInput("sessionToken or qrPayload is required")

    # The account is rolled back if the session cannot be resolved
    with c.db.transaction():
        c.ledger.open_account(req.user_id)
        status = c.sessions.resolve_session(token, req.user_id, activate=req.activate)
    return ok("Connected to station", {"status": status.value, "userId": req.user_id})


@router.post("/end-session")
def end_session(req: SessionTokenReq, c: StationContainer = Depends(get_container)):
    c.sessions.end_session(req.session_token)
    return ok("Session ended successfully")


@router.get("/sessions/{token}/qr")
def session_qr(token: str, c: StationContainer = Depends(get_container)):
    s = c.sessions.get_session(token)
    if s.status == SessionStatus.EXPIRED:
        raise Expired("Session expired")
    if s.status != SessionStatus.PENDING:
        raise AlreadyResolved("Session already connected")
    png = c.qr_service.create_qr_image(s.qr_payload)
    return Response(content=png, media_type="image/png")
