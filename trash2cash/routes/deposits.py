# Deposit routes: sensor readings, submissions and the user's history.

from fastapi import APIRouter, Depends, Header

from trash2cash.container import StationContainer
from trash2cash.core.security import bearer_subject
from trash2cash.routes.schemas import DepositReq, SessionTokenReq, get_container, ok

router = APIRouter(prefix="/api", tags=["deposits"])


@router.post("/sensor-reading")
def sensor_reading(req: SessionTokenReq, c: StationContainer = Depends(get_container)):
    c.sessions.require_bound_user(req.session_token)
    reading = c.sensor.read()
    if not reading.detected:
        return ok("No item detected", {"status": reading.status})

    quote = c.calculator.quote(reading.material, reading.weight)
    return ok("Sensor reading complete", {
        "material": quote.material,
        "weight": quote.weight,
        "rate": quote.rate,
        "reward": quote.reward,
        "status": reading.status,
    })


@router.post("/deposit")
def deposit(req: DepositReq, c: StationContainer = Depends(get_container)):
    # Reward is always recomputed server-side from material and weight
    user_id = c.sessions.require_bound_user(req.session_token)
    submission = c.pipeline.accept_reading(user_id, req.material, req.weight)
    return ok("Deposit recorded", {
        "submission": submission.to_dict(),
        "balance": c.ledger.balance_of(user_id),
    })


@router.get("/transactions")
def transactions(authorization: str | None = Header(default=None), c: StationContainer = Depends(get_container)):
    user_id = bearer_subject(authorization)
    history = c.pipeline.list_submissions(user_id)
    return ok("Submission history", [s.to_dict() for s in history])


@router.get("/user/profile")
def profile(authorization: str | None = Header(default=None), c: StationContainer = Depends(get_container)):
    user_id = bearer_subject(authorization)
    return ok("Profile", {"userId": user_id, "balance": c.ledger.balance_of(user_id)})
