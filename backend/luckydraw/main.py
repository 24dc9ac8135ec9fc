# luckydraw/main.py
import logging
import secrets
from functools import lru_cache
from pathlib import Path
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse

from .config import (
    ADMIN_DECK_LIMIT,
    ADMIN_LOGIN_LIMIT,
    DEPOSIT_LIMIT,
    DRAW_LIMIT,
    Settings,
    draw_lock_secret,
    get_admin_password,
    get_settings,
)
from .deck_service import (
    DeckValidationError,
    validate_deck_payload,
    validate_deposit_payload,
    validate_login_payload,
)
from .rate_limit import RateLimiter
from .repository import DeckStore
from .security import get_client_ip, is_same_origin
from .tokens import ADMIN_SESSION, DRAW_LOCK, TokenSigner

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="Lucky Draw")


@lru_cache
def _store_for(path: Path) -> DeckStore:
    return DeckStore(path)


def get_deck_store(settings: Settings = Depends(get_settings)) -> DeckStore:
    # one store (and one write queue) per deck file for the process lifetime
    return _store_for(settings.deck_path)


@lru_cache
def get_rate_limiter() -> RateLimiter:
    return RateLimiter()


# --- helpers ---


def _require_same_origin(request: Request) -> None:
    if not is_same_origin(request):
        logger.warning(f"Rejected cross-origin request to {request.url.path}")
        raise HTTPException(status_code=403, detail="Invalid request origin")


def _enforce_rate_limit(
    limiter: RateLimiter, key: str, rule: tuple[int, int], message: str
) -> None:
    limit, window_ms = rule
    result = limiter.check(key, limit, window_ms)
    if not result.allowed:
        raise HTTPException(
            status_code=429,
            detail=message,
            headers={"Retry-After": str(result.retry_after_seconds)},
        )


def _require_admin_password(settings: Settings) -> str:
    password = get_admin_password(settings)
    if not password:
        raise HTTPException(status_code=412, detail="ADMIN_PASSWORD is not set up")
    return password


def _require_admin_session(request: Request, admin_password: str) -> None:
    session = request.cookies.get(ADMIN_SESSION.cookie_name)
    if not ADMIN_SESSION.verify(session, admin_password):
        raise HTTPException(status_code=401, detail="Admin login required")


async def _read_json(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Request body is not valid JSON")


def _set_token_cookie(
    response: Response, signer: TokenSigner, value: str, settings: Settings
) -> None:
    response.set_cookie(
        key=signer.cookie_name,
        value=value,
        max_age=signer.max_age_seconds,
        path="/",
        httponly=True,
        samesite="strict",
        secure=settings.production,
    )


# --- public ---


@app.get("/api/config")
async def get_config(response: Response, store: DeckStore = Depends(get_deck_store)):
    config = await store.public_config()
    response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate"
    return config


@app.post("/api/draw")
async def post_draw(
    request: Request,
    store: DeckStore = Depends(get_deck_store),
    limiter: RateLimiter = Depends(get_rate_limiter),
    settings: Settings = Depends(get_settings),
):
    _require_same_origin(request)
    _enforce_rate_limit(
        limiter,
        f"draw:{get_client_ip(request)}",
        DRAW_LIMIT,
        "Too many draws, please try again later",
    )

    # "continue" skips the lock check and does not renew the lock
    try:
        body = await request.json()
        continue_mode = isinstance(body, dict) and body.get("continue") is True
    except ValueError:
        # empty or non-JSON body
        continue_mode = False

    secret = draw_lock_secret(settings)
    if not continue_mode:
        lock = request.cookies.get(DRAW_LOCK.cookie_name)
        if DRAW_LOCK.verify(lock, secret):
            raise HTTPException(
                status_code=429, detail="You already drew within the last 24 hours"
            )

    result = await store.draw()
    if result.exhausted:
        return JSONResponse(
            {
                "exhausted": True,
                "remainingTotal": 0,
                "detail": "The deck is empty, come back later",
            },
            status_code=409,
        )

    response = JSONResponse(
        {"ok": True, "amount": result.amount, "remainingTotal": result.remaining_total}
    )
    if not continue_mode:
        _set_token_cookie(response, DRAW_LOCK, DRAW_LOCK.issue(secret), settings)
    return response


@app.post("/api/deposit")
async def post_deposit(
    request: Request,
    store: DeckStore = Depends(get_deck_store),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    _require_same_origin(request)
    _enforce_rate_limit(
        limiter,
        f"deposit:{get_client_ip(request)}",
        DEPOSIT_LIMIT,
        "Too many deposits, please try again later",
    )

    payload = await _read_json(request)
    is_valid, msg, deposit = validate_deposit_payload(payload)
    if not is_valid:
        raise HTTPException(status_code=400, detail=msg)

    try:
        updated = await store.add_inventory(deposit.amount, deposit.quantity)
    except DeckValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception:
        logger.exception("deposit failed")
        raise HTTPException(status_code=500, detail="Could not update the deck right now")

    return {
        "ok": True,
        "added": {"amount": deposit.amount, "quantity": deposit.quantity},
        "remainingTotal": updated.remaining_total,
        "deck": [item.to_public() for item in updated.deck],
    }


# --- admin ---


@app.get("/api/admin/status")
async def get_admin_status(
    request: Request,
    store: DeckStore = Depends(get_deck_store),
    settings: Settings = Depends(get_settings),
):
    admin_password = get_admin_password(settings)
    if not admin_password:
        return {"requiresSetup": True, "authenticated": False}

    session = request.cookies.get(ADMIN_SESSION.cookie_name)
    if not ADMIN_SESSION.verify(session, admin_password):
        return {"requiresSetup": False, "authenticated": False}

    state = await store.get_state()
    return {
        "requiresSetup": False,
        "authenticated": True,
        "deck": state.to_dict()["deck"],
        "remainingTotal": state.remaining_total,
    }


@app.post("/api/admin/login")
async def post_admin_login(
    request: Request,
    limiter: RateLimiter = Depends(get_rate_limiter),
    settings: Settings = Depends(get_settings),
):
    _require_same_origin(request)
    _enforce_rate_limit(
        limiter,
        f"admin-login:{get_client_ip(request)}",
        ADMIN_LOGIN_LIMIT,
        "Too many login attempts, please wait",
    )
    admin_password = _require_admin_password(settings)

    payload = await _read_json(request)
    is_valid, _, login = validate_login_payload(payload)
    if not is_valid:
        raise HTTPException(status_code=400, detail="Invalid password format")
    if not secrets.compare_digest(login.password.encode(), admin_password.encode()):
        logger.warning(f"Failed admin login from {get_client_ip(request)}")
        raise HTTPException(status_code=401, detail="Wrong password")

    logger.info("Admin logged in")
    response = JSONResponse({"ok": True})
    _set_token_cookie(response, ADMIN_SESSION, ADMIN_SESSION.issue(admin_password), settings)
    return response


@app.post("/api/admin/logout")
async def post_admin_logout(request: Request):
    _require_same_origin(request)
    response = JSONResponse({"ok": True})
    response.delete_cookie(ADMIN_SESSION.cookie_name, path="/")
    return response


@app.get("/api/admin/deck")
async def get_admin_deck(
    request: Request,
    store: DeckStore = Depends(get_deck_store),
    settings: Settings = Depends(get_settings),
):
    admin_password = _require_admin_password(settings)
    _require_admin_session(request, admin_password)

    state = await store.get_state()
    return {"deck": state.to_dict()["deck"], "remainingTotal": state.remaining_total}


@app.post("/api/admin/deck")
async def post_admin_deck(
    request: Request,
    store: DeckStore = Depends(get_deck_store),
    limiter: RateLimiter = Depends(get_rate_limiter),
    settings: Settings = Depends(get_settings),
):
    _require_same_origin(request)
    admin_password = _require_admin_password(settings)
    _require_admin_session(request, admin_password)
    _enforce_rate_limit(
        limiter,
        f"admin-deck:{get_client_ip(request)}",
        ADMIN_DECK_LIMIT,
        "Saving too fast, please try again later",
    )

    payload = await _read_json(request)
    is_valid, msg, state = validate_deck_payload(payload)
    if not is_valid:
        raise HTTPException(status_code=400, detail=msg)

    try:
        saved = await store.save_state(state)
    except DeckValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "ok": True,
        "deck": saved.to_dict()["deck"],
        "remainingTotal": saved.remaining_total,
    }
