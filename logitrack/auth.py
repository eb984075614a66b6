"""
Account registration, login and role checks for LogiTrack.

Flow:
  1. POST /api/auth/register  -> account created with role "User"
     (plus "Manager"/"Admin" for emails listed in config)
  2. POST /api/auth/login     -> signed bearer token
  3. Inventory/order routes require the "Manager" role, cache and profiler
     administration requires "Admin"

Both auth endpoints sit behind the fixed-window rate limiter.
"""

import base64
import hashlib
import hmac
import json
import re
import time
from typing import Callable, Optional

import bcrypt
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from logitrack import audit, config
from logitrack.api.deps import get_db
from logitrack.api.schemas import LoginRequest, RegisterRequest, TokenResponse
from logitrack.database import create_user, get_user_by_email, touch_last_login

router = APIRouter(prefix="/api/auth", tags=["auth"])

ROLE_USER = "User"
ROLE_MANAGER = "Manager"
ROLE_ADMIN = "Admin"

MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 128
_BCRYPT_MAX_BYTES = 72
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------

def _password_bytes(password: str) -> bytes:
    # bcrypt only reads the first 72 bytes and newer releases reject longer input.
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """Hash and salt a password with bcrypt."""
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, stored: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(password), stored.encode("utf-8"))
    except ValueError:
        return False


# ---------------------------------------------------------------------------
# HMAC-signed bearer tokens (no external JWT dependency)
# ---------------------------------------------------------------------------

def _sign(payload_bytes: bytes) -> str:
    return hmac.new(config.AUTH_SECRET.encode(), payload_bytes, hashlib.sha256).hexdigest()


def create_token(user_id: str, email: str, roles: list) -> str:
    payload = {
        "sub": user_id,
        "email": email,
        "roles": list(roles),
        "exp": int(time.time()) + config.AUTH_TOKEN_TTL_SECONDS,
    }
    payload_b64 = base64.urlsafe_b64encode(json.dumps(payload).encode()).decode()
    return f"{payload_b64}.{_sign(payload_b64.encode())}"


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify a signed token; None when invalid or expired."""
    parts = token.split(".", 1)
    if len(parts) != 2:
        return None
    payload_b64, sig = parts
    if not hmac.compare_digest(sig, _sign(payload_b64.encode())):
        return None
    try:
        payload = json.loads(base64.urlsafe_b64decode(payload_b64))
    except (ValueError, TypeError):
        return None
    if payload.get("exp", 0) < time.time():
        return None
    return payload


def get_current_user(request: Request) -> Optional[dict]:
    auth_header = request.headers.get("authorization", "")
    if auth_header.startswith("Bearer "):
        return decode_token(auth_header[7:])
    return None


def require_roles(*roles: str) -> Callable[[Request], dict]:
    """Dependency factory: the caller must hold at least one of ``roles``."""

    def _dependency(request: Request) -> dict:
        if config.AUTH_DISABLED:
            return {"sub": "anonymous", "email": None, "roles": list(roles)}
        user = get_current_user(request)
        if user is None:
            raise HTTPException(status_code=401, detail="Not authenticated.")
        if not set(user.get("roles", [])) & set(roles):
            raise HTTPException(status_code=403, detail="Insufficient role.")
        return user

    return _dependency


def roles_for_email(email: str) -> list:
    roles = [ROLE_USER]
    lowered = email.lower()
    if lowered in config.MANAGER_EMAILS or lowered in config.ADMIN_EMAILS:
        roles.append(ROLE_MANAGER)
    if lowered in config.ADMIN_EMAILS:
        roles.append(ROLE_ADMIN)
    return roles


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@router.post("/register")
def register(req: RegisterRequest, db: Session = Depends(get_db)):
    email = req.email.strip()
    if not email or not req.password:
        audit.log_failed_registration(email, "missing fields")
        raise HTTPException(status_code=400, detail="Email and password are required.")
    if not _EMAIL_RE.match(email):
        audit.log_failed_registration(email, "invalid email")
        raise HTTPException(status_code=400, detail="Invalid email format.")
    if len(req.password) > MAX_PASSWORD_LENGTH:
        audit.log_failed_registration(email, "password too long")
        raise HTTPException(status_code=400, detail="Password exceeds maximum length.")
    if len(req.password) < MIN_PASSWORD_LENGTH:
        audit.log_failed_registration(email, "weak password")
        raise HTTPException(
            status_code=400,
            detail="Registration failed. Please ensure your password meets complexity requirements.",
        )

    if get_user_by_email(db, email) is not None:
        # Same message as a policy failure so accounts can't be enumerated.
        audit.log_failed_registration(email, "duplicate email")
        raise HTTPException(
            status_code=400,
            detail="Registration failed. Please ensure your password meets complexity requirements.",
        )
    try:
        user = create_user(db, email, hash_password(req.password), roles_for_email(email))
    except IntegrityError:
        db.rollback()
        audit.log_failed_registration(email, "duplicate email")
        raise HTTPException(
            status_code=400,
            detail="Registration failed. Please ensure your password meets complexity requirements.",
        )

    audit.log_registration(user.id, email)
    return {"message": "Registration successful.", "user_id": user.id}


@router.post("/login", response_model=TokenResponse)
def login(req: LoginRequest, db: Session = Depends(get_db)):
    email = req.email.strip()
    if not email or not req.password:
        audit.log_failed_login(email, "missing fields")
        raise HTTPException(status_code=401, detail="Invalid credentials.")

    user = get_user_by_email(db, email)
    if user is None:
        audit.log_failed_login(email, "unknown user")
        raise HTTPException(status_code=401, detail="Invalid credentials.")
    if not verify_password(req.password, user.password_hash):
        audit.log_failed_login(email, "bad password")
        raise HTTPException(status_code=401, detail="Invalid credentials.")

    touch_last_login(db, user)
    audit.log_login(user.id, user.email)
    return TokenResponse(token=create_token(user.id, user.email, user.role_list))


@router.get("/me")
def me(request: Request):
    user = get_current_user(request)
    if not user:
        raise HTTPException(status_code=401, detail="Not authenticated.")
    return {"id": user["sub"], "email": user.get("email"), "roles": user.get("roles", [])}
