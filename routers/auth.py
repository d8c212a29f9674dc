from fastapi import APIRouter, Depends, HTTPException, Request

from backend import RedisBackend
from dependencies import get_backend
from logging_config import get_logger
from schemas.users import AdminInfo, AdminLoginRequest, AdminLoginResponse
from security import create_access_token, verify_password

logger = get_logger(__name__)

auth_router = APIRouter(prefix="/auth", tags=["auth"])


@auth_router.post("/admin-login", response_model=AdminLoginResponse)
async def admin_login(login: AdminLoginRequest, request: Request, backend: RedisBackend = Depends(get_backend)):
    # Body: { "email": "...", "password": "..." }
    # Response 200: { "token": "<jwt, 2h>", "admin": { "id", "name", "email" } }
    client_host = request.client.host if request.client else "unknown"
    logger.info(f"Admin login attempt for {login.email} from {client_host}")

    try:
        user = backend.get_user_by_email(login.email)
    except Exception as e:
        logger.error(f"Admin login error for {login.email}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Server error")

    if not user:
        logger.warning(f"Admin login failed: {login.email} not found")
        raise HTTPException(status_code=400, detail="User not found")

    if user.get("role") != "admin":
        logger.warning(f"Admin login failed: {login.email} is not an admin")
        raise HTTPException(status_code=403, detail="Not an admin")

    if not verify_password(login.password, user.get("password_hash")):
        logger.warning(f"Admin login failed: invalid credentials for {login.email} from {client_host}")
        raise HTTPException(status_code=400, detail="Invalid credentials")

    token = create_access_token({"id": user["id"], "role": user["role"]})
    logger.info(f"Admin {login.email} logged in")

    return AdminLoginResponse(
        token=token,
        admin=AdminInfo(id=user["id"], name=user.get("name"), email=user["email"]),
    )
