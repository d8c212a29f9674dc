from fastapi import APIRouter, Depends, HTTPException, Request

from backend import RedisBackend, UserExistsError
from dependencies import get_backend, get_mailer, require_admin
from logging_config import get_logger
from mailer import EmailJSMailer
from schemas.users import CreateUserRequest, CreateUserResponse, MessageResponse, UpdateUserRequest, UserOut
from security import generate_password, hash_password

logger = get_logger(__name__)

admin_router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@admin_router.post("/create-user", response_model=CreateUserResponse)
async def create_user(
    body: CreateUserRequest,
    request: Request,
    backend: RedisBackend = Depends(get_backend),
    mailer: EmailJSMailer = Depends(get_mailer),
):
    # Body: { "name": "...", "email": "..." }
    # - A random password is generated, stored hashed and emailed to the user.
    # Response 200: { "msg", "name", "email", "password" }
    if not body.name or not body.email:
        raise HTTPException(status_code=400, detail="Missing fields")

    logger.info(f"Create user request for {body.email} from {request.client.host if request.client else 'unknown'}")
    password = generate_password()

    try:
        backend.create_user(body.name, body.email, hash_password(password), role="member")
    except UserExistsError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Create user error for {body.email}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Server error")

    # The account exists either way; a failed email is only logged
    await mailer.send_credentials(body.name, body.email, password)

    return CreateUserResponse(msg="User created successfully", name=body.name, email=body.email, password=password)


@admin_router.get("/users", response_model=list[UserOut])
async def list_users(backend: RedisBackend = Depends(get_backend)):
    try:
        users = backend.list_users()
    except Exception as e:
        logger.error(f"Get users error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Server error")
    logger.info(f"Listed {len(users)} users")
    return users


@admin_router.put("/users/{user_id}", response_model=MessageResponse)
async def update_user(user_id: str, body: UpdateUserRequest, backend: RedisBackend = Depends(get_backend)):
    if not body.name or not body.email:
        raise HTTPException(status_code=400, detail="Missing fields")

    try:
        updated = backend.update_user(user_id, {"name": body.name, "email": body.email})
    except UserExistsError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Update user error for {user_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Server error")

    if updated is None:
        logger.warning(f"Update user failed: user {user_id} not found")
        raise HTTPException(status_code=404, detail="User not found")
    return MessageResponse(msg="User updated")


@admin_router.delete("/users/{user_id}", response_model=MessageResponse)
async def delete_user(user_id: str, backend: RedisBackend = Depends(get_backend)):
    try:
        deleted = backend.delete_user(user_id)
    except Exception as e:
        logger.error(f"Delete user error for {user_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Server error")

    if not deleted:
        logger.warning(f"Delete user failed: user {user_id} not found")
        raise HTTPException(status_code=404, detail="User not found")
    return MessageResponse(msg="User deleted")
