import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import APIRouter, Depends, HTTPException, Request
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from pydantic import ValidationError
from pymongo.database import Database
from starlette.concurrency import run_in_threadpool

from config import settings
from database import ADMIN, get_db, now
from errors import Unauthenticated, ValidationFailed, envelope, forbidden, server_errors
from schemas import AdminRole, ChangePasswordPayload, LoginPayload

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

INVALID_CREDENTIALS = "Invalid credentials"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(plain, hashed)


def create_access_token(admin_id: str, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.JWT_EXPIRE_MINUTES))
    return jwt.encode({"id": admin_id, "exp": expire}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


@dataclass
class AdminContext:
    """The acting admin, resolved once per request and passed to handlers."""
    id: str
    name: str
    email: str
    role: str
    permissions: List[str] = field(default_factory=list)
    is_active: bool = True
    last_login: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "AdminContext":
        return cls(
            id=str(doc["_id"]),
            name=doc.get("name", ""),
            email=doc.get("email", ""),
            role=doc.get("role", AdminRole.admin.value),
            permissions=list(doc.get("permissions") or []),
            is_active=doc.get("isActive", True),
            last_login=doc.get("lastLogin"),
        )

    @property
    def is_super_admin(self) -> bool:
        return self.role == AdminRole.super_admin.value

    def can(self, permission: str) -> bool:
        return self.is_super_admin or permission in self.permissions

    def profile(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "permissions": self.permissions,
            "isActive": self.is_active,
            "lastLogin": self.last_login.isoformat() if self.last_login else None,
        }


def _bearer_token(request: Request) -> Optional[str]:
    auth = request.headers.get("authorization")
    if not auth or not auth.lower().startswith("bearer "):
        return None
    token = auth.split(" ", 1)[1].strip()
    return token or None


def get_current_admin(request: Request, database: Database = Depends(get_db)) -> AdminContext:
    token = _bearer_token(request)
    if not token:
        raise Unauthenticated("NoToken", "Access denied. No token provided.")
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise Unauthenticated("TokenExpired", "Token expired.")
    except JWTError:
        raise Unauthenticated("InvalidToken", "Invalid token.")

    try:
        admin_id = ObjectId(str(payload["id"]))
    except (KeyError, InvalidId):
        raise Unauthenticated("InvalidToken", "Invalid token.")

    with server_errors("authenticating"):
        doc = database[ADMIN].find_one({"_id": admin_id}, {"password": 0})
    if not doc:
        raise Unauthenticated("InvalidPrincipal", "Invalid token. Admin not found.")
    if not doc.get("isActive", True):
        raise Unauthenticated("Deactivated", "Account is deactivated.")
    return AdminContext.from_document(doc)


def require_permission(permission: str):
    def _dep(admin: AdminContext = Depends(get_current_admin)) -> AdminContext:
        if not admin.can(permission):
            raise forbidden(permission)
        return admin
    return _dep


# -------------------- Auth endpoints -------------------- #

router = APIRouter(prefix="/api/auth", tags=["auth"])


async def _json_body(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        body = {}
    return body if isinstance(body, dict) else {}


@router.post("/login")
async def login(request: Request, database: Database = Depends(get_db)):
    try:
        payload = LoginPayload.model_validate(await _json_body(request))
    except ValidationError as exc:
        raise ValidationFailed.from_pydantic(exc)
    return await run_in_threadpool(_login, database, payload)


def _login(database: Database, payload: LoginPayload) -> Dict[str, Any]:
    with server_errors("logging in"):
        doc = database[ADMIN].find_one({"email": payload.email})
        # Same answer for an unknown email and a wrong password
        if not doc or not verify_password(payload.password, doc.get("password", "")):
            raise HTTPException(status_code=401, detail=INVALID_CREDENTIALS)
        if not doc.get("isActive", True):
            raise Unauthenticated("Deactivated", "Account is deactivated.")

        stamp = now()
        database[ADMIN].update_one({"_id": doc["_id"]}, {"$set": {"lastLogin": stamp}})
        doc["lastLogin"] = stamp
        admin = AdminContext.from_document(doc)
        token = create_access_token(admin.id)

    logger.info("Admin %s logged in", admin.email)
    return envelope(True, message="Login successful", data={"token": token, "admin": admin.profile()})


@router.get("/verify")
def verify_token(admin: AdminContext = Depends(get_current_admin)):
    return envelope(True, data={"admin": admin.profile()})


@router.put("/change-password")
async def change_password(request: Request, admin: AdminContext = Depends(get_current_admin),
                          database: Database = Depends(get_db)):
    try:
        payload = ChangePasswordPayload.model_validate(await _json_body(request))
    except ValidationError as exc:
        raise ValidationFailed.from_pydantic(exc)
    return await run_in_threadpool(_change_password, database, admin, payload)


def _change_password(database: Database, admin: AdminContext, payload: ChangePasswordPayload) -> Dict[str, Any]:
    with server_errors("changing password"):
        doc = database[ADMIN].find_one({"_id": ObjectId(admin.id)})
        if not doc or not verify_password(payload.current_password, doc.get("password", "")):
            raise HTTPException(status_code=400, detail="Current password is incorrect")
        database[ADMIN].update_one(
            {"_id": doc["_id"]},
            {"$set": {"password": hash_password(payload.new_password), "updatedAt": now()}},
        )
    return envelope(True, message="Password changed successfully")
