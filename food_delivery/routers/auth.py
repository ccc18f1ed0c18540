"""
Login / Logout Endpoints

Admins log in with email (or username) and password, drivers with phone
and password. Both receive an opaque bearer token.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from food_delivery.auth import (
    get_bearer_token,
    get_storage,
    invalidate_session,
    issue_session,
    require_admin,
    verify_password,
)
from food_delivery.models import AdminUser, SubjectType
from food_delivery.schemas import (
    AdminLoginRequest,
    AdminLoginResponse,
    AdminResponse,
    DriverLoginRequest,
    DriverLoginResponse,
    DriverResponse,
    ErrorResponse,
    MessageResponse,
)
from food_delivery.storage import Storage

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Authentication"])

INVALID_CREDENTIALS = "Invalid credentials"


@router.post(
    "/api/admin/login",
    response_model=AdminLoginResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
async def admin_login(
    data: AdminLoginRequest,
    storage: Storage = Depends(get_storage),
) -> AdminLoginResponse:
    identifier = (data.email or data.username or "").strip()
    if not identifier or not data.password:
        raise HTTPException(status_code=400, detail="Email and password are required")

    admin = await storage.get_admin_by_login(identifier)
    if admin is None or not verify_password(data.password, admin.password_hash):
        logger.warning(f"Failed admin login for {identifier}")
        raise HTTPException(status_code=401, detail=INVALID_CREDENTIALS)
    if not admin.is_active:
        raise HTTPException(status_code=401, detail="Account is not active")

    token = await issue_session(storage, admin.id, SubjectType.ADMIN)
    logger.info(f"Admin {admin.email} logged in")

    return AdminLoginResponse(token=token, user=AdminResponse.model_validate(admin))


@router.get("/api/admin/verify", response_model=AdminResponse)
async def admin_verify(admin: AdminUser = Depends(require_admin)):
    """Return the admin behind the presented token."""
    return admin


@router.post("/api/admin/logout", response_model=MessageResponse)
async def admin_logout(
    token: str = Depends(get_bearer_token),
    storage: Storage = Depends(get_storage),
) -> MessageResponse:
    await invalidate_session(storage, token)
    return MessageResponse(message="Logged out")


@router.post(
    "/api/driver/login",
    response_model=DriverLoginResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
async def driver_login(
    data: DriverLoginRequest,
    storage: Storage = Depends(get_storage),
) -> DriverLoginResponse:
    phone = (data.phone or "").strip()
    if not phone or not data.password:
        raise HTTPException(status_code=400, detail="Phone and password are required")

    driver = await storage.get_driver_by_phone(phone)
    if driver is None or not verify_password(data.password, driver.password_hash):
        logger.warning(f"Failed driver login for {phone}")
        raise HTTPException(status_code=401, detail=INVALID_CREDENTIALS)
    if not driver.is_active:
        raise HTTPException(status_code=401, detail="Account is not active")

    token = await issue_session(storage, driver.id, SubjectType.DRIVER)
    logger.info(f"Driver {driver.name} logged in")

    return DriverLoginResponse(token=token, user=DriverResponse.model_validate(driver))


@router.post("/api/driver/logout", response_model=MessageResponse)
async def driver_logout(
    token: str = Depends(get_bearer_token),
    storage: Storage = Depends(get_storage),
) -> MessageResponse:
    await invalidate_session(storage, token)
    return MessageResponse(message="Logged out")
