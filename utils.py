import logging
from typing import Optional

from fastapi import Header, HTTPException, Depends

from config import get_settings
from db import get_supabase, AsyncClient

logger = logging.getLogger(__name__)


def send_email(to_email: str, subject: str, content: str):
    # No mail provider is wired up yet; the message is only logged.
    logger.info("MOCK EMAIL to %s: [%s] %s", to_email, subject, content)


def send_push_notification(token: str, title: str, message: str, data: Optional[dict] = None):
    from exponent_server_sdk import (
        PushClient,
        PushMessage,
        PushServerError,
        DeviceNotRegisteredError,
    )

    if not token:
        logger.info("No push token provided.")
        return

    try:
        session_args = {}
        access_token = get_settings().expo_access_token
        if access_token:
            session_args["access_token"] = access_token

        response = PushClient(**session_args).publish(
            PushMessage(to=token, title=title, body=message, data=data)
        )
    except PushServerError as exc:
        logger.error("Push Server Error: %s", exc.errors)
        return
    except (ConnectionError, ValueError) as exc:
        logger.error("Push Connection/Value Error: %s", exc)
        return

    try:
        response.validate_response()
    except DeviceNotRegisteredError:
        logger.warning("Device not registered: %s", token)
    except Exception as exc:
        logger.error("Push Notification Error: %s", exc)
    else:
        logger.info("Push Notification sent to %s: %s - %s", token, title, message)


async def notify(sbase: AsyncClient, table: str, row_id: str, title: str, message: str, data: Optional[dict] = None):
    """Push to whoever owns ``row_id`` in ``table``, if they registered a device."""
    try:
        res = await sbase.table(table).select("push_token").eq("id", row_id).execute()
        if res.data and res.data[0].get("push_token"):
            send_push_notification(res.data[0]["push_token"], title, message, data)
    except Exception as e:
        logger.error("Error sending push to %s %s: %s", table, row_id, e)


async def get_auth_user_id(authorization: Optional[str], sbase: AsyncClient) -> str:
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing Authorization Header")

    token = authorization.replace("Bearer ", "")
    try:
        user_res = await sbase.auth.get_user(token)
    except Exception as e:
        logger.warning("Auth Error: %s", e)
        raise HTTPException(status_code=401, detail="Authentication Failed")

    if not user_res or not user_res.user:
        raise HTTPException(status_code=401, detail="Invalid Token")
    return user_res.user.id


async def verify_token(
    authorization: Optional[str] = Header(None),
    sbase: AsyncClient = Depends(get_supabase)
) -> str:
    """Any signed-in account, customer or provider. Returns the auth user id."""
    return await get_auth_user_id(authorization, sbase)


async def verify_user(
    authorization: Optional[str] = Header(None),
    sbase: AsyncClient = Depends(get_supabase)
) -> str:
    """
    Verifies the caller is authenticated, has a row in ``users`` and is not blocked.
    Returns the user_id (UUID string).
    """
    user_id = await get_auth_user_id(authorization, sbase)

    profile_res = await sbase.table("users").select("id, is_blocked").eq("id", user_id).execute()
    if not profile_res.data:
        raise HTTPException(status_code=403, detail="User profile not found. Please register.")
    if profile_res.data[0].get("is_blocked"):
        raise HTTPException(status_code=403, detail="Account is blocked")

    return user_id


async def verify_provider(
    authorization: Optional[str] = Header(None),
    sbase: AsyncClient = Depends(get_supabase)
) -> str:
    """
    Verifies the caller is authenticated and exists in ``service_providers``.
    Provider rows share their id with the Supabase Auth user.
    """
    user_id = await get_auth_user_id(authorization, sbase)

    provider_res = await sbase.table("service_providers").select("id, is_blocked").eq("id", user_id).execute()
    if not provider_res.data:
        raise HTTPException(status_code=403, detail="Provider profile not found.")
    if provider_res.data[0].get("is_blocked"):
        raise HTTPException(status_code=403, detail="Account is blocked")

    return user_id


async def verify_admin(
    authorization: Optional[str] = Header(None),
    sbase: AsyncClient = Depends(get_supabase)
) -> str:
    user_id = await get_auth_user_id(authorization, sbase)

    admin_res = await sbase.table("users").select("is_admin").eq("id", user_id).execute()
    if not admin_res.data or not admin_res.data[0].get("is_admin"):
        raise HTTPException(status_code=403, detail="Admin access required")

    return user_id
