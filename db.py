import logging

from supabase import create_async_client, AsyncClient

from config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

if not settings.supabase_url or not settings.supabase_key:
    logger.warning("SUPABASE_URL or SUPABASE_KEY not set in environment.")


async def get_supabase() -> AsyncClient:
    return await create_async_client(settings.supabase_url, settings.supabase_key)
