import logging
from typing import Optional

from db import AsyncClient
from exceptions import ConflictError, ValidationFailedError
from filtering import paginate, provider_view
from models import ServiceProvider, VerificationStatus
from schema import ProviderRegisterRequest, ProviderSearchRequest, UpdateProviderProfileRequest
from services.base import execute, first_or_404, first_or_none, utcnow_iso
from workflow import PROVIDER_VERIFICATION

logger = logging.getLogger(__name__)

TABLE = "service_providers"


def row_to_provider(row: dict) -> ServiceProvider:
    return ServiceProvider.model_validate(row)


async def search_providers(sbase: AsyncClient, search: ProviderSearchRequest) -> list[ServiceProvider]:
    """Approved, unblocked providers narrowed and ordered in memory."""
    res = await execute(
        sbase.table(TABLE)
        .select("*")
        .eq("verification_status", VerificationStatus.approved.value)
        .eq("is_blocked", False)
        .order("rating", desc=True),
        "fetch service providers",
    )
    providers = [row_to_provider(row) for row in res.data or []]
    view = provider_view(providers, search.filters, search.sort_by, search.sort_order)
    return paginate(view, search.limit, search.offset)


async def get_provider(sbase: AsyncClient, provider_id: str) -> ServiceProvider:
    res = await execute(sbase.table(TABLE).select("*").eq("id", provider_id), "fetch service provider")
    return row_to_provider(first_or_404(res, "Service provider"))


async def get_provider_by_email(sbase: AsyncClient, email: str) -> Optional[ServiceProvider]:
    res = await execute(sbase.table(TABLE).select("*").eq("email", email), "fetch service provider")
    row = first_or_none(res)
    return row_to_provider(row) if row else None


async def create_provider_profile(sbase: AsyncClient, provider_id: str, data: ProviderRegisterRequest) -> ServiceProvider:
    now = utcnow_iso()
    res = await execute(
        sbase.table(TABLE).upsert({
            "id": provider_id,
            "name": data.name,
            "email": data.email,
            "phone": data.phone,
            "location": data.location,
            "services": data.services,
            "hourly_rate": data.hourly_rate,
            "experience_years": data.experience_years,
            "bio": data.bio,
            "rating": 0,
            "total_jobs": 0,
            "verification_status": VerificationStatus.pending.value,
            "verification_requested_at": now,
        }),
        "create provider profile",
    )
    return row_to_provider(first_or_404(res, "Provider profile"))


async def update_provider_profile(
    sbase: AsyncClient, provider_id: str, data: UpdateProviderProfileRequest
) -> ServiceProvider:
    updates = data.model_dump(exclude_none=True)
    if "services" in updates and not updates["services"]:
        raise ValidationFailedError("Please select at least one service")
    if not updates:
        return await get_provider(sbase, provider_id)

    updates["updated_at"] = utcnow_iso()
    res = await execute(sbase.table(TABLE).update(updates).eq("id", provider_id), "update provider profile")
    return row_to_provider(first_or_404(res, "Service provider"))


async def request_verification(sbase: AsyncClient, provider_id: str) -> ServiceProvider:
    """Ask admins to (re)review a provider. Rejected providers go back to pending."""
    provider = await get_provider(sbase, provider_id)
    updates = {"verification_requested_at": utcnow_iso()}
    if provider.verification_status != VerificationStatus.pending:
        updates["verification_status"] = PROVIDER_VERIFICATION.check(
            provider.verification_status, VerificationStatus.pending
        ).value

    res = await execute(
        sbase.table(TABLE)
        .update(updates)
        .eq("id", provider_id)
        .eq("verification_status", provider.verification_status.value),
        "request verification",
    )
    if not res.data:
        raise ConflictError("Provider was changed by someone else, reload and try again")
    logger.info("Provider %s requested verification", provider_id)
    return row_to_provider(res.data[0])
