import logging
import re
from collections import defaultdict
from typing import Optional

from db import AsyncClient
from exceptions import ConflictError, PermissionDeniedError, ValidationFailedError
from models import BulkResult, ProviderSummary, RequestStats, RequestStatus, ServiceRequest
from schema import CreateServiceRequest, SearchRequestsRequest, UpdateServiceRequest
from services.base import execute, first_or_404, utcnow_iso
from services import messaging
from validation import validate_service_request
from workflow import REQUEST_LIFECYCLE

logger = logging.getLogger(__name__)

TABLE = "service_requests"
PROVIDER_EMBED = "service_providers (name, phone, email, rating, verification_status)"
REQUEST_SELECT = f"*, {PROVIDER_EMBED}"
REQUEST_STATUSES = {s.value for s in RequestStatus}
FILTER_SYNTAX = re.compile(r"[,()\"]")

STATUS_MESSAGES = {
    RequestStatus.accepted: "A provider has accepted this request.",
    RequestStatus.in_progress: "Work on this request has started.",
    RequestStatus.completed: "This request has been marked as completed.",
    RequestStatus.cancelled: "This request has been cancelled.",
}


def clean_search_term(term: Optional[str]) -> str:
    """Drop the characters that delimit PostgREST filter lists."""
    return " ".join(FILTER_SYNTAX.sub(" ", term or "").split())


def row_to_request(row: dict) -> ServiceRequest:
    data = {k: v for k, v in row.items() if k not in ("service_providers", "users")}
    provider = row.get("service_providers")
    if provider:
        data["provider"] = ProviderSummary(
            name=provider.get("name") or "",
            phone=provider.get("phone"),
            email=provider.get("email"),
            rating=provider.get("rating") or 0,
            verified=provider.get("verification_status") == "approved",
        )
    return ServiceRequest.model_validate(data)


async def create_service_request(sbase: AsyncClient, user_id: str, data: CreateServiceRequest) -> ServiceRequest:
    errors = validate_service_request(data.title, data.description, data.category, data.location, data.budget)
    if errors:
        raise ValidationFailedError("Invalid service request", errors)

    payload = {
        "user_id": user_id,
        "title": data.title.strip(),
        "description": data.description.strip(),
        "category": data.category,
        "location": data.location,
        "urgency": data.urgency.value,
        "status": RequestStatus.pending.value,
        "budget": data.budget,
        "scheduled_date": data.scheduled_date.isoformat() if data.scheduled_date else None,
    }
    res = await execute(sbase.table(TABLE).insert(payload), "create service request")
    row = first_or_404(res, "Created service request")
    logger.info("Service request %s created by %s", row["id"], user_id)
    return row_to_request(row)


async def get_service_request(sbase: AsyncClient, request_id: str) -> ServiceRequest:
    res = await execute(
        sbase.table(TABLE).select(REQUEST_SELECT).eq("id", request_id),
        "fetch service request",
    )
    return row_to_request(first_or_404(res, "Service request"))


async def list_user_requests(sbase: AsyncClient, user_id: str) -> list[ServiceRequest]:
    res = await execute(
        sbase.table(TABLE).select(REQUEST_SELECT).eq("user_id", user_id).order("created_at", desc=True),
        "fetch user service requests",
    )
    return [row_to_request(row) for row in res.data or []]


async def update_service_request(sbase: AsyncClient, user_id: str, data: UpdateServiceRequest) -> ServiceRequest:
    """Edit the form fields of a request the caller owns. Status changes go through ``change_request_status``."""
    current = await get_service_request(sbase, data.request_id)
    if current.user_id != user_id:
        raise PermissionDeniedError("Service request does not belong to you")
    if current.status != RequestStatus.pending:
        raise ConflictError("Only pending requests can be edited")

    updates = data.model_dump(exclude={"request_id"}, exclude_none=True, mode="json")
    if not updates:
        return current

    merged = current.model_copy(update=data.model_dump(exclude={"request_id"}, exclude_none=True))
    errors = validate_service_request(merged.title, merged.description, merged.category, merged.location, merged.budget)
    if errors:
        raise ValidationFailedError("Invalid service request", errors)

    res = await execute(
        sbase.table(TABLE).update(updates).eq("id", data.request_id).eq("status", RequestStatus.pending.value),
        "update service request",
    )
    if not res.data:
        raise ConflictError("Service request was changed by someone else, reload and try again")
    return await get_service_request(sbase, data.request_id)


async def change_request_status(
    sbase: AsyncClient,
    request_id: str,
    status: RequestStatus,
    *,
    user_id: Optional[str] = None,
    provider_id: Optional[str] = None,
) -> ServiceRequest:
    """Move a request along its lifecycle on behalf of its customer or a provider.

    A provider accepting a pending request becomes its assigned provider; for
    every other change the provider must already be the assigned one.
    """
    current = await get_service_request(sbase, request_id)
    if user_id is not None and current.user_id != user_id:
        raise PermissionDeniedError("Service request does not belong to you")
    if provider_id is not None and status != RequestStatus.accepted and current.provider_id != provider_id:
        raise PermissionDeniedError("Service request is not assigned to you")

    target = REQUEST_LIFECYCLE.check(current.status, status)

    updates = {"status": target.value}
    if target == RequestStatus.accepted and provider_id is not None:
        updates["provider_id"] = provider_id
    if target == RequestStatus.completed:
        updates["completed_at"] = utcnow_iso()

    res = await execute(
        sbase.table(TABLE).update(updates).eq("id", request_id).eq("status", current.status.value),
        "update service request status",
    )
    if not res.data:
        raise ConflictError("Service request was changed by someone else, reload and try again")

    logger.info("Service request %s: %s -> %s", request_id, current.status.value, target.value)

    sender_id = provider_id or user_id or current.user_id
    try:
        await messaging.send_system_message(sbase, request_id, sender_id, STATUS_MESSAGES[target])
    except Exception as e:
        logger.error("Error posting status message for %s: %s", request_id, e)

    return row_to_request(res.data[0])


async def delete_service_request(sbase: AsyncClient, user_id: str, request_id: str) -> bool:
    current = await get_service_request(sbase, request_id)
    if current.user_id != user_id:
        raise PermissionDeniedError("Service request does not belong to you")
    if current.status not in (RequestStatus.pending, RequestStatus.cancelled):
        raise ConflictError("Only pending or cancelled requests can be deleted")

    await execute(sbase.table(TABLE).delete().eq("id", request_id), "delete service request")
    return True


async def get_available_requests(sbase: AsyncClient, category: Optional[str] = None) -> list[ServiceRequest]:
    query = (
        sbase.table(TABLE)
        .select("*")
        .eq("status", RequestStatus.pending.value)
        .order("created_at", desc=True)
    )
    if category:
        query = query.eq("category", category)
    res = await execute(query, "fetch available requests")
    return [row_to_request(row) for row in res.data or []]


async def search_requests(
    sbase: AsyncClient,
    filters: SearchRequestsRequest,
    user_id: Optional[str] = None,
    provider_id: Optional[str] = None,
) -> list[ServiceRequest]:
    query = sbase.table(TABLE).select(REQUEST_SELECT)

    if user_id:
        query = query.eq("user_id", user_id)
    if provider_id:
        query = query.eq("provider_id", provider_id)
    if filters.status:
        query = query.in_("status", [s.value for s in filters.status])
    if filters.category:
        query = query.in_("category", filters.category)
    if filters.urgency:
        query = query.in_("urgency", [u.value for u in filters.urgency])
    if filters.min_budget is not None:
        query = query.gte("budget", filters.min_budget)
    if filters.max_budget is not None:
        query = query.lte("budget", filters.max_budget)
    if filters.location:
        query = query.ilike("location", f"%{filters.location}%")
    term = clean_search_term(filters.search_term)
    if term:
        query = query.or_(f"title.ilike.%{term}%,description.ilike.%{term}%")
    if filters.date_from:
        query = query.gte("created_at", filters.date_from.isoformat())
    if filters.date_to:
        query = query.lte("created_at", filters.date_to.isoformat())

    query = query.order("created_at", desc=True)

    if filters.limit:
        query = query.range(filters.offset, filters.offset + filters.limit - 1)
    elif filters.offset:
        query = query.range(filters.offset, filters.offset + 9)

    res = await execute(query, "search service requests")
    return [row_to_request(row) for row in res.data or []]


async def get_request_stats(sbase: AsyncClient, user_id: str) -> RequestStats:
    res = await execute(
        sbase.table(TABLE).select("status, budget, created_at").eq("user_id", user_id),
        "fetch request stats",
    )
    stats = RequestStats()
    for row in res.data or []:
        stats.total += 1
        status = row.get("status")
        if status in REQUEST_STATUSES:
            setattr(stats, status, getattr(stats, status) + 1)
        if status == RequestStatus.completed.value:
            stats.total_spent += row.get("budget") or 0
    return stats


async def bulk_update_status(sbase: AsyncClient, request_ids: list[str], status: RequestStatus) -> BulkResult:
    """Apply one status to many requests, skipping those that cannot legally move there."""
    if status == RequestStatus.accepted:
        raise ValidationFailedError("Requests can only be accepted by a provider")

    res = await execute(
        sbase.table(TABLE).select("id, status").in_("id", request_ids),
        "fetch service requests",
    )
    result = BulkResult()
    by_status = defaultdict(list)
    found = set()
    for row in res.data or []:
        found.add(row["id"])
        if REQUEST_LIFECYCLE.can_transition(row["status"], status):
            by_status[row["status"]].append(row["id"])
        else:
            result.skipped.append(row["id"])
    result.skipped.extend(rid for rid in request_ids if rid not in found)

    updates = {"status": status.value}
    if status == RequestStatus.completed:
        updates["completed_at"] = utcnow_iso()

    for current, ids in by_status.items():
        upd = await execute(
            sbase.table(TABLE).update(updates).in_("id", ids).eq("status", current),
            "bulk update service requests",
        )
        changed = {row["id"] for row in upd.data or []}
        result.updated.extend(rid for rid in ids if rid in changed)
        result.skipped.extend(rid for rid in ids if rid not in changed)

    logger.info("Bulk status %s: %d updated, %d skipped", status.value, len(result.updated), len(result.skipped))
    return result
