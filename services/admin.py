import logging
from typing import Optional

from db import AsyncClient
from exceptions import ConflictError, ValidationFailedError
from models import (
    AdminStats,
    BulkResult,
    PendingReport,
    Report,
    ReportStatus,
    ServiceProvider,
    VerificationStats,
    VerificationStatus,
)
from schema import CreateReportRequest
from services.base import execute, first_or_404, first_or_none, utcnow_iso
from services.providers import get_provider, row_to_provider
from utils import notify, send_email
from workflow import PROVIDER_VERIFICATION, REPORT_RESOLUTION

logger = logging.getLogger(__name__)


async def is_admin(sbase: AsyncClient, user_id: str) -> bool:
    res = await execute(sbase.table("users").select("is_admin").eq("id", user_id), "check admin status")
    row = first_or_none(res)
    return bool(row and row.get("is_admin"))


async def get_admin_stats(sbase: AsyncClient) -> AdminStats:
    res = await execute(sbase.table("admin_stats").select("*"), "fetch admin stats")
    row = first_or_none(res) or {}
    return AdminStats(**{field: row.get(field) or 0 for field in AdminStats.model_fields})


# --- Provider verification ---

async def get_pending_providers(sbase: AsyncClient) -> list[ServiceProvider]:
    res = await execute(
        sbase.table("service_providers")
        .select("*")
        .eq("verification_status", VerificationStatus.pending.value)
        .order("created_at", desc=True),
        "fetch pending providers",
    )
    return [row_to_provider(row) for row in res.data or []]


async def set_verification_status(
    sbase: AsyncClient,
    provider_id: str,
    status: VerificationStatus,
    admin_id: str,
    notes: Optional[str] = None,
) -> ServiceProvider:
    provider = await get_provider(sbase, provider_id)
    target = PROVIDER_VERIFICATION.check(provider.verification_status, status)

    res = await execute(
        sbase.table("service_providers")
        .update({"verification_status": target.value, "admin_notes": notes, "updated_at": utcnow_iso()})
        .eq("id", provider_id)
        .eq("verification_status", provider.verification_status.value),
        "update provider verification",
    )
    if not res.data:
        raise ConflictError("Provider was changed by someone else, reload and try again")

    logger.info("Provider %s %s by admin %s", provider_id, target.value, admin_id)
    updated = row_to_provider(res.data[0])
    await _announce_verification(sbase, updated, notes)
    return updated


async def _announce_verification(sbase: AsyncClient, provider: ServiceProvider, notes: Optional[str]):
    if provider.verification_status == VerificationStatus.approved:
        title, body = "Welcome to HudumaTech", "Your provider account has been approved."
    else:
        title, body = "Verification update", f"Your provider application was not approved. {notes or ''}".strip()

    if provider.email:
        send_email(provider.email, title, body)
    await notify(sbase, "service_providers", provider.id, title, body, {"type": "verification"})


async def approve_provider(sbase: AsyncClient, provider_id: str, admin_id: str, notes: Optional[str] = None):
    return await set_verification_status(sbase, provider_id, VerificationStatus.approved, admin_id, notes)


async def reject_provider(sbase: AsyncClient, provider_id: str, admin_id: str, reason: str):
    if not reason or not reason.strip():
        raise ValidationFailedError("A rejection reason is required")
    return await set_verification_status(sbase, provider_id, VerificationStatus.rejected, admin_id, reason)


async def get_verification_stats(sbase: AsyncClient) -> VerificationStats:
    res = await execute(
        sbase.table("service_providers").select("verification_status"),
        "fetch verification stats",
    )
    stats = VerificationStats()
    for row in res.data or []:
        status = row.get("verification_status")
        if status in ("pending", "approved", "rejected"):
            setattr(stats, status, getattr(stats, status) + 1)
        stats.total += 1
    return stats


async def bulk_approve_providers(sbase: AsyncClient, provider_ids: list[str], admin_id: str) -> BulkResult:
    """Approve every listed provider that is currently pending; report the rest as skipped."""
    res = await execute(
        sbase.table("service_providers").select("id, verification_status").in_("id", provider_ids),
        "fetch providers",
    )
    eligible = [
        row["id"] for row in res.data or []
        if PROVIDER_VERIFICATION.can_transition(row["verification_status"], VerificationStatus.approved)
    ]
    result = BulkResult(skipped=[pid for pid in provider_ids if pid not in eligible])
    if not eligible:
        return result

    upd = await execute(
        sbase.table("service_providers")
        .update({
            "verification_status": VerificationStatus.approved.value,
            "admin_notes": "Bulk approved via admin dashboard",
            "updated_at": utcnow_iso(),
        })
        .in_("id", eligible)
        .eq("verification_status", VerificationStatus.pending.value),
        "bulk approve providers",
    )
    changed = {row["id"] for row in upd.data or []}
    result.updated = [pid for pid in eligible if pid in changed]
    result.skipped.extend(pid for pid in eligible if pid not in changed)
    logger.info("%d providers bulk approved by admin %s", len(result.updated), admin_id)
    return result


# --- Reports ---

async def get_pending_reports(sbase: AsyncClient) -> list[PendingReport]:
    res = await execute(
        sbase.table("reports")
        .select(
            "*, reporter:reporter_id(name), reported_user:reported_user_id(name), "
            "reported_provider:reported_provider_id(name)"
        )
        .eq("status", ReportStatus.pending.value)
        .order("created_at", desc=True),
        "fetch pending reports",
    )
    reports = []
    for row in res.data or []:
        reports.append(PendingReport(
            id=row["id"],
            reporter_name=(row.get("reporter") or {}).get("name") or "Unknown",
            reported_name=(row.get("reported_user") or {}).get("name")
            or (row.get("reported_provider") or {}).get("name")
            or "Unknown",
            report_type=row["report_type"],
            description=row["description"],
            status=row["status"],
            created_at=row.get("created_at"),
        ))
    return reports


async def create_report(sbase: AsyncClient, reporter_id: str, data: CreateReportRequest) -> Report:
    if not (data.reported_user_id or data.reported_provider_id or data.reported_request_id):
        raise ValidationFailedError("A report must reference a user, provider or request")
    if not data.description.strip():
        raise ValidationFailedError("Please describe the problem")

    res = await execute(
        sbase.table("reports").insert({
            "reporter_id": reporter_id,
            "reported_user_id": data.reported_user_id,
            "reported_provider_id": data.reported_provider_id,
            "reported_request_id": data.reported_request_id,
            "report_type": data.report_type,
            "description": data.description.strip(),
            "status": ReportStatus.pending.value,
        }),
        "create report",
    )
    return Report.model_validate(first_or_404(res, "Created report"))


async def set_report_status(
    sbase: AsyncClient,
    report_id: str,
    status: ReportStatus,
    admin_id: str,
    notes: Optional[str] = None,
) -> Report:
    current_res = await execute(sbase.table("reports").select("*").eq("id", report_id), "fetch report")
    current = Report.model_validate(first_or_404(current_res, "Report"))
    target = REPORT_RESOLUTION.check(current.status, status)

    updates = {"status": target.value}
    if notes is not None:
        updates["admin_notes"] = notes
    if REPORT_RESOLUTION.is_terminal(target):
        updates["resolved_by"] = admin_id
        updates["resolved_at"] = utcnow_iso()

    res = await execute(
        sbase.table("reports").update(updates).eq("id", report_id).eq("status", current.status.value),
        "update report",
    )
    if not res.data:
        raise ConflictError("Report was changed by someone else, reload and try again")
    logger.info("Report %s: %s -> %s by admin %s", report_id, current.status.value, target.value, admin_id)
    return Report.model_validate(res.data[0])


# --- Blocking ---

async def _block(sbase: AsyncClient, table: str, target_id: str, reason: str, admin_id: str) -> bool:
    if not reason or not reason.strip():
        raise ValidationFailedError("A block reason is required")
    res = await execute(
        sbase.table(table)
        .update({"is_blocked": True, "blocked_reason": reason, "blocked_at": utcnow_iso()})
        .eq("id", target_id),
        f"block {table} row",
    )
    first_or_404(res, "Account")
    logger.info("%s %s blocked by admin %s: %s", table, target_id, admin_id, reason)
    return True


async def block_user(sbase: AsyncClient, user_id: str, reason: str, admin_id: str) -> bool:
    return await _block(sbase, "users", user_id, reason, admin_id)


async def block_provider(sbase: AsyncClient, provider_id: str, reason: str, admin_id: str) -> bool:
    return await _block(sbase, "service_providers", provider_id, reason, admin_id)
