import asyncio
import logging
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import get_settings
from db import get_supabase, AsyncClient
from exceptions import ConflictError, PermissionDeniedError, ServiceError, ValidationFailedError
from filtering import request_view
from models import (
    AdminStats,
    BulkResult,
    CatalogCategory,
    Conversation,
    ConversationSummary,
    Message,
    PendingReport,
    ProviderDashboard,
    RateRange,
    Report,
    RequestStats,
    RequestStatus,
    Review,
    ReviewSummary,
    ServiceLocation,
    ServiceProvider,
    ServiceRequest,
    SystemSetting,
    User,
    VerificationStats,
    VerificationStatus,
)
from schema import (
    AvailableRequestsRequest,
    BlockRequest,
    BudgetSuggestionRequest,
    BulkApproveRequest,
    BulkStatusRequest,
    CatalogIdRequest,
    CatalogUpdateRequest,
    CategoryRequest,
    CreateReportRequest,
    CreateReviewRequest,
    CreateServiceRequest,
    LocationRequest,
    LocationsRequest,
    LoginRequest,
    MarkReadRequest,
    ProviderDashboardRequest,
    ProviderIdRequest,
    ProviderRegisterRequest,
    ProviderReviewsRequest,
    ProviderSearchRequest,
    RateSuggestionRequest,
    RegisterPushTokenRequest,
    RegisterRequest,
    RejectProviderRequest,
    ReportStatusRequest,
    RequestIdRequest,
    RequestViewRequest,
    ReviewProviderRequest,
    SearchRequestsRequest,
    SendMessageRequest,
    SettingKeyRequest,
    SettingsRequest,
    UpdateProfileRequest,
    UpdateProviderProfileRequest,
    UpdateRequestStatusRequest,
    UpdateServiceRequest,
)
from services import admin, catalog, dashboard, messaging, providers, reviews, service_requests
from utils import get_auth_user_id, notify, verify_admin, verify_provider, verify_token, verify_user
from validation import get_budget_suggestion, validate_provider_signup


def configure_logging() -> None:
    root_logger = logging.getLogger()
    level = get_settings().log_level.upper()
    if not root_logger.handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )
    else:
        root_logger.setLevel(level)


configure_logging()

logger = logging.getLogger(__name__)

settings = get_settings()
app = FastAPI(title=settings.app_name, docs_url="/api/docs", redoc_url="/api/redoc", openapi_url="/api/openapi.json")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    body = {"detail": exc.message}
    if isinstance(exc, ValidationFailedError) and exc.errors:
        body["errors"] = exc.errors
    if exc.status_code >= 500:
        logger.error("%s failed: %s", request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=body)


@app.get("/health")
def health():
    return {"ok": True, "service": "hudumatech"}

# --- Account Functions ---

@app.post("/api/funcs/user.register")
async def register_user(data: RegisterRequest, sbase: AsyncClient = Depends(get_supabase)):
    # 1. Sign up with Supabase Auth
    try:
        auth_res = await sbase.auth.sign_up({
            "email": data.email,
            "password": data.password,
            "options": {"data": {"name": data.name, "phone": data.phone, "location": data.location}},
        })
    except Exception as e:
        logger.warning("Registration failed for %s: %s", data.email, e)
        raise HTTPException(status_code=400, detail=str(e))

    if not auth_res.user:
        raise HTTPException(status_code=400, detail="Registration failed")

    user_id = auth_res.user.id

    # 2. Create the users row
    profile_res = await sbase.table("users").upsert({
        "id": user_id,
        "name": data.name,
        "email": data.email,
        "phone": data.phone,
        "location": data.location,
    }).execute()

    return {
        "user": auth_res.user,
        "session": auth_res.session,
        "profile": profile_res.data[0] if profile_res.data else None
    }

@app.post("/api/funcs/user.login")
async def login_user(data: LoginRequest, sbase: AsyncClient = Depends(get_supabase)):
    try:
        auth_res = await sbase.auth.sign_in_with_password({
            "email": data.email,
            "password": data.password
        })
        user_id = auth_res.user.id
        profile_res = await sbase.table("users").select("*").eq("id", user_id).execute()
    except Exception as e:
        logger.info("Login failed for %s: %s", data.email, e)
        if "email not confirmed" in str(e).lower():
            raise HTTPException(status_code=403, detail="Email not confirmed. Please check your inbox to verify your email address.")
        raise HTTPException(status_code=401, detail="Invalid credentials")

    profile = profile_res.data[0] if profile_res.data else None
    if profile and profile.get("is_blocked"):
        raise HTTPException(status_code=403, detail="Account is blocked")

    return {
        "user": auth_res.user,
        "session": auth_res.session,
        "profile": profile,
        "is_admin": bool(profile and profile.get("is_admin")),
    }

@app.post("/api/funcs/user.viewProfile", response_model=User)
async def view_user(user_id: str = Depends(verify_user), sbase: AsyncClient = Depends(get_supabase)):
    response = await sbase.table("users").select("*").eq("id", user_id).execute()
    if not response.data:
        raise HTTPException(status_code=404, detail="User profile not found")
    return response.data[0]

@app.post("/api/funcs/user.updateProfile", response_model=User)
async def update_user(data: UpdateProfileRequest, user_id: str = Depends(verify_user), sbase: AsyncClient = Depends(get_supabase)):
    updates = data.model_dump(exclude_none=True)
    if not updates:
        raise HTTPException(status_code=400, detail="Nothing to update")
    response = await sbase.table("users").update(updates).eq("id", user_id).execute()
    if not response.data:
        raise HTTPException(status_code=404, detail="User profile not found")
    return response.data[0]

@app.post("/api/funcs/provider.register")
async def register_provider(data: ProviderRegisterRequest, sbase: AsyncClient = Depends(get_supabase)):
    errors = validate_provider_signup(
        data.name, data.email, data.password, data.phone, data.location,
        data.services, data.hourly_rate, data.experience_years, data.bio,
    )
    if errors:
        raise ValidationFailedError("Invalid provider signup", errors)
    if await providers.get_provider_by_email(sbase, data.email):
        raise ConflictError("A provider with this email already exists")

    try:
        auth_res = await sbase.auth.sign_up({
            "email": data.email,
            "password": data.password,
            "options": {"data": {"name": data.name, "phone": data.phone, "location": data.location, "role": "provider"}},
        })
    except Exception as e:
        logger.warning("Provider registration failed for %s: %s", data.email, e)
        raise HTTPException(status_code=400, detail=str(e))

    if not auth_res.user:
        raise HTTPException(status_code=400, detail="Registration failed")

    provider = await providers.create_provider_profile(sbase, auth_res.user.id, data)
    logger.info("Provider %s registered, awaiting verification", provider.id)

    return {
        "user": auth_res.user,
        "session": auth_res.session,
        "provider": provider,
    }

@app.post("/api/funcs/provider.login")
async def login_provider(data: LoginRequest, sbase: AsyncClient = Depends(get_supabase)):
    try:
        auth_res = await sbase.auth.sign_in_with_password({
            "email": data.email,
            "password": data.password
        })
        provider_res = await sbase.table("service_providers").select("*").eq("id", auth_res.user.id).execute()
    except Exception as e:
        logger.info("Provider login failed for %s: %s", data.email, e)
        if "email not confirmed" in str(e).lower():
            raise HTTPException(status_code=403, detail="Email not confirmed.")
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if not provider_res.data:
        raise HTTPException(status_code=403, detail="User is not a service provider")

    return {
        "user": auth_res.user,
        "session": auth_res.session,
        "provider": provider_res.data[0],
    }

@app.post("/api/funcs/utils.registerPushToken")
async def register_push_token(data: RegisterPushTokenRequest, user_id: str = Depends(verify_token), sbase: AsyncClient = Depends(get_supabase)):
    table = "users" if data.user_type == "user" else "service_providers"
    await sbase.table(table).update({"push_token": data.token}).eq("id", user_id).execute()
    return {"message": "Push token updated"}

# --- Service Request Functions (customer) ---

@app.post("/api/funcs/request.create", response_model=ServiceRequest)
async def create_request(data: CreateServiceRequest, user_id: str = Depends(verify_user), sbase: AsyncClient = Depends(get_supabase)):
    return await service_requests.create_service_request(sbase, user_id, data)

@app.post("/api/funcs/request.view", response_model=ServiceRequest)
async def view_request(data: RequestIdRequest, user_id: str = Depends(verify_token), sbase: AsyncClient = Depends(get_supabase)):
    request = await service_requests.get_service_request(sbase, data.request_id)
    if user_id not in (request.user_id, request.provider_id):
        raise PermissionDeniedError("Service request does not belong to you")
    return request

@app.post("/api/funcs/request.list", response_model=list[ServiceRequest])
async def list_requests(data: Optional[RequestViewRequest] = None, user_id: str = Depends(verify_user), sbase: AsyncClient = Depends(get_supabase)):
    requests = await service_requests.list_user_requests(sbase, user_id)
    if data is None:
        return requests
    return request_view(requests, data.filters, data.sort_by, data.sort_order)

@app.post("/api/funcs/request.search", response_model=list[ServiceRequest])
async def search_my_requests(data: SearchRequestsRequest, user_id: str = Depends(verify_user), sbase: AsyncClient = Depends(get_supabase)):
    return await service_requests.search_requests(sbase, data, user_id=user_id)

@app.post("/api/funcs/request.update", response_model=ServiceRequest)
async def update_request(data: UpdateServiceRequest, user_id: str = Depends(verify_user), sbase: AsyncClient = Depends(get_supabase)):
    return await service_requests.update_service_request(sbase, user_id, data)

@app.post("/api/funcs/request.cancel", response_model=ServiceRequest)
async def cancel_request(data: RequestIdRequest, user_id: str = Depends(verify_user), sbase: AsyncClient = Depends(get_supabase)):
    return await service_requests.change_request_status(sbase, data.request_id, RequestStatus.cancelled, user_id=user_id)

@app.post("/api/funcs/request.delete")
async def delete_request(data: RequestIdRequest, user_id: str = Depends(verify_user), sbase: AsyncClient = Depends(get_supabase)):
    await service_requests.delete_service_request(sbase, user_id, data.request_id)
    return {"message": "Service request deleted"}

@app.post("/api/funcs/request.stats", response_model=RequestStats)
async def request_stats(user_id: str = Depends(verify_user), sbase: AsyncClient = Depends(get_supabase)):
    return await service_requests.get_request_stats(sbase, user_id)

# --- Provider Functions ---

@app.post("/api/funcs/provider.search", response_model=list[ServiceProvider])
async def search_providers(data: ProviderSearchRequest, sbase: AsyncClient = Depends(get_supabase)):
    return await providers.search_providers(sbase, data)

@app.post("/api/funcs/provider.view", response_model=ServiceProvider)
async def view_provider(data: ProviderIdRequest, sbase: AsyncClient = Depends(get_supabase)):
    provider = await providers.get_provider(sbase, data.provider_id)
    if not provider.verified or provider.is_blocked:
        raise HTTPException(status_code=404, detail="Service provider not found")
    return provider

@app.post("/api/funcs/provider.viewProfile", response_model=ServiceProvider)
async def view_provider_profile(provider_id: str = Depends(verify_provider), sbase: AsyncClient = Depends(get_supabase)):
    return await providers.get_provider(sbase, provider_id)

@app.post("/api/funcs/provider.updateProfile", response_model=ServiceProvider)
async def update_provider_profile(data: UpdateProviderProfileRequest, provider_id: str = Depends(verify_provider), sbase: AsyncClient = Depends(get_supabase)):
    return await providers.update_provider_profile(sbase, provider_id, data)

@app.post("/api/funcs/provider.requestVerification", response_model=ServiceProvider)
async def request_verification(provider_id: str = Depends(verify_provider), sbase: AsyncClient = Depends(get_supabase)):
    return await providers.request_verification(sbase, provider_id)

@app.post("/api/funcs/provider.dashboard", response_model=ProviderDashboard)
async def provider_dashboard(data: ProviderDashboardRequest, provider_id: str = Depends(verify_provider), sbase: AsyncClient = Depends(get_supabase)):
    provider = await providers.get_provider(sbase, provider_id)
    return await dashboard.get_provider_dashboard(sbase, provider, data)

@app.post("/api/funcs/provider.availableRequests", response_model=list[ServiceRequest])
async def available_requests(data: AvailableRequestsRequest, provider_id: str = Depends(verify_provider), sbase: AsyncClient = Depends(get_supabase)):
    provider = await providers.get_provider(sbase, provider_id)
    requests = await service_requests.get_available_requests(sbase, data.category)
    return [r for r in requests if r.category in provider.services]

@app.post("/api/funcs/provider.acceptRequest", response_model=ServiceRequest)
async def accept_request(data: RequestIdRequest, provider_id: str = Depends(verify_provider), sbase: AsyncClient = Depends(get_supabase)):
    provider = await providers.get_provider(sbase, provider_id)
    if provider.verification_status != VerificationStatus.approved:
        raise HTTPException(status_code=403, detail="Your account must be verified before accepting requests")

    request = await service_requests.change_request_status(sbase, data.request_id, RequestStatus.accepted, provider_id=provider_id)

    await notify(
        sbase, "users", request.user_id,
        "Provider Assigned",
        f"{provider.name} accepted your request: {request.title}",
        {"request_id": request.id, "type": "request_accepted"},
    )
    return request

@app.post("/api/funcs/provider.updateRequestStatus", response_model=ServiceRequest)
async def provider_update_status(data: UpdateRequestStatusRequest, provider_id: str = Depends(verify_provider), sbase: AsyncClient = Depends(get_supabase)):
    if data.status == RequestStatus.accepted:
        raise HTTPException(status_code=400, detail="Use provider.acceptRequest to accept a request")

    request = await service_requests.change_request_status(sbase, data.request_id, data.status, provider_id=provider_id)

    if request.status == RequestStatus.completed:
        await notify(
            sbase, "users", request.user_id,
            "Request Completed",
            f"Your request has been marked as completed: {request.title}",
            {"request_id": request.id, "type": "request_completed"},
        )
    return request

# --- Messaging Functions ---

async def _ensure_party(sbase: AsyncClient, request_id: str, participant_id: str):
    parties = await messaging.get_request_parties(sbase, request_id)
    if not messaging.is_party(parties, participant_id):
        raise PermissionDeniedError("You are not part of this conversation")
    return parties

@app.post("/api/funcs/message.send", response_model=Message)
async def send_message(data: SendMessageRequest, sender_id: str = Depends(verify_token), sbase: AsyncClient = Depends(get_supabase)):
    return await messaging.send_message(sbase, data.request_id, sender_id, data.content, data.sender_type)

@app.post("/api/funcs/message.list", response_model=list[Message])
async def list_messages(data: RequestIdRequest, user_id: str = Depends(verify_token), sbase: AsyncClient = Depends(get_supabase)):
    await _ensure_party(sbase, data.request_id, user_id)
    return await messaging.get_messages(sbase, data.request_id)

@app.post("/api/funcs/message.markRead")
async def mark_read(data: MarkReadRequest, user_id: str = Depends(verify_token), sbase: AsyncClient = Depends(get_supabase)):
    side = await messaging.mark_messages_read(sbase, data.request_id, user_id, data.user_type)
    return {"message": "Messages marked as read", "user_type": side}

@app.post("/api/funcs/conversation.view", response_model=Optional[Conversation])
async def view_conversation(data: RequestIdRequest, user_id: str = Depends(verify_token), sbase: AsyncClient = Depends(get_supabase)):
    await _ensure_party(sbase, data.request_id, user_id)
    return await messaging.get_conversation(sbase, data.request_id)

@app.post("/api/funcs/conversation.listMine", response_model=list[ConversationSummary])
async def list_user_conversations(user_id: str = Depends(verify_user), sbase: AsyncClient = Depends(get_supabase)):
    return await messaging.list_conversations(sbase, user_id)

@app.post("/api/funcs/conversation.listProvider", response_model=list[ConversationSummary])
async def list_provider_conversations(provider_id: str = Depends(verify_provider), sbase: AsyncClient = Depends(get_supabase)):
    return await messaging.list_conversations(sbase, provider_id, as_provider=True)

@app.websocket("/api/ws/messages/{request_id}")
async def message_stream(websocket: WebSocket, request_id: str, token: str = Query(...), sbase: AsyncClient = Depends(get_supabase)):
    """Forward every new message of a request's thread to the socket as JSON."""
    try:
        user_id = await get_auth_user_id(f"Bearer {token}", sbase)
        await _ensure_party(sbase, request_id, user_id)
    except (HTTPException, ServiceError) as e:
        logger.info("Rejected message stream for %s: %s", request_id, e)
        await websocket.close(code=1008)
        return

    await websocket.accept()
    queue: asyncio.Queue[Message] = asyncio.Queue()
    unsubscribe = await messaging.subscribe_to_messages(sbase, request_id, queue.put_nowait)

    async def forward():
        while True:
            message = await queue.get()
            await websocket.send_json(message.model_dump(mode="json"))

    async def receive():
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass

    tasks = {asyncio.create_task(receive()), asyncio.create_task(forward())}
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        for task in done:
            if task.exception() is not None:
                logger.warning("Message stream for %s stopped: %s", request_id, task.exception())
    finally:
        await unsubscribe()

# --- Review Functions ---

@app.post("/api/funcs/review.create", response_model=Review)
async def create_review(data: CreateReviewRequest, user_id: str = Depends(verify_user), sbase: AsyncClient = Depends(get_supabase)):
    return await reviews.create_review(sbase, user_id, data.request_id, data.rating, data.comment)

@app.post("/api/funcs/review.listForProvider", response_model=list[Review])
async def provider_reviews(data: ProviderIdRequest, sbase: AsyncClient = Depends(get_supabase)):
    return await reviews.get_provider_reviews(sbase, data.provider_id)

@app.post("/api/funcs/review.summary", response_model=ReviewSummary)
async def review_summary(data: ProviderReviewsRequest, sbase: AsyncClient = Depends(get_supabase)):
    return await reviews.get_review_summary(sbase, data.provider_id, data.rating, data.sort_by, data.limit)

# --- Report Functions ---

@app.post("/api/funcs/report.create", response_model=Report)
async def create_report(data: CreateReportRequest, reporter_id: str = Depends(verify_token), sbase: AsyncClient = Depends(get_supabase)):
    return await admin.create_report(sbase, reporter_id, data)

# --- Catalog Functions ---

@app.post("/api/funcs/catalog.categories", response_model=list[CatalogCategory])
async def list_categories(sbase: AsyncClient = Depends(get_supabase)):
    return await catalog.get_active_categories(sbase)

@app.post("/api/funcs/catalog.locations", response_model=list[ServiceLocation])
async def list_locations(data: Optional[LocationsRequest] = None, sbase: AsyncClient = Depends(get_supabase)):
    return await catalog.get_active_locations(sbase, data.region if data else None)

@app.post("/api/funcs/catalog.settings", response_model=list[SystemSetting])
async def list_settings(data: Optional[SettingsRequest] = None, sbase: AsyncClient = Depends(get_supabase)):
    return await catalog.get_system_settings(sbase, data.category if data else None)

@app.post("/api/funcs/catalog.setting")
async def get_setting(data: SettingKeyRequest, sbase: AsyncClient = Depends(get_supabase)):
    return {"key": data.key, "value": await catalog.get_setting_value(sbase, data.key)}

@app.post("/api/funcs/catalog.rateSuggestions", response_model=dict[str, RateRange])
async def rate_suggestions(data: RateSuggestionRequest, sbase: AsyncClient = Depends(get_supabase)):
    return await catalog.get_rate_suggestions(sbase, data.categories)

@app.post("/api/funcs/catalog.suggestedRate")
async def suggested_rate(data: RateSuggestionRequest, sbase: AsyncClient = Depends(get_supabase)):
    return {"rate": await catalog.calculate_suggested_rate(sbase, data.categories)}

@app.post("/api/funcs/catalog.budgetSuggestion", response_model=RateRange)
async def budget_suggestion(data: BudgetSuggestionRequest):
    return get_budget_suggestion(data.category)

# --- Admin Functions ---

@app.post("/api/funcs/admin.check")
async def check_admin(user_id: str = Depends(verify_token), sbase: AsyncClient = Depends(get_supabase)):
    return {"is_admin": await admin.is_admin(sbase, user_id)}

@app.post("/api/funcs/admin.stats", response_model=AdminStats)
async def admin_stats(admin_id: str = Depends(verify_admin), sbase: AsyncClient = Depends(get_supabase)):
    return await admin.get_admin_stats(sbase)

@app.post("/api/funcs/admin.pendingProviders", response_model=list[ServiceProvider])
async def pending_providers(admin_id: str = Depends(verify_admin), sbase: AsyncClient = Depends(get_supabase)):
    return await admin.get_pending_providers(sbase)

@app.post("/api/funcs/admin.approveProvider", response_model=ServiceProvider)
async def approve_provider(data: ReviewProviderRequest, admin_id: str = Depends(verify_admin), sbase: AsyncClient = Depends(get_supabase)):
    return await admin.approve_provider(sbase, data.provider_id, admin_id, data.notes)

@app.post("/api/funcs/admin.rejectProvider", response_model=ServiceProvider)
async def reject_provider(data: RejectProviderRequest, admin_id: str = Depends(verify_admin), sbase: AsyncClient = Depends(get_supabase)):
    return await admin.reject_provider(sbase, data.provider_id, admin_id, data.reason)

@app.post("/api/funcs/admin.verificationStats", response_model=VerificationStats)
async def verification_stats(admin_id: str = Depends(verify_admin), sbase: AsyncClient = Depends(get_supabase)):
    return await admin.get_verification_stats(sbase)

@app.post("/api/funcs/admin.bulkApproveProviders", response_model=BulkResult)
async def bulk_approve(data: BulkApproveRequest, admin_id: str = Depends(verify_admin), sbase: AsyncClient = Depends(get_supabase)):
    return await admin.bulk_approve_providers(sbase, data.provider_ids, admin_id)

@app.post("/api/funcs/admin.pendingReports", response_model=list[PendingReport])
async def pending_reports(admin_id: str = Depends(verify_admin), sbase: AsyncClient = Depends(get_supabase)):
    return await admin.get_pending_reports(sbase)

@app.post("/api/funcs/admin.updateReportStatus", response_model=Report)
async def update_report_status(data: ReportStatusRequest, admin_id: str = Depends(verify_admin), sbase: AsyncClient = Depends(get_supabase)):
    return await admin.set_report_status(sbase, data.report_id, data.status, admin_id, data.notes)

@app.post("/api/funcs/admin.blockUser")
async def block_user(data: BlockRequest, admin_id: str = Depends(verify_admin), sbase: AsyncClient = Depends(get_supabase)):
    await admin.block_user(sbase, data.target_id, data.reason, admin_id)
    return {"message": "User blocked"}

@app.post("/api/funcs/admin.blockProvider")
async def block_provider(data: BlockRequest, admin_id: str = Depends(verify_admin), sbase: AsyncClient = Depends(get_supabase)):
    await admin.block_provider(sbase, data.target_id, data.reason, admin_id)
    return {"message": "Provider blocked"}

@app.post("/api/funcs/admin.bulkUpdateRequestStatus", response_model=BulkResult)
async def bulk_update_requests(data: BulkStatusRequest, admin_id: str = Depends(verify_admin), sbase: AsyncClient = Depends(get_supabase)):
    return await service_requests.bulk_update_status(sbase, data.request_ids, data.status)

# Catalog CRUD
@app.post("/api/funcs/admin.category.create", response_model=CatalogCategory)
async def admin_create_category(data: CategoryRequest, admin_id: str = Depends(verify_admin), sbase: AsyncClient = Depends(get_supabase)):
    return await catalog.create_category(sbase, data)

@app.post("/api/funcs/admin.category.update", response_model=CatalogCategory)
async def admin_update_category(data: CatalogUpdateRequest, admin_id: str = Depends(verify_admin), sbase: AsyncClient = Depends(get_supabase)):
    return await catalog.update_category(sbase, data.id, data.updates)

@app.post("/api/funcs/admin.category.delete")
async def admin_delete_category(data: CatalogIdRequest, admin_id: str = Depends(verify_admin), sbase: AsyncClient = Depends(get_supabase)):
    await catalog.delete_category(sbase, data.id)
    return {"message": "Category deleted"}

@app.post("/api/funcs/admin.location.create", response_model=ServiceLocation)
async def admin_create_location(data: LocationRequest, admin_id: str = Depends(verify_admin), sbase: AsyncClient = Depends(get_supabase)):
    return await catalog.create_location(sbase, data)

@app.post("/api/funcs/admin.location.update", response_model=ServiceLocation)
async def admin_update_location(data: CatalogUpdateRequest, admin_id: str = Depends(verify_admin), sbase: AsyncClient = Depends(get_supabase)):
    return await catalog.update_location(sbase, data.id, data.updates)

@app.post("/api/funcs/admin.location.delete")
async def admin_delete_location(data: CatalogIdRequest, admin_id: str = Depends(verify_admin), sbase: AsyncClient = Depends(get_supabase)):
    await catalog.delete_location(sbase, data.id)
    return {"message": "Location deleted"}

def main():
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)

if __name__ == "__main__":
    main()
