from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from filtering import (
    ProviderFilters,
    ProviderSortField,
    ReviewSortField,
    RequestFilters,
    RequestSortField,
    SortOrder,
)
from models import RequestStatus, ReportStatus, SenderType, Urgency

# --- Accounts ---

class LoginRequest(BaseModel):
    email: str
    password: str

class RegisterRequest(BaseModel):
    email: str
    password: str
    name: str
    phone: str | None = None
    location: str | None = None

class ProviderRegisterRequest(BaseModel):
    email: str
    password: str
    name: str
    phone: str
    location: str
    services: list[str]
    hourly_rate: float
    experience_years: int = 0
    bio: str

class UpdateProfileRequest(BaseModel):
    name: str | None = None
    phone: str | None = None
    location: str | None = None
    avatar: str | None = None

class UpdateProviderProfileRequest(BaseModel):
    name: str | None = None
    phone: str | None = None
    location: str | None = None
    services: list[str] | None = None
    hourly_rate: float | None = None
    experience_years: int | None = None
    bio: str | None = None
    avatar: str | None = None

class RegisterPushTokenRequest(BaseModel):
    token: str
    user_type: str = "user"  # "user" or "provider"

# --- Service requests ---

class CreateServiceRequest(BaseModel):
    title: str
    description: str
    category: str
    location: str
    urgency: Urgency = Urgency.medium
    budget: float
    scheduled_date: Optional[datetime] = None

class UpdateServiceRequest(BaseModel):
    request_id: str
    title: str | None = None
    description: str | None = None
    category: str | None = None
    location: str | None = None
    urgency: Urgency | None = None
    budget: float | None = None
    scheduled_date: Optional[datetime] = None

class RequestIdRequest(BaseModel):
    request_id: str

class UpdateRequestStatusRequest(BaseModel):
    request_id: str
    status: RequestStatus

class BulkStatusRequest(BaseModel):
    request_ids: list[str]
    status: RequestStatus

class AvailableRequestsRequest(BaseModel):
    category: str | None = None

class SearchRequestsRequest(BaseModel):
    status: list[RequestStatus] = []
    category: list[str] = []
    urgency: list[Urgency] = []
    min_budget: float | None = None
    max_budget: float | None = None
    location: str | None = None
    search_term: str | None = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    limit: int | None = Field(default=None, ge=1)
    offset: int = Field(default=0, ge=0)

class RequestViewRequest(BaseModel):
    filters: RequestFilters = RequestFilters()
    sort_by: RequestSortField | None = None
    sort_order: SortOrder = SortOrder.desc

class ProviderDashboardRequest(RequestViewRequest):
    tab: str = Field(default="available", pattern="^(available|mine)$")

# --- Providers ---

class ProviderSearchRequest(BaseModel):
    filters: ProviderFilters = ProviderFilters()
    sort_by: ProviderSortField = ProviderSortField.rating
    sort_order: SortOrder = SortOrder.desc
    limit: int | None = Field(default=None, ge=1)
    offset: int = Field(default=0, ge=0)

class ProviderIdRequest(BaseModel):
    provider_id: str

# --- Messaging ---

class SendMessageRequest(BaseModel):
    request_id: str
    content: str
    sender_type: SenderType = SenderType.user

class MarkReadRequest(BaseModel):
    request_id: str
    user_type: SenderType | None = None  # defaults to the caller's side of the thread

# --- Reviews ---

class CreateReviewRequest(BaseModel):
    request_id: str
    rating: int = Field(ge=1, le=5)
    comment: str | None = None

class ProviderReviewsRequest(BaseModel):
    provider_id: str
    rating: int | None = Field(default=None, ge=1, le=5)
    sort_by: ReviewSortField = ReviewSortField.newest
    limit: int | None = Field(default=None, ge=1)

# --- Reports / admin ---

class CreateReportRequest(BaseModel):
    reported_user_id: str | None = None
    reported_provider_id: str | None = None
    reported_request_id: str | None = None
    report_type: str
    description: str

class ReviewProviderRequest(BaseModel):
    provider_id: str
    notes: str | None = None

class RejectProviderRequest(BaseModel):
    provider_id: str
    reason: str

class BulkApproveRequest(BaseModel):
    provider_ids: list[str]

class ReportStatusRequest(BaseModel):
    report_id: str
    status: ReportStatus
    notes: str | None = None

class BlockRequest(BaseModel):
    target_id: str
    reason: str

# --- Catalog ---

class CategoryRequest(BaseModel):
    value: str
    label: str
    description: str | None = None
    icon: str = "settings"
    color_class: str | None = None
    is_active: bool = True
    sort_order: int = 0
    rate_min: float = 500
    rate_typical: float = 1000
    rate_max: float = 2000

class LocationRequest(BaseModel):
    name: str
    region: str | None = None
    county: str | None = None
    is_active: bool = True
    sort_order: int = 0

class CatalogUpdateRequest(BaseModel):
    id: str
    updates: dict[str, Any]

class CatalogIdRequest(BaseModel):
    id: str

class LocationsRequest(BaseModel):
    region: str | None = None

class SettingsRequest(BaseModel):
    category: str | None = None

class SettingKeyRequest(BaseModel):
    key: str

class RateSuggestionRequest(BaseModel):
    categories: list[str]

class BudgetSuggestionRequest(BaseModel):
    category: str
