from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class Urgency(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    emergency = "emergency"


class RequestStatus(str, Enum):
    pending = "pending"
    accepted = "accepted"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"


class VerificationStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class ReportStatus(str, Enum):
    pending = "pending"
    investigating = "investigating"
    resolved = "resolved"
    dismissed = "dismissed"


class SenderType(str, Enum):
    user = "user"
    provider = "provider"
    system = "system"


class User(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    avatar: Optional[str] = None
    is_admin: bool = False
    is_blocked: bool = False
    created_at: Optional[datetime] = None


class ProviderSummary(BaseModel):
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    rating: float = 0
    verified: Optional[bool] = None


class ServiceProvider(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    services: list[str] = []
    location: str = ""
    rating: float = 0
    total_jobs: int = 0
    verification_status: VerificationStatus = VerificationStatus.pending
    hourly_rate: float = 0
    bio: Optional[str] = None
    experience_years: Optional[int] = None
    avatar: Optional[str] = None
    is_blocked: bool = False
    admin_notes: Optional[str] = None
    verification_requested_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def verified(self) -> bool:
        return self.verification_status == VerificationStatus.approved


class ServiceRequest(BaseModel):
    id: str
    user_id: str
    provider_id: Optional[str] = None
    title: str
    description: str = ""
    category: str
    location: str
    urgency: Urgency = Urgency.medium
    status: RequestStatus = RequestStatus.pending
    budget: float = 0
    created_at: datetime
    scheduled_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    provider: Optional[ProviderSummary] = None


class Message(BaseModel):
    id: str
    service_request_id: str
    sender_id: str
    sender_type: SenderType
    content: str
    message_type: str = "text"
    read_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class Conversation(BaseModel):
    id: str
    service_request_id: str
    user_id: str
    provider_id: Optional[str] = None
    last_message_at: Optional[datetime] = None
    user_unread_count: int = 0
    provider_unread_count: int = 0
    request_title: Optional[str] = None
    request_status: Optional[RequestStatus] = None
    user_name: Optional[str] = None
    provider_name: Optional[str] = None
    created_at: Optional[datetime] = None


class ConversationSummary(BaseModel):
    id: str
    service_request_id: str
    title: str
    other_party_name: str
    other_party_avatar: Optional[str] = None
    last_message: str
    last_message_at: Optional[datetime] = None
    unread_count: int = 0
    status: Optional[RequestStatus] = None


class Review(BaseModel):
    id: str
    service_request_id: str
    user_id: str
    provider_id: str
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = None
    created_at: Optional[datetime] = None
    reviewer_name: Optional[str] = None


class ReviewSummary(BaseModel):
    reviews: list[Review] = []
    average_rating: float = 0
    total_reviews: int = 0
    rating_distribution: dict[int, int] = {}


class Report(BaseModel):
    id: str
    reporter_id: str
    reported_user_id: Optional[str] = None
    reported_provider_id: Optional[str] = None
    reported_request_id: Optional[str] = None
    report_type: str
    description: str
    status: ReportStatus = ReportStatus.pending
    admin_notes: Optional[str] = None
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class PendingReport(BaseModel):
    id: str
    reporter_name: str
    reported_name: str
    report_type: str
    description: str
    status: ReportStatus
    created_at: Optional[datetime] = None


class AdminStats(BaseModel):
    total_users: int = 0
    total_providers: int = 0
    pending_verifications: int = 0
    pending_reports: int = 0
    pending_requests: int = 0
    completed_requests: int = 0


class VerificationStats(BaseModel):
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    total: int = 0


class RequestStats(BaseModel):
    total: int = 0
    pending: int = 0
    accepted: int = 0
    in_progress: int = 0
    completed: int = 0
    cancelled: int = 0
    total_spent: float = 0


class ProviderStats(BaseModel):
    total_available: int = 0
    total_accepted: int = 0
    active_jobs: int = 0
    completed_jobs: int = 0
    total_earnings: float = 0


class ProviderDashboard(BaseModel):
    available_requests: list[ServiceRequest] = []
    my_requests: list[ServiceRequest] = []
    stats: ProviderStats = ProviderStats()


class BulkResult(BaseModel):
    updated: list[str] = []
    skipped: list[str] = []


class CatalogCategory(BaseModel):
    id: str
    value: str
    label: str
    description: Optional[str] = None
    icon: str = "settings"
    color_class: Optional[str] = None
    is_active: bool = True
    sort_order: int = 0
    rate_min: float = 500
    rate_typical: float = 1000
    rate_max: float = 2000


class ServiceLocation(BaseModel):
    id: str
    name: str
    region: Optional[str] = None
    county: Optional[str] = None
    is_active: bool = True
    sort_order: int = 0


class SystemSetting(BaseModel):
    id: str
    key: str
    value: Any = None
    description: Optional[str] = None
    category: str = "general"
    is_active: bool = True


class RateRange(BaseModel):
    min: float
    typical: float
    max: float
