"""In-memory filtering and sorting of already-fetched requests, providers and reviews.

Result sets here are small (dozens of rows), so every call recomputes the
whole view: filter with a conjunction of the active predicates, then sort
on one enumerated key. Both sort directions are stable, so records that
compare equal keep their fetched order.
"""

from enum import Enum
from typing import Callable, Iterable, Optional, TypeVar

from pydantic import BaseModel

from models import Review, ServiceProvider, ServiceRequest, Urgency, RequestStatus

T = TypeVar("T")

URGENCY_RANK = {
    Urgency.low: 1,
    Urgency.medium: 2,
    Urgency.high: 3,
    Urgency.emergency: 4,
}


class SortOrder(str, Enum):
    asc = "asc"
    desc = "desc"


class RequestSortField(str, Enum):
    created_at = "created_at"
    budget = "budget"
    urgency = "urgency"
    location = "location"


class ProviderSortField(str, Enum):
    rating = "rating"
    hourly_rate = "hourly_rate"
    total_jobs = "total_jobs"
    name = "name"


class ReviewSortField(str, Enum):
    newest = "newest"
    oldest = "oldest"
    highest = "highest"
    lowest = "lowest"


class RequestFilters(BaseModel):
    search_term: Optional[str] = None
    category: Optional[str] = None
    urgency: Optional[Urgency] = None
    status: Optional[RequestStatus] = None
    location: Optional[str] = None
    min_budget: Optional[float] = None
    max_budget: Optional[float] = None


class ProviderFilters(BaseModel):
    search_term: Optional[str] = None
    category: Optional[str] = None
    location: Optional[str] = None
    min_rating: Optional[float] = None
    max_rate: Optional[float] = None


def _contains(haystack: Optional[str], needle: str) -> bool:
    return needle in (haystack or "").lower()


def request_predicates(filters: RequestFilters) -> list[Callable[[ServiceRequest], bool]]:
    """Build one predicate per active filter."""
    predicates = []
    if filters.search_term:
        term = filters.search_term.lower()
        predicates.append(
            lambda r: _contains(r.title, term)
            or _contains(r.description, term)
            or _contains(r.location, term)
        )
    if filters.category:
        predicates.append(lambda r: r.category == filters.category)
    if filters.urgency is not None:
        predicates.append(lambda r: r.urgency == filters.urgency)
    if filters.status is not None:
        predicates.append(lambda r: r.status == filters.status)
    if filters.location:
        location = filters.location.lower()
        predicates.append(lambda r: _contains(r.location, location))
    if filters.min_budget is not None:
        predicates.append(lambda r: r.budget >= filters.min_budget)
    if filters.max_budget is not None:
        predicates.append(lambda r: r.budget <= filters.max_budget)
    return predicates


def provider_predicates(filters: ProviderFilters) -> list[Callable[[ServiceProvider], bool]]:
    predicates = []
    if filters.search_term:
        term = filters.search_term.lower()
        predicates.append(lambda p: _contains(p.name, term) or _contains(p.bio, term))
    if filters.category:
        predicates.append(lambda p: filters.category in p.services)
    if filters.location:
        location = filters.location.lower()
        predicates.append(lambda p: _contains(p.location, location))
    if filters.min_rating is not None:
        predicates.append(lambda p: p.rating >= filters.min_rating)
    if filters.max_rate is not None:
        predicates.append(lambda p: p.hourly_rate <= filters.max_rate)
    return predicates


def apply_predicates(items: Iterable[T], predicates: list[Callable[[T], bool]]) -> list[T]:
    return [item for item in items if all(p(item) for p in predicates)]


def filter_requests(requests: Iterable[ServiceRequest], filters: RequestFilters) -> list[ServiceRequest]:
    return apply_predicates(requests, request_predicates(filters))


def filter_providers(providers: Iterable[ServiceProvider], filters: ProviderFilters) -> list[ServiceProvider]:
    return apply_predicates(providers, provider_predicates(filters))


_REQUEST_KEYS: dict[RequestSortField, Callable[[ServiceRequest], object]] = {
    RequestSortField.created_at: lambda r: r.created_at,
    RequestSortField.budget: lambda r: r.budget,
    RequestSortField.urgency: lambda r: URGENCY_RANK[r.urgency],
    RequestSortField.location: lambda r: r.location,
}

_PROVIDER_KEYS: dict[ProviderSortField, Callable[[ServiceProvider], object]] = {
    ProviderSortField.rating: lambda p: p.rating,
    ProviderSortField.hourly_rate: lambda p: p.hourly_rate,
    ProviderSortField.total_jobs: lambda p: p.total_jobs,
    ProviderSortField.name: lambda p: p.name.lower(),
}


def sort_requests(
    requests: Iterable[ServiceRequest],
    field: Optional[RequestSortField] = None,
    order: SortOrder = SortOrder.desc,
) -> list[ServiceRequest]:
    items = list(requests)
    if field is None:
        return items
    return sorted(items, key=_REQUEST_KEYS[RequestSortField(field)], reverse=order == SortOrder.desc)


def sort_providers(
    providers: Iterable[ServiceProvider],
    field: Optional[ProviderSortField] = None,
    order: SortOrder = SortOrder.desc,
) -> list[ServiceProvider]:
    items = list(providers)
    if field is None:
        return items
    return sorted(items, key=_PROVIDER_KEYS[ProviderSortField(field)], reverse=order == SortOrder.desc)


def _created_key(review: Review):
    # reviews without a timestamp sort as the oldest
    return (review.created_at is not None, review.created_at or 0)


_REVIEW_ORDER: dict[ReviewSortField, tuple[Callable[[Review], object], bool]] = {
    ReviewSortField.newest: (_created_key, True),
    ReviewSortField.oldest: (_created_key, False),
    ReviewSortField.highest: (lambda r: r.rating, True),
    ReviewSortField.lowest: (lambda r: r.rating, False),
}


def filter_reviews(reviews: Iterable[Review], rating: Optional[int] = None) -> list[Review]:
    if rating is None:
        return list(reviews)
    return [r for r in reviews if r.rating == rating]


def sort_reviews(reviews: Iterable[Review], sort_by: ReviewSortField = ReviewSortField.newest) -> list[Review]:
    key, reverse = _REVIEW_ORDER[ReviewSortField(sort_by)]
    return sorted(reviews, key=key, reverse=reverse)


def paginate(items: list[T], limit: Optional[int] = None, offset: int = 0) -> list[T]:
    if limit is None:
        return items[offset:]
    return items[offset:offset + limit]


def request_view(
    requests: Iterable[ServiceRequest],
    filters: Optional[RequestFilters] = None,
    sort_by: Optional[RequestSortField] = None,
    order: SortOrder = SortOrder.desc,
) -> list[ServiceRequest]:
    """Filter then sort, the way a dashboard list derives what it shows."""
    filtered = filter_requests(requests, filters or RequestFilters())
    return sort_requests(filtered, sort_by, order)


def provider_view(
    providers: Iterable[ServiceProvider],
    filters: Optional[ProviderFilters] = None,
    sort_by: Optional[ProviderSortField] = None,
    order: SortOrder = SortOrder.desc,
) -> list[ServiceProvider]:
    filtered = filter_providers(providers, filters or ProviderFilters())
    return sort_providers(filtered, sort_by, order)
