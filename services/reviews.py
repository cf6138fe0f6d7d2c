import logging
from typing import Optional

from db import AsyncClient
from exceptions import ConflictError, PermissionDeniedError, ValidationFailedError
from filtering import ReviewSortField, filter_reviews, paginate, sort_reviews
from models import RequestStatus, Review, ReviewSummary
from services.base import execute, first_or_404

logger = logging.getLogger(__name__)

TABLE = "reviews"


def average_rating(ratings: list[int]) -> Optional[float]:
    """Arithmetic mean rounded to one decimal, ``None`` when there is nothing to average."""
    if not ratings:
        return None
    return round(sum(ratings) / len(ratings), 1)


async def create_review(
    sbase: AsyncClient, user_id: str, request_id: str, rating: int, comment: Optional[str] = None
) -> Review:
    if rating < 1 or rating > 5:
        raise ValidationFailedError("Rating must be between 1 and 5")

    req_res = await execute(
        sbase.table("service_requests").select("id, user_id, provider_id, status").eq("id", request_id),
        "fetch service request",
    )
    request = first_or_404(req_res, "Service request")
    if request["user_id"] != user_id:
        raise PermissionDeniedError("Service request does not belong to you")
    if request["status"] != RequestStatus.completed.value or not request.get("provider_id"):
        raise ConflictError("Only completed requests with a provider can be reviewed")

    existing = await execute(
        sbase.table(TABLE).select("id").eq("service_request_id", request_id),
        "fetch existing review",
    )
    if existing.data:
        raise ConflictError("This request has already been reviewed")

    res = await execute(
        sbase.table(TABLE).insert({
            "service_request_id": request_id,
            "user_id": user_id,
            "provider_id": request["provider_id"],
            "rating": rating,
            "comment": comment,
        }),
        "create review",
    )
    review = Review.model_validate(first_or_404(res, "Created review"))

    await update_provider_rating(sbase, review.provider_id)
    return review


async def get_provider_reviews(sbase: AsyncClient, provider_id: str) -> list[Review]:
    res = await execute(
        sbase.table(TABLE).select("*, users (name)").eq("provider_id", provider_id).order("created_at", desc=True),
        "fetch provider reviews",
    )
    reviews = []
    for row in res.data or []:
        data = {k: v for k, v in row.items() if k != "users"}
        data["reviewer_name"] = (row.get("users") or {}).get("name")
        reviews.append(Review.model_validate(data))
    return reviews


async def update_provider_rating(sbase: AsyncClient, provider_id: str) -> Optional[float]:
    res = await execute(
        sbase.table(TABLE).select("rating").eq("provider_id", provider_id),
        "fetch provider ratings",
    )
    ratings = [row["rating"] for row in res.data or []]
    average = average_rating(ratings)
    if average is None:
        return None

    await execute(
        sbase.table("service_providers").update({"rating": average, "total_jobs": len(ratings)}).eq("id", provider_id),
        "update provider rating",
    )
    logger.info("Provider %s rating now %.1f over %d reviews", provider_id, average, len(ratings))
    return average


def rating_distribution(reviews: list[Review]) -> dict[int, int]:
    counts = {star: 0 for star in range(1, 6)}
    for review in reviews:
        counts[review.rating] += 1
    return counts


async def get_review_summary(
    sbase: AsyncClient,
    provider_id: str,
    rating: Optional[int] = None,
    sort_by: ReviewSortField = ReviewSortField.newest,
    limit: Optional[int] = None,
) -> ReviewSummary:
    """Rating stats over all of a provider's reviews, plus the filtered and sorted list to show.

    ``rating`` keeps only reviews with that many stars; the stats ignore it.
    """
    all_reviews = await get_provider_reviews(sbase, provider_id)
    shown = sort_reviews(filter_reviews(all_reviews, rating), sort_by)
    return ReviewSummary(
        reviews=paginate(shown, limit),
        average_rating=average_rating([r.rating for r in all_reviews]) or 0,
        total_reviews=len(all_reviews),
        rating_distribution=rating_distribution(all_reviews),
    )
