import re

from models import RateRange

PHONE_PATTERN = re.compile(r"^\+254\d{9}$")
EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")

MIN_BUDGET = 100
MAX_BUDGET = 1_000_000

BUDGET_SUGGESTIONS = {
    "electrical": RateRange(min=500, typical=2000, max=10000),
    "plumbing": RateRange(min=800, typical=3000, max=15000),
    "automotive": RateRange(min=1000, typical=5000, max=50000),
    "hvac": RateRange(min=1500, typical=8000, max=30000),
    "carpentry": RateRange(min=1000, typical=5000, max=25000),
    "painting": RateRange(min=500, typical=3000, max=20000),
    "general_maintenance": RateRange(min=300, typical=1500, max=8000),
}
DEFAULT_BUDGET = RateRange(min=500, typical=2000, max=10000)


def validate_service_request(
    title: str,
    description: str,
    category: str | None,
    location: str | None,
    budget: float | None,
) -> dict[str, str]:
    """Check a request form; returns field -> message, empty when valid."""
    errors = {}

    title = (title or "").strip()
    if not title:
        errors["title"] = "Service title is required"
    elif len(title) < 5:
        errors["title"] = "Title must be at least 5 characters long"
    elif len(title) > 100:
        errors["title"] = "Title must be less than 100 characters"

    description = (description or "").strip()
    if not description:
        errors["description"] = "Description is required"
    elif len(description) < 20:
        errors["description"] = "Please provide more details (at least 20 characters)"
    elif len(description) > 1000:
        errors["description"] = "Description must be less than 1000 characters"

    if not category:
        errors["category"] = "Please select a service category"

    if not location:
        errors["location"] = "Please select your location"

    if not budget or budget <= 0:
        errors["budget"] = "Please enter a valid budget amount"
    elif budget < MIN_BUDGET:
        errors["budget"] = "Minimum budget is KES 100"
    elif budget > MAX_BUDGET:
        errors["budget"] = "Maximum budget is KES 1,000,000"

    return errors


def validate_provider_signup(
    name: str,
    email: str,
    password: str,
    phone: str,
    location: str,
    services: list[str],
    hourly_rate: float,
    experience_years: int,
    bio: str,
) -> list[str]:
    errors = []

    if not name or len(name) < 2:
        errors.append("Name must be at least 2 characters long")
    if not email or not EMAIL_PATTERN.search(email):
        errors.append("Please provide a valid email address")
    if not password or len(password) < 6:
        errors.append("Password must be at least 6 characters long")
    if not phone or not PHONE_PATTERN.match(phone):
        errors.append("Please provide a valid Kenyan phone number (+254XXXXXXXXX)")
    if not location:
        errors.append("Please select your location")
    if not services:
        errors.append("Please select at least one service")
    if not hourly_rate or hourly_rate < 100 or hourly_rate > 10000:
        errors.append("Hourly rate must be between KES 100 and KES 10,000")
    if experience_years < 0 or experience_years > 50:
        errors.append("Please provide valid years of experience")
    if not bio or len(bio) < 20:
        errors.append("Bio must be at least 20 characters long")
    if bio and len(bio) > 500:
        errors.append("Bio must be less than 500 characters")

    return errors


def get_budget_suggestion(category: str) -> RateRange:
    return BUDGET_SUGGESTIONS.get(category, DEFAULT_BUDGET)
