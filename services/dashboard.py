from db import AsyncClient
from filtering import request_view
from models import ProviderDashboard, ProviderStats, RequestStatus, ServiceProvider, ServiceRequest
from schema import ProviderDashboardRequest, SearchRequestsRequest
from services.service_requests import get_available_requests, search_requests

ACTIVE_STATUSES = (RequestStatus.accepted, RequestStatus.in_progress)
OWN_STATUSES = [RequestStatus.accepted, RequestStatus.in_progress, RequestStatus.completed]


def provider_stats(available: list[ServiceRequest], mine: list[ServiceRequest]) -> ProviderStats:
    completed = [r for r in mine if r.status == RequestStatus.completed]
    return ProviderStats(
        total_available=len(available),
        total_accepted=len(mine),
        active_jobs=sum(1 for r in mine if r.status in ACTIVE_STATUSES),
        completed_jobs=len(completed),
        total_earnings=sum(r.budget for r in completed),
    )


async def get_provider_dashboard(
    sbase: AsyncClient, provider: ServiceProvider, view: ProviderDashboardRequest
) -> ProviderDashboard:
    """Open requests the provider can take, their own jobs, and totals.

    Stats always cover the unfiltered lists; the filters and sort in ``view``
    only shape the tab being displayed.
    """
    available = [
        r for r in await get_available_requests(sbase)
        if r.category in provider.services
    ]
    mine = await search_requests(sbase, SearchRequestsRequest(status=OWN_STATUSES), provider_id=provider.id)

    if view.tab == "available":
        available_view = request_view(available, view.filters, view.sort_by, view.sort_order)
        mine_view = mine
    else:
        available_view = available
        mine_view = request_view(mine, view.filters, view.sort_by, view.sort_order)

    return ProviderDashboard(
        available_requests=available_view,
        my_requests=mine_view,
        stats=provider_stats(available, mine),
    )
