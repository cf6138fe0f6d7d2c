import asyncio

import pytest

from exceptions import ConflictError, NotFoundError, PermissionDeniedError, ServiceError, ValidationFailedError
from models import ProviderStats, RequestStatus, ReportStatus, SenderType, ServiceProvider, ServiceRequest
from schema import CategoryRequest, CreateReportRequest, ProviderDashboardRequest, SearchRequestsRequest
from services import admin, catalog, dashboard, messaging, reviews, service_requests
from services.base import execute


def test_average_rating():
    assert reviews.average_rating([5, 4, 4]) == 4.3
    assert reviews.average_rating([5]) == 5.0
    assert reviews.average_rating([]) is None


def test_execute_wraps_sdk_errors(mock_supabase):
    mock_supabase.respond("users", "select", RuntimeError("timeout"))

    with pytest.raises(ServiceError) as exc:
        asyncio.run(execute(mock_supabase.table("users").select("*"), "fetch users"))
    assert exc.value.message == "Failed to fetch users"
    assert isinstance(exc.value.cause, RuntimeError)


def test_missing_request_is_not_found(mock_supabase):
    with pytest.raises(NotFoundError, match="Service request not found"):
        asyncio.run(service_requests.get_service_request(mock_supabase, "missing"))


def test_request_embeds_provider_summary(make_request_row):
    row = make_request_row(provider_id="prov-1", service_providers={
        "name": "Jane Wanjiku", "phone": "+254712345678", "rating": 4.5, "verification_status": "approved",
    })
    request = service_requests.row_to_request(row)
    assert request.provider.name == "Jane Wanjiku"
    assert request.provider.verified is True


def test_complete_request_stamps_completed_at(mock_supabase, make_request_row):
    mock_supabase.respond("service_requests", "select", [make_request_row(status="in_progress", provider_id="prov-1")])
    mock_supabase.respond("service_requests", "update", [make_request_row(
        status="completed", provider_id="prov-1", completed_at="2024-05-02T10:00:00+00:00",
    )])

    result = asyncio.run(service_requests.change_request_status(
        mock_supabase, "req-1", RequestStatus.completed, provider_id="prov-1",
    ))

    assert result.status == RequestStatus.completed
    update = mock_supabase.queries("service_requests", "update")[0]
    assert update.payload["status"] == "completed"
    assert "completed_at" in update.payload
    system_message = mock_supabase.queries("messages", "insert")[0]
    assert system_message.payload["content"] == "This request has been marked as completed."


def test_other_provider_cannot_change_request(mock_supabase, make_request_row):
    mock_supabase.respond("service_requests", "select", [make_request_row(status="accepted", provider_id="prov-1")])

    with pytest.raises(PermissionDeniedError):
        asyncio.run(service_requests.change_request_status(
            mock_supabase, "req-1", RequestStatus.in_progress, provider_id="prov-2",
        ))


def test_delete_only_pending_or_cancelled(mock_supabase, make_request_row):
    mock_supabase.respond("service_requests", "select", [make_request_row(status="accepted")])

    with pytest.raises(ConflictError):
        asyncio.run(service_requests.delete_service_request(mock_supabase, "user-1", "req-1"))
    assert not mock_supabase.queries("service_requests", "delete")


def test_request_stats(mock_supabase):
    mock_supabase.respond("service_requests", "select", [
        {"status": "pending", "budget": 1000},
        {"status": "completed", "budget": 2500},
        {"status": "completed", "budget": 4000},
        {"status": "cancelled", "budget": 900},
    ])

    stats = asyncio.run(service_requests.get_request_stats(mock_supabase, "user-1"))

    assert stats.total == 4
    assert stats.pending == 1
    assert stats.completed == 2
    assert stats.cancelled == 1
    assert stats.total_spent == 6500


def test_bulk_update_status(mock_supabase):
    mock_supabase.respond("service_requests", "select", [
        {"id": "r1", "status": "pending"},
        {"id": "r2", "status": "completed"},
        {"id": "r3", "status": "accepted"},
    ])
    mock_supabase.respond("service_requests", "update", [{"id": "r1"}])
    mock_supabase.respond("service_requests", "update", [])

    result = asyncio.run(service_requests.bulk_update_status(
        mock_supabase, ["r1", "r2", "r3", "r4"], RequestStatus.cancelled,
    ))

    assert result.updated == ["r1"]
    assert sorted(result.skipped) == ["r2", "r3", "r4"]
    guards = [q.eqs()["status"] for q in mock_supabase.queries("service_requests", "update")]
    assert guards == ["pending", "accepted"]


def test_search_requests_builds_query(mock_supabase):
    filters = SearchRequestsRequest(status=["pending"], min_budget=500, search_term="sink", limit=10, offset=20)
    asyncio.run(service_requests.search_requests(mock_supabase, filters, user_id="user-1"))

    query = mock_supabase.queries("service_requests", "select")[0]
    calls = {name: args for name, args, _ in query.filters}
    assert calls["in_"] == ("status", ["pending"])
    assert calls["gte"] == ("budget", 500)
    assert calls["or_"] == ("title.ilike.%sink%,description.ilike.%sink%",)
    assert calls["range"] == (20, 29)
    assert query.eqs() == {"user_id": "user-1"}


def test_bulk_accept_is_rejected(mock_supabase):
    with pytest.raises(ValidationFailedError):
        asyncio.run(service_requests.bulk_update_status(mock_supabase, ["r1"], RequestStatus.accepted))
    assert not mock_supabase.calls


def test_clean_search_term():
    assert service_requests.clean_search_term("sink, (tap)") == "sink tap"
    assert service_requests.clean_search_term('"leak"') == "leak"
    assert service_requests.clean_search_term(None) == ""


def test_search_term_cannot_inject_filters(mock_supabase):
    filters = SearchRequestsRequest(search_term="sink,status.eq.completed")
    asyncio.run(service_requests.search_requests(mock_supabase, filters))

    query = mock_supabase.queries("service_requests", "select")[0]
    calls = {name: args for name, args, _ in query.filters}
    assert calls["or_"] == ("title.ilike.%sink status.eq.completed%,description.ilike.%sink status.eq.completed%",)


def test_search_term_of_only_delimiters_is_ignored(mock_supabase):
    filters = SearchRequestsRequest(search_term=",()")
    asyncio.run(service_requests.search_requests(mock_supabase, filters))

    query = mock_supabase.queries("service_requests", "select")[0]
    assert "or_" not in [name for name, _, _ in query.filters]


def test_provider_stats(make_request_row):
    available = [ServiceRequest(**make_request_row(id="a1")), ServiceRequest(**make_request_row(id="a2"))]
    mine = [
        ServiceRequest(**make_request_row(id="m1", status="accepted", budget=1000)),
        ServiceRequest(**make_request_row(id="m2", status="in_progress", budget=2000)),
        ServiceRequest(**make_request_row(id="m3", status="completed", budget=3000)),
        ServiceRequest(**make_request_row(id="m4", status="completed", budget=4500)),
    ]

    assert dashboard.provider_stats(available, mine) == ProviderStats(
        total_available=2,
        total_accepted=4,
        active_jobs=2,
        completed_jobs=2,
        total_earnings=7500,
    )


def test_provider_dashboard_matches_services(mock_supabase, make_request_row, make_provider_row):
    provider = ServiceProvider(**make_provider_row(services=["plumbing"]))
    mock_supabase.respond("service_requests", "select", [
        make_request_row(id="a1", category="plumbing", budget=900),
        make_request_row(id="a2", category="electrical"),
        make_request_row(id="a3", category="plumbing", budget=4000),
    ])
    mock_supabase.respond("service_requests", "select", [
        make_request_row(id="m1", status="completed", provider_id="prov-1", budget=3000),
    ])

    view = ProviderDashboardRequest(tab="available", sort_by="budget", sort_order="desc")
    result = asyncio.run(dashboard.get_provider_dashboard(mock_supabase, provider, view))

    assert [r.id for r in result.available_requests] == ["a3", "a1"]
    assert [r.id for r in result.my_requests] == ["m1"]
    assert result.stats.total_available == 2
    assert result.stats.total_earnings == 3000


def test_create_review_twice_conflicts(mock_supabase):
    mock_supabase.respond("service_requests", "select", [
        {"id": "req-1", "user_id": "user-1", "provider_id": "prov-1", "status": "completed"}
    ])
    mock_supabase.respond("reviews", "select", [{"id": "rev-1"}])

    with pytest.raises(ConflictError, match="already been reviewed"):
        asyncio.run(reviews.create_review(mock_supabase, "user-1", "req-1", 5))


def test_review_summary_stats_ignore_the_star_filter(mock_supabase):
    mock_supabase.respond("reviews", "select", [
        {"id": "rv1", "service_request_id": "r1", "user_id": "u1", "provider_id": "prov-1", "rating": 4},
        {"id": "rv2", "service_request_id": "r2", "user_id": "u2", "provider_id": "prov-1", "rating": 1},
        {"id": "rv3", "service_request_id": "r3", "user_id": "u3", "provider_id": "prov-1", "rating": 4},
    ])

    summary = asyncio.run(reviews.get_review_summary(mock_supabase, "prov-1", rating=1))

    assert [r.id for r in summary.reviews] == ["rv2"]
    assert summary.total_reviews == 3
    assert summary.average_rating == 3.0
    assert summary.rating_distribution == {1: 1, 2: 0, 3: 0, 4: 2, 5: 0}


def test_review_summary_without_reviews(mock_supabase):
    summary = asyncio.run(reviews.get_review_summary(mock_supabase, "prov-1"))

    assert summary.reviews == []
    assert summary.average_rating == 0
    assert summary.total_reviews == 0
    assert summary.rating_distribution == {1: 0, 2: 0, 3: 0, 4: 0, 5: 0}


def test_mark_read_uses_the_readers_side(mock_supabase):
    mock_supabase.respond("service_requests", "select", [{"id": "req-1", "user_id": "user-1", "provider_id": "prov-1"}])

    side = asyncio.run(messaging.mark_messages_read(mock_supabase, "req-1", "prov-1"))

    assert side == SenderType.provider
    rpc = mock_supabase.queries("mark_messages_read", "rpc")[0]
    assert rpc.payload["p_user_type"] == "provider"


def test_mark_read_rejects_the_other_side(mock_supabase):
    mock_supabase.respond("service_requests", "select", [{"id": "req-1", "user_id": "user-1", "provider_id": "prov-1"}])

    with pytest.raises(PermissionDeniedError):
        asyncio.run(messaging.mark_messages_read(mock_supabase, "req-1", "prov-1", SenderType.user))
    assert not mock_supabase.queries("mark_messages_read", "rpc")


def test_list_conversations_fallbacks(mock_supabase):
    mock_supabase.respond("conversations", "select", [
        {
            "id": "c1", "service_request_id": "req-1", "user_unread_count": 2,
            "last_message_at": "2024-05-01T12:00:00+00:00",
            "service_requests": {"title": "Fix sink", "status": "accepted", "service_providers": {"name": "Jane"}},
        },
        {
            "id": "c2", "service_request_id": "req-2", "user_unread_count": 0,
            "service_requests": {"title": "Paint wall", "status": "pending", "service_providers": None},
        },
    ])
    mock_supabase.respond("messages", "select", [
        {"service_request_id": "req-1", "content": "On my way", "created_at": "2024-05-01T12:00:00+00:00"},
        {"service_request_id": "req-1", "content": "Hello", "created_at": "2024-05-01T11:00:00+00:00"},
    ])

    summaries = asyncio.run(messaging.list_conversations(mock_supabase, "user-1"))

    assert summaries[0].other_party_name == "Jane"
    assert summaries[0].last_message == "On my way"
    assert summaries[0].unread_count == 2
    assert summaries[1].other_party_name == "Provider"
    assert summaries[1].last_message == "No messages yet"


def test_get_conversation_absent(mock_supabase):
    assert asyncio.run(messaging.get_conversation(mock_supabase, "req-1")) is None


def test_subscribe_to_messages(mock_supabase):
    received = []

    async def scenario():
        unsubscribe = await messaging.subscribe_to_messages(mock_supabase, "req-1", received.append)
        channel = mock_supabase.channels[0]
        channel.callback({"data": {"record": {
            "id": "msg-1",
            "service_request_id": "req-1",
            "sender_id": "user-1",
            "sender_type": "user",
            "content": "Hello",
            "created_at": "2024-05-01T12:00:00+00:00",
        }}})
        await unsubscribe()
        return channel

    channel = asyncio.run(scenario())

    assert channel.filter == "service_request_id=eq.req-1"
    assert [m.content for m in received] == ["Hello"]
    mock_supabase.remove_channel.assert_awaited_once_with(channel)


def test_report_resolution_records_admin(mock_supabase):
    mock_supabase.respond("reports", "select", [{
        "id": "rep-1", "reporter_id": "user-1", "report_type": "fraud",
        "description": "Asked for payment upfront", "status": "investigating",
    }])
    mock_supabase.respond("reports", "update", [{
        "id": "rep-1", "reporter_id": "user-1", "report_type": "fraud",
        "description": "Asked for payment upfront", "status": "resolved", "resolved_by": "admin-1",
    }])

    report = asyncio.run(admin.set_report_status(mock_supabase, "rep-1", ReportStatus.resolved, "admin-1", "Warned"))

    assert report.status == ReportStatus.resolved
    update = mock_supabase.queries("reports", "update")[0]
    assert update.payload["resolved_by"] == "admin-1"
    assert update.payload["admin_notes"] == "Warned"
    assert "resolved_at" in update.payload
    assert update.eqs() == {"id": "rep-1", "status": "investigating"}


def test_report_needs_a_target(mock_supabase):
    data = CreateReportRequest(report_type="spam", description="Keeps messaging me")
    with pytest.raises(ValidationFailedError):
        asyncio.run(admin.create_report(mock_supabase, "user-1", data))


def test_pending_reports_unknown_names(mock_supabase):
    mock_supabase.respond("reports", "select", [{
        "id": "rep-1", "report_type": "spam", "description": "Spam", "status": "pending",
        "reporter": None, "reported_user": None, "reported_provider": {"name": "Jane"},
    }])

    reports = asyncio.run(admin.get_pending_reports(mock_supabase))

    assert reports[0].reporter_name == "Unknown"
    assert reports[0].reported_name == "Jane"


def test_verification_stats(mock_supabase):
    mock_supabase.respond("service_providers", "select", [
        {"verification_status": "pending"},
        {"verification_status": "approved"},
        {"verification_status": "approved"},
        {"verification_status": "rejected"},
    ])

    stats = asyncio.run(admin.get_verification_stats(mock_supabase))
    assert (stats.pending, stats.approved, stats.rejected, stats.total) == (1, 2, 1, 4)


def test_block_user(mock_supabase):
    mock_supabase.respond("users", "update", [{"id": "user-2"}])

    assert asyncio.run(admin.block_user(mock_supabase, "user-2", "Abusive messages", "admin-1"))
    update = mock_supabase.queries("users", "update")[0]
    assert update.payload["is_blocked"] is True
    assert update.payload["blocked_reason"] == "Abusive messages"


def test_categories_are_cached_until_written(mock_supabase):
    row = {"id": "cat-1", "value": "plumbing", "label": "Plumbing"}
    mock_supabase.respond("service_categories", "select", [row])
    mock_supabase.respond("service_categories", "insert", [{"id": "cat-2", "value": "roofing", "label": "Roofing"}])
    mock_supabase.respond("service_categories", "select", [row, {"id": "cat-2", "value": "roofing", "label": "Roofing"}])

    first = asyncio.run(catalog.get_active_categories(mock_supabase))
    second = asyncio.run(catalog.get_active_categories(mock_supabase))
    assert first == second
    assert len(mock_supabase.queries("service_categories", "select")) == 1

    asyncio.run(catalog.create_category(mock_supabase, CategoryRequest(value="roofing", label="Roofing")))
    third = asyncio.run(catalog.get_active_categories(mock_supabase))
    assert [c.value for c in third] == ["plumbing", "roofing"]


def test_locations_by_region_bypass_cache(mock_supabase):
    mock_supabase.respond("service_locations", "select", [{"id": "l1", "name": "Nairobi", "region": "Central"}])
    mock_supabase.respond("service_locations", "select", [{"id": "l2", "name": "Mombasa", "region": "Coast"}])

    asyncio.run(catalog.get_active_locations(mock_supabase))
    coast = asyncio.run(catalog.get_active_locations(mock_supabase, "Coast"))

    assert [l.name for l in coast] == ["Mombasa"]
    assert len(mock_supabase.queries("service_locations", "select")) == 2


def test_suggested_rate(mock_supabase):
    mock_supabase.respond("service_categories", "select", [
        {"value": "plumbing", "rate_min": 800, "rate_typical": 3000, "rate_max": 15000},
        {"value": "electrical", "rate_min": 500, "rate_typical": 2000, "rate_max": 10000},
    ])

    assert asyncio.run(catalog.calculate_suggested_rate(mock_supabase, ["plumbing", "electrical"])) == 2500
    assert asyncio.run(catalog.calculate_suggested_rate(mock_supabase, [])) == catalog.DEFAULT_SUGGESTED_RATE


def test_setting_value(mock_supabase):
    mock_supabase.respond("system_settings", "select", [{"id": "s1", "key": "platform_fee", "value": 5}])

    assert asyncio.run(catalog.get_setting_value(mock_supabase, "platform_fee")) == 5
    assert asyncio.run(catalog.get_setting_value(mock_supabase, "missing")) is None
