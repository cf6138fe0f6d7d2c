import logging
from typing import Awaitable, Callable, Optional

from db import AsyncClient
from exceptions import PermissionDeniedError, ValidationFailedError
from models import Conversation, ConversationSummary, Message, SenderType
from services.base import execute, first_or_404, first_or_none

logger = logging.getLogger(__name__)

TABLE = "messages"


def row_to_message(row: dict) -> Message:
    return Message.model_validate(row)


async def get_request_parties(sbase: AsyncClient, request_id: str) -> dict:
    """Return ``{"user_id", "provider_id"}`` of the request a thread belongs to."""
    res = await execute(
        sbase.table("service_requests").select("id, user_id, provider_id").eq("id", request_id),
        "fetch service request",
    )
    return first_or_404(res, "Service request")


def is_party(parties: dict, participant_id: str) -> bool:
    return party_side(parties, participant_id) is not None


def party_side(parties: dict, participant_id: str) -> Optional[SenderType]:
    """Which side of the thread ``participant_id`` is on, ``None`` for outsiders."""
    if participant_id == parties.get("user_id"):
        return SenderType.user
    if participant_id == parties.get("provider_id"):
        return SenderType.provider
    return None


async def send_message(
    sbase: AsyncClient,
    request_id: str,
    sender_id: str,
    content: str,
    sender_type: SenderType,
) -> Message:
    content = (content or "").strip()
    if not content:
        raise ValidationFailedError("Message cannot be empty")
    if sender_type == SenderType.system:
        raise PermissionDeniedError("System messages cannot be sent directly")

    parties = await get_request_parties(sbase, request_id)
    owner_field = "user_id" if sender_type == SenderType.user else "provider_id"
    if parties.get(owner_field) != sender_id:
        raise PermissionDeniedError("You are not part of this conversation")

    res = await execute(
        sbase.table(TABLE).insert({
            "service_request_id": request_id,
            "sender_id": sender_id,
            "sender_type": sender_type.value,
            "content": content,
            "message_type": "text",
        }),
        "send message",
    )
    return row_to_message(first_or_404(res, "Sent message"))


async def send_system_message(sbase: AsyncClient, request_id: str, sender_id: str, content: str) -> Message:
    res = await execute(
        sbase.table(TABLE).insert({
            "service_request_id": request_id,
            "sender_id": sender_id,
            "sender_type": SenderType.system.value,
            "content": content,
            "message_type": "system",
        }),
        "send system message",
    )
    return row_to_message(first_or_404(res, "Sent message"))


async def get_messages(sbase: AsyncClient, request_id: str) -> list[Message]:
    res = await execute(
        sbase.table(TABLE).select("*").eq("service_request_id", request_id).order("created_at", desc=False),
        "fetch messages",
    )
    return [row_to_message(row) for row in res.data or []]


async def mark_messages_read(
    sbase: AsyncClient, request_id: str, reader_id: str, user_type: Optional[SenderType] = None
) -> SenderType:
    """Clear the unread state of the reader's side of a thread and return that side."""
    side = party_side(await get_request_parties(sbase, request_id), reader_id)
    if side is None:
        raise PermissionDeniedError("You are not part of this conversation")
    if user_type is not None and user_type != side:
        raise PermissionDeniedError("You can only mark your own messages as read")

    await execute(
        sbase.rpc("mark_messages_read", {
            "p_service_request_id": request_id,
            "p_user_type": side.value,
        }),
        "mark messages as read",
    )
    return side


async def get_conversation(sbase: AsyncClient, request_id: str) -> Optional[Conversation]:
    res = await execute(
        sbase.table("conversations")
        .select("*, service_requests!inner (id, title, status, users!inner (id, name, avatar), service_providers (id, name, avatar))")
        .eq("service_request_id", request_id),
        "fetch conversation",
    )
    row = first_or_none(res)
    if row is None:
        return None

    request = row.get("service_requests") or {}
    data = {k: v for k, v in row.items() if k != "service_requests"}
    data["request_title"] = request.get("title")
    data["request_status"] = request.get("status")
    data["user_name"] = (request.get("users") or {}).get("name")
    data["provider_name"] = (request.get("service_providers") or {}).get("name")
    return Conversation.model_validate(data)


async def list_conversations(sbase: AsyncClient, viewer_id: str, as_provider: bool = False) -> list[ConversationSummary]:
    """Conversations of a customer (or of a provider), newest activity first."""
    if as_provider:
        owner_field, unread_field = "provider_id", "provider_unread_count"
        other_embed, other_default = "users (name, avatar)", "Customer"
    else:
        owner_field, unread_field = "user_id", "user_unread_count"
        other_embed, other_default = "service_providers (name, avatar)", "Provider"

    res = await execute(
        sbase.table("conversations")
        .select(f"id, service_request_id, {unread_field}, last_message_at, service_requests!inner (title, status, {other_embed})")
        .eq(owner_field, viewer_id)
        .order("last_message_at", desc=True),
        "fetch conversations",
    )
    conversations = res.data or []
    if not conversations:
        return []

    request_ids = [c["service_request_id"] for c in conversations]
    last_res = await execute(
        sbase.table(TABLE)
        .select("service_request_id, content, created_at")
        .in_("service_request_id", request_ids)
        .order("created_at", desc=True),
        "fetch last messages",
    )
    last_messages = {}
    for msg in last_res.data or []:
        last_messages.setdefault(msg["service_request_id"], msg)

    other_key = "users" if as_provider else "service_providers"
    summaries = []
    for conv in conversations:
        request = conv.get("service_requests") or {}
        other = request.get(other_key) or {}
        last = last_messages.get(conv["service_request_id"])
        summaries.append(ConversationSummary(
            id=conv["id"],
            service_request_id=conv["service_request_id"],
            title=request.get("title") or "",
            other_party_name=other.get("name") or other_default,
            other_party_avatar=other.get("avatar"),
            last_message=last["content"] if last else "No messages yet",
            last_message_at=conv.get("last_message_at"),
            unread_count=conv.get(unread_field) or 0,
            status=request.get("status"),
        ))
    return summaries


def _inserted_row(payload: dict) -> Optional[dict]:
    data = payload.get("data") or {}
    return data.get("record") or payload.get("new") or payload.get("record")


async def subscribe_to_messages(
    sbase: AsyncClient,
    request_id: str,
    callback: Callable[[Message], None],
) -> Callable[[], Awaitable[None]]:
    """Call ``callback`` for every message inserted into a request's thread.

    Delivery order and guarantees are whatever Supabase realtime provides.
    Returns a coroutine function that removes the channel.
    """

    def on_insert(payload):
        row = _inserted_row(payload)
        if not row:
            logger.warning("Realtime payload without record for %s", request_id)
            return
        callback(row_to_message(row))

    channel = sbase.channel(f"messages:{request_id}")
    channel.on_postgres_changes(
        "INSERT",
        schema="public",
        table=TABLE,
        filter=f"service_request_id=eq.{request_id}",
        callback=on_insert,
    )
    await channel.subscribe()
    logger.info("Subscribed to messages for %s", request_id)

    async def unsubscribe():
        await sbase.remove_channel(channel)
        logger.info("Unsubscribed from messages for %s", request_id)

    return unsubscribe
