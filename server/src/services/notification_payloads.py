"""
Push payload rendering for each notification event kind.

Every payload satisfies the service worker's click contract:
- ``tag``: stable dedup key, a re-notification with the same tag replaces
  the previous one on platforms that support it
- ``data.url``: navigation target opened/focused on click
- ``requireInteraction``: urgency flag, keeps the notification until the
  user acknowledges it
- ``actions``: optional named quick actions interpreted by the client
"""

from typing import Any, Dict, List, Optional, Tuple

from server.src.services.notification_events import (
    ConnectionAcceptedEvent,
    ConnectionRequestEvent,
    DirectMessageEvent,
    GroupAdminTransferEvent,
    GroupInviteEvent,
    GroupMemberJoinedEvent,
    GroupMessageEvent,
    GroupRenamedEvent,
    MentionEvent,
    PendingConnectionsReminderEvent,
    ProfileReminderEvent,
    ReactionEvent,
    TopicMessageEvent,
    UnreadDigestEvent,
)


ICON = "/icon-192.png"
BADGE = "/icon-192.png"

ELLIPSIS = "..."
DM_PREVIEW_BUDGET = 100
CHAT_PREVIEW_BUDGET = 80


def truncate_preview(text: str, budget: int) -> str:
    """
    Cut a message preview to at most ``budget`` characters.

    Longer text keeps its first ``budget - 3`` characters followed by
    ``"..."``; text within the budget is returned unchanged.

    Example:
        >>> len(truncate_preview("x" * 150, 100))
        100
    """
    if len(text) <= budget:
        return text
    return text[: budget - len(ELLIPSIS)] + ELLIPSIS


def _actions(*pairs: Tuple[str, str]) -> List[Dict[str, str]]:
    return [{"action": action, "title": title} for action, title in pairs]


def build_payload(
    title: str,
    body: str,
    tag: str,
    url: str,
    notification_type: str,
    require_interaction: bool = False,
    actions: Optional[List[Dict[str, str]]] = None,
    **data: Any,
) -> Dict[str, Any]:
    """
    Assemble a push payload in the shape the service worker reads.

    Extra keyword arguments are merged into ``data`` (sender ids, names...).
    """
    payload: Dict[str, Any] = {
        "title": title,
        "body": body,
        "icon": ICON,
        "badge": BADGE,
        "tag": tag,
        "requireInteraction": require_interaction,
        "data": {"type": notification_type, "url": url, **data},
    }
    if actions:
        payload["actions"] = actions
    return payload


def render_direct_message(event: DirectMessageEvent) -> Dict[str, Any]:
    return build_payload(
        title=f"New message from {event.sender_name}",
        body=truncate_preview(event.message_preview, DM_PREVIEW_BUDGET),
        tag=f"dm-{event.sender_id}",
        url=f"/chat?dm={event.sender_id}",
        notification_type="dm",
        actions=_actions(("reply", "Reply"), ("dismiss", "Dismiss")),
        senderId=event.sender_id,
        senderName=event.sender_name,
    )


def render_connection_request(event: ConnectionRequestEvent) -> Dict[str, Any]:
    return build_payload(
        title="New Connection Request",
        body=f"{event.sender_name} wants to connect with you",
        tag=f"connection-{event.sender_id}",
        url=f"/profile/{event.sender_id}",
        notification_type="connection",
        require_interaction=True,
        actions=_actions(("view", "View Profile"), ("dismiss", "Later")),
        senderId=event.sender_id,
        senderName=event.sender_name,
    )


def render_connection_accepted(event: ConnectionAcceptedEvent) -> Dict[str, Any]:
    return build_payload(
        title="Connection Accepted",
        body=f"{event.accepter_name} accepted your connection request",
        tag=f"connection-accepted-{event.accepter_id}",
        url=f"/profile/{event.accepter_id}",
        notification_type="connection",
        actions=_actions(("view", "View Profile")),
        senderId=event.accepter_id,
        senderName=event.accepter_name,
    )


def render_topic_message(event: TopicMessageEvent) -> Dict[str, Any]:
    preview = truncate_preview(event.message_preview, CHAT_PREVIEW_BUDGET)
    return build_payload(
        title=f"New message in #{event.topic_name}",
        body=f"{event.sender_name}: {preview}",
        tag=f"chat-{event.topic_id}",
        url=f"/chat?topic={event.topic_id}",
        notification_type="chat",
        senderId=event.sender_id,
        senderName=event.sender_name,
        topicId=event.topic_id,
    )


def render_mention(event: MentionEvent) -> Dict[str, Any]:
    preview = truncate_preview(event.message_preview, CHAT_PREVIEW_BUDGET)
    if event.group_id:
        context_ref = {"groupId": event.group_id}
        url = f"/chat?group={event.group_id}"
        tag_context = event.group_id
        where = event.context_name
    else:
        context_ref = {"topicId": event.topic_id}
        url = f"/chat?topic={event.topic_id}"
        tag_context = event.topic_id
        where = f"#{event.context_name}"
    return build_payload(
        title=f"{event.sender_name} mentioned you in {where}",
        body=preview,
        tag=f"mention-{tag_context}-{event.sender_id}",
        url=url,
        notification_type="mention",
        require_interaction=True,
        actions=_actions(("view", "View")),
        senderId=event.sender_id,
        senderName=event.sender_name,
        **context_ref,
    )


def render_reaction(event: ReactionEvent) -> Dict[str, Any]:
    # Reactions never collapse into each other
    suffix = event.message_id or "message"
    return build_payload(
        title=f"{event.sender_name} reacted {event.emoji}",
        body="Tap to view the message",
        tag=f"reaction-{event.sender_id}-{suffix}",
        url=f"/chat?dm={event.sender_id}",
        notification_type="dm",
        senderId=event.sender_id,
        senderName=event.sender_name,
    )


def render_group_invite(event: GroupInviteEvent) -> Dict[str, Any]:
    return build_payload(
        title="New Group Invite",
        body=f"{event.sender_name} invited you to {event.group_name}",
        tag=f"group-invite-{event.group_id}",
        url="/chat?tab=groups",
        notification_type="group_invite",
        require_interaction=True,
        actions=_actions(("view", "View"), ("dismiss", "Later")),
        senderId=event.sender_id,
        senderName=event.sender_name,
        groupId=event.group_id,
    )


def render_group_message(event: GroupMessageEvent) -> Dict[str, Any]:
    preview = truncate_preview(event.message_preview, CHAT_PREVIEW_BUDGET)
    return build_payload(
        title=event.group_name,
        body=f"{event.sender_name}: {preview}",
        tag=f"group-{event.group_id}",
        url=f"/chat?group={event.group_id}",
        notification_type="group_message",
        actions=_actions(("reply", "Reply")),
        senderId=event.sender_id,
        senderName=event.sender_name,
        groupId=event.group_id,
    )


def render_group_renamed(event: GroupRenamedEvent) -> Dict[str, Any]:
    return build_payload(
        title="Group renamed",
        body=f"{event.actor_name} renamed {event.old_name} to {event.new_name}",
        tag=f"group-rename-{event.group_id}",
        url=f"/chat?group={event.group_id}",
        notification_type="group_message",
        senderId=event.actor_id,
        senderName=event.actor_name,
        groupId=event.group_id,
    )


def render_group_member_joined(event: GroupMemberJoinedEvent) -> Dict[str, Any]:
    return build_payload(
        title=event.group_name,
        body=f"{event.member_name} joined the group",
        tag=f"group-joined-{event.group_id}",
        url=f"/chat?group={event.group_id}",
        notification_type="group_message",
        senderId=event.member_id,
        senderName=event.member_name,
        groupId=event.group_id,
    )


def render_group_admin_transfer(event: GroupAdminTransferEvent) -> Dict[str, Any]:
    return build_payload(
        title="You are now a group admin",
        body=f"{event.sender_name} made you admin of {event.group_name}",
        tag=f"group-admin-{event.group_id}",
        url=f"/chat?group={event.group_id}",
        notification_type="group_message",
        require_interaction=True,
        actions=_actions(("view", "View")),
        senderId=event.sender_id,
        senderName=event.sender_name,
        groupId=event.group_id,
    )


def render_profile_reminder(event: ProfileReminderEvent) -> Dict[str, Any]:
    return build_payload(
        title="Complete Your Co:Lab Profile",
        body="Add a photo, role, and bio to help others connect with you!",
        tag="profile-reminder",
        url="/profile/edit",
        notification_type="profile",
        actions=_actions(("complete", "Complete Now"), ("dismiss", "Later")),
    )


def render_pending_connections(event: PendingConnectionsReminderEvent) -> Dict[str, Any]:
    noun = "request" if event.pending_count == 1 else "requests"
    return build_payload(
        title="Pending Connection Requests",
        body=f"You have {event.pending_count} pending connection {noun}",
        tag="pending-connections",
        url="/connections?tab=requests",
        notification_type="connection",
        actions=_actions(("view", "Review")),
        pendingCount=event.pending_count,
    )


def render_unread_digest(event: UnreadDigestEvent) -> Dict[str, Any]:
    parts = []
    if event.unread_dms:
        parts.append(f"{event.unread_dms} direct")
    if event.unread_group_messages:
        parts.append(f"{event.unread_group_messages} group")
    if event.unread_topic_messages:
        parts.append(f"{event.unread_topic_messages} topic")
    noun = "message" if event.total == 1 else "messages"
    return build_payload(
        title=f"You have {event.total} unread {noun}",
        body=", ".join(parts),
        tag="unread-digest",
        url="/chat",
        notification_type="chat",
        actions=_actions(("view", "Open Chat")),
        unreadCount=event.total,
    )
