"""
Development seeding for a demo study group.

Only runs when DEV_MODE=1 is set. Creates one public group led by a
predictable user, one approved member, one pending request and a short
conversation, so the UI has something to show against a fresh database.
"""
import logging

from studyhub.models.groups import GroupCreate
from studyhub.services.membership import MembershipManager
from studyhub.services.messaging import MessagingChannel
from studyhub.store import StoreAdapter, Tables

logger = logging.getLogger(__name__)

DEV_LEADER_ID = "dev-alice"
DEV_MEMBER_ID = "dev-bob"
DEV_PENDING_ID = "dev-charlie"

DEV_GROUP = {
    "name": "Algorithms",
    "description": "Weekly problem sets and exam prep for CS 201.",
    "subject": "computer science",
    "max_members": 6,
    "meeting_type": "online",
    "meeting_link": "https://meet.example.com/algorithms",
    "frequency": "weekly",
    "day_of_week": "thursday",
    "start_time": "18:00",
    "duration": "90 minutes",
}

DEV_MESSAGES = [
    (DEV_LEADER_ID, "Welcome! This week we cover graph traversal."),
    (DEV_MEMBER_ID, "Thanks, I'll bring my notes on BFS."),
]


async def seed_demo_group(store: StoreAdapter) -> dict:
    """
    Seed the demo group unless the dev leader already leads one by that name.

    Args:
        store: Store adapter the app is running on

    Returns:
        dict with seeding results
    """
    existing = await store.select_one(
        Tables.GROUPS, {"creator_id": DEV_LEADER_ID, "name": DEV_GROUP["name"]}
    )
    if existing:
        return {"skipped": True, "reason": "Demo group already exists", "group_id": existing["id"]}

    manager = MembershipManager(store)
    channel = MessagingChannel(store)

    group = await manager.create_group(DEV_LEADER_ID, GroupCreate(**DEV_GROUP))
    request = await manager.request_join(group.id, DEV_MEMBER_ID)
    await manager.approve(request.id, DEV_LEADER_ID)
    await manager.request_join(group.id, DEV_PENDING_ID)

    for sender_id, body in DEV_MESSAGES:
        await channel.send_text(group.id, sender_id, body)

    logger.info(f"Seeded demo group {group.name} ({group.id})")
    return {
        "skipped": False,
        "group_id": group.id,
        "members": [DEV_LEADER_ID, DEV_MEMBER_ID],
        "pending": [DEV_PENDING_ID],
        "messages": len(DEV_MESSAGES),
    }
