"""
Realtime notifications. Thin wrapper around core.redis.
Lets the client flip a material out of "pending" without polling.
"""

from ..core import redis as _redis


# ── Material events ──────────────────────────────────────────────────

async def material_extraction(user_id: str, material_id: str, status: str, data: dict = None):
    payload = {"material_id": material_id, "status": status}
    if data:
        payload.update(data)
    await _redis.send_user_event(user_id, "material.extraction", payload)


async def material_deleted(user_id: str, material_id: str):
    await _redis.send_user_event(user_id, "material.deleted", {"material_id": material_id})
