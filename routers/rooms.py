from fastapi import APIRouter, Depends, HTTPException, Query

from backend import RedisBackend
from dependencies import get_backend, get_relay
from logging_config import get_logger
from realtime.relay import EventRelay
from schemas.rooms import OnlineUser, PresenceResponse, RoomDetailsResponse, RoomMessagesResponse

logger = get_logger(__name__)

rooms_router = APIRouter(tags=["rooms"])


@rooms_router.get("/rooms/{room_id}", response_model=RoomDetailsResponse)
async def get_room_details(room_id: str, relay: EventRelay = Depends(get_relay)):
    """
    Connections currently joined to a room on this instance.

    Rooms only exist while someone is in them, so an unknown room is simply empty.
    """
    online_users = []
    for state in relay.registry.member_states(room_id):
        if state.identity is None:
            continue
        online_users.append(OnlineUser(connection_id=state.connection.id, **state.identity.to_dict()))

    logger.info(f"Room details retrieved for {room_id}: {len(online_users)} connections")
    return RoomDetailsResponse(room_id=room_id, online_users_count=len(online_users), online_users=online_users)


@rooms_router.get("/rooms/{room_id}/messages", response_model=RoomMessagesResponse)
async def get_room_messages(
    room_id: str,
    limit: int = Query(50, ge=1, le=500, description="Most recent messages to return"),
    backend: RedisBackend = Depends(get_backend),
):
    try:
        messages = backend.get_messages(room_id, limit=limit)
    except Exception as e:
        logger.error(f"Get messages error for room {room_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Server error")
    return RoomMessagesResponse(room_id=room_id, messages=messages)


@rooms_router.get("/presence", response_model=PresenceResponse)
async def get_presence(relay: EventRelay = Depends(get_relay)):
    online = sorted(relay.presence.online_users())
    return PresenceResponse(online_users=online, count=len(online))
