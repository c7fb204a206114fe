from http import HTTPStatus
from fastapi import APIRouter, Request

from movie_night.api.http_utils import handle_runtime_errors
from movie_night.dependencies import get_dispatcher
from movie_night.models.events import EventAck, MessageReceived, ReactionAdded

router = APIRouter(prefix="/api/v1/events", tags=["events"])

ERRMAP = {
    "dispatcher_not_ready": HTTPStatus.SERVICE_UNAVAILABLE,
}


@router.post("/messages", response_model=EventAck,
             status_code=HTTPStatus.ACCEPTED)
@handle_runtime_errors(ERRMAP)
async def message_received(body: MessageReceived, request: Request):
    # диспетчер берём внутри, чтобы его RuntimeError прошёл через ERRMAP
    dispatcher = await get_dispatcher(request)
    handled = await dispatcher.handle_message(body)
    return EventAck(ok=True, handled=handled)


@router.post("/reactions", response_model=EventAck,
             status_code=HTTPStatus.ACCEPTED)
@handle_runtime_errors(ERRMAP)
async def reaction_added(body: ReactionAdded, request: Request):
    dispatcher = await get_dispatcher(request)
    handled = await dispatcher.handle_reaction(body)
    return EventAck(ok=True, handled=handled)
