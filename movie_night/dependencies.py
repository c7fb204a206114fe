from fastapi import Request

from movie_night.services.dispatcher import CommandDispatcher


async def get_dispatcher(request: Request) -> CommandDispatcher:
    # диспетчер создаётся в lifespan после загрузки состояния
    dispatcher = getattr(request.app.state, "dispatcher", None)
    if dispatcher is None:
        raise RuntimeError("dispatcher_not_ready")
    return dispatcher
