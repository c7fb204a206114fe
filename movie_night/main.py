import asyncio
import logging
import os
import signal

from fastapi import FastAPI

from contextlib import asynccontextmanager, suppress
from movie_night.db.mongo import close_client, get_mongo_db

from movie_night.core.errors import PersistenceError
from movie_night.core.logger import setup_json_logging, shutdown_logging
from movie_night.core.sentry import init_sentry
from movie_night.core.config import settings
from movie_night.core.middleware import RequestContextMiddleware

from movie_night.api.v1.events import router as events_router
from movie_night.api.v1.debug import include_debug_routes

from movie_night.services.chat_gateway import ChatGateway
from movie_night.services.dispatcher import CommandDispatcher
from movie_night.services.repositories.state_repo import StateRepo
from movie_night.services.state_service import StateService, fresh_state
from movie_night.services.tmdb_client import TmdbClient

logger = logging.getLogger(__name__)

SWEEP_INTERVAL_S = 5


async def create_state_service() -> StateService:
    return StateService(StateRepo(await get_mongo_db()))


async def load_state(state_service: StateService):
    try:
        state = await state_service.load()
    except PersistenceError as e:
        # стартуем с чистого состояния, но громко
        logger.error("state_load_failed", extra={"err": str(e)})
        state = None
    return state or fresh_state()


async def run_periodically(interval: float, job, name: str) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            await job()
        except Exception:
            # фоновая задача не должна умирать из-за одной ошибки
            logger.exception(f"{name}_failed")


async def _watch_quit(quit_event: asyncio.Event) -> None:
    await quit_event.wait()
    logger.info("shutdown_requested")
    os.kill(os.getpid(), signal.SIGTERM)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # 1) логи до всего
    setup_json_logging(service=settings.app_name)
    init_sentry(settings.sentry_dsn, environment=settings.env,
                release=settings.version)

    # 2) состояние из Mongo и коллабораторы
    state_service = await create_state_service()
    state = await load_state(state_service)
    gateway = ChatGateway()
    metadata = TmdbClient()
    quit_event = asyncio.Event()

    dispatcher = CommandDispatcher(
        state, gateway, metadata,
        state_service=state_service,
        on_quit=quit_event.set,
    )
    app.state.dispatcher = dispatcher

    tasks = [asyncio.create_task(_watch_quit(quit_event))]
    if settings.autosave_interval_s > 0:
        tasks.append(asyncio.create_task(run_periodically(
            settings.autosave_interval_s, dispatcher.save, "autosave")))
    if settings.confirmation_timeout_s > 0:
        tasks.append(asyncio.create_task(run_periodically(
            SWEEP_INTERVAL_S, dispatcher.sweep_expired, "expiry_sweep")))

    try:
        yield
    finally:
        for task in tasks:
            task.cancel()
        for task in tasks:
            with suppress(asyncio.CancelledError):
                await task
        try:
            await dispatcher.save()
        except PersistenceError as e:
            logger.error("state_save_on_shutdown_failed",
                         extra={"err": str(e)})
        app.state.dispatcher = None
        await gateway.aclose()
        await metadata.aclose()
        await close_client()
        # корректно останавливаем лог-листенер
        shutdown_logging()


app = FastAPI(title="Movie Night Bot", lifespan=lifespan)

# наш trace_id + access JSON
app.add_middleware(RequestContextMiddleware)

# приглушим штатный uvicorn-access, чтобы не было дублей
logging.getLogger("uvicorn.access").setLevel("WARNING")

include_debug_routes(app)


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(events_router)
