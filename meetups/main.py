# meetups/main.py
import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import create_async_engine

from meetups.api import auth, chats, events, messages, realtime, users
from meetups.config import AppConfig
from meetups.domain.errors import MeetupError
from meetups.infrastructure.change_feed import ChangeFeed
from meetups.infrastructure.database import create_database
from meetups.infrastructure.event_dispatcher import EventDispatcher
from meetups.infrastructure.event_handlers import EventHandlers
from meetups.infrastructure.redis_client import RedisClient
from meetups.infrastructure.security import SecurityService
from meetups.interactors.access_gate import AccessGate
from meetups.interactors.container import ServiceContainer
from meetups.realtime.session_registry import SessionRegistry


class Application:
    def __init__(self, config: AppConfig, engine=None, clock=None):
        self.config = config
        self.logger = self.setup_logger()
        engine = engine or create_async_engine(config.DATABASE_URL, echo=False)
        self.database = create_database(engine)
        self.redis_client = (
            RedisClient(config.REDIS_HOST, config.REDIS_PORT, self.logger)
            if config.REDIS_HOST
            else None
        )
        self.change_feed = ChangeFeed(
            self.logger, self.redis_client, config.REDIS_CHANNEL_PREFIX
        )
        self.security_service = SecurityService(config)
        self.access_gate = AccessGate(self.database, self.logger)
        self.session_registry = SessionRegistry(self.access_gate, self.logger)

        self.event_dispatcher = EventDispatcher(self.logger)
        self.event_handlers = EventHandlers(self.change_feed, self.access_gate)
        self.event_handlers.bind(self.event_dispatcher)

        services_args = {"clock": clock} if clock else {}
        self.services = ServiceContainer(
            self.database,
            self.event_dispatcher,
            self.security_service,
            config,
            self.logger,
            **services_args,
        )

    @asynccontextmanager
    async def lifespan(self, app: FastAPI):
        await self.database.connect()
        if self.redis_client is not None:
            await self.redis_client.connect()
            await self.change_feed.start_relay()
        yield
        await self.session_registry.close_all()
        await self.change_feed.wait_idle()
        await self.change_feed.stop_relay()
        if self.redis_client is not None:
            await self.redis_client.disconnect()
        await self.database.disconnect()

    def setup_logger(self):
        logger = logging.getLogger("MeetupsAPI")
        logger.setLevel(logging.INFO)

        if not logger.handlers:
            c_handler = logging.StreamHandler(sys.stdout)
            formatter = logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            )
            c_handler.setFormatter(formatter)
            logger.addHandler(c_handler)

        return logger

    def create_app(self) -> FastAPI:
        app = FastAPI(
            title=self.config.PROJECT_NAME,
            version=self.config.PROJECT_VERSION,
            description=self.config.PROJECT_DESCRIPTION,
            openapi_url=f"{self.config.API_V1_STR}/openapi.json",
            lifespan=self.lifespan,
        )

        app.state.config = self.config
        app.state.logger = self.logger
        app.state.database = self.database
        app.state.security_service = self.security_service
        app.state.event_dispatcher = self.event_dispatcher
        app.state.change_feed = self.change_feed
        app.state.access_gate = self.access_gate
        app.state.session_registry = self.session_registry
        app.state.services = self.services

        app.include_router(
            auth.router, prefix=f"{self.config.API_V1_STR}/auth", tags=["auth"]
        )
        app.include_router(
            users.router, prefix=f"{self.config.API_V1_STR}/users", tags=["users"]
        )
        app.include_router(
            events.create_router(),
            prefix=f"{self.config.API_V1_STR}/events",
            tags=["events"],
        )
        app.include_router(
            chats.create_router(),
            prefix=f"{self.config.API_V1_STR}/chats",
            tags=["chats"],
        )
        app.include_router(
            messages.create_router(),
            prefix=f"{self.config.API_V1_STR}/messages",
            tags=["messages"],
        )
        app.include_router(realtime.create_router(), tags=["realtime"])

        @app.exception_handler(MeetupError)
        async def meetup_exception_handler(request: Request, exc: MeetupError):
            return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

        @app.exception_handler(Exception)
        async def global_exception_handler(request: Request, exc: Exception):
            self.logger.error(f"Unhandled error on {request.url.path}: {exc!s}")
            return JSONResponse(
                status_code=500,
                content={"message": f"An unexpected error occurred: {str(exc)}"},
            )

        @app.get("/")
        async def root():
            return {"message": "Welcome to the Hotel Meetups API"}

        return app


def create(config: AppConfig | None = None) -> FastAPI:
    application = Application(config or AppConfig())
    app = application.create_app()
    application.logger.info("Application created and configured")

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create(), host="127.0.0.1", port=8000)
