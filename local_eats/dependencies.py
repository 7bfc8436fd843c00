import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import FastAPI, Depends, Header, Request
from sqlalchemy.engine.base import Engine
from sqlmodel import Session

from local_eats.db import run_migrations, create_db_engine
from local_eats.db.people import Role
from local_eats.services.access import Actor
from local_eats.services.claim_deadline import DeadlineSweepService
from local_eats.services.notifications import Notifier
from local_eats.settings import Settings

logger = logging.getLogger(__name__)

settings = Settings()


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_engine(request: Request):
    return request.app.state.engine


def get_notifier(request: Request) -> Notifier:
    return request.app.state.notifier


def get_session(engine: Engine = Depends(get_engine)):
    with Session(engine) as session:
        yield session


def get_actor(x_actor_id: int = Header(...), x_actor_role: Role = Header(...)) -> Actor:
    # Аутентификация снаружи: шлюз проставляет id и роль пользователя в заголовках
    return Actor(user_id=x_actor_id, role=x_actor_role)


SessionDep = Annotated[Session, Depends(get_session)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
NotifierDep = Annotated[Notifier, Depends(get_notifier)]
ActorDep = Annotated[Actor, Depends(get_actor)]


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.settings = settings

    if settings.run_migrations:
        run_migrations(settings)

    engine = create_db_engine(settings)
    app.state.engine = engine
    app.state.notifier = Notifier(settings.notification_service_url, settings.notification_timeout_seconds)

    # Фоновая проверка сроков: автоотказ поваров и эскалация невзятых заказов
    sweep = DeadlineSweepService(settings, app.state.notifier)
    task = asyncio.create_task(sweep.start(lambda: Session(engine)))
    app.state.sweep_service = sweep

    yield  # Wait until the app shuts down

    sweep.stop()
    task.cancel()
    engine.dispose()
