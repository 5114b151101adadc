import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from backoffice import config
from backoffice.db import Base, engine
from backoffice.errors import install_error_handlers

# 1) Импортируем все модели до create_all(),
#    чтобы SQLAlchemy знал про классы и связи
import backoffice.models  # noqa: F401

from sqlalchemy.orm import configure_mappers
configure_mappers()

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # 2) Создаём таблицы
    Base.metadata.create_all(bind=engine)
    log.info("%s started (env=%s, db=%s)", config.APP_NAME, config.ENV, engine.url.render_as_string(hide_password=True))
    yield


# ==== FastAPI app ====
app = FastAPI(title=config.APP_NAME, lifespan=lifespan)

# ошибки сервисов -> {"success": false, "error": ..., "details": ...}
install_error_handlers(app)


# ==== Routers ====
from backoffice.routers import selling, sales_returns, clients, stats
from backoffice.routers import inventory as inventory_router
app.include_router(selling.router)
app.include_router(sales_returns.router)
app.include_router(clients.router)
app.include_router(stats.router)
app.include_router(inventory_router.router)


# ==== Debug route ====
@app.get("/__routes")
def __routes():
    return [getattr(r, "path", str(r)) for r in app.routes]
