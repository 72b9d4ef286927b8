from fastapi import FastAPI
from prahestate.api.routes import router as api_router
from prahestate.config import settings
from prahestate.db import Base, engine
from prahestate.scheduler import get_coordinator
from prahestate.utils import logger
import prahestate.models  # noqa: F401 ensure models are imported so tables are known

# create FastAPI instance
app = FastAPI(title="PrahEstate")
app.include_router(api_router)


@app.on_event("startup")
def on_startup():
    Base.metadata.create_all(bind=engine)
    if settings.sync_enabled:
        get_coordinator().schedule_recurring(settings.sync_schedule)
    logger.info("Sync enabled: %s", settings.sync_enabled)


@app.on_event("shutdown")
def on_shutdown():
    # only if something (schedule or a manual trigger) built the coordinator
    if get_coordinator.cache_info().currsize:
        get_coordinator().shutdown()
