import logging
from fastapi import FastAPI
from contextlib import asynccontextmanager

from src.crud import CreateData
from src.db import Session, engine
from src.load_secrets import attempt_timeout, log_level, retry_backoff, retry_ceiling
from src.routers import stats
from src.services.stats_db import SqlAlchemyStatsGateway
from src.stats_sync_manager import StatsSyncManager

logging.basicConfig(level=log_level)
logging.getLogger("aiosqlite").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app):
    """Create the stats table and the stats manager.
    This function is called to start the server.
    """
    await CreateData.create_table(engine)
    app.state.stats_manager = StatsSyncManager(
        SqlAlchemyStatsGateway(Session),
        retry_ceiling=retry_ceiling,
        attempt_timeout=attempt_timeout,
        retry_backoff=retry_backoff,
    )
    try:
        yield
    finally:
        await engine.dispose()
        logging.info("Stop Server")


app = FastAPI(lifespan=lifespan)
app.include_router(stats.stats_router, prefix="/api")


@app.get("/api/health")
async def health():
    return {"status": "ok"}
