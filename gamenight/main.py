import logging

from dotenv import load_dotenv
from fastapi import FastAPI

from gamenight.api.routes import router
from gamenight.config import get_log_level
from gamenight.startup import init_scheduler_for_app

# Configuration is read lazily from the environment, so loading .env here is early enough.
load_dotenv(override=False)

# Configure logging
logging.basicConfig(level=get_log_level(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="gamenight", version="0.1.0")
app.include_router(router)


@app.on_event("startup")
async def _startup() -> None:
    app.state.scheduler = init_scheduler_for_app()
    logger.info("Scheduler ready with %d events", len(app.state.scheduler.timeline))


@app.on_event("shutdown")
async def _shutdown() -> None:
    # Drop any armed timers before the loop goes away.
    app.state.scheduler.reset()


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": "gamenight", "version": "0.1.0"}
