import logging

from fastapi import FastAPI

from tictactoe.api.routes import router
from tictactoe.config import get_settings, load_env_file

load_env_file()

app = FastAPI(title="tictactoe", version="0.1.0")
app.include_router(router)
# Configure logging
logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": "tictactoe", "version": "0.1.0"}
