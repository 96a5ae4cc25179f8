from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.logging_config import setup_logging
from app.routers import history, hub
from app.services.history_store import get_history_store

setup_logging(settings.log_level)

app = FastAPI(
    title="Chat Hub API",
    description="Real-time chat hub routing messages to Slack and Trello integrations",
    version="0.1.0",
)

cors_origins = [origin.strip() for origin in settings.cors_allow_origins.split(",") if origin.strip()]
if not cors_origins:
    cors_origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(hub.router)
app.include_router(history.router)


@app.get("/health")
async def health():
    store = get_history_store()
    return {"status": "ok", "active_histories": len(store.users()), "history_limit": store.limit}
