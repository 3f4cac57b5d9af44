# backend/main.py
import uvicorn
from fastapi import FastAPI

from config.app_config import load_app_config
from db import SessionLocal
from deps import get_reminder_scheduler
from init_db import init_db

from services.auth import validate_auth_config_on_startup
from services.reminder_scheduler import scheduler, setup_scheduler
from services.user_directory import seed_users

from routes.auth import router as auth_router
from routes.events import router as events_router

from util.jsonlog import get_logger, log_event


logger = get_logger("app")

app = FastAPI(title="Eventminder Backend")
app.include_router(auth_router)
app.include_router(events_router)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.on_event("startup")
def on_startup():
    cfg = load_app_config()
    validate_auth_config_on_startup()

    init_db()
    db = SessionLocal()
    try:
        added = seed_users(db, cfg.seed_users())
    finally:
        db.close()
    if added:
        log_event(logger, level="INFO", event="users_seeded", msg="seed users created", count=added)

    if not cfg.scheduler_enabled():
        # Scheduler can be switched off locally (e.g. during manual testing)
        return

    setup_scheduler(get_reminder_scheduler(), cfg.scheduler_interval_seconds())
    if not scheduler.running:
        scheduler.start()


@app.on_event("shutdown")
def on_shutdown():
    if scheduler.running:
        scheduler.shutdown()


def run():
    cfg = load_app_config()
    log_event(
        logger,
        level="INFO",
        event="server_start",
        msg=f"Server running on port {cfg.server_port()}",
        host=cfg.server_host(),
        port=cfg.server_port(),
    )
    uvicorn.run(app, host=cfg.server_host(), port=cfg.server_port())


if __name__ == "__main__":
    run()
