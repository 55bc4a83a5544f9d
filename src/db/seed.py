from loguru import logger
from sqlalchemy import create_engine

from src.config import get_settings
from src.content.schemas import (
    ContentUpsertRequest,
    NotificationStrategy,
    ProgressAlertFrequency,
    ProgressAlertSchedule,
    Weekday,
)
from src.content.service import upsert_content
from src.db.database import Base, get_sync_session
from src.models import Content, User
from src.scheduler.runner import shutdown_worker, start_worker

settings = get_settings()

DEFAULT_CONTENT = ContentUpsertRequest(
    app_name="Paul Eynuts",
    organization_name="Paul Eynuts Foundation",
    our_mission=(
        "Our mission is to support and empower individuals through "
        "community-driven initiatives and resources."
    ),
    notification_strategy=NotificationStrategy(
        campaign_expired_alert=True,
        low_progress_warning=True,
        milestone_alert=True,
        milestone_alert_message="Your campaign just reached {milestone}% of its goal!",
        progress_alert=True,
        progress_alert_message="Your campaign is at {progress}% of its goal",
        progress_alert_schedule=ProgressAlertSchedule(
            frequency=ProgressAlertFrequency.weekly,
            day=Weekday.monday,
            time="10:00",
        ),
    ),
)

ADMIN_USER = {"name": "Admin", "email": "admin@example.com", "role": "admin"}


def seed_content():
    """建立預設內容與通知設定"""
    Base.metadata.create_all(create_engine(settings.sync_database_url))
    store = start_worker(settings, paused=True)

    try:
        with get_sync_session() as session:
            if not session.query(User).filter_by(email=ADMIN_USER["email"]).first():
                session.add(User(**ADMIN_USER))
                session.commit()
                logger.info(f"Added user: {ADMIN_USER['email']}")

            if session.query(Content).first():
                logger.info("Content already exists")
            else:
                upsert_content(session, DEFAULT_CONTENT, store)
                logger.info("Default content settings created")
    finally:
        shutdown_worker()

    logger.info("Seed completed")


if __name__ == "__main__":
    seed_content()
