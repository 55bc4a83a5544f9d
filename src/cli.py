import argparse
import time

from loguru import logger
from sqlalchemy import create_engine

import src.models  # noqa: F401
from src.config import get_settings
from src.content.strategy import get_strategy_store
from src.db.database import Base, get_sync_session

settings = get_settings()


def init_database():
    """初始化資料庫"""
    engine = create_engine(settings.sync_database_url)
    Base.metadata.create_all(engine)
    logger.info("Database initialized")


def run_worker():
    """Run the notification worker until interrupted."""
    from src.scheduler.runner import shutdown_worker, start_worker

    if settings.run_worker_in_api:
        logger.warning(
            "RUN_WORKER_IN_API is on: an API server on the same job store will run every job twice"
        )

    with get_sync_session() as session:
        get_strategy_store().load(session)

    start_worker(settings)
    try:
        while True:
            time.sleep(1)
    except (KeyboardInterrupt, SystemExit):
        logger.info("Stopping worker")
    finally:
        shutdown_worker()


def list_jobs():
    from src.scheduler.runner import shutdown_worker, start_worker

    store = start_worker(settings, paused=True)
    try:
        for job in store.describe():
            logger.info(f"{job['id']} [{job['name']}] {job['trigger']} next={job['next_run']}")
    finally:
        shutdown_worker(wait=False)


def reconcile_jobs():
    """Re-register the recurring jobs from the stored notification strategy."""
    from src.scheduler.reconciler import ScheduleReconciler
    from src.scheduler.runner import shutdown_worker, start_worker

    with get_sync_session() as session:
        strategy = get_strategy_store().load(session)
    if strategy is None:
        logger.error("No notification strategy configured, run `seed` first")
        return

    store = start_worker(settings, paused=True)
    try:
        registered = ScheduleReconciler(store, settings).reconcile(strategy)
        logger.info(f"Registered: {registered}")
    finally:
        shutdown_worker()


def main():
    parser = argparse.ArgumentParser(description="Campaign Notifier CLI")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # init command
    subparsers.add_parser("init", help="Initialize database")

    # serve command
    subparsers.add_parser("serve", help="Start API server (includes the worker)")

    # worker command
    subparsers.add_parser("worker", help="Run the notification worker only")

    # jobs command
    subparsers.add_parser("jobs", help="List scheduled jobs")

    # reconcile command
    subparsers.add_parser("reconcile", help="Re-register recurring notification jobs")

    # seed command
    subparsers.add_parser("seed", help="Seed default content and admin user")

    args = parser.parse_args()

    if args.command == "init":
        init_database()
    elif args.command == "serve":
        import uvicorn

        uvicorn.run(
            "src.main:app",
            host=settings.api_host,
            port=settings.api_port,
            reload=settings.debug,
        )
    elif args.command == "worker":
        run_worker()
    elif args.command == "jobs":
        list_jobs()
    elif args.command == "reconcile":
        reconcile_jobs()
    elif args.command == "seed":
        from src.db.seed import seed_content

        seed_content()
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
