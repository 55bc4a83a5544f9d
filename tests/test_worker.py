from unittest.mock import MagicMock, patch

import pytest

from src.scheduler.store import JobName
from src.scheduler.worker import JobDispatcher, execute_job, set_dispatcher


@pytest.fixture
def handlers():
    return {name: MagicMock(return_value=1) for name in JobName}


@pytest.fixture
def store():
    return MagicMock()


class TestJobDispatcher:
    def test_routes_by_job_name(self, store, handlers):
        dispatcher = JobDispatcher(store, handlers)

        result = dispatcher.process("checkLowProgress", {"a": 1})

        assert result == 1
        handlers[JobName.check_low_progress].assert_called_once_with({"a": 1})
        for name, handler in handlers.items():
            if name != JobName.check_low_progress:
                handler.assert_not_called()

    def test_missing_payload_becomes_empty_dict(self, store, handlers):
        JobDispatcher(store, handlers).process("checkExpiredCampaigns")
        handlers[JobName.check_expired_campaigns].assert_called_once_with({})

    def test_unknown_job_is_dropped(self, store, handlers):
        dispatcher = JobDispatcher(store, handlers)

        assert dispatcher.process("sendNewsletter", {}) is None
        for handler in handlers.values():
            handler.assert_not_called()
        store.schedule_retry.assert_not_called()

    def test_requires_handler_for_every_job(self, store, handlers):
        del handlers[JobName.send_milestone_alert]
        with pytest.raises(ValueError, match="sendMilestoneAlert"):
            JobDispatcher(store, handlers)

    def test_default_handlers_cover_all_jobs(self, store):
        dispatcher = JobDispatcher(store)
        assert set(dispatcher.handlers) == set(JobName)

    def test_completion_signal(self, store, handlers):
        dispatcher = JobDispatcher(store, handlers)
        completed, failed = MagicMock(), MagicMock()
        dispatcher.on_completed(completed)
        dispatcher.on_failed(failed)

        dispatcher.process("sendProgressAlert", {"message": "m"})

        outcome = completed.call_args.args[0]
        assert outcome.name == JobName.send_progress_alert
        assert outcome.result == 1
        assert outcome.error is None
        failed.assert_not_called()

    def test_failure_schedules_retry_and_reraises(self, store, handlers):
        handlers[JobName.check_low_progress].side_effect = RuntimeError("db down")
        dispatcher = JobDispatcher(store, handlers, max_attempts=3)
        failed = MagicMock()
        dispatcher.on_failed(failed)

        with pytest.raises(RuntimeError):
            dispatcher.process("checkLowProgress", {"k": "v"}, attempt=0)

        store.schedule_retry.assert_called_once_with(JobName.check_low_progress, {"k": "v"}, 1)
        failed.assert_not_called()

    def test_exhausted_retries_emit_failure(self, store, handlers):
        handlers[JobName.send_milestone_alert].side_effect = RuntimeError("still down")
        dispatcher = JobDispatcher(store, handlers, max_attempts=3)
        completed, failed = MagicMock(), MagicMock()
        dispatcher.on_completed(completed)
        dispatcher.on_failed(failed)

        with pytest.raises(RuntimeError):
            dispatcher.process("sendMilestoneAlert", {"campaign_id": 1}, attempt=2)

        store.schedule_retry.assert_not_called()
        completed.assert_not_called()
        outcome = failed.call_args.args[0]
        assert outcome.attempt == 2
        assert isinstance(outcome.error, RuntimeError)

    def test_retry_scheduling_failure_emits_failure(self, store, handlers):
        handlers[JobName.check_low_progress].side_effect = RuntimeError("db down")
        store.schedule_retry.side_effect = RuntimeError("store down")
        dispatcher = JobDispatcher(store, handlers)
        failed = MagicMock()
        dispatcher.on_failed(failed)

        with pytest.raises(RuntimeError, match="db down"):
            dispatcher.process("checkLowProgress", {})

        failed.assert_called_once()

    def test_listener_errors_are_contained(self, store, handlers):
        dispatcher = JobDispatcher(store, handlers)
        dispatcher.on_completed(MagicMock(side_effect=ValueError("bad listener")))

        assert dispatcher.process("checkLowProgress", {}) == 1


class TestExecuteJob:
    def test_routes_to_installed_dispatcher(self):
        dispatcher = MagicMock()
        dispatcher.process.return_value = 3
        set_dispatcher(dispatcher)
        try:
            assert execute_job("checkLowProgress", {}, 1) == 3
        finally:
            set_dispatcher(None)

        dispatcher.process.assert_called_once_with("checkLowProgress", {}, 1)

    def test_without_worker_raises(self):
        set_dispatcher(None)
        with pytest.raises(RuntimeError):
            execute_job("checkLowProgress", {})


class TestRunner:
    @patch("src.scheduler.runner.SQLAlchemyJobStore")
    def test_start_and_shutdown_worker(self, mock_jobstore_cls):
        from apscheduler.jobstores.memory import MemoryJobStore

        from src.config import Settings
        from src.scheduler import runner
        from src.scheduler.worker import get_dispatcher

        mock_jobstore_cls.return_value = MemoryJobStore()
        settings = Settings(worker_concurrency=2, job_max_attempts=4)

        store = runner.start_worker(settings, paused=True)
        try:
            assert runner.get_schedule_store() is store
            assert runner.start_worker(settings) is store
            assert get_dispatcher().max_attempts == 4
            assert store.scheduler.running
        finally:
            runner.shutdown_worker(wait=False)

        with pytest.raises(RuntimeError):
            runner.get_schedule_store()
        with pytest.raises(RuntimeError):
            get_dispatcher()
