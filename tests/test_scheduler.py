# Overview: Pytest coverage for the cron-driven expiry sweep scheduler.

from datetime import date

from shelfguard import scheduler as scheduler_module
from shelfguard.scheduler import SWEEP_JOB_ID, ExpiryNotificationScheduler
from shelfguard.services.expiry_sweep import SweepResult


class TestRunOnce:
    def test_runs_sweep_with_notifier_and_date(self, app, monkeypatch):
        seen = []

        def fake_sweep(notifier, *, today=None):
            seen.append((notifier, today))
            return SweepResult(run_date=today, completed=True)

        monkeypatch.setattr(scheduler_module, "run_expiry_sweep", fake_sweep)
        notifier = object()
        runner = ExpiryNotificationScheduler(app, notifier, "0 9 * * *")

        result = runner.run_once(today=date(2026, 3, 1))

        assert result.completed is True
        assert seen == [(notifier, date(2026, 3, 1))]

    def test_overlapping_tick_is_skipped(self, app, monkeypatch):
        monkeypatch.setattr(scheduler_module, "run_expiry_sweep", lambda *a, **k: SweepResult(run_date=date.today()))
        runner = ExpiryNotificationScheduler(app, object(), "0 9 * * *")

        runner._lock.acquire()
        try:
            assert runner.run_once() is None
        finally:
            runner._lock.release()

        assert runner.run_once() is not None


class TestLifecycle:
    def test_start_registers_single_cron_job(self, app):
        runner = ExpiryNotificationScheduler(app, object(), "30 6 * * *")
        runner.start()
        try:
            assert runner.running is True
            jobs = runner._scheduler.get_jobs()
            assert [job.id for job in jobs] == [SWEEP_JOB_ID]
            assert jobs[0].max_instances == 1
            assert jobs[0].coalesce is True

            # Starting twice keeps the same scheduler
            first = runner._scheduler
            runner.start()
            assert runner._scheduler is first
        finally:
            runner.shutdown()

        assert runner.running is False

    def test_shutdown_without_start_is_noop(self, app):
        runner = ExpiryNotificationScheduler(app, object(), "0 9 * * *")
        runner.shutdown()
        assert runner.running is False

    def test_testing_app_does_not_start_scheduler(self, app):
        assert "expiry_scheduler" not in app.extensions
