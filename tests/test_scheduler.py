"""
Tests for the background scheduler
"""
from datetime import datetime, timedelta
from unittest.mock import MagicMock
import pytest

from services.scheduler import (
    BackgroundScheduler,
    FixedTimeSchedule,
    DEFAULT_JOBS,
    register_default_jobs,
)


@pytest.mark.unit
class TestFixedTimeSchedule:
    """Tests for wall-clock schedules"""

    def test_daily_later_today(self):
        """Test a daily job not yet run today runs today"""
        schedule = FixedTimeSchedule(hour=9)
        assert schedule.next_run(datetime(2026, 3, 5, 7, 30)) == datetime(2026, 3, 5, 9, 0)

    def test_daily_rolls_to_tomorrow(self):
        """Test a daily job already past runs tomorrow"""
        schedule = FixedTimeSchedule(hour=9)
        assert schedule.next_run(datetime(2026, 3, 5, 9, 0)) == datetime(2026, 3, 6, 9, 0)

    def test_daily_rolls_over_month_end(self):
        """Test month and year boundaries"""
        schedule = FixedTimeSchedule(hour=9)
        assert schedule.next_run(datetime(2026, 12, 31, 23, 0)) == datetime(2027, 1, 1, 9, 0)

    def test_monthly_this_month(self):
        """Test a monthly job before its day runs this month"""
        schedule = FixedTimeSchedule(hour=10, day=15)
        assert schedule.next_run(datetime(2026, 3, 5)) == datetime(2026, 3, 15, 10, 0)

    def test_monthly_next_month(self):
        """Test a monthly job past its day runs next month"""
        schedule = FixedTimeSchedule(hour=10, day=1)
        assert schedule.next_run(datetime(2026, 3, 1, 10, 0)) == datetime(2026, 4, 1, 10, 0)
        assert schedule.next_run(datetime(2026, 12, 20)) == datetime(2027, 1, 1, 10, 0)

    def test_describe(self):
        """Test human readable schedules"""
        assert FixedTimeSchedule(hour=9).describe() == 'daily at 09:00'
        assert FixedTimeSchedule(hour=10, day=1).describe() == 'monthly on day 1 at 10:00'


@pytest.mark.unit
class TestBackgroundScheduler:
    """Tests for job bookkeeping"""

    def _scheduler(self, now):
        clock = {'now': now}
        scheduler = BackgroundScheduler(clock=lambda: clock['now'])
        return scheduler, clock

    def test_add_job_computes_next_run(self):
        """Test the first run is scheduled from the clock"""
        scheduler, _ = self._scheduler(datetime(2026, 3, 5, 8, 0))
        scheduler.add_job('reminders', MagicMock(), FixedTimeSchedule(hour=9))
        status = scheduler.get_job_status()['reminders']
        assert status['next_run'] == '2026-03-05T09:00:00'
        assert status['schedule'] == 'daily at 09:00'
        assert status['run_count'] == 0

    def test_run_pending_runs_due_jobs_only(self):
        """Test only due jobs run and are rescheduled"""
        scheduler, _ = self._scheduler(datetime(2026, 3, 5, 8, 0))
        daily, monthly = MagicMock(), MagicMock()
        scheduler.add_job('daily', daily, FixedTimeSchedule(hour=9))
        scheduler.add_job('monthly', monthly, FixedTimeSchedule(hour=10, day=1))

        scheduler.run_pending(datetime(2026, 3, 5, 9, 0, 30))

        daily.assert_called_once_with()
        monthly.assert_not_called()
        status = scheduler.get_job_status()
        assert status['daily']['run_count'] == 1
        assert status['daily']['next_run'] == '2026-03-06T09:00:00'

    def test_disabled_jobs_do_not_run(self):
        """Test disabled jobs are skipped"""
        scheduler, _ = self._scheduler(datetime(2026, 3, 5, 8, 0))
        job = MagicMock()
        scheduler.add_job('daily', job, FixedTimeSchedule(hour=9))
        scheduler.disable_job('daily')
        scheduler.run_pending(datetime(2026, 3, 5, 10, 0))
        job.assert_not_called()

    def test_failing_job_records_error(self):
        """Test a failing job keeps the scheduler alive and records the error"""
        scheduler, _ = self._scheduler(datetime(2026, 3, 5, 8, 0))
        scheduler.add_job('broken', MagicMock(side_effect=RuntimeError('db down')), FixedTimeSchedule(hour=9))
        scheduler.run_pending(datetime(2026, 3, 5, 9, 1))
        status = scheduler.get_job_status()['broken']
        assert status['last_error'] == 'db down'
        assert status['run_count'] == 0
        assert status['next_run'] == '2026-03-06T09:00:00'

    def test_run_job_now(self):
        """Test manual runs do not move the schedule"""
        scheduler, _ = self._scheduler(datetime(2026, 3, 5, 8, 0))
        job = MagicMock()
        scheduler.add_job('daily', job, FixedTimeSchedule(hour=9), kwargs={'dry_run': True})
        assert scheduler.run_job_now('daily') is True
        job.assert_called_once_with(dry_run=True)
        assert scheduler.get_job_status()['daily']['next_run'] == '2026-03-05T09:00:00'

    def test_run_unknown_job(self):
        """Test unknown ids report False"""
        scheduler, _ = self._scheduler(datetime(2026, 3, 5, 8, 0))
        assert scheduler.run_job_now('missing') is False

    def test_default_jobs(self):
        """Test the shop's two jobs and their times"""
        scheduler, _ = self._scheduler(datetime(2026, 3, 5, 8, 0))
        register_default_jobs(scheduler)
        status = scheduler.get_job_status()
        assert set(status) == set(DEFAULT_JOBS) == {'upcoming_reminders', 're_engagement'}
        assert status['upcoming_reminders']['schedule'] == 'daily at 09:00'
        assert status['re_engagement']['next_run'] == '2026-04-01T10:00:00'

    def test_default_jobs_receive_shop_name(self):
        """Test the configured shop name is handed to each job"""
        scheduler, _ = self._scheduler(datetime(2026, 3, 5, 8, 0))
        register_default_jobs(scheduler, shop_name='Darji Tailors')
        assert {job['kwargs']['shop_name'] for job in scheduler.jobs.values()} == {'Darji Tailors'}


@pytest.mark.integration
class TestSchedulerAPI:
    """Tests for /api/scheduler"""

    def test_status(self, client, auth_headers):
        """Test jobs are registered even when the thread is not started"""
        data = client.get('/api/scheduler/status', headers=auth_headers).get_json()
        assert data['running'] is False
        assert {'upcoming_reminders', 're_engagement'} <= set(data['jobs'])

    def test_run_job(self, client, auth_headers):
        """Test a job can be triggered manually"""
        response = client.post('/api/scheduler/run/upcoming_reminders', headers=auth_headers)
        assert response.status_code == 200
        data = response.get_json()
        assert data['message'] == 'Job upcoming_reminders executed'
        assert data['job']['last_error'] is None

    def test_run_unknown_job(self, client, auth_headers):
        """Test unknown jobs are a 404"""
        response = client.post('/api/scheduler/run/nightly_backup', headers=auth_headers)
        assert response.status_code == 404
        assert response.get_json() == {'error': 'Job not found'}

    def test_requires_token(self, client):
        """Test the scheduler routes are protected"""
        assert client.get('/api/scheduler/status').status_code == 401


@pytest.mark.integration
class TestSchedulerJobs:
    """Tests for the jobs as the scheduler thread runs them"""

    def test_reminders_use_configured_shop_name(self, workdir):
        """Test a job run outside any request uses SHOP_NAME from the app config"""
        from app_init import create_app
        from config import TestingConfig
        from database.connection import get_db_session, drop_db
        from database.models import Message, utcnow
        from services.clients_repository import ClientsRepository
        from services.garments_repository import GarmentsRepository
        from services.orders_repository import OrdersRepository
        from services.scheduler import get_scheduler

        class ShopConfig(TestingConfig):
            SHOP_NAME = 'Darji Tailors'

        create_app(ShopConfig)
        try:
            trial = datetime.combine(utcnow().date(), datetime.min.time()).replace(hour=11)
            with get_db_session() as session:
                asha = ClientsRepository(session).create_client({'name': 'Asha', 'phone': '+919876500001'})
                kurta = GarmentsRepository(session).create_garment({'name': 'Kurta', 'price': 800, 'cost': 300})
                OrdersRepository(session).create_order({
                    'client_id': asha['id'],
                    'items': [{'garment_type_id': kurta['id'], 'quantity': 1, 'price': 800, 'subtotal': 800}],
                    'total_amount': 800,
                    'trial_date': trial + timedelta(days=2),
                })

            assert get_scheduler().run_job_now('upcoming_reminders') is True

            with get_db_session() as session:
                reminder = session.query(Message).filter(Message.type == 'TrialReminder').one()
                assert 'Darji Tailors' in reminder.content
        finally:
            drop_db()
