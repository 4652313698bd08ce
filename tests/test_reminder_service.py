"""
Tests for automated trial, delivery and re-engagement reminders
"""
from datetime import datetime, timedelta
import pytest

from database.connection import get_db_session
from database.models import Order, Message, utcnow
from services.reminder_service import ReminderService

TODAY = utcnow().date()


def _on(days, hour=11):
    """ISO timestamp ``days`` after today at ``hour``:00"""
    return f"{TODAY + timedelta(days=days)}T{hour:02d}:00:00"


DUE = (TODAY + timedelta(days=2)).strftime("%d/%m/%Y")


def _messages(message_type):
    with get_db_session() as session:
        return [m.to_dict() for m in session.query(Message).filter(Message.type == message_type).all()]


@pytest.mark.integration
class TestUpcomingReminders:
    """Tests for the daily trial/delivery check"""

    def test_trial_two_days_out(self, app, make_client, make_order):
        """Test a trial two days ahead gets one pending reminder"""
        asha = make_client(name='Asha')
        order = make_order(client=asha, trial_date=_on(2))

        with get_db_session() as session:
            result = ReminderService(session).check_upcoming_reminders(TODAY)

        assert [t['order_number'] for t in result['upcoming_trials']] == [order['order_number']]
        assert result['upcoming_trials'][0]['client_name'] == 'Asha'
        assert result['upcoming_deliveries'] == []
        reminders = _messages('TrialReminder')
        assert len(reminders) == 1
        assert reminders[0]['status'] == 'Pending'
        assert DUE in reminders[0]['content']

    def test_other_days_ignored(self, app, make_order):
        """Test trials tomorrow or in three days are not picked up"""
        make_order(trial_date=_on(1))
        make_order(trial_date=_on(3))
        with get_db_session() as session:
            result = ReminderService(session).check_upcoming_reminders(TODAY)
        assert result['upcoming_trials'] == []

    def test_delivery_includes_balance(self, app, make_order):
        """Test delivery reminders mention the balance due"""
        make_order(delivery_date=_on(2, 18), advance=600)
        with get_db_session() as session:
            result = ReminderService(session).check_upcoming_reminders(TODAY)
        assert len(result['upcoming_deliveries']) == 1
        assert 'Balance due: Rs 1000.00' in _messages('DeliveryReminder')[0]['content']

    def test_delivered_orders_skipped(self, app, client, auth_headers, make_order):
        """Test already delivered orders get no reminder"""
        order = make_order(delivery_date=_on(2, 18))
        client.patch(f"/api/orders/{order['id']}/status", json={'status': 'Delivered'}, headers=auth_headers)
        with get_db_session() as session:
            result = ReminderService(session).check_upcoming_reminders(TODAY)
        assert result['upcoming_deliveries'] == []

    def test_one_reminder_per_day(self, app, make_order):
        """Test running the check twice on the same day records one reminder"""
        make_order(trial_date=_on(2))
        with get_db_session() as session:
            ReminderService(session).check_upcoming_reminders(TODAY)
        with get_db_session() as session:
            result = ReminderService(session).check_upcoming_reminders(TODAY)
        assert len(result['upcoming_trials']) == 1
        assert len(_messages('TrialReminder')) == 1

    def test_defaults_to_utc_date(self, app, make_order, monkeypatch):
        """Test the check runs against the UTC date when no day is given"""
        monkeypatch.setattr('services.reminder_service.utcnow', lambda: datetime(2030, 1, 10, 23, 59))
        order = make_order(trial_date='2030-01-12T10:00:00')
        with get_db_session() as session:
            result = ReminderService(session).check_upcoming_reminders()
        assert [t['order_number'] for t in result['upcoming_trials']] == [order['order_number']]

    def test_template_overrides_text(self, app, make_client, make_order):
        """Test an active TrialReminder template is used"""
        from database.models import MessageTemplate

        with get_db_session() as session:
            session.add(MessageTemplate(name='Trial', type='TrialReminder',
                                        content='{{client_name}}, trial on {{trial_date}}'))
        make_order(client=make_client(name='Asha'), trial_date=_on(2))
        with get_db_session() as session:
            ReminderService(session).check_upcoming_reminders(TODAY)
        assert _messages('TrialReminder')[0]['content'] == f'Asha, trial on {DUE}'


@pytest.mark.integration
class TestReEngagementCampaign:
    """Tests for the monthly re-engagement run"""

    def _age(self, client_id, days):
        with get_db_session() as session:
            session.query(Order).filter(Order.client_id == client_id).update(
                {Order.created_at: utcnow() - timedelta(days=days)}, synchronize_session=False
            )

    def test_contacts_inactive_clients(self, app, make_client, make_order):
        """Test inactive clients get a ReEngagement message"""
        old = make_client(name='Old Customer')
        make_order(client=old)
        make_order(client=make_client(name='Recent Customer'))
        self._age(old['id'], 40)

        with get_db_session() as session:
            contacted = ReminderService(session).run_re_engagement_campaign()
        assert [c['name'] for c in contacted] == ['Old Customer']
        assert len(_messages('ReEngagement')) == 1

    def test_cooldown(self, app, make_client, make_order):
        """Test clients contacted within 30 days are skipped"""
        old = make_client()
        make_order(client=old)
        self._age(old['id'], 40)

        with get_db_session() as session:
            ReminderService(session).run_re_engagement_campaign()
        with get_db_session() as session:
            contacted = ReminderService(session).run_re_engagement_campaign()
        assert contacted == []
        assert len(_messages('ReEngagement')) == 1
