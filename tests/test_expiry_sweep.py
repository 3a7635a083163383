# Overview: Pytest coverage for the expiry sweep: classification, idempotency and delivery.

"""
Expiry sweep tests.

Verifies:
- Lead times map to warning / critical / expired with singular and plural copy
- One log per (product, lead time, day) no matter how often the sweep runs
- A lost insert race is counted as a duplicate, not an error
- Push failures for one user do not stop delivery to the others
- Disabled shops and non-active products are ignored
"""

from datetime import date, timedelta

import pytest

from shelfguard.extensions import db
from shelfguard.models import NotificationLog
from shelfguard.services import expiry_sweep
from shelfguard.services.auth_service import create_manager
from shelfguard.services.expiry_sweep import classify_lead_time, run_expiry_sweep

from conftest import make_product


class TestClassification:
    @pytest.mark.parametrize("days, kind, title, body", [
        (0, "expired", "Product Expiring Today", "Milk is expiring today!"),
        (1, "expiry_critical", "Critical: 1 Day to Expiry", "Milk will expire in 1 day"),
        (3, "expiry_critical", "Critical: 3 Days to Expiry", "Milk will expire in 3 days"),
        (4, "expiry_warning", "4 Days to Expiry", "Milk will expire in 4 days"),
        (7, "expiry_warning", "7 Days to Expiry", "Milk will expire in 7 days"),
    ])
    def test_classify(self, days, kind, title, body):
        message = classify_lead_time(days, "Milk")
        assert message.notification_type == kind
        assert message.title == title
        assert message.body == body


class TestSweep:
    def test_creates_logs_for_matching_lead_times(self, shop_a, owner_a, notifier):
        week = make_product(shop_a, name="Week", days=7)
        critical = make_product(shop_a, name="Critical", days=3)
        today = make_product(shop_a, name="Today", days=0)
        make_product(shop_a, name="Not a lead time", days=5)

        result = run_expiry_sweep(notifier)

        assert result.completed is True
        assert result.logs_created == 3
        logs = {log.product_id: log for log in db.session.query(NotificationLog).all()}
        assert set(logs) == {week.id, critical.id, today.id}
        assert logs[week.id].notification_type == "expiry_warning"
        assert logs[critical.id].notification_type == "expiry_critical"
        assert logs[today.id].notification_type == "expired"
        assert logs[today.id].sent_on == date.today()

        assert len(notifier.sent) == 3
        assert {m["user_id"] for m in notifier.sent} == {owner_a.id}
        sent_today = next(m for m in notifier.sent if m["data"]["productId"] == today.id)
        assert sent_today["title"] == "Product Expiring Today"
        assert sent_today["data"] == {"productId": today.id, "daysToExpiry": 0, "type": "expired"}

    def test_second_run_same_day_sends_nothing(self, shop_a, notifier):
        make_product(shop_a, days=3)

        first = run_expiry_sweep(notifier)
        second = run_expiry_sweep(notifier)

        assert first.logs_created == 1
        assert second.logs_created == 0
        assert second.duplicates_skipped == 1
        assert db.session.query(NotificationLog).count() == 1
        assert len(notifier.sent) == 1

    def test_next_day_logs_again_for_new_lead_time(self, shop_a, notifier):
        product = make_product(shop_a, days=4)

        run_expiry_sweep(notifier, today=date.today())
        run_expiry_sweep(notifier, today=date.today() + timedelta(days=1))

        logs = db.session.query(NotificationLog).filter_by(product_id=product.id).all()
        assert [log.days_to_expiry for log in logs] == [3]

    def test_lost_insert_race_counts_as_duplicate(self, shop_a, notifier, monkeypatch):
        make_product(shop_a, days=3)
        run_expiry_sweep(notifier)

        # Simulate a second process that passed the lookup before the first committed
        monkeypatch.setattr(expiry_sweep, "_already_logged", lambda *args: False)
        result = run_expiry_sweep(notifier)

        assert result.completed is True
        assert result.logs_created == 0
        assert result.duplicates_skipped == 1
        assert db.session.query(NotificationLog).count() == 1
        assert len(notifier.sent) == 1

    def test_push_failure_does_not_stop_other_users(self, shop_a, owner_a, notifier):
        manager = create_manager(shop_a.id, "mia@shop-a.test", "Mia", "secret123")
        make_product(shop_a, days=7)
        notifier.fail_for.add(owner_a.id)

        result = run_expiry_sweep(notifier)

        assert result.completed is True
        assert result.logs_created == 1
        assert result.pushes_failed == 1
        assert result.pushes_sent == 1
        assert [m["user_id"] for m in notifier.sent] == [manager.id]

    def test_disabled_shop_is_skipped(self, shop_a, shop_b, notifier):
        shop_a.notifications_enabled = False
        db.session.commit()
        make_product(shop_a, name="Silent", days=3)
        loud = make_product(shop_b, name="Loud", days=3)

        result = run_expiry_sweep(notifier)

        assert result.shops_scanned == 1
        assert [log.product_id for log in db.session.query(NotificationLog).all()] == [loud.id]

    def test_inactive_products_are_skipped(self, shop_a, notifier):
        make_product(shop_a, name="Sold", days=3, status="sold")
        make_product(shop_a, name="Disposed", days=0, status="disposed")

        result = run_expiry_sweep(notifier)

        assert result.logs_created == 0
        assert notifier.sent == []

    def test_custom_lead_times(self, shop_a, notifier):
        shop_a.default_notification_days = [14, 1]
        db.session.commit()
        make_product(shop_a, name="Default seven", days=7)
        fortnight = make_product(shop_a, name="Fortnight", days=14)
        tomorrow = make_product(shop_a, name="Tomorrow", days=1)

        run_expiry_sweep(notifier)

        logged = {log.product_id: log.title for log in db.session.query(NotificationLog).all()}
        assert logged == {
            fortnight.id: "14 Days to Expiry",
            tomorrow.id: "Critical: 1 Day to Expiry",
        }

    def test_empty_lead_times_send_nothing(self, shop_a, shop_b, notifier):
        shop_a.default_notification_days = []
        db.session.commit()
        make_product(shop_a, name="Week", days=7)
        make_product(shop_a, name="Today", days=0)
        other = make_product(shop_b, name="Other shop", days=3)

        result = run_expiry_sweep(notifier)

        assert result.completed is True
        assert [log.product_id for log in db.session.query(NotificationLog).all()] == [other.id]
        assert all(m["data"]["productId"] == other.id for m in notifier.sent)

    def test_database_error_ends_run_without_raising(self, shop_a, notifier, monkeypatch):
        make_product(shop_a, days=3)

        def broken(*args, **kwargs):
            raise RuntimeError("database went away")

        monkeypatch.setattr(expiry_sweep, "_already_logged", broken)
        result = run_expiry_sweep(notifier)

        assert result.completed is False
        assert result.logs_created == 0
        assert result.to_dict()["completed"] is False
