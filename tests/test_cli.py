# Overview: Pytest coverage for the flask CLI command groups.

from datetime import timedelta

from shelfguard.extensions import db
from shelfguard.models import NotificationLog, RefreshToken, User
from shelfguard.services import token_service
from shelfguard.time_utils import utcnow

from conftest import make_product


class TestUsersCommands:
    def test_create_manager(self, app, shop_a):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            "users", "create-manager",
            "--shop-id", str(shop_a.id),
            "--email", "Mia@Shop-A.test",
            "--name", "Mia",
            "--password", "secret123",
        ])

        assert result.exit_code == 0, result.output
        assert "PASS Created manager mia@shop-a.test" in result.output
        manager = db.session.query(User).filter_by(email="mia@shop-a.test").one()
        assert manager.role == "manager"
        assert manager.shop_id == shop_a.id

    def test_create_manager_unknown_shop(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            "users", "create-manager",
            "--shop-id", "999",
            "--email", "mia@nowhere.test",
            "--name", "Mia",
            "--password", "secret123",
        ])

        assert result.exit_code != 0
        assert "Shop not found" in result.output

    def test_list_filters_by_shop(self, app, owner_a, owner_b):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["users", "list", "--shop-id", str(owner_a.shop_id)])

        assert result.exit_code == 0
        assert "alice@shop-a.test" in result.output
        assert "bob@shop-b.test" not in result.output


class TestSweepCommand:
    def test_run_sweep(self, app, shop_a, notifier):
        make_product(shop_a, days=3)
        runner = app.test_cli_runner()

        result = runner.invoke(args=["sweep", "run"])

        assert result.exit_code == 0, result.output
        assert "created=1" in result.output
        assert db.session.query(NotificationLog).count() == 1
        assert len(notifier.sent) == 1

    def test_run_sweep_for_given_date(self, app, shop_a, notifier):
        product = make_product(shop_a, days=10)
        run_date = (product.expiry_date - timedelta(days=7)).isoformat()

        result = app.test_cli_runner().invoke(args=["sweep", "run", "--date", run_date])

        assert result.exit_code == 0, result.output
        log = db.session.query(NotificationLog).one()
        assert log.days_to_expiry == 7
        assert log.sent_on.isoformat() == run_date

    def test_bad_date(self, app, db_session, notifier):
        result = app.test_cli_runner().invoke(args=["sweep", "run", "--date", "tomorrow"])
        assert result.exit_code == 2


class TestMaintenanceCommand:
    def test_cleanup_refresh_tokens(self, app, owner_a):
        token_service.issue_token_pair(owner_a.id)
        stale = token_service.issue_token_pair(owner_a.id)
        row = db.session.query(RefreshToken).filter_by(token=stale["refreshToken"]).one()
        row.expires_at = utcnow() - timedelta(hours=1)
        db.session.commit()

        result = app.test_cli_runner().invoke(args=["maintenance", "cleanup-refresh-tokens"])

        assert result.exit_code == 0
        assert "Deleted 1 expired refresh tokens." in result.output
        assert db.session.query(RefreshToken).count() == 1
