"""
Notification gateway: bot deep links, daily owner summaries, transport.
"""

from datetime import datetime, timedelta

import pytest
import requests

from repairshop.models import OwnerToken
from repairshop.services import job_service, notification_service, shop_service
from repairshop.services.notification_service import (
    NullNotifier,
    TelegramNotifier,
    build_notifier,
    handle_start_payload,
)
from repairshop.time_utils import utcnow


def _job(shop_id, **overrides):
    fields = {
        "customer_name": "U Ba",
        "customer_phone": "09123123123",
        "device_model": "Pixel 7",
        "issue": "No power",
        "parts_cost": 15000,
        "service_fee": 10000,
    }
    fields.update(overrides)
    return job_service.create_job(shop_id, fields)


class FakeResponse:
    def __init__(self, status_code=200):
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    def __init__(self, status_code=200):
        self.calls = []
        self.status_code = status_code

    def post(self, url, json=None, timeout=None):
        self.calls.append((url, json, timeout))
        return FakeResponse(self.status_code)


class TestTransport:

    def test_telegram_posts_send_message(self):
        session = FakeSession()
        TelegramNotifier("abc:123", session=session, timeout=5).send_message("42", "hi")
        assert session.calls == [
            ("https://api.telegram.org/botabc:123/sendMessage", {"chat_id": "42", "text": "hi"}, 5)
        ]

    def test_http_error_raises(self):
        with pytest.raises(requests.HTTPError):
            TelegramNotifier("t", session=FakeSession(502)).send_message("42", "hi")

    def test_build_notifier(self):
        assert isinstance(build_notifier({"TELEGRAM_BOT_TOKEN": None}), NullNotifier)
        built = build_notifier({"TELEGRAM_BOT_TOKEN": "t", "LEDGER_CURRENCY": "USD"})
        assert isinstance(built, TelegramNotifier)
        assert built.currency == "USD"


class TestStartPayload:

    def test_welcome_without_payload(self, db_session):
        assert "scan a valid QR" in handle_start_payload("", 1)

    def test_job_link_binds_customer_chat(self, db_session, shop_a):
        job = _job(shop_a.id)
        reply = handle_start_payload(f"job_{job.id}", 777)

        assert job.job_no in reply
        assert "Total: 25,000 MMK" in reply
        assert job_service.get_job(job.id, shop_a.id).customer_chat_id == "777"

    def test_checked_out_job_keeps_chat_unset(self, db_session, shop_a):
        job = _job(shop_a.id)
        job_service.checkout_job(job.id, shop_a.id)
        reply = handle_start_payload(f"job_{job.id}", 777)

        assert job.job_no in reply
        assert job_service.get_job(job.id, shop_a.id).customer_chat_id is None

    def test_expired_job_link(self, db_session, shop_a):
        job = _job(shop_a.id)
        job.created_at = utcnow() - timedelta(days=40)
        db_session.commit()
        assert handle_start_payload(f"job_{job.id}", 777) == "This job link has expired."
        assert job_service.get_job(job.id, shop_a.id).customer_chat_id is None

    @pytest.mark.parametrize("payload", ["job_99999", "job_abc"])
    def test_missing_job(self, db_session, payload):
        assert handle_start_payload(payload, 1) == "Job not found."

    def test_owner_link(self, db_session, shop_a):
        token = shop_service.generate_owner_qr(shop_a.id)["token"]
        reply = handle_start_payload(f"owner_{token}", 888)

        assert reply.startswith("Admin login successful")
        assert db_session.query(OwnerToken).filter_by(token=token).one().telegram_chat_id == "888"

    def test_owner_link_expired(self, db_session, shop_a):
        token = shop_service.generate_owner_qr(shop_a.id, now=utcnow() - timedelta(days=8))["token"]
        assert handle_start_payload(f"owner_{token}", 888) == "Owner login link has expired."

    def test_unknown_payloads(self, db_session):
        assert handle_start_payload("owner_nope", 1) == "Invalid owner token."
        assert handle_start_payload("hello", 1) == "Invalid QR payload."


class TestDailySummary:

    def test_sends_to_linked_owners(self, db_session, shop_a, shop_b, notifier):
        _job(shop_a.id)
        _job(shop_a.id, parts_cost=0, service_fee=5000)
        yesterday = _job(shop_a.id)
        yesterday.created_at = utcnow() - timedelta(days=1, hours=1)
        db_session.commit()

        linked = shop_service.generate_owner_qr(shop_a.id)["token"]
        handle_start_payload(f"owner_{linked}", 900)
        # Unlinked token for shop B receives nothing
        shop_service.generate_owner_qr(shop_b.id)

        assert notification_service.send_daily_summaries() == 1
        chat_id, text = notifier.sent[0]
        assert chat_id == "900"
        assert "Total jobs: 2" in text
        assert "Income: 30,000 MMK" in text

    def test_daily_totals_window(self, db_session, shop_a):
        job = _job(shop_a.id)
        job.created_at = datetime(2026, 4, 2, 23, 59)
        db_session.commit()
        assert notification_service.daily_totals(shop_a.id, now=datetime(2026, 4, 2, 21, 0)) == (1, 25000)
        assert notification_service.daily_totals(shop_a.id, now=datetime(2026, 4, 3, 0, 1)) == (0, 0)

    def test_one_failure_does_not_stop_others(self, db_session, shop_a, shop_b, notifier):
        for shop in (shop_a, shop_b):
            token = shop_service.generate_owner_qr(shop.id)["token"]
            handle_start_payload(f"owner_{token}", shop.id)
        notifier.fail = True
        assert notification_service.send_daily_summaries() == 0

    def test_skipped_without_transport(self, db_session, app, shop_a):
        assert isinstance(app.extensions["notifier"], NullNotifier)
        assert notification_service.send_daily_summaries() == 0
