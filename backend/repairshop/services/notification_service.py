# Overview: Notification gateway; customer receipts, owner daily summaries and bot link handling.

"""
Notification Gateway

The notifier is an injected capability: create_app() stores one instance in
app.extensions["notifier"] (TelegramNotifier when a bot token is configured,
NullNotifier otherwise) and services look it up through get_notifier().

DELIVERY RULES:
- Customers hear about their job only when it reaches "complete" and a chat
  handle has been linked by scanning the job QR
- Owners with a linked chat handle get one summary per day covering jobs
  created that day (total count and sum of total_amount)
- Delivery is fire-and-forget: failures are logged and never surface to the
  operation that triggered them
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import timedelta

import requests
from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Job, OwnerToken, Shop
from .qr_service import JOB_PAYLOAD_PREFIX, OWNER_PAYLOAD_PREFIX
from .status_service import STATUS_COMPLETE
from repairshop.time_utils import utcnow, start_of_day


TELEGRAM_API_BASE = "https://api.telegram.org"
JOB_LINK_MAX_AGE_DAYS = 30
RECEIPT_RULE = "-" * 30


def format_amount(value, currency: str = "MMK") -> str:
    return f"{int(value or 0):,} {currency}"


def build_receipt_text(job: Job, shop: Shop | None, currency: str = "MMK") -> str:
    created = job.created_at.strftime("%d/%m/%Y, %H:%M:%S") if job.created_at else ""
    lines = [
        (shop.shop_name if shop else None) or "Shop",
        shop.address if shop and shop.address else "",
        f"Phone: {shop.phone}" if shop and shop.phone else "",
        RECEIPT_RULE,
        f"Job No: {job.job_no or job.id}",
        f"Date: {created}" if created else "",
        RECEIPT_RULE,
        f"Customer: {job.customer_name}",
        f"Phone: {job.customer_phone}",
        f"Device: {job.device_model}",
        f"Issue: {job.issue}",
        RECEIPT_RULE,
        f"Parts: {format_amount(job.parts_cost, currency)}",
        f"Service fee: {format_amount(job.service_fee, currency)}",
        f"Deposit: {format_amount(job.reserves, currency)}",
        f"Total: {format_amount(job.total_amount, currency)}",
        f"Status: {job.status}",
        RECEIPT_RULE,
    ]
    return "\n".join(line for line in lines if line)


class Notifier(ABC):
    """Outbound message channel. Subclasses only implement send_message()."""

    currency = "MMK"

    @abstractmethod
    def send_message(self, chat_id: str, text: str) -> None:
        raise NotImplementedError

    def notify_status_change(self, job: Job) -> bool:
        """Tell the customer their device is ready. Returns True if a message went out."""
        if job.status != STATUS_COMPLETE or not job.customer_chat_id:
            return False
        shop = db.session.get(Shop, job.shop_id)
        receipt = build_receipt_text(job, shop, self.currency)
        self.send_message(job.customer_chat_id, f"Your phone repair is complete.\n{receipt}")
        return True

    def notify_daily_summary(self, recipient: str, total_jobs: int, income: int) -> None:
        self.send_message(
            recipient,
            f"Daily report\nTotal jobs: {total_jobs}\nIncome: {format_amount(income, self.currency)}",
        )


class TelegramNotifier(Notifier):
    def __init__(self, token: str, *, currency: str = "MMK", timeout: float = 10.0, session=None):
        self.token = token
        self.currency = currency
        self.timeout = timeout
        self.session = session or requests.Session()

    def send_message(self, chat_id: str, text: str) -> None:
        if not chat_id:
            return
        response = self.session.post(
            f"{TELEGRAM_API_BASE}/bot{self.token}/sendMessage",
            json={"chat_id": chat_id, "text": text},
            timeout=self.timeout,
        )
        response.raise_for_status()


class NullNotifier(Notifier):
    """Used when no bot token is configured; drops every message."""

    def send_message(self, chat_id: str, text: str) -> None:
        return None


def build_notifier(config) -> Notifier:
    token = config.get("TELEGRAM_BOT_TOKEN")
    if not token:
        return NullNotifier()
    return TelegramNotifier(token, currency=config.get("LEDGER_CURRENCY", "MMK"))


def get_notifier() -> Notifier:
    return current_app.extensions["notifier"]


def notify_status_change_safely(job: Job) -> None:
    try:
        get_notifier().notify_status_change(job)
    except Exception:
        current_app.logger.exception("Failed to send status notification for job %s", job.id)


def daily_totals(shop_id: int, *, now=None) -> tuple[int, int]:
    """(job count, sum of total_amount) for jobs created today."""
    start = start_of_day(now or utcnow())
    end = start + timedelta(days=1)
    total_jobs, income = (
        db.session.query(func.count(Job.id), func.coalesce(func.sum(Job.total_amount), 0))
        .filter(Job.shop_id == shop_id, Job.created_at >= start, Job.created_at < end)
        .one()
    )
    return int(total_jobs or 0), int(income or 0)


def send_daily_summaries(*, now=None) -> int:
    """
    Send today's summary to every linked owner chat. Read-only against the
    ledgers. Returns the number of summaries delivered.
    """
    notifier = get_notifier()
    if isinstance(notifier, NullNotifier):
        current_app.logger.warning("Daily summary skipped: notifier not configured")
        return 0

    owners = (
        db.session.query(OwnerToken)
        .filter(OwnerToken.telegram_chat_id.isnot(None))
        .order_by(OwnerToken.id)
        .all()
    )

    sent = 0
    for owner in owners:
        total_jobs, income = daily_totals(owner.shop_id, now=now)
        try:
            notifier.notify_daily_summary(owner.telegram_chat_id, total_jobs, income)
            sent += 1
        except Exception:
            current_app.logger.exception("Failed to send daily summary for shop %s", owner.shop_id)

    current_app.logger.info("Daily summary dispatched to %s owner chat(s)", sent)
    return sent


def handle_start_payload(payload: str | None, chat_id, *, now=None) -> str:
    """
    Link a chat handle from a "/start <payload>" bot command and return the
    reply text.

    job_<id>     -> job.customer_chat_id (unlocked jobs only), reply with the receipt
    owner_<tok>  -> owner token telegram_chat_id, reply with confirmation
    """
    now = now or utcnow()
    payload = (payload or "").strip()
    chat_id = str(chat_id)

    if not payload:
        return "Welcome to Mobile Service Bot. Please scan a valid QR code."

    if payload.startswith(JOB_PAYLOAD_PREFIX):
        raw_id = payload[len(JOB_PAYLOAD_PREFIX):]
        job = db.session.get(Job, int(raw_id)) if raw_id.isdigit() else None
        if job is None:
            return "Job not found."
        if job.created_at < now - timedelta(days=JOB_LINK_MAX_AGE_DAYS):
            return "This job link has expired."
        if not job.is_locked:
            job.customer_chat_id = chat_id
            db.session.commit()
        shop = db.session.get(Shop, job.shop_id)
        return build_receipt_text(job, shop, current_app.config.get("LEDGER_CURRENCY", "MMK"))

    if payload.startswith(OWNER_PAYLOAD_PREFIX):
        token_value = payload[len(OWNER_PAYLOAD_PREFIX):]
        owner = db.session.query(OwnerToken).filter_by(token=token_value).first()
        if owner is None:
            return "Invalid owner token."
        if owner.expires_at < now:
            return "Owner login link has expired."
        owner.telegram_chat_id = chat_id
        db.session.commit()
        return "Admin login successful. You will receive daily reports."

    return "Invalid QR payload."
