# Overview: Bot deep-link payloads for job tracking and owner linking.

from __future__ import annotations

import secrets

from flask import current_app


JOB_PAYLOAD_PREFIX = "job_"
OWNER_PAYLOAD_PREFIX = "owner_"


def build_qr_link(payload: str) -> str:
    bot = current_app.config["TELEGRAM_BOT_USERNAME"]
    return f"https://t.me/{bot}?start={payload}"


def job_payload(job_id: int) -> str:
    return f"{JOB_PAYLOAD_PREFIX}{job_id}"


def owner_payload(token: str) -> str:
    return f"{OWNER_PAYLOAD_PREFIX}{token}"


def generate_owner_token() -> str:
    # 24 random bytes, hex encoded
    return secrets.token_hex(24)
