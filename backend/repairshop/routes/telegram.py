# Overview: Bot webhook; links customer and owner chats from /start deep links.

"""
Telegram webhook

Telegram posts every bot update here. Only "/start <payload>" messages are
acted on; everything else is acknowledged and ignored. The endpoint always
answers 200 so Telegram does not keep redelivering an update.
"""

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..services import notification_service


telegram_bp = Blueprint("telegram", __name__, url_prefix="/api/telegram")


def _parse_start(text: str) -> str | None:
    parts = (text or "").strip().split(maxsplit=1)
    if not parts or parts[0].split("@", 1)[0] != "/start":
        return None
    return parts[1] if len(parts) > 1 else ""


@telegram_bp.post("/webhook")
def webhook_route():
    update = request.get_json(silent=True) or {}
    message = update.get("message") or {}
    chat_id = (message.get("chat") or {}).get("id")
    payload = _parse_start(message.get("text"))

    if chat_id is None or payload is None:
        return jsonify({"ok": True})

    notifier = notification_service.get_notifier()
    try:
        reply = notification_service.handle_start_payload(payload, chat_id)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Bot /start handling failed")
        reply = "Something went wrong. Please try again."

    try:
        notifier.send_message(str(chat_id), reply)
    except Exception:
        current_app.logger.exception("Failed to reply to chat %s", chat_id)

    return jsonify({"ok": True, "reply": reply})
