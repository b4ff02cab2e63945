# Overview: Local disk storage for shop logos.

from __future__ import annotations

import os
import secrets

from flask import current_app
from werkzeug.utils import secure_filename

from repairshop.errors import ValidationError
from repairshop.time_utils import utcnow


ALLOWED_LOGO_EXTENSIONS = {"png", "jpg", "jpeg", "webp"}
ALLOWED_LOGO_MIMETYPES = {"image/png", "image/jpeg", "image/jpg", "image/webp"}
LOGO_URL_PREFIX = "/uploads/logos/"


class LocalLogoStorage:
    """
    Stores uploads under one folder and hands back a public URL path.
    File names are <shop_id>-<millis>-<random>.<ext>; the client's name only
    contributes its extension.
    """

    def __init__(self, folder: str):
        self.folder = folder

    def save(self, upload, shop_id: int) -> str:
        original = secure_filename(upload.filename or "")
        ext = original.rsplit(".", 1)[-1].lower() if "." in original else ""
        if ext not in ALLOWED_LOGO_EXTENSIONS or (upload.mimetype or "").lower() not in ALLOWED_LOGO_MIMETYPES:
            raise ValidationError("Images only (png, jpg, jpeg, webp)")

        os.makedirs(self.folder, exist_ok=True)
        millis = int(utcnow().timestamp() * 1000)
        name = f"{shop_id}-{millis}-{secrets.token_hex(4)}.{ext}"
        upload.save(os.path.join(self.folder, name))
        return f"{LOGO_URL_PREFIX}{name}"

    def path_for(self, url: str | None) -> str | None:
        if not url or not url.startswith(LOGO_URL_PREFIX):
            return None
        name = secure_filename(url[len(LOGO_URL_PREFIX):])
        if not name:
            return None
        return os.path.join(self.folder, name)

    def delete(self, url: str | None) -> None:
        path = self.path_for(url)
        if path and os.path.exists(path):
            try:
                os.remove(path)
            except OSError:
                current_app.logger.exception("Failed to delete old logo %s", path)


def get_logo_storage() -> LocalLogoStorage:
    return LocalLogoStorage(current_app.config["UPLOAD_FOLDER"])
