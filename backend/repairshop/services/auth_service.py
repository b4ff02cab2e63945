# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service with Shop Tenancy

Every action is attributable to a user and scoped to a shop.
Uses bcrypt for password hashing and signed bearer tokens that embed the
tenant context {user id, is_super_admin, shop_id}.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 6 characters required
- Tokens are HS256 JWTs signed with SECRET_KEY; routes trust the decoded
  identity and never re-read credentials
- Login refuses shops whose subscription expired or that were deactivated
"""

from __future__ import annotations

from dataclasses import dataclass

import bcrypt
from flask import current_app
from jose import jwt, JWTError

from ..extensions import db
from ..models import User, Shop
from repairshop.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ShopDeactivatedError,
    SubscriptionExpiredError,
    ValidationError,
)
from repairshop.time_utils import utcnow, to_utc_z


TOKEN_ALGORITHM = "HS256"
MIN_PASSWORD_LENGTH = 6


@dataclass(frozen=True)
class Actor:
    """
    Verified identity of the caller.

    Built from a decoded bearer token; every service that needs "who is
    doing this" takes one of these.
    """
    user_id: int | None
    shop_id: int | None
    is_super_admin: bool = False
    name: str | None = None
    email: str | None = None


def validate_password_strength(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for length before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """Verify password against bcrypt hash."""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in storage
        return False


def issue_token(user: User) -> str:
    claims = {
        "user": {
            "id": user.id,
            "is_super_admin": bool(user.is_super_admin),
            "shop_id": user.shop_id,
        },
        "iat": int(utcnow().timestamp()),
    }
    return jwt.encode(claims, current_app.config["SECRET_KEY"], algorithm=TOKEN_ALGORITHM)


def decode_token(token: str) -> Actor | None:
    """Return the Actor embedded in a bearer token, or None if it does not verify."""
    try:
        claims = jwt.decode(token, current_app.config["SECRET_KEY"], algorithms=[TOKEN_ALGORITHM])
    except JWTError:
        return None

    user_claims = claims.get("user") or {}
    user_id = user_claims.get("id")
    if user_id is None:
        return None

    user = db.session.get(User, user_id)
    if user is None:
        return None

    return Actor(
        user_id=user.id,
        shop_id=user_claims.get("shop_id"),
        is_super_admin=bool(user_claims.get("is_super_admin")),
        name=user.name,
        email=user.email,
    )


def register_user(
    *,
    email: str,
    password: str,
    is_super_admin: bool = False,
    shop_id: int | None = None,
    name: str | None = None,
    commit: bool = True,
) -> User:
    """
    Create a login account.

    Shop users must reference an existing shop; super admins never carry one.
    """
    email = (email or "").strip().lower()
    if not email:
        raise ValidationError("email is required")

    if db.session.query(User).filter_by(email=email).first():
        raise ConflictError("User already exists")

    if is_super_admin:
        shop_id = None
    else:
        if not shop_id:
            raise ValidationError("Shop ID is required for non-Super Admin users")
        if db.session.get(Shop, shop_id) is None:
            raise ValidationError("Invalid Shop ID")

    user = User(
        email=email,
        name=name,
        password_hash=hash_password(password),
        is_super_admin=bool(is_super_admin),
        shop_id=shop_id,
    )
    db.session.add(user)
    if commit:
        db.session.commit()
    else:
        db.session.flush()
    return user


def authenticate(email: str, password: str) -> tuple[User, Shop | None]:
    """
    Check credentials and the shop's standing.

    Raises:
        AuthenticationError: bad email/password
        SubscriptionExpiredError: shop subscription is past its expiry
        ShopDeactivatedError: shop switched off by a super admin
    """
    email = (email or "").strip().lower()
    user = db.session.query(User).filter_by(email=email).first()
    if not user or not verify_password(password or "", user.password_hash):
        raise AuthenticationError("Invalid email or password. Please check your credentials.")

    shop = None
    if not user.is_super_admin and user.shop_id:
        shop = db.session.get(Shop, user.shop_id)
        if shop is not None:
            if utcnow() > shop.subscription_expire:
                raise SubscriptionExpiredError(
                    "Your shop subscription has expired. Please contact admin."
                )
            if not shop.is_active:
                raise ShopDeactivatedError(
                    "Your shop account has been deactivated. Please contact admin."
                )

    return user, shop


def profile_dict(user: User, shop: Shop | None) -> dict:
    """User + shop summary returned by login and profile endpoints."""
    data = {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "is_super_admin": user.is_super_admin,
        "shop_id": user.shop_id,
        "shop_name": "Super Admin" if user.is_super_admin else None,
        "phone": None,
        "shop_address": None,
        "subscription_start": None,
        "subscription_expire": None,
        "subscription_plan": None,
        "subscription_class": None,
        "max_staff_allowed": None,
        "logo_url": None,
        "custom_rule": None,
        "registration_date": to_utc_z(user.created_at),
    }
    if shop is not None:
        data.update({
            "shop_name": shop.shop_name,
            "phone": shop.phone,
            "shop_address": shop.address,
            "subscription_start": to_utc_z(shop.subscription_start),
            "subscription_expire": to_utc_z(shop.subscription_expire),
            "subscription_plan": shop.subscription_plan,
            "subscription_class": shop.subscription_class,
            "max_staff_allowed": shop.max_staff_allowed,
            "logo_url": shop.logo_url,
            "custom_rule": shop.custom_rule,
            "registration_date": to_utc_z(shop.created_at),
        })
    return data


def change_password(user_id: int, current_password: str, new_password: str) -> None:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    if not verify_password(current_password or "", user.password_hash):
        raise AuthenticationError("Current password is incorrect")
    user.password_hash = hash_password(new_password)
    db.session.commit()


def reset_shop_owner_password(shop_id: int, new_password: str) -> None:
    """Super-admin override: set the password of the shop's login account."""
    if db.session.get(Shop, shop_id) is None:
        raise NotFoundError("Shop not found")
    user = db.session.query(User).filter_by(shop_id=shop_id).first()
    if user is None:
        raise NotFoundError("User account not found for this shop")
    user.password_hash = hash_password(new_password)
    db.session.commit()


def list_users(*, page: int = 1, limit: int = 50) -> dict:
    page = max(page, 1)
    limit = max(limit, 1)
    query = db.session.query(User).order_by(User.created_at.desc(), User.id.desc())
    total = query.count()
    users = query.offset((page - 1) * limit).limit(limit).all()
    return {
        "users": [u.to_dict() for u in users],
        "current_page": page,
        "total_pages": -(-total // limit),
        "total_users": total,
    }
