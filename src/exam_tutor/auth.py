"""Local accounts, invite codes and bearer tokens."""
import secrets
from datetime import datetime

import bcrypt
from loguru import logger

from exam_tutor.config import Settings, get_settings
from exam_tutor.db import get_connection
from exam_tutor.errors import AuthenticationError, AuthorizationError, ValidationError
from exam_tutor.models import User, user_from_row

MIN_PASSWORD_LENGTH = 6


def hash_password(password: str, rounds: int = 12) -> str:
    # bcrypt only looks at the first 72 bytes
    password_bytes = password.encode("utf-8")[:72]
    return bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8")[:72], hashed.encode("utf-8"))


def create_invite_code(db_path: str, code: str | None = None) -> str:
    code = code or secrets.token_urlsafe(8)
    conn = get_connection(db_path)
    conn.execute("INSERT INTO invite_codes (code) VALUES (?)", (code,))
    conn.commit()
    conn.close()
    return code


def get_user(db_path: str, user_id: int) -> User | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
    conn.close()
    return user_from_row(row) if row else None


def register(db_path: str, email: str, password: str, display_name: str,
             invite_code: str | None = None, settings: Settings | None = None) -> User:
    settings = settings or get_settings()
    if not email or not password or not display_name:
        raise ValidationError("All fields are required")
    email = email.strip().lower()
    if "@" not in email:
        raise ValidationError("Invalid email address")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    conn = get_connection(db_path)
    try:
        if conn.execute("SELECT 1 FROM users WHERE email = ?", (email,)).fetchone():
            raise ValidationError("Email already registered")
        if settings.require_invite:
            invite = conn.execute(
                "SELECT * FROM invite_codes WHERE code = ?", (invite_code or "",)
            ).fetchone()
            if invite is None or invite["used_by"] is not None:
                raise ValidationError("A valid invite code is required")
        is_admin = email in {e.lower() for e in settings.admin_emails}
        cur = conn.execute(
            "INSERT INTO users (email, display_name, password_hash, is_admin, created_at) VALUES (?, ?, ?, ?, ?)",
            (email, display_name, hash_password(password, settings.bcrypt_rounds), int(is_admin),
             datetime.now().isoformat()),
        )
        user_id = cur.lastrowid
        if settings.require_invite:
            conn.execute(
                "UPDATE invite_codes SET used_by = ?, used_at = ? WHERE code = ?",
                (user_id, datetime.now().isoformat(), invite_code),
            )
        conn.commit()
    finally:
        conn.close()
    logger.info(f"Registered user {user_id} ({email}){' as admin' if is_admin else ''}")
    return get_user(db_path, user_id)


def login(db_path: str, email: str, password: str) -> str:
    """Check credentials and issue a bearer token."""
    conn = get_connection(db_path)
    row = conn.execute(
        "SELECT * FROM users WHERE email = ?", ((email or "").strip().lower(),)
    ).fetchone()
    if row is None or not verify_password(password or "", row["password_hash"]):
        conn.close()
        raise AuthenticationError("Invalid credentials")
    token = secrets.token_urlsafe(32)
    conn.execute(
        "INSERT INTO auth_tokens (token, user_id, created_at) VALUES (?, ?, ?)",
        (token, row["id"], datetime.now().isoformat()),
    )
    conn.commit()
    conn.close()
    return token


def logout(db_path: str, token: str) -> None:
    conn = get_connection(db_path)
    conn.execute("DELETE FROM auth_tokens WHERE token = ?", (token,))
    conn.commit()
    conn.close()


def authenticate(db_path: str, token: str | None) -> User:
    """Resolve a bearer token to its user."""
    if not token:
        raise AuthenticationError()
    conn = get_connection(db_path)
    row = conn.execute(
        "SELECT u.* FROM auth_tokens t JOIN users u ON t.user_id = u.id WHERE t.token = ?", (token,)
    ).fetchone()
    conn.close()
    if row is None:
        raise AuthenticationError()
    return user_from_row(row)


def require_admin(user: User) -> None:
    if not user.is_admin:
        raise AuthorizationError("Admin access required")
