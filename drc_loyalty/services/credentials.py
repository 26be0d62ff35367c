from __future__ import annotations

import hashlib
import hmac
import re
import secrets

import bcrypt

_PHONE_NORMALIZE_PATTERN = re.compile(r"[\s().-]+")
_PIN_PATTERN = re.compile(r"^\d{4,6}$")
OTP_CODE_LENGTH = 6
PASSWORD_MIN_LENGTH = 8
# bcrypt only reads the first 72 bytes of a secret.
PASSWORD_MAX_BYTES = 72


def normalize_phone_number(raw_phone: str) -> str:
    return _PHONE_NORMALIZE_PATTERN.sub("", raw_phone.strip())


def is_valid_pin(pin: str) -> bool:
    return _PIN_PATTERN.fullmatch(pin) is not None


def hash_pin(pin: str) -> str:
    return bcrypt.hashpw(pin.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_pin(pin: str, pin_hash: str | None) -> bool:
    if not pin or not pin_hash:
        return False
    try:
        return bcrypt.checkpw(pin.encode("utf-8"), pin_hash.encode("utf-8"))
    except ValueError:
        return False


def is_valid_password(password: str) -> bool:
    if len(password) < PASSWORD_MIN_LENGTH or password.strip() != password:
        return False
    return len(password.encode("utf-8")) <= PASSWORD_MAX_BYTES


def hash_password(password: str) -> str:
    return hash_pin(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    return verify_pin(password, password_hash)


def generate_otp_code() -> str:
    return "".join(secrets.choice("0123456789") for _ in range(OTP_CODE_LENGTH))


def hash_otp_code(*, email: str, code: str, pepper: str) -> str:
    digest = hmac.new(
        pepper.encode("utf-8"),
        f"{email.strip().lower()}:{code.strip()}".encode("utf-8"),
        hashlib.sha256,
    )
    return digest.hexdigest()


def is_valid_otp_code(*, email: str, code: str, expected_hash: str, pepper: str) -> bool:
    received_hash = hash_otp_code(email=email, code=code, pepper=pepper)
    return secrets.compare_digest(received_hash, expected_hash)
