import re

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^[0-9]{10,11}$")


def is_valid_email(email) -> bool:
    return bool(email) and bool(EMAIL_RE.match(email))


def is_valid_phone(phone) -> bool:
    return bool(phone) and bool(PHONE_RE.match(re.sub(r"\s", "", phone)))


def has_min_length(value, length: int = 2) -> bool:
    return value is not None and len(value.strip()) >= length
