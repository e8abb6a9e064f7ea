from __future__ import annotations

import re

_WHITESPACE_RUN = re.compile(r"\s+")
_GMAIL_SUFFIX = "@gmail.com"


def _remove_non_printable(value: str) -> str:
    return "".join(ch for ch in value if ch.isprintable() or ch.isspace())


def _remove_extra_space(value: str) -> str:
    return _WHITESPACE_RUN.sub(" ", value).strip()


def sanitize_google_id(value: str | None) -> str | None:
    """
    Обрезает пробелы и отбрасывает суффикс @gmail.com:
    "alice@gmail.com" и "alice" считаются одним google id.
    """
    if value is None:
        return None
    value = value.strip()
    while value.lower().endswith(_GMAIL_SUFFIX):
        value = value[: -len(_GMAIL_SUFFIX)].strip()
    return value


def sanitize_name(value: str | None) -> str | None:
    if value is None:
        return None
    return _remove_extra_space(_remove_non_printable(value))


def sanitize_title(value: str | None) -> str | None:
    # заголовки (id курса, учреждение) чистим так же, как имена
    return sanitize_name(value)


def sanitize_email(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip()
