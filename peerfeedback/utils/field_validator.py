"""
Проверки отдельных полей. Каждая функция возвращает пустую строку, если
значение допустимо, иначе текст ошибки для пользователя. Ничего не бросают.
"""
from __future__ import annotations

import re
from zoneinfo import available_timezones

GOOGLE_ID_MAX_LENGTH = 254
PERSON_NAME_MAX_LENGTH = 100
EMAIL_MAX_LENGTH = 254
COURSE_ID_MAX_LENGTH = 64
COURSE_NAME_MAX_LENGTH = 80
INSTITUTE_NAME_MAX_LENGTH = 128
SECTION_NAME_MAX_LENGTH = 60
SESSION_NAME_MAX_LENGTH = 64

_EMAIL_RE = re.compile(r"^[\w+\-.'%]+@([\w\-]+\.)+[A-Za-z]{2,}$")
_GOOGLE_ID_RE = re.compile(r"^[\w.\-@]+$")
_COURSE_ID_RE = re.compile(r"^[\w.$\-]+$")
_STARTS_WITH_ALNUM_RE = re.compile(r"^[^\W_]", re.UNICODE)


def _check_length(field: str, value: str, max_length: int) -> str:
    if value is None or value == "":
        return f"The field '{field}' is empty."
    if len(value) > max_length:
        return f'"{value}" is not acceptable as {field} because it is too long. ' \
               f"The value of {field} should be no longer than {max_length} characters."
    return ""


def get_invalidity_info_for_google_id(google_id: str | None) -> str:
    error = _check_length("google id", google_id, GOOGLE_ID_MAX_LENGTH)
    if error:
        return error
    if not _GOOGLE_ID_RE.match(google_id) or google_id.lower().endswith("@gmail.com"):
        return f'"{google_id}" is not acceptable as google id because it contains invalid characters.'
    return ""


def get_invalidity_info_for_person_name(name: str | None) -> str:
    error = _check_length("person name", name, PERSON_NAME_MAX_LENGTH)
    if error:
        return error
    if not _STARTS_WITH_ALNUM_RE.match(name):
        return f'"{name}" is not acceptable as person name because it does not start with ' \
               "an alphanumeric character."
    return ""


def get_invalidity_info_for_email(email: str | None) -> str:
    error = _check_length("email", email, EMAIL_MAX_LENGTH)
    if error:
        return error
    if not _EMAIL_RE.match(email):
        return f'"{email}" is not acceptable as email because it is not in the correct format.'
    return ""


def get_invalidity_info_for_course_id(course_id: str | None) -> str:
    error = _check_length("course id", course_id, COURSE_ID_MAX_LENGTH)
    if error:
        return error
    if not _COURSE_ID_RE.match(course_id):
        return f'"{course_id}" is not acceptable as course id because it contains characters ' \
               "other than letters, digits, '.', '_', '-' and '$'."
    return ""


def get_invalidity_info_for_course_name(name: str | None) -> str:
    return _check_length("course name", name, COURSE_NAME_MAX_LENGTH)


def get_invalidity_info_for_institute_name(name: str | None) -> str:
    return _check_length("institute name", name, INSTITUTE_NAME_MAX_LENGTH)


def get_invalidity_info_for_section_name(name: str | None) -> str:
    return _check_length("section name", name, SECTION_NAME_MAX_LENGTH)


def get_invalidity_info_for_session_name(name: str | None) -> str:
    return _check_length("feedback session name", name, SESSION_NAME_MAX_LENGTH)


def get_invalidity_info_for_time_zone(time_zone: str | None) -> str:
    if time_zone not in available_timezones() and time_zone != "UTC":
        return f'"{time_zone}" is not an available time zone.'
    return ""


def get_invalidity_info_for_role(role: str | None, allowed: set[str]) -> str:
    if role not in allowed:
        return f'"{role}" is not an accepted instructor role.'
    return ""


def get_invalidity_info_for_time_window(start, end, start_name: str, end_name: str) -> str:
    if start is not None and end is not None and end < start:
        return f"The {end_name} for this feedback session cannot be earlier than the {start_name}."
    return ""
