from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

import yaml
from sqlalchemy.orm import Session

from peerfeedback.models import (
    Account,
    Course,
    FeedbackSession,
    Instructor,
    Notification,
    ReadNotification,
    Section,
    Student,
)
from peerfeedback.utils.privileges import InstructorPrivileges, InstructorRole


class DataBundleError(Exception):
    """Исключение при проблемах с набором данных."""

    def __init__(self, message: str, errors: List[str] | None = None):
        super().__init__(message if not errors else message + "\n" + "\n".join(errors))
        self.errors = errors or []


@dataclass
class DataBundle:
    """
    Набор связанных сущностей, загруженный из YAML.
    Ключи словарей это локальные имена из файла, по ним сущности ссылаются
    друг на друга (instructor.course: cs101 и т. п.).
    """
    accounts: Dict[str, Account] = field(default_factory=dict)
    courses: Dict[str, Course] = field(default_factory=dict)
    sections: Dict[str, Section] = field(default_factory=dict)
    instructors: Dict[str, Instructor] = field(default_factory=dict)
    students: Dict[str, Student] = field(default_factory=dict)
    feedback_sessions: Dict[str, FeedbackSession] = field(default_factory=dict)
    notifications: Dict[str, Notification] = field(default_factory=dict)
    read_notifications: List[ReadNotification] = field(default_factory=list)

    def all_entities(self) -> list:
        # порядок вставки: владельцы раньше зависимых
        return [
            *self.accounts.values(),
            *self.notifications.values(),
            *self.courses.values(),
            *self.sections.values(),
            *self.instructors.values(),
            *self.students.values(),
            *self.feedback_sessions.values(),
            *self.read_notifications,
        ]


def _load_yaml(path: Path) -> Dict[str, Any]:
    """Читает YAML и возвращает dict. Бросает DataBundleError при ошибке."""
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise DataBundleError(f"Ошибка чтения YAML {path}: {e}") from e
    if not isinstance(data, dict):
        raise DataBundleError(f"Формат YAML должен быть объектом (mapping): {path}")
    return data


def _as_datetime(value: Any, where: str) -> datetime:
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError as e:
            raise DataBundleError(f"{where}: некорректная дата {value!r}") from e
    if not isinstance(value, datetime):
        raise DataBundleError(f"{where}: ожидается дата, получено {value!r}")
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _ref(table: Dict[str, Any], name: Any, where: str):
    if name is None:
        return None
    if name not in table:
        raise DataBundleError(f"{where}: ссылка на неизвестную запись {name!r}")
    return table[name]


def _privileges(role: str, overrides: Dict[str, Any] | None) -> InstructorPrivileges:
    template = role if role in {r.value for r in InstructorRole} else InstructorRole.CUSTOM
    privileges = InstructorPrivileges(template)
    for name, value in (overrides or {}).items():
        if isinstance(value, dict):
            # переопределения по секциям: {section: {perm: bool}}
            for perm, flag in value.items():
                privileges.update_privilege(perm, flag, section=name)
        else:
            privileges.update_privilege(name, value)
    return privileges


def build_data_bundle(data: Dict[str, Any]) -> DataBundle:
    bundle = DataBundle()

    for key, raw in (data.get("accounts") or {}).items():
        bundle.accounts[key] = Account(raw.get("google_id"), raw.get("name"), raw.get("email"))

    for key, raw in (data.get("notifications") or {}).items():
        where = f"notifications.{key}"
        bundle.notifications[key] = Notification(
            raw.get("title"), raw.get("message"),
            _as_datetime(raw.get("start_time"), where), _as_datetime(raw.get("end_time"), where),
        )

    for key, raw in (data.get("courses") or {}).items():
        bundle.courses[key] = Course(raw.get("id", key), raw.get("name"), raw.get("time_zone"),
                                     raw.get("institute"))

    for key, raw in (data.get("sections") or {}).items():
        course = _ref(bundle.courses, raw.get("course"), f"sections.{key}")
        section = Section(course, raw.get("name"))
        course.add_section(section)
        bundle.sections[key] = section

    for key, raw in (data.get("instructors") or {}).items():
        where = f"instructors.{key}"
        role = raw.get("role", InstructorRole.COOWNER.value)
        instructor = Instructor(
            _ref(bundle.courses, raw.get("course"), where),
            raw.get("name"),
            raw.get("email"),
            is_displayed_to_students=raw.get("is_displayed_to_students", True),
            display_name=raw.get("display_name"),
            role=role,
            privileges=_privileges(role, raw.get("privileges")),
        )
        instructor.account = _ref(bundle.accounts, raw.get("account"), where)
        bundle.instructors[key] = instructor

    for key, raw in (data.get("students") or {}).items():
        where = f"students.{key}"
        student = Student(
            _ref(bundle.courses, raw.get("course"), where),
            raw.get("name"),
            raw.get("email"),
            comments=raw.get("comments", ""),
            section=_ref(bundle.sections, raw.get("section"), where),
        )
        student.account = _ref(bundle.accounts, raw.get("account"), where)
        bundle.students[key] = student

    for key, raw in (data.get("feedback_sessions") or {}).items():
        where = f"feedback_sessions.{key}"
        bundle.feedback_sessions[key] = FeedbackSession(
            _ref(bundle.courses, raw.get("course"), where),
            raw.get("name"),
            raw.get("creator_email"),
            _as_datetime(raw.get("start_time"), where),
            _as_datetime(raw.get("end_time"), where),
            instructions=raw.get("instructions", ""),
        )

    for index, raw in enumerate(data.get("read_notifications") or []):
        where = f"read_notifications[{index}]"
        account = _ref(bundle.accounts, raw.get("account"), where)
        if account is None:
            raise DataBundleError(f"{where}: не указан аккаунт")
        read = ReadNotification(account, _ref(bundle.notifications, raw.get("notification"), where))
        account.add_read_notification(read)
        bundle.read_notifications.append(read)

    return bundle


def validate_data_bundle(bundle: DataBundle) -> List[str]:
    errors: List[str] = []
    for entity in bundle.all_entities():
        for problem in entity.get_invalidity_info():
            errors.append(f"{type(entity).__name__} {entity.id}: {problem}")
    return errors


def persist_data_bundle(db: Session, bundle: DataBundle) -> DataBundle:
    """
    Проверяет все сущности и сохраняет их одной транзакцией.
    При любой ошибке валидации ничего не пишет.
    """
    errors = validate_data_bundle(bundle)
    if errors:
        raise DataBundleError("Набор данных содержит некорректные записи:", errors)
    db.add_all(bundle.all_entities())
    db.commit()
    return bundle


def import_data_bundle(db: Session, path: Path) -> DataBundle:
    return persist_data_bundle(db, build_data_bundle(_load_yaml(Path(path))))


if __name__ == "__main__":
    # Локальный запуск: python -m peerfeedback.utils.data_bundle bundle.yaml
    import sys
    from peerfeedback.database import SessionLocal, init_db

    init_db()
    db = SessionLocal()
    try:
        loaded = import_data_bundle(db, Path(sys.argv[1]))
        print("Импорт завершён:", {k: len(v) for k, v in vars(loaded).items()})
    finally:
        db.close()
