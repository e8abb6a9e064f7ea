from __future__ import annotations

from enum import Enum
from typing import Any, Dict

from sqlalchemy.ext.mutable import Mutable


class InstructorPermission(str, Enum):
    # уровень курса
    CAN_MODIFY_COURSE = "canmodifycourse"
    CAN_MODIFY_INSTRUCTOR = "canmodifyinstructor"
    CAN_MODIFY_SESSION = "canmodifysession"
    CAN_MODIFY_STUDENT = "canmodifystudent"
    # уровень секции
    CAN_VIEW_STUDENT_IN_SECTIONS = "canviewstudentinsection"
    CAN_VIEW_SESSION_IN_SECTIONS = "canviewsessioninsection"
    CAN_SUBMIT_SESSION_IN_SECTIONS = "cansubmitsessioninsection"
    CAN_MODIFY_SESSION_COMMENT_IN_SECTIONS = "canmodifysessioncommentinsection"

    @property
    def is_section_level(self) -> bool:
        return self in SECTION_LEVEL_PERMISSIONS


SECTION_LEVEL_PERMISSIONS = frozenset({
    InstructorPermission.CAN_VIEW_STUDENT_IN_SECTIONS,
    InstructorPermission.CAN_VIEW_SESSION_IN_SECTIONS,
    InstructorPermission.CAN_SUBMIT_SESSION_IN_SECTIONS,
    InstructorPermission.CAN_MODIFY_SESSION_COMMENT_IN_SECTIONS,
})


class InstructorRole(str, Enum):
    COOWNER = "Co-owner"
    MANAGER = "Manager"
    OBSERVER = "Observer"
    TUTOR = "Tutor"
    CUSTOM = "Custom"


_P = InstructorPermission

ROLE_TEMPLATES: Dict[InstructorRole, frozenset] = {
    InstructorRole.COOWNER: frozenset(InstructorPermission),
    InstructorRole.MANAGER: frozenset(InstructorPermission) - {_P.CAN_MODIFY_COURSE},
    InstructorRole.OBSERVER: frozenset({
        _P.CAN_VIEW_STUDENT_IN_SECTIONS,
        _P.CAN_VIEW_SESSION_IN_SECTIONS,
    }),
    InstructorRole.TUTOR: frozenset({
        _P.CAN_VIEW_STUDENT_IN_SECTIONS,
        _P.CAN_VIEW_SESSION_IN_SECTIONS,
        _P.CAN_SUBMIT_SESSION_IN_SECTIONS,
    }),
    InstructorRole.CUSTOM: frozenset(),
}


class InstructorPrivileges(Mutable):
    """
    Набор флагов-возможностей инструктора.

    Значения по умолчанию берутся из шаблона роли, любой флаг можно
    переопределить. Флаги уровня секции можно дополнительно переопределить
    для конкретной секции; если для секции значение не задано, действует
    значение уровня курса. Любая комбинация флагов допустима.

    Объект хранится в колонке JSON инструктора; изменения на месте
    (update_privilege) отслеживаются SQLAlchemy через Mutable.
    """

    def __init__(self, role: InstructorRole | str = InstructorRole.COOWNER):
        role = InstructorRole(role)
        granted = ROLE_TEMPLATES[role]
        self._course_level: Dict[InstructorPermission, bool] = {
            perm: perm in granted for perm in InstructorPermission
        }
        self._section_level: Dict[str, Dict[InstructorPermission, bool]] = {}

    def update_privilege(self, name: InstructorPermission | str, value: bool,
                         section: str | None = None) -> None:
        perm = InstructorPermission(name)
        if section is None:
            self._course_level[perm] = bool(value)
        else:
            if not perm.is_section_level:
                raise ValueError(f"{perm.value} cannot be set per section")
            self._section_level.setdefault(section, {})[perm] = bool(value)
        self.changed()

    def has_privilege(self, name: InstructorPermission | str, section: str | None = None) -> bool:
        perm = InstructorPermission(name)
        if section is not None and perm in self._section_level.get(section, {}):
            return self._section_level[section][perm]
        return self._course_level[perm]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "courseLevel": {perm.value: value for perm, value in self._course_level.items()},
            "sectionLevel": {
                section: {perm.value: value for perm, value in perms.items()}
                for section, perms in self._section_level.items()
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any] | None) -> "InstructorPrivileges":
        privileges = cls(InstructorRole.CUSTOM)
        data = data or {}
        for name, value in (data.get("courseLevel") or {}).items():
            privileges._course_level[InstructorPermission(name)] = bool(value)
        for section, perms in (data.get("sectionLevel") or {}).items():
            privileges._section_level[section] = {
                InstructorPermission(name): bool(value) for name, value in perms.items()
            }
        return privileges

    @classmethod
    def coerce(cls, key, value):
        if value is None or isinstance(value, cls):
            return value
        if isinstance(value, dict):
            return cls.from_dict(value)
        return Mutable.coerce(key, value)

    def __eq__(self, other):
        if not isinstance(other, InstructorPrivileges):
            return NotImplemented
        return self._course_level == other._course_level and self._section_level == other._section_level

    __hash__ = None

    def __repr__(self):
        granted = sorted(perm.value for perm, value in self._course_level.items() if value)
        return f"InstructorPrivileges(granted={granted}, sections={sorted(self._section_level)})"
