from __future__ import annotations

import pytest

from peerfeedback.models import Account, Course, Instructor
from peerfeedback.utils.data_bundle import (
    DataBundleError,
    build_data_bundle,
    import_data_bundle,
    persist_data_bundle,
)
from peerfeedback.utils.privileges import InstructorPermission


def test_typical_bundle_is_loaded(db_session, typical_bundle):
    assert db_session.query(Course).count() == 2
    assert db_session.query(Instructor).count() == 5
    assert typical_bundle.courses["course2"].time_zone == "UTC"
    assert typical_bundle.instructors["unregisteredInstructorOfCourse1"].google_id is None


def test_privilege_overrides_from_bundle(typical_bundle):
    privileges = typical_bundle.instructors["helperOfCourse1"].privileges

    assert privileges.has_privilege(InstructorPermission.CAN_VIEW_STUDENT_IN_SECTIONS)
    assert privileges.has_privilege(InstructorPermission.CAN_VIEW_SESSION_IN_SECTIONS, "Section 1")
    assert not privileges.has_privilege(InstructorPermission.CAN_VIEW_SESSION_IN_SECTIONS, "Section 2")
    assert not privileges.has_privilege(InstructorPermission.CAN_MODIFY_INSTRUCTOR)


def test_invalid_entity_aborts_whole_bundle(db_session):
    bundle = build_data_bundle({
        "accounts": {"alice": {"google_id": "alice", "name": "Alice", "email": "alice@example.com"}},
        "courses": {"bad": {"id": "bad course id", "name": "Bad", "institute": "Institute"}},
    })

    with pytest.raises(DataBundleError) as excinfo:
        persist_data_bundle(db_session, bundle)

    assert len(excinfo.value.errors) == 1
    assert db_session.query(Account).count() == 0
    assert db_session.query(Course).count() == 0


def test_unknown_reference_is_rejected():
    with pytest.raises(DataBundleError):
        build_data_bundle({
            "instructors": {"someone": {"course": "missing", "name": "Someone", "email": "s@example.com"}},
        })


def test_non_mapping_yaml_is_rejected(db_session, tmp_path):
    path = tmp_path / "bundle.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(DataBundleError):
        import_data_bundle(db_session, path)
