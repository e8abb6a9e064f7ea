from __future__ import annotations

from conftest import login_as, login_as_admin

COURSE1 = "idOfTypicalCourse1"
INSTRUCTOR1 = "idOfInstructor1OfCourse1"
MANAGER = "idOfInstructor2OfCourse1"


def test_get_course_for_instructor_and_student(db_client, typical_bundle):
    for google_id in (INSTRUCTOR1, "idOfStudent1InCourse1"):
        response = db_client.get("/webapi/course", params={"courseid": COURSE1}, headers=login_as(google_id))

        assert response.status_code == 200
        assert response.json()["name"] == "Typical Course 1"
        assert response.json()["deleted_at"] is None


def test_get_course_for_outsider_is_forbidden(db_client, typical_bundle):
    response = db_client.get("/webapi/course", params={"courseid": COURSE1},
                             headers=login_as("idOfLoneInstructor"))

    assert response.status_code == 403


def test_get_missing_course(db_client, typical_bundle):
    response = db_client.get("/webapi/course", params={"courseid": "non-existent"}, headers=login_as_admin())

    assert response.status_code == 404


def test_recycle_bin_requires_modify_course_privilege(db_client, typical_bundle):
    response = db_client.put("/webapi/bin/course", params={"courseid": COURSE1}, headers=login_as(MANAGER))

    assert response.status_code == 403


def test_move_to_recycle_bin_and_restore(db_client, typical_bundle):
    response = db_client.put("/webapi/bin/course", params={"courseid": COURSE1}, headers=login_as(INSTRUCTOR1))
    assert response.status_code == 200
    assert response.json()["deleted_at"] is not None

    response = db_client.delete("/webapi/bin/course", params={"courseid": COURSE1},
                                headers=login_as(INSTRUCTOR1))
    assert response.status_code == 200
    assert response.json()["deleted_at"] is None


def test_course_must_be_in_recycle_bin_before_deletion(db_client, logic, typical_bundle):
    response = db_client.delete("/webapi/course", params={"courseid": COURSE1}, headers=login_as(INSTRUCTOR1))
    assert response.status_code == 400
    assert logic.get_course(COURSE1) is not None

    db_client.put("/webapi/bin/course", params={"courseid": COURSE1}, headers=login_as(INSTRUCTOR1))
    response = db_client.delete("/webapi/course", params={"courseid": COURSE1}, headers=login_as(INSTRUCTOR1))

    assert response.status_code == 200
    assert response.json()["message"] == "OK"
    assert logic.get_course(COURSE1) is None


def test_list_instructors(db_client, typical_bundle):
    response = db_client.get("/webapi/instructors", params={"courseid": COURSE1},
                             headers=login_as("idOfHelperOfCourse1"))

    assert response.status_code == 200
    instructors = {i["email"]: i for i in response.json()["instructors"]}
    assert len(instructors) == 4
    assert instructors["unregistered@course1.tmt"]["google_id"] is None
    assert instructors["instr1@course1.tmt"]["display_name"] == "Professor"


def test_list_instructors_is_not_open_to_students(db_client, typical_bundle):
    response = db_client.get("/webapi/instructors", params={"courseid": COURSE1},
                             headers=login_as("idOfStudent1InCourse1"))

    assert response.status_code == 403
