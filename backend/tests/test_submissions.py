"""Tests for exam / exercise submission.

Covers:
- At most one Result per (assessment, user); repeats return the first id
- Validation: empty answers → 400, missing assessment → 404, no identity → 401
- Score coercion
- Essay submissions: pending file entry, time-expired entry
- Membership gate on submission
- Unique-constraint resolution of a lost check-then-insert race
"""
import pytest
from sqlalchemy.exc import OperationalError

from lms.errors import InternalFailure
from lms.models.assessment import AssessmentKind, Result
from lms.models.user import User
from lms.schemas.assessment import MultipleChoiceSubmission
from lms.services import submission_service
from tests.conftest import (
    auth, create_test_assessment, create_test_server, create_test_user, join_public, redeem,
)


def _submit(client, user, assessment, payload, kind="exams"):
    return client.post(f"/api/{kind}/{assessment['assessment_id']}/submit", json=payload, headers=auth(user))


def _mc(answers=None, score=8, details=None):
    return {"type": "multiple_choice", "answers": answers if answers is not None else {"q1": "A"},
            "score": score, "details": details}


class TestIdempotency:

    def test_second_submit_returns_first_result(self, client, db):
        owner = create_test_user(client, name="Teacher")
        student, server = join_public(client, owner)
        exam = create_test_assessment(client, owner, server, kind="exam", name="e1")

        first = _submit(client, student, exam, _mc())
        assert first.status_code == 200
        assert first.json()["created"] is True

        second = _submit(client, student, exam, _mc(score=10))
        assert second.status_code == 200
        assert second.json()["success"] is True
        assert second.json()["created"] is False
        assert second.json()["submission_id"] == first.json()["submission_id"]

        rows = db.query(Result).filter(Result.assessment_id == exam["assessment_id"]).all()
        assert len(rows) == 1
        assert rows[0].score == 8.0

    def test_different_users_each_get_a_result(self, client, db):
        owner = create_test_user(client, name="Teacher")
        alice, server = join_public(client, owner, name="Alice")
        bob = create_test_user(client, name="Bob")
        redeem(client, bob, server)
        exam = create_test_assessment(client, owner, server)

        a = _submit(client, alice, exam, _mc()).json()
        b = _submit(client, bob, exam, _mc()).json()
        assert a["submission_id"] != b["submission_id"]
        assert db.query(Result).count() == 2

    def test_lost_race_resolves_to_existing_row(self, client, db, monkeypatch):
        """The existence check misses a concurrent insert; the unique constraint catches it."""
        owner = create_test_user(client, name="Teacher")
        student, server = join_public(client, owner)
        exam = create_test_assessment(client, owner, server, name="e1")
        winner_id = _submit(client, student, exam, _mc()).json()["submission_id"]

        real_lookup = submission_service.find_existing_result
        calls = []

        def stale_then_real(session, assessment_id, user_id, kind=None):
            calls.append(assessment_id)
            if len(calls) == 1:
                return None
            return real_lookup(session, assessment_id, user_id, kind)

        monkeypatch.setattr(submission_service, "find_existing_result", stale_then_real)
        user = db.query(User).filter(User.user_id == student["user_id"]).one()
        payload = MultipleChoiceSubmission(type="multiple_choice", answers={"q1": "B"}, score=3)

        result, created = submission_service.submit(db, AssessmentKind.exam, exam["assessment_id"], user, payload)
        assert created is False
        assert result.result_id == winner_id
        assert db.query(Result).count() == 1

    def test_storage_failure_is_internal_failure(self, client, db, monkeypatch):
        owner = create_test_user(client, name="Teacher")
        student, server = join_public(client, owner)
        exam = create_test_assessment(client, owner, server)
        user = db.query(User).filter(User.user_id == student["user_id"]).one()

        def broken_commit():
            raise OperationalError("INSERT INTO results", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db, "commit", broken_commit)
        payload = MultipleChoiceSubmission(type="multiple_choice", answers={"q1": "A"}, score=5)
        with pytest.raises(InternalFailure) as exc_info:
            submission_service.submit(db, AssessmentKind.exam, exam["assessment_id"], user, payload)
        assert "disk" not in exc_info.value.message
        assert exc_info.value.status_code == 500


class TestValidation:

    def test_empty_answers_rejected(self, client, db):
        owner = create_test_user(client, name="Teacher")
        student, server = join_public(client, owner)
        exam = create_test_assessment(client, owner, server)

        for empty in ({}, [], ""):
            resp = _submit(client, student, exam, _mc(answers=empty))
            assert resp.status_code == 400
            assert resp.json()["detail"] == "No answers provided"
        assert db.query(Result).count() == 0

    def test_missing_answers_rejected(self, client):
        owner = create_test_user(client, name="Teacher")
        student, server = join_public(client, owner)
        exam = create_test_assessment(client, owner, server)
        resp = _submit(client, student, exam, {"type": "multiple_choice", "score": 4})
        assert resp.status_code == 400

    def test_unknown_assessment(self, client):
        owner = create_test_user(client, name="Teacher")
        student, _ = join_public(client, owner)
        resp = client.post("/api/exams/missing/submit", json=_mc(), headers=auth(student))
        assert resp.status_code == 404

    def test_wrong_kind_is_not_found(self, client):
        """An exercise id is not accepted on the exam submit route."""
        owner = create_test_user(client, name="Teacher")
        student, server = join_public(client, owner)
        exercise = create_test_assessment(client, owner, server, kind="exercise", name="Drill 1")
        assert _submit(client, student, exercise, _mc(), kind="exams").status_code == 404
        assert _submit(client, student, exercise, _mc(), kind="exercises").status_code == 200

    def test_stored_exercise_not_returned_on_exam_route(self, client, db):
        """A repeat check on the exam route does not match a stored exercise result."""
        owner = create_test_user(client, name="Teacher")
        student, server = join_public(client, owner)
        exercise = create_test_assessment(client, owner, server, kind="exercise", name="Drill 1")
        assert _submit(client, student, exercise, _mc(), kind="exercises").status_code == 200

        resp = _submit(client, student, exercise, _mc(), kind="exams")
        assert resp.status_code == 404
        assert db.query(Result).count() == 1

    def test_unauthenticated(self, client):
        owner = create_test_user(client, name="Teacher")
        _, server = join_public(client, owner)
        exam = create_test_assessment(client, owner, server)
        resp = client.post(f"/api/exams/{exam['assessment_id']}/submit", json=_mc())
        assert resp.status_code == 401

    def test_unknown_submission_type(self, client):
        owner = create_test_user(client, name="Teacher")
        student, server = join_public(client, owner)
        exam = create_test_assessment(client, owner, server)
        resp = _submit(client, student, exam, {"type": "oral", "answers": {"q1": "A"}})
        assert resp.status_code == 400

    @pytest.mark.parametrize("raw, expected", [
        ("7.5", 7.5),
        (None, 0.0),
        ("abc", 0.0),
        (9, 9.0),
    ])
    def test_score_coercion(self, client, db, raw, expected):
        owner = create_test_user(client, name="Teacher")
        student, server = join_public(client, owner)
        exam = create_test_assessment(client, owner, server)
        resp = _submit(client, student, exam, _mc(score=raw))
        assert resp.status_code == 200
        stored = db.query(Result).filter(Result.result_id == resp.json()["submission_id"]).one()
        assert stored.score == expected

    def test_details_preferred_over_answers(self, client, db):
        owner = create_test_user(client, name="Teacher")
        student, server = join_public(client, owner)
        exam = create_test_assessment(client, owner, server)
        details = [{"question": 1, "selected": "A", "correct": True}]
        resp = _submit(client, student, exam, _mc(details=details))
        stored = db.query(Result).filter(Result.result_id == resp.json()["submission_id"]).one()
        assert stored.answers == details

    def test_written_submission(self, client, db):
        owner = create_test_user(client, name="Teacher")
        student, server = join_public(client, owner)
        exercise = create_test_assessment(client, owner, server, kind="exercise")
        resp = _submit(client, student, exercise, {
            "type": "written", "answers": [{"question": 1, "text": "Photosynthesis"}], "score": 6,
        }, kind="exercises")
        stored = db.query(Result).filter(Result.result_id == resp.json()["submission_id"]).one()
        assert stored.result_type.value == "written"


class TestMembershipGate:

    def test_pending_member_cannot_submit(self, client, db):
        owner = create_test_user(client, name="Teacher")
        server = create_test_server(client, owner, is_public=False)
        exam = create_test_assessment(client, owner, server)
        student = create_test_user(client, name="Student")
        redeem(client, student, server)

        resp = _submit(client, student, exam, _mc())
        assert resp.status_code == 403
        assert resp.json()["redirect_to"] == f"/pending/{server['server_id']}"
        assert db.query(Result).count() == 0

    def test_outsider_cannot_submit(self, client):
        owner = create_test_user(client, name="Teacher")
        server = create_test_server(client, owner)
        exam = create_test_assessment(client, owner, server)
        outsider = create_test_user(client, name="Outsider")
        assert _submit(client, outsider, exam, _mc()).status_code == 403


class TestEssaySubmission:

    def test_file_submission_is_pending(self, client, db):
        owner = create_test_user(client, name="Teacher")
        student, server = join_public(client, owner)
        exam = create_test_assessment(client, owner, server, name="Essay exam")

        resp = _submit(client, student, exam, {
            "type": "essay",
            "file_url": f"/uploads/essays/{exam['assessment_id']}/student.pdf",
            "file_name": "student.pdf",
            "mime_type": "application/pdf",
            "file_size": 20480,
        })
        assert resp.status_code == 200
        stored = db.query(Result).filter(Result.result_id == resp.json()["submission_id"]).one()
        assert stored.result_type.value == "essay"
        assert stored.grading_status.value == "pending"
        assert stored.score == 0.0

        entry = stored.answers[0]
        assert entry["type"] == "essay"
        assert entry["status"] == "pending"
        assert entry["score"] == 0
        assert entry["file_url"].startswith("http")
        assert entry["file_url"].endswith("/student.pdf")
        assert entry["mime_type"] == "application/pdf"
        assert entry["file_size"] == 20480
        assert entry["submitted_at"]

    def test_time_expired_without_file(self, client, db):
        owner = create_test_user(client, name="Teacher")
        student, server = join_public(client, owner)
        exam = create_test_assessment(client, owner, server)

        resp = _submit(client, student, exam, {"type": "essay", "is_time_expired": True})
        assert resp.status_code == 200
        stored = db.query(Result).filter(Result.result_id == resp.json()["submission_id"]).one()
        assert stored.score == 0.0
        assert stored.grading_status.value == "graded"
        assert stored.answers[0]["file_url"] is None
        assert "Time expired" in stored.feedback

    def test_no_file_and_not_expired(self, client, db):
        owner = create_test_user(client, name="Teacher")
        student, server = join_public(client, owner)
        exam = create_test_assessment(client, owner, server)
        resp = _submit(client, student, exam, {"type": "essay"})
        assert resp.status_code == 400
        assert db.query(Result).count() == 0
