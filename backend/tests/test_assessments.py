"""Tests for channels and assessment configuration."""
from tests.conftest import (
    auth, create_test_assessment, create_test_server, create_test_user, general_channel_id, join_public,
)


class TestChannels:

    def test_admin_creates_channel(self, client):
        owner = create_test_user(client, name="Teacher")
        server = create_test_server(client, owner)
        resp = client.post(f"/api/servers/{server['server_id']}/channels", json={"name": "week-1"},
                           headers=auth(owner))
        assert resp.status_code == 201
        names = [c["name"] for c in client.get(f"/api/servers/{server['server_id']}", headers=auth(owner))
                 .json()["channels"]]
        assert "week-1" in names

    def test_guest_cannot_create_channel(self, client):
        owner = create_test_user(client, name="Teacher")
        student, server = join_public(client, owner)
        resp = client.post(f"/api/servers/{server['server_id']}/channels", json={"name": "mine"},
                           headers=auth(student))
        assert resp.status_code == 403


class TestAssessments:

    def test_create_exam(self, client):
        owner = create_test_user(client, name="Teacher")
        server = create_test_server(client, owner)
        exam = create_test_assessment(client, owner, server, name="Midterm", question_count=20)
        assert exam["kind"] == "exam"
        assert exam["is_active"] is True
        assert exam["shuffle_questions"] is False
        assert exam["question_count"] == 20

    def test_guest_cannot_create(self, client):
        owner = create_test_user(client, name="Teacher")
        student, server = join_public(client, owner)
        channel_id = general_channel_id(client, owner, server)
        resp = client.post(f"/api/channels/{channel_id}/assessments", json={"kind": "exam", "name": "Mine"},
                           headers=auth(student))
        assert resp.status_code == 403

    def test_toggles(self, client):
        owner = create_test_user(client, name="Teacher")
        server = create_test_server(client, owner)
        exam = create_test_assessment(client, owner, server)
        base = f"/api/assessments/{exam['assessment_id']}"

        resp = client.patch(f"{base}/toggle-status", headers=auth(owner))
        assert resp.json()["is_active"] is False
        resp = client.patch(f"{base}/toggle-shuffle", headers=auth(owner))
        assert resp.json()["shuffle_questions"] is True

    def test_inactive_hidden_from_students(self, client):
        owner = create_test_user(client, name="Teacher")
        student, server = join_public(client, owner)
        visible = create_test_assessment(client, owner, server, name="Open")
        hidden = create_test_assessment(client, owner, server, name="Draft")
        client.patch(f"/api/assessments/{hidden['assessment_id']}/toggle-status", headers=auth(owner))
        channel_id = visible["channel_id"]

        student_view = client.get(f"/api/channels/{channel_id}/assessments", headers=auth(student)).json()
        assert [a["name"] for a in student_view] == ["Open"]
        owner_view = client.get(f"/api/channels/{channel_id}/assessments", headers=auth(owner)).json()
        assert {a["name"] for a in owner_view} == {"Open", "Draft"}
        assert client.get(f"/api/assessments/{hidden['assessment_id']}", headers=auth(student)).status_code == 404

    def test_kind_filter(self, client):
        owner = create_test_user(client, name="Teacher")
        server = create_test_server(client, owner)
        exam = create_test_assessment(client, owner, server, kind="exam", name="Final")
        create_test_assessment(client, owner, server, kind="exercise", name="Drill")
        resp = client.get(f"/api/channels/{exam['channel_id']}/assessments?kind=exercise", headers=auth(owner))
        assert [a["name"] for a in resp.json()] == ["Drill"]

    def test_outsider_cannot_list(self, client):
        owner = create_test_user(client, name="Teacher")
        server = create_test_server(client, owner)
        exam = create_test_assessment(client, owner, server)
        outsider = create_test_user(client, name="Outsider")
        resp = client.get(f"/api/channels/{exam['channel_id']}/assessments", headers=auth(outsider))
        assert resp.status_code == 403
