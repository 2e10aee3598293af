"""Tests for the /api/tasks endpoints"""
import pytest

from conftest import make_user


@pytest.fixture
def created(client, admin, alice, auth_headers):
    response = client.post("/api/tasks", json={
        "title": "Logo",
        "category": "Design",
        "due_date": "2099-01-01T00:00:00Z",
        "assigned_to": [alice["user_id"]],
    }, headers=auth_headers(admin))
    assert response.status_code == 201
    return response.get_json()["task"]


class TestCreateEndpoint:

    def test_create(self, created, alice, sent_emails):
        assert created["status"] == "todo"
        assert created["assigned_to"] == [alice["user_id"]]
        assert len(created["assignment_history"]) == 1
        assert sent_emails.call_args.args[0] == "alice@acme.com"

    def test_invalid_category(self, client, fake_db, admin, auth_headers):
        response = client.post("/api/tasks", json={"title": "Ad", "category": "Marketing"},
                               headers=auth_headers(admin))
        assert response.status_code == 400
        assert response.get_json()["code"] == "INVALID_CATEGORY"
        assert fake_db.docs("tasks") == {}

    def test_invalid_assignee(self, client, admin, outsider, auth_headers):
        response = client.post("/api/tasks", json={"title": "X", "category": "Dev",
                                                   "assigned_to": [outsider["user_id"]]},
                               headers=auth_headers(admin))
        assert response.status_code == 400
        assert response.get_json()["code"] == "INVALID_ASSIGNEE"

    def test_member_cannot_create(self, client, alice, auth_headers):
        response = client.post("/api/tasks", json={"title": "X", "category": "Dev"}, headers=auth_headers(alice))
        assert response.status_code == 403

    def test_requires_token(self, client):
        assert client.post("/api/tasks", json={"title": "X"}).status_code == 401


class TestStatusEndpoint:

    def test_assignee_moves_task_forward(self, client, created, alice, auth_headers):
        response = client.patch(f"/api/tasks/{created['task_id']}/status",
                                json={"status": "in_progress", "comment": "On it"},
                                headers=auth_headers(alice))
        assert response.status_code == 200
        task = response.get_json()["task"]
        assert task["status"] == "in_progress"
        assert task["status_history"][-1]["comment"] == "On it"

    def test_invalid_transition(self, client, created, admin, auth_headers):
        response = client.patch(f"/api/tasks/{created['task_id']}/status",
                                json={"status": "completed"}, headers=auth_headers(admin))
        assert response.status_code == 400
        body = response.get_json()
        assert body["code"] == "INVALID_TRANSITION"
        assert body["details"] == {"from": "todo", "to": "completed"}

    def test_unassigned_member_forbidden(self, client, created, bob, auth_headers):
        response = client.patch(f"/api/tasks/{created['task_id']}/status",
                                json={"status": "in_progress"}, headers=auth_headers(bob))
        assert response.status_code == 403

    def test_unknown_task(self, client, admin, auth_headers):
        response = client.patch("/api/tasks/nope/status", json={"status": "in_progress"},
                                headers=auth_headers(admin))
        assert response.status_code == 404
        assert response.get_json()["error"] == "Task not found"


class TestDetailEndpoints:

    def test_patch_with_status_is_rejected(self, client, created, admin, auth_headers):
        response = client.patch(f"/api/tasks/{created['task_id']}", json={"status": "completed"},
                                headers=auth_headers(admin))
        assert response.status_code == 400
        assert response.get_json()["code"] == "INVALID_UPDATE"

    def test_put_updates_details(self, client, created, manager, auth_headers):
        response = client.put(f"/api/tasks/{created['task_id']}", json={"title": "New logo", "priority": "high"},
                              headers=auth_headers(manager))
        assert response.status_code == 200
        assert response.get_json()["task"]["title"] == "New logo"

    def test_get_task_visibility(self, client, created, alice, bob, auth_headers):
        assert client.get(f"/api/tasks/{created['task_id']}", headers=auth_headers(alice)).status_code == 200
        assert client.get(f"/api/tasks/{created['task_id']}", headers=auth_headers(bob)).status_code == 403

    def test_other_tenant_cannot_see_task(self, client, created, fake_db, other_org, auth_headers):
        boss = make_user(fake_db, other_org["organization_id"], "admin")
        response = client.get(f"/api/tasks/{created['task_id']}", headers=auth_headers(boss))
        assert response.status_code == 404

    def test_delete(self, client, created, fake_db, admin, auth_headers):
        response = client.delete(f"/api/tasks/{created['task_id']}", headers=auth_headers(admin))
        assert response.status_code == 200
        assert fake_db.docs("tasks") == {}


class TestQueryEndpoints:

    def test_list_with_filters(self, client, created, admin, auth_headers):
        response = client.get("/api/tasks?category=Design&page=1&limit=5", headers=auth_headers(admin))
        assert response.status_code == 200
        body = response.get_json()
        assert [t["task_id"] for t in body["tasks"]] == [created["task_id"]]
        assert body["pagination"] == {"total": 1, "page": 1, "pages": 1, "limit": 5}

    def test_list_bad_limit(self, client, admin, auth_headers):
        response = client.get("/api/tasks?limit=zero", headers=auth_headers(admin))
        assert response.status_code == 400

    def test_member_list_is_scoped(self, client, created, bob, auth_headers):
        response = client.get("/api/tasks", headers=auth_headers(bob))
        assert response.get_json()["tasks"] == []

    def test_stats(self, client, created, admin, auth_headers):
        response = client.get("/api/tasks/stats", headers=auth_headers(admin))
        assert response.status_code == 200
        stats = response.get_json()["stats"]
        assert stats["total_tasks"] == 1
        assert stats["category_stats"] == [{"category": "Design", "count": 1}]

    def test_recent(self, client, created, admin, auth_headers):
        response = client.get("/api/tasks/recent", headers=auth_headers(admin))
        assert response.status_code == 200
        assert response.get_json()["tasks"][0]["task_id"] == created["task_id"]


class TestMalformedBodies:

    def test_create_with_list_body(self, client, fake_db, admin, auth_headers):
        response = client.post("/api/tasks", json=["title"], headers=auth_headers(admin))
        assert response.status_code == 400
        assert response.get_json()["code"] == "VALIDATION_ERROR"
        assert fake_db.docs("tasks") == {}

    def test_update_with_list_body(self, client, created, admin, auth_headers):
        response = client.patch(f"/api/tasks/{created['task_id']}", json=["title"], headers=auth_headers(admin))
        assert response.status_code == 400
        assert response.get_json()["error"] == "Request body must be a JSON object"

    def test_status_with_string_body(self, client, created, alice, auth_headers):
        response = client.patch(f"/api/tasks/{created['task_id']}/status", json="in_progress",
                                headers=auth_headers(alice))
        assert response.status_code == 400

    def test_create_with_numeric_title(self, client, admin, auth_headers):
        response = client.post("/api/tasks", json={"title": 7, "category": "Dev"}, headers=auth_headers(admin))
        assert response.status_code == 400
