from unittest.mock import patch

from task_api.repository import new_task_id
from task_api.services import tasks_service


class TestCreateTask:
    def test_create_returns_201_with_task(self, client, future):
        response = client.post(
            "/tasks",
            json={"title": "Buy milk", "description": "2L", "dueDate": future(3)},
        )

        assert response.status_code == 201
        body = response.json()
        assert set(body) == {"id", "title", "description", "status", "dueDate", "createdAt"}
        assert body["status"] == "Pending"
        assert len(body["id"]) == 24

    def test_duplicate_title_is_409(self, client, make_task, future):
        make_task("Buy milk")

        response = client.post(
            "/tasks",
            json={"title": "Buy milk", "description": "again", "dueDate": future(2)},
        )

        assert response.status_code == 409
        assert response.json() == {
            "statusCode": 409,
            "error": "Conflict",
            "message": "Duplicate title error: 'Buy milk' already exists",
        }

    def test_invalid_payload_is_400_and_never_reaches_store(self, client, future):
        with patch.object(tasks_service, "insert_task") as insert:
            response = client.post(
                "/tasks",
                json={"title": "", "description": "d", "status": "Done", "dueDate": future()},
            )

        insert.assert_not_called()
        assert response.status_code == 400
        body = response.json()
        assert body["statusCode"] == 400
        assert body["error"] == "Bad Request"
        assert len(body["message"]) == 2

    def test_past_due_date_is_400(self, client, future):
        response = client.post(
            "/tasks",
            json={"title": "Old", "description": "d", "dueDate": future(-1)},
        )

        assert response.status_code == 400
        assert response.json()["message"] == ["dueDate has to be a future date."]

    def test_non_json_body_is_400(self, client):
        response = client.post(
            "/tasks", content="not json", headers={"content-type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json()["statusCode"] == 400


class TestListTasks:
    def test_defaults_newest_first_ten_per_page(self, client, make_task):
        created = [make_task(f"task {i}") for i in range(12)]

        response = client.get("/tasks")

        assert response.status_code == 200
        body = response.json()
        assert len(body) == 10
        assert [t["id"] for t in body] == [t["id"] for t in reversed(created)][:10]

    def test_pagination_window(self, client, make_task):
        for i in range(5):
            make_task(f"task {i}", days=i + 1)

        page_two = client.get("/tasks", params={"page": 2, "limit": 2,
                                                "sortBy": "dueDate", "sortOrder": "asc"})

        assert [t["title"] for t in page_two.json()] == ["task 2", "task 3"]

    def test_page_past_the_end_is_empty(self, client, make_task):
        make_task()

        response = client.get("/tasks", params={"page": 50})

        assert response.status_code == 200
        assert response.json() == []

    def test_status_filter(self, client, make_task):
        make_task("a", status="Completed")
        make_task("b")
        make_task("c", status="Completed")

        response = client.get("/tasks", params={"status": "Completed"})

        assert sorted(t["title"] for t in response.json()) == ["a", "c"]
        assert {t["status"] for t in response.json()} == {"Completed"}

    def test_huge_page_is_empty_not_an_error(self, client, make_task):
        make_task()

        response = client.get("/tasks", params={"page": 10**18, "limit": 10})

        assert response.status_code == 200
        assert response.json() == []

    def test_huge_limit_returns_everything(self, client, make_task):
        make_task("a")
        make_task("b")

        response = client.get("/tasks", params={"limit": 10**20})

        assert response.status_code == 200
        assert len(response.json()) == 2

    def test_bad_query_is_400(self, client):
        response = client.get("/tasks", params={"sortBy": "title", "limit": "-1"})

        assert response.status_code == 400
        assert len(response.json()["message"]) == 2


class TestGetTask:
    def test_get_existing(self, client, make_task):
        task = make_task()

        response = client.get(f"/tasks/{task['id']}")

        assert response.status_code == 200
        assert response.json() == task

    def test_malformed_id_is_404_without_store_call(self, client):
        with patch.object(tasks_service, "get_task_by_id") as lookup:
            response = client.get("/tasks/not-an-id")

        lookup.assert_not_called()
        assert response.status_code == 404
        assert response.json() == {"statusCode": 404, "message": "Task does not exist"}

    def test_unknown_id_is_404(self, client):
        response = client.get(f"/tasks/{new_task_id()}")

        assert response.status_code == 404
        assert response.json() == {"statusCode": 404, "message": "Task does not exist"}


class TestUpdateTask:
    def test_partial_update(self, client, make_task):
        task = make_task()

        response = client.patch(f"/tasks/{task['id']}", json={"status": "InProgress"})

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "InProgress"
        assert body["title"] == task["title"]
        assert body["createdAt"] == task["createdAt"]

    def test_id_and_created_at_cannot_be_changed(self, client, make_task):
        task = make_task()

        response = client.patch(
            f"/tasks/{task['id']}",
            json={"id": new_task_id(), "createdAt": "2000-01-01T00:00:00Z"},
        )

        assert response.json() == task

    def test_update_to_duplicate_title_is_409(self, client, make_task):
        make_task("Buy milk")
        task = make_task("Buy bread")

        response = client.patch(f"/tasks/{task['id']}", json={"title": "Buy milk"})

        assert response.status_code == 409

    def test_null_required_field_is_400(self, client, make_task):
        task = make_task()

        response = client.patch(f"/tasks/{task['id']}", json={"description": None})

        assert response.status_code == 400
        assert response.json() == {
            "statusCode": 400,
            "error": "Bad Request",
            "message": ["description is required."],
        }

    def test_update_missing_and_malformed(self, client):
        assert client.patch(f"/tasks/{new_task_id()}", json={"status": "Completed"}).status_code == 404
        assert client.patch("/tasks/nope", json={"status": "Completed"}).status_code == 404


class TestDeleteTask:
    def test_delete_twice(self, client, make_task):
        task = make_task()

        first = client.delete(f"/tasks/{task['id']}")
        second = client.delete(f"/tasks/{task['id']}")

        assert first.status_code == 200
        assert first.json() == task
        assert second.status_code == 404
        assert second.json() == {"statusCode": 404, "message": "Task does not exist"}

    def test_delete_malformed_id(self, client):
        assert client.delete("/tasks/not-an-id").status_code == 404


class TestErrorHandling:
    def test_unexpected_failure_is_500_without_details(self, client):
        with patch.object(tasks_service, "find_tasks", side_effect=TimeoutError("db at 10.0.0.5 timed out")):
            response = client.get("/tasks")

        assert response.status_code == 500
        assert response.json() == {"statusCode": 500, "message": "Internal server error"}

    def test_request_failures_are_logged_under_main(self, client, caplog):
        with caplog.at_level("WARNING", logger="task_api.main"):
            client.get("/tasks/not-an-id")

        assert any(record.name == "task_api.main" for record in caplog.records)

    def test_unknown_route_uses_error_shape(self, client):
        response = client.get("/nowhere")

        assert response.status_code == 404
        assert response.json() == {"statusCode": 404, "message": "Not Found"}

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}
        assert client.get("/db-health").json() == {"db": "ok"}
