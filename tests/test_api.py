from types import SimpleNamespace

import pytest
from flask import Flask

from jadoc import JadocAPI, ResourceRegistry

JSONAPI = "application/vnd.api+json"


def post(client, url: str, payload: dict, method: str = "post"):
    return getattr(client, method)(url, json=payload, headers={"Content-Type": JSONAPI})


def test_get_collection(client) -> None:
    response = client.get("/api/tasks")

    assert response.status_code == 200
    assert response.mimetype == JSONAPI
    document = response.get_json(force=True)
    assert [resource["id"] for resource in document["data"]] == ["1", "2", "3"]
    assert document["jsonapi"] == {"version": "1.0"}
    assert document["meta"] == {"total": 3}
    assert document["included"] == []
    assert document["data"][0]["links"]["self"] == "http://localhost/api/tasks/1"


def test_get_resource_with_include_and_fields(client) -> None:
    response = client.get("/api/tasks/1?include[tasks]=project&fields[tasks]=name,project")

    document = response.get_json(force=True)
    assert response.status_code == 200
    assert document["data"]["attributes"] == {"name": "write docs"}
    assert document["data"]["relationships"]["project"]["data"] == {"type": "projects", "id": "1"}
    assert [(resource["type"], resource["id"]) for resource in document["included"]] == [("projects", "1")]
    # lazy relationship of the included project, not requested for projects
    assert "data" not in document["included"][0]["relationships"]["tasks"]


def test_dates_are_encoded(client) -> None:
    document = client.get("/api/tasks/1").get_json(force=True)

    assert document["data"]["attributes"]["due"] == "2024-05-01"


def test_filter_sort_and_page(client) -> None:
    response = client.get("/api/tasks?filter[tasks][done]=False&sort[tasks][name]=desc&page[limit]=1")

    document = response.get_json(force=True)
    assert [resource["attributes"]["name"] for resource in document["data"]] == ["write docs"]
    assert document["meta"] == {"total": 2}


def test_not_found(client) -> None:
    for url in ["/api/tasks/42", "/api/comments", "/api/tasks/1/owner"]:
        response = client.get(url)
        document = response.get_json(force=True)
        assert response.status_code == 404, url
        assert document["errors"][0]["code"] == "404"


def test_method_not_allowed(client) -> None:
    response = client.delete("/api/tasks")

    assert response.status_code == 405
    assert "errors" in response.get_json(force=True)


def test_malformed_query_parameter(client) -> None:
    response = client.get("/api/tasks?page[offset][minimal]=1")

    document = response.get_json(force=True)
    assert response.status_code == 400
    assert "Exceeded maximum level of nesting" in document["errors"][0]["detail"]


def test_post_resource(client, repositories: SimpleNamespace) -> None:
    payload = {"data": {"type": "tasks", "attributes": {"name": "triage"}, "relationships": {"project": {"data": {"type": "projects", "id": "1"}}}}}

    response = post(client, "/api/tasks?include[tasks]=project", payload)

    document = response.get_json(force=True)
    assert response.status_code == 201
    assert response.headers["Location"] == "http://localhost/api/tasks/4"
    assert document["data"]["id"] == "4"
    assert document["data"]["attributes"]["name"] == "triage"
    assert [resource["id"] for resource in document["included"]] == ["1"]
    assert repositories.tasks.find_one(4).project.name == "jadoc"


def test_post_requires_jsonapi_content_type(client, repositories: SimpleNamespace) -> None:
    response = client.post("/api/tasks", data='{"data": {"type": "tasks"}}', headers={"Content-Type": "text/plain"})

    assert response.status_code == 415
    assert len(repositories.tasks.find_all()) == 3


def test_post_invalid_json(client) -> None:
    response = client.post("/api/tasks", data="{not json", headers={"Content-Type": JSONAPI})

    assert response.status_code == 400


def test_post_multiple_data(client) -> None:
    response = post(client, "/api/tasks", {"data": [{"type": "tasks"}]})

    document = response.get_json(force=True)
    assert response.status_code == 400
    assert "Multiple data in body" in document["errors"][0]["title"]


def test_post_type_mismatch(client) -> None:
    response = post(client, "/api/tasks", {"data": {"type": "projects", "attributes": {"name": "x"}}})

    assert response.status_code == 409


def test_patch_resource(client, repositories: SimpleNamespace) -> None:
    response = post(client, "/api/tasks/2", {"data": {"type": "tasks", "id": "2", "attributes": {"done": False}}}, method="patch")

    assert response.status_code == 200
    assert response.get_json(force=True)["data"]["attributes"]["done"] is False
    assert repositories.tasks.find_one(2).done is False


def test_delete_resource(client, repositories: SimpleNamespace) -> None:
    response = client.delete("/api/tasks/3")

    assert response.status_code == 204
    assert response.get_data() == b""
    assert repositories.tasks.find_one(3) is None


def test_related_resources(client) -> None:
    project = client.get("/api/tasks/1/project").get_json(force=True)
    tasks = client.get("/api/projects/1/tasks").get_json(force=True)

    assert project["data"]["type"] == "projects"
    assert project["data"]["attributes"] == {"name": "jadoc"}
    assert [resource["id"] for resource in tasks["data"]] == ["1", "2"]


def test_relationship_linkage(client) -> None:
    document = client.get("/api/projects/1/relationships/tasks").get_json(force=True)

    assert document["data"] == [{"type": "tasks", "id": "1"}, {"type": "tasks", "id": "2"}]


def test_modify_relationships(client, repositories: SimpleNamespace) -> None:
    url = "/api/tasks/3/relationships/assignees"

    assert post(client, url, {"data": [{"type": "users", "id": "u1"}]}).status_code == 204
    assert post(client, url, {"data": [{"type": "users", "id": "u2"}]}).status_code == 204
    assert [user.id for user in repositories.tasks.find_one(3).assignees] == ["u1", "u2"]

    assert post(client, url, {"data": [{"type": "users", "id": "u1"}]}, method="delete").status_code == 204
    assert [user.id for user in repositories.tasks.find_one(3).assignees] == ["u2"]

    assert post(client, url, {"data": []}, method="patch").status_code == 204
    assert repositories.tasks.find_one(3).assignees == []

    response = post(client, url, {"data": {"type": "users", "id": "u1"}}, method="patch")
    assert response.status_code == 400
    assert "Non-multiple data in body" in response.get_json(force=True)["errors"][0]["detail"]


def test_lookup_if_null_on_include(client, repositories: SimpleNamespace) -> None:
    repositories.tasks.find_one(1).assignees = None

    document = client.get("/api/tasks/1?include[tasks]=assignees").get_json(force=True)

    # the in-memory relationship repository reads the (empty) attribute
    assert document["data"]["relationships"]["assignees"]["data"] == []
    assert repositories.tasks.find_one(1).assignees == []


def test_service_url_config(registry: ResourceRegistry) -> None:
    app = Flask("jadoc_service_url")
    app.config.update(SERVICE_URL="https://api.example.com/v2")
    JadocAPI(app, registry)

    document = app.test_client().get("/tasks/1").get_json(force=True)

    assert document["data"]["links"]["self"] == "https://api.example.com/v2/tasks/1"


def test_init_app_requires_flask() -> None:
    with pytest.raises(TypeError):
        JadocAPI(SimpleNamespace())
