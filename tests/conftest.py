import datetime
from types import SimpleNamespace

import pytest
from flask import Flask

from jadoc import (
    Cardinality,
    InMemoryRelationshipRepository,
    InMemoryRepository,
    JadocAPI,
    RelationshipField,
    ResourceDescriptor,
    ResourceField,
    ResourceRegistry,
)


class Project:
    def __init__(self, id=None, name=None, tasks=None):
        self.id = id
        self.name = name
        self.tasks = tasks if tasks is not None else []


class Task:
    def __init__(self, id=None, name=None, done=False, due=None, project=None, assignees=None):
        self.id = id
        self.name = name
        self.done = done
        self.due = due
        self.project = project
        self.assignees = assignees


class SpecialTask(Task):
    def __init__(self, priority=0, **kwargs):
        super().__init__(**kwargs)
        self.priority = priority


class User:
    def __init__(self, id=None, name=None):
        self.id = id
        self.name = name


PROJECT_DESCRIPTOR = ResourceDescriptor(
    "projects",
    Project,
    id_field=ResourceField("id", int),
    attribute_fields=[ResourceField("name", str)],
    relationship_fields=[RelationshipField("tasks", "tasks", Cardinality.TO_MANY, lazy=True)],
)

TASK_FIELDS = [ResourceField("name", str), ResourceField("done", bool), ResourceField("due", datetime.date)]
TASK_RELATIONSHIPS = [
    RelationshipField("project", "projects", Cardinality.TO_ONE),
    RelationshipField("assignees", "users", Cardinality.TO_MANY, lookup_if_null=True),
]

TASK_DESCRIPTOR = ResourceDescriptor(
    "tasks",
    Task,
    id_field=ResourceField("id", int),
    attribute_fields=TASK_FIELDS,
    relationship_fields=TASK_RELATIONSHIPS,
)

SPECIAL_TASK_DESCRIPTOR = ResourceDescriptor(
    "special-tasks",
    SpecialTask,
    id_field=ResourceField("id", int),
    attribute_fields=TASK_FIELDS + [ResourceField("priority", int)],
    relationship_fields=TASK_RELATIONSHIPS,
)

USER_DESCRIPTOR = ResourceDescriptor("users", User, attribute_fields=[ResourceField("name", str)])


@pytest.fixture
def repositories() -> SimpleNamespace:
    """
    In-memory repositories with:
    - project 1 with tasks 1 and 2
    - task 3 without project
    - users "u1" and "u2"
    """
    projects = InMemoryRepository(PROJECT_DESCRIPTOR)
    tasks = InMemoryRepository(TASK_DESCRIPTOR)
    users = InMemoryRepository(USER_DESCRIPTOR)

    project = projects.save(Project(name="jadoc"))
    task_1 = tasks.save(Task(name="write docs", due=datetime.date(2024, 5, 1), project=project))
    task_2 = tasks.save(Task(name="fix bug", done=True, project=project))
    tasks.save(Task(name="release"))
    project.tasks = [task_1, task_2]
    users.save(User(id="u1", name="alice"))
    users.save(User(id="u2", name="bob"))

    return SimpleNamespace(
        projects=projects,
        tasks=tasks,
        users=users,
        task_projects=InMemoryRelationshipRepository(tasks, projects),
        task_users=InMemoryRelationshipRepository(tasks, users),
        project_tasks=InMemoryRelationshipRepository(projects, tasks),
    )


@pytest.fixture
def registry(repositories: SimpleNamespace) -> ResourceRegistry:
    registry = ResourceRegistry(service_url="http://localhost/api")
    registry.register(Project, PROJECT_DESCRIPTOR, repositories.projects, [repositories.project_tasks])
    registry.register(Task, TASK_DESCRIPTOR, repositories.tasks, [repositories.task_projects, repositories.task_users])
    registry.register(SpecialTask, SPECIAL_TASK_DESCRIPTOR, repositories.tasks, [repositories.task_projects, repositories.task_users])
    registry.register(User, USER_DESCRIPTOR, repositories.users)
    return registry


@pytest.fixture
def app(registry: ResourceRegistry) -> Flask:
    app = Flask("jadoc_test")
    app.config.update(TESTING=True, INCLUSION_WORKERS=2)
    JadocAPI(app, registry, prefix="/api")
    return app


@pytest.fixture
def client(app: Flask):
    return app.test_client()
