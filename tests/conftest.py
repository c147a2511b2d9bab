from datetime import timedelta
from typing import List, Optional

import pytest

from workhub.core.security import CredentialService
from workhub.db.base import Database
from workhub.db.store import EntityStore
from workhub.models import Project, Task, TaskStatus, User, UserRole
from workhub.services.identity import Principal


@pytest.fixture
def database():
    db = Database("sqlite://").open()
    yield db
    db.close()


@pytest.fixture
def store(database):
    session = database.session()
    yield EntityStore(session)
    session.close()


@pytest.fixture
def credentials():
    return CredentialService(secret_key="test-secret", default_ttl=timedelta(minutes=30))


@pytest.fixture
def make_user(store):
    counter = {"n": 0}

    def _make_user(
        role: UserRole = UserRole.MEMBER,
        name: Optional[str] = None,
        access_code: Optional[str] = None,
        phone_number: Optional[str] = None,
    ) -> User:
        counter["n"] += 1
        user = User(
            name=name or f"User {counter['n']}",
            email=f"user{counter['n']}@example.com",
            role=role,
            skills=["python"],
            access_code=access_code,
            phone_number=phone_number,
        )
        store.insert(user)
        store.commit()
        return user

    return _make_user


@pytest.fixture
def make_project(store):
    def _make_project(lead: User, members: Optional[List[User]] = None, created_by: Optional[User] = None) -> Project:
        project = Project(
            name="Apollo",
            description="Moon landing",
            lead_id=lead.id,
            created_by_id=created_by.id if created_by else lead.id,
        )
        project.members.append(lead)
        for member in members or []:
            project.members.append(member)
        store.insert(project)
        store.commit()
        return project

    return _make_project


@pytest.fixture
def make_task(store):
    def _make_task(
        assignee: User,
        assigner: User,
        project: Optional[Project] = None,
        status: TaskStatus = TaskStatus.TODO,
    ) -> Task:
        task = Task(
            title="Write docs",
            project_id=project.id if project else None,
            assigned_to_id=assignee.id,
            assigned_by_id=assigner.id,
            skills=[],
            subtasks=[],
        )
        task.set_status(status)
        store.insert(task)
        store.commit()
        return task

    return _make_task


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.ADMIN, name="Ada Admin")


@pytest.fixture
def admin_principal(admin):
    return Principal.for_user(admin)


def principal(user: User) -> Principal:
    return Principal.for_user(user)


def guest_principal(project_id: int, token_id: int = 1) -> Principal:
    return Principal(
        id=f"guest_{token_id}",
        email="guest@example.com",
        role=UserRole.MEMBER,
        project_scope=project_id,
        is_guest=True,
    )
