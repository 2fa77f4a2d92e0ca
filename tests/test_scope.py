from __future__ import annotations

import types

import pytest
from keystoneauth1 import exceptions as ksa_exc

from openstack_inventory.normalize.schema import ResourceKind
from openstack_inventory.openstack import scope
from openstack_inventory.openstack.clients import Subsystem
from openstack_inventory.util.errors import Forbidden, NoAuthResult, NotFound, TransportError

USER_PROJECTS = {
    "/users/user-1/projects": {
        "projects": [{"id": "p0", "name": "sandbox"}, {"id": "p1", "name": "acme"}],
        "links": {"next": "https://keystone/v3/users/user-1/projects?page=2"},
    },
    "https://keystone/v3/users/user-1/projects?page=2": {
        "projects": [{"id": "p2", "name": "other"}],
        "links": {"next": None},
    },
}


def test_authenticated_user_id_reads_auth_result(make_session) -> None:
    assert scope.authenticated_user_id(make_session(user_id="abc")) == "abc"


def test_missing_auth_result_is_no_auth_result(make_session) -> None:
    with pytest.raises(NoAuthResult):
        scope.authenticated_user_id(make_session(user_id=None))


def test_auth_result_without_user_is_no_auth_result(make_session) -> None:
    session = make_session()
    session = type(session)(
        http=None,
        auth_result=types.SimpleNamespace(user_id=""),
        endpoints=session.endpoints,
        scope=session.scope,
    )
    with pytest.raises(NoAuthResult):
        scope.authenticated_user_id(session)


def test_user_projects_are_paged_and_narrowed_to_scope(make_session) -> None:
    session = make_session({Subsystem.IDENTITY: USER_PROJECTS}, project_name="acme")
    projects = scope.list_user_projects(session)
    assert [(p.kind, p.id, p.name) for p in projects] == [(ResourceKind.PROJECT, "p1", "acme")]
    assert session.endpoints[Subsystem.IDENTITY].urls == [
        "/users/user-1/projects",
        "https://keystone/v3/users/user-1/projects?page=2",
    ]


def test_user_projects_empty_when_not_a_member(make_session) -> None:
    session = make_session({Subsystem.IDENTITY: USER_PROJECTS}, project_name="nope")
    assert scope.list_user_projects(session) == []


def test_get_user_project_found(make_session) -> None:
    session = make_session({Subsystem.IDENTITY: USER_PROJECTS}, project_name="acme")
    assert scope.get_user_project(session, "p1").name == "acme"


def test_get_user_project_absent_is_not_found(make_session) -> None:
    session = make_session({Subsystem.IDENTITY: USER_PROJECTS}, project_name="acme")
    with pytest.raises(NotFound) as exc_info:
        scope.get_user_project(session, "p2")
    assert exc_info.value.resource_id == "p2"


def test_no_auth_result_short_circuits_before_any_call(make_session) -> None:
    session = make_session({Subsystem.IDENTITY: USER_PROJECTS}, user_id=None)
    with pytest.raises(NoAuthResult):
        scope.list_user_projects(session)
    assert session.endpoints[Subsystem.IDENTITY].calls == []


@pytest.mark.parametrize(
    "error,expected",
    [(ksa_exc.Forbidden(), Forbidden), (ksa_exc.ConnectFailure("down"), TransportError)],
)
def test_fallback_errors_propagate(make_session, error, expected) -> None:
    session = make_session({Subsystem.IDENTITY: {"/users/user-1/projects": error}})
    with pytest.raises(expected):
        scope.list_user_projects(session)
