from __future__ import annotations

from typing import List
from urllib.parse import quote

from ..logging import get_logger
from ..normalize.schema import NormalizedResource, ResourceKind
from ..util.errors import NoAuthResult, NotFound
from .clients import Session, Subsystem, iter_collection

logger = get_logger(__name__)


def authenticated_user_id(session: Session) -> str:
    """
    Return the caller's own user id from the Session's authentication result.

    Raises NoAuthResult when the Session was not built through a standard identity
    handshake (no auth result), or when the result does not name a user.
    """
    auth_result = session.auth_result
    if auth_result is None:
        raise NoAuthResult("No authentication result available for this session")
    user_id = getattr(auth_result, "user_id", None)
    if not user_id:
        raise NoAuthResult(
            f"Authentication result of type {type(auth_result).__name__} does not carry a user id"
        )
    return str(user_id)


def list_user_projects(session: Session) -> List[NormalizedResource]:
    """
    Projects the caller is a member of, narrowed to the configured project name.

    Used when listing projects directly is forbidden. Returns zero or one entries
    while a Session is scoped to a single project.
    """
    user_id = authenticated_user_id(session)
    project_name = session.scope.project_name
    logger.debug("Listing projects of user %s", user_id, extra={"step": "scope", "phase": "fallback"})
    out: List[NormalizedResource] = []
    for raw in iter_collection(
        session,
        Subsystem.IDENTITY,
        f"/users/{quote(user_id, safe='')}/projects",
        "projects",
        context=f"OpenStack error while listing projects of user {user_id}",
        kind=ResourceKind.PROJECT.value,
    ):
        # TODO: drop the name filter once sessions can span several projects.
        if raw.get("name") == project_name:
            out.append(NormalizedResource.from_raw(ResourceKind.PROJECT, raw))
    return out


def get_user_project(session: Session, project_id: str) -> NormalizedResource:
    """
    The caller's own project with project_id; NotFound when it is not among them.
    """
    for project in list_user_projects(session):
        if project.id == project_id:
            return project
    raise NotFound(
        f"Project {project_id} is not among the caller's projects",
        status_code=404,
        kind=ResourceKind.PROJECT.value,
        resource_id=project_id,
        operation="get",
    )
