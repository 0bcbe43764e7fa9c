"""Project management endpoints"""
from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.orm import Session

from authwave.api.deps import AdminContext, require_admin, require_owned_project
from authwave.database import get_db
from authwave.models.project import Project
from authwave.schemas.project import (
    AppEmailUpdate,
    AppNameUpdate,
    BulkDeleteResponse,
    CascadeCountsResponse,
    ProjectCreate,
    ProjectKeyResponse,
    ProjectOverview,
    ProjectResponse,
    ReclaimResponse,
)
from authwave.services import lifecycle, projects

router = APIRouter(tags=["projects"])


# ---------------------------------------------------------------------------
# /projects (Admin)
# ---------------------------------------------------------------------------

@router.post("/projects", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
def create_project(
    data: ProjectCreate,
    db: Session = Depends(get_db),
    ctx: AdminContext = Depends(require_admin),
):
    """
    Create a project owned by the calling admin (Admin only)

    Returns the project including its project key. Sections left out of
    ``config`` take their defaults.
    """
    config = data.config.model_dump(exclude_none=True) if data.config else None
    return projects.create_project(
        db,
        ctx.admin.admin_id,
        data.name,
        data.app_name,
        data.app_email,
        config=config,
    )


@router.get("/projects", response_model=List[ProjectResponse])
def list_projects(db: Session = Depends(get_db), ctx: AdminContext = Depends(require_admin)):
    return projects.list_projects(db, ctx.admin.admin_id)


@router.delete("/projects", response_model=BulkDeleteResponse)
def delete_all_projects(db: Session = Depends(get_db), ctx: AdminContext = Depends(require_admin)):
    """
    Delete every project of the calling admin (Admin only)

    Each project is removed in its own transaction. If any project fails, the
    response is a CASCADE_INCOMPLETE error listing the failures; the request can
    be retried safely.
    """
    report = projects.delete_all_projects(db, ctx.admin.admin_id)
    report.raise_for_failures()
    return BulkDeleteResponse(deleted=report.deleted)


@router.get("/projects/{project_id}", response_model=ProjectResponse)
def get_project(
    project_id: str,
    db: Session = Depends(get_db),
    ctx: AdminContext = Depends(require_admin),
):
    return projects.get_owned_project(db, project_id, ctx.admin.admin_id)


@router.delete("/projects/{project_id}", response_model=CascadeCountsResponse)
def delete_project(
    project_id: str,
    db: Session = Depends(get_db),
    ctx: AdminContext = Depends(require_admin),
):
    """Delete a project with its users, sessions and security logs (Admin only)"""
    projects.get_owned_project(db, project_id, ctx.admin.admin_id)
    counts = projects.delete_project(db, project_id)
    return CascadeCountsResponse(**vars(counts))


# ---------------------------------------------------------------------------
# /project (Admin + X-Project-Key)
# ---------------------------------------------------------------------------

@router.post("/project/key", response_model=ProjectKeyResponse)
def rotate_project_key(
    db: Session = Depends(get_db),
    project: Project = Depends(require_owned_project),
):
    """Issue a new project key. The previous key stops working immediately."""
    project_key = projects.rotate_key(db, project.project_id)
    return ProjectKeyResponse(project_id=project.project_id, project_key=project_key)


@router.patch("/project/app-name", response_model=ProjectResponse)
def update_app_name(
    data: AppNameUpdate,
    db: Session = Depends(get_db),
    project: Project = Depends(require_owned_project),
):
    return projects.update_app_name(db, project.project_id, data.app_name)


@router.patch("/project/app-email", response_model=ProjectResponse)
def update_app_email(
    data: AppEmailUpdate,
    db: Session = Depends(get_db),
    project: Project = Depends(require_owned_project),
):
    return projects.update_app_email(db, project.project_id, data.app_email)


@router.put("/project/config/{section}", response_model=ProjectResponse)
def update_config(
    section: str,
    value: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    project: Project = Depends(require_owned_project),
):
    """
    Replace one configuration section

    ``section`` is one of ``login_methods``, ``security`` or ``email_templates``.
    The body is the complete new value of that section.
    """
    return projects.update_config(db, project.project_id, section, value)


@router.post("/project/config/security/reset", response_model=ProjectResponse)
def reset_security(
    db: Session = Depends(get_db),
    project: Project = Depends(require_owned_project),
):
    return projects.reset_security_defaults(db, project.project_id)


@router.delete("/project/config/email-templates/{template_name}", response_model=ProjectResponse)
def remove_email_template(
    template_name: str,
    db: Session = Depends(get_db),
    project: Project = Depends(require_owned_project),
):
    return projects.remove_email_template_override(db, project.project_id, template_name)


@router.get("/project/overview", response_model=ProjectOverview)
def project_overview(
    db: Session = Depends(get_db),
    project: Project = Depends(require_owned_project),
):
    return projects.project_overview(db, project.project_id)


@router.delete("/project/inactive-users", response_model=ReclaimResponse)
def reclaim_inactive_users(
    db: Session = Depends(get_db),
    project: Project = Depends(require_owned_project),
):
    """Delete users who have not been active within the activity threshold"""
    threshold_days = projects.activity_threshold_days(db, project.project_id)
    deleted = lifecycle.reclaim_inactive_users(db, project.project_id, threshold_days)
    return ReclaimResponse(threshold_days=threshold_days, deleted_users=deleted)
