# app/models/enums/project_status.py
import enum


class ProjectStatus(str, enum.Enum):
    draft = "DRAFT"
    active = "ACTIVE"
    completed = "COMPLETED"
    archived = "ARCHIVED"


PROJECT_TRANSITIONS = {
    ProjectStatus.draft: {ProjectStatus.active, ProjectStatus.archived},
    ProjectStatus.active: {ProjectStatus.completed, ProjectStatus.archived},
    ProjectStatus.completed: {ProjectStatus.archived, ProjectStatus.active},
    ProjectStatus.archived: set(),
}
