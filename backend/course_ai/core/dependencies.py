from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from course_ai.core.database import get_db
from course_ai.services.container import ServiceContainer
from course_ai.services.session_tracker import SessionStateTracker
from course_ai.services.subjects import SqlSubjectRepository, SubjectRepository


def get_services(request: Request) -> ServiceContainer:
    """The container built in the app lifespan."""
    return request.app.state.services


def get_session_tracker(db: AsyncSession = Depends(get_db)) -> SessionStateTracker:
    return SessionStateTracker(db)


def get_subject_repository(db: AsyncSession = Depends(get_db)) -> SubjectRepository:
    return SqlSubjectRepository(db)
