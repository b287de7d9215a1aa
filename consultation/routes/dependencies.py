from fastapi import HTTPException, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from consultation.core.errors import (
    ConflictError,
    ConsistencyError,
    EligibilityError,
    NotFoundError,
    SchedulingError,
    ValidationError,
)
from consultation.core.results import OperationResult
from consultation.database import SessionLocal, ensure_identity_schema
from consultation.models.party import Party, load_party
from consultation.scheduling.engine import SchedulingEngine

ERROR_STATUS_CODES = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    EligibilityError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    ConsistencyError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_engine(request: Request) -> SchedulingEngine:
    return request.app.state.engine


def ensure_database_ready() -> None:
    try:
        ensure_identity_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Database unavailable. Verify DATABASE_URL.',
        ) from exc


def resolve_party(db: Session, username: str) -> Party:
    ensure_database_ready()

    try:
        party = load_party(db, username)
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Database unavailable. Verify DATABASE_URL.',
        ) from exc
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f'User {username} has an unknown role.',
        ) from exc

    if party is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f'User {username} not found.',
        )
    return party


def error_status_code(error: SchedulingError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES.items():
        if isinstance(error, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def unwrap(result: OperationResult):
    """Return the result's value or raise the matching HTTP error."""
    if result.ok:
        return result.value

    raise HTTPException(
        status_code=error_status_code(result.error),
        detail={'code': result.error.code.value, 'message': result.error.message},
    )
