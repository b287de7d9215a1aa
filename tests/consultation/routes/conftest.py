import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from consultation.database import Base
from consultation.models.user import User, UserSubject

SEED_USERS = [
    ('prof', 'Prof. Ada', 'PROFESSOR', ('X', 'Math')),
    ('counselor', 'Counselor Bo', 'COUNSELOR', ()),
    ('amy', 'Amy', 'STUDENT', ('X',)),
    ('ben', 'Ben', 'STUDENT', ('X',)),
    ('janitor', 'Jan', 'JANITOR', ()),
]


@pytest.fixture
def identity_db():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine, tables=[User.__table__, UserSubject.__table__])

    db = testing_session_local()
    for username, name, role, subjects in SEED_USERS:
        user = User(username=username, name=name, email=f'{username}@example.edu', role=role)
        user.subjects = [UserSubject(subject=subject) for subject in subjects]
        db.add(user)
    db.commit()

    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine, tables=[UserSubject.__table__, User.__table__])


@pytest.fixture(autouse=True)
def skip_schema_check(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr('consultation.routes.dependencies.ensure_database_ready', lambda: None)
