"""User model definitions."""

from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from consultation.database import Base


class User(Base):
    """Represents a student, professor or counselor."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    password = Column(String)
    name = Column(String)
    email = Column(String, unique=True, index=True)
    role = Column(String)  # STUDENT/PROFESSOR/COUNSELOR

    subjects = relationship(
        "UserSubject",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def subject_names(self) -> list[str]:
        return [entry.subject for entry in self.subjects]


class UserSubject(Base):
    """A subject a professor teaches or a student is enrolled in."""
    __tablename__ = "user_subjects"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    subject = Column(String, nullable=False)

    user = relationship("User", back_populates="subjects")
