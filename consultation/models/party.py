"""Read-only snapshots of identity records handed to the scheduling engine."""

from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from consultation.models.enums import Role
from consultation.models.user import User


@dataclass(frozen=True)
class Party:
    """A student or staff member as seen by the scheduler."""

    username: str
    name: str
    role: Role
    subjects: frozenset[str] = field(default_factory=frozenset)
    email: str | None = None

    @property
    def is_staff(self) -> bool:
        return self.role.is_staff

    def can_teach(self, subject: str) -> bool:
        return self.role is Role.PROFESSOR and subject in self.subjects

    def is_enrolled_in(self, subject: str) -> bool:
        return self.role is Role.STUDENT and subject in self.subjects

    @classmethod
    def from_user(cls, user: User) -> 'Party':
        return cls(
            username=user.username,
            name=user.name or user.username,
            role=Role.parse(user.role or ''),
            subjects=frozenset(user.subject_names),
            email=user.email,
        )


def load_party(db: Session, username: str) -> Party | None:
    normalized = username.strip()
    if not normalized:
        return None

    user = db.query(User).filter(User.username == normalized).first()
    if user is None:
        return None
    return Party.from_user(user)
