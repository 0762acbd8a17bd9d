from dataclasses import dataclass, field
from typing import Dict, Optional, Any, Union
import datetime as _dt

from domain.constants import (
    ROLE_ADMIN, ROLE_STUDENT, STATUS_PAID, STATUS_PENDING, DATE_FORMAT,
)


def now_iso():
    return _dt.datetime.now(_dt.timezone.utc).replace(microsecond=0).isoformat().replace('+00:00', 'Z')


# --- Role variant ---

@dataclass(frozen=True)
class Student:
    student_id: str


@dataclass(frozen=True)
class Admin:
    pass


Role = Union[Student, Admin]


def role_name(role: Role) -> str:
    if isinstance(role, Admin):
        return ROLE_ADMIN
    if isinstance(role, Student):
        return ROLE_STUDENT
    raise TypeError(f"Unknown role variant: {role!r}")


@dataclass
class Identity:
    """The authenticated identity as reported by the auth provider."""
    uid: str
    email: Optional[str] = None
    is_anonymous: bool = False


@dataclass
class Profile:
    uid: str
    name: str
    role: Role
    email: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def student_id(self) -> Optional[str]:
        return self.role.student_id if isinstance(self.role, Student) else None

    @property
    def is_admin(self) -> bool:
        return isinstance(self.role, Admin)

    def to_dict(self) -> Dict[str, Any]:
        d = {
            'uid': self.uid,
            'email': self.email,
            'name': self.name,
            'role': role_name(self.role),
            'createdAt': self.created_at,
        }
        if isinstance(self.role, Student):
            d['studentId'] = self.role.student_id
        return d


def profile_from_dict(d: Dict[str, Any]) -> Profile:
    """Build a Profile from a stored document; unknown roles are rejected."""
    raw_role = d.get('role', ROLE_STUDENT)
    if raw_role == ROLE_ADMIN:
        role: Role = Admin()
    elif raw_role == ROLE_STUDENT:
        role = Student(student_id=str(d.get('studentId') or ''))
    else:
        raise ValueError(f"Unknown role {raw_role!r} on profile {d.get('uid')}")
    return Profile(uid=d.get('uid') or d.get('id', ''), name=d.get('name', ''),
                   role=role, email=d.get('email'), created_at=d.get('createdAt'))


@dataclass
class Exam:
    id: str
    name: str
    course_code: str
    description: str
    fee: float
    registration_deadline: str  # YYYY-MM-DD
    created_at: Optional[str] = None
    last_updated: Optional[str] = None

    @property
    def deadline_date(self) -> Optional[_dt.date]:
        try:
            return _dt.datetime.strptime(self.registration_deadline, DATE_FORMAT).date()
        except (TypeError, ValueError):
            return None

    def is_open(self, today: Optional[_dt.date] = None) -> bool:
        deadline = self.deadline_date
        if deadline is None:
            return True
        return (today or _dt.date.today()) <= deadline


def exam_from_dict(d: Dict[str, Any]) -> Exam:
    return Exam(
        id=d['id'],
        name=d.get('name', ''),
        course_code=d.get('courseCode', ''),
        description=d.get('description', ''),
        fee=float(d.get('fee') or 0),
        registration_deadline=d.get('registrationDeadline', ''),
        created_at=d.get('createdAt'),
        last_updated=d.get('lastUpdated'),
    )


@dataclass
class Registration:
    id: str
    student_id: str
    student_name: str
    exam_id: str
    status: str = STATUS_PENDING  # pending | paid
    timestamp: Optional[str] = None
    payment_timestamp: Optional[str] = None

    @property
    def is_paid(self) -> bool:
        return self.status == STATUS_PAID


def registration_from_dict(d: Dict[str, Any]) -> Registration:
    return Registration(
        id=d['id'],
        student_id=d.get('studentId', ''),
        student_name=d.get('studentName', ''),
        exam_id=d.get('examId', ''),
        status=d.get('status', STATUS_PENDING),
        timestamp=d.get('timestamp'),
        payment_timestamp=d.get('paymentTimestamp'),
    )


@dataclass
class RegistrationView:
    """A registration joined against the catalog; exam is None when unresolved."""
    registration: Registration
    exam: Optional[Exam] = None


@dataclass
class ExamForm:
    name: str = ''
    course_code: str = ''
    description: str = ''
    fee: str = ''
    deadline: str = ''  # YYYY-MM-DD

    def is_empty(self) -> bool:
        return not any([self.name, self.course_code, self.description, self.fee, self.deadline])


@dataclass
class LedgerSummary:
    total_exams: int = 0
    total_registrations: int = 0
    pending: int = 0
    paid: int = 0
    unresolved: int = 0
    fees_collected: float = 0.0
    by_exam: Dict[str, int] = field(default_factory=dict)
