from dataclasses import dataclass
from enum import Enum

from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash


class UserRole(Enum):
    STANDARD = 'standard'
    ADMIN = 'admin'


class IncorrectPassword(Exception):
    """Raised when the current password given for a change does not match."""

    def __init__(self):
        super().__init__('incorrect password')


@dataclass
class User(UserMixin):
    """Account record for flask-login.

    The store assigns ``id``; a freshly built user carries 0 until it is added.
    """
    name: str
    password_hash: str
    role: UserRole = UserRole.STANDARD
    verified: bool = False
    bio: str = ''
    id: int = 0

    @classmethod
    def new(cls, name, password, role=UserRole.STANDARD, verified=False):
        return cls(name=name, password_hash=generate_password_hash(password),
                   role=role, verified=verified)

    @property
    def is_admin(self):
        return self.role is UserRole.ADMIN

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def change_password(self, current_password, new_password):
        if not self.check_password(current_password):
            raise IncorrectPassword()
        self.password_hash = generate_password_hash(new_password)

    def __repr__(self):
        return f"<User id={self.id} name={self.name!r} role={self.role.value}>"
