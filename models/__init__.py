from .db import db
from .user import User
from .session import Session
from .login_attempt import LoginAttempt
from .audit_log import AuditLog
from .camera import Camera
from .customer import Customer
from .rental import Rental
