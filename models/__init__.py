from .db import db
from .business import Business
from .service import Service
from .user import User
from .booking import Booking
from .session import AuthAccount, AuthSession
from .audit_log import AuditLog
from .login_attempt import LoginAttempt
