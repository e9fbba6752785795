"""Database models."""

from app.models.base import metadata
from app.models.doctor_ratings import doctor_ratings
from app.models.doctor_verifications import doctor_verifications
from app.models.doctors import doctors
from app.models.profiles import UserRole, profiles
from app.models.users import users

__all__ = [
    "UserRole",
    "doctor_ratings",
    "doctor_verifications",
    "doctors",
    "metadata",
    "profiles",
    "users",
]
