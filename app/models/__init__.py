"""Database models."""

from app.models.appointments import appointments
from app.models.patients import patients
from app.models.users import users

__all__ = [
    "appointments",
    "patients",
    "users",
]
