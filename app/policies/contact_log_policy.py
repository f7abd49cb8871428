# app/policies/contact_log_policy.py

from app.models.masters.contact_log_models import ContactLog
from app.models.users.user_models import User


def can_view_any(user: User) -> bool:
    return user.is_active


def can_view(user: User, log: ContactLog) -> bool:
    return user.is_active


def can_create(user: User) -> bool:
    return user.is_active


def can_update(user: User, log: ContactLog) -> bool:
    return user.is_admin or log.contact_person_id == user.id


def can_delete(user: User, log: ContactLog) -> bool:
    return user.is_admin or log.contact_person_id == user.id


def can_restore(user: User, log: ContactLog) -> bool:
    return False


def can_force_delete(user: User, log: ContactLog) -> bool:
    return False
