# Overview: Role-based permission resolution and role/permission administration.

"""
Permission Checking

- Fail closed: deny unless a permission is granted
- Staff permissions come from the user's (active) role
- Customers hold a fixed permission set
- Denials are logged through the application logger
"""

from flask import current_app

from ..extensions import db
from ..errors import ConflictError, NotFoundError, ValidationError
from ..models import Permission, Role, RolePermission, User
from ..models.auth import ACCOUNT_TYPE_CUSTOMER
from ..permissions import (
    CUSTOMER_ACCOUNT_PERMISSIONS,
    DEFAULT_ROLE_PERMISSIONS,
    PERMISSION_DEFINITIONS,
    validate_permission_code,
)


class PermissionDeniedError(Exception):
    """Raised when an account lacks a required permission."""
    pass


def get_role_permissions(role_id: int) -> set[str]:
    rows = (
        db.session.query(Permission.code)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .filter(RolePermission.role_id == role_id)
        .all()
    )
    return {code for (code,) in rows}


def get_user_permissions(user: User) -> set[str]:
    if user.role is None or not user.role.is_active:
        return set()
    return get_role_permissions(user.role_id)


def get_account_permissions(account_type: str, account) -> set[str]:
    if account_type == ACCOUNT_TYPE_CUSTOMER:
        return set(CUSTOMER_ACCOUNT_PERMISSIONS)
    return get_user_permissions(account)


def require_permission(account_type: str, account, permission_code: str, resource: str | None = None) -> None:
    if permission_code not in get_account_permissions(account_type, account):
        current_app.logger.warning(
            "Permission denied: %s %s lacks %s (%s)",
            account_type, account.id, permission_code, resource,
        )
        raise PermissionDeniedError(f"Permission denied: {permission_code}")


def seed_permissions() -> int:
    """Insert missing permission definitions. Returns count created."""
    existing = {p.code for p in db.session.query(Permission).all()}
    created = 0
    for code, name, description, category in PERMISSION_DEFINITIONS:
        if code in existing:
            continue
        db.session.add(Permission(code=code, name=name, description=description, category=category))
        created += 1
    db.session.commit()
    return created


def seed_default_roles() -> dict[str, Role]:
    """Create the default roles if missing and grant their default permissions."""
    roles = {}
    for role_name, codes in DEFAULT_ROLE_PERMISSIONS.items():
        role = db.session.query(Role).filter_by(name=role_name).first()
        if role is None:
            role = Role(name=role_name, description=f"Default {role_name} role", is_active=True)
            db.session.add(role)
            db.session.flush()
        granted = get_role_permissions(role.id)
        for code in codes:
            if code in granted:
                continue
            permission = db.session.query(Permission).filter_by(code=code).first()
            if permission is not None:
                db.session.add(RolePermission(role_id=role.id, permission_id=permission.id))
        roles[role_name] = role
    db.session.commit()
    return roles


def set_role_permissions(role_id: int, permission_codes: list[str]) -> Role:
    """Replace a role's permission set."""
    role = db.session.get(Role, role_id)
    if role is None:
        raise NotFoundError("Role not found")
    if not isinstance(permission_codes, list):
        raise ValidationError("permission_codes must be a list")

    unknown = [c for c in permission_codes if not validate_permission_code(c)]
    if unknown:
        raise ValidationError(f"Unknown permission codes: {', '.join(unknown)}")

    permissions = db.session.query(Permission).filter(Permission.code.in_(permission_codes)).all()
    missing_rows = set(permission_codes) - {p.code for p in permissions}
    if missing_rows:
        raise ConflictError("Permissions are not seeded; run `flask system init`")

    db.session.query(RolePermission).filter_by(role_id=role_id).delete()
    for permission in permissions:
        db.session.add(RolePermission(role_id=role_id, permission_id=permission.id))
    db.session.commit()
    return role
