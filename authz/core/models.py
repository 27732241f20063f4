"""Association tables for the three relation domains.

Each table holds nothing but the pair: a composite primary key guarantees
uniqueness and each column carries its own non-unique index for reverse
lookups. Identifiers are opaque strings and are not foreign keys.
``relation_lock`` carries no relation data; it serializes writers.
"""
from authz.extensions import db

ID_LENGTH = 255


class UserRole(db.Model):
    """A user holds a role."""
    __tablename__ = "user_role"

    user_id = db.Column(db.String(ID_LENGTH), primary_key=True, index=True)
    role_id = db.Column(db.String(ID_LENGTH), primary_key=True, index=True)

    def __repr__(self):
        return f"<UserRole user_id={self.user_id} role_id={self.role_id}>"


class RolePermission(db.Model):
    """A role carries a permission."""
    __tablename__ = "role_permission"

    role_id = db.Column(db.String(ID_LENGTH), primary_key=True, index=True)
    permission_id = db.Column(db.String(ID_LENGTH), primary_key=True, index=True)

    def __repr__(self):
        return f"<RolePermission role_id={self.role_id} permission_id={self.permission_id}>"


class ServiceVisibleRole(db.Model):
    """A role is visible to a service."""
    __tablename__ = "service_visible_role"

    service_id = db.Column(db.String(ID_LENGTH), primary_key=True, index=True)
    role_id = db.Column(db.String(ID_LENGTH), primary_key=True, index=True)

    def __repr__(self):
        return f"<ServiceVisibleRole service_id={self.service_id} role_id={self.role_id}>"


class RelationLock(db.Model):
    """Cross-process mutation lock for one relation key.

    Mutations on backends without advisory locks update the row of their key
    first and hold the row lock until commit. ``lock_id`` is
    ``locks.advisory_key`` of ``"<table>:<left>"``.
    """
    __tablename__ = "relation_lock"

    lock_id = db.Column(db.BigInteger, primary_key=True, autoincrement=False)
    generation = db.Column(db.BigInteger, nullable=False, default=0)

    def __repr__(self):
        return f"<RelationLock lock_id={self.lock_id} generation={self.generation}>"
