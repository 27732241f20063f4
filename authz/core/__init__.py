"""Relation engine core.

Framework-independent logic for RBAC association management and
authorization resolution. Only ``models`` touches the Flask-SQLAlchemy
extension; everything else works on a plain SQLAlchemy session factory.

Module Structure:
    - domains.py        : Relation domain definitions (user-role, role-permission, service-visible-role)
    - models.py         : Association tables
    - relation_store.py : Generic composite-key store
    - replacer.py       : Atomic diff-based full-set replace
    - resolver.py       : Role and permission resolution
    - guard.py          : Self-or-admin and manage-access decisions
    - service.py        : Per-domain service used by HTTP and RPC
    - engine.py         : Wiring of all of the above
    - locks.py          : Per-key mutation serialization
    - exceptions.py     : Error types with HTTP status mapping

Usage Pattern:
    These modules are NOT auto-imported. Import explicitly when needed:
        from authz.core.engine import AuthzEngine
        from authz.core.exceptions import Forbidden, StorageUnavailable
"""
