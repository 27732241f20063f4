"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import os
import secrets
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name

    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                print(f"[settings] ✓ Loaded {secret_name} from /run/secrets")
                return secret_value
        except OSError as e:
            print(f"[settings] ✗ Failed to read /run/secrets/{secret_name}: {e}")

    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            return secret_value

    return None


def _split_csv(raw: str | None) -> list[str]:
    """Split a comma-separated environment value, dropping blanks."""
    return [item.strip() for item in (raw or "").split(",") if item.strip()]


def _int_env(var_name: str, default: int) -> int:
    raw = os.environ.get(var_name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"Environment variable {var_name} must be an integer, got {raw!r}.")


@dataclass
class AppConfig:
    """Application configuration container."""
    # Mode
    demo_mode: bool

    # Storage
    database_url: str
    db_pool_recycle: int = 280
    db_pool_timeout: int = 10
    db_statement_timeout_ms: int = 5000

    # Administrator override (global admin role ids)
    admin_roles: list[str] = field(default_factory=lambda: ["super-admin"])

    # Permission ids granting manage access per relation domain
    manage_permissions: dict[str, list[str]] = field(default_factory=dict)

    # Identity gateway and inter-service trust
    trusted_proxy_secret: str = ""
    rpc_service_token: str = ""

    # Logging
    log_level: str = "INFO"

    @property
    def sqlalchemy_engine_options(self) -> dict:
        """Engine options for Flask-SQLAlchemy.

        Pool timeout only applies to queue pools (not SQLite), the statement
        timeout only to PostgreSQL drivers. SQLite connections are handed
        between request threads by the pool, and a writer waits up to the pool
        timeout for another worker's write lock.
        """
        options: dict = {"pool_recycle": self.db_pool_recycle, "pool_pre_ping": True}
        if self.database_url.startswith("sqlite"):
            options["connect_args"] = {"check_same_thread": False, "timeout": self.db_pool_timeout}
            return options

        options["pool_timeout"] = self.db_pool_timeout
        if self.database_url.startswith("postgresql") and self.db_statement_timeout_ms > 0:
            options["connect_args"] = {
                "options": f"-c statement_timeout={self.db_statement_timeout_ms}"
            }
        return options

    def manage_permissions_for(self, domain: str) -> list[str]:
        """Permission ids that grant manage access on a relation domain."""
        return list(self.manage_permissions.get(domain, []))


def _get_or_generate(var_name: str, demo_default: Optional[str] = None, demo_mode: bool = False) -> str:
    """Get environment variable or use the demo default; required otherwise."""
    value = os.environ.get(var_name)
    if value:
        return value

    if demo_mode and demo_default is not None:
        print(f"[demo-mode] Using default for {var_name}")
        os.environ[var_name] = demo_default
        return demo_default

    raise RuntimeError(f"Environment variable {var_name} is required in production mode.")


def _load_shared_secret(secret_name: str, env_var: str, demo_mode: bool) -> str:
    """Load a shared secret, generating a temporary one in demo mode."""
    value = _load_secret_from_file(secret_name, env_var)
    if value:
        return value

    if demo_mode:
        value = secrets.token_urlsafe(32)
        os.environ[env_var] = value
        print(f"[demo-mode] Generated temporary {env_var}")
        return value

    raise RuntimeError(f"{env_var} not found in /run/secrets or environment")


def load_settings() -> AppConfig:
    """Load application settings from environment and /run/secrets."""
    demo_mode = os.environ.get("DEMO_MODE", "false").lower() == "true"

    # Database URL may embed credentials, so it is read like a secret
    database_url = _load_secret_from_file("database_url", "DATABASE_URL")
    if not database_url:
        database_url = _get_or_generate(
            "DATABASE_URL",
            demo_default="sqlite:///authz-demo.db" if demo_mode else None,
            demo_mode=demo_mode,
        )

    admin_roles = _split_csv(os.environ.get("ADMIN_ROLES", "super-admin"))
    if not admin_roles:
        print("[settings] WARNING: ADMIN_ROLES is empty; administrator override disabled")

    manage_permissions = {
        "user-role": _split_csv(os.environ.get("USER_ROLE_MANAGE_PERMISSIONS")),
        "role-permission": _split_csv(os.environ.get("ROLE_PERMISSION_MANAGE_PERMISSIONS")),
        "service-visible-role": _split_csv(os.environ.get("SERVICE_VISIBLE_ROLE_MANAGE_PERMISSIONS")),
    }

    trusted_proxy_secret = _load_shared_secret("trusted_proxy_secret", "TRUSTED_PROXY_SECRET", demo_mode)
    rpc_service_token = _load_shared_secret("rpc_service_token", "RPC_SERVICE_TOKEN", demo_mode)

    log_level = os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO"

    mode_label = "DEMO" if demo_mode else "PRODUCTION"
    backend = database_url.split(":", 1)[0]
    print(f"[settings] Mode={mode_label}; database={backend}; admin_roles={','.join(admin_roles)}")

    if demo_mode:
        print("[settings] WARNING: Demo defaults in use. Do not deploy with these defaults.")

    return AppConfig(
        demo_mode=demo_mode,
        database_url=database_url,
        db_pool_recycle=_int_env("DB_POOL_RECYCLE", 280),
        db_pool_timeout=_int_env("DB_POOL_TIMEOUT", 10),
        db_statement_timeout_ms=_int_env("DB_STATEMENT_TIMEOUT_MS", 5000),
        admin_roles=admin_roles,
        manage_permissions=manage_permissions,
        trusted_proxy_secret=trusted_proxy_secret,
        rpc_service_token=rpc_service_token,
        log_level=log_level,
    )
