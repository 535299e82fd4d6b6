import os
from common.token_engine import Role, RoleIdentity, TokenConfig

# Dev-only fallbacks; production must override every one of these.
ROLE_ENV = {
    Role.DEVELOPER: ("DEV_BIRTH", "20020317", "DEV_PHONE", "01092034239"),
    Role.DESIGNER: ("DESIGN_BIRTH", "00000000", "DESIGN_PHONE", "00000000000"),
    Role.MARKETING: ("MARKETING_BIRTH", "20030408", "MARKETING_PHONE", "01025127854"),
    Role.PM: ("PM_BIRTH", "20011121", "PM_PHONE", "01071489971"),
}
DEFAULT_PROJECT_SECRET = "vinscent_naver_give_up_secret_key"

APP_ENV = os.getenv("APP_ENV", "production")
UPSTREAM_URL = os.getenv("UPSTREAM_URL", "http://content:3000")
AUDIT_URL = os.getenv("AUDIT_URL", "http://audit:5003/audit")
AUDIT_DB = os.getenv("AUDIT_DB", "sqlite:////data/audit.db")
DEBUG_TOKEN_URL = os.getenv("DEBUG_TOKEN_URL", "http://localhost:5000/api/debug/token")
RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", 60))
RATE_LIMIT_MAX_REQUESTS = int(os.getenv("RATE_LIMIT_MAX_REQUESTS", 100))


def env_var_names():
    names = []
    for birth_var, _, phone_var, _ in ROLE_ENV.values():
        names += [birth_var, phone_var]
    return names + ["PROJECT_SECRET"]


def missing_env_vars(environ=None):
    environ = os.environ if environ is None else environ
    return [n for n in env_var_names() if not environ.get(n)]


def load_token_config(environ=None) -> TokenConfig:
    environ = os.environ if environ is None else environ
    identities = {}
    for role, (birth_var, birth_default, phone_var, phone_default) in ROLE_ENV.items():
        identities[role] = RoleIdentity(
            role=role,
            birth_date=environ.get(birth_var) or birth_default,
            phone_last_four=environ.get(phone_var) or phone_default,
        )
    secret = environ.get("PROJECT_SECRET") or DEFAULT_PROJECT_SECRET
    return TokenConfig(identities=identities, project_secret=secret)


def is_development(app_env: str = None) -> bool:
    return (app_env or APP_ENV) == "development"
