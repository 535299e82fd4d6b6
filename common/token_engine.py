"""Daily admin tokens: sha256(date|birth|phone|role|secret), shortened to 8-4-4 hex."""
import hashlib, re
from dataclasses import dataclass
from types import MappingProxyType
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Mapping, Optional, Protocol

from common.logging_middleware import log_event
from common.utils import tokens_equal

DATE_RE = re.compile(r"^\d{8}$")
TOKEN_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}$")


class UnknownRoleError(ValueError):
    pass


class RoleConfigError(ValueError):
    pass


class DigestUnavailableError(RuntimeError):
    pass


class Role(str, Enum):
    DEVELOPER = "developer"
    DESIGNER = "designer"
    MARKETING = "marketing"
    PM = "pm"

    @classmethod
    def parse(cls, name) -> "Role":
        if isinstance(name, cls):
            return name
        try:
            return cls(name)
        except ValueError:
            raise UnknownRoleError(f"Invalid role: {name}") from None


@dataclass(frozen=True)
class RoleIdentity:
    role: Role
    birth_date: str
    phone_last_four: str


@dataclass(frozen=True)
class TokenConfig:
    identities: Mapping[Role, RoleIdentity]
    project_secret: str

    def __post_init__(self):
        object.__setattr__(self, "identities", MappingProxyType(dict(self.identities)))


class DigestProvider(Protocol):
    def hexdigest(self, data: str) -> str: ...


class Sha256Digest:
    def __init__(self):
        try:
            hashlib.new("sha256")
        except ValueError as e:
            raise DigestUnavailableError(f"sha256 not available: {e}") from e

    def hexdigest(self, data: str) -> str:
        return hashlib.sha256(data.encode("utf-8")).hexdigest()


def today_date_string(now: Optional[datetime] = None) -> str:
    # naive datetimes are taken as UTC
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.strftime("%Y%m%d")


def format_token(hexdigest: str) -> str:
    return f"{hexdigest[0:8]}-{hexdigest[8:12]}-{hexdigest[12:16]}"


class TokenEngine:
    """Derives and verifies daily role tokens.

    Holds no mutable state: every call is a function of the date, the
    injected TokenConfig and the presented string.
    """

    def __init__(self, config: TokenConfig, digest: Optional[DigestProvider] = None):
        self.config = config
        self.digest = digest or Sha256Digest()

    def _identity(self, role: Role) -> RoleIdentity:
        ident = self.config.identities.get(role)
        if ident is None:
            raise RoleConfigError(f"No identity configured for role: {role.value}")
        if not isinstance(ident.birth_date, str) or not isinstance(ident.phone_last_four, str):
            raise RoleConfigError(f"Identity fields must be strings for role: {role.value}")
        if not ident.birth_date or not ident.phone_last_four:
            raise RoleConfigError(f"Incomplete identity for role: {role.value}")
        return ident

    def ingredients(self, date: str, role) -> str:
        role = Role.parse(role)
        if not isinstance(date, str) or not DATE_RE.fullmatch(date):
            raise ValueError(f"date must be YYYYMMDD, got {date!r}")
        ident = self._identity(role)
        if not isinstance(self.config.project_secret, str):
            raise RoleConfigError("project secret must be a string")
        return "|".join([date, ident.birth_date, ident.phone_last_four,
                         role.value, self.config.project_secret])

    def derive_token(self, date: str, role) -> str:
        return format_token(self.digest.hexdigest(self.ingredients(date, role)))

    def today_token(self, role, now: Optional[datetime] = None) -> str:
        return self.derive_token(today_date_string(now), role)

    def expected_tokens(self, date: str) -> Dict[str, str]:
        out = {}
        for role in Role:
            try:
                out[role.value] = self.derive_token(date, role)
            except RoleConfigError as e:
                out[role.value] = f"Error: {e}"
        return out

    def resolve_role(self, presented, now: Optional[datetime] = None) -> Optional[Role]:
        if not isinstance(presented, str) or not TOKEN_RE.fullmatch(presented):
            return None
        date = today_date_string(now)
        matched = None
        for role in Role:
            try:
                expected = self.derive_token(date, role)
            except RoleConfigError as e:
                # fail closed for this role, keep checking the rest
                log_event("token_engine", "role_misconfigured", role=role.value, reason=str(e))
                continue
            if tokens_equal(expected, presented) and matched is None:
                matched = role
        return matched

    def find_role_by_identity(self, birth_date: str, phone: str) -> Optional[Role]:
        for role, ident in self.config.identities.items():
            if ident.birth_date == birth_date and ident.phone_last_four == phone:
                return Role.parse(role)
        return None
