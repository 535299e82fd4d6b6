"""Shared fixtures for the admin gate tests."""

from __future__ import annotations

import pytest

from common.token_engine import Role, RoleIdentity, TokenConfig, TokenEngine

SECRET = "vinscent_naver_give_up_secret_key"


def make_config(secret: str = SECRET, overrides: dict = None) -> TokenConfig:
    identities = {
        Role.DEVELOPER: RoleIdentity(Role.DEVELOPER, "20020317", "01092034239"),
        Role.DESIGNER: RoleIdentity(Role.DESIGNER, "19990101", "01011112222"),
        Role.MARKETING: RoleIdentity(Role.MARKETING, "20030408", "01025127854"),
        Role.PM: RoleIdentity(Role.PM, "20011121", "01071489971"),
    }
    identities.update(overrides or {})
    return TokenConfig(identities=identities, project_secret=secret)


@pytest.fixture
def token_config() -> TokenConfig:
    return make_config()


@pytest.fixture
def engine(token_config: TokenConfig) -> TokenEngine:
    return TokenEngine(token_config)
