import uuid
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.security import HTTPAuthorizationCredentials

from app.core.exceptions import AuthenticationError
from app.core.security import create_access_token, get_current_session


def bearer(token):
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


def db_with_profile(profile):
    result = MagicMock()
    result.scalars.return_value.first.return_value = profile
    db = MagicMock()
    db.execute = AsyncMock(return_value=result)
    return db


def make_profile(role="sales", tenant_id=None):
    return SimpleNamespace(
        id=uuid.uuid4(),
        tenant_id=tenant_id if tenant_id is not None else uuid.uuid4(),
        role=role,
        first_name="Ngozi",
        last_name="Okafor",
    )


@pytest.mark.asyncio
async def test_valid_token_resolves_session(test_settings):
    profile = make_profile()
    token = create_access_token({"user_id": str(profile.id)}, test_settings)

    session = await get_current_session(bearer(token), db_with_profile(profile), test_settings)

    assert session.caller_id == str(profile.id)
    assert session.tenant_id == str(profile.tenant_id)
    assert session.role == "sales"
    assert session.display_name == "Ngozi Okafor"
    assert not session.is_super_admin


@pytest.mark.asyncio
async def test_superadmin_without_tenant_is_allowed(test_settings):
    profile = make_profile(role="superadmin")
    profile.tenant_id = None
    token = create_access_token({"user_id": str(profile.id)}, test_settings)

    session = await get_current_session(bearer(token), db_with_profile(profile), test_settings)

    assert session.is_super_admin
    assert session.tenant_id is None


@pytest.mark.asyncio
async def test_missing_header_fails(test_settings):
    with pytest.raises(AuthenticationError) as exc_info:
        await get_current_session(None, db_with_profile(None), test_settings)
    assert exc_info.value.message == "Authorization header is required"


@pytest.mark.asyncio
async def test_token_signed_with_other_key_fails(test_settings):
    other = test_settings.model_copy(update={"SECRET_KEY": "someone-else"})
    token = create_access_token({"user_id": str(uuid.uuid4())}, other)

    with pytest.raises(AuthenticationError):
        await get_current_session(bearer(token), db_with_profile(None), test_settings)


@pytest.mark.asyncio
async def test_token_without_user_id_fails(test_settings):
    token = create_access_token({"role": "admin"}, test_settings)

    with pytest.raises(AuthenticationError):
        await get_current_session(bearer(token), db_with_profile(None), test_settings)


@pytest.mark.asyncio
async def test_unknown_profile_fails(test_settings):
    token = create_access_token({"user_id": str(uuid.uuid4())}, test_settings)

    with pytest.raises(AuthenticationError) as exc_info:
        await get_current_session(bearer(token), db_with_profile(None), test_settings)
    assert exc_info.value.message == "Failed to get user profile"


@pytest.mark.asyncio
async def test_scoped_profile_without_tenant_fails(test_settings):
    profile = make_profile(role="sales")
    profile.tenant_id = None
    token = create_access_token({"user_id": str(profile.id)}, test_settings)

    with pytest.raises(AuthenticationError):
        await get_current_session(bearer(token), db_with_profile(profile), test_settings)
