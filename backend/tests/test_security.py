"""令牌服务、密码哈希与角色顺序"""

from datetime import timedelta

import pytest
from jose import jwt

from app.core.exceptions import InvalidToken
from app.core.security import TokenService, hash_password, verify_password
from app.models.user import Role

service = TokenService(secret="unit-test-secret", expire_days=7)


def test_verify_returns_subject_of_fresh_token():
    token = service.issue(42)
    assert service.verify(token) == 42


def test_expired_token_is_rejected():
    token = service.issue(42, expires_delta=timedelta(seconds=-1))
    with pytest.raises(InvalidToken):
        service.verify(token)


def test_token_signed_with_other_secret_is_rejected():
    other = TokenService(secret="another-secret")
    with pytest.raises(InvalidToken):
        service.verify(other.issue(1))


def test_malformed_token_is_rejected():
    with pytest.raises(InvalidToken):
        service.verify("not-a-jwt")


def test_non_numeric_subject_is_rejected():
    token = jwt.encode({"sub": "abc"}, "unit-test-secret", algorithm="HS256")
    with pytest.raises(InvalidToken):
        service.verify(token)


def test_token_carries_only_subject_and_times():
    claims = jwt.get_unverified_claims(service.issue(7))
    assert set(claims) == {"sub", "iat", "exp"}
    assert claims["exp"] - claims["iat"] == 7 * 24 * 3600


async def test_password_hash_round_trip():
    hashed = await hash_password("s3cret!")
    assert hashed != "s3cret!"
    assert await verify_password("s3cret!", hashed)
    assert not await verify_password("wrong", hashed)


async def test_corrupt_hash_does_not_match():
    assert not await verify_password("anything", "not-a-bcrypt-hash")


@pytest.mark.parametrize(
    "role, required, expected",
    [
        (Role.USER, Role.USER, True),
        (Role.USER, Role.EDITOR, False),
        (Role.USER, Role.ADMIN, False),
        (Role.EDITOR, Role.USER, True),
        (Role.EDITOR, Role.EDITOR, True),
        (Role.EDITOR, Role.ADMIN, False),
        (Role.ADMIN, Role.USER, True),
        (Role.ADMIN, Role.EDITOR, True),
        (Role.ADMIN, Role.ADMIN, True),
    ],
)
def test_role_partial_order(role, required, expected):
    assert role.has_at_least(required) is expected
