from datetime import timedelta

from app.utils.auth import create_access_token, decode_user_id


def test_token_round_trip(settings):
    token = create_access_token({"sub": "42"}, settings=settings)

    assert token["expires_in"] == settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
    assert decode_user_id(token["access_token"], settings) == 42


def test_expired_or_foreign_tokens_are_rejected(settings):
    expired = create_access_token({"sub": "42"}, expires_delta=timedelta(seconds=-5), settings=settings)
    assert decode_user_id(expired["access_token"], settings) is None

    other = settings.model_copy(update={"SECRET_KEY": "another-secret"})
    foreign = create_access_token({"sub": "42"}, settings=other)
    assert decode_user_id(foreign["access_token"], settings) is None


def test_token_without_numeric_subject(settings):
    assert decode_user_id(create_access_token({"sub": "abc"}, settings=settings)["access_token"], settings) is None
    assert decode_user_id(create_access_token({"role": "user"}, settings=settings)["access_token"], settings) is None
    assert decode_user_id("garbage", settings) is None
