from app.application.services.security_service import (
    authenticate_user,
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from tests.helpers.factories import create_user


def test_password_hash_round_trip():
    """
    Validate password hashing.

    1. Hash a plain password.
    2. Verify the matching password.
    3. Verify a different password.
    4. Validate only the matching password is accepted.
    """
    hashed = hash_password("s3cret")

    assert hashed != "s3cret"
    assert verify_password("s3cret", hashed) is True
    assert verify_password("other", hashed) is False


def test_access_token_decodes_subject():
    """
    Validate token encoding and decoding.

    1. Issue a token for user 42.
    2. Decode the token.
    3. Validate the subject is returned as an integer.
    4. Validate an expired or garbage token decodes to None.
    """
    token = create_access_token(42)

    assert decode_access_token(token) == 42
    assert decode_access_token(create_access_token(42, expires_minutes=-1)) is None
    assert decode_access_token("not-a-token") is None


def test_authenticate_user_normalises_email_and_rejects_inactive(db_session):
    """
    Validate credential checks.

    1. Seed one active and one inactive user.
    2. Authenticate with a padded upper-case email and the right password.
    3. Validate the active user is returned.
    4. Validate wrong passwords and inactive users are rejected.
    """
    active = create_user(db_session, "bookkeeper@example.com", password="ledger123")
    create_user(db_session, "former@example.com", password="ledger123", is_active=False)

    assert authenticate_user(db_session, "  Bookkeeper@Example.com ", "ledger123").id == active.id
    assert authenticate_user(db_session, "bookkeeper@example.com", "wrong") is None
    assert authenticate_user(db_session, "former@example.com", "ledger123") is None
