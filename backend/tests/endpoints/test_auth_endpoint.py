from tests.helpers.auth import auth_header, login


def test_issue_token_with_valid_credentials(client, seeded_users):
    """
    Validate token issuance for a seeded admin.

    1. Seed the admin user.
    2. Post the admin credentials as form data.
    3. Validate a bearer token is returned.
    4. Validate the token opens a school-scoped endpoint.
    """
    token = login(client, "admin@example.com", "admin123")

    response = client.get(
        "/api/v1/billing-periods/active",
        headers={**auth_header(token), "X-School-Id": str(seeded_users["north_school"].id)},
    )
    assert response.status_code == 200
    assert response.json() is None


def test_issue_token_rejects_wrong_password(client, seeded_users):
    """
    Validate bad credentials are refused.

    1. Seed the admin user.
    2. Post the admin email with a wrong password.
    3. Validate a 401 response.
    4. Validate the error detail.
    """
    response = client.post(
        "/api/v1/auth/token",
        data={"username": "admin@example.com", "password": "nope"},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid credentials"


def test_protected_endpoint_requires_valid_token(client, seeded_users):
    """
    Validate bearer token enforcement.

    1. Seed the default schools.
    2. Call a school-scoped endpoint without a token and with a garbage token.
    3. Validate both calls return 401.
    4. Validate the invalid token detail message.
    """
    school_id = str(seeded_users["north_school"].id)

    missing = client.get("/api/v1/parents", headers={"X-School-Id": school_id})
    garbage = client.get("/api/v1/parents", headers={**auth_header("garbage"), "X-School-Id": school_id})

    assert missing.status_code == 401
    assert garbage.status_code == 401
    assert garbage.json()["detail"] == "Invalid authentication token"
