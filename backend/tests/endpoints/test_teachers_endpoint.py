from decimal import Decimal

from tests.helpers.auth import school_header, token_for_user
from tests.helpers.factories import create_teacher


def test_admin_creates_and_deactivates_teacher(client, seeded_users):
    """
    Validate teacher create, patch and filtered listing.

    1. Authenticate as the north school admin.
    2. Create a teacher and patch it inactive.
    3. Validate the full listing still contains the teacher.
    4. Validate include_inactive=false hides it.
    """
    school = seeded_users["north_school"]
    headers = school_header(token_for_user(seeded_users["admin"].id), school.id)

    created = client.post(
        "/api/v1/teachers",
        json={"teacher_name": "Carl Diaz", "department": "Math", "monthly_salary": "3000"},
        headers=headers,
    )
    assert created.status_code == 201
    teacher_id = created.json()["id"]
    assert created.json()["is_active"] is True

    patched = client.patch(f"/api/v1/teachers/{teacher_id}", json={"is_active": False}, headers=headers)
    assert patched.json()["is_active"] is False

    everyone = client.get("/api/v1/teachers", headers=headers).json()["items"]
    active_only = client.get("/api/v1/teachers", params={"include_inactive": "false"}, headers=headers).json()["items"]
    assert [item["id"] for item in everyone] == [teacher_id]
    assert active_only == []


def test_teacher_advance_and_salary_history(client, db_session, seeded_users):
    """
    Validate payroll reads and teacher advances through the API.

    1. Seed one teacher and set up January as admin.
    2. Record a one-month advance as the accountant.
    3. Set up February as admin.
    4. Validate the salary history shows February covered by the advance.
    """
    school = seeded_users["north_school"]
    admin_headers = school_header(token_for_user(seeded_users["admin"].id), school.id)
    accountant_headers = school_header(token_for_user(seeded_users["accountant"].id), school.id)
    teacher = create_teacher(db_session, school_id=school.id, teacher_name="Carl", monthly_salary=Decimal("3000"))
    client.post("/api/v1/billing-periods/setup", json={"year": 2026, "month": 1}, headers=admin_headers)

    advance = client.post(
        f"/api/v1/teachers/{teacher.id}/advance-payments",
        json={"amount_per_month": "3000", "months": 1},
        headers=accountant_headers,
    )
    assert advance.status_code == 201
    client.post("/api/v1/billing-periods/setup", json={"year": 2026, "month": 2}, headers=admin_headers)

    history = client.get(f"/api/v1/teachers/{teacher.id}/salary-history", headers=accountant_headers)
    items = history.json()["items"]
    assert [item["period"] for item in items] == ["2026-02", "2026-01"]
    assert items[0]["status"] == "advance_covered"
    assert Decimal(items[0]["advance_balance_used"]) == Decimal("3000.00")


def test_teacher_member_cannot_record_advances(client, db_session, seeded_users):
    """
    Validate advance recording roles.

    1. Seed one teacher record in the north school.
    2. Post an advance with the teacher user's token.
    3. Validate a 403 response.
    4. Validate the teacher record is still readable by that user.
    """
    school = seeded_users["north_school"]
    headers = school_header(token_for_user(seeded_users["teacher"].id), school.id)
    teacher = create_teacher(db_session, school_id=school.id, teacher_name="Carl", monthly_salary=Decimal("3000"))

    response = client.post(
        f"/api/v1/teachers/{teacher.id}/advance-payments",
        json={"amount_per_month": "100", "months": 1},
        headers=headers,
    )

    assert response.status_code == 403
    assert client.get(f"/api/v1/teachers/{teacher.id}", headers=headers).status_code == 200
