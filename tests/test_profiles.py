"""
Tests for the pharmacy profile service
"""
from unittest.mock import MagicMock

import pytest

from services.profiles import (
    PharmacyProfile,
    ProfileService,
    next_current_after_removal,
    to_db_fields,
    validate_profile_data,
)

ROW = {
    "id": "p1",
    "member_account_id": "user-1",
    "role_type": "Pharmacist-PIC",
    "first_name": "Pat",
    "last_name": "Lee",
    "phone_number": None,
    "user_email": "pat@example.com",
    "license_number": "RPH123",
    "is_active": True,
    "created_at": "2026-01-01T00:00:00Z",
}


def _profile(pid):
    return PharmacyProfile.from_row(dict(ROW, id=pid))


class TestValidation:
    def test_valid(self):
        assert validate_profile_data({"role": "Pharmacy Technician", "first_name": "A", "last_name": "B"}) == []

    def test_required_fields(self):
        errors = validate_profile_data({"role": "", "first_name": " "})
        assert len(errors) == 3

    def test_role_must_be_known(self):
        errors = validate_profile_data({"role": "Owner", "first_name": "A", "last_name": "B"})
        assert errors and "Role" in errors[0]

    @pytest.mark.parametrize("field,value", [
        ("dob_month", "13"), ("dob_day", "0"), ("dob_year", "1850"), ("dob_month", "ab"),
    ])
    def test_dob_ranges(self, field, value):
        data = {"role": "Pharmacist-Staff", "first_name": "A", "last_name": "B", field: value}
        assert len(validate_profile_data(data)) == 1

    def test_partial_only_checks_given_fields(self):
        assert validate_profile_data({"phone": "555"}, partial=True) == []
        assert validate_profile_data({"first_name": ""}, partial=True) == ["First name is required."]


class TestMapping:
    def test_to_db_fields(self):
        out = to_db_fields({"role": "Pharmacist-PIC", "phone": " ", "email": "a@b.co"})
        assert out == {"role_type": "Pharmacist-PIC", "phone_number": None, "user_email": "a@b.co"}

    def test_from_row(self):
        p = PharmacyProfile.from_row(ROW)
        assert p.role == "Pharmacist-PIC"
        assert p.email == "pat@example.com"
        assert p.phone is None
        assert p.full_name == "Pat Lee"


class TestProfileService:
    def test_list_for_account(self):
        client = MagicMock()
        chain = client.table.return_value.select.return_value.eq.return_value.eq.return_value.order.return_value
        chain.execute.return_value = MagicMock(data=[ROW])

        result = ProfileService(client).list_for_account("user-1")

        client.table.assert_called_with("member_profiles")
        assert result.ok
        assert [p.id for p in result.data] == ["p1"]

    def test_list_failure_is_error_pair(self):
        client = MagicMock()
        client.table.side_effect = RuntimeError("401 JWT expired")

        result = ProfileService(client).list_for_account("user-1")

        assert result.data == []
        assert "JWT expired" in result.error

    def test_get_not_found_is_none(self):
        client = MagicMock()
        chain = client.table.return_value.select.return_value.eq.return_value.eq.return_value.limit.return_value
        chain.execute.return_value = MagicMock(data=[])

        result = ProfileService(client).get("missing")

        assert result.ok
        assert result.data is None

    def test_create(self):
        client = MagicMock()
        client.table.return_value.insert.return_value.execute.return_value = MagicMock(data=[ROW])

        result = ProfileService(client).create(
            "user-1", {"role": "Pharmacist-PIC", "first_name": "Pat", "last_name": "Lee"})

        payload = client.table.return_value.insert.call_args.args[0]
        assert payload["member_account_id"] == "user-1"
        assert payload["role_type"] == "Pharmacist-PIC"
        assert result.data.id == "p1"

    def test_create_invalid_makes_no_call(self):
        client = MagicMock()
        result = ProfileService(client).create("user-1", {"role": "Pharmacist-PIC"})
        assert result.data is None and result.error
        client.table.assert_not_called()

    def test_update(self):
        client = MagicMock()
        chain = client.table.return_value.update.return_value.eq.return_value
        chain.execute.return_value = MagicMock(data=[dict(ROW, license_number="NEW")])

        result = ProfileService(client).update("p1", {"license_number": "NEW"})

        client.table.return_value.update.assert_called_once_with({"license_number": "NEW"})
        assert result.data.license_number == "NEW"

    def test_delete_is_soft(self):
        client = MagicMock()
        result = ProfileService(client).delete("p1")

        client.table.return_value.update.assert_called_once_with({"is_active": False})
        client.table.return_value.update.return_value.eq.assert_called_once_with("id", "p1")
        assert result.ok


class TestNextCurrent:
    def test_removing_other_profile_keeps_current(self):
        assert next_current_after_removal([_profile("a"), _profile("b")], "b", "a") == "a"

    def test_removing_current_selects_first_remaining(self):
        assert next_current_after_removal([_profile("a"), _profile("b")], "a", "a") == "b"

    def test_removing_last(self):
        assert next_current_after_removal([_profile("a")], "a", "a") is None
