"""Tests for CSV bulk import of users and roles."""

import pytest

from employdex.core.exceptions import ValidationError
from employdex.models import Role, User
from employdex.services.audit_service import Auditor, RecordingAuditSink
from employdex.services.role_service import role_service
from employdex.services.user_service import user_service


@pytest.fixture
def auditor():
    return Auditor(RecordingAuditSink())


def test_user_template_lists_expected_columns():
    header = user_service.csv_template().splitlines()[0]
    assert header == "firstName,lastName,email,mobileNumber,password,roles,isActive"


def test_user_bulk_create_reports_per_row(db_session, auditor, make_role):
    make_role("Editor", ["user_view"])
    content = (
        "firstName,lastName,email,mobileNumber,password,roles,isActive\n"
        "Ann,One,ann@example.com,9100000001,Passw0rd1,Editor;User,true\n"
        "Bob,Two,bob@example.com,9100000002,Passw0rd1,,false\n"
        "Cid,Three,ann@example.com,9100000003,Passw0rd1,,true\n"
        "Dee,Four,dee@example.com,9100000004,weak,,true\n"
        "Eve,Five,eve@example.com,9100000005,Passw0rd1,Ghost,true\n"
    )
    result = user_service.bulk_create(db_session, auditor, content)

    assert result["total"] == 5
    assert result["successful"] == 2
    assert result["failed"] == 3
    assert [e["row"] for e in result["errors"]] == [4, 5, 6]

    ann = db_session.query(User).filter(User.email == "ann@example.com").one()
    assert sorted(ann.role_names) == ["Editor", "User"]
    bob = db_session.query(User).filter(User.email == "bob@example.com").one()
    assert bob.role_names == ["User"]
    assert bob.is_active is False


def test_user_bulk_requires_columns(db_session, auditor):
    with pytest.raises(ValidationError):
        user_service.bulk_create(db_session, auditor, "email,password\nx@example.com,Passw0rd1\n")


def test_role_bulk_create(db_session, auditor):
    content = (
        "name,description,permissions\n"
        "Auditor,Reads logs,activity_view;user_view\n"
        "Admin,Duplicate,\n"
        "Broken,Unknown permission,not_a_permission\n"
    )
    result = role_service.bulk_create(db_session, auditor, content)

    assert result == {
        "total": 3,
        "successful": 1,
        "failed": 2,
        "errors": result["errors"],
    }
    role = db_session.query(Role).filter(Role.name == "Auditor").one()
    assert sorted(p.name for p in role.permissions) == ["activity_view", "user_view"]
    assert role.is_system is False
