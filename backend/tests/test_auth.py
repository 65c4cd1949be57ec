from datetime import timedelta

import pytest

from justsell.errors import ConflictError, PermissionDeniedError, ValidationError
from justsell.models import SecurityEvent, SessionToken
from justsell.permissions import (
    DEFAULT_ROLE_PERMISSIONS,
    PermissionCategory,
    get_all_permission_codes,
    get_permission_definition,
    get_permissions_by_category,
    validate_permission_code,
)
from justsell.services import auth_service, permission_service, session_service
from justsell.services.auth_service import PasswordValidationError
from conftest import PASSWORD


class TestPasswords:
    @pytest.mark.parametrize(
        "password",
        ["Short1!", "alllowercase1!", "ALLUPPERCASE1!", "NoDigitsHere!", "NoSpecial123"],
    )
    def test_weak_passwords_rejected(self, password):
        with pytest.raises(PasswordValidationError):
            auth_service.validate_password_strength(password)

    def test_hash_and_verify(self):
        hashed = auth_service.hash_password(PASSWORD, rounds=4)
        assert hashed != PASSWORD
        assert auth_service.verify_password(PASSWORD, hashed) is True
        assert auth_service.verify_password("Wrong123!", hashed) is False
        assert auth_service.verify_password(PASSWORD, "not-a-bcrypt-hash") is False


class TestUsers:
    def test_duplicate_username(self, db_session, cashier, store):
        with pytest.raises(ConflictError):
            auth_service.create_user("cashier", PASSWORD, store_id=store.id, bcrypt_rounds=4)

    def test_unknown_role(self, db_session, store):
        with pytest.raises(ValidationError):
            auth_service.create_user("x", PASSWORD, role="OWNER", store_id=store.id, bcrypt_rounds=4)

    def test_authenticate(self, db_session, cashier):
        assert auth_service.authenticate("cashier", PASSWORD).id == cashier.id
        assert cashier.last_login_at is not None
        assert auth_service.authenticate("cashier", "Wrong123!") is None
        assert auth_service.authenticate("nobody", PASSWORD) is None

    def test_inactive_user_cannot_authenticate(self, db_session, cashier):
        cashier.is_active = False
        db_session.commit()
        assert auth_service.authenticate("cashier", PASSWORD) is None


class TestSessions:
    def test_only_hash_is_stored(self, db_session, cashier):
        session, token = session_service.create_session(cashier)
        assert session.token_hash == session_service.hash_token(token)
        assert token not in session.token_hash
        assert session_service.validate_session(token).id == cashier.id

    def test_expired(self, db_session, cashier):
        session, token = session_service.create_session(cashier)
        session.expires_at = session.created_at - timedelta(seconds=1)
        db_session.commit()
        assert session_service.validate_session(token) is None

    def test_idle_timeout_revokes(self, db_session, cashier):
        session, token = session_service.create_session(cashier)
        session.last_used_at = session.last_used_at - timedelta(hours=3)
        db_session.commit()

        assert session_service.validate_session(token) is None
        db_session.refresh(session)
        assert session.is_revoked is True
        assert session.revoked_reason == "Idle timeout"

    def test_deactivated_user(self, db_session, cashier):
        session, token = session_service.create_session(cashier)
        cashier.is_active = False
        db_session.commit()

        assert session_service.validate_session(token) is None
        assert db_session.get(SessionToken, session.id).is_revoked is True

    def test_revoke(self, db_session, cashier):
        _, token = session_service.create_session(cashier)
        assert session_service.revoke_session(token) is True
        assert session_service.revoke_session(token) is False
        assert session_service.validate_session(token) is None


class TestPermissions:
    def test_role_table(self):
        cashier = DEFAULT_ROLE_PERMISSIONS["CASHIER"]
        manager = DEFAULT_ROLE_PERMISSIONS["MANAGER"]
        assert "CREATE_TRANSACTION" in cashier
        assert "OVERRIDE_AGE_VERIFICATION" not in cashier
        assert cashier < manager
        assert set(DEFAULT_ROLE_PERMISSIONS["ADMIN"]) == set(get_all_permission_codes())

    def test_every_role_permission_is_defined(self):
        for codes in DEFAULT_ROLE_PERMISSIONS.values():
            assert all(validate_permission_code(code) for code in codes)

    def test_definition_lookup(self):
        definition = get_permission_definition("VERIFY_AGE")
        assert definition["code"] == "VERIFY_AGE"
        assert definition["category"] == PermissionCategory.COMPLIANCE
        assert get_permission_definition("LAUNCH_ROCKETS") is None
        assert validate_permission_code("LAUNCH_ROCKETS") is False

    def test_by_category(self):
        codes = [perm[0] for perm in get_permissions_by_category(PermissionCategory.TRANSACTIONS)]
        assert "CREATE_TRANSACTION" in codes

    def test_inactive_user_has_no_permissions(self, db_session, manager):
        manager.is_active = False
        assert permission_service.get_user_permissions(manager) == frozenset()
        assert permission_service.get_user_permissions(None) == frozenset()

    def test_denial_logged(self, db_session, cashier):
        with pytest.raises(PermissionDeniedError) as exc:
            permission_service.require_permission(cashier, "MANAGE_PRODUCTS", resource="/api/products")
        assert exc.value.details == {"required_permission": "MANAGE_PRODUCTS", "role": "CASHIER"}

        event = db_session.query(SecurityEvent).one()
        assert event.event_type == "PERMISSION_DENIED"
        assert event.action == "MANAGE_PRODUCTS"
        assert event.user_id == cashier.id

    def test_allowed(self, db_session, manager):
        permission_service.require_permission(manager, "MANAGE_PRODUCTS")
        assert permission_service.user_has_permission(manager, "DELETE_CUSTOMER") is True
        assert db_session.query(SecurityEvent).count() == 0
