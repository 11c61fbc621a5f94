"""Auth service — registration, login and password changes for every principal type."""

from datetime import datetime, timezone
from typing import Optional, Dict, Any, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.models.role import Role
from marketplace.models.principal import PrincipalType, PROFILE_FIELDS
from marketplace.core.security import hash_password, verify_password, create_access_token
from marketplace.core.exceptions import (
    AuthenticationError, ResourceConflictError, ResourceNotFoundError, ValidationError,
)
from marketplace.services.principal_resolver import principal_resolver, parse_principal_type

# Role assigned on self-registration.
DEFAULT_ROLE_CODES = {
    PrincipalType.customer: "customer",
    PrincipalType.freelancer: "freelancer",
    PrincipalType.business: "business",
    PrincipalType.vendorb2b: "vendor_b2b",
    PrincipalType.vendorb2c: "vendor_b2c",
}


def principal_summary(principal, principal_type: Union[str, PrincipalType]) -> Dict[str, Any]:
    """Public profile of a principal as returned by login and /me."""
    principal_type = parse_principal_type(principal_type)
    role = principal.role
    summary = {
        "id": principal.id,
        "type": principal_type.value,
        "email": principal.email,
        "name": principal.name,
        "phone": principal.phone,
        "is_active": principal.is_active,
        "role": {
            "id": role.id,
            "code": role.code,
            "name": role.name,
            "level": role.level,
            "is_super_admin": role.is_super_admin,
        } if role else None,
    }
    profile_field = PROFILE_FIELDS.get(principal_type)
    if profile_field:
        summary[profile_field] = getattr(principal, profile_field)
    return summary


class AuthService:
    """Handles authentication and principal creation."""

    @staticmethod
    def authenticate(
        db: Session,
        principal_type: Union[str, PrincipalType],
        email: str,
        password: str,
    ) -> Dict[str, Any]:
        """Authenticate a principal and return an access token.

        Raises:
            AuthenticationError: If credentials are invalid or the account is unusable.
        """
        principal_type = parse_principal_type(principal_type)
        principal = principal_resolver.find_by_email(db, principal_type, email)
        if not principal or not verify_password(password, principal.hashed_password):
            raise AuthenticationError("Invalid email or password")

        if not principal.is_active or principal.is_deleted:
            raise AuthenticationError("Account is deactivated")
        if principal.role is None or principal.role.is_deleted:
            raise AuthenticationError("Account has no role assigned")

        access_token = create_access_token(principal, principal_type)

        principal.last_login_at = datetime.now(timezone.utc)
        db.commit()

        return {
            "access_token": access_token,
            "token_type": "bearer",
            "principal": principal_summary(principal, principal_type),
        }

    @staticmethod
    def create_principal(
        db: Session,
        principal_type: Union[str, PrincipalType],
        email: str,
        password: str,
        name: str,
        role_code: str,
        phone: Optional[str] = None,
        profile_name: Optional[str] = None,
    ):
        """Create a principal of the given type holding the role ``role_code``."""
        principal_type = parse_principal_type(principal_type)
        model = principal_resolver.model_for(principal_type)
        email = email.strip().lower()

        if principal_resolver.find_by_email(db, principal_type, email):
            raise ResourceConflictError(f"{principal_type.value} with email {email} already exists")

        role = db.query(Role).filter(Role.live_code == role_code).first()
        if not role:
            raise ResourceNotFoundError(f"Role '{role_code}' not found")

        principal = model(
            email=email,
            hashed_password=hash_password(password),
            name=name,
            phone=phone,
            role_id=role.id,
            is_active=True,
        )
        profile_field = PROFILE_FIELDS.get(principal_type)
        if profile_field and profile_name:
            setattr(principal, profile_field, profile_name)

        db.add(principal)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ResourceConflictError(f"{principal_type.value} with email {email} already exists")
        db.refresh(principal)
        return principal

    @staticmethod
    def register(
        db: Session,
        principal_type: Union[str, PrincipalType],
        email: str,
        password: str,
        name: str,
        phone: Optional[str] = None,
        profile_name: Optional[str] = None,
    ):
        """Self-registration; platform users are only created by administrators."""
        principal_type = parse_principal_type(principal_type)
        role_code = DEFAULT_ROLE_CODES.get(principal_type)
        if role_code is None:
            raise ValidationError(f"Self-registration is not available for {principal_type.value}")
        return AuthService.create_principal(
            db, principal_type, email, password, name, role_code,
            phone=phone, profile_name=profile_name,
        )

    @staticmethod
    def change_password(
        db: Session,
        principal,
        current_password: str,
        new_password: str,
        confirm_password: str,
    ) -> None:
        """Replace the password of an authenticated principal after re-checking the current one.

        Raises:
            ValidationError: If the new password and its confirmation differ.
            AuthenticationError: If ``current_password`` is wrong.
        """
        if new_password != confirm_password:
            raise ValidationError("New passwords do not match")
        if not verify_password(current_password, principal.hashed_password):
            raise AuthenticationError("Current password is incorrect")

        principal.hashed_password = hash_password(new_password)
        db.commit()


auth_service = AuthService()
