"""Principal resolver — loads the live principal and role behind a credential."""

import logging
from typing import Optional, Union

from sqlalchemy.orm import Session

from marketplace.models.principal import PrincipalType, PRINCIPAL_MODELS
from marketplace.core.exceptions import AuthenticationError

logger = logging.getLogger("marketplace")


def parse_principal_type(value: Union[str, PrincipalType]) -> PrincipalType:
    """Map a type tag onto the closed set of principal types."""
    try:
        return PrincipalType(value)
    except ValueError:
        raise AuthenticationError("Invalid token type")


class PrincipalResolver:
    """Dispatches principal lookups to the table backing each principal type."""

    @staticmethod
    def model_for(principal_type: Union[str, PrincipalType]):
        return PRINCIPAL_MODELS[parse_principal_type(principal_type)]

    @staticmethod
    def resolve(db: Session, principal_type: Union[str, PrincipalType], principal_id: int):
        """Return the principal with its role joined in.

        Raises:
            AuthenticationError: unknown type tag, missing, inactive or deleted
                principal, missing or deleted role.
        """
        model = PrincipalResolver.model_for(principal_type)
        principal = db.query(model).filter(model.id == principal_id).first()
        if principal is None or not principal.is_active or principal.is_deleted:
            logger.info("Rejected %s %s: missing or inactive", principal_type, principal_id)
            raise AuthenticationError("Not authorized to access this route")

        role = principal.role
        if role is None or role.is_deleted:
            logger.warning("Rejected %s %s: role missing", principal_type, principal_id)
            raise AuthenticationError("Not authorized to access this route")
        return principal

    @staticmethod
    def find_by_email(db: Session, principal_type: Union[str, PrincipalType], email: str):
        """Find a principal by its unique email; None when absent."""
        model = PrincipalResolver.model_for(principal_type)
        return db.query(model).filter(model.email == email.strip().lower()).first()

    @staticmethod
    def get(db: Session, principal_type: Union[str, PrincipalType], principal_id: int) -> Optional[object]:
        """Plain lookup by id with no status checks."""
        model = PrincipalResolver.model_for(principal_type)
        return db.query(model).filter(model.id == principal_id).first()


principal_resolver = PrincipalResolver()
