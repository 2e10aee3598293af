from functools import wraps

from flask import request, current_app
from firebase_admin import firestore

from orgtasks.errors import Unauthenticated, Forbidden
from orgtasks.services import policy
from orgtasks.services.auth_service import AuthService
from orgtasks.services.invitation_service import InvitationService


def build_invitation_service(db) -> InvitationService:
    config = current_app.config
    return InvitationService(
        db,
        frontend_url=config.get('FRONTEND_URL'),
        ttl_hours=config.get('INVITATION_TTL_HOURS', 24),
    )


def build_auth_service(db) -> AuthService:
    config = current_app.config
    return AuthService(
        db,
        invitations=build_invitation_service(db),
        jwt_secret=config['JWT_SECRET'],
        jwt_algorithm=config.get('JWT_ALGORITHM', 'HS256'),
        expires_hours=config.get('JWT_EXPIRES_HOURS', 24),
        bcrypt_rounds=config.get('BCRYPT_ROUNDS', 12),
    )


class AuthMiddleware:
    """Authentication middleware for bearer session tokens"""

    @staticmethod
    def _bearer_token() -> str:
        auth_header = request.headers.get('Authorization')
        if not auth_header:
            raise Unauthenticated('Token is missing')
        parts = auth_header.split(" ")
        if len(parts) != 2 or parts[0].lower() != 'bearer' or not parts[1]:
            raise Unauthenticated('Invalid token format')
        return parts[1]

    @staticmethod
    def verify_token(f):
        """Decorator to verify the bearer token and load the active user"""
        @wraps(f)
        def decorated_function(*args, **kwargs):
            token = AuthMiddleware._bearer_token()
            db = firestore.client()
            request.current_user_data = build_auth_service(db).authenticate(token)
            return f(*args, **kwargs)

        return decorated_function

    @staticmethod
    def require_organization(f):
        """Decorator for routes that act inside the caller's organization.

        Must be applied after ``verify_token``.
        """
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = AuthMiddleware.get_current_user()
            if not user or not user.get('organization_id'):
                raise Forbidden('You must belong to an organization')
            request.organization_id = user['organization_id']
            return f(*args, **kwargs)

        return decorated_function

    @staticmethod
    def get_current_user():
        """Get current user from request"""
        return getattr(request, 'current_user_data', None)


class RoleMiddleware:
    """Role-based access control middleware"""

    @staticmethod
    def require_role(required_role: str):
        """Decorator to require specific role or higher"""
        def decorator(f):
            @wraps(f)
            def decorated_function(*args, **kwargs):
                current_user = AuthMiddleware.get_current_user()
                if not current_user:
                    raise Unauthenticated()
                policy.require(policy.has_role(current_user, required_role), 'Insufficient permissions')
                return f(*args, **kwargs)

            return decorated_function
        return decorator

    @staticmethod
    def require_manager_or_above():
        return RoleMiddleware.require_role(policy.Role.MANAGER)

    @staticmethod
    def require_admin():
        return RoleMiddleware.require_role(policy.Role.ADMIN)
