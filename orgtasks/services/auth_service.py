import logging
from datetime import datetime, timedelta
from typing import Dict, Any, Callable

import bcrypt
import jwt

from orgtasks.errors import Unauthenticated, ValidationError, Conflict
from orgtasks.models.organization_model import OrganizationModel
from orgtasks.models.user_model import UserModel
from orgtasks.services.invitation_service import InvitationService
from orgtasks.utils.validators import Validators, Helpers

logger = logging.getLogger(__name__)


class AuthService:
    """Password authentication and signed session tokens"""

    def __init__(self, db, jwt_secret: str, jwt_algorithm: str = 'HS256', expires_hours: int = 24,
                 invitations: InvitationService = None, bcrypt_rounds: int = 12,
                 clock: Callable[[], datetime] = None):
        if not jwt_secret:
            raise ValueError("jwt_secret is required")
        self.db = db
        self.jwt_secret = jwt_secret
        self.jwt_algorithm = jwt_algorithm
        self.expires_hours = expires_hours
        self.bcrypt_rounds = bcrypt_rounds
        self.clock = clock or Helpers.utc_now
        self.invitations = invitations or InvitationService(db)
        self.users = UserModel(db)
        self.organizations = OrganizationModel(db)

    # Passwords and tokens

    def hash_password(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.bcrypt_rounds)
        return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')

    @staticmethod
    def verify_password(password: str, password_hash: str) -> bool:
        if not password or not password_hash:
            return False
        try:
            return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
        except ValueError:
            return False

    def issue_token(self, user: Dict[str, Any]) -> str:
        now = self.clock()
        payload = {
            'sub': user['user_id'],
            'iat': now,
            'exp': now + timedelta(hours=self.expires_hours),
        }
        return jwt.encode(payload, self.jwt_secret, algorithm=self.jwt_algorithm)

    def decode_token(self, token: str) -> str:
        """Return the user id a valid token was issued to"""
        try:
            payload = jwt.decode(token, self.jwt_secret, algorithms=[self.jwt_algorithm])
        except jwt.ExpiredSignatureError:
            raise Unauthenticated('Token has expired')
        except jwt.InvalidTokenError:
            raise Unauthenticated('Invalid token')
        user_id = payload.get('sub')
        if not user_id:
            raise Unauthenticated('Invalid token')
        return user_id

    def authenticate(self, token: str) -> Dict[str, Any]:
        """Resolve a bearer token to an active user"""
        user = self.users.get_user(self.decode_token(token))
        if not user or not user.get('is_active', True):
            raise Unauthenticated('User not found or inactive')
        return user

    def _session(self, user: Dict[str, Any]) -> Dict[str, Any]:
        return {'token': self.issue_token(user), 'user': UserModel.to_public(user)}

    # Account operations

    def register(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Register a user, optionally founding an organization or joining by invite"""
        payload = payload or {}
        for field in ('email', 'password', 'first_name', 'last_name', 'organization_name', 'invite_token'):
            if payload.get(field) is not None and not isinstance(payload[field], str):
                raise ValidationError(f'{field} must be a string', {'field': field})
        email = (payload.get('email') or '').strip().lower()
        password = payload.get('password') or ''
        first_name = payload.get('first_name')
        last_name = payload.get('last_name')
        organization_name = (payload.get('organization_name') or '').strip()
        invite_token = payload.get('invite_token')

        if not Validators.validate_email(email):
            raise ValidationError('Invalid email format')
        if not Validators.validate_password(password):
            raise ValidationError('Password must be at least 8 characters')
        if not Validators.validate_name(first_name or '') or not Validators.validate_name(last_name or ''):
            raise ValidationError('First name and last name are required')
        if organization_name and invite_token:
            raise ValidationError('Provide either organization_name or invite_token, not both')

        if self.users.get_user_by_email(email):
            raise Conflict('User already exists')

        user_fields = {
            'email': email,
            'password_hash': None,
            'first_name': first_name,
            'last_name': last_name,
        }

        if invite_token:
            # reject bad tokens before any account exists
            self.invitations.verify(invite_token)
            user_fields['password_hash'] = self.hash_password(password)
            user = self.users.create_user(user_fields)
            joined = self.invitations.accept(invite_token, user)
            user = self.users.get_user(joined['user']['user_id'])
            logger.info("User %s registered via invitation", user['user_id'])
            return self._session(user)

        if organization_name:
            if not Validators.validate_organization_name(organization_name):
                raise ValidationError('Organization name must be 2-100 characters')
            slug = Helpers.slugify(organization_name)
            if not slug:
                raise ValidationError('Organization name must contain letters or digits')
            if self.organizations.get_by_name(organization_name):
                raise Conflict('Organization name already exists')
            if self.organizations.get_by_slug(slug):
                raise Conflict('Organization slug already exists', {'slug': slug})

            organization = self.organizations.create_organization(organization_name, slug)
            user_fields.update({'organization_id': organization['organization_id'], 'role': 'admin'})
            logger.info("Organization %s created", organization['organization_id'])

        user_fields['password_hash'] = self.hash_password(password)
        user = self.users.create_user(user_fields)
        logger.info("User %s registered", user['user_id'])
        return self._session(user)

    def login(self, email: str, password: str) -> Dict[str, Any]:
        if not isinstance(email, str) or not isinstance(password, str):
            raise Unauthenticated('Invalid credentials')
        user = self.users.get_user_by_email(email)
        if not user or not self.verify_password(password, user.get('password_hash')):
            logger.warning("Failed login attempt for %s", email)
            raise Unauthenticated('Invalid credentials')
        if not user.get('is_active', True):
            raise Unauthenticated('Account is deactivated')
        user = self.users.update_user(user['user_id'], {'last_login': Helpers.to_iso(self.clock())})
        return self._session(user)

    def profile(self, user: Dict[str, Any]) -> Dict[str, Any]:
        organization = None
        if user.get('organization_id'):
            organization = self.organizations.get_organization(user['organization_id'])
        profile = UserModel.to_public(user)
        profile['organization'] = OrganizationModel.to_summary(organization)
        return profile
