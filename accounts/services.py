import logging

from django.conf import settings
from django.contrib.auth.hashers import check_password, make_password
from django.core import signing
from django.core.exceptions import ValidationError
from django.core.validators import validate_email

from coffeehouse.exceptions import Unauthenticated, ValidationFailed
from coffeehouse.permissions import Actor, CUSTOMER, ROLES
from coffeehouse.store import get_store
from coffeehouse.utils import new_id, timestamp

logger = logging.getLogger(__name__)

PUBLIC_USER_FIELDS = ('id', 'name', 'email', 'role', 'created_at')


def normalize_email(email):
    return (email or '').strip().lower()


def public_user(user):
    """Strip the password hash before a user record leaves the service."""
    return {field: user.get(field) for field in PUBLIC_USER_FIELDS}


class AuthService:
    """Accounts, password checks and signed identity tokens."""

    def __init__(self, store=None):
        self.store = store or get_store()

    def create_user(self, name, email, password, role=CUSTOMER):
        name = (name or '').strip()
        email = normalize_email(email)

        if not name:
            raise ValidationFailed('Name is required')
        try:
            validate_email(email)
        except ValidationError:
            raise ValidationFailed('Enter a valid email address')
        if len(password or '') < settings.PASSWORD_MIN_LENGTH:
            raise ValidationFailed(f'Password must be at least {settings.PASSWORD_MIN_LENGTH} characters')
        if role not in ROLES:
            raise ValidationFailed(f'Unknown role: {role}')

        password_hash = make_password(password)

        def insert(users):
            if any(user['email'] == email for user in users):
                raise ValidationFailed('Email already registered')
            user = {
                'id': new_id(),
                'name': name,
                'email': email,
                'password': password_hash,
                'role': role,
                'created_at': timestamp(),
            }
            users.append(user)
            return user

        user = self.store.update('users', insert)
        logger.info("Created %s account %s", role, user['id'])
        return public_user(user)

    def signup(self, name, email, password):
        user = self.create_user(name, email, password, role=CUSTOMER)
        return {'token': self.issue_token(user), 'user': user}

    def login(self, email, password):
        user = self._find(email=normalize_email(email))
        if user is None or not check_password(password, user['password']):
            logger.warning("Failed login for %s", normalize_email(email))
            raise Unauthenticated('Invalid email or password')
        return {'token': self.issue_token(user), 'user': public_user(user)}

    def issue_token(self, user):
        return signing.dumps({'uid': user['id'], 'role': user['role']}, salt=settings.AUTH_TOKEN_SALT)

    def verify(self, token):
        """Resolve a token to the Actor it was issued for."""
        try:
            payload = signing.loads(token, salt=settings.AUTH_TOKEN_SALT, max_age=settings.AUTH_TOKEN_MAX_AGE)
        except signing.SignatureExpired:
            raise Unauthenticated('Token has expired')
        except signing.BadSignature:
            raise Unauthenticated('Invalid token')

        user = self._find(user_id=payload.get('uid'))
        if user is None:
            raise Unauthenticated('Unknown user')
        return Actor(id=user['id'], role=user['role'], name=user['name'], email=user['email'])

    def get_user(self, user_id):
        user = self._find(user_id=user_id)
        return public_user(user) if user else None

    def _find(self, user_id=None, email=None):
        for user in self.store.read('users'):
            if user_id is not None and user['id'] == user_id:
                return user
            if email is not None and user['email'] == email:
                return user
        return None
