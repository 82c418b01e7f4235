from .directory import Group, Site, User, Permission, ACCESS_LEVELS, DEFAULT_ACCESS_LEVEL, new_id
from .credentials import Credential, CredentialHistory, CREDENTIAL_CATEGORIES
from .security import SecurityEvent

__all__ = [
    'Group', 'Site', 'User', 'Permission',
    'Credential', 'CredentialHistory',
    'SecurityEvent',
    'ACCESS_LEVELS', 'DEFAULT_ACCESS_LEVEL', 'CREDENTIAL_CATEGORIES',
    'new_id',
]
