# Overview: Capability definitions and their assignment to access levels.
# Each capability is defined as: (code, name, description)


READ_CREDENTIALS = "READ_CREDENTIALS"
READ_OWN_PROFILE = "READ_OWN_PROFILE"
CREATE_CREDENTIAL = "CREATE_CREDENTIAL"
UPDATE_CREDENTIAL = "UPDATE_CREDENTIAL"
DELETE_CREDENTIAL = "DELETE_CREDENTIAL"
LIST_USERS = "LIST_USERS"
CREATE_USER = "CREATE_USER"
CHANGE_ACCESS_LEVEL = "CHANGE_ACCESS_LEVEL"
READ_ANY_PROFILE = "READ_ANY_PROFILE"


CAPABILITY_DEFINITIONS = [
    (
        READ_CREDENTIALS,
        "Read Credentials",
        "View credentials, with decoded secrets, of visible sites",
    ),
    (
        READ_OWN_PROFILE,
        "Read Own Profile",
        "View own user record and accessible sites",
    ),
    (
        CREATE_CREDENTIAL,
        "Create Credential",
        "Add credentials to visible sites",
    ),
    (
        UPDATE_CREDENTIAL,
        "Update Credential",
        "Overwrite credentials of visible sites (previous value kept in history)",
    ),
    (
        DELETE_CREDENTIAL,
        "Delete Credential",
        "Remove credentials of visible sites",
    ),
    (
        LIST_USERS,
        "List Users",
        "View every registered user",
    ),
    (
        CREATE_USER,
        "Create User",
        "Register new users",
    ),
    (
        CHANGE_ACCESS_LEVEL,
        "Change Access Level",
        "Change another user's access level",
    ),
    (
        READ_ANY_PROFILE,
        "Read Any Profile",
        "View any user's record",
    ),
]

# Operations checked against the actor's visible sites (target is a site id)
SITE_SCOPED_CAPABILITIES = frozenset({
    READ_CREDENTIALS,
    CREATE_CREDENTIAL,
    UPDATE_CREDENTIAL,
    DELETE_CREDENTIAL,
})

_VIEWER = frozenset({
    READ_CREDENTIALS,
    READ_OWN_PROFILE,
})

_MANAGER = _VIEWER | {
    CREATE_CREDENTIAL,
    UPDATE_CREDENTIAL,
    DELETE_CREDENTIAL,
}

_ADMIN = _MANAGER | {
    LIST_USERS,
    CREATE_USER,
    CHANGE_ACCESS_LEVEL,
    READ_ANY_PROFILE,
}

ACCESS_LEVEL_CAPABILITIES = {
    "viewer": _VIEWER,
    "manager": frozenset(_MANAGER),
    "admin": frozenset(_ADMIN),
}


def get_all_capability_codes():
    """Get list of all capability codes."""
    return [cap[0] for cap in CAPABILITY_DEFINITIONS]


def capabilities_for(access_level):
    """Capability set of an access level. Unknown levels get nothing."""
    return ACCESS_LEVEL_CAPABILITIES.get(access_level, frozenset())
