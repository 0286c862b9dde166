"""
Permissions and Default Roles Configuration
This config defines the company permission catalog and the default roles
every company is seeded with. Used by the seed script (system_permissions)
and by company creation (company_roles + company_role_permissions).
"""

# Permission catalog grouped by category. Category is display-only.
PERMISSION_CATEGORIES = {
    "members": {
        "view_members": "View the company member list and roles",
        "invite_users": "Invite new users to the company",
        "remove_members": "Remove members from the company",
        "change_user_roles": "Change the role of any member",
        "change_regular_user_roles": "Change roles of members outside Owner/Admin",
        "manage_all_users": "Manage every member, including yourself",
    },
    "roles": {
        "manage_roles": "Create, edit and delete company roles",
    },
    "job_posts": {
        "create_job_post": "Create job posts",
        "manage_own_job_posts": "Edit and delete job posts you created",
        "manage_all_job_posts": "Edit and delete any company job post",
    },
}

# Default roles, migrated from the legacy owner > admin > hr > social > member enum.
# position is the only rank: higher = more senior.
DEFAULT_ROLES = [
    {
        "identifier": "owner",
        "name": "Owner",
        "color": "#e11d48",
        "position": 5,
        "permissions": "*",
    },
    {
        "identifier": "admin",
        "name": "Admin",
        "color": "#f97316",
        "position": 4,
        "permissions": [
            "view_members", "invite_users", "remove_members", "change_user_roles",
            "manage_roles", "create_job_post", "manage_own_job_posts", "manage_all_job_posts",
        ],
    },
    {
        "identifier": "hr",
        "name": "HR",
        "color": "#22c55e",
        "position": 3,
        "permissions": [
            "view_members", "invite_users", "change_regular_user_roles",
            "create_job_post", "manage_own_job_posts", "manage_all_job_posts",
        ],
    },
    {
        "identifier": "social",
        "name": "Social",
        "color": "#3b82f6",
        "position": 2,
        "permissions": ["view_members", "create_job_post", "manage_own_job_posts"],
    },
    {
        "identifier": "member",
        "name": "Member",
        "color": None,
        "position": 1,
        "permissions": ["view_members"],
    },
]

# Roles that only change_user_roles (not change_regular_user_roles) may touch
PROTECTED_ROLE_NAMES = {"owner", "admin"}

OWNER_ROLE_NAME = "Owner"


def get_permission_catalog():
    """
    Returns the flat permission list
    Format: [{"name": "invite_users", "category": "members", "description": "..."}, ...]
    """
    permissions = []
    for category, entries in PERMISSION_CATEGORIES.items():
        for name, description in entries.items():
            permissions.append({
                "name": name,
                "category": category,
                "description": description
            })
    return permissions


def get_default_role_grants():
    """Returns {role name: {permission: enabled}} for every default role, covering the whole catalog"""
    all_names = [p["name"] for p in get_permission_catalog()]
    grants = {}
    for role in DEFAULT_ROLES:
        granted = set(all_names) if role["permissions"] == "*" else set(role["permissions"])
        grants[role["name"]] = {name: name in granted for name in all_names}
    return grants


# Legacy identifier -> rank, derived from the seeded positions so there is one scheme
LEGACY_ROLE_RANKS = {role["identifier"]: role["position"] for role in DEFAULT_ROLES}
LEGACY_ROLE_NAMES = {role["identifier"]: role["name"] for role in DEFAULT_ROLES}

PERMISSION_CATALOG = get_permission_catalog()
