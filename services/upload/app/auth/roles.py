"""Role names carried in the ``role`` claim of access tokens."""

ROLE_SUPER_ADMIN = "super_admin"
ROLE_ADMIN_NAME = "admin"
ROLE_USER = "user"

# Roles allowed through admin-only routes
ROLE_ADMIN = (ROLE_SUPER_ADMIN, ROLE_ADMIN_NAME)
