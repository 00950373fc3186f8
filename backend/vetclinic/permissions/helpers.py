# Overview: Utility functions for permission lookups and the permission-check contract.

from flask import current_app, g

from .definitions import PERMISSION_DEFINITIONS


def get_all_permission_codes():
    """Get list of all permission codes."""
    return [perm[0] for perm in PERMISSION_DEFINITIONS]


def get_permissions_by_category(category):
    """Get all permissions in a category."""
    return [perm for perm in PERMISSION_DEFINITIONS if perm[3] == category]


def get_permission_definition(code):
    """Get full definition for a permission code."""
    for perm in PERMISSION_DEFINITIONS:
        if perm[0] == code:
            return {
                "code": perm[0],
                "name": perm[1],
                "description": perm[2],
                "category": perm[3],
            }
    return None


def validate_permission_code(code):
    """Check if a permission code is valid."""
    return code in get_all_permission_codes()


def has_permission(code: str) -> bool:
    """
    Ask the upstream auth layer whether the current caller holds `code`.

    PERMISSION_CHECKER (callable) wins when configured; otherwise the
    permission set placed on g.permissions by the auth layer is consulted.
    Unknown codes are always denied.
    """
    if not validate_permission_code(code):
        return False
    checker = current_app.config.get("PERMISSION_CHECKER")
    if checker is not None:
        return bool(checker(code))
    return code in (getattr(g, "permissions", None) or ())
