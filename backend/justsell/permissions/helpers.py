# Overview: Lookups over the permission definitions table.

from .definitions import PERMISSION_DEFINITIONS

_BY_CODE = {perm[0]: perm for perm in PERMISSION_DEFINITIONS}


def get_all_permission_codes() -> list[str]:
    return list(_BY_CODE)


def get_permissions_by_category(category: str) -> list[tuple]:
    return [perm for perm in PERMISSION_DEFINITIONS if perm[3] == category]


def get_permission_definition(code: str) -> dict | None:
    """Definition as a dict (code, name, description, category), or None."""
    perm = _BY_CODE.get(code)
    if perm is None:
        return None
    return dict(zip(("code", "name", "description", "category"), perm))


def validate_permission_code(code: str) -> bool:
    return code in _BY_CODE
