from monetaris.core.auth.context import CurrentUser, require_roles, require_user
from monetaris.core.auth.scope import KreditorScope

__all__ = ["CurrentUser", "KreditorScope", "require_roles", "require_user"]
