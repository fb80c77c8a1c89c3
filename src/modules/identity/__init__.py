from src.modules.identity.auth import ActingUser, get_current_user
from src.modules.identity.permissions import ensure_supplier_access, require_admin

__all__ = ["ActingUser", "get_current_user", "ensure_supplier_access", "require_admin"]
