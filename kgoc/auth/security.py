from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from ..services.roles import UserRole, has_permission, lookup_role
from ..storage.factory import get_document_store, get_local_store
from ..storage.provider import DocumentStore, KeyValueStore


def get_current_user_id(x_user_id: Optional[str] = Header(default=None, alias="X-User-Id")) -> str:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return x_user_id.strip()


def get_current_role(
    user_id: str = Depends(get_current_user_id),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
) -> str:
    stored, _ = lookup_role(remote, local, user_id)
    role = (stored or {}).get("role")
    if not role:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="No role assigned")
    return role


def require_roles(*required_roles: str):
    def _dep(role: str = Depends(get_current_role)):
        if role not in {str(getattr(r, "value", r)) for r in required_roles}:
            raise HTTPException(status_code=403, detail="Forbidden")
        return role

    return _dep


def require_permissions(*required_permissions: str):
    """
    Require at least one of the specified permissions (OR logic).
    Admins pass every check.
    """
    def _dep(role: str = Depends(get_current_role)):
        if role == UserRole.admin.value:
            return role
        if not any(has_permission(role, perm) for perm in required_permissions):
            raise HTTPException(status_code=403, detail="Forbidden")
        return role

    return _dep
