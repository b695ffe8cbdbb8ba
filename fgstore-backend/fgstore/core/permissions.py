from collections.abc import Callable

from fastapi import Depends, HTTPException, status

from fgstore.core.security_current import Actor, get_current_actor

MAIN_DIRECTOR = "MainDirector"
HEAD_OF_OPERATIONS = "HeadOfOperations"
FG_STORE_MANAGER = "FinishedGoodsStoreManager"
DIRECT_REPRESENTATIVE = "DirectRepresentative"
DIRECT_SHOP_MANAGER = "DirectShopManager"
DISTRIBUTOR = "Distributor"
ADMIN = "Admin"

KNOWN_ROLES = {
    MAIN_DIRECTOR,
    HEAD_OF_OPERATIONS,
    FG_STORE_MANAGER,
    DIRECT_REPRESENTATIVE,
    DIRECT_SHOP_MANAGER,
    DISTRIBUTOR,
    ADMIN,
}

ROLE_PERMISSION_MATRIX: dict[str, set[str]] = {
    ADMIN: {"*"},
    MAIN_DIRECTOR: {"*"},
    HEAD_OF_OPERATIONS: {
        "requests.view",
        "requests.approve",
        "history.view",
        "showrooms.view",
        "reports.view",
        "pricing.view",
        "inventory.view",
    },
    FG_STORE_MANAGER: {
        "requests.view",
        "history.view",
        "dispatch.manage",
        "inventory.view",
        "inventory.manage",
        "locations.manage",
        "pricing.view",
        "pricing.manage",
        "imports.run",
        "reports.view",
    },
    DIRECT_REPRESENTATIVE: {"requests.create"},
    DIRECT_SHOP_MANAGER: {"requests.create", "showrooms.view"},
    DISTRIBUTOR: {"requests.create"},
}


def role_permissions(role: str) -> set[str]:
    return set(ROLE_PERMISSION_MATRIX.get((role or "").strip(), set()))


def has_permission(*, role: str, permission: str) -> bool:
    permissions = role_permissions(role)
    if "*" in permissions:
        return True
    return permission in permissions


def require_permission(permission: str) -> Callable[[Actor], Actor]:
    normalized_permission = (permission or "").strip().lower()
    if not normalized_permission:
        raise ValueError("Permission key is required")

    def dependency(actor: Actor = Depends(get_current_actor)) -> Actor:
        if not has_permission(role=actor.role, permission=normalized_permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient role for this action",
            )
        return actor

    return dependency
