"""Pure state transitions over `AppState`.

Every function takes the prior snapshot and returns a new one; none of them
mutate their input. Callers persist the returned snapshot as a whole (see
`adapters.state_store`). Failures raise `ValidationError` /
`AuthorizationError` before anything is built, so a failed transition leaves
the caller holding the unchanged prior state.
"""

from __future__ import annotations

from typing import Iterable

from core.domain.errors import AuthorizationError, ValidationError
from core.domain.models import (
    AppState,
    InventoryItem,
    LogEntry,
    PoolCategory,
    PoolConfig,
    PoolData,
    Role,
    SanitizerType,
    Surface,
    User,
    utcnow,
)
from core.security import hash_password, verify_password


def initial_state() -> AppState:
    """Demo snapshot used when nothing has been stored yet."""

    return AppState(
        users=[
            User(id="1", username="admin", password_hash=hash_password("password"), role=Role.ADMIN),
            User(
                id="2",
                username="tech",
                password_hash=hash_password("password"),
                role=Role.USER,
                assigned_pools=["pool-1", "pool-2"],
            ),
        ],
        pools=[
            PoolData(
                id="pool-1",
                config=PoolConfig(
                    name="Johnson Residence",
                    volume=15000,
                    sanitizer=SanitizerType.CHLORINE,
                    surface=Surface.PLASTER,
                    category=PoolCategory.POOL,
                ),
            ),
            PoolData(
                id="pool-2",
                config=PoolConfig(
                    name="Sunset Hotel Spa",
                    volume=800,
                    sanitizer=SanitizerType.CHLORINE,
                    surface=Surface.FIBERGLASS,
                    category=PoolCategory.SPA,
                ),
            ),
        ],
    )


# --- Users / sessions ---


def find_user(state: AppState, username: str) -> User | None:
    key = username.strip().lower()
    return next((u for u in state.users if u.username.lower() == key), None)


def register_user(state: AppState, username: str, password: str) -> tuple[AppState, User]:
    username = (username or "").strip()
    if not username or not password:
        raise ValidationError("Please fill in all fields")
    if find_user(state, username) is not None:
        raise ValidationError("Username already taken")
    user = User(username=username, password_hash=hash_password(password), role=Role.USER)
    return state.model_copy(update={"users": [*state.users, user]}), user


def authenticate(state: AppState, username: str, password: str, *, admin_mode: bool = False) -> User:
    """Resolve credentials to a `User` or raise.

    `admin_mode` mirrors the admin login screen: valid credentials for a
    non-admin account are still rejected.
    """

    if not username or not password:
        raise ValidationError("Please fill in all fields")
    user = find_user(state, username)
    if user is None or not verify_password(password, user.password_hash):
        raise ValidationError("Invalid credentials")
    if admin_mode and not user.is_admin:
        raise AuthorizationError("This account does not have admin privileges.")
    return user


def delete_user(state: AppState, acting: User, user_id: str) -> AppState:
    require_admin(acting)
    if not any(u.id == user_id for u in state.users):
        raise ValidationError(f"Unknown user: {user_id}")
    return state.model_copy(update={"users": [u for u in state.users if u.id != user_id]})


def toggle_pool_access(state: AppState, acting: User, user_id: str, pool_id: str) -> AppState:
    """Grant access when missing, revoke it when present."""

    require_admin(acting)
    get_pool(state, pool_id)
    updated: list[User] = []
    found = False
    for u in state.users:
        if u.id == user_id:
            found = True
            pools = (
                [p for p in u.assigned_pools if p != pool_id]
                if pool_id in u.assigned_pools
                else [*u.assigned_pools, pool_id]
            )
            u = u.model_copy(update={"assigned_pools": pools})
        updated.append(u)
    if not found:
        raise ValidationError(f"Unknown user: {user_id}")
    return state.model_copy(update={"users": updated})


def set_pool_access(state: AppState, acting: User, user_id: str, pool_id: str, *, granted: bool) -> AppState:
    require_admin(acting)
    user = next((u for u in state.users if u.id == user_id), None)
    if user is None:
        raise ValidationError(f"Unknown user: {user_id}")
    if (pool_id in user.assigned_pools) == granted:
        return state
    return toggle_pool_access(state, acting, user_id, pool_id)


def require_admin(user: User) -> None:
    if not user.is_admin:
        raise AuthorizationError("Admin privileges required.")


# --- Pools ---


def get_pool(state: AppState, pool_id: str) -> PoolData:
    pool = next((p for p in state.pools if p.id == pool_id), None)
    if pool is None:
        raise ValidationError(f"Unknown pool: {pool_id}")
    return pool


def can_access_pool(user: User, pool_id: str) -> bool:
    return user.is_admin or pool_id in user.assigned_pools


def accessible_pools(state: AppState, user: User) -> list[PoolData]:
    return [p for p in state.pools if can_access_pool(user, p.id)]


def get_accessible_pool(state: AppState, user: User, pool_id: str) -> PoolData:
    pool = get_pool(state, pool_id)
    if not can_access_pool(user, pool_id):
        raise AuthorizationError(f"User {user.username!r} is not assigned to pool {pool_id}.")
    return pool


def add_pool(state: AppState, acting: User, config: PoolConfig, *, notes: str = "") -> tuple[AppState, PoolData]:
    require_admin(acting)
    if not config.name.strip():
        raise ValidationError("Pool name is required")
    pool = PoolData(config=config, notes=notes)
    return state.model_copy(update={"pools": [*state.pools, pool]}), pool


def update_pool(
    state: AppState,
    acting: User,
    pool_id: str,
    *,
    config: PoolConfig | None = None,
    notes: str | None = None,
) -> AppState:
    """Replace a pool's config and/or notes.

    Admins may edit any pool; technicians only pools assigned to them.
    """

    get_accessible_pool(state, acting, pool_id)
    changes: dict[str, object] = {}
    if config is not None:
        changes["config"] = config
    if notes is not None:
        changes["notes"] = notes
    pools = [p.model_copy(update=changes) if p.id == pool_id else p for p in state.pools]
    return state.model_copy(update={"pools": pools})


def delete_pool(state: AppState, acting: User, pool_id: str) -> AppState:
    """Remove a pool. Its logs are kept and stay retrievable by pool id."""

    require_admin(acting)
    get_pool(state, pool_id)
    return state.model_copy(update={"pools": [p for p in state.pools if p.id != pool_id]})


def pool_logs(state: AppState, pool_id: str) -> list[LogEntry]:
    """Logs for a pool in chronological (insertion) order."""

    return [entry for entry in state.logs if entry.pool_id == pool_id]


# --- Inventory ---


def add_inventory_item(
    state: AppState,
    acting: User,
    *,
    name: str,
    quantity: float,
    unit: str = "lbs",
    vendor: str | None = None,
    vendor_url: str | None = None,
    min_threshold: float | None = None,
) -> tuple[AppState, InventoryItem]:
    require_admin(acting)
    name = (name or "").strip()
    if not name:
        raise ValidationError("Item name is required")
    if quantity is None or quantity < 0:
        raise ValidationError("Quantity must be zero or more")
    item = InventoryItem(
        name=name,
        quantity=quantity,
        unit=unit or "lbs",
        vendor=vendor or None,
        vendor_url=vendor_url or None,
        last_purchased=utcnow(),
        min_threshold=min_threshold,
    )
    return state.model_copy(update={"inventory": [*state.inventory, item]}), item


def change_inventory_quantity(state: AppState, acting: User, item_id: str, delta: float) -> AppState:
    """Apply `delta` to an item's quantity, clamped at zero."""

    require_admin(acting)
    _require_item(state.inventory, item_id)
    inventory = [
        i.model_copy(update={"quantity": max(0.0, i.quantity + delta)}) if i.id == item_id else i
        for i in state.inventory
    ]
    return state.model_copy(update={"inventory": inventory})


def delete_inventory_item(state: AppState, acting: User, item_id: str) -> AppState:
    require_admin(acting)
    _require_item(state.inventory, item_id)
    return state.model_copy(update={"inventory": [i for i in state.inventory if i.id != item_id]})


def low_stock(state: AppState) -> list[InventoryItem]:
    return [i for i in state.inventory if i.is_low]


def _require_item(items: Iterable[InventoryItem], item_id: str) -> None:
    if not any(i.id == item_id for i in items):
        raise ValidationError(f"Unknown inventory item: {item_id}")
