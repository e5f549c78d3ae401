"""
Shop persistence.

`ShopStore` is the narrow contract the pipeline needs; the document
database behind it is out of scope. `InMemoryShopStore` backs the API
process and the test suite.

Writes are patches keyed by dotted field path on the aggregate, e.g.
``{"verification.flags.exif_mismatch": True}``. Each step writes only its
own slice in one call, so steps run in any order without clobbering one
another's fields. Plain writes are last-writer-wins; only `transition`
carries a precondition (compare-and-set on the verification status).
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Optional, Protocol

from pydantic import BaseModel

from .exceptions import InvalidTransitionError, PersistenceError, ShopNotFoundError
from .models import Shop, VerificationStatus, utcnow

Patch = dict[str, Any]


class ShopStore(Protocol):
    def create(self, shop: Shop) -> Shop: ...

    def read(self, shop_id: str) -> Shop: ...

    def write(self, shop_id: str, patch: Patch) -> Shop: ...

    def transition(
        self,
        shop_id: str,
        expected_status: VerificationStatus,
        build_patch: Callable[[Shop], Patch],
    ) -> Shop: ...

    def list(self, status: Optional[VerificationStatus] = None) -> list[Shop]: ...

    def find_by_license_number(self, license_number: str) -> Optional[Shop]: ...


class InMemoryShopStore:
    """Thread-safe dict-backed store. One lock guards every read-modify-write."""

    def __init__(self) -> None:
        self._shops: dict[str, Shop] = {}
        self._lock = threading.Lock()

    def create(self, shop: Shop) -> Shop:
        with self._lock:
            if shop.shop_id in self._shops:
                raise PersistenceError(
                    f"Shop '{shop.shop_id}' already exists", {"shop_id": shop.shop_id}
                )
            self._shops[shop.shop_id] = shop
            return shop

    def read(self, shop_id: str) -> Shop:
        with self._lock:
            return self._get(shop_id)

    def write(self, shop_id: str, patch: Patch) -> Shop:
        with self._lock:
            updated = apply_patch(self._get(shop_id), patch)
            self._shops[shop_id] = updated
            return updated

    def transition(
        self,
        shop_id: str,
        expected_status: VerificationStatus,
        build_patch: Callable[[Shop], Patch],
    ) -> Shop:
        """Compare-and-set: apply `build_patch(shop)` only if status still matches."""
        with self._lock:
            current = self._get(shop_id)
            status = current.verification.verification_status
            if status != expected_status:
                raise InvalidTransitionError(
                    f"Shop is '{status.value}', expected '{expected_status.value}'",
                    {
                        "shop_id": shop_id,
                        "current_status": status.value,
                        "expected_status": expected_status.value,
                    },
                )
            updated = apply_patch(current, build_patch(current))
            self._shops[shop_id] = updated
            return updated

    def list(self, status: Optional[VerificationStatus] = None) -> list[Shop]:
        with self._lock:
            shops = list(self._shops.values())
        if status is None:
            return shops
        return [s for s in shops if s.verification.verification_status == status]

    def find_by_license_number(self, license_number: str) -> Optional[Shop]:
        key = "".join(license_number.split()).upper()
        with self._lock:
            for shop in self._shops.values():
                if "".join(shop.license_number.split()).upper() == key:
                    return shop
        return None

    def _get(self, shop_id: str) -> Shop:
        shop = self._shops.get(shop_id)
        if shop is None:
            raise ShopNotFoundError(shop_id)
        return shop


# ─── Patch Application ──────────────────────────────────────────────


def apply_patch(shop: Shop, patch: Patch) -> Shop:
    """Return a copy of `shop` with every dotted path in `patch` set.

    Raises:
        PersistenceError: If a path does not name a field on the aggregate.
    """
    updated = shop
    for path, value in patch.items():
        updated = _set_path(updated, path.split("."), value, path)
    return _set_path(updated, ["updated_at"], utcnow(), "updated_at")


def _set_path(model: BaseModel, parts: list[str], value: Any, full_path: str) -> Any:
    head, rest = parts[0], parts[1:]
    if head not in type(model).model_fields:
        raise PersistenceError(f"Unknown field path '{full_path}'", {"path": full_path})

    if not rest:
        return model.model_copy(update={head: value})

    child = getattr(model, head)
    if not isinstance(child, BaseModel):
        raise PersistenceError(
            f"Cannot patch into '{head}' for path '{full_path}'", {"path": full_path}
        )
    return model.model_copy(update={head: _set_path(child, rest, value, full_path)})
