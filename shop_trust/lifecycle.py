"""
Shop lifecycle: pending → approved | rejected, decided by an admin.

The verification flags are advisory. They are shown to the admin but
never approve or reject a shop on their own: stripped EXIF, noisy OCR or
a shop that moved next door all produce false positives.

Approval is a compare-and-set on the store: of two concurrent approvals,
exactly one sees `pending`. The loser gets InvalidTransitionError and
neither touches the location lock nor sends a notification.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from .exceptions import InvalidInputError, InvalidTransitionError
from .models import ReviewDecision, Shop, VerificationStatus, utcnow
from .store import Patch, ShopStore

logger = logging.getLogger(__name__)


# ─── Notifications ──────────────────────────────────────────────────


class Notifier(Protocol):
    def shop_reviewed(self, shop: Shop, decision: ReviewDecision) -> None: ...


class LoggingNotifier:
    """Default notifier: email delivery lives elsewhere, so just log."""

    def shop_reviewed(self, shop: Shop, decision: ReviewDecision) -> None:
        logger.info(
            "Notify owner %s: shop '%s' was %s",
            shop.owner_id, shop.shop_name, decision.verification_status.value,
        )


# ─── State Machine ──────────────────────────────────────────────────


TERMINAL_STATUSES = frozenset({VerificationStatus.APPROVED, VerificationStatus.REJECTED})


class ShopLifecycleStateMachine:
    """Owns the one-way review transition and the one-time location lock."""

    def __init__(self, store: ShopStore, notifier: Notifier | None = None):
        self.store = store
        self.notifier = notifier or LoggingNotifier()

    def review(
        self,
        shop_id: str,
        status: VerificationStatus | str,
        notes: Optional[str] = None,
        admin_id: Optional[str] = None,
    ) -> ReviewDecision:
        """Apply an admin's approve/reject decision to a pending shop.

        Raises:
            InvalidInputError: If `status` is not approved/rejected.
            InvalidTransitionError: If the shop is no longer pending.
        """
        target = _parse_target(status)
        reviewed_at = utcnow()

        def build_patch(shop: Shop) -> Patch:
            patch: Patch = {
                "verification.verification_status": target,
                "verification_notes": notes,
                "verified_at": reviewed_at,
                "verified_by": admin_id,
            }
            if target == VerificationStatus.APPROVED:
                patch["is_active"] = True
                patch["is_live"] = True
                patch["verification.verified_badge"] = True
                record = shop.verification
                if record.submitted_location is not None and record.location_lock is None:
                    patch["verification.location_lock"] = record.submitted_location.model_copy()
            return patch

        shop = self.store.transition(shop_id, VerificationStatus.PENDING, build_patch)

        decision = ReviewDecision(
            shop_id=shop.shop_id,
            verification_status=target,
            verification_notes=shop.verification_notes,
            verified_at=reviewed_at,
            verified_by=admin_id,
            verified_badge=shop.verification.verified_badge,
            location_lock=shop.verification.location_lock,
        )
        logger.info("Shop %s %s by %s", shop_id, target.value, admin_id or "unknown admin")
        self._notify(shop, decision)
        return decision

    def approve(self, shop_id: str, notes: Optional[str] = None, admin_id: Optional[str] = None) -> ReviewDecision:
        return self.review(shop_id, VerificationStatus.APPROVED, notes, admin_id)

    def reject(self, shop_id: str, notes: Optional[str] = None, admin_id: Optional[str] = None) -> ReviewDecision:
        return self.review(shop_id, VerificationStatus.REJECTED, notes, admin_id)

    def set_live(self, shop_id: str, is_live: bool) -> Shop:
        """Open or close an approved, active shop."""
        def build_patch(shop: Shop) -> Patch:
            if not shop.is_active:
                raise InvalidTransitionError(
                    "Cannot change shop status. Shop is not active.", {"shop_id": shop_id}
                )
            return {"is_live": bool(is_live)}

        try:
            return self.store.transition(shop_id, VerificationStatus.APPROVED, build_patch)
        except InvalidTransitionError as e:
            if e.details.get("expected_status") == VerificationStatus.APPROVED.value:
                raise InvalidTransitionError(
                    "Cannot change shop status until verification is approved", e.details
                ) from e
            raise

    def _notify(self, shop: Shop, decision: ReviewDecision) -> None:
        # Delivery problems must never undo or fail a committed review
        try:
            self.notifier.shop_reviewed(shop, decision)
        except Exception:
            logger.exception("Failed to notify owner of shop %s", shop.shop_id)


def _parse_target(status: VerificationStatus | str) -> VerificationStatus:
    try:
        target = VerificationStatus(status)
    except ValueError:
        raise InvalidInputError(
            "Invalid verification status", {"status": str(status)}
        ) from None
    if target not in TERMINAL_STATUSES:
        raise InvalidInputError("Invalid verification status", {"status": target.value})
    return target
