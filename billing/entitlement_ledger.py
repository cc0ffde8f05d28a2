"""
Entitlement Ledger

Tracks each user's plan tier and daily message quota, verifies payment codes
and expires paid plans.

Storage (RecordStore tables/indexes):
    entitlements/<user_id>          - EntitlementRecord
    payments/<transaction_id>       - PaymentRecord (insert-only, SET NX)
    index entitlements_by_expiry    - user_id scored by expires_at
    set payments:<user_id>          - codes redeemed by a user

The request path (check_quota, decrement) uses the restricted store; payment
writes and the expiration sweep use the service store.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from billing.models import EntitlementRecord, PaymentRecord, PaymentResult, QuotaStatus
from billing.plans import PLAN_PRICES, PlanTier, daily_allocation, is_valid_code, normalize_code
from shared.record_store import DuplicateRecordError, RecordStore

logger = logging.getLogger(__name__)

ENTITLEMENTS_TABLE = "entitlements"
PAYMENTS_TABLE = "payments"
EXPIRY_INDEX = "entitlements_by_expiry"

PAYMENT_FAILED_MESSAGE = "Payment processing failed. Please try again."
DUPLICATE_CODE_MESSAGE = "This payment ID has already been used. Please use a different payment ID from the available list."


def payments_set(user_id: str) -> str:
    return f"payments:{user_id}"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class EntitlementLedger:
    """
    Plan and quota bookkeeping.

    Usage:
        ledger = EntitlementLedger(RecordStore(clients.restricted), RecordStore(clients.service))
        status = await ledger.check_quota("user-1")
        if status.can_send:
            ...
            await ledger.decrement("user-1")
    """

    def __init__(
        self,
        records: RecordStore,
        service_records: Optional[RecordStore] = None,
        plan_days: int = 30,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Args:
            records: Restricted-level store for quota checks and decrements
            service_records: Service-level store for payments and sweeps
            plan_days: Lifetime of a paid plan
            clock: Returns the current aware datetime (injectable for tests)
        """
        self.records = records
        self.service_records = service_records or records
        self.plan_days = plan_days
        self.clock = clock or _utc_now

    def _local_date(self, moment: datetime):
        # Daily reset follows the server's calendar day, not elapsed hours
        return moment.astimezone().date()

    # ------------------------------------------------------------------ #
    # Quota
    # ------------------------------------------------------------------ #

    async def check_quota(self, user_id: str) -> QuotaStatus:
        """
        Read (creating or daily-resetting as needed) the user's quota.

        Never raises: any failure is reported as a denial with remaining=0.
        """
        try:
            now = self.clock()
            data = await self.records.get(ENTITLEMENTS_TABLE, user_id)

            if data is None:
                record = EntitlementRecord(
                    user_id=user_id,
                    tier=PlanTier.FREE,
                    messages_remaining=daily_allocation(PlanTier.FREE),
                    last_reset_date=now,
                    updated_at=now,
                )
                try:
                    await self.records.insert(ENTITLEMENTS_TABLE, user_id, record.to_dict())
                    logger.info(f" Created free plan for user {user_id}")
                    return QuotaStatus(can_send=True, remaining=record.messages_remaining, tier=record.tier)
                except DuplicateRecordError:
                    # A concurrent request created it first
                    data = await self.records.get(ENTITLEMENTS_TABLE, user_id)

            record = EntitlementRecord.from_dict(data)

            if self._local_date(record.last_reset_date) != self._local_date(now):
                record.messages_remaining = daily_allocation(record.tier)
                record.last_reset_date = now
                record.updated_at = now
                await self.records.upsert(ENTITLEMENTS_TABLE, user_id, record.to_dict())
                logger.info(f" Reset messages for {record.tier.value} plan to {record.messages_remaining} (user {user_id})")

            return QuotaStatus(
                can_send=record.messages_remaining > 0,
                remaining=record.messages_remaining,
                tier=record.tier,
            )
        except Exception as e:
            logger.error(f"❌ Quota check failed for user {user_id}: {e}", exc_info=True)
            return QuotaStatus(can_send=False, remaining=0)

    async def decrement(self, user_id: str) -> int:
        """
        Spend one message. Never goes below zero.

        Returns:
            Messages remaining after the decrement

        Raises:
            RecordStoreError: Persistence failure
        """
        data = await self.records.get(ENTITLEMENTS_TABLE, user_id)
        if data is None:
            logger.warning(f"⚠️ Decrement requested for user {user_id} without a plan")
            return 0

        record = EntitlementRecord.from_dict(data)
        if record.messages_remaining > 0:
            record.messages_remaining -= 1
            record.updated_at = self.clock()
            await self.records.upsert(ENTITLEMENTS_TABLE, user_id, record.to_dict())
            logger.info(f" Decremented messages for user {user_id}. New count: {record.messages_remaining}")

        return record.messages_remaining

    # ------------------------------------------------------------------ #
    # Payments
    # ------------------------------------------------------------------ #

    async def verify_payment(self, user_id: str, code: str, tier: str) -> PaymentResult:
        """
        Redeem a payment code for ``tier``.

        The payment record is inserted with SET NX, so a code can be consumed
        once across all users even under concurrent submissions. The plan,
        its expiry index entry and the user's payment set are then written in
        one transaction; if that fails the payment record is removed again and
        the previous plan stays as it was.

        Never raises.
        """
        transaction_id = normalize_code(code)

        try:
            plan = PlanTier(tier)
        except ValueError:
            plan = None

        if plan is None or not is_valid_code(plan, transaction_id):
            logger.info(f" Rejected transaction ID for {tier} plan from user {user_id}")
            return PaymentResult(
                success=False,
                error=f"Invalid transaction ID for {tier} plan. Please use a valid {tier} payment ID.",
                reason="invalid_code",
            )

        now = self.clock()
        payment = PaymentRecord(
            transaction_id=transaction_id,
            user_id=user_id,
            tier=plan,
            amount=PLAN_PRICES[plan],
            used_at=now,
        )

        try:
            await self.service_records.insert(PAYMENTS_TABLE, transaction_id, payment.to_dict())
        except DuplicateRecordError:
            logger.info(f" Transaction ID already used (user {user_id}, {plan.value})")
            return PaymentResult(success=False, error=DUPLICATE_CODE_MESSAGE, reason="duplicate_code")
        except Exception as e:
            logger.error(f"❌ Payment verification error: {e}", exc_info=True)
            return PaymentResult(success=False, error=PAYMENT_FAILED_MESSAGE, reason="processing_failed")

        expires_at = now + timedelta(days=self.plan_days) if plan is not PlanTier.FREE else None
        entitlement = EntitlementRecord(
            user_id=user_id,
            tier=plan,
            messages_remaining=daily_allocation(plan),
            last_reset_date=now,
            expires_at=expires_at,
            updated_at=now,
        )

        try:
            current = await self.service_records.get(ENTITLEMENTS_TABLE, user_id)
            if current:
                logger.info(f" User {user_id} changing plan from {current.get('plan_type')} to {plan.value}")

            batch = self.service_records.batch()
            batch.upsert(ENTITLEMENTS_TABLE, user_id, entitlement.to_dict())
            if expires_at is not None:
                batch.index_add(EXPIRY_INDEX, user_id, expires_at.timestamp())
            else:
                batch.index_remove(EXPIRY_INDEX, user_id)
            batch.set_add(payments_set(user_id), transaction_id)
            await self.service_records.commit(batch)
        except Exception as e:
            logger.error(f"❌ Payment verification error while updating plan for {user_id}: {e}", exc_info=True)
            await self._release_payment(transaction_id)
            return PaymentResult(success=False, error=PAYMENT_FAILED_MESSAGE, reason="processing_failed")

        logger.info(f"✅ Payment verified for user {user_id}: {plan.value} until {expires_at}")
        return PaymentResult(
            success=True,
            message=f"Payment verified successfully! Your {plan.value} plan is now active.",
        )

    async def _release_payment(self, transaction_id: str) -> None:
        try:
            await self.service_records.delete(PAYMENTS_TABLE, transaction_id)
        except Exception as e:
            logger.error(f"❌ Could not release payment record {transaction_id}: {e}", exc_info=True)

    # ------------------------------------------------------------------ #
    # Expiration sweep
    # ------------------------------------------------------------------ #

    async def expire_stale_plans(self) -> int:
        """
        Revert every paid plan whose expiry has passed to the free tier.

        Per-user failures are logged and skipped.

        Returns:
            Number of plans reverted

        Raises:
            RecordStoreError: The expiry index could not be queried
        """
        now = self.clock()
        logger.info(f"Running plan expiration check at: {now.isoformat()}")

        user_ids = await self.service_records.index_below(EXPIRY_INDEX, now.timestamp())
        logger.info(f"Found {len(user_ids)} expired plans")

        expired = 0
        for user_id in user_ids:
            try:
                if await self._expire_plan(user_id, now):
                    expired += 1
            except Exception as e:
                logger.error(f"❌ Error processing expired plan for user {user_id}: {e}", exc_info=True)

        logger.info(f"Plan expiration check completed ({expired} reverted)")
        return expired

    async def _expire_plan(self, user_id: str, now: datetime) -> bool:
        data = await self.service_records.get(ENTITLEMENTS_TABLE, user_id)
        if data is None:
            await self.service_records.index_remove(EXPIRY_INDEX, user_id)
            return False

        record = EntitlementRecord.from_dict(data)
        if record.tier is PlanTier.FREE or record.expires_at is None:
            await self.service_records.index_remove(EXPIRY_INDEX, user_id)
            return False
        if record.expires_at >= now:
            return False

        previous_tier = record.tier
        record.tier = PlanTier.FREE
        record.messages_remaining = daily_allocation(PlanTier.FREE)
        record.expires_at = None
        record.last_reset_date = now
        record.updated_at = now
        await self.service_records.upsert(ENTITLEMENTS_TABLE, user_id, record.to_dict())
        await self.service_records.index_remove(EXPIRY_INDEX, user_id)

        try:
            await self._expire_payments(user_id)
        except Exception as e:
            logger.error(f"❌ Error updating payment status for user {user_id}: {e}", exc_info=True)

        logger.info(f"Successfully expired plan for user {user_id}: {previous_tier.value} -> free")
        return True

    async def _expire_payments(self, user_id: str) -> None:
        for transaction_id in await self.service_records.set_members(payments_set(user_id)):
            payment = await self.service_records.get(PAYMENTS_TABLE, transaction_id)
            if payment is not None and payment.get("status") is None:
                await self.service_records.update(PAYMENTS_TABLE, transaction_id, {"status": "expired"})
