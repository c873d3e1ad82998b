import uuid
from datetime import datetime, timedelta

import pytest
from django.utils import timezone

from apps.subscriptions.models import Subscription, SubscriptionStatus, Redemption
from apps.subscriptions.services import (
    remaining,
    redeem,
    undo,
    list_redemptions,
    NotFoundError,
    ExhaustedError,
    InvalidStateError,
    BlackoutError,
    InsufficientPermissionsError,
)


def local(*args):
    return timezone.make_aware(datetime(*args))


def _set_status(subscription, status):
    Subscription.objects.filter(id=subscription.id).update(status=status)


@pytest.mark.django_db
class TestRemaining:

    def test_fresh_subscription_has_full_allowance(self, active_subscription):
        assert remaining(active_subscription) == 3

    def test_counts_down(self, active_subscription):
        active_subscription.redemptions_used = 2

        assert remaining(active_subscription) == 1

    def test_counter_above_allowance_reports_zero(self, active_subscription):
        active_subscription.redemptions_used = 5

        assert remaining(active_subscription) == 0


@pytest.mark.django_db
class TestRedeem:

    def test_redeem_records_row_and_counts(self, active_subscription, owner):
        redemption = redeem(subscription_id=active_subscription.id, staff=owner)

        active_subscription.refresh_from_db()
        assert active_subscription.redemptions_used == 1
        assert remaining(active_subscription) == 2
        assert redemption.item_type == 'coffee'
        assert redemption.redeemed_by == owner
        assert Redemption.objects.filter(subscription=active_subscription).count() == 1

    def test_staff_member_can_redeem(self, active_subscription, staff_member, staff_user):
        redemption = redeem(subscription_id=active_subscription.id, staff=staff_user)

        assert redemption.redeemed_by == staff_user

    def test_custom_item_type(self, active_subscription, owner):
        redemption = redeem(subscription_id=active_subscription.id, item_type='flat white', staff=owner)

        assert redemption.item_type == 'flat white'

    def test_exhausted_after_allowance(self, active_subscription, owner):
        for _ in range(3):
            redeem(subscription_id=active_subscription.id, staff=owner)

        with pytest.raises(ExhaustedError):
            redeem(subscription_id=active_subscription.id, staff=owner)

        active_subscription.refresh_from_db()
        assert active_subscription.redemptions_used == 3
        assert Redemption.objects.filter(subscription=active_subscription).count() == 3

    @pytest.mark.parametrize('status', [
        SubscriptionStatus.PENDING,
        SubscriptionStatus.PAUSED,
        SubscriptionStatus.CANCELLED,
        SubscriptionStatus.EXPIRED,
    ])
    def test_only_active_subscriptions(self, active_subscription, owner, status):
        _set_status(active_subscription, status)

        with pytest.raises(InvalidStateError):
            redeem(subscription_id=active_subscription.id, staff=owner)

        assert not Redemption.objects.exists()

    def test_stranger_cannot_redeem(self, active_subscription, staff_user):
        """Staff accounts can only serve businesses they have joined."""
        with pytest.raises(InsufficientPermissionsError):
            redeem(subscription_id=active_subscription.id, staff=staff_user)

    def test_pending_invitation_is_not_membership(self, active_subscription, onboarded_business, staff_user):
        onboarded_business.staff.create(email=staff_user.email)

        with pytest.raises(InsufficientPermissionsError):
            redeem(subscription_id=active_subscription.id, staff=staff_user)

    def test_unknown_subscription(self, db, owner):
        with pytest.raises(NotFoundError):
            redeem(subscription_id=uuid.uuid4(), staff=owner)


@pytest.mark.django_db
class TestBlackoutEnforcement:

    @pytest.fixture
    def breakfast_blackout(self, product):
        product.blackout_times = [{'day': 'monday', 'start_time': '07:00', 'end_time': '09:00'}]
        product.save()
        return product

    def test_blocked_inside_window(self, breakfast_blackout, active_subscription, owner):
        with pytest.raises(BlackoutError):
            redeem(subscription_id=active_subscription.id, staff=owner, at=local(2026, 3, 9, 8, 15))

        active_subscription.refresh_from_db()
        assert active_subscription.redemptions_used == 0

    def test_allowed_outside_window(self, breakfast_blackout, active_subscription, owner):
        redemption = redeem(subscription_id=active_subscription.id, staff=owner, at=local(2026, 3, 9, 9, 0))

        assert redemption.redeemed_at == local(2026, 3, 9, 9, 0)

    def test_enforcement_can_be_switched_off(self, settings, breakfast_blackout, active_subscription, owner):
        settings.SUBSCRIPTIONS_ENFORCE_BLACKOUT_TIMES = False

        redeem(subscription_id=active_subscription.id, staff=owner, at=local(2026, 3, 9, 8, 15))

        active_subscription.refresh_from_db()
        assert active_subscription.redemptions_used == 1

    def test_state_checked_before_blackout(self, breakfast_blackout, active_subscription, owner):
        _set_status(active_subscription, SubscriptionStatus.PAUSED)

        with pytest.raises(InvalidStateError):
            redeem(subscription_id=active_subscription.id, staff=owner, at=local(2026, 3, 9, 8, 15))


@pytest.mark.django_db
class TestUndo:

    def test_undo_restores_allowance(self, active_subscription, owner):
        redemption = redeem(subscription_id=active_subscription.id, staff=owner)

        undone = undo(redemption_id=redemption.id, staff=owner)

        active_subscription.refresh_from_db()
        assert active_subscription.redemptions_used == 0
        assert undone.is_undone
        assert undone.undone_by == owner
        assert Redemption.objects.filter(id=redemption.id).exists()

    def test_undo_after_exhaustion_allows_one_more(self, active_subscription, owner):
        redemptions = [redeem(subscription_id=active_subscription.id, staff=owner) for _ in range(3)]

        undo(redemption_id=redemptions[0].id, staff=owner)

        redeem(subscription_id=active_subscription.id, staff=owner)
        with pytest.raises(ExhaustedError):
            redeem(subscription_id=active_subscription.id, staff=owner)

    def test_cannot_undo_twice(self, active_subscription, owner):
        redemption = redeem(subscription_id=active_subscription.id, staff=owner)
        redeem(subscription_id=active_subscription.id, staff=owner)
        undo(redemption_id=redemption.id, staff=owner)

        with pytest.raises(NotFoundError):
            undo(redemption_id=redemption.id, staff=owner)

        active_subscription.refresh_from_db()
        assert active_subscription.redemptions_used == 1

    def test_counter_never_goes_negative(self, active_subscription, owner):
        redemption = redeem(subscription_id=active_subscription.id, staff=owner)
        # A period rollover has already reset the counter
        Subscription.objects.filter(id=active_subscription.id).update(redemptions_used=0)

        undo(redemption_id=redemption.id, staff=owner)

        active_subscription.refresh_from_db()
        assert active_subscription.redemptions_used == 0

    def test_undo_from_previous_period_keeps_current_allowance(self, active_subscription, owner):
        earlier = redeem(subscription_id=active_subscription.id, staff=owner)
        # Roll the subscription into a new period after the first redemption
        Redemption.objects.filter(id=earlier.id).update(
            redeemed_at=active_subscription.current_period_start - timedelta(days=7)
        )
        Subscription.objects.filter(id=active_subscription.id).update(redemptions_used=0)
        for _ in range(3):
            redeem(subscription_id=active_subscription.id, staff=owner)

        undone = undo(redemption_id=earlier.id, staff=owner)

        assert undone.is_undone
        active_subscription.refresh_from_db()
        assert active_subscription.redemptions_used == 3
        with pytest.raises(ExhaustedError):
            redeem(subscription_id=active_subscription.id, staff=owner)

    def test_stranger_cannot_undo(self, active_subscription, owner, staff_user):
        redemption = redeem(subscription_id=active_subscription.id, staff=owner)

        with pytest.raises(InsufficientPermissionsError):
            undo(redemption_id=redemption.id, staff=staff_user)

        active_subscription.refresh_from_db()
        assert active_subscription.redemptions_used == 1


@pytest.mark.django_db
class TestListRedemptions:

    def test_undone_hidden_by_default(self, active_subscription, owner):
        kept = redeem(subscription_id=active_subscription.id, staff=owner)
        reverted = redeem(subscription_id=active_subscription.id, staff=owner)
        undo(redemption_id=reverted.id, staff=owner)

        assert list(list_redemptions(subscription_id=active_subscription.id)) == [kept]
        assert list_redemptions(subscription_id=active_subscription.id, include_undone=True).count() == 2
