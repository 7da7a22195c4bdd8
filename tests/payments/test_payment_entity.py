import pytest

from domain.common.exceptions import DomainValidationException
from domain.payment import Payment, PaymentErrorKind, PaymentStatus, RefundPlan, RefundStatus, to_minor_units


def _paid(amount=500, refund_amount=0, status=PaymentStatus.PAID, gateway_payment_id="pay_1"):
    return Payment(
        id="p1",
        user_id="u1",
        gateway_order_id="order_1",
        amount=amount,
        status=status,
        refund_amount=refund_amount,
        gateway_payment_id=gateway_payment_id,
    )


def test_minor_units():
    assert to_minor_units(500) == 50000
    assert to_minor_units(1) == 100


def test_amount_must_be_positive():
    with pytest.raises(DomainValidationException):
        Payment(id=None, user_id="u1", gateway_order_id="order_1", amount=0)


def test_refund_amount_cannot_exceed_amount():
    with pytest.raises(DomainValidationException):
        _paid(amount=100, refund_amount=101)


def test_plan_partial_then_full_refund():
    plan = _paid().plan_refund(200)
    assert isinstance(plan, RefundPlan)
    assert plan.amount == 200
    assert plan.new_status == PaymentStatus.PARTIALLY_REFUNDED
    assert plan.refund_status == RefundStatus.PARTIAL

    rest = _paid(refund_amount=200, status=PaymentStatus.PARTIALLY_REFUNDED).plan_refund(None)
    assert rest.amount == 300
    assert rest.new_status == PaymentStatus.REFUNDED
    assert rest.new_refund_amount == 500
    assert rest.expected_refund_amount == 200


def test_plan_clamps_to_remaining():
    plan = _paid(refund_amount=450, status=PaymentStatus.PARTIALLY_REFUNDED).plan_refund(1000)
    assert plan.amount == 50
    assert plan.new_status == PaymentStatus.REFUNDED


@pytest.mark.parametrize(
    "payment, kind",
    [
        (_paid(status=PaymentStatus.CREATED, gateway_payment_id=None), PaymentErrorKind.NOT_REFUNDABLE),
        (_paid(status=PaymentStatus.FAILED), PaymentErrorKind.NOT_REFUNDABLE),
        (_paid(status=PaymentStatus.REFUNDED, refund_amount=500), PaymentErrorKind.ALREADY_REFUNDED),
        (_paid(gateway_payment_id=None), PaymentErrorKind.MISSING_GATEWAY_REFERENCE),
    ],
)
def test_refund_preconditions(payment, kind):
    error = payment.plan_refund(None)
    assert error.kind == kind


def test_refund_amount_below_one_rejected():
    assert _paid().plan_refund(0).kind == PaymentErrorKind.INVALID_AMOUNT


def test_verification_replay_requires_same_gateway_payment():
    payment = _paid()
    assert payment.check_verification_replay("pay_1") is None
    assert payment.check_verification_replay("pay_other").kind == PaymentErrorKind.INVALID_TRANSITION
    failed = _paid(status=PaymentStatus.FAILED)
    assert failed.check_verification_replay("pay_1").kind == PaymentErrorKind.INVALID_TRANSITION


def test_transitions_only_move_forward():
    assert _paid(status=PaymentStatus.CREATED).can_transition(PaymentStatus.PAID)
    assert not _paid().can_transition(PaymentStatus.CREATED)
    assert not _paid(status=PaymentStatus.REFUNDED, refund_amount=500).can_transition(PaymentStatus.PAID)
