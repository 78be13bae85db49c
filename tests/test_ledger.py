import pytest

from chickfarm.core.errors import InsufficientFunds, InvalidTransition, NotFound
from chickfarm.services.ledger.service import ledger_service


async def test_debit_never_goes_negative(session, make_account):
    acc = await make_account(balance_cents=1_000)

    with pytest.raises(InsufficientFunds):
        await ledger_service.debit(session, acc.id, 1_001)
    assert await ledger_service.balance(session, acc.id) == 1_000

    assert await ledger_service.debit(session, acc.id, 1_000) == 0
    assert await ledger_service.credit(session, acc.id, 250) == 250


async def test_adjust_is_signed(session, make_account):
    acc = await make_account(balance_cents=500)

    assert await ledger_service.adjust(session, acc.id, -200) == 300
    assert await ledger_service.adjust(session, acc.id, 700) == 1_000
    with pytest.raises(InsufficientFunds):
        await ledger_service.adjust(session, acc.id, -1_001)


@pytest.mark.parametrize("amount", [0, -5])
async def test_non_positive_amounts_rejected_before_mutation(session, make_account, amount):
    acc = await make_account(balance_cents=100)

    with pytest.raises(ValueError):
        await ledger_service.credit(session, acc.id, amount)
    with pytest.raises(ValueError):
        await ledger_service.debit(session, acc.id, amount)
    assert await ledger_service.balance(session, acc.id) == 100


async def test_unknown_account(session):
    with pytest.raises(NotFound):
        await ledger_service.credit(session, 999, 100)
    with pytest.raises(NotFound):
        await ledger_service.balance(session, 999)


async def test_transition_happens_once(session, make_account):
    acc = await make_account()
    await ledger_service.log(
        session, account_id=acc.id, type="recharge", amount_cents=100, status="pending", transaction_id="tx-1"
    )

    tx = await ledger_service.transition(session, transaction_id="tx-1", to_status="completed")
    assert tx.status == "completed"
    assert tx.processed_at is not None

    with pytest.raises(InvalidTransition):
        await ledger_service.transition(session, transaction_id="tx-1", to_status="rejected")
    assert (await ledger_service.get_transaction(session, "tx-1")).status == "completed"


async def test_transition_checks_type(session, make_account):
    acc = await make_account()
    await ledger_service.log(
        session, account_id=acc.id, type="withdrawal", amount_cents=100, status="pending", transaction_id="w-1"
    )

    with pytest.raises(InvalidTransition):
        await ledger_service.transition(
            session, transaction_id="w-1", to_status="completed", expected_type="recharge"
        )
    with pytest.raises(NotFound):
        await ledger_service.transition(session, transaction_id="nope", to_status="completed")


async def test_log_rejects_unknown_type(session, make_account):
    acc = await make_account()
    with pytest.raises(ValueError):
        await ledger_service.log(session, account_id=acc.id, type="gift", amount_cents=1)
