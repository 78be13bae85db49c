import pytest

from chickfarm.core.errors import DuplicateTransaction, InsufficientFunds, InvalidTransition, NotFound
from chickfarm.services.ledger.service import ledger_service
from chickfarm.services.wallet.service import wallet_service

ADDRESS = "TXYZabcdefghijklmnopqrstuvwx12345"


async def test_withdrawal_debits_and_records_tax(session, make_account):
    acc = await make_account(balance_cents=10_000)

    tx = await wallet_service.request_withdrawal(session, acc.id, 4_000, ADDRESS)
    assert await ledger_service.balance(session, acc.id) == 6_000
    assert tx.status == "pending"
    assert tx.transaction_id.startswith("W")
    assert tx.meta["tax_cents"] == 200
    assert tx.meta["net_cents"] == 3_800
    assert tx.meta["usdt_address"] == ADDRESS


async def test_rejected_withdrawal_is_refunded_once(session, make_account):
    acc = await make_account(balance_cents=10_000)
    tx = await wallet_service.request_withdrawal(session, acc.id, 4_000, ADDRESS)

    rejected = await wallet_service.reject_transaction(session, tx.transaction_id)
    assert rejected.status == "rejected"
    assert await ledger_service.balance(session, acc.id) == 10_000

    with pytest.raises(InvalidTransition):
        await wallet_service.reject_transaction(session, tx.transaction_id)
    assert await ledger_service.balance(session, acc.id) == 10_000


async def test_complete_withdrawal(session, make_account):
    acc = await make_account(balance_cents=10_000)
    tx = await wallet_service.request_withdrawal(session, acc.id, 4_000, ADDRESS)

    done = await wallet_service.complete_withdrawal(session, tx.transaction_id)
    assert done.status == "completed"
    assert done.processed_at is not None
    assert await ledger_service.balance(session, acc.id) == 6_000

    with pytest.raises(InvalidTransition):
        await wallet_service.reject_transaction(session, tx.transaction_id)


async def test_withdrawal_validation(session, make_account):
    acc = await make_account(balance_cents=1_000)

    with pytest.raises(ValueError):
        await wallet_service.request_withdrawal(session, acc.id, 500, "not an address")
    with pytest.raises(ValueError):
        await wallet_service.request_withdrawal(session, acc.id, 0, ADDRESS)
    with pytest.raises(InsufficientFunds):
        await wallet_service.request_withdrawal(session, acc.id, 1_001, ADDRESS)
    assert await ledger_service.balance(session, acc.id) == 1_000
    assert await ledger_service.list_transactions(session, acc.id) == []


async def test_rejected_deposit_cannot_be_confirmed(session, make_account):
    acc = await make_account()
    await wallet_service.request_deposit(session, acc.id, 5_000, "tx-rej")

    await wallet_service.reject_transaction(session, "tx-rej")
    assert await ledger_service.balance(session, acc.id) == 0

    with pytest.raises(InvalidTransition):
        await wallet_service.confirm_deposit(session, "tx-rej")
    with pytest.raises(NotFound):
        await wallet_service.confirm_deposit(session, "tx-missing")
    assert await ledger_service.balance(session, acc.id) == 0


async def test_only_deposits_and_withdrawals_are_reviewed(session, make_account):
    acc = await make_account(balance_cents=1_000)
    purchase = await ledger_service.log(
        session, account_id=acc.id, type="purchase", amount_cents=500, status="pending"
    )

    with pytest.raises(InvalidTransition):
        await wallet_service.reject_transaction(session, purchase.transaction_id)
    with pytest.raises(InvalidTransition):
        await wallet_service.confirm_deposit(session, purchase.transaction_id)


async def test_deposit_request_validation(session, make_account):
    acc = await make_account()

    with pytest.raises(ValueError):
        await wallet_service.request_deposit(session, acc.id, -5, "tx-neg")
    with pytest.raises(ValueError):
        await wallet_service.request_deposit(session, acc.id, 100, "   ")


async def test_repeated_deposit_request_returns_same_row(session, make_account):
    acc = await make_account()
    other = await make_account()

    first = await wallet_service.request_deposit(session, acc.id, 5_000, "same-hash")
    again = await wallet_service.request_deposit(session, acc.id, 5_000, "same-hash")
    assert again.id == first.id
    assert len(await ledger_service.list_transactions(session, acc.id)) == 1

    with pytest.raises(DuplicateTransaction):
        await wallet_service.request_deposit(session, acc.id, 6_000, "same-hash")
    with pytest.raises(DuplicateTransaction):
        await wallet_service.request_deposit(session, other.id, 5_000, "same-hash")


async def test_reused_hash_is_reported_as_duplicate(game, make_account):
    acc = await make_account()
    other = await make_account()

    assert (await game.request_deposit(acc.id, 5_000, "hash-1")).ok
    repeat = await game.request_deposit(acc.id, 5_000, "hash-1")
    assert repeat.ok

    stolen = await game.request_deposit(other.id, 5_000, "hash-1")
    assert (stolen.ok, stolen.error) == (False, "duplicate_transaction")


async def test_withdrawal_tax_is_tunable(game, make_account):
    acc = await make_account(balance_cents=10_000)

    assert (await game.set_withdrawal_tax(10)).value == 10
    assert (await game.set_withdrawal_tax(101)).error == "invalid_input"

    tx = (await game.request_withdrawal(acc.id, 4_000, ADDRESS)).value
    assert (tx.meta["tax_percent"], tx.meta["tax_cents"], tx.meta["net_cents"]) == (10, 400, 3_600)
