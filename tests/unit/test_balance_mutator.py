"""Unit tests for atomic balance movements"""

import threading
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from lumabank.domain.exceptions import (
    AccountNotApproved,
    AccountNotFound,
    InsufficientFunds,
    ReceiverNotEligible,
    SelfTransferDenied,
    TransactionAborted,
)
from lumabank.domain.models import MovementDraft, TransactionStatus, TransactionType
from lumabank.infrastructure.database.models import BankTransaction
from lumabank.infrastructure.database.repositories import AccountRepository, TransactionRepository
from lumabank.services.balance import BalanceMutator, generate_transaction_ref


def _internal(sender_user, receiver_account, amount_cents):
    return MovementDraft(
        type=TransactionType.INTERNAL,
        status=TransactionStatus.COMPLETED,
        amount_cents=amount_cents,
        ref_prefix="TRF",
        debit_user_id=sender_user.id,
        credit_account_number=receiver_account.account_number,
        receiver_account=receiver_account.account_number,
    )


def _balance(db, account):
    db.expire_all()
    return AccountRepository(db).current_balance(account.id)


def _ledger_rows(db):
    return db.execute(select(func.count()).select_from(BankTransaction)).scalar_one()


def test_internal_transfer_conserves_money(db, make_customer):
    """Test debit and credit land together and the bank-wide total is unchanged"""
    alice, alice_account = make_customer("alice@example.com", balance=Decimal("100.00"))
    bob, bob_account = make_customer("bob@example.com", balance=Decimal("5.00"))

    txn = BalanceMutator(db).apply(_internal(alice, bob_account, 3000))

    assert _balance(db, alice_account) == 7000
    assert _balance(db, bob_account) == 3500
    assert txn.status == "completed"
    assert txn.completed_at is not None
    assert txn.sender_account == alice_account.account_number
    assert txn.receiver_account == bob_account.account_number
    assert txn.transaction_ref.startswith("TRF-")


def test_insufficient_funds_changes_nothing(db, make_customer):
    alice, alice_account = make_customer("alice@example.com", balance=Decimal("10.00"))
    _, bob_account = make_customer("bob@example.com")

    with pytest.raises(InsufficientFunds) as exc_info:
        BalanceMutator(db).apply(_internal(alice, bob_account, 2000))

    assert exc_info.value.available == Decimal("10.00")
    assert exc_info.value.requested == Decimal("20.00")
    assert _balance(db, alice_account) == 1000
    assert _balance(db, bob_account) == 0
    assert _ledger_rows(db) == 0


def test_second_debit_of_same_funds_is_rejected(db, make_customer):
    """Test two 80.00 debits from 100.00: one succeeds, one fails, balance ends at 20.00"""
    alice, alice_account = make_customer("alice@example.com", balance=Decimal("100.00"))
    _, bob_account = make_customer("bob@example.com")
    mutator = BalanceMutator(db)

    mutator.apply(_internal(alice, bob_account, 8000))
    with pytest.raises(InsufficientFunds):
        mutator.apply(_internal(alice, bob_account, 8000))

    assert _balance(db, alice_account) == 2000
    assert _balance(db, bob_account) == 8000


def test_guarded_debit_refuses_to_overdraw(db, make_customer):
    """Test the conditional update rejects a debit the stored balance cannot cover"""
    _, account = make_customer(balance=Decimal("50.00"))
    repo = AccountRepository(db)

    assert repo.debit(account.id, 6000) is False
    assert repo.debit(account.id, 5000) is True
    db.commit()
    assert _balance(db, account) == 0


def test_stale_read_cannot_overdraw(db, make_customer, monkeypatch):
    """Test a balance change between the locked read and the write still raises InsufficientFunds"""
    alice, alice_account = make_customer("alice@example.com", balance=Decimal("100.00"))
    _, bob_account = make_customer("bob@example.com")
    repo = AccountRepository(db)
    original_debit = repo.debit

    def debit_after_concurrent_spend(account_id, amount_cents):
        # Another writer spends 90.00 after our balance check
        original_debit(account_id, 9000)
        return original_debit(account_id, amount_cents)

    mutator = BalanceMutator(db)
    mutator.accounts = repo
    monkeypatch.setattr(repo, "debit", debit_after_concurrent_spend)

    with pytest.raises(InsufficientFunds) as exc_info:
        mutator.apply(_internal(alice, bob_account, 8000))

    assert exc_info.value.available == Decimal("10.00")
    # The whole unit rolled back, including the simulated spend
    assert _balance(db, alice_account) == 10000
    assert _balance(db, bob_account) == 0


def test_storage_failure_aborts_whole_movement(db, make_customer, monkeypatch):
    """Test a failed ledger insert undoes the debit and credit already issued"""
    alice, alice_account = make_customer("alice@example.com", balance=Decimal("100.00"))
    _, bob_account = make_customer("bob@example.com")

    def failing_create(self, **fields):
        raise OperationalError("INSERT INTO bank_transaction", {}, Exception("database is locked"))

    monkeypatch.setattr(TransactionRepository, "create", failing_create)

    with pytest.raises(TransactionAborted):
        BalanceMutator(db).apply(_internal(alice, bob_account, 3000))

    assert _balance(db, alice_account) == 10000
    assert _balance(db, bob_account) == 0


def test_self_transfer_is_denied(db, make_customer):
    alice, alice_account = make_customer(balance=Decimal("100.00"))
    with pytest.raises(SelfTransferDenied):
        BalanceMutator(db).apply(_internal(alice, alice_account, 1000))
    assert _balance(db, alice_account) == 10000


def test_unapproved_receiver_is_not_eligible(db, make_customer):
    alice, alice_account = make_customer("alice@example.com", balance=Decimal("100.00"))
    _, carol_account = make_customer("carol@example.com", approved=False)
    carol_account.account_number = "5555555555"
    db.commit()

    with pytest.raises(ReceiverNotEligible):
        BalanceMutator(db).apply(_internal(alice, carol_account, 1000))
    assert _balance(db, alice_account) == 10000


def test_unknown_receiver_account(db, make_customer):
    alice, _ = make_customer(balance=Decimal("100.00"))
    draft = MovementDraft(
        type=TransactionType.INTERNAL,
        status=TransactionStatus.COMPLETED,
        amount_cents=1000,
        ref_prefix="TRF",
        debit_user_id=alice.id,
        credit_account_number="9999999999",
    )
    with pytest.raises(AccountNotFound):
        BalanceMutator(db).apply(draft)


def test_pending_external_movement_debits_only(db, make_customer):
    alice, alice_account = make_customer(balance=Decimal("100.00"))
    draft = MovementDraft(
        type=TransactionType.EXTERNAL,
        status=TransactionStatus.PENDING,
        amount_cents=4000,
        ref_prefix="EXT",
        debit_user_id=alice.id,
        receiver_account="9876543210",
    )

    txn = BalanceMutator(db).apply(draft)

    assert _balance(db, alice_account) == 6000
    assert txn.status == "pending"
    assert txn.completed_at is None
    assert txn.receiver_account == "9876543210"
    assert txn.receiver_account_id is None


def test_deposit_credit_depends_on_status(db, make_customer):
    """Test completed deposits credit at once and pending deposits wait for settlement"""
    alice, alice_account = make_customer(balance=Decimal("0.00"))
    mutator = BalanceMutator(db)

    def deposit(status):
        return mutator.apply(
            MovementDraft(
                type=TransactionType.DEPOSIT,
                status=status,
                amount_cents=2500,
                ref_prefix="DEP",
                credit_user_id=alice.id,
                narration="Cash",
            )
        )

    completed = deposit(TransactionStatus.COMPLETED)
    assert _balance(db, alice_account) == 2500
    assert completed.sender_account_id is None

    pending = deposit(TransactionStatus.PENDING)
    assert _balance(db, alice_account) == 2500
    assert pending.receiver_account_id == alice_account.id


def test_deposit_into_unapproved_account_is_denied(db, make_customer):
    alice, alice_account = make_customer(approved=False)
    draft = MovementDraft(
        type=TransactionType.DEPOSIT,
        status=TransactionStatus.COMPLETED,
        amount_cents=1000,
        ref_prefix="DEP",
        credit_user_id=alice.id,
    )
    with pytest.raises(ReceiverNotEligible):
        BalanceMutator(db).apply(draft)
    assert _balance(db, alice_account) == 0


def test_transaction_refs_are_unique():
    refs = {generate_transaction_ref("TRF") for _ in range(200)}
    assert len(refs) == 200


def test_unapproved_sender_cannot_debit(db, make_customer):
    alice, alice_account = make_customer("alice@example.com", balance=Decimal("100.00"), approved=False)
    _, bob_account = make_customer("bob@example.com")

    with pytest.raises(AccountNotApproved):
        BalanceMutator(db).apply(_internal(alice, bob_account, 1000))
    assert _balance(db, alice_account) == 10000


def test_concurrent_debits_of_same_funds(db, make_customer, session_factory):
    """Test two 80.00 transfers racing from 100.00 on separate sessions: exactly one commits"""
    alice, alice_account = make_customer("alice@example.com", balance=Decimal("100.00"))
    _, bob_account = make_customer("bob@example.com")
    draft = _internal(alice, bob_account, 8000)
    barrier = threading.Barrier(2)
    outcomes = []

    def worker():
        session = session_factory()
        try:
            barrier.wait()
            BalanceMutator(session).apply(draft)
            outcomes.append("ok")
        except InsufficientFunds:
            outcomes.append("InsufficientFunds")
        finally:
            session.close()

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert sorted(outcomes) == ["InsufficientFunds", "ok"]
    assert _balance(db, alice_account) == 2000
    assert _balance(db, bob_account) == 8000
    assert _ledger_rows(db) == 1
