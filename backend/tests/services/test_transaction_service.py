from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from dinheiros.errors import InsufficientFundsError, InvalidRequestError, NotFoundError, PersistenceError
from dinheiros.models_sqlalchemy.models import AccountShare, Category, Transaction, TransactionType
from dinheiros.services.account_repository import AccountRepository
from dinheiros.services.pdf_extractors import ParsedTransaction
from dinheiros.services.transaction_service import TransactionService, balance_deltas


def balance(db, account):
    return AccountRepository(db).get_balance(account.id)


def transaction_count(db):
    return db.query(Transaction).count()


def test_balance_deltas():
    assert balance_deltas(TransactionType.income, Decimal("10"), 1, None) == [(1, Decimal("10"))]
    assert balance_deltas(TransactionType.expense, Decimal("10"), 1, None) == [(1, Decimal("-10"))]
    assert balance_deltas(TransactionType.transfer, Decimal("10"), 1, 2) == [(1, Decimal("-10")), (2, Decimal("10"))]


def test_create_expense_debits_account(db, user, make_account, noon):
    account = make_account(user, balance="200.00")

    txn = TransactionService(db).create(user.id, account.id, Decimal("100"), "expense", date=noon)

    assert txn.id is not None
    stored = db.get(Transaction, txn.id)
    assert stored.amount == Decimal("100.00")
    assert stored.type == "expense"
    assert stored.account_id == account.id
    assert balance(db, account) == Decimal("100.00")


def test_create_income_credits_account(db, user, make_account, noon):
    account = make_account(user, balance="0.00")
    TransactionService(db).create(user.id, account.id, Decimal("0.10"), TransactionType.income, date=noon)
    TransactionService(db).create(user.id, account.id, Decimal("0.20"), TransactionType.income, date=noon)
    assert balance(db, account) == Decimal("0.30")


def test_insufficient_funds_leaves_everything_untouched(db, user, make_account, noon):
    account = make_account(user, balance="50.00")

    with pytest.raises(InsufficientFundsError):
        TransactionService(db).create(user.id, account.id, Decimal("100"), "expense", date=noon)

    assert transaction_count(db) == 0
    assert balance(db, account) == Decimal("50.00")


def test_transfer_moves_money_between_accounts(db, user, make_account, noon):
    src = make_account(user, name="Checking", balance="100.00")
    dst = make_account(user, name="Savings", balance="0.00")

    txn = TransactionService(db).create(
        user.id, src.id, Decimal("40"), "transfer", to_account_id=dst.id, date=noon
    )

    assert balance(db, src) == Decimal("60.00")
    assert balance(db, dst) == Decimal("40.00")
    rows = db.query(Transaction).all()
    assert len(rows) == 1
    assert rows[0].id == txn.id
    assert rows[0].to_account_id == dst.id


def test_transfer_rolls_back_when_destination_update_fails(db, user, make_account, noon, monkeypatch):
    src = make_account(user, name="Checking", balance="100.00")
    dst = make_account(user, name="Savings", balance="0.00")
    dst_id = dst.id
    original_update_balance = AccountRepository.update_balance

    def failing_update_balance(self, account_id, delta):
        if account_id == dst_id:
            raise OperationalError("UPDATE accounts", {}, Exception("disk I/O error"))
        return original_update_balance(self, account_id, delta)

    monkeypatch.setattr(AccountRepository, "update_balance", failing_update_balance)

    with pytest.raises(PersistenceError):
        TransactionService(db).create(user.id, src.id, Decimal("40"), "transfer", to_account_id=dst_id, date=noon)

    monkeypatch.undo()
    assert balance(db, src) == Decimal("100.00")
    assert balance(db, dst) == Decimal("0.00")
    assert transaction_count(db) == 0


@pytest.mark.parametrize("kwargs,message", [
    ({}, "destination account is required"),
    ({"to_account_id": "self"}, "same account"),
])
def test_transfer_validation(db, user, make_account, noon, kwargs, message):
    src = make_account(user, balance="100.00")
    if kwargs.get("to_account_id") == "self":
        kwargs = {"to_account_id": src.id}

    with pytest.raises(InvalidRequestError, match=message):
        TransactionService(db).create(user.id, src.id, Decimal("10"), "transfer", date=noon, **kwargs)
    assert balance(db, src) == Decimal("100.00")


def test_transfer_to_someone_elses_account_is_rejected(db, user, make_user, make_account, noon):
    src = make_account(user, balance="100.00")
    other = make_user(name="Bob", email="bob@mail.com")
    foreign = make_account(other, balance="0.00")

    with pytest.raises(NotFoundError):
        TransactionService(db).create(user.id, src.id, Decimal("10"), "transfer", to_account_id=foreign.id, date=noon)
    assert balance(db, foreign) == Decimal("0.00")


def test_create_on_account_not_owned(db, user, make_user, make_account, noon):
    other = make_user(name="Bob", email="bob@mail.com")
    foreign = make_account(other, balance="100.00")

    with pytest.raises(NotFoundError):
        TransactionService(db).create(user.id, foreign.id, Decimal("10"), "expense", date=noon)


@pytest.mark.parametrize("amount,kind", [
    (Decimal("0"), "expense"),
    (Decimal("-5"), "income"),
    ("abc", "income"),
    (Decimal("10"), "refund"),
])
def test_create_rejects_invalid_input(db, user, make_account, noon, amount, kind):
    account = make_account(user, balance="100.00")
    with pytest.raises(InvalidRequestError):
        TransactionService(db).create(user.id, account.id, amount, kind, date=noon)
    assert transaction_count(db) == 0


def test_create_rejects_fractions_of_a_cent(db, user, make_account, noon):
    account = make_account(user, balance="100.00")
    service = TransactionService(db)

    with pytest.raises(InvalidRequestError, match="two decimal places"):
        service.create(user.id, account.id, Decimal("10.005"), "expense", date=noon)
    assert transaction_count(db) == 0
    assert balance(db, account) == Decimal("100.00")

    txn = service.create(user.id, account.id, Decimal("10.500"), "expense", date=noon)
    assert db.get(Transaction, txn.id).amount == Decimal("10.50")
    assert balance(db, account) == Decimal("100.00") - db.get(Transaction, txn.id).amount


def test_create_requires_date(db, user, make_account):
    account = make_account(user, balance="100.00")
    with pytest.raises(InvalidRequestError, match="date"):
        TransactionService(db).create(user.id, account.id, Decimal("10"), "income")


def test_create_stores_dates_as_utc(db, user, make_account):
    account = make_account(user, balance="0.00")
    sao_paulo = timezone(timedelta(hours=-3))
    txn = TransactionService(db).create(
        user.id, account.id, Decimal("10"), "income", date=datetime(2023, 1, 1, 22, 0, tzinfo=sao_paulo)
    )
    stored = db.get(Transaction, txn.id)
    assert stored.date.replace(tzinfo=None) == datetime(2023, 1, 2, 1, 0)


def test_create_associates_only_own_categories(db, user, make_user, make_account, noon):
    account = make_account(user, balance="0.00")
    other = make_user(name="Bob", email="bob@mail.com")
    mine = Category(user_id=user.id, name="Salary", type="income")
    theirs = Category(user_id=other.id, name="Salary", type="income")
    db.add_all([mine, theirs])
    db.commit()

    txn = TransactionService(db).create(
        user.id, account.id, Decimal("10"), "income", category_ids=[mine.id, theirs.id], date=noon
    )

    assert [c.id for c in db.get(Transaction, txn.id).categories] == [mine.id]


def test_delete_expense_restores_balance(db, user, make_account, noon):
    account = make_account(user, balance="100.00")
    service = TransactionService(db)
    txn = service.create(user.id, account.id, Decimal("30"), "expense", date=noon)
    assert balance(db, account) == Decimal("70.00")

    service.delete(user.id, txn.id)

    assert balance(db, account) == Decimal("100.00")
    assert transaction_count(db) == 0


def test_delete_transfer_restores_both_balances(db, user, make_account, noon):
    src = make_account(user, name="Checking", balance="100.00")
    dst = make_account(user, name="Savings", balance="0.00")
    service = TransactionService(db)
    txn = service.create(user.id, src.id, Decimal("40"), "transfer", to_account_id=dst.id, date=noon)

    service.delete(user.id, txn.id)

    assert balance(db, src) == Decimal("100.00")
    assert balance(db, dst) == Decimal("0.00")


def test_delete_unknown_transaction(db, user):
    with pytest.raises(NotFoundError):
        TransactionService(db).delete(user.id, 999)


def test_update_is_not_supported(db, user):
    with pytest.raises(InvalidRequestError):
        TransactionService(db).update(user.id, 1, amount=Decimal("5"))


def test_balance_tracks_sum_of_postings(db, user, make_account, noon):
    account = make_account(user, balance="0.00")
    service = TransactionService(db)
    postings = [("income", "1000.10"), ("expense", "250.35"), ("income", "0.10"), ("expense", "0.20")]
    created = [service.create(user.id, account.id, Decimal(a), k, date=noon) for k, a in postings]
    service.delete(user.id, created[1].id)

    assert balance(db, account) == Decimal("999.90")


def test_import_transactions_posts_each_item(db, user, make_account, noon):
    account = make_account(user, balance="0.00")
    items = [
        {"amount": Decimal("500"), "type": "income", "description": "Salário", "date": noon},
        {"amount": Decimal("120.50"), "type": "expense", "description": "Mercado", "date": noon},
    ]

    created = TransactionService(db).import_transactions(user.id, account.id, items)

    assert [t.description for t in created] == ["Salário", "Mercado"]
    assert balance(db, account) == Decimal("379.50")


def test_list_by_account_includes_shared_accounts(db, user, make_user, make_account, noon):
    owner = make_user(name="Bob", email="bob@mail.com")
    account = make_account(owner, balance="0.00")
    TransactionService(db).create(owner.id, account.id, Decimal("15"), "income", date=noon)
    db.add(AccountShare(account_id=account.id, owner_user_id=owner.id, shared_user_id=user.id))
    db.commit()

    listed = TransactionService(db).list_by_account(user.id, account.id)

    assert [t.amount for t in listed] == [Decimal("15.00")]
    # Read-only: the shared user cannot post on it
    with pytest.raises(NotFoundError):
        TransactionService(db).create(user.id, account.id, Decimal("1"), "income", date=noon)


def test_search_filters(db, user, make_account):
    checking = make_account(user, name="Checking", balance="1000.00")
    savings = make_account(user, name="Savings", balance="0.00")
    service = TransactionService(db)
    service.create(user.id, checking.id, Decimal("50"), "expense", description="Padaria Central",
                   date=datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc))
    service.create(user.id, checking.id, Decimal("300"), "income", description="Freelance",
                   date=datetime(2024, 3, 15, 23, 30, tzinfo=timezone.utc))
    service.create(user.id, savings.id, Decimal("20"), "income", description="Juros",
                   date=datetime(2024, 4, 1, 9, 0, tzinfo=timezone.utc))

    found, total = service.search(user.id, description="padaria")
    assert total == 1 and found[0].description == "Padaria Central"

    found, total = service.search(user.id, types=["income"])
    assert [t.description for t in found] == ["Juros", "Freelance"]

    found, total = service.search(user.id, account_ids=[savings.id])
    assert [t.description for t in found] == ["Juros"]

    found, total = service.search(user.id, min_amount=Decimal("20"), max_amount=Decimal("50"))
    assert sorted(t.description for t in found) == ["Juros", "Padaria Central"]

    # end_date covers the whole day
    found, total = service.search(
        user.id,
        start_date=datetime(2024, 3, 1, tzinfo=timezone.utc),
        end_date=datetime(2024, 3, 15, tzinfo=timezone.utc),
    )
    assert [t.description for t in found] == ["Freelance", "Padaria Central"]

    found, total = service.search(user.id, page=2, page_size=2)
    assert total == 3
    assert [t.description for t in found] == ["Padaria Central"]


def test_dashboard_summary(db, user, make_account):
    now = datetime(2024, 5, 20, 12, 0, tzinfo=timezone.utc)
    checking = make_account(user, name="Checking", balance="100.00")
    savings = make_account(user, name="Savings", balance="50.00")
    service = TransactionService(db)
    service.create(user.id, checking.id, Decimal("10"), "expense", date=datetime(2024, 4, 10, tzinfo=timezone.utc))
    service.create(user.id, checking.id, Decimal("25"), "expense", date=datetime(2024, 5, 10, tzinfo=timezone.utc))
    service.create(user.id, savings.id, Decimal("200"), "income", date=datetime(2024, 5, 15, tzinfo=timezone.utc))
    for day in range(1, 5):
        service.create(user.id, savings.id, Decimal("1"), "income", date=datetime(2024, 5, day, 12, tzinfo=timezone.utc))

    total_balance, month_income, month_expense, recent = service.dashboard_summary(user.id, now=now)

    assert total_balance == Decimal("319.00")
    assert month_income == Decimal("204.00")
    assert month_expense == Decimal("25.00")
    assert len(recent) == 5
    assert recent[0].amount == Decimal("200.00")


def test_statistics_series(db, user, make_account):
    account = make_account(user, name="Checking", balance="0.00")
    food = Category(user_id=user.id, name="Food", type="expense")
    db.add(food)
    db.commit()
    service = TransactionService(db)
    service.create(user.id, account.id, Decimal("100"), "income", date=datetime(2024, 1, 5, tzinfo=timezone.utc))
    service.create(user.id, account.id, Decimal("30"), "expense", category_ids=[food.id],
                   date=datetime(2024, 1, 5, tzinfo=timezone.utc))
    service.create(user.id, account.id, Decimal("20"), "expense", category_ids=[food.id],
                   date=datetime(2024, 2, 7, tzinfo=timezone.utc))

    per_day = service.statistics("transactions-per-day", user.id)
    assert per_day == {"labels": ["2024-01-05", "2024-02-07"], "data": [2, 1]}

    by_month = service.statistics("amount-by-month", user.id)
    assert by_month == {"labels": ["2024-01", "2024-02"], "data": [Decimal("130.00"), Decimal("20.00")]}

    by_category = service.statistics("amount-by-category", user.id)
    assert by_category == {"labels": ["Food"], "data": [Decimal("50.00")]}

    by_account = service.statistics("amount-by-account", user.id, start_date=datetime(2024, 2, 1, tzinfo=timezone.utc))
    assert by_account == {"labels": ["Checking"], "data": [Decimal("20.00")]}

    flows = service.statistics("spent-and-gained-by-day", user.id)
    assert flows["labels"] == ["2024-01-05", "2024-02-07"]
    assert flows["spent"] == [Decimal("30.00"), Decimal("20.00")]
    assert flows["gained"] == [Decimal("100.00"), Decimal("0.00")]

    with pytest.raises(NotFoundError):
        service.statistics("amount-by-weekday", user.id)


def test_extract_from_pdf_applies_rules(db, user, make_account, monkeypatch):
    account = make_account(user, balance="0.00")
    service = TransactionService(db)
    transport = Category(user_id=user.id, name="Transporte", type="expense")
    db.add(transport)
    db.commit()
    service.rule_service.create_rule(user.id, "Uber", "regex", "^UBER", transport.id)

    extractor_calls = []

    def fake_extract_text(self, file_path):
        extractor_calls.append((self.key, file_path))
        return "01/08/2024\n000001\nUBER TRIP\n23,90 D\n100,00 C"

    monkeypatch.setattr(
        "dinheiros.services.pdf_extractors.base.StatementExtractor.extract_text", fake_extract_text
    )

    result = service.extract_from_pdf("upload.pdf", account.id, user.id)

    assert extractor_calls == [("caixa_extrato", "upload.pdf")]
    assert result == [ParsedTransaction(
        date=datetime(2024, 8, 1, tzinfo=timezone.utc),
        amount=Decimal("23.90"),
        type=TransactionType.expense,
        description="UBER TRIP",
        account_id=account.id,
        category_ids=[transport.id],
    )]
    # Extraction never posts anything
    assert transaction_count(db) == 0


def test_extract_from_pdf_unknown_extractor(db, user, make_account):
    account = make_account(user)
    with pytest.raises(InvalidRequestError, match="invalid extractor"):
        TransactionService(db).extract_from_pdf("upload.pdf", account.id, user.id, extractor_name="itau")
