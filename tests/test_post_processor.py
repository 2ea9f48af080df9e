"""
Tests for per-run post-processing: exact dedup, date ordering, balance backfill.
"""

from statement_engine.models import SourceType
from statement_engine.processing.post_processor import (
    backfill_balance,
    post_process,
    remove_exact_duplicates,
    sort_by_date,
)


class TestExactDuplicates:

    def test_first_occurrence_is_kept(self, make_transaction):
        first = make_transaction(description="Coffee")
        again = make_transaction(description="Coffee")
        other = make_transaction(description="Tea")

        unique = remove_exact_duplicates([first, again, other])

        assert unique == [first, other]

    def test_amount_side_is_part_of_the_key(self, make_transaction):
        debit = make_transaction(debit_amount=50.0)
        credit = make_transaction(debit_amount=0.0, credit_amount=50.0)

        assert len(remove_exact_duplicates([debit, credit])) == 2


class TestOrdering:

    def test_sorted_by_iso_date_and_stable(self, make_transaction):
        late = make_transaction(date="2024-02-01", description="late")
        early_a = make_transaction(date="2024-01-01", description="early a")
        early_b = make_transaction(date="2024-01-01", description="early b")

        ordered = sort_by_date([late, early_a, early_b])

        assert [t.description for t in ordered] == ["early a", "early b", "late"]


class TestBalanceBackfill:

    def test_running_balance_from_zero(self, make_transaction):
        transactions = [
            make_transaction(date="2024-01-01", credit_amount=100.0, debit_amount=0.0),
            make_transaction(date="2024-01-02", debit_amount=30.25),
            make_transaction(date="2024-01-03", debit_amount=0.0, credit_amount=10.0, balance=999.0),
        ]

        result = backfill_balance(transactions)

        assert [t.balance for t in result] == [100.0, 69.75, 79.75]

    def test_untouched_when_first_balance_is_known(self, make_transaction):
        transactions = [
            make_transaction(balance=0.0),
            make_transaction(date="2024-01-16", balance=None),
        ]

        result = backfill_balance(transactions)

        assert result[0].balance == 0.0
        assert result[1].balance is None

    def test_empty_list(self):
        assert backfill_balance([]) == []


class TestPostProcess:

    def test_dedup_sort_and_backfill(self, make_transaction):
        rent = make_transaction(date="2024-01-16", description="Rent", debit_amount=400.0)
        salary = make_transaction(date="2024-01-15", description="Salary", debit_amount=0.0, credit_amount=1000.0)

        result = post_process([rent, salary, rent], "jan.csv", SourceType.CSV)

        assert [t.description for t in result] == ["Salary", "Rent"]
        assert [t.balance for t in result] == [1000.0, 600.0]

    def test_is_idempotent(self, make_transaction):
        transactions = [
            make_transaction(date="2024-01-16", description="B"),
            make_transaction(date="2024-01-15", description="A"),
            make_transaction(date="2024-01-15", description="A"),
        ]

        once = post_process(transactions, "x.csv", SourceType.CSV)

        assert post_process(once, "x.csv", SourceType.CSV) == once

    def test_input_is_not_mutated(self, make_transaction):
        transaction = make_transaction(balance=None)

        post_process([transaction])

        assert transaction.balance is None

    def test_fills_missing_provenance(self, make_transaction):
        bare = make_transaction(source_file="", source_type=SourceType.MANUAL)
        tagged = make_transaction(description="Other", source_file="a.pdf", source_type=SourceType.PDF)

        result = post_process([bare, tagged], "upload.pdf", SourceType.PDF)

        assert result[0].source_file == "upload.pdf"
        assert result[0].source_type == SourceType.PDF
        assert result[1].source_file == "a.pdf"
