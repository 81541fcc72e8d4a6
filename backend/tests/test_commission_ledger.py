"""
Commission ledger tests: mark-paid, summaries, and date-range queries.
"""

from datetime import timedelta

import pytest

from vendorpro.errors import AlreadyPaidError, AlreadyResolvedError, InvalidInputError, NotFoundError
from vendorpro.models.sales import OwnerDirect, SalesmanSale
from vendorpro.services import commission_rule_service, commission_service
from vendorpro.time_utils import utcnow

from conftest import item


@pytest.fixture
def approved_commission(db_session, manager, shop, salesman, phone, assigned_ten_percent):
    sale = manager.create(shop.id, SalesmanSale(salesman.id), [item(phone, 2, 10000)])
    manager.approve(sale.id)
    return sale.commission


class TestMarkPaid:
    def test_marks_once(self, db_session, approved_commission):
        paid = commission_service.mark_paid(approved_commission.id)

        assert paid.is_paid is True
        assert paid.paid_at is not None

    def test_second_call_fails_without_change(self, db_session, approved_commission):
        first = commission_service.mark_paid(approved_commission.id)
        paid_at = first.paid_at

        with pytest.raises(AlreadyPaidError):
            commission_service.mark_paid(approved_commission.id)

        db_session.expire_all()
        again = commission_service.get_commission(approved_commission.id)
        assert again.is_paid is True
        assert again.paid_at == paid_at
        assert again.amount_cents == 2000

    def test_unknown_commission(self, db_session):
        with pytest.raises(NotFoundError):
            commission_service.mark_paid(99999)


class TestRecordCommission:
    def test_owner_sale_cannot_earn(self, db_session, manager, shop, phone):
        sale = manager.create(shop.id, OwnerDirect(), [item(phone, 1, 10000)])

        with pytest.raises(InvalidInputError):
            commission_service.record_commission(sale, 100, None)
        db_session.rollback()

    def test_one_entry_per_sale(self, db_session, approved_commission):
        sale = approved_commission.sale

        with pytest.raises(AlreadyResolvedError):
            commission_service.record_commission(sale, 500, None)
        db_session.rollback()


class TestSummarize:
    def test_salesman_totals(self, db_session, manager, shop, salesman, phone, assigned_ten_percent):
        first = manager.create(shop.id, SalesmanSale(salesman.id), [item(phone, 2, 10000)])
        second = manager.create(shop.id, SalesmanSale(salesman.id), [item(phone, 1, 10000)])
        manager.create(shop.id, SalesmanSale(salesman.id), [item(phone, 1, 5000)])
        manager.approve(first.id)
        manager.approve(second.id)
        commission_service.mark_paid(first.commission.id)

        summary = commission_service.summarize(salesman_id=salesman.id)

        assert summary.approved_total_cents == 3000
        assert summary.paid_total_cents == 2000
        assert summary.unpaid_total_cents == 1000
        assert summary.pending_total_cents == 500
        assert summary.total_cents == 3500
        assert summary.approved_count == 2
        assert summary.pending_count == 1

    def test_pending_follows_current_rule(self, db_session, manager, shop, salesman, phone, assigned_ten_percent):
        manager.create(shop.id, SalesmanSale(salesman.id), [item(phone, 1, 10000)])
        assert commission_service.summarize(salesman_id=salesman.id).pending_total_cents == 1000

        commission_rule_service.update_rule(assigned_ten_percent.id, value=25)
        assert commission_service.summarize(salesman_id=salesman.id).pending_total_cents == 2500

    def test_recorded_amount_is_frozen(self, db_session, approved_commission, assigned_ten_percent, salesman):
        commission_rule_service.update_rule(assigned_ten_percent.id, value=50)

        summary = commission_service.summarize(salesman_id=salesman.id)
        assert summary.approved_total_cents == 2000

    def test_shop_scope(self, db_session, manager, shop, salesman, second_salesman, phone, assigned_ten_percent):
        a = manager.create(shop.id, SalesmanSale(salesman.id), [item(phone, 1, 10000)])
        b = manager.create(shop.id, SalesmanSale(second_salesman.id), [item(phone, 1, 10000)])
        manager.approve(a.id)
        manager.approve(b.id)

        summary = commission_service.summarize(shop_id=shop.id)
        assert summary.approved_count == 2
        assert summary.approved_total_cents == 1000

    def test_empty(self, db_session, salesman):
        summary = commission_service.summarize(salesman_id=salesman.id)

        assert summary.total_cents == 0
        assert summary.to_dict()["approved_count"] == 0

    def test_requires_exactly_one_scope(self, db_session, shop, salesman):
        with pytest.raises(InvalidInputError):
            commission_service.summarize()
        with pytest.raises(InvalidInputError):
            commission_service.summarize(salesman_id=salesman.id, shop_id=shop.id)


class TestDateRange:
    def test_inclusive_window(self, db_session, approved_commission, salesman):
        now = utcnow()
        result = commission_service.commissions_by_date_range(
            now - timedelta(hours=1), now + timedelta(hours=1), salesman_id=salesman.id,
        )

        assert result["total_commission_cents"] == 2000
        assert [c.id for c in result["commissions"]] == [approved_commission.id]

    def test_window_before_entries(self, db_session, approved_commission):
        now = utcnow()
        result = commission_service.commissions_by_date_range(
            now - timedelta(days=3), now - timedelta(days=2),
        )

        assert result["total_commission_cents"] == 0
        assert result["commissions"] == []

    def test_reversed_window(self, db_session):
        now = utcnow()
        with pytest.raises(InvalidInputError):
            commission_service.commissions_by_date_range(now, now - timedelta(days=1))
