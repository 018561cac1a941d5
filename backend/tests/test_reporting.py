# Overview: Pytest coverage for transaction summaries.

from junkshop.services import reporting_service
from junkshop.validation import TransactionFilter, parse_update_request


class TestTransactionSummary:
    def test_only_completed_money_counts(self, services, create_tx, caller_for, owner_a):
        caller = caller_for(owner_a)
        bought = create_tx(owner_a, type="buy")
        sold = create_tx(owner_a, type="sell", expenses=0)
        create_tx(owner_a, type="sell")
        services.transactions.mark_paid(caller, bought.id)
        services.transactions.mark_paid(caller, sold.id)

        summary = reporting_service.transaction_summary(services.transactions, caller)

        assert summary["count"] == 3
        assert summary["by_status"]["completed"] == 2
        assert summary["by_status"]["for-payment"] == 1
        assert summary["by_type"] == {"buy": 1, "sell": 2}
        assert summary["completed_totals"] == {"buy": 815.0, "sell": 765.0}
        assert summary["completed_expenses"] == 50.0
        assert summary["completed_weight"] == 5.0
        assert summary["net"] == -50.0

    def test_cancelled_only_counted(self, services, create_tx, caller_for, owner_a):
        caller = caller_for(owner_a)
        tx = create_tx(owner_a)
        services.transactions.update(caller, parse_update_request(tx.id, {"status": "cancelled"}))

        summary = reporting_service.transaction_summary(services.transactions, caller)

        assert summary["by_status"]["cancelled"] == 1
        assert summary["completed_totals"]["buy"] == 0.0

    def test_employee_summary_is_own_scope(self, services, create_tx, caller_for, employee_a, employee_a2):
        create_tx(employee_a)
        create_tx(employee_a2)

        summary = reporting_service.transaction_summary(services.transactions, caller_for(employee_a))

        assert summary["scope"] == "own"
        assert summary["count"] == 1

    def test_filter_is_applied(self, services, create_tx, caller_for, owner_a):
        create_tx(owner_a, type="buy")
        create_tx(owner_a, type="sell")

        summary = reporting_service.transaction_summary(
            services.transactions, caller_for(owner_a), TransactionFilter(type="sell")
        )

        assert summary["count"] == 1
        assert summary["by_type"]["buy"] == 0

    def test_summary_route(self, client, manager_a, employee_a, create_tx, headers_for, business_a):
        create_tx(employee_a)

        response = client.get('/api/transactions/summary', headers=headers_for(manager_a))

        assert response.status_code == 200
        assert response.json['business_id'] == business_a.id
        assert response.json['scope'] == 'business'
        assert response.json['count'] == 1
