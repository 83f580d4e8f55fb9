"""Integration tests for API endpoints"""

import pytest
from typing import Dict
from fastapi.testclient import TestClient

pytestmark = pytest.mark.integration


def create_scheduled(client: TestClient, headers: Dict[str, str], amount: str = "100.00", count: int = 3) -> str:
    response = client.post(
        "/v1/transactions",
        json={
            "direction": "payable",
            "description": "Supplier invoice 1042",
            "amount": amount,
            "payment_method": "boleto",
            "schedule": {
                "num_installments": count,
                "first_due_date": "2024-01-10",
                "interval_days": 30,
                "emission_date": "2024-01-01",
            },
        },
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()["transaction_id"]


def installment_ids(client: TestClient, headers: Dict[str, str], transaction_id: str) -> list[str]:
    response = client.get(f"/v1/transactions/{transaction_id}", headers=headers)
    return [i["id"] for i in response.json()["installments"]]


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "payables_transactions_created_total" in response.text


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_missing_token_is_unauthorized(client: TestClient):
    assert client.get("/v1/transactions").status_code == 401
    assert client.get("/v1/transactions", headers={"Authorization": "Bearer nope"}).status_code == 401


def test_preview_schedule(client: TestClient, tenant_a_headers: Dict[str, str]):
    """Test POST /v1/schedules/preview"""
    response = client.post(
        "/v1/schedules/preview",
        json={"total": "100.00", "num_installments": 3, "first_due_date": "2024-04-01"},
        headers=tenant_a_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert [i["value"] for i in data["installments"]] == ["33.33", "33.33", "33.34"]
    assert [i["due_date"] for i in data["installments"]] == ["2024-04-01", "2024-05-01", "2024-05-31"]
    # Emission date defaults to the request date
    assert data["installments"][0]["emission_date"] == "2024-03-15"
    assert data["sum_check"]["exact"] is True


def test_preview_rejects_bad_input(client: TestClient, tenant_a_headers: Dict[str, str]):
    response = client.post(
        "/v1/schedules/preview",
        json={"total": "100.00", "num_installments": 0, "first_due_date": "2024-04-01"},
        headers=tenant_a_headers,
    )
    assert response.status_code == 422


def test_edit_schedule(client: TestClient, tenant_a_headers: Dict[str, str]):
    """Test POST /v1/schedules/edit reports drift without blocking"""
    preview = client.post(
        "/v1/schedules/preview",
        json={"total": "100.00", "num_installments": 3, "first_due_date": "2024-04-01"},
        headers=tenant_a_headers,
    ).json()

    response = client.post(
        "/v1/schedules/edit",
        json={
            "total": "100.00",
            "installments": preview["installments"],
            "operation": "set_value",
            "index": 0,
            "value": "50.00",
        },
        headers=tenant_a_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert [i["value"] for i in data["installments"]] == ["50.00", "33.33", "33.34"]
    assert data["sum_check"]["exact"] is False
    assert data["sum_check"]["within_tolerance"] is False

    removed = client.post(
        "/v1/schedules/edit",
        json={"total": "100.00", "installments": data["installments"], "operation": "remove", "index": 0},
        headers=tenant_a_headers,
    ).json()
    assert [i["installment_number"] for i in removed["installments"]] == [1, 2]
    assert [i["value"] for i in removed["installments"]] == ["33.33", "33.34"]


def test_edit_requires_operation_arguments(client: TestClient, tenant_a_headers: Dict[str, str]):
    preview = client.post(
        "/v1/schedules/preview",
        json={"total": "10.00", "num_installments": 1, "first_due_date": "2024-04-01"},
        headers=tenant_a_headers,
    ).json()

    response = client.post(
        "/v1/schedules/edit",
        json={"total": "10.00", "installments": preview["installments"], "operation": "set_value", "index": 0},
        headers=tenant_a_headers,
    )
    assert response.status_code == 422


def test_edit_cannot_remove_last_installment(client: TestClient, tenant_a_headers: Dict[str, str]):
    preview = client.post(
        "/v1/schedules/preview",
        json={"total": "10.00", "num_installments": 1, "first_due_date": "2024-04-01"},
        headers=tenant_a_headers,
    ).json()

    response = client.post(
        "/v1/schedules/edit",
        json={"total": "10.00", "installments": preview["installments"], "operation": "remove", "index": 0},
        headers=tenant_a_headers,
    )
    assert response.status_code == 409


def test_create_simple_transaction(client: TestClient, tenant_a_headers: Dict[str, str]):
    """Test POST /v1/transactions without a schedule"""
    response = client.post(
        "/v1/transactions",
        json={
            "direction": "receivable",
            "description": "Consulting March",
            "amount": "1500.00",
            "due_date": "2024-04-05",
        },
        headers=tenant_a_headers,
    )

    assert response.status_code == 201
    assert response.json()["installment_count"] == 0

    transaction = client.get(f"/v1/transactions/{response.json()['transaction_id']}", headers=tenant_a_headers).json()
    assert transaction["amount"] == "1500.00"
    assert transaction["effective_status"] == "pending"
    assert transaction["settlement_state"] == "created"
    assert transaction["installments"] == []


def test_create_scheduled_transaction(client: TestClient, tenant_a_headers: Dict[str, str]):
    """Test POST /v1/transactions with generated installments"""
    transaction_id = create_scheduled(client, tenant_a_headers)

    response = client.get(f"/v1/transactions/{transaction_id}", headers=tenant_a_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "pending"
    assert data["effective_status"] == "overdue"
    assert [i["installment_number"] for i in data["installments"]] == [1, 2, 3]
    assert [i["value"] for i in data["installments"]] == ["33.33", "33.33", "33.34"]
    assert {i["effective_status"] for i in data["installments"]} == {"overdue"}


def test_create_rejects_sum_mismatch(client: TestClient, tenant_a_headers: Dict[str, str]):
    """Edited installments must add up to the amount exactly"""
    response = client.post(
        "/v1/transactions",
        json={
            "direction": "payable",
            "description": "Supplier invoice 1043",
            "amount": "100.00",
            "installments": [
                {"installment_number": 1, "due_date": "2024-04-01", "value": "50.00", "emission_date": "2024-03-15"},
                {"installment_number": 2, "due_date": "2024-05-01", "value": "49.99", "emission_date": "2024-03-15"},
            ],
        },
        headers=tenant_a_headers,
    )

    assert response.status_code == 422
    assert response.json()["detail"]["scheduled"] == "99.99"
    assert client.get("/v1/transactions", headers=tenant_a_headers).json()["transactions"] == []


def test_list_transactions_is_tenant_scoped(
    client: TestClient, tenant_a_headers: Dict[str, str], tenant_b_headers: Dict[str, str]
):
    create_scheduled(client, tenant_a_headers)
    create_scheduled(client, tenant_a_headers, amount="60.00", count=2)
    create_scheduled(client, tenant_b_headers)

    data = client.get("/v1/transactions", headers=tenant_a_headers).json()
    assert data["tenant_id"] == "tenant-a"
    assert len(data["transactions"]) == 2

    limited = client.get("/v1/transactions?limit=1", headers=tenant_a_headers).json()
    assert len(limited["transactions"]) == 1


def test_get_transaction_errors(
    client: TestClient, tenant_a_headers: Dict[str, str], tenant_b_headers: Dict[str, str]
):
    transaction_id = create_scheduled(client, tenant_a_headers)

    assert client.get(f"/v1/transactions/{transaction_id}", headers=tenant_b_headers).status_code == 403
    assert client.get("/v1/transactions/00000000-0000-0000-0000-000000000000", headers=tenant_a_headers).status_code == 404
    assert client.get("/v1/transactions/not-a-uuid", headers=tenant_a_headers).status_code == 400


def test_pay_installment_rolls_up(client: TestClient, tenant_a_headers: Dict[str, str]):
    """Test POST /v1/installments/{id}/pay"""
    transaction_id = create_scheduled(client, tenant_a_headers, count=2)
    first, second = installment_ids(client, tenant_a_headers, transaction_id)

    response = client.post(f"/v1/installments/{first}/pay", headers=tenant_a_headers)
    assert response.status_code == 200
    assert response.json()["already_paid"] is False
    assert response.json()["transaction_status"] == "pending"

    response = client.post(f"/v1/installments/{second}/pay", headers=tenant_a_headers)
    assert response.json()["transaction_status"] == "paid"

    transaction = client.get(f"/v1/transactions/{transaction_id}", headers=tenant_a_headers).json()
    assert transaction["status"] == "paid"
    assert transaction["settlement_state"] == "settled"


def test_pay_installment_is_idempotent(
    client: TestClient, tenant_a_headers: Dict[str, str], notifier
):
    transaction_id = create_scheduled(client, tenant_a_headers, count=2)
    first, _ = installment_ids(client, tenant_a_headers, transaction_id)

    client.post(f"/v1/installments/{first}/pay", headers=tenant_a_headers)
    events = len(notifier.events)
    response = client.post(f"/v1/installments/{first}/pay", headers=tenant_a_headers)

    assert response.status_code == 200
    assert response.json()["already_paid"] is True
    assert len(notifier.events) == events


def test_pay_foreign_installment_is_forbidden(
    client: TestClient, tenant_a_headers: Dict[str, str], tenant_b_headers: Dict[str, str]
):
    transaction_id = create_scheduled(client, tenant_a_headers)
    first = installment_ids(client, tenant_a_headers, transaction_id)[0]

    response = client.post(f"/v1/installments/{first}/pay", headers=tenant_b_headers)
    assert response.status_code == 403

    installment = client.get(f"/v1/transactions/{transaction_id}", headers=tenant_a_headers).json()["installments"][0]
    assert installment["status"] == "pending"


def test_pay_unknown_installment(client: TestClient, tenant_a_headers: Dict[str, str]):
    response = client.post("/v1/installments/00000000-0000-0000-0000-000000000000/pay", headers=tenant_a_headers)
    assert response.status_code == 404


def test_list_installments_by_status(client: TestClient, tenant_a_headers: Dict[str, str]):
    """Test GET /v1/installments?status="""
    transaction_id = create_scheduled(client, tenant_a_headers)
    first = installment_ids(client, tenant_a_headers, transaction_id)[0]
    client.post(f"/v1/installments/{first}/pay", headers=tenant_a_headers)

    paid = client.get("/v1/installments?status=paid", headers=tenant_a_headers).json()["installments"]
    overdue = client.get("/v1/installments?status=overdue", headers=tenant_a_headers).json()["installments"]

    assert [i["id"] for i in paid] == [first]
    assert len(overdue) == 2


def test_delete_transaction(
    client: TestClient, tenant_a_headers: Dict[str, str], tenant_b_headers: Dict[str, str]
):
    """Test DELETE /v1/transactions/{id}"""
    transaction_id = create_scheduled(client, tenant_a_headers)

    assert client.delete(f"/v1/transactions/{transaction_id}", headers=tenant_b_headers).status_code == 403

    response = client.delete(f"/v1/transactions/{transaction_id}", headers=tenant_a_headers)
    assert response.status_code == 204

    assert client.get(f"/v1/transactions/{transaction_id}", headers=tenant_a_headers).status_code == 404
    assert client.get("/v1/installments", headers=tenant_a_headers).json()["installments"] == []


def test_change_events_are_sent(client: TestClient, tenant_a_headers: Dict[str, str], notifier):
    transaction_id = create_scheduled(client, tenant_a_headers, count=1)
    first = installment_ids(client, tenant_a_headers, transaction_id)[0]
    client.post(f"/v1/installments/{first}/pay", headers=tenant_a_headers)
    client.delete(f"/v1/transactions/{transaction_id}", headers=tenant_a_headers)

    assert [e["change"] for e in notifier.events] == ["transaction.created", "installment.paid", "transaction.deleted"]
    assert all(e["tenant_id"] == "tenant-a" for e in notifier.events)
    assert all(e["transaction_id"] == transaction_id for e in notifier.events)


def test_dashboard_kpis(client: TestClient, tenant_a_headers: Dict[str, str], tenant_b_headers: Dict[str, str]):
    """Test GET /v1/dashboard/kpis"""
    create_scheduled(client, tenant_a_headers)
    client.post(
        "/v1/transactions",
        json={"direction": "receivable", "description": "Consulting", "amount": "250.00", "due_date": "2024-04-01"},
        headers=tenant_a_headers,
    )
    create_scheduled(client, tenant_b_headers, amount="999.00")

    response = client.get("/v1/dashboard/kpis", headers=tenant_a_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["open_payable"] == "100.00"
    assert data["open_receivable"] == "250.00"
    assert data["overdue_installments"] == 3
    assert data["overdue_transactions"] == 1


def test_dashboard_views(client: TestClient, tenant_a_headers: Dict[str, str]):
    create_scheduled(client, tenant_a_headers)

    aging = client.get("/v1/dashboard/aging", headers=tenant_a_headers).json()
    assert [b["label"] for b in aging] == ["0-30", "31-60", "61-90", "90+"]

    status = {b["status"]: b["count"] for b in client.get("/v1/dashboard/installments/status", headers=tenant_a_headers).json()}
    assert status["overdue"] == 3

    timeline = client.get("/v1/dashboard/installments/timeline?months=3", headers=tenant_a_headers).json()
    assert [p["month"] for p in timeline] == ["2024-01", "2024-02", "2024-03"]

    categories = client.get("/v1/dashboard/categories", headers=tenant_a_headers).json()
    assert categories == [{"category": "suppliers", "amount": "100.00"}]

    cash_flow = client.get("/v1/dashboard/cash-flow", headers=tenant_a_headers).json()
    assert len(cash_flow) == 6
    assert cash_flow[-1]["month"] == "2024-03"


def test_cash_flow_rejects_inverted_range(client: TestClient, tenant_a_headers: Dict[str, str]):
    response = client.get("/v1/dashboard/cash-flow?start=2024-03-01&end=2024-01-01", headers=tenant_a_headers)
    assert response.status_code == 400


def test_list_transactions_filters(client: TestClient, tenant_a_headers: Dict[str, str]):
    """Test GET /v1/transactions with direction, status, search and date filters"""
    payable_id = create_scheduled(client, tenant_a_headers)
    client.post(
        "/v1/transactions",
        json={"direction": "receivable", "description": "Consulting March", "amount": "250.00", "due_date": "2024-04-01"},
        headers=tenant_a_headers,
    )

    def ids(query: str) -> list[str]:
        response = client.get(f"/v1/transactions?{query}", headers=tenant_a_headers)
        assert response.status_code == 200
        return [t["id"] for t in response.json()["transactions"]]

    receivables = client.get("/v1/transactions?direction=receivable", headers=tenant_a_headers).json()["transactions"]
    assert [t["description"] for t in receivables] == ["Consulting March"]

    assert ids("direction=payable") == [payable_id]
    assert ids("status=overdue") == [payable_id]
    assert len(ids("status=pending")) == 1
    assert ids("status=paid") == []
    assert ids("search=SUPPLIER") == [payable_id]
    assert ids("search=nothing-like-this") == []
    assert len(ids("created_from=2000-01-01")) == 2
    assert ids("created_to=2000-01-01") == []
    assert len(ids("status=overdue&limit=1")) == 1


def test_list_transactions_rejects_inverted_created_range(client: TestClient, tenant_a_headers: Dict[str, str]):
    response = client.get("/v1/transactions?created_from=2024-03-01&created_to=2024-01-01", headers=tenant_a_headers)
    assert response.status_code == 400


def test_list_installments_search(client: TestClient, tenant_a_headers: Dict[str, str]):
    """Test GET /v1/installments?search= on description or installment number"""
    create_scheduled(client, tenant_a_headers)
    client.post(
        "/v1/transactions",
        json={
            "direction": "payable",
            "description": "Office rent Q1",
            "amount": "60.00",
            "schedule": {"num_installments": 2, "first_due_date": "2024-04-01"},
        },
        headers=tenant_a_headers,
    )

    def search(term: str) -> list:
        return client.get(f"/v1/installments?search={term}", headers=tenant_a_headers).json()["installments"]

    assert len(search("rent")) == 2
    assert len(search("Supplier")) == 3
    assert sorted(i["installment_number"] for i in search("3")) == [3]
