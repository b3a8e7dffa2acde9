import asyncio
from datetime import date
from decimal import Decimal

import httpx
import pytest

from api_client import UNEXPECTED_RESPONSE, ApiClient, ApiError
from schemas import BudgetIn
from services.allocation_service import get_template
from services.expense_filter import ExpenseFilters
from services.form_controllers import (
    BudgetFormController,
    BudgetFormValues,
    EntityList,
    ExpenseListController,
    FormState,
    ToastNotifier,
)


def _client_with(handler, token="tok"):
    return ApiClient(token=token, base_url="http://test", transport=httpx.MockTransport(handler))


def _fail(client, coro_factory):
    async def run():
        async with client:
            await coro_factory(client)

    with pytest.raises(ApiError) as exc:
        asyncio.run(run())
    return exc.value


def test_string_detail_becomes_message():
    def handler(request):
        assert request.headers["Authorization"] == "Bearer tok"
        return httpx.Response(404, json={"detail": "Budget not found"})

    err = _fail(_client_with(handler), lambda c: c.get_budget(1, 5))
    assert err.status_code == 404
    assert err.message == "Budget not found"


def test_rule_error_carries_details():
    def handler(request):
        return httpx.Response(400, json={"detail": {
            "error": "Approving this expense would exceed the category budget",
            "details": {"remaining": "500.00"},
        }})

    err = _fail(_client_with(handler), lambda c: c.update_expense_status(1, 2, "approved"))
    assert err.message == "Approving this expense would exceed the category budget"
    assert err.details == {"remaining": "500.00"}


def test_validation_errors_are_joined():
    def handler(request):
        return httpx.Response(422, json={"detail": [
            {"loc": ["body", "title"], "msg": "String should have at least 3 characters"},
            {"loc": ["body", "amount"], "msg": "Input should be greater than 0"},
        ]})

    err = _fail(_client_with(handler), lambda c: c.list_expenses(1))
    assert err.status_code == 422
    assert err.message == "String should have at least 3 characters; Input should be greater than 0"


def test_unparseable_error_has_no_message():
    def handler(request):
        return httpx.Response(502, text="Bad gateway")

    err = _fail(_client_with(handler), lambda c: c.list_budgets(1))
    assert err.status_code == 502
    assert err.message is None
    assert str(err) == "Request failed (502)"


def test_network_failure_is_an_api_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    err = _fail(_client_with(handler), lambda c: c.list_budgets(1))
    assert err.status_code is None
    assert err.message == "Could not reach the server"


def test_requests_are_shaped_for_the_api():
    seen = []

    def handler(request):
        seen.append(request)
        if request.method == "DELETE":
            return httpx.Response(200, json={"status": "success"})
        return httpx.Response(200, json={"startup_call_id": 3, "budgets": []})

    async def run():
        async with _client_with(handler) as client:
            await client.budget_report(3, budget_id=9, date_from=date(2025, 1, 1), date_to=None)
            await client.delete_expense(3, 11)

    asyncio.run(run())
    report, delete = seen
    assert report.url.path == "/api/v1/startup-calls/3/budgets/report"
    assert dict(report.url.params) == {"budget_id": "9", "date_from": "2025-01-01"}
    assert delete.method == "DELETE"
    assert delete.url.path == "/api/v1/startup-calls/3/budgets/expenses/11"


def test_controllers_against_the_live_app(app_with_db, admin_token, call_id, make_budget_payload):
    transport = httpx.ASGITransport(app=app_with_db)

    async def run():
        async with ApiClient(token=admin_token, base_url="http://test", transport=transport) as api:
            notifier = ToastNotifier()
            budgets = EntityList()

            # new budget from a template
            form = BudgetFormController(
                api, budgets, notifier, call_id,
                template=get_template("startup-standard"), total_amount="20000",
            )
            form.set_field("title", "Pilot Budget")
            form.set_field("fiscal_year", "2025")
            assert form.remaining == Decimal("0")
            created = await form.submit()
            assert form.state == FormState.SETTLED
            assert notifier.last.title == "Budget Created"
            assert [b.id for b in budgets] == [created.id]
            assert [c.allocated_amount for c in created.categories] == [
                Decimal("8000"), Decimal("5000"), Decimal("3000"), Decimal("2000"), Decimal("2000"),
            ]

            # edit it: raise one line past the total, get blocked, then scale down
            form.set_category_field(0, "allocated_amount", "10000")
            assert not form.can_submit
            assert await form.submit() is None
            assert "allocation" in form.errors
            form.adjust_to_total()
            assert form.is_allocation_valid
            updated = await form.submit()
            assert updated.id == created.id
            assert notifier.last.title == "Budget Updated"
            assert sum(c.allocated_amount for c in updated.categories) <= Decimal("20000")

            # an expense through the list controller's form
            listing = ExpenseListController(api, notifier, call_id, ExpenseFilters(budget_id=created.id))
            assert await listing.load()
            expense_form = listing.expense_form()
            expense_form.set_field("title", "Landing page")
            expense_form.set_field("amount", Decimal("1200"))
            expense_form.set_field("date", date(2025, 4, 2))
            expense_form.set_field("category_id", created.categories[1].id)
            expense = await expense_form.submit()
            assert expense.status == "pending"
            assert [e.id for e in listing.visible] == [expense.id]
            assert listing.category_name(expense) == "Marketing"
            assert listing.total == Decimal("1200")
            assert listing.percent_spent == 6

            approved = await listing.set_status(expense, "approved", "Looks good")
            assert approved.status == "approved"
            assert listing.expenses.get(expense.id).status == "approved"

            listing.request_delete(expense)
            assert await listing.confirm_delete()
            assert len(listing.expenses) == 0

            # unknown call comes back as a 404
            bad = BudgetIn.model_validate(make_budget_payload())
            with pytest.raises(ApiError) as exc:
                await api.create_budget(999, bad)
            assert exc.value.status_code == 404
            assert exc.value.message == "Startup call not found"

    asyncio.run(run())


def _html_page(request):
    return httpx.Response(200, text="<html>proxy page</html>", headers={"Content-Type": "text/html"})


def test_non_json_success_body_is_an_api_error():
    err = _fail(_client_with(_html_page), lambda c: c.get_budget(1, 5))
    assert err.status_code == 200
    assert err.message == UNEXPECTED_RESPONSE


def test_html_answer_to_submit_leaves_form_retryable(make_budget_payload):
    seen = []

    def handler(request):
        seen.append(request)
        return _html_page(request)

    async def run():
        async with _client_with(handler) as api:
            notifier = ToastNotifier()
            form = BudgetFormController(api, EntityList(), notifier, 1)
            form.values = BudgetFormValues.from_dict(make_budget_payload())

            assert await form.submit() is None
            assert form.state == FormState.EDITING
            assert notifier.last.variant == "destructive"
            assert notifier.last.message == UNEXPECTED_RESPONSE

            assert await form.submit() is None
            return len(seen)

    assert asyncio.run(run()) == 2


def test_malformed_list_sets_retry_instead_of_raising():
    def handler(request):
        return httpx.Response(200, json=[{"id": "x"}])

    async def run():
        async with _client_with(handler) as api:
            view = ExpenseListController(api, ToastNotifier(), 1)
            loaded = await view.load()
            return loaded, view

    loaded, view = asyncio.run(run())
    assert loaded is False
    assert view.can_retry
    assert view.error == UNEXPECTED_RESPONSE
    assert len(view.budgets) == 0
