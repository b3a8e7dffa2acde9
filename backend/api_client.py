"""
api_client.py — HTTP client for the budgets API.
This is the persistence collaborator the form controllers talk to: every
call is one request, answers come back as the canonical pydantic models, and
any non-2xx response (or a 2xx body that does not parse) turns into an ApiError.
"""
import logging
from typing import Optional, Protocol

import httpx
from pydantic import TypeAdapter, ValidationError

from config import API_BASE_URL, HTTP_TIMEOUT
from schemas import BudgetIn, BudgetOut, ExpenseIn, ExpenseOut

logger = logging.getLogger(__name__)

UNEXPECTED_RESPONSE = "Unexpected response from the server"


class ApiError(Exception):
    """Non-2xx answer (or no answer at all) from the budgets API."""

    def __init__(self, status_code: Optional[int], message: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message or f"Request failed ({status_code})")
        self.status_code = status_code
        self.message = message
        self.details = details or {}


class BudgetGateway(Protocol):
    async def list_budgets(self, call_id: int) -> list[BudgetOut]: ...
    async def create_budget(self, call_id: int, data: BudgetIn) -> BudgetOut: ...
    async def update_budget(self, call_id: int, budget_id: int, data: BudgetIn) -> BudgetOut: ...
    async def list_expenses(self, call_id: int, **filters) -> list[ExpenseOut]: ...
    async def create_expense(self, call_id: int, budget_id: int, data: ExpenseIn) -> ExpenseOut: ...
    async def update_expense(self, call_id: int, expense_id: int, data: ExpenseIn) -> ExpenseOut: ...
    async def delete_expense(self, call_id: int, expense_id: int) -> None: ...
    async def update_expense_status(self, call_id: int, expense_id: int, status: str, comment: str = None) -> ExpenseOut: ...


def _headers(token: Optional[str]) -> dict:
    headers = {"Content-Type": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def _error_message(resp: httpx.Response) -> tuple[Optional[str], dict]:
    """Pull a human-readable message (and any details) out of an error body."""
    try:
        body = resp.json()
    except ValueError:
        return None, {}
    if not isinstance(body, dict):
        return None, {}

    detail = body.get("detail")
    if isinstance(detail, str):
        return detail, {}
    if isinstance(detail, dict):
        return detail.get("error") or detail.get("message"), detail.get("details") or {}
    if isinstance(detail, list):
        # FastAPI request validation errors
        msgs = [d.get("msg", "") for d in detail if isinstance(d, dict)]
        return "; ".join(m for m in msgs if m) or None, {}
    return body.get("error") or body.get("message"), body.get("details") or {}


class ApiClient:
    def __init__(
        self,
        token: Optional[str] = None,
        base_url: str = API_BASE_URL,
        timeout: float = HTTP_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=_headers(token),
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.aclose()

    async def aclose(self):
        await self._client.aclose()

    async def _request(self, method: str, path: str, model=None, **kwargs):
        """
        Send one request. With ``model`` (a pydantic type such as ``BudgetOut``
        or ``list[ExpenseOut]``) the body is validated into it; a 2xx body that
        is not JSON or does not fit the model is an ApiError too.
        """
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise ApiError(None, "Could not reach the server") from e

        if resp.is_error:
            message, details = _error_message(resp)
            logger.warning(f"{method} {path} -> {resp.status_code}: {message}")
            raise ApiError(resp.status_code, message, details)

        try:
            data = resp.json() if resp.content else None
            if model is not None:
                data = TypeAdapter(model).validate_python(data)
        except (ValueError, ValidationError) as e:
            logger.warning(f"{method} {path} -> {resp.status_code}: unreadable body ({e.__class__.__name__})")
            raise ApiError(resp.status_code, UNEXPECTED_RESPONSE) from e
        return data

    # ------------------------------------------------------------------
    # Budgets

    async def list_budgets(self, call_id: int) -> list[BudgetOut]:
        return await self._request("GET", f"/api/v1/startup-calls/{call_id}/budgets", model=list[BudgetOut])

    async def get_budget(self, call_id: int, budget_id: int) -> BudgetOut:
        return await self._request("GET", f"/api/v1/startup-calls/{call_id}/budgets/{budget_id}", model=BudgetOut)

    async def create_budget(self, call_id: int, data: BudgetIn) -> BudgetOut:
        return await self._request(
            "POST", f"/api/v1/startup-calls/{call_id}/budgets",
            model=BudgetOut, json=data.model_dump(mode="json"),
        )

    async def update_budget(self, call_id: int, budget_id: int, data: BudgetIn) -> BudgetOut:
        return await self._request(
            "PUT", f"/api/v1/startup-calls/{call_id}/budgets/{budget_id}",
            model=BudgetOut, json=data.model_dump(mode="json"),
        )

    async def update_budget_status(self, call_id: int, budget_id: int, status: str) -> BudgetOut:
        return await self._request(
            "PATCH", f"/api/v1/startup-calls/{call_id}/budgets/{budget_id}/status",
            model=BudgetOut, json={"status": status},
        )

    async def budget_report(self, call_id: int, **params) -> dict:
        params = {k: str(v) for k, v in params.items() if v is not None}
        return await self._request(
            "GET", f"/api/v1/startup-calls/{call_id}/budgets/report", model=dict, params=params
        )

    # ------------------------------------------------------------------
    # Expenses

    async def list_expenses(self, call_id: int, **filters) -> list[ExpenseOut]:
        params = {k: v for k, v in filters.items() if v is not None}
        return await self._request(
            "GET", f"/api/v1/startup-calls/{call_id}/budgets/expenses", model=list[ExpenseOut], params=params
        )

    async def create_expense(self, call_id: int, budget_id: int, data: ExpenseIn) -> ExpenseOut:
        return await self._request(
            "POST", f"/api/v1/startup-calls/{call_id}/budgets/{budget_id}/expenses",
            model=ExpenseOut, json=data.model_dump(mode="json"),
        )

    async def update_expense(self, call_id: int, expense_id: int, data: ExpenseIn) -> ExpenseOut:
        return await self._request(
            "PUT", f"/api/v1/startup-calls/{call_id}/budgets/expenses/{expense_id}",
            model=ExpenseOut, json=data.model_dump(mode="json"),
        )

    async def delete_expense(self, call_id: int, expense_id: int) -> None:
        await self._request("DELETE", f"/api/v1/startup-calls/{call_id}/budgets/expenses/{expense_id}")

    async def update_expense_status(self, call_id: int, expense_id: int, status: str, comment: str = None) -> ExpenseOut:
        body = {"status": status}
        if comment:
            body["comment"] = comment
        return await self._request(
            "PATCH", f"/api/v1/startup-calls/{call_id}/budgets/expenses/{expense_id}/status",
            model=ExpenseOut, json=body,
        )
