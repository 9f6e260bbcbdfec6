"""
Resource endpoints: transactions, categories, credit cards, fixed bills
and the monthly summary.

Methods that send an entity take the local model and build the wire
payload here. Ids in URLs are always server ids.
"""

from typing import Optional, Union

from app_finance.models.api import (
    CategorizeBillRequest,
    CategorizeBillResponse,
    CategoryResponse,
    CreateCategoryRequest,
    CreateCreditCardRequest,
    CreateFixedBillRequest,
    CreateTransactionRequest,
    CreditCardResponse,
    ExistingCategoryRequest,
    FixedBillResponse,
    MonthlySummaryResponse,
    TransactionResponse,
    UpdateCategoryRequest,
    UpdateCreditCardRequest,
    UpdateFixedBillRequest,
    UpdateTransactionCategoryRequest,
    to_amount,
)
from app_finance.models.finance import Category, CreditCard, FixedBill, Transaction
from app_finance.models.month import MonthRef
from app_finance.services.api.client import ApiClient


def _month_param(month: Union[MonthRef, str]) -> str:
    return month.api_string if isinstance(month, MonthRef) else month


def _require_server_id(entity) -> str:
    if entity.server_id is None:
        raise ValueError(f"{type(entity).__name__} {entity.id} was never synced")
    return entity.server_id


class TransactionsAPI:
    def __init__(self, client: ApiClient):
        self._client = client

    async def get_by_month(self, month: Union[MonthRef, str]) -> list[TransactionResponse]:
        return await self._client.request_list(
            TransactionResponse, "/transactions", params={"month": _month_param(month)}
        )

    async def create(
        self,
        transaction: Transaction,
        category_server_id: Optional[str] = None,
        card_server_id: Optional[str] = None,
    ) -> TransactionResponse:
        """
        Create a transaction on the server.

        Category and card must be given as server ids; the caller resolves
        local ids first.
        """
        request = CreateTransactionRequest(
            type=transaction.type.value,
            amount=to_amount(transaction.amount),
            date=transaction.date.isoformat(),
            description=transaction.description,
            category_id=category_server_id,
            credit_card_id=card_server_id,
            installments=transaction.installments,
            starting_installment=transaction.starting_installment,
        )
        return await self._client.request_model(
            TransactionResponse, "POST", "/transactions", request, exclude_none=True
        )

    async def update_category(self, transaction_id: str, category_id: str) -> TransactionResponse:
        return await self._client.request_model(
            TransactionResponse, "PATCH", f"/transactions/{transaction_id}/category",
            UpdateTransactionCategoryRequest(category_id=category_id),
        )

    async def delete(self, transaction_id: str) -> None:
        await self._client.request_void("DELETE", f"/transactions/{transaction_id}")


class CategoriesAPI:
    def __init__(self, client: ApiClient):
        self._client = client

    async def get_all(self) -> list[CategoryResponse]:
        return await self._client.request_list(CategoryResponse, "/categories")

    async def create(self, category: Category) -> CategoryResponse:
        return await self._client.request_model(
            CategoryResponse, "POST", "/categories",
            CreateCategoryRequest(
                name=category.name,
                color_hex=category.color_hex,
                icon_name=category.icon_name,
            ),
        )

    async def update(self, category: Category) -> CategoryResponse:
        return await self._client.request_model(
            CategoryResponse, "PATCH", f"/categories/{_require_server_id(category)}",
            UpdateCategoryRequest(
                name=category.name,
                color_hex=category.color_hex,
                icon_name=category.icon_name,
                is_active=category.is_active,
            ),
            exclude_none=True,
        )

    async def delete(self, category_id: str) -> None:
        await self._client.request_void("DELETE", f"/categories/{category_id}")


def _card_fields(card: CreditCard) -> dict:
    return dict(
        card_name=card.card_name,
        holder_name=card.holder_name,
        last_four_digits=card.last_four_digits,
        brand=card.brand.value,
        card_type=card.card_type.value,
        bank=card.bank.value,
        payment_day=card.payment_day,
        closing_day=card.closing_day,
        limit_amount=to_amount(card.limit_amount),
        is_active=card.is_active,
        display_order=card.display_order,
    )


class CreditCardsAPI:
    def __init__(self, client: ApiClient):
        self._client = client

    async def get_all(self) -> list[CreditCardResponse]:
        return await self._client.request_list(CreditCardResponse, "/credit-cards")

    async def get_by_id(self, card_id: str) -> CreditCardResponse:
        return await self._client.request_model(
            CreditCardResponse, "GET", f"/credit-cards/{card_id}"
        )

    async def create(self, card: CreditCard) -> CreditCardResponse:
        return await self._client.request_model(
            CreditCardResponse, "POST", "/credit-cards",
            CreateCreditCardRequest(**_card_fields(card)),
        )

    async def update(self, card: CreditCard) -> CreditCardResponse:
        return await self._client.request_model(
            CreditCardResponse, "PATCH", f"/credit-cards/{_require_server_id(card)}",
            UpdateCreditCardRequest(**_card_fields(card)),
            exclude_none=True,
        )

    async def delete(self, card_id: str) -> None:
        await self._client.request_void("DELETE", f"/credit-cards/{card_id}")


def _bill_fields(bill: FixedBill) -> dict:
    return dict(
        name=bill.name,
        amount=to_amount(bill.amount),
        due_day=bill.due_day,
        category=bill.category.value,
        is_active=bill.is_active,
        notes=bill.notes,
        custom_category_name=bill.custom_category_name,
        custom_category_icon=bill.custom_category_icon,
        custom_category_color_hex=bill.custom_category_color_hex,
        total_installments=bill.total_installments,
        paid_installments=bill.paid_installments,
    )


class FixedBillsAPI:
    def __init__(self, client: ApiClient):
        self._client = client

    async def get_all(self) -> list[FixedBillResponse]:
        return await self._client.request_list(FixedBillResponse, "/fixed-bills")

    async def get_by_id(self, bill_id: str) -> FixedBillResponse:
        return await self._client.request_model(
            FixedBillResponse, "GET", f"/fixed-bills/{bill_id}"
        )

    async def create(self, bill: FixedBill) -> FixedBillResponse:
        return await self._client.request_model(
            FixedBillResponse, "POST", "/fixed-bills",
            CreateFixedBillRequest(**_bill_fields(bill)),
        )

    async def update(self, bill: FixedBill) -> FixedBillResponse:
        return await self._client.request_model(
            FixedBillResponse, "PATCH", f"/fixed-bills/{_require_server_id(bill)}",
            UpdateFixedBillRequest(**_bill_fields(bill)),
        )

    async def delete(self, bill_id: str) -> None:
        await self._client.request_void("DELETE", f"/fixed-bills/{bill_id}")

    async def suggest_category(
        self,
        name: str,
        amount: Optional[float] = None,
        existing_categories: Optional[list[tuple[str, Optional[str]]]] = None,
    ) -> CategorizeBillResponse:
        """
        Ask the server's AI for a fixed-bill category.

        Args:
            name: Bill name as typed by the user
            amount: Monthly amount, if known
            existing_categories: The user's custom (name, icon) pairs
        """
        request = CategorizeBillRequest(
            name=name,
            amount=amount,
            existing_categories=[
                ExistingCategoryRequest(name=n, icon=icon)
                for n, icon in existing_categories
            ] if existing_categories else None,
        )
        return await self._client.request_model(
            CategorizeBillResponse, "POST", "/fixed-bills/categorize", request,
            exclude_none=True,
        )


class SummaryAPI:
    def __init__(self, client: ApiClient):
        self._client = client

    async def get_monthly_summary(self, month: Union[MonthRef, str]) -> MonthlySummaryResponse:
        return await self._client.request_model(
            MonthlySummaryResponse, "GET", "/summary",
            params={"month": _month_param(month)},
        )
