"""Credit card repository."""

from decimal import Decimal

from app_finance.models.finance import Bank, CardBrand, CardType, CreditCard
from app_finance.repositories.base import BaseRepository


class CreditCardRepository(BaseRepository[CreditCard]):
    model = CreditCard

    async def list_active(self, user_id: str) -> list[CreditCard]:
        """Active cards, by display order then name."""
        cards = await self._store.list_entities(CreditCard, user_id=user_id)
        active = [c for c in cards if c.is_active and not c.is_deleted]
        return sorted(active, key=lambda c: (c.display_order, c.card_name))

    async def list_all(self, user_id: str) -> list[CreditCard]:
        """Active and deactivated cards; old purchases still point at the latter."""
        cards = await self._store.list_entities(CreditCard, user_id=user_id)
        return [c for c in cards if not c.is_deleted]

    async def create(
        self,
        user_id: str,
        card_name: str,
        closing_day: int,
        payment_day: int,
        holder_name: str = "",
        last_four_digits: str = "",
        brand: CardBrand = CardBrand.VISA,
        card_type: CardType = CardType.STANDARD,
        bank: Bank = Bank.OTHER,
        limit_amount: Decimal = Decimal("0"),
    ) -> CreditCard:
        """New cards go to the end of the list."""
        existing = await self.list_active(user_id)
        card = CreditCard(
            user_id=user_id,
            card_name=card_name,
            holder_name=holder_name,
            last_four_digits=last_four_digits,
            brand=brand,
            card_type=card_type,
            bank=bank,
            payment_day=payment_day,
            closing_day=closing_day,
            limit_amount=limit_amount,
            display_order=max((c.display_order for c in existing), default=-1) + 1,
        )
        return await self._create(card, card_name)

    async def delete(self, entity_id: str) -> bool:
        """
        Cards are never removed: past purchases still point at them.

        The card is deactivated and the change is queued for sync.
        """
        card = await self.require(entity_id)
        await self._apply(card, {"is_active": False})
        await self._audit.log_entity_deleted(self.kind, card.id, soft=True)
        return True

    async def reorder(self, ordered_ids: list[str]) -> list[CreditCard]:
        return await self._reorder(ordered_ids)
