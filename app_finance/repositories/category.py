"""Category repository (local first)."""

from typing import Optional

from app_finance.models.finance import Category, SyncStatus
from app_finance.repositories.base import BaseRepository


# (name, color, icon) seeded for a user without categories
DEFAULT_CATEGORIES = [
    ("Alimentação", "#FF6B6B", "fork.knife"),
    ("Transporte", "#4ECDC4", "car.fill"),
    ("Moradia", "#45B7D1", "house.fill"),
    ("Saúde", "#96CEB4", "heart.fill"),
    ("Educação", "#DDA0DD", "book.fill"),
    ("Lazer", "#FFD93D", "gamecontroller.fill"),
    ("Compras", "#FF8C42", "bag.fill"),
    ("Outros", "#95A5A6", "ellipsis.circle.fill"),
]


class CategoryRepository(BaseRepository[Category]):
    model = Category

    async def list_active(self, user_id: str) -> list[Category]:
        """Active categories, by display order then name."""
        categories = await self._store.list_entities(Category, user_id=user_id)
        visible = [
            c for c in categories
            if c.is_active and c.sync_status is not SyncStatus.PENDING_DELETE
        ]
        return sorted(visible, key=lambda c: (c.display_order, c.name))

    async def list_all(self, user_id: str) -> list[Category]:
        """Active and inactive categories, for labelling old transactions."""
        categories = await self._store.list_entities(Category, user_id=user_id)
        return [c for c in categories if not c.is_deleted]

    async def create(
        self,
        user_id: str,
        name: str,
        color_hex: str,
        icon_name: str = "tag",
        display_order: Optional[int] = None,
    ) -> Category:
        if display_order is None:
            existing = await self._store.list_entities(Category, user_id=user_id)
            display_order = max((c.display_order for c in existing), default=-1) + 1
        category = Category(
            user_id=user_id,
            name=name,
            color_hex=color_hex,
            icon_name=icon_name,
            display_order=display_order,
        )
        return await self._create(category, name)

    async def find_by_name(self, user_id: str, name: str) -> Optional[Category]:
        """Case-insensitive match among the active categories."""
        wanted = name.strip().lower()
        for category in await self.list_active(user_id):
            if category.name.lower() == wanted:
                return category
        return None

    async def reorder(self, ordered_ids: list[str]) -> list[Category]:
        """Persist a drag-and-drop order. Display order never syncs."""
        return await self._reorder(ordered_ids)

    async def seed_defaults_if_needed(self, user_id: str) -> list[Category]:
        """
        Create the default categories for a user who has none.

        Defaults are stored as already synced: they exist on the server
        too, and the first pull merges them by name.
        """
        if await self.list_active(user_id):
            return []

        seeded = []
        for index, (name, color, icon) in enumerate(DEFAULT_CATEGORIES):
            category = Category(
                user_id=user_id,
                name=name,
                color_hex=color,
                icon_name=icon,
                display_order=index,
                sync_status=SyncStatus.SYNCED,
            )
            await self._store.insert(category)
            seeded.append(category)

        await self._audit.log_defaults_seeded(user_id, len(seeded))
        return seeded
