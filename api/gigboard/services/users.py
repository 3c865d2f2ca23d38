from __future__ import annotations

from gigboard.services.errors import NotFoundError
from gigboard.services.records import UserRecord
from gigboard.services.store import Store


class UserService:
    def __init__(self, store: Store) -> None:
        self.store = store

    async def ensure(self, user_id: str, *, phone: str | None) -> UserRecord:
        async with self.store.transaction() as session:
            return await session.upsert_user(user_id, phone=phone)

    async def get(self, user_id: str) -> UserRecord:
        async with self.store.transaction() as session:
            user = await session.get_user(user_id)
        if user is None:
            raise NotFoundError("user not found")
        return user

    async def update_profile(
        self, user_id: str, *, name: str | None = None, device_token: str | None = None
    ) -> UserRecord:
        async with self.store.transaction() as session:
            user = await session.update_user_profile(user_id, name=name, device_token=device_token)
        if user is None:
            raise NotFoundError("user not found")
        return user
