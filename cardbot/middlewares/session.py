import logging
from typing import Any, Awaitable, Callable, Dict
from aiogram import BaseMiddleware
from aiogram.types import TelegramObject, Message, CallbackQuery
from cardbot.core.messages import Messages
from cardbot.services.session import SessionStore

logger = logging.getLogger(__name__)

class SessionMiddleware(BaseMiddleware):
    """Передаёт в хендлер `session` пользователя. При required=True без сессии не пускает."""
    def __init__(self, store: SessionStore, required: bool = False):
        self.store = store
        self.required = required

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any]
    ) -> Any:
        user = getattr(event, 'from_user', None)
        session = self.store.get(user.id) if user else None
        data['session'] = session
        data['session_store'] = self.store
        if self.required and session is None:
            logger.info(f"Unauthenticated access from user {user.id if user else 'unknown'}")
            if isinstance(event, Message):
                await event.answer(Messages.Auth.LOGIN_REQUIRED)
            elif isinstance(event, CallbackQuery):
                await event.answer(Messages.Auth.LOGIN_REQUIRED, show_alert=True)
            return None
        return await handler(event, data)
