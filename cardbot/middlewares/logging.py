import logging
from typing import Any, Awaitable, Callable, Dict
from aiogram import BaseMiddleware
from aiogram.types import TelegramObject, Message, CallbackQuery
from cardbot.core.messages import Messages

logger = logging.getLogger(__name__)

class CustomFormatter(logging.Formatter):
    """Custom formatter для логов."""
    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, 'user_id'):
            record.user_id = 'system'
        return super().format(record)

class LoggingMiddleware(BaseMiddleware):
    """Middleware для логирования сообщений и коллбеков с user_id."""
    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any]
    ) -> Any:
        user = getattr(event, 'from_user', None)
        user_id = user.id if user else 'unknown'
        data['user_id'] = user_id

        if isinstance(event, Message):
            if event.text and event.text.startswith('/login'):
                # пароль в лог не пишем
                text = "/login ***"
            else:
                text = event.text or event.caption or f"<{event.content_type}>"
            logger.info(f"Message from user {user_id}: {text}", extra={'user_id': user_id})
        elif isinstance(event, CallbackQuery):
            logger.info(f"Callback from user {user_id}: {event.data}", extra={'user_id': user_id})
        else:
            logger.info(f"Event from user {user_id}: {type(event).__name__}", extra={'user_id': user_id})

        try:
            return await handler(event, data)
        except Exception as e:
            logger.error(f"Error handling event for user {user_id}: {e}", exc_info=True, extra={'user_id': user_id})
            if isinstance(event, Message):
                await event.answer(Messages.Common.INTERNAL_ERROR)
            elif isinstance(event, CallbackQuery) and event.message:
                await event.message.answer(Messages.Common.INTERNAL_ERROR)
            raise
