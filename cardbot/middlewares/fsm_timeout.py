import logging
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, Optional
from aiogram import BaseMiddleware
from aiogram.types import TelegramObject, Message, CallbackQuery
from aiogram.fsm.context import FSMContext
from cardbot.core.config import FSM_TIMEOUT_MINUTES
from cardbot.core.messages import Messages
from cardbot.states.profile import ProfileWizardFSM

logger = logging.getLogger(__name__)

class FSMTimeoutMiddleware(BaseMiddleware):
    """Middleware для сброса незавершённого мастера после таймаута. Вне мастера не срабатывает."""
    def __init__(self, timeout_minutes: int = FSM_TIMEOUT_MINUTES):
        self.timeout = timedelta(minutes=timeout_minutes)

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any]
    ) -> Any:
        state: Optional[FSMContext] = data.get('state')
        if state is None:
            return await handler(event, data)
        current_state: Optional[str] = await state.get_state()
        if current_state is None or current_state not in ProfileWizardFSM:
            return await handler(event, data)

        state_data: Dict[str, Any] = await state.get_data()
        last_activity: Optional[str] = state_data.get('last_activity')
        if last_activity and datetime.now() - datetime.fromisoformat(last_activity) > self.timeout:
            await state.clear()
            user = getattr(event, 'from_user', None)
            logger.info(f"Cleared FSM state for user {user.id if user else 'unknown'} due to timeout")
            if isinstance(event, Message):
                await event.answer(Messages.Common.SESSION_TIMEOUT)
            elif isinstance(event, CallbackQuery):
                await event.answer(Messages.Common.SESSION_TIMEOUT, show_alert=True)
            return None
        await state.update_data(last_activity=datetime.now().isoformat())
        return await handler(event, data)
