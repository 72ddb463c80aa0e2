from html import escape
from aiogram import Router
from aiogram.types import Message
from aiogram.filters import Command, CommandObject
from aiogram.fsm.context import FSMContext
from aiogram.exceptions import TelegramBadRequest
from typing import Any, Dict, Optional
from cardbot.core.messages import Messages
from cardbot.middlewares.session import SessionMiddleware
from cardbot.services.api_client import APIRequestError, auth_api_client
from cardbot.services.session import SessionStore, UserSession, session_store
from cardbot.services.wizard import WizardState
import logging

router = Router()
router.message.middleware(SessionMiddleware(session_store))
logger = logging.getLogger(__name__)

async def wizard_is_saving(state: FSMContext) -> bool:
    """Идёт ли сейчас отправка профиля из мастера."""
    data: Dict[str, Any] = await state.get_data()
    wizard_state = data.get('wizard')
    return isinstance(wizard_state, WizardState) and wizard_state.saving

@router.message(Command("start"))
async def cmd_start(message: Message, state: FSMContext) -> None:
    """Обработка команды /start."""
    if await wizard_is_saving(state):
        await message.answer(Messages.Wizard.BUSY)
        return
    await state.clear()
    logger.info(f"User {message.from_user.id} started /start")
    await message.answer(Messages.Common.START)

@router.message(Command("help"))
async def cmd_help(message: Message) -> None:
    await message.answer(Messages.Common.HELP)

@router.message(Command("cancel"))
async def cmd_cancel(message: Message, state: FSMContext) -> None:
    """Выход из мастера без сохранения."""
    if await wizard_is_saving(state):
        await message.answer(Messages.Wizard.BUSY)
        return
    await state.clear()
    await message.answer(Messages.Common.CANCELLED)

@router.message(Command("login"))
async def cmd_login(message: Message, command: CommandObject, session_store: SessionStore) -> None:
    """Вход: /login email пароль."""
    parts = (command.args or "").split()
    if len(parts) != 2:
        await message.answer(Messages.Auth.LOGIN_USAGE)
        return
    email, password = parts
    # сообщение с паролем не оставляем в чате
    try:
        await message.delete()
    except TelegramBadRequest as e:
        logger.warning(f"Cannot delete login message for user {message.from_user.id}: {e}")

    try:
        data = await auth_api_client.login(email, password)
    except APIRequestError as e:
        logger.info(f"Login failed for user {message.from_user.id}: {e}")
        await message.answer(Messages.Auth.LOGIN_ERROR.format(error=escape(str(e))))
        return
    session = UserSession(token=data["token"], user=data.get("user") or {})
    session_store.set(message.from_user.id, session)
    await message.answer(Messages.Auth.LOGIN_OK.format(name=escape(session.display_name)))

@router.message(Command("logout"))
async def cmd_logout(message: Message, state: FSMContext, session_store: SessionStore, session: Optional[UserSession]) -> None:
    """Выход из аккаунта, незавершённый мастер сбрасывается."""
    if await wizard_is_saving(state):
        await message.answer(Messages.Wizard.BUSY)
        return
    await state.clear()
    if session is None:
        await message.answer(Messages.Auth.NOT_LOGGED_IN)
        return
    session_store.clear(message.from_user.id)
    await message.answer(Messages.Auth.LOGOUT_OK)
