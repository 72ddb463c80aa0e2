from html import escape
from aiogram import Router, F
from aiogram.types import Message, CallbackQuery
from aiogram.filters import Command
from typing import Any, Dict, List
from cardbot.core.messages import Messages
from cardbot.keyboards.inline import ProfileAction, get_delete_confirmation_keyboard, get_profile_actions_keyboard
from cardbot.middlewares.session import SessionMiddleware
from cardbot.services.api_client import APIRequestError, profile_api_client
from cardbot.services.session import UserSession, session_store
from cardbot.utils.formatters import format_profile_card
import logging

router = Router()
router.message.middleware(SessionMiddleware(session_store, required=True))
router.callback_query.middleware(SessionMiddleware(session_store, required=True))
logger = logging.getLogger(__name__)

async def send_profiles_list(message: Message, session: UserSession) -> None:
    """Список профилей: по сообщению с кнопками на каждый профиль."""
    try:
        profiles: List[Dict[str, Any]] = await profile_api_client.list_profiles(token=session.token)
    except APIRequestError as e:
        logger.error(f"Error loading profiles: {e}")
        await message.answer(Messages.Profiles.LOAD_ERROR.format(error=escape(str(e))))
        return
    if not profiles:
        await message.answer(Messages.Profiles.EMPTY)
        return
    await message.answer(Messages.Profiles.LIST_TITLE)
    for profile in profiles:
        await message.answer(format_profile_card(profile), reply_markup=get_profile_actions_keyboard(profile))

@router.message(Command("profiles"))
async def cmd_profiles(message: Message, session: UserSession) -> None:
    """Обработка команды /profiles."""
    logger.info(f"User {message.from_user.id} requested profiles list")
    await send_profiles_list(message, session)

@router.callback_query(ProfileAction.filter(F.action == "toggle"))
async def handle_toggle(callback: CallbackQuery, callback_data: ProfileAction, session: UserSession) -> None:
    """Включение/выключение профиля."""
    await callback.answer()
    try:
        await profile_api_client.toggle_profile_status(callback_data.profile_id, token=session.token)
    except APIRequestError as e:
        await callback.message.answer(Messages.Profiles.TOGGLE_ERROR.format(error=escape(str(e))))
        return
    await callback.message.answer(Messages.Profiles.TOGGLE_OK)
    await send_profiles_list(callback.message, session)

@router.callback_query(ProfileAction.filter(F.action == "delete"))
async def handle_delete(callback: CallbackQuery, callback_data: ProfileAction) -> None:
    """Подтверждение удаления."""
    await callback.answer()
    name = callback.message.text.split("\n", 1)[0] if callback.message.text else callback_data.profile_id
    await callback.message.answer(
        Messages.Profiles.DELETE_CONFIRM.format(name=escape(name)),
        reply_markup=get_delete_confirmation_keyboard(callback_data.profile_id),
    )

@router.callback_query(ProfileAction.filter(F.action == "delete_confirm"))
async def handle_delete_confirm(callback: CallbackQuery, callback_data: ProfileAction, session: UserSession) -> None:
    """Удаление профиля."""
    await callback.answer()
    logger.info(f"User {callback.from_user.id} deleting profile {callback_data.profile_id}")
    try:
        await profile_api_client.delete_profile(callback_data.profile_id, token=session.token)
    except APIRequestError as e:
        await callback.message.answer(Messages.Profiles.DELETE_ERROR.format(error=escape(str(e))))
        return
    await callback.message.answer(Messages.Profiles.DELETE_OK)
    await send_profiles_list(callback.message, session)

@router.callback_query(ProfileAction.filter(F.action == "delete_cancel"))
async def handle_delete_cancel(callback: CallbackQuery) -> None:
    """Отказ от удаления. Состояние мастера не трогаем."""
    await callback.answer(Messages.Common.CANCELLED)
