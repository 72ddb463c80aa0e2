from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton
from aiogram.filters.callback_data import CallbackData
from typing import Any, Dict, List, Literal
from cardbot.core.messages import Messages
from cardbot.utils.validators import LAYOUTS_BY_TYPE, ProfileType, Product

class ProfileTypeCallback(CallbackData, prefix="ptype"):
    """Callback для выбора типа профиля."""
    profile_type: str

class LayoutCallback(CallbackData, prefix="layout"):
    """Callback для выбора макета."""
    layout: str

class WizardNavCallback(CallbackData, prefix="wiz"):
    """Callback навигации по мастеру."""
    action: Literal["back", "cancel", "submit"]

class ConfirmationCallback(CallbackData, prefix="confirm"):
    """Callback для подтверждения действий."""
    action: Literal["yes", "no"]
    step: str

class ProductCallback(CallbackData, prefix="product"):
    """Callback для действий со списком продуктов."""
    action: Literal["add", "remove", "done"]
    index: int = 0

class ProfileAction(CallbackData, prefix="profile_action"):
    """Callback для действий с профилем из списка."""
    action: Literal["edit", "toggle", "delete", "delete_confirm", "delete_cancel"]
    profile_id: str

def _nav_row() -> List[InlineKeyboardButton]:
    return [
        InlineKeyboardButton(text=Messages.Buttons.BACK, callback_data=WizardNavCallback(action="back").pack()),
        InlineKeyboardButton(text=Messages.Buttons.CANCEL, callback_data=WizardNavCallback(action="cancel").pack()),
    ]

def get_nav_keyboard() -> InlineKeyboardMarkup:
    """Клавиатура «Назад / Отмена» для шагов с текстовым вводом."""
    return InlineKeyboardMarkup(inline_keyboard=[_nav_row()])

def get_profile_type_keyboard() -> InlineKeyboardMarkup:
    """Клавиатура выбора типа профиля."""
    keyboard = [
        [InlineKeyboardButton(
            text=Messages.Buttons.STUDENT,
            callback_data=ProfileTypeCallback(profile_type=ProfileType.STUDENT.value).pack(),
        )],
        [InlineKeyboardButton(
            text=Messages.Buttons.PROFESSIONAL,
            callback_data=ProfileTypeCallback(profile_type=ProfileType.PROFESSIONAL.value).pack(),
        )],
        [InlineKeyboardButton(text=Messages.Buttons.CANCEL, callback_data=WizardNavCallback(action="cancel").pack())],
    ]
    return InlineKeyboardMarkup(inline_keyboard=keyboard)

def get_layout_keyboard(profile_type: ProfileType) -> InlineKeyboardMarkup:
    """Клавиатура макетов, допустимых для типа профиля."""
    keyboard = [
        [InlineKeyboardButton(
            text=Messages.Buttons.LAYOUTS[layout.value],
            callback_data=LayoutCallback(layout=layout.value).pack(),
        )]
        for layout in LAYOUTS_BY_TYPE[profile_type]
    ]
    keyboard.append(_nav_row())
    return InlineKeyboardMarkup(inline_keyboard=keyboard)

def get_products_keyboard(products: List[Product], can_add: bool) -> InlineKeyboardMarkup:
    """Клавиатура списка продуктов (с кнопками удаления)."""
    keyboard = [
        [InlineKeyboardButton(
            text=Messages.Buttons.REMOVE_PRODUCT.format(name=product.name),
            callback_data=ProductCallback(action="remove", index=index).pack(),
        )]
        for index, product in enumerate(products)
    ]
    if can_add:
        keyboard.append([InlineKeyboardButton(
            text=Messages.Buttons.ADD_PRODUCT, callback_data=ProductCallback(action="add").pack()
        )])
    keyboard.append([InlineKeyboardButton(
        text=Messages.Buttons.DONE, callback_data=ProductCallback(action="done").pack()
    )])
    keyboard.append(_nav_row())
    return InlineKeyboardMarkup(inline_keyboard=keyboard)

def get_confirmation_keyboard(step: str) -> InlineKeyboardMarkup:
    """Клавиатура подтверждения действия."""
    buttons = [
        [
            InlineKeyboardButton(text=Messages.Buttons.YES, callback_data=ConfirmationCallback(action="yes", step=step).pack()),
            InlineKeyboardButton(text=Messages.Buttons.NO, callback_data=ConfirmationCallback(action="no", step=step).pack())
        ],
        _nav_row(),
    ]
    return InlineKeyboardMarkup(inline_keyboard=buttons)

def get_review_keyboard() -> InlineKeyboardMarkup:
    """Клавиатура шага проверки."""
    keyboard = [
        [InlineKeyboardButton(text=Messages.Buttons.SUBMIT, callback_data=WizardNavCallback(action="submit").pack())],
        _nav_row(),
    ]
    return InlineKeyboardMarkup(inline_keyboard=keyboard)

def get_profile_actions_keyboard(profile: Dict[str, Any]) -> InlineKeyboardMarkup:
    """Клавиатура действий с профилем из списка."""
    profile_id = str(profile.get("_id") or profile.get("id"))
    keyboard = [
        [
            InlineKeyboardButton(text=Messages.Buttons.EDIT, callback_data=ProfileAction(action="edit", profile_id=profile_id).pack()),
            InlineKeyboardButton(text=Messages.Buttons.TOGGLE, callback_data=ProfileAction(action="toggle", profile_id=profile_id).pack()),
            InlineKeyboardButton(text=Messages.Buttons.DELETE, callback_data=ProfileAction(action="delete", profile_id=profile_id).pack()),
        ]
    ]
    return InlineKeyboardMarkup(inline_keyboard=keyboard)

def get_delete_confirmation_keyboard(profile_id: str) -> InlineKeyboardMarkup:
    buttons = [
        [
            InlineKeyboardButton(text=Messages.Buttons.YES, callback_data=ProfileAction(action="delete_confirm", profile_id=profile_id).pack()),
            InlineKeyboardButton(text=Messages.Buttons.NO, callback_data=ProfileAction(action="delete_cancel", profile_id=profile_id).pack()),
        ]
    ]
    return InlineKeyboardMarkup(inline_keyboard=buttons)
