from html import escape
from aiogram import Router, F
from aiogram.types import Message, CallbackQuery
from aiogram.fsm.context import FSMContext
from aiogram.filters import Command, StateFilter
from typing import Dict, Any, Optional
from cardbot.states.profile import ProfileWizardFSM
from cardbot.services.api_client import APIRequestError, profile_api_client
from cardbot.services.session import UserSession, session_store
from cardbot.services.wizard import (
    DetailVariant, InvalidWizardStateError, ProfileSubmitError, ProfileWizard,
    Step, WizardBusyError, WizardMode, WizardState,
)
from cardbot.keyboards.inline import (
    ProfileTypeCallback, LayoutCallback, WizardNavCallback, ConfirmationCallback,
    ProductCallback, ProfileAction,
    get_profile_type_keyboard, get_layout_keyboard, get_nav_keyboard,
    get_products_keyboard, get_confirmation_keyboard, get_review_keyboard,
)
from cardbot.core.messages import Messages
from cardbot.middlewares.session import SessionMiddleware
from cardbot.utils.validators import (
    ContactInfoUpdate, EnquiryFormUpdate, FileHandle, MAX_PRODUCTS, Product, ProfileType,
    StudentDetailsUpdate, merge_update, parse_contact_text, parse_skills_text,
    validate_contact_info,
)
from cardbot.utils.formatters import format_contacts, format_errors, format_products, format_review
from cardbot.handlers.common import wizard_is_saving
from cardbot.handlers.profiles import send_profiles_list
import logging

router = Router()
router.message.middleware(SessionMiddleware(session_store, required=True))
router.callback_query.middleware(SessionMiddleware(session_store, required=True))
logger = logging.getLogger(__name__)

FILE_PROMPTS: Dict[str, str] = {
    "photo": Messages.Wizard.UPLOAD_PHOTO,
    "company_logo": Messages.Wizard.UPLOAD_COMPANY_LOGO,
    "resume": Messages.Wizard.UPLOAD_RESUME,
}

def _is_skip(message: Message) -> bool:
    return bool(message.text and message.text.strip().startswith('/skip'))

async def _get_wizard(state: FSMContext) -> Optional[ProfileWizard]:
    data: Dict[str, Any] = await state.get_data()
    wizard_state = data.get('wizard')
    return ProfileWizard(wizard_state) if isinstance(wizard_state, WizardState) else None

async def _save_wizard(state: FSMContext, wizard: ProfileWizard) -> None:
    await state.update_data(wizard=wizard.state)

async def _download(message: Message) -> Optional[FileHandle]:
    """Скачивание фото или документа из сообщения."""
    if message.photo:
        photo = message.photo[-1]
        buffer = await message.bot.download(photo.file_id)
        return FileHandle(filename=f"{photo.file_unique_id}.jpg", content=buffer.read(), content_type="image/jpeg")
    if message.document:
        document = message.document
        buffer = await message.bot.download(document.file_id)
        return FileHandle(
            filename=document.file_name or document.file_unique_id,
            content=buffer.read(),
            content_type=document.mime_type or "application/octet-stream",
        )
    return None

async def _show_errors(message: Message, wizard: ProfileWizard) -> None:
    if wizard.errors:
        await message.answer(format_errors(wizard.errors))

async def _show_step(message: Message, state: FSMContext, wizard: ProfileWizard) -> None:
    """Отображение текущего шага мастера."""
    await _save_wizard(state, wizard)
    step = wizard.step
    if step is Step.CHOOSE_TYPE:
        await message.answer(Messages.Wizard.CHOOSE_TYPE, reply_markup=get_profile_type_keyboard())
        await state.set_state(ProfileWizardFSM.choosing_type)
    elif step is Step.CHOOSE_LAYOUT:
        await message.answer(Messages.Wizard.CHOOSE_LAYOUT, reply_markup=get_layout_keyboard(wizard.state.profile_type))
        await state.set_state(ProfileWizardFSM.choosing_layout)
    elif step is Step.CONTACT_INFO:
        text = Messages.Wizard.ENTER_CONTACTS
        if wizard.state.contact_info.name:
            text += "\n\n" + Messages.Wizard.CURRENT_CONTACTS.format(contacts=format_contacts(wizard.state.contact_info))
        await state.update_data(pending_contacts=None)
        await message.answer(text, reply_markup=get_nav_keyboard())
        await state.set_state(ProfileWizardFSM.entering_contacts)
    elif step is Step.DETAILS and wizard.detail_variant is DetailVariant.STUDENT_DETAILS:
        await state.update_data(pending_student={}, current_field='about_me')
        await message.answer(Messages.Wizard.ENTER_ABOUT_ME, reply_markup=get_nav_keyboard())
        await state.set_state(ProfileWizardFSM.entering_student_details)
    elif step is Step.DETAILS:
        await _show_products_menu(message, state, wizard)
    elif step is Step.ENQUIRY_SETUP:
        await state.update_data(pending_enquiry={})
        await message.answer(Messages.Wizard.ENQUIRY_ENABLE, reply_markup=get_confirmation_keyboard(step="enquiry"))
        await state.set_state(ProfileWizardFSM.enquiry_setup)
    elif step is Step.REVIEW:
        await message.answer(
            Messages.Wizard.REVIEW.format(summary=format_review(wizard)), reply_markup=get_review_keyboard()
        )
        await state.set_state(ProfileWizardFSM.review)

async def _show_products_menu(message: Message, state: FSMContext, wizard: ProfileWizard) -> None:
    await message.answer(
        Messages.Wizard.PRODUCTS_MENU.format(products=format_products(wizard.state.products)),
        reply_markup=get_products_keyboard(wizard.state.products, wizard.can_add_product),
    )
    await state.set_state(ProfileWizardFSM.products_menu)

async def _ask_for_file(message: Message, state: FSMContext, file_type: str) -> None:
    """Запрос на загрузку файла."""
    await message.answer(FILE_PROMPTS[file_type])
    await state.update_data(file_type=file_type)
    await state.set_state(ProfileWizardFSM.uploading_file)

async def _go_back(message: Message, state: FSMContext) -> None:
    wizard = await _get_wizard(state)
    if wizard is None:
        await message.answer(Messages.Wizard.NOT_STARTED)
        return
    if wizard.state.saving:
        await message.answer(Messages.Wizard.BUSY)
        return
    if not wizard.can_go_back:
        await state.clear()
        await message.answer(Messages.Common.CANCELLED)
        return
    wizard.back()
    await _show_step(message, state, wizard)

async def _finish_contacts(message: Message, state: FSMContext, wizard: ProfileWizard, pending: Dict[str, Any]) -> None:
    """Передача контактов и файлов в мастер."""
    if wizard.submit_contact_info(ContactInfoUpdate(**pending)):
        await _show_step(message, state, wizard)
        return
    await _save_wizard(state, wizard)
    await _show_errors(message, wizard)
    for file_type in ("photo", "company_logo"):
        if file_type in wizard.errors:
            pending.pop(file_type, None)
            await state.update_data(pending_contacts=pending)
            await _ask_for_file(message, state, file_type)
            return
    await _show_step(message, state, wizard)

async def _finish_student_details(message: Message, state: FSMContext, wizard: ProfileWizard, pending: Dict[str, Any]) -> None:
    if wizard.submit_student_details(StudentDetailsUpdate(**pending)):
        await _show_step(message, state, wizard)
        return
    await _save_wizard(state, wizard)
    await _show_errors(message, wizard)
    if set(wizard.errors) == {"resume_file"}:
        await _ask_for_file(message, state, "resume")
        return
    await _show_step(message, state, wizard)

@router.message(Command("new"))
async def cmd_new(message: Message, state: FSMContext) -> None:
    """Запуск мастера создания профиля."""
    if await wizard_is_saving(state):
        await message.answer(Messages.Wizard.BUSY)
        return
    logger.info(f"User {message.from_user.id} started profile wizard")
    await state.clear()
    await _show_step(message, state, ProfileWizard.create())

@router.message(Command("back"), StateFilter(ProfileWizardFSM))
async def cmd_back(message: Message, state: FSMContext) -> None:
    await _go_back(message, state)

@router.callback_query(ProfileAction.filter(F.action == "edit"))
async def handle_edit_profile(callback: CallbackQuery, callback_data: ProfileAction, state: FSMContext, session: UserSession) -> None:
    """Запуск мастера в режиме редактирования, сразу с шага контактов."""
    if await wizard_is_saving(state):
        await callback.answer(Messages.Wizard.BUSY, show_alert=True)
        return
    await callback.answer()
    profile_id = callback_data.profile_id
    logger.info(f"User {callback.from_user.id} editing profile {profile_id}")
    try:
        profile = await profile_api_client.get_profile(profile_id, token=session.token)
        if not profile:
            await callback.message.answer(Messages.Wizard.LOAD_ERROR.format(error="profile not found"))
            return
        wizard = ProfileWizard.from_profile(profile, profile_id=profile_id)
    except (APIRequestError, InvalidWizardStateError) as e:
        logger.error(f"Cannot start edit of profile {profile_id}: {e}")
        await callback.message.answer(Messages.Wizard.LOAD_ERROR.format(error=escape(str(e))))
        return
    await state.clear()
    await _show_step(callback.message, state, wizard)

@router.callback_query(WizardNavCallback.filter(F.action == "back"), StateFilter(ProfileWizardFSM))
async def handle_nav_back(callback: CallbackQuery, state: FSMContext) -> None:
    await callback.answer()
    await _go_back(callback.message, state)

@router.callback_query(WizardNavCallback.filter(F.action == "cancel"))
async def handle_nav_cancel(callback: CallbackQuery, state: FSMContext) -> None:
    if await wizard_is_saving(state):
        await callback.answer(Messages.Wizard.BUSY, show_alert=True)
        return
    await callback.answer()
    await state.clear()
    await callback.message.answer(Messages.Common.CANCELLED)

@router.callback_query(ProfileTypeCallback.filter(), ProfileWizardFSM.choosing_type)
async def handle_profile_type(callback: CallbackQuery, callback_data: ProfileTypeCallback, state: FSMContext) -> None:
    """Шаг 1: тип профиля."""
    await callback.answer()
    wizard = await _get_wizard(state)
    if wizard is None:
        await callback.message.answer(Messages.Wizard.NOT_STARTED)
        return
    if not wizard.select_type(callback_data.profile_type):
        await _show_errors(callback.message, wizard)
    await _show_step(callback.message, state, wizard)

@router.callback_query(LayoutCallback.filter(), ProfileWizardFSM.choosing_layout)
async def handle_layout(callback: CallbackQuery, callback_data: LayoutCallback, state: FSMContext) -> None:
    """Шаг 2: макет."""
    await callback.answer()
    wizard = await _get_wizard(state)
    if wizard is None:
        await callback.message.answer(Messages.Wizard.NOT_STARTED)
        return
    if not wizard.select_layout(callback_data.layout):
        await _show_errors(callback.message, wizard)
    await _show_step(callback.message, state, wizard)

@router.message(ProfileWizardFSM.entering_contacts, F.text)
async def handle_contacts(message: Message, state: FSMContext) -> None:
    """Шаг 3: текст контактов. Фото и логотип запрашиваются следом."""
    wizard = await _get_wizard(state)
    if wizard is None:
        await message.answer(Messages.Wizard.NOT_STARTED)
        return
    if _is_skip(message):
        update = ContactInfoUpdate()
    else:
        try:
            update = parse_contact_text(message.text)
        except ValueError as e:
            await message.answer(str(e))
            return
    errors = validate_contact_info(merge_update(wizard.state.contact_info, update))
    if errors:
        await message.answer(format_errors(errors))
        return
    pending = {name: getattr(update, name) for name in update.model_fields_set}
    await state.update_data(pending_contacts=pending)
    await _ask_for_file(message, state, "photo")

@router.message(ProfileWizardFSM.entering_contacts)
async def handle_contacts_not_text(message: Message) -> None:
    """Контакты принимаются только текстом, файлы запрашиваются позже."""
    await message.answer(Messages.Wizard.ENTER_CONTACTS, reply_markup=get_nav_keyboard())

@router.message(ProfileWizardFSM.uploading_file)
async def handle_file_upload(message: Message, state: FSMContext) -> None:
    """Загрузка фото, логотипа или резюме."""
    data: Dict[str, Any] = await state.get_data()
    file_type: Optional[str] = data.get('file_type')
    wizard = await _get_wizard(state)
    if wizard is None or file_type not in FILE_PROMPTS:
        logger.warning(f"Unexpected upload state for user {message.from_user.id}: file_type={file_type}")
        await message.answer(Messages.Wizard.NOT_STARTED)
        return

    handle: Optional[FileHandle] = None
    if not _is_skip(message):
        handle = await _download(message)
        if handle is None:
            await message.answer(Messages.Wizard.FILE_EXPECTED)
            return
        logger.info(f"User {message.from_user.id} uploaded {file_type}: {handle.filename} ({handle.content_type})")

    if file_type in ("photo", "company_logo"):
        pending: Dict[str, Any] = dict(data.get('pending_contacts') or {})
        if handle:
            pending[file_type] = handle
        await state.update_data(pending_contacts=pending)
        if file_type == "photo" and wizard.state.profile_type is ProfileType.PROFESSIONAL:
            await _ask_for_file(message, state, "company_logo")
            return
        await _finish_contacts(message, state, wizard, pending)
    else:
        pending = dict(data.get('pending_student') or {})
        if handle:
            pending['resume_file'] = handle
        await state.update_data(pending_student=pending)
        await _finish_student_details(message, state, wizard, pending)

@router.message(ProfileWizardFSM.entering_student_details, F.text)
async def handle_student_details(message: Message, state: FSMContext) -> None:
    """Шаг 4 (студент): о себе, затем навыки, затем резюме."""
    data: Dict[str, Any] = await state.get_data()
    current_field: Optional[str] = data.get('current_field')
    pending: Dict[str, Any] = dict(data.get('pending_student') or {})
    text = message.text.strip()

    if current_field == 'about_me':
        if not _is_skip(message):
            pending['about_me'] = text
        await state.update_data(pending_student=pending, current_field='skills')
        await message.answer(Messages.Wizard.ENTER_SKILLS)
    elif current_field == 'skills':
        if not _is_skip(message):
            skills = parse_skills_text(text)
            if not skills:
                await message.answer(Messages.Validation.SKILLS_REQUIRED)
                return
            pending['skills'] = skills
        await state.update_data(pending_student=pending)
        await _ask_for_file(message, state, "resume")
    else:
        logger.warning(f"No current_field for user {message.from_user.id}")
        await message.answer(Messages.Common.INVALID_INPUT)

@router.callback_query(ProductCallback.filter(), ProfileWizardFSM.products_menu)
async def handle_products_menu(callback: CallbackQuery, callback_data: ProductCallback, state: FSMContext) -> None:
    """Шаг 4 (профессионал): список продуктов."""
    await callback.answer()
    wizard = await _get_wizard(state)
    if wizard is None:
        await callback.message.answer(Messages.Wizard.NOT_STARTED)
        return

    if callback_data.action == "add":
        if not wizard.can_add_product:
            await callback.message.answer(Messages.Validation.MAX_PRODUCTS.format(max=MAX_PRODUCTS))
            return
        await state.update_data(pending_product={}, current_step='name')
        await callback.message.answer(Messages.Wizard.ENTER_PRODUCT_NAME)
        await state.set_state(ProfileWizardFSM.entering_product)
    elif callback_data.action == "remove":
        if wizard.remove_product(callback_data.index):
            await callback.message.answer(Messages.Wizard.PRODUCT_REMOVED)
        else:
            await _show_errors(callback.message, wizard)
        await _save_wizard(state, wizard)
        await _show_products_menu(callback.message, state, wizard)
    elif wizard.submit_products():
        await _show_step(callback.message, state, wizard)
    else:
        await _save_wizard(state, wizard)
        await _show_errors(callback.message, wizard)
        await _show_products_menu(callback.message, state, wizard)

@router.message(ProfileWizardFSM.entering_product)
async def handle_product_entry(message: Message, state: FSMContext) -> None:
    """Пошаговый ввод продукта: название, описание, изображение, PDF."""
    data: Dict[str, Any] = await state.get_data()
    current_step: Optional[str] = data.get('current_step')
    pending: Dict[str, Any] = dict(data.get('pending_product') or {})
    wizard = await _get_wizard(state)
    if wizard is None:
        await message.answer(Messages.Wizard.NOT_STARTED)
        return

    if current_step in ('name', 'description'):
        if not message.text or _is_skip(message):
            await message.answer(Messages.Common.INVALID_INPUT)
            return
        pending[current_step] = message.text.strip()
        if current_step == 'name':
            await state.update_data(pending_product=pending, current_step='description')
            await message.answer(Messages.Wizard.ENTER_PRODUCT_DESCRIPTION)
        else:
            await state.update_data(pending_product=pending, current_step='image')
            await message.answer(Messages.Wizard.UPLOAD_PRODUCT_IMAGE)
        return

    if current_step not in ('image', 'pdf'):
        logger.warning(f"No current_step for user {message.from_user.id}")
        await message.answer(Messages.Common.INVALID_INPUT)
        return

    if not _is_skip(message):
        handle = await _download(message)
        if handle is None:
            await message.answer(Messages.Wizard.FILE_EXPECTED)
            return
        pending[current_step] = handle

    if current_step == 'image':
        await state.update_data(pending_product=pending, current_step='pdf')
        await message.answer(Messages.Wizard.UPLOAD_PRODUCT_PDF)
        return

    product = Product(**pending)
    if wizard.add_product(product):
        await message.answer(Messages.Wizard.PRODUCT_ADDED.format(name=escape(product.name)))
    else:
        await _show_errors(message, wizard)
    await state.update_data(pending_product=None, current_step=None)
    await _save_wizard(state, wizard)
    await _show_products_menu(message, state, wizard)

@router.callback_query(ConfirmationCallback.filter(F.step == "enquiry"), ProfileWizardFSM.enquiry_setup)
async def handle_enquiry_toggle(callback: CallbackQuery, callback_data: ConfirmationCallback, state: FSMContext) -> None:
    """Шаг 5: включение формы заявок."""
    await callback.answer()
    await state.update_data(pending_enquiry={"enable_enquiry": callback_data.action == "yes"})
    await callback.message.answer(Messages.Wizard.ENQUIRY_MESSAGE)

@router.message(ProfileWizardFSM.enquiry_setup, F.text)
async def handle_enquiry_message(message: Message, state: FSMContext) -> None:
    """Шаг 5: сообщение для посетителей."""
    data: Dict[str, Any] = await state.get_data()
    wizard = await _get_wizard(state)
    if wizard is None:
        await message.answer(Messages.Wizard.NOT_STARTED)
        return
    pending: Dict[str, Any] = dict(data.get('pending_enquiry') or {})
    if not _is_skip(message):
        pending['custom_message'] = message.text.strip()
    if not wizard.submit_enquiry(EnquiryFormUpdate(**pending)):
        await _show_errors(message, wizard)
    await _show_step(message, state, wizard)

@router.callback_query(WizardNavCallback.filter(F.action == "submit"), ProfileWizardFSM.review)
async def handle_submit(callback: CallbackQuery, state: FSMContext, session: UserSession) -> None:
    """Отправка профиля в сервис."""
    wizard = await _get_wizard(state)
    if wizard is None:
        await callback.answer(Messages.Wizard.NOT_STARTED, show_alert=True)
        return
    if wizard.state.saving:
        await callback.answer(Messages.Wizard.BUSY, show_alert=True)
        return
    await callback.answer()
    await callback.message.answer(Messages.Wizard.SAVING)
    logger.info(f"User {callback.from_user.id} submitting profile, mode={wizard.state.mode.value}")

    try:
        await wizard.submit(profile_api_client, token=session.token)
    except WizardBusyError:
        await callback.message.answer(Messages.Wizard.BUSY)
        return
    except ProfileSubmitError as e:
        await _save_wizard(state, wizard)
        await callback.message.answer(
            Messages.Wizard.SUBMIT_ERROR.format(error=escape(str(e))), reply_markup=get_review_keyboard()
        )
        return

    await state.clear()
    if wizard.state.mode is WizardMode.EDIT:
        await callback.message.answer(Messages.Wizard.UPDATED)
        await send_profiles_list(callback.message, session)
    else:
        await callback.message.answer(Messages.Wizard.CREATED)
