from html import escape
from typing import Any, Dict, List
from cardbot.core.messages import Messages
from cardbot.services.wizard import DetailVariant, ProfileWizard, Step
from cardbot.utils.validators import ContactInfo, FileHandle, Product, SCALAR_CONTACT_FIELDS

def _attachment_label(value: Any) -> str:
    if isinstance(value, FileHandle):
        return f"📎 {escape(value.filename)}"
    return "📎 загружено" if value else "—"

def format_errors(errors: Dict[str, str]) -> str:
    """Ошибки валидации списком, по одной на строку."""
    return "\n".join(f"⚠️ {escape(message)}" for message in errors.values())

def format_contacts(info: ContactInfo) -> str:
    lines = [
        f"<b>{field}:</b> {escape(getattr(info, field))}"
        for field in SCALAR_CONTACT_FIELDS
        if getattr(info, field)
    ]
    return "\n".join(lines) or "—"

def format_products(products: List[Product]) -> str:
    if not products:
        return Messages.Wizard.NO_PRODUCTS_YET
    text = ""
    for index, product in enumerate(products, start=1):
        text += f"{index}. <b>{escape(product.name)}</b> — {escape(product.description[:200])}\n"
        if product.image or product.pdf:
            text += f"   🖼 {_attachment_label(product.image)}  📄 {_attachment_label(product.pdf)}\n"
    return text.rstrip("\n")

def format_review(wizard: ProfileWizard) -> str:
    """Сводка профиля для шага проверки."""
    state = wizard.state
    steps = wizard.flow
    text = (
        f"<b>Тип:</b> {state.profile_type.value}\n"
        f"<b>Макет:</b> {Messages.Buttons.LAYOUTS[state.layout.value]}\n\n"
        f"<b>📇 Контакты</b>\n{format_contacts(state.contact_info)}\n"
        f"<b>Фото:</b> {_attachment_label(state.contact_info.photo)}\n"
    )
    if state.contact_info.company_logo:
        text += f"<b>Логотип:</b> {_attachment_label(state.contact_info.company_logo)}\n"

    if Step.DETAILS in steps and wizard.detail_variant is DetailVariant.STUDENT_DETAILS:
        details = state.student_details
        text += (
            f"\n<b>🎓 О себе</b>\n<i>{escape(details.about_me[:300])}</i>\n"
            f"<b>Навыки:</b> {escape(', '.join(details.skills))}\n"
            f"<b>Резюме:</b> {_attachment_label(details.resume_file)}\n"
        )
    elif Step.DETAILS in steps:
        text += f"\n<b>🛍️ Продукты</b>\n{format_products(state.products)}\n"

    if Step.ENQUIRY_SETUP in steps:
        enquiry = state.enquiry_form
        text += f"\n<b>✉️ Форма заявок:</b> {'включена' if enquiry.enable_enquiry else 'выключена'}\n"
        if enquiry.custom_message:
            text += f"<i>{escape(enquiry.custom_message)}</i>\n"

    if state.submit_error:
        text += f"\n❌ {escape(state.submit_error)}\n"
    return text

def format_profile_card(profile: Dict[str, Any]) -> str:
    """Строка профиля в списке /profiles."""
    contact = profile.get("contactInfo") or {}
    status = "🟢 активен" if profile.get("isActive", True) else "⚪️ выключен"
    layout = Messages.Buttons.LAYOUTS.get(profile.get("layout"), profile.get("layout") or "—")
    return (
        f"<b>{escape(contact.get('name') or 'Без имени')}</b>\n"
        f"<i>{escape(profile.get('profileType') or '—')}</i> · {layout}\n"
        f"{status}"
    )
