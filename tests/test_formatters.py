"""
Тексты шага проверки и списка профилей.
"""
from cardbot.utils.formatters import format_errors, format_profile_card, format_review
from cardbot.utils.validators import Layout, ProfileType

from conftest import contact_update, drive_to_review, make_image


def test_review_for_triple_lists_products_and_enquiry(wizard):
    drive_to_review(wizard, ProfileType.PROFESSIONAL, Layout.TRIPLE, contact=contact_update(photo=make_image("me.jpg")))

    text = format_review(wizard)

    assert "Ivan Petrov" in text
    assert "me.jpg" in text
    assert "Widget" in text
    assert "включена" in text
    assert "Write to me" in text
    assert "Навыки" not in text


def test_review_for_student_single_has_contacts_only(wizard):
    drive_to_review(wizard, ProfileType.STUDENT, Layout.SINGLE)

    text = format_review(wizard)

    assert "ivan@example.com" in text
    assert "Продукты" not in text
    assert "О себе" not in text
    assert "Форма заявок" not in text


def test_review_escapes_user_input(wizard):
    drive_to_review(wizard, ProfileType.STUDENT, Layout.SINGLE, contact=contact_update(name="<b>Ivan</b>"))

    assert "&lt;b&gt;Ivan&lt;/b&gt;" in format_review(wizard)


def test_review_shows_last_submit_error(wizard):
    drive_to_review(wizard, ProfileType.STUDENT, Layout.SINGLE)
    wizard.state.submit_error = "Service unavailable"

    assert "Service unavailable" in format_review(wizard)


def test_format_errors_one_per_line():
    text = format_errors({"name": "Укажите имя", "email": "Некорректный email"})

    assert text.splitlines() == ["⚠️ Укажите имя", "⚠️ Некорректный email"]


def test_profile_card_shows_status():
    card = format_profile_card({
        "profileType": "student",
        "layout": "double",
        "isActive": False,
        "contactInfo": {"name": "Anna"},
    })

    assert card.startswith("<b>Anna</b>")
    assert "выключен" in card
