"""
Общие фикстуры тестов: файлы, контакты и прогон мастера до шага проверки.
"""
import asyncio
from typing import Any, AsyncGenerator, Dict, List, Optional

import pytest
from aiogram import Bot
from aiogram.client.session.base import BaseSession
from aiogram.fsm.context import FSMContext
from aiogram.fsm.storage.base import StorageKey
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.methods import AnswerCallbackQuery, SendMessage
from aiogram.types import CallbackQuery, Message

from cardbot.services.wizard import DetailVariant, ProfileWizard, Step
from cardbot.utils.validators import (
    ContactInfoUpdate, EnquiryFormUpdate, FileHandle, Layout, Product,
    ProfileType, StudentDetailsUpdate,
)

LEGAL_PAIRS = [
    (ProfileType.STUDENT, Layout.SINGLE),
    (ProfileType.STUDENT, Layout.DOUBLE),
    (ProfileType.PROFESSIONAL, Layout.SINGLE),
    (ProfileType.PROFESSIONAL, Layout.DOUBLE_PRODUCTS),
    (ProfileType.PROFESSIONAL, Layout.DOUBLE_ENQUIRY),
    (ProfileType.PROFESSIONAL, Layout.TRIPLE),
]


def make_image(name: str = "photo.jpg") -> FileHandle:
    return FileHandle(filename=name, content=b"\xff\xd8\xff fake jpeg", content_type="image/jpeg")


def make_pdf(name: str = "resume.pdf") -> FileHandle:
    return FileHandle(filename=name, content=b"%PDF-1.4 fake", content_type="application/pdf")


def contact_update(**overrides: Any) -> ContactInfoUpdate:
    data: Dict[str, Any] = {
        "name": "Ivan Petrov",
        "email": "ivan@example.com",
        "phone": "+7 912 345 67 89",
        "website": "https://ivan.example.com",
    }
    data.update(overrides)
    return ContactInfoUpdate(**data)


def student_update(**overrides: Any) -> StudentDetailsUpdate:
    data: Dict[str, Any] = {
        "about_me": "Third-year CS student",
        "skills": ["Python", "SQL"],
        "resume_file": make_pdf(),
    }
    data.update(overrides)
    return StudentDetailsUpdate(**data)


def make_product(name: str = "Widget", **overrides: Any) -> Product:
    data: Dict[str, Any] = {"name": name, "description": f"{name} description"}
    data.update(overrides)
    return Product(**data)


def drive_to_review(
    wizard: ProfileWizard,
    profile_type: ProfileType,
    layout: Layout,
    contact: Optional[ContactInfoUpdate] = None,
    products: Optional[List[Product]] = None,
) -> List[Step]:
    """Проходит мастер легальной последовательностью и возвращает посещённые шаги."""
    visited = [wizard.step]
    assert wizard.select_type(profile_type)
    visited.append(wizard.step)
    assert wizard.select_layout(layout)
    visited.append(wizard.step)
    assert wizard.submit_contact_info(contact or contact_update())
    visited.append(wizard.step)
    while wizard.step is not Step.REVIEW:
        if wizard.step is Step.DETAILS and wizard.detail_variant is DetailVariant.STUDENT_DETAILS:
            assert wizard.submit_student_details(student_update())
        elif wizard.step is Step.DETAILS:
            for product in products or [make_product()]:
                assert wizard.add_product(product)
            assert wizard.submit_products()
        elif wizard.step is Step.ENQUIRY_SETUP:
            assert wizard.submit_enquiry(EnquiryFormUpdate(enable_enquiry=True, custom_message="Write to me"))
        else:
            raise AssertionError(f"Unexpected step {wizard.step}")
        visited.append(wizard.step)
    return visited


@pytest.fixture
def wizard() -> ProfileWizard:
    return ProfileWizard.create()


@pytest.fixture
def professional_profile() -> Dict[str, Any]:
    """Профиль в том виде, в каком его возвращает сервис профилей."""
    return {
        "_id": "65f0c0ffee0000000000abcd",
        "profileType": "professional",
        "layout": "triple",
        "contactInfo": {
            "name": "Anna Smirnova",
            "email": "anna@example.com",
            "phone": "+7 912 000 11 22",
            "address": "Kazan",
            "photo": "https://cdn.example.com/photos/anna.jpg",
            "companyLogo": "https://cdn.example.com/logos/acme.png",
        },
        "products": [
            {
                "name": "Consulting",
                "description": "Hourly consulting",
                "image": "https://cdn.example.com/products/1.png",
                "pdf": None,
            },
        ],
        "enquiryForm": {"enabled": True, "customMessage": "Ask me anything"},
    }


class FakeProfileClient:
    """Подмена ProfileAPIClient: запоминает вызовы, может падать или ждать."""

    def __init__(self, error: Optional[Exception] = None, gate: Optional[asyncio.Event] = None):
        self.error = error
        self.gate = gate
        self.calls: List[Dict[str, Any]] = []

    async def _respond(self, call: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append(call)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return {"_id": call.get("profile_id") or "new-id"}

    async def create_profile(self, parts, token=None):
        return await self._respond({"method": "create", "parts": parts, "token": token})

    async def update_profile(self, profile_id, parts, token=None):
        return await self._respond({"method": "update", "profile_id": profile_id, "parts": parts, "token": token})

    async def get_profile(self, profile_id, token=None):
        return await self._respond({"method": "get", "profile_id": profile_id, "token": token})


# ---------------------------------------------------------------------------
# aiogram: бот без сети, события и FSM в памяти
# ---------------------------------------------------------------------------

USER_ID = 1001


class RecordingSession(BaseSession):
    """Сессия бота без сети: запоминает вызванные методы Bot API."""

    def __init__(self):
        super().__init__()
        self.requests: List[Any] = []

    async def make_request(self, bot, method, timeout=None):
        self.requests.append(method)
        return None

    async def stream_content(
        self, url, headers=None, timeout=30, chunk_size=65536, raise_for_status=True
    ) -> AsyncGenerator[bytes, None]:
        yield b""

    async def close(self) -> None:
        pass


def sent_messages(bot: Bot) -> List[SendMessage]:
    return [m for m in bot.session.requests if isinstance(m, SendMessage)]


def sent_texts(bot: Bot) -> List[str]:
    return [m.text for m in sent_messages(bot)]


def callback_answers(bot: Bot) -> List[AnswerCallbackQuery]:
    return [m for m in bot.session.requests if isinstance(m, AnswerCallbackQuery)]


def _user() -> Dict[str, Any]:
    return {"id": USER_ID, "is_bot": False, "first_name": "Anna"}


def _message_data(text: Optional[str] = None, **fields: Any) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "message_id": 1,
        "date": 1700000000,
        "chat": {"id": USER_ID, "type": "private"},
        "from_user": _user(),
    }
    if text is not None:
        data["text"] = text
    data.update(fields)
    return data


def make_message(bot: Bot, text: Optional[str] = None, **fields: Any) -> Message:
    return Message.model_validate(_message_data(text, **fields), context={"bot": bot})


def make_callback(bot: Bot, data: str) -> CallbackQuery:
    return CallbackQuery.model_validate(
        {
            "id": "cb-1",
            "from_user": _user(),
            "chat_instance": "ci-1",
            "data": data,
            "message": _message_data("Anna\nstudent"),
        },
        context={"bot": bot},
    )


@pytest.fixture
def bot() -> Bot:
    return Bot(token="42:TEST-TOKEN", session=RecordingSession())


@pytest.fixture
def state() -> FSMContext:
    return FSMContext(storage=MemoryStorage(), key=StorageKey(bot_id=42, chat_id=USER_ID, user_id=USER_ID))
