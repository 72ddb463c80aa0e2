import logging
import re
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union
import phonenumbers
from pydantic import BaseModel, Field
from cardbot.core.messages import Messages

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MAX_PRODUCTS = 3

class ProfileType(str, Enum):
    STUDENT = "student"
    PROFESSIONAL = "professional"

class Layout(str, Enum):
    SINGLE = "single"
    DOUBLE = "double"
    DOUBLE_PRODUCTS = "double-products"
    DOUBLE_ENQUIRY = "double-enquiry"
    TRIPLE = "triple"

LAYOUTS_BY_TYPE: Dict[ProfileType, Tuple[Layout, ...]] = {
    ProfileType.STUDENT: (Layout.SINGLE, Layout.DOUBLE),
    ProfileType.PROFESSIONAL: (
        Layout.SINGLE, Layout.DOUBLE_PRODUCTS, Layout.DOUBLE_ENQUIRY, Layout.TRIPLE
    ),
}

SOCIAL_FIELDS = ("linkedin", "facebook", "instagram", "twitter", "github")
SCALAR_CONTACT_FIELDS = ("name", "email", "phone", "address", "website") + SOCIAL_FIELDS

CONTACT_FIELD_ALIASES = {
    "имя": "name",
    "фио": "name",
    "почта": "email",
    "e-mail": "email",
    "телефон": "phone",
    "адрес": "address",
    "сайт": "website",
    "x": "twitter",
}

class FileHandle(BaseModel):
    """Загруженный пользователем файл. В JSON-метаданные не попадает."""
    filename: str
    content: bytes = Field(repr=False)
    content_type: str

    def is_image(self) -> bool:
        return self.content_type.startswith("image/")

    def is_pdf(self) -> bool:
        return self.content_type == "application/pdf"

    def as_upload(self) -> Tuple[str, bytes, str]:
        return self.filename, self.content, self.content_type

# str - ссылка на файл, уже сохранённый сервисом профилей
Attachment = Union[FileHandle, str]

class ContactInfo(BaseModel):
    """Контактные данные (шаг 3)."""
    name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    website: str = ""
    linkedin: str = ""
    facebook: str = ""
    instagram: str = ""
    twitter: str = ""
    github: str = ""
    photo: Optional[Attachment] = None
    company_logo: Optional[Attachment] = None

class ContactInfoUpdate(BaseModel):
    """Частичное обновление контактов: незаданные поля сохраняют прежнее значение."""
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    website: Optional[str] = None
    linkedin: Optional[str] = None
    facebook: Optional[str] = None
    instagram: Optional[str] = None
    twitter: Optional[str] = None
    github: Optional[str] = None
    photo: Optional[Attachment] = None
    company_logo: Optional[Attachment] = None

class StudentDetails(BaseModel):
    """Данные студента (шаг 4)."""
    about_me: str = ""
    skills: List[str] = Field(default_factory=list)
    resume_file: Optional[Attachment] = None

class StudentDetailsUpdate(BaseModel):
    about_me: Optional[str] = None
    skills: Optional[List[str]] = None
    resume_file: Optional[Attachment] = None

class Product(BaseModel):
    name: str = ""
    description: str = ""
    image: Optional[Attachment] = None
    pdf: Optional[Attachment] = None

class EnquiryForm(BaseModel):
    """Настройки формы заявок (шаг 5)."""
    enable_enquiry: bool = True
    custom_message: str = ""

class EnquiryFormUpdate(BaseModel):
    enable_enquiry: Optional[bool] = None
    custom_message: Optional[str] = None

def merge_update(current: BaseModel, update: BaseModel) -> BaseModel:
    """Слияние частичного обновления с текущей записью по полям."""
    changes = {name: getattr(update, name) for name in update.model_fields_set}
    return current.model_copy(update=changes)

def is_valid_phone(phone: str) -> bool:
    """Телефон в международном формате (+код страны)."""
    try:
        parsed = phonenumbers.parse(phone, None)
    except phonenumbers.NumberParseException:
        return False
    return phonenumbers.is_possible_number(parsed)

def _check_image(value: Optional[Attachment]) -> bool:
    return not isinstance(value, FileHandle) or value.is_image()

def _check_pdf(value: Optional[Attachment]) -> bool:
    return not isinstance(value, FileHandle) or value.is_pdf()

def validate_contact_info(info: ContactInfo) -> Dict[str, str]:
    """Проверка контактов. Возвращает карту ошибок по полям."""
    errors: Dict[str, str] = {}
    if not info.name.strip():
        errors["name"] = Messages.Validation.NAME_REQUIRED
    if not info.email.strip():
        errors["email"] = Messages.Validation.EMAIL_REQUIRED
    elif not EMAIL_RE.match(info.email.strip()):
        errors["email"] = Messages.Validation.EMAIL_INVALID
    if not info.phone.strip():
        errors["phone"] = Messages.Validation.PHONE_REQUIRED
    elif not is_valid_phone(info.phone.strip()):
        # локальные номера допустимы, формат только логируем
        logger.warning(f"Phone without international format: {info.phone.strip()!r}")
    if not _check_image(info.photo):
        errors["photo"] = Messages.Validation.IMAGE_ONLY
    if not _check_image(info.company_logo):
        errors["company_logo"] = Messages.Validation.IMAGE_ONLY
    return errors

def validate_student_details(details: StudentDetails) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    if not details.about_me.strip():
        errors["about_me"] = Messages.Validation.ABOUT_ME_REQUIRED
    if not [skill for skill in details.skills if skill.strip()]:
        errors["skills"] = Messages.Validation.SKILLS_REQUIRED
    if not details.resume_file:
        errors["resume_file"] = Messages.Validation.RESUME_REQUIRED
    elif not _check_pdf(details.resume_file):
        errors["resume_file"] = Messages.Validation.PDF_ONLY
    return errors

def validate_product(product: Product, index: int) -> Dict[str, str]:
    """Ключи ошибок вида product{index}_{field}."""
    errors: Dict[str, str] = {}
    if not product.name.strip():
        errors[f"product{index}_name"] = Messages.Validation.PRODUCT_NAME_REQUIRED
    if not product.description.strip():
        errors[f"product{index}_description"] = Messages.Validation.PRODUCT_DESCRIPTION_REQUIRED
    if not _check_image(product.image):
        errors[f"product{index}_image"] = Messages.Validation.IMAGE_ONLY
    if not _check_pdf(product.pdf):
        errors[f"product{index}_pdf"] = Messages.Validation.PDF_ONLY
    return errors

def validate_list_length(items: List, max_length: int = MAX_PRODUCTS) -> None:
    """Валидация длины списка."""
    if len(items) > max_length:
        raise ValueError(Messages.Validation.MAX_PRODUCTS.format(max=max_length))

def parse_contact_text(text: str) -> ContactInfoUpdate:
    """Парсинг строк вида 'поле: значение' в обновление контактов."""
    data: Dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        if ':' not in line:
            raise ValueError(Messages.Common.INVALID_INPUT)
        key, value = line.split(':', 1)
        key = key.strip().lower()
        key = CONTACT_FIELD_ALIASES.get(key, key)
        if key not in SCALAR_CONTACT_FIELDS:
            raise ValueError(Messages.Validation.UNKNOWN_CONTACT_FIELD.format(field=key))
        data[key] = value.strip()
    if not data:
        raise ValueError(Messages.Common.INVALID_INPUT)
    return ContactInfoUpdate(**data)

def parse_skills_text(text: str) -> List[str]:
    """Навыки через запятую, без пустых и повторов."""
    skills: List[str] = []
    for part in text.split(','):
        skill = part.strip()
        if skill and skill not in skills:
            skills.append(skill)
    return skills
