"""Мастер создания и редактирования профиля визитки.

Модуль не зависит от aiogram: хендлеры только передают сюда данные шагов
и показывают результат. Переходы между шагами задаются таблицей FLOWS по паре
(тип профиля, макет). Ошибки валидации не бросаются, а попадают в
``state.errors``; исключения зарезервированы для неверного состояния мастера
и ошибок сервиса профилей.
"""
import json
import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from pydantic import BaseModel, Field
from cardbot.core.messages import Messages
from cardbot.services.api_client import APIRequestError, ProfileAPIClient
from cardbot.utils.validators import (
    ContactInfo, ContactInfoUpdate, EnquiryForm, EnquiryFormUpdate, FileHandle,
    LAYOUTS_BY_TYPE, Layout, MAX_PRODUCTS, Product, ProfileType,
    SCALAR_CONTACT_FIELDS, StudentDetails, StudentDetailsUpdate,
    merge_update, validate_contact_info, validate_list_length, validate_product,
    validate_student_details,
)

logger = logging.getLogger(__name__)

class Step(str, Enum):
    CHOOSE_TYPE = "choose_type"
    CHOOSE_LAYOUT = "choose_layout"
    CONTACT_INFO = "contact_info"
    DETAILS = "details"
    ENQUIRY_SETUP = "enquiry_setup"
    REVIEW = "review"

class DetailVariant(str, Enum):
    STUDENT_DETAILS = "student_details"
    PRODUCTS = "products"

class WizardMode(str, Enum):
    CREATE = "create"
    EDIT = "edit"

HEAD_STEPS: Tuple[Step, ...] = (Step.CHOOSE_TYPE, Step.CHOOSE_LAYOUT, Step.CONTACT_INFO)

# Шаги после контактов для каждой допустимой пары (тип, макет)
FLOWS: Dict[Tuple[ProfileType, Layout], Tuple[Step, ...]] = {
    (ProfileType.STUDENT, Layout.SINGLE): (Step.REVIEW,),
    (ProfileType.STUDENT, Layout.DOUBLE): (Step.DETAILS, Step.REVIEW),
    (ProfileType.PROFESSIONAL, Layout.SINGLE): (Step.REVIEW,),
    (ProfileType.PROFESSIONAL, Layout.DOUBLE_PRODUCTS): (Step.DETAILS, Step.REVIEW),
    (ProfileType.PROFESSIONAL, Layout.DOUBLE_ENQUIRY): (Step.ENQUIRY_SETUP, Step.REVIEW),
    (ProfileType.PROFESSIONAL, Layout.TRIPLE): (Step.DETAILS, Step.ENQUIRY_SETUP, Step.REVIEW),
}

class WizardError(Exception):
    """Базовая ошибка мастера профиля."""
    pass

class InvalidWizardStateError(WizardError):
    """Пара (тип, макет) вне таблицы переходов или шаг вне сценария."""
    pass

class WizardBusyError(WizardError):
    """Профиль уже сохраняется или мастер завершён."""
    pass

class ProfileSubmitError(WizardError):
    """Сервис профилей отклонил сохранение. Собранные данные не теряются."""
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)

def flow_for(profile_type: Optional[ProfileType], layout: Optional[Layout]) -> Tuple[Step, ...]:
    """Полный список шагов сценария для пары (тип, макет)."""
    try:
        tail = FLOWS[(profile_type, layout)]
    except KeyError:
        raise InvalidWizardStateError(
            f"Unsupported profile type/layout combination: {profile_type}/{layout}"
        )
    return HEAD_STEPS + tail

def next_step(current: Step, profile_type: Optional[ProfileType], layout: Optional[Layout]) -> Step:
    """Следующий шаг после успешной отправки текущего."""
    if current is Step.CHOOSE_TYPE:
        return Step.CHOOSE_LAYOUT
    if current is Step.CHOOSE_LAYOUT:
        return Step.CONTACT_INFO
    steps = flow_for(profile_type, layout)
    if current not in steps or current is Step.REVIEW:
        raise InvalidWizardStateError(f"No transition from {current.value} for {profile_type}/{layout}")
    return steps[steps.index(current) + 1]

def previous_step(
    current: Step,
    profile_type: Optional[ProfileType],
    layout: Optional[Layout],
    mode: WizardMode = WizardMode.CREATE,
) -> Optional[Step]:
    """Предыдущий шаг или None, если возвращаться некуда."""
    if current is Step.CHOOSE_TYPE:
        return None
    if current is Step.CHOOSE_LAYOUT:
        return Step.CHOOSE_TYPE
    if current is Step.CONTACT_INFO:
        # в режиме редактирования тип и макет не меняются
        return None if mode is WizardMode.EDIT else Step.CHOOSE_LAYOUT
    steps = flow_for(profile_type, layout)
    if current not in steps:
        raise InvalidWizardStateError(f"Step {current.value} is not part of {profile_type}/{layout} flow")
    return steps[steps.index(current) - 1]

class WizardState(BaseModel):
    """Состояние одной сессии мастера. Живёт только в памяти."""
    step: Step = Step.CHOOSE_TYPE
    mode: WizardMode = WizardMode.CREATE
    profile_id: Optional[str] = None
    profile_type: Optional[ProfileType] = None
    layout: Optional[Layout] = None
    contact_info: ContactInfo = Field(default_factory=ContactInfo)
    student_details: StudentDetails = Field(default_factory=StudentDetails)
    products: List[Product] = Field(default_factory=list)
    enquiry_form: EnquiryForm = Field(default_factory=EnquiryForm)
    errors: Dict[str, str] = Field(default_factory=dict)
    saving: bool = False
    finished: bool = False
    submit_error: Optional[str] = None

class ProfilePayload(BaseModel):
    """JSON-метаданные и файлы для одной multipart-отправки."""
    metadata: Dict[str, Any]
    files: List[Tuple[str, Tuple[str, bytes, str]]] = Field(default_factory=list)

    def metadata_json(self) -> str:
        return json.dumps(self.metadata, ensure_ascii=False)

    def parts(self) -> List[Tuple[str, tuple]]:
        """Части multipart-формы: текстовое поле profileData и файлы."""
        return [("profileData", (None, self.metadata_json()))] + list(self.files)

class ProfileWizard:
    """Конечный автомат мастера профиля поверх WizardState."""

    def __init__(self, state: Optional[WizardState] = None):
        self.state = state if state is not None else WizardState()

    @classmethod
    def create(cls) -> "ProfileWizard":
        return cls(WizardState())

    @classmethod
    def from_profile(cls, profile: Dict[str, Any], profile_id: Optional[str] = None) -> "ProfileWizard":
        """Заполнение состояния из профиля, полученного от сервиса (режим редактирования)."""
        try:
            profile_type = ProfileType(profile.get("profileType"))
            layout = Layout(profile.get("layout"))
        except ValueError:
            raise InvalidWizardStateError(
                f"Unsupported profile type/layout combination: "
                f"{profile.get('profileType')}/{profile.get('layout')}"
            )
        flow_for(profile_type, layout)

        contact = profile.get("contactInfo") or {}
        contact_info = ContactInfo(
            **{field: contact.get(field) or "" for field in SCALAR_CONTACT_FIELDS},
            photo=contact.get("photo") or None,
            company_logo=contact.get("companyLogo") or profile.get("companyLogo") or None,
        )
        student = profile.get("studentDetails") or {}
        student_details = StudentDetails(
            about_me=student.get("aboutMe") or "",
            skills=list(student.get("skills") or []),
            resume_file=student.get("resumeFile") or None,
        )
        products = [
            Product(
                name=item.get("name") or "",
                description=item.get("description") or "",
                image=item.get("image") or None,
                pdf=item.get("pdf") or None,
            )
            for item in (profile.get("products") or [])[:MAX_PRODUCTS]
        ]
        enquiry = profile.get("enquiryForm") or {}
        enquiry_form = EnquiryForm(
            enable_enquiry=bool(enquiry.get("enabled", False)),
            custom_message=enquiry.get("customMessage") or "",
        )
        state = WizardState(
            step=Step.CONTACT_INFO,
            mode=WizardMode.EDIT,
            profile_id=profile_id or str(profile.get("_id") or profile.get("id") or "") or None,
            profile_type=profile_type,
            layout=layout,
            contact_info=contact_info,
            student_details=student_details,
            products=products,
            enquiry_form=enquiry_form,
        )
        return cls(state)

    @property
    def step(self) -> Step:
        return self.state.step

    @property
    def errors(self) -> Dict[str, str]:
        return self.state.errors

    @property
    def flow(self) -> Tuple[Step, ...]:
        return flow_for(self.state.profile_type, self.state.layout)

    @property
    def detail_variant(self) -> Optional[DetailVariant]:
        if self.state.profile_type is ProfileType.STUDENT:
            return DetailVariant.STUDENT_DETAILS
        if self.state.profile_type is ProfileType.PROFESSIONAL:
            return DetailVariant.PRODUCTS
        return None

    @property
    def can_go_back(self) -> bool:
        if self.state.saving or self.state.finished:
            return False
        return previous_step(
            self.state.step, self.state.profile_type, self.state.layout, self.state.mode
        ) is not None

    @property
    def can_add_product(self) -> bool:
        return len(self.state.products) < MAX_PRODUCTS

    def _reject(self, errors: Dict[str, str]) -> bool:
        self.state.errors = errors
        return False

    def _enter(self, expected: Step, variant: Optional[DetailVariant] = None) -> bool:
        if self.state.saving or self.state.finished:
            return self._reject({"general": Messages.Wizard.BUSY})
        if self.state.step is not expected or (variant and self.detail_variant is not variant):
            return self._reject({"general": Messages.Wizard.STEP_NOT_ACTIVE})
        return True

    def _advance(self, step: Step) -> bool:
        logger.debug(f"Wizard step {self.state.step.value} -> {step.value}")
        self.state.step = step
        self.state.errors = {}
        return True

    def select_type(self, profile_type: ProfileType) -> bool:
        """Шаг 1: выбор типа профиля."""
        if not self._enter(Step.CHOOSE_TYPE):
            return False
        try:
            self.state.profile_type = ProfileType(profile_type)
        except ValueError:
            return self._reject({"profile_type": Messages.Common.INVALID_INPUT})
        if self.state.layout not in LAYOUTS_BY_TYPE[self.state.profile_type]:
            self.state.layout = None
        return self._advance(Step.CHOOSE_LAYOUT)

    def select_layout(self, layout: Layout) -> bool:
        """Шаг 2: выбор макета, допустимого для типа."""
        if not self._enter(Step.CHOOSE_LAYOUT):
            return False
        try:
            layout = Layout(layout)
        except ValueError:
            return self._reject({"layout": Messages.Validation.LAYOUT_NOT_ALLOWED})
        if layout not in LAYOUTS_BY_TYPE[self.state.profile_type]:
            return self._reject({"layout": Messages.Validation.LAYOUT_NOT_ALLOWED})
        self.state.layout = layout
        return self._advance(Step.CONTACT_INFO)

    def submit_contact_info(self, update: ContactInfoUpdate) -> bool:
        """Шаг 3: контакты. Следующий шаг определяется таблицей FLOWS."""
        if not self._enter(Step.CONTACT_INFO):
            return False
        merged = merge_update(self.state.contact_info, update)
        errors = validate_contact_info(merged)
        if errors:
            return self._reject(errors)
        target = next_step(Step.CONTACT_INFO, self.state.profile_type, self.state.layout)
        self.state.contact_info = merged
        return self._advance(target)

    def submit_student_details(self, update: StudentDetailsUpdate) -> bool:
        """Шаг 4 для студента: о себе, навыки, резюме."""
        if not self._enter(Step.DETAILS, DetailVariant.STUDENT_DETAILS):
            return False
        merged = merge_update(self.state.student_details, update)
        merged.skills = [skill.strip() for skill in merged.skills if skill.strip()]
        errors = validate_student_details(merged)
        if errors:
            return self._reject(errors)
        target = next_step(Step.DETAILS, self.state.profile_type, self.state.layout)
        self.state.student_details = merged
        return self._advance(target)

    def add_product(self, product: Product) -> bool:
        if not self._enter(Step.DETAILS, DetailVariant.PRODUCTS):
            return False
        try:
            validate_list_length(self.state.products + [product], max_length=MAX_PRODUCTS)
        except ValueError as e:
            return self._reject({"general": str(e)})
        errors = validate_product(product, len(self.state.products))
        if errors:
            return self._reject(errors)
        self.state.products.append(product)
        self.state.errors = {}
        return True

    def remove_product(self, index: int) -> bool:
        if not self._enter(Step.DETAILS, DetailVariant.PRODUCTS):
            return False
        if not 0 <= index < len(self.state.products):
            return self._reject({"general": Messages.Validation.PRODUCT_NOT_FOUND})
        del self.state.products[index]
        self.state.errors = {}
        return True

    def submit_products(self) -> bool:
        """Шаг 4 для профессионала: хотя бы один продукт."""
        if not self._enter(Step.DETAILS, DetailVariant.PRODUCTS):
            return False
        if not self.state.products:
            return self._reject({"general": Messages.Validation.NO_PRODUCTS})
        errors: Dict[str, str] = {}
        for index, product in enumerate(self.state.products):
            errors.update(validate_product(product, index))
        if errors:
            return self._reject(errors)
        return self._advance(next_step(Step.DETAILS, self.state.profile_type, self.state.layout))

    def submit_enquiry(self, update: EnquiryFormUpdate) -> bool:
        """Шаг 5: форма заявок, обязательных полей нет."""
        if not self._enter(Step.ENQUIRY_SETUP):
            return False
        target = next_step(Step.ENQUIRY_SETUP, self.state.profile_type, self.state.layout)
        self.state.enquiry_form = merge_update(self.state.enquiry_form, update)
        return self._advance(target)

    def back(self) -> bool:
        """Возврат на предыдущий шаг без потери собранных данных."""
        if self.state.saving or self.state.finished:
            return self._reject({"general": Messages.Wizard.BUSY})
        target = previous_step(
            self.state.step, self.state.profile_type, self.state.layout, self.state.mode
        )
        if target is None:
            return False
        return self._advance(target)

    def build_payload(self) -> ProfilePayload:
        """Сборка JSON-метаданных и файловых частей по текущему сценарию."""
        state = self.state
        steps = self.flow
        contact = state.contact_info
        metadata: Dict[str, Any] = {
            "profileType": state.profile_type.value,
            "layout": state.layout.value,
            "contactInfo": {field: getattr(contact, field) for field in SCALAR_CONTACT_FIELDS},
        }
        files: List[Tuple[str, Tuple[str, bytes, str]]] = []
        if isinstance(contact.photo, FileHandle):
            files.append(("photo", contact.photo.as_upload()))
        if isinstance(contact.company_logo, FileHandle):
            files.append(("companyLogo", contact.company_logo.as_upload()))

        if state.profile_type is ProfileType.STUDENT and Step.DETAILS in steps:
            details = state.student_details
            metadata["studentDetails"] = {
                "aboutMe": details.about_me,
                "skills": list(details.skills),
                "resumeFile": None,
            }
            if isinstance(details.resume_file, FileHandle):
                files.append(("resumeFile", details.resume_file.as_upload()))

        if state.profile_type is ProfileType.PROFESSIONAL:
            metadata["companyLogo"] = None
            if Step.DETAILS in steps:
                metadata["products"] = [
                    {"name": p.name, "description": p.description, "image": None, "pdf": None}
                    for p in state.products
                ]
                for product in state.products:
                    if isinstance(product.image, FileHandle):
                        files.append(("productImages", product.image.as_upload()))
                    if isinstance(product.pdf, FileHandle):
                        files.append(("productPdfs", product.pdf.as_upload()))
            if Step.ENQUIRY_SETUP in steps:
                metadata["enquiryForm"] = {
                    "enabled": state.enquiry_form.enable_enquiry,
                    "customMessage": state.enquiry_form.custom_message,
                }
        return ProfilePayload(metadata=metadata, files=files)

    async def submit(self, client: ProfileAPIClient, token: Optional[str] = None) -> Dict[str, Any]:
        """Отправка профиля в сервис. При ошибке остаёмся на шаге проверки."""
        if self.state.saving or self.state.finished:
            raise WizardBusyError(Messages.Wizard.BUSY)
        if self.state.step is not Step.REVIEW:
            raise InvalidWizardStateError(f"Cannot submit from step {self.state.step.value}")
        if self.state.mode is WizardMode.EDIT and not self.state.profile_id:
            raise InvalidWizardStateError("Edit mode requires profile id")
        payload = self.build_payload()
        self.state.saving = True
        self.state.submit_error = None
        try:
            if self.state.mode is WizardMode.EDIT:
                result = await client.update_profile(self.state.profile_id, payload.parts(), token=token)
            else:
                result = await client.create_profile(payload.parts(), token=token)
        except APIRequestError as e:
            self.state.submit_error = str(e)
            logger.warning(f"Profile submit failed ({self.state.mode.value}): {e}")
            raise ProfileSubmitError(str(e), getattr(e, "status_code", None)) from e
        finally:
            self.state.saving = False
        self.state.finished = True
        logger.info(f"Profile submitted ({self.state.mode.value}, {self.state.profile_type.value}/{self.state.layout.value})")
        return result
