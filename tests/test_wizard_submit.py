"""
Отправка профиля: создание, обновление, ошибки сервиса и защита от повторной отправки.
"""
import asyncio

import pytest

from cardbot.core.messages import Messages
from cardbot.services.api_client import APIHTTPError, APINetworkError
from cardbot.services.wizard import (
    InvalidWizardStateError, ProfileSubmitError, ProfileWizard, Step, WizardBusyError,
    WizardMode, WizardState,
)
from cardbot.utils.validators import ContactInfoUpdate, EnquiryFormUpdate, Layout, ProfileType

from conftest import FakeProfileClient, drive_to_review


@pytest.mark.asyncio
async def test_create_sends_payload_and_finishes(wizard):
    drive_to_review(wizard, ProfileType.STUDENT, Layout.DOUBLE)
    client = FakeProfileClient()

    result = await wizard.submit(client, token="jwt")

    assert result == {"_id": "new-id"}
    assert len(client.calls) == 1
    call = client.calls[0]
    assert call["method"] == "create"
    assert call["token"] == "jwt"
    assert call["parts"][0][0] == "profileData"
    assert [name for name, _ in call["parts"][1:]] == ["resumeFile"]
    assert wizard.state.finished
    assert not wizard.state.saving


@pytest.mark.asyncio
async def test_edit_mode_updates_existing_profile(professional_profile):
    wizard = ProfileWizard.from_profile(professional_profile)
    wizard.submit_contact_info(ContactInfoUpdate(address="Innopolis"))
    wizard.submit_products()
    wizard.submit_enquiry(EnquiryFormUpdate())
    client = FakeProfileClient()

    await wizard.submit(client, token="jwt")

    assert client.calls[0]["method"] == "update"
    assert client.calls[0]["profile_id"] == "65f0c0ffee0000000000abcd"
    assert wizard.state.finished


@pytest.mark.asyncio
async def test_edit_mode_without_profile_id_is_refused():
    wizard = ProfileWizard(WizardState(
        step=Step.REVIEW, mode=WizardMode.EDIT,
        profile_type=ProfileType.STUDENT, layout=Layout.SINGLE,
    ))

    with pytest.raises(InvalidWizardStateError):
        await wizard.submit(FakeProfileClient())


@pytest.mark.asyncio
async def test_submit_before_review_is_refused(wizard):
    wizard.select_type(ProfileType.STUDENT)
    client = FakeProfileClient()

    with pytest.raises(InvalidWizardStateError):
        await wizard.submit(client)
    assert client.calls == []


@pytest.mark.asyncio
async def test_failed_submit_keeps_data_and_allows_retry(wizard):
    drive_to_review(wizard, ProfileType.PROFESSIONAL, Layout.TRIPLE)
    snapshot = wizard.state.model_copy(deep=True)
    client = FakeProfileClient(error=APIHTTPError(400, "Profile data is invalid"))

    with pytest.raises(ProfileSubmitError) as exc_info:
        await wizard.submit(client, token="jwt")

    assert str(exc_info.value) == "Profile data is invalid"
    assert exc_info.value.status_code == 400
    assert wizard.step is Step.REVIEW
    assert wizard.state.submit_error == "Profile data is invalid"
    assert not wizard.state.saving
    assert not wizard.state.finished
    assert wizard.state.contact_info == snapshot.contact_info
    assert wizard.state.products == snapshot.products
    assert wizard.state.enquiry_form == snapshot.enquiry_form

    client.error = None
    await wizard.submit(client, token="jwt")
    assert len(client.calls) == 2
    assert wizard.state.finished
    assert wizard.state.submit_error is None


@pytest.mark.asyncio
async def test_network_error_has_no_status_code(wizard):
    drive_to_review(wizard, ProfileType.STUDENT, Layout.SINGLE)

    with pytest.raises(ProfileSubmitError) as exc_info:
        await wizard.submit(FakeProfileClient(error=APINetworkError("Network error: timeout")))

    assert exc_info.value.status_code is None
    assert wizard.step is Step.REVIEW


@pytest.mark.asyncio
async def test_wizard_is_locked_while_saving(wizard):
    drive_to_review(wizard, ProfileType.STUDENT, Layout.SINGLE)
    gate = asyncio.Event()
    client = FakeProfileClient(gate=gate)

    task = asyncio.create_task(wizard.submit(client))
    while not client.calls:
        await asyncio.sleep(0)

    assert wizard.state.saving
    assert not wizard.can_go_back
    assert not wizard.back()
    assert wizard.errors == {"general": Messages.Wizard.BUSY}
    with pytest.raises(WizardBusyError):
        await wizard.submit(client)

    gate.set()
    await task
    assert len(client.calls) == 1
    assert not wizard.state.saving


@pytest.mark.asyncio
async def test_finished_wizard_cannot_be_submitted_twice(wizard):
    drive_to_review(wizard, ProfileType.STUDENT, Layout.SINGLE)
    client = FakeProfileClient()
    await wizard.submit(client)

    with pytest.raises(WizardBusyError):
        await wizard.submit(client)
    assert len(client.calls) == 1
