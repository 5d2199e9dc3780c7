from datetime import datetime, timezone

import pytest

from fakes import FakeGateway, FakeWallets, Stack, image_event, text_event
from models.session_models import CreateMarketSession, WizardStep
from services.conversation import keyboards
from services.conversation.create_market_wizard import (
    InputRejected,
    parse_end_time,
    validate_option,
    validate_question,
)

NOW = datetime(2030, 1, 1, tzinfo=timezone.utc)


def test_question_length_bounds():
    assert validate_question("  Will BTC close above 100k?  ") == "Will BTC close above 100k?"
    assert validate_question("x" * 10) == "x" * 10
    assert validate_question("x" * 200) == "x" * 200
    with pytest.raises(InputRejected):
        validate_question("x" * 9)
    with pytest.raises(InputRejected):
        validate_question("x" * 201)


def test_option_length_bounds():
    assert validate_option("Yes") == "Yes"
    with pytest.raises(InputRejected):
        validate_option("   ")
    with pytest.raises(InputRejected):
        validate_option("y" * 51)


def test_end_time_formats():
    expected = int(datetime(2030, 6, 1, 12, 30, tzinfo=timezone.utc).timestamp())
    assert parse_end_time("2030-06-01 12:30", NOW) == expected
    assert parse_end_time("2030-06-01T12:30:00Z", NOW) == expected
    assert parse_end_time("2030-06-01T14:30:00+02:00", NOW) == expected
    assert parse_end_time("01/06/2030", NOW) == int(datetime(2030, 6, 1, tzinfo=timezone.utc).timestamp())


def test_end_time_must_be_future_and_readable():
    with pytest.raises(InputRejected):
        parse_end_time("2029-12-31 23:59", NOW)
    with pytest.raises(InputRejected):
        parse_end_time("2030-01-01 00:00", NOW)
    with pytest.raises(InputRejected):
        parse_end_time("next tuesday", NOW)


def test_toggle_tag_twice_is_identity():
    session = CreateMarketSession(step=WizardStep.TAGS)
    session.toggle_tag("Crypto")
    session.toggle_tag("Sports")
    session.toggle_tag("Crypto")
    assert session.selected_tags == ["Sports"]
    session.toggle_tag("Sports")
    assert session.selected_tags == []
    assert session.freeze_tags() == ""
    assert session.step is WizardStep.CONFIRM


def test_frozen_tags_keep_selection_order():
    session = CreateMarketSession(step=WizardStep.TAGS)
    session.toggle_tag("Crypto")
    session.toggle_tag("Finance")
    assert session.freeze_tags() == "Crypto, Finance"

    reversed_order = CreateMarketSession(step=WizardStep.TAGS)
    reversed_order.toggle_tag("Finance")
    reversed_order.toggle_tag("Crypto")
    assert reversed_order.freeze_tags() == "Finance, Crypto"


def test_tag_grid_marks_selection():
    grid = keyboards.tag_grid(["AI"])
    labels = [button.text for row in grid for button in row]
    assert "✅ AI" in labels
    assert "Art" in labels
    assert len([b for row in grid[:-2] for b in row]) == len(keyboards.MARKET_CATEGORIES)


@pytest.mark.asyncio
async def test_invalid_input_reprompts_without_advancing():
    stack = Stack()
    await stack.wizard.start(text_event(1, "/create"))
    session = stack.sessions.get(1)

    await stack.wizard.handle_text(text_event(1, "short"), session)

    assert session.step is WizardStep.QUESTION
    assert session.question is None
    assert "10 to 200" in stack.texts(1)[-1]


@pytest.mark.asyncio
async def test_skip_moves_image_step_to_tags():
    stack = Stack()
    session = stack.sessions.start(1, CreateMarketSession(step=WizardStep.IMAGE))

    await stack.wizard.handle_text(text_event(1, "nope"), session)
    assert session.step is WizardStep.IMAGE

    await stack.wizard.handle_text(text_event(1, "SKIP"), session)
    assert session.step is WizardStep.TAGS
    assert session.image_url is None


@pytest.mark.asyncio
async def test_image_upload_stores_url():
    stack = Stack()
    session = stack.sessions.start(1, CreateMarketSession(step=WizardStep.IMAGE))

    await stack.wizard.handle_image(image_event(1, b"not-an-image"), session)
    assert session.step is WizardStep.IMAGE

    await stack.wizard.handle_image(image_event(1), session)
    assert session.step is WizardStep.TAGS
    assert session.image_url.startswith("http://testserver/images/")


@pytest.mark.asyncio
async def test_start_requires_wallet():
    stack = Stack(wallets=FakeWallets(owners=()))
    assert await stack.wizard.start(text_event(1, "/create")) is None
    assert stack.sessions.find(1) is None


@pytest.mark.asyncio
async def test_start_checks_fee_and_gas():
    stack = Stack(gateway=FakeGateway(usdc="1", fee="5"))
    assert await stack.wizard.start(text_event(1, "/create")) is None

    stack = Stack(gateway=FakeGateway(eth="0.0001"))
    assert await stack.wizard.start(text_event(1, "/create")) is None
    assert stack.sessions.find(1) is None


@pytest.mark.asyncio
async def test_start_replaces_existing_session():
    stack = Stack()
    stale = stack.sessions.start(1, CreateMarketSession(step=WizardStep.TAGS, question="Old question here"))

    fresh = await stack.wizard.start(text_event(1, "/create"))

    assert fresh is not stale
    assert stack.sessions.get(1).step is WizardStep.QUESTION
