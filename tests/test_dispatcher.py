import asyncio

import pytest

from fakes import FakeGateway, FakeWallets, Stack, button_event, image_event, text_event
from models.session_models import CreateMarketSession, WizardStep
from services.conversation import keyboards, messages


class SlowGateway(FakeGateway):
    def __init__(self, delay=0.02, **kwargs):
        super().__init__(**kwargs)
        self.delay = delay

    async def create_market(self, *args, **kwargs):
        await asyncio.sleep(self.delay)
        return await super().create_market(*args, **kwargs)


class BrokenWallets(FakeWallets):
    async def find_wallet(self, telegram_id):
        raise RuntimeError("database disk image is malformed")


def at_confirm():
    return CreateMarketSession(
        step=WizardStep.CONFIRM,
        question="Will it snow in Lisbon in 2031?",
        option_a="Yes",
        option_b="No",
        end_time=1_950_000_000,
        tags="",
    )


@pytest.mark.asyncio
async def test_full_market_creation_conversation():
    stack = Stack()
    dispatch = stack.dispatcher.dispatch

    await dispatch(text_event(1, "/start"))
    await asyncio.sleep(0)
    assert stack.wallets.ensured == [7]

    await dispatch(button_event(1, keyboards.CREATE_START))
    await dispatch(text_event(1, "Will BTC close above 150k in 2099?"))
    await dispatch(text_event(1, "Yes"))
    await dispatch(text_event(1, "No"))
    await dispatch(text_event(1, "2099-01-01 00:00"))
    await dispatch(text_event(1, "skip"))
    for tag in ("Crypto", "AI", "Crypto"):
        await dispatch(button_event(1, f"{keyboards.TAG_PREFIX}{tag}", message_id=99))
    await dispatch(button_event(1, keyboards.TAGS_DONE))

    session = stack.sessions.get(1)
    assert session.step is WizardStep.CONFIRM
    assert session.tags == "AI"
    sent = stack.transport.drain(1)
    assert [m.edited for m in sent if m.message_id == 99] == [True, True, True]
    assert "Tags: AI" in sent[-1].text

    await dispatch(button_event(1, keyboards.CREATE_CONFIRM))

    assert stack.sessions.find(1) is None
    assert len(stack.markets.records) == 1
    assert stack.markets.records[0].question == "Will BTC close above 150k in 2099?"
    assert "Market created" in stack.texts(1)[-1]
    assert "cb-create:confirm" in stack.transport.answered


@pytest.mark.asyncio
async def test_two_tags_reach_confirmation_and_store():
    stack = Stack()
    dispatch = stack.dispatcher.dispatch

    await dispatch(button_event(1, keyboards.CREATE_START))
    for answer in ("Will BTC hit 100k by 2030?", "Yes", "No", "2099-06-30 12:00", "skip"):
        await dispatch(text_event(1, answer))
    await dispatch(button_event(1, f"{keyboards.TAG_PREFIX}Crypto"))
    await dispatch(button_event(1, f"{keyboards.TAG_PREFIX}Finance"))
    await dispatch(button_event(1, keyboards.TAGS_DONE))

    session = stack.sessions.get(1)
    assert session.step is WizardStep.CONFIRM
    assert session.tags == "Crypto, Finance"
    assert "Tags: Crypto, Finance" in stack.texts(1)[-1]

    await dispatch(button_event(1, keyboards.CREATE_CONFIRM))

    assert stack.markets.records[0].tags == "Crypto, Finance"
    assert stack.sessions.find(1) is None


@pytest.mark.asyncio
async def test_double_confirm_commits_once():
    gateway = SlowGateway()
    stack = Stack(gateway=gateway)
    stack.sessions.start(1, at_confirm())

    await asyncio.gather(
        stack.dispatcher.dispatch(button_event(1, keyboards.CREATE_CONFIRM)),
        stack.dispatcher.dispatch(button_event(1, keyboards.CREATE_CONFIRM)),
    )

    assert [w[0] for w in gateway.writes].count("create_market") == 1
    texts = stack.texts(1)
    assert messages.NO_PENDING_MARKET in texts
    assert any("Market created" in text for text in texts)


@pytest.mark.asyncio
async def test_closed_epoch_reports_phase_and_keeps_session():
    stack = Stack(gateway=FakeGateway(phase=2))
    stack.sessions.start(1, at_confirm())

    await stack.dispatcher.dispatch(button_event(1, keyboards.CREATE_CONFIRM))

    assert stack.sessions.get(1).step is WizardStep.CONFIRM
    assert "phase: finalized" in stack.texts(1)[-1]


@pytest.mark.asyncio
async def test_unexpected_error_resets_the_chat():
    stack = Stack(wallets=BrokenWallets())
    stack.sessions.start(1, at_confirm())

    assert await stack.dispatcher.dispatch(button_event(1, keyboards.CREATE_CONFIRM)) is True

    assert stack.sessions.find(1) is None
    assert stack.texts(1)[-1] == messages.UNEXPECTED_ERROR


@pytest.mark.asyncio
async def test_timed_out_handler_keeps_running():
    stack = Stack(gateway=SlowGateway(delay=0.05), handler_timeout=0.01)
    stack.sessions.start(1, at_confirm())

    completed = await stack.dispatcher.dispatch(button_event(1, keyboards.CREATE_CONFIRM))

    assert completed is False
    assert stack.transport.messages(1)[-1].text == messages.HANDLER_TIMEOUT
    await asyncio.sleep(0.1)
    assert stack.sessions.find(1) is None
    assert len(stack.markets.records) == 1


@pytest.mark.asyncio
async def test_cancel_button_and_command():
    stack = Stack()
    stack.sessions.start(1, at_confirm())

    await stack.dispatcher.dispatch(button_event(1, keyboards.CANCEL))
    assert stack.sessions.find(1) is None
    assert stack.texts(1)[-1] == messages.CANCELLED

    await stack.dispatcher.dispatch(text_event(1, "/cancel"))
    assert stack.texts(1)[-1] == messages.NOTHING_TO_CANCEL


@pytest.mark.asyncio
async def test_text_without_session_shows_menu():
    stack = Stack()
    await stack.dispatcher.dispatch(text_event(1, "hello"))
    sent = stack.transport.drain(1)
    assert sent[-1].text == messages.USE_MENU
    assert sent[-1].keyboard == keyboards.main_menu()


@pytest.mark.asyncio
async def test_image_outside_wizard_is_refused():
    stack = Stack()
    await stack.dispatcher.dispatch(image_event(1))
    assert stack.texts(1)[-1] == messages.NOT_EXPECTING_IMAGE


@pytest.mark.asyncio
async def test_slow_acknowledgement_does_not_block_handling():
    stack = Stack()
    stack.dispatcher.ack_timeout = 0.01

    async def hang(callback_id):
        await asyncio.sleep(1)

    stack.transport.answer_button = hang

    await stack.dispatcher.dispatch(button_event(1, keyboards.MAIN_MENU))
    assert stack.texts(1)[-1] == messages.USE_MENU
