"""Tests for the message composer: guards, serialization and reconciliation."""
from datetime import timezone

import pytest
from conftest import CONVERSATION_ID, ME, make_message

from marketplace_chat.client.api import APIError, AuthError
from marketplace_chat.client.composer import MessageComposer
from marketplace_chat.client.models import TranscriptState
from marketplace_chat.client.transcript import TranscriptController


@pytest.fixture
def transcript(fake_api, session, scheduler, navigator):
    controller = TranscriptController(CONVERSATION_ID, fake_api, session, scheduler, navigator, tz=timezone.utc)
    controller.mount()
    scheduler.run_pending()
    return controller


@pytest.fixture
def composer(transcript):
    return MessageComposer(transcript)


@pytest.mark.parametrize("text", ["", "   ", "\n\t "])
def test_blank_send_is_a_no_op(composer, transcript, scheduler, fake_api, text):
    before = list(transcript.messages)

    assert composer.send(text) is False

    assert scheduler.pending == []
    assert fake_api.call_count("send_message") == 0
    assert transcript.messages == before


def test_send_hello_appends_server_message_and_clears_draft(composer, transcript, scheduler, fake_api):
    assert composer.send("Hello") is True
    assert composer.sending is True

    scheduler.run_pending()

    assert fake_api.calls[-1] == ("send_message", CONVERSATION_ID, "Hello")
    assert [m.id for m in transcript.messages] == [1, 2, 101]
    assert transcript.messages[-1].content == "Hello"
    assert composer.draft == ""
    assert composer.sending is False
    assert composer.error is None


def test_send_trims_content(composer, scheduler, fake_api):
    composer.send("  hi there \n")
    scheduler.run_pending()

    assert fake_api.calls[-1] == ("send_message", CONVERSATION_ID, "hi there")


def test_second_send_while_in_flight_is_a_no_op(composer, scheduler, fake_api):
    assert composer.send("first") is True
    assert composer.send("second") is False
    assert composer.can_send is False

    assert len(scheduler.pending) == 1
    scheduler.run_pending()
    assert fake_api.call_count("send_message") == 1
    assert composer.send("third") is True


def test_rejected_send_while_in_flight_keeps_first_draft(composer, scheduler, fake_api):
    fake_api.errors["send_message"] = APIError("Service unavailable", status=503)

    assert composer.send("Hello") is True
    assert composer.send("World") is False
    assert composer.draft == "Hello"

    scheduler.run_pending()

    assert composer.draft == "Hello"
    assert composer.error == "Service unavailable"


def test_blank_send_leaves_draft_untouched(composer, scheduler):
    composer.set_draft("keep me")

    assert composer.send("   ") is False

    assert composer.draft == "keep me"
    assert scheduler.pending == []


def test_overlong_send_leaves_draft_untouched(composer):
    composer.set_draft("short")

    assert composer.send("x" * 2001) is False

    assert composer.draft == "short"


def test_failed_send_keeps_draft_and_reports_error(composer, transcript, scheduler, fake_api):
    fake_api.errors["send_message"] = APIError("Service unavailable", status=503)

    composer.send("Hello")
    scheduler.run_pending()

    assert composer.draft == "Hello"
    assert composer.error == "Service unavailable"
    assert composer.sending is False
    assert [m.id for m in transcript.messages] == [1, 2]
    assert transcript.state is TranscriptState.READY


def test_retry_after_failure_uses_preserved_draft(composer, transcript, scheduler, fake_api):
    fake_api.errors["send_message"] = APIError("Service unavailable", status=503)
    composer.send("Hello")
    scheduler.run_pending()

    del fake_api.errors["send_message"]
    assert composer.send() is True
    scheduler.run_pending()

    assert transcript.messages[-1].content == "Hello"
    assert composer.draft == ""
    assert composer.error is None


def test_unexpected_failure_gets_generic_error(composer, scheduler, fake_api):
    fake_api.errors["send_message"] = RuntimeError("socket closed")

    composer.send("Hello")
    scheduler.run_pending()

    assert composer.error == "Failed to send message"
    assert composer.draft == "Hello"


def test_auth_failure_on_send_signs_out_silently(composer, transcript, scheduler, fake_api, session, navigator):
    fake_api.errors["send_message"] = AuthError("Unauthorized", status=401)

    composer.send("Hello")
    scheduler.run_pending()

    assert composer.error is None
    assert composer.sending is False
    assert session.is_authenticated is False
    assert transcript.state is TranscriptState.UNAUTHENTICATED
    assert navigator.visits == ["login"]


def test_overlong_message_is_rejected_locally(composer, scheduler):
    assert composer.send("x" * 2001) is False

    assert scheduler.pending == []
    assert composer.error == "Message must be less than 2000 characters"


def test_message_at_the_limit_is_sent(composer, scheduler, fake_api):
    assert composer.send("x" * 2000) is True


def test_set_draft_truncates_to_limit(composer):
    composer.set_draft("y" * 2500)

    assert len(composer.draft) == 2000


def test_sent_message_already_delivered_by_poll_appears_once(composer, transcript, scheduler, fake_api):
    composer.send("Hello")
    (send_call,) = scheduler.take()
    send_call.resolve()
    scheduler.advance(5000)
    scheduler.run_pending()

    assert [m.id for m in transcript.messages].count(101) == 1


def test_poll_landing_before_send_response_does_not_duplicate(composer, transcript, scheduler, fake_api):
    composer.send("Hello")
    (send_call,) = scheduler.take()
    fake_api.messages.append(make_message(101, sender_id=ME, content="Hello"))
    scheduler.advance(5000)
    scheduler.run_pending()

    fake_api.messages.pop()
    send_call.resolve()

    assert [m.id for m in transcript.messages] == [1, 2, 101]


def test_send_response_after_close_is_discarded(composer, transcript, scheduler):
    composer.send("Hello")
    transcript.close()
    scheduler.run_pending()

    assert transcript.messages == []
    assert composer.sending is False
    assert composer.draft == "Hello"


def test_send_before_ready_is_a_no_op(fake_api, session, scheduler, navigator):
    controller = TranscriptController(CONVERSATION_ID, fake_api, session, scheduler, navigator)
    controller.mount()
    composer = MessageComposer(controller)

    assert composer.send("Hello") is False
    assert len(scheduler.pending) == 2


def test_changed_listeners_see_sending_flag(composer, scheduler):
    seen = []
    composer.changed.subscribe(lambda c: seen.append(c.sending))

    composer.send("Hello")
    scheduler.run_pending()

    assert seen == [True, False]
