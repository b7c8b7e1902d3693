"""
End-to-end tests for one conversation turn through the LangGraph pipeline.

Tests cover:
- Equipment request: extraction, merge, next-field question
- General chat: canned replies, LLM replies, disabled LLM chat
- Accumulation across turns and the review message on completion
- LLM failures (timeout, upstream, missing key): form and history unchanged
- Unparseable model output treated as no new information
"""

import httpx
import openai
import pytest

from smartform.agent.graph import create_initial_state, prepare_turn_input, route_after_classify
from smartform.agent.replies import REVIEW_MESSAGES, WELCOME_MESSAGES, help_hint
from smartform.core.language import Locale
from smartform.tests.helpers import (
    FIXED_NOW,
    ExceptionLLM,
    ScriptedLLM,
    SlowLLM,
    make_client,
    make_runner,
)

PROJECTOR_REQUEST = "I need to borrow a projector next Friday from 1pm to 3pm in meeting room B"

PROJECTOR_EXTRACTION = {
    "equipment_type": "Projector",
    "start_datetime": "2025-06-27T13:00",
    "end_datetime": "2025-06-27T15:00",
    "install_location": "meeting room B",
    "purpose": None,
    "phone": None,
}


class TestInitialState:
    def test_welcome_message_seeded(self, schema, config, credentials):
        state = create_initial_state(schema, config, make_client(config, credentials, None))
        assert [m["role"] for m in state["messages"]] == ["assistant"]
        assert state["messages"][0]["text"] == WELCOME_MESSAGES[Locale.TH]
        assert state["action"]["action"] == "MESSAGE"
        assert state["form"]["quantity"] == "1"

    def test_english_welcome(self, schema, config, credentials):
        state = create_initial_state(
            schema, config, make_client(config, credentials, None), locale=Locale.EN
        )
        assert state["messages"][0]["text"] == WELCOME_MESSAGES[Locale.EN]

    def test_prepare_turn_resets_ephemeral_fields(self, schema, config, credentials):
        state = create_initial_state(schema, config, make_client(config, credentials, None))
        state["error"] = {"kind": "timeout", "message": "old"}
        turn = prepare_turn_input(state, "hello")
        assert turn["user_message"] == "hello"
        assert turn["error"] is None
        assert turn["anchor"] == FIXED_NOW.replace(second=0)

    def test_route_after_classify(self):
        assert route_after_classify({"is_request": True}) == "extraction"
        assert route_after_classify({"is_request": False}) == "general_chat"


class TestEquipmentRequest:
    """Equipment requests go through extraction and merge."""

    @pytest.mark.asyncio
    async def test_projector_request(self, schema, config, credentials):
        llm = ScriptedLLM([PROJECTOR_EXTRACTION])
        runner = make_runner(schema, config, credentials, llm)

        action = await runner.send(PROJECTOR_REQUEST)

        form = runner.form
        assert form["equipmentType"] == "projector"
        assert form["startDate"] == "2025-06-27"
        assert form["startTime"] == "13:00"
        assert form["endTime"] == "15:00"
        assert form["installLocation"] == "meeting room B"

        assert action["action"] == "ASK_TEXT"
        assert action["field_id"] == "purpose"
        assert action["text"] == schema.question_for("purpose", Locale.EN)
        assert action["locale"] == "en"

        assert runner.state["changed_fields"]
        assert runner.state["missing_fields"][0] == "purpose"

    @pytest.mark.asyncio
    async def test_prompt_anchor_and_history_sent(self, schema, config, credentials):
        llm = ScriptedLLM([PROJECTOR_EXTRACTION])
        runner = make_runner(schema, config, credentials, llm)

        await runner.send(PROJECTOR_REQUEST)

        messages = llm.calls[0]["messages"]
        assert "2025-06-21T14:30:00+07:00" in messages[0].content
        # System prompt, welcome message, then the user message
        assert len(messages) == 3
        assert messages[1].content == WELCOME_MESSAGES[Locale.TH]
        assert messages[-1].content == PROJECTOR_REQUEST

    @pytest.mark.asyncio
    async def test_history_appended(self, schema, config, credentials):
        runner = make_runner(schema, config, credentials, ScriptedLLM([PROJECTOR_EXTRACTION]))

        action = await runner.send(PROJECTOR_REQUEST)

        assert [m["role"] for m in runner.messages] == ["assistant", "user", "assistant"]
        assert runner.messages[1]["text"] == PROJECTOR_REQUEST
        assert runner.messages[2]["text"] == action["text"]

    @pytest.mark.asyncio
    async def test_thai_request_gets_thai_question(self, schema, config, credentials):
        llm = ScriptedLLM([
            {
                "equipment_type": "Notebook",
                "quantity": "2",
                "start_datetime": "2025-06-22T09:00",
                "end_datetime": "2025-06-22T12:00",
            }
        ])
        runner = make_runner(schema, config, credentials, llm)

        action = await runner.send("ขอยืมโน้ตบุ๊ก 2 เครื่อง พรุ่งนี้ 9 โมงถึงเที่ยง")

        assert runner.form["equipmentType"] == "notebook"
        assert runner.form["quantity"] == "2"
        assert action["field_id"] == "installLocation"
        assert action["text"] == schema.question_for("installLocation", Locale.TH)
        assert action["locale"] == "th"

    @pytest.mark.asyncio
    async def test_information_accumulates_across_turns(self, schema, config, credentials):
        llm = ScriptedLLM([
            PROJECTOR_EXTRACTION,
            {"equipment_type": None, "install_location": "", "purpose": "exam"},
        ])
        runner = make_runner(schema, config, credentials, llm)

        await runner.send(PROJECTOR_REQUEST)
        action = await runner.send("I need the projector for an exam")

        assert runner.form["equipmentType"] == "projector"
        assert runner.form["installLocation"] == "meeting room B"
        assert runner.form["purpose"] == "exam"
        assert runner.state["changed_fields"] == ["purpose"]
        assert action["field_id"] == "coordinatorName"
        assert len(runner.messages) == 5

    @pytest.mark.asyncio
    async def test_complete_form_gets_review_message(self, schema, config, credentials):
        runner = make_runner(schema, config, credentials, ScriptedLLM([{"purpose": "training"}]))
        runner.state["form"].update({
            "phone": "0812345678",
            "subject": "Borrow notebooks",
            "equipmentType": "notebook",
            "startDate": "2025-06-22",
            "startTime": "09:00",
            "endDate": "2025-06-22",
            "endTime": "12:00",
            "installLocation": "Room 301",
            "coordinatorName": "Somchai",
            "coordinatorPhone": "0812345678",
            "receiveDateTime": "2025-06-22T08:30",
        })

        action = await runner.send("I need the notebook for training")

        assert action["action"] == "FORM_COMPLETE"
        assert action["text"] == REVIEW_MESSAGES[Locale.EN]
        assert action["data"]["purpose"] == "training"
        assert runner.state["missing_fields"] == []

    @pytest.mark.asyncio
    async def test_unparseable_output_is_no_new_information(self, schema, config, credentials):
        llm = ScriptedLLM(["Sorry, I am not sure what you mean."])
        runner = make_runner(schema, config, credentials, llm)
        before = runner.form

        action = await runner.send("I need to borrow a projector")

        assert runner.form == before
        assert runner.state["error"] is None
        assert runner.state["extraction"].kind == "none"
        assert action["field_id"] == "equipmentType"
        assert len(runner.messages) == 3


class TestAnswerToQuestion:
    """A plain answer to the assistant's question is merged into the form."""

    @pytest.mark.asyncio
    async def test_bare_answer_is_extracted(self, schema, config, credentials):
        llm = ScriptedLLM([PROJECTOR_EXTRACTION, {"purpose": "training session"}])
        runner = make_runner(schema, config, credentials, llm)
        await runner.send(PROJECTOR_REQUEST)
        assert runner.state["awaiting_field"] == "purpose"

        action = await runner.send("for a training session")

        assert llm.call_count == 2
        assert runner.form["purpose"] == "training session"
        assert action["field_id"] == "coordinatorName"
        assert runner.state["awaiting_field"] == "coordinatorName"

    @pytest.mark.asyncio
    async def test_thanks_while_awaiting_stays_canned(self, schema, config, credentials):
        llm = ScriptedLLM([PROJECTOR_EXTRACTION])
        runner = make_runner(schema, config, credentials, llm)
        await runner.send(PROJECTOR_REQUEST)

        action = await runner.send("thanks")

        assert action["action"] == "MESSAGE"
        assert llm.call_count == 1
        assert runner.state["awaiting_field"] is None

    @pytest.mark.asyncio
    async def test_no_question_asked_means_general_chat(self, schema, config, credentials):
        llm = ScriptedLLM(["We are open on weekdays."])
        runner = make_runner(schema, config, credentials, llm)

        action = await runner.send("for a training session")

        assert action == {
            "action": "MESSAGE",
            "text": "We are open on weekdays.",
            "locale": "en",
        }
        assert runner.form["purpose"] == ""


class TestGeneralChat:
    """Messages that are not equipment requests."""

    @pytest.mark.asyncio
    async def test_hello_gets_canned_greeting(self, schema, config, credentials):
        llm = ScriptedLLM()
        runner = make_runner(schema, config, credentials, llm)
        before = runner.form

        action = await runner.send("hello")

        assert action["action"] == "MESSAGE"
        assert action["text"].startswith("Hello!")
        assert runner.form == before
        assert llm.call_count == 0
        assert len(runner.messages) == 3

    @pytest.mark.asyncio
    async def test_thai_thanks(self, schema, config, credentials):
        runner = make_runner(schema, config, credentials, ScriptedLLM())
        action = await runner.send("ขอบคุณครับ")
        assert action["text"].startswith("ยินดีครับ")

    @pytest.mark.asyncio
    async def test_llm_general_reply(self, schema, config, credentials):
        llm = ScriptedLLM(["  The IT service desk is open 8:30-16:30 on weekdays.  "])
        runner = make_runner(schema, config, credentials, llm)

        action = await runner.send("When is the IT office open?")

        assert action["action"] == "MESSAGE"
        assert action["text"] == "The IT service desk is open 8:30-16:30 on weekdays."
        assert "Siriraj" in llm.calls[0]["messages"][0].content
        assert llm.calls[0]["kwargs"] == {"temperature": 0.7, "max_tokens": 500}

    @pytest.mark.asyncio
    async def test_llm_chat_disabled_uses_help_hint(self, schema, config, credentials):
        config = config.model_copy(update={"general_chat_via_llm": False})
        llm = ScriptedLLM()
        runner = make_runner(schema, config, credentials, llm)

        action = await runner.send("When is the IT office open?")

        assert action["text"] == help_hint(Locale.EN)
        assert llm.call_count == 0


class TestLLMFailures:
    """LLM errors end the turn with an ERROR action and no state change."""

    @pytest.mark.asyncio
    async def test_timeout_leaves_state_unchanged(self, schema, config, credentials):
        config = config.model_copy(update={"request_timeout": 0.05})
        runner = make_runner(schema, config, credentials, SlowLLM(delay=5))
        form_before = runner.form
        messages_before = runner.messages

        action = await runner.send(PROJECTOR_REQUEST)

        assert action["action"] == "ERROR"
        assert action["kind"] == "timeout"
        assert action["text"] == "The request timed out. Please try again."
        assert runner.form == form_before
        assert runner.messages == messages_before

    @pytest.mark.asyncio
    async def test_thai_timeout_message(self, schema, config, credentials):
        config = config.model_copy(update={"request_timeout": 0.05})
        runner = make_runner(schema, config, credentials, SlowLLM(delay=5))

        action = await runner.send("ขอยืมโปรเจคเตอร์วันศุกร์หน้า")

        assert action["text"] == "คำขอหมดเวลา กรุณาลองใหม่อีกครั้ง"

    @pytest.mark.asyncio
    async def test_upstream_error(self, schema, config, credentials):
        request = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")
        response = httpx.Response(502, request=request)
        llm = ExceptionLLM(openai.APIStatusError("bad gateway", response=response, body=None))
        runner = make_runner(schema, config, credentials, llm)
        form_before = runner.form

        action = await runner.send(PROJECTOR_REQUEST)

        assert action["action"] == "ERROR"
        assert action["kind"] == "upstream"
        assert runner.state["error"]["kind"] == "upstream"
        assert runner.form == form_before
        assert len(runner.messages) == 1

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_contained(self, schema, config, credentials):
        runner = make_runner(schema, config, credentials, ExceptionLLM(RuntimeError("boom")))

        action = await runner.send(PROJECTOR_REQUEST)

        assert action["action"] == "ERROR"
        assert action["kind"] == "upstream"
        assert len(runner.messages) == 1

    @pytest.mark.asyncio
    async def test_missing_credential(self, schema, config, empty_credentials):
        llm = ScriptedLLM([PROJECTOR_EXTRACTION])
        runner = make_runner(schema, config, empty_credentials, llm)

        action = await runner.send(PROJECTOR_REQUEST)

        assert action["kind"] == "missing_credential"
        assert llm.call_count == 0
        assert runner.form["equipmentType"] == ""

    @pytest.mark.asyncio
    async def test_missing_credential_in_production(self, schema, config, empty_credentials):
        config = config.model_copy(update={"production": True})
        runner = make_runner(schema, config, empty_credentials, ScriptedLLM())

        action = await runner.send(PROJECTOR_REQUEST)

        assert action["kind"] == "missing_credential"
        assert "administrator" in action["text"]

    @pytest.mark.asyncio
    async def test_general_chat_failure(self, schema, config, credentials):
        runner = make_runner(schema, config, credentials, ExceptionLLM(RuntimeError("down")))

        action = await runner.send("When is the IT office open?")

        assert action["action"] == "ERROR"
        assert len(runner.messages) == 1

    @pytest.mark.asyncio
    async def test_next_turn_recovers(self, schema, config, credentials):
        llm = ScriptedLLM([PROJECTOR_EXTRACTION])
        runner = make_runner(schema, config, credentials, llm)
        runner.state["llm_client"] = make_client(
            config, credentials, ExceptionLLM(RuntimeError("down"))
        )
        await runner.send(PROJECTOR_REQUEST)

        runner.state["llm_client"] = make_client(config, credentials, llm)
        action = await runner.send(PROJECTOR_REQUEST)

        assert runner.state["error"] is None
        assert action["field_id"] == "purpose"
