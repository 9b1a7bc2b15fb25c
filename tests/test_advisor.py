import unittest
from dataclasses import replace
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import chess
from openai import OpenAIError

from src.llmchess_coach import llm_client
from src.llmchess_coach.advisor import AdvisorGateway, WARNING_PREFIX
from src.llmchess_coach.errors import AdvisorError, ChatBusy, NoActiveContext

ADVICE = "**Best Move:** e4\n\n**Reasoning:** Grab the centre."


class AdvisorGatewayTests(unittest.IsolatedAsyncioTestCase):
    async def test_advice_success_opens_context(self):
        transport = AsyncMock(return_value=ADVICE)
        gw = AdvisorGateway(model="m", transport=transport)
        record = await gw.request_advice(chess.STARTING_FEN, "*", "none")

        self.assertTrue(record.ok)
        self.assertEqual(record.extracted_move, "e4")
        self.assertEqual(record.requested_for, chess.STARTING_FEN)
        self.assertEqual([t.kind for t in gw.turns], ["advice"])
        self.assertIsNotNone(gw.context)
        self.assertFalse(gw.advice_in_flight)
        messages = transport.call_args.args[0]
        self.assertIn(chess.STARTING_FEN, messages[-1]["content"])
        self.assertIn("The last move played was: none", messages[-1]["content"])
        self.assertEqual(transport.call_args.kwargs["model"], "m")

    async def test_advice_failure_is_posted_not_raised(self):
        gw = AdvisorGateway(transport=AsyncMock(side_effect=AdvisorError("quota exceeded")))
        record = await gw.request_advice(chess.STARTING_FEN, "*", "none")
        self.assertFalse(record.ok)
        self.assertIsNone(gw.context)
        self.assertFalse(gw.advice_in_flight)
        self.assertEqual(len(gw.turns), 1)
        self.assertTrue(gw.turns[0].text.startswith(WARNING_PREFIX))
        self.assertIn("quota exceeded", gw.turns[0].text)

    async def test_unpublished_advice_keeps_conversation_empty(self):
        gw = AdvisorGateway(transport=AsyncMock(return_value=ADVICE))
        record = await gw.request_advice(chess.STARTING_FEN, "*", "none", publish=False)
        self.assertEqual(record.extracted_move, "e4")
        self.assertEqual(gw.turns, [])
        self.assertIsNone(gw.context)

    async def test_follow_up_appends_question_then_reply(self):
        transport = AsyncMock(side_effect=[ADVICE, "Because it controls d5."])
        gw = AdvisorGateway(transport=transport)
        await gw.request_advice(chess.STARTING_FEN, "*", "none")
        turn = await gw.send_follow_up("  why e4?  ")

        self.assertEqual(turn.text, "Because it controls d5.")
        self.assertEqual([(t.speaker, t.kind) for t in gw.turns],
                         [("advisor", "advice"), ("human", "question"), ("advisor", "reply")])
        sent = transport.call_args.args[0]
        self.assertEqual(sent[0]["role"], "system")
        self.assertIn("follow-up", sent[0]["content"])
        self.assertEqual(sent[2], {"role": "assistant", "content": ADVICE})
        self.assertEqual(sent[-1], {"role": "user", "content": "why e4?"})
        self.assertFalse(gw.chat_in_flight)

    async def test_follow_up_failure_posts_error(self):
        gw = AdvisorGateway(transport=AsyncMock(side_effect=[ADVICE, AdvisorError("timeout")]))
        await gw.request_advice(chess.STARTING_FEN, "*", "none")
        turn = await gw.send_follow_up("and then?")
        self.assertEqual(turn.kind, "error")
        self.assertTrue(turn.text.startswith(WARNING_PREFIX))
        self.assertEqual(gw.turns[1].text, "and then?")
        self.assertFalse(gw.chat_in_flight)

    async def test_follow_up_requires_context(self):
        gw = AdvisorGateway(transport=AsyncMock())
        with self.assertRaises(NoActiveContext):
            await gw.send_follow_up("hello")
        self.assertEqual(gw.turns, [])

    async def test_second_follow_up_is_rejected_while_busy(self):
        gw = AdvisorGateway(transport=AsyncMock(return_value=ADVICE))
        await gw.request_advice(chess.STARTING_FEN, "*", "none")
        gw.begin_follow_up("first")
        with self.assertRaises(ChatBusy):
            gw.begin_follow_up("second")
        with self.assertRaises(ValueError):
            AdvisorGateway().begin_follow_up("   ")

    async def test_reset_makes_pending_reply_stale(self):
        gw = AdvisorGateway(transport=AsyncMock(return_value=ADVICE))
        await gw.request_advice(chess.STARTING_FEN, "*", "none")
        cycle = gw.begin_follow_up("question")
        gw.reset()
        self.assertIsNone(await gw.finish_follow_up("question", cycle))
        self.assertEqual(gw.turns, [])
        self.assertFalse(gw.chat_in_flight)

    async def test_new_advice_releases_pending_follow_up(self):
        gw = AdvisorGateway(transport=AsyncMock(return_value=ADVICE))
        await gw.request_advice(chess.STARTING_FEN, "*", "none")
        cycle = gw.begin_follow_up("question")
        board = chess.Board()
        board.push_san("e4")
        await gw.request_advice(board.fen(), "1. e4 *", "e4")
        self.assertFalse(gw.chat_in_flight)
        self.assertIsNone(await gw.finish_follow_up("question", cycle))
        self.assertFalse(gw.chat_in_flight)
        self.assertEqual([t.kind for t in gw.turns], ["advice"])
        gw.begin_follow_up("and now?")
        self.assertTrue(gw.chat_in_flight)


def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class LLMClientTests(unittest.IsolatedAsyncioTestCase):
    async def test_missing_key_raises_descriptive_error(self):
        with patch.object(llm_client, "SETTINGS", replace(llm_client.SETTINGS, llm_api_key="")):
            with self.assertRaises(AdvisorError) as ctx:
                await llm_client.ask_conversation([{"role": "user", "content": "hi"}], model="m")
        self.assertIn("API key", str(ctx.exception))

    async def test_reply_text_is_stripped(self):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=_completion("  **Best Move:** d4 \n"))
        with patch.object(llm_client, "_client", return_value=client):
            text = await llm_client.ask_conversation([{"role": "user", "content": "hi"}], model="m")
        self.assertEqual(text, "**Best Move:** d4")
        self.assertEqual(client.chat.completions.create.call_args.kwargs["model"], "m")

    async def test_sdk_error_and_empty_reply_become_advisor_errors(self):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(side_effect=OpenAIError("rate limited"))
        with patch.object(llm_client, "_client", return_value=client):
            with self.assertRaises(AdvisorError):
                await llm_client.ask_conversation([], model="m")
        client.chat.completions.create = AsyncMock(return_value=_completion(""))
        with patch.object(llm_client, "_client", return_value=client):
            with self.assertRaises(AdvisorError):
                await llm_client.ask_conversation([], model="m")


if __name__ == "__main__":
    unittest.main()
