import unittest
from unittest.mock import MagicMock, AsyncMock

from telegram.error import BadRequest, Forbidden, TelegramError

import messages
from errors import PublishFallbackWarning, StorageError
from publisher import (
    AnnouncementPublisher,
    render_game_text,
    game_keyboard,
    organizer_contact_url,
    EDITED, SENT, RESENT, FAILED,
)
from repository import Game


def make_game(**overrides):
    fields = dict(
        id=7,
        location="Court A",
        date="01.01.2026",
        time="18:00",
        organizer1_name="Ann Lee",
        organizer1_user_id=111,
        organizer1_username="annlee",
        organizer2_name="Bob Kim",
        pairs=["Ann Lee / Bob Kim"],
        waiting_list=[],
        is_closed=False,
        channel_message_id=None,
    )
    fields.update(overrides)
    return Game(**fields)


class TestRendering(unittest.TestCase):
    def test_render_contains_game_state(self):
        text = render_game_text(make_game(
            pairs=["Ann Lee / Bob Kim", "C One / D Two", "E Three / F Four"],
            waiting_list=["G Five / H Six", "I Seven / J Eight"],
        ))

        for fragment in ("Court A", "01.01.2026", "18:00", "Ann Lee / Bob Kim",
                         "1️⃣ Ann Lee / Bob Kim", "2️⃣ C One / D Two", "3️⃣ E Three / F Four",
                         "1. G Five / H Six", "2. I Seven / J Eight"):
            self.assertIn(fragment, text)

    def test_render_placeholders_for_empty_slots(self):
        text = render_game_text(make_game())
        self.assertIn(f"2️⃣ {messages.EMPTY_SLOT}", text)
        self.assertIn(f"3️⃣ {messages.EMPTY_SLOT}", text)
        self.assertIn(f"Waiting list:\n{messages.EMPTY_WAITING_LIST}\n", text)

    def test_render_is_deterministic(self):
        game = make_game(waiting_list=["X / Y"])
        self.assertEqual(render_game_text(game), render_game_text(make_game(waiting_list=["X / Y"])))

    def test_contact_url(self):
        self.assertEqual(organizer_contact_url(111, "@annlee"), "https://t.me/annlee")
        self.assertEqual(organizer_contact_url(111, None), "tg://user?id=111")
        self.assertEqual(organizer_contact_url(111, "  "), "tg://user?id=111")

    def test_keyboard_buttons(self):
        keyboard = game_keyboard(make_game(organizer1_username=None))
        join_button = keyboard.inline_keyboard[0][0]
        contact_button = keyboard.inline_keyboard[1][0]
        self.assertEqual(join_button.callback_data, "join:7")
        self.assertEqual(contact_button.url, "tg://user?id=111")

    def test_closed_game_has_notice_and_no_join_button(self):
        open_text = render_game_text(make_game())
        self.assertNotIn(messages.CLOSED_NOTICE, open_text)

        closed = make_game(is_closed=True)
        self.assertEqual(render_game_text(closed), open_text + "\n\n" + messages.CLOSED_NOTICE)

        keyboard = game_keyboard(closed)
        self.assertEqual(len(keyboard.inline_keyboard), 1)
        self.assertIsNone(keyboard.inline_keyboard[0][0].callback_data)
        self.assertEqual(keyboard.inline_keyboard[0][0].url, "https://t.me/annlee")


class TestAnnouncementPublisher(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.bot = MagicMock()
        self.bot.send_message = AsyncMock(return_value=MagicMock(message_id=555))
        self.bot.edit_message_text = AsyncMock()
        self.repository = MagicMock()
        self.publisher = AnnouncementPublisher(self.bot, self.repository, "-100123")

    async def test_first_publish_sends_and_records(self):
        self.repository.load.return_value = make_game()

        outcome = await self.publisher.publish(7)

        self.assertEqual(outcome, SENT)
        self.bot.edit_message_text.assert_not_called()
        self.bot.send_message.assert_awaited_once()
        kwargs = self.bot.send_message.call_args.kwargs
        self.assertEqual(kwargs['chat_id'], "-100123")
        self.assertEqual(kwargs['text'], render_game_text(make_game()))
        self.repository.record_channel_message.assert_called_once_with(7, 555)

    async def test_republish_edits_in_place(self):
        self.repository.load.return_value = make_game(channel_message_id=42)

        outcome = await self.publisher.publish(7)

        self.assertEqual(outcome, EDITED)
        kwargs = self.bot.edit_message_text.call_args.kwargs
        self.assertEqual(kwargs['message_id'], 42)
        self.bot.send_message.assert_not_called()
        self.repository.record_channel_message.assert_not_called()

    async def test_republish_without_changes_sends_identical_text(self):
        self.repository.load.return_value = make_game(channel_message_id=42)

        await self.publisher.publish(7)
        await self.publisher.publish(7)

        first, second = self.bot.edit_message_text.call_args_list
        self.assertEqual(first.kwargs['text'], second.kwargs['text'])

    async def test_not_modified_counts_as_edited(self):
        self.repository.load.return_value = make_game(channel_message_id=42)
        self.bot.edit_message_text.side_effect = BadRequest("Message is not modified: specified new message content is identical")

        outcome = await self.publisher.publish(7)

        self.assertEqual(outcome, EDITED)
        self.bot.send_message.assert_not_called()

    async def test_failed_edit_falls_back_to_new_post(self):
        self.repository.load.return_value = make_game(channel_message_id=42)
        self.bot.edit_message_text.side_effect = BadRequest("Message to edit not found")

        with self.assertWarns(PublishFallbackWarning):
            outcome = await self.publisher.publish(7)

        self.assertEqual(outcome, RESENT)
        self.bot.send_message.assert_awaited_once()
        self.repository.record_channel_message.assert_called_once_with(7, 555)

    async def test_failed_send_is_not_raised(self):
        self.repository.load.return_value = make_game(channel_message_id=42)
        self.bot.edit_message_text.side_effect = TelegramError("timed out")
        self.bot.send_message.side_effect = Forbidden("bot was kicked from the channel")

        with self.assertWarns(PublishFallbackWarning):
            outcome = await self.publisher.publish(7)

        self.assertEqual(outcome, FAILED)
        self.repository.record_channel_message.assert_not_called()

    async def test_missing_game(self):
        self.repository.load.return_value = None
        self.assertEqual(await self.publisher.publish(7), FAILED)
        self.bot.send_message.assert_not_called()

    async def test_storage_failure_while_loading(self):
        self.repository.load.side_effect = StorageError("disk I/O error")
        self.assertEqual(await self.publisher.publish(7), FAILED)

    async def test_record_failure_is_logged_only(self):
        self.repository.load.return_value = make_game()
        self.repository.record_channel_message.side_effect = StorageError("database is locked")

        outcome = await self.publisher.publish(7)

        self.assertEqual(outcome, SENT)

if __name__ == '__main__':
    unittest.main()
