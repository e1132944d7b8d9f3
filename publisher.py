import logging
import warnings

from telegram import InlineKeyboardButton, InlineKeyboardMarkup
from telegram.error import BadRequest, TelegramError

import messages
from models import MAX_PAIRS
from errors import PublishFallbackWarning, RegistrationError

# publish() outcomes
EDITED = "edited"
SENT = "sent"
RESENT = "resent"
FAILED = "failed"


def organizer_contact_url(user_id, username):
    handle = (username or "").strip().lstrip("@").strip()
    if handle:
        return f"https://t.me/{handle}"
    return f"tg://user?id={user_id}"


def render_game_text(game):
    """Announcement text for a game. Depends on nothing but the game's fields."""
    slots = list(game.pairs[:MAX_PAIRS])
    slots += [messages.EMPTY_SLOT] * (MAX_PAIRS - len(slots))
    pairs_text = "\n".join(f"{marker} {pair}" for marker, pair in zip(messages.SLOT_MARKERS, slots))

    if game.waiting_list:
        waiting_text = "\n".join(f"{i}. {pair}" for i, pair in enumerate(game.waiting_list, start=1))
    else:
        waiting_text = messages.EMPTY_WAITING_LIST

    text = messages.ANNOUNCEMENT.format(
        location=game.location,
        date=game.date,
        time=game.time,
        organizer1=game.organizer1_name,
        organizer2=game.organizer2_name,
        pairs=pairs_text,
        waiting=waiting_text,
    )
    if game.is_closed:
        text += "\n\n" + messages.CLOSED_NOTICE
    return text


def game_keyboard(game):
    rows = []
    # Closed games keep the post but no longer take joins
    if not game.is_closed:
        rows.append([InlineKeyboardButton(messages.BUTTON_JOIN, callback_data=f"join:{game.id}")])
    rows.append([InlineKeyboardButton(
        messages.BUTTON_CONTACT,
        url=organizer_contact_url(game.organizer1_user_id, game.organizer1_username)
    )])
    return InlineKeyboardMarkup(rows)


class AnnouncementPublisher:
    """Keeps the channel post of each game in step with the stored game."""

    def __init__(self, bot, repository, channel_id):
        self.bot = bot
        self.repository = repository
        self.channel_id = channel_id

    async def publish(self, game_id):
        try:
            game = self.repository.load(game_id)
        except RegistrationError as e:
            logging.error(f"Cannot publish game {game_id}: {e}")
            return FAILED
        if game is None:
            logging.warning(f"Cannot publish game {game_id}: not found")
            return FAILED

        text = render_game_text(game)
        keyboard = game_keyboard(game)

        fallback = False
        if game.channel_message_id:
            try:
                await self.bot.edit_message_text(
                    chat_id=self.channel_id,
                    message_id=game.channel_message_id,
                    text=text,
                    reply_markup=keyboard
                )
                return EDITED
            except TelegramError as e:
                # Telegram refuses edits that change nothing; the post is already current
                if isinstance(e, BadRequest) and "not modified" in str(e).lower():
                    return EDITED
                fallback = True
                warnings.warn(
                    f"Editing announcement {game.channel_message_id} of game {game_id} failed ({e}); sending a new one",
                    PublishFallbackWarning
                )

        try:
            sent = await self.bot.send_message(chat_id=self.channel_id, text=text, reply_markup=keyboard)
        except TelegramError as e:
            logging.error(f"Failed to post announcement for game {game_id}: {e}")
            return FAILED

        try:
            self.repository.record_channel_message(game_id, sent.message_id)
        except RegistrationError as e:
            logging.error(f"Posted announcement {sent.message_id} for game {game_id} but could not record it: {e}")

        logging.info(f"Posted announcement {sent.message_id} for game {game_id}")
        return RESENT if fallback else SENT
