import logging
import warnings
from datetime import timedelta

from telegram import Update, InlineKeyboardButton, InlineKeyboardMarkup, BotCommand
from telegram.error import Forbidden
from telegram.ext import (
    ApplicationBuilder,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)
from apscheduler.schedulers.asyncio import AsyncIOScheduler

import messages
import models
from config import load_config, WEBHOOK_PATH
from errors import PublishFallbackWarning, StorageError
from publisher import AnnouncementPublisher, render_game_text, game_keyboard
from registration import RegistrationEngine, Requester, CONFIRMED
from repository import GameRepository
from sessions import SessionStore

# Enable logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=logging.INFO
)
# Announcement fallbacks are reported as warnings; route every one to the log
logging.captureWarnings(True)
warnings.filterwarnings(action="always", category=PublishFallbackWarning)

EVICTION_INTERVAL_MINUTES = 10

# Global scheduler
scheduler = None


def main_menu_keyboard():
    return InlineKeyboardMarkup([
        [InlineKeyboardButton(messages.BUTTON_CREATE, callback_data="create")],
        [InlineKeyboardButton(messages.BUTTON_LIST, callback_data="list")],
    ])


def requester_from(update: Update):
    user = update.effective_user
    full_name = " ".join(part.strip() for part in (user.first_name, user.last_name) if part and part.strip())
    return Requester(user_id=user.id, full_name=full_name, username=user.username)


def parse_int_args(args, count):
    if not args or len(args) < count:
        return None
    try:
        return [int(arg) for arg in args[:count]]
    except ValueError:
        return None


async def send_main_menu(context: ContextTypes.DEFAULT_TYPE, chat_id):
    await context.bot.send_message(chat_id, messages.MAIN_MENU, reply_markup=main_menu_keyboard())


async def send_reply(context: ContextTypes.DEFAULT_TYPE, chat_id, reply):
    await context.bot.send_message(chat_id, reply.text)
    if reply.show_menu:
        await send_main_menu(context, chat_id)


async def start(update: Update, context: ContextTypes.DEFAULT_TYPE):
    context.bot_data['engine'].reset(update.effective_user.id)
    await send_main_menu(context, update.effective_chat.id)


async def cancel(update: Update, context: ContextTypes.DEFAULT_TYPE):
    reply = context.bot_data['engine'].cancel(update.effective_user.id)
    await send_reply(context, update.effective_chat.id, reply)


async def handle_text(update: Update, context: ContextTypes.DEFAULT_TYPE):
    reply = await context.bot_data['engine'].handle_text(requester_from(update), update.message.text)
    await send_reply(context, update.effective_chat.id, reply)


async def create_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    query = update.callback_query
    await query.answer()
    reply = context.bot_data['engine'].begin_create(update.effective_user.id)
    await send_reply(context, update.effective_user.id, reply)


async def list_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    query = update.callback_query
    await query.answer()
    user_id = update.effective_user.id

    try:
        games = context.bot_data['engine'].list_open_games()
    except StorageError:
        await context.bot.send_message(user_id, messages.STORAGE_FAILURE)
        return

    if not games:
        await context.bot.send_message(user_id, messages.NO_ACTIVE_GAMES)
        return

    for game in games:
        await context.bot.send_message(user_id, render_game_text(game), reply_markup=game_keyboard(game))


async def join_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    # Join buttons live on channel posts, so every answer goes to the user's private chat
    query = update.callback_query
    user_id = update.effective_user.id
    game_id = int(query.data.split(":", 1)[1])

    engine = context.bot_data['engine']
    reply = engine.begin_join(user_id, game_id)
    try:
        await context.bot.send_message(user_id, reply.text)
    except Forbidden:
        engine.reset(user_id)
        await query.answer(messages.START_IN_PRIVATE, show_alert=True)
        return
    await query.answer()


async def close_game_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    args = parse_int_args(context.args, 1)
    if args is None:
        await update.message.reply_text(messages.USAGE_CLOSE)
        return
    reply = await context.bot_data['engine'].close_game(requester_from(update), args[0])
    await update.message.reply_text(reply.text)


async def reopen_game_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    args = parse_int_args(context.args, 1)
    if args is None:
        await update.message.reply_text(messages.USAGE_REOPEN)
        return
    reply = await context.bot_data['engine'].reopen_game(requester_from(update), args[0])
    await update.message.reply_text(reply.text)


async def remove_pair_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    args = parse_int_args(context.args, 2)
    if args is None:
        await update.message.reply_text(messages.USAGE_REMOVE)
        return
    game_id, slot = args
    reply = await context.bot_data['engine'].remove_pair(requester_from(update), game_id, slot)
    await update.message.reply_text(reply.text)


def make_organizer_notifier(bot):
    async def notify_organizer(game, pair, placement):
        template = messages.ORGANIZER_NEW_CONFIRMED if placement == CONFIRMED else messages.ORGANIZER_NEW_WAITING
        await bot.send_message(
            game.organizer1_user_id,
            template.format(game_id=game.id, location=game.location, date=game.date, time=game.time, pair=pair)
        )
    return notify_organizer


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE):
    logging.error("Unhandled error while processing an update", exc_info=context.error)

    if not isinstance(update, Update) or update.effective_user is None:
        return
    try:
        await context.bot.send_message(update.effective_user.id, messages.GENERIC_ERROR)
    except Exception as e:
        logging.error(f"Failed to report error to user {update.effective_user.id}: {e}")


async def evict_idle_sessions(sessions, max_idle):
    sessions.evict_idle(max_idle)


async def post_init(app):
    global scheduler
    scheduler = AsyncIOScheduler()
    scheduler.start()
    logging.info("Scheduler started in post_init")

    config = app.bot_data['config']
    if config.session_idle_minutes > 0:
        scheduler.add_job(
            evict_idle_sessions,
            'interval',
            minutes=EVICTION_INTERVAL_MINUTES,
            args=[app.bot_data['sessions'], timedelta(minutes=config.session_idle_minutes)],
            id="evict_idle_sessions",
            replace_existing=True
        )

    # Set bot commands menu
    commands = [
        BotCommand("start", messages.DESC_START),
        BotCommand("cancel", messages.DESC_CANCEL),
        BotCommand("close", messages.DESC_CLOSE),
        BotCommand("reopen", messages.DESC_REOPEN),
        BotCommand("remove", messages.DESC_REMOVE),
    ]
    await app.bot.set_my_commands(commands)
    logging.info("Bot commands menu set")


def build_application(config):
    application = ApplicationBuilder().token(config.bot_token).post_init(post_init).build()

    repository = GameRepository()
    sessions = SessionStore()
    publisher = AnnouncementPublisher(application.bot, repository, config.channel_id)
    engine = RegistrationEngine(
        repository,
        sessions,
        publisher,
        on_registered=make_organizer_notifier(application.bot)
    )
    application.bot_data.update(config=config, sessions=sessions, engine=engine)

    application.add_handler(CommandHandler("start", start))
    application.add_handler(CommandHandler("cancel", cancel))
    application.add_handler(CommandHandler("close", close_game_command))
    application.add_handler(CommandHandler("reopen", reopen_game_command))
    application.add_handler(CommandHandler("remove", remove_pair_command))
    application.add_handler(CallbackQueryHandler(create_callback, pattern=r"^create$"))
    application.add_handler(CallbackQueryHandler(list_callback, pattern=r"^list$"))
    application.add_handler(CallbackQueryHandler(join_callback, pattern=r"^join:\d+$"))
    application.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND & filters.ChatType.PRIVATE, handle_text))
    application.add_error_handler(error_handler)
    return application


def main():
    config = load_config()
    models.DB_PATH = config.db_path
    models.init_db()

    application = build_application(config)
    if config.webhook_url:
        logging.info(f"Bot starting webhook at {config.webhook_url} on port {config.port}")
        application.run_webhook(
            listen="0.0.0.0",
            port=config.port,
            url_path=WEBHOOK_PATH,
            webhook_url=config.webhook_url
        )
    else:
        logging.info("Bot starting polling...")
        application.run_polling()

if __name__ == '__main__':
    main()
