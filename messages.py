# User-facing messages

MAIN_MENU = "🏸 Badminton Match Maker\n\nChoose an action:"
BUTTON_CREATE = "➕ Create a game"
BUTTON_LIST = "📋 List games"
BUTTON_JOIN = "✅ Join as a pair"
BUTTON_CONTACT = "✉️ Message the organizer"

DEFAULT_ORGANIZER_NAME = "Organizer"
DEFAULT_PLAYER_NAME = "Player"

# Creation flow prompts
ASK_LOCATION = "Enter the location (for example: Central Sports Hall):"
ASK_DATE = "Enter the date (for example 25.02.2026):"
ASK_TIME = "Enter the time (for example 19:00):"
ASK_ORGANIZER2 = "Enter the first and last name of the second organizer (your partner):"
EMPTY_LOCATION = "The location must not be empty. Please enter it again:"
EMPTY_DATE = "The date must not be empty. Please enter it again:"
EMPTY_TIME = "The time must not be empty. Please enter it again:"
EMPTY_NAME = "The name must not be empty. Please enter it again:"
GAME_CREATED = "Game created ✅\nThe announcement has been posted to the channel."

# Join flow
ASK_SECOND_PLAYER = "Enter the first and last name of the second player in your pair:"
JOINED_CONFIRMED = "You're in ✅\nTo withdraw, message the organizer."
JOINED_WAITING = "Added to the waiting list ✅\nThe organizer will get in touch when a slot frees up."
GAME_NOT_FOUND = "Game not found. Use /start to begin again."
GAME_CLOSED = "⛔ Registration for this game is closed."
DUPLICATE_PARTICIPANT = "Error: {name} is already registered for this game."
DUPLICATE_PAIR = "This pair is already registered."
SESSION_BROKEN = "Your session was interrupted. Use /start to begin again."

# Listing
NO_ACTIVE_GAMES = "There are no active games."

# General
CANCELLED = "OK, cancelled. Use /start to begin again."
IDLE_GUIDANCE = "I understood you, but there is no active action right now.\nPress /start"
STORAGE_FAILURE = "⚠️ Something went wrong while saving. Please try again."
GENERIC_ERROR = "⚠️ An error occurred. Please try again or /start"
START_IN_PRIVATE = "Please start me in a private chat first so I can talk to you!"

# Organizer actions
NOT_ORGANIZER = "Only the organizer of this game can do that."
USAGE_CLOSE = "Usage: /close <game_id>"
USAGE_REOPEN = "Usage: /reopen <game_id>"
USAGE_REMOVE = "Usage: /remove <game_id> <slot 1-3>"
GAME_CLOSED_BY_ORGANIZER = "Registration for game #{game_id} is now closed."
GAME_REOPENED = "Registration for game #{game_id} is open again."
PAIR_REMOVED = "Removed pair \"{pair}\" from game #{game_id}."
PAIR_PROMOTED = "\"{pair}\" moved up from the waiting list."
NO_SUCH_SLOT = "Slot {slot} of game #{game_id} is empty."

# Organizer notification
ORGANIZER_NEW_CONFIRMED = "New pair for game #{game_id} ({location}, {date} {time}): {pair}"
ORGANIZER_NEW_WAITING = "New pair on the waiting list for game #{game_id} ({location}, {date} {time}): {pair}"

# Announcement
ANNOUNCEMENT = (
    "🏸 {location}\n"
    "📅 {date}\n"
    "🕒 {time}\n"
    "\n"
    "👤 Organizers:\n"
    "{organizer1} / {organizer2}\n"
    "\n"
    "Confirmed pairs:\n"
    "{pairs}\n"
    "\n"
    "Waiting list:\n"
    "{waiting}\n"
    "\n"
    "ℹ️ To withdraw, message the organizer."
)
CLOSED_NOTICE = "🔒 Registration is closed."
EMPTY_SLOT = "—"
EMPTY_WAITING_LIST = "-"
SLOT_MARKERS = ["1️⃣", "2️⃣", "3️⃣"]

# Bot menu descriptions
DESC_START = "Main menu"
DESC_CANCEL = "Cancel the current action"
DESC_CLOSE = "Close registration for your game"
DESC_REOPEN = "Reopen registration for your game"
DESC_REMOVE = "Remove a confirmed pair from your game"
