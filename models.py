import sqlite3
import os

DB_PATH = os.getenv("DB_PATH", "bot_data.db")

MAX_PAIRS = 3

GAMES_TABLE_SQL = '''
    CREATE TABLE IF NOT EXISTS games (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        location TEXT NOT NULL,
        date TEXT NOT NULL,
        time TEXT NOT NULL,
        organizer1_name TEXT NOT NULL,
        organizer1_user_id INTEGER NOT NULL,
        organizer1_username TEXT,
        organizer2_name TEXT NOT NULL,
        pairs TEXT NOT NULL DEFAULT '[]', -- JSON array, confirmation order
        waiting_list TEXT NOT NULL DEFAULT '[]', -- JSON array, queue order
        is_closed INTEGER NOT NULL DEFAULT 0,
        channel_message_id INTEGER,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )
'''

# Fires inside the UPDATE that shrank the confirmed list, so the vacated slot
# and the promotion commit together. recursive_triggers is off, so the inner
# UPDATE does not re-enter.
PROMOTION_TRIGGER_SQL = f'''
    CREATE TRIGGER IF NOT EXISTS trg_promote_waiting_pair
    AFTER UPDATE OF pairs ON games
    FOR EACH ROW
    WHEN json_array_length(NEW.pairs) < json_array_length(OLD.pairs)
     AND json_array_length(NEW.pairs) < {MAX_PAIRS}
     AND json_array_length(NEW.waiting_list) > 0
    BEGIN
        UPDATE games
        SET pairs = json_insert(NEW.pairs, '$[#]', json_extract(NEW.waiting_list, '$[0]')),
            waiting_list = json_remove(NEW.waiting_list, '$[0]')
        WHERE id = NEW.id;
    END
'''


def create_schema(conn):
    cursor = conn.cursor()
    cursor.execute(GAMES_TABLE_SQL)

    # Simple migration for databases created before the waiting list existed
    for column in ("waiting_list TEXT NOT NULL DEFAULT '[]'", "channel_message_id INTEGER"):
        try:
            cursor.execute(f"ALTER TABLE games ADD COLUMN {column}")
        except sqlite3.OperationalError:
            pass # Column likely already exists

    cursor.execute(PROMOTION_TRIGGER_SQL)
    conn.commit()


def init_db():
    conn = sqlite3.connect(DB_PATH)
    create_schema(conn)
    conn.close()


def get_db():
    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row
    return conn
