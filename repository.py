import json
import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import List, Optional

from models import get_db, MAX_PAIRS
from errors import CapacityError, NotFoundError, StorageError, ValidationError

PAIR_SEPARATOR = " / "
DEFAULT_LIST_LIMIT = 20


def normalize_text(value):
    """Collapse runs of whitespace and trim."""
    return " ".join(str(value or "").split())


def normalize_name(value):
    return normalize_text(value).casefold()


def format_pair(first, second):
    return f"{normalize_text(first)}{PAIR_SEPARATOR}{normalize_text(second)}"


def pair_members(pair):
    return [name for name in (normalize_name(part) for part in str(pair or "").split(PAIR_SEPARATOR)) if name]


@dataclass
class Game:
    id: int
    location: str
    date: str
    time: str
    organizer1_name: str
    organizer1_user_id: int
    organizer1_username: Optional[str]
    organizer2_name: str
    pairs: List[str] = field(default_factory=list)
    waiting_list: List[str] = field(default_factory=list)
    is_closed: bool = False
    channel_message_id: Optional[int] = None

    @classmethod
    def from_row(cls, row):
        return cls(
            id=row['id'],
            location=row['location'],
            date=row['date'],
            time=row['time'],
            organizer1_name=row['organizer1_name'],
            organizer1_user_id=row['organizer1_user_id'],
            organizer1_username=row['organizer1_username'],
            organizer2_name=row['organizer2_name'],
            pairs=json.loads(row['pairs'] or '[]'),
            waiting_list=json.loads(row['waiting_list'] or '[]'),
            is_closed=bool(row['is_closed']),
            channel_message_id=row['channel_message_id'],
        )

    @property
    def has_free_slot(self):
        return len(self.pairs) < MAX_PAIRS

    def registered_names(self):
        names = set()
        for pair in self.pairs + self.waiting_list:
            names.update(pair_members(pair))
        return names

    def has_pair(self, pair):
        return pair in self.pairs or pair in self.waiting_list


class GameTransaction:
    """Row operations on one game, all sharing the caller's open transaction."""

    def __init__(self, cursor, game_id):
        self.cursor = cursor
        self.game_id = game_id

    def load(self):
        self.cursor.execute("SELECT * FROM games WHERE id = ?", (self.game_id,))
        row = self.cursor.fetchone()
        return Game.from_row(row) if row else None

    def require(self):
        game = self.load()
        if game is None:
            raise NotFoundError(f"Game {self.game_id} not found")
        return game

    def append_confirmed_pair(self, pair):
        self.cursor.execute(
            "UPDATE games SET pairs = json_insert(pairs, '$[#]', ?) WHERE id = ? AND json_array_length(pairs) < ?",
            (pair, self.game_id, MAX_PAIRS)
        )
        if self.cursor.rowcount == 0:
            self.require()
            raise CapacityError(f"Game {self.game_id} already has {MAX_PAIRS} confirmed pairs")

    def append_waiting(self, pair):
        self.cursor.execute(
            "UPDATE games SET waiting_list = json_insert(waiting_list, '$[#]', ?) WHERE id = ?",
            (pair, self.game_id)
        )
        if self.cursor.rowcount == 0:
            raise NotFoundError(f"Game {self.game_id} not found")

    def remove_confirmed_pair(self, pair):
        game = self.require()
        if pair not in game.pairs:
            raise NotFoundError(f"Pair {pair!r} is not confirmed for game {self.game_id}")
        pairs = list(game.pairs)
        pairs.remove(pair)
        # trg_promote_waiting_pair moves the waiting head up within this UPDATE
        self.cursor.execute(
            "UPDATE games SET pairs = ? WHERE id = ?",
            (json.dumps(pairs, ensure_ascii=False), self.game_id)
        )
        return self.load()

    def set_closed(self, closed):
        self.cursor.execute("UPDATE games SET is_closed = ? WHERE id = ?", (1 if closed else 0, self.game_id))
        if self.cursor.rowcount == 0:
            raise NotFoundError(f"Game {self.game_id} not found")

    def record_channel_message(self, message_id):
        self.cursor.execute("UPDATE games SET channel_message_id = ? WHERE id = ?", (message_id, self.game_id))
        if self.cursor.rowcount == 0:
            raise NotFoundError(f"Game {self.game_id} not found")


class GameRepository:
    def __init__(self, connect=None):
        self._connect = connect

    def _open(self):
        try:
            return (self._connect or get_db)()
        except sqlite3.Error as e:
            logging.error(f"Failed to open database: {e}")
            raise StorageError(str(e)) from e

    @contextmanager
    def _cursor(self, write=False):
        conn = self._open()
        try:
            cursor = conn.cursor()
            if write:
                # Takes the database write lock up front so concurrent
                # check-and-set sequences on a game cannot interleave.
                cursor.execute("BEGIN IMMEDIATE")
            yield cursor
            if write:
                conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logging.error(f"Storage failure: {e}")
            raise StorageError(str(e)) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @contextmanager
    def transaction(self, game_id):
        with self._cursor(write=True) as cursor:
            yield GameTransaction(cursor, game_id)

    def create(self, location, date, time, organizer1_name, organizer1_user_id, organizer1_username, organizer2_name):
        values = {
            'location': normalize_text(location),
            'date': normalize_text(date),
            'time': normalize_text(time),
            'organizer1_name': normalize_text(organizer1_name),
            'organizer2_name': normalize_text(organizer2_name),
        }
        missing = [name for name, value in values.items() if not value]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        # The organizer pair always holds the first confirmed slot
        pairs = [format_pair(values['organizer1_name'], values['organizer2_name'])]
        with self._cursor(write=True) as cursor:
            cursor.execute(
                "INSERT INTO games (location, date, time, organizer1_name, organizer1_user_id, organizer1_username, organizer2_name, pairs, waiting_list, is_closed) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, '[]', 0)",
                (values['location'], values['date'], values['time'], values['organizer1_name'],
                 organizer1_user_id, organizer1_username or None, values['organizer2_name'],
                 json.dumps(pairs, ensure_ascii=False))
            )
            game_id = cursor.lastrowid
        logging.info(f"Created game {game_id} at {values['location']} on {values['date']} {values['time']}")
        return game_id

    def load(self, game_id):
        with self._cursor() as cursor:
            return GameTransaction(cursor, game_id).load()

    def list_open(self, limit=DEFAULT_LIST_LIMIT):
        with self._cursor() as cursor:
            cursor.execute("SELECT * FROM games WHERE is_closed = 0 ORDER BY id DESC LIMIT ?", (limit,))
            return [Game.from_row(row) for row in cursor.fetchall()]

    def append_confirmed_pair(self, game_id, pair):
        with self.transaction(game_id) as game:
            game.append_confirmed_pair(pair)

    def append_waiting(self, game_id, pair):
        with self.transaction(game_id) as game:
            game.append_waiting(pair)

    def cancel_confirmed_pair(self, game_id, pair):
        with self.transaction(game_id) as game:
            updated = game.remove_confirmed_pair(pair)
        logging.info(f"Removed pair {pair!r} from game {game_id}; confirmed now {updated.pairs}")
        return updated

    def set_closed(self, game_id, closed):
        with self.transaction(game_id) as game:
            game.set_closed(closed)
        logging.info(f"Game {game_id} is_closed={closed}")

    def record_channel_message(self, game_id, message_id):
        with self.transaction(game_id) as game:
            game.record_channel_message(message_id)
