import logging
from dataclasses import dataclass
from typing import Optional

import messages
from errors import (
    ClosedError,
    DuplicatePairError,
    DuplicateParticipantError,
    NotFoundError,
    NotOrganizerError,
    RegistrationError,
    StorageError,
    ValidationError,
)
from repository import PAIR_SEPARATOR, format_pair, normalize_name, normalize_text
from sessions import State

CANCEL_WORDS = {"/cancel", "cancel", "отмена"}

# Join placements
CONFIRMED = "confirmed"
WAITING = "waiting"

# state -> (field collected, next state, next prompt, re-prompt when empty)
CREATE_STEPS = {
    State.CREATE_WAIT_LOCATION: ("location", State.CREATE_WAIT_DATE, messages.ASK_DATE, messages.EMPTY_LOCATION),
    State.CREATE_WAIT_DATE: ("date", State.CREATE_WAIT_TIME, messages.ASK_TIME, messages.EMPTY_DATE),
    State.CREATE_WAIT_TIME: ("time", State.CREATE_WAIT_ORG2_NAME, messages.ASK_ORGANIZER2, messages.EMPTY_TIME),
}


@dataclass
class Requester:
    user_id: int
    full_name: str = ""
    username: Optional[str] = None


@dataclass
class Reply:
    text: str
    show_menu: bool = False


def rejection_text(error):
    if isinstance(error, NotFoundError):
        return messages.GAME_NOT_FOUND
    if isinstance(error, ClosedError):
        return messages.GAME_CLOSED
    if isinstance(error, DuplicateParticipantError):
        return messages.DUPLICATE_PARTICIPANT.format(name=error.name)
    if isinstance(error, DuplicatePairError):
        return messages.DUPLICATE_PAIR
    if isinstance(error, NotOrganizerError):
        return messages.NOT_ORGANIZER
    if isinstance(error, StorageError):
        return messages.STORAGE_FAILURE
    return messages.GENERIC_ERROR


class RegistrationEngine:
    """
    Drives the create and join conversations for every user.

    Each call handles one incoming event for one user: it reads the user's
    session, applies the step, mutates games through the repository and
    republishes the channel post once the mutation has committed.
    """

    def __init__(self, repository, sessions, publisher, on_registered=None):
        self.repository = repository
        self.sessions = sessions
        self.publisher = publisher
        self.on_registered = on_registered

    def reset(self, user_id):
        self.sessions.reset(user_id)

    def cancel(self, user_id):
        self.sessions.reset(user_id)
        return Reply(messages.CANCELLED)

    def begin_create(self, user_id):
        session = self.sessions.reset(user_id)
        session.advance(State.CREATE_WAIT_LOCATION)
        return Reply(messages.ASK_LOCATION)

    def list_open_games(self):
        return self.repository.list_open()

    def begin_join(self, user_id, game_id):
        self.sessions.reset(user_id)
        try:
            game = self.repository.load(game_id)
        except StorageError:
            return Reply(messages.STORAGE_FAILURE)
        if game is None:
            return Reply(messages.GAME_NOT_FOUND)
        if game.is_closed:
            return Reply(messages.GAME_CLOSED)
        # Full games still accept joins; the extra pairs are queued

        session = self.sessions.get(user_id)
        session.advance(State.JOIN_WAIT_SECOND_PLAYER, game_id=game_id)
        return Reply(messages.ASK_SECOND_PLAYER)

    async def handle_text(self, requester, text):
        text = normalize_text(text)
        if text.casefold() in CANCEL_WORDS:
            return self.cancel(requester.user_id)

        session = self.sessions.get(requester.user_id)
        if session.state in CREATE_STEPS:
            field, next_state, prompt, empty_prompt = CREATE_STEPS[session.state]
            if not text:
                return Reply(empty_prompt)
            session.advance(next_state, **{field: text})
            return Reply(prompt)
        if session.state == State.CREATE_WAIT_ORG2_NAME:
            return await self._complete_create(requester, session, text)
        if session.state == State.JOIN_WAIT_SECOND_PLAYER:
            return await self._complete_join(requester, session, text)
        return Reply(messages.IDLE_GUIDANCE)

    async def _complete_create(self, requester, session, text):
        if not text:
            return Reply(messages.EMPTY_NAME)
        session.advance(State.CREATE_WAIT_ORG2_NAME, organizer2=text)

        try:
            game_id = self.repository.create(
                location=session.data.get("location"),
                date=session.data.get("date"),
                time=session.data.get("time"),
                organizer1_name=normalize_text(requester.full_name) or messages.DEFAULT_ORGANIZER_NAME,
                organizer1_user_id=requester.user_id,
                organizer1_username=requester.username,
                organizer2_name=text,
            )
        except ValidationError as e:
            logging.warning(f"Discarding incomplete game form of user {requester.user_id}: {e}")
            self.sessions.reset(requester.user_id)
            return Reply(messages.SESSION_BROKEN)
        except StorageError:
            # Nothing was written; resending the name retries the insert
            return Reply(messages.STORAGE_FAILURE)

        self.sessions.reset(requester.user_id)
        await self.publisher.publish(game_id)
        return Reply(messages.GAME_CREATED, show_menu=True)

    async def _complete_join(self, requester, session, text):
        game_id = session.data.get("game_id")
        if game_id is None:
            self.sessions.reset(requester.user_id)
            return Reply(messages.SESSION_BROKEN)
        if not text:
            return Reply(messages.EMPTY_NAME)

        first_player = normalize_text(requester.full_name) or messages.DEFAULT_PLAYER_NAME
        try:
            game, placement, pair = self.register_pair(game_id, first_player, text)
        except StorageError:
            # The join transaction rolled back; resending the name retries it
            return Reply(messages.STORAGE_FAILURE)
        except RegistrationError as e:
            logging.info(f"Join of game {game_id} by user {requester.user_id} rejected: {e!r}")
            self.sessions.reset(requester.user_id)
            return Reply(rejection_text(e))

        self.sessions.reset(requester.user_id)
        await self.publisher.publish(game_id)
        await self._notify_registered(game, pair, placement)

        if placement == CONFIRMED:
            return Reply(messages.JOINED_CONFIRMED, show_menu=True)
        return Reply(messages.JOINED_WAITING, show_menu=True)

    def register_pair(self, game_id, first_player, second_player):
        """
        Decide and record the placement of one pair.

        Runs inside a single write transaction on the game, checking in order:
        existence, closed flag, already registered players, already
        registered pair, free confirmed slot. Returns the game as it was
        before the write, the placement and the stored pair string.
        """
        pair = format_pair(first_player, second_player)
        with self.repository.transaction(game_id) as tx:
            game = tx.require()
            if game.is_closed:
                raise ClosedError(f"Game {game_id} is closed")

            # A typed name may itself contain the separator; every part counts as a player
            taken = game.registered_names()
            for name in (first_player, second_player):
                for part in normalize_text(name).split(PAIR_SEPARATOR):
                    if normalize_name(part) in taken:
                        raise DuplicateParticipantError(normalize_text(part))

            if game.has_pair(pair):
                raise DuplicatePairError(pair)

            if game.has_free_slot:
                tx.append_confirmed_pair(pair)
                placement = CONFIRMED
            else:
                tx.append_waiting(pair)
                placement = WAITING

        logging.info(f"Pair {pair!r} registered for game {game_id} ({placement})")
        return game, placement, pair

    async def _notify_registered(self, game, pair, placement):
        if self.on_registered is None:
            return
        try:
            await self.on_registered(game, pair, placement)
        except Exception as e:
            logging.error(f"Failed to notify organizer of game {game.id}: {e}")

    async def close_game(self, requester, game_id):
        return await self._set_closed(requester, game_id, True)

    async def reopen_game(self, requester, game_id):
        return await self._set_closed(requester, game_id, False)

    async def _set_closed(self, requester, game_id, closed):
        try:
            with self.repository.transaction(game_id) as tx:
                game = tx.require()
                if game.organizer1_user_id != requester.user_id:
                    raise NotOrganizerError(f"User {requester.user_id} does not organize game {game_id}")
                tx.set_closed(closed)
        except RegistrationError as e:
            return Reply(rejection_text(e))

        logging.info(f"Game {game_id} {'closed' if closed else 'reopened'} by user {requester.user_id}")
        await self.publisher.publish(game_id)
        if closed:
            return Reply(messages.GAME_CLOSED_BY_ORGANIZER.format(game_id=game_id))
        return Reply(messages.GAME_REOPENED.format(game_id=game_id))

    async def remove_pair(self, requester, game_id, slot):
        """Drop confirmed pair number ``slot`` (1-based); the waiting head moves up."""
        try:
            with self.repository.transaction(game_id) as tx:
                game = tx.require()
                if game.organizer1_user_id != requester.user_id:
                    raise NotOrganizerError(f"User {requester.user_id} does not organize game {game_id}")
                if not 1 <= slot <= len(game.pairs):
                    return Reply(messages.NO_SUCH_SLOT.format(slot=slot, game_id=game_id))
                pair = game.pairs[slot - 1]
                updated = tx.remove_confirmed_pair(pair)
        except RegistrationError as e:
            return Reply(rejection_text(e))

        logging.info(f"Pair {pair!r} removed from game {game_id} by user {requester.user_id}")
        await self.publisher.publish(game_id)

        text = messages.PAIR_REMOVED.format(pair=pair, game_id=game_id)
        if len(updated.waiting_list) < len(game.waiting_list):
            text += "\n" + messages.PAIR_PROMOTED.format(pair=game.waiting_list[0])
        return Reply(text)
