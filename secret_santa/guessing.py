"""
guessing.py
The "who sent this?" game.

Per (message, guesser) pair everything is derived from the guess log:
    attempts = number of stored guesses
    solved   = any stored guess is correct
A pair never gets more than MAX_GUESS_ATTEMPTS rows, ever. The cap is
enforced by the database through the attempt-slot unique key, so two
sessions of the same user racing each other cannot squeeze in a third guess.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .clock import Clock, utcnow
from .db_models import Guess
from .errors import TransientStoreError
from .message_store import MessageStore
from .models import GameCard, GuessOut, GuessResult, MessageOut

logger = logging.getLogger(__name__)

MAX_GUESS_ATTEMPTS = 2


@dataclass(frozen=True)
class PairState:
    attempts: int
    solved: bool
    max_attempts: int = MAX_GUESS_ATTEMPTS

    @property
    def attempts_left(self) -> int:
        return max(0, self.max_attempts - self.attempts)


class GuessingEngine:
    """
    GuessingEngine Class.
    Validates a guess, enforces the attempt cap and records the outcome.
    The true sender is only ever compared here, never handed to the guesser.
    """
    def __init__(self, session: AsyncSession, messages: MessageStore,
                 max_attempts: int = MAX_GUESS_ATTEMPTS, clock: Clock = utcnow):
        self.session = session
        self.messages = messages
        self.max_attempts = max_attempts
        self.clock = clock

    async def attempts(self, message_id: str, guesser_username: str) -> int:
        query = (
            select(func.count())
            .select_from(Guess)
            .where(Guess.message_id == message_id, Guess.guesser_username == guesser_username)
        )
        result = await self.session.execute(query)
        return result.scalar_one()

    async def guesses_by(self, guesser_username: str, message_id: Optional[str] = None) -> List[Guess]:
        query = select(Guess).where(Guess.guesser_username == guesser_username)
        if message_id is not None:
            query = query.where(Guess.message_id == message_id)
        try:
            result = await self.session.execute(query.order_by(Guess.created_at, Guess.attempt))
        except SQLAlchemyError as exc:
            logger.exception("[STORE] listing guesses for %s failed", guesser_username)
            raise TransientStoreError("Could not load guesses") from exc
        return list(result.scalars().all())

    async def pair_state(self, message_id: str, guesser_username: str) -> PairState:
        guesses = await self.guesses_by(guesser_username, message_id)
        return PairState(
            attempts=len(guesses),
            solved=any(g.is_correct for g in guesses),
            max_attempts=self.max_attempts,
        )

    async def submit_guess(self, message_id: str, guesser_username: str, guessed_username: str) -> GuessResult:
        """
        Returns CORRECT / INCORRECT when a guess was recorded, LIMIT_REACHED
        when the pair already used its attempts, ERROR for a missing message,
        a self-guess or any store failure. ERROR never leaves a guess behind.
        """
        try:
            message = await self.messages.get(message_id)
        except TransientStoreError:
            return GuessResult.ERROR

        if message is None:
            logger.info("[GUESS] %s guessed on missing message %s", guesser_username, message_id)
            return GuessResult.ERROR
        if guesser_username == message.from_username:
            logger.warning("[GUESS] %s tried to guess their own gift %s", guesser_username, message_id)
            return GuessResult.ERROR

        # Rollbacks expire loaded rows, so keep the ground truth in a local
        true_sender = message.from_username

        # Each lost slot race means another guess landed, so this loop ends in
        # LIMIT_REACHED after at most max_attempts rounds.
        for _ in range(self.max_attempts + 1):
            try:
                attempts = await self.attempts(message_id, guesser_username)
                if attempts >= self.max_attempts:
                    return GuessResult.LIMIT_REACHED

                is_correct = guessed_username == true_sender
                self.session.add(Guess(
                    message_id=message_id,
                    guesser_username=guesser_username,
                    guessed_username=guessed_username,
                    is_correct=is_correct,
                    attempt=attempts + 1,
                    created_at=self.clock(),
                ))
                await self.session.commit()
            except IntegrityError:
                await self.session.rollback()
                logger.info("[GUESS] Slot taken for %s on %s, re-counting", guesser_username, message_id)
                continue
            except SQLAlchemyError:
                await self.session.rollback()
                logger.exception("[GUESS] Recording guess by %s on %s failed", guesser_username, message_id)
                return GuessResult.ERROR

            logger.info("[GUESS] %s attempt %d on %s: %s",
                        guesser_username, attempts + 1, message_id, "correct" if is_correct else "incorrect")
            return GuessResult.CORRECT if is_correct else GuessResult.INCORRECT

        return GuessResult.ERROR

    async def game_board(self, guesser_username: str) -> List[GameCard]:
        """Every gift the caller did not send, with the caller's own progress on it."""
        messages = await self.messages.list_guessable(guesser_username)
        by_message: Dict[str, List[Guess]] = {}
        for guess in await self.guesses_by(guesser_username):
            by_message.setdefault(guess.message_id, []).append(guess)

        cards = []
        for message in messages:
            guesses = by_message.get(message.id, [])
            state = PairState(
                attempts=len(guesses),
                solved=any(g.is_correct for g in guesses),
                max_attempts=self.max_attempts,
            )
            cards.append(GameCard(
                message=MessageOut.model_validate(message),
                guesses=[GuessOut.model_validate(g) for g in guesses],
                attempts_left=state.attempts_left,
                solved=state.solved,
            ))
        return cards
