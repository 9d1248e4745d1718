"""
leaderboard.py
Ranks guessers by the gifts they identified. Recomputed from the guess log on
every call; nothing is cached or stored.
"""
import logging
from typing import Dict, Iterable, List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .db_models import Guess
from .directory import Directory
from .errors import TransientStoreError
from .models import DEFAULT_AVATARS, LeaderboardEntry, Role

logger = logging.getLogger(__name__)


def compute(correct_guesses: Iterable, avatars: Dict[str, str]) -> List[LeaderboardEntry]:
    """
    One point per (message, guesser) pair that holds at least one correct
    guess. A pair with two correct rows still scores once.
    Sorted by score descending, then username ascending.
    """
    solved_pairs = set()
    for guess in correct_guesses:
        if guess.is_correct:
            solved_pairs.add((guess.message_id, guess.guesser_username))

    scores: Dict[str, int] = {}
    for _, guesser in solved_pairs:
        scores[guesser] = scores.get(guesser, 0) + 1

    entries = [
        LeaderboardEntry(
            username=username,
            score=score,
            avatar=avatars.get(username) or DEFAULT_AVATARS[Role.USER],
        )
        for username, score in scores.items()
    ]
    return sorted(entries, key=lambda e: (-e.score, e.username))


class Leaderboard:
    def __init__(self, session: AsyncSession, directory: Directory):
        self.session = session
        self.directory = directory

    async def compute(self) -> List[LeaderboardEntry]:
        try:
            result = await self.session.execute(select(Guess).where(Guess.is_correct.is_(True)))
        except SQLAlchemyError as exc:
            logger.exception("[STORE] loading correct guesses failed")
            raise TransientStoreError("Could not load leaderboard") from exc
        avatars = {p.username: p.avatar for p in await self.directory.list()}
        return compute(result.scalars().all(), avatars)
