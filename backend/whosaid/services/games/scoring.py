import random
from typing import List

from .state import ResultEntry, Response, Round, RoundResults, Session


def calculate_results(session: Session, round_: Round) -> RoundResults:
    """Seal a round: attribute every response and count wrong guesses.

    Each player's penalty is the number of responses they attributed to the
    wrong author. Players who never guessed keep a penalty of 0.
    """
    penalties = {pid: 0 for pid in session.players}
    entries = []
    for response in round_.responses.values():
        guessed_by = {}
        for guesser_id, player_guesses in round_.guesses.items():
            guess = player_guesses.guesses.get(response.id)
            if guess is None:
                continue
            guessed_by[guesser_id] = guess
            if guess != response.player_id:
                penalties[guesser_id] = penalties.get(guesser_id, 0) + 1
        entries.append(ResultEntry(
            response_id=response.id,
            text=response.text,
            actual_author=response.player_id,
            guessed_by=guessed_by,
        ))
    return RoundResults(responses=entries, penalties=penalties)


def shuffle_responses(round_: Round, rng=None) -> List[Response]:
    """Return the round's responses in a fresh uniformly random order."""
    responses = list(round_.responses.values())
    (rng or random).shuffle(responses)
    return responses


def final_stats(session: Session):
    """Aggregate penalties over every sealed round of the session."""
    totals = {pid: 0 for pid in session.players}
    for round_ in session.rounds:
        if not round_.results:
            continue
        for pid, count in round_.results.penalties.items():
            totals[pid] = totals.get(pid, 0) + count
    return {
        'totalRounds': len(session.rounds),
        'players': [
            {'id': p.id, 'nickname': p.nickname, 'totalPenalties': totals.get(p.id, 0)}
            for p in session.players.values()
        ],
    }
