from fund_wars.challenges.dialogue import DialogueSession, outcome_for
from fund_wars.challenges.engine import ChallengeEngine, ChallengeSnapshot, PuzzleStats
from fund_wars.challenges.puzzles import PuzzleSession
from fund_wars.challenges.triggers import difficulty_for_week, select_puzzle, triggered_dialogues

__all__ = [
    "ChallengeEngine",
    "ChallengeSnapshot",
    "DialogueSession",
    "PuzzleSession",
    "PuzzleStats",
    "difficulty_for_week",
    "outcome_for",
    "select_puzzle",
    "triggered_dialogues",
]
