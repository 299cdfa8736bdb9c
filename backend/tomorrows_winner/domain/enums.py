from enum import StrEnum


class Category(StrEnum):
    FINANCE = "finance"
    CRYPTO = "crypto"


class ActionType(StrEnum):
    CREATE = "create"
    CLOSE = "close"
    END = "end"


class CompetitionPhase(StrEnum):
    SETUP = "setup"
    VOTING = "voting"
    CLOSED = "closed"
    EVALUATION = "evaluation"
    ENDED = "ended"
