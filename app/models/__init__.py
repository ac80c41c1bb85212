from app.models.base import Base  # noqa: F401
from app.models.candidate import Candidate, CandidateAuthor, CandidateStatus  # noqa: F401
from app.models.game import Game, GameStatus, GameType, Side, Winner  # noqa: F401
from app.models.move import Move, PlayedBy  # noqa: F401
from app.models.vote import Vote  # noqa: F401
