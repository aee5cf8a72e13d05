from shuffleclub.models.auth_session import AuthSession
from shuffleclub.models.finals import FinalBracket, FinalMatch, FinalRoundEntry, FinalRoundLabel
from shuffleclub.models.league import LeagueBlock, LeagueBlockMember
from shuffleclub.models.match import Match
from shuffleclub.models.notice import Notice
from shuffleclub.models.player import Player
from shuffleclub.models.ranking_config import RankingConfig
from shuffleclub.models.team import Team, TeamMember
from shuffleclub.models.tournament import Tournament, TournamentEntry

__all__ = [
    "Player",
    "AuthSession",
    "Team",
    "TeamMember",
    "Tournament",
    "TournamentEntry",
    "Match",
    "LeagueBlock",
    "LeagueBlockMember",
    "FinalBracket",
    "FinalRoundEntry",
    "FinalMatch",
    "FinalRoundLabel",
    "Notice",
    "RankingConfig",
]
