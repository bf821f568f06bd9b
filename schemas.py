"""
Database Schemas

Pydantic models for the axe throwing league collections.
Each resource has a create model (the fields accepted when a document is
first stored) and an update model where every field is optional.

Collections:
- User -> "user"
- Game -> "game"
- League -> "league"
- LeagueMember -> "league_member"
- Team -> "team"
- Season -> "season"
"""

import base64
import binascii
from datetime import datetime, timezone
from typing import Annotated, List, Literal, Optional

from bson import ObjectId
from pydantic import AfterValidator, BaseModel, BeforeValidator, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _check_object_id(v: str) -> str:
    if not ObjectId.is_valid(v):
        raise ValueError("Invalid ObjectId")
    return v


ObjectIdStr = Annotated[str, AfterValidator(_check_object_id)]

# BSON stores signed 64-bit integers
Int64 = Annotated[int, Field(ge=-2**63, le=2**63 - 1)]


def _decode_base64(v):
    if isinstance(v, str):
        try:
            return base64.b64decode(v, validate=True)
        except binascii.Error:
            raise ValueError("Invalid base64 data")
    return v


# Sent as base64, stored and dumped as raw bytes
Logo = Annotated[bytes, BeforeValidator(_decode_base64)]

UserType = Literal["player", "admin", "league_captain"]
LeagueType = Literal["STANDARD", "DUO", "OTHER"]
RuleType = Literal["WATL", "IATF", "OTHER"]


# ---------------------- Users ----------------------

class UserGame(BaseModel):
    """Game history entry embedded in a user document"""
    date: datetime
    opponent: str
    score: Int64
    win: bool
    killshots: Int64


class User(BaseModel):
    """
    Player or staff account
    Collection name: "user"
    """
    firstName: str = Field(..., description="First name")
    lastName: str = Field(..., description="Last name")
    email: str = Field(..., description="Unique email address")
    playerId: Optional[Int64] = Field(None, description="Unique player number")
    userType: UserType = Field("player", description="Account role")
    phoneNumber: Optional[str] = None
    wins: Int64 = Field(0, ge=0)
    losses: Int64 = Field(0, ge=0)
    killshots: Int64 = Field(0, ge=0)
    gamesPlayed: Int64 = Field(0, ge=0)
    games: List[UserGame] = Field(default_factory=list, description="Embedded game history")


class UserUpdate(BaseModel):
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    email: Optional[str] = None
    playerId: Optional[Int64] = None
    userType: Optional[UserType] = None
    phoneNumber: Optional[str] = None
    wins: Optional[Int64] = Field(None, ge=0)
    losses: Optional[Int64] = Field(None, ge=0)
    killshots: Optional[Int64] = Field(None, ge=0)
    gamesPlayed: Optional[Int64] = Field(None, ge=0)
    games: Optional[List[UserGame]] = None


# ---------------------- Games ----------------------

class Game(BaseModel):
    """
    Single match between two throwers
    Collection name: "game"
    """
    gameId: Int64 = Field(..., description="Unique game number")
    player1Id: Int64
    player2Id: Int64
    leagueGame: bool = Field(..., description="Counts towards league standings")
    gameType: str
    ruleType: str
    rounds: Int64
    winningScore: Int64
    player1Score: Int64
    player2Score: Int64
    player1Sticks: Int64
    player2Sticks: Int64
    player1Drops: Int64
    player2Drops: Int64
    seasonName: str
    seasonId: Int64
    dateCreated: datetime = Field(default_factory=_utcnow)
    dateUpdated: datetime = Field(default_factory=_utcnow)


class GameUpdate(BaseModel):
    gameId: Optional[Int64] = None
    player1Id: Optional[Int64] = None
    player2Id: Optional[Int64] = None
    leagueGame: Optional[bool] = None
    gameType: Optional[str] = None
    ruleType: Optional[str] = None
    rounds: Optional[Int64] = None
    winningScore: Optional[Int64] = None
    player1Score: Optional[Int64] = None
    player2Score: Optional[Int64] = None
    player1Sticks: Optional[Int64] = None
    player2Sticks: Optional[Int64] = None
    player1Drops: Optional[Int64] = None
    player2Drops: Optional[Int64] = None
    seasonName: Optional[str] = None
    seasonId: Optional[Int64] = None


class GameBulkDelete(BaseModel):
    gameIds: List[Int64]


# ---------------------- Leagues ----------------------

class League(BaseModel):
    """
    League definition and running averages
    Collection name: "league"
    """
    league_id: Int64 = Field(..., description="Unique league number")
    league_name: str
    league_type: LeagueType
    rule_type: RuleType
    game_type: str
    number_of_matches: Int64
    killshot_average: float
    throw_average: float
    score_average: float


class LeagueUpdate(BaseModel):
    league_id: Optional[Int64] = None
    league_name: Optional[str] = None
    league_type: Optional[LeagueType] = None
    rule_type: Optional[RuleType] = None
    game_type: Optional[str] = None
    number_of_matches: Optional[Int64] = None
    killshot_average: Optional[float] = None
    throw_average: Optional[float] = None
    score_average: Optional[float] = None


# ---------------------- League members ----------------------

class LeagueMember(BaseModel):
    """
    Thrower enrolled in a league
    Collection name: "league_member"
    """
    league_member_id: Int64 = Field(..., description="Unique league member number")
    league_id: Int64
    league_member_first_name: str
    league_member_last_name: str
    league_member_nickname: str
    games_won_in_league: Int64 = 0
    games_lost_in_league: Int64 = 0
    games_tied_in_league: Int64 = 0
    date_joined: datetime = Field(default_factory=_utcnow)


class LeagueMemberUpdate(BaseModel):
    league_member_id: Optional[Int64] = None
    league_id: Optional[Int64] = None
    league_member_first_name: Optional[str] = None
    league_member_last_name: Optional[str] = None
    league_member_nickname: Optional[str] = None
    games_won_in_league: Optional[Int64] = None
    games_lost_in_league: Optional[Int64] = None
    games_tied_in_league: Optional[Int64] = None


class LeagueMemberBulkDelete(BaseModel):
    league_member_ids: List[Int64]


# ---------------------- Teams ----------------------

class TeamMember(BaseModel):
    playerId: Int64 = Field(..., description="Player number of the member")
    name: str


class Team(BaseModel):
    """
    Team of throwers
    Collection name: "team"
    Members are embedded; each gets its own _id when stored.
    """
    teamName: str = Field(..., description="Team name")
    members: List[TeamMember] = Field(default_factory=list)
    leagueId: Optional[ObjectIdStr] = Field(None, description="Reference to league _id")
    leagues: List[ObjectIdStr] = Field(default_factory=list, description="Leagues the team is entered in")
    wins: Int64 = Field(0, ge=0)
    losses: Int64 = Field(0, ge=0)
    captainId: Optional[ObjectIdStr] = Field(None, description="Reference to user _id")
    logo: Optional[Logo] = Field(None, description="Base64 encoded logo image")
    dateCreated: datetime = Field(default_factory=_utcnow)
    dateUpdated: datetime = Field(default_factory=_utcnow)


class TeamUpdate(BaseModel):
    teamName: Optional[str] = None
    leagueId: Optional[ObjectIdStr] = None
    leagues: Optional[List[ObjectIdStr]] = None
    wins: Optional[Int64] = Field(None, ge=0)
    losses: Optional[Int64] = Field(None, ge=0)
    captainId: Optional[ObjectIdStr] = None
    logo: Optional[Logo] = None


# ---------------------- Seasons ----------------------

class Season(BaseModel):
    """
    Season with its ordered list of games
    Collection name: "season"
    """
    seasonId: Int64 = Field(..., description="Unique season number")
    seasonName: str
    startDate: datetime
    endDate: datetime
    games: List[ObjectIdStr] = Field(default_factory=list, description="Ordered game _id references")
    dateCreated: datetime = Field(default_factory=_utcnow)
    dateUpdated: datetime = Field(default_factory=_utcnow)


class SeasonUpdate(BaseModel):
    seasonId: Optional[Int64] = None
    seasonName: Optional[str] = None
    startDate: Optional[datetime] = None
    endDate: Optional[datetime] = None
    games: Optional[List[ObjectIdStr]] = None
