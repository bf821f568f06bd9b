import base64
import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Callable, Dict, Iterable, List, Optional

from bson import ObjectId
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from pymongo.errors import PyMongoError

import database
from database import NOT_FOUND, load_by_key, to_object_id
from schemas import (
    Game as GameSchema,
    GameBulkDelete,
    GameUpdate,
    League as LeagueSchema,
    LeagueMember as LeagueMemberSchema,
    LeagueMemberBulkDelete,
    LeagueMemberUpdate,
    LeagueUpdate,
    Season as SeasonSchema,
    SeasonUpdate,
    Team as TeamSchema,
    TeamMember as TeamMemberSchema,
    TeamUpdate,
    User as UserSchema,
    UserUpdate,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        database.ensure_indexes()
    except PyMongoError as e:
        logger.warning("Could not ensure indexes: %s", e)
    yield


app = FastAPI(title="Axe Throwing API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Bad payloads are client errors, same as rejected writes.
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


# Utils to handle ObjectId and binary fields
def _encode(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, bytes):
        return base64.b64encode(value).decode("ascii")
    if isinstance(value, dict):
        return serialize_doc(value)
    if isinstance(value, list):
        return [_encode(v) for v in value]
    return value


def serialize_doc(doc: Dict[str, Any]) -> Dict[str, Any]:
    if not doc:
        return doc
    doc = {k: _encode(v) for k, v in doc.items()}
    if doc.get("_id"):
        doc["id"] = doc.pop("_id")
    return doc


def _refs(data: Dict[str, Any], fields: Iterable[str]) -> Dict[str, Any]:
    """Store reference fields as ObjectIds."""
    for field in fields:
        value = data.get(field)
        if isinstance(value, list):
            data[field] = [to_object_id(v) for v in value]
        elif value is not None:
            data[field] = to_object_id(value)
    return data


def _int64(raw: str) -> int:
    value = int(raw)
    if not -2**63 <= value < 2**63:
        raise ValueError(f"{raw} is out of range")
    return value


def resource_loader(collection_name: str, label: str, key: str = "_id", param: str = "id", cast: Callable = str):
    """Build a dependency that resolves a path parameter to a stored document."""

    def load(request: Request) -> Dict[str, Any]:
        raw = request.path_params[param]
        try:
            value = cast(raw)
        except ValueError:
            raise HTTPException(status_code=404, detail=f"{label} not found")
        lookup = load_by_key(collection_name, key, value)
        if lookup.found:
            return lookup.doc
        if lookup.status == NOT_FOUND:
            raise HTTPException(status_code=404, detail=f"{label} not found")
        raise HTTPException(status_code=500, detail=lookup.message)

    return load


load_user = resource_loader("user", "User")
load_game = resource_loader("game", "Game", key="gameId", param="game_id", cast=_int64)
load_league = resource_loader("league", "League")
load_league_member = resource_loader(
    "league_member", "League member", key="league_member_id", param="league_member_id", cast=_int64
)
load_team = resource_loader("team", "Team")
load_season = resource_loader("season", "Season")


def list_documents(collection_name: str) -> List[Dict[str, Any]]:
    try:
        docs = database.find_all(collection_name)
    except PyMongoError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return [serialize_doc(d) for d in docs]


def create_document(collection_name: str, data: Dict[str, Any]) -> Dict[str, Any]:
    try:
        doc = database.insert(collection_name, data)
    except PyMongoError as e:
        raise HTTPException(status_code=400, detail=str(e))
    logger.info("Created %s %s", collection_name, doc["_id"])
    return serialize_doc(doc)


def patch_document(collection_name: str, doc: Dict[str, Any], body: BaseModel, ref_fields: Iterable[str] = ()) -> Dict[str, Any]:
    """Copy the non-null fields of body onto doc and store it."""
    updates = _refs(body.model_dump(exclude_none=True), ref_fields)
    doc.update(updates)
    if "dateUpdated" in doc:
        doc["dateUpdated"] = database.now()
    try:
        saved = database.save(collection_name, doc)
    except PyMongoError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return serialize_doc(saved)


def delete_document(collection_name: str, doc: Dict[str, Any], label: str) -> Dict[str, str]:
    try:
        database.delete_one(collection_name, doc["_id"])
    except PyMongoError as e:
        raise HTTPException(status_code=500, detail=str(e))
    logger.info("Deleted %s %s", collection_name, doc["_id"])
    return {"message": f"{label} deleted"}


def bulk_delete(collection_name: str, key: str, values: List[Any]) -> Dict[str, Any]:
    try:
        deleted = database.delete_many(collection_name, {key: {"$in": values}})
    except PyMongoError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"acknowledged": True, "deletedCount": deleted}


@app.get("/")
def read_root():
    return {"message": "Axe Throwing API running"}


@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": None,
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": []
    }
    db = database.db
    if db is not None:
        response["database"] = "✅ Available"
        response["database_url"] = "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set"
        response["database_name"] = db.name
        response["connection_status"] = "Connected"
        try:
            response["collections"] = db.list_collection_names()
            response["database"] = "✅ Connected & Working"
        except PyMongoError as e:
            response["database"] = f"⚠️ Connected but Error: {str(e)[:50]}"
    return response


# ---------------------- Users ----------------------
@app.get("/users")
def list_users():
    return list_documents("user")


@app.get("/users/{id}")
def get_user(user: Dict[str, Any] = Depends(load_user)):
    return serialize_doc(user)


@app.post("/users", status_code=201)
def create_user(user: UserSchema):
    # playerId is sparse-unique, so leave it out rather than storing null
    return create_document("user", user.model_dump(exclude_none=True))


@app.put("/users/{id}")
@app.patch("/users/{id}")
def update_user(body: UserUpdate, user: Dict[str, Any] = Depends(load_user)):
    return patch_document("user", user, body)


@app.delete("/users/{id}")
def delete_user(user: Dict[str, Any] = Depends(load_user)):
    return delete_document("user", user, "User")


# ---------------------- Games ----------------------
@app.get("/games")
def list_games():
    return list_documents("game")


@app.get("/games/{game_id}")
def get_game(game: Dict[str, Any] = Depends(load_game)):
    return serialize_doc(game)


@app.post("/games", status_code=201)
def create_game(game: GameSchema):
    return create_document("game", game.model_dump())


@app.put("/games/{game_id}")
@app.patch("/games/{game_id}")
def update_game(body: GameUpdate, game: Dict[str, Any] = Depends(load_game)):
    return patch_document("game", game, body)


@app.delete("/games/{game_id}")
def delete_game(game: Dict[str, Any] = Depends(load_game)):
    return delete_document("game", game, "Game")


@app.delete("/games")
def delete_games(body: GameBulkDelete):
    """Delete every game whose gameId is listed"""
    return bulk_delete("game", "gameId", body.gameIds)


# ---------------------- Leagues ----------------------
@app.get("/leagues")
def list_leagues():
    return list_documents("league")


@app.get("/leagues/{id}")
def get_league(league: Dict[str, Any] = Depends(load_league)):
    return serialize_doc(league)


@app.post("/leagues", status_code=201)
def create_league(league: LeagueSchema):
    return create_document("league", league.model_dump())


@app.put("/leagues/{id}")
@app.patch("/leagues/{id}")
def update_league(body: LeagueUpdate, league: Dict[str, Any] = Depends(load_league)):
    return patch_document("league", league, body)


@app.delete("/leagues/{id}")
def delete_league(league: Dict[str, Any] = Depends(load_league)):
    return delete_document("league", league, "League")


# ---------------------- League members ----------------------
@app.get("/league-members")
def list_league_members():
    return list_documents("league_member")


@app.get("/league-members/{league_member_id}")
def get_league_member(member: Dict[str, Any] = Depends(load_league_member)):
    return serialize_doc(member)


@app.post("/league-members", status_code=201)
def create_league_member(member: LeagueMemberSchema):
    return create_document("league_member", member.model_dump())


@app.put("/league-members/{league_member_id}")
@app.patch("/league-members/{league_member_id}")
def update_league_member(body: LeagueMemberUpdate, member: Dict[str, Any] = Depends(load_league_member)):
    return patch_document("league_member", member, body)


@app.delete("/league-members/{league_member_id}")
def delete_league_member(member: Dict[str, Any] = Depends(load_league_member)):
    return delete_document("league_member", member, "League member")


@app.delete("/league-members")
def delete_league_members(body: LeagueMemberBulkDelete):
    """Delete every league member whose league_member_id is listed"""
    return bulk_delete("league_member", "league_member_id", body.league_member_ids)


# ---------------------- Teams ----------------------
TEAM_REFS = ("leagueId", "leagues", "captainId")


def _new_member(member: TeamMemberSchema) -> Dict[str, Any]:
    return {"_id": ObjectId(), **member.model_dump()}


@app.get("/teams")
def list_teams():
    return list_documents("team")


@app.get("/teams/{id}")
def get_team(team: Dict[str, Any] = Depends(load_team)):
    return serialize_doc(team)


@app.post("/teams", status_code=201)
def create_team(team: TeamSchema):
    data = _refs(team.model_dump(), TEAM_REFS)
    data["members"] = [_new_member(m) for m in team.members]
    return create_document("team", data)


@app.put("/teams/{id}")
@app.patch("/teams/{id}")
def update_team(body: TeamUpdate, team: Dict[str, Any] = Depends(load_team)):
    return patch_document("team", team, body, ref_fields=TEAM_REFS)


@app.delete("/teams/{id}")
def delete_team(team: Dict[str, Any] = Depends(load_team)):
    if team.get("leagues"):
        raise HTTPException(
            status_code=400,
            detail="Team is part of one or more leagues and cannot be deleted",
        )
    return delete_document("team", team, "Team")


@app.get("/teams/{id}/members")
def list_team_members(team: Dict[str, Any] = Depends(load_team)):
    return [serialize_doc(m) for m in team.get("members", [])]


@app.post("/teams/{id}/members")
def add_team_member(member: TeamMemberSchema, team: Dict[str, Any] = Depends(load_team)):
    team.setdefault("members", []).append(_new_member(member))
    team["dateUpdated"] = database.now()
    try:
        saved = database.save("team", team)
    except PyMongoError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return serialize_doc(saved)


@app.delete("/teams/{id}/members/{member_id}")
def remove_team_member(member_id: str, team: Dict[str, Any] = Depends(load_team)):
    members = team.get("members", [])
    oid: Optional[ObjectId] = to_object_id(member_id)
    remaining = [m for m in members if m.get("_id") != oid]
    if oid is None or len(remaining) == len(members):
        raise HTTPException(status_code=404, detail="Member not found")
    team["members"] = remaining
    team["dateUpdated"] = database.now()
    try:
        saved = database.save("team", team)
    except PyMongoError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return serialize_doc(saved)


# ---------------------- Seasons ----------------------
@app.get("/seasons")
def list_seasons():
    return list_documents("season")


@app.get("/seasons/{id}")
def get_season(season: Dict[str, Any] = Depends(load_season)):
    return serialize_doc(season)


@app.post("/seasons", status_code=201)
def create_season(season: SeasonSchema):
    return create_document("season", _refs(season.model_dump(), ["games"]))


@app.put("/seasons/{id}")
@app.patch("/seasons/{id}")
def update_season(body: SeasonUpdate, season: Dict[str, Any] = Depends(load_season)):
    return patch_document("season", season, body, ref_fields=["games"])


@app.delete("/seasons/{id}")
def delete_season(season: Dict[str, Any] = Depends(load_season)):
    return delete_document("season", season, "Season")


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
