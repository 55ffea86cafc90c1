"""Game Catalog Routes — list, create and read games, random pick and genres."""

import random
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from lanpapp.api.dependencies import get_current_user, get_rng
from lanpapp.core.errors import ResourceNotFoundError
from lanpapp.infrastructure.database import get_db
from lanpapp.models.game import Game
from lanpapp.models.user import User
from lanpapp.schemas.game import GameCreate
from lanpapp.services.lookups import get_or_404

router = APIRouter(prefix="/api/v1/games", tags=["games"])


@router.get("")
async def list_games(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    genre: str | None = None,
    search: str | None = Query(None, max_length=100),
    players: int | None = Query(None, ge=1),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Games ordered by name, optionally filtered by genre, name and player count."""
    query = select(Game)
    if genre:
        query = query.where(Game.genre == genre)
    if search:
        query = query.where(Game.name.ilike(f"%{search}%"))
    if players:
        query = query.where(
            Game.min_players <= players,
            (Game.max_players.is_(None)) | (Game.max_players >= players),
        )
    total = (await db.execute(
        select(func.count()).select_from(query.subquery()),
    )).scalar_one()
    result = await db.execute(
        query.order_by(Game.name).limit(limit).offset((page - 1) * limit),
    )
    return {
        "data": [g.to_dict() for g in result.scalars().all()],
        "pagination": {"page": page, "limit": limit, "total": total},
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_game(
    body: GameCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    game = Game(**body.model_dump(), created_by=user.id)
    db.add(game)
    await db.commit()
    await db.refresh(game)
    return {"data": game.to_dict()}


@router.get("/random")
async def random_game(
    genre: str | None = None,
    min_players: int | None = Query(None, ge=1),
    max_players: int | None = Query(None, ge=1),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    rng: random.Random | None = Depends(get_rng),
):
    """A random catalog game that can seat the requested group.

    min_players=n keeps games whose max_players reaches n (open-ended counts),
    max_players=n keeps games that start at n players or fewer.
    """
    query = select(Game)
    if genre:
        query = query.where(Game.genre == genre)
    if min_players:
        query = query.where(
            (Game.max_players.is_(None)) | (Game.max_players >= min_players),
        )
    if max_players:
        query = query.where(Game.min_players <= max_players)
    games = (await db.execute(query.order_by(Game.name))).scalars().all()
    if not games:
        raise ResourceNotFoundError("Game", "matching the criteria")
    return {"data": (rng or random).choice(games).to_dict()}  # nosec B311


@router.get("/genres")
async def list_genres(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Distinct genres in the catalog, alphabetical."""
    result = await db.execute(
        select(Game.genre).where(Game.genre.is_not(None)).distinct().order_by(Game.genre),
    )
    return {"data": list(result.scalars().all())}


@router.get("/{game_id}")
async def get_game(
    game_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    game = await get_or_404(db, Game, game_id, "Game")
    return {"data": game.to_dict()}
