"""Game Schemas — catalog entries and the game id carried by suggest/vote/select."""

from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class GameCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(None, max_length=1000)
    cover_url: str | None = Field(None, max_length=500)
    genre: str | None = Field(None, max_length=50)
    min_players: int = Field(1, ge=1, le=100)
    max_players: int | None = Field(None, ge=1, le=100)

    @model_validator(mode="after")
    def check_player_range(self):
        if self.max_players is not None and self.max_players < self.min_players:
            raise ValueError("max_players must be >= min_players")
        return self


class GameChoice(BaseModel):
    """Body of suggest, vote and manual select."""
    game_id: UUID
