from __future__ import annotations

from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from movie_night.models.movies import Movie


class _VoteOptionBase(BaseModel):
    emoji: str
    voters: List[str] = Field(default_factory=list)

    def has_voter(self, voter_id: str) -> bool:
        return voter_id in self.voters


class GeneralVoteOption(_VoteOptionBase):
    kind: Literal["general"] = "general"
    text: str


class MovieVoteOption(_VoteOptionBase):
    kind: Literal["movie"] = "movie"
    movie: Movie
    entry_id: Optional[int] = None


VoteOption = Annotated[
    Union[GeneralVoteOption, MovieVoteOption],
    Field(discriminator="kind"),
]


class Vote(BaseModel):
    creator_id: str
    creator_name: str
    created_at: datetime
    title: str
    options: List[VoteOption]
    channel_id: Optional[str] = None
    # id сообщения с голосованием, он же ключ корреляции
    message_id: Optional[str] = None

    def option_for_emoji(self, emoji: str) -> Optional[VoteOption]:
        for option in self.options:
            if option.emoji == emoji:
                return option
        return None

    def option_of_voter(self, voter_id: str) -> Optional[VoteOption]:
        for option in self.options:
            if option.has_voter(voter_id):
                return option
        return None

    @property
    def emojis(self) -> List[str]:
        return [option.emoji for option in self.options]
