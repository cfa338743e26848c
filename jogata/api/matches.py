"""
Match ingestion endpoint (internal).

Pulls finished fixtures from the football provider and turns qualifying
performances into activations. Provider failures surface as 502.
"""

import datetime
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import APIRouter, Depends

from jogata.api.deps import SessionDep, require_internal_key
from jogata.api.schemas import CamelModel
from jogata.services.football_api import FootballApiClient
from jogata.services.match_processing import process_matches

router = APIRouter(
    prefix="/matches",
    tags=["matches"],
    dependencies=[Depends(require_internal_key)],
)


async def get_football_client() -> AsyncGenerator[FootballApiClient, None]:
    async with FootballApiClient() as client:
        yield client


FootballClient = Annotated[FootballApiClient, Depends(get_football_client)]


class ProcessRequest(CamelModel):
    date: datetime.date | None = None


class ProcessResponse(CamelModel):
    fixtures_processed: int
    fixtures_skipped: int
    performances_recorded: int
    players_skipped: int
    activations_created: int
    owners_credited: int
    owners_failed: int


@router.post("/process", response_model=ProcessResponse)
async def process(
    session: SessionDep,
    client: FootballClient,
    request: ProcessRequest | None = None,
) -> ProcessResponse:
    """
    Score one day's finished fixtures, or the live feed when no date is given.

    Performances already scored are skipped, so re-running a day is safe.
    """
    day = request.date.isoformat() if request and request.date else None
    result = await process_matches(session, client, day=day)
    return ProcessResponse.model_validate(result)
