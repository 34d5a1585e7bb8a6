"""レースのエンドポイント"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from racebet.api.dependencies import get_db
from racebet.api.schemas import RaceCreate, RaceListItem, RaceResponse
from racebet.services import race_service

router = APIRouter(prefix="/races", tags=["races"])


@router.get("", response_model=list[RaceListItem])
def list_races(db: Session = Depends(get_db)):
    items = []
    for race, bet_count in race_service.list_races(db):
        item = RaceListItem.model_validate(race)
        item.bet_count = bet_count
        items.append(item)
    return items


@router.post("", response_model=RaceResponse, status_code=201)
def create_race(body: RaceCreate, db: Session = Depends(get_db)):
    race = race_service.create_race(
        db,
        subsession_id=body.subsession_id,
        name=body.name,
        track=body.track,
        category=body.category,
        start_time=body.start_time,
        participants=[p.model_dump() for p in body.participants],
    )
    return RaceResponse.model_validate(race)


@router.get("/{race_id}", response_model=RaceResponse)
def get_race(race_id: int, db: Session = Depends(get_db)):
    return RaceResponse.model_validate(race_service.get_race(db, race_id))
