"""
Current user's coins, experience and level ladder
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from db import get_db
from models import User
from schemas.api_models import CoinsResponse, ExperienceResponse, LadderLevelResponse, LevelLadderResponse
from utils.auth_dependencies import get_current_user
from utils.coin_service import CoinService
from utils.progress_service import get_experience
from utils.xp import format_xp, generate_level_ladder, get_level_and_progress, get_level_progress_percentage

router = APIRouter()


@router.get("/coins", response_model=CoinsResponse, summary="My Coins")
async def get_my_coins(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    service = CoinService(db)
    balance = service.get_balance(current_user)
    return CoinsResponse(
        total_coins=balance.total_coins,
        coins_spent=balance.coins_spent,
        is_pro=service.is_pro(current_user),
    )


@router.get("/experience", response_model=ExperienceResponse, summary="My Experience")
async def get_my_experience(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Total XP, streak and the derived level. Users without XP get a zeroed record."""
    experience = get_experience(db, current_user)
    total_xp = experience.total_xp if experience else 0
    progress = get_level_and_progress(total_xp)

    return ExperienceResponse(
        total_xp=total_xp,
        formatted_xp=format_xp(total_xp),
        streak_count=experience.streak_count if experience else 0,
        progress_percentage=get_level_progress_percentage(total_xp),
        **progress.to_dict(),
    )


@router.get("/levels", response_model=LevelLadderResponse, summary="My Level Ladder")
async def get_my_levels(
    show_levels: int = Query(8, ge=1, le=50),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    experience = get_experience(db, current_user)
    total_xp = experience.total_xp if experience else 0

    return LevelLadderResponse(
        current_level=get_level_and_progress(total_xp).level,
        total_xp=total_xp,
        levels=[LadderLevelResponse(**level.to_dict()) for level in generate_level_ladder(total_xp, show_levels)],
    )
