from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.deps import get_current_user, get_user_service
from app.db.session import get_db
from app.models.user import User
from app.services.user_service import CreditTopUp, PlanUpgrade, ProfileUpdate, UserService

router = APIRouter()


@router.get("/profile")
async def get_profile(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: UserService = Depends(get_user_service),
):
    return {"success": True, "data": service.get_profile(db, current_user.id)}


@router.put("/profile")
async def update_profile(
    updates: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: UserService = Depends(get_user_service),
):
    profile = service.update_profile(db, current_user.id, updates)
    return {"success": True, "data": profile, "message": "Profile updated successfully"}


@router.get("/stats")
async def get_stats(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: UserService = Depends(get_user_service),
):
    return {"success": True, "data": service.get_stats(db, current_user.id)}


@router.post("/credits/add")
async def add_credits(
    payload: CreditTopUp,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: UserService = Depends(get_user_service),
):
    profile = service.add_credits(db, current_user.id, payload.credits)
    return {"success": True, "data": profile, "message": f"{payload.credits} credits added successfully"}


@router.post("/plan/upgrade")
async def upgrade_plan(
    payload: PlanUpgrade,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: UserService = Depends(get_user_service),
):
    profile = service.upgrade_plan(db, current_user.id, payload.plan)
    return {"success": True, "data": profile, "message": f"Plan changed to {payload.plan.value}"}


@router.post("/verify-email")
async def verify_email(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: UserService = Depends(get_user_service),
):
    profile = service.verify_email(db, current_user.id)
    return {"success": True, "data": profile, "message": "Email verified successfully"}


@router.delete("/account")
async def delete_account(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: UserService = Depends(get_user_service),
):
    removed = service.delete_account(db, current_user.id)
    return {"success": True, "data": {"deleted": removed}, "message": "Account deleted successfully"}
