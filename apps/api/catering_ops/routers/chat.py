"""
Chat router: the team chat channels and the budget assistant for regional managers.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from catering_ops.core import roles
from catering_ops.core.deps import get_current_user, require_roles
from catering_ops.db.session import get_db
from catering_ops.models.user import User
from catering_ops.services.budget_chat import BudgetChatService
from catering_ops.services.team_chat import DEFAULT_PAGE, TeamChatService

router = APIRouter(prefix="/chat", tags=["chat"])


class ChatTurn(BaseModel):
    role: str
    content: str = ""


class BudgetChatRequest(BaseModel):
    message: Optional[str] = None
    context: Optional[str] = None
    history: List[ChatTurn] = []


class MessageCreate(BaseModel):
    channel_id: Optional[int] = None
    content: Optional[str] = None
    image_url: Optional[str] = None
    is_urgent: bool = False


class ReactionToggle(BaseModel):
    message_id: Optional[int] = None
    emoji: Optional[str] = None


class PinToggle(BaseModel):
    message_id: Optional[int] = None


class ChannelCreate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None
    is_read_only: Optional[bool] = None


def get_budget_chat_service() -> BudgetChatService:
    return BudgetChatService()


@router.get("/channels")
def list_channels(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return TeamChatService(db).channels(current_user)


@router.get("/messages")
def list_messages(
    channel_id: Optional[int] = Query(None),
    before_id: Optional[int] = Query(None),
    limit: int = Query(DEFAULT_PAGE, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return TeamChatService(db).messages(channel_id, current_user, before_id=before_id, limit=limit)


@router.post("/messages", status_code=status.HTTP_201_CREATED)
def send_message(
    body: MessageCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return TeamChatService(db).send(
        body.channel_id, body.content, current_user, image_url=body.image_url, is_urgent=body.is_urgent
    )


@router.post("/reactions")
def toggle_reaction(
    body: ReactionToggle,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return TeamChatService(db).toggle_reaction(body.message_id, body.emoji, current_user)


@router.post("/pin")
def toggle_pin(
    body: PinToggle,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return TeamChatService(db).toggle_pin(body.message_id, current_user)


@router.get("/unread")
def unread_count(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"total_unread": TeamChatService(db).total_unread(current_user)}


@router.get("/admin/channels")
def admin_list_channels(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return TeamChatService(db).admin_channels(current_user)


@router.post("/admin/channels", status_code=status.HTTP_201_CREATED)
def admin_create_channel(
    body: ChannelCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return TeamChatService(db).create_channel(body.model_dump(), current_user)


@router.put("/admin/channels/{channel_id}")
def admin_update_channel(
    channel_id: int,
    body: ChannelCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return TeamChatService(db).update_channel(channel_id, body.model_dump(), current_user)


@router.delete("/admin/channels/{channel_id}")
def admin_delete_channel(
    channel_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return TeamChatService(db).delete_channel(channel_id, current_user)


@router.post("/budget")
def budget_chat(
    body: BudgetChatRequest,
    current_user: User = Depends(require_roles(*roles.BUDGET_CHAT_ROLES)),
    service: BudgetChatService = Depends(get_budget_chat_service),
):
    response = service.reply(
        body.message or "",
        context=body.context,
        history=[turn.model_dump() for turn in body.history],
    )
    return {"success": True, "response": response}
