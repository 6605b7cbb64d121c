"""
Recipe instruction router.
"""
from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from catering_ops.core import roles
from catering_ops.core.deps import get_current_user, require_roles
from catering_ops.db.session import get_db
from catering_ops.models.user import User
from catering_ops.services.recipes import RecipeInstructionService

router = APIRouter(prefix="/recipe-instructions", tags=["recipes"])


@router.get("")
def list_instructions(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[Dict[str, Any]]:
    return RecipeInstructionService(db).list_instructions()


@router.post("", status_code=status.HTTP_201_CREATED)
def create_instruction(
    document: Dict[str, Any] = Body(...),
    update_if_exists: bool = Query(False),
    skip_if_exists: bool = Query(False),
    current_user: User = Depends(require_roles(*roles.SCHEDULE_PLANNERS)),
    db: Session = Depends(get_db),
):
    """
    Store a new instruction document.

    With ``update_if_exists`` an existing id is replaced, with
    ``skip_if_exists`` it is left alone; both answer 200 instead of 201.
    """
    stored, created = RecipeInstructionService(db).create(
        document,
        update_if_exists=update_if_exists,
        skip_if_exists=skip_if_exists,
    )
    if not created:
        return JSONResponse(status_code=status.HTTP_200_OK, content=stored)
    return stored


@router.get("/{instruction_id}")
def get_instruction(
    instruction_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return RecipeInstructionService(db).get(instruction_id).instruction_data


@router.put("/{instruction_id}")
def update_instruction(
    instruction_id: str,
    updates: Dict[str, Any] = Body(...),
    current_user: User = Depends(require_roles(*roles.SCHEDULE_PLANNERS)),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Shallow-merge ``updates`` into the stored document."""
    return RecipeInstructionService(db).merge(instruction_id, updates)


@router.delete("/{instruction_id}")
def delete_instruction(
    instruction_id: str,
    current_user: User = Depends(require_roles(*roles.SCHEDULE_PLANNERS)),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return RecipeInstructionService(db).delete(instruction_id)
