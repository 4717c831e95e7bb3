"""
AI Routes
===========
Pairing suggestions and cooking tips for customers, dish descriptions for admins.
"""

from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from common.deps import get_pairing_advisor
from modules.ai.service import PairingAdvisor
from modules.auth.deps import require_admin

router = APIRouter(tags=["ai"])


class PairingRequest(BaseModel):
    dish_name: str = Field(..., min_length=1)
    cuisine: str = Field(..., min_length=1)


class TipsRequest(BaseModel):
    dish_name: str = Field(..., min_length=1)


class DescribeRequest(BaseModel):
    dish_name: str = Field(..., min_length=1)
    ingredients: List[str] = []


@router.post("/api/ai/pairings")
def suggest_pairings(body: PairingRequest, advisor: PairingAdvisor = Depends(get_pairing_advisor)):
    return {"result": advisor.suggest_pairings(body.dish_name, body.cuisine)}


@router.post("/api/ai/tips")
def cooking_tips(body: TipsRequest, advisor: PairingAdvisor = Depends(get_pairing_advisor)):
    return {"result": advisor.cooking_tips(body.dish_name)}


@router.post("/api/admin/ai/describe")
def describe_dish(
    body: DescribeRequest,
    user=Depends(require_admin),
    advisor: PairingAdvisor = Depends(get_pairing_advisor),
):
    return {"result": advisor.describe_dish(body.dish_name, body.ingredients)}
